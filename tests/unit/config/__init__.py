"""Tests for asklepios.config."""
