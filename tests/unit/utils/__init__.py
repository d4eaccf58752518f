"""Tests for asklepios.utils."""
