"""Tests for asklepios.cluster."""
