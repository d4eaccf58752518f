"""Tests for asklepios.loops."""
