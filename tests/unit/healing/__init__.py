"""Tests for asklepios.healing."""
