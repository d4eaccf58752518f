"""Asklepios test suite."""
