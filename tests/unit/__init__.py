"""Unit tests for Asklepios.

Cluster access is replaced by the in-memory FakeNodeClient from conftest.py,
which records every mutating call so tests can assert that idempotent
operations write nothing.
"""
