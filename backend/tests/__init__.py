"""
Test Suite

Tests for the status workflow backend. Storage is mongomock; entity stores
are either mongomock-backed or the in-memory store from helpers.py.

Run from the repository root:
    pytest
    pytest backend/tests/test_transition_engine.py
"""
