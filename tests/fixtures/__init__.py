"""Shared test fixtures and builders for bindep tests."""
