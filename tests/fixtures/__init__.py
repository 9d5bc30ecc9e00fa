"""Shared machine definitions used across the test suite."""
