"""Shared pytest fixtures for all test suites."""

from tests.shared.fixtures.factories import AuthRecordFactory

__all__ = [
    "AuthRecordFactory",
]
