"""
Pytest configuration for kv_auth tests.

Unit tests run the adapter against the in-memory store; no containers
are needed.
"""

import pytest

from kv_auth import AdapterUser, KeyValueAuthAdapter
from kv_auth.persistence.memory import InMemoryKeyValueStore
from tests.shared.fixtures.factories import AuthRecordFactory


@pytest.fixture
def memory_store() -> InMemoryKeyValueStore:
    """Empty in-memory store."""
    return InMemoryKeyValueStore()


@pytest.fixture
def adapter(memory_store) -> KeyValueAuthAdapter:
    """Adapter with default settings over the in-memory store."""
    return KeyValueAuthAdapter(memory_store)


@pytest.fixture
def alice() -> AdapterUser:
    return AuthRecordFactory.alice()


@pytest.fixture
def bob() -> AdapterUser:
    return AuthRecordFactory.bob()
