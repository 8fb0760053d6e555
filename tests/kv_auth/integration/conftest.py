"""
Pytest configuration for kv_auth integration tests.

Integration tests use Testcontainers for an ephemeral Redis instance.
Import the shared fixtures to make them available.
"""

import pytest

from kv_auth import KeyValueAuthAdapter
from kv_auth.persistence.redis import RedisKeyValueStore

# Re-export shared Redis fixtures
from tests.shared.fixtures.redis_container import (
    redis_client,
    redis_container,
)

__all__ = [
    "redis_client",
    "redis_container",
]


@pytest.fixture
def redis_store(redis_client) -> RedisKeyValueStore:
    return RedisKeyValueStore(redis_client)


@pytest.fixture
def redis_adapter(redis_store) -> KeyValueAuthAdapter:
    return KeyValueAuthAdapter(redis_store, cascade_sessions=True)
