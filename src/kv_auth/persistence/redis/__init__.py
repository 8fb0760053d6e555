"""Redis implementation of the kv_auth store interface.

Provides:
- RedisKeyValueStore: KeyValueStore over a redis.asyncio client

The store does not connect or close the client; pass one that the
application already manages.

Examples
--------
from redis.asyncio import Redis
from kv_auth.persistence.redis import RedisKeyValueStore

store = RedisKeyValueStore(Redis.from_url("redis://localhost:6379/0"))
"""

from kv_auth.persistence.redis.store import RedisKeyValueStore

__all__ = ["RedisKeyValueStore"]
