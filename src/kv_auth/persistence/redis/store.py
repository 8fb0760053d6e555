"""Redis implementation of KeyValueStore.

Wraps a caller-owned ``redis.asyncio.Redis`` client. The client may be
created with or without ``decode_responses``; byte replies are decoded
as UTF-8 here.
"""

import logging
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from datetime import datetime

from redis.asyncio import Redis
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import TimeoutError as RedisTimeoutError

from kv_auth.exceptions import StoreUnavailableError
from kv_auth.store import KeyValueStore
from kv_auth.time import to_utc

logger = logging.getLogger(__name__)

# Returns the record as a flat [field, value, ...] list when deleted, nil otherwise.
_DELETE_IF_FIELD_EQUALS = """
local current = redis.call('HGET', KEYS[1], ARGV[1])
if current == ARGV[2] then
    local record = redis.call('HGETALL', KEYS[1])
    redis.call('DEL', KEYS[1])
    return record
end
return nil
"""

# Drops the old record (and its TTL) and writes the new fields in one step.
_REPLACE_HASH = """
redis.call('DEL', KEYS[1])
return redis.call('HSET', KEYS[1], unpack(ARGV))
"""


def _text(value: str | bytes) -> str:
    return value.decode("utf-8") if isinstance(value, bytes) else value


@contextmanager
def _translate_errors(operation: str, key: str) -> Iterator[None]:
    try:
        yield
    except (RedisConnectionError, RedisTimeoutError) as e:
        logger.warning("Redis %s failed for key %s: %s", operation, key, e)
        raise StoreUnavailableError(f"Redis {operation} failed: {e}") from e


class RedisKeyValueStore(KeyValueStore):
    """
    Redis implementation of KeyValueStore.

    Hash records map to Redis hashes, set records to Redis sets. The
    conditional delete and the record replace run as Lua scripts so that
    they are atomic on the server.
    """

    def __init__(self, client: Redis):
        """Initialize the store with a connected client.

        Parameters
        ----------
        client
            Redis asyncio client; the caller owns its lifecycle
        """
        self._client = client
        self._delete_if_field_equals = client.register_script(_DELETE_IF_FIELD_EQUALS)
        self._replace_hash = client.register_script(_REPLACE_HASH)

    async def hash_get(self, key: str) -> dict[str, str] | None:
        with _translate_errors("HGETALL", key):
            data = await self._client.hgetall(key)
        if not data:
            return None
        return {_text(field): _text(value) for field, value in data.items()}

    async def hash_set(self, key: str, mapping: Mapping[str, str]) -> None:
        with _translate_errors("HSET", key):
            await self._client.hset(key, mapping=dict(mapping))

    async def hash_replace(self, key: str, mapping: Mapping[str, str]) -> None:
        args = [item for field_and_value in mapping.items() for item in field_and_value]
        with _translate_errors("EVALSHA", key):
            await self._replace_hash(keys=[key], args=args)

    async def set_add(self, key: str, member: str) -> None:
        with _translate_errors("SADD", key):
            await self._client.sadd(key, member)

    async def set_remove(self, key: str, member: str) -> None:
        with _translate_errors("SREM", key):
            await self._client.srem(key, member)

    async def set_members(self, key: str) -> set[str]:
        with _translate_errors("SMEMBERS", key):
            members = await self._client.smembers(key)
        return {_text(member) for member in members}

    async def delete(self, key: str) -> None:
        with _translate_errors("DEL", key):
            await self._client.delete(key)

    async def expire_at(self, key: str, when: datetime) -> None:
        with _translate_errors("EXPIREAT", key):
            await self._client.expireat(key, to_utc(when))

    async def hash_delete_if_field_equals(
        self,
        key: str,
        field: str,
        expected: str,
    ) -> dict[str, str] | None:
        with _translate_errors("EVALSHA", key):
            reply = await self._delete_if_field_equals(keys=[key], args=[field, expected])
        if not reply:
            return None
        flat = [_text(item) for item in reply]
        return dict(zip(flat[::2], flat[1::2]))
