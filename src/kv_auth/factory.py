"""Wiring helpers for building an adapter from settings."""

import logging

from redis.asyncio import Redis

from kv_auth.adapter import KeyValueAuthAdapter
from kv_auth.config import AdapterSettings, get_settings
from kv_auth.keys import KeyEncoder
from kv_auth.persistence.redis import RedisKeyValueStore

logger = logging.getLogger(__name__)


def create_redis_client(settings: AdapterSettings | None = None) -> Redis:
    """Create a Redis client from settings.

    The caller owns the client and must close it (``await client.aclose()``).
    Connections are opened lazily on first use.
    """
    settings = settings or get_settings()
    return Redis.from_url(settings.redis_url, decode_responses=True)


def create_redis_adapter(
    client: Redis,
    settings: AdapterSettings | None = None,
) -> KeyValueAuthAdapter:
    """Build a KeyValueAuthAdapter over an existing Redis client.

    Parameters
    ----------
    client
        Redis asyncio client; not closed by the adapter
    settings
        Adapter settings (defaults to ``get_settings()``)

    Returns
    -------
    The configured adapter
    """
    settings = settings or get_settings()
    logging.getLogger("kv_auth").setLevel(getattr(logging, settings.log_level, logging.INFO))

    if settings.enforce_expiry:
        logger.info("Store-level expiry enabled for sessions and verification tokens")
    return KeyValueAuthAdapter(
        RedisKeyValueStore(client),
        keys=KeyEncoder(settings.key_prefix),
        cascade_sessions=settings.cascade_sessions,
        enforce_expiry=settings.enforce_expiry,
    )
