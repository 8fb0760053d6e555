"""kv_auth - Authentication storage on a key-value store.

This package stores an authentication framework's users, provider
accounts, sessions and verification tokens as hash and set records in a
key-value store that has no multi-key transactions.

Architecture:
    kv_auth/
    ├── adapter.py          # Consistency protocol (KeyValueAuthAdapter)
    ├── keys.py             # Key encoding
    ├── codec.py            # Record <-> field map conversion
    ├── store.py            # Abstract store interface
    ├── persistence/        # Store implementations
    │   ├── redis/          # redis.asyncio
    │   └── memory/         # In-memory fake
    ├── schemas.py          # Data classes
    ├── config.py           # Settings
    └── exceptions.py       # Adapter exceptions

Usage:
    from redis.asyncio import Redis
    from kv_auth import create_redis_adapter

    adapter = create_redis_adapter(Redis.from_url("redis://localhost:6379/0"))
    user = await adapter.get_user_by_email("user@example.com")
"""

from kv_auth.adapter import KeyValueAuthAdapter
from kv_auth.codec import EntityCodec
from kv_auth.config import AdapterSettings, clear_settings_cache, get_settings
from kv_auth.exceptions import (
    AdapterError,
    DecodeError,
    InvalidKeySegmentError,
    InvalidRecordError,
    StoreUnavailableError,
)
from kv_auth.factory import create_redis_adapter, create_redis_client
from kv_auth.keys import KeyEncoder
from kv_auth.schemas import (
    AdapterAccount,
    AdapterSession,
    AdapterUser,
    SessionAndUser,
    SessionUpdate,
    UserDeletionMarker,
    VerificationToken,
)
from kv_auth.store import KeyValueStore

__all__ = [
    # Adapter
    "KeyValueAuthAdapter",
    "KeyEncoder",
    "EntityCodec",
    "create_redis_adapter",
    "create_redis_client",
    # Store interface
    "KeyValueStore",
    # Schemas
    "AdapterUser",
    "AdapterAccount",
    "AdapterSession",
    "SessionUpdate",
    "SessionAndUser",
    "VerificationToken",
    "UserDeletionMarker",
    # Settings
    "AdapterSettings",
    "get_settings",
    "clear_settings_cache",
    # Exceptions
    "AdapterError",
    "DecodeError",
    "StoreUnavailableError",
    "InvalidKeySegmentError",
    "InvalidRecordError",
]
