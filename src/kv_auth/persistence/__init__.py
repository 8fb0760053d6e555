"""KeyValueStore implementations.

Structure:
    persistence/
    ├── redis/      # redis.asyncio implementation
    └── memory/     # In-memory fake for tests and local development

Usage:
    from kv_auth.persistence.redis import RedisKeyValueStore
    from kv_auth.persistence.memory import InMemoryKeyValueStore
"""
