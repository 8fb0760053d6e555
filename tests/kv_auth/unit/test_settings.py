"""Unit tests for adapter settings and wiring helpers."""

import logging
from unittest.mock import AsyncMock, MagicMock

import pytest
from pydantic import ValidationError

from kv_auth import (
    AdapterSettings,
    KeyValueAuthAdapter,
    clear_settings_cache,
    create_redis_adapter,
    create_redis_client,
    get_settings,
)


@pytest.fixture(autouse=True)
def _fresh_settings():
    level = logging.getLogger("kv_auth").level
    clear_settings_cache()
    yield
    clear_settings_cache()
    logging.getLogger("kv_auth").setLevel(level)


class TestAdapterSettings:
    """Environment-driven configuration."""

    def test_defaults(self, monkeypatch):
        for name in ("REDIS_URL", "KEY_PREFIX", "CASCADE_SESSIONS", "ENFORCE_EXPIRY", "LOG_LEVEL"):
            monkeypatch.delenv(f"KV_AUTH_{name}", raising=False)

        settings = AdapterSettings()

        assert settings.redis_url == "redis://localhost:6379/0"
        assert settings.key_prefix == "authjs"
        assert settings.cascade_sessions is False
        assert settings.enforce_expiry is False
        assert settings.log_level == "INFO"

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("KV_AUTH_KEY_PREFIX", "myapp")
        monkeypatch.setenv("KV_AUTH_CASCADE_SESSIONS", "true")
        monkeypatch.setenv("KV_AUTH_LOG_LEVEL", "debug")

        settings = get_settings()

        assert settings.key_prefix == "myapp"
        assert settings.cascade_sessions is True
        assert settings.log_level == "DEBUG"

    def test_settings_are_cached(self):
        assert get_settings() is get_settings()

    def test_prefix_with_separator_rejected(self):
        with pytest.raises(ValidationError):
            AdapterSettings(key_prefix="my:app")


class TestFactory:
    """create_redis_adapter and create_redis_client."""

    def test_adapter_uses_settings(self):
        client = AsyncMock()
        client.register_script = MagicMock(return_value=AsyncMock())
        settings = AdapterSettings(key_prefix="myapp", log_level="WARNING")

        adapter = create_redis_adapter(client, settings)

        assert isinstance(adapter, KeyValueAuthAdapter)
        assert adapter.keys.user("u1") == "myapp:user:u1"
        assert logging.getLogger("kv_auth").level == logging.WARNING

    def test_client_decodes_responses(self):
        client = create_redis_client(AdapterSettings(redis_url="redis://cache.internal:6380/2"))

        kwargs = client.connection_pool.connection_kwargs
        assert kwargs["host"] == "cache.internal"
        assert kwargs["port"] == 6380
        assert kwargs["db"] == 2
        assert kwargs["decode_responses"] is True
