"""Adapter settings loaded from environment variables.

Configuration sources (in priority order):
1. OS environment variables with the KV_AUTH_ prefix
2. The .env file named by KV_AUTH_ENV_FILE, if it exists
3. Default values

Uses pydantic-settings for automatic type coercion and validation.
"""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from kv_auth.keys import DEFAULT_PREFIX, SEPARATOR


def _resolve_env_file_path() -> Path | None:
    """Resolve the .env file named by KV_AUTH_ENV_FILE, if present."""
    env_file_path = os.environ.get("KV_AUTH_ENV_FILE")
    if not env_file_path:
        return None
    path = Path(env_file_path)
    return path if path.exists() else None


class AdapterSettings(BaseSettings):
    """Adapter configuration loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="KV_AUTH_",
        env_file=_resolve_env_file_path(),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Store connection (client lifecycle is owned by the caller)
    redis_url: str = "redis://localhost:6379/0"

    # Key space
    key_prefix: str = DEFAULT_PREFIX

    # Consistency protocol
    cascade_sessions: bool = False
    enforce_expiry: bool = False

    # Logging
    log_level: str = "INFO"

    @field_validator("key_prefix")
    @classmethod
    def _validate_key_prefix(cls, v: str) -> str:
        if not v or SEPARATOR in v:
            msg = f"key_prefix must be non-empty and must not contain '{SEPARATOR}'"
            raise ValueError(msg)
        return v

    @field_validator("log_level")
    @classmethod
    def _normalize_log_level(cls, v: str) -> str:
        return v.upper()


@lru_cache()
def get_settings() -> AdapterSettings:
    """Return cached adapter settings."""
    return AdapterSettings()


def clear_settings_cache() -> None:
    """Clear the settings cache (useful for tests)."""
    get_settings.cache_clear()
