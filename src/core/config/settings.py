#!/usr/bin/env python3
"""
Centralized Configuration Module using Pydantic Settings

This module provides type-safe, environment-based configuration for the
metric governance cache service. All configuration is centralized here to
ensure consistency across modules.

Sources, highest priority first:
1. Explicit keyword arguments (tests)
2. Settings-panel file (``.mdl/settings.json``, ``redis`` section only)
3. Process environment
4. ``.env`` file

Architectural Decision: Pydantic Settings for type safety and validation
- Environment variable loading with .env support
- Type validation at startup (fail fast on misconfiguration)
- The settings panel writes a JSON file; a custom source lets those
  values win over the environment without a restart script

Author: System Architect
Date: 2025-12-05
"""

import os
from pathlib import Path
from typing import Any, Literal

import orjson
from pydantic import Field, TypeAdapter, ValidationError, field_validator, model_validator
from pydantic.fields import FieldInfo
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict

from src.core.config.constants import (
    DEFAULT_CACHE_TTL,
    DEFAULT_KEY_PREFIX,
    ITEM_CACHE_TTL,
    LIST_CACHE_TTL,
    MAX_CACHE_TTL,
)
from src.core.logging.logger import get_logger

DEFAULT_SETTINGS_FILE = ".mdl/settings.json"

logger = get_logger(__name__)


class RedisSettings(BaseSettings):
    """
    Redis configuration for the response cache.

    STAGE-0.1: Redis connection configuration

    Architectural Decision: One pool, bounded retries
    - Commands retry transport errors with capped exponential backoff
    - A cold or broken backend never blocks a request for long
    """

    ENABLE_CACHE: bool = Field(default=False, description="Enable the Redis response cache")
    REDIS_HOST: str = Field(default="localhost", description="Redis server host")
    REDIS_PORT: int = Field(default=6379, description="Redis server port")
    REDIS_DB: int = Field(default=0, description="Redis database number")
    REDIS_PASSWORD: str | None = Field(default=None, description="Redis password (if required)")
    REDIS_KEY_PREFIX: str = Field(default=DEFAULT_KEY_PREFIX, description="Namespace prefix for every key")

    # Connection pool settings
    REDIS_MAX_CONNECTIONS: int = Field(default=50, description="Maximum pooled connections")
    REDIS_SOCKET_TIMEOUT: float = Field(default=5.0, description="Socket timeout in seconds")
    REDIS_SOCKET_CONNECT_TIMEOUT: float = Field(default=10.0, description="Connection timeout in seconds")
    REDIS_HEALTH_CHECK_INTERVAL: int = Field(default=30, description="Health check interval in seconds")

    # Reconnection policy
    REDIS_READY_TIMEOUT: float = Field(default=5.0, description="Max wait for an in-flight connection attempt")
    REDIS_MAX_RETRIES: int = Field(default=3, description="Retries per command on transport errors")
    REDIS_BACKOFF_BASE: float = Field(default=0.05, description="First backoff step in seconds")
    REDIS_BACKOFF_CAP: float = Field(default=2.0, description="Backoff ceiling in seconds")
    REDIS_RECONNECT_COOLDOWN: float = Field(default=5.0, description="Pause after a failed reconnect before trying again")

    model_config = SettingsConfigDict(env_prefix="", case_sensitive=True)


class CacheSettings(BaseSettings):
    """
    Response cache TTLs and debug behaviour.

    STAGE-2: Cache TTL configuration

    Optimization: Collections change more often than single resources,
    so list views get the shorter TTL.
    """

    CACHE_TTL: int = Field(default=DEFAULT_CACHE_TTL, description="Default TTL in seconds")
    CACHE_MAX_TTL: int = Field(default=MAX_CACHE_TTL, description="Maximum TTL in seconds")
    CACHE_LIST_TTL: int = Field(default=LIST_CACHE_TTL, description="TTL for collection views")
    CACHE_ITEM_TTL: int = Field(default=ITEM_CACHE_TTL, description="TTL for single resources")
    CACHE_DEBUG_HEADERS: bool = Field(default=True, description="Expose X-Cache-Key on responses")

    model_config = SettingsConfigDict(env_prefix="", case_sensitive=True)


class WarmerSettings(BaseSettings):
    """
    Cache warming configuration.

    STAGE-W: Warming schedule
    """

    ENABLE_CACHE_WARMING: bool = Field(default=False, description="Enable proactive cache warming")
    CACHE_WARM_ON_STARTUP: bool = Field(default=True, description="Run one pass during startup")
    CACHE_WARM_INTERVAL: int = Field(default=30, description="Minutes between passes (0 disables)")
    CACHE_WARM_MAX_METRICS: int = Field(default=100, description="Individual resources warmed per pass")

    model_config = SettingsConfigDict(env_prefix="", case_sensitive=True)


class LoggingSettings(BaseSettings):
    """
    Logging configuration for structured logging.

    STAGE-L: Logging configuration

    Architectural Decision: structlog for production-grade logging
    """

    LOG_LEVEL: str = Field(default="INFO", description="Logging level")
    LOG_FORMAT: Literal["json", "console"] = Field(default="json", description="Log output format")

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v):
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"LOG_LEVEL must be one of {valid_levels}")
        return v.upper()

    model_config = SettingsConfigDict(env_prefix="", case_sensitive=True)


class ApplicationSettings(BaseSettings):
    """
    General application settings.

    STAGE-0: Application initialization
    """

    ENVIRONMENT: Literal["development", "staging", "production", "test"] = Field(
        default="development",
        description="Application environment"
    )
    DEBUG: bool = Field(default=False, description="Debug mode")
    APP_NAME: str = Field(default="Metric Definition Library", description="Application name")
    APP_VERSION: str = Field(default="1.0.0", description="Application version")

    # API settings
    API_HOST: str = Field(default="0.0.0.0", description="API host")
    API_PORT: int = Field(default=8000, description="API port")
    API_BASE_PATH: str = Field(default="/api/v1", description="Prefix for all API routes")

    # CORS settings
    CORS_ORIGINS: list[str] = Field(default=["*"], description="Allowed CORS origins")

    model_config = SettingsConfigDict(env_prefix="", case_sensitive=True)


# ============================================================================
# Settings-panel file source
# ============================================================================


class SettingsPanelSource(PydanticBaseSettingsSource):
    """
    Reads the ``redis`` section of the settings-panel JSON file.

    File format::

        {"redis": {"host": "cache.internal", "port": 6380,
                   "password": "...", "db": 2, "enabled": true}}

    The file path comes from an explicit ``SETTINGS_FILE`` keyword, then the
    ``SETTINGS_FILE`` environment variable, then ``.mdl/settings.json``.
    Missing, unreadable or malformed files contribute nothing, so the
    environment remains the fallback. Empty strings count as unset. A value
    of the wrong type (``"port": "abc"``) is dropped with a warning and the
    environment value is used for that field.
    """

    FIELD_MAP = {
        "host": "REDIS_HOST",
        "port": "REDIS_PORT",
        "password": "REDIS_PASSWORD",
        "db": "REDIS_DB",
        "enabled": "ENABLE_CACHE",
    }

    def __init__(self, settings_cls: type[BaseSettings], path: str | Path | None = None):
        super().__init__(settings_cls)
        self._path = Path(path or os.environ.get("SETTINGS_FILE") or DEFAULT_SETTINGS_FILE)
        self._values = self._load()

    def _load(self) -> dict[str, Any]:
        try:
            document = orjson.loads(self._path.read_bytes())
        except (OSError, orjson.JSONDecodeError):
            return {}

        section = document.get("redis") if isinstance(document, dict) else None
        if not isinstance(section, dict):
            return {}

        values: dict[str, Any] = {}
        for key, field_name in self.FIELD_MAP.items():
            raw = section.get(key)
            if raw in (None, ""):
                continue
            annotation = self.settings_cls.model_fields[field_name].annotation
            try:
                values[field_name] = TypeAdapter(annotation).validate_python(raw)
            except ValidationError as e:
                # The value itself is not logged; the password lives here too
                logger.warning(
                    "Ignoring invalid settings-panel value",
                    path=str(self._path),
                    key=key,
                    field=field_name,
                    error_count=e.error_count(),
                )
        return values

    def get_field_value(self, field: FieldInfo, field_name: str) -> tuple[Any, str, bool]:
        return self._values.get(field_name), field_name, False

    def __call__(self) -> dict[str, Any]:
        return dict(self._values)


class Settings(BaseSettings):
    """
    Main settings class that aggregates all configuration sections.

    STAGE-0: Centralized configuration initialization

    Usage:
        from src.core.config.settings import get_settings

        settings = get_settings()
        redis_host = settings.redis.REDIS_HOST
        list_ttl = settings.cache.CACHE_LIST_TTL
    """

    # Redis settings
    ENABLE_CACHE: bool = Field(default=False, description="Enable the Redis response cache")
    REDIS_HOST: str = Field(default="localhost", description="Redis server host")
    REDIS_PORT: int = Field(default=6379, description="Redis server port")
    REDIS_DB: int = Field(default=0, description="Redis database number")
    REDIS_PASSWORD: str | None = Field(default=None, description="Redis password (if required)")
    REDIS_KEY_PREFIX: str = Field(default=DEFAULT_KEY_PREFIX, description="Namespace prefix for every key")
    REDIS_MAX_CONNECTIONS: int = Field(default=50, description="Maximum pooled connections")
    REDIS_SOCKET_TIMEOUT: float = Field(default=5.0, description="Socket timeout in seconds")
    REDIS_SOCKET_CONNECT_TIMEOUT: float = Field(default=10.0, description="Connection timeout in seconds")
    REDIS_HEALTH_CHECK_INTERVAL: int = Field(default=30, description="Health check interval in seconds")
    REDIS_READY_TIMEOUT: float = Field(default=5.0, description="Max wait for an in-flight connection attempt")
    REDIS_MAX_RETRIES: int = Field(default=3, description="Retries per command on transport errors")
    REDIS_BACKOFF_BASE: float = Field(default=0.05, description="First backoff step in seconds")
    REDIS_BACKOFF_CAP: float = Field(default=2.0, description="Backoff ceiling in seconds")
    REDIS_RECONNECT_COOLDOWN: float = Field(default=5.0, description="Pause after a failed reconnect before trying again")

    # Cache settings
    CACHE_TTL: int = Field(default=DEFAULT_CACHE_TTL, description="Default TTL in seconds")
    CACHE_MAX_TTL: int = Field(default=MAX_CACHE_TTL, description="Maximum TTL in seconds")
    CACHE_LIST_TTL: int = Field(default=LIST_CACHE_TTL, description="TTL for collection views")
    CACHE_ITEM_TTL: int = Field(default=ITEM_CACHE_TTL, description="TTL for single resources")
    CACHE_DEBUG_HEADERS: bool = Field(default=True, description="Expose X-Cache-Key on responses")

    # Warming settings
    ENABLE_CACHE_WARMING: bool = Field(default=False, description="Enable proactive cache warming")
    CACHE_WARM_ON_STARTUP: bool = Field(default=True, description="Run one pass during startup")
    CACHE_WARM_INTERVAL: int = Field(default=30, description="Minutes between passes (0 disables)")
    CACHE_WARM_MAX_METRICS: int = Field(default=100, description="Individual resources warmed per pass")

    # Logging settings
    LOG_LEVEL: str = Field(default="INFO", description="Logging level")
    LOG_FORMAT: Literal["json", "console"] = Field(default="json", description="Log output format")

    # Application settings
    ENVIRONMENT: Literal["development", "staging", "production", "test"] = Field(
        default="development",
        description="Application environment"
    )
    DEBUG: bool = Field(default=False, description="Debug mode")
    APP_NAME: str = Field(default="Metric Definition Library", description="Application name")
    APP_VERSION: str = Field(default="1.0.0", description="Application version")
    API_HOST: str = Field(default="0.0.0.0", description="API host")
    API_PORT: int = Field(default=8000, description="API port")
    API_BASE_PATH: str = Field(default="/api/v1", description="Prefix for all API routes")
    CORS_ORIGINS: list[str] = Field(default=["*"], description="Allowed CORS origins")
    SETTINGS_FILE: str = Field(default=DEFAULT_SETTINGS_FILE, description="Settings-panel JSON file")

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v):
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"LOG_LEVEL must be one of {valid_levels}")
        return v.upper()

    @field_validator("CACHE_TTL", "CACHE_MAX_TTL", "CACHE_LIST_TTL", "CACHE_ITEM_TTL")
    @classmethod
    def validate_positive_ttl(cls, v):
        """TTLs must be positive; Redis rejects EX 0."""
        if v <= 0:
            raise ValueError("cache TTLs must be positive")
        return v

    @field_validator("CACHE_WARM_INTERVAL", "CACHE_WARM_MAX_METRICS")
    @classmethod
    def validate_non_negative(cls, v):
        """Warming knobs accept 0 (off) but not negatives."""
        if v < 0:
            raise ValueError("warming settings must not be negative")
        return v

    @model_validator(mode="after")
    def validate_ttl_bounds(self):
        """The default TTL must fit under the configured maximum."""
        if self.CACHE_TTL > self.CACHE_MAX_TTL:
            raise ValueError("CACHE_TTL must not exceed CACHE_MAX_TTL")
        return self

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,
            SettingsPanelSource(settings_cls, path=init_settings.init_kwargs.get("SETTINGS_FILE")),
            env_settings,
            dotenv_settings,
            file_secret_settings,
        )

    # Nested configuration objects
    @property
    def redis(self) -> 'RedisSettings':
        """Get Redis settings."""
        return RedisSettings(
            ENABLE_CACHE=self.ENABLE_CACHE,
            REDIS_HOST=self.REDIS_HOST,
            REDIS_PORT=self.REDIS_PORT,
            REDIS_DB=self.REDIS_DB,
            REDIS_PASSWORD=self.REDIS_PASSWORD,
            REDIS_KEY_PREFIX=self.REDIS_KEY_PREFIX,
            REDIS_MAX_CONNECTIONS=self.REDIS_MAX_CONNECTIONS,
            REDIS_SOCKET_TIMEOUT=self.REDIS_SOCKET_TIMEOUT,
            REDIS_SOCKET_CONNECT_TIMEOUT=self.REDIS_SOCKET_CONNECT_TIMEOUT,
            REDIS_HEALTH_CHECK_INTERVAL=self.REDIS_HEALTH_CHECK_INTERVAL,
            REDIS_READY_TIMEOUT=self.REDIS_READY_TIMEOUT,
            REDIS_MAX_RETRIES=self.REDIS_MAX_RETRIES,
            REDIS_BACKOFF_BASE=self.REDIS_BACKOFF_BASE,
            REDIS_BACKOFF_CAP=self.REDIS_BACKOFF_CAP,
            REDIS_RECONNECT_COOLDOWN=self.REDIS_RECONNECT_COOLDOWN,
        )

    @property
    def cache(self) -> 'CacheSettings':
        """Get cache settings."""
        return CacheSettings(
            CACHE_TTL=self.CACHE_TTL,
            CACHE_MAX_TTL=self.CACHE_MAX_TTL,
            CACHE_LIST_TTL=self.CACHE_LIST_TTL,
            CACHE_ITEM_TTL=self.CACHE_ITEM_TTL,
            CACHE_DEBUG_HEADERS=self.CACHE_DEBUG_HEADERS,
        )

    @property
    def warmer(self) -> 'WarmerSettings':
        """Get cache warming settings."""
        return WarmerSettings(
            ENABLE_CACHE_WARMING=self.ENABLE_CACHE_WARMING,
            CACHE_WARM_ON_STARTUP=self.CACHE_WARM_ON_STARTUP,
            CACHE_WARM_INTERVAL=self.CACHE_WARM_INTERVAL,
            CACHE_WARM_MAX_METRICS=self.CACHE_WARM_MAX_METRICS,
        )

    @property
    def logging(self) -> 'LoggingSettings':
        """Get logging settings."""
        return LoggingSettings(
            LOG_LEVEL=self.LOG_LEVEL,
            LOG_FORMAT=self.LOG_FORMAT,
        )

    @property
    def app(self) -> 'ApplicationSettings':
        """Get application settings."""
        return ApplicationSettings(
            ENVIRONMENT=self.ENVIRONMENT,
            DEBUG=self.DEBUG,
            APP_NAME=self.APP_NAME,
            APP_VERSION=self.APP_VERSION,
            API_HOST=self.API_HOST,
            API_PORT=self.API_PORT,
            API_BASE_PATH=self.API_BASE_PATH,
            CORS_ORIGINS=self.CORS_ORIGINS,
        )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore"  # Ignore extra environment variables
    )


# Global settings instance (singleton pattern)
_settings: Settings | None = None


def get_settings() -> Settings:
    """
    Get the global settings instance (singleton).

    STAGE-0.3: Settings initialization

    Returns:
        Settings: Global settings instance
    """
    global _settings

    if _settings is None:
        _settings = Settings()

    return _settings


def reload_settings() -> Settings:
    """
    Reload settings (useful for testing and after the settings panel saves).

    Returns:
        Settings: New settings instance
    """
    global _settings
    _settings = Settings()
    return _settings
