"""
Configuration Module

This module provides centralized, type-safe configuration management
for the metric governance cache service.

Components:
-----------
- **settings.py**: Pydantic-based configuration with environment variable
  loading and the settings-panel file source
- **constants.py**: System-wide constants, enums, header names and the
  cache key convention

Environment Variables:
---------------------
```bash
# Redis
ENABLE_CACHE=true
REDIS_HOST=localhost
REDIS_PORT=6379
REDIS_KEY_PREFIX=mdl:

# Cache TTLs (seconds)
CACHE_TTL=300
CACHE_MAX_TTL=3600

# Warming
ENABLE_CACHE_WARMING=true
CACHE_WARM_INTERVAL=30
CACHE_WARM_MAX_METRICS=100

# Logging
LOG_LEVEL=INFO
LOG_FORMAT=json
```

The settings panel may also write ``.mdl/settings.json``; its ``redis``
section overrides the environment.

Testing:
-------
```python
from src.core.config import reload_settings

monkeypatch.setenv("REDIS_HOST", "test-redis")
settings = reload_settings()
assert settings.redis.REDIS_HOST == "test-redis"
```

Author: System Architect
Date: 2025-12-05
"""

from src.core.config.constants import (
    ANONYMOUS_PRINCIPAL,
    DEFAULT_KEY_PREFIX,
    HEADER_CACHE_KEY,
    HEADER_CACHE_STATUS,
    HEADER_REQUEST_ID,
    CacheAvailability,
    CacheStatus,
    ConnectionState,
    ResourceFamily,
    Stage,
    WarmingRunStatus,
    WarmingStrategy,
)
from src.core.config.settings import Settings, get_settings, reload_settings

__all__ = [
    # Settings
    "Settings",
    "get_settings",
    "reload_settings",
    # Enums
    "Stage",
    "ConnectionState",
    "CacheAvailability",
    "CacheStatus",
    "WarmingStrategy",
    "WarmingRunStatus",
    "ResourceFamily",
    # Constants
    "ANONYMOUS_PRINCIPAL",
    "DEFAULT_KEY_PREFIX",
    "HEADER_CACHE_KEY",
    "HEADER_CACHE_STATUS",
    "HEADER_REQUEST_ID",
]
