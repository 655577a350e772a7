"""
Exception Module

Structured exception hierarchy for the metric governance service.

Module Structure:
-----------------
- **base.py**: GovernanceError base class + ConfigurationError
- **cache.py**: Cache-related exceptions (never escape the cache store)
- **store.py**: Resource store exceptions (mapped to 404 / 409)

Usage:
------
```python
from src.core.exceptions import CacheConnectionError, ResourceNotFoundError
```

Author: System Architect
Date: 2025-12-08
"""

# Base exception
from src.core.exceptions.base import ConfigurationError, GovernanceError

# Cache exceptions
from src.core.exceptions.cache import (
    CacheConnectionError,
    CacheError,
    CacheKeyError,
    CacheSerializationError,
)

# Store exceptions
from src.core.exceptions.store import (
    ResourceConflictError,
    ResourceNotFoundError,
    ResourceStoreError,
)

__all__ = [
    # Base
    "GovernanceError",
    "ConfigurationError",
    # Cache
    "CacheError",
    "CacheConnectionError",
    "CacheKeyError",
    "CacheSerializationError",
    # Store
    "ResourceStoreError",
    "ResourceNotFoundError",
    "ResourceConflictError",
]
