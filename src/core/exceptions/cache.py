"""
Cache-Related Exceptions

Raised inside the cache layer only. ``CacheStore`` converts backend errors
into a fail-open result (miss, ``False`` or ``0``) and the read-through
middleware serves a request uncached when its key cannot be built, so none
of these reach a route handler or an HTTP response.

Author: System Architect
Date: 2025-12-08
"""

from src.core.exceptions.base import GovernanceError


class CacheError(GovernanceError):
    """Base exception for cache-related errors."""
    pass


class CacheConnectionError(CacheError):
    """
    Raised when unable to connect to cache (Redis).

    Common causes:
    - Redis server is down
    - Network connectivity issues
    - Incorrect host/port configuration
    - Authentication failure
    """
    pass


class CacheKeyError(CacheError):
    """
    Raised when no cache key can be built for a request.

    Common causes:
    - An authenticated principal whose ID equals the anonymous sentinel
    """
    pass


class CacheSerializationError(CacheError):
    """Raised when a cached payload cannot be encoded or decoded."""
    pass
