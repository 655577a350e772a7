"""
Core Module

Foundational components: configuration, logging, exceptions and the
detached task runner used for fire-and-forget cache side effects.
"""

from .exceptions import (
    CacheConnectionError,
    CacheError,
    CacheKeyError,
    CacheSerializationError,
    ConfigurationError,
    GovernanceError,
    ResourceConflictError,
    ResourceNotFoundError,
)
from .logging import (
    clear_request_id,
    get_logger,
    get_request_id,
    log_stage,
    set_request_id,
    setup_logging,
)

__all__ = [
    "setup_logging",
    "get_logger",
    "set_request_id",
    "get_request_id",
    "clear_request_id",
    "log_stage",
    "GovernanceError",
    "ConfigurationError",
    "CacheError",
    "CacheConnectionError",
    "CacheKeyError",
    "CacheSerializationError",
    "ResourceNotFoundError",
    "ResourceConflictError",
]
