"""
Resource Store Exceptions

Raised by resource stores and translated to HTTP status codes by the
application's exception handlers.

Author: System Architect
Date: 2025-12-08
"""

from src.core.exceptions.base import GovernanceError


class ResourceStoreError(GovernanceError):
    """Base exception for resource store errors."""
    pass


class ResourceNotFoundError(ResourceStoreError):
    """Raised when a resource ID does not exist (HTTP 404)."""
    pass


class ResourceConflictError(ResourceStoreError):
    """Raised when creating a resource whose ID is already taken (HTTP 409)."""
    pass
