"""
Unit Tests for Core Exceptions

Tests for the exception hierarchy and its helpers.
"""

import pytest

from src.core.exceptions import (
    CacheConnectionError,
    CacheError,
    CacheSerializationError,
    ConfigurationError,
    GovernanceError,
    ResourceConflictError,
    ResourceNotFoundError,
    ResourceStoreError,
)


@pytest.mark.unit
class TestGovernanceError:
    """Test the base exception class."""

    def test_base_error_creation(self):
        error = GovernanceError("Test message")
        assert str(error) == "Test message"
        assert error.message == "Test message"

    def test_base_error_default_values(self):
        error = GovernanceError("Test")
        assert error.details == {}
        assert error.request_id is None

    def test_details_are_copied(self):
        details = {"key": "value"}
        error = GovernanceError("Test", details=details)
        error.with_context(extra=1)

        assert details == {"key": "value"}
        assert error.details == {"key": "value", "extra": 1}

    def test_to_dict(self):
        error = CacheConnectionError("down", request_id="req-1", details={"host": "localhost"})

        assert error.to_dict() == {
            "error_type": "CacheConnectionError",
            "message": "down",
            "request_id": "req-1",
            "details": {"host": "localhost"},
        }

    def test_from_exception_wraps_original(self):
        original = OSError("connection refused")
        error = CacheConnectionError.from_exception(original, host="localhost", port=6379)

        assert isinstance(error, CacheConnectionError)
        assert error.message == "connection refused"
        assert error.details["original_error"] == "OSError"
        assert error.details["port"] == 6379

    def test_repr_includes_details(self):
        error = GovernanceError("Test", request_id="abc", details={"k": 1})
        assert repr(error) == "GovernanceError(message='Test', request_id='abc', details={'k': 1})"


@pytest.mark.unit
class TestHierarchy:
    """Test exception inheritance."""

    @pytest.mark.parametrize(
        "exc_class",
        [CacheError, CacheConnectionError, CacheSerializationError, ConfigurationError, ResourceStoreError],
    )
    def test_everything_is_a_governance_error(self, exc_class):
        assert issubclass(exc_class, GovernanceError)

    def test_cache_errors_share_a_base(self):
        assert issubclass(CacheConnectionError, CacheError)
        assert issubclass(CacheSerializationError, CacheError)

    def test_store_errors_share_a_base(self):
        assert issubclass(ResourceNotFoundError, ResourceStoreError)
        assert issubclass(ResourceConflictError, ResourceStoreError)
