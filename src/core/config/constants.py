"""
System Constants and Enumerations

This module defines system-wide constants and enumerations used across
the metric governance cache service.

Architectural Decision: Centralized constants for maintainability
- Single source of truth for magic numbers and header names
- Type-safe enums for connection and warming state
- The cache key convention lives here so the read-through middleware and
  the warmer can never drift apart

Author: System Architect
Date: 2025-12-05
"""

from enum import Enum

# ============================================================================
# Stage Identifiers (for structured logging)
# ============================================================================


class Stage(str, Enum):
    """
    Processing stages used as the ``stage`` field of structured log events.

    Format: {AREA}.{STEP}_{DESCRIPTIVE_NAME}

    Examples:
        logger.info("Cache hit", stage=Stage.CACHE_GET)
        log_stage(logger, Stage.WARM_RUN, "Warming complete", warmed=42)
    """

    # Application lifecycle
    INITIALIZATION = "0.0_INITIALIZATION"
    SHUTDOWN = "0.9_SHUTDOWN"

    # Connection management
    REDIS_CONNECT = "REDIS.1_CONNECT"
    REDIS_READY_WAIT = "REDIS.2_READY_WAIT"
    REDIS_DISCONNECT = "REDIS.3_DISCONNECT"

    # Cache store operations
    CACHE_GET = "CACHE.1_GET"
    CACHE_SET = "CACHE.2_SET"
    CACHE_DELETE = "CACHE.3_DELETE"
    CACHE_DELETE_PATTERN = "CACHE.4_DELETE_PATTERN"
    CACHE_CLEAR = "CACHE.5_CLEAR"
    CACHE_HEALTH = "CACHE.6_HEALTH"
    CACHE_STATS = "CACHE.7_STATS"
    CACHE_CODEC = "CACHE.8_CODEC"

    # HTTP middleware
    READ_THROUGH = "HTTP.1_READ_THROUGH"
    INVALIDATION = "HTTP.2_INVALIDATION"

    # Cache warming
    WARM_RUN = "WARM.1_RUN"
    WARM_STRATEGY = "WARM.2_STRATEGY"
    WARM_SCHEDULE = "WARM.3_SCHEDULE"

    # Cross-cutting
    BACKGROUND = "BG_DETACHED_TASK"
    METRICS = "M_METRICS_COLLECTION"


# ============================================================================
# Connection State
# ============================================================================


class ConnectionState(str, Enum):
    """
    Lifecycle of the single Redis connection owned by the cache store.

    DISCONNECTED: No usable connection; next operation forces a reconnect
    CONNECTING: An attempt is in flight; callers wait for it (bounded)
    READY: PING succeeded; commands are issued directly
    CLOSING: Shutdown in progress
    """

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    READY = "ready"
    CLOSING = "closing"


class CacheAvailability(str, Enum):
    """
    Externally reported cache status.

    DISABLED: Administratively switched off (ENABLE_CACHE=false)
    UNAVAILABLE: Enabled, but the backend cannot currently be reached
    READY: Enabled and connected
    """

    DISABLED = "disabled"
    UNAVAILABLE = "unavailable"
    READY = "ready"


class CacheStatus(str, Enum):
    """Value of the X-Cache response header."""

    HIT = "HIT"
    MISS = "MISS"


# ============================================================================
# Cache Warming
# ============================================================================


class WarmingStrategy(str, Enum):
    """
    Warming steps, executed in this order on every run.
    """

    FULL_LIST = "full_list"
    COMMON_FILTERS = "common_filters"
    INDIVIDUAL = "individual"


class WarmingRunStatus(str, Enum):
    """
    Outcome label of one warm_cache() call.
    """

    SUCCESS = "success"  # every step wrote every entry
    PARTIAL = "partial"  # finished with at least one error
    SKIPPED = "skipped"  # another pass was already running


class ResourceFamily(str, Enum):
    """Resource collections served (and invalidated) as a unit."""

    METRICS = "metrics"
    DOMAINS = "domains"
    OBJECTIVES = "objectives"


# Filter combinations warmed by the common_filters strategy
WARM_FILTER_CATEGORIES = ("operational", "strategic", "tactical")
WARM_FILTER_TIERS = ("tier1", "tier2", "tier3")

# ============================================================================
# Cache Key Convention
# ============================================================================

# Principal used in cache keys for unauthenticated requests
ANONYMOUS_PRINCIPAL = "anonymous"

# Separator between resource path, principal and normalized query
CACHE_KEY_SEPARATOR = ":"

# Namespace prefix applied by the store beneath every key
DEFAULT_KEY_PREFIX = "mdl:"

# Keys fetched per SCAN round-trip and deleted per DEL call
SCAN_BATCH_SIZE = 500

# ============================================================================
# TTLs (seconds)
# ============================================================================

DEFAULT_CACHE_TTL = 300  # Default entry lifetime (5 minutes)
MAX_CACHE_TTL = 3600  # Upper bound for any entry (1 hour)
LIST_CACHE_TTL = 300  # Collection views
ITEM_CACHE_TTL = 600  # Single resources and sub-resources

# ============================================================================
# Connection Timeouts (seconds)
# ============================================================================

READY_WAIT_TIMEOUT = 5.0  # Wait for an in-flight connection attempt
CONNECT_ATTEMPTS = 3  # Attempts per forced (re)connect
BACKOFF_BASE = 0.05  # First backoff step (50ms)
BACKOFF_CAP = 2.0  # Backoff ceiling

# ============================================================================
# HTTP Headers
# ============================================================================

HEADER_CACHE_STATUS = "X-Cache"
HEADER_CACHE_KEY = "X-Cache-Key"
HEADER_CACHE_BYPASS = "X-Cache-Bypass"
HEADER_REQUEST_ID = "X-Request-ID"

# ============================================================================
# API
# ============================================================================

API_V1_PREFIX = "/api/v1"
JSON_MEDIA_TYPE = "application/json"
