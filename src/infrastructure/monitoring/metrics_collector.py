#!/usr/bin/env python3
"""
Metrics Collector with Prometheus Integration

This module provides production-ready metrics collection with:
- Cache hit/miss counters per operation
- Cache operation latency histograms
- Backend error counters by type
- Invalidation and warming throughput
- HTTP request counts

Architectural Decision: prometheus-client for industry-standard metrics
- Compatible with Grafana dashboards
- Histogram buckets for latency percentiles
- Metrics are process-global; the collector is a thin recording facade

Author: Senior Solution Architect
Date: 2025-12-05
"""


from prometheus_client import (
    CONTENT_TYPE_LATEST,
    REGISTRY,
    Counter,
    Gauge,
    Histogram,
    Info,
    generate_latest,
)

from src.core.config.constants import Stage
from src.core.logging.logger import get_logger

logger = get_logger(__name__)


# ============================================================================
# Metric Definitions
# ============================================================================

# Cache lookup metrics
CACHE_HITS = Counter(
    'mdl_cache_hits_total',
    'Total cache hits',
    ['operation']
)

CACHE_MISSES = Counter(
    'mdl_cache_misses_total',
    'Total cache misses',
    ['operation']
)

CACHE_OPERATION_DURATION = Histogram(
    'mdl_cache_operation_duration_seconds',
    'Cache operation duration in seconds',
    ['operation'],
    buckets=(0.0005, 0.001, 0.0025, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0)
)

CACHE_ERRORS = Counter(
    'mdl_cache_errors_total',
    'Cache backend errors (operation degraded to a no-op)',
    ['operation', 'error_type']
)

CACHE_INVALIDATED_KEYS = Counter(
    'mdl_cache_invalidated_keys_total',
    'Keys removed by pattern invalidation'
)

CACHE_AVAILABLE = Gauge(
    'mdl_cache_available',
    'Cache backend reachable (1) or not (0)'
)

# Warming metrics
WARMING_RUNS = Counter(
    'mdl_cache_warming_runs_total',
    'Cache warming runs',
    ['status']  # success, partial, skipped (WarmingRunStatus)
)

WARMING_DURATION = Histogram(
    'mdl_cache_warming_duration_seconds',
    'Cache warming run duration',
    buckets=(0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0)
)

WARMED_ENTRIES = Counter(
    'mdl_cache_warmed_entries_total',
    'Entries written by cache warming',
    ['strategy']
)

# HTTP metrics
HTTP_REQUESTS = Counter(
    'mdl_http_requests_total',
    'Total HTTP requests',
    ['method', 'status']
)

# App info
APP_INFO = Info(
    'mdl_app',
    'Application information'
)


class MetricsCollector:
    """
    Centralized metrics collector.

    STAGE-M: Metrics collection

    Usage:
        metrics = MetricsCollector()

        metrics.record_cache_hit("get")
        metrics.record_cache_operation("get", 0.0012)

        output = metrics.get_prometheus_metrics()
    """

    def __init__(self, app_info: dict[str, str] | None = None):
        """
        Initialize metrics collector.

        Args:
            app_info: Static labels published as mdl_app_info
        """
        if app_info:
            APP_INFO.info(app_info)

        logger.info("Metrics collector initialized", stage=Stage.METRICS)

    # =========================================================================
    # Cache Metrics
    # =========================================================================

    def record_cache_hit(self, operation: str) -> None:
        """Record cache hit."""
        CACHE_HITS.labels(operation=operation).inc()

    def record_cache_miss(self, operation: str) -> None:
        """Record cache miss."""
        CACHE_MISSES.labels(operation=operation).inc()

    def record_cache_operation(self, operation: str, duration_seconds: float) -> None:
        """Record cache operation latency."""
        CACHE_OPERATION_DURATION.labels(operation=operation).observe(duration_seconds)

    def record_cache_error(self, operation: str, error_type: str) -> None:
        """Record a degraded cache operation."""
        CACHE_ERRORS.labels(operation=operation, error_type=error_type).inc()

    def record_invalidated_keys(self, count: int) -> None:
        """Record keys removed by pattern invalidation."""
        CACHE_INVALIDATED_KEYS.inc(count)

    def set_cache_available(self, available: bool) -> None:
        """Set backend availability gauge."""
        CACHE_AVAILABLE.set(1 if available else 0)

    # =========================================================================
    # Warming Metrics
    # =========================================================================

    def record_warming_run(self, status: str, duration_seconds: float | None = None) -> None:
        """Record a warming run outcome."""
        WARMING_RUNS.labels(status=status).inc()
        if duration_seconds is not None:
            WARMING_DURATION.observe(duration_seconds)

    def record_warmed_entries(self, strategy: str, count: int) -> None:
        """Record entries written by one warming strategy."""
        WARMED_ENTRIES.labels(strategy=strategy).inc(count)

    # =========================================================================
    # HTTP Metrics
    # =========================================================================

    def record_http_request(self, method: str, status: int) -> None:
        """Record an HTTP request."""
        HTTP_REQUESTS.labels(method=method, status=str(status)).inc()

    # =========================================================================
    # Export
    # =========================================================================

    def get_prometheus_metrics(self) -> bytes:
        """
        Get Prometheus metrics output.

        Returns:
            bytes: Prometheus text format metrics
        """
        return generate_latest(REGISTRY)

    def get_content_type(self) -> str:
        """Get Prometheus content type."""
        return CONTENT_TYPE_LATEST
