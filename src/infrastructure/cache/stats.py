"""
Cache Statistics Collector

Tracks cache performance in-process and forwards every event to the
Prometheus metrics sink.

Responsibility: All cache side effects that are not storage (counters,
hit rate, metric emission).

Why Separate Collector?
- The store stays about storage and failure handling
- Admin endpoints need cheap in-process counters without scraping
- A broken metrics sink must never break caching, so emission is
  guarded in one place
"""

from collections.abc import Callable
from typing import Any

from src.core.config.constants import Stage
from src.core.logging.logger import get_logger
from src.infrastructure.monitoring.metrics_collector import MetricsCollector

logger = get_logger(__name__)


class CacheStatsCollector:
    """
    Counts hits, misses, writes, deletions and degraded operations.

    Usage:
        stats = CacheStatsCollector(metrics)
        stats.record_hit("get", duration_seconds=0.001)
        stats.get_stats()["hit_rate"]
    """

    def __init__(self, metrics: MetricsCollector | None = None):
        """
        Initialize stats collector.

        Args:
            metrics: Prometheus sink; None keeps counters in-process only
        """
        self._metrics = metrics
        self.reset()

    def reset(self) -> None:
        """Zero every counter."""
        self._hits = 0
        self._misses = 0
        self._sets = 0
        self._set_failures = 0
        self._deletes = 0
        self._invalidated_keys = 0
        self._errors = 0

    # -------------------------------------------------------------------------
    # Recording
    # -------------------------------------------------------------------------

    def record_hit(self, operation: str = "get", duration_seconds: float | None = None) -> None:
        self._hits += 1
        self._emit("record_cache_hit", operation)
        self._observe(operation, duration_seconds)

    def record_miss(self, operation: str = "get", duration_seconds: float | None = None) -> None:
        self._misses += 1
        self._emit("record_cache_miss", operation)
        self._observe(operation, duration_seconds)

    def record_set(self, success: bool, duration_seconds: float | None = None) -> None:
        if success:
            self._sets += 1
        else:
            self._set_failures += 1
        self._observe("set", duration_seconds)

    def record_delete(self, count: int, duration_seconds: float | None = None) -> None:
        self._deletes += count
        self._observe("delete", duration_seconds)

    def record_invalidation(self, count: int, duration_seconds: float | None = None) -> None:
        self._invalidated_keys += count
        self._emit("record_invalidated_keys", count)
        self._observe("delete_pattern", duration_seconds)

    def record_error(self, operation: str, error: BaseException) -> None:
        """Record an operation that degraded to a no-op."""
        self._errors += 1
        self._emit("record_cache_error", operation, type(error).__name__)

    def record_availability(self, available: bool) -> None:
        self._emit("set_cache_available", available)

    def record_warming_run(self, status: str, duration_seconds: float | None = None) -> None:
        self._emit("record_warming_run", status, duration_seconds)

    def record_warmed_entries(self, strategy: str, count: int) -> None:
        if count:
            self._emit("record_warmed_entries", strategy, count)

    # -------------------------------------------------------------------------
    # Sink forwarding
    # -------------------------------------------------------------------------

    def _observe(self, operation: str, duration_seconds: float | None) -> None:
        if duration_seconds is not None:
            self._emit("record_cache_operation", operation, duration_seconds)

    def _emit(self, method: str, *args: Any) -> None:
        if self._metrics is None:
            return
        record: Callable[..., None] = getattr(self._metrics, method)
        try:
            record(*args)
        except Exception as e:
            logger.warning(
                "Metrics sink rejected cache event",
                stage=Stage.METRICS,
                method=method,
                error=str(e),
            )

    # -------------------------------------------------------------------------
    # Reporting
    # -------------------------------------------------------------------------

    def get_stats(self) -> dict[str, Any]:
        """
        Get cache performance statistics.

        Returns:
            Dict with counters, total lookups and hit rate (0.0 without lookups)
        """
        total = self._hits + self._misses
        hit_rate = self._hits / total if total > 0 else 0.0

        return {
            "hits": self._hits,
            "misses": self._misses,
            "total_lookups": total,
            "hit_rate": round(hit_rate, 3),
            "sets": self._sets,
            "set_failures": self._set_failures,
            "deletes": self._deletes,
            "invalidated_keys": self._invalidated_keys,
            "errors": self._errors,
        }
