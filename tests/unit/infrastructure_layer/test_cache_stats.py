"""
Unit Tests for CacheStatsCollector

Tests in-process counters and forwarding to the metrics sink.
"""

from unittest.mock import MagicMock

import pytest

from src.infrastructure.cache.stats import CacheStatsCollector
from src.infrastructure.monitoring.metrics_collector import MetricsCollector


@pytest.mark.unit
class TestCacheStatsCollector:
    """Test suite for CacheStatsCollector."""

    def test_hit_rate_without_lookups(self):
        assert CacheStatsCollector().get_stats()["hit_rate"] == 0.0

    def test_counts_and_hit_rate(self):
        stats = CacheStatsCollector()
        stats.record_hit()
        stats.record_hit()
        stats.record_miss()
        stats.record_set(True)
        stats.record_set(False)
        stats.record_invalidation(4)
        stats.record_error("get", ConnectionError("down"))

        snapshot = stats.get_stats()

        assert snapshot["hits"] == 2
        assert snapshot["misses"] == 1
        assert snapshot["total_lookups"] == 3
        assert snapshot["hit_rate"] == 0.667
        assert snapshot["sets"] == 1
        assert snapshot["set_failures"] == 1
        assert snapshot["invalidated_keys"] == 4
        assert snapshot["errors"] == 1

    def test_reset(self):
        stats = CacheStatsCollector()
        stats.record_hit()
        stats.reset()

        assert stats.get_stats()["hits"] == 0

    def test_events_forwarded_to_sink(self):
        sink = MagicMock(spec=MetricsCollector)
        stats = CacheStatsCollector(sink)

        stats.record_hit("get", 0.002)
        stats.record_error("set", TimeoutError())
        stats.record_availability(False)

        sink.record_cache_hit.assert_called_once_with("get")
        sink.record_cache_operation.assert_called_once_with("get", 0.002)
        sink.record_cache_error.assert_called_once_with("set", "TimeoutError")
        sink.set_cache_available.assert_called_once_with(False)

    def test_zero_warmed_entries_not_forwarded(self):
        sink = MagicMock(spec=MetricsCollector)
        CacheStatsCollector(sink).record_warmed_entries("individual", 0)

        sink.record_warmed_entries.assert_not_called()

    def test_broken_sink_never_breaks_caching(self):
        sink = MagicMock(spec=MetricsCollector)
        sink.record_cache_miss.side_effect = ValueError("label mismatch")
        stats = CacheStatsCollector(sink)

        stats.record_miss("get")

        assert stats.get_stats()["misses"] == 1
