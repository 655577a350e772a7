"""
Unit Tests for Monitoring Components

Tests MetricsCollector exposition and HealthChecker status mapping.
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.infrastructure.cache.cache_store import CacheStore
from src.infrastructure.monitoring.health_checker import HealthChecker, HealthStatus
from src.infrastructure.monitoring.metrics_collector import MetricsCollector
from tests.test_fixtures import CacheTestFactory


@pytest.mark.unit
class TestMetricsCollector:
    """Test suite for MetricsCollector."""

    def test_prometheus_output_contains_cache_metrics(self):
        metrics = MetricsCollector(app_info={"name": "test", "version": "0.0.1"})
        metrics.record_cache_hit("get")
        metrics.record_cache_miss("get")
        metrics.record_cache_operation("get", 0.001)
        metrics.record_invalidated_keys(3)
        metrics.record_warming_run("success", 0.2)
        metrics.record_warming_run("skipped")
        metrics.record_warmed_entries("individual", 5)
        metrics.record_http_request("GET", 200)
        metrics.set_cache_available(True)

        output = metrics.get_prometheus_metrics().decode()

        assert 'mdl_cache_hits_total{operation="get"}' in output
        assert 'mdl_cache_misses_total{operation="get"}' in output
        assert "mdl_cache_invalidated_keys_total" in output
        assert 'mdl_cache_warming_runs_total{status="success"}' in output
        assert 'mdl_cache_warming_runs_total{status="skipped"}' in output
        assert 'mdl_http_requests_total{method="GET",status="200"}' in output
        assert "mdl_cache_available 1.0" in output

    def test_content_type(self):
        assert MetricsCollector().get_content_type().startswith("text/plain")


@pytest.mark.unit
class TestHealthChecker:
    """Test suite for HealthChecker."""

    async def test_ready_cache_is_healthy(self, test_settings, cache_store, metric_store):
        checker = HealthChecker(test_settings, cache_store, metric_store)

        result = await checker.check_health()

        assert result["status"] == "healthy"
        assert result["components"] == {"cache": "ready"}

    async def test_disabled_cache_is_healthy(self, client_factory, metric_store):
        settings = CacheTestFactory.settings(ENABLE_CACHE=False)
        cache = CacheStore(settings, client_factory=client_factory)
        await cache.start()

        result = await HealthChecker(settings, cache, metric_store).check_health()

        assert result["status"] == "healthy"
        assert result["components"] == {"cache": "disabled"}

    async def test_unreachable_cache_is_degraded(self, metric_store):
        factory, _ = CacheTestFactory.unreachable_factory()
        settings = CacheTestFactory.settings()
        cache = CacheStore(settings, client_factory=factory)
        await cache.start()

        checker = HealthChecker(settings, cache, metric_store)
        result = await checker.check_health()

        assert result["status"] == "degraded"
        assert result["components"] == {"cache": "unavailable"}
        assert (await checker.readiness_check())["status"] == "ready"
        await cache.stop()

    async def test_hung_probe_is_bounded(self, test_settings, monkeypatch):
        import src.infrastructure.monitoring.health_checker as health_module

        monkeypatch.setattr(health_module, "PROBE_TIMEOUT", 0.01)
        cache = MagicMock(spec=CacheStore)
        cache.enabled = True

        async def hang():
            await asyncio.sleep(60)

        cache.health_check = hang

        result = await HealthChecker(test_settings, cache).check_cache()

        assert result["status"] == HealthStatus.DEGRADED.value

    async def test_detailed_report(self, test_settings, cache_store, metric_store, runner):
        from src.infrastructure.cache.warmer import CacheWarmer

        warmer = CacheWarmer(cache_store, metric_store, runner, test_settings)
        report = await HealthChecker(test_settings, cache_store, metric_store, warmer).detailed_health_report()

        assert report["status"] == "healthy"
        assert report["environment"] == "test"
        assert report["components"]["cache"]["availability"] == "ready"
        assert report["components"]["cache"]["connection_state"] == "ready"
        assert "hits" in report["components"]["cache"]["stats"]
        assert report["components"]["store"] == {"status": "healthy"}
        assert report["components"]["warmer"]["enabled"] is False

    async def test_store_failure_makes_service_unready(self, test_settings, cache_store):
        store = MagicMock()
        store.find_all = AsyncMock(side_effect=RuntimeError("db down"))
        checker = HealthChecker(test_settings, cache_store, store)

        assert (await checker.readiness_check())["status"] == "not_ready"
        assert (await checker.detailed_health_report())["status"] == "unhealthy"

    async def test_liveness(self, test_settings, cache_store):
        result = await HealthChecker(test_settings, cache_store).liveness_check()

        assert result["status"] == "alive"
        assert result["version"] == test_settings.app.APP_VERSION
