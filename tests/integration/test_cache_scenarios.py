"""
Cache Scenario Tests

End-to-end request flows through the full application: read-through on a
cold cache, invalidation after writes, warming, TTL expiry and fail-open
serving with an unreachable backend.
"""

import asyncio

import httpx
import pytest

from src.application.app import create_app
from src.infrastructure.cache.keys import build_cache_key
from tests.test_fixtures import CacheTestFactory

BASE = "/api/v1"


async def _serve(app):
    async with app.router.lifespan_context(app):
        transport = httpx.ASGITransport(app=app)
        async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as http:
            yield http


@pytest.mark.integration
class TestReadThroughScenarios:
    """Cold start, filtered views and write invalidation."""

    async def test_cold_start_miss_then_hit(self, client, app):
        first = await client.get(f"{BASE}/metrics")
        await app.state.task_runner.drain()
        second = await client.get(f"{BASE}/metrics")

        assert first.headers["X-Cache"] == "MISS"
        assert second.headers["X-Cache"] == "HIT"
        assert second.content == first.content

    async def test_filtered_views_have_distinct_keys(self, client, app):
        unfiltered = await client.get(f"{BASE}/metrics")
        filtered = await client.get(f"{BASE}/metrics", params={"category": "strategic"})
        await app.state.task_runner.drain()

        assert unfiltered.headers["X-Cache-Key"] != filtered.headers["X-Cache-Key"]
        assert filtered.json()["count"] == 2
        repeat = await client.get(f"{BASE}/metrics", params={"category": "strategic"})
        assert repeat.headers["X-Cache"] == "HIT"
        assert repeat.json()["count"] == 2

    async def test_write_invalidates_list_and_item(self, client, app):
        runner = app.state.task_runner
        await client.get(f"{BASE}/metrics")
        await client.get(f"{BASE}/metrics/metric_002")
        await runner.drain()

        await client.put(f"{BASE}/metrics/metric_002", json={"name": "Renamed"})
        await runner.drain()

        listing = await client.get(f"{BASE}/metrics")
        item = await client.get(f"{BASE}/metrics/metric_002")

        assert listing.headers["X-Cache"] == "MISS"
        assert item.headers["X-Cache"] == "MISS"
        assert item.json()["data"]["name"] == "Renamed"
        assert listing.json()["data"][0]["name"] == "Renamed"

    async def test_write_to_other_family_keeps_metrics(self, client, app):
        runner = app.state.task_runner
        await client.get(f"{BASE}/metrics")
        await runner.drain()

        await client.post(f"{BASE}/domains", json={"name": "Sales", "owner_team": "sales"})
        await runner.drain()

        assert (await client.get(f"{BASE}/metrics")).headers["X-Cache"] == "HIT"

    async def test_entries_expire(self, client_factory, metric_store):
        app = create_app(
            CacheTestFactory.settings(CACHE_LIST_TTL=1),
            client_factory=client_factory,
            metric_store=metric_store,
        )
        async for http in _serve(app):
            await http.get(f"{BASE}/metrics")
            await app.state.task_runner.drain()
            assert (await http.get(f"{BASE}/metrics")).headers["X-Cache"] == "HIT"

            await asyncio.sleep(1.1)

            assert (await http.get(f"{BASE}/metrics")).headers["X-Cache"] == "MISS"


@pytest.mark.integration
class TestWarmingScenarios:
    """Startup warming makes the first read a HIT."""

    async def test_startup_warming(self, client_factory, metric_store):
        app = create_app(
            CacheTestFactory.settings(ENABLE_CACHE_WARMING=True, CACHE_WARM_INTERVAL=0),
            client_factory=client_factory,
            metric_store=metric_store,
        )
        async for http in _serve(app):
            await app.state.task_runner.drain()

            listing = await http.get(f"{BASE}/metrics")
            filtered = await http.get(f"{BASE}/metrics", params={"tier": "tier1"})
            item = await http.get(f"{BASE}/metrics/metric_005")

            assert listing.headers["X-Cache"] == "HIT"
            assert filtered.headers["X-Cache"] == "HIT"
            assert item.headers["X-Cache"] == "HIT"
            assert app.state.cache_warmer.last_run.warmed == 5

    async def test_warmed_body_matches_handler_output(self, client_factory, metric_store):
        app = create_app(
            CacheTestFactory.settings(ENABLE_CACHE_WARMING=True, CACHE_WARM_INTERVAL=0),
            client_factory=client_factory,
            metric_store=metric_store,
        )
        async for http in _serve(app):
            await app.state.task_runner.drain()
            warmed = await http.get(f"{BASE}/metrics/metric_001")

            await app.state.cache_store.delete(build_cache_key(f"{BASE}/metrics/metric_001"))
            fresh = await http.get(f"{BASE}/metrics/metric_001")

            assert warmed.headers["X-Cache"] == "HIT"
            assert fresh.headers["X-Cache"] == "MISS"
            assert warmed.json() == fresh.json()


@pytest.mark.integration
class TestFailOpenScenarios:
    """Requests keep succeeding with the backend unreachable."""

    @pytest.fixture
    async def degraded(self, metric_store):
        factory, _ = CacheTestFactory.unreachable_factory()
        app = create_app(CacheTestFactory.settings(), client_factory=factory, metric_store=metric_store)
        async for http in _serve(app):
            yield http

    async def test_reads_and_writes_succeed(self, degraded):
        first = await degraded.get(f"{BASE}/metrics")
        second = await degraded.get(f"{BASE}/metrics")
        created = await degraded.post(f"{BASE}/metrics", json={"name": "Latency", "category": "operational"})

        assert first.status_code == second.status_code == 200
        assert second.headers["X-Cache"] == "MISS"
        assert created.status_code == 201
        assert (await degraded.get(f"{BASE}/metrics")).json()["count"] == 6

    async def test_health_reports_degraded(self, degraded):
        health = await degraded.get(f"{BASE}/health")
        ready = await degraded.get(f"{BASE}/health/ready")

        assert health.status_code == 200
        assert health.json()["status"] == "degraded"
        assert health.json()["components"] == {"cache": "unavailable"}
        assert ready.status_code == 200

    async def test_admin_stats_report_unavailable(self, degraded):
        data = (await degraded.get(f"{BASE}/admin/cache/stats")).json()["data"]

        assert data["status"] == "unavailable"
        assert data["backend"]["connected"] is False
