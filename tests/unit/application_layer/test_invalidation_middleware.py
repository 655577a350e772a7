"""
Unit Tests for CacheInvalidationMiddleware

Runs the middleware in a minimal FastAPI app and checks which cached keys
survive each write.
"""

import asyncio
from unittest.mock import MagicMock

import httpx
import pytest
from fastapi import FastAPI
from fastapi.responses import JSONResponse

from src.application.api.middleware.invalidation import InvalidationRule, add_invalidation_middleware
from src.infrastructure.cache.cache_store import CacheStore
from src.infrastructure.cache.keys import build_cache_key, build_invalidation_pattern

METRIC_KEYS = [
    build_cache_key("/api/v1/metrics"),
    build_cache_key("/api/v1/metrics", None, {"tier": "tier1"}),
    build_cache_key("/api/v1/metrics/metric_001"),
    build_cache_key("/api/v1/metrics/metric_001/policy"),
]
DOMAIN_KEY = build_cache_key("/api/v1/domains")

RULES = [
    InvalidationRule(r"/api/v1/metrics(/.*)?", build_invalidation_pattern("/api/v1/metrics")),
    InvalidationRule(r"/api/v1/domains(/.*)?", build_invalidation_pattern("/api/v1/domains")),
]


def _build_app(cache, runner) -> FastAPI:
    app = FastAPI()

    @app.post("/api/v1/metrics")
    async def create_metric():
        return {"success": True}

    @app.put("/api/v1/metrics/{metric_id}")
    async def update_metric(metric_id: str):
        if metric_id == "missing":
            return JSONResponse({"success": False}, status_code=404)
        return {"success": True}

    @app.delete("/api/v1/metrics/{metric_id}")
    async def delete_metric(metric_id: str):
        return {"success": True}

    @app.get("/api/v1/metrics")
    async def list_metrics():
        return {"success": True}

    add_invalidation_middleware(app, cache, runner, RULES)
    return app


@pytest.fixture
async def seeded(cache_store):
    for key in METRIC_KEYS + [DOMAIN_KEY]:
        await cache_store.set(key, b"{}", 300)
    return cache_store


@pytest.fixture
async def http(seeded, runner):
    app = _build_app(seeded, runner)
    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as client:
        yield client


async def _surviving(cache, keys):
    return [key for key in keys if await cache.get(key) is not None]


@pytest.mark.unit
class TestInvalidation:
    """Test suite for post-write invalidation."""

    @pytest.mark.parametrize(
        "method,path",
        [
            ("POST", "/api/v1/metrics"),
            ("PUT", "/api/v1/metrics/metric_001"),
            ("DELETE", "/api/v1/metrics/metric_002"),
        ],
    )
    async def test_successful_write_clears_family(self, http, runner, seeded, method, path):
        response = await http.request(method, path)
        await runner.drain()

        assert response.status_code == 200
        assert await _surviving(seeded, METRIC_KEYS) == []
        assert await seeded.get(DOMAIN_KEY) == b"{}"

    async def test_failed_write_keeps_entries(self, http, runner, seeded):
        response = await http.put("/api/v1/metrics/missing")
        await runner.drain()

        assert response.status_code == 404
        assert await _surviving(seeded, METRIC_KEYS) == METRIC_KEYS

    async def test_reads_do_not_invalidate(self, http, runner, seeded):
        await http.get("/api/v1/metrics")
        await runner.drain()

        assert await _surviving(seeded, METRIC_KEYS) == METRIC_KEYS

    async def test_response_not_delayed_by_invalidation(self, runner):
        release = asyncio.Event()
        cache = MagicMock(spec=CacheStore)
        cache.enabled = True

        async def slow_delete_pattern(pattern):
            await release.wait()
            return 0

        cache.delete_pattern = slow_delete_pattern
        app = _build_app(cache, runner)

        async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as client:
            response = await client.post("/api/v1/metrics")

        assert response.status_code == 200
        assert runner.pending == 1

        release.set()
        await runner.drain()
        assert runner.pending == 0

    def test_rule_matching(self):
        rule = RULES[0]

        assert rule.matches("PATCH", "/api/v1/metrics/metric_001")
        assert not rule.matches("GET", "/api/v1/metrics")
        assert not rule.matches("POST", "/api/v1/metrics_archive")
