"""
Pytest Configuration and Shared Test Fixtures

This module provides pytest configuration and reusable fixtures for all tests.
All fixtures defined here are automatically available to all test files.

Redis is replaced by fakeredis; every test gets a fresh in-memory server.
The HTTP fixtures run the real application (middleware, lifespan and all)
through httpx's ASGI transport.
"""

import os
import sys

import fakeredis.aioredis
import httpx
import pytest

# Add project root to sys.path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from src.application.app import create_app  # noqa: E402
from src.core.background import DetachedTaskRunner  # noqa: E402
from src.domain.stores import build_metric_store  # noqa: E402
from src.infrastructure.cache.cache_store import CacheStore  # noqa: E402
from src.infrastructure.cache.stats import CacheStatsCollector  # noqa: E402
from tests.test_fixtures import CacheTestFactory  # noqa: E402

# ============================================================================
# Pytest Configuration
# ============================================================================

# pytest-asyncio runs in auto mode (pyproject.toml), so async fixtures and
# tests need no explicit marker


# ============================================================================
# Settings Fixtures
# ============================================================================


@pytest.fixture
def test_settings():
    """Settings with the cache enabled and fast connection timings."""
    return CacheTestFactory.settings()


# ============================================================================
# Redis Fixtures
# ============================================================================


@pytest.fixture
def fake_server():
    """A fresh in-memory Redis server per test."""
    return fakeredis.FakeServer()


@pytest.fixture
def client_factory(fake_server):
    """Client factory producing fakeredis clients on ``fake_server``."""
    return CacheTestFactory.fakeredis_factory(fake_server)


@pytest.fixture
async def raw_redis(fake_server):
    """
    Direct client on the same server, for asserting on stored keys and TTLs.

    Keys seen here carry the ``mdl:`` namespace prefix.
    """
    client = fakeredis.aioredis.FakeRedis(server=fake_server)
    yield client
    await client.aclose()


# ============================================================================
# Cache Fixtures
# ============================================================================


@pytest.fixture
def cache_stats():
    return CacheStatsCollector()


@pytest.fixture
async def cache_store(test_settings, client_factory, cache_stats):
    """A started CacheStore backed by fakeredis."""
    store = CacheStore(test_settings, stats=cache_stats, client_factory=client_factory)
    await store.start()
    yield store
    await store.stop()


@pytest.fixture
async def runner():
    """Detached task runner; leftover tasks are cancelled after the test."""
    task_runner = DetachedTaskRunner()
    yield task_runner
    await task_runner.cancel_all()


# ============================================================================
# Resource Fixtures
# ============================================================================


@pytest.fixture
def sample_metrics():
    """Five metrics, ``metric_001`` .. ``metric_005``."""
    return CacheTestFactory.metrics(5)


@pytest.fixture
def metric_store(sample_metrics):
    return build_metric_store(sample_metrics)


# ============================================================================
# Application Fixtures
# ============================================================================


@pytest.fixture
def app(test_settings, client_factory, metric_store):
    """Application wired to fakeredis and the seeded metric store."""
    return create_app(test_settings, client_factory=client_factory, metric_store=metric_store)


@pytest.fixture
async def client(app):
    """
    HTTP client for ``app`` with startup and shutdown run around the test.

    Cache writes happen on detached tasks; tests that need them to have
    landed call ``await app.state.task_runner.drain()``.
    """
    async with app.router.lifespan_context(app):
        transport = httpx.ASGITransport(app=app)
        async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as http_client:
            yield http_client
