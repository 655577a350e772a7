"""
Unit Tests for ConnectionManager

Tests the connection state machine: shared connection attempts, bounded
waiting, invalidation and shutdown.
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.core.config.constants import ConnectionState
from src.core.exceptions import CacheConnectionError, ConfigurationError
from src.infrastructure.cache.redis_client import ConnectionManager
from tests.test_fixtures import CacheTestFactory


def _manager(factory, **overrides) -> ConnectionManager:
    return ConnectionManager(CacheTestFactory.settings(**overrides).redis, client_factory=factory)


@pytest.mark.unit
class TestConnectionManager:
    """Test suite for ConnectionManager."""

    async def test_initial_state(self, client_factory):
        manager = _manager(client_factory)

        assert manager.state is ConnectionState.DISCONNECTED
        assert manager.is_connected() is False
        assert manager.get_client() is None

    async def test_ensure_ready_connects(self, client_factory):
        manager = _manager(client_factory)

        client = await manager.ensure_ready()

        assert manager.state is ConnectionState.READY
        assert manager.get_client() is client
        assert await manager.ensure_ready() is client
        await manager.disconnect()

    async def test_concurrent_callers_share_one_attempt(self, client_factory):
        built = MagicMock(side_effect=client_factory)
        manager = _manager(built)

        clients = await asyncio.gather(*(manager.ensure_ready() for _ in range(10)))

        assert built.call_count == 1
        assert all(client is clients[0] for client in clients)
        await manager.disconnect()

    async def test_failed_attempt_resets_state(self):
        factory, calls = CacheTestFactory.unreachable_factory()
        manager = _manager(factory)

        with pytest.raises(CacheConnectionError):
            await manager.ensure_ready()
        await asyncio.sleep(0)

        assert manager.state is ConnectionState.DISCONNECTED
        assert calls.call_count == 1

    async def test_attempts_bounded_by_max_retries(self):
        factory, calls = CacheTestFactory.unreachable_factory()
        manager = _manager(factory, REDIS_MAX_RETRIES=3)

        with pytest.raises(CacheConnectionError):
            await manager.ensure_ready()

        assert calls.call_count == 3

    async def test_failed_client_is_closed(self):
        client = AsyncMock()
        client.ping = AsyncMock(side_effect=OSError("no route to host"))
        manager = _manager(lambda: client)

        with pytest.raises(CacheConnectionError):
            await manager.ensure_ready()

        client.aclose.assert_awaited()

    async def test_ready_wait_is_bounded(self):
        release = asyncio.Event()
        client = AsyncMock()

        async def slow_ping():
            await release.wait()
            return True

        client.ping = slow_ping
        manager = _manager(lambda: client, REDIS_READY_TIMEOUT=0.05)

        with pytest.raises(CacheConnectionError):
            await manager.ensure_ready()
        assert manager.state is ConnectionState.CONNECTING

        # The shared attempt keeps going after the caller gave up
        release.set()
        assert await manager.ensure_ready() is client
        await manager.disconnect()

    async def test_invalid_configuration(self):
        manager = _manager(CacheTestFactory.config_error_factory())

        with pytest.raises(ConfigurationError):
            await manager.ensure_ready()

    async def test_invalidate_forces_reconnect(self, client_factory):
        built = MagicMock(side_effect=client_factory)
        manager = _manager(built)
        first = await manager.ensure_ready()

        await manager.invalidate(first)

        assert manager.state is ConnectionState.DISCONNECTED
        second = await manager.ensure_ready()
        assert second is not first
        assert built.call_count == 2
        await manager.disconnect()

    async def test_invalidate_ignores_stale_client(self, client_factory):
        manager = _manager(client_factory)
        current = await manager.ensure_ready()

        await manager.invalidate(object())

        assert manager.get_client() is current
        assert manager.state is ConnectionState.READY
        await manager.disconnect()

    async def test_disconnect(self, client_factory):
        manager = _manager(client_factory)
        await manager.ensure_ready()

        await manager.disconnect()

        assert manager.state is ConnectionState.DISCONNECTED
        assert manager.get_client() is None

    async def test_disconnect_cancels_inflight_attempt(self):
        client = AsyncMock()

        async def never_answers():
            await asyncio.sleep(60)

        client.ping = never_answers
        manager = _manager(lambda: client, REDIS_READY_TIMEOUT=0.01)

        with pytest.raises(CacheConnectionError):
            await manager.ensure_ready()

        await manager.disconnect()

        assert manager.state is ConnectionState.DISCONNECTED
        assert manager.get_client() is None
