"""
Unit Tests for DetachedTaskRunner

Tests fire-and-forget scheduling, failure isolation, drain and cancel.
"""

import asyncio

import pytest

from src.core.background import DetachedTaskRunner


@pytest.mark.unit
class TestDetachedTaskRunner:
    """Test suite for DetachedTaskRunner."""

    async def test_spawn_runs_without_awaiting(self):
        runner = DetachedTaskRunner()
        done = asyncio.Event()

        async def work():
            done.set()

        runner.spawn(work(), name="work")
        await runner.drain()

        assert done.is_set()
        assert runner.pending == 0

    async def test_failures_are_contained(self):
        runner = DetachedTaskRunner()

        async def boom():
            raise RuntimeError("boom")

        task = runner.spawn(boom(), name="boom")
        await runner.drain()

        assert task.done()
        assert isinstance(task.exception(), RuntimeError)
        assert runner.pending == 0

    async def test_drain_waits_for_tasks_spawned_while_draining(self):
        runner = DetachedTaskRunner()
        results = []

        async def second():
            results.append("second")

        async def first():
            await asyncio.sleep(0)
            results.append("first")
            runner.spawn(second(), name="second")

        runner.spawn(first(), name="first")
        await runner.drain()

        assert results == ["first", "second"]

    async def test_drain_timeout_leaves_tasks_running(self):
        runner = DetachedTaskRunner()
        release = asyncio.Event()

        async def blocked():
            await release.wait()

        task = runner.spawn(blocked(), name="blocked")
        await runner.drain(timeout=0.01)

        assert not task.done()
        assert runner.pending == 1

        release.set()
        await runner.drain()
        assert runner.pending == 0

    async def test_cancel_all(self):
        runner = DetachedTaskRunner()

        task = runner.spawn(asyncio.sleep(60), name="sleeper")
        await runner.cancel_all()

        assert task.cancelled()
        assert runner.pending == 0
