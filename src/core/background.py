"""
Detached Task Runner

Fire-and-forget execution for side effects that must never delay or fail
the HTTP response that triggered them: storing a freshly rendered page in
the cache, deleting keys after a write, scheduled warming passes.

Why not bare ``asyncio.create_task``?
- The event loop keeps only weak references to tasks; an unreferenced
  task can be garbage collected mid-flight
- Exceptions of unawaited tasks surface only as "Task exception was
  never retrieved" at interpreter exit
- Tests need a way to wait until every side effect has landed

Usage:
    runner = DetachedTaskRunner()
    runner.spawn(store.set(key, body, ttl), name="cache-store")
    ...
    await runner.drain()  # shutdown or test synchronisation

Author: System Architect
Date: 2025-12-14
"""

import asyncio
from collections.abc import Coroutine
from typing import Any

from src.core.config.constants import Stage
from src.core.logging.logger import get_logger

logger = get_logger(__name__)


class DetachedTaskRunner:
    """Owns fire-and-forget tasks until they finish."""

    def __init__(self):
        self._tasks: set[asyncio.Task] = set()

    def spawn(self, coro: Coroutine[Any, Any, Any], *, name: str | None = None) -> asyncio.Task:
        """
        Schedule ``coro`` without awaiting it.

        The returned task is tracked until completion; failures are logged
        and never re-raised.
        """
        task = asyncio.create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._on_done)
        return task

    def _on_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.warning(
                "Detached task failed",
                stage=Stage.BACKGROUND,
                task=task.get_name(),
                error=str(exc),
                error_type=type(exc).__name__,
            )

    @property
    def pending(self) -> int:
        """Number of tasks still running."""
        return len(self._tasks)

    async def drain(self, timeout: float | None = None) -> None:
        """
        Wait for every tracked task, including tasks spawned while draining.

        Args:
            timeout: Give up after this many seconds (outstanding tasks keep running)
        """
        loop = asyncio.get_running_loop()
        deadline = None if timeout is None else loop.time() + timeout

        while self._tasks:
            remaining = None if deadline is None else deadline - loop.time()
            if remaining is not None and remaining <= 0:
                logger.warning("Drain timed out", stage=Stage.BACKGROUND, pending=len(self._tasks))
                return
            await asyncio.wait(set(self._tasks), timeout=remaining)

    async def cancel_all(self) -> None:
        """Cancel every tracked task and wait for the cancellations to settle."""
        tasks = set(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
