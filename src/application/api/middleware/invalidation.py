"""
Cache Invalidation Middleware
=============================

Keeps cached reads from going stale after writes.

    PUT /api/v1/metrics/metric_001   ──► handler ──► 200
                                                      │
                       response sent ◄────────────────┤
                                                      └── detached:
                                                          delete_pattern("/api/v1/metrics[:/]*")

Each rule binds a write route to a fixed glob when routes are registered.
Only a 2xx response triggers deletion, and the caller never waits for it:
the outcome (keys removed, or a failure) is only logged.

BOUNDED STALENESS:
------------------
A deletion that fails leaves stale entries in place until their TTL
expires. That window is accepted; deletion is not retried.
"""

import re
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field

from fastapi import FastAPI, Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from src.core.background import DetachedTaskRunner
from src.core.config.constants import Stage
from src.core.logging.logger import get_logger
from src.infrastructure.cache.cache_store import CacheStore

logger = get_logger(__name__)

MUTATING_METHODS = frozenset({"POST", "PUT", "PATCH", "DELETE"})


@dataclass(frozen=True)
class InvalidationRule:
    """
    A write route and the cache glob it invalidates.

    Attributes:
        path_pattern: Regular expression matched against the full request path
        pattern: Glob over logical cache keys passed to ``delete_pattern``
        methods: Request methods that trigger invalidation
    """

    path_pattern: str
    pattern: str
    methods: frozenset[str] = field(default=MUTATING_METHODS)

    def matches(self, method: str, path: str) -> bool:
        return method in self.methods and re.fullmatch(self.path_pattern, path) is not None


class CacheInvalidationMiddleware(BaseHTTPMiddleware):
    """
    Invalidate cache patterns after successful writes.

    Attributes:
        cache: Cache store (fail-open)
        runner: Detached task runner the deletions run on
        rules: Every matching rule fires, so one write can invalidate several families
    """

    def __init__(
        self,
        app,
        cache: CacheStore,
        runner: DetachedTaskRunner,
        rules: Sequence[InvalidationRule],
    ):
        super().__init__(app)
        self.cache = cache
        self.runner = runner
        self.rules = tuple(rules)

    def _patterns_for(self, request: Request) -> list[str]:
        if not self.cache.enabled:
            return []
        return [
            rule.pattern
            for rule in self.rules
            if rule.matches(request.method, request.url.path)
        ]

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """STAGE-HTTP.2: Post-write invalidation."""
        patterns = self._patterns_for(request)
        response = await call_next(request)

        if patterns and 200 <= response.status_code < 300:
            for pattern in patterns:
                self.runner.spawn(
                    self._invalidate(pattern, request.method, request.url.path),
                    name="cache-invalidate",
                )
        return response

    async def _invalidate(self, pattern: str, method: str, path: str) -> None:
        removed = await self.cache.delete_pattern(pattern)
        logger.info(
            "Cache invalidated after write",
            stage=Stage.INVALIDATION,
            method=method,
            path=path,
            pattern=pattern,
            removed=removed,
        )


def add_invalidation_middleware(
    app: FastAPI,
    cache: CacheStore,
    runner: DetachedTaskRunner,
    rules: Iterable[InvalidationRule],
):
    """
    Add post-write invalidation for the given routes.

    Args:
        app: FastAPI application instance
        cache: Cache store built by create_app
        runner: Detached task runner built by create_app
        rules: Write routes and the globs they invalidate
    """
    rules = list(rules)
    app.add_middleware(CacheInvalidationMiddleware, cache=cache, runner=runner, rules=rules)
    logger.info("Cache invalidation middleware registered", rules=len(rules))
