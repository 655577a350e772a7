"""
Read-Through Cache Middleware
=============================

Short-circuits cacheable GET requests with a cached response body.

REQUEST FLOW:
-------------
    GET /api/v1/metrics?category=operational
        │
        ├── no rule matches / bypass requested ──────────────► handler
        │
        ├── key = /api/v1/metrics:anonymous:{"category":"operational"}
        │
        ├── HIT  ──► cached bytes, X-Cache: HIT    (handler not called)
        │
        └── MISS ──► handler ──► X-Cache: MISS
                                   │
                                   └── 2xx: body stored by a detached task

WHY DETACHED STORAGE?
---------------------
The client already has everything it needs once the handler returns. The
cache write is handed to the ``DetachedTaskRunner`` so a slow or broken
backend can never delay or fail the response.

FAIL-OPEN:
----------
``CacheStore`` never raises: an unreachable backend reads as a miss and a
failed write is logged and dropped. The one error the middleware handles
itself is a request it cannot key (``CacheKeyError``): that request is
served straight from the handler, uncached and without cache headers.
"""

import re
from collections.abc import Callable, Sequence
from dataclasses import dataclass

from fastapi import FastAPI, Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from src.core.background import DetachedTaskRunner
from src.core.config.constants import (
    HEADER_CACHE_BYPASS,
    HEADER_CACHE_KEY,
    HEADER_CACHE_STATUS,
    JSON_MEDIA_TYPE,
    CacheStatus,
    Stage,
)
from src.core.exceptions import CacheKeyError
from src.core.logging.logger import get_logger
from src.infrastructure.cache.cache_store import CacheStore
from src.infrastructure.cache.keys import key_for_request

logger = get_logger(__name__)

# Only side-effect-free reads are served from cache
CACHEABLE_METHODS = frozenset({"GET"})

KeyBuilder = Callable[[Request], str]
CachePredicate = Callable[[Request], bool]


@dataclass(frozen=True)
class CacheRule:
    """
    A cacheable route.

    Attributes:
        path_pattern: Regular expression matched against the full request path
        ttl_seconds: Entry lifetime; None uses the store default
    """

    path_pattern: str
    ttl_seconds: int | None = None

    def matches(self, path: str) -> bool:
        return re.fullmatch(self.path_pattern, path) is not None


def bypass_requested(request: Request) -> bool:
    """True if the caller asked to skip the cache (X-Cache-Bypass or Cache-Control: no-cache)."""
    if request.headers.get(HEADER_CACHE_BYPASS, "").lower() in ("1", "true", "yes"):
        return True
    return "no-cache" in request.headers.get("cache-control", "").lower()


class ReadThroughCacheMiddleware(BaseHTTPMiddleware):
    """
    Serve matching GET requests from the cache, populating it on a miss.

    Attributes:
        cache: Cache store (fail-open)
        runner: Detached task runner used for post-response writes
        rules: Cacheable routes, first match wins
        key_builder: Request → cache key; defaults to path + principal + query
        should_cache: Extra eligibility predicate; defaults to "no bypass requested"
        expose_key: Add the X-Cache-Key diagnostic header
    """

    def __init__(
        self,
        app,
        cache: CacheStore,
        runner: DetachedTaskRunner,
        rules: Sequence[CacheRule],
        key_builder: KeyBuilder | None = None,
        should_cache: CachePredicate | None = None,
        expose_key: bool = True,
    ):
        super().__init__(app)
        self.cache = cache
        self.runner = runner
        self.rules = tuple(rules)
        self.key_builder = key_builder or key_for_request
        self.should_cache = should_cache or (lambda request: not bypass_requested(request))
        self.expose_key = expose_key

    def _match(self, request: Request) -> CacheRule | None:
        if request.method not in CACHEABLE_METHODS or not self.cache.enabled:
            return None
        for rule in self.rules:
            if rule.matches(request.url.path):
                return rule
        return None

    def _annotate(self, response: Response, status: CacheStatus, key: str) -> None:
        response.headers[HEADER_CACHE_STATUS] = status.value
        if self.expose_key:
            response.headers[HEADER_CACHE_KEY] = key

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """
        STAGE-HTTP.1: Read-through lookup

        1. Find the rule for this path (no rule → plain pass-through)
        2. Build the key and look it up
        3. HIT: replay the stored body without calling the handler
        4. MISS: call the handler, then hand a 2xx body to the runner
        """
        rule = self._match(request)
        if rule is None or not self.should_cache(request):
            return await call_next(request)

        try:
            key = self.key_builder(request)
        except CacheKeyError as e:
            logger.warning(
                "Request cannot be keyed, serving uncached",
                stage=Stage.READ_THROUGH,
                path=request.url.path,
                error=e.message,
            )
            return await call_next(request)

        cached = await self.cache.get(key)
        if cached is not None:
            logger.debug("Serving cached response", stage=Stage.READ_THROUGH, key=key)
            response = Response(content=cached, status_code=200, media_type=JSON_MEDIA_TYPE)
            self._annotate(response, CacheStatus.HIT, key)
            return response

        response = await call_next(request)

        if not 200 <= response.status_code < 300:
            self._annotate(response, CacheStatus.MISS, key)
            return response

        # The handler's body is a stream; collect it once so it can be both
        # returned and stored
        body = b"".join([chunk async for chunk in response.body_iterator])
        replay = Response(content=body, status_code=response.status_code, headers=response.headers)
        self._annotate(replay, CacheStatus.MISS, key)

        self.runner.spawn(self._store(key, body, rule.ttl_seconds), name="cache-store")
        return replay

    async def _store(self, key: str, body: bytes, ttl_seconds: int | None) -> None:
        stored = await self.cache.set(key, body, ttl_seconds)
        logger.debug("Read-through store", stage=Stage.READ_THROUGH, key=key, stored=stored)


def add_read_through_middleware(
    app: FastAPI,
    cache: CacheStore,
    runner: DetachedTaskRunner,
    rules: Sequence[CacheRule],
    expose_key: bool = True,
):
    """
    Add read-through caching for the given routes.

    Args:
        app: FastAPI application instance
        cache: Cache store built by create_app
        runner: Detached task runner built by create_app
        rules: Cacheable routes and their TTLs
        expose_key: Emit the X-Cache-Key header (disable in production if keys are sensitive)
    """
    app.add_middleware(
        ReadThroughCacheMiddleware,
        cache=cache,
        runner=runner,
        rules=rules,
        expose_key=expose_key,
    )
    logger.info("Read-through cache middleware registered", rules=len(rules), expose_key=expose_key)
