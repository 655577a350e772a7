"""
Middleware Package - Educational Documentation
===============================================

WHAT IS THIS PACKAGE?
---------------------
This package contains all middleware components for the FastAPI application.
Middleware sits between the client and route handlers, processing requests
and responses.

AVAILABLE MIDDLEWARE:
---------------------
1. error_handler: Last-resort 500 formatting (error envelope)
2. request_logging: Request ID correlation, request/response logging
3. invalidation: Delete cached reads after successful writes
4. read_through: Serve cacheable GETs from the cache

MIDDLEWARE ORDERING:
--------------------
Starlette runs middleware in REVERSE order of registration (last added =
outermost). ``setup_middleware`` registers innermost first, giving:

Request flow:  Client → ErrorHandling → RequestLogging → Invalidation → ReadThrough → Handler

- Error handling is outermost so it formats errors raised anywhere below
- Request logging sets the request ID before any cache work, so detached
  cache writes and invalidations log with it
- Read-through is innermost: a HIT skips only the handler

USAGE EXAMPLE:
--------------
    app = FastAPI()
    setup_middleware(app, settings, cache_store, runner, metrics)
"""

from fastapi import FastAPI

from src.core.background import DetachedTaskRunner
from src.core.config.constants import ResourceFamily
from src.core.config.settings import Settings
from src.core.logging.logger import get_logger
from src.infrastructure.cache.cache_store import CacheStore
from src.infrastructure.cache.keys import build_invalidation_pattern
from src.infrastructure.monitoring.metrics_collector import MetricsCollector

from .error_handler import add_error_handling_middleware
from .invalidation import InvalidationRule, add_invalidation_middleware
from .read_through import CacheRule, add_read_through_middleware
from .request_logging import add_request_logging_middleware

logger = get_logger(__name__)


def build_cache_rules(settings: Settings) -> list[CacheRule]:
    """
    Cacheable read routes for every resource family.

    Collections use CACHE_LIST_TTL; single resources and their
    sub-resources (``/metrics/{id}/policy``) use CACHE_ITEM_TTL.
    """
    base = settings.app.API_BASE_PATH.rstrip("/")
    rules = []
    for family in ResourceFamily:
        collection = f"{base}/{family.value}"
        rules.append(CacheRule(rf"{collection}/[^/]+(/[^/]+)?", settings.cache.CACHE_ITEM_TTL))
        rules.append(CacheRule(collection, settings.cache.CACHE_LIST_TTL))
    return rules


def build_invalidation_rules(settings: Settings) -> list[InvalidationRule]:
    """A write anywhere under a family invalidates the whole family."""
    base = settings.app.API_BASE_PATH.rstrip("/")
    return [
        InvalidationRule(
            path_pattern=rf"{base}/{family.value}(/.*)?",
            pattern=build_invalidation_pattern(f"{base}/{family.value}"),
        )
        for family in ResourceFamily
    ]


def setup_middleware(
    app: FastAPI,
    settings: Settings,
    cache: CacheStore,
    runner: DetachedTaskRunner,
    metrics: MetricsCollector | None = None,
):
    """
    Register all middleware components in the correct order.

    Args:
        app: FastAPI application instance
        settings: Settings the application is built with
        cache: Cache store shared by both cache middlewares
        runner: Detached task runner for post-response cache work
        metrics: Prometheus sink for request counters
    """
    logger.info("Registering middleware components...")

    # ========================================================================
    # 1. READ-THROUGH CACHE (innermost - wraps only the route handlers)
    # ========================================================================
    # X-Cache-Key is diagnostic; CACHE_DEBUG_HEADERS=false hides it.
    add_read_through_middleware(
        app,
        cache,
        runner,
        build_cache_rules(settings),
        expose_key=settings.cache.CACHE_DEBUG_HEADERS,
    )

    # ========================================================================
    # 2. CACHE INVALIDATION (after successful writes)
    # ========================================================================
    add_invalidation_middleware(app, cache, runner, build_invalidation_rules(settings))

    # ========================================================================
    # 3. REQUEST LOGGING (request ID for everything below)
    # ========================================================================
    add_request_logging_middleware(app, log_level="INFO", metrics=metrics)

    # ========================================================================
    # 4. ERROR HANDLING (outermost - catches all errors)
    # ========================================================================
    # Tracebacks only in development; never expose internals in production.
    add_error_handling_middleware(
        app,
        include_traceback=(settings.app.ENVIRONMENT == "development"),
        metrics=metrics,
    )

    logger.info("All middleware components registered successfully")


__all__ = [
    "setup_middleware",
    "build_cache_rules",
    "build_invalidation_rules",
    "CacheRule",
    "InvalidationRule",
    "add_error_handling_middleware",
    "add_request_logging_middleware",
    "add_invalidation_middleware",
    "add_read_through_middleware",
]
