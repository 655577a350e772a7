#!/usr/bin/env python3
"""
FastAPI Application Entry Point

This is the main entry point for the Metric Definition Library API.
It builds the service objects, configures middleware and routes, and
manages their lifecycle.

Service objects are constructed once per application by ``create_app``
and passed explicitly to the middleware, the warmer and (through
``app.state``) the route dependencies. Nothing connects on import: the
cache store connects in the lifespan and is closed on shutdown.

Author: Senior Solution Architect
Date: 2025-12-05
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from src.application.api.middleware import setup_middleware
from src.application.api.responses import error_response
from src.application.api.routes.admin import router as admin_router
from src.application.api.routes.domains import router as domains_router
from src.application.api.routes.health import router as health_router
from src.application.api.routes.metrics import router as metrics_router
from src.application.api.routes.objectives import router as objectives_router
from src.core.background import DetachedTaskRunner
from src.core.config.constants import HEADER_CACHE_KEY, HEADER_CACHE_STATUS, HEADER_REQUEST_ID, Stage
from src.core.config.settings import Settings, get_settings
from src.core.exceptions import GovernanceError, ResourceConflictError, ResourceNotFoundError
from src.core.logging.logger import get_logger, get_request_id, setup_logging
from src.domain.models import BusinessDomain, MetricDefinition, Objective
from src.domain.sample_data import sample_domains, sample_metrics, sample_objectives
from src.domain.stores import (
    ResourceStore,
    build_domain_store,
    build_metric_store,
    build_objective_store,
)
from src.infrastructure.cache.cache_store import CacheStore
from src.infrastructure.cache.redis_client import ClientFactory
from src.infrastructure.cache.stats import CacheStatsCollector
from src.infrastructure.cache.warmer import CacheWarmer
from src.infrastructure.monitoring.health_checker import HealthChecker
from src.infrastructure.monitoring.metrics_collector import MetricsCollector

logger = get_logger(__name__)

# Seconds shutdown waits for in-flight cache writes and warming passes
SHUTDOWN_DRAIN_TIMEOUT = 10.0


# ============================================================================
# Application Lifespan
# ============================================================================


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage application lifecycle (startup and shutdown).

    Startup never fails because of the cache: an unreachable backend leaves
    the cache unavailable and requests run uncached.
    """
    settings: Settings = app.state.settings
    cache: CacheStore = app.state.cache_store
    warmer: CacheWarmer = app.state.cache_warmer
    runner: DetachedTaskRunner = app.state.task_runner

    setup_logging(log_level=settings.logging.LOG_LEVEL, log_format=settings.logging.LOG_FORMAT)

    logger.info(
        "Starting Metric Definition Library API",
        stage=Stage.INITIALIZATION,
        environment=settings.app.ENVIRONMENT,
        version=settings.app.APP_VERSION,
    )

    try:
        await cache.start()
        logger.info("Cache store started", stage=Stage.INITIALIZATION, status=cache.status.value)

        if cache.enabled:
            await warmer.start()

        logger.info("Application startup complete", stage=Stage.INITIALIZATION)

        yield

    finally:
        logger.info("Shutting down application", stage=Stage.SHUTDOWN)

        # Stop scheduling first, then let in-flight work land, then disconnect
        await warmer.stop()
        await runner.drain(timeout=SHUTDOWN_DRAIN_TIMEOUT)
        await runner.cancel_all()
        await cache.stop()

        logger.info("Application shutdown complete", stage=Stage.SHUTDOWN)


# ============================================================================
# Exception Handlers
# ============================================================================


def register_exception_handlers(app: FastAPI) -> None:
    """Map domain exceptions to HTTP responses with the error envelope."""

    @app.exception_handler(ResourceNotFoundError)
    async def not_found_handler(request: Request, exc: ResourceNotFoundError):
        return error_response(404, "not_found", exc.message, details=exc.details)

    @app.exception_handler(ResourceConflictError)
    async def conflict_handler(request: Request, exc: ResourceConflictError):
        return error_response(409, "conflict", exc.message, details=exc.details)

    @app.exception_handler(RequestValidationError)
    async def validation_handler(request: Request, exc: RequestValidationError):
        return error_response(
            422,
            "validation_error",
            "Request validation failed",
            details=jsonable_encoder(exc.errors()),
        )

    @app.exception_handler(GovernanceError)
    async def governance_error_handler(request: Request, exc: GovernanceError):
        logger.error(
            f"Service exception: {exc.message}",
            error_type=type(exc).__name__,
            details=exc.details,
        )
        return error_response(
            500,
            "internal_error",
            exc.message,
            error_type=type(exc).__name__,
            request_id=exc.request_id or get_request_id(),
            details=jsonable_encoder(exc.details),
        )


# ============================================================================
# Application Factory
# ============================================================================


def create_app(
    settings: Settings | None = None,
    *,
    client_factory: ClientFactory | None = None,
    metric_store: ResourceStore[MetricDefinition] | None = None,
    domain_store: ResourceStore[BusinessDomain] | None = None,
    objective_store: ResourceStore[Objective] | None = None,
    metrics: MetricsCollector | None = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        settings: Settings to build with; defaults to the process settings
        client_factory: Redis client override (tests pass fakeredis)
        metric_store: Metric store; defaults to an in-memory store with sample data
        domain_store: Domain store; defaults to an in-memory store with sample data
        objective_store: Objective store; defaults to an in-memory store with sample data
        metrics: Prometheus sink; defaults to a new collector

    Returns:
        FastAPI: Configured application instance
    """
    settings = settings or get_settings()

    # ========================================================================
    # SERVICE OBJECTS
    # ========================================================================
    metrics = metrics or MetricsCollector(
        app_info={"name": settings.app.APP_NAME, "version": settings.app.APP_VERSION}
    )
    cache_store = CacheStore(settings, stats=CacheStatsCollector(metrics), client_factory=client_factory)
    runner = DetachedTaskRunner()

    if metric_store is None:
        metric_store = build_metric_store(sample_metrics())
    if domain_store is None:
        domain_store = build_domain_store(sample_domains())
    if objective_store is None:
        objective_store = build_objective_store(sample_objectives())

    cache_warmer = CacheWarmer(cache_store, metric_store, runner, settings)
    health_checker = HealthChecker(settings, cache_store, metric_store, cache_warmer)

    app = FastAPI(
        title=settings.app.APP_NAME,
        version=settings.app.APP_VERSION,
        description="Metric governance API with a fail-open Redis read-through cache",
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    app.state.settings = settings
    app.state.metrics = metrics
    app.state.cache_store = cache_store
    app.state.task_runner = runner
    app.state.metric_store = metric_store
    app.state.domain_store = domain_store
    app.state.objective_store = objective_store
    app.state.cache_warmer = cache_warmer
    app.state.health_checker = health_checker

    # ========================================================================
    # MIDDLEWARE REGISTRATION
    # ========================================================================
    # Middleware executes in REVERSE order of registration (last added =
    # outermost). CORS goes last so every response, errors included, gets
    # CORS headers.
    setup_middleware(app, settings, cache_store, runner, metrics)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.app.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=[HEADER_REQUEST_ID, HEADER_CACHE_STATUS, HEADER_CACHE_KEY],
    )

    register_exception_handlers(app)

    # ========================================================================
    # ROUTER REGISTRATION
    # ========================================================================
    # All API endpoints are prefixed with API_BASE_PATH (default: /api/v1).
    # Cache keys are built from the full request path, so the warmer uses
    # the same prefix.
    base_path = settings.app.API_BASE_PATH

    app.include_router(metrics_router, prefix=base_path)
    app.include_router(domains_router, prefix=base_path)
    app.include_router(objectives_router, prefix=base_path)
    app.include_router(health_router, prefix=base_path)
    app.include_router(admin_router, prefix=base_path)

    @app.get("/", tags=["Root"])
    async def root():
        """Root endpoint with API information."""
        return {
            "name": settings.app.APP_NAME,
            "version": settings.app.APP_VERSION,
            "environment": settings.app.ENVIRONMENT,
            "docs": "/docs",
            "health": f"{base_path}/health",
        }

    return app


# Create application instance
app = create_app()


# ============================================================================
# Main Entry Point
# ============================================================================

if __name__ == "__main__":
    import uvicorn

    settings = get_settings()

    uvicorn.run(
        "src.application.app:app",
        host=settings.app.API_HOST,
        port=settings.app.API_PORT,
        reload=settings.app.ENVIRONMENT == "development",
        log_level=settings.logging.LOG_LEVEL.lower(),
    )
