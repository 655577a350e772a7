"""
FastAPI Dependency Injection Module
===================================

Route handlers receive the service objects built by ``create_app`` through
these providers instead of importing module-level singletons.

HOW IT WORKS:
-------------
``create_app`` constructs the cache store, the detached task runner, the
resource stores, the warmer and the health checker once, and stores them
on ``app.state``. Each provider below reads one of them back from the
request's application:

    @router.get("/stats")
    async def stats(cache: CacheStoreDep):
        return await cache.get_stats()

Tests build an app with fakes injected into ``create_app`` and every route
picks them up without patching.
"""

from typing import Annotated

from fastapi import Depends, Request

from src.core.background import DetachedTaskRunner
from src.core.config.settings import Settings
from src.domain.models import BusinessDomain, MetricDefinition, Objective
from src.domain.stores import ResourceStore
from src.infrastructure.cache.cache_store import CacheStore
from src.infrastructure.cache.warmer import CacheWarmer
from src.infrastructure.monitoring.health_checker import HealthChecker
from src.infrastructure.monitoring.metrics_collector import MetricsCollector

# ============================================================================
# DEPENDENCY FUNCTIONS
# ============================================================================


def get_app_settings(request: Request) -> Settings:
    """Settings the application was built with (not necessarily the global ones)."""
    return request.app.state.settings


def get_cache_store(request: Request) -> CacheStore:
    return request.app.state.cache_store


def get_task_runner(request: Request) -> DetachedTaskRunner:
    return request.app.state.task_runner


def get_cache_warmer(request: Request) -> CacheWarmer:
    return request.app.state.cache_warmer


def get_metrics(request: Request) -> MetricsCollector:
    return request.app.state.metrics


def get_health_checker(request: Request) -> HealthChecker:
    return request.app.state.health_checker


def get_metric_store(request: Request) -> ResourceStore[MetricDefinition]:
    return request.app.state.metric_store


def get_domain_store(request: Request) -> ResourceStore[BusinessDomain]:
    return request.app.state.domain_store


def get_objective_store(request: Request) -> ResourceStore[Objective]:
    return request.app.state.objective_store


# ============================================================================
# TYPE ALIASES FOR CLEANER ROUTE SIGNATURES
# ============================================================================
# Annotated[Type, Depends(provider)] lets a route declare what it needs in
# its signature; FastAPI resolves it per request.

SettingsDep = Annotated[Settings, Depends(get_app_settings)]
CacheStoreDep = Annotated[CacheStore, Depends(get_cache_store)]
TaskRunnerDep = Annotated[DetachedTaskRunner, Depends(get_task_runner)]
CacheWarmerDep = Annotated[CacheWarmer, Depends(get_cache_warmer)]
MetricsDep = Annotated[MetricsCollector, Depends(get_metrics)]
HealthCheckerDep = Annotated[HealthChecker, Depends(get_health_checker)]
MetricStoreDep = Annotated[ResourceStore[MetricDefinition], Depends(get_metric_store)]
DomainStoreDep = Annotated[ResourceStore[BusinessDomain], Depends(get_domain_store)]
ObjectiveStoreDep = Annotated[ResourceStore[Objective], Depends(get_objective_store)]
