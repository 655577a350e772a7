#!/usr/bin/env python3
"""
Health Checker Module

This module provides health checks for the service components:
- Cache backend availability (disabled / unavailable / ready)
- Cache warmer state
- Resource store reachability

The cache is optional infrastructure. A disabled cache is healthy, an
unreachable one only degrades the service: requests still succeed, they
just miss. Neither state ever makes the service unready.

Author: Senior Solution Architect
Date: 2025-12-05
"""

import asyncio
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from src.core.config.constants import CacheAvailability
from src.core.config.settings import Settings
from src.core.logging.logger import get_logger
from src.domain.stores import ResourceStore
from src.infrastructure.cache.cache_store import CacheStore
from src.infrastructure.cache.warmer import CacheWarmer

logger = get_logger(__name__)

# Bound on any single probe so a hung dependency cannot hang the health route
PROBE_TIMEOUT = 2.0


class HealthStatus(str, Enum):
    """Health status enumeration."""
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


class HealthChecker:
    """
    Health checker for all service components.

    STAGE-H: Health check orchestration

    Usage:
        checker = HealthChecker(settings, cache_store, metric_store, warmer)

        # Quick health check
        status = await checker.check_health()

        # Detailed health report
        report = await checker.detailed_health_report()
    """

    def __init__(
        self,
        settings: Settings,
        cache: CacheStore,
        metric_store: ResourceStore | None = None,
        warmer: CacheWarmer | None = None,
    ):
        self._app = settings.app
        self._cache = cache
        self._metric_store = metric_store
        self._warmer = warmer

    async def check_cache(self) -> dict[str, Any]:
        """
        Probe the cache backend.

        Returns:
            ``{"status": healthy|degraded, "availability": disabled|unavailable|ready}``
        """
        if not self._cache.enabled:
            return {"status": HealthStatus.HEALTHY.value, "availability": CacheAvailability.DISABLED.value}

        try:
            reachable = await asyncio.wait_for(self._cache.health_check(), timeout=PROBE_TIMEOUT)
        except asyncio.TimeoutError:
            reachable = False

        # health_check may have disabled the store on a configuration error
        availability = self._cache.status
        if availability is CacheAvailability.DISABLED:
            return {"status": HealthStatus.HEALTHY.value, "availability": availability.value}

        return {
            "status": (HealthStatus.HEALTHY if reachable else HealthStatus.DEGRADED).value,
            "availability": (CacheAvailability.READY if reachable else CacheAvailability.UNAVAILABLE).value,
        }

    async def check_store(self) -> dict[str, Any]:
        """Probe the metric store with a listing call."""
        if self._metric_store is None:
            return {"status": "not_configured"}
        try:
            await asyncio.wait_for(self._metric_store.find_all(), timeout=PROBE_TIMEOUT)
        except Exception as e:
            logger.warning("Resource store health check failed", stage="H.3", error=str(e))
            return {"status": HealthStatus.UNHEALTHY.value, "error": str(e)}
        return {"status": HealthStatus.HEALTHY.value}

    async def check_health(self) -> dict[str, Any]:
        """
        Quick health check.

        STAGE-H.1: Quick health status

        Returns:
            Dict with overall status and per-component status strings
        """
        cache = await self.check_cache()
        return {
            "status": cache["status"],
            "timestamp": _timestamp(),
            "version": self._app.APP_VERSION,
            "components": {"cache": cache["availability"]},
        }

    async def detailed_health_report(self) -> dict[str, Any]:
        """
        Detailed health report for all components.

        STAGE-H.2: Detailed health report
        """
        cache = await self.check_cache()
        store = await self.check_store()

        components: dict[str, Any] = {
            "cache": {
                **cache,
                "connection_state": self._cache.connection_state.value,
                "stats": self._cache.stats.get_stats(),
            },
            "store": store,
        }
        if self._warmer is not None:
            components["warmer"] = self._warmer.get_status()

        if store["status"] == HealthStatus.UNHEALTHY.value:
            status = HealthStatus.UNHEALTHY
        elif cache["status"] == HealthStatus.DEGRADED.value:
            status = HealthStatus.DEGRADED
        else:
            status = HealthStatus.HEALTHY

        return {
            "status": status.value,
            "timestamp": _timestamp(),
            "version": self._app.APP_VERSION,
            "environment": self._app.ENVIRONMENT,
            "components": components,
        }

    async def liveness_check(self) -> dict[str, Any]:
        """
        Kubernetes liveness probe.

        Returns basic status for liveness check.
        """
        return {
            "status": "alive",
            "timestamp": _timestamp(),
            "version": self._app.APP_VERSION,
        }

    async def readiness_check(self) -> dict[str, Any]:
        """
        Kubernetes readiness probe.

        Only the resource store gates readiness; the cache never does.
        """
        store = await self.check_store()
        if store["status"] == HealthStatus.UNHEALTHY.value:
            return {
                "status": "not_ready",
                "timestamp": _timestamp(),
                "version": self._app.APP_VERSION,
                "reason": "Resource store not available",
            }
        return {
            "status": "ready",
            "timestamp": _timestamp(),
            "version": self._app.APP_VERSION,
        }
