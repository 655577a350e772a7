"""
Admin Routes - Educational Documentation
=========================================

WHAT ARE ADMIN ENDPOINTS?
--------------------------
Admin endpoints provide operational capabilities for managing and monitoring
the application. Here they cover the cache:

    GET    /admin/cache/stats       backend stats, in-process counters, warmer status
    POST   /admin/cache/warm        run one warming pass now
    DELETE /admin/cache             remove every key in the service namespace
    DELETE /admin/cache/{family}    invalidate one resource family
    GET    /admin/metrics           Prometheus exposition

SECURITY CONSIDERATIONS:
------------------------
In production, admin endpoints should be protected by authentication and
exposed only to operators. Authentication is handled in front of this
service.

PROMETHEUS METRICS:
-------------------
Prometheus scrapes metrics from HTTP endpoints (pull model):

    # HELP mdl_cache_hits_total Total cache hits
    # TYPE mdl_cache_hits_total counter
    mdl_cache_hits_total{operation="get"} 42.0
"""

from fastapi import APIRouter, Response

from src.application.api.dependencies import (
    CacheStoreDep,
    CacheWarmerDep,
    MetricsDep,
    SettingsDep,
)
from src.application.api.responses import EnvelopeResponse, item_response
from src.core.config.constants import ResourceFamily
from src.core.logging.logger import get_logger
from src.infrastructure.cache.keys import build_invalidation_pattern

logger = get_logger(__name__)

# ============================================================================
# ROUTER SETUP
# ============================================================================

router = APIRouter(prefix="/admin", tags=["Admin"])


# ============================================================================
# CACHE ENDPOINTS
# ============================================================================


@router.get("/cache/stats", response_class=EnvelopeResponse)
async def cache_stats(cache: CacheStoreDep, warmer: CacheWarmerDep):
    """
    Cache statistics.

    ``backend`` is None when the cache is disabled; the counters are
    in-process and reset on restart.
    """
    return item_response(
        {
            "status": cache.status.value,
            "backend": await cache.get_stats(),
            "counters": cache.stats.get_stats(),
            "warmer": warmer.get_status(),
        }
    )


@router.post("/cache/warm", response_class=EnvelopeResponse)
async def warm_cache(cache: CacheStoreDep, warmer: CacheWarmerDep):
    """
    Run one warming pass and return its summary.

    Returns ``{"status": "skipped"}`` when the cache is disabled or a pass
    is already running.
    """
    if not cache.enabled:
        return item_response({"status": "skipped", "reason": "cache disabled"})

    summary = await warmer.warm_cache()
    if summary is None:
        return item_response({"status": "skipped", "reason": "warming already in progress"})
    return item_response({"status": "completed", **summary.to_dict()})


@router.delete("/cache", response_class=EnvelopeResponse)
async def clear_cache(cache: CacheStoreDep):
    """Remove every key in the service namespace."""
    cleared = await cache.clear()
    logger.info("Cache clear requested", cleared=cleared)
    return item_response({"cleared": cleared})


@router.delete("/cache/{family}", response_class=EnvelopeResponse)
async def invalidate_family(family: ResourceFamily, cache: CacheStoreDep, settings: SettingsDep):
    """Invalidate every cached view of one resource family."""
    pattern = build_invalidation_pattern(f"{settings.app.API_BASE_PATH.rstrip('/')}/{family.value}")
    removed = await cache.delete_pattern(pattern)
    return item_response({"family": family.value, "pattern": pattern, "removed": removed})


# ============================================================================
# PROMETHEUS
# ============================================================================


@router.get("/metrics")
async def prometheus_metrics(metrics: MetricsDep):
    """Prometheus text exposition of every registered metric."""
    return Response(content=metrics.get_prometheus_metrics(), media_type=metrics.get_content_type())
