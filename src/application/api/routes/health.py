"""
Health Check Routes - Educational Documentation
================================================

WHAT ARE HEALTH CHECKS?
-----------------------
Health checks are endpoints that report the status of your application and
its dependencies. They're essential for load balancers, monitoring systems
and orchestration platforms.

KUBERNETES HEALTH PROBES:
--------------------------
1. LIVENESS PROBE ("Is the application running?")
   - If fails: Kubernetes RESTARTS the container
   - Should be simple and fast, no dependency checks

2. READINESS PROBE ("Is the application ready to serve traffic?")
   - If fails: Kubernetes REMOVES the pod from the load balancer
   - Checks critical dependencies only

THE CACHE IS NOT CRITICAL:
--------------------------
Every request can be answered without Redis (it just misses). So the
cache never fails readiness and never produces a 503:

    cache disabled      → healthy   (nothing is wrong, it is switched off)
    cache unavailable   → degraded  (requests succeed with extra latency)
    cache ready         → healthy
"""

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from src.application.api.dependencies import HealthCheckerDep

# ============================================================================
# ROUTER SETUP
# ============================================================================

router = APIRouter(prefix="/health", tags=["Health"])


# ============================================================================
# RESPONSE MODELS
# ============================================================================


class HealthResponse(BaseModel):
    """Standard health check response model."""

    status: str  # "healthy" or "degraded"
    timestamp: str  # ISO 8601 timestamp
    version: str | None = None
    components: dict | None = None  # e.g. {"cache": "disabled"}


# ============================================================================
# HEALTH CHECK ENDPOINTS
# ============================================================================


@router.get("", response_model=HealthResponse)
async def health_check(checker: HealthCheckerDep):
    """
    Quick health check endpoint for load balancers.

    Always HTTP 200; the cache state is reported in the body.
    """
    return await checker.check_health()


@router.get("/detailed")
async def detailed_health(checker: HealthCheckerDep):
    """
    Detailed health report for debugging and monitoring.

    Includes cache availability and connection state, in-process cache
    counters, store reachability and warmer status.
    """
    return await checker.detailed_health_report()


@router.get("/live")
async def liveness_probe(checker: HealthCheckerDep):
    """Kubernetes liveness probe endpoint."""
    return await checker.liveness_check()


@router.get("/ready")
async def readiness_probe(checker: HealthCheckerDep):
    """
    Kubernetes readiness probe endpoint.

    HTTP Status Codes:
        200: Ready to serve traffic
        503: Resource store unavailable (never because of the cache)
    """
    result = await checker.readiness_check()
    if result["status"] != "ready":
        raise HTTPException(status_code=503, detail=result)
    return result
