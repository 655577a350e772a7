"""
Metric Definition Routes
========================

CRUD over governed metric definitions plus the generated access policy.

CACHING:
--------
Handlers here know nothing about the cache. Reads are served through the
read-through middleware (list 5 minutes, item and policy 10 minutes) and
every successful write invalidates ``/api/v1/metrics[:/]*`` through the
invalidation middleware. The rules are registered in app.py.

Endpoints:
    GET    /metrics                 list, filterable
    GET    /metrics/{metric_id}     one metric
    GET    /metrics/{metric_id}/policy
    POST   /metrics                 create (201)
    PUT    /metrics/{metric_id}     partial update
    DELETE /metrics/{metric_id}
"""

from fastapi import APIRouter, Query

from src.application.api.dependencies import MetricStoreDep
from src.application.api.responses import EnvelopeResponse, item_response, list_response
from src.core.exceptions import ResourceNotFoundError
from src.core.logging.logger import get_logger
from src.domain.models import MetricInput, MetricUpdate
from src.domain.policy import build_policy

logger = get_logger(__name__)

router = APIRouter(prefix="/metrics", tags=["Metrics"])


def _not_found(metric_id: str) -> ResourceNotFoundError:
    return ResourceNotFoundError(f"Metric {metric_id} not found", details={"metric_id": metric_id})


def _split_tags(tags: str | None) -> list[str] | None:
    if not tags:
        return None
    return [tag.strip() for tag in tags.split(",") if tag.strip()] or None


@router.get("", response_class=EnvelopeResponse)
async def list_metrics(
    store: MetricStoreDep,
    category: str | None = None,
    tier: str | None = None,
    business_domain: str | None = None,
    metric_type: str | None = None,
    owner_team: str | None = None,
    tags: str | None = Query(default=None, description="Comma separated; matches any"),
):
    """
    List metric definitions, most recently updated first.

    Every filter is optional; ``tags`` is a comma separated list and matches
    metrics carrying any of the given tags.
    """
    metrics = await store.find_all(
        {
            "category": category,
            "tier": tier,
            "business_domain": business_domain,
            "metric_type": metric_type,
            "owner_team": owner_team,
            "tags": _split_tags(tags),
        }
    )
    return list_response(metrics)


@router.get("/{metric_id}", response_class=EnvelopeResponse)
async def get_metric(metric_id: str, store: MetricStoreDep):
    metric = await store.find_by_id(metric_id)
    if metric is None:
        raise _not_found(metric_id)
    return item_response(metric)


@router.get("/{metric_id}/policy", response_class=EnvelopeResponse)
async def get_metric_policy(metric_id: str, store: MetricStoreDep):
    """Generate the OPA access policy for a metric."""
    metric = await store.find_by_id(metric_id)
    if metric is None:
        raise _not_found(metric_id)
    return item_response(build_policy(metric))


@router.post("", response_class=EnvelopeResponse, status_code=201)
async def create_metric(payload: MetricInput, store: MetricStoreDep):
    metric = await store.create(payload)
    logger.info("Metric created", metric_id=metric.metric_id)
    return item_response(metric, status_code=201)


@router.put("/{metric_id}", response_class=EnvelopeResponse)
async def update_metric(metric_id: str, payload: MetricUpdate, store: MetricStoreDep):
    metric = await store.update(metric_id, payload)
    logger.info("Metric updated", metric_id=metric_id)
    return item_response(metric)


@router.delete("/{metric_id}", response_class=EnvelopeResponse)
async def delete_metric(metric_id: str, store: MetricStoreDep):
    if not await store.delete(metric_id):
        raise _not_found(metric_id)
    logger.info("Metric deleted", metric_id=metric_id)
    return item_response({"metric_id": metric_id, "deleted": True})
