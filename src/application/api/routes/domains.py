"""
Business Domain Routes

Same shape and caching as the metric routes: reads go through the
read-through middleware, writes invalidate ``/api/v1/domains[:/]*``.
"""

from fastapi import APIRouter

from src.application.api.dependencies import DomainStoreDep
from src.application.api.responses import EnvelopeResponse, item_response, list_response
from src.core.exceptions import ResourceNotFoundError
from src.core.logging.logger import get_logger
from src.domain.models import BusinessDomainInput, BusinessDomainUpdate

logger = get_logger(__name__)

router = APIRouter(prefix="/domains", tags=["Domains"])


@router.get("", response_class=EnvelopeResponse)
async def list_domains(store: DomainStoreDep, owner_team: str | None = None):
    return list_response(await store.find_all({"owner_team": owner_team}))


@router.get("/{domain_id}", response_class=EnvelopeResponse)
async def get_domain(domain_id: str, store: DomainStoreDep):
    domain = await store.find_by_id(domain_id)
    if domain is None:
        raise ResourceNotFoundError(f"Domain {domain_id} not found", details={"domain_id": domain_id})
    return item_response(domain)


@router.post("", response_class=EnvelopeResponse, status_code=201)
async def create_domain(payload: BusinessDomainInput, store: DomainStoreDep):
    domain = await store.create(payload)
    logger.info("Domain created", domain_id=domain.domain_id)
    return item_response(domain, status_code=201)


@router.put("/{domain_id}", response_class=EnvelopeResponse)
async def update_domain(domain_id: str, payload: BusinessDomainUpdate, store: DomainStoreDep):
    return item_response(await store.update(domain_id, payload))


@router.delete("/{domain_id}", response_class=EnvelopeResponse)
async def delete_domain(domain_id: str, store: DomainStoreDep):
    if not await store.delete(domain_id):
        raise ResourceNotFoundError(f"Domain {domain_id} not found", details={"domain_id": domain_id})
    return item_response({"domain_id": domain_id, "deleted": True})
