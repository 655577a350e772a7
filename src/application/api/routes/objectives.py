"""
Objective Routes

Reads go through the read-through middleware, writes invalidate
``/api/v1/objectives[:/]*``.
"""

from fastapi import APIRouter

from src.application.api.dependencies import ObjectiveStoreDep
from src.application.api.responses import EnvelopeResponse, item_response, list_response
from src.core.exceptions import ResourceNotFoundError
from src.domain.models import ObjectiveInput, ObjectiveUpdate

router = APIRouter(prefix="/objectives", tags=["Objectives"])


def _not_found(objective_id: str) -> ResourceNotFoundError:
    return ResourceNotFoundError(
        f"Objective {objective_id} not found", details={"objective_id": objective_id}
    )


@router.get("", response_class=EnvelopeResponse)
async def list_objectives(
    store: ObjectiveStoreDep,
    status: str | None = None,
    owner_team: str | None = None,
    business_domain: str | None = None,
):
    objectives = await store.find_all(
        {"status": status, "owner_team": owner_team, "business_domain": business_domain}
    )
    return list_response(objectives)


@router.get("/{objective_id}", response_class=EnvelopeResponse)
async def get_objective(objective_id: str, store: ObjectiveStoreDep):
    objective = await store.find_by_id(objective_id)
    if objective is None:
        raise _not_found(objective_id)
    return item_response(objective)


@router.post("", response_class=EnvelopeResponse, status_code=201)
async def create_objective(payload: ObjectiveInput, store: ObjectiveStoreDep):
    return item_response(await store.create(payload), status_code=201)


@router.put("/{objective_id}", response_class=EnvelopeResponse)
async def update_objective(objective_id: str, payload: ObjectiveUpdate, store: ObjectiveStoreDep):
    return item_response(await store.update(objective_id, payload))


@router.delete("/{objective_id}", response_class=EnvelopeResponse)
async def delete_objective(objective_id: str, store: ObjectiveStoreDep):
    if not await store.delete(objective_id):
        raise _not_found(objective_id)
    return item_response({"objective_id": objective_id, "deleted": True})
