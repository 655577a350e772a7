"""
Resource Stores

``ResourceStore`` is the interface route handlers and the cache warmer use
to reach persisted resources. Production deployments back it with the
relational stores; ``InMemoryResourceStore`` backs the development server
and the test suite.

Ordering contract: ``find_all`` returns the most recently updated resources
first. The warmer's "top N" step depends on it.
"""

import re
import uuid
from collections.abc import Iterable, Mapping
from typing import Any, Generic, Protocol, TypeVar

from pydantic import BaseModel

from src.core.exceptions import ResourceConflictError, ResourceNotFoundError
from src.domain.models import (
    BusinessDomain,
    MetricDefinition,
    Objective,
    utc_now,
)

R = TypeVar("R", bound=BaseModel)

# Filters whose value is a list; a resource matches if it carries any of the values
LIST_FILTERS = frozenset({"tags", "key_areas", "key_results"})


class ResourceStore(Protocol[R]):
    """Read/write access to one resource family."""

    async def find_all(self, filters: Mapping[str, Any] | None = None) -> list[R]: ...

    async def find_by_id(self, resource_id: str) -> R | None: ...

    async def create(self, data: BaseModel) -> R: ...

    async def update(self, resource_id: str, changes: BaseModel) -> R: ...

    async def delete(self, resource_id: str) -> bool: ...


class InMemoryResourceStore(Generic[R]):
    """
    Dict-backed store.

    Mutations contain no suspension points, so they are atomic with
    respect to other coroutines on the loop.
    """

    def __init__(
        self,
        model: type[R],
        id_field: str,
        id_prefix: str,
        filter_fields: Iterable[str] = (),
        seed: Iterable[R] = (),
    ):
        self._model = model
        self._id_field = id_field
        self._id_prefix = id_prefix
        self._filter_fields = frozenset(filter_fields)
        self._items: dict[str, R] = {getattr(item, id_field): item for item in seed}

    def _generate_id(self, name: str) -> str:
        slug = re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-") or "resource"
        return f"{self._id_prefix}-{slug}-{uuid.uuid4().hex[:8]}"

    def _matches(self, item: R, filters: Mapping[str, Any]) -> bool:
        for field, expected in filters.items():
            if field not in self._filter_fields or expected in (None, "", [], ()):
                continue
            actual = getattr(item, field, None)
            if field in LIST_FILTERS:
                wanted = [expected] if isinstance(expected, str) else list(expected)
                if not set(wanted) & set(actual or ()):
                    return False
            elif actual != expected:
                return False
        return True

    async def find_all(self, filters: Mapping[str, Any] | None = None) -> list[R]:
        items = [item for item in self._items.values() if self._matches(item, filters or {})]
        return sorted(items, key=lambda item: item.updated_at, reverse=True)

    async def find_by_id(self, resource_id: str) -> R | None:
        return self._items.get(resource_id)

    async def create(self, data: BaseModel) -> R:
        fields = data.model_dump()
        resource_id = fields.get(self._id_field) or self._generate_id(fields.get("name", ""))
        if resource_id in self._items:
            raise ResourceConflictError(
                f"{self._model.__name__} {resource_id} already exists",
                details={self._id_field: resource_id},
            )

        now = utc_now()
        fields.update({self._id_field: resource_id, "created_at": now, "updated_at": now})
        item = self._model.model_validate(fields)
        self._items[resource_id] = item
        return item

    async def update(self, resource_id: str, changes: BaseModel) -> R:
        existing = self._items.get(resource_id)
        if existing is None:
            raise ResourceNotFoundError(
                f"{self._model.__name__} {resource_id} not found",
                details={self._id_field: resource_id},
            )

        updates = changes.model_dump(exclude_none=True)
        updates["updated_at"] = utc_now()
        item = existing.model_copy(update=updates)
        self._items[resource_id] = item
        return item

    async def delete(self, resource_id: str) -> bool:
        return self._items.pop(resource_id, None) is not None

    def __len__(self) -> int:
        return len(self._items)


# ============================================================================
# Family factories
# ============================================================================


def build_metric_store(seed: Iterable[MetricDefinition] = ()) -> InMemoryResourceStore[MetricDefinition]:
    return InMemoryResourceStore(
        MetricDefinition,
        id_field="metric_id",
        id_prefix="METRIC",
        filter_fields=("category", "tier", "business_domain", "metric_type", "tags", "owner_team"),
        seed=seed,
    )


def build_domain_store(seed: Iterable[BusinessDomain] = ()) -> InMemoryResourceStore[BusinessDomain]:
    return InMemoryResourceStore(
        BusinessDomain,
        id_field="domain_id",
        id_prefix="DOMAIN",
        filter_fields=("owner_team", "key_areas"),
        seed=seed,
    )


def build_objective_store(seed: Iterable[Objective] = ()) -> InMemoryResourceStore[Objective]:
    return InMemoryResourceStore(
        Objective,
        id_field="objective_id",
        id_prefix="OBJ",
        filter_fields=("status", "owner_team", "business_domain"),
        seed=seed,
    )
