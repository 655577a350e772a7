"""
Cache Key Builder

Key format:
    {resource_path}:{principal}:{normalized_query_json}

    /api/v1/metrics:anonymous:{}
    /api/v1/metrics:anonymous:{"category":"operational","tier":"tier1"}
    /api/v1/metrics/metric_001:u-42:{}

The namespace prefix (``mdl:``) is not part of these keys; the cache store
adds it beneath every key and pattern.

Invariants:
    - Identical logical requests map to identical keys regardless of the
      order query parameters arrived in
    - Different principals or different queries map to different keys; an
      authenticated principal spelled like the anonymous sentinel is
      rejected (CacheKeyError) rather than sharing the anonymous entries
    - Pure functions: no clock, no randomness, no I/O
"""

from collections.abc import Iterable, Mapping
from typing import Any

import orjson
from starlette.datastructures import QueryParams
from starlette.requests import Request

from src.core.config.constants import ANONYMOUS_PRINCIPAL, CACHE_KEY_SEPARATOR
from src.core.exceptions import CacheKeyError

QueryInput = Mapping[str, Any] | Iterable[tuple[str, Any]] | QueryParams | None

# Redis glob metacharacters
_GLOB_SPECIAL = frozenset("*?[]\\")


def normalize_query(query_params: QueryInput = None) -> str:
    """
    Serialize query parameters as compact JSON with sorted names.

    Repeated parameters (``?tag=a&tag=b``) become a list in arrival order;
    a single occurrence stays a scalar. No parameters yields ``{}``.
    """
    grouped: dict[str, list[Any]] = {}

    if query_params is None:
        items: Iterable[tuple[str, Any]] = ()
    elif isinstance(query_params, QueryParams):
        items = query_params.multi_items()
    elif isinstance(query_params, Mapping):
        items = query_params.items()
    else:
        items = query_params

    for name, value in items:
        if isinstance(value, (list, tuple)):
            grouped.setdefault(name, []).extend(value)
        else:
            grouped.setdefault(name, []).append(value)

    normalized = {name: values[0] if len(values) == 1 else values for name, values in grouped.items()}
    return orjson.dumps(normalized, option=orjson.OPT_SORT_KEYS).decode()


def build_cache_key(
    resource_path: str, principal: str | None = None, query_params: QueryInput = None
) -> str:
    """
    Build the cache key for a logical read.

    Args:
        resource_path: Request path, e.g. ``/api/v1/metrics/metric_001``
        principal: Authenticated user ID; ``None`` means anonymous
        query_params: Query parameters in any order

    Returns:
        Deterministic cache key

    Raises:
        CacheKeyError: ``principal`` is the reserved anonymous sentinel
    """
    if principal == ANONYMOUS_PRINCIPAL:
        raise CacheKeyError(
            "Principal collides with the anonymous key scope"
        ).with_context(resource_path=resource_path, principal=principal)

    return CACHE_KEY_SEPARATOR.join(
        (resource_path, principal or ANONYMOUS_PRINCIPAL, normalize_query(query_params))
    )


def resolve_principal(request: Request) -> str | None:
    """
    Identify the caller for key scoping.

    Authentication middleware (outside this service's scope) stores the
    user on ``request.state.principal``; either a plain ID or an object
    carrying an ``id`` attribute is accepted.
    """
    principal = getattr(request.state, "principal", None)
    if principal is None:
        return None
    principal_id = getattr(principal, "id", principal)
    return str(principal_id) if principal_id else None


def key_for_request(request: Request) -> str:
    """Build the cache key for an incoming HTTP request."""
    return build_cache_key(request.url.path, resolve_principal(request), request.query_params)


def escape_glob(value: str) -> str:
    """Escape Redis glob metacharacters so ``value`` matches literally."""
    return "".join(f"\\{char}" if char in _GLOB_SPECIAL else char for char in value)


def build_invalidation_pattern(collection_path: str) -> str:
    """
    Build the glob that removes every cached view of a resource family.

    ``/api/v1/metrics`` yields ``/api/v1/metrics[:/]*`` which matches:
        /api/v1/metrics:anonymous:{}                    (list)
        /api/v1/metrics:u-1:{"tier":"tier1"}            (filtered list)
        /api/v1/metrics/metric_001:anonymous:{}         (item)
        /api/v1/metrics/metric_001/policy:anonymous:{}  (sub-resource)

    and leaves ``/api/v1/domains...`` and ``/api/v1/metrics_archive...`` alone.
    """
    return f"{escape_glob(collection_path.rstrip('/'))}[:/]*"
