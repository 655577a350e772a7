"""
Response Envelopes

Every API response body is wrapped in one of these shapes. Route handlers
and the cache warmer build bodies through the same functions, so a warmed
entry is byte-identical to the one a handler run would have cached.

    list:  {"success": true, "data": [...], "count": 3}
    item:  {"success": true, "data": {...}}
    error: {"success": false, "error": {...}}
"""

from collections.abc import Sequence
from typing import Any


def list_envelope(items: Sequence[Any]) -> dict[str, Any]:
    return {"success": True, "data": list(items), "count": len(items)}


def item_envelope(item: Any) -> dict[str, Any]:
    return {"success": True, "data": item}


def error_envelope(error: dict[str, Any]) -> dict[str, Any]:
    return {"success": False, "error": error}
