"""
Envelope Responses

``EnvelopeResponse`` renders bodies with the cache payload encoder so the
bytes a client receives on a MISS are exactly the bytes stored in the
cache and replayed on a HIT.

FASTAPI RESPONSE CLASSES:
-------------------------
Returning a ``Response`` subclass from a route bypasses FastAPI's own
serialization. ``render()`` is the single hook that turns content into
bytes, so overriding it is enough to control the wire format.
"""

from typing import Any

from fastapi.responses import JSONResponse

from src.core.config.constants import JSON_MEDIA_TYPE
from src.domain.envelopes import error_envelope, item_envelope, list_envelope
from src.infrastructure.cache.codec import encode_payload


class EnvelopeResponse(JSONResponse):
    """JSON response rendered with orjson; pydantic models are accepted anywhere in the body."""

    media_type = JSON_MEDIA_TYPE

    def render(self, content: Any) -> bytes:
        return encode_payload(content)


def list_response(items: list[Any], status_code: int = 200) -> EnvelopeResponse:
    return EnvelopeResponse(list_envelope(items), status_code=status_code)


def item_response(item: Any, status_code: int = 200) -> EnvelopeResponse:
    return EnvelopeResponse(item_envelope(item), status_code=status_code)


def error_response(
    status_code: int, error: str, message: str, **extra: Any
) -> EnvelopeResponse:
    return EnvelopeResponse(
        error_envelope({"error": error, "message": message, **extra}), status_code=status_code
    )
