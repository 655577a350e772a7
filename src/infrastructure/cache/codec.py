"""
Cache Payload Codecs

The cache store holds opaque bytes. Typed values cross that boundary
through a codec chosen at the call site.

Encoding is shared with the HTTP layer: route handlers render their JSON
bodies with ``encode_payload`` and the warmer encodes with the same
function, so a warmed entry is byte-identical to one stored after a
handler run.

Author: System Architect
Date: 2025-12-14
"""

from typing import Any, Generic, Protocol, TypeVar

import orjson
from pydantic import BaseModel, ValidationError

from src.core.exceptions import CacheSerializationError

T = TypeVar("T")
M = TypeVar("M", bound=BaseModel)


def _default(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    if isinstance(value, (set, frozenset)):
        return sorted(value)
    raise TypeError(f"Type is not JSON serializable: {type(value).__name__}")


def encode_payload(value: Any) -> bytes:
    """
    Serialize ``value`` to compact JSON bytes.

    Pydantic models are dumped in JSON mode; datetimes use RFC 3339.

    Raises:
        CacheSerializationError: Value is not JSON serializable
    """
    try:
        return orjson.dumps(value, default=_default)
    except TypeError as e:
        raise CacheSerializationError.from_exception(e, message="Failed to encode payload")


def decode_payload(payload: bytes) -> Any:
    """
    Parse JSON bytes.

    Raises:
        CacheSerializationError: Payload is not valid JSON
    """
    try:
        return orjson.loads(payload)
    except orjson.JSONDecodeError as e:
        raise CacheSerializationError.from_exception(e, message="Failed to decode payload")


class CacheCodec(Protocol[T]):
    """Converts between typed values and cache payloads."""

    def encode(self, value: T) -> bytes: ...

    def decode(self, payload: bytes) -> T: ...


class JsonCodec:
    """Plain JSON documents (dicts, lists, scalars)."""

    def encode(self, value: Any) -> bytes:
        return encode_payload(value)

    def decode(self, payload: bytes) -> Any:
        return decode_payload(payload)


class ModelCodec(Generic[M]):
    """A single pydantic model, validated on the way out of the cache."""

    def __init__(self, model: type[M]):
        self._model = model

    def encode(self, value: M) -> bytes:
        return encode_payload(value)

    def decode(self, payload: bytes) -> M:
        try:
            return self._model.model_validate(decode_payload(payload))
        except ValidationError as e:
            raise CacheSerializationError.from_exception(
                e, message=f"Cached payload is not a valid {self._model.__name__}"
            )
