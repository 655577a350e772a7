"""
Cache Module

Fail-open Redis cache: the store, its connection manager, key building,
payload codecs, statistics and the warmer.
"""

from .cache_store import CacheStore
from .codec import CacheCodec, JsonCodec, ModelCodec, decode_payload, encode_payload
from .keys import (
    build_cache_key,
    build_invalidation_pattern,
    escape_glob,
    key_for_request,
    normalize_query,
)
from .redis_client import ConnectionManager
from .stats import CacheStatsCollector
from .warmer import CacheWarmer, WarmingJob, WarmingSummary

__all__ = [
    "CacheStore",
    "ConnectionManager",
    "CacheStatsCollector",
    "CacheWarmer",
    "WarmingJob",
    "WarmingSummary",
    "CacheCodec",
    "JsonCodec",
    "ModelCodec",
    "encode_payload",
    "decode_payload",
    "build_cache_key",
    "build_invalidation_pattern",
    "escape_glob",
    "key_for_request",
    "normalize_query",
]
