"""
Cache Store - Fail-Safe Redis Wrapper

Architecture:
    CacheStore (Public API, bytes in / bytes out)
        ├── ConnectionManager     (state machine, reconnects)
        ├── CacheStatsCollector   (hits, misses, latency, errors)
        └── codec helpers         (get_value / set_value)

Failure Contract:
    Every public operation is fail-open. A disabled cache, an unreachable
    backend, a timeout or a corrupt payload degrade to a neutral result:

        get            -> None (miss)
        set / delete   -> False
        delete_pattern -> number of keys removed before the failure (0 if none)
        clear          -> False
        health_check   -> False (True when disabled)

    Nothing raised inside the cache layer reaches a caller.

Namespacing:
    Callers use logical keys (``/api/v1/metrics:anonymous:{}``). The store
    applies REDIS_KEY_PREFIX (``mdl:``) beneath every key and pattern, and
    ``clear()`` only removes keys inside that namespace.

Author: Refactored for clarity and maintainability
Date: 2025-12-13
"""

import time
from typing import Any, TypeVar

import redis.asyncio as redis
from redis.exceptions import RedisError

from src.core.config.constants import SCAN_BATCH_SIZE, CacheAvailability, ConnectionState, Stage
from src.core.config.settings import Settings
from src.core.exceptions import CacheConnectionError, CacheSerializationError, ConfigurationError
from src.core.logging.logger import get_logger
from src.infrastructure.cache.codec import CacheCodec
from src.infrastructure.cache.keys import escape_glob
from src.infrastructure.cache.redis_client import TRANSPORT_ERRORS, ClientFactory, ConnectionManager
from src.infrastructure.cache.stats import CacheStatsCollector

logger = get_logger(__name__)

T = TypeVar("T")

BACKEND_ERRORS = (RedisError, OSError)


class CacheStore:
    """
    Fail-safe key/value cache over Redis.

    Usage:
        store = CacheStore(settings, stats=CacheStatsCollector(metrics))
        await store.start()

        await store.set("/api/v1/metrics:anonymous:{}", body, ttl_seconds=300)
        body = await store.get("/api/v1/metrics:anonymous:{}")

        await store.stop()
    """

    def __init__(
        self,
        settings: Settings,
        stats: CacheStatsCollector | None = None,
        client_factory: ClientFactory | None = None,
    ):
        """
        Initialize cache store.

        Args:
            settings: Application settings (redis and cache groups are used)
            stats: Statistics collector; a private one is created if omitted
            client_factory: Override for the Redis client (tests use fakeredis)
        """
        redis_settings = settings.redis
        cache_settings = settings.cache

        self._enabled = redis_settings.ENABLE_CACHE
        self._prefix = redis_settings.REDIS_KEY_PREFIX
        self._reconnect_cooldown = redis_settings.REDIS_RECONNECT_COOLDOWN
        self._default_ttl = cache_settings.CACHE_TTL
        self._max_ttl = cache_settings.CACHE_MAX_TTL

        self._stats = stats or CacheStatsCollector()
        self._connection = ConnectionManager(redis_settings, client_factory=client_factory)

        self._running = False
        self._retry_after = 0.0

    # =========================================================================
    # Properties
    # =========================================================================

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def stats(self) -> CacheStatsCollector:
        return self._stats

    @property
    def key_prefix(self) -> str:
        return self._prefix

    @property
    def default_ttl(self) -> int:
        return self._default_ttl

    @property
    def status(self) -> CacheAvailability:
        """Disabled (switched off), ready (connected) or unavailable (enabled, not connected)."""
        if not self._enabled:
            return CacheAvailability.DISABLED
        if self._running and self._connection.is_connected():
            return CacheAvailability.READY
        return CacheAvailability.UNAVAILABLE

    @property
    def connection_state(self) -> ConnectionState:
        return self._connection.state

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def start(self) -> None:
        """
        Connect to Redis.

        STAGE-CACHE.0: Cache startup

        Never raises. An unreachable backend leaves the store unavailable
        (operations no-op, reconnects are retried after a cooldown); a
        configuration error switches the cache off for this process.
        """
        if not self._enabled:
            logger.info(
                "Redis cache disabled - enable in Settings panel or set ENABLE_CACHE=true",
                stage=Stage.INITIALIZATION,
            )
            return

        self._running = True
        try:
            await self._connection.ensure_ready()
        except CacheConnectionError as e:
            self._retry_after = time.monotonic() + self._reconnect_cooldown
            logger.warning(
                "Redis unavailable at startup; continuing without cache",
                stage=Stage.INITIALIZATION,
                error=e.message,
            )
        except ConfigurationError as e:
            self._disable(e)

        self._stats.record_availability(self.status is CacheAvailability.READY)

    async def stop(self) -> None:
        """Close the Redis connection."""
        if not self._running:
            return
        self._running = False
        await self._connection.disconnect()
        self._stats.record_availability(False)

    def _disable(self, error: Exception) -> None:
        self._enabled = False
        self._running = False
        logger.error(
            "Failed to initialize Redis cache; cache disabled",
            stage=Stage.INITIALIZATION,
            error=str(error),
        )

    # =========================================================================
    # Internals
    # =========================================================================

    def _namespaced(self, key: str) -> str:
        return f"{self._prefix}{key}"

    def _effective_ttl(self, ttl_seconds: int | None) -> int:
        ttl = ttl_seconds if ttl_seconds and ttl_seconds > 0 else self._default_ttl
        return min(ttl, self._max_ttl)

    async def _acquire(self, operation: str, *, force: bool = False) -> redis.Redis | None:
        """
        Get a ready client, or None if the operation should no-op.

        Args:
            operation: Operation name for stats and logs
            force: Ignore the reconnect cooldown (health checks)
        """
        if not self._enabled or not self._running:
            return None

        if (
            not force
            and self._connection.state is ConnectionState.DISCONNECTED
            and time.monotonic() < self._retry_after
        ):
            return None

        try:
            client = await self._connection.ensure_ready()
        except CacheConnectionError as e:
            self._retry_after = time.monotonic() + self._reconnect_cooldown
            self._stats.record_error(operation, e)
            self._stats.record_availability(False)
            logger.warning("Cache unavailable", stage=Stage.REDIS_READY_WAIT, operation=operation, error=e.message)
            return None
        except ConfigurationError as e:
            self._disable(e)
            return None

        self._retry_after = 0.0
        return client

    async def _degrade(
        self, operation: str, stage: Stage, error: Exception, client: redis.Redis, **context: Any
    ) -> None:
        """Record a failed command; drop the connection if the transport broke."""
        self._stats.record_error(operation, error)
        logger.warning(
            f"Cache {operation} error",
            stage=stage,
            error=str(error),
            error_type=type(error).__name__,
            **context,
        )
        if isinstance(error, TRANSPORT_ERRORS):
            await self._connection.invalidate(client)
            self._stats.record_availability(False)

    # =========================================================================
    # Byte Operations
    # =========================================================================

    async def get(self, key: str) -> bytes | None:
        """
        Get a cached payload.

        STAGE-CACHE.1: Lookup

        Returns:
            Payload bytes, or None on miss / disabled / backend error
        """
        client = await self._acquire("get")
        if client is None:
            return None

        started = time.perf_counter()
        try:
            value = await client.get(self._namespaced(key))
        except BACKEND_ERRORS as e:
            await self._degrade("get", Stage.CACHE_GET, e, client, key=key)
            return None
        elapsed = time.perf_counter() - started

        if value is None:
            self._stats.record_miss("get", elapsed)
            logger.debug("Cache miss", stage=Stage.CACHE_GET, key=key)
            return None

        self._stats.record_hit("get", elapsed)
        logger.debug("Cache hit", stage=Stage.CACHE_GET, key=key)
        return value

    async def set(self, key: str, payload: bytes, ttl_seconds: int | None = None) -> bool:
        """
        Store a payload with a TTL.

        STAGE-CACHE.2: Population

        Args:
            key: Logical cache key
            payload: Opaque bytes
            ttl_seconds: Lifetime; default TTL when None, clamped to CACHE_MAX_TTL

        Returns:
            True if stored
        """
        client = await self._acquire("set")
        if client is None:
            return False

        ttl = self._effective_ttl(ttl_seconds)
        started = time.perf_counter()
        try:
            result = await client.set(self._namespaced(key), payload, ex=ttl)
        except BACKEND_ERRORS as e:
            self._stats.record_set(False)
            await self._degrade("set", Stage.CACHE_SET, e, client, key=key)
            return False

        success = bool(result)
        self._stats.record_set(success, time.perf_counter() - started)
        logger.debug("Cache set", stage=Stage.CACHE_SET, key=key, ttl=ttl, size=len(payload))
        return success

    async def delete(self, key: str) -> bool:
        """
        Delete one key.

        Returns:
            True if the key existed and was removed
        """
        client = await self._acquire("delete")
        if client is None:
            return False

        started = time.perf_counter()
        try:
            removed = await client.delete(self._namespaced(key))
        except BACKEND_ERRORS as e:
            await self._degrade("delete", Stage.CACHE_DELETE, e, client, key=key)
            return False

        self._stats.record_delete(removed, time.perf_counter() - started)
        return removed > 0

    async def delete_pattern(self, pattern: str) -> int:
        """
        Delete every key matching a glob pattern.

        STAGE-CACHE.4: Pattern invalidation

        Keys are enumerated with incremental SCAN (never KEYS, which blocks
        the server) and deleted in batches.

        Args:
            pattern: Redis glob over logical keys, e.g. ``/api/v1/metrics[:/]*``

        Returns:
            Number of keys removed
        """
        client = await self._acquire("delete_pattern")
        if client is None:
            return 0

        started = time.perf_counter()
        removed = 0
        try:
            removed = await self._scan_delete(client, f"{escape_glob(self._prefix)}{pattern}")
        except _PartialDelete as partial:
            removed = partial.removed
            await self._degrade(
                "delete_pattern", Stage.CACHE_DELETE_PATTERN, partial.error, client,
                pattern=pattern, removed=removed,
            )
            return removed

        self._stats.record_invalidation(removed, time.perf_counter() - started)
        logger.info(
            "Cache pattern invalidated",
            stage=Stage.CACHE_DELETE_PATTERN,
            pattern=pattern,
            removed=removed,
        )
        return removed

    async def clear(self) -> bool:
        """
        Delete every key in this store's namespace.

        STAGE-CACHE.5: Administrative clear

        Returns:
            True if the namespace was emptied
        """
        client = await self._acquire("clear")
        if client is None:
            return False

        try:
            removed = await self._scan_delete(client, f"{escape_glob(self._prefix)}*")
        except _PartialDelete as partial:
            await self._degrade(
                "clear", Stage.CACHE_CLEAR, partial.error, client, removed=partial.removed
            )
            return False

        self._stats.record_delete(removed)
        logger.info("Cache cleared", stage=Stage.CACHE_CLEAR, removed=removed)
        return True

    async def _scan_delete(self, client: redis.Redis, match: str) -> int:
        removed = 0
        batch: list[bytes] = []
        try:
            async for key in client.scan_iter(match=match, count=SCAN_BATCH_SIZE):
                batch.append(key)
                if len(batch) >= SCAN_BATCH_SIZE:
                    removed += await client.delete(*batch)
                    batch.clear()
            if batch:
                removed += await client.delete(*batch)
        except BACKEND_ERRORS as e:
            raise _PartialDelete(removed, e) from e
        return removed

    # =========================================================================
    # Typed Operations
    # =========================================================================

    async def get_value(self, key: str, codec: CacheCodec[T]) -> T | None:
        """
        Get and decode a cached value.

        A payload that fails to decode is treated as a miss; the entry is
        left for its TTL to remove.
        """
        payload = await self.get(key)
        if payload is None:
            return None
        try:
            return codec.decode(payload)
        except CacheSerializationError as e:
            self._stats.record_error("decode", e)
            logger.warning("Corrupt cache payload", stage=Stage.CACHE_CODEC, key=key, error=e.message)
            return None

    async def set_value(
        self, key: str, value: T, codec: CacheCodec[T], ttl_seconds: int | None = None
    ) -> bool:
        """Encode and store a value; an unencodable value is not stored."""
        try:
            payload = codec.encode(value)
        except CacheSerializationError as e:
            self._stats.record_error("encode", e)
            logger.warning("Unencodable cache value", stage=Stage.CACHE_CODEC, key=key, error=e.message)
            return False
        return await self.set(key, payload, ttl_seconds)

    # =========================================================================
    # Health & Stats
    # =========================================================================

    async def health_check(self) -> bool:
        """
        PING the backend.

        STAGE-CACHE.6: Health

        A disabled cache is healthy by definition: the service is designed
        to run without it.
        """
        if not self._enabled:
            return True

        client = await self._acquire("health", force=True)
        if client is None:
            return False

        try:
            await client.ping()
        except BACKEND_ERRORS as e:
            await self._degrade("health", Stage.CACHE_HEALTH, e, client)
            return False

        self._stats.record_availability(True)
        return True

    async def get_stats(self) -> dict[str, Any] | None:
        """
        Backend statistics.

        STAGE-CACHE.7: Stats

        Returns:
            None when disabled, otherwise::

                {"status": "ready", "connected": True, "key_count": 42,
                 "backend_stats": {"stats": {...INFO stats...}, "memory": {...}}}
        """
        if not self._enabled:
            return None

        client = await self._acquire("stats", force=True)
        if client is None:
            return {
                "status": self.status.value,
                "connected": False,
                "key_count": 0,
                "backend_stats": {},
            }

        key_count = 0
        try:
            async for _ in client.scan_iter(match=f"{escape_glob(self._prefix)}*", count=SCAN_BATCH_SIZE):
                key_count += 1
        except BACKEND_ERRORS as e:
            await self._degrade("stats", Stage.CACHE_STATS, e, client)
            return {
                "status": self.status.value,
                "connected": False,
                "key_count": 0,
                "backend_stats": {},
            }

        backend_stats: dict[str, Any] = {}
        for section in ("stats", "memory"):
            try:
                backend_stats[section] = await client.info(section)
            except BACKEND_ERRORS as e:
                logger.debug("INFO section unavailable", stage=Stage.CACHE_STATS, section=section, error=str(e))

        return {
            "status": self.status.value,
            "connected": True,
            "key_count": key_count,
            "backend_stats": backend_stats,
        }


class _PartialDelete(Exception):
    """Carries the count removed before a backend error interrupted a scan-delete."""

    def __init__(self, removed: int, error: Exception):
        super().__init__(str(error))
        self.removed = removed
        self.error = error
