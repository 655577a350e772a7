"""
Redis Connection Manager

Owns the one Redis client (and its pool) used by the cache store, and the
connection state machine around it.

Architecture:
    ConnectionManager
        ├── client factory      (redis.asyncio client, injectable for tests)
        ├── establish           (PING with bounded, jittered reconnect attempts)
        └── state machine       (disconnected → connecting → ready → closing)

State Transitions:
    disconnected --ensure_ready()--> connecting --PING ok--> ready
    connecting   --attempts exhausted--> disconnected
    ready        --transport error (invalidate)--> disconnected
    any          --disconnect()--> closing --> disconnected

Retry Layers:
    - Per command: redis-py ``Retry(ExponentialBackoff(cap, base), retries)``
      retries transport errors on the same connection pool
    - Per connection: tenacity bounds the number of PING attempts made by a
      forced reconnect; concurrent callers share one attempt

Author: Refactored for clarity and maintainability
Date: 2025-12-13
"""

import asyncio
from collections.abc import Callable

import redis.asyncio as redis
from redis.asyncio.retry import Retry
from redis.backoff import ExponentialBackoff
from redis.exceptions import ConnectionError, RedisError, TimeoutError
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential_jitter

from src.core.config.constants import ConnectionState, Stage
from src.core.config.settings import RedisSettings
from src.core.exceptions import CacheConnectionError, ConfigurationError
from src.core.logging.logger import get_logger

logger = get_logger(__name__)

ClientFactory = Callable[[], redis.Redis]

# Errors that mean "the connection is gone", as opposed to a bad command
TRANSPORT_ERRORS = (ConnectionError, TimeoutError, OSError)


class ConnectionManager:
    """
    Manages the Redis connection lifecycle.

    Responsibility: Connection establishment, bounded waiting, reconnection
    and cleanup. Nothing else in the service touches the Redis connection.

    Why a state machine?
    - Requests arriving while a connection attempt is in flight wait for it
      (bounded by REDIS_READY_TIMEOUT) instead of stampeding the server
    - A dropped connection is rebuilt lazily by the next operation
    - Shutdown is distinguishable from failure
    """

    def __init__(self, settings: RedisSettings, client_factory: ClientFactory | None = None):
        """
        Initialize connection manager.

        Args:
            settings: Redis settings group
            client_factory: Builds an unconnected client; defaults to a pooled
                            redis.asyncio client configured from settings
        """
        self._settings = settings
        self._client_factory = client_factory or self._build_client
        self._client: redis.Redis | None = None
        self._state = ConnectionState.DISCONNECTED
        self._connect_task: asyncio.Task | None = None

    # -------------------------------------------------------------------------
    # State
    # -------------------------------------------------------------------------

    @property
    def state(self) -> ConnectionState:
        return self._state

    def is_connected(self) -> bool:
        """Check if connected to Redis."""
        return self._state is ConnectionState.READY and self._client is not None

    def get_client(self) -> redis.Redis | None:
        """Get the current Redis client, if any."""
        return self._client

    # -------------------------------------------------------------------------
    # Client construction
    # -------------------------------------------------------------------------

    def _build_client(self) -> redis.Redis:
        """
        Build a pooled client with per-command retry.

        Payloads are opaque bytes, so responses are not decoded. The client
        owns its pool, so closing the client releases every connection.
        """
        settings = self._settings
        backoff = ExponentialBackoff(cap=settings.REDIS_BACKOFF_CAP, base=settings.REDIS_BACKOFF_BASE)

        return redis.Redis(
            host=settings.REDIS_HOST,
            port=settings.REDIS_PORT,
            db=settings.REDIS_DB,
            password=settings.REDIS_PASSWORD,
            max_connections=settings.REDIS_MAX_CONNECTIONS,
            socket_timeout=settings.REDIS_SOCKET_TIMEOUT,
            socket_connect_timeout=settings.REDIS_SOCKET_CONNECT_TIMEOUT,
            health_check_interval=settings.REDIS_HEALTH_CHECK_INTERVAL,
            retry=Retry(backoff, settings.REDIS_MAX_RETRIES),
            retry_on_error=[ConnectionError, TimeoutError],
            decode_responses=False,
        )

    # -------------------------------------------------------------------------
    # Connection establishment
    # -------------------------------------------------------------------------

    async def ensure_ready(self) -> redis.Redis:
        """
        Return a ready client, connecting first if needed.

        STAGE-REDIS.2: Ready wait

        - ready: returns immediately
        - connecting: joins the in-flight attempt
        - disconnected: starts a new attempt shared by all concurrent callers

        Waiting is bounded by REDIS_READY_TIMEOUT; the shared attempt keeps
        running after a caller gives up.

        Raises:
            CacheConnectionError: Attempt failed, timed out, or manager closing
        """
        if self._state is ConnectionState.READY and self._client is not None:
            return self._client

        if self._state is ConnectionState.CLOSING:
            raise CacheConnectionError("Redis connection is closing")

        if self._connect_task is None or self._connect_task.done():
            self._state = ConnectionState.CONNECTING
            self._connect_task = asyncio.create_task(self._establish(), name="redis-connect")
            self._connect_task.add_done_callback(self._on_connect_done)

        try:
            return await asyncio.wait_for(
                asyncio.shield(self._connect_task), timeout=self._settings.REDIS_READY_TIMEOUT
            )
        except asyncio.TimeoutError:
            logger.warning(
                "Timed out waiting for Redis connection",
                stage=Stage.REDIS_READY_WAIT,
                timeout=self._settings.REDIS_READY_TIMEOUT,
            )
            raise CacheConnectionError(
                "Timed out waiting for Redis connection",
                details={"timeout": self._settings.REDIS_READY_TIMEOUT},
            )

    def _on_connect_done(self, task: asyncio.Task) -> None:
        failed = task.cancelled() or task.exception() is not None
        if failed and self._state is ConnectionState.CONNECTING:
            self._state = ConnectionState.DISCONNECTED

    async def _establish(self) -> redis.Redis:
        """
        Create a client and verify it with PING.

        STAGE-REDIS.1: Connection establishment
        """
        settings = self._settings

        @retry(
            stop=stop_after_attempt(max(settings.REDIS_MAX_RETRIES, 1)),
            wait=wait_exponential_jitter(
                initial=settings.REDIS_BACKOFF_BASE, max=settings.REDIS_BACKOFF_CAP
            ),
            retry=retry_if_exception_type(TRANSPORT_ERRORS),
            before_sleep=lambda retry_state: logger.info(
                "Redis connect retry",
                stage=Stage.REDIS_CONNECT,
                attempt=retry_state.attempt_number,
                delay=round(retry_state.idle_for, 3),
            ),
            reraise=True,
        )
        async def _attempt() -> redis.Redis:
            try:
                client = self._client_factory()
            except (ValueError, TypeError) as e:
                raise ConfigurationError.from_exception(e, message=f"Invalid Redis configuration: {e}")
            try:
                await client.ping()
            except BaseException:
                await self._close_client(client)
                raise
            return client

        try:
            client = await _attempt()
        except (RedisError, OSError) as e:
            logger.warning(
                "Failed to connect to Redis",
                stage=Stage.REDIS_CONNECT,
                host=settings.REDIS_HOST,
                port=settings.REDIS_PORT,
                error=str(e),
            )
            raise CacheConnectionError.from_exception(
                e,
                message=f"Failed to connect to Redis: {e}",
                host=settings.REDIS_HOST,
                port=settings.REDIS_PORT,
            )

        if self._state is ConnectionState.CLOSING:
            await self._close_client(client)
            raise CacheConnectionError("Redis connection closed during connect")

        self._client = client
        self._state = ConnectionState.READY

        logger.info(
            "Redis connected successfully",
            stage=Stage.REDIS_CONNECT,
            host=settings.REDIS_HOST,
            port=settings.REDIS_PORT,
            db=settings.REDIS_DB,
        )
        return client

    # -------------------------------------------------------------------------
    # Teardown
    # -------------------------------------------------------------------------

    async def invalidate(self, client: redis.Redis | None = None) -> None:
        """
        Drop the current client after a transport error.

        The next ensure_ready() forces a reconnect. A stale ``client`` (one
        already replaced by a newer connection) is ignored.
        """
        if client is not None and client is not self._client:
            return
        if self._state is not ConnectionState.READY:
            return

        stale = self._client
        self._client = None
        self._state = ConnectionState.DISCONNECTED

        logger.warning("Redis connection lost", stage=Stage.REDIS_DISCONNECT)

        if stale is not None:
            await self._close_client(stale)

    async def disconnect(self) -> None:
        """
        Close the client and pool.

        STAGE-REDIS.3: Connection cleanup
        """
        self._state = ConnectionState.CLOSING

        if self._connect_task is not None and not self._connect_task.done():
            self._connect_task.cancel()
            await asyncio.gather(self._connect_task, return_exceptions=True)
        self._connect_task = None

        if self._client is not None:
            await self._close_client(self._client)
            self._client = None

        self._state = ConnectionState.DISCONNECTED

        logger.info("Redis disconnected", stage=Stage.REDIS_DISCONNECT)

    async def _close_client(self, client: redis.Redis) -> None:
        try:
            await client.aclose()
        except (RedisError, OSError) as e:
            logger.debug("Error closing Redis client", stage=Stage.REDIS_DISCONNECT, error=str(e))
