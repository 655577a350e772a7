"""
Request Logging Middleware - Educational Documentation
=======================================================

WHAT IS MIDDLEWARE?
-------------------
Middleware is code that runs BEFORE and AFTER each request is processed.
It sits between the client and your route handlers.

Request Flow:
    Client → Middleware 1 (before) → Middleware 2 (before) → Route Handler

Response Flow:
    Route Handler → Middleware 2 (after) → Middleware 1 (after) → Client

REQUEST ID CORRELATION:
-----------------------
Every request gets an ID (the caller's X-Request-ID, or a fresh UUID). It
is stored in a context variable, so every log line emitted while handling
the request carries it, including lines from detached cache writes and
invalidations, which inherit the context when they are spawned. The ID is
echoed back in the X-Request-ID response header.
"""

import time
import uuid
from collections.abc import Callable

from fastapi import FastAPI, Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from src.core.config.constants import HEADER_CACHE_STATUS, HEADER_REQUEST_ID
from src.core.logging.logger import clear_request_id, get_logger, set_request_id
from src.infrastructure.monitoring.metrics_collector import MetricsCollector

logger = get_logger(__name__)

# ============================================================================
# CONFIGURATION
# ============================================================================

# Headers that contain sensitive information and should not be logged
SENSITIVE_HEADERS = {
    "authorization",  # Bearer tokens, Basic auth
    "cookie",  # Session cookies
    "x-api-key",  # API keys
    "x-auth-token",  # Authentication tokens
}


# ============================================================================
# REQUEST LOGGING MIDDLEWARE
# ============================================================================


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Middleware for logging HTTP requests and responses.

    LOGGING STRATEGY:
    -----------------
    This middleware logs:
    - Request: method, path, query params, headers (sanitized)
    - Response: status code, cache status, duration

    It does NOT log request/response bodies or sensitive headers.
    """

    def __init__(self, app, log_level: str = "INFO", metrics: MetricsCollector | None = None):
        """
        Initialize the request logging middleware.

        Args:
            app: The ASGI application (FastAPI app)
            log_level: Log level for request logs (DEBUG, INFO, WARNING, ERROR)
            metrics: Receives one sample per completed request
        """
        super().__init__(app)
        self.log_level = log_level.lower()
        self.metrics = metrics

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """
        Process each request and log details.

        Timing uses time.perf_counter() (monotonic, high resolution).
        """
        request_id = request.headers.get(HEADER_REQUEST_ID) or str(uuid.uuid4())
        set_request_id(request_id)
        # Outer middleware runs in a different context; scope state is shared
        request.state.request_id = request_id

        start_time = time.perf_counter()
        method = request.method
        path = request.url.path
        log = getattr(logger, self.log_level)

        log(
            f"Incoming request: {method} {path}",
            method=method,
            path=path,
            query_params=str(request.query_params) if request.query_params else None,
            headers=self._sanitize_headers(dict(request.headers)),
            client_host=request.client.host if request.client else None,
        )

        try:
            response = await call_next(request)
            duration = time.perf_counter() - start_time

            log(
                f"Request completed: {method} {path}",
                method=method,
                path=path,
                status_code=response.status_code,
                cache=response.headers.get(HEADER_CACHE_STATUS),
                duration_seconds=round(duration, 4),
            )
            if self.metrics is not None:
                self.metrics.record_http_request(method, response.status_code)

            response.headers[HEADER_REQUEST_ID] = request_id
            return response

        except Exception as e:
            duration = time.perf_counter() - start_time
            logger.error(
                f"Request failed: {method} {path}",
                method=method,
                path=path,
                error=str(e),
                error_type=type(e).__name__,
                duration_seconds=round(duration, 4),
                exc_info=True,
            )
            # Re-raise so the error handling middleware can format it
            raise
        finally:
            clear_request_id()

    def _sanitize_headers(self, headers: dict) -> dict:
        """Replace sensitive header values with "[REDACTED]"."""
        return {
            key: "[REDACTED]" if key.lower() in SENSITIVE_HEADERS else value
            for key, value in headers.items()
        }


# ============================================================================
# HELPER FUNCTION FOR APP REGISTRATION
# ============================================================================


def add_request_logging_middleware(
    app: FastAPI, log_level: str = "INFO", metrics: MetricsCollector | None = None
):
    """
    Add request logging middleware to the FastAPI application.

    Args:
        app: FastAPI application instance
        log_level: Log level for request logs
        metrics: Optional metrics sink
    """
    app.add_middleware(RequestLoggingMiddleware, log_level=log_level, metrics=metrics)
    logger.info("Request logging middleware registered", log_level=log_level)
