"""
Error Handling Middleware - Educational Documentation
======================================================

WHAT IS CENTRALIZED ERROR HANDLING?
------------------------------------
Centralized error handling provides a consistent way to handle exceptions
across your entire application. Instead of try/except in every route handler,
middleware catches all exceptions and formats them consistently.

FASTAPI ERROR HANDLING:
-----------------------
FastAPI provides multiple error handling mechanisms:
1. Exception handlers (@app.exception_handler) - used for the GovernanceError
   family (404 / 409 / 500 with the error envelope), see app.py
2. Middleware (this approach) - last line of defense for anything else

Every error body uses the API error envelope:

    {"success": false, "error": {"error": "...", "message": "...", ...}}
"""

import traceback
from collections.abc import Callable

from fastapi import FastAPI, Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from src.application.api.responses import error_response
from src.core.config.constants import HEADER_REQUEST_ID
from src.core.logging.logger import get_logger, get_request_id
from src.infrastructure.monitoring.metrics_collector import MetricsCollector

logger = get_logger(__name__)


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """
    Middleware for centralized error handling and formatting.

    ERROR HANDLING STRATEGY:
    ------------------------
    This middleware catches ALL exceptions that aren't handled by:
    - Route handlers
    - Other middleware
    - FastAPI exception handlers

    Cache failures never reach this point: the cache store degrades to a
    miss instead of raising.
    """

    def __init__(self, app, include_traceback: bool = False, metrics: MetricsCollector | None = None):
        """
        Initialize error handling middleware.

        Args:
            app: The ASGI application
            include_traceback: Whether to include stack traces in error responses
                              (should be False in production for security)
            metrics: Receives a 500 request sample per unhandled error
        """
        super().__init__(app)
        self.include_traceback = include_traceback
        self.metrics = metrics

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """
        Catch and handle all exceptions during request processing.

        EXCEPTION HANDLING FLOW:
        ------------------------
        1. Try to process the request normally
        2. If exception occurs:
           a. Log the error with full context
           b. Record error metrics
           c. Return the error envelope (don't crash)
        """
        try:
            return await call_next(request)
        except Exception as e:
            method = request.method
            path = request.url.path
            error_type = type(e).__name__

            logger.error(
                f"Unhandled exception in request: {method} {path}",
                method=method,
                path=path,
                error_type=error_type,
                error_message=str(e),
                exc_info=True,
            )

            if self.metrics is not None:
                self.metrics.record_http_request(method, 500)

            request_id = getattr(request.state, "request_id", None) or get_request_id()
            extra = {"error_type": error_type, "request_id": request_id}
            # Stack traces only in development
            if self.include_traceback:
                extra["traceback"] = traceback.format_exc()
                extra["detail"] = str(e)

            response = error_response(
                500,
                "internal_server_error",
                "An unexpected error occurred while processing your request",
                **extra,
            )
            if request_id:
                response.headers[HEADER_REQUEST_ID] = request_id
            return response


def add_error_handling_middleware(
    app: FastAPI, include_traceback: bool = False, metrics: MetricsCollector | None = None
):
    """
    Add error handling middleware to the FastAPI application.

    Args:
        app: FastAPI application instance
        include_traceback: Whether to include stack traces in responses
        metrics: Optional metrics sink
    """
    app.add_middleware(ErrorHandlingMiddleware, include_traceback=include_traceback, metrics=metrics)
    logger.info("Error handling middleware registered", include_traceback=include_traceback)
