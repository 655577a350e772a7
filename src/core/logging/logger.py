#!/usr/bin/env python3
"""
Structured Logging Module using structlog

This module provides production-grade structured logging with:
- Request ID correlation across middleware, handlers and detached tasks
- Stage identifiers for execution flow
- JSON formatting for log aggregation
- Automatic secret redaction (Redis URLs, bearer tokens)
- Context processors for automatic field injection

Architectural Decision: structlog for production logging
- Context-aware logging with automatic field injection
- JSON output for log aggregation
- Context variables survive ``asyncio.create_task`` (tasks copy the
  context), so detached cache writes keep the request ID

Author: System Architect
Date: 2025-12-05
"""

import logging
import re
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from enum import Enum

import structlog
from structlog.types import EventDict, WrappedLogger

# Context variable for the request ID (per-task storage)
request_id_ctx: ContextVar[str | None] = ContextVar("request_id", default=None)

_REDIS_URL_PASSWORD = re.compile(r"(rediss?://[^:/@\s]*:)[^@\s]+@")
_BEARER_TOKEN = re.compile(r"\bBearer\s+[A-Za-z0-9._~+/=-]+")


def add_request_id(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """
    Add request ID to log event from context variable.

    STAGE-L.1: Request ID injection
    """
    request_id = request_id_ctx.get()
    if request_id:
        event_dict["request_id"] = request_id
    return event_dict


def add_timestamp(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """
    Add ISO timestamp to log event.

    STAGE-L.2: Timestamp injection
    """
    event_dict["timestamp"] = datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")
    return event_dict


def redact_secrets(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """
    Redact credentials from log values.

    STAGE-L.3: Secret redaction

    Patterns redacted:
    - Passwords embedded in redis:// URLs → redis://user:[REDACTED]@
    - Bearer tokens → Bearer [REDACTED]

    Applied to the event message and every string field, since connection
    errors from redis-py frequently echo the URL.
    """
    for field, value in list(event_dict.items()):
        if isinstance(value, str):
            value = _REDIS_URL_PASSWORD.sub(r"\1[REDACTED]@", value)
            value = _BEARER_TOKEN.sub("Bearer [REDACTED]", value)
            event_dict[field] = value
    return event_dict


def unwrap_enums(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """
    Render enum fields (``stage=Stage.CACHE_GET``) as their plain values.

    STAGE-L.5: Enum flattening
    """
    for field, value in list(event_dict.items()):
        if isinstance(value, Enum):
            event_dict[field] = value.value
    return event_dict


def add_log_level_name(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """
    Add log level name to event dict.

    STAGE-L.4: Log level injection
    """
    if "level" in event_dict:
        event_dict["level"] = event_dict["level"].upper()
    return event_dict


def setup_logging(log_level: str | None = None, log_format: str | None = None) -> None:
    """
    Setup structured logging with structlog.

    STAGE-L: Logging initialization

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: Log format ('json' or 'console')
    """
    from src.core.config.settings import get_settings

    if log_level is None or log_format is None:
        settings = get_settings()
        log_level = log_level or settings.logging.LOG_LEVEL
        log_format = log_format or settings.logging.LOG_FORMAT

    # Configure standard library logging
    logging.basicConfig(
        format="%(message)s", stream=sys.stdout, level=getattr(logging, log_level.upper())
    )

    # Choose renderer based on format
    if log_format == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=True)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            add_request_id,
            add_timestamp,
            structlog.stdlib.add_log_level,
            add_log_level_name,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            unwrap_enums,
            redact_secrets,
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """
    Get a structured logger instance.

    Args:
        name: Logger name (typically __name__)

    Returns:
        BoundLogger: Structured logger instance

    Usage:
        logger = get_logger(__name__)
        logger.info("message", key="value", stage=Stage.CACHE_GET)
    """
    return structlog.get_logger(name)


def set_request_id(request_id: str) -> None:
    """
    Set request ID in context for current request.

    This should be called at the start of each request to enable
    correlation across all log entries.
    """
    request_id_ctx.set(request_id)


def get_request_id() -> str | None:
    """Get current request ID from context."""
    return request_id_ctx.get()


def clear_request_id() -> None:
    """Clear request ID from context."""
    request_id_ctx.set(None)


# Convenience function for logging with stage information
def log_stage(
    logger: structlog.stdlib.BoundLogger, stage: str, message: str, level: str = "info", **kwargs
) -> None:
    """
    Log a message with stage information.

    Args:
        logger: Logger instance
        stage: Stage identifier (e.g., Stage.CACHE_GET)
        message: Log message
        level: Log level (debug, info, warning, error, critical)
        **kwargs: Additional fields to log

    Usage:
        log_stage(logger, Stage.WARM_RUN, "Warming complete", warmed=42)
    """
    log_func = getattr(logger, level.lower())
    log_func(message, stage=getattr(stage, "value", stage), **kwargs)
