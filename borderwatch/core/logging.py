"""
Structured logging with per-request correlation IDs.

JSON output in production, coloured console output while developing.
"""

import logging
import sys
import uuid
from contextvars import ContextVar
from typing import Any

import structlog
from structlog.types import Processor

from borderwatch.core.config import get_settings

correlation_id_var: ContextVar[str] = ContextVar("correlation_id", default="")

# Libraries that are noisy at INFO
_QUIET_LOGGERS = ("uvicorn", "uvicorn.access", "sqlalchemy.engine", "httpx", "httpcore")

_SECRET_KEYS = {"api_key", "gemini_api_key", "x-api-key", "authorization"}
_PAYLOAD_KEYS = {"image_base64", "image", "frame", "inline_data"}


def get_correlation_id() -> str:
    """Return the correlation ID bound to the current context."""
    return correlation_id_var.get()


def set_correlation_id(correlation_id: str | None = None) -> str:
    """
    Bind a correlation ID to the current context.

    Args:
        correlation_id: Incoming ID, usually from the X-Correlation-ID header.
            A fresh UUID is generated when missing.

    Returns:
        str: The ID that was bound.
    """
    cid = correlation_id or str(uuid.uuid4())
    correlation_id_var.set(cid)
    return cid


def add_correlation_id(
    logger: logging.Logger,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """Structlog processor that stamps the correlation ID on each event."""
    correlation_id = get_correlation_id()
    if correlation_id:
        event_dict["correlation_id"] = correlation_id
    return event_dict


def redact_sensitive(
    logger: logging.Logger,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """Mask credentials and drop inline image payloads from events."""
    for key in list(event_dict):
        lowered = key.lower()
        if lowered in _SECRET_KEYS:
            event_dict[key] = "***"
        elif lowered in _PAYLOAD_KEYS:
            value = event_dict[key]
            event_dict[key] = f"<{len(value)} chars>" if isinstance(value, str) else "<omitted>"
    return event_dict


def drop_color_message_key(
    logger: logging.Logger,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """Remove the duplicate ``color_message`` key uvicorn attaches."""
    event_dict.pop("color_message", None)
    return event_dict


def setup_logging() -> None:
    """
    Configure structlog and the standard library root logger.

    Safe to call more than once; the last call wins.
    """
    settings = get_settings()
    log_level = getattr(logging, settings.log_level.upper(), logging.INFO)

    shared: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
        add_correlation_id,
        redact_sensitive,
        drop_color_message_key,
    ]

    if settings.log_format == "json":
        processors: list[Processor] = [
            *shared,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors = [
            *shared,
            structlog.dev.ConsoleRenderer(colors=True),
        ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=log_level,
    )

    for logger_name in _QUIET_LOGGERS:
        logging.getLogger(logger_name).setLevel(logging.WARNING)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """
    Get a structured logger instance.

    Example:
        >>> logger = get_logger(__name__)
        >>> logger.info("plate_recognized", plate="AKH123B", severity="High")
    """
    return structlog.get_logger(name)
