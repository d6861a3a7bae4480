"""Structured logging for the TinyDates service.

Standard library logging is routed through `structlog`. Profile secrets and
session tokens are masked before any renderer sees the event.
"""

import logging
import sys
from typing import Any, Dict, MutableMapping, Optional

import structlog
from structlog.types import Processor

from src.config import settings

# Event keys whose values must never reach a log sink
SECRET_KEYS = frozenset({"password", "secret", "token", "authorization"})
REDACTED = "***"


def redact_secrets(_logger: Any, _method_name: str, event_dict: MutableMapping[str, Any]) -> MutableMapping[str, Any]:
    """Mask credential values in a log event."""
    for key in event_dict:
        if key.lower() in SECRET_KEYS and event_dict[key]:
            event_dict[key] = REDACTED
    return event_dict


def configure_logging() -> None:
    """
    Configure structured logging for the service.

    Development renders with `ConsoleRenderer`; every other environment emits
    one JSON object per line, tagged with the app name and environment.
    """
    log_level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)

    logging.basicConfig(
        format="%(message)s",
        level=log_level,
        stream=sys.stdout,
    )

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        redact_secrets,
    ]

    if settings.ENVIRONMENT.lower() == "development":
        processors.append(structlog.dev.ConsoleRenderer())
    else:
        processors.append(structlog.processors.JSONRenderer())

    structlog.configure(
        processors=processors,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
    structlog.contextvars.bind_contextvars(app=settings.APP_NAME, environment=settings.ENVIRONMENT)


def get_logger(name: str, **initial_values: Any) -> structlog.stdlib.BoundLogger:
    """Return a logger for `name` with `initial_values` bound to every event."""
    return structlog.get_logger(name).bind(**initial_values)  # type: ignore


def log_error(
    logger: structlog.stdlib.BoundLogger,
    error: Exception,
    message: Optional[str] = None,
    extra: Optional[Dict[str, Any]] = None,
) -> None:
    """
    Log an exception at error level with its structured context.

    TinyDates errors contribute their `details` and HTTP status code.

    Args:
        logger (structlog.stdlib.BoundLogger): Logger to write to.
        error (Exception): The exception being reported.
        message (Optional[str], optional): Event name. Defaults to "An error occurred".
        extra (Optional[Dict[str, Any]], optional): Additional fields; not modified.
    """
    context = dict(extra or {})
    context["error_type"] = error.__class__.__name__
    context["error_message"] = str(error)

    if hasattr(error, "details"):
        context["error_details"] = error.details
    if hasattr(error, "status_code"):
        context["status_code"] = error.status_code

    logger.error(message or "An error occurred", **context, exc_info=error)
