"""
Logging Configuration

This module provides structured logging configuration for PostPilot
using structlog, plus small helpers for the events worth auditing:
platform API calls, user actions and business events.

Request-scoped fields (``request_id``) are bound through
``structlog.contextvars`` by the HTTP middleware and merged into every
entry logged while the request is handled.
"""

import logging
import sys
from typing import Any, Dict, Optional

import structlog
from structlog.types import Processor

from postpilot import __version__
from postpilot.config.settings import get_settings

# Credentials that may show up in keyword context and must never be written out
SECRET_FIELDS = frozenset({
    "access_token",
    "refresh_token",
    "api_key",
    "client_secret",
    "authorization",
})


def setup_logging() -> None:
    """Set up structured logging for the application."""
    settings = get_settings()

    # Configure standard library logging
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
    )

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        redact_secrets,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if settings.is_development:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))
    else:
        processors.extend([
            add_app_context,
            structlog.processors.JSONRenderer(),
        ])

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        context_class=dict,
        cache_logger_on_first_use=True,
    )


def redact_secrets(logger: Any, name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    """Mask OAuth tokens and API keys passed as log context."""
    for key in SECRET_FIELDS.intersection(event_dict):
        if event_dict[key]:
            event_dict[key] = "***"
    return event_dict


def add_app_context(logger: Any, name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    event_dict["app"] = "postpilot"
    event_dict["version"] = __version__
    event_dict["environment"] = get_settings().environment
    return event_dict


def bind_request_context(request_id: str, **kwargs) -> None:
    """Start a fresh logging context for one HTTP request."""
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(request_id=request_id, **kwargs)


def log_external_api_call(
    service: str,
    operation: str,
    success: bool,
    duration_ms: Optional[float] = None,
    **kwargs
) -> None:
    """Log a call to a platform API; failures are logged at error level."""
    logger = structlog.get_logger("external_api")
    log_data = {"service": service, "operation": operation, "success": success, **kwargs}

    if duration_ms is not None:
        log_data["duration_ms"] = round(duration_ms, 2)

    if success:
        logger.info("External API call successful", **log_data)
    else:
        logger.error("External API call failed", **log_data)


def log_user_action(
    user_id: str,
    action: str,
    resource_type: Optional[str] = None,
    resource_id: Optional[str] = None,
    **kwargs
) -> None:
    """Log user action for audit trail."""
    structlog.get_logger("user_action").info(
        "User action",
        user_id=user_id,
        action=action,
        resource_type=resource_type,
        resource_id=resource_id,
        **kwargs
    )


def log_business_event(event_type: str, **kwargs) -> None:
    """Log business events such as posts published or quotas reset."""
    structlog.get_logger("business_event").info("Business event", event_type=event_type, **kwargs)
