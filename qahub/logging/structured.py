"""Structured logging with structlog.

Provides:
- JSON-formatted log output for production
- Context processors for request_id, user_id, workspace_id
- Factory function for creating loggers
"""

import logging
import sys
from typing import Optional
from uuid import UUID

import structlog
from structlog.types import EventDict, WrappedLogger

from qahub.config import LOG_JSON, LOG_LEVEL


# Global context for request-scoped data
_context_vars: dict[str, str] = {}


def add_request_context(
    logger: WrappedLogger,
    method_name: str,
    event_dict: EventDict,
) -> EventDict:
    """Add request context (request_id, user_id, workspace_id) to log entries."""
    if _context_vars:
        event_dict.update(_context_vars)
    return event_dict


def add_service_info(
    logger: WrappedLogger,
    method_name: str,
    event_dict: EventDict,
) -> EventDict:
    """Add service information to log entries."""
    event_dict["service"] = "qahub-access"
    return event_dict


def configure_structlog(
    json_format: bool = True,
    log_level: str = "INFO",
) -> None:
    """Configure structlog for the application.

    Args:
        json_format: If True, output JSON logs (for production).
                     If False, output human-readable logs (for development).
        log_level: The minimum log level to output (DEBUG, INFO, WARNING, ERROR).
    """
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, log_level.upper()),
    )

    shared_processors: list = [
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        add_service_info,
        add_request_context,
    ]

    if json_format:
        renderer = structlog.processors.JSONRenderer()
        processors = shared_processors + [
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ]
    else:
        processors = shared_processors + [
            structlog.processors.format_exc_info,
            structlog.dev.ConsoleRenderer(colors=False),
        ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structured logger with the given name.

    Example:
        logger = get_logger(__name__)
        logger.info("invite_created", invite_id=str(invite.id), role=invite.role.value)
    """
    return structlog.get_logger(name)


def bind_context(
    request_id: Optional[str] = None,
    user_id: Optional[UUID] = None,
    workspace_id: Optional[UUID] = None,
) -> None:
    """Bind context variables for the current request scope.

    These values are included in all subsequent log entries
    until clear_context() is called.
    """
    if request_id:
        _context_vars["request_id"] = request_id
    if user_id:
        _context_vars["user_id"] = str(user_id)
    if workspace_id:
        _context_vars["workspace_id"] = str(workspace_id)


def clear_context() -> None:
    """Clear all bound context variables."""
    _context_vars.clear()


# Can be reconfigured by calling configure_structlog() in api/main.py
configure_structlog(json_format=LOG_JSON, log_level=LOG_LEVEL)
