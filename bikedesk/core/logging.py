"""
core/logging.py
---------------
structlog configuration for BikeDesk.

DEBUG=true  → coloured console lines
DEBUG=false → one JSON object per event

Every event passes through redact_sensitive() before rendering: identity
numbers keep their last four digits and secrets are replaced outright, so
nothing a handler logs can leak a customer's full number or a password.
Superadmin mutations go through log_admin_action() and share one event name
("Admin action") for easy filtering.
"""

import logging
import sys

import structlog

from bikedesk.core.config import settings

_SECRET_KEYS = frozenset({"password", "new_password", "current_password", "access_token"})
_IDENTITY_KEY_SUFFIX = "aadhaar_number"


def _mask(value: str) -> str:
    return "*" * max(len(value) - 4, 0) + value[-4:]


def redact_sensitive(logger, method_name: str, event_dict: dict) -> dict:
    for key, value in event_dict.items():
        if key in _SECRET_KEYS:
            event_dict[key] = "[redacted]"
        elif key.endswith(_IDENTITY_KEY_SUFFIX) and isinstance(value, str):
            event_dict[key] = _mask(value)
    return event_dict


def configure_logging() -> None:
    log_level = logging.DEBUG if settings.DEBUG else logging.INFO

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=log_level)

    # Request lines and SQL echo only in development
    quiet = logging.INFO if settings.DEBUG else logging.WARNING
    for name in ("uvicorn.access", "sqlalchemy.engine"):
        logging.getLogger(name).setLevel(quiet)

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        redact_sensitive,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.dev.ConsoleRenderer()
        if settings.DEBUG
        else structlog.processors.JSONRenderer(),
    ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str = __name__):
    return structlog.get_logger(name, service=settings.APP_NAME)


def log_admin_action(logger, actor_id: str, action: str, **details) -> None:
    """Audit trail for superadmin mutations; one event per action."""
    logger.info("Admin action", actor_id=actor_id, action=action, **details)
