"""
structlog configuration for Allowgate.

Every line carries level, an ISO-8601 UTC timestamp, the module logger name,
and the event name under event_type. Request-scoped fields (request_id,
address, fid) live in structlog contextvars and are merged into every line
logged while the request is handled.

LOG_LEVEL picks the threshold; LOG_FORMAT=console switches from JSON to the
dev renderer. This module imports nothing from allowgate.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import Any

import structlog

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_LEVEL_VALUE = getattr(logging, LOG_LEVEL, logging.INFO)

LOG_FORMAT = os.getenv("LOG_FORMAT", "json").strip().lower()

# Context keys holding wallet addresses; truncated on bind.
_ADDRESS_KEYS = frozenset({"address"})


def _event_to_event_type(
    logger: Any,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """structlog's positional 'event' becomes event_type."""
    if "event" in event_dict and "event_type" not in event_dict:
        event_dict["event_type"] = event_dict.pop("event")
    return event_dict


def configure_structlog() -> None:
    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.TimeStamper(fmt="iso", utc=True, key="timestamp"),
        _event_to_event_type,
    ]
    if LOG_FORMAT == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()))
    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(LOG_LEVEL_VALUE),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stdout),
        cache_logger_on_first_use=True,
    )


if not structlog.is_configured():
    configure_structlog()


def get_logger(name: str) -> structlog.BoundLogger:
    """
    Module logger bound with its name:
        logger = get_logger(__name__)
        logger.info("allowlist_member_added", address=short_address(addr), version=3)
    """
    return structlog.get_logger(name).bind(logger=name)


def short_address(address: str | None) -> str:
    """Truncate an address for log output."""
    if not address:
        return ""
    return address[:10] + "..." if len(address) > 10 else address


def bind_request_context(**fields: Any) -> None:
    """Bind fields for the rest of the current request. None values are skipped."""
    bound = {
        key: short_address(value) if key in _ADDRESS_KEYS else value
        for key, value in fields.items()
        if value is not None
    }
    if bound:
        structlog.contextvars.bind_contextvars(**bound)


def clear_request_context() -> None:
    structlog.contextvars.clear_contextvars()
