"""
Structured logging for Allowgate: module loggers plus request-scoped context.
"""

from allowgate.allowgate_logging.logger import (
    bind_request_context,
    clear_request_context,
    get_logger,
    short_address,
)

__all__ = ["bind_request_context", "clear_request_context", "get_logger", "short_address"]
