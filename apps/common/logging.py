"""
Logging infrastructure for the referral platform.

Provides request correlation for log records:

- set_request_id / get_request_id / set_request_context: thread-local request context
- RequestIDFilter: injects the request ID and client IP into every record

Configured from settings.LOGGING:

    "filters": {"request_id": {"()": "apps.common.logging.RequestIDFilter"}}
"""

from __future__ import annotations

import logging
import threading
from typing import Any

# Thread-local storage for request context
_request_context = threading.local()


# =============================================================================
# REQUEST CONTEXT FUNCTIONS
# =============================================================================


def set_request_id(request_id: str) -> None:
    """Set the current request ID in thread-local storage."""
    _request_context.request_id = request_id


def get_request_id() -> str | None:
    """Get the current request ID from thread-local storage."""
    return getattr(_request_context, "request_id", None)


def set_request_context(**kwargs: Any) -> None:
    """Set additional request context (ip_address, ...)."""
    for key, value in kwargs.items():
        setattr(_request_context, key, value)


def clear_request_context() -> None:
    """Clear all request context."""
    for attr in ("request_id", "ip_address"):
        if hasattr(_request_context, attr):
            delattr(_request_context, attr)


# =============================================================================
# LOGGING FILTERS
# =============================================================================


class RequestIDFilter(logging.Filter):
    """
    Add request ID and context to log records.

    This filter injects the request ID from thread-local storage
    into every log record, enabling request tracing across logs.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        """Add request_id attribute to log record"""
        if not hasattr(record, "request_id"):
            record.request_id = getattr(_request_context, "request_id", None) or "-"

        if not hasattr(record, "ip_address"):
            record.ip_address = getattr(_request_context, "ip_address", None)

        return True

