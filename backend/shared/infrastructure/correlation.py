"""
Request correlation for log records and audit entries.

The boundary layer sets the current request ID once per call; log records
and audit contexts pick it up from the context variable.
"""

import logging
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator

# Context variable for request ID (thread and task safe)
request_id_var: ContextVar[str] = ContextVar("request_id", default="")


def get_request_id() -> str:
    """Get the current request ID."""
    return request_id_var.get()


@contextmanager
def correlation_scope(request_id: str | None = None) -> Iterator[str]:
    """
    Bind a request ID for the duration of a block.

    Usage:
        with correlation_scope(headers.get("X-Request-ID")) as request_id:
            service.find_all("customer", options, ctx)
    """
    if not request_id:
        request_id = str(uuid.uuid4())

    token = request_id_var.set(request_id)
    try:
        yield request_id
    finally:
        request_id_var.reset(token)


class CorrelationIdFilter(logging.Filter):
    """
    Logging filter that adds request_id to log records.

    Usage:
        import logging
        handler = logging.StreamHandler()
        handler.addFilter(CorrelationIdFilter())
    """

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = request_id_var.get() or "-"
        return True
