"""
Per-request log tracing

Every request of a batch run gets a correlation id that prefixes its log
lines, so interleaved output from a run can be attributed to a request.
"""

import contextvars
import logging
import uuid
from typing import List, Optional, Tuple

# Context variable for correlation ID (thread-safe)
_correlation_id: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    'correlation_id', default=None
)


def generate_correlation_id() -> str:
    """Generate a unique correlation ID for request tracing."""
    return uuid.uuid4().hex[:12]


def get_correlation_id() -> Optional[str]:
    """Get the current correlation ID from context."""
    return _correlation_id.get()


def set_correlation_id(correlation_id: Optional[str]) -> contextvars.Token:
    """Set the correlation ID in context. Returns token for reset."""
    return _correlation_id.set(correlation_id)


class CorrelationContext:
    """
    Context manager for correlation ID scoping.

    Usage:
        with CorrelationContext("increase_0") as cid:
            logger.info(f"[{cid}] Fetching pool")
    """

    def __init__(self, prefix: Optional[str] = None):
        """
        Initialize correlation context.

        Args:
            prefix: Optional prefix for the correlation ID (e.g., "increase_3")
        """
        self.correlation_id = generate_correlation_id()
        if prefix:
            self.correlation_id = f"{prefix}_{self.correlation_id}"
        self._token: Optional[contextvars.Token] = None

    def __enter__(self) -> str:
        self._token = set_correlation_id(self.correlation_id)
        return self.correlation_id

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self._token is not None:
            _correlation_id.reset(self._token)


class RequestLog:
    """
    Diagnostic sink for one request

    Writes straight through to the logger, or, when buffered, holds the
    records until `flush()` so that requests processed on worker threads
    still appear in request order.
    """

    def __init__(self, logger: logging.Logger, buffered: bool = False):
        self._logger = logger
        self._buffered = buffered
        self._records: List[Tuple[int, str]] = []

    def log(self, level: int, message: str):
        cid = get_correlation_id()
        line = f"[{cid}] {message}" if cid else message
        if self._buffered:
            self._records.append((level, line))
        else:
            self._logger.log(level, line)

    def info(self, message: str):
        self.log(logging.INFO, message)

    def error(self, message: str):
        self.log(logging.ERROR, message)

    @property
    def records(self) -> List[Tuple[int, str]]:
        return list(self._records)

    def flush(self):
        for level, line in self._records:
            self._logger.log(level, line)
        self._records.clear()
