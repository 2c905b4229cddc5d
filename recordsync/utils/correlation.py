"""
Correlation ID Utility

Tags every log record emitted while a collection is being reconciled with the
run ID of that collection, so interleaved output from parallel workers can be
told apart.
"""

import uuid
import contextvars
from typing import Optional
import logging

logger = logging.getLogger(__name__)

# Context variable for correlation ID
_correlation_id: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    'correlation_id',
    default=None
)


def generate_correlation_id() -> str:
    """
    Generate a new correlation ID using UUID4.

    Returns:
        String representation of a UUID4
    """
    return str(uuid.uuid4())


def get_correlation_id() -> Optional[str]:
    """Get the current correlation ID, or None if not set."""
    return _correlation_id.get()


def set_correlation_id(correlation_id: str) -> None:
    """
    Set the correlation ID in the current context.

    Args:
        correlation_id: Correlation ID to set

    Raises:
        ValueError: If correlation_id is empty or invalid
    """
    if not correlation_id or not isinstance(correlation_id, str):
        raise ValueError("Correlation ID must be a non-empty string")

    _correlation_id.set(correlation_id)


def clear_correlation_id() -> None:
    """Clear the correlation ID from context."""
    _correlation_id.set(None)


class CorrelationContext:
    """
    Context manager scoping a correlation ID to one collection run.

    The previous ID (if any) is restored on exit.
    """

    def __init__(self, correlation_id: Optional[str] = None, prefix: Optional[str] = None):
        """
        Initialize correlation context.

        Args:
            correlation_id: ID to use; a new UUID4 is generated if omitted
            prefix: Optional label prepended to a generated ID (e.g. collection name)
        """
        self.correlation_id = correlation_id
        self.prefix = prefix
        self.previous_id = None

    def __enter__(self) -> str:
        self.previous_id = get_correlation_id()

        if not self.correlation_id:
            generated = generate_correlation_id()
            self.correlation_id = f"{self.prefix}:{generated}" if self.prefix else generated

        set_correlation_id(self.correlation_id)
        logger.debug(f"Entered correlation context: {self.correlation_id}")
        return self.correlation_id

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self.previous_id:
            set_correlation_id(self.previous_id)
        else:
            clear_correlation_id()


def correlation_id_filter(record):
    """
    Logging filter to add correlation ID to log records.

    Args:
        record: Log record to augment

    Returns:
        True (always allow record)
    """
    record.correlation_id = get_correlation_id() or "N/A"
    return True


def setup_correlation_logging(handler: logging.Handler) -> None:
    """Attach the correlation filter to a handler."""
    handler.addFilter(correlation_id_filter)
