"""
Reconciliation Errors

Exception hierarchy raised by the reconciliation engine and its collaborators.
Every error is scoped to a single collection; the runner catches them at the
collection boundary and moves on to the next collection.
"""

from typing import Optional, Sequence


class ReconciliationError(Exception):
    """Base class for all reconciliation failures."""
    pass


class ConfigurationError(ReconciliationError):
    """Raised when a key spec or configuration value is missing or invalid."""
    pass


class ComparisonError(ReconciliationError):
    """Raised when a record or value has an unexpected shape."""
    pass


class StoreError(ReconciliationError):
    """Raised when the store cannot be reached."""
    pass


class ExtractionError(ReconciliationError):
    """Raised when a source file cannot be read."""
    pass


class UniquenessViolation(ReconciliationError):
    """
    Raised when the store holds more than one record for a compare key.

    Attributes:
        key: Offending composite key
        key_spec: Compare key spec used to build the key
        record_count: Number of store records sharing the key
        collection: Collection being reconciled, if known
    """

    def __init__(
        self,
        key: str,
        key_spec: Sequence[str],
        record_count: int,
        collection: Optional[str] = None
    ):
        self.key = key
        self.key_spec = list(key_spec)
        self.record_count = record_count
        self.collection = collection

        scope = f" in collection '{collection}'" if collection else ""
        super().__init__(
            f"Store holds {record_count} records for key '{key}'{scope} "
            f"(compare keys: {', '.join(self.key_spec)})"
        )
