"""
Reconciliation Engine

Pure, in-memory comparison of an extracted source record set against a store
snapshot. Nothing in this package performs I/O.

Main components:
- keys: Composite key construction and value normalization
- deduplicator: First-seen-wins deduplication of source records
- differ: Key grouping, store uniqueness check and change classification
- comparer: Per-field comparison of records present on both sides

Usage:
    from recordsync.reconciliation import Deduplicator, Reconciler

    report = Deduplicator().build_report(records, dedup_key_spec=["Model"])
    change_set = Reconciler().reconcile(
        report.unique_records,
        store_records,
        compare_key_spec=["Model"]
    )
"""

from recordsync.reconciliation.comparer import FieldDiffer
from recordsync.reconciliation.deduplicator import Deduplicator
from recordsync.reconciliation.differ import Reconciler
from recordsync.reconciliation.errors import (
    ComparisonError,
    ConfigurationError,
    ExtractionError,
    ReconciliationError,
    StoreError,
    UniquenessViolation,
)
from recordsync.reconciliation.keys import KeyBuilder
from recordsync.reconciliation.models import (
    ChangeSet,
    ChangeType,
    DuplicateEntry,
    DuplicateReport,
    FieldDifference,
    Outcome,
)

__all__ = [
    "KeyBuilder",
    "Deduplicator",
    "Reconciler",
    "FieldDiffer",
    "ChangeSet",
    "ChangeType",
    "DuplicateEntry",
    "DuplicateReport",
    "FieldDifference",
    "Outcome",
    "ReconciliationError",
    "ConfigurationError",
    "ComparisonError",
    "StoreError",
    "ExtractionError",
    "UniquenessViolation",
]
