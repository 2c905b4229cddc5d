"""
Reconciliation Models

Immutable result types produced by the deduplicator and the reconciler.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Tuple

Record = Mapping[str, Any]


class ChangeType(Enum):
    """Field-level classification."""
    NO_CHANGE = "NO_CHANGE"
    FIELD_ADDED = "FIELD_ADDED"
    FIELD_REMOVED = "FIELD_REMOVED"
    FIELD_MODIFIED = "FIELD_MODIFIED"


class Outcome(Enum):
    """Key-level classification."""
    ADD = "ADD"
    DELETE = "DELETE"
    MATCH = "MATCH"
    UPDATE = "UPDATE"


@dataclass(frozen=True)
class FieldDifference:
    field: str
    source_value: Any
    store_value: Any
    change_type: ChangeType

    def to_dict(self) -> Dict[str, Any]:
        return {
            "field": self.field,
            "source_value": self.source_value,
            "store_value": self.store_value,
            "change_type": self.change_type.value,
        }


@dataclass(frozen=True)
class FieldDiffResult:
    """
    Outcome of comparing one source group against its store record.

    Attributes:
        outcome: MATCH or UPDATE
        differences: Changed fields (all fields when requested)
        reason: "fields" or "cardinality" for updates, None for matches
    """

    outcome: Outcome
    differences: Tuple[FieldDifference, ...] = ()
    reason: Optional[str] = None


@dataclass(frozen=True)
class DuplicateEntry:
    record: Record
    key: str
    count: int

    def to_dict(self) -> Dict[str, Any]:
        return {"record": dict(self.record), "key": self.key, "count": self.count}


@dataclass(frozen=True)
class DedupResult:
    unique: Tuple[Record, ...]
    duplicates: Tuple[DuplicateEntry, ...]

    @property
    def duplicate_count(self) -> int:
        return sum(entry.count for entry in self.duplicates)


@dataclass(frozen=True)
class SourceFile:
    """Records extracted from one source file, as handed to the deduplicator."""

    filename: str
    records: Tuple[Record, ...]
    sheet_name: Optional[str] = None


@dataclass(frozen=True)
class FileDuplicateStats:
    filename: str
    sheet_name: Optional[str]
    record_count: int
    duplicates: Tuple[DuplicateEntry, ...]

    @property
    def duplicate_count(self) -> int:
        return sum(entry.count for entry in self.duplicates)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "filename": self.filename,
            "sheet_name": self.sheet_name,
            "record_count": self.record_count,
            "duplicate_count": self.duplicate_count,
        }


@dataclass(frozen=True)
class DuplicateReport:
    """Combined and per-file deduplication outcome for one collection."""

    unique_records: Tuple[Record, ...]
    duplicates: Tuple[DuplicateEntry, ...]
    dedup_key_spec: Tuple[str, ...]
    total_records: int
    file_stats: Tuple[FileDuplicateStats, ...] = ()

    @property
    def unique_count(self) -> int:
        return len(self.unique_records)

    @property
    def duplicate_count(self) -> int:
        return sum(entry.count for entry in self.duplicates)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "unique_records": [dict(record) for record in self.unique_records],
            "duplicates": [entry.to_dict() for entry in self.duplicates],
            "unique_count": self.unique_count,
            "duplicate_count": self.duplicate_count,
            "total_records": self.total_records,
            "dedup_key_spec": list(self.dedup_key_spec),
            "files": [stats.to_dict() for stats in self.file_stats],
        }


@dataclass(frozen=True)
class KeyedGroup:
    """Records under one composite key that must be added or deleted."""

    key: str
    records: Tuple[Record, ...]
    action: Outcome

    def to_dict(self) -> Dict[str, Any]:
        return {
            "key": self.key,
            "records": [dict(record) for record in self.records],
            "action": self.action.value,
        }


@dataclass(frozen=True)
class KeyComparison:
    """A key present on both sides, with its field-level verdict."""

    key: str
    source_records: Tuple[Record, ...]
    store_record: Record
    outcome: Outcome
    differences: Tuple[FieldDifference, ...] = ()
    reason: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "key": self.key,
            "source_records": [dict(record) for record in self.source_records],
            "store_record": dict(self.store_record),
            "action": self.outcome.value,
            "differences": [difference.to_dict() for difference in self.differences],
            "reason": self.reason,
        }


@dataclass(frozen=True)
class ChangeSet:
    """Everything required to bring the store in line with the source."""

    additions: Tuple[KeyedGroup, ...]
    deletions: Tuple[KeyedGroup, ...]
    updates: Tuple[KeyComparison, ...]
    matches: Tuple[KeyComparison, ...]
    compare_key_spec: Tuple[str, ...]
    exact_match_fields: Optional[Tuple[str, ...]] = None

    @property
    def counts(self) -> Dict[str, int]:
        return {
            "additions": sum(len(group.records) for group in self.additions),
            "deletions": sum(len(group.records) for group in self.deletions),
            "updates": len(self.updates),
            "matches": len(self.matches),
            "keys_on_both": len(self.updates) + len(self.matches),
        }

    @property
    def has_changes(self) -> bool:
        return bool(self.additions or self.deletions or self.updates)

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            "additions": [group.to_dict() for group in self.additions],
            "deletions": [group.to_dict() for group in self.deletions],
            "updates": [item.to_dict() for item in self.updates],
            "matches": [item.to_dict() for item in self.matches],
            "counts": self.counts,
            "compare_key_spec": list(self.compare_key_spec),
        }
        if self.exact_match_fields is not None:
            result["exact_match_fields"] = list(self.exact_match_fields)
        return result


@dataclass
class CollectionResult:
    """Outcome of one collection run, as seen by the orchestrator."""

    collection: str
    success: bool
    error: Optional[str] = None
    error_type: Optional[str] = None
    duplicate_report: Optional[DuplicateReport] = None
    change_set: Optional[ChangeSet] = None
    report_paths: List[str] = field(default_factory=list)
    files_read: int = 0
    files_failed: int = 0
    store_record_count: int = 0
    duration_seconds: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            "collection": self.collection,
            "success": self.success,
            "files_read": self.files_read,
            "files_failed": self.files_failed,
            "duration_seconds": round(self.duration_seconds, 3),
            "report_paths": list(self.report_paths),
        }
        if self.error:
            result["error"] = self.error
            result["error_type"] = self.error_type
        if self.duplicate_report is not None:
            result["unique_count"] = self.duplicate_report.unique_count
            result["duplicate_count"] = self.duplicate_report.duplicate_count
        if self.change_set is not None:
            result["store_record_count"] = self.store_record_count
            result["counts"] = self.change_set.counts
        return result
