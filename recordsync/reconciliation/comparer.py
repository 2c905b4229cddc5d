"""
Field Differ for Record Reconciliation

Decides whether a source group and its store record match, and reports the
per-field differences when they don't. Store-assigned identity fields are
never compared.
"""

import logging
from collections.abc import Mapping
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from recordsync.reconciliation.errors import ComparisonError
from recordsync.reconciliation.keys import EMPTY, KeyBuilder
from recordsync.reconciliation.models import (
    ChangeType,
    FieldDifference,
    FieldDiffResult,
    Outcome,
)

logger = logging.getLogger(__name__)

DEFAULT_IDENTITY_FIELDS = ("_id",)

REASON_FIELDS = "fields"
REASON_CARDINALITY = "cardinality"


class FieldDiffer:
    """
    Compares the records found under one compare key.

    Two modes:
    - subset: only the exact-match fields are compared; strings are compared
      case-insensitively, everything else by equality
    - full: every field on either side is normalized like a key part and
      classified as added, removed, modified or unchanged
    """

    def __init__(
        self,
        key_builder: Optional[KeyBuilder] = None,
        identity_fields: Iterable[str] = DEFAULT_IDENTITY_FIELDS
    ):
        """
        Initialize the field differ.

        Args:
            key_builder: Shared normalizer (a default KeyBuilder if omitted)
            identity_fields: Store-assigned identifier fields to strip before comparison
        """
        self.key_builder = key_builder or KeyBuilder()
        self.identity_fields = frozenset(identity_fields)
        logger.debug(f"Initialized FieldDiffer (identity fields: {sorted(self.identity_fields)})")

    def diff(
        self,
        source_group: Sequence[Mapping],
        store_record: Optional[Mapping],
        exact_match_fields: Optional[Sequence[str]] = None,
        include_unchanged: bool = False
    ) -> FieldDiffResult:
        """
        Compare a source group against the store record for the same key.

        Args:
            source_group: Source records sharing the compare key
            store_record: The single store record for the key (None if absent)
            exact_match_fields: Fields for subset mode; full mode when empty
            include_unchanged: Also report NO_CHANGE fields

        Returns:
            FieldDiffResult with outcome MATCH or UPDATE

        Raises:
            ComparisonError: If a record or value has an unsupported shape
        """
        store_size = 0 if store_record is None else 1

        if len(source_group) != store_size:
            logger.debug(
                f"Cardinality mismatch: {len(source_group)} source records "
                f"vs {store_size} store record(s)"
            )
            return FieldDiffResult(
                outcome=Outcome.UPDATE,
                differences=(),
                reason=REASON_CARDINALITY
            )

        source = self.strip_identity(source_group[0])
        store = self.strip_identity(store_record)

        if exact_match_fields:
            differences = self._compare_subset(source, store, exact_match_fields, include_unchanged)
        else:
            differences = self._compare_full(source, store, include_unchanged)

        changed = any(d.change_type is not ChangeType.NO_CHANGE for d in differences)

        return FieldDiffResult(
            outcome=Outcome.UPDATE if changed else Outcome.MATCH,
            differences=tuple(differences),
            reason=REASON_FIELDS if changed else None
        )

    def strip_identity(self, record: Any) -> Dict[str, Any]:
        """Return a copy of the record without store identity fields."""
        if not isinstance(record, Mapping):
            raise ComparisonError(
                f"Expected a record mapping, got {type(record).__name__}"
            )
        return {k: v for k, v in record.items() if k not in self.identity_fields}

    def _compare_full(
        self,
        source: Dict[str, Any],
        store: Dict[str, Any],
        include_unchanged: bool
    ) -> List[FieldDifference]:
        differences = []

        for field in self._field_union(source, store):
            source_value = source.get(field)
            store_value = store.get(field)

            change_type = self.classify(
                self.key_builder.normalize_field(field, source_value),
                self.key_builder.normalize_field(field, store_value)
            )

            if change_type is ChangeType.NO_CHANGE and not include_unchanged:
                continue

            differences.append(FieldDifference(
                field=field,
                source_value=source_value,
                store_value=store_value,
                change_type=change_type
            ))

        return differences

    def _compare_subset(
        self,
        source: Dict[str, Any],
        store: Dict[str, Any],
        fields: Sequence[str],
        include_unchanged: bool
    ) -> List[FieldDifference]:
        differences = []

        for field in fields:
            if field in self.identity_fields:
                continue

            source_value = source.get(field)
            store_value = store.get(field)

            source_empty = self.key_builder.is_empty(field, source_value)
            store_empty = self.key_builder.is_empty(field, store_value)

            if (source_empty and store_empty) or self._values_equal(source_value, store_value):
                change_type = ChangeType.NO_CHANGE
            elif store_empty:
                change_type = ChangeType.FIELD_ADDED
            elif source_empty:
                change_type = ChangeType.FIELD_REMOVED
            else:
                change_type = ChangeType.FIELD_MODIFIED

            if change_type is ChangeType.NO_CHANGE and not include_unchanged:
                continue

            differences.append(FieldDifference(field, source_value, store_value, change_type))

        return differences

    @staticmethod
    def classify(source_normalized: str, store_normalized: str) -> ChangeType:
        """Classify one field from its two normalized values."""
        if source_normalized == store_normalized:
            return ChangeType.NO_CHANGE
        if store_normalized == EMPTY:
            return ChangeType.FIELD_ADDED
        if source_normalized == EMPTY:
            return ChangeType.FIELD_REMOVED
        return ChangeType.FIELD_MODIFIED

    @staticmethod
    def _values_equal(value1: Any, value2: Any) -> bool:
        if isinstance(value1, str) and isinstance(value2, str):
            return value1.lower() == value2.lower()
        if isinstance(value1, bool) != isinstance(value2, bool):
            return False
        return value1 == value2

    @staticmethod
    def _field_union(source: Dict[str, Any], store: Dict[str, Any]) -> Tuple[str, ...]:
        # Source order first, then store-only fields in store order
        fields = list(source.keys())
        fields.extend(k for k in store.keys() if k not in source)
        return tuple(fields)
