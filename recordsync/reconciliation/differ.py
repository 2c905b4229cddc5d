"""
Record Reconciler

Aligns source records against a store snapshot on a compare key spec and
classifies every key as an addition, a deletion, an update or a match.
"""

import logging
from typing import Dict, Iterable, List, Mapping, Optional, Sequence

from recordsync.reconciliation.comparer import FieldDiffer
from recordsync.reconciliation.errors import UniquenessViolation
from recordsync.reconciliation.keys import KeyBuilder, require_key_spec
from recordsync.reconciliation.models import (
    ChangeSet,
    KeyComparison,
    KeyedGroup,
    Outcome,
)

logger = logging.getLogger(__name__)


class Reconciler:
    """
    Builds a ChangeSet from a source record set and a store snapshot.

    The store is expected to hold at most one record per compare key. When it
    doesn't, additions and deletions cannot be inferred safely and the whole
    collection is refused with a UniquenessViolation.
    """

    def __init__(
        self,
        key_builder: Optional[KeyBuilder] = None,
        field_differ: Optional[FieldDiffer] = None
    ):
        self.key_builder = key_builder or KeyBuilder()
        self.field_differ = field_differ or FieldDiffer(self.key_builder)
        logger.debug("Initialized Reconciler")

    def reconcile(
        self,
        source_records: Iterable[Mapping],
        store_records: Iterable[Mapping],
        compare_key_spec: Sequence[str],
        exact_match_fields: Optional[Sequence[str]] = None,
        collection: Optional[str] = None
    ) -> ChangeSet:
        """
        Reconcile source records against store records.

        Args:
            source_records: Deduplicated source records
            store_records: Store snapshot
            compare_key_spec: Fields aligning source and store records
            exact_match_fields: Restrict field comparison to these fields
            collection: Collection name, for error context

        Returns:
            ChangeSet with additions, deletions, updates and matches

        Raises:
            ConfigurationError: If the compare key spec is empty
            UniquenessViolation: If a store key maps to more than one record
            ComparisonError: If a record cannot be keyed or compared
        """
        key_spec = require_key_spec(compare_key_spec, "compare")

        source_index = self.group_by_key(source_records, key_spec)
        store_index = self.group_by_key(store_records, key_spec)

        self.check_store_uniqueness(store_index, key_spec, collection)

        additions = [
            KeyedGroup(key=key, records=tuple(records), action=Outcome.ADD)
            for key, records in source_index.items()
            if key not in store_index
        ]

        deletions = [
            KeyedGroup(key=key, records=tuple(records), action=Outcome.DELETE)
            for key, records in store_index.items()
            if key not in source_index
        ]

        updates: List[KeyComparison] = []
        matches: List[KeyComparison] = []

        for key, source_group in source_index.items():
            if key not in store_index:
                continue

            store_record = store_index[key][0]
            result = self.field_differ.diff(source_group, store_record, exact_match_fields)

            comparison = KeyComparison(
                key=key,
                source_records=tuple(source_group),
                store_record=store_record,
                outcome=result.outcome,
                differences=result.differences,
                reason=result.reason
            )

            if result.outcome is Outcome.UPDATE:
                updates.append(comparison)
            else:
                matches.append(comparison)

        change_set = ChangeSet(
            additions=tuple(additions),
            deletions=tuple(deletions),
            updates=tuple(updates),
            matches=tuple(matches),
            compare_key_spec=key_spec,
            exact_match_fields=tuple(exact_match_fields) if exact_match_fields else None
        )

        counts = change_set.counts
        logger.info(
            f"Change set: {counts['additions']} to add, {counts['deletions']} to delete, "
            f"{counts['updates']} to update, {counts['matches']} matching"
        )

        return change_set

    def group_by_key(
        self,
        records: Iterable[Mapping],
        key_spec: Sequence[str]
    ) -> Dict[str, List[Mapping]]:
        """
        Group records by composite key, preserving first-appearance order.

        Args:
            records: Records to group
            key_spec: Compare key spec

        Returns:
            Dictionary mapping key -> records under that key
        """
        index: Dict[str, List[Mapping]] = {}

        for record in records:
            key = self.key_builder.build_key(record, key_spec)
            index.setdefault(key, []).append(record)

        return index

    def check_store_uniqueness(
        self,
        store_index: Dict[str, List[Mapping]],
        key_spec: Sequence[str],
        collection: Optional[str] = None
    ) -> None:
        """
        Refuse store snapshots holding several records under one key.

        Raises:
            UniquenessViolation: On the first offending key
        """
        for key, records in store_index.items():
            if len(records) > 1:
                logger.error(
                    f"Store is not unique on {', '.join(key_spec)}: "
                    f"{len(records)} records share key '{key}'"
                )
                raise UniquenessViolation(
                    key=key,
                    key_spec=key_spec,
                    record_count=len(records),
                    collection=collection
                )
