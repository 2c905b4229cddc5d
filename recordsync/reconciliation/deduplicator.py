"""
Record Deduplicator

Collapses repeated source records on a dedup key spec. The first record seen
under a key is canonical; later records under the same key are counted as
duplicates and dropped without any field merging.
"""

import logging
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Set

from recordsync.reconciliation.keys import KeyBuilder, require_key_spec
from recordsync.reconciliation.models import (
    DedupResult,
    DuplicateEntry,
    DuplicateReport,
    FileDuplicateStats,
    SourceFile,
)

logger = logging.getLogger(__name__)


class Deduplicator:
    """Single-pass, hash-based deduplication of record streams."""

    def __init__(self, key_builder: Optional[KeyBuilder] = None):
        self.key_builder = key_builder or KeyBuilder()

    def dedupe(
        self,
        records: Iterable[Mapping],
        dedup_key_spec: Sequence[str]
    ) -> DedupResult:
        """
        Split records into unique records and duplicate entries.

        Args:
            records: Record stream (consumed once)
            dedup_key_spec: Ordered field names identifying a duplicate

        Returns:
            DedupResult with unique records in first-occurrence order and one
            DuplicateEntry per repeated key in order of its first repeat

        Raises:
            ConfigurationError: If the key spec is empty
            ComparisonError: If a record cannot be keyed
        """
        key_spec = require_key_spec(dedup_key_spec, "dedup")

        seen: Set[str] = set()
        unique: List[Mapping] = []
        repeats: Dict[str, int] = {}
        first_repeat: Dict[str, Mapping] = {}

        for record in records:
            key = self.key_builder.build_key(record, key_spec)

            if key not in seen:
                seen.add(key)
                unique.append(record)
            elif key in repeats:
                repeats[key] += 1
            else:
                repeats[key] = 1
                first_repeat[key] = record

        duplicates = tuple(
            DuplicateEntry(record=first_repeat[key], key=key, count=count)
            for key, count in repeats.items()
        )

        if duplicates:
            logger.debug(
                f"Found {len(duplicates)} duplicated keys "
                f"({sum(repeats.values())} extra records) on {', '.join(key_spec)}"
            )

        return DedupResult(unique=tuple(unique), duplicates=duplicates)

    def build_report(
        self,
        records: Sequence[Mapping],
        dedup_key_spec: Sequence[str],
        source_files: Iterable[SourceFile] = ()
    ) -> DuplicateReport:
        """
        Deduplicate the combined record set and each source file on its own.

        Args:
            records: All extracted records, in extraction order
            dedup_key_spec: Dedup key spec
            source_files: Per-file record sets, for file-local duplicate stats

        Returns:
            DuplicateReport for the collection
        """
        key_spec = require_key_spec(dedup_key_spec, "dedup")

        file_stats = []
        for source_file in source_files:
            file_result = self.dedupe(source_file.records, key_spec)
            file_stats.append(FileDuplicateStats(
                filename=source_file.filename,
                sheet_name=source_file.sheet_name,
                record_count=len(source_file.records),
                duplicates=file_result.duplicates
            ))

        combined = self.dedupe(records, key_spec)

        report = DuplicateReport(
            unique_records=combined.unique,
            duplicates=combined.duplicates,
            dedup_key_spec=key_spec,
            total_records=len(records),
            file_stats=tuple(file_stats)
        )

        logger.info(
            f"Deduplication: {report.total_records} records, "
            f"{report.unique_count} unique, {report.duplicate_count} duplicates"
        )

        return report
