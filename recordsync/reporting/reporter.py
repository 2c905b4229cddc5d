"""
Report Writer

Flattens DuplicateReport and ChangeSet results into tabular report sections
and writes them as JSON files under the reports directory:

    Reports/Duplicates/<collection>/...
    Reports/Comparison/<collection>/...
"""

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Union

from recordsync.reconciliation.models import ChangeSet, DuplicateEntry, DuplicateReport, KeyComparison, KeyedGroup

logger = logging.getLogger(__name__)

ADD_SECTION = "Records to Add"
DELETE_SECTION = "Records to Delete"
UPDATE_SECTION = "Records to Update"
SUMMARY_SECTION = "Summary"


def report_timestamp(now: Optional[datetime] = None) -> str:
    """Compact UTC timestamp used in report file names."""
    now = now or datetime.now(timezone.utc)
    return now.strftime("%Y%m%dT%H%M%S%fZ")


def safe_name(name: str) -> str:
    """File-name form of a collection or source file name."""
    return name.replace(".", "_").replace("/", "_")


def flatten_duplicates(entries: List[DuplicateEntry]) -> List[Dict[str, Any]]:
    """One row per duplicate group with CompositeKey and DuplicateCount columns."""
    rows = []
    for entry in entries:
        row = dict(entry.record)
        row["CompositeKey"] = entry.key
        row["DuplicateCount"] = entry.count
        rows.append(row)
    return rows


def flatten_groups(groups: List[KeyedGroup]) -> List[Dict[str, Any]]:
    """One row per record, tagged with its action."""
    rows = []
    for group in groups:
        for record in group.records:
            row = dict(record)
            row["Action"] = group.action.value
            rows.append(row)
    return rows


def flatten_update(item: KeyComparison) -> Dict[str, Any]:
    """
    Side-by-side row for one updated key.

    Source values are prefixed Source_, store values Store_. With several
    source records under one key the last one wins in the flattened view;
    the full group is still listed in the change-set JSON.
    """
    row: Dict[str, Any] = {"Action": item.outcome.value, "CompositeKey": item.key}

    for record in item.source_records:
        for field_name, value in record.items():
            row[f"Source_{field_name}"] = value

    for field_name, value in item.store_record.items():
        row[f"Store_{field_name}"] = value

    row["Changed_Fields"] = ", ".join(difference.field for difference in item.differences)
    row["Reason"] = item.reason
    return row


def build_comparison_summary(
    change_set: ChangeSet,
    source_total: int,
    store_total: int
) -> List[Dict[str, Any]]:
    counts = change_set.counts
    return [
        {"Metric": "Total Source Records", "Count": source_total},
        {"Metric": "Total Store Records", "Count": store_total},
        {"Metric": ADD_SECTION, "Count": counts["additions"]},
        {"Metric": DELETE_SECTION, "Count": counts["deletions"]},
        {"Metric": UPDATE_SECTION, "Count": counts["updates"]},
        {"Metric": "Exact Matches", "Count": counts["matches"]},
        {"Metric": "Keys On Both Sides", "Count": counts["keys_on_both"]},
    ]


def build_comparison_sections(
    change_set: ChangeSet,
    source_total: int,
    store_total: int
) -> Dict[str, List[Dict[str, Any]]]:
    """Report sections in fixed order; empty change sections are left out."""
    sections: Dict[str, List[Dict[str, Any]]] = {}

    if change_set.additions:
        sections[ADD_SECTION] = flatten_groups(list(change_set.additions))
    if change_set.deletions:
        sections[DELETE_SECTION] = flatten_groups(list(change_set.deletions))
    if change_set.updates:
        sections[UPDATE_SECTION] = [flatten_update(item) for item in change_set.updates]

    sections[SUMMARY_SECTION] = build_comparison_summary(change_set, source_total, store_total)
    return sections


class ReportWriter:
    """
    Writes reconciliation reports as JSON files.

    Args:
        reports_directory: Root directory for all reports
        clock: Returns the current time; injected in tests
    """

    def __init__(
        self,
        reports_directory: Union[str, Path],
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc)
    ):
        self.reports_directory = Path(reports_directory)
        self.clock = clock

    def write_duplicate_report(self, collection: str, report: DuplicateReport) -> List[Path]:
        """
        Write the duplicate reports for one collection.

        Per-file and combined reports are written only when duplicates exist;
        the summary is always written.

        Returns:
            Paths of the written files
        """
        folder = self.reports_directory / "Duplicates" / safe_name(collection)
        folder.mkdir(parents=True, exist_ok=True)

        now = self.clock()
        timestamp = report_timestamp(now)
        name = safe_name(collection)
        paths = []

        for stats in report.file_stats:
            if not stats.duplicates:
                continue
            stem = safe_name(Path(stats.filename).stem)
            path = folder / f"{stem}_Duplicates_{name}_{timestamp}.json"
            self._write_json(path, flatten_duplicates(list(stats.duplicates)))
            logger.info(f"File-wise duplicate report generated: {path}")
            paths.append(path)

        if report.duplicates:
            path = folder / f"Combined_Duplicates_{name}_{timestamp}.json"
            self._write_json(path, flatten_duplicates(list(report.duplicates)))
            logger.info(f"Combined duplicate report generated: {path}")
            paths.append(path)

        summary = {
            "collection": collection,
            "generated_at": now.isoformat(),
            "files": [
                {"filename": stats.filename, "duplicate_count": stats.duplicate_count}
                for stats in report.file_stats
            ],
            "total_records": report.total_records,
            "unique_count": report.unique_count,
            "duplicate_count": report.duplicate_count,
            "dedup_keys": list(report.dedup_key_spec),
        }
        path = folder / f"Summary_{name}_{timestamp}.json"
        self._write_json(path, summary)
        paths.append(path)

        return paths

    def write_change_set(
        self,
        collection: str,
        change_set: ChangeSet,
        source_total: int,
        store_total: int
    ) -> List[Path]:
        """
        Write the comparison report and its summary for one collection.

        Returns:
            Paths of the written files
        """
        folder = self.reports_directory / "Comparison" / safe_name(collection)
        folder.mkdir(parents=True, exist_ok=True)

        now = self.clock()
        timestamp = report_timestamp(now)
        name = safe_name(collection)

        sections = build_comparison_sections(change_set, source_total, store_total)
        comparison_path = folder / f"Comparison_{name}_{timestamp}.json"
        self._write_json(comparison_path, sections)
        logger.info(f"Comparison report generated: {comparison_path}")

        summary = {
            "collection": collection,
            "generated_at": now.isoformat(),
            "summary": {
                item["Metric"].replace(" ", ""): item["Count"]
                for item in sections[SUMMARY_SECTION]
            },
            "compare_keys": list(change_set.compare_key_spec),
            "exact_match_fields": (
                list(change_set.exact_match_fields)
                if change_set.exact_match_fields is not None else None
            ),
        }
        summary_path = folder / f"Summary_{name}_{timestamp}.json"
        self._write_json(summary_path, summary)
        logger.info(f"Summary report generated: {summary_path}")

        return [comparison_path, summary_path]

    def _write_json(self, path: Path, payload: Any) -> None:
        with open(path, "w") as f:
            json.dump(payload, f, indent=2, default=str)
