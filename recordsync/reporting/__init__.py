"""JSON report writer for duplicate and comparison reports."""

from recordsync.reporting.reporter import ReportWriter, build_comparison_sections, flatten_duplicates

__all__ = ["ReportWriter", "build_comparison_sections", "flatten_duplicates"]
