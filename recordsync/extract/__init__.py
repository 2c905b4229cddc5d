"""Spreadsheet extraction: column mapping and the openpyxl workbook reader."""

from recordsync.extract.mapping import convert_value, map_rows, resolve_column_positions
from recordsync.extract.workbook import ExtractionResult, WorkbookExtractor

__all__ = [
    "ExtractionResult",
    "WorkbookExtractor",
    "convert_value",
    "map_rows",
    "resolve_column_positions",
]
