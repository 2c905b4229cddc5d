"""
Column Mapping

Turns a header row plus raw data rows into records, following the column
configuration of one file mapping. No I/O happens here; the workbook reader
hands in plain row tuples.
"""

import logging
from datetime import date, datetime
from typing import Any, Dict, List, Optional, Sequence

from recordsync.config import ColumnConfig, ExcludeRule

logger = logging.getLogger(__name__)

TRUE_STRINGS = ("true", "yes", "y", "1")
FALSE_STRINGS = ("false", "no", "n", "0")


def resolve_column_positions(
    header_row: Sequence[Any],
    columns: Sequence[ColumnConfig],
    sheet_name: Optional[str] = None
) -> Dict[str, int]:
    """
    Locate each header-backed column in the sheet.

    column_index (1-based) wins over header lookup. Header matching ignores
    case and surrounding whitespace. Columns that cannot be located are
    logged and left out.

    Args:
        header_row: Cell values of the header row
        columns: Column configuration
        sheet_name: Used in log messages only

    Returns:
        Dict mapping column_name to a 0-based position
    """
    headers = [
        cell.strip().lower() if isinstance(cell, str) else ""
        for cell in header_row
    ]

    positions: Dict[str, int] = {}
    for column in columns:
        if column.column_index is not None:
            positions[column.column_name] = column.column_index - 1
            continue

        if not column.header_name:
            continue

        wanted = column.header_name.strip().lower()
        if wanted in headers:
            positions[column.column_name] = headers.index(wanted)
        else:
            logger.warning(f"Column header '{column.header_name}' not found in sheet '{sheet_name}'")

    return positions


def convert_value(value: Any, data_type: str) -> Any:
    """
    Convert a cell value to the configured data type.

    Blank cells become "". Unparsable numbers become 0 and unparsable dates
    become None.
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        return ""

    if isinstance(value, str):
        value = value.strip()

    if data_type == "number":
        return _to_number(value)
    if data_type == "boolean":
        return _to_boolean(value)
    if data_type == "date":
        return _to_date(value)
    return _to_string(value)


def _to_string(value: Any) -> str:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _to_number(value: Any) -> Any:
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, (int, float)):
        return value
    text = str(value).replace(",", "")
    try:
        return int(text)
    except ValueError:
        pass
    try:
        return float(text)
    except ValueError:
        return 0


def _to_boolean(value: Any) -> bool:
    if isinstance(value, str):
        lowered = value.lower()
        if lowered in TRUE_STRINGS:
            return True
        if lowered in FALSE_STRINGS:
            return False
    return bool(value)


def _to_date(value: Any) -> Optional[Any]:
    if isinstance(value, (datetime, date)):
        return value
    try:
        return datetime.fromisoformat(str(value))
    except ValueError:
        return None


def is_excluded(
    row: Sequence[Any],
    positions: Dict[str, int],
    exclude_records: Sequence[ExcludeRule]
) -> bool:
    """True when any exclude rule lists the row's raw value for its column."""
    for rule in exclude_records:
        position = positions.get(rule.column_name)
        if position is None:
            continue
        if _cell(row, position) in rule.values:
            return True
    return False


def map_rows(
    header_row: Sequence[Any],
    rows: Sequence[Sequence[Any]],
    columns: Sequence[ColumnConfig],
    exclude_records: Sequence[ExcludeRule] = (),
    sheet_name: Optional[str] = None
) -> List[Dict[str, Any]]:
    """
    Map data rows to records.

    Args:
        header_row: Cell values of the header row
        rows: Data rows below the header
        columns: Column configuration
        exclude_records: Rules dropping rows by raw cell value
        sheet_name: Used in log messages only

    Returns:
        List of records in row order
    """
    positions = resolve_column_positions(header_row, columns, sheet_name)
    records = []
    excluded = 0

    for row in rows:
        if all(_is_blank(cell) for cell in row):
            continue

        if is_excluded(row, positions, exclude_records):
            excluded += 1
            continue

        record: Dict[str, Any] = {}
        for column in columns:
            if not column.header_name and column.column_index is None:
                record[column.column_name] = column.default_value
                continue

            position = positions.get(column.column_name)
            if position is None:
                continue

            value = _cell(row, position)
            if _is_blank(value) and column.default_value is not None:
                value = column.default_value

            record[column.column_name] = convert_value(value, column.data_type)

        if record:
            records.append(record)

    if excluded:
        logger.info(f"Excluded {excluded} rows from sheet '{sheet_name}'")

    return records


def _cell(row: Sequence[Any], position: int) -> Any:
    if 0 <= position < len(row):
        return row[position]
    return None


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())
