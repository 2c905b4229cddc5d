"""
Workbook Extractor

Reads one sheet of an .xlsx workbook with openpyxl and maps its rows to
records. Each file succeeds or fails on its own; a failure is reported in
the ExtractionResult rather than raised.
"""

import logging
import zipfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

import openpyxl
from openpyxl.utils.exceptions import InvalidFileException

from recordsync.config import ExcludeRule, FileMapping
from recordsync.extract.mapping import map_rows
from recordsync.reconciliation.errors import ExtractionError

logger = logging.getLogger(__name__)


@dataclass
class ExtractionResult:
    success: bool
    filename: str
    sheet_name: str
    records: List[Dict[str, Any]] = field(default_factory=list)
    record_count: int = 0
    error: Optional[str] = None


class WorkbookExtractor:
    """Extracts records from workbooks under a data sheets directory."""

    def __init__(self, data_sheets_directory: Union[str, Path]):
        self.directory = Path(data_sheets_directory)

    def extract(
        self,
        file_mapping: FileMapping,
        exclude_records: Sequence[ExcludeRule] = ()
    ) -> ExtractionResult:
        """
        Extract records for one file mapping.

        Args:
            file_mapping: File, sheet and column configuration
            exclude_records: Rules dropping rows by raw cell value

        Returns:
            ExtractionResult (success=False when the file or sheet is
            missing or unreadable)
        """
        path = self.directory / file_mapping.filename
        logger.info(f"Processing file: {file_mapping.filename}, sheet: {file_mapping.sheet_name}")

        try:
            header_row, rows = self.read_sheet(path, file_mapping.sheet_name, file_mapping.header_index)
        except ExtractionError as e:
            logger.warning(str(e))
            return ExtractionResult(
                success=False,
                filename=file_mapping.filename,
                sheet_name=file_mapping.sheet_name,
                error=str(e)
            )

        records = map_rows(
            header_row,
            rows,
            file_mapping.columns,
            exclude_records,
            sheet_name=file_mapping.sheet_name
        )

        logger.info(f"Extracted {len(records)} records from {file_mapping.filename}")

        return ExtractionResult(
            success=True,
            filename=file_mapping.filename,
            sheet_name=file_mapping.sheet_name,
            records=records,
            record_count=len(records)
        )

    def read_sheet(
        self,
        path: Path,
        sheet_name: str,
        header_index: int = 1
    ) -> Tuple[Tuple[Any, ...], List[Tuple[Any, ...]]]:
        """
        Read the header row and the data rows below it.

        Raises:
            ExtractionError: If the file or sheet is missing or unreadable
        """
        if not path.exists():
            raise ExtractionError(f"File not found: {path}")

        try:
            workbook = openpyxl.load_workbook(path, read_only=True, data_only=True)
        except (InvalidFileException, zipfile.BadZipFile, OSError, KeyError) as e:
            raise ExtractionError(f"Cannot open workbook {path}: {e}") from e

        try:
            if sheet_name not in workbook.sheetnames:
                raise ExtractionError(f"Sheet '{sheet_name}' does not exist in {path}")

            header_row: Tuple[Any, ...] = ()
            rows = []
            for row_number, row in enumerate(workbook[sheet_name].iter_rows(values_only=True), start=1):
                if row_number < header_index:
                    continue
                if row_number == header_index:
                    header_row = tuple(row)
                else:
                    rows.append(tuple(row))
        finally:
            workbook.close()

        return header_row, rows
