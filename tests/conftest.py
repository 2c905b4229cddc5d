"""
Pytest configuration and shared fixtures.

Builds small configurations, records and workbooks so unit tests never need a
running database.
"""

import pytest
from openpyxl import Workbook

from recordsync.config import (
    AppConfig,
    CollectionConfig,
    ColumnConfig,
    FileMapping,
    StoreConfig,
)


@pytest.fixture
def store_config():
    """PostgreSQL store configuration pointing at localhost."""
    return StoreConfig(
        kind="postgres",
        host="localhost",
        database="warehouse",
        username="postgres",
        password="postgres"
    )


@pytest.fixture
def scope_mapping():
    """File mapping for the Scopes.xlsx workbook built by scopes_workbook."""
    return FileMapping(
        filename="Scopes.xlsx",
        sheet_name="Scopes",
        columns=(
            ColumnConfig(column_name="Scope", header_name="Scope Name"),
            ColumnConfig(column_name="Category", header_name="Category"),
            ColumnConfig(column_name="Count", header_name="Count", data_type="number"),
        )
    )


@pytest.fixture
def scope_collection(scope_mapping):
    return CollectionConfig(
        name="hulu.scope",
        dedup_keys=("Scope", "Category"),
        compare_keys=("Scope",),
        mapping=(scope_mapping,)
    )


@pytest.fixture
def app_config(tmp_path, store_config, scope_collection):
    return AppConfig(
        store=store_config,
        collections=(scope_collection,),
        data_sheets_directory=str(tmp_path / "DataSheets"),
        reports_directory=str(tmp_path / "Reports")
    )


@pytest.fixture
def write_workbook(tmp_path):
    """Factory writing a single-sheet workbook under tmp_path/DataSheets."""
    directory = tmp_path / "DataSheets"
    directory.mkdir(exist_ok=True)

    def _write(filename, sheet_name, rows):
        workbook = Workbook()
        sheet = workbook.active
        sheet.title = sheet_name
        for row in rows:
            sheet.append(list(row))
        path = directory / filename
        workbook.save(path)
        return path

    return _write


@pytest.fixture
def scopes_workbook(write_workbook):
    """Scopes.xlsx with one duplicate row and one blank row."""
    return write_workbook("Scopes.xlsx", "Scopes", [
        ("Scope Name", "Category", "Count"),
        ("Read", "Core", 1),
        ("Write", "Core", 2),
        (" read ", "CORE", 3),
        (None, None, None),
        ("Admin", "Extra", None),
    ])
