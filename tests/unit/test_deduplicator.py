"""
Unit tests for the deduplicator.
"""

import pytest

from recordsync.reconciliation.deduplicator import Deduplicator
from recordsync.reconciliation.errors import ConfigurationError
from recordsync.reconciliation.keys import KeyBuilder
from recordsync.reconciliation.models import SourceFile


class TestDedupe:
    """Test single-pass deduplication."""

    @pytest.fixture
    def deduplicator(self):
        return Deduplicator()

    def test_first_occurrence_wins(self, deduplicator):
        """Test that the first record per key is kept and repeats are counted."""
        first = {"Model": "A1", "Note": "first"}
        records = [first, {"Model": "A1", "Note": "second"}, {"Model": "B1"}]

        result = deduplicator.dedupe(records, ["Model"])

        assert list(result.unique) == [first, {"Model": "B1"}]
        assert result.unique[0] is first
        assert len(result.duplicates) == 1
        assert result.duplicates[0].key == "a1"
        assert result.duplicates[0].count == 1

    def test_duplicate_entry_holds_first_repeat(self, deduplicator):
        """Test that the duplicate entry carries the first repeated record."""
        records = [
            {"Model": "A1", "Seq": 1},
            {"Model": "a1 ", "Seq": 2},
            {"Model": "A1", "Seq": 3},
        ]

        result = deduplicator.dedupe(records, ["Model"])

        assert result.duplicates[0].record == {"Model": "a1 ", "Seq": 2}
        assert result.duplicates[0].count == 2

    def test_no_field_merging(self, deduplicator):
        """Test that later duplicates never fill gaps in the kept record."""
        records = [{"Model": "A1", "Mfr": None}, {"Model": "A1", "Mfr": "X"}]

        result = deduplicator.dedupe(records, ["Model"])

        assert result.unique[0]["Mfr"] is None

    def test_duplicates_ordered_by_first_repeat(self, deduplicator):
        records = [
            {"Model": "A"}, {"Model": "B"}, {"Model": "B"}, {"Model": "A"},
        ]

        result = deduplicator.dedupe(records, ["Model"])

        assert [entry.key for entry in result.duplicates] == ["b", "a"]

    @pytest.mark.parametrize("records, unique", [
        ([], 0),
        ([{"Model": "A"}], 1),
        ([{"Model": "A"}, {"Model": "a"}, {"Model": "B"}, {"Model": "b "}, {"Model": "C"}], 3),
        ([{"Model": None}, {"Model": ""}, {}], 1),
    ])
    def test_conservation(self, deduplicator, records, unique):
        """Test that unique + duplicate counts account for every record."""
        result = deduplicator.dedupe(records, ["Model"])

        assert len(result.unique) == unique
        assert result.duplicate_count == len(records) - unique

    def test_consumes_generators_once(self, deduplicator):
        records = ({"Model": m} for m in ["A", "A", "B"])

        result = deduplicator.dedupe(records, ["Model"])

        assert len(result.unique) == 2

    def test_empty_key_spec_raises(self, deduplicator):
        with pytest.raises(ConfigurationError, match="dedup"):
            deduplicator.dedupe([{"Model": "A"}], [])

    def test_uses_supplied_key_builder(self):
        """Test that per-field empty values apply to deduplication."""
        deduplicator = Deduplicator(KeyBuilder(empty_values={"Count": [0]}))
        records = [{"Model": "A", "Count": 0}, {"Model": "A", "Count": None}]

        result = deduplicator.dedupe(records, ["Model", "Count"])

        assert len(result.unique) == 1


class TestBuildReport:
    """Test combined and per-file duplicate reports."""

    @pytest.fixture
    def deduplicator(self):
        return Deduplicator()

    def test_report_combines_files(self, deduplicator):
        """Test that duplicates across files show up only in the combined view."""
        file_a = SourceFile("a.xlsx", ({"Model": "A1"}, {"Model": "B1"}), "Sheet1")
        file_b = SourceFile("b.xlsx", ({"Model": "a1"}, {"Model": "C1"}, {"Model": "C1"}), "Sheet1")
        records = list(file_a.records) + list(file_b.records)

        report = deduplicator.build_report(records, ["Model"], [file_a, file_b])

        assert report.total_records == 5
        assert report.unique_count == 3
        assert report.duplicate_count == 2
        assert [stats.duplicate_count for stats in report.file_stats] == [0, 1]
        assert report.file_stats[1].record_count == 3
        assert report.dedup_key_spec == ("Model",)

    def test_report_to_dict(self, deduplicator):
        report = deduplicator.build_report([{"Model": "A"}, {"Model": "A"}], ["Model"])
        data = report.to_dict()

        assert data["unique_count"] == 1
        assert data["duplicate_count"] == 1
        assert data["duplicates"] == [{"record": {"Model": "A"}, "key": "a", "count": 1}]
        assert data["files"] == []
