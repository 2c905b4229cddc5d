"""
Unit tests for the reconciler.

Tests keyed set reconciliation between deduplicated source records and a
store snapshot.
"""

import json

import pytest

from recordsync.reconciliation.differ import Reconciler
from recordsync.reconciliation.errors import ConfigurationError, UniquenessViolation
from recordsync.reconciliation.models import ChangeType, Outcome


@pytest.fixture
def reconciler():
    return Reconciler()


class TestReconcile:
    """Test change set construction."""

    def test_source_only_record_is_addition(self, reconciler):
        """Test that a key missing from the store is an addition."""
        change_set = reconciler.reconcile([{"Model": "A1", "Mfr": "X"}], [], ["Model"])

        assert change_set.counts["additions"] == 1
        assert change_set.counts["deletions"] == 0
        assert change_set.counts["updates"] == 0
        assert change_set.additions[0].action is Outcome.ADD
        assert change_set.additions[0].records == ({"Model": "A1", "Mfr": "X"},)

    def test_identical_record_is_match(self, reconciler):
        change_set = reconciler.reconcile(
            [{"Model": "A1", "Type": "T1"}],
            [{"Model": "A1", "Type": "T1"}],
            ["Model"]
        )

        assert change_set.counts["matches"] == 1
        assert change_set.counts["updates"] == 0
        assert not change_set.has_changes

    def test_changed_field_is_update(self, reconciler):
        change_set = reconciler.reconcile(
            [{"Model": "A1", "Type": "T1"}],
            [{"Model": "A1", "Type": "T2"}],
            ["Model"]
        )

        assert change_set.counts["updates"] == 1
        update = change_set.updates[0]
        assert update.outcome is Outcome.UPDATE
        assert [d.to_dict() for d in update.differences] == [{
            "field": "Type",
            "source_value": "T1",
            "store_value": "T2",
            "change_type": ChangeType.FIELD_MODIFIED.value,
        }]

    def test_store_only_record_is_deletion(self, reconciler):
        change_set = reconciler.reconcile([], [{"Model": "Z9"}], ["Model"])

        assert change_set.counts["deletions"] == 1
        assert change_set.deletions[0].action is Outcome.DELETE

    def test_disjoint_keys(self, reconciler):
        """Test that disjoint key sets give only additions and deletions."""
        source = [{"Model": f"S{i}"} for i in range(3)]
        store = [{"Model": f"D{i}"} for i in range(4)]

        change_set = reconciler.reconcile(source, store, ["Model"])

        assert change_set.counts["additions"] == 3
        assert change_set.counts["deletions"] == 4
        assert change_set.counts["keys_on_both"] == 0

    def test_identical_sets_all_match(self, reconciler):
        records = [{"Model": f"M{i}", "Type": "T"} for i in range(5)]

        change_set = reconciler.reconcile(records, [dict(r) for r in records], ["Model"])

        assert change_set.counts["matches"] == 5
        assert change_set.counts["updates"] == 0

    def test_keys_are_case_insensitive_across_sides(self, reconciler):
        change_set = reconciler.reconcile([{"Model": " a1"}], [{"Model": "A1"}], ["Model"])

        assert change_set.counts["matches"] == 1

    def test_orders_follow_input_order(self, reconciler):
        source = [{"Model": "C"}, {"Model": "A"}, {"Model": "B"}]
        store = [{"Model": "Z"}, {"Model": "B"}, {"Model": "Y"}]

        change_set = reconciler.reconcile(source, store, ["Model"])

        assert [g.key for g in change_set.additions] == ["c", "a"]
        assert [g.key for g in change_set.deletions] == ["z", "y"]

    def test_source_group_with_several_records(self, reconciler):
        """Test that several source records under one compare key update as a group."""
        source = [{"Model": "A1", "Mfr": "X"}, {"Model": "A1", "Mfr": "Y"}]

        change_set = reconciler.reconcile(source, [{"Model": "A1", "Mfr": "X"}], ["Model"])

        assert change_set.counts["updates"] == 1
        assert change_set.updates[0].reason == "cardinality"
        assert len(change_set.updates[0].source_records) == 2

    def test_addition_count_sums_group_records(self, reconciler):
        source = [{"Model": "A1", "Mfr": "X"}, {"Model": "A1", "Mfr": "Y"}]

        change_set = reconciler.reconcile(source, [], ["Model"])

        assert len(change_set.additions) == 1
        assert change_set.counts["additions"] == 2

    def test_exact_match_fields_recorded(self, reconciler):
        change_set = reconciler.reconcile(
            [{"Model": "A1", "Type": "T1", "Note": "x"}],
            [{"Model": "A1", "Type": "t1", "Note": "y"}],
            ["Model"],
            exact_match_fields=["Type"]
        )

        assert change_set.counts["matches"] == 1
        assert change_set.exact_match_fields == ("Type",)

    def test_empty_compare_keys_raise(self, reconciler):
        with pytest.raises(ConfigurationError, match="compare"):
            reconciler.reconcile([{"Model": "A1"}], [], [])

    def test_idempotent_output(self, reconciler):
        """Test that repeated runs over the same inputs serialize identically."""
        source = [{"Model": "A1", "Type": "T1"}, {"Model": "B1"}, {"Model": "C1", "Type": "x"}]
        store = [{"Model": "A1", "Type": "T2"}, {"Model": "C1", "Type": "X"}, {"Model": "D1"}]

        first = reconciler.reconcile(source, store, ["Model"])
        second = Reconciler().reconcile(source, store, ["Model"])

        assert json.dumps(first.to_dict(), sort_keys=True, default=str) == \
            json.dumps(second.to_dict(), sort_keys=True, default=str)


class TestStoreUniqueness:
    """Test refusal of non-unique store snapshots."""

    def test_duplicate_store_key_raises(self, reconciler):
        """Test that two store records under one key fail the collection."""
        with pytest.raises(UniquenessViolation) as exc_info:
            reconciler.reconcile(
                [{"Model": "A1"}],
                [{"Model": "A1"}, {"Model": "a1 "}],
                ["Model"],
                collection="catalog.models"
            )

        error = exc_info.value
        assert error.key == "a1"
        assert error.key_spec == ["Model"]
        assert error.record_count == 2
        assert error.collection == "catalog.models"
        assert "catalog.models" in str(error)

    def test_reconciler_is_stateless_after_violation(self, reconciler):
        """Test that a later reconciliation succeeds after a violation."""
        with pytest.raises(UniquenessViolation):
            reconciler.reconcile([], [{"Model": "A1"}, {"Model": "A1"}], ["Model"])

        change_set = reconciler.reconcile([{"Model": "A1"}], [{"Model": "A1"}], ["Model"])

        assert change_set.counts["matches"] == 1
