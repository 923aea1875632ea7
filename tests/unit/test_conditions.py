"""Tests for condition utilities."""

from __future__ import annotations

from minio_bucket_operator.utils.conditions import (
    get_condition,
    set_available_condition,
    set_bucket_exists_condition,
    update_condition,
)


class TestUpdateCondition:
    """Test cases for update_condition."""

    def test_add_new_condition(self):
        conditions = update_condition([], "Available", "True", "Reconciling", "ok", observed_generation=3)

        assert len(conditions) == 1
        assert conditions[0]["type"] == "Available"
        assert conditions[0]["observedGeneration"] == 3
        assert conditions[0]["lastTransitionTime"].endswith("Z")

    def test_same_status_keeps_transition_time(self):
        """Test that lastTransitionTime only moves when the status flips."""
        conditions = [{"type": "Available", "status": "True", "lastTransitionTime": "2020-01-01T00:00:00Z"}]

        conditions = update_condition(conditions, "Available", "True", "Reconciling", "still ok")

        assert conditions[0]["lastTransitionTime"] == "2020-01-01T00:00:00Z"
        assert conditions[0]["message"] == "still ok"

    def test_status_flip_moves_transition_time(self):
        conditions = [{"type": "Available", "status": "True", "lastTransitionTime": "2020-01-01T00:00:00Z"}]

        conditions = update_condition(conditions, "Available", "False", "InvalidPolicy", "broken")

        assert conditions[0]["lastTransitionTime"] != "2020-01-01T00:00:00Z"

    def test_other_conditions_untouched(self):
        conditions = [{"type": "BucketExists", "status": "True"}]
        conditions = update_condition(conditions, "Available", "True", "Reconciling", "ok")
        assert [c["type"] for c in conditions] == ["BucketExists", "Available"]


class TestConditionHelpers:
    """Test cases for typed condition setters."""

    def test_available_unknown(self):
        conditions = set_available_condition([], None, "Starting reconciliation")
        condition = get_condition(conditions, "Available")
        assert condition["status"] == "Unknown"
        assert condition["reason"] == "Reconciling"

    def test_available_false_with_reason(self):
        conditions = set_available_condition([], False, "bad", reason="InvalidPolicy")
        assert get_condition(conditions, "Available")["reason"] == "InvalidPolicy"

    def test_bucket_exists_false(self):
        conditions = set_bucket_exists_condition([], False, "missing")
        condition = get_condition(conditions, "BucketExists")
        assert condition["status"] == "False"
        assert condition["reason"] == "BucketDoesNotExist"

    def test_get_missing_condition(self):
        assert get_condition([], "Available") is None
