"""Tests for the shared reconciler behavior."""

from __future__ import annotations

from unittest.mock import MagicMock

import kopf
import pytest

from minio_bucket_operator.constants import COND_AVAILABLE, KIND_BUCKET
from minio_bucket_operator.exceptions import (
    ConflictError,
    ExternalServiceError,
    InvalidSpecError,
    KeyTooShortError,
)
from minio_bucket_operator.handlers.base import run_reconcile
from minio_bucket_operator.models import ReconcileResult
from minio_bucket_operator.utils.conditions import get_condition, set_available_condition


def handler_returning(result=None, error=None) -> MagicMock:
    handler = MagicMock()
    if error is not None:
        handler.reconcile.side_effect = error
    else:
        handler.reconcile.return_value = result
    return handler


class TestRunReconcile:
    """Test cases for translating reconcile outcomes for kopf."""

    def test_done(self):
        handler = handler_returning(ReconcileResult.done())
        run_reconcile(handler, "ns", "name")
        handler.reconcile.assert_called_once_with("ns", "name")

    def test_requeue(self):
        handler = handler_returning(ReconcileResult.requeue(5))
        with pytest.raises(kopf.TemporaryError) as exc_info:
            run_reconcile(handler, "ns", "name")
        assert exc_info.value.delay == 5

    def test_conflict_retries_quickly(self):
        handler = handler_returning(error=ConflictError("stale"))
        with pytest.raises(kopf.TemporaryError) as exc_info:
            run_reconcile(handler, "ns", "name")
        assert exc_info.value.delay == 1

    def test_validation_error_is_permanent(self):
        handler = handler_returning(error=InvalidSpecError("statements must not be empty"))
        with pytest.raises(kopf.PermanentError):
            run_reconcile(handler, "ns", "name")

    def test_external_error_propagates(self):
        """Test that transient failures reach kopf's own backoff."""
        handler = handler_returning(error=ExternalServiceError("create_bucket", "timeout"))
        with pytest.raises(ExternalServiceError):
            run_reconcile(handler, "ns", "name")


class TestFinalizers:
    """Test cases for finalizer management."""

    def test_ensure_finalizer_is_idempotent(self, bucket_handler, store):
        body = store.create(KIND_BUCKET, "ns", "data")

        body = bucket_handler.ensure_finalizer(body)
        version = body["metadata"]["resourceVersion"]
        body = bucket_handler.ensure_finalizer(body)

        assert body["metadata"]["finalizers"] == [bucket_handler.finalizer]
        assert body["metadata"]["resourceVersion"] == version

    def test_remove_finalizer_keeps_others(self, bucket_handler, store):
        store.create(KIND_BUCKET, "ns", "data")
        store.records[(KIND_BUCKET, "ns", "data")]["metadata"]["finalizers"] = ["other", bucket_handler.finalizer]
        body = store.get(KIND_BUCKET, "ns", "data")

        bucket_handler.remove_finalizer(body)

        assert store.get(KIND_BUCKET, "ns", "data")["metadata"]["finalizers"] == ["other"]

    def test_stale_write_conflicts(self, bucket_handler, store):
        body = store.create(KIND_BUCKET, "ns", "data")
        store.touch(KIND_BUCKET, "ns", "data", {"x": "y"})

        with pytest.raises(ConflictError):
            bucket_handler.ensure_finalizer(body)


class TestStatus:
    """Test cases for status updates."""

    def test_update_conditions_skips_identical_status(self, bucket_handler, store):
        body = store.create(KIND_BUCKET, "ns", "data")
        body = bucket_handler.set_available(body, True, "ready")
        version = body["metadata"]["resourceVersion"]

        again = bucket_handler.set_available(body, True, "ready")

        assert again["metadata"]["resourceVersion"] == version

    def test_update_conditions_records_generation(self, bucket_handler, store):
        body = store.create(KIND_BUCKET, "ns", "data")
        body = bucket_handler.update_conditions(
            body, lambda conditions: set_available_condition(conditions, False, "broken")
        )
        assert body["status"]["observedGeneration"] == 1
        assert get_condition(body["status"]["conditions"], COND_AVAILABLE)["status"] == "False"

    def test_reconcile_failure_emits_warning(self, bucket_handler, store, storage, kopf_events):
        store.create(KIND_BUCKET, "ns", "data")
        storage.fail("create_bucket")

        with pytest.raises(ExternalServiceError):
            bucket_handler.reconcile("ns", "data")

        warnings = [c for c in kopf_events.call_args_list if c.kwargs["type"] == "Warning"]
        assert warnings[-1].kwargs["reason"] == "ReconcileFailed"


class TestCredentialSecret:
    """Test cases for credential secret creation."""

    def test_generation_failure_sets_status(self, bucket_handler, store, monkeypatch):
        body = store.create(KIND_BUCKET, "ns", "data")

        def too_short(*_args, **_kwargs):
            raise KeyTooShortError("access key length must be at least 3")

        monkeypatch.setattr("minio_bucket_operator.handlers.base.generate_access_key", too_short)

        with pytest.raises(KeyTooShortError):
            bucket_handler.create_credential_secret(body, "creds")

        condition = get_condition(store.get(KIND_BUCKET, "ns", "data")["status"]["conditions"], COND_AVAILABLE)
        assert condition["status"] == "False"
        assert condition["reason"] == "SecretCreationFailed"
        assert store.secrets == {}
