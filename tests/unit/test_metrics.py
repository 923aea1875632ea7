"""Tests for Prometheus metrics."""

from __future__ import annotations

from prometheus_client import REGISTRY

from minio_bucket_operator.constants import KIND_BUCKET
from minio_bucket_operator.metrics import (
    api_call_total,
    bucket_operations_total,
    reconcile_duration_seconds,
    reconcile_total,
)


def sample(name: str, labels: dict[str, str]) -> float:
    return REGISTRY.get_sample_value(name, labels) or 0.0


class TestMetricsExist:
    """Test that expected metrics are defined."""

    def test_names(self):
        # Prometheus counters don't include "_total" in their _name attribute
        assert reconcile_total._name == "minio_bucket_operator_reconcile"
        assert bucket_operations_total._name == "minio_bucket_operator_bucket_operations"
        assert api_call_total._name == "minio_bucket_operator_api_call"
        assert reconcile_duration_seconds._name == "minio_bucket_operator_reconcile_duration_seconds"


class TestReconcileMetrics:
    """Test that reconciliation records metrics."""

    def test_success_and_requeue_counted(self, bucket_handler, store):
        store.create(KIND_BUCKET, "ns", "data")
        labels = {"kind": KIND_BUCKET, "result": "requeued"}
        before = sample("minio_bucket_operator_reconcile_total", labels)

        bucket_handler.reconcile("ns", "data")

        assert sample("minio_bucket_operator_reconcile_total", labels) == before + 1

    def test_bucket_creation_counted(self, bucket_handler, store):
        store.create(KIND_BUCKET, "ns", "data")
        labels = {"operation": "create", "result": "success"}
        before = sample("minio_bucket_operator_bucket_operations_total", labels)

        bucket_handler.reconcile("ns", "data")

        assert sample("minio_bucket_operator_bucket_operations_total", labels) == before + 1
