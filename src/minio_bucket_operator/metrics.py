"""Prometheus metrics for the MinIO Bucket Operator."""

from prometheus_client import Counter, Histogram

# Reconciliation metrics
reconcile_total = Counter(
    "minio_bucket_operator_reconcile_total",
    "Total number of reconciliations",
    ["kind", "result"],
)

reconcile_duration_seconds = Histogram(
    "minio_bucket_operator_reconcile_duration_seconds",
    "Duration of reconciliations in seconds",
    ["kind"],
    buckets=[0.1, 0.5, 1.0, 2.5, 5.0, 10.0],
)

error_total = Counter(
    "minio_bucket_operator_error_total",
    "Total number of reconciliation errors",
    ["kind", "error_type"],
)

resource_status_total = Counter(
    "minio_bucket_operator_resource_status_total",
    "Resource status updates",
    ["kind", "status"],
)

# MinIO operation metrics
bucket_operations_total = Counter(
    "minio_bucket_operator_bucket_operations_total",
    "Total number of bucket operations",
    ["operation", "result"],
)

policy_operations_total = Counter(
    "minio_bucket_operator_policy_operations_total",
    "Total number of IAM policy operations",
    ["operation", "result"],
)

credentials_created_total = Counter(
    "minio_bucket_operator_credentials_created_total",
    "Total number of generated credential secrets",
    ["kind"],
)

# Configuration drift detection metrics
drift_detected_total = Counter(
    "minio_bucket_operator_drift_detected_total",
    "Total number of configuration drift detections",
    ["kind", "resource_type"],
)

# API call metrics
api_call_total = Counter(
    "minio_bucket_operator_api_call_total",
    "Total number of API calls",
    ["api_type", "operation", "result"],
)

api_call_duration_seconds = Histogram(
    "minio_bucket_operator_api_call_duration_seconds",
    "Duration of API calls in seconds",
    ["api_type", "operation"],
    buckets=[0.01, 0.05, 0.1, 0.5, 1.0, 2.5, 5.0],
)
