"""Bucket reconciliation: bucket lifecycle, anonymous access and the bucket's own user."""

from __future__ import annotations

from typing import Any

import kopf

from .. import metrics
from ..builders.policy import default_bucket_policy
from ..config import OperatorConfig, drift_check_interval
from ..constants import (
    ANNOTATION_BUCKET_SECRET,
    API_GROUP,
    API_VERSION,
    FINALIZER_BUCKET,
    KIND_BUCKET,
    PLURAL_BUCKETS,
    REASON_INVALID_POLICY,
)
from ..exceptions import ExternalServiceError, ValidationError
from ..models import BucketSpec, Credentials, ReconcileResult, external_bucket_name
from ..services.s3.base import ObjectStorageClient
from ..store.base import RecordStore
from ..sync.anonymous import reconcile_anonymous_policy
from ..sync.iam import IAMPolicy, delete_iam_policy, reconcile_iam_policy
from ..utils.events import emit_anonymous_policy_updated, emit_bucket_created, emit_bucket_deleted
from .base import BaseHandler, run_reconcile


class BucketHandler(BaseHandler):
    """Reconciler for Bucket records."""

    def __init__(self, store: RecordStore, client: ObjectStorageClient, config: OperatorConfig):
        super().__init__(
            kind=KIND_BUCKET,
            finalizer=FINALIZER_BUCKET,
            secret_annotation=ANNOTATION_BUCKET_SECRET,
            store=store,
            client=client,
            config=config,
        )

    def converge(self, body: dict[str, Any]) -> ReconcileResult:
        meta = body["metadata"]
        bucket_name = external_bucket_name(meta["namespace"], meta["name"])

        if meta.get("deletionTimestamp"):
            if self.has_finalizer(body):
                self.finalize(body, bucket_name)
            return ReconcileResult.done()

        body = self.ensure_finalizer(body)
        if not (body.get("status") or {}).get("conditions"):
            body = self.set_available(body, None, "Starting reconciliation")

        try:
            spec = BucketSpec.from_body(body)
        except ValidationError as e:
            self.fail_validation(body, e, REASON_INVALID_POLICY)

        if not self.ensure_bucket(body, bucket_name):
            return ReconcileResult.requeue(self.config.requeue_after_seconds)

        if reconcile_anonymous_policy(self.client, bucket_name, spec.policy):
            self.log_info(body, f"Anonymous access set to {spec.policy.value}", reason="AnonymousPolicyUpdated")
            emit_anonymous_policy_updated(body, bucket_name, spec.policy.value)

        # Without a secret the bucket gets no dedicated user
        if not spec.secret_name:
            self.set_available(body, True, f"Bucket {meta['name']} created successfully")
            return ReconcileResult.done()

        secret = self.resolve_secret(body, spec.secret_name)
        if secret is None:
            return ReconcileResult.requeue(self.config.requeue_after_seconds)

        try:
            credentials = Credentials.from_secret(secret)
        except ValidationError as e:
            self.fail_validation(body, e, "InvalidCredentials")

        action = reconcile_iam_policy(
            self.client,
            IAMPolicy(
                name=bucket_name,
                bucket=bucket_name,
                credentials=credentials,
                document=default_bucket_policy(bucket_name),
            ),
        )
        self.log_info(body, f"Bucket policy {action}", reason="PolicyReconciled", user=credentials.user)
        self.set_available(body, True, f"Bucket {meta['name']} created successfully")
        return ReconcileResult.done()

    def ensure_bucket(self, body: dict[str, Any], bucket_name: str) -> bool:
        """Make sure the bucket exists.

        Returns:
            True if the bucket already existed, False if it was just created
        """
        try:
            if self.client.bucket_exists(bucket_name):
                return True
        except ExternalServiceError as e:
            self.log_warning(
                body,
                "Failed to check bucket existence, attempting creation",
                reason="BucketCheckFailed",
                error=str(e),
            )

        self.log_info(body, f"Creating bucket {bucket_name}", event="bucket_create", reason="Creating")
        try:
            self.client.create_bucket(bucket_name)
        except ExternalServiceError:
            metrics.bucket_operations_total.labels(operation="create", result="error").inc()
            raise
        metrics.bucket_operations_total.labels(operation="create", result="success").inc()
        emit_bucket_created(body, bucket_name)
        return False

    def finalize(self, body: dict[str, Any], bucket_name: str) -> None:
        """Delete the bucket's IAM policy, its users and the bucket, then release the record."""
        self.log_info(body, f"Deleting bucket {bucket_name}", event="bucket_delete", reason="Deleting")
        delete_iam_policy(self.client, bucket_name)
        try:
            self.client.delete_bucket(bucket_name)
        except ExternalServiceError:
            metrics.bucket_operations_total.labels(operation="delete", result="error").inc()
            raise
        metrics.bucket_operations_total.labels(operation="delete", result="success").inc()

        self.delete_unowned_secret(body, (body.get("spec") or {}).get("secretName") or "")
        self.remove_finalizer(body)
        emit_bucket_deleted(body, bucket_name)


@kopf.on.create(API_GROUP, API_VERSION, PLURAL_BUCKETS)
@kopf.on.update(API_GROUP, API_VERSION, PLURAL_BUCKETS)
@kopf.on.resume(API_GROUP, API_VERSION, PLURAL_BUCKETS)
@kopf.timer(API_GROUP, API_VERSION, PLURAL_BUCKETS, interval=drift_check_interval(), idle=30)
def reconcile_bucket(namespace: str, name: str, memo: kopf.Memo, **_: Any) -> None:
    """Handle Bucket reconciliation."""
    run_reconcile(memo.bucket_handler, namespace, name)


@kopf.on.delete(API_GROUP, API_VERSION, PLURAL_BUCKETS, optional=True)
def delete_bucket(namespace: str, name: str, memo: kopf.Memo, **_: Any) -> None:
    """Handle Bucket deletion, guarded by the bucket finalizer."""
    run_reconcile(memo.bucket_handler, namespace, name)
