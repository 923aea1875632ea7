"""Policy reconciliation: fine-grained IAM policies attached to a dedicated user."""

from __future__ import annotations

from typing import Any

import kopf

from ..builders.policy import build_from_statements
from ..config import OperatorConfig, drift_check_interval
from ..constants import (
    ANNOTATION_POLICY_SECRET,
    API_GROUP,
    API_VERSION,
    FINALIZER_POLICY,
    KIND_BUCKET,
    KIND_POLICY,
    PLURAL_POLICIES,
    REASON_INVALID_POLICY,
)
from ..exceptions import BucketNotFoundError, NotFoundError, ValidationError
from ..models import (
    Credentials,
    PolicySpec,
    ReconcileResult,
    external_bucket_name,
    external_policy_name,
)
from ..services.s3.base import ObjectStorageClient
from ..store.base import RecordStore
from ..sync.iam import IAMPolicy, delete_iam_policy, reconcile_iam_policy
from ..utils.conditions import set_bucket_exists_condition
from ..utils.events import emit_policy_applied, emit_policy_deleted, emit_policy_failed
from .base import BaseHandler, run_reconcile


def secret_name_for(body: dict[str, Any]) -> str:
    """Credential secret of a Policy, named after the record unless set explicitly."""
    return (body.get("spec") or {}).get("secretName") or body["metadata"]["name"]


def policy_name_for(body: dict[str, Any]) -> str:
    meta = body["metadata"]
    bucket_name = (body.get("spec") or {}).get("bucketName") or ""
    return external_policy_name(meta["namespace"], bucket_name, meta["name"])


class PolicyHandler(BaseHandler):
    """Reconciler for Policy records."""

    def __init__(self, store: RecordStore, client: ObjectStorageClient, config: OperatorConfig):
        super().__init__(
            kind=KIND_POLICY,
            finalizer=FINALIZER_POLICY,
            secret_annotation=ANNOTATION_POLICY_SECRET,
            store=store,
            client=client,
            config=config,
        )

    def converge(self, body: dict[str, Any]) -> ReconcileResult:
        meta = body["metadata"]
        policy_name = policy_name_for(body)

        if meta.get("deletionTimestamp"):
            if self.has_finalizer(body):
                self.finalize(body, policy_name)
            return ReconcileResult.done()

        body = self.ensure_finalizer(body)
        if not (body.get("status") or {}).get("conditions"):
            body = self.set_available(body, None, "Starting reconciliation")

        try:
            spec = PolicySpec.from_body(body)
        except ValidationError as e:
            self.fail_validation(body, e, REASON_INVALID_POLICY)

        body = self.require_bucket(body, spec.bucket_name)
        bucket_name = external_bucket_name(meta["namespace"], spec.bucket_name)

        try:
            document = build_from_statements(bucket_name, spec.statements)
        except ValidationError as e:
            emit_policy_failed(body, f"Invalid policy {policy_name}: {e}")
            self.fail_validation(body, e, REASON_INVALID_POLICY)

        secret = self.resolve_secret(body, secret_name_for(body))
        if secret is None:
            return ReconcileResult.requeue(self.config.requeue_after_seconds)

        try:
            credentials = Credentials.from_secret(secret)
        except ValidationError as e:
            self.fail_validation(body, e, "InvalidCredentials")

        action = reconcile_iam_policy(
            self.client,
            IAMPolicy(name=policy_name, bucket=bucket_name, credentials=credentials, document=document),
        )
        emit_policy_applied(body, policy_name, action)
        self.log_info(body, f"Policy {action}", reason="PolicyReconciled", user=credentials.user)
        self.set_available(body, True, f"Policy {policy_name} created successfully")
        return ReconcileResult.done()

    def require_bucket(self, body: dict[str, Any], bucket_ref: str) -> dict[str, Any]:
        """Check that the referenced Bucket record exists and record the result.

        Raises:
            BucketNotFoundError: If the Bucket record does not exist
        """
        namespace = body["metadata"]["namespace"]
        generation = body["metadata"].get("generation")
        try:
            self.store.get(KIND_BUCKET, namespace, bucket_ref)
        except NotFoundError as e:
            self.update_conditions(
                body,
                lambda conditions: set_bucket_exists_condition(
                    conditions,
                    False,
                    "BucketRef must reference an existing bucket to be attached",
                    observed_generation=generation,
                ),
            )
            raise BucketNotFoundError(f"Bucket {namespace}/{bucket_ref} does not exist") from e

        return self.update_conditions(
            body,
            lambda conditions: set_bucket_exists_condition(
                conditions, True, f"Bucket {bucket_ref} exists", observed_generation=generation
            ),
        )

    def finalize(self, body: dict[str, Any], policy_name: str) -> None:
        """Delete the IAM policy and its users, then release the record."""
        self.log_info(body, f"Deleting policy {policy_name}", event="policy_delete", reason="Deleting")
        delete_iam_policy(self.client, policy_name)
        self.delete_unowned_secret(body, secret_name_for(body))
        self.remove_finalizer(body)
        emit_policy_deleted(body, policy_name)


@kopf.on.create(API_GROUP, API_VERSION, PLURAL_POLICIES)
@kopf.on.update(API_GROUP, API_VERSION, PLURAL_POLICIES)
@kopf.on.resume(API_GROUP, API_VERSION, PLURAL_POLICIES)
@kopf.timer(API_GROUP, API_VERSION, PLURAL_POLICIES, interval=drift_check_interval(), idle=30)
def reconcile_policy(namespace: str, name: str, memo: kopf.Memo, **_: Any) -> None:
    """Handle Policy reconciliation."""
    run_reconcile(memo.policy_handler, namespace, name)


@kopf.on.delete(API_GROUP, API_VERSION, PLURAL_POLICIES, optional=True)
def delete_policy(namespace: str, name: str, memo: kopf.Memo, **_: Any) -> None:
    """Handle Policy deletion, guarded by the policy finalizer."""
    run_reconcile(memo.policy_handler, namespace, name)
