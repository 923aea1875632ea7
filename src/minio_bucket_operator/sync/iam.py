"""Convergence of a canned IAM policy and its dedicated user."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from .. import metrics
from ..builders.policy import PolicyDocument
from ..exceptions import ExternalServiceError
from ..models import Credentials
from ..services.s3.base import ObjectStorageClient
from ..tracing import trace_span

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IAMPolicy:
    """Desired state of a canned policy with one attached user."""

    name: str
    bucket: str
    credentials: Credentials
    document: PolicyDocument

    @property
    def user(self) -> str:
        return self.credentials.user

    @property
    def password(self) -> str:
        return self.credentials.password


def _create_user_and_attach(client: ObjectStorageClient, policy: IAMPolicy) -> None:
    client.create_user(policy.user, policy.password)
    client.attach_policy(policy.name, policy.user)


def reconcile_iam_policy(client: ObjectStorageClient, policy: IAMPolicy) -> str:
    """Converge a canned policy and its attached user.

    Args:
        client: Control API client
        policy: Desired policy state

    Returns:
        The action taken: "created", "attached", "rotated" or "replaced"

    Raises:
        ExternalServiceError: If a control API call fails
    """
    with trace_span("reconcile_iam_policy", attributes={"policy": policy.name, "bucket": policy.bucket}):
        users = client.get_policy_users(policy.name)

        if users is None:
            client.create_canned_policy(policy.name, policy.document.to_json())
            _create_user_and_attach(client, policy)
            action = "created"
        elif not users:
            _create_user_and_attach(client, policy)
            action = "attached"
        elif policy.user in users:
            client.set_user_password(policy.user, policy.password, enabled=True)
            action = "rotated"
        else:
            for stale in users:
                logger.info(f"Replacing user {stale} attached to policy {policy.name}")
                client.delete_user(stale)
            _create_user_and_attach(client, policy)
            metrics.drift_detected_total.labels(kind="Policy", resource_type="user").inc()
            action = "replaced"

        metrics.policy_operations_total.labels(operation=action, result="success").inc()
        return action


def delete_iam_policy(client: ObjectStorageClient, name: str) -> None:
    """Delete every user attached to a canned policy, then the policy itself.

    All users are attempted even if some deletions fail.

    Raises:
        ExternalServiceError: If any deletion failed
    """
    with trace_span("delete_iam_policy", attributes={"policy": name}):
        errors: list[str] = []
        for user in client.get_policy_users(name) or []:
            try:
                client.delete_user(user)
            except ExternalServiceError as e:
                logger.error(f"Failed to delete user {user} of policy {name}: {e}")
                errors.append(str(e))

        try:
            client.delete_canned_policy(name)
        except ExternalServiceError as e:
            logger.error(f"Failed to delete policy {name}: {e}")
            errors.append(str(e))

        if errors:
            metrics.policy_operations_total.labels(operation="delete", result="error").inc()
            raise ExternalServiceError("delete_iam_policy", "; ".join(errors))
        metrics.policy_operations_total.labels(operation="delete", result="success").inc()
