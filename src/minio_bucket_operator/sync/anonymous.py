"""Convergence of a bucket's anonymous-access policy."""

from __future__ import annotations

import logging

from .. import metrics
from ..builders.policy import PolicyDocument, build_anonymous
from ..models import AnonymousPolicy
from ..services.s3.base import ObjectStorageClient
from ..tracing import trace_span

logger = logging.getLogger(__name__)

# Returned by decide_policy when the current policy must be removed
CLEAR_POLICY = b""


def decide_policy(bucket: str, current: str | bytes, desired: AnonymousPolicy) -> bytes | None:
    """Decide which anonymous policy document, if any, must be applied.

    Args:
        bucket: External bucket name
        current: Document currently set on the bucket, empty if none
        desired: Requested anonymous-access level

    Returns:
        None when the bucket already matches, CLEAR_POLICY to remove the current
        policy, otherwise the document to set

    Raises:
        PolicyDocumentError: If the current document cannot be parsed
    """
    if desired is AnonymousPolicy.PRIVATE:
        return CLEAR_POLICY if current else None

    wanted = build_anonymous(bucket, desired)
    if not current:
        return wanted.to_json()

    if PolicyDocument.from_json(current).equals(wanted):
        return None
    return wanted.to_json()


def reconcile_anonymous_policy(
    client: ObjectStorageClient,
    bucket: str,
    desired: AnonymousPolicy,
) -> bool:
    """Converge the anonymous policy of a bucket.

    Returns:
        True if the policy was changed
    """
    with trace_span("reconcile_anonymous_policy", attributes={"bucket": bucket, "level": desired.value}):
        current = client.get_bucket_policy(bucket)
        document = decide_policy(bucket, current, desired)
        if document is None:
            return False

        client.set_bucket_policy(bucket, document)
        metrics.drift_detected_total.labels(kind="Bucket", resource_type="anonymous_policy").inc()
        logger.info(f"Anonymous policy of bucket {bucket} set to {desired.value}")
        return True
