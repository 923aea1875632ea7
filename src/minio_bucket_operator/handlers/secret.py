"""Credential secret watch mapping secret changes back to their owning records."""

from __future__ import annotations

import base64
import hashlib
import logging
import threading
from typing import Any

import kopf

from ..constants import (
    ANNOTATION_BUCKET_SECRET,
    ANNOTATION_POLICY_SECRET,
    ANNOTATION_SECRET_VERSION,
    KIND_BUCKET,
    KIND_POLICY,
    SECRET_FIELD_PASSWORD,
    SECRET_FIELD_USER,
)
from ..exceptions import NotFoundError
from ..models import ReconcileKey
from ..store.base import RecordStore

logger = logging.getLogger(__name__)

EVENT_MODIFIED = "MODIFIED"
EVENT_DELETED = "DELETED"


def credential_fields(data: dict[str, str] | None) -> tuple[bytes, bytes]:
    """Decode the user and password fields of raw secret data."""
    data = data or {}
    return (
        base64.b64decode(data.get(SECRET_FIELD_USER, "")),
        base64.b64decode(data.get(SECRET_FIELD_PASSWORD, "")),
    )


def _digest(data: dict[str, str] | None) -> str:
    user, password = credential_fields(data)
    return hashlib.sha256(user + b"\0" + password).hexdigest()


class SecretChangeTracker:
    """Decide which secret events must trigger a reconciliation of their owner.

    Creation and deletion always trigger. Modification triggers only when the
    user or password differs from the last observation of the same secret.
    """

    def __init__(self) -> None:
        self._digests: dict[tuple[str, str], str] = {}
        self._lock = threading.Lock()

    def observe(
        self,
        event_type: str | None,
        body: dict[str, Any],
        annotation: str,
        kind: str,
    ) -> ReconcileKey | None:
        """Record a secret event.

        Args:
            event_type: ADDED, MODIFIED, DELETED or None for the initial listing
            body: The secret as seen in the event
            annotation: Back-reference annotation naming the owner
            kind: Kind of the owning record

        Returns:
            Key of the owning record to reconcile, or None
        """
        meta = body.get("metadata", {})
        owner = (meta.get("annotations") or {}).get(annotation)
        if not owner:
            return None

        key = (meta.get("namespace", ""), meta.get("name", ""))
        digest = _digest(body.get("data"))
        with self._lock:
            if event_type == EVENT_DELETED:
                self._digests.pop(key, None)
                changed = True
            else:
                previous = self._digests.get(key)
                self._digests[key] = digest
                changed = event_type != EVENT_MODIFIED or previous != digest

        if not changed:
            return None
        return ReconcileKey(kind=kind, namespace=key[0], name=owner)


def trigger_owner(store: RecordStore, key: ReconcileKey, revision: str) -> None:
    """Stamp the owning record so its update handler runs."""
    try:
        store.touch(key.kind, key.namespace, key.name, {ANNOTATION_SECRET_VERSION: revision})
    except NotFoundError:
        logger.info(f"Owner {key.kind} {key.namespace}/{key.name} of changed secret no longer exists")
        return
    logger.info(f"Secret change triggers reconciliation of {key.kind} {key.namespace}/{key.name}")


def _handle_secret_event(event: dict[str, Any], memo: kopf.Memo, annotation: str, kind: str) -> None:
    body = event.get("object") or {}
    key = memo.secret_tracker.observe(event.get("type"), body, annotation, kind)
    if key is not None:
        revision = body.get("metadata", {}).get("resourceVersion") or ""
        trigger_owner(memo.store, key, revision)


@kopf.on.event("v1", "secrets", annotations={ANNOTATION_BUCKET_SECRET: kopf.PRESENT})
def bucket_secret_event(event: dict[str, Any], memo: kopf.Memo, **_: Any) -> None:
    """Reconcile a Bucket when its credential secret changes."""
    _handle_secret_event(event, memo, ANNOTATION_BUCKET_SECRET, KIND_BUCKET)


@kopf.on.event("v1", "secrets", annotations={ANNOTATION_POLICY_SECRET: kopf.PRESENT})
def policy_secret_event(event: dict[str, Any], memo: kopf.Memo, **_: Any) -> None:
    """Reconcile a Policy when its credential secret changes."""
    _handle_secret_event(event, memo, ANNOTATION_POLICY_SECRET, KIND_POLICY)
