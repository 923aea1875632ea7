"""Utilities for emitting Kubernetes events."""

from __future__ import annotations

from typing import Any

import kopf

from ..constants import (
    EVENT_REASON_ANONYMOUS_POLICY_UPDATED,
    EVENT_REASON_BUCKET_CREATED,
    EVENT_REASON_BUCKET_DELETED,
    EVENT_REASON_CREDENTIALS_CREATED,
    EVENT_REASON_POLICY_APPLIED,
    EVENT_REASON_POLICY_DELETED,
    EVENT_REASON_POLICY_FAILED,
    EVENT_REASON_RECONCILE_FAILED,
    EVENT_REASON_RECONCILE_STARTED,
)


def emit_event(
    body: dict[str, Any],
    reason: str,
    message: str,
    type_: str = "Normal",
) -> None:
    """Emit a Kubernetes event.

    Args:
        body: Resource the event refers to
        reason: Event reason
        message: Event message
        type_: Event type (Normal or Warning)
    """
    kopf.event(
        body,
        reason=reason,
        message=message,
        type=type_,
    )


def emit_reconcile_started(body: dict[str, Any]) -> None:
    """Emit reconcile started event."""
    emit_event(body, EVENT_REASON_RECONCILE_STARTED, "Reconciliation started")


def emit_reconcile_failed(body: dict[str, Any], message: str) -> None:
    """Emit reconcile failed event."""
    emit_event(body, EVENT_REASON_RECONCILE_FAILED, message, type_="Warning")


def emit_bucket_created(body: dict[str, Any], bucket_name: str) -> None:
    emit_event(body, EVENT_REASON_BUCKET_CREATED, f"Bucket {bucket_name} created")


def emit_bucket_deleted(body: dict[str, Any], bucket_name: str) -> None:
    emit_event(body, EVENT_REASON_BUCKET_DELETED, f"Bucket {bucket_name} deleted")


def emit_anonymous_policy_updated(body: dict[str, Any], bucket_name: str, level: str) -> None:
    emit_event(
        body,
        EVENT_REASON_ANONYMOUS_POLICY_UPDATED,
        f"Anonymous access of bucket {bucket_name} set to {level}",
    )


def emit_policy_applied(body: dict[str, Any], policy_name: str, action: str) -> None:
    emit_event(body, EVENT_REASON_POLICY_APPLIED, f"Policy {policy_name} {action}")


def emit_policy_deleted(body: dict[str, Any], policy_name: str) -> None:
    emit_event(body, EVENT_REASON_POLICY_DELETED, f"Policy {policy_name} and its users deleted")


def emit_policy_failed(body: dict[str, Any], message: str) -> None:
    """Emit policy failed event."""
    emit_event(body, EVENT_REASON_POLICY_FAILED, message, type_="Warning")


def emit_credentials_created(body: dict[str, Any], secret_name: str) -> None:
    emit_event(body, EVENT_REASON_CREDENTIALS_CREATED, f"Credentials stored in secret {secret_name}")
