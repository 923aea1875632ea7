"""Utilities for managing Kubernetes conditions."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from ..constants import (
    COND_AVAILABLE,
    COND_BUCKET_EXISTS,
    REASON_BUCKET_DOES_NOT_EXIST,
    REASON_RECONCILING,
)


def update_condition(
    conditions: list[dict[str, Any]],
    condition_type: str,
    status: str,
    reason: str,
    message: str,
    observed_generation: int | None = None,
) -> list[dict[str, Any]]:
    """Update or add a condition to the conditions list.

    Args:
        conditions: List of existing conditions
        condition_type: Type of condition
        status: Status of condition ("True", "False", "Unknown")
        reason: Reason for the condition
        message: Human-readable message
        observed_generation: Generation when condition was observed

    Returns:
        Updated list of conditions
    """
    now = datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")

    new_condition = {
        "type": condition_type,
        "status": status,
        "reason": reason,
        "message": message,
        "lastTransitionTime": now,
    }
    if observed_generation is not None:
        new_condition["observedGeneration"] = observed_generation

    for idx, existing in enumerate(conditions):
        if existing.get("type") == condition_type:
            # Only move lastTransitionTime when the status flips
            if existing.get("status") == status:
                new_condition["lastTransitionTime"] = existing.get("lastTransitionTime", now)
            conditions[idx] = new_condition
            return conditions

    conditions.append(new_condition)
    return conditions


def get_condition(conditions: list[dict[str, Any]], condition_type: str) -> dict[str, Any] | None:
    """Find a condition by type."""
    for cond in conditions:
        if cond.get("type") == condition_type:
            return cond
    return None


def set_available_condition(
    conditions: list[dict[str, Any]],
    status: bool | None,
    message: str,
    reason: str = REASON_RECONCILING,
    observed_generation: int | None = None,
) -> list[dict[str, Any]]:
    """Set the Available condition. A status of None means Unknown."""
    if status is None:
        value = "Unknown"
    else:
        value = "True" if status else "False"
    return update_condition(conditions, COND_AVAILABLE, value, reason, message, observed_generation)


def set_bucket_exists_condition(
    conditions: list[dict[str, Any]],
    status: bool,
    message: str,
    observed_generation: int | None = None,
) -> list[dict[str, Any]]:
    """Set the BucketExists condition."""
    return update_condition(
        conditions,
        COND_BUCKET_EXISTS,
        "True" if status else "False",
        REASON_RECONCILING if status else REASON_BUCKET_DOES_NOT_EXIST,
        message,
        observed_generation,
    )
