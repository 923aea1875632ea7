"""Record store interface for Bucket and Policy records and their secrets."""

from __future__ import annotations

from typing import Any, Protocol

from ..constants import KIND_BUCKET, KIND_POLICY, PLURAL_BUCKETS, PLURAL_POLICIES
from ..models import CredentialSecret

PLURALS = {
    KIND_BUCKET: PLURAL_BUCKETS,
    KIND_POLICY: PLURAL_POLICIES,
}


class RecordStore(Protocol):
    """Protocol defining record store operations.

    Missing objects raise NotFoundError, stale writes raise ConflictError.
    """

    def get(self, kind: str, namespace: str, name: str) -> dict[str, Any]:
        """Get a record."""
        ...

    def update(self, body: dict[str, Any]) -> dict[str, Any]:
        """Write a record's metadata and spec. Status is ignored."""
        ...

    def update_status(self, body: dict[str, Any]) -> dict[str, Any]:
        """Write a record's status only."""
        ...

    def touch(self, kind: str, namespace: str, name: str, annotations: dict[str, str]) -> None:
        """Merge annotations into a record without a version check."""
        ...

    def get_secret(self, namespace: str, name: str) -> CredentialSecret:
        """Get a secret with decoded data."""
        ...

    def create_secret(self, secret: CredentialSecret) -> CredentialSecret:
        """Create a secret."""
        ...

    def update_secret(self, secret: CredentialSecret) -> CredentialSecret:
        """Replace a secret's metadata and data."""
        ...

    def delete_secret(self, namespace: str, name: str) -> None:
        """Delete a secret. Deleting a missing secret succeeds."""
        ...
