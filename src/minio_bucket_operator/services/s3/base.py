"""Control API interface for bucket and IAM operations."""

from __future__ import annotations

from typing import Protocol


class ObjectStorageClient(Protocol):
    """Protocol defining the control API operations the reconcilers rely on.

    Delete operations are idempotent: deleting something already absent succeeds.
    """

    def bucket_exists(self, name: str) -> bool:
        """Check if a bucket exists."""
        ...

    def create_bucket(self, name: str) -> None:
        """Create a bucket. Creating a bucket this client already owns succeeds."""
        ...

    def delete_bucket(self, name: str) -> None:
        """Delete a bucket."""
        ...

    def get_bucket_policy(self, name: str) -> str:
        """Get the anonymous-access policy of a bucket, or "" if none is set."""
        ...

    def set_bucket_policy(self, name: str, document: bytes) -> None:
        """Set the anonymous-access policy of a bucket.

        An empty document removes the policy.
        """
        ...

    def create_canned_policy(self, name: str, document: bytes) -> None:
        """Create or overwrite a canned IAM policy."""
        ...

    def delete_canned_policy(self, name: str) -> None:
        """Delete a canned IAM policy."""
        ...

    def get_policy_users(self, name: str) -> list[str] | None:
        """Get the users attached to a canned policy.

        Returns:
            Attached user names, or None if the policy has no mapping at all
        """
        ...

    def create_user(self, user: str, password: str) -> None:
        """Create an IAM user."""
        ...

    def set_user_password(self, user: str, password: str, enabled: bool = True) -> None:
        """Set the password of an IAM user and enable or disable it."""
        ...

    def delete_user(self, user: str) -> None:
        """Delete an IAM user."""
        ...

    def attach_policy(self, policy: str, user: str) -> None:
        """Attach a canned policy to a user."""
        ...
