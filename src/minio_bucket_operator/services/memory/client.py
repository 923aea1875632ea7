"""In-memory control API used by tests and by stub mode."""

from __future__ import annotations

import logging
from typing import Any

from ...exceptions import ExternalServiceError

logger = logging.getLogger(__name__)


class InMemoryStorageClient:
    """In-memory implementation of ObjectStorageClient.

    Every call is recorded in ``calls``. Setting ``failures[operation]`` makes
    that operation raise the given exception until it is removed.
    """

    def __init__(self) -> None:
        self.buckets: set[str] = set()
        self.bucket_policies: dict[str, str] = {}
        self.canned_policies: dict[str, bytes] = {}
        self.users: dict[str, dict[str, Any]] = {}
        self.mappings: dict[str, list[str]] = {}
        self.calls: list[tuple[Any, ...]] = []
        self.failures: dict[str, Exception] = {}

    def _record(self, operation: str, *args: Any) -> None:
        self.calls.append((operation, *args))
        error = self.failures.get(operation)
        if error is not None:
            raise error

    def fail(self, operation: str, message: str = "injected failure") -> None:
        """Make an operation fail with an ExternalServiceError."""
        self.failures[operation] = ExternalServiceError(operation, message)

    def operations(self) -> list[str]:
        """Names of the operations called so far, in order."""
        return [call[0] for call in self.calls]

    def bucket_exists(self, name: str) -> bool:
        self._record("bucket_exists", name)
        return name in self.buckets

    def create_bucket(self, name: str) -> None:
        self._record("create_bucket", name)
        self.buckets.add(name)

    def delete_bucket(self, name: str) -> None:
        self._record("delete_bucket", name)
        self.buckets.discard(name)
        self.bucket_policies.pop(name, None)

    def get_bucket_policy(self, name: str) -> str:
        self._record("get_bucket_policy", name)
        return self.bucket_policies.get(name, "")

    def set_bucket_policy(self, name: str, document: bytes) -> None:
        self._record("set_bucket_policy", name, document)
        if document:
            self.bucket_policies[name] = document.decode("utf-8")
        else:
            self.bucket_policies.pop(name, None)

    def create_canned_policy(self, name: str, document: bytes) -> None:
        self._record("create_canned_policy", name, document)
        self.canned_policies[name] = document

    def delete_canned_policy(self, name: str) -> None:
        self._record("delete_canned_policy", name)
        self.canned_policies.pop(name, None)
        self.mappings.pop(name, None)

    def get_policy_users(self, name: str) -> list[str] | None:
        self._record("get_policy_users", name)
        if name not in self.mappings:
            return None
        return list(self.mappings[name])

    def create_user(self, user: str, password: str) -> None:
        self._record("create_user", user)
        self.users[user] = {"password": password, "enabled": True}

    def set_user_password(self, user: str, password: str, enabled: bool = True) -> None:
        self._record("set_user_password", user, enabled)
        if user not in self.users:
            raise ExternalServiceError("set_user_password", f"user {user} does not exist")
        self.users[user] = {"password": password, "enabled": enabled}

    def delete_user(self, user: str) -> None:
        self._record("delete_user", user)
        self.users.pop(user, None)
        for users in self.mappings.values():
            if user in users:
                users.remove(user)

    def attach_policy(self, policy: str, user: str) -> None:
        self._record("attach_policy", policy, user)
        if policy not in self.canned_policies:
            raise ExternalServiceError("attach_policy", f"policy {policy} does not exist")
        if user not in self.users:
            raise ExternalServiceError("attach_policy", f"user {user} does not exist")
        users = self.mappings.setdefault(policy, [])
        if user not in users:
            users.append(user)
