"""Tests for canned policy and user convergence."""

from __future__ import annotations

import pytest

from minio_bucket_operator.builders.policy import default_bucket_policy
from minio_bucket_operator.exceptions import ExternalServiceError
from minio_bucket_operator.models import Credentials
from minio_bucket_operator.sync.iam import IAMPolicy, delete_iam_policy, reconcile_iam_policy


def make_policy(user: str = "USERA", password: str = "password-a") -> IAMPolicy:
    return IAMPolicy(
        name="ns.bucket",
        bucket="ns.bucket",
        credentials=Credentials(user=user, password=password),
        document=default_bucket_policy("ns.bucket"),
    )


class TestReconcileIAMPolicy:
    """Test cases for reconcile_iam_policy."""

    def test_creates_policy_user_and_attachment(self, storage):
        """Test that a missing mapping creates everything."""
        action = reconcile_iam_policy(storage, make_policy())

        assert action == "created"
        assert "ns.bucket" in storage.canned_policies
        assert storage.users["USERA"]["password"] == "password-a"
        assert storage.mappings["ns.bucket"] == ["USERA"]
        assert storage.operations() == [
            "get_policy_users",
            "create_canned_policy",
            "create_user",
            "attach_policy",
        ]

    def test_mapping_without_user(self, storage):
        """Test that an empty mapping only creates and attaches the user."""
        storage.canned_policies["ns.bucket"] = b"{}"
        storage.mappings["ns.bucket"] = []

        action = reconcile_iam_policy(storage, make_policy())

        assert action == "attached"
        assert "create_canned_policy" not in storage.operations()
        assert storage.mappings["ns.bucket"] == ["USERA"]

    def test_same_user_rotates_password(self, storage):
        reconcile_iam_policy(storage, make_policy())
        storage.calls.clear()

        action = reconcile_iam_policy(storage, make_policy(password="password-b"))

        assert action == "rotated"
        assert storage.users["USERA"] == {"password": "password-b", "enabled": True}
        assert storage.operations() == ["get_policy_users", "set_user_password"]

    def test_credential_rotation_replaces_user(self, storage):
        """Test that a new user replaces the stale one, and a rerun only rotates."""
        reconcile_iam_policy(storage, make_policy(user="USERA"))
        storage.calls.clear()

        action = reconcile_iam_policy(storage, make_policy(user="USERB", password="password-b"))

        assert action == "replaced"
        assert "USERA" not in storage.users
        assert storage.mappings["ns.bucket"] == ["USERB"]
        assert storage.operations() == ["get_policy_users", "delete_user", "create_user", "attach_policy"]

        storage.calls.clear()
        action = reconcile_iam_policy(storage, make_policy(user="USERB", password="password-c"))

        assert action == "rotated"
        assert "delete_user" not in storage.operations()
        assert "create_user" not in storage.operations()
        assert storage.users["USERB"]["password"] == "password-c"

    def test_failure_propagates(self, storage):
        storage.fail("create_user")
        with pytest.raises(ExternalServiceError):
            reconcile_iam_policy(storage, make_policy())


class TestDeleteIAMPolicy:
    """Test cases for delete_iam_policy."""

    def test_deletes_users_and_policy(self, storage):
        reconcile_iam_policy(storage, make_policy())

        delete_iam_policy(storage, "ns.bucket")

        assert storage.users == {}
        assert storage.canned_policies == {}

    def test_idempotent(self, storage):
        """Test that deleting a missing policy succeeds."""
        delete_iam_policy(storage, "ns.bucket")
        delete_iam_policy(storage, "ns.bucket")
        assert storage.operations().count("delete_canned_policy") == 2

    def test_policy_deleted_even_if_user_deletion_fails(self, storage):
        reconcile_iam_policy(storage, make_policy())
        storage.fail("delete_user")

        with pytest.raises(ExternalServiceError):
            delete_iam_policy(storage, "ns.bucket")

        assert "ns.bucket" not in storage.canned_policies
