"""Tests for the in-memory record store."""

from __future__ import annotations

from dataclasses import replace

import pytest

from minio_bucket_operator.constants import KIND_BUCKET
from minio_bucket_operator.exceptions import ConflictError, NotFoundError
from minio_bucket_operator.models import CredentialSecret


class TestRecords:
    """Test cases for record writes."""

    def test_spec_change_bumps_generation(self, store):
        body = store.create(KIND_BUCKET, "ns", "data", {"policy": "private"})
        body["spec"]["policy"] = "public"
        assert store.update(body)["metadata"]["generation"] == 2

    def test_metadata_change_keeps_generation(self, store):
        body = store.create(KIND_BUCKET, "ns", "data")
        body["metadata"]["finalizers"] = ["x"]
        assert store.update(body)["metadata"]["generation"] == 1

    def test_status_write_keeps_spec(self, store):
        body = store.create(KIND_BUCKET, "ns", "data", {"policy": "public"})
        body["spec"] = {}
        body["status"] = {"conditions": []}
        updated = store.update_status(body)
        assert updated["spec"] == {"policy": "public"}
        assert updated["status"] == {"conditions": []}

    def test_stale_version(self, store):
        body = store.create(KIND_BUCKET, "ns", "data")
        store.update(body)
        with pytest.raises(ConflictError):
            store.update_status(body)

    def test_missing(self, store):
        with pytest.raises(NotFoundError):
            store.get(KIND_BUCKET, "ns", "data")

    def test_deletion_waits_for_finalizers(self, store):
        body = store.create(KIND_BUCKET, "ns", "data")
        body["metadata"]["finalizers"] = ["x"]
        store.update(body)

        store.request_deletion(KIND_BUCKET, "ns", "data")
        body = store.get(KIND_BUCKET, "ns", "data")
        assert body["metadata"]["deletionTimestamp"]

        body["metadata"]["finalizers"] = []
        store.update(body)
        with pytest.raises(NotFoundError):
            store.get(KIND_BUCKET, "ns", "data")

    def test_owned_secrets_collected(self, store):
        body = store.create(KIND_BUCKET, "ns", "data")
        store.create_secret(CredentialSecret(
            name="creds", namespace="ns", owner_references=[{"uid": body["metadata"]["uid"]}]
        ))
        store.create_secret(CredentialSecret(name="other", namespace="ns"))

        store.request_deletion(KIND_BUCKET, "ns", "data")

        assert list(store.secrets) == [("ns", "other")]


class TestSecrets:
    """Test cases for secret writes."""

    def test_create_twice(self, store):
        store.create_secret(CredentialSecret(name="creds", namespace="ns"))
        with pytest.raises(ConflictError):
            store.create_secret(CredentialSecret(name="creds", namespace="ns"))

    def test_update_stale(self, store):
        secret = store.create_secret(CredentialSecret(name="creds", namespace="ns"))
        store.update_secret(secret)
        with pytest.raises(ConflictError):
            store.update_secret(replace(secret, data={"user": b"X"}))

    def test_delete_missing(self, store):
        store.delete_secret("ns", "creds")
        assert store.secrets == {}
