"""Tests for creating the control API client."""

from __future__ import annotations

from unittest.mock import patch

import pytest

from minio_bucket_operator.builders.provider import create_client, create_client_from_secret
from minio_bucket_operator.config import OperatorConfig
from minio_bucket_operator.exceptions import InvalidSecretFormatError
from minio_bucket_operator.models import CredentialSecret
from minio_bucket_operator.services.memory.client import InMemoryStorageClient


def connection_secret(**data: bytes) -> CredentialSecret:
    fields = {"endpoint": b"minio.minio:9000", "user": b"root", "password": b"rootpassword"}
    fields.update(data)
    return CredentialSecret(name="minio-controller-secret", namespace="minio", data=fields)


class TestCreateClientFromSecret:
    """Test cases for create_client_from_secret."""

    @patch("minio_bucket_operator.builders.provider.MinioClient")
    def test_minio_client(self, mock_client):
        create_client_from_secret(connection_secret(), OperatorConfig(namespace="minio", secure=True))

        mock_client.assert_called_once_with(
            endpoint="minio.minio:9000",
            access_key="root",
            secret_key="rootpassword",
            secure=True,
        )

    @pytest.mark.parametrize("field", ["endpoint", "user", "password"])
    def test_missing_field(self, field):
        with pytest.raises(InvalidSecretFormatError) as exc_info:
            create_client_from_secret(connection_secret(**{field: b""}), OperatorConfig())
        assert field in str(exc_info.value)

    def test_stub_client(self):
        client = create_client_from_secret(connection_secret(), OperatorConfig(stub_client=True))
        assert isinstance(client, InMemoryStorageClient)


class TestCreateClient:
    """Test cases for create_client."""

    def test_missing_secret(self, store):
        with pytest.raises(InvalidSecretFormatError):
            create_client(store, OperatorConfig(namespace="minio"))

    def test_reads_configured_secret(self, store):
        store.create_secret(connection_secret())
        client = create_client(store, OperatorConfig(namespace="minio", stub_client=True))
        assert isinstance(client, InMemoryStorageClient)
