"""Pytest configuration and fixtures."""

from __future__ import annotations

from unittest.mock import patch

import pytest

from minio_bucket_operator.config import OperatorConfig
from minio_bucket_operator.handlers.bucket import BucketHandler
from minio_bucket_operator.handlers.policy import PolicyHandler
from minio_bucket_operator.services.memory.client import InMemoryStorageClient
from minio_bucket_operator.store.memory import InMemoryRecordStore


@pytest.fixture(autouse=True)
def kopf_events():
    """Capture Kubernetes events; posting them needs a running operator."""
    with patch("kopf.event") as mock_event:
        yield mock_event


@pytest.fixture
def config() -> OperatorConfig:
    return OperatorConfig(namespace="minio-system", requeue_after_seconds=5)


@pytest.fixture
def store() -> InMemoryRecordStore:
    return InMemoryRecordStore()


@pytest.fixture
def storage() -> InMemoryStorageClient:
    return InMemoryStorageClient()


@pytest.fixture
def bucket_handler(store, storage, config) -> BucketHandler:
    return BucketHandler(store, storage, config)


@pytest.fixture
def policy_handler(store, storage, config) -> PolicyHandler:
    return PolicyHandler(store, storage, config)
