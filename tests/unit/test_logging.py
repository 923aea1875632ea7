"""Tests for structured logging."""

from __future__ import annotations

import json
import logging

from minio_bucket_operator.logging import log_resource_event


class TestLogResourceEvent:
    """Test cases for log_resource_event."""

    def test_json_line(self, caplog):
        logger = logging.getLogger("test.structured")
        with caplog.at_level(logging.INFO, logger="test.structured"):
            log_resource_event(
                logger,
                controller="minio-bucket-operator",
                resource_kind="Bucket",
                resource_name="data",
                namespace="ns",
                uid="1234",
                event="bucket_create",
                reason="Creating",
                message="Creating bucket ns.data",
                user="USERA",
            )

        record = json.loads(caplog.records[-1].getMessage())
        assert record["resource"] == "Bucket"
        assert record["event"] == "bucket_create"
        assert record["user"] == "USERA"

    def test_secrets_redacted(self, caplog):
        logger = logging.getLogger("test.structured")
        with caplog.at_level(logging.WARNING, logger="test.structured"):
            log_resource_event(
                logger, "c", "Policy", "reader", "ns", "1", "error", "Error", "failed",
                level=logging.WARNING,
                password="hunter2",
                error="request failed: secret_key=abc",
            )

        record = caplog.records[-1]
        assert record.levelno == logging.WARNING
        assert "hunter2" not in record.getMessage()
        assert "abc" not in json.loads(record.getMessage())["error"]
