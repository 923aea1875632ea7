"""Tests for operator startup wiring."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import kopf
import pytest

from minio_bucket_operator.exceptions import InvalidSecretFormatError
from minio_bucket_operator.handlers.bucket import BucketHandler
from minio_bucket_operator.handlers.policy import PolicyHandler
from minio_bucket_operator.handlers.secret import SecretChangeTracker
from minio_bucket_operator.main import configure, shutdown


class TestConfigure:
    """Test cases for the startup handler."""

    @patch("minio_bucket_operator.main.create_client")
    @patch("minio_bucket_operator.main.KubernetesRecordStore")
    @patch("minio_bucket_operator.main.load_kubernetes_config")
    @patch("minio_bucket_operator.main.health.start_metrics_server")
    @patch("minio_bucket_operator.main.structured_logging.setup_structured_logging")
    def test_wires_memo(self, _logging, mock_server, mock_load, mock_store, mock_client, monkeypatch):
        monkeypatch.setenv("POD_NAMESPACE", "minio")
        monkeypatch.setenv("MAX_WORKERS", "8")
        settings = kopf.OperatorSettings()
        memo = kopf.Memo()

        configure(settings=settings, memo=memo)

        mock_load.assert_called_once()
        assert settings.execution.max_workers == 8
        assert isinstance(settings.persistence.progress_storage, kopf.AnnotationsProgressStorage)
        assert isinstance(memo.bucket_handler, BucketHandler)
        assert isinstance(memo.policy_handler, PolicyHandler)
        assert isinstance(memo.secret_tracker, SecretChangeTracker)
        assert memo.store is mock_store.return_value
        assert memo.bucket_handler.client is mock_client.return_value
        assert memo.config.namespace == "minio"

        ready = mock_server.call_args.kwargs["ready"]
        assert ready() is True

    def test_shutdown_stops_server(self):
        memo = kopf.Memo()
        memo.metrics_server = MagicMock()
        shutdown(memo=memo)
        memo.metrics_server.shutdown.assert_called_once()

    @patch("minio_bucket_operator.main.create_client")
    @patch("minio_bucket_operator.main.KubernetesRecordStore")
    @patch("minio_bucket_operator.main.load_kubernetes_config")
    @patch("minio_bucket_operator.main.health.start_metrics_server")
    @patch("minio_bucket_operator.main.structured_logging.setup_structured_logging")
    def test_malformed_connection_secret_is_permanent(self, _logging, mock_server, _load, _store, mock_client):
        """Test that a malformed connection secret stops startup before the server binds."""
        mock_client.side_effect = InvalidSecretFormatError("Connection secret minio/creds is missing key password")
        memo = kopf.Memo()

        with pytest.raises(kopf.PermanentError, match="missing key password"):
            configure(settings=kopf.OperatorSettings(), memo=memo)

        mock_server.assert_not_called()
        assert getattr(memo, "metrics_server", None) is None

    @patch("minio_bucket_operator.main.create_client")
    @patch("minio_bucket_operator.main.KubernetesRecordStore")
    @patch("minio_bucket_operator.main.load_kubernetes_config")
    @patch("minio_bucket_operator.main.health.start_metrics_server")
    @patch("minio_bucket_operator.main.structured_logging.setup_structured_logging")
    def test_retried_startup_starts_server_once(self, _logging, mock_server, _load, _store, mock_client):
        """Test that a retried startup handler does not bind the metrics port twice."""
        mock_client.side_effect = [ConnectionError("control API unreachable"), MagicMock(), MagicMock()]
        memo = kopf.Memo()

        with pytest.raises(ConnectionError):
            configure(settings=kopf.OperatorSettings(), memo=memo)
        configure(settings=kopf.OperatorSettings(), memo=memo)
        configure(settings=kopf.OperatorSettings(), memo=memo)

        mock_server.assert_called_once()
        assert memo.metrics_server is mock_server.return_value
        assert mock_server.call_args.kwargs["ready"]() is True
