"""Operator configuration loaded from the environment."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from .constants import DEFAULT_CONNECTION_SECRET


class ConfigurationError(Exception):
    """Raised when configuration validation fails."""


SERVICE_ACCOUNT_NAMESPACE_FILE = Path("/var/run/secrets/kubernetes.io/serviceaccount/namespace")

DEFAULT_REQUEUE_AFTER_SECONDS = 5
DEFAULT_DRIFT_CHECK_INTERVAL_SECONDS = 300
DEFAULT_METRICS_PORT = 8080
DEFAULT_MAX_WORKERS = 4
VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


def drift_check_interval() -> int:
    """Interval of the periodic drift check, needed when handlers are registered."""
    value = os.environ.get("DRIFT_CHECK_INTERVAL_SECONDS", "")
    try:
        return int(value) if value else DEFAULT_DRIFT_CHECK_INTERVAL_SECONDS
    except ValueError as e:
        raise ConfigurationError(f"DRIFT_CHECK_INTERVAL_SECONDS must be an integer: {value}") from e


def current_namespace() -> str:
    """Namespace the operator runs in."""
    namespace = os.environ.get("POD_NAMESPACE")
    if namespace:
        return namespace
    if SERVICE_ACCOUNT_NAMESPACE_FILE.exists():
        return SERVICE_ACCOUNT_NAMESPACE_FILE.read_text().strip()
    return "default"


@dataclass(frozen=True)
class OperatorConfig:
    """Operator configuration.

    All fields are validated at construction time. Invalid values raise
    ConfigurationError so the operator fails at startup.
    """

    connection_secret: str = DEFAULT_CONNECTION_SECRET
    namespace: str = "default"
    secure: bool = False
    stub_client: bool = False
    owner_references: bool = True
    requeue_after_seconds: int = DEFAULT_REQUEUE_AFTER_SECONDS
    drift_check_interval_seconds: int = DEFAULT_DRIFT_CHECK_INTERVAL_SECONDS
    metrics_port: int = DEFAULT_METRICS_PORT
    max_workers: int = DEFAULT_MAX_WORKERS
    log_level: str = "INFO"
    tracing_enabled: bool = False

    def __post_init__(self) -> None:
        errors: list[str] = []

        if not self.connection_secret:
            errors.append("MINIO_CONNECTION_SECRET must not be empty")
        if not self.namespace:
            errors.append("POD_NAMESPACE must not be empty")
        if self.requeue_after_seconds < 1:
            errors.append("REQUEUE_AFTER_SECONDS must be at least 1")
        if self.drift_check_interval_seconds < 10:
            errors.append("DRIFT_CHECK_INTERVAL_SECONDS must be at least 10")
        if not (1 <= self.metrics_port <= 65535):
            errors.append(f"METRICS_PORT must be a valid port: {self.metrics_port}")
        if self.max_workers < 1:
            errors.append("MAX_WORKERS must be at least 1")
        if self.log_level.upper() not in VALID_LOG_LEVELS:
            errors.append(f"LOG_LEVEL must be one of {VALID_LOG_LEVELS}: {self.log_level}")

        if errors:
            raise ConfigurationError("Configuration validation failed:\n  - " + "\n  - ".join(errors))

    @classmethod
    def from_env(cls) -> OperatorConfig:
        """Load configuration from environment variables.

        Environment Variables:
            MINIO_CONNECTION_SECRET: Secret holding endpoint, user and password
                of the MinIO root account (default: minio-controller-secret)
            POD_NAMESPACE: Namespace of the connection secret
                (default: the service account namespace)
            MINIO_SECURE: Use TLS for endpoints without a scheme (default: false)
            MINIO_STUB_CLIENT: Use the in-memory control API (default: false)
            SECRET_OWNER_REFERENCES: Make records own their credential secrets
                (default: true). When false, secrets are deleted explicitly.
            REQUEUE_AFTER_SECONDS: Delay after creating a bucket or a secret (default: 5)
            DRIFT_CHECK_INTERVAL_SECONDS: Periodic reconciliation interval (default: 300)
            METRICS_PORT: Port of the metrics and health server (default: 8080)
            MAX_WORKERS: Handler thread pool size (default: 4)
            LOG_LEVEL: Logging level (default: INFO)
            OTEL_TRACES_ENABLED: Export OpenTelemetry traces (default: false)
        """

        def get_int(key: str, default: int) -> int:
            value = os.environ.get(key)
            if value is None or value == "":
                return default
            try:
                return int(value)
            except ValueError as e:
                raise ConfigurationError(f"{key} must be an integer: {value}") from e

        def get_bool(key: str, default: bool) -> bool:
            value = os.environ.get(key, "").lower()
            if not value:
                return default
            return value in ("true", "1", "yes")

        return cls(
            connection_secret=os.environ.get("MINIO_CONNECTION_SECRET", DEFAULT_CONNECTION_SECRET),
            namespace=current_namespace(),
            secure=get_bool("MINIO_SECURE", False),
            stub_client=get_bool("MINIO_STUB_CLIENT", False),
            owner_references=get_bool("SECRET_OWNER_REFERENCES", True),
            requeue_after_seconds=get_int("REQUEUE_AFTER_SECONDS", DEFAULT_REQUEUE_AFTER_SECONDS),
            drift_check_interval_seconds=drift_check_interval(),
            metrics_port=get_int("METRICS_PORT", DEFAULT_METRICS_PORT),
            max_workers=get_int("MAX_WORKERS", DEFAULT_MAX_WORKERS),
            log_level=os.environ.get("LOG_LEVEL", "INFO"),
            tracing_enabled=get_bool("OTEL_TRACES_ENABLED", False),
        )
