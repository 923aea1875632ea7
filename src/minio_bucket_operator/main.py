"""Main entry point for the MinIO Bucket Operator."""

from __future__ import annotations

import logging
import threading
from typing import Any

import kopf

from . import handlers  # noqa: F401
from . import health
from . import logging as structured_logging
from . import tracing
from .builders.provider import create_client
from .config import OperatorConfig
from .constants import API_GROUP
from .exceptions import InvalidSecretFormatError
from .handlers.bucket import BucketHandler
from .handlers.policy import PolicyHandler
from .handlers.secret import SecretChangeTracker
from .store.kubernetes import KubernetesRecordStore, load_kubernetes_config

logger = logging.getLogger(__name__)


@kopf.on.startup()
def configure(settings: kopf.OperatorSettings, memo: kopf.Memo, **_: Any) -> None:
    """Configure the operator and wire reconcilers into the memo."""
    config = OperatorConfig.from_env()

    # Set up structured JSON logging
    structured_logging.setup_structured_logging(config.log_level)
    tracing.initialize_tracing(config.tracing_enabled)

    # Use annotations so kopf state never collides with status updates
    settings.persistence.progress_storage = kopf.AnnotationsProgressStorage(prefix=API_GROUP)
    settings.persistence.diffbase_storage = kopf.AnnotationsDiffBaseStorage(prefix=API_GROUP)

    settings.posting.level = logging.WARNING
    settings.networking.request_timeout = 30.0
    settings.execution.max_workers = config.max_workers

    load_kubernetes_config()
    store = KubernetesRecordStore()
    try:
        client = create_client(store, config)
    except InvalidSecretFormatError as e:
        raise kopf.PermanentError(str(e)) from e

    # Startup handlers are retried, the server must only bind once
    if getattr(memo, "metrics_server", None) is None:
        memo.ready = threading.Event()
        memo.metrics_server = health.start_metrics_server(config.metrics_port, ready=memo.ready.is_set)

    memo.config = config
    memo.store = store
    memo.client = client
    memo.bucket_handler = BucketHandler(store, client, config)
    memo.policy_handler = PolicyHandler(store, client, config)
    memo.secret_tracker = SecretChangeTracker()

    memo.ready.set()
    logger.info(
        f"Operator started, connection secret {config.namespace}/{config.connection_secret}, "
        f"metrics on port {config.metrics_port}"
    )


@kopf.on.cleanup()
def shutdown(memo: kopf.Memo, **_: Any) -> None:
    """Stop the metrics server."""
    server = getattr(memo, "metrics_server", None)
    if server is not None:
        server.shutdown()


def run() -> None:
    """Run the operator for all namespaces."""
    kopf.run(clusterwide=True, standalone=True)
