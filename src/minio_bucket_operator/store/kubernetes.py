"""Record store backed by the Kubernetes API."""

from __future__ import annotations

import base64
import functools
import logging
import time
from typing import Any, Callable, TypeVar

from kubernetes import client, config

from .. import metrics
from ..constants import API_GROUP, API_VERSION, FIELD_MANAGER
from ..exceptions import ConflictError, NotFoundError
from ..models import CredentialSecret
from .base import PLURALS

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])


def load_kubernetes_config() -> None:
    """Load in-cluster configuration, falling back to the local kubeconfig."""
    try:
        config.load_incluster_config()
    except config.ConfigException:
        config.load_kube_config()


def k8s_call(operation: str) -> Callable[[F], F]:
    """Record call metrics and map API status codes to operator errors."""

    def decorator(fn: F) -> F:
        @functools.wraps(fn)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            start_time = time.time()
            try:
                result = fn(*args, **kwargs)
                metrics.api_call_total.labels(api_type="k8s", operation=operation, result="success").inc()
                return result
            except client.exceptions.ApiException as e:
                metrics.api_call_total.labels(api_type="k8s", operation=operation, result="error").inc()
                if e.status == 404:
                    raise NotFoundError(f"{operation}: not found") from e
                if e.status == 409:
                    raise ConflictError(f"{operation}: {e.reason}") from e
                raise
            finally:
                duration = time.time() - start_time
                metrics.api_call_duration_seconds.labels(api_type="k8s", operation=operation).observe(duration)

        return wrapper  # type: ignore[return-value]

    return decorator


def decode_secret_data(data: dict[str, str] | None) -> dict[str, bytes]:
    return {k: base64.b64decode(v) for k, v in (data or {}).items()}


def encode_secret_data(data: dict[str, bytes]) -> dict[str, str]:
    return {k: base64.b64encode(v).decode("ascii") for k, v in data.items()}


def secret_from_api(secret: client.V1Secret) -> CredentialSecret:
    meta = secret.metadata
    return CredentialSecret(
        name=meta.name,
        namespace=meta.namespace,
        data=decode_secret_data(secret.data),
        annotations=dict(meta.annotations or {}),
        owner_references=[
            client.ApiClient().sanitize_for_serialization(ref) for ref in meta.owner_references or []
        ],
        resource_version=meta.resource_version,
    )


def secret_to_api(secret: CredentialSecret) -> client.V1Secret:
    return client.V1Secret(
        metadata=client.V1ObjectMeta(
            name=secret.name,
            namespace=secret.namespace,
            annotations=secret.annotations or None,
            owner_references=secret.owner_references or None,
            resource_version=secret.resource_version,
        ),
        type="Opaque",
        data=encode_secret_data(secret.data),
    )


class KubernetesRecordStore:
    """Kubernetes implementation of RecordStore."""

    def __init__(
        self,
        custom_api: client.CustomObjectsApi | None = None,
        core_api: client.CoreV1Api | None = None,
    ) -> None:
        self.custom_api = custom_api or client.CustomObjectsApi()
        self.core_api = core_api or client.CoreV1Api()

    @staticmethod
    def _locate(body: dict[str, Any]) -> dict[str, str]:
        meta = body["metadata"]
        return {
            "group": API_GROUP,
            "version": API_VERSION,
            "namespace": meta["namespace"],
            "plural": PLURALS[body["kind"]],
            "name": meta["name"],
        }

    @k8s_call("get_record")
    def get(self, kind: str, namespace: str, name: str) -> dict[str, Any]:
        return self.custom_api.get_namespaced_custom_object(
            group=API_GROUP,
            version=API_VERSION,
            namespace=namespace,
            plural=PLURALS[kind],
            name=name,
        )

    @k8s_call("update_record")
    def update(self, body: dict[str, Any]) -> dict[str, Any]:
        return self.custom_api.replace_namespaced_custom_object(
            body=body, field_manager=FIELD_MANAGER, **self._locate(body)
        )

    @k8s_call("update_record_status")
    def update_status(self, body: dict[str, Any]) -> dict[str, Any]:
        return self.custom_api.replace_namespaced_custom_object_status(
            body=body, field_manager=FIELD_MANAGER, **self._locate(body)
        )

    @k8s_call("touch_record")
    def touch(self, kind: str, namespace: str, name: str, annotations: dict[str, str]) -> None:
        self.custom_api.patch_namespaced_custom_object(
            group=API_GROUP,
            version=API_VERSION,
            namespace=namespace,
            plural=PLURALS[kind],
            name=name,
            body={"metadata": {"annotations": annotations}},
            field_manager=FIELD_MANAGER,
        )

    @k8s_call("get_secret")
    def get_secret(self, namespace: str, name: str) -> CredentialSecret:
        return secret_from_api(self.core_api.read_namespaced_secret(name=name, namespace=namespace))

    @k8s_call("create_secret")
    def create_secret(self, secret: CredentialSecret) -> CredentialSecret:
        created = self.core_api.create_namespaced_secret(
            namespace=secret.namespace,
            body=secret_to_api(secret),
            field_manager=FIELD_MANAGER,
        )
        logger.info(f"Created secret {secret.namespace}/{secret.name}")
        return secret_from_api(created)

    @k8s_call("update_secret")
    def update_secret(self, secret: CredentialSecret) -> CredentialSecret:
        updated = self.core_api.replace_namespaced_secret(
            name=secret.name,
            namespace=secret.namespace,
            body=secret_to_api(secret),
            field_manager=FIELD_MANAGER,
        )
        return secret_from_api(updated)

    def delete_secret(self, namespace: str, name: str) -> None:
        try:
            self._delete_secret(namespace, name)
        except NotFoundError:
            return

    @k8s_call("delete_secret")
    def _delete_secret(self, namespace: str, name: str) -> None:
        self.core_api.delete_namespaced_secret(name=name, namespace=namespace)
        logger.info(f"Deleted secret {namespace}/{name}")
