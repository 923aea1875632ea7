"""In-memory record store with Kubernetes write semantics."""

from __future__ import annotations

import copy
import itertools
import uuid
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any

from ..constants import API_GROUP_VERSION
from ..exceptions import ConflictError, NotFoundError
from ..models import CredentialSecret


class InMemoryRecordStore:
    """In-memory implementation of RecordStore.

    Writes carrying a stale resourceVersion raise ConflictError. A record whose
    deletion was requested disappears once its finalizers are gone, taking
    the secrets it owns with it.
    """

    def __init__(self) -> None:
        self.records: dict[tuple[str, str, str], dict[str, Any]] = {}
        self.secrets: dict[tuple[str, str], CredentialSecret] = {}
        self._versions = itertools.count(1)

    def _next_version(self) -> str:
        return str(next(self._versions))

    def create(
        self,
        kind: str,
        namespace: str,
        name: str,
        spec: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Create a record the way the API server would."""
        body = {
            "apiVersion": API_GROUP_VERSION,
            "kind": kind,
            "metadata": {
                "name": name,
                "namespace": namespace,
                "uid": str(uuid.uuid4()),
                "generation": 1,
                "resourceVersion": self._next_version(),
                "finalizers": [],
                "annotations": {},
            },
            "spec": copy.deepcopy(spec or {}),
            "status": {},
        }
        self.records[(kind, namespace, name)] = body
        return copy.deepcopy(body)

    def request_deletion(self, kind: str, namespace: str, name: str) -> None:
        """Mark a record for deletion."""
        body = self._stored(kind, namespace, name)
        body["metadata"]["deletionTimestamp"] = datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")
        body["metadata"]["resourceVersion"] = self._next_version()
        self._collect(body)

    def _stored(self, kind: str, namespace: str, name: str) -> dict[str, Any]:
        try:
            return self.records[(kind, namespace, name)]
        except KeyError as e:
            raise NotFoundError(f"{kind} {namespace}/{name} not found") from e

    def _check_version(self, stored: dict[str, Any], body: dict[str, Any]) -> None:
        incoming = body.get("metadata", {}).get("resourceVersion")
        if incoming and incoming != stored["metadata"]["resourceVersion"]:
            raise ConflictError(
                f"{stored['kind']} {stored['metadata']['name']} was modified: "
                f"{incoming} != {stored['metadata']['resourceVersion']}"
            )

    def _collect(self, stored: dict[str, Any]) -> None:
        meta = stored["metadata"]
        if not meta.get("deletionTimestamp") or meta.get("finalizers"):
            return
        del self.records[(stored["kind"], meta["namespace"], meta["name"])]
        for key, secret in list(self.secrets.items()):
            if any(ref.get("uid") == meta["uid"] for ref in secret.owner_references):
                del self.secrets[key]

    def get(self, kind: str, namespace: str, name: str) -> dict[str, Any]:
        return copy.deepcopy(self._stored(kind, namespace, name))

    def update(self, body: dict[str, Any]) -> dict[str, Any]:
        meta = body["metadata"]
        stored = self._stored(body["kind"], meta["namespace"], meta["name"])
        self._check_version(stored, body)

        if body.get("spec") != stored.get("spec"):
            stored["metadata"]["generation"] = stored["metadata"].get("generation", 1) + 1
        stored["spec"] = copy.deepcopy(body.get("spec", {}))
        stored["metadata"]["finalizers"] = list(meta.get("finalizers") or [])
        stored["metadata"]["annotations"] = dict(meta.get("annotations") or {})
        stored["metadata"]["resourceVersion"] = self._next_version()

        result = copy.deepcopy(stored)
        self._collect(stored)
        return result

    def update_status(self, body: dict[str, Any]) -> dict[str, Any]:
        meta = body["metadata"]
        stored = self._stored(body["kind"], meta["namespace"], meta["name"])
        self._check_version(stored, body)
        stored["status"] = copy.deepcopy(body.get("status", {}))
        stored["metadata"]["resourceVersion"] = self._next_version()
        return copy.deepcopy(stored)

    def touch(self, kind: str, namespace: str, name: str, annotations: dict[str, str]) -> None:
        stored = self._stored(kind, namespace, name)
        stored["metadata"].setdefault("annotations", {}).update(annotations)
        stored["metadata"]["resourceVersion"] = self._next_version()

    def get_secret(self, namespace: str, name: str) -> CredentialSecret:
        try:
            return copy.deepcopy(self.secrets[(namespace, name)])
        except KeyError as e:
            raise NotFoundError(f"Secret {namespace}/{name} not found") from e

    def create_secret(self, secret: CredentialSecret) -> CredentialSecret:
        key = (secret.namespace, secret.name)
        if key in self.secrets:
            raise ConflictError(f"Secret {secret.namespace}/{secret.name} already exists")
        self.secrets[key] = replace(copy.deepcopy(secret), resource_version=self._next_version())
        return copy.deepcopy(self.secrets[key])

    def update_secret(self, secret: CredentialSecret) -> CredentialSecret:
        key = (secret.namespace, secret.name)
        stored = self.secrets.get(key)
        if stored is None:
            raise NotFoundError(f"Secret {secret.namespace}/{secret.name} not found")
        if secret.resource_version and secret.resource_version != stored.resource_version:
            raise ConflictError(f"Secret {secret.namespace}/{secret.name} was modified")
        self.secrets[key] = replace(copy.deepcopy(secret), resource_version=self._next_version())
        return copy.deepcopy(self.secrets[key])

    def delete_secret(self, namespace: str, name: str) -> None:
        self.secrets.pop((namespace, name), None)
