"""Typed views over Bucket and Policy records and their credential secrets."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .constants import (
    API_GROUP_VERSION,
    SECRET_FIELD_PASSWORD,
    SECRET_FIELD_USER,
    SEPARATOR,
)
from .exceptions import InvalidCredentialsError, InvalidSpecError


class AnonymousPolicy(str, Enum):
    """Level of unauthenticated access granted on a bucket."""

    PRIVATE = "private"
    PUBLIC = "public"
    UPLOAD = "upload"
    DOWNLOAD = "download"


class Effect(str, Enum):
    """Effect of a policy statement."""

    ALLOW = "Allow"
    DENY = "Deny"


def external_bucket_name(namespace: str, name: str) -> str:
    """Name of the MinIO bucket backing a Bucket record."""
    return SEPARATOR.join((namespace, name))


def external_policy_name(namespace: str, bucket_name: str, name: str) -> str:
    """Name of the MinIO canned policy backing a Policy record."""
    return SEPARATOR.join((namespace, bucket_name, name))


def owner_reference(body: dict[str, Any]) -> dict[str, Any]:
    """Build an owner reference pointing at a record."""
    meta = body.get("metadata", {})
    return {
        "apiVersion": body.get("apiVersion", API_GROUP_VERSION),
        "kind": body.get("kind"),
        "name": meta.get("name"),
        "uid": meta.get("uid"),
        "controller": True,
        "blockOwnerDeletion": True,
    }


@dataclass(frozen=True)
class StatementSpec:
    """One statement of a Policy record."""

    effect: Effect
    actions: tuple[str, ...]
    sub_paths: tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> StatementSpec:
        effect_value = data.get("effect", "")
        try:
            effect = Effect(effect_value)
        except ValueError as e:
            raise InvalidSpecError(f"Invalid statement effect: {effect_value!r}") from e
        return cls(
            effect=effect,
            actions=tuple(data.get("actions") or ()),
            sub_paths=tuple(data.get("subPaths") or ()),
        )


@dataclass(frozen=True)
class BucketSpec:
    """Spec of a Bucket record."""

    secret_name: str = ""
    policy: AnonymousPolicy = AnonymousPolicy.PRIVATE

    @classmethod
    def from_body(cls, body: dict[str, Any]) -> BucketSpec:
        spec = body.get("spec") or {}
        policy_value = spec.get("policy") or AnonymousPolicy.PRIVATE.value
        try:
            policy = AnonymousPolicy(policy_value)
        except ValueError as e:
            raise InvalidSpecError(f"Invalid anonymous policy: {policy_value!r}") from e
        return cls(secret_name=spec.get("secretName") or "", policy=policy)


@dataclass(frozen=True)
class PolicySpec:
    """Spec of a Policy record."""

    bucket_name: str
    statements: tuple[StatementSpec, ...]
    secret_name: str = ""

    @classmethod
    def from_body(cls, body: dict[str, Any]) -> PolicySpec:
        spec = body.get("spec") or {}
        bucket_name = spec.get("bucketName") or ""
        if not bucket_name:
            raise InvalidSpecError("bucketName is required")
        statements = tuple(StatementSpec.from_dict(s) for s in spec.get("statements") or ())
        if not statements:
            raise InvalidSpecError("statements must not be empty")
        return cls(
            bucket_name=bucket_name,
            statements=statements,
            secret_name=spec.get("secretName") or "",
        )


@dataclass
class CredentialSecret:
    """A Kubernetes secret with decoded data."""

    name: str
    namespace: str
    data: dict[str, bytes] = field(default_factory=dict)
    annotations: dict[str, str] = field(default_factory=dict)
    owner_references: list[dict[str, Any]] = field(default_factory=list)
    resource_version: str | None = None


@dataclass(frozen=True)
class Credentials:
    """User and password of a dedicated IAM user."""

    user: str
    password: str

    @classmethod
    def from_secret(cls, secret: CredentialSecret) -> Credentials:
        """Extract credentials from a secret.

        Raises:
            InvalidCredentialsError: If user or password is missing, empty or not UTF-8
        """
        user = secret.data.get(SECRET_FIELD_USER, b"")
        password = secret.data.get(SECRET_FIELD_PASSWORD, b"")
        if not user or not password:
            raise InvalidCredentialsError(
                f"Secret {secret.namespace}/{secret.name} must contain non-empty "
                f"'{SECRET_FIELD_USER}' and '{SECRET_FIELD_PASSWORD}'"
            )
        try:
            return cls(user=user.decode("utf-8"), password=password.decode("utf-8"))
        except UnicodeDecodeError as e:
            raise InvalidCredentialsError(
                f"Secret {secret.namespace}/{secret.name} credentials must be UTF-8 encoded"
            ) from e


@dataclass(frozen=True)
class ReconcileKey:
    """Identity of a record to reconcile."""

    kind: str
    namespace: str
    name: str


@dataclass(frozen=True)
class ReconcileResult:
    """Outcome of one reconciliation.

    ``requeue_after`` asks for another pass after the given number of seconds.
    """

    requeue_after: float | None = None

    @classmethod
    def done(cls) -> ReconcileResult:
        return cls()

    @classmethod
    def requeue(cls, seconds: float) -> ReconcileResult:
        return cls(requeue_after=seconds)
