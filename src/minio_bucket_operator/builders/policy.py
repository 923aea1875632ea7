"""Builders for canonical bucket and IAM policy documents."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Iterable

from ..constants import ARN_PREFIX, POLICY_VERSION
from ..exceptions import InvalidActionError, InvalidSubPathError, PolicyDocumentError
from ..models import AnonymousPolicy, Effect, StatementSpec

PRINCIPAL_ANY = frozenset({"*"})

BUCKET_READ_ACTIONS = frozenset({"s3:GetBucketLocation", "s3:ListBucket"})
BUCKET_PUBLIC_ACTIONS = BUCKET_READ_ACTIONS | {"s3:ListBucketMultipartUploads"}
BUCKET_UPLOAD_ACTIONS = frozenset({"s3:GetBucketLocation", "s3:ListBucketMultipartUploads"})
OBJECT_WRITE_ACTIONS = frozenset({
    "s3:ListMultipartUploadParts",
    "s3:PutObject",
    "s3:AbortMultipartUpload",
    "s3:DeleteObject",
})
OBJECT_READ_ACTIONS = frozenset({"s3:GetObject"})

# S3 actions accepted by MinIO in policy statements
SUPPORTED_ACTIONS = frozenset({
    "s3:*",
    "s3:AbortMultipartUpload",
    "s3:BypassGovernanceRetention",
    "s3:CreateBucket",
    "s3:DeleteBucket",
    "s3:DeleteBucketPolicy",
    "s3:DeleteObject",
    "s3:DeleteObjectTagging",
    "s3:DeleteObjectVersion",
    "s3:DeleteObjectVersionTagging",
    "s3:ForceDeleteBucket",
    "s3:GetBucketLocation",
    "s3:GetBucketNotification",
    "s3:GetBucketObjectLockConfiguration",
    "s3:GetBucketPolicy",
    "s3:GetBucketPolicyStatus",
    "s3:GetBucketTagging",
    "s3:GetBucketVersioning",
    "s3:GetEncryptionConfiguration",
    "s3:GetLifecycleConfiguration",
    "s3:GetObject",
    "s3:GetObjectAttributes",
    "s3:GetObjectLegalHold",
    "s3:GetObjectRetention",
    "s3:GetObjectTagging",
    "s3:GetObjectVersion",
    "s3:GetObjectVersionAttributes",
    "s3:GetObjectVersionTagging",
    "s3:GetReplicationConfiguration",
    "s3:ListAllMyBuckets",
    "s3:ListBucket",
    "s3:ListBucketMultipartUploads",
    "s3:ListBucketVersions",
    "s3:ListMultipartUploadParts",
    "s3:ListenBucketNotification",
    "s3:PutBucketNotification",
    "s3:PutBucketObjectLockConfiguration",
    "s3:PutBucketPolicy",
    "s3:PutBucketTagging",
    "s3:PutBucketVersioning",
    "s3:PutEncryptionConfiguration",
    "s3:PutLifecycleConfiguration",
    "s3:PutObject",
    "s3:PutObjectLegalHold",
    "s3:PutObjectRetention",
    "s3:PutObjectTagging",
    "s3:PutObjectVersionTagging",
    "s3:PutReplicationConfiguration",
    "s3:ReplicateDelete",
    "s3:ReplicateObject",
    "s3:ReplicateTags",
    "s3:RestoreObject",
})


@dataclass(frozen=True)
class PolicyStatement:
    """A single policy statement with set semantics."""

    effect: Effect
    actions: frozenset[str]
    resources: frozenset[str]
    principal: frozenset[str] | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"Effect": self.effect.value}
        if self.principal is not None:
            data["Principal"] = {"AWS": sorted(self.principal)}
        data["Action"] = sorted(self.actions)
        data["Resource"] = sorted(self.resources)
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PolicyStatement:
        try:
            effect = Effect(data["Effect"])
        except (KeyError, ValueError) as e:
            raise PolicyDocumentError(f"Invalid statement effect: {data.get('Effect')!r}") from e

        principal = None
        if "Principal" in data:
            raw = data["Principal"]
            if isinstance(raw, dict):
                raw = raw.get("AWS", [])
            principal = _string_set(raw, "Principal")

        return cls(
            effect=effect,
            actions=_string_set(data.get("Action", []), "Action"),
            resources=_string_set(data.get("Resource", []), "Resource"),
            principal=principal,
        )


@dataclass(frozen=True)
class PolicyDocument:
    """A policy document compared by statement sets, not by encoding."""

    statements: tuple[PolicyStatement, ...]
    version: str = POLICY_VERSION

    def equals(self, other: PolicyDocument) -> bool:
        """Check semantic equality by set containment in both directions."""
        if self.version != other.version:
            return False
        mine = set(self.statements)
        theirs = set(other.statements)
        return mine <= theirs and theirs <= mine

    def to_dict(self) -> dict[str, Any]:
        return {
            "Version": self.version,
            "Statement": [s.to_dict() for s in self.statements],
        }

    def to_json(self) -> bytes:
        return json.dumps(self.to_dict(), separators=(",", ":")).encode("utf-8")

    @classmethod
    def from_json(cls, raw: str | bytes) -> PolicyDocument:
        """Parse a JSON policy document.

        Raises:
            PolicyDocumentError: If the document is not valid JSON or has an unexpected shape
        """
        try:
            data = json.loads(raw)
        except ValueError as e:
            raise PolicyDocumentError(f"Policy document is not valid JSON: {e}") from e
        if not isinstance(data, dict):
            raise PolicyDocumentError("Policy document must be a JSON object")

        statements = data.get("Statement", [])
        if isinstance(statements, dict):
            statements = [statements]
        if not isinstance(statements, list):
            raise PolicyDocumentError("Policy Statement must be a list")
        return cls(
            statements=tuple(PolicyStatement.from_dict(s) for s in statements),
            version=data.get("Version", POLICY_VERSION),
        )


def _string_set(value: Any, field_name: str) -> frozenset[str]:
    if isinstance(value, str):
        return frozenset({value})
    if isinstance(value, list) and all(isinstance(v, str) for v in value):
        return frozenset(value)
    raise PolicyDocumentError(f"Policy {field_name} must be a string or a list of strings")


def bucket_arn(bucket: str) -> str:
    return f"{ARN_PREFIX}{bucket}"


def object_arn(bucket: str) -> str:
    return f"{ARN_PREFIX}{bucket}/*"


def _two_tier(
    bucket: str,
    bucket_actions: frozenset[str],
    object_actions: frozenset[str],
    principal: frozenset[str] | None,
) -> PolicyDocument:
    return PolicyDocument(
        statements=(
            PolicyStatement(Effect.ALLOW, bucket_actions, frozenset({bucket_arn(bucket)}), principal),
            PolicyStatement(Effect.ALLOW, object_actions, frozenset({object_arn(bucket)}), principal),
        )
    )


def build_public(bucket: str) -> PolicyDocument:
    """Anonymous read and write access to a bucket."""
    return _two_tier(
        bucket, BUCKET_PUBLIC_ACTIONS, OBJECT_WRITE_ACTIONS | OBJECT_READ_ACTIONS, PRINCIPAL_ANY
    )


def build_download(bucket: str) -> PolicyDocument:
    """Anonymous read-only access to a bucket."""
    return _two_tier(bucket, BUCKET_READ_ACTIONS, OBJECT_READ_ACTIONS, PRINCIPAL_ANY)


def build_upload(bucket: str) -> PolicyDocument:
    """Anonymous write-only access to a bucket."""
    return _two_tier(bucket, BUCKET_UPLOAD_ACTIONS, OBJECT_WRITE_ACTIONS, PRINCIPAL_ANY)


ANONYMOUS_BUILDERS = {
    AnonymousPolicy.PUBLIC: build_public,
    AnonymousPolicy.DOWNLOAD: build_download,
    AnonymousPolicy.UPLOAD: build_upload,
}


def build_anonymous(bucket: str, level: AnonymousPolicy) -> PolicyDocument:
    """Build the anonymous-access document for a non-private level.

    Raises:
        ValueError: If level is private, which has no document
    """
    try:
        return ANONYMOUS_BUILDERS[level](bucket)
    except KeyError as e:
        raise ValueError(f"No anonymous policy document for level {level.value}") from e


def default_bucket_policy(bucket: str) -> PolicyDocument:
    """IAM policy granting a bucket's own user full object access."""
    return _two_tier(bucket, BUCKET_PUBLIC_ACTIONS, OBJECT_WRITE_ACTIONS | OBJECT_READ_ACTIONS, None)


def sub_path_arn(bucket: str, sub_path: str) -> str:
    """Resource identifier for a path inside a bucket.

    Raises:
        InvalidSubPathError: If the sub-path cannot form a resource identifier
    """
    if not sub_path or sub_path.startswith("/"):
        raise InvalidSubPathError(f"Invalid sub-path {sub_path!r}: must be non-empty and relative")
    if any(c.isspace() or not c.isprintable() for c in sub_path):
        raise InvalidSubPathError(f"Invalid sub-path {sub_path!r}: contains whitespace or control characters")
    return f"{ARN_PREFIX}{bucket}/{sub_path}"


def validate_actions(actions: Iterable[str]) -> frozenset[str]:
    """Check every action against the supported vocabulary.

    Raises:
        InvalidActionError: On the first unknown action
    """
    result = frozenset(actions)
    if not result:
        raise InvalidActionError("Statement must list at least one action")
    for action in sorted(result):
        if action not in SUPPORTED_ACTIONS:
            raise InvalidActionError(f"Unsupported action: {action!r}")
    return result


def build_from_statements(bucket: str, statements: Iterable[StatementSpec]) -> PolicyDocument:
    """Translate Policy record statements into an IAM policy document.

    Args:
        bucket: External bucket name
        statements: Statements from the Policy spec

    Returns:
        Canonical IAM policy document

    Raises:
        InvalidActionError: If a statement names an unknown action
        InvalidSubPathError: If a sub-path is malformed
    """
    result = []
    for statement in statements:
        if statement.sub_paths:
            resources = frozenset(sub_path_arn(bucket, p) for p in statement.sub_paths)
        else:
            resources = frozenset({bucket_arn(bucket)})
        result.append(
            PolicyStatement(
                effect=statement.effect,
                actions=validate_actions(statement.actions),
                resources=resources,
            )
        )
    return PolicyDocument(statements=tuple(result))
