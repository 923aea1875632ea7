"""Exception hierarchy for the MinIO Bucket Operator."""

from __future__ import annotations


class OperatorError(Exception):
    """Base class for all operator errors."""


class NotFoundError(OperatorError):
    """Raised when a record or secret does not exist in the record store."""


class ConflictError(OperatorError):
    """Raised when a write is rejected because the record changed underneath."""


class ExternalServiceError(OperatorError):
    """Raised when a call to the MinIO control API fails.

    Treated as transient: the reconciliation is retried with backoff.
    """

    def __init__(self, operation: str, message: str) -> None:
        super().__init__(f"{operation} failed: {message}")
        self.operation = operation


class ValidationError(OperatorError):
    """Raised when a record's spec can never converge without being edited."""


class InvalidSpecError(ValidationError):
    """Raised when a record's spec is structurally invalid."""


class InvalidActionError(ValidationError):
    """Raised when a statement names an action MinIO does not know."""


class InvalidSubPathError(ValidationError):
    """Raised when a statement sub-path does not form a valid resource identifier."""


class InvalidCredentialsError(ValidationError):
    """Raised when a credential secret lacks a usable user or password."""


class CredentialGenerationError(OperatorError):
    """Raised when credentials cannot be generated."""


class KeyTooShortError(CredentialGenerationError):
    """Raised when the requested key length is below the minimum."""


class InvalidSecretFormatError(OperatorError):
    """Raised when the connection secret for the control API is malformed."""


class BucketNotFoundError(OperatorError):
    """Raised when a Policy references a Bucket record that does not exist."""


class PolicyDocumentError(OperatorError):
    """Raised when a policy document read from MinIO cannot be parsed."""
