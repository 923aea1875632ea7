"""Base handler class with common functionality for Bucket and Policy reconcilers."""

from __future__ import annotations

import copy
import logging
import time
from typing import Any, Callable, NoReturn

import kopf

from .. import metrics
from ..config import OperatorConfig
from ..constants import (
    ANNOTATION_MANAGED_BY,
    CONTROLLER_NAME,
    REASON_SECRET_FAILED,
    SECRET_FIELD_PASSWORD,
    SECRET_FIELD_USER,
)
from ..exceptions import (
    ConflictError,
    CredentialGenerationError,
    NotFoundError,
    ValidationError,
)
from ..logging import log_resource_event
from ..models import CredentialSecret, ReconcileResult, owner_reference
from ..services.s3.base import ObjectStorageClient
from ..store.base import RecordStore
from ..tracing import trace_span
from ..utils.access_keys import generate_access_key, generate_secret_key
from ..utils.conditions import set_available_condition
from ..utils.errors import sanitize_exception
from ..utils.events import emit_credentials_created, emit_reconcile_failed, emit_reconcile_started

# Delay before retrying a write rejected because the record changed
CONFLICT_RETRY_DELAY_SECONDS = 1


class BaseHandler:
    """Base class for record reconcilers with common functionality."""

    def __init__(
        self,
        kind: str,
        finalizer: str,
        secret_annotation: str,
        store: RecordStore,
        client: ObjectStorageClient,
        config: OperatorConfig,
    ):
        """Initialize base handler.

        Args:
            kind: The record kind ("Bucket" or "Policy")
            finalizer: Finalizer guarding external cleanup
            secret_annotation: Annotation linking a credential secret to its owner
            store: Record store
            client: Control API client
            config: Operator configuration
        """
        self.kind = kind
        self.finalizer = finalizer
        self.secret_annotation = secret_annotation
        self.store = store
        self.client = client
        self.config = config
        self.logger = logging.getLogger(__name__)

    def reconcile(self, namespace: str, name: str) -> ReconcileResult:
        """Load a record and converge it. A missing record needs no work."""
        try:
            body = self.store.get(self.kind, namespace, name)
        except NotFoundError:
            self.logger.debug(f"{self.kind} {namespace}/{name} not found, nothing to reconcile")
            return ReconcileResult.done()

        with trace_span(f"reconcile_{self.kind.lower()}", kind=self.kind, attributes={
            "namespace": namespace,
            "name": name,
        }):
            return self.reconcile_with_metrics(body, lambda: self.converge(body))

    def converge(self, body: dict[str, Any]) -> ReconcileResult:
        raise NotImplementedError

    def _log(self, level: int, body: dict[str, Any], message: str, event: str, reason: str, **kwargs: Any) -> None:
        meta = body.get("metadata", {})
        log_resource_event(
            self.logger,
            controller=CONTROLLER_NAME,
            resource_kind=self.kind,
            resource_name=meta.get("name", "unknown"),
            namespace=meta.get("namespace", "default"),
            uid=meta.get("uid", "unknown"),
            event=event,
            reason=reason,
            message=message,
            level=level,
            **kwargs,
        )

    def log_info(
        self,
        body: dict[str, Any],
        message: str,
        event: str = "info",
        reason: str = "Info",
        **kwargs: Any,
    ) -> None:
        """Log an info-level structured log message.

        Args:
            body: The record
            message: Log message
            event: Event type (default: "info")
            reason: Reason for the event (default: "Info")
            **kwargs: Additional fields to include in the log
        """
        self._log(logging.INFO, body, message, event, reason, **kwargs)

    def log_warning(
        self,
        body: dict[str, Any],
        message: str,
        event: str = "warning",
        reason: str = "Warning",
        **kwargs: Any,
    ) -> None:
        """Log a warning-level structured log message."""
        self._log(logging.WARNING, body, message, event, reason, **kwargs)

    def log_error(
        self,
        body: dict[str, Any],
        message: str,
        error: Exception | None = None,
        event: str = "error",
        reason: str = "Error",
        **kwargs: Any,
    ) -> None:
        """Log an error-level structured log message.

        Args:
            body: The record
            message: Log message
            error: Optional exception to include sanitized error details
            event: Event type (default: "error")
            reason: Reason for the event (default: "Error")
            **kwargs: Additional fields to include in the log
        """
        log_data = kwargs.copy()
        if error is not None:
            log_data["error"] = sanitize_exception(error)
            log_data["error_type"] = type(error).__name__
        self._log(logging.ERROR, body, message, event, reason, **log_data)

    def has_finalizer(self, body: dict[str, Any]) -> bool:
        return self.finalizer in (body["metadata"].get("finalizers") or [])

    def ensure_finalizer(self, body: dict[str, Any]) -> dict[str, Any]:
        """Ensure the finalizer is present.

        Returns:
            The record as stored after the write, or unchanged if no write was needed
        """
        if self.has_finalizer(body):
            return body
        updated = copy.deepcopy(body)
        updated["metadata"]["finalizers"] = [*(body["metadata"].get("finalizers") or []), self.finalizer]
        self.log_info(body, "Adding finalizer", event="finalizer_added", reason="Finalizer")
        return self.store.update(updated)

    def remove_finalizer(self, body: dict[str, Any]) -> None:
        """Remove the finalizer, letting the record go."""
        if not self.has_finalizer(body):
            return
        updated = copy.deepcopy(body)
        updated["metadata"]["finalizers"] = [
            f for f in body["metadata"].get("finalizers") or [] if f != self.finalizer
        ]
        self.store.update(updated)
        self.log_info(body, "Removed finalizer", event="finalizer_removed", reason="Finalizer")

    def update_conditions(
        self,
        body: dict[str, Any],
        mutate: Callable[[list[dict[str, Any]]], list[dict[str, Any]]],
    ) -> dict[str, Any]:
        """Apply a change to the status conditions and persist it.

        Returns:
            The record as stored after the write, or unchanged if the status did not change
        """
        status = copy.deepcopy(body.get("status") or {})
        conditions = mutate(copy.deepcopy(status.get("conditions") or []))
        new_status = {
            **status,
            "conditions": conditions,
            "observedGeneration": body["metadata"].get("generation", 0),
        }
        if new_status == body.get("status"):
            return body

        updated = copy.deepcopy(body)
        updated["status"] = new_status
        return self.store.update_status(updated)

    def set_available(
        self,
        body: dict[str, Any],
        status: bool | None,
        message: str,
        **kwargs: Any,
    ) -> dict[str, Any]:
        """Set the Available condition and persist it."""
        generation = body["metadata"].get("generation")
        updated = self.update_conditions(
            body,
            lambda conditions: set_available_condition(
                conditions, status, message, observed_generation=generation, **kwargs
            ),
        )
        if status is True:
            metrics.resource_status_total.labels(kind=self.kind, status="ready").inc()
        elif status is False:
            metrics.resource_status_total.labels(kind=self.kind, status="not_ready").inc()
        return updated

    def fail_validation(self, body: dict[str, Any], error: ValidationError, reason: str) -> NoReturn:
        """Report a validation failure on the record and raise it.

        Raises:
            ValidationError: Always, the given error
        """
        self.log_error(body, "Validation failed", error=error, reason=reason)
        self.set_available(body, False, sanitize_exception(error), reason=reason)
        raise error

    def resolve_secret(self, body: dict[str, Any], secret_name: str) -> CredentialSecret | None:
        """Get the record's credential secret, creating it when absent.

        Args:
            body: The owning record
            secret_name: Name of the credential secret

        Returns:
            The secret, or None when it was just created and must be read back later
        """
        meta = body["metadata"]
        try:
            secret = self.store.get_secret(meta["namespace"], secret_name)
        except NotFoundError:
            self.create_credential_secret(body, secret_name)
            return None

        if not secret.annotations.get(self.secret_annotation):
            secret.annotations[self.secret_annotation] = meta["name"]
            secret = self.store.update_secret(secret)
            self.log_info(body, f"Annotated secret {secret_name}", reason="SecretAnnotated")
        return secret

    def create_credential_secret(self, body: dict[str, Any], secret_name: str) -> None:
        """Generate credentials and store them in a secret owned by the record."""
        meta = body["metadata"]
        try:
            data = {
                SECRET_FIELD_USER: generate_access_key(),
                SECRET_FIELD_PASSWORD: generate_secret_key(),
            }
        except CredentialGenerationError as e:
            self.log_error(body, "Failed to generate credentials", error=e, reason=REASON_SECRET_FAILED)
            self.set_available(
                body,
                False,
                f"Failed to create Secret for {meta['name']}: {sanitize_exception(e)}",
                reason=REASON_SECRET_FAILED,
            )
            raise

        secret = CredentialSecret(
            name=secret_name,
            namespace=meta["namespace"],
            data=data,
            annotations={self.secret_annotation: meta["name"], ANNOTATION_MANAGED_BY: CONTROLLER_NAME},
            owner_references=[owner_reference(body)] if self.config.owner_references else [],
        )
        self.store.create_secret(secret)
        metrics.credentials_created_total.labels(kind=self.kind).inc()
        emit_credentials_created(body, secret_name)
        self.log_info(body, f"Created credential secret {secret_name}", event="secret_created", reason="SecretCreated")

    def delete_unowned_secret(self, body: dict[str, Any], secret_name: str) -> None:
        """Delete the credential secret when records do not own their secrets.

        Only secrets generated by the operator are deleted; user-supplied
        secrets are left in place.
        """
        if self.config.owner_references or not secret_name:
            return
        namespace = body["metadata"]["namespace"]
        try:
            secret = self.store.get_secret(namespace, secret_name)
        except NotFoundError:
            return
        if secret.annotations.get(ANNOTATION_MANAGED_BY) != CONTROLLER_NAME:
            self.log_info(body, f"Keeping user-supplied secret {secret_name}", reason="SecretKept")
            return
        self.store.delete_secret(namespace, secret_name)
        self.log_info(body, f"Deleted credential secret {secret_name}", reason="SecretDeleted")

    def reconcile_with_metrics(
        self,
        body: dict[str, Any],
        reconcile_fn: Callable[[], ReconcileResult],
    ) -> ReconcileResult:
        """Execute reconciliation with metrics and error handling.

        Args:
            body: The record
            reconcile_fn: Function to execute for reconciliation

        Returns:
            The reconciliation result
        """
        emit_reconcile_started(body)
        metrics.reconcile_total.labels(kind=self.kind, result="started").inc()

        start_time = time.time()
        try:
            result = reconcile_fn()
            outcome = "requeued" if result.requeue_after is not None else "success"
            metrics.reconcile_total.labels(kind=self.kind, result=outcome).inc()
            return result
        except Exception as e:
            error_type = type(e).__name__
            metrics.error_total.labels(kind=self.kind, error_type=error_type).inc()
            self.log_error(body, "Reconciliation failed", error=e, reason="ReconciliationFailed")
            emit_reconcile_failed(body, f"Reconciliation failed: {sanitize_exception(e)}")
            metrics.reconcile_total.labels(kind=self.kind, result="error").inc()
            raise
        finally:
            duration = time.time() - start_time
            metrics.reconcile_duration_seconds.labels(kind=self.kind).observe(duration)


def run_reconcile(handler: BaseHandler, namespace: str, name: str) -> None:
    """Run a reconciliation and translate its outcome for kopf.

    Raises:
        kopf.TemporaryError: When a requeue was requested or a write conflicted
        kopf.PermanentError: When the record is invalid and retrying cannot help
    """
    try:
        result = handler.reconcile(namespace, name)
    except ConflictError as e:
        raise kopf.TemporaryError(f"Record changed during reconciliation: {e}", delay=CONFLICT_RETRY_DELAY_SECONDS) from e
    except ValidationError as e:
        raise kopf.PermanentError(sanitize_exception(e)) from e

    if result.requeue_after is not None:
        raise kopf.TemporaryError("Waiting for changes to settle", delay=result.requeue_after)
