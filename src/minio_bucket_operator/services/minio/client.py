"""MinIO control API client.

Bucket operations and anonymous bucket policies go through the S3 API with
boto3. IAM users and canned policies go through the MinIO admin API.
"""

from __future__ import annotations

import functools
import json
import logging
import tempfile
import time
from pathlib import Path
from typing import Any, Callable, TypeVar
from urllib.parse import urlparse

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError
from minio.credentials import StaticProvider
from minio.error import MinioAdminException
from minio.minioadmin import MinioAdmin

from ... import metrics
from ...exceptions import ExternalServiceError

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])

BUCKET_MISSING_CODES = {"NoSuchBucket", "404", "NotFound"}
USER_MISSING_CODE = "XMinioAdminNoSuchUser"
POLICY_MISSING_CODE = "XMinioAdminNoSuchPolicy"
POLICY_ALREADY_APPLIED_CODE = "XMinioAdminPolicyChangeAlreadyApplied"


def _error_code(error: ClientError) -> str:
    return error.response.get("Error", {}).get("Code", "")


def instrumented(operation: str) -> Callable[[F], F]:
    """Record call count and duration of a control API operation.

    Failures from boto3 and the admin API are re-raised as ExternalServiceError.
    """

    def decorator(fn: F) -> F:
        @functools.wraps(fn)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            start_time = time.time()
            try:
                result = fn(*args, **kwargs)
                metrics.api_call_total.labels(api_type="minio", operation=operation, result="success").inc()
                return result
            except (ClientError, BotoCoreError, MinioAdminException) as e:
                metrics.api_call_total.labels(api_type="minio", operation=operation, result="error").inc()
                logger.error(f"MinIO {operation} failed: {e}")
                raise ExternalServiceError(operation, str(e)) from e
            finally:
                duration = time.time() - start_time
                metrics.api_call_duration_seconds.labels(api_type="minio", operation=operation).observe(duration)

        return wrapper  # type: ignore[return-value]

    return decorator


def split_endpoint(endpoint: str, secure: bool) -> tuple[str, bool]:
    """Split an endpoint into host:port and a TLS flag.

    An explicit http:// or https:// scheme overrides ``secure``.
    """
    if "://" in endpoint:
        parsed = urlparse(endpoint)
        return parsed.netloc, parsed.scheme == "https"
    return endpoint, secure


class MinioClient:
    """MinIO implementation of ObjectStorageClient."""

    def __init__(
        self,
        endpoint: str,
        access_key: str,
        secret_key: str,
        secure: bool = False,
        region: str = "us-east-1",
    ) -> None:
        """Initialize the MinIO client.

        Args:
            endpoint: MinIO endpoint, host:port or a URL
            access_key: Root user
            secret_key: Root password
            secure: Use TLS when the endpoint carries no scheme
            region: Region used to sign S3 requests
        """
        host, use_tls = split_endpoint(endpoint, secure)
        self.endpoint = host
        self.secure = use_tls

        self.s3 = boto3.client(
            "s3",
            endpoint_url=f"{'https' if use_tls else 'http'}://{host}",
            region_name=region,
            aws_access_key_id=access_key,
            aws_secret_access_key=secret_key,
            config=Config(signature_version="s3v4", s3={"addressing_style": "path"}),
        )
        self.admin = MinioAdmin(
            host,
            credentials=StaticProvider(access_key, secret_key),
            region=region,
            secure=use_tls,
        )

    @instrumented("bucket_exists")
    def bucket_exists(self, name: str) -> bool:
        """Check if bucket exists."""
        try:
            self.s3.head_bucket(Bucket=name)
            return True
        except ClientError as e:
            if _error_code(e) in BUCKET_MISSING_CODES:
                return False
            raise

    @instrumented("create_bucket")
    def create_bucket(self, name: str) -> None:
        try:
            self.s3.create_bucket(Bucket=name)
            logger.info(f"Created bucket {name}")
        except ClientError as e:
            if _error_code(e) == "BucketAlreadyOwnedByYou":
                return
            raise

    @instrumented("delete_bucket")
    def delete_bucket(self, name: str) -> None:
        try:
            self.s3.delete_bucket(Bucket=name)
            logger.info(f"Deleted bucket {name}")
        except ClientError as e:
            if _error_code(e) in BUCKET_MISSING_CODES:
                return
            raise

    @instrumented("get_bucket_policy")
    def get_bucket_policy(self, name: str) -> str:
        """Get bucket policy.

        Returns:
            Policy document text, "" if no policy is set
        """
        try:
            response = self.s3.get_bucket_policy(Bucket=name)
            return response.get("Policy", "")
        except ClientError as e:
            if _error_code(e) == "NoSuchBucketPolicy":
                return ""
            raise

    @instrumented("set_bucket_policy")
    def set_bucket_policy(self, name: str, document: bytes) -> None:
        if not document:
            self.s3.delete_bucket_policy(Bucket=name)
            logger.info(f"Removed anonymous policy of bucket {name}")
            return
        self.s3.put_bucket_policy(Bucket=name, Policy=document.decode("utf-8"))
        logger.info(f"Set anonymous policy of bucket {name}")

    @instrumented("create_canned_policy")
    def create_canned_policy(self, name: str, document: bytes) -> None:
        # The admin API reads policy documents from a file
        with tempfile.NamedTemporaryFile(mode="wb", suffix=".json", delete=False) as temp_file:
            temp_file.write(document)
            temp_file_path = temp_file.name
        try:
            self.admin.policy_add(name, temp_file_path)
        finally:
            Path(temp_file_path).unlink(missing_ok=True)
        logger.info(f"Created canned policy {name}")

    @instrumented("delete_canned_policy")
    def delete_canned_policy(self, name: str) -> None:
        try:
            self.admin.policy_remove(name)
        except MinioAdminException as e:
            if POLICY_MISSING_CODE in str(e):
                return
            raise

    @instrumented("get_policy_users")
    def get_policy_users(self, name: str) -> list[str] | None:
        """Get users attached to a canned policy.

        Returns:
            User names, or None when MinIO reports no mapping for the policy
        """
        try:
            response = self.admin.get_policy_entities(users=[], groups=[], policies=[name])
        except MinioAdminException as e:
            if POLICY_MISSING_CODE in str(e):
                return None
            raise
        data = json.loads(response) if isinstance(response, (str, bytes)) else response
        for mapping in data.get("policyMappings") or []:
            if mapping.get("policy") == name:
                return list(mapping.get("users") or [])
        return None

    @instrumented("create_user")
    def create_user(self, user: str, password: str) -> None:
        self.admin.user_add(user, password)
        logger.info(f"Created user {user}")

    @instrumented("set_user_password")
    def set_user_password(self, user: str, password: str, enabled: bool = True) -> None:
        # user_add overwrites the secret key of an existing user
        self.admin.user_add(user, password)
        if enabled:
            self.admin.user_enable(user)
        else:
            self.admin.user_disable(user)

    @instrumented("delete_user")
    def delete_user(self, user: str) -> None:
        try:
            self.admin.user_remove(user)
            logger.info(f"Deleted user {user}")
        except MinioAdminException as e:
            if USER_MISSING_CODE in str(e):
                return
            raise

    @instrumented("attach_policy")
    def attach_policy(self, policy: str, user: str) -> None:
        try:
            self.admin.attach_policy([policy], user=user)
        except MinioAdminException as e:
            if POLICY_ALREADY_APPLIED_CODE in str(e):
                return
            raise
