"""Builder creating the control API client from the connection secret."""

from __future__ import annotations

import logging

from ..config import OperatorConfig
from ..constants import SECRET_FIELD_ENDPOINT, SECRET_FIELD_PASSWORD, SECRET_FIELD_USER
from ..exceptions import InvalidSecretFormatError, NotFoundError
from ..models import CredentialSecret
from ..services.memory.client import InMemoryStorageClient
from ..services.minio.client import MinioClient
from ..services.s3.base import ObjectStorageClient
from ..store.base import RecordStore

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = (SECRET_FIELD_ENDPOINT, SECRET_FIELD_USER, SECRET_FIELD_PASSWORD)


def create_client_from_secret(secret: CredentialSecret, config: OperatorConfig) -> ObjectStorageClient:
    """Create a control API client from a connection secret.

    Args:
        secret: Secret holding endpoint, user and password of the root account
        config: Operator configuration

    Returns:
        MinIO client, or the in-memory client in stub mode

    Raises:
        InvalidSecretFormatError: If a required field is missing or empty
    """
    missing = [f for f in REQUIRED_FIELDS if not secret.data.get(f)]
    if missing:
        raise InvalidSecretFormatError(
            f"Secret {secret.namespace}/{secret.name} is missing fields: {', '.join(missing)}"
        )

    if config.stub_client:
        logger.warning("Using in-memory MinIO client, no changes reach a MinIO server")
        return InMemoryStorageClient()

    endpoint = secret.data[SECRET_FIELD_ENDPOINT].decode("utf-8")
    return MinioClient(
        endpoint=endpoint,
        access_key=secret.data[SECRET_FIELD_USER].decode("utf-8"),
        secret_key=secret.data[SECRET_FIELD_PASSWORD].decode("utf-8"),
        secure=config.secure,
    )


def create_client(store: RecordStore, config: OperatorConfig) -> ObjectStorageClient:
    """Read the configured connection secret and create the control API client.

    Raises:
        InvalidSecretFormatError: If the secret is missing or malformed
    """
    try:
        secret = store.get_secret(config.namespace, config.connection_secret)
    except NotFoundError as e:
        raise InvalidSecretFormatError(
            f"Connection secret {config.namespace}/{config.connection_secret} not found"
        ) from e
    return create_client_from_secret(secret, config)
