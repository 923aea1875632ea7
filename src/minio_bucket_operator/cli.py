"""Lookup tool printing the anonymous-access policy of MinIO buckets.

Usage:
    minio-bucket-policy BUCKET [BUCKET...]
    minio-bucket-policy --connection-secret minio-controller-secret --namespace minio my-ns.my-bucket
"""

from __future__ import annotations

import json
import sys

import click
from kubernetes.client.exceptions import ApiException
from kubernetes.config import ConfigException

from .builders.provider import create_client
from .config import ConfigurationError, OperatorConfig, current_namespace
from .constants import DEFAULT_CONNECTION_SECRET
from .exceptions import OperatorError
from .store.kubernetes import KubernetesRecordStore, load_kubernetes_config


def format_policy(document: str) -> str:
    """Indent a policy document with two spaces, or mark a bucket without one."""
    if not document:
        return "{}"
    return json.dumps(json.loads(document), indent=2)


@click.command()
@click.option(
    "--connection-secret",
    default=DEFAULT_CONNECTION_SECRET,
    show_default=True,
    help="Secret holding endpoint, user and password of the MinIO root account.",
)
@click.option(
    "--namespace",
    default=None,
    help="Namespace of the connection secret (default: current namespace).",
)
@click.argument("buckets", nargs=-1, required=True)
def main(connection_secret: str, namespace: str | None, buckets: tuple[str, ...]) -> None:
    """Print the anonymous-access policy of each BUCKET as JSON."""
    try:
        load_kubernetes_config()
        config = OperatorConfig(
            connection_secret=connection_secret,
            namespace=namespace or current_namespace(),
        )
        client = create_client(KubernetesRecordStore(), config)
        for bucket in buckets:
            click.echo(format_policy(client.get_bucket_policy(bucket)))
    except (OperatorError, ConfigurationError, ConfigException, ApiException, ValueError) as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
