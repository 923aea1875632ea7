"""MinIO bucket and policy operator."""

__version__ = "0.1.0"
