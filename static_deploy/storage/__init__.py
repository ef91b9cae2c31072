"""
Object storage backends.

Exports:
    StorageBackend: Protocol the deploy engine talks to (head, put)
    HeadResult: Metadata returned by ``head``
    S3Backend: boto3 implementation for S3-compatible services
    create_backend: Build the backend for a set of credentials
"""

from static_deploy.storage.base import (
    ABSENT,
    FINGERPRINT_HEADER,
    FINGERPRINT_META_KEY,
    HeadResult,
    StorageBackend,
)
from static_deploy.storage.s3 import S3Backend
from static_deploy.utils.config import StorageCredentials


def create_backend(credentials: StorageCredentials) -> StorageBackend:
    """Return the backend used for a deploy run."""
    return S3Backend(credentials)


__all__ = [
    "ABSENT",
    "FINGERPRINT_HEADER",
    "FINGERPRINT_META_KEY",
    "HeadResult",
    "StorageBackend",
    "S3Backend",
    "create_backend",
]
