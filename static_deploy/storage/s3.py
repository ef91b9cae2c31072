"""
S3-compatible storage backend.

Works with AWS S3 and with any service exposing the S3 API (Aliyun OSS,
MinIO, GCS interoperability) through ``endpoint_url``. The content
fingerprint is stored both as the request's Content-MD5 (so the service
verifies the body) and as user metadata, where ``head`` reads it back.
"""

from typing import Any, Dict, Optional

import boto3
from botocore.config import Config
from botocore.exceptions import ClientError

from static_deploy.storage.base import (
    ABSENT,
    FINGERPRINT_META_KEY,
    HeadResult,
)
from static_deploy.utils.config import StorageCredentials
from static_deploy.utils.logging import get_logger

logger = get_logger(__name__)

NOT_FOUND_CODES = frozenset({"404", "NoSuchKey", "NotFound"})

METADATA_HEADER_PREFIX = "x-amz-meta-"

# HTTP header (lower-cased) -> put_object parameter
HEADER_PARAMS = {
    "cache-control": "CacheControl",
    "content-type": "ContentType",
    "content-encoding": "ContentEncoding",
    "content-disposition": "ContentDisposition",
    "content-language": "ContentLanguage",
    "content-md5": "ContentMD5",
    "expires": "Expires",
}


def object_key(remote_key: str) -> str:
    """Strip the leading slash of a remote key; S3 keys have none."""
    return remote_key.lstrip("/")


def put_object_args(headers: Dict[str, str]) -> Dict[str, Any]:
    """
    Translate HTTP headers into ``put_object`` keyword arguments.

    Known headers map to their dedicated parameters and ``x-amz-meta-*``
    headers become user metadata. The Content-MD5 value is also stored as
    metadata so it can be read back by ``head_object``. Headers the S3 API
    cannot carry are logged and dropped.

    Example:
        >>> put_object_args({"Cache-Control": "max-age=120", "X-Amz-Meta-Build": "42"})
        {'CacheControl': 'max-age=120', 'Metadata': {'build': '42'}}
    """
    args: Dict[str, Any] = {}
    metadata: Dict[str, str] = {}

    for name, value in headers.items():
        lowered = name.lower()
        if lowered in HEADER_PARAMS:
            args[HEADER_PARAMS[lowered]] = value
            if lowered == "content-md5":
                metadata[FINGERPRINT_META_KEY] = value
        elif lowered.startswith(METADATA_HEADER_PREFIX):
            metadata[lowered[len(METADATA_HEADER_PREFIX):]] = value
        else:
            logger.warning(f"Header not supported by the S3 API, dropped: {name}")

    if metadata:
        args["Metadata"] = metadata

    return args


class S3Backend:
    """StorageBackend over boto3's S3 client."""

    def __init__(self, credentials: StorageCredentials, client: Optional[Any] = None):
        """
        Args:
            credentials: Bucket, region, key pair and optional endpoint
            client: Pre-built boto3 S3 client (created from credentials if None)
        """
        self.bucket = credentials.bucket
        self._client = client or self._create_client(credentials)

    @staticmethod
    def _create_client(credentials: StorageCredentials) -> Any:
        session = boto3.Session(
            aws_access_key_id=credentials.access_key_id,
            aws_secret_access_key=credentials.access_key_secret,
            region_name=credentials.region,
        )
        return session.client(
            "s3",
            endpoint_url=credentials.endpoint_url,
            config=Config(retries={"mode": "standard"}),
        )

    def head(self, key: str) -> HeadResult:
        try:
            response = self._client.head_object(Bucket=self.bucket, Key=object_key(key))
        except ClientError as exc:
            code = str(exc.response.get("Error", {}).get("Code", ""))
            if code in NOT_FOUND_CODES:
                return ABSENT
            raise

        metadata = response.get("Metadata") or {}
        return HeadResult(exists=True, fingerprint=metadata.get(FINGERPRINT_META_KEY))

    def put(self, key: str, data: bytes, headers: Dict[str, str]) -> None:
        self._client.put_object(
            Bucket=self.bucket,
            Key=object_key(key),
            Body=data,
            **put_object_args(headers),
        )

    def __repr__(self) -> str:
        return f"S3Backend(bucket={self.bucket!r})"
