"""
Run configuration for static-deploy.

Defines the immutable RunConfig consumed by the deploy engine and the
environment layer of the configuration sources. The environment is read
after loading a ``.env`` file from the working directory if one exists.
"""

import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, FrozenSet, Mapping, Optional, Tuple

from dotenv import load_dotenv

DEFAULT_PUBLIC_DIR = "dist"
DEFAULT_PATH_PREFIX = "/"
DEFAULT_STABLE_ASSET_EXTS = ("jpg", "png", "gif", "ico", "js", "css")
DEFAULT_CHUNK_SIZE = 20

# Environment variable -> top-level config key
ENV_KEYS = {
    "DEPLOY_PUBLIC_DIR": "publicDir",
    "DEPLOY_PATH_PREFIX": "pathPrefix",
    "DEPLOY_STABLE_ASSET_EXTS": "stableAssetExts",
    "DEPLOY_CHUNK_SIZE": "chunkSize",
}

# Environment variable -> key under ``storage``
ENV_STORAGE_KEYS = {
    "DEPLOY_STORAGE_REGION": "region",
    "DEPLOY_STORAGE_BUCKET": "bucket",
    "DEPLOY_STORAGE_AK": "accessKeyId",
    "DEPLOY_STORAGE_SK": "accessKeySecret",
    "DEPLOY_STORAGE_ENDPOINT": "endpoint",
}

# Earlier variable names, read when the current name is unset
LEGACY_ENV_NAMES = {
    "DEPLOY_STABLE_ASSET_EXTS": "DEPLOY_STABLE_ASSETS_EXTS",
    "DEPLOY_STORAGE_REGION": "DEPLOY_OSS_REGION",
    "DEPLOY_STORAGE_BUCKET": "DEPLOY_OSS_BUCKET",
    "DEPLOY_STORAGE_AK": "DEPLOY_OSS_AK",
    "DEPLOY_STORAGE_SK": "DEPLOY_OSS_SK",
}


@dataclass(frozen=True)
class StorageCredentials:
    """
    Bucket location and credentials.

    Attributes:
        region: Bucket region (e.g. ``oss-cn-hangzhou`` or ``us-east-1``)
        bucket: Bucket name
        access_key_id: Access key ID
        access_key_secret: Access key secret (never shown in repr)
        endpoint_url: S3-compatible endpoint; AWS default when None
    """

    region: str
    bucket: str
    access_key_id: str
    access_key_secret: str = field(repr=False)
    endpoint_url: Optional[str] = None


@dataclass(frozen=True)
class Rule:
    """Cache header override for paths matching ``pattern``."""

    pattern: "re.Pattern[str]"
    headers: Tuple[str, ...] = ()


@dataclass(frozen=True)
class RunConfig:
    """
    Fully merged and validated configuration for one deploy run.

    Attributes:
        storage: Bucket credentials
        public_dir: Local directory to publish
        path_prefix: Remote key prefix, always of the form ``/.../`` or ``/``
        stable_asset_exts: Extensions (no leading dot) served with long max-age
        chunk_size: Number of files processed concurrently per batch
        rules: Ordered cache header overrides; first match wins
        include_dot_files: Whether files under dot-named entries are deployed
        fail_on_probe_error: Record probe failures as failed files instead of
            uploading them
        dry_run: Plan and log without uploading
    """

    storage: StorageCredentials
    public_dir: str = DEFAULT_PUBLIC_DIR
    path_prefix: str = DEFAULT_PATH_PREFIX
    stable_asset_exts: FrozenSet[str] = frozenset(DEFAULT_STABLE_ASSET_EXTS)
    chunk_size: int = DEFAULT_CHUNK_SIZE
    rules: Tuple[Rule, ...] = ()
    include_dot_files: bool = False
    fail_on_probe_error: bool = False
    dry_run: bool = False


def split_list(value: str) -> list:
    """Split a comma separated option into trimmed, non-empty items."""
    return [item.strip() for item in value.split(",") if item.strip()]


def _env_value(environ: Mapping[str, str], name: str) -> Optional[str]:
    value = environ.get(name)
    if not value and name in LEGACY_ENV_NAMES:
        value = environ.get(LEGACY_ENV_NAMES[name])
    return value


def env_layer(
    environ: Optional[Mapping[str, str]] = None,
    dotenv_path: Optional[Path] = None,
) -> Dict[str, Any]:
    """
    Build the environment layer of the deploy configuration.

    Loads ``.env`` (without overriding variables already set) and maps the
    ``DEPLOY_*`` variables to config keys. Unset or empty variables are left
    out so lower layers keep their values. Values are not type-checked here;
    ``DEPLOY_CHUNK_SIZE`` is converted only when it is an integer, otherwise
    the raw string is passed on for validation to report.
    The ``DEPLOY_OSS_*`` and ``DEPLOY_STABLE_ASSETS_EXTS`` names are read
    when their current counterpart is unset.

    Args:
        environ: Mapping to read instead of ``os.environ`` (no .env loading)
        dotenv_path: Explicit .env file (default: ``.env`` in the cwd)

    Returns:
        Partial config dictionary

    Example:
        >>> env_layer({"DEPLOY_STORAGE_BUCKET": "site", "DEPLOY_CHUNK_SIZE": "5"})
        {'chunkSize': 5, 'storage': {'bucket': 'site'}}
    """
    if environ is None:
        env_path = dotenv_path or Path.cwd() / ".env"
        if env_path.exists():
            load_dotenv(env_path)
        environ = os.environ

    layer: Dict[str, Any] = {}
    for env_name, key in ENV_KEYS.items():
        value = _env_value(environ, env_name)
        if not value:
            continue
        if key == "stableAssetExts":
            layer[key] = split_list(value)
        elif key == "chunkSize":
            layer[key] = int(value) if value.strip().isdigit() else value
        else:
            layer[key] = value

    storage = {}
    for env_name, key in ENV_STORAGE_KEYS.items():
        value = _env_value(environ, env_name)
        if value:
            storage[key] = value
    if storage:
        layer["storage"] = storage

    return layer
