"""
Configuration loader and validator for deploy runs.

Loads the YAML deploy file, merges it with the environment and command-line
layers, validates the result and builds the immutable RunConfig.

Example config file (.deploy.yaml):
    ```yaml
    publicDir: dist
    pathPrefix: /site/
    stableAssetExts: [jpg, png, gif, ico, js, css, woff2]
    chunkSize: 20

    rules:
      - pattern: ^index\\.html$
        headers:
          - "Cache-Control: no-cache"
      - pattern: \\.json$
        headers:
          - "Cache-Control: max-age=60"
          - "Content-Type: application/json; charset=utf-8"

    storage:
      region: oss-cn-hangzhou
      bucket: my-site
      accessKeyId: LTAI...
      accessKeySecret: ...
      endpoint: https://oss-cn-hangzhou.aliyuncs.com
    ```

Usage:
    >>> from static_deploy.utils.config_loader import (
    ...     build_run_config, load_config, merge_layers,
    ... )
    >>> raw = merge_layers(env_layer(), load_config(".deploy.yaml"), cli_layer)
    >>> config = build_run_config(raw)  # raises ConfigurationError
"""

import copy
import re
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union
from urllib.parse import urlparse

import yaml

from static_deploy.utils.config import (
    DEFAULT_CHUNK_SIZE,
    DEFAULT_PATH_PREFIX,
    DEFAULT_PUBLIC_DIR,
    DEFAULT_STABLE_ASSET_EXTS,
    Rule,
    RunConfig,
    StorageCredentials,
)
from static_deploy.utils.errors import ConfigError, ConfigurationError
from static_deploy.utils.logging import get_logger, log_function_call

logger = get_logger(__name__)

DEFAULT_CONFIG_FILE = ".deploy.yaml"

# "/" or "/.../"
PATH_PREFIX_PATTERN = re.compile(r"^/(.*/)?$")

REQUIRED_STORAGE_FIELDS = ["region", "bucket", "accessKeyId", "accessKeySecret"]

KNOWN_TOP_LEVEL_FIELDS = {
    "publicDir",
    "pathPrefix",
    "stableAssetExts",
    "chunkSize",
    "rules",
    "storage",
    "includeDotFiles",
    "failOnProbeError",
}


@log_function_call
def load_config(config_path: Union[str, Path]) -> Dict[str, Any]:
    """
    Load configuration from YAML file.

    Args:
        config_path: Path to YAML configuration file

    Returns:
        Dictionary containing parsed configuration (empty for an empty file)

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValueError: If the path is not a file or the document is not a mapping
        yaml.YAMLError: If YAML is malformed

    Example:
        >>> config = load_config(".deploy.yaml")
        >>> print(config["storage"]["bucket"])
        my-site
    """
    path = Path(config_path)
    logger.info(f"Loading configuration from: {path}")

    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {path}")

    if not path.is_file():
        raise ValueError(f"Configuration path is not a file: {path}")

    try:
        with open(path, "r", encoding="utf-8") as f:
            config = yaml.safe_load(f)
    except yaml.YAMLError as e:
        logger.error(f"Failed to parse YAML: {e}")
        raise

    if config is None:
        logger.warning(f"Configuration file is empty: {path}")
        return {}

    if not isinstance(config, dict):
        raise ValueError(
            f"Configuration file must contain a mapping, got {type(config).__name__}"
        )

    return dict(config)


def merge_layers(*layers: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    """
    Deep-merge configuration layers; later layers win per key.

    Nested mappings (``storage``) are merged key by key, every other value
    is replaced whole. ``None`` layers are skipped.

    Example:
        >>> merge_layers({"storage": {"bucket": "a", "region": "r"}},
        ...              {"storage": {"bucket": "b"}})
        {'storage': {'bucket': 'b', 'region': 'r'}}
    """
    merged: Dict[str, Any] = {}
    for layer in layers:
        if not layer:
            continue
        for key, value in layer.items():
            if isinstance(value, Mapping) and isinstance(merged.get(key), dict):
                merged[key] = merge_layers(merged[key], value)
            else:
                merged[key] = copy.deepcopy(value)
    return merged


def validate_config(config: Dict[str, Any]) -> List[ConfigError]:
    """
    Validate a merged configuration against the deploy schema.

    Args:
        config: Merged configuration dictionary

    Returns:
        List of validation errors (empty if valid)

    Example:
        >>> errors = validate_config({"pathPrefix": "site"})
        >>> for error in errors:
        ...     print(error)
        pathPrefix: Must start and end with '/' (got: 'site')
        storage: Missing required field
    """
    errors: List[ConfigError] = []

    for key in config:
        if key not in KNOWN_TOP_LEVEL_FIELDS:
            logger.warning(f"Ignoring unknown configuration field: {key}")

    if "publicDir" in config and not _is_non_empty_str(config["publicDir"]):
        errors.append(ConfigError("publicDir", "Must be a non-empty string", config["publicDir"]))

    if "pathPrefix" in config:
        prefix = config["pathPrefix"]
        if not isinstance(prefix, str):
            errors.append(ConfigError("pathPrefix", "Must be a string", type(prefix).__name__))
        elif not PATH_PREFIX_PATTERN.match(prefix):
            errors.append(ConfigError("pathPrefix", "Must start and end with '/'", prefix))

    if "stableAssetExts" in config:
        exts = config["stableAssetExts"]
        if not isinstance(exts, list):
            errors.append(ConfigError("stableAssetExts", "Must be a list", type(exts).__name__))
        else:
            for i, ext in enumerate(exts):
                if not _is_non_empty_str(ext):
                    errors.append(
                        ConfigError(f"stableAssetExts[{i}]", "Must be a non-empty string", ext)
                    )

    if "chunkSize" in config:
        chunk_size = config["chunkSize"]
        if isinstance(chunk_size, bool) or not isinstance(chunk_size, int):
            errors.append(ConfigError("chunkSize", "Must be an integer", chunk_size))
        elif chunk_size < 1:
            errors.append(ConfigError("chunkSize", "Must be at least 1", chunk_size))

    for flag in ("includeDotFiles", "failOnProbeError"):
        if flag in config and not isinstance(config[flag], bool):
            errors.append(ConfigError(flag, "Must be a boolean", config[flag]))

    errors.extend(_validate_rules(config.get("rules")))
    errors.extend(_validate_storage(config.get("storage")))

    if errors:
        logger.warning(f"Configuration validation failed with {len(errors)} errors")
    else:
        logger.debug("Configuration validation passed")

    return errors


def _is_non_empty_str(value: Any) -> bool:
    return isinstance(value, str) and bool(value.strip())


def _validate_rules(rules: Any) -> List[ConfigError]:
    """Validate rule patterns compile and header entries are 'Name: Value'."""
    errors: List[ConfigError] = []

    if rules is None:
        return errors

    if not isinstance(rules, list):
        errors.append(ConfigError("rules", "Must be a list", type(rules).__name__))
        return errors

    for i, rule in enumerate(rules):
        prefix = f"rules[{i}]"

        if not isinstance(rule, dict):
            errors.append(ConfigError(prefix, "Must be a mapping", type(rule).__name__))
            continue

        if "pattern" not in rule:
            errors.append(ConfigError(f"{prefix}.pattern", "Missing required field"))
        elif not isinstance(rule["pattern"], str):
            errors.append(
                ConfigError(f"{prefix}.pattern", "Must be a string", type(rule["pattern"]).__name__)
            )
        else:
            try:
                re.compile(rule["pattern"])
            except re.error as e:
                errors.append(
                    ConfigError(f"{prefix}.pattern", f"Invalid regular expression: {e}", rule["pattern"])
                )

        headers = rule.get("headers", [])
        if not isinstance(headers, list):
            errors.append(ConfigError(f"{prefix}.headers", "Must be a list", type(headers).__name__))
            continue

        for j, header in enumerate(headers):
            if not isinstance(header, str) or ":" not in header:
                errors.append(
                    ConfigError(f"{prefix}.headers[{j}]", "Must be a 'Name: Value' string", header)
                )
            elif not header.split(":", 1)[0].strip():
                errors.append(
                    ConfigError(f"{prefix}.headers[{j}]", "Header name cannot be empty", header)
                )

    return errors


def _validate_storage(storage: Any) -> List[ConfigError]:
    """Validate the storage credentials block."""
    errors: List[ConfigError] = []

    if storage is None:
        errors.append(ConfigError("storage", "Missing required field"))
        return errors

    if not isinstance(storage, dict):
        errors.append(ConfigError("storage", "Must be a mapping", type(storage).__name__))
        return errors

    for field in REQUIRED_STORAGE_FIELDS:
        if field not in storage or storage[field] in (None, ""):
            errors.append(ConfigError(f"storage.{field}", "Missing required field"))
        elif not isinstance(storage[field], str):
            errors.append(
                ConfigError(f"storage.{field}", "Must be a string", type(storage[field]).__name__)
            )

    endpoint = storage.get("endpoint")
    if endpoint is not None:
        if not _is_non_empty_str(endpoint):
            errors.append(ConfigError("storage.endpoint", "Must be a non-empty string", endpoint))
        else:
            url = urlparse(endpoint)
            if url.scheme not in ("http", "https") or not url.netloc:
                errors.append(
                    ConfigError("storage.endpoint", "Must be an http(s) URL with a host", endpoint)
                )

    return errors


def build_run_config(config: Dict[str, Any], dry_run: bool = False) -> RunConfig:
    """
    Validate a merged configuration and build the RunConfig.

    Applies defaults for every optional field and compiles rule patterns once.

    Args:
        config: Merged configuration dictionary
        dry_run: Plan without uploading

    Returns:
        Immutable RunConfig

    Raises:
        ConfigurationError: If validation reports any error
    """
    errors = validate_config(config)
    if errors:
        raise ConfigurationError(errors)

    storage = config["storage"]
    exts = config.get("stableAssetExts", list(DEFAULT_STABLE_ASSET_EXTS))

    return RunConfig(
        storage=StorageCredentials(
            region=storage["region"],
            bucket=storage["bucket"],
            access_key_id=storage["accessKeyId"],
            access_key_secret=storage["accessKeySecret"],
            endpoint_url=storage.get("endpoint"),
        ),
        public_dir=config.get("publicDir", DEFAULT_PUBLIC_DIR),
        path_prefix=config.get("pathPrefix", DEFAULT_PATH_PREFIX),
        stable_asset_exts=frozenset(ext.strip().lstrip(".") for ext in exts),
        chunk_size=config.get("chunkSize", DEFAULT_CHUNK_SIZE),
        rules=tuple(
            Rule(pattern=re.compile(rule["pattern"]), headers=tuple(rule.get("headers", [])))
            for rule in config.get("rules") or []
        ),
        include_dot_files=config.get("includeDotFiles", False),
        fail_on_probe_error=config.get("failOnProbeError", False),
        dry_run=dry_run,
    )


def get_config_example() -> str:
    """Return an annotated example deploy file."""
    return """# static-deploy configuration
publicDir: dist
pathPrefix: /
stableAssetExts: [jpg, png, gif, ico, js, css]
chunkSize: 20

rules:
  - pattern: ^index\\.html$
    headers:
      - "Cache-Control: no-cache"

storage:
  region: us-east-1
  bucket: my-site
  # Prefer DEPLOY_STORAGE_AK / DEPLOY_STORAGE_SK over committing keys
  accessKeyId: your-access-key-id
  accessKeySecret: your-access-key-secret
"""
