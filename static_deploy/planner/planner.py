"""
Diff planner: decide per file whether it must be uploaded.

Each local file is fingerprinted and compared with the fingerprint stored on
the remote object at its key. Equal fingerprints mean the object is already
current and the file is skipped; in every other case (no remote object,
different content, or a failed probe) the file is uploaded.

Example usage:
    >>> files = scan_local_files("dist")
    >>> decision = plan_file(backend, files[0], "/")
    >>> decision.action
    <SyncAction.UPLOAD: 'upload'>
"""

import posixpath
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Optional

from static_deploy.planner.fingerprint import compute_fingerprint
from static_deploy.storage.base import StorageBackend
from static_deploy.utils.errors import ConfigError, ConfigurationError, RemoteProbeError
from static_deploy.utils.logging import get_logger
from static_deploy.utils.metrics import get_metrics

logger = get_logger(__name__)


class SyncAction(str, Enum):
    """Actions the planner can decide on."""

    UPLOAD = "upload"
    SKIP = "skip"


@dataclass(eq=False)
class LocalFile:
    """
    A file under the public directory.

    Attributes:
        public_dir: Root directory being deployed
        relative_path: Path under ``public_dir`` with ``/`` separators
    """

    public_dir: Path
    relative_path: str
    _fingerprint: Optional[str] = field(default=None, init=False, repr=False)

    @property
    def absolute_path(self) -> Path:
        return self.public_dir / self.relative_path

    @property
    def extension(self) -> str:
        """Extension without the leading dot ("" if none)."""
        return posixpath.splitext(self.relative_path)[1][1:]

    def fingerprint(self) -> str:
        """Content fingerprint, read from disk once and cached."""
        if self._fingerprint is None:
            self._fingerprint = compute_fingerprint(self.absolute_path)
        return self._fingerprint


@dataclass
class Decision:
    """
    Planner outcome for one file.

    Attributes:
        action: SKIP or UPLOAD
        reason: Human-readable reason
        local_file: File the decision is about
        remote_key: Key the file is stored under
        local_fingerprint: Fingerprint of the local content
        remote_fingerprint: Fingerprint stored remotely (None if absent)
        probe_error: Message of a failed remote probe that was treated as absent
    """

    action: SyncAction
    reason: str
    local_file: LocalFile
    remote_key: str
    local_fingerprint: str
    remote_fingerprint: Optional[str] = None
    probe_error: Optional[str] = None


def scan_local_files(public_dir, include_dot_files: bool = False) -> List[LocalFile]:
    """
    List every regular file under ``public_dir``, recursively.

    Args:
        public_dir: Directory to scan
        include_dot_files: Include files and directories whose name starts
            with ``.`` (skipped by default)

    Returns:
        LocalFile entries sorted by relative path

    Raises:
        ConfigurationError: If ``public_dir`` is missing or not a directory
    """
    root = Path(public_dir)
    if not root.is_dir():
        raise ConfigurationError(
            [ConfigError("publicDir", "Directory does not exist", str(public_dir))]
        )

    files: List[LocalFile] = []
    for path in root.rglob("*"):
        if not path.is_file():
            continue
        relative = path.relative_to(root)
        if not include_dot_files and any(part.startswith(".") for part in relative.parts):
            continue
        files.append(LocalFile(public_dir=root, relative_path=relative.as_posix()))

    files.sort(key=lambda f: f.relative_path)
    logger.debug(f"Found {len(files)} file(s) under {root}")
    return files


def remote_key_for(path_prefix: str, relative_path: str) -> str:
    """
    Remote key of a file: the prefix joined with its relative path.

    Example:
        >>> remote_key_for("/v1/", "img/logo.png")
        '/v1/img/logo.png'
    """
    return posixpath.join(path_prefix, relative_path)


def probe_remote_fingerprint(backend: StorageBackend, remote_key: str) -> Optional[str]:
    """
    Fetch the fingerprint stored on the remote object.

    Args:
        backend: Storage backend
        remote_key: Key to look up

    Returns:
        Stored fingerprint, or None when the object does not exist or has none

    Raises:
        RemoteProbeError: If the lookup fails for any reason but not-found
    """
    try:
        result = backend.head(remote_key)
    except Exception as e:
        get_metrics().record_storage_error("head", type(e).__name__)
        raise RemoteProbeError(remote_key, str(e)) from e

    if not result.exists:
        return None
    return result.fingerprint


def plan_file(
    backend: StorageBackend,
    local_file: LocalFile,
    path_prefix: str,
    fail_on_probe_error: bool = False,
) -> Decision:
    """
    Decide whether one file must be uploaded.

    Args:
        backend: Storage backend to probe
        local_file: File to decide on
        path_prefix: Remote key prefix
        fail_on_probe_error: Raise probe failures instead of uploading

    Returns:
        Decision for the file

    Raises:
        LocalIOError: If the local file cannot be read
        RemoteProbeError: If the probe fails and ``fail_on_probe_error`` is set
    """
    local_fingerprint = local_file.fingerprint()
    remote_key = remote_key_for(path_prefix, local_file.relative_path)

    probe_error: Optional[str] = None
    try:
        remote_fingerprint = probe_remote_fingerprint(backend, remote_key)
    except RemoteProbeError as e:
        if fail_on_probe_error:
            raise
        logger.warning(f"{e}; treating as absent and uploading")
        remote_fingerprint = None
        probe_error = e.reason

    if remote_fingerprint is not None and remote_fingerprint == local_fingerprint:
        action, reason = SyncAction.SKIP, "not modified"
    elif probe_error is not None:
        action, reason = SyncAction.UPLOAD, "remote probe failed"
    elif remote_fingerprint is None:
        action, reason = SyncAction.UPLOAD, "not on remote"
    else:
        action, reason = SyncAction.UPLOAD, "content changed"

    get_metrics().record_decision(action.value)

    return Decision(
        action=action,
        reason=reason,
        local_file=local_file,
        remote_key=remote_key,
        local_fingerprint=local_fingerprint,
        remote_fingerprint=remote_fingerprint,
        probe_error=probe_error,
    )
