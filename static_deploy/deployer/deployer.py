"""
Deploy run orchestration.

Ties the planner and the uploader together for one invocation: lists the
public directory, then for each batch of files plans, resolves the cache
policy and uploads every file concurrently. Failed uploads are collected and
do not stop later batches; an unreadable local file aborts the run once its
batch has settled.

Example usage:
    >>> from static_deploy.deployer import run_deploy
    >>> report = run_deploy(config)
    >>> print(report.summary())
    12 files: 3 uploaded, 9 skipped
"""

import uuid
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from static_deploy.planner.planner import (
    LocalFile,
    SyncAction,
    plan_file,
    scan_local_files,
)
from static_deploy.planner.policy import resolve_policy
from static_deploy.storage import StorageBackend, create_backend
from static_deploy.uploader.uploader import run_in_batches, upload_file
from static_deploy.utils.config import RunConfig
from static_deploy.utils.errors import ConfigError, ConfigurationError, RemoteProbeError
from static_deploy.utils.logging import get_logger, set_correlation_id

logger = get_logger(__name__)


@dataclass
class FileOutcome:
    """What happened to one file during the run."""

    relative_path: str
    remote_key: str
    action: SyncAction
    success: bool = True
    error_message: Optional[str] = None


@dataclass
class DeployReport:
    """
    Summary of a deploy run.

    Attributes:
        total: Number of files found under the public directory
        uploaded: Files uploaded (or that would be, in a dry run)
        skipped: Files already current remotely
        failed: (relative path, error message) for every failed file
        dry_run: Whether uploads were skipped
    """

    total: int = 0
    uploaded: int = 0
    skipped: int = 0
    failed: List[Tuple[str, str]] = field(default_factory=list)
    dry_run: bool = False

    @property
    def succeeded(self) -> bool:
        return not self.failed

    def summary(self) -> str:
        """Human-readable summary of the run."""
        verb = "to upload" if self.dry_run else "uploaded"
        parts = [f"{self.uploaded} {verb}", f"{self.skipped} skipped"]
        if self.failed:
            parts.append(f"{len(self.failed)} failed")
        return f"{self.total} files: " + ", ".join(parts)


def deploy_file(backend: StorageBackend, local_file: LocalFile, config: RunConfig) -> FileOutcome:
    """
    Plan, resolve and upload a single file.

    Raises:
        LocalIOError: If the local file cannot be read
    """
    try:
        decision = plan_file(
            backend,
            local_file,
            config.path_prefix,
            fail_on_probe_error=config.fail_on_probe_error,
        )
    except RemoteProbeError as e:
        logger.error(f"{e}; not uploading {local_file.relative_path}")
        return FileOutcome(
            relative_path=local_file.relative_path,
            remote_key=e.key,
            action=SyncAction.UPLOAD,
            success=False,
            error_message=str(e),
        )

    if decision.action == SyncAction.SKIP:
        logger.info(f"not modified, skip: {local_file.relative_path}")
        return FileOutcome(local_file.relative_path, decision.remote_key, SyncAction.SKIP)

    policy = resolve_policy(
        local_file.relative_path,
        local_file.extension,
        config.rules,
        config.stable_asset_exts,
    )

    if config.dry_run:
        logger.info(f"would upload: {local_file.relative_path} ({decision.reason}) {policy}")
        return FileOutcome(local_file.relative_path, decision.remote_key, SyncAction.UPLOAD)

    logger.info(f"uploading: {local_file.relative_path}")
    result = upload_file(backend, local_file, decision.remote_key, policy)

    return FileOutcome(
        relative_path=local_file.relative_path,
        remote_key=decision.remote_key,
        action=SyncAction.UPLOAD,
        success=result.success,
        error_message=result.error_message,
    )


def run_deploy(config: RunConfig, backend: Optional[StorageBackend] = None) -> DeployReport:
    """
    Deploy the public directory to the bucket.

    Args:
        config: Validated run configuration
        backend: Storage backend (built from ``config.storage`` if None)

    Returns:
        DeployReport; ``report.succeeded`` is False if any file failed

    Raises:
        ConfigurationError: If the public directory does not exist or the
            storage client rejects the region or endpoint
        LocalIOError: If a local file cannot be read (after its batch settles)
    """
    set_correlation_id(uuid.uuid4().hex)

    logger.info(
        f"start deploy {config.public_dir} -> "
        f"{config.storage.bucket}{config.path_prefix}"
        + (" (dry run)" if config.dry_run else "")
    )

    files = scan_local_files(config.public_dir, include_dot_files=config.include_dot_files)

    if backend is None:
        try:
            backend = create_backend(config.storage)
        except ValueError as e:
            # botocore rejects malformed regions and endpoints here
            raise ConfigurationError([ConfigError("storage", str(e))]) from e

    outcomes = run_in_batches(
        files,
        config.chunk_size,
        lambda local_file: deploy_file(backend, local_file, config),
    )

    report = DeployReport(total=len(files), dry_run=config.dry_run)
    for outcome in outcomes:
        if not outcome.success:
            report.failed.append((outcome.relative_path, outcome.error_message or "unknown error"))
        elif outcome.action == SyncAction.SKIP:
            report.skipped += 1
        else:
            report.uploaded += 1

    logger.info(f"processed {report.total} files ({report.summary()})")
    for relative_path, message in report.failed:
        logger.error(f"failed: {relative_path}: {message}")

    return report
