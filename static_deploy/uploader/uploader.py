"""
Object uploads and batched execution.

Provides the single-file upload used by the deploy run and the batch runner
that bounds concurrency: items are split into batches of ``chunk_size``,
every item of a batch runs in its own worker thread, and the next batch only
starts once every task of the current one has finished.

Example usage:
    >>> from static_deploy.uploader import upload_file, run_in_batches
    >>> result = upload_file(backend, local_file, "/assets/app.js",
    ...                      {"Cache-Control": "max-age=94608000"})
    >>> if result.success:
    ...     print(f"Uploaded {result.remote_key}")
    >>>
    >>> results = run_in_batches(files, chunk_size=20, task=deploy_one)
"""

import contextvars
import time
from concurrent.futures import ThreadPoolExecutor, wait
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence, TypeVar

from static_deploy.planner.planner import LocalFile
from static_deploy.planner.policy import CONTENT_TYPE, guess_content_type
from static_deploy.storage.base import FINGERPRINT_HEADER, StorageBackend
from static_deploy.utils.errors import LocalIOError, RemoteUploadError
from static_deploy.utils.logging import get_logger
from static_deploy.utils.metrics import get_metrics

logger = get_logger(__name__)

T = TypeVar("T")
R = TypeVar("R")


@dataclass
class UploadResult:
    """
    Result of one object upload.

    Attributes:
        success: Whether the upload completed
        remote_key: Key the file was written to
        local_path: Relative path of the uploaded file
        headers: Headers sent with the object
        file_size_bytes: Size of the uploaded content
        duration_seconds: Upload time in seconds
        error_message: Error description (None if successful)
    """

    success: bool
    remote_key: str
    local_path: str
    headers: Dict[str, str]
    file_size_bytes: int
    duration_seconds: float
    error_message: Optional[str] = None


def upload_headers(local_file: LocalFile, policy: Dict[str, str]) -> Dict[str, str]:
    """
    Headers sent with an upload: the cache policy, the content fingerprint,
    and a guessed Content-Type unless the policy sets one.
    """
    headers = dict(policy)
    if not any(name.lower() == CONTENT_TYPE.lower() for name in headers):
        headers[CONTENT_TYPE] = guess_content_type(local_file.relative_path)
    headers[FINGERPRINT_HEADER] = local_file.fingerprint()
    return headers


def upload_file(
    backend: StorageBackend,
    local_file: LocalFile,
    remote_key: str,
    policy: Dict[str, str],
) -> UploadResult:
    """
    Upload one file with its cache policy.

    Backend failures are not retried; they are returned as a failed
    UploadResult so sibling uploads are unaffected.

    Args:
        backend: Storage backend
        local_file: File to upload
        remote_key: Destination key
        policy: Cache headers resolved for the file

    Returns:
        UploadResult with success status and details

    Raises:
        LocalIOError: If the local file cannot be read
    """
    start_time = time.time()
    metrics = get_metrics()

    try:
        data = local_file.absolute_path.read_bytes()
    except OSError as e:
        raise LocalIOError(str(local_file.absolute_path), e.strerror or str(e)) from e

    headers = upload_headers(local_file, policy)

    try:
        with metrics.track_upload():
            backend.put(remote_key, data, headers)
    except Exception as e:
        error = RemoteUploadError(remote_key, f"{type(e).__name__}: {e}")
        logger.error(str(error))
        metrics.record_upload_failure()
        metrics.record_storage_error("put", type(e).__name__)
        return UploadResult(
            success=False,
            remote_key=remote_key,
            local_path=local_file.relative_path,
            headers=headers,
            file_size_bytes=len(data),
            duration_seconds=time.time() - start_time,
            error_message=str(error),
        )

    duration = time.time() - start_time
    logger.debug(f"Uploaded {remote_key} ({len(data)} bytes in {duration:.2f}s)")
    metrics.record_upload_success(bytes_uploaded=len(data))

    return UploadResult(
        success=True,
        remote_key=remote_key,
        local_path=local_file.relative_path,
        headers=headers,
        file_size_bytes=len(data),
        duration_seconds=duration,
    )


def chunked(items: Sequence[T], size: int) -> List[List[T]]:
    """
    Split items into consecutive batches of at most ``size``.

    Example:
        >>> chunked([1, 2, 3, 4, 5], 2)
        [[1, 2], [3, 4], [5]]
    """
    if size < 1:
        raise ValueError(f"Batch size must be at least 1, got {size}")
    return [list(items[i:i + size]) for i in range(0, len(items), size)]


def run_in_batches(
    items: Sequence[T],
    chunk_size: int,
    task: Callable[[T], R],
) -> List[R]:
    """
    Run ``task`` over items, one batch of ``chunk_size`` at a time.

    All tasks of a batch run concurrently and the batch waits for every one
    of them to settle. An exception from one task does not cancel its
    siblings; once the batch has settled the first exception (in input
    order) is re-raised and later batches are not started. Tasks run in a
    copy of the caller's context so logging keeps the run's correlation ID.

    Args:
        items: Work items
        chunk_size: Maximum number of concurrent tasks
        task: Callable applied to each item

    Returns:
        Task results in input order
    """
    results: List[R] = []
    batches = chunked(items, chunk_size)

    for index, batch in enumerate(batches, 1):
        logger.debug(f"Starting batch {index}/{len(batches)} ({len(batch)} items)")

        with ThreadPoolExecutor(max_workers=len(batch)) as executor:
            futures = [
                executor.submit(contextvars.copy_context().run, task, item)
                for item in batch
            ]
            wait(futures)

        for future in futures:
            error = future.exception()
            if error is not None:
                raise error
            results.append(future.result())

    return results
