"""
Unit tests for uploader module.

Covers single-file uploads against an in-memory backend and the batch
runner's concurrency bound, ordering and failure isolation.
"""

import threading
import time
from pathlib import Path

import pytest

from static_deploy.planner.fingerprint import compute_fingerprint
from static_deploy.planner.planner import LocalFile
from static_deploy.uploader import (
    UploadResult,
    chunked,
    run_in_batches,
    upload_file,
    upload_headers,
)
from static_deploy.utils.errors import LocalIOError
from static_deploy.utils.logging import get_correlation_id, set_correlation_id


class TestUploadHeaders:
    """Test upload_headers function."""

    def test_adds_content_type_and_fingerprint(self, public_dir: Path):
        """Test content type and fingerprint headers are added."""
        local_file = LocalFile(public_dir, "b.txt")

        headers = upload_headers(local_file, {"Cache-Control": "max-age=120"})

        assert headers == {
            "Cache-Control": "max-age=120",
            "Content-Type": "text/plain",
            "Content-MD5": compute_fingerprint(public_dir / "b.txt"),
        }

    def test_policy_content_type_kept(self, public_dir: Path):
        """Test a Content-Type from rules is kept."""
        local_file = LocalFile(public_dir, "b.txt")

        headers = upload_headers(local_file, {"content-type": "text/markdown"})

        assert headers["content-type"] == "text/markdown"
        assert "Content-Type" not in headers


class TestUploadFile:
    """Test upload_file function."""

    def test_upload_success(self, backend, public_dir: Path):
        """Test a successful upload result."""
        local_file = LocalFile(public_dir, "a.js")
        policy = {"Cache-Control": "max-age=94608000"}

        result = upload_file(backend, local_file, "/a.js", policy)

        assert isinstance(result, UploadResult)
        assert result.success is True
        assert result.remote_key == "/a.js"
        assert result.local_path == "a.js"
        assert result.file_size_bytes == len("console.log(1)")
        assert result.error_message is None

        data, headers = backend.objects["/a.js"]
        assert data == b"console.log(1)"
        assert headers["Cache-Control"] == "max-age=94608000"
        assert headers["Content-MD5"] == local_file.fingerprint()

    def test_upload_failure_returns_result(self, backend, public_dir: Path):
        """Test a backend error becomes a failed result."""
        backend.fail_put.add("/a.js")

        result = upload_file(backend, LocalFile(public_dir, "a.js"), "/a.js", {})

        assert result.success is False
        assert "/a.js" in result.error_message
        assert "ConnectionError" in result.error_message
        assert "/a.js" not in backend.objects

    def test_unreadable_file_raises(self, backend, tmp_path: Path):
        """Test a local read error is raised."""
        with pytest.raises(LocalIOError):
            upload_file(backend, LocalFile(tmp_path, "missing.js"), "/missing.js", {})

        assert backend.put_calls == []


class TestChunked:
    def test_even_split(self):
        """Test items split into full chunks."""
        assert chunked([1, 2, 3, 4], 2) == [[1, 2], [3, 4]]

    def test_remainder(self):
        """Test the last chunk holds the remainder."""
        assert chunked([1, 2, 3, 4, 5], 2) == [[1, 2], [3, 4], [5]]

    def test_empty(self):
        """Test no items gives no chunks."""
        assert chunked([], 3) == []

    def test_invalid_size(self):
        """Test chunk size below 1 is rejected."""
        with pytest.raises(ValueError):
            chunked([1], 0)


class TestRunInBatches:
    """Test run_in_batches function."""

    def test_results_in_input_order(self):
        """Test results keep input order."""
        def task(n):
            time.sleep(0.01 * (5 - n))
            return n * 10

        assert run_in_batches([1, 2, 3, 4, 5], 2, task) == [10, 20, 30, 40, 50]

    def test_concurrency_bounded_by_chunk_size(self):
        """Test no more than chunk_size tasks run at once."""
        lock = threading.Lock()
        active = 0
        peak = 0

        def task(n):
            nonlocal active, peak
            with lock:
                active += 1
                peak = max(peak, active)
            time.sleep(0.02)
            with lock:
                active -= 1
            return n

        run_in_batches(list(range(7)), 3, task)

        assert peak <= 3

    def test_batches_run_sequentially(self):
        """Test no task of a batch starts before the previous batch settles."""
        events = []
        lock = threading.Lock()

        def task(n):
            with lock:
                events.append(("start", n))
            time.sleep(0.01)
            with lock:
                events.append(("end", n))
            return n

        run_in_batches([0, 1, 2, 3, 4], 2, task)

        def index(event):
            return events.index(event)

        assert index(("start", 2)) > max(index(("end", 0)), index(("end", 1)))
        assert index(("start", 4)) > max(index(("end", 2)), index(("end", 3)))

    def test_exception_raised_after_batch_settles(self):
        """Test siblings finish and later batches never start."""
        seen = []
        lock = threading.Lock()

        def task(n):
            if n == 2:
                raise LocalIOError(f"file{n}", "boom")
            time.sleep(0.01)
            with lock:
                seen.append(n)
            return n

        with pytest.raises(LocalIOError):
            run_in_batches([0, 1, 2, 3, 4, 5], 2, task)

        assert sorted(seen) == [0, 1, 3]

    def test_context_propagated_to_workers(self):
        """Test workers see the caller's context variables."""
        set_correlation_id("run-42")

        results = run_in_batches([1, 2, 3], 2, lambda _: get_correlation_id())

        assert results == ["run-42", "run-42", "run-42"]
