"""Shared fixtures for static-deploy tests."""

import threading
from pathlib import Path
from typing import Dict, List, Optional, Set, Tuple

import pytest

from static_deploy.storage.base import ABSENT, FINGERPRINT_HEADER, HeadResult
from static_deploy.utils.config import RunConfig, StorageCredentials


class InMemoryBackend:
    """
    StorageBackend keeping objects in a dict.

    Keys listed in ``fail_head`` or ``fail_put`` raise on the matching
    operation. Every call is recorded for assertions.
    """

    def __init__(self) -> None:
        self.objects: Dict[str, Tuple[bytes, Dict[str, str]]] = {}
        self.fail_head: Set[str] = set()
        self.fail_put: Set[str] = set()
        self.head_calls: List[str] = []
        self.put_calls: List[str] = []
        self._lock = threading.Lock()

    def head(self, key: str) -> HeadResult:
        with self._lock:
            self.head_calls.append(key)
        if key in self.fail_head:
            raise ConnectionError(f"head failed for {key}")
        if key not in self.objects:
            return ABSENT
        return HeadResult(exists=True, fingerprint=self.objects[key][1].get(FINGERPRINT_HEADER))

    def put(self, key: str, data: bytes, headers: Dict[str, str]) -> None:
        with self._lock:
            self.put_calls.append(key)
        if key in self.fail_put:
            raise ConnectionError(f"put failed for {key}")
        with self._lock:
            self.objects[key] = (data, dict(headers))

    def headers_of(self, key: str) -> Optional[Dict[str, str]]:
        stored = self.objects.get(key)
        return stored[1] if stored else None


@pytest.fixture
def backend() -> InMemoryBackend:
    return InMemoryBackend()


@pytest.fixture
def credentials() -> StorageCredentials:
    return StorageCredentials(
        region="us-east-1",
        bucket="test-site",
        access_key_id="AKIDEXAMPLE",
        access_key_secret="secret-example",
    )


@pytest.fixture
def public_dir(tmp_path: Path) -> Path:
    """Public directory with ``a.js`` and ``b.txt``."""
    root = tmp_path / "dist"
    root.mkdir()
    (root / "a.js").write_text("console.log(1)")
    (root / "b.txt").write_text("hi")
    return root


@pytest.fixture
def run_config(public_dir: Path, credentials: StorageCredentials) -> RunConfig:
    return RunConfig(storage=credentials, public_dir=str(public_dir))
