"""
Content fingerprints for local files.

A fingerprint is the base64-encoded MD5 digest of a file's bytes, the same
encoding HTTP uses for the Content-MD5 header. It is only compared for
equality with the value stored on the remote object.
"""

import base64
import hashlib
from pathlib import Path
from typing import Union

from static_deploy.utils.errors import LocalIOError

CHUNK_SIZE = 1024 * 1024  # 1 MB


def _encode(digest: bytes) -> str:
    return base64.b64encode(digest).decode("ascii")


def fingerprint_bytes(data: bytes) -> str:
    """Fingerprint in-memory content."""
    return _encode(hashlib.md5(data, usedforsecurity=False).digest())


def compute_fingerprint(path: Union[str, Path]) -> str:
    """
    Fingerprint a local file.

    Args:
        path: File to read

    Returns:
        Base64 MD5 digest, e.g. ``"XrY7u+Ae7tCTyyK7j1rNww=="`` for ``hello world``

    Raises:
        LocalIOError: If the file cannot be read
    """
    hasher = hashlib.md5(usedforsecurity=False)
    try:
        with open(path, "rb") as f:
            for chunk in iter(lambda: f.read(CHUNK_SIZE), b""):
                hasher.update(chunk)
    except OSError as e:
        raise LocalIOError(str(path), e.strerror or str(e)) from e

    return _encode(hasher.digest())
