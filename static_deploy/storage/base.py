"""
Object storage capability consumed by the deploy engine.

The planner and uploader only need two operations: a metadata-only ``head``
and a whole-object ``put``. Any backend providing them (a real bucket, or an
in-memory fake in tests) can be deployed to.
"""

from dataclasses import dataclass
from typing import Dict, Optional, Protocol, runtime_checkable

# Request header carrying the base64 MD5 of the body
FINGERPRINT_HEADER = "Content-MD5"

# User metadata key the fingerprint is stored under
FINGERPRINT_META_KEY = "content-md5"


@dataclass(frozen=True)
class HeadResult:
    """Metadata of a remote object."""

    exists: bool
    fingerprint: Optional[str] = None


ABSENT = HeadResult(exists=False)


@runtime_checkable
class StorageBackend(Protocol):
    """Protocol that all storage backends must implement."""

    def head(self, key: str) -> HeadResult:
        """Return object metadata; ``exists=False`` when the key is not found.

        Any other failure is raised.
        """
        ...

    def put(self, key: str, data: bytes, headers: Dict[str, str]) -> None:
        """Store ``data`` at ``key`` with ``headers``; raise on failure.

        The value of the ``Content-MD5`` header must be returned by a later
        ``head`` on the same key.
        """
        ...
