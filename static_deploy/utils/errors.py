"""
Exception hierarchy for static-deploy.

All errors raised by the deploy engine derive from DeployError so the CLI can
turn them into a non-zero exit code in one place.
"""

from dataclasses import dataclass
from typing import Any, List, Optional


@dataclass
class ConfigError:
    """Validation error in deploy configuration."""

    field: str
    message: str
    value: Optional[Any] = None

    def __str__(self) -> str:
        """Format error message."""
        if self.value is not None:
            return f"{self.field}: {self.message} (got: {self.value!r})"
        return f"{self.field}: {self.message}"


class DeployError(Exception):
    """Base class for deploy failures."""


class ConfigurationError(DeployError):
    """Configuration failed schema validation; raised before any storage I/O."""

    def __init__(self, errors: List[ConfigError]):
        self.errors = list(errors)
        super().__init__(self._format())

    def _format(self) -> str:
        if len(self.errors) == 1:
            return f"Invalid configuration: {self.errors[0]}"
        lines = [f"Invalid configuration ({len(self.errors)} errors):"]
        lines.extend(f"  - {error}" for error in self.errors)
        return "\n".join(lines)


class LocalIOError(DeployError):
    """A local file listed for deploy could not be read."""

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Cannot read local file {path}: {reason}")


class RemoteProbeError(DeployError):
    """Metadata lookup failed for a reason other than object-not-found."""

    def __init__(self, key: str, reason: str):
        self.key = key
        self.reason = reason
        super().__init__(f"Remote probe failed for {key}: {reason}")


class RemoteUploadError(DeployError):
    """A single object upload failed."""

    def __init__(self, key: str, reason: str):
        self.key = key
        self.reason = reason
        super().__init__(f"Upload failed for {key}: {reason}")
