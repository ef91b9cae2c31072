"""
Prometheus metrics for deploy runs.

Tracks per-file decisions, upload outcomes, upload latency and storage API
errors with prometheus_client collectors. Collection can be switched off
with ``METRICS_ENABLED=false``.

Metrics Provided:
    - deploy_files_total: Counter of planner decisions by action
    - upload_requests_total: Counter of uploads by status
    - upload_bytes_total: Counter of uploaded bytes
    - upload_duration_seconds: Histogram of upload latency
    - storage_api_errors_total: Counter of backend errors

Usage:
    >>> from static_deploy.utils.metrics import get_metrics
    >>> metrics = get_metrics()
    >>> with metrics.track_upload():
    ...     backend.put(key, data, headers)
    >>> metrics.record_upload_success(bytes_uploaded=len(data))
    >>> write_metrics_file("deploy.prom")
"""

import os
import threading
from contextlib import nullcontext
from pathlib import Path
from typing import Optional, Union

from prometheus_client import (
    REGISTRY,
    CollectorRegistry,
    Counter,
    Histogram,
    write_to_textfile,
)

from static_deploy.utils.logging import get_logger

logger = get_logger(__name__)


class PrometheusMetrics:
    """
    Centralized Prometheus metrics for deploy runs.

    Example:
        >>> metrics = PrometheusMetrics(registry=CollectorRegistry())
        >>> metrics.record_decision("skip")
        >>> metrics.upload_bytes.inc(1024)
    """

    def __init__(
        self, enabled: bool = True, registry: Optional[CollectorRegistry] = None
    ) -> None:
        """
        Initialize metrics collectors.

        Args:
            enabled: Whether metrics collection is enabled
            registry: Custom Prometheus registry (uses default if None)
        """
        self.enabled = enabled
        self.registry = registry if registry is not None else REGISTRY

        if not self.enabled:
            logger.debug("Metrics collection disabled")
            return

        # Counter: planner decisions by action (skip, upload)
        self.deploy_files = Counter(
            name="deploy_files_total",
            documentation="Files classified by the deploy planner",
            labelnames=["action"],
            registry=self.registry,
        )

        # Counter: uploads by status (success, failure)
        self.upload_requests = Counter(
            name="upload_requests_total",
            documentation="Total number of upload requests",
            labelnames=["status"],
            registry=self.registry,
        )

        self.upload_bytes = Counter(
            name="upload_bytes_total",
            documentation="Total bytes uploaded to object storage",
            registry=self.registry,
        )

        self.upload_duration = Histogram(
            name="upload_duration_seconds",
            documentation="Time spent uploading files",
            buckets=[0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0],
            registry=self.registry,
        )

        # Counter: backend errors by operation (head, put)
        self.storage_api_errors = Counter(
            name="storage_api_errors_total",
            documentation="Total object storage API errors",
            labelnames=["operation", "error_type"],
            registry=self.registry,
        )

    def track_upload(self):
        """
        Context manager timing one upload.

        Example:
            >>> with metrics.track_upload():
            ...     backend.put(key, data, headers)
        """
        if not self.enabled:
            return nullcontext()

        return self.upload_duration.time()

    def record_decision(self, action: str) -> None:
        """Record a planner decision ("skip" or "upload")."""
        if not self.enabled:
            return

        self.deploy_files.labels(action=action).inc()

    def record_upload_success(self, bytes_uploaded: int) -> None:
        """
        Record successful upload operation.

        Args:
            bytes_uploaded: Number of bytes uploaded
        """
        if not self.enabled:
            return

        self.upload_requests.labels(status="success").inc()
        self.upload_bytes.inc(bytes_uploaded)

    def record_upload_failure(self) -> None:
        """Record failed upload operation."""
        if not self.enabled:
            return

        self.upload_requests.labels(status="failure").inc()

    def record_storage_error(self, operation: str, error_type: str) -> None:
        """
        Record storage API error.

        Args:
            operation: Backend operation (head, put)
            error_type: Exception class name
        """
        if not self.enabled:
            return

        self.storage_api_errors.labels(operation=operation, error_type=error_type).inc()


# Global metrics instance (singleton)
_metrics_instance: Optional[PrometheusMetrics] = None
_metrics_lock = threading.Lock()


def get_metrics() -> PrometheusMetrics:
    """
    Get global metrics instance (singleton).

    Returns:
        Global PrometheusMetrics instance
    """
    global _metrics_instance

    # First use happens inside upload worker threads
    with _metrics_lock:
        if _metrics_instance is None:
            enabled = os.getenv("METRICS_ENABLED", "true").lower() == "true"
            _metrics_instance = PrometheusMetrics(enabled=enabled)

    return _metrics_instance


def write_metrics_file(path: Union[str, Path]) -> None:
    """
    Write the collected metrics in Prometheus text format.

    Meant for node_exporter's textfile collector or a CI artifact.

    Args:
        path: Output file (written atomically by prometheus_client)
    """
    metrics = get_metrics()
    write_to_textfile(str(path), metrics.registry)
    logger.info(f"Metrics written to {path}")
