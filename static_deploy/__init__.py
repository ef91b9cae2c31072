"""
static-deploy

Publishes a directory of built static assets to an object-storage bucket.
Files whose content already matches the stored object are skipped, and every
upload carries cache headers derived from its file type and user rules.

Components:
- planner: content fingerprints, remote probes, cache policies and the
  skip/upload decision
- uploader: batched uploads with bounded concurrency
- deployer: per-run orchestration and summary
- storage: the object storage capability and its S3-compatible backend
- utils: logging, configuration, errors, metrics
"""

__version__ = "0.1.0"

from static_deploy.utils.logging import setup_logging

# Initialize default logging configuration
setup_logging()
