"""
Object storage uploader module.

Uploads files with their cache headers and runs per-file work in
sequential batches of bounded concurrency.
"""

from .uploader import (
    UploadResult,
    chunked,
    run_in_batches,
    upload_file,
    upload_headers,
)

__all__ = [
    "UploadResult",
    "chunked",
    "run_in_batches",
    "upload_file",
    "upload_headers",
]
