"""
Deploy planning: fingerprints, remote probes, cache policies and decisions.

Exports:
    compute_fingerprint: Base64 MD5 of a local file
    scan_local_files: Enumerate the public directory
    plan_file: Skip/upload decision for one file
    resolve_policy: HTTP headers for one file
"""

from static_deploy.planner.fingerprint import compute_fingerprint, fingerprint_bytes
from static_deploy.planner.planner import (
    Decision,
    LocalFile,
    SyncAction,
    plan_file,
    probe_remote_fingerprint,
    remote_key_for,
    scan_local_files,
)
from static_deploy.planner.policy import (
    guess_content_type,
    match_rule,
    parse_header,
    resolve_policy,
)

__all__ = [
    "compute_fingerprint",
    "fingerprint_bytes",
    "Decision",
    "LocalFile",
    "SyncAction",
    "plan_file",
    "probe_remote_fingerprint",
    "remote_key_for",
    "scan_local_files",
    "guess_content_type",
    "match_rule",
    "parse_header",
    "resolve_policy",
]
