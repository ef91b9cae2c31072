"""
Cache policy resolution.

Every uploaded file gets a Cache-Control baseline: stable assets (content
hashed file names, images) are cached for three years, everything else for
two minutes. The first user rule whose pattern matches the file's relative
path then overlays its headers onto the baseline, header by header.

Example:
    >>> rules = [Rule(re.compile(r"^index\\.html$"), ("Cache-Control: no-cache",))]
    >>> resolve_policy("index.html", "html", rules, {"js", "css"})
    {'Cache-Control': 'no-cache'}
    >>> resolve_policy("app.js", "js", rules, {"js", "css"})
    {'Cache-Control': 'max-age=94608000'}
"""

import mimetypes
from typing import AbstractSet, Dict, Iterable, Optional, Tuple

from static_deploy.utils.config import Rule

STABLE_MAX_AGE = 3 * 365 * 24 * 60 * 60  # 94608000
UNSTABLE_MAX_AGE = 2 * 60

CACHE_CONTROL = "Cache-Control"
CONTENT_TYPE = "Content-Type"


def parse_header(entry: str) -> Tuple[str, str]:
    """
    Split a ``"Name: Value"`` rule entry on its first colon.

    Both sides are trimmed, so ``"Expires: Thu, 01 Jan 2026 00:00:00 GMT"``
    keeps the colons of its value.

    Raises:
        ValueError: If the entry has no colon
    """
    name, sep, value = entry.partition(":")
    if not sep:
        raise ValueError(f"Header entry must be 'Name: Value': {entry!r}")
    return name.strip(), value.strip()


def baseline_policy(extension: str, stable_asset_exts: AbstractSet[str]) -> Dict[str, str]:
    """Cache-Control driven only by whether the extension is a stable asset."""
    max_age = STABLE_MAX_AGE if extension in stable_asset_exts else UNSTABLE_MAX_AGE
    return {CACHE_CONTROL: f"max-age={max_age}"}


def match_rule(relative_path: str, rules: Iterable[Rule]) -> Optional[Rule]:
    """Return the first rule whose pattern matches anywhere in the path."""
    for rule in rules:
        if rule.pattern.search(relative_path):
            return rule
    return None


def resolve_policy(
    relative_path: str,
    extension: str,
    rules: Iterable[Rule],
    stable_asset_exts: AbstractSet[str],
) -> Dict[str, str]:
    """
    Build the HTTP headers for one file.

    Args:
        relative_path: Path under the public directory, ``/`` separated
        extension: File extension without the leading dot
        rules: Ordered header rules; only the first match applies
        stable_asset_exts: Extensions cached long-term

    Returns:
        Header name -> value
    """
    policy = baseline_policy(extension, stable_asset_exts)

    rule = match_rule(relative_path, rules)
    if rule is not None:
        for entry in rule.headers:
            name, value = parse_header(entry)
            # header names are case-insensitive
            for existing in [k for k in policy if k.lower() == name.lower()]:
                del policy[existing]
            policy[name] = value

    return policy


def guess_content_type(relative_path: str) -> str:
    """MIME type from the file name, ``application/octet-stream`` if unknown."""
    content_type, _ = mimetypes.guess_type(relative_path)
    return content_type or "application/octet-stream"
