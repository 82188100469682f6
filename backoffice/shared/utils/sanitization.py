"""Metadata sanitization: redact sensitive keys before audit/usage metadata is stored.

Key-based denylist scan. A key is sensitive when its lowercase form
contains any fragment in SENSITIVE_KEY_FRAGMENTS; its value is replaced
with REDACTED. The scan is shallow: nested dicts and lists are passed
through unchanged.
"""

from collections.abc import Mapping
from typing import Any

REDACTED = "[REDACTED]"

SENSITIVE_KEY_FRAGMENTS: tuple[str, ...] = (
    "password",
    "token",
    "secret",
    "api_key",
    "apikey",
    "accesstoken",
    "refreshtoken",
    "privatekey",
    "creditcard",
    "ssn",
    "socialsecurity",
)


def is_sensitive_key(key: str) -> bool:
    """Return True if key names a value that must not be stored in clear."""
    lowered = key.lower()
    return any(fragment in lowered for fragment in SENSITIVE_KEY_FRAGMENTS)


def sanitize_metadata(metadata: Mapping[str, Any] | None) -> dict[str, Any]:
    """Return a copy of metadata with sensitive top-level values redacted.

    Args:
        metadata: Arbitrary key/value metadata (None is treated as empty).

    Returns:
        New dict; sensitive keys map to REDACTED, everything else is unchanged.
    """
    if not metadata:
        return {}
    sanitized: dict[str, Any] = {}
    # TODO: recurse into nested mappings; {"nested": {"token": ...}} is stored as-is.
    for key, value in metadata.items():
        if isinstance(key, str) and is_sensitive_key(key):
            sanitized[key] = REDACTED
        else:
            sanitized[key] = value
    return sanitized
