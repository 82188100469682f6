"""Shared utilities: datetime, generators, sanitization."""

from backoffice.shared.utils.datetime import (
    day_window,
    ensure_utc,
    month_start,
    period_window,
    start_of_day,
    utc_now,
)
from backoffice.shared.utils.generators import generate_cuid
from backoffice.shared.utils.sanitization import (
    REDACTED,
    SENSITIVE_KEY_FRAGMENTS,
    is_sensitive_key,
    sanitize_metadata,
)

__all__ = [
    "REDACTED",
    "SENSITIVE_KEY_FRAGMENTS",
    "day_window",
    "ensure_utc",
    "generate_cuid",
    "is_sensitive_key",
    "month_start",
    "period_window",
    "sanitize_metadata",
    "start_of_day",
    "utc_now",
]
