"""Application services: role resolution and usage metering."""

from backoffice.application.services.role_resolver import RoleResolver, role_cache_key
from backoffice.application.services.usage_tracker import (
    LIMIT_METRICS,
    UsageTracker,
    evaluate_limit,
)

__all__ = [
    "LIMIT_METRICS",
    "RoleResolver",
    "UsageTracker",
    "evaluate_limit",
    "role_cache_key",
]
