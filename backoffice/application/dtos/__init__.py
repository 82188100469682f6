"""Application DTOs (frozen dataclasses) passed between layers."""

from backoffice.application.dtos.audit_log import (
    AuditLogEntryCreate,
    AuditLogResult,
    AuditStats,
)
from backoffice.application.dtos.membership import (
    InviteResult,
    MemberResult,
    MembershipResult,
    OrganizationResult,
)
from backoffice.application.dtos.usage import (
    UNLIMITED,
    ActiveUsersResult,
    ApiCallCreate,
    ApiUsageStat,
    DailyActiveCount,
    FeatureUsageStat,
    FeatureUsageSummary,
    StorageUsageResult,
    UsageCheckResult,
    UsageEventCreate,
    UsageEventResult,
    UsageLimitsOverview,
)

__all__ = [
    "UNLIMITED",
    "ActiveUsersResult",
    "ApiCallCreate",
    "ApiUsageStat",
    "AuditLogEntryCreate",
    "AuditLogResult",
    "AuditStats",
    "DailyActiveCount",
    "FeatureUsageStat",
    "FeatureUsageSummary",
    "InviteResult",
    "MemberResult",
    "MembershipResult",
    "OrganizationResult",
    "StorageUsageResult",
    "UsageCheckResult",
    "UsageEventCreate",
    "UsageEventResult",
    "UsageLimitsOverview",
]
