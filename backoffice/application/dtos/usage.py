"""DTOs for usage metering: events, API calls, aggregates and limit checks."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any

UNLIMITED = -1


@dataclass(frozen=True)
class UsageEventCreate:
    """Input for one metered event. quantity defaults to 1."""

    org_id: str
    user_id: str
    event_type: str
    quantity: int = 1
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class UsageEventResult:
    """Stored usage event (read)."""

    id: str
    org_id: str
    user_id: str
    event_type: str
    quantity: int
    metadata: dict[str, Any]
    created_at: datetime


@dataclass(frozen=True)
class ApiCallCreate:
    """Input for one metered API call."""

    org_id: str
    user_id: str | None
    endpoint: str
    method: str
    status_code: int
    response_time_ms: int
    ip_address: str | None = None
    user_agent: str | None = None


@dataclass(frozen=True)
class ApiUsageStat:
    """API call statistics for one (endpoint, method) pair."""

    endpoint: str
    method: str
    call_count: int
    avg_response_time: float
    error_count: int
    error_rate: float


@dataclass(frozen=True)
class DailyActiveCount:
    day: date
    count: int


@dataclass(frozen=True)
class ActiveUsersResult:
    """Distinct active users in one period (optionally with a per-day breakdown)."""

    active_users: int
    period_type: str
    period_start: datetime
    period_end: datetime
    daily_breakdown: list[DailyActiveCount] | None = None


@dataclass(frozen=True)
class StorageUsageResult:
    """Storage consumed by an organization."""

    total_bytes: int = 0
    file_count: int = 0
    last_updated: datetime | None = None


@dataclass(frozen=True)
class FeatureUsageStat:
    """Usage for one event type: summed quantity and distinct users."""

    event_type: str
    usage_count: int
    unique_users: int
    last_used: datetime


@dataclass(frozen=True)
class FeatureUsageSummary:
    """Feature usage aggregated over a period."""

    features: list[FeatureUsageStat]
    total_events: int
    active_users: int
    period_start: datetime
    period_end: datetime


@dataclass(frozen=True)
class UsageCheckResult:
    """Current usage compared against a plan limit (derived, not stored).

    limit == UNLIMITED (-1) means no ceiling: percentage is 0 and neither
    flag is set.
    """

    limit: int
    current: int | float
    percentage: float
    exceeded: bool
    approaching: bool

    @classmethod
    def unlimited(cls, current: int | float) -> UsageCheckResult:
        return cls(
            limit=UNLIMITED,
            current=current,
            percentage=0.0,
            exceeded=False,
            approaching=False,
        )


@dataclass(frozen=True)
class UsageLimitsOverview:
    """Every plan limit for an organization with current usage against it."""

    plan_name: str | None
    limits: dict[str, int]
    current_usage: dict[str, int | float]
    usage_percentage: dict[str, float]
    approaching_limits: list[str]
    exceeded_limits: list[str]
