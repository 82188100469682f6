"""Usage metering API schemas."""

from datetime import date, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from backoffice.shared.enums import UsageEventType


class ApiUsageStatResponse(BaseModel):
    """Per-endpoint call statistics."""

    model_config = ConfigDict(from_attributes=True)

    endpoint: str
    method: str
    call_count: int
    avg_response_time: float
    error_count: int
    error_rate: float


class FeatureUsageStatResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    event_type: str
    usage_count: int
    unique_users: int
    last_used: datetime


class FeatureUsageResponse(BaseModel):
    """Per-event-type usage over a period."""

    model_config = ConfigDict(from_attributes=True)

    features: list[FeatureUsageStatResponse]
    total_events: int
    active_users: int
    period_start: datetime
    period_end: datetime


class DailyActiveResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    day: date
    count: int


class ActiveUsersResponse(BaseModel):
    """Distinct active users for a period (DAU/WAU/MAU), optionally per day."""

    model_config = ConfigDict(from_attributes=True)

    active_users: int
    period_type: str
    period_start: datetime
    period_end: datetime
    daily_breakdown: list[DailyActiveResponse] | None = None


class StorageUsageResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    total_bytes: int
    file_count: int
    last_updated: datetime | None = None


class UsageCheckResponse(BaseModel):
    """One metric compared with its plan limit (-1 = unlimited)."""

    model_config = ConfigDict(from_attributes=True)

    limit: int
    current: float
    percentage: float
    exceeded: bool
    approaching: bool


class UsageLimitsResponse(BaseModel):
    """Every plan limit compared with current usage."""

    model_config = ConfigDict(from_attributes=True)

    plan_name: str | None
    limits: dict[str, int]
    current_usage: dict[str, float]
    usage_percentage: dict[str, float]
    approaching_limits: list[str]
    exceeded_limits: list[str]


class UsageEventRequest(BaseModel):
    """Request body for POST /usage/events."""

    org_id: str = Field(..., min_length=1)
    event_type: UsageEventType
    quantity: int = Field(default=1, ge=0)
    metadata: dict[str, Any] = Field(default_factory=dict)


class UsageEventAccepted(BaseModel):
    status: str = "accepted"
