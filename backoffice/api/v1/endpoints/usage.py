"""Usage metering API: API call stats, feature usage, active users, storage and plan limits.

Every route takes the organization as the org_id query parameter (or
body field) and is open to any member. Date ranges default to the last
30 days.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timedelta
from typing import Annotated, Any

from fastapi import APIRouter, Depends, Query, status

from backoffice.api.v1.dependencies import (
    get_call_context,
    get_membership_store,
    get_usage_tracker,
)
from backoffice.application.dtos.usage import (
    ActiveUsersResult,
    ApiUsageStat,
    FeatureUsageSummary,
    StorageUsageResult,
    UsageCheckResult,
    UsageEventCreate,
    UsageLimitsOverview,
)
from backoffice.application.services.usage_tracker import LIMIT_METRICS, UsageTracker
from backoffice.domain.exceptions import ResourceNotFoundException, ValidationException
from backoffice.infrastructure.persistence.repositories import MembershipRepository
from backoffice.pipeline import CallContext, Procedure, require_member
from backoffice.schemas.usage import (
    ActiveUsersResponse,
    ApiUsageStatResponse,
    FeatureUsageResponse,
    StorageUsageResponse,
    UsageCheckResponse,
    UsageEventAccepted,
    UsageEventRequest,
    UsageLimitsResponse,
)
from backoffice.shared.enums import ActivePeriod
from backoffice.shared.utils.datetime import ensure_utc, utc_now

router = APIRouter()

DEFAULT_RANGE = timedelta(days=30)


def date_range(start: datetime | None, end: datetime | None) -> tuple[datetime, datetime]:
    """Normalize an optional [start, end] range to UTC; defaults to the last 30 days."""
    end = ensure_utc(end) or utc_now()
    start = ensure_utc(start) or end - DEFAULT_RANGE
    if start > end:
        raise ValidationException("'from' must not be after 'to'", field="from")
    return start, end


def _tracker(ctx: CallContext) -> UsageTracker:
    return ctx.service("usage")


async def _api_usage(ctx: CallContext, input: dict[str, Any]) -> list[ApiUsageStat]:
    return await _tracker(ctx).api_usage_stats(ctx.org_id, input["start"], input["end"])


async def _feature_usage(ctx: CallContext, input: dict[str, Any]) -> FeatureUsageSummary:
    return await _tracker(ctx).feature_usage(
        ctx.org_id, input["start"], input["end"], input.get("event_type")
    )


async def _active_users(ctx: CallContext, input: dict[str, Any]) -> ActiveUsersResult:
    tracker = _tracker(ctx)
    if input.get("start") and input.get("end"):
        return await tracker.active_users_daily(
            ctx.org_id, input["start"], input["end"], input["period"]
        )
    return await tracker.active_users_count(ctx.org_id, input["period"])


async def _storage(ctx: CallContext, input: Any) -> StorageUsageResult:
    return await _tracker(ctx).storage_usage(ctx.org_id)


async def _current_usage(ctx: CallContext) -> dict[str, int | float]:
    seats = await ctx.service("members").count_members(ctx.org_id)
    return await _tracker(ctx).current_usage(ctx.org_id, seats=seats)


async def _limits(ctx: CallContext, input: Any) -> UsageLimitsOverview:
    current = await _current_usage(ctx)
    overview = await _tracker(ctx).usage_limits_overview(ctx.org_id, current)
    if overview.plan_name is None:
        raise ResourceNotFoundException("subscription", ctx.org_id)
    return overview


async def _check_limit(ctx: CallContext, input: dict[str, Any]) -> UsageCheckResult:
    metric = input["metric"]
    if metric not in LIMIT_METRICS:
        raise ValidationException(f"Unknown usage metric: {metric}", field="metric")
    current = input.get("current")
    if current is None:
        current = (await _current_usage(ctx))[LIMIT_METRICS[metric]]
    return await _tracker(ctx).check_usage_limits(ctx.org_id, metric, current)


async def _record_event(ctx: CallContext, input: UsageEventRequest) -> None:
    await _tracker(ctx).track_feature_usage(
        UsageEventCreate(
            org_id=ctx.org_id,
            user_id=ctx.user_id,
            event_type=input.event_type.value,
            quantity=input.quantity,
            metadata=input.metadata,
        )
    )


api_usage_procedure = Procedure(_api_usage).use(require_member())
feature_usage_procedure = Procedure(_feature_usage).use(require_member())
active_users_procedure = Procedure(_active_users).use(require_member())
storage_procedure = Procedure(_storage).use(require_member())
limits_procedure = Procedure(_limits).use(require_member())
check_limit_procedure = Procedure(_check_limit).use(require_member())
record_event_procedure = Procedure(_record_event).use(require_member())


@router.get("/api", response_model=list[ApiUsageStatResponse])
async def api_usage(
    ctx: Annotated[CallContext, Depends(get_call_context)],
    tracker: Annotated[UsageTracker, Depends(get_usage_tracker)],
    org_id: str = Query(..., min_length=1),
    start: datetime | None = Query(None, alias="from"),
    end: datetime | None = Query(None, alias="to"),
):
    """Per-endpoint call counts, latency and error rate."""
    start, end = date_range(start, end)
    ctx = replace(ctx, services={"usage": tracker})
    stats = await api_usage_procedure(ctx, {"org_id": org_id, "start": start, "end": end})
    return [ApiUsageStatResponse.model_validate(s) for s in stats]


@router.get("/feature", response_model=FeatureUsageResponse)
async def feature_usage(
    ctx: Annotated[CallContext, Depends(get_call_context)],
    tracker: Annotated[UsageTracker, Depends(get_usage_tracker)],
    org_id: str = Query(..., min_length=1),
    start: datetime | None = Query(None, alias="from"),
    end: datetime | None = Query(None, alias="to"),
    event_type: str | None = Query(None, description="Only this event type"),
):
    """Usage per event type: summed quantity, distinct users, last use."""
    start, end = date_range(start, end)
    ctx = replace(ctx, services={"usage": tracker})
    summary = await feature_usage_procedure(
        ctx, {"org_id": org_id, "start": start, "end": end, "event_type": event_type}
    )
    return FeatureUsageResponse.model_validate(summary)


@router.get("/active-users", response_model=ActiveUsersResponse)
async def active_users(
    ctx: Annotated[CallContext, Depends(get_call_context)],
    tracker: Annotated[UsageTracker, Depends(get_usage_tracker)],
    org_id: str = Query(..., min_length=1),
    period: ActivePeriod = Query(ActivePeriod.DAY),
    start: datetime | None = Query(None, alias="from"),
    end: datetime | None = Query(None, alias="to"),
):
    """DAU/WAU/MAU for the current period, or a daily breakdown when from and to are given."""
    query: dict[str, Any] = {"org_id": org_id, "period": period}
    if start is not None and end is not None:
        query["start"], query["end"] = date_range(start, end)
    ctx = replace(ctx, services={"usage": tracker})
    result = await active_users_procedure(ctx, query)
    return ActiveUsersResponse.model_validate(result)


@router.get("/storage", response_model=StorageUsageResponse)
async def storage_usage(
    ctx: Annotated[CallContext, Depends(get_call_context)],
    tracker: Annotated[UsageTracker, Depends(get_usage_tracker)],
    org_id: str = Query(..., min_length=1),
):
    ctx = replace(ctx, services={"usage": tracker})
    result = await storage_procedure(ctx, {"org_id": org_id})
    return StorageUsageResponse.model_validate(result)


@router.get("/limits", response_model=UsageLimitsResponse)
async def usage_limits(
    ctx: Annotated[CallContext, Depends(get_call_context)],
    tracker: Annotated[UsageTracker, Depends(get_usage_tracker)],
    members: Annotated[MembershipRepository, Depends(get_membership_store)],
    org_id: str = Query(..., min_length=1),
):
    """Every plan limit against current usage; 404 without an active subscription."""
    ctx = replace(ctx, services={"usage": tracker, "members": members})
    overview = await limits_procedure(ctx, {"org_id": org_id})
    return UsageLimitsResponse.model_validate(overview)


@router.get("/limits/check", response_model=UsageCheckResponse)
async def check_usage_limit(
    ctx: Annotated[CallContext, Depends(get_call_context)],
    tracker: Annotated[UsageTracker, Depends(get_usage_tracker)],
    members: Annotated[MembershipRepository, Depends(get_membership_store)],
    org_id: str = Query(..., min_length=1),
    metric: str = Query(..., description="Plan limit key, e.g. max_records"),
    current: float | None = Query(None, ge=0, description="Defaults to measured usage"),
):
    """Check one metric against its plan limit (limit -1 = unlimited)."""
    ctx = replace(ctx, services={"usage": tracker, "members": members})
    result = await check_limit_procedure(
        ctx, {"org_id": org_id, "metric": metric, "current": current}
    )
    return UsageCheckResponse.model_validate(result)


@router.post(
    "/events",
    response_model=UsageEventAccepted,
    status_code=status.HTTP_202_ACCEPTED,
)
async def record_usage_event(
    body: UsageEventRequest,
    ctx: Annotated[CallContext, Depends(get_call_context)],
    tracker: Annotated[UsageTracker, Depends(get_usage_tracker)],
):
    """Record one usage event for the caller (best-effort)."""
    ctx = replace(ctx, services={"usage": tracker})
    await record_event_procedure(ctx, body)
    return UsageEventAccepted()
