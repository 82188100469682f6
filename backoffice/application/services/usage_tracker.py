"""Usage metering: record usage events and API calls, query aggregates, check plan limits.

Every operation is best-effort. Recording never raises, and reads return
an empty or zero-valued result on failure, so a metering outage never
blocks the feature being metered. Limit checks fail open (unlimited),
the opposite of the access guard.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from datetime import date, datetime, timedelta

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
from backoffice.application.interfaces.repositories import IPlanCatalog, IUsageStore
from backoffice.shared.enums import ActivePeriod, UsageEventType
from backoffice.shared.utils.datetime import (
    day_window,
    month_start,
    period_window,
    utc_now,
)
from backoffice.shared.utils.sanitization import sanitize_metadata

logger = logging.getLogger(__name__)

APPROACHING_THRESHOLD = 80.0
BYTES_PER_GB = 1024**3

# Plan limit key -> key in the current-usage map.
LIMIT_METRICS: Mapping[str, str] = {
    "max_records": "records",
    "max_api_calls_per_month": "api_calls",
    "max_automations": "automations",
    "max_storage_gb": "storage_gb",
    "max_mau": "mau",
    "max_schedules": "schedules",
    "max_ai_tokens_per_month": "ai_tokens",
    "max_seats": "seats",
}


def evaluate_limit(limit: int, current: int | float) -> UsageCheckResult:
    """Compare current usage against a plan limit.

    A negative limit (the -1 sentinel) is unlimited and short-circuits
    before any division. A limit of 0 is always exceeded.
    """
    if limit < 0:
        return UsageCheckResult.unlimited(current)
    if limit == 0:
        return UsageCheckResult(
            limit=0, current=current, percentage=100.0, exceeded=True, approaching=False
        )
    percentage = (current / limit) * 100
    exceeded = current >= limit
    return UsageCheckResult(
        limit=limit,
        current=current,
        percentage=round(percentage, 2),
        exceeded=exceeded,
        approaching=percentage >= APPROACHING_THRESHOLD and not exceeded,
    )


class UsageTracker:
    """Records and queries usage for one deployment; stateless apart from its stores."""

    def __init__(self, usage_store: IUsageStore, plan_catalog: IPlanCatalog) -> None:
        self.usage_store = usage_store
        self.plan_catalog = plan_catalog

    # Record

    async def track_feature_usage(self, event: UsageEventCreate) -> None:
        """Append one usage event. Failures are logged, never raised."""
        try:
            await self.usage_store.create_event(self._prepare(event))
        except Exception:
            logger.warning(
                "Failed to track feature usage %s for org %s",
                event.event_type,
                event.org_id,
                exc_info=True,
            )

    async def track_api_call(self, call: ApiCallCreate) -> None:
        """Append one API call row. Failures are logged, never raised."""
        try:
            await self.usage_store.create_api_call(call)
        except Exception:
            logger.warning(
                "Failed to track API call %s %s for org %s",
                call.method,
                call.endpoint,
                call.org_id,
                exc_info=True,
            )

    async def track_batch_usage(self, events: Sequence[UsageEventCreate]) -> None:
        """Append many usage events in one bulk write. An empty batch writes nothing."""
        if not events:
            return
        try:
            await self.usage_store.create_events([self._prepare(e) for e in events])
        except Exception:
            logger.warning(
                "Failed to track batch of %d usage events", len(events), exc_info=True
            )

    @staticmethod
    def _prepare(event: UsageEventCreate) -> UsageEventCreate:
        return UsageEventCreate(
            org_id=event.org_id,
            user_id=event.user_id,
            event_type=event.event_type,
            quantity=event.quantity,
            metadata=sanitize_metadata(event.metadata),
        )

    # Query

    async def usage_for_period(
        self,
        org_id: str,
        start: datetime,
        end: datetime,
        event_type: str | None = None,
    ) -> list[UsageEventResult]:
        """Return events in [start, end] newest first; [] on failure."""
        try:
            return await self.usage_store.list_events(org_id, start, end, event_type)
        except Exception:
            logger.warning("Failed to get usage for org %s", org_id, exc_info=True)
            return []

    async def feature_usage(
        self,
        org_id: str,
        start: datetime,
        end: datetime,
        event_type: str | None = None,
    ) -> FeatureUsageSummary:
        """Aggregate events per type: summed quantity, distinct users, last use."""
        events = await self.usage_for_period(org_id, start, end, event_type)
        by_type: dict[str, dict] = {}
        all_users: set[str] = set()
        for event in events:
            entry = by_type.setdefault(
                event.event_type,
                {"usage_count": 0, "users": set(), "last_used": event.created_at},
            )
            entry["usage_count"] += event.quantity or 1
            entry["users"].add(event.user_id)
            if event.created_at > entry["last_used"]:
                entry["last_used"] = event.created_at
            all_users.add(event.user_id)

        features = [
            FeatureUsageStat(
                event_type=name,
                usage_count=data["usage_count"],
                unique_users=len(data["users"]),
                last_used=data["last_used"],
            )
            for name, data in by_type.items()
        ]
        features.sort(key=lambda f: f.usage_count, reverse=True)
        return FeatureUsageSummary(
            features=features,
            total_events=len(events),
            active_users=len(all_users),
            period_start=start,
            period_end=end,
        )

    # Aggregate

    async def api_usage_stats(
        self, org_id: str, start: datetime, end: datetime
    ) -> list[ApiUsageStat]:
        """Per-endpoint call statistics; [] on failure."""
        try:
            return await self.usage_store.api_usage_stats(org_id, start, end)
        except Exception:
            logger.warning(
                "Failed to get API usage stats for org %s", org_id, exc_info=True
            )
            return []

    async def active_users_count(
        self,
        org_id: str,
        period: ActivePeriod | str = ActivePeriod.DAY,
        reference: datetime | None = None,
    ) -> ActiveUsersResult:
        """Distinct active users in the day/week/month containing reference.

        On failure the count is 0 and the period bounds are still reported.
        """
        period_type = ActivePeriod(period).value
        start, end = period_window(period_type, reference or utc_now())
        try:
            count = await self.usage_store.active_users_count(org_id, start, end)
        except Exception:
            logger.warning(
                "Failed to get active users count for org %s", org_id, exc_info=True
            )
            count = 0
        return ActiveUsersResult(
            active_users=count,
            period_type=period_type,
            period_start=start,
            period_end=end,
        )

    async def active_users_daily(
        self,
        org_id: str,
        start: datetime,
        end: datetime,
        period: ActivePeriod | str = ActivePeriod.DAY,
    ) -> ActiveUsersResult:
        """Distinct active users over an explicit range, with a per-day breakdown."""
        events = await self.usage_for_period(
            org_id, start, end, UsageEventType.USER_ACTIVE.value
        )
        daily: dict[date, set[str]] = {}
        everyone: set[str] = set()
        for event in events:
            daily.setdefault(event.created_at.date(), set()).add(event.user_id)
            everyone.add(event.user_id)
        return ActiveUsersResult(
            active_users=len(everyone),
            period_type=ActivePeriod(period).value,
            period_start=start,
            period_end=end,
            daily_breakdown=[
                DailyActiveCount(day=day, count=len(users))
                for day, users in sorted(daily.items())
            ],
        )

    async def storage_usage(self, org_id: str) -> StorageUsageResult:
        """Storage totals; zeros and no timestamp on failure."""
        try:
            return await self.usage_store.storage_usage(org_id)
        except Exception:
            logger.warning(
                "Failed to calculate storage usage for org %s", org_id, exc_info=True
            )
            return StorageUsageResult()

    async def aggregate_daily_metrics(self, target_date: date | None = None) -> int:
        """Roll one day's events (default yesterday, UTC) into aggregation rows.

        Returns the number of rows written, 0 on failure.
        """
        day = target_date or (utc_now() - timedelta(days=1)).date()
        start, end = day_window(day)
        try:
            written = await self.usage_store.aggregate_daily(start, end)
        except Exception:
            logger.warning("Failed to aggregate daily metrics for %s", day, exc_info=True)
            return 0
        logger.info("Aggregated %d daily usage rows for %s", written, day)
        return written

    # Limit check

    async def check_usage_limits(
        self, org_id: str, metric_key: str, current_value: int | float
    ) -> UsageCheckResult:
        """Evaluate current_value against the org's active plan limit for metric_key.

        No active plan, no limit row, or any lookup failure yields the
        unlimited result.
        """
        try:
            plan_name = await self.plan_catalog.get_active_plan(org_id)
            if plan_name is None:
                logger.info("No active subscription for org %s", org_id)
                return UsageCheckResult.unlimited(current_value)
            limit = await self.plan_catalog.get_feature_limit(plan_name, metric_key)
        except Exception:
            logger.warning(
                "Failed to check usage limit %s for org %s",
                metric_key,
                org_id,
                exc_info=True,
            )
            return UsageCheckResult.unlimited(current_value)
        if limit is None:
            logger.info("Plan %s defines no limit for %s", plan_name, metric_key)
            return UsageCheckResult.unlimited(current_value)
        return evaluate_limit(limit, current_value)

    async def plan_limits(self, org_id: str) -> tuple[str | None, dict[str, int]]:
        """Return (plan name, limits) for every known metric; missing metrics are unlimited."""
        limits = {key: UNLIMITED for key in LIMIT_METRICS}
        try:
            plan_name = await self.plan_catalog.get_active_plan(org_id)
            if plan_name is None:
                return None, limits
            defined = await self.plan_catalog.list_feature_limits(plan_name)
        except Exception:
            logger.warning("Failed to get plan limits for org %s", org_id, exc_info=True)
            return None, limits
        for key, value in defined.items():
            if key in limits:
                limits[key] = value
        return plan_name, limits

    async def current_usage(self, org_id: str, seats: int = 0) -> dict[str, int | float]:
        """Return current usage for each limit metric (monthly metrics from the 1st, UTC)."""
        since = month_start(utc_now())
        usage: dict[str, int | float] = {key: 0 for key in LIMIT_METRICS.values()}
        usage["seats"] = seats
        try:
            usage["records"] = await self.usage_store.count_events(
                org_id, UsageEventType.RECORD_CREATED.value
            )
            usage["api_calls"] = await self.usage_store.count_api_calls(org_id, since)
            usage["automations"] = await self.usage_store.count_events(
                org_id, UsageEventType.AUTOMATION_RUN.value
            )
            usage["schedules"] = await self.usage_store.count_events(
                org_id, UsageEventType.SCHEDULE_EXECUTED.value
            )
            usage["ai_tokens"] = await self.usage_store.sum_quantity(
                org_id, UsageEventType.AI_TOKENS_USED.value, since
            )
        except Exception:
            logger.warning("Failed to count current usage for org %s", org_id, exc_info=True)
        storage = await self.storage_usage(org_id)
        usage["storage_gb"] = round(storage.total_bytes / BYTES_PER_GB, 2)
        mau = await self.active_users_count(org_id, ActivePeriod.MONTH)
        usage["mau"] = mau.active_users
        return usage

    async def usage_limits_overview(
        self, org_id: str, current: Mapping[str, int | float]
    ) -> UsageLimitsOverview:
        """Compare every plan limit with the supplied current usage."""
        plan_name, limits = await self.plan_limits(org_id)
        percentages: dict[str, float] = {}
        approaching: list[str] = []
        exceeded: list[str] = []
        for limit_key, usage_key in LIMIT_METRICS.items():
            result = evaluate_limit(limits[limit_key], current.get(usage_key, 0))
            percentages[usage_key] = result.percentage
            if result.exceeded:
                exceeded.append(usage_key)
            elif result.approaching:
                approaching.append(usage_key)
        return UsageLimitsOverview(
            plan_name=plan_name,
            limits=limits,
            current_usage=dict(current),
            usage_percentage=percentages,
            approaching_limits=approaching,
            exceeded_limits=exceeded,
        )
