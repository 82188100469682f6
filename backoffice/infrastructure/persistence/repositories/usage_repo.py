"""Usage repository: usage events, API calls and daily aggregates (IUsageStore)."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime

from sqlalchemy import and_, case, delete, distinct, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.application.dtos.usage import (
    ApiCallCreate,
    ApiUsageStat,
    StorageUsageResult,
    UsageEventCreate,
    UsageEventResult,
)
from backoffice.infrastructure.persistence.models.usage import (
    ApiUsage,
    UsageAggregation,
    UsageEvent,
)
from backoffice.shared.enums import UsageEventType
from backoffice.shared.utils.generators import generate_cuid


def _event_row(data: UsageEventCreate) -> UsageEvent:
    return UsageEvent(
        id=generate_cuid(),
        org_id=data.org_id,
        user_id=data.user_id,
        event_type=data.event_type,
        quantity=data.quantity,
        event_data=data.metadata,
    )


def _orm_to_result(row: UsageEvent) -> UsageEventResult:
    return UsageEventResult(
        id=row.id,
        org_id=row.org_id,
        user_id=row.user_id,
        event_type=row.event_type,
        quantity=row.quantity,
        metadata=row.event_data or {},
        created_at=row.created_at,
    )


class UsageRepository:
    """Append/query access to usage_event, api_usage and usage_aggregation."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def create_event(self, data: UsageEventCreate) -> None:
        self.db.add(_event_row(data))
        await self.db.flush()

    async def create_events(self, data: Sequence[UsageEventCreate]) -> None:
        self.db.add_all([_event_row(d) for d in data])
        await self.db.flush()

    async def create_api_call(self, data: ApiCallCreate) -> None:
        self.db.add(
            ApiUsage(
                id=generate_cuid(),
                org_id=data.org_id,
                user_id=data.user_id,
                endpoint=data.endpoint,
                method=data.method,
                status_code=data.status_code,
                response_time_ms=data.response_time_ms,
                ip_address=data.ip_address,
                user_agent=data.user_agent,
            )
        )
        await self.db.flush()

    async def list_events(
        self,
        org_id: str,
        start: datetime,
        end: datetime,
        event_type: str | None = None,
    ) -> list[UsageEventResult]:
        conditions = [
            UsageEvent.org_id == org_id,
            UsageEvent.created_at >= start,
            UsageEvent.created_at <= end,
        ]
        if event_type is not None:
            conditions.append(UsageEvent.event_type == event_type)
        stmt = (
            select(UsageEvent)
            .where(and_(*conditions))
            .order_by(UsageEvent.created_at.desc())
        )
        result = await self.db.execute(stmt)
        return [_orm_to_result(r) for r in result.scalars().all()]

    async def count_events(
        self, org_id: str, event_type: str, since: datetime | None = None
    ) -> int:
        conditions = [UsageEvent.org_id == org_id, UsageEvent.event_type == event_type]
        if since is not None:
            conditions.append(UsageEvent.created_at >= since)
        stmt = select(func.count()).select_from(UsageEvent).where(and_(*conditions))
        return int((await self.db.execute(stmt)).scalar_one())

    async def sum_quantity(
        self, org_id: str, event_type: str, since: datetime | None = None
    ) -> int:
        conditions = [UsageEvent.org_id == org_id, UsageEvent.event_type == event_type]
        if since is not None:
            conditions.append(UsageEvent.created_at >= since)
        stmt = select(func.coalesce(func.sum(UsageEvent.quantity), 0)).where(
            and_(*conditions)
        )
        return int((await self.db.execute(stmt)).scalar_one())

    async def count_api_calls(self, org_id: str, since: datetime | None = None) -> int:
        conditions = [ApiUsage.org_id == org_id]
        if since is not None:
            conditions.append(ApiUsage.created_at >= since)
        stmt = select(func.count()).select_from(ApiUsage).where(and_(*conditions))
        return int((await self.db.execute(stmt)).scalar_one())

    async def api_usage_stats(
        self, org_id: str, start: datetime, end: datetime
    ) -> list[ApiUsageStat]:
        """Per (endpoint, method): call count, mean latency, 4xx/5xx count; busiest first."""
        errors = func.sum(case((ApiUsage.status_code >= 400, 1), else_=0))
        calls = func.count()
        stmt = (
            select(
                ApiUsage.endpoint,
                ApiUsage.method,
                calls,
                func.avg(ApiUsage.response_time_ms),
                errors,
            )
            .where(
                ApiUsage.org_id == org_id,
                ApiUsage.created_at >= start,
                ApiUsage.created_at <= end,
            )
            .group_by(ApiUsage.endpoint, ApiUsage.method)
            .order_by(calls.desc())
        )
        stats: list[ApiUsageStat] = []
        for endpoint, method, call_count, avg_ms, error_count in (
            await self.db.execute(stmt)
        ).all():
            call_count = int(call_count)
            error_count = int(error_count or 0)
            stats.append(
                ApiUsageStat(
                    endpoint=endpoint,
                    method=method,
                    call_count=call_count,
                    avg_response_time=round(float(avg_ms or 0), 2),
                    error_count=error_count,
                    error_rate=round(error_count / call_count * 100, 2) if call_count else 0.0,
                )
            )
        return stats

    async def active_users_count(self, org_id: str, start: datetime, end: datetime) -> int:
        stmt = select(func.count(distinct(UsageEvent.user_id))).where(
            UsageEvent.org_id == org_id,
            UsageEvent.event_type == UsageEventType.USER_ACTIVE.value,
            UsageEvent.created_at >= start,
            UsageEvent.created_at < end,
        )
        return int((await self.db.execute(stmt)).scalar_one())

    async def storage_usage(self, org_id: str) -> StorageUsageResult:
        """Sum of storage_used quantities (bytes), event count as file count, newest event time."""
        stmt = select(
            func.coalesce(func.sum(UsageEvent.quantity), 0),
            func.count(),
            func.max(UsageEvent.created_at),
        ).where(
            UsageEvent.org_id == org_id,
            UsageEvent.event_type == UsageEventType.STORAGE_USED.value,
        )
        total, files, last = (await self.db.execute(stmt)).one()
        return StorageUsageResult(
            total_bytes=int(total or 0), file_count=int(files or 0), last_updated=last
        )

    async def aggregate_daily(self, start: datetime, end: datetime) -> int:
        """Replace the day's aggregation rows with fresh per (org, event type) totals."""
        metric_date = start.date()
        stmt = (
            select(
                UsageEvent.org_id,
                UsageEvent.event_type,
                func.coalesce(func.sum(UsageEvent.quantity), 0),
                func.count(),
                func.count(distinct(UsageEvent.user_id)),
            )
            .where(UsageEvent.created_at >= start, UsageEvent.created_at < end)
            .group_by(UsageEvent.org_id, UsageEvent.event_type)
        )
        rows = (await self.db.execute(stmt)).all()
        await self.db.execute(
            delete(UsageAggregation).where(UsageAggregation.metric_date == metric_date)
        )
        self.db.add_all(
            [
                UsageAggregation(
                    id=generate_cuid(),
                    org_id=org_id,
                    metric_date=metric_date,
                    event_type=event_type,
                    total_quantity=int(total),
                    event_count=int(count),
                    unique_users=int(users),
                )
                for org_id, event_type, total, count, users in rows
            ]
        )
        await self.db.flush()
        return len(rows)
