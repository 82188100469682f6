"""Usage store for metering writes outside the request transaction.

Writes (events, API calls, daily rollups) each run in their own session
and transaction so metering failures never touch the caller's
transaction. Reads use a short-lived session as well.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from backoffice.application.dtos.usage import (
    ApiCallCreate,
    ApiUsageStat,
    StorageUsageResult,
    UsageEventCreate,
    UsageEventResult,
)
from backoffice.infrastructure.persistence.repositories.usage_repo import UsageRepository


class UsageEventService:
    """IUsageStore backed by a session factory."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def create_event(self, data: UsageEventCreate) -> None:
        async with self._session_factory() as session:
            async with session.begin():
                await UsageRepository(session).create_event(data)

    async def create_events(self, data: Sequence[UsageEventCreate]) -> None:
        async with self._session_factory() as session:
            async with session.begin():
                await UsageRepository(session).create_events(data)

    async def create_api_call(self, data: ApiCallCreate) -> None:
        async with self._session_factory() as session:
            async with session.begin():
                await UsageRepository(session).create_api_call(data)

    async def aggregate_daily(self, start: datetime, end: datetime) -> int:
        async with self._session_factory() as session:
            async with session.begin():
                return await UsageRepository(session).aggregate_daily(start, end)

    async def list_events(
        self,
        org_id: str,
        start: datetime,
        end: datetime,
        event_type: str | None = None,
    ) -> list[UsageEventResult]:
        async with self._session_factory() as session:
            return await UsageRepository(session).list_events(org_id, start, end, event_type)

    async def count_events(
        self, org_id: str, event_type: str, since: datetime | None = None
    ) -> int:
        async with self._session_factory() as session:
            return await UsageRepository(session).count_events(org_id, event_type, since)

    async def sum_quantity(
        self, org_id: str, event_type: str, since: datetime | None = None
    ) -> int:
        async with self._session_factory() as session:
            return await UsageRepository(session).sum_quantity(org_id, event_type, since)

    async def count_api_calls(self, org_id: str, since: datetime | None = None) -> int:
        async with self._session_factory() as session:
            return await UsageRepository(session).count_api_calls(org_id, since)

    async def api_usage_stats(
        self, org_id: str, start: datetime, end: datetime
    ) -> list[ApiUsageStat]:
        async with self._session_factory() as session:
            return await UsageRepository(session).api_usage_stats(org_id, start, end)

    async def active_users_count(self, org_id: str, start: datetime, end: datetime) -> int:
        async with self._session_factory() as session:
            return await UsageRepository(session).active_users_count(org_id, start, end)

    async def storage_usage(self, org_id: str) -> StorageUsageResult:
        async with self._session_factory() as session:
            return await UsageRepository(session).storage_usage(org_id)
