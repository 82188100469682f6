"""Plan catalog backed by a session factory, for the process-wide UsageTracker."""

from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from backoffice.infrastructure.persistence.repositories.plan_repo import PlanRepository


class PlanCatalogService:
    """IPlanCatalog; each lookup uses its own short-lived session."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def get_active_plan(self, org_id: str) -> str | None:
        async with self._session_factory() as session:
            return await PlanRepository(session).get_active_plan(org_id)

    async def get_feature_limit(self, plan_name: str, metric_key: str) -> int | None:
        async with self._session_factory() as session:
            return await PlanRepository(session).get_feature_limit(plan_name, metric_key)

    async def list_feature_limits(self, plan_name: str) -> dict[str, int]:
        async with self._session_factory() as session:
            return await PlanRepository(session).list_feature_limits(plan_name)
