"""Plan catalog repository: active subscription and feature limits (IPlanCatalog)."""

from __future__ import annotations

from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.application.dtos.usage import UNLIMITED
from backoffice.domain.enums import SubscriptionStatus
from backoffice.infrastructure.persistence.models.subscription import (
    OrgSubscription,
    PlanFeature,
)


def _limit_of(feature_value: dict[str, Any] | None) -> int:
    """feature_value is {"limit": n}; a missing or null limit is unlimited."""
    if not feature_value:
        return UNLIMITED
    limit = feature_value.get("limit")
    return UNLIMITED if limit is None else int(limit)


class PlanRepository:
    """Read-only plan lookups."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def get_active_plan(self, org_id: str) -> str | None:
        stmt = (
            select(OrgSubscription.plan_name)
            .where(
                OrgSubscription.org_id == org_id,
                OrgSubscription.status == SubscriptionStatus.ACTIVE.value,
            )
            .order_by(OrgSubscription.created_at.desc())
            .limit(1)
        )
        return (await self.db.execute(stmt)).scalar_one_or_none()

    async def get_feature_limit(self, plan_name: str, metric_key: str) -> int | None:
        stmt = select(PlanFeature.feature_value).where(
            PlanFeature.plan_name == plan_name,
            PlanFeature.feature_key == metric_key,
        )
        result = await self.db.execute(stmt)
        row = result.first()
        if row is None:
            return None
        return _limit_of(row[0])

    async def list_feature_limits(self, plan_name: str) -> dict[str, int]:
        stmt = select(PlanFeature.feature_key, PlanFeature.feature_value).where(
            PlanFeature.plan_name == plan_name
        )
        rows = (await self.db.execute(stmt)).all()
        return {key: _limit_of(value) for key, value in rows}
