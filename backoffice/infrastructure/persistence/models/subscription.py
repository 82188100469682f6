"""Subscription ORM models: an organization's plan and each plan's feature limits."""

from datetime import datetime
from typing import Any

from sqlalchemy import CheckConstraint, DateTime, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from backoffice.domain.enums import SubscriptionStatus
from backoffice.infrastructure.persistence.database import Base
from backoffice.infrastructure.persistence.models.mixins import (
    CuidMixin,
    JsonType,
    OrgMixin,
    TimestampMixin,
)


class OrgSubscription(CuidMixin, OrgMixin, TimestampMixin, Base):
    """Subscription row; at most one is expected to be active per organization."""

    __tablename__ = "org_subscription"

    plan_name: Mapped[str] = mapped_column(String, nullable=False)
    status: Mapped[str] = mapped_column(
        String, nullable=False, default=SubscriptionStatus.ACTIVE.value, index=True
    )
    current_period_end: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    __table_args__ = (
        CheckConstraint(
            "status IN ({})".format(", ".join(f"'{s.value}'" for s in SubscriptionStatus)),
            name="org_subscription_status_check",
        ),
    )


class PlanFeature(CuidMixin, TimestampMixin, Base):
    """Plan catalog entry. feature_value holds {"limit": n}; -1 is unlimited."""

    __tablename__ = "plan_feature"

    plan_name: Mapped[str] = mapped_column(String, nullable=False, index=True)
    feature_key: Mapped[str] = mapped_column(String, nullable=False)
    feature_value: Mapped[dict[str, Any]] = mapped_column(JsonType, nullable=False, default=dict)

    __table_args__ = (
        UniqueConstraint("plan_name", "feature_key", name="uq_plan_feature_key"),
    )
