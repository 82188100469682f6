"""Usage metering ORM models: events, API calls and daily aggregates."""

from datetime import date
from typing import Any

from sqlalchemy import Date, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from backoffice.infrastructure.persistence.database import Base
from backoffice.infrastructure.persistence.models.mixins import (
    CreatedAtMixin,
    CuidMixin,
    JsonType,
    OrgMixin,
)


class UsageEvent(CuidMixin, OrgMixin, CreatedAtMixin, Base):
    """One metered occurrence. Append-only."""

    __tablename__ = "usage_event"

    user_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    event_type: Mapped[str] = mapped_column(String, nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    event_data: Mapped[dict[str, Any]] = mapped_column(JsonType, nullable=False, default=dict)

    __table_args__ = (
        Index("ix_usage_event_org_type_created", "org_id", "event_type", "created_at"),
    )


class ApiUsage(CuidMixin, OrgMixin, CreatedAtMixin, Base):
    """One metered API call."""

    __tablename__ = "api_usage"

    user_id: Mapped[str | None] = mapped_column(String, nullable=True)
    endpoint: Mapped[str] = mapped_column(String, nullable=False)
    method: Mapped[str] = mapped_column(String(10), nullable=False)
    status_code: Mapped[int] = mapped_column(Integer, nullable=False)
    response_time_ms: Mapped[int] = mapped_column(Integer, nullable=False)
    ip_address: Mapped[str | None] = mapped_column(String, nullable=True)
    user_agent: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (Index("ix_api_usage_org_created", "org_id", "created_at"),)


class UsageAggregation(CuidMixin, OrgMixin, CreatedAtMixin, Base):
    """Daily rollup per (org, date, event type), written by aggregate_daily_metrics."""

    __tablename__ = "usage_aggregation"

    metric_date: Mapped[date] = mapped_column(Date, nullable=False)
    event_type: Mapped[str] = mapped_column(String, nullable=False)
    total_quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    event_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    unique_users: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    __table_args__ = (
        UniqueConstraint(
            "org_id", "metric_date", "event_type", name="uq_usage_aggregation_day"
        ),
    )
