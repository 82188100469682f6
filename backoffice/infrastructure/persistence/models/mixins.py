"""SQLAlchemy mixins and column types shared by the back-office models.

Provides: CuidMixin, OrgMixin, CreatedAtMixin, TimestampMixin and the
JsonType column type (JSONB on PostgreSQL, JSON elsewhere).
"""

from datetime import datetime

from sqlalchemy import JSON, DateTime, ForeignKey, String
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, declared_attr, mapped_column
from sqlalchemy.sql import func

from backoffice.shared.utils.generators import generate_cuid

JsonType = JSON().with_variant(JSONB(), "postgresql")


class CuidMixin:
    """Primary key id with default generate_cuid."""

    @declared_attr
    def id(cls) -> Mapped[str]:
        return mapped_column(String, primary_key=True, default=generate_cuid)


class OrgMixin:
    """Organization-scoped rows: org_id FK to organization with CASCADE delete."""

    @declared_attr
    def org_id(cls) -> Mapped[str]:
        return mapped_column(
            String,
            ForeignKey("organization.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        )


class CreatedAtMixin:
    """created_at only (append-only tables)."""

    @declared_attr
    def created_at(cls) -> Mapped[datetime]:
        return mapped_column(
            DateTime(timezone=True), server_default=func.now(), nullable=False
        )


class TimestampMixin(CreatedAtMixin):
    """created_at and updated_at (server defaults, timezone-aware)."""

    @declared_attr
    def updated_at(cls) -> Mapped[datetime]:
        return mapped_column(
            DateTime(timezone=True),
            server_default=func.now(),
            onupdate=func.now(),
            nullable=False,
        )
