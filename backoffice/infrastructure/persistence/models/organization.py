"""Organization ORM models: organization, membership and invitation."""

from datetime import datetime
from typing import Any

from sqlalchemy import CheckConstraint, DateTime, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from backoffice.domain.enums import InviteStatus, OrgRole
from backoffice.infrastructure.persistence.database import Base
from backoffice.infrastructure.persistence.models.mixins import (
    CreatedAtMixin,
    CuidMixin,
    JsonType,
    OrgMixin,
    TimestampMixin,
)


def _in_check(column: str, values: list[str], name: str) -> CheckConstraint:
    allowed = ", ".join(f"'{v}'" for v in values)
    return CheckConstraint(f"{column} IN ({allowed})", name=name)


def _role_check(name: str) -> CheckConstraint:
    return _in_check("role", OrgRole.values(), name)


class Organization(CuidMixin, TimestampMixin, Base):
    """Tenant root. Table: organization."""

    __tablename__ = "organization"

    name: Mapped[str] = mapped_column(String, nullable=False)
    slug: Mapped[str] = mapped_column(String, unique=True, nullable=False, index=True)
    settings: Mapped[dict[str, Any]] = mapped_column(JsonType, nullable=False, default=dict)


class OrganizationMember(CuidMixin, OrgMixin, TimestampMixin, Base):
    """One role per (organization, user). Users live in the identity provider."""

    __tablename__ = "organization_member"

    user_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    role: Mapped[str] = mapped_column(
        String, nullable=False, default=OrgRole.MEMBER.value
    )

    __table_args__ = (
        UniqueConstraint("org_id", "user_id", name="uq_organization_member_org_user"),
        _role_check("organization_member_role_check"),
    )


class OrganizationInvite(CuidMixin, OrgMixin, CreatedAtMixin, Base):
    """Invitation to join an organization, redeemed with its token.

    status moves from pending to accepted, revoked or expired exactly once;
    accepted_at is set when the invitee joins.
    """

    __tablename__ = "organization_invite"

    email: Mapped[str] = mapped_column(String, nullable=False, index=True)
    role: Mapped[str] = mapped_column(String, nullable=False)
    token: Mapped[str] = mapped_column(String, unique=True, nullable=False, index=True)
    status: Mapped[str] = mapped_column(
        String, nullable=False, default=InviteStatus.PENDING.value
    )
    invited_by: Mapped[str | None] = mapped_column(String, nullable=True)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    accepted_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    __table_args__ = (
        _role_check("organization_invite_role_check"),
        _in_check("status", InviteStatus.values(), "organization_invite_status_check"),
    )
