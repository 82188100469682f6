"""Organization, membership and invite repositories.

Writes flush only; the handler that owns the write calls commit() once
its last change is staged.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.application.dtos.membership import (
    InviteResult,
    MembershipResult,
    OrganizationResult,
)
from backoffice.domain.enums import InviteStatus, OrgRole
from backoffice.infrastructure.persistence.models.organization import (
    Organization,
    OrganizationInvite,
    OrganizationMember,
)
from backoffice.shared.utils.datetime import utc_now
from backoffice.shared.utils.generators import generate_cuid, generate_invite_token


def _org_to_result(row: Organization) -> OrganizationResult:
    return OrganizationResult(
        id=row.id,
        name=row.name,
        slug=row.slug,
        settings=dict(row.settings or {}),
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _member_to_result(row: OrganizationMember) -> MembershipResult:
    return MembershipResult(
        org_id=row.org_id,
        user_id=row.user_id,
        role=row.role,
        created_at=row.created_at,
    )


def _invite_to_result(row: OrganizationInvite, *, with_token: bool = False) -> InviteResult:
    return InviteResult(
        id=row.id,
        org_id=row.org_id,
        email=row.email,
        role=OrgRole(row.role),
        invited_by=row.invited_by,
        status=InviteStatus(row.status),
        expires_at=row.expires_at,
        created_at=row.created_at,
        token=row.token if with_token else None,
    )


class OrganizationRepository:
    """Organization reads and updates (IOrganizationStore)."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def commit(self) -> None:
        await self.db.commit()

    async def get_by_id(self, org_id: str) -> OrganizationResult | None:
        row = await self.db.get(Organization, org_id)
        return _org_to_result(row) if row else None

    async def update(
        self,
        org_id: str,
        *,
        name: str | None = None,
        settings: dict[str, Any] | None = None,
    ) -> OrganizationResult | None:
        """Apply the given fields; settings are merged into existing settings."""
        row = await self.db.get(Organization, org_id)
        if row is None:
            return None
        if name is not None:
            row.name = name
        if settings is not None:
            row.settings = {**(row.settings or {}), **settings}
        await self.db.flush()
        await self.db.refresh(row)
        return _org_to_result(row)


class MembershipRepository:
    """(org, user) -> role rows (IMembershipStore)."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def commit(self) -> None:
        await self.db.commit()

    async def _get_row(self, org_id: str, user_id: str) -> OrganizationMember | None:
        stmt = select(OrganizationMember).where(
            OrganizationMember.org_id == org_id,
            OrganizationMember.user_id == user_id,
        )
        return (await self.db.execute(stmt)).scalar_one_or_none()

    async def get_membership(self, org_id: str, user_id: str) -> MembershipResult | None:
        row = await self._get_row(org_id, user_id)
        return _member_to_result(row) if row else None

    async def list_members(self, org_id: str) -> list[MembershipResult]:
        stmt = (
            select(OrganizationMember)
            .where(OrganizationMember.org_id == org_id)
            .order_by(OrganizationMember.created_at.asc())
        )
        result = await self.db.execute(stmt)
        return [_member_to_result(r) for r in result.scalars().all()]

    async def count_members(self, org_id: str) -> int:
        stmt = select(func.count()).select_from(OrganizationMember).where(
            OrganizationMember.org_id == org_id
        )
        return int((await self.db.execute(stmt)).scalar_one())

    async def count_owners(self, org_id: str) -> int:
        stmt = select(func.count()).select_from(OrganizationMember).where(
            OrganizationMember.org_id == org_id,
            OrganizationMember.role == OrgRole.OWNER.value,
        )
        return int((await self.db.execute(stmt)).scalar_one())

    async def add_member(
        self, org_id: str, user_id: str, role: OrgRole
    ) -> MembershipResult:
        row = OrganizationMember(
            id=generate_cuid(), org_id=org_id, user_id=user_id, role=role.value
        )
        self.db.add(row)
        await self.db.flush()
        await self.db.refresh(row)
        return _member_to_result(row)

    async def update_role(
        self, org_id: str, user_id: str, role: OrgRole
    ) -> MembershipResult | None:
        row = await self._get_row(org_id, user_id)
        if row is None:
            return None
        row.role = role.value
        await self.db.flush()
        await self.db.refresh(row)
        return _member_to_result(row)

    async def delete_membership(self, org_id: str, user_id: str) -> bool:
        stmt = delete(OrganizationMember).where(
            OrganizationMember.org_id == org_id,
            OrganizationMember.user_id == user_id,
        )
        result = await self.db.execute(stmt)
        return (result.rowcount or 0) > 0


class InviteRepository:
    """Invitations (IInviteStore)."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def commit(self) -> None:
        await self.db.commit()

    async def create_invite(
        self,
        org_id: str,
        email: str,
        role: OrgRole,
        invited_by: str | None,
        expires_at: datetime,
    ) -> InviteResult:
        row = OrganizationInvite(
            id=generate_cuid(),
            org_id=org_id,
            email=email.lower(),
            role=role.value,
            token=generate_invite_token(),
            status=InviteStatus.PENDING.value,
            invited_by=invited_by,
            expires_at=expires_at,
        )
        self.db.add(row)
        await self.db.flush()
        await self.db.refresh(row)
        return _invite_to_result(row, with_token=True)

    async def get_pending_by_email(self, org_id: str, email: str) -> InviteResult | None:
        stmt = select(OrganizationInvite).where(
            OrganizationInvite.org_id == org_id,
            OrganizationInvite.email == email.lower(),
            OrganizationInvite.status == InviteStatus.PENDING.value,
        )
        row = (await self.db.execute(stmt)).scalars().first()
        return _invite_to_result(row) if row else None

    async def get_by_id(self, org_id: str, invite_id: str) -> InviteResult | None:
        row = await self.db.get(OrganizationInvite, invite_id)
        if row is None or row.org_id != org_id:
            return None
        return _invite_to_result(row)

    async def get_by_token(self, token: str) -> InviteResult | None:
        stmt = select(OrganizationInvite).where(OrganizationInvite.token == token)
        row = (await self.db.execute(stmt)).scalar_one_or_none()
        return _invite_to_result(row, with_token=True) if row else None

    async def list_pending(self, org_id: str) -> list[InviteResult]:
        stmt = (
            select(OrganizationInvite)
            .where(
                OrganizationInvite.org_id == org_id,
                OrganizationInvite.status == InviteStatus.PENDING.value,
            )
            .order_by(OrganizationInvite.created_at.desc())
        )
        result = await self.db.execute(stmt)
        return [_invite_to_result(r) for r in result.scalars().all()]

    async def set_status(
        self, invite_id: str, status: InviteStatus
    ) -> InviteResult | None:
        row = await self.db.get(OrganizationInvite, invite_id)
        if row is None:
            return None
        row.status = status.value
        if status is InviteStatus.ACCEPTED:
            row.accepted_at = utc_now()
        await self.db.flush()
        await self.db.refresh(row)
        return _invite_to_result(row)
