"""Audit log repository. Append-only; implements IAuditLogStore and IAuditLogReader."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import and_, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.application.dtos.audit_log import (
    AuditLogEntryCreate,
    AuditLogResult,
    AuditStats,
)
from backoffice.infrastructure.persistence.models.audit_log import AuditLog
from backoffice.shared.utils.generators import generate_cuid


def _orm_to_result(row: AuditLog) -> AuditLogResult:
    """Map ORM to application DTO."""
    return AuditLogResult(
        id=row.id,
        org_id=row.org_id,
        actor_id=row.actor_id,
        action=row.action,
        entity_type=row.entity_type,
        entity_id=row.entity_id,
        metadata=row.metadata_ or {},
        created_at=row.created_at,
    )


def _filters(
    org_id: str,
    entity_type: str | None,
    action: str | None,
    actor_id: str | None,
    from_timestamp: datetime | None,
    to_timestamp: datetime | None,
) -> list:
    conditions = [AuditLog.org_id == org_id]
    if entity_type is not None:
        conditions.append(AuditLog.entity_type == entity_type)
    if action is not None:
        conditions.append(AuditLog.action == action)
    if actor_id is not None:
        conditions.append(AuditLog.actor_id == actor_id)
    if from_timestamp is not None:
        conditions.append(AuditLog.created_at >= from_timestamp)
    if to_timestamp is not None:
        conditions.append(AuditLog.created_at <= to_timestamp)
    return conditions


class AuditLogRepository:
    """Append-only audit log repository. No update/delete."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def create(self, entry: AuditLogEntryCreate) -> AuditLogResult:
        """Append one audit log entry; return created record."""
        row = AuditLog(
            id=generate_cuid(),
            org_id=entry.org_id,
            actor_id=entry.actor_id,
            action=entry.action,
            entity_type=entry.entity_type,
            entity_id=entry.entity_id,
            metadata_=entry.metadata,
        )
        self.db.add(row)
        await self.db.flush()
        await self.db.refresh(row)
        return _orm_to_result(row)

    async def list(
        self,
        org_id: str,
        *,
        skip: int = 0,
        limit: int = 50,
        entity_type: str | None = None,
        action: str | None = None,
        actor_id: str | None = None,
        from_timestamp: datetime | None = None,
        to_timestamp: datetime | None = None,
    ) -> list[AuditLogResult]:
        """List audit log entries for org with optional filters (newest first)."""
        conditions = _filters(
            org_id, entity_type, action, actor_id, from_timestamp, to_timestamp
        )
        stmt = (
            select(AuditLog)
            .where(and_(*conditions))
            .order_by(AuditLog.created_at.desc())
            .offset(skip)
            .limit(limit)
        )
        result = await self.db.execute(stmt)
        return [_orm_to_result(r) for r in result.scalars().all()]

    async def count(
        self,
        org_id: str,
        *,
        entity_type: str | None = None,
        action: str | None = None,
        actor_id: str | None = None,
        from_timestamp: datetime | None = None,
        to_timestamp: datetime | None = None,
    ) -> int:
        conditions = _filters(
            org_id, entity_type, action, actor_id, from_timestamp, to_timestamp
        )
        stmt = select(func.count()).select_from(AuditLog).where(and_(*conditions))
        return int((await self.db.execute(stmt)).scalar_one())

    async def stats(self, org_id: str, since: datetime) -> AuditStats:
        """Counts by action, entity type and actor for entries at or after since."""
        where = and_(AuditLog.org_id == org_id, AuditLog.created_at >= since)

        async def grouped(column) -> dict[str, int]:
            stmt = (
                select(column, func.count())
                .where(where)
                .group_by(column)
            )
            rows = (await self.db.execute(stmt)).all()
            return {str(key) if key is not None else "system": int(n) for key, n in rows}

        by_action = await grouped(AuditLog.action)
        by_entity_type = await grouped(AuditLog.entity_type)
        by_actor = await grouped(AuditLog.actor_id)
        return AuditStats(
            by_action=by_action,
            by_entity_type=by_entity_type,
            by_actor=by_actor,
            total=sum(by_action.values()),
        )
