"""Audit log writer for background tasks: each entry gets its own session and transaction.

The audit middleware writes after the request's own session may already
be closed, and a failed insert must not roll back the request's work.
"""

from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from backoffice.application.dtos.audit_log import AuditLogEntryCreate, AuditLogResult
from backoffice.infrastructure.persistence.repositories.audit_log_repo import (
    AuditLogRepository,
)


class AuditLogService:
    """IAuditLogStore backed by a session factory (one transaction per entry)."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def create(self, entry: AuditLogEntryCreate) -> AuditLogResult:
        """Append one audit log entry and commit."""
        async with self._session_factory() as session:
            async with session.begin():
                return await AuditLogRepository(session).create(entry)
