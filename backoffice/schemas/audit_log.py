"""Request/response schemas for audit log API."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from backoffice.shared.enums import AuditAction, AuditEntityType


class AuditLogEntryResponse(BaseModel):
    """Single audit record (read)."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    org_id: str
    actor_id: str | None
    action: str
    entity_type: str
    entity_id: str
    metadata: dict[str, Any] = {}
    created_at: datetime


class AuditLogListResponse(BaseModel):
    """Paginated list of audit records."""

    items: list[AuditLogEntryResponse]
    skip: int
    limit: int
    total: int


class AuditStatsResponse(BaseModel):
    """Counts for one look-back window."""

    model_config = ConfigDict(from_attributes=True)

    window: str
    since: datetime
    by_action: dict[str, int]
    by_entity_type: dict[str, int]
    by_actor: dict[str, int]
    total: int


class AuditLogAppendRequest(BaseModel):
    """Request body for POST /audit-logs (an action performed outside this API)."""

    action: AuditAction
    entity_type: AuditEntityType
    entity_id: str = Field(..., min_length=1)
    metadata: dict[str, Any] = Field(default_factory=dict)
