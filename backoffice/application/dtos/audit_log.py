"""DTOs for the audit trail (append-only organization action log)."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


@dataclass(frozen=True)
class AuditLogEntryCreate:
    """Input for appending one audit record. Append-only; no update."""

    org_id: str
    actor_id: str | None
    action: str
    entity_type: str
    entity_id: str
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class AuditLogResult:
    """Stored audit record (read)."""

    id: str
    org_id: str
    actor_id: str | None
    action: str
    entity_type: str
    entity_id: str
    metadata: dict[str, Any]
    created_at: datetime


@dataclass(frozen=True)
class AuditStats:
    """Audit record counts grouped by action, entity type and actor."""

    by_action: dict[str, int]
    by_entity_type: dict[str, int]
    by_actor: dict[str, int]
    total: int
