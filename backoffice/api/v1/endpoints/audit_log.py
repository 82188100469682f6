"""Audit log API: list, summarize and append to the organization's audit trail.

The organization comes from the X-Org-ID header (or the token's org_id
claim). Reading the trail needs admin or higher; any member may append
an entry, always under their own user id.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime, timedelta
from typing import Annotated, Any

from fastapi import APIRouter, Depends, Query, status
from pydantic_core import to_jsonable_python

from backoffice.api.v1.dependencies import get_audit_log_reader, get_call_context
from backoffice.application.dtos.audit_log import (
    AuditLogEntryCreate,
    AuditLogResult,
    AuditStats,
)
from backoffice.domain.exceptions import SqlNotConfiguredException
from backoffice.infrastructure.persistence.repositories import AuditLogRepository
from backoffice.pipeline import (
    CallContext,
    OrgIdSource,
    Procedure,
    require_admin,
    require_member,
)
from backoffice.schemas.audit_log import (
    AuditLogAppendRequest,
    AuditLogEntryResponse,
    AuditLogListResponse,
    AuditStatsResponse,
)
from backoffice.shared.enums import AuditAction, AuditEntityType, AuditStatsWindow
from backoffice.shared.utils.datetime import utc_now
from backoffice.shared.utils.sanitization import sanitize_metadata

logger = logging.getLogger(__name__)

router = APIRouter()

STATS_WINDOWS: dict[AuditStatsWindow, timedelta] = {
    AuditStatsWindow.HOUR: timedelta(hours=1),
    AuditStatsWindow.DAY: timedelta(days=1),
    AuditStatsWindow.WEEK: timedelta(weeks=1),
    AuditStatsWindow.MONTH: timedelta(days=30),
}

_require_admin = require_admin(org_id_source=OrgIdSource.CONTEXT)


async def _list_entries(ctx: CallContext, input: dict[str, Any]) -> dict[str, Any]:
    reader = ctx.service("audit_log")
    skip, limit = input["skip"], input["limit"]
    filters = {k: v for k, v in input.items() if k not in ("skip", "limit")}
    items = await reader.list(ctx.org_id, skip=skip, limit=limit, **filters)
    total = await reader.count(ctx.org_id, **filters)
    return {"items": items, "skip": skip, "limit": limit, "total": total}


async def _stats(ctx: CallContext, since: datetime) -> AuditStats:
    return await ctx.service("audit_log").stats(ctx.org_id, since)


async def _emit_appended(ctx: CallContext, entry: AuditLogResult) -> None:
    try:
        await ctx.analytics.capture(
            ctx.user_id,
            "audit.appended",
            {
                "org_id": entry.org_id,
                "action": entry.action,
                "entity_type": entry.entity_type,
                "actor_id": entry.actor_id,
            },
        )
    except Exception:
        logger.warning("Failed to emit audit.appended analytics event", exc_info=True)


async def _append_entry(ctx: CallContext, input: dict[str, Any]) -> AuditLogResult:
    if ctx.audit_store is None:
        raise SqlNotConfiguredException()
    entry = await ctx.audit_store.create(
        AuditLogEntryCreate(
            org_id=ctx.org_id,
            actor_id=ctx.user_id,
            action=input["action"],
            entity_type=input["entity_type"],
            entity_id=input["entity_id"],
            metadata=to_jsonable_python(
                sanitize_metadata(input["metadata"]), fallback=str
            ),
        )
    )
    if ctx.analytics is not None and ctx.user_id:
        ctx.background.spawn(_emit_appended(ctx, entry), name=f"audit:appended:{entry.id}")
    return entry


list_audit_log_procedure = Procedure(_list_entries).use(_require_admin)
audit_stats_procedure = Procedure(_stats).use(_require_admin)
append_audit_log_procedure = Procedure(_append_entry).use(
    require_member(org_id_source=OrgIdSource.CONTEXT)
)


@router.get("", response_model=AuditLogListResponse)
async def list_audit_log(
    ctx: Annotated[CallContext, Depends(get_call_context)],
    audit_repo: Annotated[AuditLogRepository, Depends(get_audit_log_reader)],
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=500),
    entity_type: AuditEntityType | None = Query(None, description="Filter by entity type"),
    action: AuditAction | None = Query(None, description="Filter by action"),
    actor_id: str | None = Query(None, description="Filter by actor user id"),
    from_timestamp: datetime | None = Query(None, description="From (inclusive) ISO8601"),
    to_timestamp: datetime | None = Query(None, description="To (inclusive) ISO8601"),
):
    """List audit records for the organization (newest first, paginated)."""
    ctx = replace(ctx, services={"audit_log": audit_repo})
    page = await list_audit_log_procedure(
        ctx,
        {
            "skip": skip,
            "limit": limit,
            "entity_type": entity_type.value if entity_type else None,
            "action": action.value if action else None,
            "actor_id": actor_id,
            "from_timestamp": from_timestamp,
            "to_timestamp": to_timestamp,
        },
    )
    return AuditLogListResponse(
        items=[AuditLogEntryResponse.model_validate(e) for e in page["items"]],
        skip=page["skip"],
        limit=page["limit"],
        total=page["total"],
    )


@router.get("/stats", response_model=AuditStatsResponse)
async def audit_log_stats(
    ctx: Annotated[CallContext, Depends(get_call_context)],
    audit_repo: Annotated[AuditLogRepository, Depends(get_audit_log_reader)],
    window: AuditStatsWindow = Query(AuditStatsWindow.DAY),
):
    """Counts by action, entity type and actor over the look-back window."""
    ctx = replace(ctx, services={"audit_log": audit_repo})
    since = utc_now() - STATS_WINDOWS[window]
    stats = await audit_stats_procedure(ctx, since)
    return AuditStatsResponse(
        window=window.value,
        since=since,
        by_action=stats.by_action,
        by_entity_type=stats.by_entity_type,
        by_actor=stats.by_actor,
        total=stats.total,
    )


@router.post(
    "",
    response_model=AuditLogEntryResponse,
    status_code=status.HTTP_201_CREATED,
)
async def append_audit_log(
    body: AuditLogAppendRequest,
    ctx: Annotated[CallContext, Depends(get_call_context)],
):
    """Record an action taken outside this API (any member; actor is the caller)."""
    entry = await append_audit_log_procedure(
        ctx,
        {
            "action": body.action.value,
            "entity_type": body.entity_type.value,
            "entity_id": body.entity_id,
            "metadata": body.metadata,
        },
    )
    return AuditLogEntryResponse.model_validate(entry)
