"""Audit middleware: record who did what to which entity after a successful call.

The record is written in a background task; the caller gets the
handler's result without waiting for it. A failed handler produces no
record. A missing entity id or org id skips the record. Any failure
while building or writing the record (or emitting the analytics event)
is logged and dropped.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from typing import Any

from opentelemetry import trace
from pydantic_core import to_jsonable_python

from backoffice.application.dtos.audit_log import AuditLogEntryCreate
from backoffice.pipeline.context import CallContext, read_field
from backoffice.pipeline.procedure import Middleware, Next, PipelineStage, tag_stage
from backoffice.shared.enums import AuditAction, AuditEntityType
from backoffice.shared.request_audit import extract_ip_address, extract_user_agent
from backoffice.shared.telemetry.tracing import traced_span
from backoffice.shared.utils.sanitization import sanitize_metadata

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

EntityIdExtractor = Callable[[Any], Any]
MetadataCapture = Callable[[Any, Any], Mapping[str, Any] | None]
BeforeStateFetcher = Callable[[CallContext, str], Awaitable[Any]]


@dataclass(frozen=True)
class AuditMiddlewareConfig:
    """How one procedure is audited.

    The entity id comes either from an input field (entity_id_field,
    "id" when neither strategy is given) or from the handler result
    (entity_id_from_result), never both. The org id comes from the input
    field, then org_id_from_result (calls not scoped by a guard), then
    the guarded ctx.org_id. fetch_before_state runs before the handler
    and only for the updated action.
    """

    action: AuditAction | str
    entity_type: AuditEntityType | str
    entity_id_field: str | None = None
    entity_id_from_result: EntityIdExtractor | None = None
    org_id_field: str = "org_id"
    org_id_from_result: EntityIdExtractor | None = None
    capture_metadata: MetadataCapture | None = None
    capture_before_state: bool = False
    fetch_before_state: BeforeStateFetcher | None = None

    def __post_init__(self) -> None:
        AuditAction(self.action)
        AuditEntityType(self.entity_type)
        if self.entity_id_field and self.entity_id_from_result is not None:
            raise ValueError(
                "Use either entity_id_field or entity_id_from_result, not both"
            )
        if self.entity_id_field is None and self.entity_id_from_result is None:
            object.__setattr__(self, "entity_id_field", "id")

    @property
    def action_value(self) -> str:
        return AuditAction(self.action).value

    @property
    def entity_type_value(self) -> str:
        return AuditEntityType(self.entity_type).value


def _as_id(value: Any) -> str | None:
    return str(value) if value else None


def _jsonable(value: Any) -> Any:
    return to_jsonable_python(value, fallback=str)


def build_audit_metadata(
    config: AuditMiddlewareConfig,
    ctx: CallContext,
    input: Any,
    result: Any,
    before_state: Any,
) -> dict[str, Any]:
    """Assemble sanitized metadata: custom fields, before/after (updates), IP and user agent."""
    metadata: dict[str, Any] = {}
    if config.capture_metadata is not None:
        try:
            metadata = dict(config.capture_metadata(input, result) or {})
        except Exception:
            logger.warning(
                "Error capturing custom audit metadata for %s", config.action_value,
                exc_info=True,
            )

    if config.action_value == AuditAction.UPDATED.value and before_state is not None:
        metadata["before"] = before_state
        metadata["after"] = result

    ip_address = extract_ip_address(ctx.headers)
    if ip_address:
        metadata["ip_address"] = ip_address
    user_agent = extract_user_agent(ctx.headers)
    if user_agent:
        metadata["user_agent"] = user_agent

    return _jsonable(sanitize_metadata(metadata))


async def write_audit_entry(
    config: AuditMiddlewareConfig,
    ctx: CallContext,
    org_id: str,
    entity_id: str,
    input: Any,
    result: Any,
    before_state: Any,
) -> None:
    """Build and store one audit record, then emit the analytics event. Never raises."""
    action = config.action_value
    entity_type = config.entity_type_value
    try:
        with traced_span(
            tracer,
            "audit.write",
            {
                "audit.action": action,
                "audit.entity_type": entity_type,
                "audit.entity_id": entity_id,
                "org.id": org_id,
            },
        ):
            metadata = build_audit_metadata(config, ctx, input, result, before_state)
            if ctx.audit_store is None:
                logger.warning(
                    "No audit store configured; dropping %s audit entry", action
                )
            else:
                await ctx.audit_store.create(
                    AuditLogEntryCreate(
                        org_id=org_id,
                        actor_id=ctx.user_id,
                        action=action,
                        entity_type=entity_type,
                        entity_id=entity_id,
                        metadata=metadata,
                    )
                )
    except Exception:
        logger.error(
            "Failed to write audit entry %s %s/%s in org %s",
            action,
            entity_type,
            entity_id,
            org_id,
            exc_info=True,
        )

    if ctx.analytics is not None and ctx.user_id:
        try:
            await ctx.analytics.capture(
                ctx.user_id,
                f"audit.{action}",
                {
                    "org_id": org_id,
                    "entity_type": entity_type,
                    "entity_id": entity_id,
                    "action": action,
                },
            )
        except Exception:
            logger.warning("Failed to emit audit analytics event", exc_info=True)


def create_audit_middleware(config: AuditMiddlewareConfig) -> Middleware:
    """Build an audit middleware from config.

    Order within one call: before-state fetch, handler, then the record
    is scheduled on ctx.background.
    """

    async def audit(ctx: CallContext, input: Any, next: Next) -> Any:
        entity_id = None
        if config.entity_id_field:
            entity_id = _as_id(read_field(input, config.entity_id_field))

        before_state = None
        if (
            config.capture_before_state
            and config.fetch_before_state is not None
            and config.action_value == AuditAction.UPDATED.value
            and entity_id
        ):
            try:
                before_state = await config.fetch_before_state(ctx, entity_id)
            except Exception:
                logger.warning(
                    "Failed to fetch before state for %s %s",
                    config.entity_type_value,
                    entity_id,
                    exc_info=True,
                )

        result = await next(ctx, input)

        if entity_id is None and config.entity_id_from_result is not None:
            try:
                entity_id = _as_id(config.entity_id_from_result(result))
            except Exception:
                logger.warning(
                    "Failed to extract entity id from %s result",
                    config.entity_type_value,
                    exc_info=True,
                )

        org_id = _as_id(read_field(input, config.org_id_field))
        if not org_id and config.org_id_from_result is not None:
            try:
                org_id = _as_id(config.org_id_from_result(result))
            except Exception:
                logger.warning(
                    "Failed to extract org id from %s result",
                    config.entity_type_value,
                    exc_info=True,
                )
        org_id = org_id or ctx.org_id
        if not entity_id or not org_id:
            logger.warning(
                "Skipping audit log: missing entity id or org id "
                "(action=%s entity_type=%s entity_id=%s org_id=%s)",
                config.action_value,
                config.entity_type_value,
                entity_id,
                org_id,
            )
            return result

        try:
            ctx.background.spawn(
                write_audit_entry(
                    config, ctx, org_id, entity_id, input, result, before_state
                ),
                name=f"audit:{config.action_value}:{entity_id}",
            )
        except Exception:
            logger.error("Failed to schedule audit entry", exc_info=True)
        return result

    return tag_stage(audit, PipelineStage.AUDIT)


def audit_create(
    entity_type: AuditEntityType | str,
    entity_id_from_result: EntityIdExtractor,
    **options: Any,
) -> Middleware:
    """Audit a create; the id is only known from the result."""
    return create_audit_middleware(
        AuditMiddlewareConfig(
            action=AuditAction.CREATED,
            entity_type=entity_type,
            entity_id_from_result=entity_id_from_result,
            **options,
        )
    )


def audit_update(
    entity_type: AuditEntityType | str,
    entity_id_field: str = "id",
    **options: Any,
) -> Middleware:
    """Audit an update with before/after snapshots (pass fetch_before_state)."""
    return create_audit_middleware(
        AuditMiddlewareConfig(
            action=AuditAction.UPDATED,
            entity_type=entity_type,
            entity_id_field=entity_id_field,
            capture_before_state=True,
            **options,
        )
    )


def audit_delete(
    entity_type: AuditEntityType | str,
    entity_id_field: str = "id",
    **options: Any,
) -> Middleware:
    return create_audit_middleware(
        AuditMiddlewareConfig(
            action=AuditAction.DELETED,
            entity_type=entity_type,
            entity_id_field=entity_id_field,
            capture_before_state=True,
            **options,
        )
    )


def _role_change_metadata(input: Any, result: Any) -> dict[str, Any]:
    old_role = read_field(input, "old_role") or read_field(result, "old_role")
    new_role = read_field(input, "role") or read_field(input, "new_role")
    return {"old_role": _jsonable(old_role), "new_role": _jsonable(new_role)}


def audit_role_change(
    entity_type: AuditEntityType | str = AuditEntityType.MEMBER,
    entity_id_field: str = "user_id",
    **options: Any,
) -> Middleware:
    """Audit a role change; metadata carries old_role and new_role."""
    options.setdefault("capture_metadata", _role_change_metadata)
    return create_audit_middleware(
        AuditMiddlewareConfig(
            action=AuditAction.ROLE_CHANGED,
            entity_type=entity_type,
            entity_id_field=entity_id_field,
            **options,
        )
    )


def _invite_metadata(input: Any, result: Any) -> dict[str, Any]:
    return {
        "email": read_field(input, "email"),
        "role": _jsonable(read_field(input, "role")),
    }


def audit_invite(
    entity_type: AuditEntityType | str,
    entity_id_from_result: EntityIdExtractor,
    **options: Any,
) -> Middleware:
    """Audit an invitation; metadata carries the invited email and role."""
    options.setdefault("capture_metadata", _invite_metadata)
    return create_audit_middleware(
        AuditMiddlewareConfig(
            action=AuditAction.INVITED,
            entity_type=entity_type,
            entity_id_from_result=entity_id_from_result,
            **options,
        )
    )
