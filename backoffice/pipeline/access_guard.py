"""Access guard: admit or reject a call by the caller's role in an organization.

The guard extracts the organization id from exactly one source, resolves
the caller's role and compares ranks. Rejections are final and surface
to the caller. Errors while resolving the role reject the call too
(fail closed); errors raised further down the chain pass through
untouched.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import replace
from enum import Enum
from typing import Any

from opentelemetry import trace

from backoffice.domain.enums import OrgRole
from backoffice.domain.exceptions import (
    AuthorizationException,
    BackofficeException,
    BadRequestException,
)
from backoffice.domain.permissions import role_is_sufficient
from backoffice.pipeline.context import CallContext, read_field
from backoffice.pipeline.procedure import Middleware, Next, PipelineStage, tag_stage
from backoffice.shared.telemetry.tracing import traced_span

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

CustomRoleResolver = Callable[[CallContext, str, Any], Awaitable[OrgRole | str | None]]


class OrgIdSource(str, Enum):
    """Where the guard reads the organization id from."""

    INPUT = "input"  # field of the call input
    CONTEXT = "context"  # ctx.org_id (e.g. X-Org-ID header)
    PARAM = "param"  # ctx.params (e.g. path parameters)


def _extract_org_id(
    source: OrgIdSource, field: str, ctx: CallContext, input: Any
) -> str | None:
    if source is OrgIdSource.INPUT:
        value = read_field(input, field)
    elif source is OrgIdSource.CONTEXT:
        value = ctx.org_id
    else:
        value = ctx.params.get(field)
    return str(value) if value else None


async def _resolve_role(
    ctx: CallContext,
    org_id: str,
    input: Any,
    custom_role_resolver: CustomRoleResolver | None,
) -> OrgRole | None:
    if custom_role_resolver is not None:
        role = await custom_role_resolver(ctx, org_id, input)
    else:
        if ctx.role_resolver is None:
            raise RuntimeError("CallContext has no role_resolver")
        if ctx.user_id is None:
            return None
        role = await ctx.role_resolver.resolve(org_id, ctx.user_id)
    if role is None:
        return None
    return role if isinstance(role, OrgRole) else OrgRole(role)


def create_access_guard(
    required_role: OrgRole | str,
    *,
    org_id_source: OrgIdSource | str = OrgIdSource.INPUT,
    org_id_field: str = "org_id",
    custom_role_resolver: CustomRoleResolver | None = None,
) -> Middleware:
    """Build a guard middleware requiring at least required_role.

    Args:
        required_role: Minimum role (by rank) the caller must hold.
        org_id_source: input, context or param.
        org_id_field: Field name read from the input or params.
        custom_role_resolver: Replaces membership lookup, e.g. for super-admin checks.

    Returns:
        Middleware that raises BadRequestException when no organization id
        is found and AuthorizationException when the role is insufficient.
        On success the next stage receives a context with org_id and
        user_role set.
    """
    required = OrgRole(required_role)
    source = OrgIdSource(org_id_source)

    async def guard(ctx: CallContext, input: Any, next: Next) -> Any:
        with traced_span(
            tracer,
            "access_guard",
            {"guard.required_role": required.value, "user.id": ctx.user_id},
        ) as span:
            org_id = _extract_org_id(source, org_id_field, ctx, input)
            if not org_id:
                raise BadRequestException(
                    "Organization ID is required for this operation", field=org_id_field
                )
            span.set_attribute("org.id", org_id)

            try:
                role = await _resolve_role(ctx, org_id, input, custom_role_resolver)
            except BackofficeException:
                raise
            except Exception as e:
                logger.exception("Access guard failed to resolve role in org %s", org_id)
                raise AuthorizationException(message="Failed to verify permissions") from e

            if not role_is_sufficient(required, role):
                logger.info(
                    "Access denied: user %s has role %s in org %s, requires %s",
                    ctx.user_id,
                    role.value if role else "none",
                    org_id,
                    required.value,
                )
                raise AuthorizationException(
                    required_role=required.value,
                    actual_role=role.value if role else None,
                )
            span.set_attribute("guard.actual_role", role.value)

        if ctx.on_admitted is not None:
            ctx.on_admitted(org_id)
        return await next(replace(ctx, org_id=org_id, user_role=role), input)

    return tag_stage(guard, PipelineStage.GUARD)


def require_member(**options: Any) -> Middleware:
    """Any member of the organization (viewer or higher)."""
    return create_access_guard(OrgRole.VIEWER, **options)


def require_contributor(**options: Any) -> Middleware:
    """Members who can edit content (member or higher)."""
    return create_access_guard(OrgRole.MEMBER, **options)


def require_admin(**options: Any) -> Middleware:
    """Manager tier: admin or owner."""
    return create_access_guard(OrgRole.ADMIN, **options)


def require_owner(**options: Any) -> Middleware:
    return create_access_guard(OrgRole.OWNER, **options)
