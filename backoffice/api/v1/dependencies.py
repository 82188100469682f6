"""Presentation-layer dependency injection (composition root).

Provides FastAPI Depends() for the caller identity, DB-backed stores and
the CallContext that procedures run with. Routes depend only on these
dependencies, not on infrastructure directly.

Process-wide collaborators (cache, analytics sink, audit store, usage
tracker) are built in the lifespan and read from app.state; stores that
share the request's DB session are built here per request.
"""

from __future__ import annotations

from functools import partial
from typing import Annotated, Any

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.application.interfaces.repositories import IAuditLogStore
from backoffice.application.interfaces.services import IAnalyticsSink, ICacheService
from backoffice.application.services.role_resolver import RoleResolver
from backoffice.application.services.usage_tracker import UsageTracker
from backoffice.core.config import get_settings
from backoffice.core.tenant_context import get_org_id
from backoffice.domain.exceptions import (
    AuthenticationException,
    SqlNotConfiguredException,
)
from backoffice.infrastructure.persistence.database import get_db, get_db_transactional
from backoffice.infrastructure.persistence.repositories import (
    AuditLogRepository,
    InviteRepository,
    MembershipRepository,
    OrganizationRepository,
)
from backoffice.infrastructure.security.jwt import verify_token
from backoffice.middleware.api_usage import mark_admitted
from backoffice.middleware.org_context import org_id_from_request
from backoffice.pipeline.context import CallContext

_http_bearer = HTTPBearer(auto_error=False)


async def get_token_payload(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(_http_bearer)],
) -> dict[str, Any]:
    """Return the verified bearer token claims; raise 401 if missing or invalid."""
    if not credentials:
        raise AuthenticationException("Not authenticated")
    try:
        return verify_token(credentials.credentials)
    except ValueError as e:
        raise AuthenticationException("Could not validate credentials") from e


async def get_current_user_id(
    payload: Annotated[dict[str, Any], Depends(get_token_payload)],
) -> str:
    """Return the caller's user id (JWT sub)."""
    user_id = payload.get("sub")
    if not user_id:
        raise AuthenticationException("Could not validate credentials")
    return str(user_id)


async def get_current_user_email(
    payload: Annotated[dict[str, Any], Depends(get_token_payload)],
) -> str | None:
    """Return the caller's email claim, if the identity provider issued one."""
    email = payload.get("email")
    return str(email) if email else None


# Process-wide collaborators (lifespan)


def get_cache(request: Request) -> ICacheService | None:
    return getattr(request.app.state, "cache", None)


def get_analytics_sink(request: Request) -> IAnalyticsSink | None:
    return getattr(request.app.state, "analytics", None)


def get_audit_store(request: Request) -> IAuditLogStore | None:
    """Session-per-write audit store; None when SQL is not configured."""
    return getattr(request.app.state, "audit_store", None)


def get_usage_tracker(request: Request) -> UsageTracker:
    """Usage tracker from app.state; 503 when SQL is not configured."""
    tracker = getattr(request.app.state, "usage_tracker", None)
    if tracker is None:
        raise SqlNotConfiguredException()
    return tracker


# Request-scoped stores


async def get_membership_store(
    db: Annotated[AsyncSession, Depends(get_db)],
) -> MembershipRepository:
    """Membership repository for read operations (role lookup, listings)."""
    return MembershipRepository(db)


async def get_membership_store_for_write(
    db: Annotated[AsyncSession, Depends(get_db_transactional)],
) -> MembershipRepository:
    """Membership repository for role changes and removals (transactional)."""
    return MembershipRepository(db)


async def get_organization_store(
    db: Annotated[AsyncSession, Depends(get_db)],
) -> OrganizationRepository:
    return OrganizationRepository(db)


async def get_organization_store_for_write(
    db: Annotated[AsyncSession, Depends(get_db_transactional)],
) -> OrganizationRepository:
    return OrganizationRepository(db)


async def get_invite_store(
    db: Annotated[AsyncSession, Depends(get_db_transactional)],
) -> InviteRepository:
    return InviteRepository(db)


async def get_audit_log_reader(
    db: Annotated[AsyncSession, Depends(get_db)],
) -> AuditLogRepository:
    return AuditLogRepository(db)


async def get_role_resolver(
    membership_store: Annotated[MembershipRepository, Depends(get_membership_store)],
    cache: Annotated[ICacheService | None, Depends(get_cache)],
) -> RoleResolver:
    """Role resolver over the request's membership store and the shared cache."""
    return RoleResolver(
        membership_store,
        cache=cache,
        cache_ttl=get_settings().cache_ttl_roles,
    )


async def get_call_context(
    request: Request,
    user_id: Annotated[str, Depends(get_current_user_id)],
    role_resolver: Annotated[RoleResolver, Depends(get_role_resolver)],
    audit_store: Annotated[IAuditLogStore | None, Depends(get_audit_store)],
    analytics: Annotated[IAnalyticsSink | None, Depends(get_analytics_sink)],
) -> CallContext:
    """Build the CallContext for one request.

    org_id starts as the ambient organization (X-Org-ID header or token
    claim); guards replace it with the organization they admitted and
    record that organization on request.state for API metering.
    """
    org_id = get_org_id() or org_id_from_request(request)
    return CallContext(
        user_id=user_id,
        role_resolver=role_resolver,
        audit_store=audit_store,
        analytics=analytics,
        headers=request.headers,
        params=dict(request.path_params),
        request_id=getattr(request.state, "request_id", None),
        org_id=org_id or None,
        on_admitted=partial(mark_admitted, request),
    )
