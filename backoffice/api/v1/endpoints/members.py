"""Organization members API: members, roles, invitations and ownership transfer.

Role changes and ownership transfer are owner-only; removals and
invitations need admin or higher. Every mutation commits inside its
handler, so the audit record and the cache invalidation that follow
always describe a durable change.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import timedelta
from typing import Annotated, Any

from fastapi import APIRouter, Depends, status

from backoffice.api.v1.dependencies import (
    get_call_context,
    get_invite_store,
    get_membership_store,
    get_membership_store_for_write,
    get_role_resolver,
)
from backoffice.application.dtos.membership import InviteResult, MemberResult
from backoffice.application.services.role_resolver import RoleResolver
from backoffice.core.config import get_settings
from backoffice.domain.enums import InviteStatus, OrgRole
from backoffice.domain.exceptions import (
    AuthorizationException,
    BadRequestException,
    ResourceNotFoundException,
    ValidationException,
)
from backoffice.domain.permissions import (
    assignable_roles,
    can_remove_member,
    validate_role_transition,
)
from backoffice.infrastructure.persistence.repositories import (
    InviteRepository,
    MembershipRepository,
)
from backoffice.pipeline import (
    AuditMiddlewareConfig,
    CallContext,
    OrgIdSource,
    Procedure,
    audit_delete,
    audit_invite,
    audit_role_change,
    create_audit_middleware,
    require_admin,
    require_member,
    require_owner,
)
from backoffice.schemas.member import (
    InviteCreateRequest,
    InviteListResponse,
    InviteResponse,
    InviteRevokedResponse,
    MemberListResponse,
    MemberRemovedResponse,
    MemberResponse,
    OwnershipTransferRequest,
    OwnershipTransferResponse,
    RoleChangeRequest,
    RoleChangeResponse,
)
from backoffice.shared.enums import AuditAction, AuditEntityType
from backoffice.shared.utils.datetime import utc_now

router = APIRouter()

_IN_PATH = {"org_id_source": OrgIdSource.PARAM}

# The previous owner keeps management rights after handing over ownership.
PREVIOUS_OWNER_ROLE = OrgRole.ADMIN


async def _current_role(ctx: CallContext, user_id: str) -> OrgRole:
    membership = await ctx.service("members").get_membership(ctx.org_id, user_id)
    if membership is None:
        raise ResourceNotFoundException("member", user_id)
    return OrgRole(membership.role)


async def _list_members(ctx: CallContext, input: Any) -> list[MemberResult]:
    rows = await ctx.service("members").list_members(ctx.org_id)
    members = []
    for row in rows:
        try:
            role = OrgRole(row.role)
        except ValueError:
            continue
        members.append(
            MemberResult(
                org_id=row.org_id, user_id=row.user_id, role=role, created_at=row.created_at
            )
        )
    return members


async def _change_role(ctx: CallContext, input: dict[str, Any]) -> dict[str, Any]:
    store = ctx.service("members")
    user_id = input["user_id"]
    new_role = OrgRole(input["role"])
    current = await _current_role(ctx, user_id)
    is_last_owner = current is OrgRole.OWNER and await store.count_owners(ctx.org_id) <= 1
    reason = validate_role_transition(
        ctx.user_role, current, new_role, is_last_owner=is_last_owner
    )
    if reason:
        raise AuthorizationException(message=reason)
    await store.update_role(ctx.org_id, user_id, new_role)
    await store.commit()
    return {
        "org_id": ctx.org_id,
        "user_id": user_id,
        "old_role": current,
        "role": new_role,
    }


async def _remove_member(ctx: CallContext, input: dict[str, Any]) -> dict[str, Any]:
    store = ctx.service("members")
    user_id = input["user_id"]
    target = await _current_role(ctx, user_id)
    if user_id == ctx.user_id:
        raise ValidationException("You cannot remove yourself", field="user_id")
    if not can_remove_member(ctx.user_role, target):
        raise AuthorizationException(
            message=f"A {ctx.user_role.value} cannot remove a {target.value}"
        )
    await store.delete_membership(ctx.org_id, user_id)
    await store.commit()
    return {"org_id": ctx.org_id, "user_id": user_id, "role": target, "removed": True}


async def _transfer_ownership(ctx: CallContext, input: dict[str, Any]) -> dict[str, Any]:
    store = ctx.service("members")
    new_owner_id = input["new_owner_id"]
    if new_owner_id == ctx.user_id:
        raise BadRequestException("You are already the owner", field="new_owner_id")
    target = await store.get_membership(ctx.org_id, new_owner_id)
    if target is None:
        raise BadRequestException(
            "Target user is not a member of this organization", field="new_owner_id"
        )
    if target.role == OrgRole.OWNER.value:
        raise BadRequestException("Target user is already an owner", field="new_owner_id")
    await store.update_role(ctx.org_id, new_owner_id, OrgRole.OWNER)
    await store.update_role(ctx.org_id, ctx.user_id, PREVIOUS_OWNER_ROLE)
    await store.commit()
    return {
        "org_id": ctx.org_id,
        "new_owner_id": new_owner_id,
        "previous_owner_id": ctx.user_id,
        "previous_owner_role": PREVIOUS_OWNER_ROLE,
        "old_role": OrgRole(target.role),
    }


async def _invite(ctx: CallContext, input: dict[str, Any]) -> InviteResult:
    store = ctx.service("invites")
    role = OrgRole(input["role"])
    if role not in assignable_roles():
        raise ValidationException(
            f"Cannot invite with role {role.value}", field="role"
        )
    if await store.get_pending_by_email(ctx.org_id, input["email"]) is not None:
        raise BadRequestException(
            "An invitation has already been sent to this email", field="email"
        )
    expires_at = utc_now() + timedelta(days=get_settings().invite_ttl_days)
    invite = await store.create_invite(
        ctx.org_id, input["email"], role, ctx.user_id, expires_at
    )
    await store.commit()
    return invite


async def _list_invites(ctx: CallContext, input: Any) -> list[InviteResult]:
    return await ctx.service("invites").list_pending(ctx.org_id)


async def _revoke_invite(ctx: CallContext, input: dict[str, Any]) -> InviteResult:
    store = ctx.service("invites")
    invite_id = input["invite_id"]
    invite = await store.get_by_id(ctx.org_id, invite_id)
    if invite is None:
        raise ResourceNotFoundException("invite", invite_id)
    if invite.status is not InviteStatus.PENDING:
        raise BadRequestException(
            f"Invitation is already {invite.status.value}", field="invite_id"
        )
    revoked = await store.set_status(invite_id, InviteStatus.REVOKED)
    await store.commit()
    return revoked


def _removed_role(input: Any, result: Any) -> dict[str, Any]:
    return {"role": result["role"].value}


def _transfer_metadata(input: Any, result: Any) -> dict[str, Any]:
    return {
        "old_role": result["old_role"].value,
        "new_role": OrgRole.OWNER.value,
        "previous_owner_id": result["previous_owner_id"],
        "previous_owner_role": result["previous_owner_role"].value,
    }


def _revoked_invite(input: Any, result: Any) -> dict[str, Any]:
    return {"email": result.email, "role": result.role.value}


list_members_procedure = Procedure(_list_members).use(require_member(**_IN_PATH))

change_role_procedure = (
    Procedure(_change_role)
    .use(require_owner(**_IN_PATH))
    .use(audit_role_change(AuditEntityType.MEMBER, entity_id_field="user_id"))
)

remove_member_procedure = (
    Procedure(_remove_member)
    .use(require_admin(**_IN_PATH))
    .use(
        audit_delete(
            AuditEntityType.MEMBER,
            entity_id_field="user_id",
            capture_metadata=_removed_role,
        )
    )
)

transfer_ownership_procedure = (
    Procedure(_transfer_ownership)
    .use(require_owner(**_IN_PATH))
    .use(
        audit_role_change(
            AuditEntityType.MEMBER,
            entity_id_field="new_owner_id",
            capture_metadata=_transfer_metadata,
        )
    )
)

invite_procedure = (
    Procedure(_invite)
    .use(require_admin(**_IN_PATH))
    .use(audit_invite(AuditEntityType.INVITE, lambda invite: invite.id))
)

list_invites_procedure = Procedure(_list_invites).use(require_admin(**_IN_PATH))

revoke_invite_procedure = (
    Procedure(_revoke_invite)
    .use(require_admin(**_IN_PATH))
    .use(
        create_audit_middleware(
            AuditMiddlewareConfig(
                action=AuditAction.CANCELLED,
                entity_type=AuditEntityType.INVITE,
                entity_id_field="invite_id",
                capture_metadata=_revoked_invite,
            )
        )
    )
)


@router.get("/{org_id}/members", response_model=MemberListResponse)
async def list_members(
    org_id: str,
    ctx: Annotated[CallContext, Depends(get_call_context)],
    members: Annotated[MembershipRepository, Depends(get_membership_store)],
):
    """List members of the organization (any member)."""
    ctx = replace(ctx, services={"members": members})
    items = await list_members_procedure(ctx, {"org_id": org_id})
    return MemberListResponse(
        items=[MemberResponse.model_validate(m) for m in items],
        total=len(items),
    )


@router.patch("/{org_id}/members/{user_id}/role", response_model=RoleChangeResponse)
async def change_member_role(
    org_id: str,
    user_id: str,
    body: RoleChangeRequest,
    ctx: Annotated[CallContext, Depends(get_call_context)],
    members: Annotated[MembershipRepository, Depends(get_membership_store_for_write)],
    role_resolver: Annotated[RoleResolver, Depends(get_role_resolver)],
):
    """Change a member's role (owner only; owners themselves are changed by transfer)."""
    ctx = replace(ctx, services={"members": members})
    result = await change_role_procedure(
        ctx, {"org_id": org_id, "user_id": user_id, "role": body.role}
    )
    await role_resolver.invalidate(org_id, user_id)
    return RoleChangeResponse(**result)


@router.delete("/{org_id}/members/{user_id}", response_model=MemberRemovedResponse)
async def remove_member(
    org_id: str,
    user_id: str,
    ctx: Annotated[CallContext, Depends(get_call_context)],
    members: Annotated[MembershipRepository, Depends(get_membership_store_for_write)],
    role_resolver: Annotated[RoleResolver, Depends(get_role_resolver)],
):
    """Remove a member (admin or owner, within can_remove_member rules)."""
    ctx = replace(ctx, services={"members": members})
    result = await remove_member_procedure(ctx, {"org_id": org_id, "user_id": user_id})
    await role_resolver.invalidate(org_id, user_id)
    return MemberRemovedResponse(**result)


@router.post("/{org_id}/transfer-ownership", response_model=OwnershipTransferResponse)
async def transfer_ownership(
    org_id: str,
    body: OwnershipTransferRequest,
    ctx: Annotated[CallContext, Depends(get_call_context)],
    members: Annotated[MembershipRepository, Depends(get_membership_store_for_write)],
    role_resolver: Annotated[RoleResolver, Depends(get_role_resolver)],
):
    """Hand ownership to another member; the caller becomes an admin (owner only)."""
    ctx = replace(ctx, services={"members": members})
    result = await transfer_ownership_procedure(
        ctx, {"org_id": org_id, "new_owner_id": body.new_owner_id}
    )
    await role_resolver.invalidate(org_id, result["new_owner_id"])
    await role_resolver.invalidate(org_id, result["previous_owner_id"])
    return OwnershipTransferResponse(
        org_id=result["org_id"],
        new_owner_id=result["new_owner_id"],
        previous_owner_id=result["previous_owner_id"],
        previous_owner_role=result["previous_owner_role"],
    )


@router.post(
    "/{org_id}/invites",
    response_model=InviteResponse,
    status_code=status.HTTP_201_CREATED,
)
async def invite_member(
    org_id: str,
    body: InviteCreateRequest,
    ctx: Annotated[CallContext, Depends(get_call_context)],
    invites: Annotated[InviteRepository, Depends(get_invite_store)],
):
    """Invite someone by email (admin or owner; owner role cannot be invited)."""
    ctx = replace(ctx, services={"invites": invites})
    invite = await invite_procedure(
        ctx, {"org_id": org_id, "email": str(body.email), "role": body.role}
    )
    return InviteResponse.model_validate(invite)


@router.get("/{org_id}/invites", response_model=InviteListResponse)
async def list_invites(
    org_id: str,
    ctx: Annotated[CallContext, Depends(get_call_context)],
    invites: Annotated[InviteRepository, Depends(get_invite_store)],
):
    """Pending invitations, newest first (admin or owner)."""
    ctx = replace(ctx, services={"invites": invites})
    items = await list_invites_procedure(ctx, {"org_id": org_id})
    return InviteListResponse(
        items=[InviteResponse.model_validate(i) for i in items],
        total=len(items),
    )


@router.delete("/{org_id}/invites/{invite_id}", response_model=InviteRevokedResponse)
async def revoke_invite(
    org_id: str,
    invite_id: str,
    ctx: Annotated[CallContext, Depends(get_call_context)],
    invites: Annotated[InviteRepository, Depends(get_invite_store)],
):
    """Revoke a pending invitation (admin or owner)."""
    ctx = replace(ctx, services={"invites": invites})
    invite = await revoke_invite_procedure(
        ctx, {"org_id": org_id, "invite_id": invite_id}
    )
    return InviteRevokedResponse(id=invite.id, org_id=invite.org_id, status=invite.status)
