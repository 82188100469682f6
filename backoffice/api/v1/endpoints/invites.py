"""Invitation acceptance: join an organization with an invitation token.

The caller is not a member yet, so no access guard runs; the token
identifies the organization and the caller's email claim must match
the invited address. The audit record is filed under the invitation's
organization.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Annotated, Any

from fastapi import APIRouter, Depends

from backoffice.api.v1.dependencies import (
    get_call_context,
    get_current_user_email,
    get_invite_store,
    get_membership_store_for_write,
    get_role_resolver,
)
from backoffice.application.services.role_resolver import RoleResolver
from backoffice.domain.enums import InviteStatus
from backoffice.domain.exceptions import BadRequestException, ResourceNotFoundException
from backoffice.infrastructure.persistence.repositories import (
    InviteRepository,
    MembershipRepository,
)
from backoffice.pipeline import (
    AuditMiddlewareConfig,
    CallContext,
    Procedure,
    create_audit_middleware,
)
from backoffice.schemas.member import InviteAcceptRequest, InviteAcceptResponse
from backoffice.shared.enums import AuditAction, AuditEntityType
from backoffice.shared.utils.datetime import utc_now

router = APIRouter()


async def _accept_invite(ctx: CallContext, input: dict[str, Any]) -> dict[str, Any]:
    invites = ctx.service("invites")
    members = ctx.service("members")
    email = input.get("email")
    if not email:
        raise BadRequestException("User email is required to accept invitation")

    invite = await invites.get_by_token(input["token"])
    if invite is None or invite.status is not InviteStatus.PENDING:
        raise ResourceNotFoundException("invitation", "invalid or expired")
    if invite.is_expired(utc_now()):
        await invites.set_status(invite.id, InviteStatus.EXPIRED)
        await invites.commit()
        raise BadRequestException("This invitation has expired")
    if invite.email.lower() != email.lower():
        raise BadRequestException("This invitation was sent to a different email address")
    if await members.get_membership(invite.org_id, ctx.user_id) is not None:
        raise BadRequestException("You are already a member of this organization")

    await members.add_member(invite.org_id, ctx.user_id, invite.role)
    await invites.set_status(invite.id, InviteStatus.ACCEPTED)
    await invites.commit()
    return {
        "invite_id": invite.id,
        "org_id": invite.org_id,
        "user_id": ctx.user_id,
        "role": invite.role,
    }


def _accepted_role(input: Any, result: Any) -> dict[str, Any]:
    return {"role": result["role"].value}


accept_invite_procedure = Procedure(_accept_invite).use(
    create_audit_middleware(
        AuditMiddlewareConfig(
            action=AuditAction.ACCEPTED,
            entity_type=AuditEntityType.INVITE,
            entity_id_from_result=lambda result: result["invite_id"],
            org_id_from_result=lambda result: result["org_id"],
            capture_metadata=_accepted_role,
        )
    )
)


@router.post("/accept", response_model=InviteAcceptResponse)
async def accept_invite(
    body: InviteAcceptRequest,
    ctx: Annotated[CallContext, Depends(get_call_context)],
    email: Annotated[str | None, Depends(get_current_user_email)],
    invites: Annotated[InviteRepository, Depends(get_invite_store)],
    members: Annotated[MembershipRepository, Depends(get_membership_store_for_write)],
    role_resolver: Annotated[RoleResolver, Depends(get_role_resolver)],
):
    """Join the invitation's organization with the invited role (any authenticated user)."""
    ctx = replace(ctx, services={"invites": invites, "members": members})
    result = await accept_invite_procedure(ctx, {"token": body.token, "email": email})
    await role_resolver.invalidate(result["org_id"], result["user_id"])
    return InviteAcceptResponse(**result)
