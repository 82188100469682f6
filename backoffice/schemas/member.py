"""Member and invitation API schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from backoffice.domain.enums import InviteStatus, OrgRole


class MemberResponse(BaseModel):
    """One organization member."""

    model_config = ConfigDict(from_attributes=True)

    org_id: str
    user_id: str
    role: OrgRole
    created_at: datetime | None = None


class MemberListResponse(BaseModel):
    items: list[MemberResponse]
    total: int


class RoleChangeRequest(BaseModel):
    """Request body for PATCH /organizations/{org_id}/members/{user_id}."""

    role: OrgRole


class RoleChangeResponse(BaseModel):
    org_id: str
    user_id: str
    old_role: OrgRole
    role: OrgRole


class MemberRemovedResponse(BaseModel):
    org_id: str
    user_id: str
    role: OrgRole
    removed: bool = True


class InviteCreateRequest(BaseModel):
    """Request body for POST /organizations/{org_id}/invites."""

    email: EmailStr
    role: OrgRole = Field(default=OrgRole.MEMBER)


class InviteResponse(BaseModel):
    """Invitation as shown to admins. The token is never returned."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    org_id: str
    email: str
    role: OrgRole
    status: InviteStatus = InviteStatus.PENDING
    invited_by: str | None = None
    expires_at: datetime | None = None
    created_at: datetime | None = None


class InviteListResponse(BaseModel):
    items: list[InviteResponse]
    total: int


class InviteRevokedResponse(BaseModel):
    id: str
    org_id: str
    status: InviteStatus = InviteStatus.REVOKED


class InviteAcceptRequest(BaseModel):
    """Request body for POST /invites/accept."""

    token: str = Field(..., min_length=1)


class InviteAcceptResponse(BaseModel):
    invite_id: str
    org_id: str
    user_id: str
    role: OrgRole


class OwnershipTransferRequest(BaseModel):
    """Request body for POST /organizations/{org_id}/transfer-ownership."""

    new_owner_id: str = Field(..., min_length=1)


class OwnershipTransferResponse(BaseModel):
    org_id: str
    new_owner_id: str
    previous_owner_id: str
    previous_owner_role: OrgRole


class RoleDefinitionResponse(BaseModel):
    """One assignable role with its capabilities."""

    id: OrgRole
    name: str
    description: str
    permissions: list[str]


class RoleListResponse(BaseModel):
    roles: list[RoleDefinitionResponse]
