"""DTOs for organizations and memberships."""

from dataclasses import dataclass
from datetime import datetime
from typing import Any

from backoffice.domain.enums import InviteStatus, OrgRole


@dataclass(frozen=True)
class MembershipResult:
    """One (organization, user) -> role row.

    role is the raw stored string; RoleResolver turns it into an OrgRole.
    """

    org_id: str
    user_id: str
    role: str
    created_at: datetime | None = None


@dataclass(frozen=True)
class MemberResult:
    """Membership with a validated role (team listings)."""

    org_id: str
    user_id: str
    role: OrgRole
    created_at: datetime | None = None


@dataclass(frozen=True)
class InviteResult:
    """Invitation to join an organization.

    token is only set for the stores' own callers (acceptance lookups and
    tests); API responses never include it.
    """

    id: str
    org_id: str
    email: str
    role: OrgRole
    invited_by: str | None
    status: InviteStatus = InviteStatus.PENDING
    expires_at: datetime | None = None
    created_at: datetime | None = None
    token: str | None = None

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at is not None and self.expires_at <= now


@dataclass(frozen=True)
class OrganizationResult:
    """Organization (tenant) read model."""

    id: str
    name: str
    slug: str
    settings: dict[str, Any]
    created_at: datetime | None = None
    updated_at: datetime | None = None
