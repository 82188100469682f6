"""Repository interfaces (ports) for the application layer.

Protocols define the stores the authorization, audit and metering code
consumes. Implementations live in backoffice.infrastructure; tests use
in-memory fakes. No infrastructure imports here.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime
from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from backoffice.application.dtos.audit_log import (
        AuditLogEntryCreate,
        AuditLogResult,
        AuditStats,
    )
    from backoffice.application.dtos.membership import (
        InviteResult,
        MembershipResult,
        OrganizationResult,
    )
    from backoffice.application.dtos.usage import (
        ApiCallCreate,
        ApiUsageStat,
        StorageUsageResult,
        UsageEventCreate,
        UsageEventResult,
    )
    from backoffice.domain.enums import InviteStatus, OrgRole


# Membership store interface
class IMembershipStore(Protocol):
    """(org, user) -> role rows. The guard only reads; team handlers write."""

    async def get_membership(self, org_id: str, user_id: str) -> MembershipResult | None:
        """Return the membership row, or None when the user is not a member."""

    async def list_members(self, org_id: str) -> list[MembershipResult]:
        """Return all memberships of an organization (oldest first)."""

    async def count_members(self, org_id: str) -> int:
        """Return number of members (seats)."""

    async def count_owners(self, org_id: str) -> int:
        """Return number of members holding the owner role."""

    async def update_role(
        self, org_id: str, user_id: str, role: OrgRole
    ) -> MembershipResult | None:
        """Set the member's role. Returns None if the membership does not exist."""

    async def delete_membership(self, org_id: str, user_id: str) -> bool:
        """Remove the member. Returns False if there was nothing to remove."""

    async def add_member(
        self, org_id: str, user_id: str, role: OrgRole
    ) -> MembershipResult:
        """Insert a membership row."""

    async def commit(self) -> None:
        """Make pending writes durable."""


# Organization store interface
class IOrganizationStore(Protocol):
    """Organization (tenant) reads and settings updates."""

    async def get_by_id(self, org_id: str) -> OrganizationResult | None:
        """Return organization by ID."""

    async def update(
        self,
        org_id: str,
        *,
        name: str | None = None,
        settings: dict[str, Any] | None = None,
    ) -> OrganizationResult | None:
        """Update name and/or settings. Returns None if not found."""

    async def commit(self) -> None:
        """Make pending writes durable."""


# Invite store interface
class IInviteStore(Protocol):
    """Invitations. Emails are stored and matched lower-cased."""

    async def create_invite(
        self,
        org_id: str,
        email: str,
        role: OrgRole,
        invited_by: str | None,
        expires_at: datetime,
    ) -> InviteResult:
        """Create a pending invitation with a fresh token."""

    async def get_pending_by_email(self, org_id: str, email: str) -> InviteResult | None:
        """Return the pending invitation for email in org, if any."""

    async def get_by_id(self, org_id: str, invite_id: str) -> InviteResult | None:
        """Return an invitation of org by id (any status)."""

    async def get_by_token(self, token: str) -> InviteResult | None:
        """Return the invitation carrying token (any status), token included."""

    async def list_pending(self, org_id: str) -> list[InviteResult]:
        """Return pending invitations of org, newest first."""

    async def set_status(
        self, invite_id: str, status: InviteStatus
    ) -> InviteResult | None:
        """Move an invitation to status (accepted also stamps accepted_at)."""

    async def commit(self) -> None:
        """Make pending writes durable."""


# Audit log store interfaces
class IAuditLogStore(Protocol):
    """Append-only audit writer. There is no update or delete."""

    async def create(self, entry: AuditLogEntryCreate) -> AuditLogResult:
        """Insert one audit record."""


class IAuditLogReader(Protocol):
    """Audit trail queries for admin views."""

    async def list(
        self,
        org_id: str,
        *,
        skip: int = 0,
        limit: int = 50,
        entity_type: str | None = None,
        action: str | None = None,
        actor_id: str | None = None,
        from_timestamp: datetime | None = None,
        to_timestamp: datetime | None = None,
    ) -> list[AuditLogResult]:
        """Return audit records for org, newest first, with optional filters."""

    async def count(
        self,
        org_id: str,
        *,
        entity_type: str | None = None,
        action: str | None = None,
        actor_id: str | None = None,
        from_timestamp: datetime | None = None,
        to_timestamp: datetime | None = None,
    ) -> int:
        """Return number of audit records matching the same filters as list()."""

    async def stats(self, org_id: str, since: datetime) -> AuditStats:
        """Return counts by action, entity type and actor since the given time."""


# Usage store interface
class IUsageStore(Protocol):
    """Append/query store for usage events and API calls."""

    async def create_event(self, data: UsageEventCreate) -> None:
        """Insert one usage event."""

    async def create_events(self, data: Sequence[UsageEventCreate]) -> None:
        """Insert many usage events in one write."""

    async def create_api_call(self, data: ApiCallCreate) -> None:
        """Insert one API call row."""

    async def list_events(
        self,
        org_id: str,
        start: datetime,
        end: datetime,
        event_type: str | None = None,
    ) -> list[UsageEventResult]:
        """Return events with start <= created_at <= end, newest first."""

    async def count_events(
        self, org_id: str, event_type: str, since: datetime | None = None
    ) -> int:
        """Return number of events of one type (optionally since a time)."""

    async def sum_quantity(
        self, org_id: str, event_type: str, since: datetime | None = None
    ) -> int:
        """Return summed quantity of events of one type."""

    async def count_api_calls(self, org_id: str, since: datetime | None = None) -> int:
        """Return number of API calls recorded for org."""

    async def api_usage_stats(
        self, org_id: str, start: datetime, end: datetime
    ) -> list[ApiUsageStat]:
        """Return per (endpoint, method) call statistics in the window."""

    async def active_users_count(self, org_id: str, start: datetime, end: datetime) -> int:
        """Return distinct users with user_active events in [start, end)."""

    async def storage_usage(self, org_id: str) -> StorageUsageResult:
        """Return total bytes, file count and last update from storage events."""

    async def aggregate_daily(self, start: datetime, end: datetime) -> int:
        """Roll events in [start, end) into daily aggregation rows. Returns rows written."""


# Plan catalog interface
class IPlanCatalog(Protocol):
    """Subscription plan lookups; read-only."""

    async def get_active_plan(self, org_id: str) -> str | None:
        """Return plan name of the org's active subscription, or None."""

    async def get_feature_limit(self, plan_name: str, metric_key: str) -> int | None:
        """Return the plan's limit for metric_key (-1 unlimited), or None if undefined."""

    async def list_feature_limits(self, plan_name: str) -> dict[str, int]:
        """Return every limit defined for the plan."""
