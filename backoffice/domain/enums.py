"""Domain enumerations for the back-office application.

Enums represent fixed sets of domain values (e.g. organization role).
"""

from enum import Enum


class OrgRole(str, Enum):
    """Role of a user within one organization.

    Closed set; the total order over these values lives in
    backoffice.domain.permissions.ROLE_HIERARCHY.
    """

    OWNER = "owner"
    ADMIN = "admin"
    MEMBER = "member"
    VIEWER = "viewer"

    @classmethod
    def values(cls) -> list[str]:
        """Return all valid role values as strings.

        Returns:
            List of enum value strings (e.g. for validation or serialization).
        """
        return [role.value for role in cls]


class SubscriptionStatus(str, Enum):
    """Organization subscription lifecycle status."""

    ACTIVE = "active"
    TRIALING = "trialing"
    PAST_DUE = "past_due"
    CANCELED = "canceled"


class InviteStatus(str, Enum):
    """Invitation lifecycle. Only pending invitations can be accepted or revoked."""

    PENDING = "pending"
    ACCEPTED = "accepted"
    REVOKED = "revoked"
    EXPIRED = "expired"

    @classmethod
    def values(cls) -> list[str]:
        return [status.value for status in cls]
