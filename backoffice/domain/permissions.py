"""Organization role hierarchy and role -> permission table.

Pure functions over the closed OrgRole enumeration. An unrecognized role
string is a configuration error: OrgRole(value) raises ValueError and the
error propagates instead of being read as "no access".
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Any, Mapping

from backoffice.domain.enums import OrgRole

# Strict total order; higher rank = more privileged.
ROLE_HIERARCHY: Mapping[OrgRole, int] = MappingProxyType(
    {
        OrgRole.OWNER: 4,
        OrgRole.ADMIN: 3,
        OrgRole.MEMBER: 2,
        OrgRole.VIEWER: 1,
    }
)

_VIEWER_PERMISSIONS = frozenset({"view_content"})
_MEMBER_PERMISSIONS = _VIEWER_PERMISSIONS | {"edit_content"}
_ADMIN_PERMISSIONS = _MEMBER_PERMISSIONS | {
    "delete_content",
    "manage_members",
    "manage_invites",
    "manage_billing",
    "view_audit",
    "manage_sessions",
}
_OWNER_PERMISSIONS = _ADMIN_PERMISSIONS | {
    "manage_org",
    "manage_roles",
    "manage_security",
}

# Each tier is a superset of the tier below it.
ROLE_PERMISSIONS: Mapping[OrgRole, frozenset[str]] = MappingProxyType(
    {
        OrgRole.OWNER: frozenset(_OWNER_PERMISSIONS),
        OrgRole.ADMIN: frozenset(_ADMIN_PERMISSIONS),
        OrgRole.MEMBER: frozenset(_MEMBER_PERMISSIONS),
        OrgRole.VIEWER: _VIEWER_PERMISSIONS,
    }
)

PERMISSION_DESCRIPTIONS: Mapping[str, str] = MappingProxyType(
    {
        "manage_org": "Manage organization settings and configuration",
        "manage_members": "Add, remove, and manage organization members",
        "manage_roles": "Change member roles and permissions",
        "manage_security": "Configure security settings, 2FA, and password policies",
        "view_audit": "View audit logs and security events",
        "manage_sessions": "View and revoke user sessions",
        "view_content": "View organization content and data",
        "edit_content": "Create and edit organization content",
        "delete_content": "Delete organization content",
        "manage_billing": "Manage billing and subscriptions",
        "manage_invites": "Invite new members to the organization",
    }
)

_ROLE_DESCRIPTIONS: Mapping[OrgRole, str] = MappingProxyType(
    {
        OrgRole.OWNER: "Full control over the organization, including security and billing",
        OrgRole.ADMIN: "Can manage members, billing and view audit logs",
        OrgRole.MEMBER: "Can view and edit organization content",
        OrgRole.VIEWER: "Can view organization content only",
    }
)


def _coerce(role: OrgRole | str) -> OrgRole:
    return role if isinstance(role, OrgRole) else OrgRole(role)


def rank_of(role: OrgRole | str) -> int:
    """Return the ordinal rank of role (higher = more privileged)."""
    return ROLE_HIERARCHY[_coerce(role)]


def permissions_of(role: OrgRole | str) -> frozenset[str]:
    """Return the capability set granted to role."""
    return ROLE_PERMISSIONS[_coerce(role)]


def role_is_sufficient(required: OrgRole | str, actual: OrgRole | str | None) -> bool:
    """Return True if actual is a role ranked at least as high as required.

    None (not a member) is never sufficient.
    """
    if actual is None:
        return False
    return rank_of(actual) >= rank_of(required)


def has_permission(role: OrgRole | str | None, capability: str) -> bool:
    """Return True if role grants the named capability."""
    if role is None:
        return False
    return capability in permissions_of(role)


def is_role_higher(a: OrgRole | str, b: OrgRole | str) -> bool:
    """Return True if a is strictly higher ranked than b."""
    return rank_of(a) > rank_of(b)


def role_display_name(role: OrgRole | str) -> str:
    return _coerce(role).value.capitalize()


def role_description(role: OrgRole | str) -> str:
    return _ROLE_DESCRIPTIONS[_coerce(role)]


def role_definitions() -> list[dict[str, Any]]:
    """Every role, highest first, with display name, description and sorted capabilities."""
    return [
        {
            "id": role,
            "name": role_display_name(role),
            "description": role_description(role),
            "permissions": sorted(permissions_of(role)),
        }
        for role in sorted(ROLE_HIERARCHY, key=rank_of, reverse=True)
    ]


def assignable_roles() -> list[OrgRole]:
    """Roles that can be assigned directly (owner requires an ownership transfer)."""
    return [OrgRole.ADMIN, OrgRole.MEMBER, OrgRole.VIEWER]


def can_assign_role(actor: OrgRole | None, role_to_assign: OrgRole) -> bool:
    """Only owners assign roles, and never the owner role itself."""
    if actor is not OrgRole.OWNER:
        return False
    return role_to_assign is not OrgRole.OWNER


def can_change_role(
    actor: OrgRole | None,
    target: OrgRole,
    new_role: OrgRole,
) -> bool:
    """Return True if actor may move a member from target to new_role.

    Args:
        actor: Role of the user performing the change.
        target: Current role of the member being changed.
        new_role: Role to assign.
    """
    if actor is not OrgRole.OWNER:
        return False
    if target is OrgRole.OWNER:
        return False
    if new_role is OrgRole.OWNER:
        return False
    return True


def can_remove_member(actor: OrgRole | None, target: OrgRole) -> bool:
    """Owners remove any non-owner; admins remove members and viewers."""
    if actor is None:
        return False
    if actor is OrgRole.OWNER:
        return target is not OrgRole.OWNER
    if actor is OrgRole.ADMIN:
        return target in (OrgRole.MEMBER, OrgRole.VIEWER)
    return False


def validate_role_transition(
    actor: OrgRole | None,
    current: OrgRole,
    new_role: OrgRole,
    *,
    is_last_owner: bool = False,
) -> str | None:
    """Return a rejection reason for a role change, or None if it is allowed."""
    if actor is None:
        return "You must be a member of the organization to change roles"
    if actor is not OrgRole.OWNER:
        return "Only owners can change member roles"
    if current is OrgRole.OWNER and is_last_owner:
        return "Cannot change the role of the last owner"
    if current is OrgRole.OWNER:
        return "Cannot change owner role directly. Use ownership transfer instead."
    if new_role is OrgRole.OWNER:
        return "Cannot promote to owner directly. Use ownership transfer instead."
    return None
