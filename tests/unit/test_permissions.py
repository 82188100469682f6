"""Role hierarchy and permission table tests."""

import itertools

import pytest

from backoffice.domain.enums import OrgRole
from backoffice.domain.permissions import (
    ROLE_HIERARCHY,
    assignable_roles,
    can_assign_role,
    can_change_role,
    can_remove_member,
    has_permission,
    is_role_higher,
    permissions_of,
    rank_of,
    role_description,
    role_display_name,
    role_is_sufficient,
    validate_role_transition,
)


def test_hierarchy_is_a_strict_total_order() -> None:
    """Every role has a distinct rank: owner > admin > member > viewer."""
    assert len(set(ROLE_HIERARCHY.values())) == len(OrgRole)
    assert rank_of(OrgRole.OWNER) > rank_of(OrgRole.ADMIN) > rank_of(OrgRole.MEMBER)
    assert rank_of(OrgRole.MEMBER) > rank_of(OrgRole.VIEWER)


@pytest.mark.parametrize("role", list(OrgRole))
def test_every_role_is_sufficient_for_itself(role: OrgRole) -> None:
    assert role_is_sufficient(role, role)


def test_sufficiency_is_transitive() -> None:
    for a, b, c in itertools.product(OrgRole, repeat=3):
        if role_is_sufficient(b, a) and role_is_sufficient(c, b):
            assert role_is_sufficient(c, a)


def test_no_role_is_never_sufficient() -> None:
    for required in OrgRole:
        assert role_is_sufficient(required, None) is False


def test_string_roles_are_accepted() -> None:
    assert role_is_sufficient("member", "admin")
    assert not role_is_sufficient("admin", "viewer")


def test_unknown_role_string_raises() -> None:
    """An unrecognized role is a configuration error, not 'no access'."""
    with pytest.raises(ValueError):
        rank_of("superuser")


def test_higher_roles_hold_every_lower_permission() -> None:
    ordered = sorted(OrgRole, key=rank_of)
    for lower, higher in zip(ordered, ordered[1:]):
        assert permissions_of(lower) <= permissions_of(higher)


def test_has_permission() -> None:
    assert has_permission(OrgRole.ADMIN, "view_audit")
    assert not has_permission(OrgRole.MEMBER, "view_audit")
    assert has_permission(OrgRole.OWNER, "manage_security")
    assert not has_permission(None, "view_content")


def test_is_role_higher() -> None:
    assert is_role_higher(OrgRole.OWNER, OrgRole.ADMIN)
    assert not is_role_higher(OrgRole.ADMIN, OrgRole.ADMIN)


def test_display_name_and_description() -> None:
    assert role_display_name("viewer") == "Viewer"
    assert "view" in role_description(OrgRole.VIEWER).lower()


def test_assignable_roles_exclude_owner() -> None:
    assert OrgRole.OWNER not in assignable_roles()
    assert can_assign_role(OrgRole.OWNER, OrgRole.ADMIN)
    assert not can_assign_role(OrgRole.OWNER, OrgRole.OWNER)
    assert not can_assign_role(OrgRole.ADMIN, OrgRole.MEMBER)


def test_can_change_role_owner_only() -> None:
    assert can_change_role(OrgRole.OWNER, OrgRole.MEMBER, OrgRole.ADMIN)
    assert not can_change_role(OrgRole.ADMIN, OrgRole.MEMBER, OrgRole.VIEWER)
    assert not can_change_role(OrgRole.OWNER, OrgRole.OWNER, OrgRole.ADMIN)
    assert not can_change_role(OrgRole.OWNER, OrgRole.ADMIN, OrgRole.OWNER)


@pytest.mark.parametrize(
    ("actor", "target", "allowed"),
    [
        (OrgRole.OWNER, OrgRole.ADMIN, True),
        (OrgRole.OWNER, OrgRole.OWNER, False),
        (OrgRole.ADMIN, OrgRole.MEMBER, True),
        (OrgRole.ADMIN, OrgRole.VIEWER, True),
        (OrgRole.ADMIN, OrgRole.ADMIN, False),
        (OrgRole.MEMBER, OrgRole.VIEWER, False),
        (None, OrgRole.VIEWER, False),
    ],
)
def test_can_remove_member(actor, target, allowed) -> None:
    assert can_remove_member(actor, target) is allowed


def test_validate_role_transition_reasons() -> None:
    assert validate_role_transition(OrgRole.OWNER, OrgRole.MEMBER, OrgRole.ADMIN) is None
    assert "Only owners" in validate_role_transition(
        OrgRole.ADMIN, OrgRole.MEMBER, OrgRole.VIEWER
    )
    assert "last owner" in validate_role_transition(
        OrgRole.OWNER, OrgRole.OWNER, OrgRole.ADMIN, is_last_owner=True
    )
    assert "ownership transfer" in validate_role_transition(
        OrgRole.OWNER, OrgRole.MEMBER, OrgRole.OWNER
    )
    assert validate_role_transition(None, OrgRole.MEMBER, OrgRole.ADMIN) is not None
