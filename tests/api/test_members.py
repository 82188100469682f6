"""Member endpoints: listing, owner-only role changes, removals and invitations."""

import pytest
from httpx import AsyncClient

from backoffice.domain.enums import InviteStatus, OrgRole


@pytest.fixture(autouse=True)
def team(membership_store):
    membership_store.add("t1", "owner_1", OrgRole.OWNER)
    membership_store.add("t1", "admin_1", OrgRole.ADMIN)
    membership_store.add("t1", "member_1", OrgRole.MEMBER)
    membership_store.add("t1", "viewer_1", OrgRole.VIEWER)


async def test_list_members(client: AsyncClient, auth_headers) -> None:
    response = await client.get("/api/v1/organizations/t1/members", headers=auth_headers("viewer_1"))
    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 4
    assert {m["user_id"]: m["role"] for m in data["items"]}["admin_1"] == "admin"


async def test_owner_changes_role(
    client: AsyncClient, auth_headers, membership_store, audit_store, drain
) -> None:
    response = await client.patch(
        "/api/v1/organizations/t1/members/member_1/role",
        json={"role": "admin"},
        headers=auth_headers("owner_1"),
    )
    assert response.status_code == 200
    assert response.json() == {
        "org_id": "t1",
        "user_id": "member_1",
        "old_role": "member",
        "role": "admin",
    }
    assert membership_store.roles[("t1", "member_1")] == "admin"

    await drain()
    entry = audit_store.entries[0]
    assert entry.action == "role_changed"
    assert entry.entity_id == "member_1"
    assert entry.metadata["old_role"] == "member"
    assert entry.metadata["new_role"] == "admin"


async def test_admin_cannot_change_roles(client: AsyncClient, auth_headers) -> None:
    response = await client.patch(
        "/api/v1/organizations/t1/members/member_1/role",
        json={"role": "viewer"},
        headers=auth_headers("admin_1"),
    )
    assert response.status_code == 403


async def test_last_owner_cannot_be_demoted(client: AsyncClient, auth_headers, audit_store, drain) -> None:
    response = await client.patch(
        "/api/v1/organizations/t1/members/owner_1/role",
        json={"role": "admin"},
        headers=auth_headers("owner_1"),
    )
    assert response.status_code == 403
    assert "last owner" in response.json()["message"]
    await drain()
    assert audit_store.entries == []


async def test_cannot_promote_to_owner(client: AsyncClient, auth_headers) -> None:
    response = await client.patch(
        "/api/v1/organizations/t1/members/admin_1/role",
        json={"role": "owner"},
        headers=auth_headers("owner_1"),
    )
    assert response.status_code == 403
    assert "ownership transfer" in response.json()["message"]


async def test_change_role_of_unknown_member_is_404(client: AsyncClient, auth_headers) -> None:
    response = await client.patch(
        "/api/v1/organizations/t1/members/ghost/role",
        json={"role": "viewer"},
        headers=auth_headers("owner_1"),
    )
    assert response.status_code == 404


async def test_invalid_role_is_422(client: AsyncClient, auth_headers) -> None:
    response = await client.patch(
        "/api/v1/organizations/t1/members/member_1/role",
        json={"role": "superuser"},
        headers=auth_headers("owner_1"),
    )
    assert response.status_code == 422


async def test_admin_removes_viewer(
    client: AsyncClient, auth_headers, membership_store, audit_store, drain
) -> None:
    response = await client.delete(
        "/api/v1/organizations/t1/members/viewer_1", headers=auth_headers("admin_1")
    )
    assert response.status_code == 200
    assert response.json()["removed"] is True
    assert ("t1", "viewer_1") not in membership_store.roles

    await drain()
    entry = audit_store.entries[0]
    assert (entry.action, entry.entity_type, entry.entity_id) == ("deleted", "member", "viewer_1")
    assert entry.metadata["role"] == "viewer"


async def test_admin_cannot_remove_admin_or_owner(client: AsyncClient, auth_headers, membership_store) -> None:
    membership_store.add("t1", "admin_2", OrgRole.ADMIN)
    for target in ("admin_2", "owner_1"):
        response = await client.delete(
            f"/api/v1/organizations/t1/members/{target}", headers=auth_headers("admin_1")
        )
        assert response.status_code == 403
    assert ("t1", "admin_2") in membership_store.roles


async def test_member_cannot_remove(client: AsyncClient, auth_headers) -> None:
    response = await client.delete(
        "/api/v1/organizations/t1/members/viewer_1", headers=auth_headers("member_1")
    )
    assert response.status_code == 403


async def test_cannot_remove_self(client: AsyncClient, auth_headers) -> None:
    response = await client.delete(
        "/api/v1/organizations/t1/members/admin_1", headers=auth_headers("admin_1")
    )
    assert response.status_code == 400
    assert response.json()["details"] == {"field": "user_id"}


async def test_admin_invites(client: AsyncClient, auth_headers, invite_store, audit_store, drain) -> None:
    response = await client.post(
        "/api/v1/organizations/t1/invites",
        json={"email": "new.hire@example.com", "role": "viewer"},
        headers=auth_headers("admin_1"),
    )
    assert response.status_code == 201
    data = response.json()
    assert data["email"] == "new.hire@example.com"
    assert data["invited_by"] == "admin_1"
    assert len(invite_store.invites) == 1

    await drain()
    entry = audit_store.entries[0]
    assert (entry.action, entry.entity_type, entry.entity_id) == ("invited", "invite", data["id"])
    assert entry.metadata["email"] == "new.hire@example.com"
    assert entry.metadata["role"] == "viewer"


async def test_cannot_invite_owner(client: AsyncClient, auth_headers, invite_store) -> None:
    response = await client.post(
        "/api/v1/organizations/t1/invites",
        json={"email": "boss@example.com", "role": "owner"},
        headers=auth_headers("owner_1"),
    )
    assert response.status_code == 400
    assert invite_store.invites == []


async def test_member_cannot_invite(client: AsyncClient, auth_headers) -> None:
    response = await client.post(
        "/api/v1/organizations/t1/invites",
        json={"email": "friend@example.com"},
        headers=auth_headers("member_1"),
    )
    assert response.status_code == 403


async def test_role_change_is_committed_before_response(
    client: AsyncClient, auth_headers, membership_store
) -> None:
    response = await client.patch(
        "/api/v1/organizations/t1/members/member_1/role",
        json={"role": "viewer"},
        headers=auth_headers("owner_1"),
    )
    assert response.status_code == 200
    assert membership_store.commits == 1


async def test_removal_is_committed_before_response(
    client: AsyncClient, auth_headers, membership_store
) -> None:
    response = await client.delete(
        "/api/v1/organizations/t1/members/viewer_1", headers=auth_headers("owner_1")
    )
    assert response.status_code == 200
    assert membership_store.commits == 1


async def test_rejected_role_change_is_not_committed(
    client: AsyncClient, auth_headers, membership_store
) -> None:
    response = await client.patch(
        "/api/v1/organizations/t1/members/owner_1/role",
        json={"role": "admin"},
        headers=auth_headers("owner_1"),
    )
    assert response.status_code == 403
    assert membership_store.commits == 0


async def test_duplicate_pending_invite_is_400(
    client: AsyncClient, auth_headers, invite_store
) -> None:
    invite_store.add("t1", "new.hire@example.com")
    response = await client.post(
        "/api/v1/organizations/t1/invites",
        json={"email": "New.Hire@example.com"},
        headers=auth_headers("admin_1"),
    )
    assert response.status_code == 400
    assert response.json()["details"] == {"field": "email"}
    assert len(invite_store.invites) == 1


async def test_invite_expires_after_ttl(client: AsyncClient, auth_headers, invite_store) -> None:
    response = await client.post(
        "/api/v1/organizations/t1/invites",
        json={"email": "new.hire@example.com"},
        headers=auth_headers("admin_1"),
    )
    assert response.status_code == 201
    data = response.json()
    assert data["status"] == "pending"
    assert data["expires_at"] is not None
    assert "token" not in data
    assert invite_store.commits == 1


async def test_list_invites_shows_pending_without_tokens(
    client: AsyncClient, auth_headers, invite_store
) -> None:
    invite_store.add("t1", "a@example.com")
    invite_store.add("t1", "b@example.com", status=InviteStatus.REVOKED)
    invite_store.add("t2", "c@example.com")

    response = await client.get(
        "/api/v1/organizations/t1/invites", headers=auth_headers("admin_1")
    )
    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 1
    assert data["items"][0]["email"] == "a@example.com"
    assert "token" not in data["items"][0]


async def test_member_cannot_list_invites(client: AsyncClient, auth_headers) -> None:
    response = await client.get(
        "/api/v1/organizations/t1/invites", headers=auth_headers("member_1")
    )
    assert response.status_code == 403


async def test_admin_revokes_invite(
    client: AsyncClient, auth_headers, invite_store, audit_store, drain
) -> None:
    invite = invite_store.add("t1", "a@example.com", OrgRole.VIEWER)
    response = await client.delete(
        f"/api/v1/organizations/t1/invites/{invite.id}", headers=auth_headers("admin_1")
    )
    assert response.status_code == 200
    assert response.json() == {"id": invite.id, "org_id": "t1", "status": "revoked"}
    assert invite_store.invites[0].status is InviteStatus.REVOKED
    assert invite_store.commits == 1

    await drain()
    entry = audit_store.entries[0]
    assert (entry.action, entry.entity_type, entry.entity_id) == ("cancelled", "invite", invite.id)
    assert entry.metadata["email"] == "a@example.com"
    assert entry.metadata["role"] == "viewer"


async def test_revoke_non_pending_invite_is_400(
    client: AsyncClient, auth_headers, invite_store, audit_store, drain
) -> None:
    invite = invite_store.add("t1", "a@example.com", status=InviteStatus.ACCEPTED)
    response = await client.delete(
        f"/api/v1/organizations/t1/invites/{invite.id}", headers=auth_headers("admin_1")
    )
    assert response.status_code == 400
    await drain()
    assert audit_store.entries == []


async def test_revoke_invite_of_other_org_is_404(
    client: AsyncClient, auth_headers, invite_store
) -> None:
    invite = invite_store.add("t2", "a@example.com")
    response = await client.delete(
        f"/api/v1/organizations/t1/invites/{invite.id}", headers=auth_headers("admin_1")
    )
    assert response.status_code == 404
    assert invite_store.invites[0].status is InviteStatus.PENDING


async def test_owner_transfers_ownership(
    client: AsyncClient, auth_headers, membership_store, audit_store, drain
) -> None:
    response = await client.post(
        "/api/v1/organizations/t1/transfer-ownership",
        json={"new_owner_id": "admin_1"},
        headers=auth_headers("owner_1"),
    )
    assert response.status_code == 200
    assert response.json() == {
        "org_id": "t1",
        "new_owner_id": "admin_1",
        "previous_owner_id": "owner_1",
        "previous_owner_role": "admin",
    }
    assert membership_store.roles[("t1", "admin_1")] == "owner"
    assert membership_store.roles[("t1", "owner_1")] == "admin"
    assert membership_store.commits == 1

    await drain()
    entry = audit_store.entries[0]
    assert (entry.action, entry.entity_id, entry.actor_id) == ("role_changed", "admin_1", "owner_1")
    assert entry.metadata["old_role"] == "admin"
    assert entry.metadata["new_role"] == "owner"


@pytest.mark.parametrize("target", ["owner_1", "ghost"])
async def test_transfer_to_self_or_non_member_is_400(
    client: AsyncClient, auth_headers, membership_store, target
) -> None:
    response = await client.post(
        "/api/v1/organizations/t1/transfer-ownership",
        json={"new_owner_id": target},
        headers=auth_headers("owner_1"),
    )
    assert response.status_code == 400
    assert membership_store.roles[("t1", "owner_1")] == "owner"
    assert membership_store.commits == 0


async def test_admin_cannot_transfer_ownership(
    client: AsyncClient, auth_headers, membership_store
) -> None:
    response = await client.post(
        "/api/v1/organizations/t1/transfer-ownership",
        json={"new_owner_id": "admin_1"},
        headers=auth_headers("admin_1"),
    )
    assert response.status_code == 403
    assert membership_store.roles[("t1", "admin_1")] == "admin"
