"""Organization endpoints: member reads, owner-only audited updates."""

import pytest
from httpx import AsyncClient

from backoffice.domain.enums import OrgRole


@pytest.fixture(autouse=True)
def org(organization_store, membership_store):
    organization_store.add("t1", name="Acme", settings={"theme": "dark"})
    membership_store.add("t1", "owner_1", OrgRole.OWNER)
    membership_store.add("t1", "viewer_1", OrgRole.VIEWER)


async def test_viewer_reads_organization(client: AsyncClient, auth_headers) -> None:
    response = await client.get("/api/v1/organizations/t1", headers=auth_headers("viewer_1"))
    assert response.status_code == 200
    data = response.json()
    assert data["id"] == "t1"
    assert data["name"] == "Acme"
    assert data["settings"] == {"theme": "dark"}


async def test_unknown_organization_is_404(
    client: AsyncClient, auth_headers, membership_store
) -> None:
    membership_store.add("t404", "owner_1", OrgRole.OWNER)
    response = await client.get("/api/v1/organizations/t404", headers=auth_headers("owner_1"))
    assert response.status_code == 404
    assert response.json()["error"] == "RESOURCE_NOT_FOUND"


async def test_viewer_cannot_update(client: AsyncClient, auth_headers, audit_store, drain) -> None:
    response = await client.patch(
        "/api/v1/organizations/t1",
        json={"name": "Hacked"},
        headers=auth_headers("viewer_1"),
    )
    assert response.status_code == 403
    assert response.json()["details"] == {"required_role": "owner", "actual_role": "viewer"}
    await drain()
    assert audit_store.entries == []


async def test_owner_update_is_audited_with_snapshots(
    client: AsyncClient, auth_headers, audit_store, analytics, drain
) -> None:
    response = await client.patch(
        "/api/v1/organizations/t1",
        json={"name": "Acme Corp", "settings": {"locale": "en"}},
        headers={**auth_headers("owner_1"), "User-Agent": "pytest-client"},
    )
    assert response.status_code == 200
    assert response.json()["settings"] == {"theme": "dark", "locale": "en"}

    await drain()
    assert len(audit_store.entries) == 1
    entry = audit_store.entries[0]
    assert (entry.org_id, entry.actor_id, entry.action, entry.entity_type, entry.entity_id) == (
        "t1",
        "owner_1",
        "updated",
        "org",
        "t1",
    )
    assert entry.metadata["before"]["name"] == "Acme"
    assert entry.metadata["after"]["name"] == "Acme Corp"
    assert entry.metadata["user_agent"] == "pytest-client"
    assert ("owner_1", "audit.updated") in [(e[0], e[1]) for e in analytics.events]


async def test_update_is_committed_before_response(
    client: AsyncClient, auth_headers, organization_store
) -> None:
    response = await client.patch(
        "/api/v1/organizations/t1", json={"name": "Acme Corp"}, headers=auth_headers("owner_1")
    )
    assert response.status_code == 200
    assert organization_store.commits == 1


async def test_update_validation_error_is_422(client: AsyncClient, auth_headers) -> None:
    response = await client.patch(
        "/api/v1/organizations/t1", json={"name": ""}, headers=auth_headers("owner_1")
    )
    assert response.status_code == 422
    assert response.json()["error"] == "VALIDATION_ERROR"
