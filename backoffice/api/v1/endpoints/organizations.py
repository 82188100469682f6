"""Organization API: read and update the organization itself.

Reads need any membership; updates need the owner role and are audited
with before/after snapshots.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Annotated, Any

from fastapi import APIRouter, Depends

from backoffice.api.v1.dependencies import (
    get_call_context,
    get_organization_store,
    get_organization_store_for_write,
)
from backoffice.application.dtos.membership import OrganizationResult
from backoffice.domain.exceptions import ResourceNotFoundException
from backoffice.infrastructure.persistence.repositories import OrganizationRepository
from backoffice.pipeline import (
    CallContext,
    OrgIdSource,
    Procedure,
    audit_update,
    require_member,
    require_owner,
)
from backoffice.shared.enums import AuditEntityType
from backoffice.schemas.organization import OrganizationResponse, OrganizationUpdate

router = APIRouter()


async def _get_organization(ctx: CallContext, input: dict[str, Any]) -> OrganizationResult:
    org = await ctx.service("organizations").get_by_id(ctx.org_id)
    if org is None:
        raise ResourceNotFoundException("organization", ctx.org_id)
    return org


async def _update_organization(
    ctx: CallContext, input: dict[str, Any]
) -> OrganizationResult:
    store = ctx.service("organizations")
    org = await store.update(
        ctx.org_id, name=input.get("name"), settings=input.get("settings")
    )
    if org is None:
        raise ResourceNotFoundException("organization", ctx.org_id)
    await store.commit()
    return org


async def _organization_before(ctx: CallContext, org_id: str) -> OrganizationResult | None:
    return await ctx.service("organizations").get_by_id(org_id)


get_organization_procedure = Procedure(_get_organization).use(
    require_member(org_id_source=OrgIdSource.PARAM)
)

update_organization_procedure = (
    Procedure(_update_organization)
    .use(require_owner(org_id_source=OrgIdSource.PARAM))
    .use(
        audit_update(
            AuditEntityType.ORG,
            entity_id_field="org_id",
            fetch_before_state=_organization_before,
        )
    )
)


@router.get("/{org_id}", response_model=OrganizationResponse)
async def get_organization(
    org_id: str,
    ctx: Annotated[CallContext, Depends(get_call_context)],
    organizations: Annotated[OrganizationRepository, Depends(get_organization_store)],
):
    """Return the organization (any member)."""
    ctx = replace(ctx, services={"organizations": organizations})
    org = await get_organization_procedure(ctx, {"org_id": org_id})
    return OrganizationResponse.model_validate(org)


@router.patch("/{org_id}", response_model=OrganizationResponse)
async def update_organization(
    org_id: str,
    body: OrganizationUpdate,
    ctx: Annotated[CallContext, Depends(get_call_context)],
    organizations: Annotated[
        OrganizationRepository, Depends(get_organization_store_for_write)
    ],
):
    """Rename the organization or merge settings (owner only; audited)."""
    ctx = replace(ctx, services={"organizations": organizations})
    org = await update_organization_procedure(
        ctx, {"org_id": org_id, **body.model_dump(exclude_unset=True)}
    )
    return OrganizationResponse.model_validate(org)
