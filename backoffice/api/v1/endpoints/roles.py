"""Role catalog: every organization role with its description and capabilities."""

from typing import Annotated

from fastapi import APIRouter, Depends

from backoffice.api.v1.dependencies import get_current_user_id
from backoffice.domain.permissions import role_definitions
from backoffice.schemas.member import RoleDefinitionResponse, RoleListResponse

router = APIRouter()


@router.get("", response_model=RoleListResponse)
async def list_available_roles(
    _user_id: Annotated[str, Depends(get_current_user_id)],
):
    """Roles highest first (any authenticated user)."""
    return RoleListResponse(
        roles=[RoleDefinitionResponse(**role) for role in role_definitions()]
    )
