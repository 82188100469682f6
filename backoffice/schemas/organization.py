"""Organization API schemas."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class OrganizationResponse(BaseModel):
    """Organization detail response."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    slug: str
    settings: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime | None = None
    updated_at: datetime | None = None


class OrganizationUpdate(BaseModel):
    """Request body for PATCH /organizations/{org_id} (partial).

    settings is merged into the stored settings, not replaced.
    """

    name: str | None = Field(default=None, min_length=1, max_length=255)
    settings: dict[str, Any] | None = None
