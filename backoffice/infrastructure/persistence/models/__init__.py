"""Persistence models: ORM entities and mixins."""

from backoffice.infrastructure.persistence.models.audit_log import AuditLog
from backoffice.infrastructure.persistence.models.mixins import (
    CreatedAtMixin,
    CuidMixin,
    JsonType,
    OrgMixin,
    TimestampMixin,
)
from backoffice.infrastructure.persistence.models.organization import (
    Organization,
    OrganizationInvite,
    OrganizationMember,
)
from backoffice.infrastructure.persistence.models.subscription import (
    OrgSubscription,
    PlanFeature,
)
from backoffice.infrastructure.persistence.models.usage import (
    ApiUsage,
    UsageAggregation,
    UsageEvent,
)

__all__ = [
    "ApiUsage",
    "AuditLog",
    "CreatedAtMixin",
    "CuidMixin",
    "JsonType",
    "OrgMixin",
    "OrgSubscription",
    "Organization",
    "OrganizationInvite",
    "OrganizationMember",
    "PlanFeature",
    "TimestampMixin",
    "UsageAggregation",
    "UsageEvent",
]
