"""SQLAlchemy repositories implementing the application store protocols."""

from backoffice.infrastructure.persistence.repositories.audit_log_repo import (
    AuditLogRepository,
)
from backoffice.infrastructure.persistence.repositories.organization_repo import (
    InviteRepository,
    MembershipRepository,
    OrganizationRepository,
)
from backoffice.infrastructure.persistence.repositories.plan_repo import PlanRepository
from backoffice.infrastructure.persistence.repositories.usage_repo import UsageRepository

__all__ = [
    "AuditLogRepository",
    "InviteRepository",
    "MembershipRepository",
    "OrganizationRepository",
    "PlanRepository",
    "UsageRepository",
]
