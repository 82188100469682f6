"""Infrastructure services: stores that open their own sessions (background and app-wide use)."""

from backoffice.infrastructure.services.audit_log_service import AuditLogService
from backoffice.infrastructure.services.plan_catalog_service import PlanCatalogService
from backoffice.infrastructure.services.usage_event_service import UsageEventService

__all__ = ["AuditLogService", "PlanCatalogService", "UsageEventService"]
