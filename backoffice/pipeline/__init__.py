"""Procedure pipeline: call context, composition, access guard and audit middleware."""

from backoffice.pipeline.access_guard import (
    OrgIdSource,
    create_access_guard,
    require_admin,
    require_contributor,
    require_member,
    require_owner,
)
from backoffice.pipeline.audit import (
    AuditMiddlewareConfig,
    audit_create,
    audit_delete,
    audit_invite,
    audit_role_change,
    audit_update,
    create_audit_middleware,
)
from backoffice.pipeline.context import CallContext, read_field
from backoffice.pipeline.procedure import Middleware, Procedure, compose

__all__ = [
    "AuditMiddlewareConfig",
    "CallContext",
    "Middleware",
    "OrgIdSource",
    "Procedure",
    "audit_create",
    "audit_delete",
    "audit_invite",
    "audit_role_change",
    "audit_update",
    "compose",
    "create_access_guard",
    "create_audit_middleware",
    "read_field",
    "require_admin",
    "require_contributor",
    "require_member",
    "require_owner",
]
