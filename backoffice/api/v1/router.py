"""API v1 router aggregation.

Includes all endpoint modules with consistent prefix and tags. Routes
get their collaborators from backoffice.api.v1.dependencies.
"""

from fastapi import APIRouter

from backoffice.api.v1.endpoints import (
    audit_log,
    health,
    invites,
    members,
    organizations,
    roles,
    usage,
)

api_router = APIRouter()

api_router.include_router(health.router, prefix="/health", tags=["health"])
api_router.include_router(
    organizations.router, prefix="/organizations", tags=["organizations"]
)
api_router.include_router(members.router, prefix="/organizations", tags=["members"])
api_router.include_router(invites.router, prefix="/invites", tags=["invites"])
api_router.include_router(roles.router, prefix="/roles", tags=["roles"])
api_router.include_router(audit_log.router, prefix="/audit-logs", tags=["audit-logs"])
api_router.include_router(usage.router, prefix="/usage", tags=["usage"])
