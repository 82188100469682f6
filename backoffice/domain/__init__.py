"""Domain layer: enums, role hierarchy, and exceptions.

No dependencies on infrastructure or presentation. Used by the pipeline,
application and infrastructure layers.
"""

from backoffice.domain.enums import OrgRole, SubscriptionStatus
from backoffice.domain.exceptions import (
    AuthenticationException,
    AuthorizationException,
    BackofficeException,
    BadRequestException,
    ResourceNotFoundException,
    SqlNotConfiguredException,
    ValidationException,
)
from backoffice.domain.permissions import (
    ROLE_HIERARCHY,
    ROLE_PERMISSIONS,
    has_permission,
    is_role_higher,
    permissions_of,
    rank_of,
    role_is_sufficient,
)

__all__ = [
    "AuthenticationException",
    "AuthorizationException",
    "BackofficeException",
    "BadRequestException",
    "OrgRole",
    "ROLE_HIERARCHY",
    "ROLE_PERMISSIONS",
    "ResourceNotFoundException",
    "SqlNotConfiguredException",
    "SubscriptionStatus",
    "ValidationException",
    "has_permission",
    "is_role_higher",
    "permissions_of",
    "rank_of",
    "role_is_sufficient",
]
