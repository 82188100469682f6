"""Application interfaces (ports): repository and service protocols.

Define contracts for infrastructure implementations (DIP).
No runtime imports from backoffice.infrastructure.
"""

from backoffice.application.interfaces.repositories import (
    IAuditLogReader,
    IAuditLogStore,
    IInviteStore,
    IMembershipStore,
    IOrganizationStore,
    IPlanCatalog,
    IUsageStore,
)
from backoffice.application.interfaces.services import (
    IAnalyticsSink,
    ICacheService,
    IRoleResolver,
)

__all__ = [
    "IAnalyticsSink",
    "IAuditLogReader",
    "IAuditLogStore",
    "ICacheService",
    "IInviteStore",
    "IMembershipStore",
    "IOrganizationStore",
    "IPlanCatalog",
    "IRoleResolver",
    "IUsageStore",
]
