"""Application layer: interfaces, DTOs and services.

Depends only on domain and protocol definitions (DIP).
Infrastructure implements the interfaces (repositories, cache, analytics).
"""

from backoffice.application.services import RoleResolver, UsageTracker

__all__ = ["RoleResolver", "UsageTracker"]
