"""Service interfaces (ports) for the application layer."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from backoffice.domain.enums import OrgRole


class ICacheService(Protocol):
    """Minimal cache protocol for role caching (DIP)."""

    def is_available(self) -> bool:
        """Return True if cache is connected."""

    async def get(self, key: str) -> Any:
        """Return cached value or None."""

    async def set(self, key: str, value: Any, ttl: int = 300) -> bool:
        """Store value with TTL. Returns True on success."""

    async def delete(self, key: str) -> bool:
        """Delete key. Returns True on success."""

    async def delete_pattern(self, pattern: str) -> int:
        """Delete keys matching pattern. Returns count deleted."""


class IRoleResolver(Protocol):
    """Resolves a caller's role inside an organization."""

    async def resolve(self, org_id: str, user_id: str) -> OrgRole | None:
        """Return the role, or None when the user is not a member or lookup failed."""


class IAnalyticsSink(Protocol):
    """Product analytics capture (fire-and-forget)."""

    async def capture(
        self, distinct_id: str, event: str, properties: dict[str, Any]
    ) -> None:
        """Send one event. May raise; callers run it in the background."""
