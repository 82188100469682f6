"""Role resolution: membership lookup with optional caching (IMembershipStore + cache).

Fail-closed: anything other than a clean hit (no row, store failure, a
role string outside OrgRole) resolves to None, which no guard accepts.
"""

from __future__ import annotations

import logging

from backoffice.application.interfaces.repositories import IMembershipStore
from backoffice.application.interfaces.services import ICacheService
from backoffice.domain.enums import OrgRole

logger = logging.getLogger(__name__)


def role_cache_key(org_id: str, user_id: str) -> str:
    return f"role:{org_id}:{user_id}"


class RoleResolver:
    """Resolves a user's role in an organization; uses cache when available."""

    def __init__(
        self,
        membership_store: IMembershipStore,
        cache: ICacheService | None = None,
        cache_ttl: int = 300,
    ) -> None:
        self.membership_store = membership_store
        self.cache = cache
        self.cache_ttl = cache_ttl

    async def resolve(self, org_id: str, user_id: str) -> OrgRole | None:
        """Return the user's role in org_id, or None if not a member or lookup failed."""
        key = role_cache_key(org_id, user_id)
        if self.cache and self.cache.is_available():
            cached = await self.cache.get(key)
            if cached is not None:
                role = self._parse(cached, org_id, user_id)
                if role is not None:
                    return role

        try:
            membership = await self.membership_store.get_membership(org_id, user_id)
        except Exception:
            logger.warning(
                "Membership lookup failed for user %s in org %s; denying",
                user_id,
                org_id,
                exc_info=True,
            )
            return None
        if membership is None:
            return None

        role = self._parse(membership.role, org_id, user_id)
        if role is not None and self.cache and self.cache.is_available():
            await self.cache.set(key, role.value, ttl=self.cache_ttl)
        return role

    async def invalidate(self, org_id: str, user_id: str) -> None:
        """Drop the cached role for one member (call after role change or removal)."""
        if self.cache and self.cache.is_available():
            await self.cache.delete(role_cache_key(org_id, user_id))

    async def invalidate_org(self, org_id: str) -> None:
        """Drop every cached role for an organization."""
        if self.cache and self.cache.is_available():
            await self.cache.delete_pattern(f"role:{org_id}:*")

    @staticmethod
    def _parse(value: object, org_id: str, user_id: str) -> OrgRole | None:
        try:
            return OrgRole(value)
        except ValueError:
            logger.error(
                "Unrecognized role %r for user %s in org %s", value, user_id, org_id
            )
            return None
