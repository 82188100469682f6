"""Cache infrastructure (Redis)."""

from backoffice.infrastructure.cache.redis_cache import CacheService

__all__ = ["CacheService"]
