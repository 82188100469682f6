"""Redis cache for resolved organization roles (ICacheService).

Values are JSON-encoded. Every operation degrades to a miss / no-op when
Redis is unreachable: one reconnect is attempted on connection errors,
then the call gives up and logs. Call connect() at startup and
disconnect() at shutdown.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

import redis.asyncio as redis

from backoffice.core.config import Settings, get_settings

logger = logging.getLogger(__name__)

T = TypeVar("T")

_UNLINK_CHUNK = 500


class CacheService:
    """Async Redis cache with TTL support."""

    def __init__(
        self,
        redis_client: redis.Redis | None = None,
        settings: Settings | None = None,
    ) -> None:
        """Initialize cache service.

        Args:
            redis_client: Pre-built client (tests, DI); marked connected.
            settings: Connection settings; defaults to get_settings().
        """
        self.redis = redis_client
        self.settings = settings or get_settings()
        self._connected = redis_client is not None

    async def connect(self) -> None:
        """Open and ping the Redis connection; leaves the cache disabled on failure."""
        if self.redis is not None and self._connected:
            return
        password = self.settings.redis_password
        try:
            self.redis = redis.Redis(
                host=self.settings.redis_host,
                port=self.settings.redis_port,
                db=self.settings.redis_db,
                password=password.get_secret_value() if password else None,
                decode_responses=True,
                socket_connect_timeout=5,
                socket_keepalive=True,
            )
            await self.redis.ping()
            self._connected = True
            logger.info(
                "Redis cache connected: %s:%s",
                self.settings.redis_host,
                self.settings.redis_port,
            )
        except (redis.ConnectionError, redis.TimeoutError) as e:
            logger.warning("Redis connection failed: %s. Cache disabled.", e)
            self._connected = False
            self.redis = None

    async def disconnect(self) -> None:
        """Close the Redis connection."""
        if self.redis is not None:
            await self.redis.aclose()
            logger.info("Redis cache disconnected")
        self.redis = None
        self._connected = False

    async def _reconnect(self) -> bool:
        if self.redis is not None:
            try:
                await self.redis.aclose()
            except redis.RedisError:
                logger.debug("Ignoring error while closing stale Redis client")
        self.redis = None
        self._connected = False
        await self.connect()
        return self._connected

    def is_available(self) -> bool:
        """Return True if Redis is connected and usable."""
        return self._connected and self.redis is not None

    async def _run(
        self,
        description: str,
        operation: Callable[[redis.Redis], Awaitable[T]],
        default: T,
    ) -> T:
        """Run operation, retrying once after a reconnect; return default on failure."""
        if not self.is_available() or self.redis is None:
            return default
        try:
            return await operation(self.redis)
        except (redis.ConnectionError, redis.TimeoutError):
            if await self._reconnect() and self.redis is not None:
                try:
                    return await operation(self.redis)
                except redis.RedisError:
                    logger.exception("Cache %s failed after reconnect", description)
                    return default
            logger.warning("Cache %s unavailable (Redis disconnected)", description)
            return default
        except redis.RedisError:
            logger.exception("Cache %s failed", description)
            return default

    async def get(self, key: str) -> Any | None:
        """Return the JSON-decoded value for key, or None."""

        async def op(client: redis.Redis) -> Any | None:
            raw = await client.get(key)
            logger.debug("Cache %s: %s", "HIT" if raw is not None else "MISS", key)
            return json.loads(raw) if raw is not None else None

        return await self._run(f"get {key}", op, None)

    async def set(self, key: str, value: Any, ttl: int = 300) -> bool:
        """Store value under key for ttl seconds. Returns True on success."""
        serialized = json.dumps(value)

        async def op(client: redis.Redis) -> bool:
            await client.setex(key, ttl, serialized)
            return True

        return await self._run(f"set {key}", op, False)

    async def delete(self, key: str) -> bool:
        async def op(client: redis.Redis) -> bool:
            await client.delete(key)
            return True

        return await self._run(f"delete {key}", op, False)

    async def delete_pattern(self, pattern: str) -> int:
        """Delete keys matching pattern (SCAN + chunked UNLINK). Returns count deleted."""

        async def unlink(client: redis.Redis, keys: list[str]) -> int:
            async with client.pipeline(transaction=False) as pipe:
                pipe.unlink(*keys)
                results = await pipe.execute()
            return sum(int(r or 0) for r in results)

        async def op(client: redis.Redis) -> int:
            deleted = 0
            chunk: list[str] = []
            async for key in client.scan_iter(match=pattern):
                chunk.append(key)
                if len(chunk) >= _UNLINK_CHUNK:
                    deleted += await unlink(client, chunk)
                    chunk = []
            if chunk:
                deleted += await unlink(client, chunk)
            if deleted:
                logger.info("Cache INVALIDATE: %s (%s keys)", pattern, deleted)
            return deleted

        return await self._run(f"delete_pattern {pattern}", op, 0)
