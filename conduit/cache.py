import json
import logging

import redis.asyncio as redis

from conduit.config import settings

logger = logging.getLogger(__name__)

TAGS_KEY = "tags:all"


class CacheManager:
    """
    Cache-aside manager backed by Redis.

    Only viewer-independent data is cached (the global tag list); article
    and comment views carry per-viewer flags and are always recomputed
    from the database.

    All public methods are safe to call even when Redis is unavailable:
    read operations return None and write operations are skipped, so the
    application degrades gracefully without raising exceptions to callers.
    """

    def __init__(self) -> None:
        self._redis: redis.Redis | None = None
        self._hits: int = 0
        self._misses: int = 0

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def connect(self) -> None:
        """Open the connection pool.  Called once at application startup."""
        self._redis = redis.from_url(
            settings.REDIS_URL,
            decode_responses=True,
            socket_connect_timeout=2,
            socket_timeout=2,
        )
        try:
            await self._redis.ping()
            logger.info("Redis connected: %s", settings.REDIS_URL)
        except Exception as exc:  # pragma: no cover
            logger.warning("Redis ping failed, cache disabled: %s", exc)
            await self._redis.aclose()
            self._redis = None

    async def disconnect(self) -> None:
        """Close the connection pool.  Called once at application shutdown."""
        if self._redis:
            await self._redis.aclose()
            self._redis = None

    # ------------------------------------------------------------------
    # Core cache operations
    # ------------------------------------------------------------------

    async def get(self, key: str) -> dict | list | None:
        """Return the cached value for *key*, or None on a miss / error."""
        if not self._redis:
            self._misses += 1
            return None
        try:
            data = await self._redis.get(key)
            if data is not None:
                self._hits += 1
                return json.loads(data)
            self._misses += 1
            return None
        except Exception as exc:
            logger.debug("Cache GET error for key=%r: %s", key, exc)
            self._misses += 1
            return None

    async def set(self, key: str, value: dict | list, ttl: int | None = None) -> None:
        """
        Persist *value* under *key* with an optional TTL (seconds).

        Redis failures are logged but never propagated.
        """
        if not self._redis:
            return
        try:
            await self._redis.set(key, json.dumps(value), ex=ttl)
        except Exception as exc:
            logger.debug("Cache SET error for key=%r: %s", key, exc)

    async def delete(self, key: str) -> None:
        if not self._redis:
            return
        try:
            await self._redis.delete(key)
        except Exception as exc:
            logger.debug("Cache DELETE error for key=%r: %s", key, exc)

    # ------------------------------------------------------------------
    # Domain-level helpers
    # ------------------------------------------------------------------

    async def get_tags(self) -> list[str] | None:
        return await self.get(TAGS_KEY)

    async def set_tags(self, names: list[str]) -> None:
        await self.set(TAGS_KEY, names, ttl=settings.CACHE_TTL_TAGS)

    async def invalidate_tags(self) -> None:
        """Drop the tag list; called whenever tag reconciliation may have created tags."""
        await self.delete(TAGS_KEY)

    # ------------------------------------------------------------------
    # Observability
    # ------------------------------------------------------------------

    @property
    def stats(self) -> dict:
        """Return a snapshot of hit/miss counters for the health endpoint."""
        total = self._hits + self._misses
        return {
            "connected": self._redis is not None,
            "hits": self._hits,
            "misses": self._misses,
            "hit_rate": round(self._hits / total * 100, 1) if total > 0 else 0.0,
        }


# Module-level singleton shared across all request handlers.
cache = CacheManager()
