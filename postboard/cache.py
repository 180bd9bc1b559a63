import json
import logging

import redis.asyncio as redis

from postboard.config import settings

logger = logging.getLogger(__name__)

LIST_KEY = "posts:list"

# Session.info key holding cache keys to evict again once the write commits.
STALE_KEYS = "postboard_stale_cache_keys"


def detail_key(post_id: str) -> str:
    return f"posts:detail:{post_id}"


class CacheManager:
    """
    Cache-aside manager backed by Redis.

    Every public method tolerates a missing or failing Redis: reads return
    None and writes are skipped, so the post feed keeps working straight
    from the database.
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
            logger.warning("Redis ping failed, serving posts uncached: %s", exc)
            await self._redis.aclose()
            self._redis = None

    async def disconnect(self) -> None:
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
        except Exception as exc:
            logger.debug("Cache GET error for key=%r: %s", key, exc)
            self._misses += 1
            return None
        if data is None:
            self._misses += 1
            return None
        self._hits += 1
        return json.loads(data)

    async def set(self, key: str, value: dict | list, ttl: int | None = None) -> None:
        if not self._redis:
            return
        try:
            await self._redis.set(key, json.dumps(value, default=str), ex=ttl)
        except Exception as exc:
            logger.debug("Cache SET error for key=%r: %s", key, exc)

    async def delete(self, *keys: str) -> None:
        if not self._redis or not keys:
            return
        try:
            await self._redis.delete(*keys)
        except Exception as exc:
            logger.debug("Cache DELETE error for keys=%r: %s", keys, exc)

    # ------------------------------------------------------------------
    # Post invalidation
    # ------------------------------------------------------------------

    async def invalidate_post(self, session, post_id: str | None = None) -> None:
        """
        Drop the feed entry and, when *post_id* is given, that post's
        detail entry.  Called after every successful write.

        The write is not committed yet, so a concurrent read can still
        re-cache the old document.  The keys are therefore also recorded on
        *session* and evicted again by ``evict_after_commit``.
        """
        keys = [LIST_KEY]
        if post_id is not None:
            keys.append(detail_key(post_id))
        session.info.setdefault(STALE_KEYS, set()).update(keys)
        await self.delete(*keys)

    async def evict_after_commit(self, session) -> None:
        """Second eviction of every key a committed write invalidated."""
        keys = session.info.pop(STALE_KEYS, None)
        if keys:
            await self.delete(*sorted(keys))

    @property
    def stats(self) -> dict:
        total = self._hits + self._misses
        return {
            "hits": self._hits,
            "misses": self._misses,
            "hit_rate": round(self._hits / total * 100, 1) if total > 0 else 0.0,
        }


# Module-level singleton shared across all request handlers.
cache = CacheManager()
