"""TTL-bounded key-value stores for recommendation responses.

Both backends expose the same async interface (get / set / delete / flush_pattern)
and swallow backend errors as cache misses. The application keeps one instance on
app.state and injects it through app.dependencies.cache.
"""

import fnmatch
import json
import logging
from datetime import datetime, timedelta
from typing import Any, Iterable

import redis.asyncio as redis

from app.config import Settings, get_settings

logger = logging.getLogger(__name__)


def recommendations_key(
    user_id: int,
    limit: int,
    exclude_ids: Iterable[int] = (),
    current_category: str | None = None,
    viewed_ids: Iterable[int] = (),
) -> str:
    excluded = ",".join(str(i) for i in sorted(set(exclude_ids)))
    viewed = ",".join(str(i) for i in sorted(set(viewed_ids)))
    return f"recs:{user_id}:{limit}:{excluded}:{current_category or ''}:{viewed}"


def user_recommendations_pattern(user_id: int) -> str:
    return f"recs:{user_id}:*"


class InMemoryTTLCache:
    """In-process cache with per-entry expiry. Used in tests and single-process runs."""

    def __init__(self, ttl_seconds: int = 300):
        self.ttl = timedelta(seconds=ttl_seconds)
        self._cache: dict[str, tuple[datetime, Any]] = {}

    async def get(self, key: str) -> Any | None:
        if key not in self._cache:
            return None
        stored_at, value = self._cache[key]
        if datetime.now() - stored_at > self.ttl:
            del self._cache[key]
            return None
        return value

    async def set(self, key: str, value: Any, ttl: int | None = None) -> bool:
        # Per-call ttl is ignored; entries share the instance ttl
        self._cache[key] = (datetime.now(), value)
        return True

    async def delete(self, key: str) -> bool:
        return self._cache.pop(key, None) is not None

    async def flush_pattern(self, pattern: str) -> int:
        keys = [k for k in self._cache if fnmatch.fnmatchcase(k, pattern)]
        for key in keys:
            del self._cache[key]
        return len(keys)

    async def close(self) -> None:
        self._cache.clear()


class RedisCache:
    """Async Redis cache storing JSON values with a TTL."""

    def __init__(self, redis_url: str, ttl_seconds: int = 300):
        self.redis_url = redis_url
        self.ttl = ttl_seconds
        self._redis: redis.Redis | None = None

    async def _get_redis(self) -> redis.Redis:
        if self._redis is None:
            self._redis = redis.from_url(self.redis_url, encoding="utf-8", decode_responses=True)
        return self._redis

    async def get(self, key: str) -> Any | None:
        try:
            client = await self._get_redis()
            value = await client.get(key)
            if value:
                return json.loads(value)
            return None
        except Exception as e:
            logger.warning(f"Cache get error for {key}: {e}")
            return None

    async def set(self, key: str, value: Any, ttl: int | None = None) -> bool:
        try:
            client = await self._get_redis()
            await client.setex(key, ttl or self.ttl, json.dumps(value))
            return True
        except Exception as e:
            logger.warning(f"Cache set error for {key}: {e}")
            return False

    async def delete(self, key: str) -> bool:
        try:
            client = await self._get_redis()
            await client.delete(key)
            return True
        except Exception as e:
            logger.warning(f"Cache delete error for {key}: {e}")
            return False

    async def flush_pattern(self, pattern: str) -> int:
        try:
            client = await self._get_redis()
            deleted = 0
            async for key in client.scan_iter(match=pattern, count=500):
                await client.delete(key)
                deleted += 1
            return deleted
        except Exception as e:
            logger.warning(f"Cache flush_pattern error for {pattern}: {e}")
            return 0

    async def close(self) -> None:
        if self._redis:
            await self._redis.aclose()


def build_cache(settings: Settings | None = None) -> InMemoryTTLCache | RedisCache:
    settings = settings or get_settings()
    if settings.redis_url:
        return RedisCache(settings.redis_url, settings.recommendation_cache_ttl)
    return InMemoryTTLCache(settings.recommendation_cache_ttl)
