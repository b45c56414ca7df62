"""
Application cache for derived read models.

Handles:
- TTL-bound JSON values in an in-process store or in Redis
- Regex-based invalidation that reports how many keys were removed
- Hit/miss/write/delete statistics
"""

import json
import logging
import re
import threading
import time
from typing import Any, Callable, Dict, List, Optional, Pattern, Tuple, Union

import redis

from app.core.config import settings
from app.infrastructure.cache.redis_client import RedisClient

logger = logging.getLogger(__name__)

PatternLike = Union[str, Pattern]


class CacheBackend:
    """Minimal key/value interface the cache needs from a store."""

    def get(self, key: str) -> Optional[str]:
        raise NotImplementedError

    def set(self, key: str, value: str, ttl_seconds: Optional[int]) -> None:
        raise NotImplementedError

    def delete(self, keys: List[str]) -> int:
        raise NotImplementedError

    def keys(self) -> List[str]:
        raise NotImplementedError

    def clear(self) -> None:
        raise NotImplementedError

    def ping(self) -> bool:
        return True


class MemoryCacheBackend(CacheBackend):
    """Process-local store; expired entries are dropped on access."""

    def __init__(self, clock: Callable[[], float] = time.time):
        self._clock = clock
        self._data: Dict[str, Tuple[str, Optional[float]]] = {}
        self._lock = threading.Lock()

    def _live(self, key: str, now: float) -> bool:
        entry = self._data.get(key)
        if entry is None:
            return False
        expires_at = entry[1]
        if expires_at is not None and expires_at <= now:
            del self._data[key]
            return False
        return True

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            if not self._live(key, self._clock()):
                return None
            return self._data[key][0]

    def set(self, key: str, value: str, ttl_seconds: Optional[int]) -> None:
        expires_at = self._clock() + ttl_seconds if ttl_seconds else None
        with self._lock:
            self._data[key] = (value, expires_at)

    def delete(self, keys: List[str]) -> int:
        now = self._clock()
        removed = 0
        with self._lock:
            for key in keys:
                if self._live(key, now):
                    del self._data[key]
                    removed += 1
        return removed

    def keys(self) -> List[str]:
        now = self._clock()
        with self._lock:
            return [k for k in list(self._data) if self._live(k, now)]

    def clear(self) -> None:
        with self._lock:
            self._data.clear()


class RedisCacheBackend(CacheBackend):
    """Redis store; every key is namespaced under ``prefix:``."""

    def __init__(self, client: RedisClient, prefix: str):
        self.client = client
        self.prefix = f"{prefix}:" if prefix else ""

    def _full(self, key: str) -> str:
        return f"{self.prefix}{key}"

    def get(self, key: str) -> Optional[str]:
        return self.client.connect().get(self._full(key))

    def set(self, key: str, value: str, ttl_seconds: Optional[int]) -> None:
        self.client.connect().set(self._full(key), value, ex=ttl_seconds or None)

    def delete(self, keys: List[str]) -> int:
        if not keys:
            return 0
        return int(self.client.connect().delete(*[self._full(k) for k in keys]))

    def keys(self) -> List[str]:
        conn = self.client.connect()
        start = len(self.prefix)
        return [k[start:] for k in conn.scan_iter(match=f"{self.prefix}*", count=500)]

    def clear(self) -> None:
        self.delete(self.keys())

    def ping(self) -> bool:
        return self.client.ping()


class AppCache:
    """JSON cache over a pluggable backend."""

    def __init__(self, backend: Optional[CacheBackend] = None, default_ttl: Optional[int] = None):
        self.backend = backend or MemoryCacheBackend()
        self.default_ttl = settings.CACHE_DEFAULT_TTL_SECONDS if default_ttl is None else default_ttl
        self.cache_stats = {
            "hits": 0,
            "misses": 0,
            "writes": 0,
            "deletes": 0,
            "invalidations": 0,
            "errors": 0
        }

    def get(self, key: str) -> Optional[Any]:
        try:
            raw = self.backend.get(key)
        except redis.RedisError as e:
            self.cache_stats["errors"] += 1
            logger.error(f"Cache read failed for '{key}': {e}")
            return None
        if raw is None:
            self.cache_stats["misses"] += 1
            return None
        self.cache_stats["hits"] += 1
        return json.loads(raw)

    def set(self, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        try:
            self.backend.set(key, json.dumps(value, default=str), self.default_ttl if ttl is None else ttl)
        except redis.RedisError as e:
            self.cache_stats["errors"] += 1
            logger.error(f"Cache write failed for '{key}': {e}")
            return False
        self.cache_stats["writes"] += 1
        return True

    async def get_or_set(self, key: str, loader: Callable[[], Any], ttl: Optional[int] = None) -> Any:
        """Return the cached value or await ``loader()`` and cache its result."""
        cached = self.get(key)
        if cached is not None:
            return cached
        value = await loader()
        if value is not None:
            self.set(key, value, ttl)
        return value

    def delete(self, key: str) -> int:
        removed = self.backend.delete([key])
        self.cache_stats["deletes"] += removed
        return removed

    def invalidate(self, pattern: PatternLike) -> int:
        """Remove every key matching ``pattern``; returns the number removed."""
        regex = re.compile(pattern) if isinstance(pattern, str) else pattern
        matching = [k for k in self.backend.keys() if regex.search(k)]
        removed = self.backend.delete(matching) if matching else 0
        self.cache_stats["invalidations"] += 1
        self.cache_stats["deletes"] += removed
        if removed:
            logger.debug(f"Invalidated {removed} cache keys matching '{regex.pattern}'")
        return removed

    def clear(self) -> None:
        self.backend.clear()

    def is_healthy(self) -> bool:
        return self.backend.ping()

    def get_stats(self) -> Dict[str, Any]:
        lookups = self.cache_stats["hits"] + self.cache_stats["misses"]
        return {
            **self.cache_stats,
            "backend": type(self.backend).__name__,
            "keys": len(self.backend.keys()),
            "hit_rate": round(self.cache_stats["hits"] / lookups, 4) if lookups else 0.0,
        }


def build_app_cache() -> AppCache:
    if settings.CACHE_BACKEND.lower() == "redis":
        logger.info("Using Redis cache backend")
        return AppCache(RedisCacheBackend(RedisClient(), settings.CACHE_KEY_PREFIX))
    return AppCache(MemoryCacheBackend())


app_cache = build_app_cache()
