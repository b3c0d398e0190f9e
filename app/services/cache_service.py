"""
Cache Service: key/value store with TTL.

Backs three concerns:
1. Idempotency replay records (``idemp:...``)
2. Refresh-token records (``refresh:...``)
3. Cached GET responses (``fares:...``)

Supports:
1. Redis (preferred for production, shared across API and worker processes)
2. In-memory fallback (for development/testing)

Usage:
    cache = get_cache()
    await cache.set("fares:list:abc", data, ttl=300)
    data = await cache.get("fares:list:abc")
"""
import json
import hashlib
from typing import Any, Optional, Dict
from datetime import datetime, timedelta, timezone
from abc import ABC, abstractmethod
import asyncio
import logging

import redis.asyncio as redis

from app.config import settings

logger = logging.getLogger(__name__)


class CacheBackend(ABC):
    """Abstract cache backend interface."""

    @abstractmethod
    async def get(self, key: str) -> Optional[Any]:
        """Get value from cache."""
        pass

    @abstractmethod
    async def set(self, key: str, value: Any, ttl: int = 3600) -> bool:
        """Set value in cache with TTL (seconds)."""
        pass

    @abstractmethod
    async def delete(self, key: str) -> bool:
        """Delete key from cache."""
        pass

    @abstractmethod
    async def clear_pattern(self, pattern: str) -> int:
        """Clear all keys matching pattern."""
        pass

    async def set_if_absent(self, key: str, value: Any, ttl: int = 3600) -> bool:
        """
        Store ``value`` only if ``key`` is not present.

        Backends with an atomic primitive override this. The default is a
        plain check-then-set and two callers may both succeed.
        """
        if await self.get(key) is not None:
            return False
        return await self.set(key, value, ttl)

    async def pop(self, key: str) -> Optional[Any]:
        """Return and delete the value at ``key``."""
        value = await self.get(key)
        if value is not None:
            await self.delete(key)
        return value

    async def incr(self, key: str, amount: int = 1, ttl: int = 3600) -> int:
        current = await self.get(key) or 0
        value = int(current) + amount
        await self.set(key, value, ttl)
        return value

    async def ping(self) -> bool:
        return True


class InMemoryCache(CacheBackend):
    """
    In-memory cache for development/fallback.

    Not shared between processes: a standalone worker cannot see entries
    written by the API process.
    """

    def __init__(self):
        self._cache: Dict[str, tuple[Any, datetime]] = {}
        self._lock = asyncio.Lock()

    def _live(self, key: str) -> Optional[Any]:
        if key in self._cache:
            value, expires_at = self._cache[key]
            if expires_at > datetime.now(timezone.utc):
                return value
            del self._cache[key]
        return None

    async def get(self, key: str) -> Optional[Any]:
        async with self._lock:
            return self._live(key)

    async def set(self, key: str, value: Any, ttl: int = 3600) -> bool:
        async with self._lock:
            expires_at = datetime.now(timezone.utc) + timedelta(seconds=ttl)
            self._cache[key] = (value, expires_at)
            return True

    async def set_if_absent(self, key: str, value: Any, ttl: int = 3600) -> bool:
        async with self._lock:
            if self._live(key) is not None:
                return False
            self._cache[key] = (value, datetime.now(timezone.utc) + timedelta(seconds=ttl))
            return True

    async def pop(self, key: str) -> Optional[Any]:
        async with self._lock:
            value = self._live(key)
            self._cache.pop(key, None)
            return value

    async def incr(self, key: str, amount: int = 1, ttl: int = 3600) -> int:
        async with self._lock:
            current = self._live(key)
            value = int(current or 0) + amount
            if current is None:
                expires_at = datetime.now(timezone.utc) + timedelta(seconds=ttl)
            else:
                expires_at = self._cache[key][1]
            self._cache[key] = (value, expires_at)
            return value

    async def delete(self, key: str) -> bool:
        async with self._lock:
            if key in self._cache:
                del self._cache[key]
                return True
            return False

    async def clear_pattern(self, pattern: str) -> int:
        """Clear keys matching pattern (simple prefix match)."""
        async with self._lock:
            prefix = pattern.rstrip('*')
            keys_to_delete = [k for k in self._cache.keys() if k.startswith(prefix)]
            for key in keys_to_delete:
                del self._cache[key]
            return len(keys_to_delete)

    async def cleanup_expired(self) -> int:
        """Remove expired entries. Call periodically to prevent memory bloat."""
        async with self._lock:
            now = datetime.now(timezone.utc)
            expired_keys = [
                k for k, (_, expires_at) in self._cache.items()
                if expires_at <= now
            ]
            for key in expired_keys:
                del self._cache[key]
            return len(expired_keys)

    def __len__(self) -> int:
        return len(self._cache)


class RedisCache(CacheBackend):
    """Redis cache backend for production. Values are stored as JSON."""

    def __init__(self, redis_url: str):
        self._redis_url = redis_url
        self._client = None

    async def _get_client(self):
        if self._client is None:
            self._client = redis.from_url(self._redis_url, decode_responses=True)
        return self._client

    async def get(self, key: str) -> Optional[Any]:
        try:
            client = await self._get_client()
            value = await client.get(key)
            if value:
                return json.loads(value)
            return None
        except redis.RedisError as e:
            logger.warning(f"Cache get failed for {key}: {e}")
            return None

    async def set(self, key: str, value: Any, ttl: int = 3600) -> bool:
        try:
            client = await self._get_client()
            await client.set(key, json.dumps(value, default=str), ex=ttl)
            return True
        except redis.RedisError as e:
            logger.warning(f"Cache set failed for {key}: {e}")
            return False

    async def set_if_absent(self, key: str, value: Any, ttl: int = 3600) -> bool:
        try:
            client = await self._get_client()
            created = await client.set(key, json.dumps(value, default=str), ex=ttl, nx=True)
            return bool(created)
        except redis.RedisError as e:
            logger.warning(f"Atomic set failed for {key}, falling back to check-then-set: {e}")
            return await super().set_if_absent(key, value, ttl)

    async def pop(self, key: str) -> Optional[Any]:
        try:
            client = await self._get_client()
            value = await client.getdel(key)
            return json.loads(value) if value else None
        except redis.RedisError as e:
            logger.warning(f"Cache pop failed for {key}: {e}")
            return None

    async def incr(self, key: str, amount: int = 1, ttl: int = 3600) -> int:
        try:
            client = await self._get_client()
            value = await client.incrby(key, amount)
            if value == amount:
                await client.expire(key, ttl)
            return int(value)
        except redis.RedisError as e:
            logger.warning(f"Cache incr failed for {key}: {e}")
            return 0

    async def delete(self, key: str) -> bool:
        try:
            client = await self._get_client()
            await client.delete(key)
            return True
        except redis.RedisError as e:
            logger.warning(f"Cache delete failed for {key}: {e}")
            return False

    async def clear_pattern(self, pattern: str) -> int:
        try:
            client = await self._get_client()
            cursor = 0
            deleted = 0
            while True:
                cursor, keys = await client.scan(cursor, match=pattern, count=100)
                if keys:
                    await client.delete(*keys)
                    deleted += len(keys)
                if cursor == 0:
                    break
            return deleted
        except redis.RedisError as e:
            logger.warning(f"Cache clear failed for {pattern}: {e}")
            return 0

    async def ping(self) -> bool:
        try:
            client = await self._get_client()
            return bool(await client.ping())
        except redis.RedisError:
            return False

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None


class CacheService:
    """
    Namespaced cache with hit/miss accounting.

    Cache keys follow the format ``{namespace}:{key}``, e.g.
    ``logistics:idemp:POST:/api/v1/orders:abc123``.
    """

    def __init__(self, backend: CacheBackend, namespace: str = "logistics"):
        self._backend = backend
        self._namespace = namespace
        self._hits = 0
        self._misses = 0

    @property
    def backend(self) -> CacheBackend:
        return self._backend

    def _make_key(self, key: str) -> str:
        return f"{self._namespace}:{key}"

    async def get(self, key: str) -> Optional[Any]:
        value = await self._backend.get(self._make_key(key))
        if value is None:
            self._misses += 1
        else:
            self._hits += 1
        return value

    async def set(self, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        return await self._backend.set(self._make_key(key), value, ttl or settings.CACHE_DEFAULT_TTL)

    async def set_if_absent(self, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        return await self._backend.set_if_absent(
            self._make_key(key), value, ttl or settings.CACHE_DEFAULT_TTL
        )

    async def pop(self, key: str) -> Optional[Any]:
        return await self._backend.pop(self._make_key(key))

    async def delete(self, key: str) -> bool:
        return await self._backend.delete(self._make_key(key))

    async def incr(self, key: str, amount: int = 1, ttl: Optional[int] = None) -> int:
        return await self._backend.incr(self._make_key(key), amount, ttl or settings.CACHE_DEFAULT_TTL)

    async def clear_pattern(self, pattern: str) -> int:
        return await self._backend.clear_pattern(self._make_key(pattern))

    async def clear_all(self) -> int:
        return await self._backend.clear_pattern(f"{self._namespace}:*")

    async def ping(self) -> bool:
        return await self._backend.ping()

    def stats(self) -> dict:
        total = self._hits + self._misses
        return {
            "backend": type(self._backend).__name__,
            "hits": self._hits,
            "misses": self._misses,
            "hitRate": round(self._hits / total, 4) if total else 0.0,
        }

    @staticmethod
    def hash_params(params: dict) -> str:
        """Create hash from query parameters."""
        sorted_params = sorted((k, str(v)) for k, v in params.items() if v is not None)
        param_str = json.dumps(sorted_params, sort_keys=True)
        return hashlib.md5(param_str.encode()).hexdigest()[:12]


# Singleton cache instance
_cache_instance: Optional[CacheService] = None


def create_cache_backend() -> CacheBackend:
    """Pick the backend from settings: Redis when configured, else in-memory."""
    if settings.REDIS_URL and settings.CACHE_ENABLED:
        logger.info("Cache initialized with Redis backend")
        return RedisCache(settings.REDIS_URL)
    logger.info("Cache initialized with in-memory backend")
    return InMemoryCache()


def get_cache() -> CacheService:
    """Get the cache service singleton."""
    global _cache_instance

    if _cache_instance is None:
        _cache_instance = CacheService(create_cache_backend(), namespace=settings.CACHE_PREFIX)

    return _cache_instance
