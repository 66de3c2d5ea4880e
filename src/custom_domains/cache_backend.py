"""
Key-value backends for the resolution cache (Redis preferred).

The backend is chosen once at startup by ``create_cache_backend``. Without a
configured Redis URL a NullCacheBackend is returned, so call sites never
branch on whether caching is enabled.
"""

import threading
import time
from typing import Callable, Optional

import redis.asyncio as redis

from .config import CacheConfig


class CacheBackend:
    """Narrow async key-value capability: GET, SET with expiry, DEL."""

    backend: str = "none"

    async def get(self, key: str) -> Optional[str]:
        raise NotImplementedError

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        raise NotImplementedError

    async def delete(self, key: str) -> None:
        raise NotImplementedError

    async def ping(self) -> bool:
        return True

    async def close(self) -> None:
        return None


class NullCacheBackend(CacheBackend):
    """Caching disabled: every read is a miss, every write is dropped."""

    backend = "null"

    async def get(self, key: str) -> Optional[str]:
        return None

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        return None

    async def delete(self, key: str) -> None:
        return None


class MemoryCacheBackend(CacheBackend):
    """In-process TTL map for development and tests."""

    backend = "memory"

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._store: dict[str, tuple[str, float]] = {}
        self._lock = threading.Lock()

    async def get(self, key: str) -> Optional[str]:
        now = self._clock()
        with self._lock:
            hit = self._store.get(key)
            if not hit:
                return None
            value, expires_at = hit
            if now >= expires_at:
                self._store.pop(key, None)
                return None
            return value

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        expires_at = self._clock() + max(1, int(ttl_seconds))
        with self._lock:
            self._store[key] = (value, expires_at)

    async def delete(self, key: str) -> None:
        with self._lock:
            self._store.pop(key, None)

    def __len__(self) -> int:
        with self._lock:
            return len(self._store)


class RedisCacheBackend(CacheBackend):
    backend = "redis"

    def __init__(self, url: str, client: Optional[redis.Redis] = None) -> None:
        self._client = client or redis.from_url(
            url,
            decode_responses=True,
            socket_connect_timeout=1,
            socket_timeout=1,
            retry_on_timeout=False,
        )

    async def get(self, key: str) -> Optional[str]:
        return await self._client.get(key)

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        await self._client.set(key, value, ex=max(1, int(ttl_seconds)))

    async def delete(self, key: str) -> None:
        await self._client.delete(key)

    async def ping(self) -> bool:
        return bool(await self._client.ping())

    async def close(self) -> None:
        await self._client.aclose()


def create_cache_backend(config: CacheConfig) -> CacheBackend:
    """Select the backend for this process from configuration."""
    if config.redis_enabled:
        return RedisCacheBackend(config.redis_url)
    return NullCacheBackend()
