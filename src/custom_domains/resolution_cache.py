"""
Resolution Cache: hostname -> tenant mapping with positive and negative TTLs.

The cache is an accelerator, never the source of truth. Positive entries
live long (mappings change only on publish/unpublish/domain change),
negative entries are short so a freshly verified domain becomes reachable
quickly. Any backend failure degrades to a miss or a no-op.

Values are stored as tagged JSON documents::

    {"kind": "hit", "slug": "...", "tenant_id": "..."}
    {"kind": "negative"}
"""

import json
from typing import Optional

from .audit_logger import AuditLogger
from .cache_backend import CacheBackend
from .config import CacheConfig
from .models import (
    CachedDomainMapping,
    CacheHit,
    CacheLookup,
    CacheMiss,
    CacheNegative,
)


KIND_HIT = "hit"
KIND_NEGATIVE = "negative"


class ResolutionCache:
    """Positive/negative TTL cache consulted by the public router."""

    COMPONENT = "ResolutionCache"

    def __init__(
        self,
        backend: CacheBackend,
        config: Optional[CacheConfig] = None,
        logger: Optional[AuditLogger] = None,
    ) -> None:
        config = config or CacheConfig()
        self._backend = backend
        self._key_prefix = config.key_prefix
        self._positive_ttl = config.positive_ttl_seconds
        self._negative_ttl = config.negative_ttl_seconds
        self._logger = logger

    @property
    def backend(self) -> CacheBackend:
        return self._backend

    @property
    def positive_ttl(self) -> int:
        return self._positive_ttl

    @property
    def negative_ttl(self) -> int:
        return self._negative_ttl

    def key_for(self, hostname: str) -> str:
        return f"{self._key_prefix}{hostname.lower()}"

    async def get(self, hostname: str) -> CacheLookup:
        """Return CacheHit, CacheNegative or CacheMiss for hostname."""
        try:
            raw = await self._backend.get(self.key_for(hostname))
        except Exception as e:
            self._degraded("get", hostname, e)
            return CacheMiss()
        if raw is None:
            return CacheMiss()
        return self._decode(raw)

    async def set(self, hostname: str, mapping: CachedDomainMapping) -> None:
        """Store a positive mapping with the long TTL."""
        value = json.dumps({
            "kind": KIND_HIT,
            "slug": mapping.slug,
            "tenant_id": mapping.tenant_id,
        })
        await self._write(hostname, value, self._positive_ttl)

    async def set_negative(self, hostname: str) -> None:
        """Remember that hostname resolved to nothing, with the short TTL."""
        await self._write(hostname, json.dumps({"kind": KIND_NEGATIVE}), self._negative_ttl)

    async def invalidate(self, hostname: str) -> None:
        """Drop any entry for hostname so the next lookup re-derives truth."""
        try:
            await self._backend.delete(self.key_for(hostname))
        except Exception as e:
            self._degraded("invalidate", hostname, e)
            return
        if self._logger:
            self._logger.debug(self.COMPONENT, f"Invalidated {hostname}", {"domain": hostname})

    async def _write(self, hostname: str, value: str, ttl: int) -> None:
        try:
            await self._backend.set(self.key_for(hostname), value, ttl)
        except Exception as e:
            self._degraded("set", hostname, e)

    def _decode(self, raw: str) -> CacheLookup:
        try:
            data = json.loads(raw)
        except (TypeError, ValueError):
            return CacheMiss()
        if not isinstance(data, dict):
            return CacheMiss()
        kind = data.get("kind")
        if kind == KIND_NEGATIVE:
            return CacheNegative()
        if kind == KIND_HIT and data.get("slug") and data.get("tenant_id"):
            return CacheHit(CachedDomainMapping(slug=data["slug"], tenant_id=data["tenant_id"]))
        return CacheMiss()

    def _degraded(self, operation: str, hostname: str, error: Exception) -> None:
        if self._logger:
            self._logger.warn(self.COMPONENT, f"Cache {operation} failed, passing through", {
                "domain": hostname,
                "backend": self._backend.backend,
                "error_type": type(error).__name__,
                "error_message": str(error),
            })
