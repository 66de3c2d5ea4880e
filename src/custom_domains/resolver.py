"""
Host resolution for the public router.

Maps an incoming Host header to the tenant that serves it, consulting the
resolution cache first and the tenant store on a miss. Concurrent misses for
the same hostname share one upstream lookup.
"""

import asyncio
import functools
from typing import Optional

from .audit_logger import AuditLogger
from .enums import DomainState
from .models import CachedDomainMapping, CacheHit, CacheNegative
from .resolution_cache import ResolutionCache
from .tenant_store import TenantStore


def normalize_host(host: str) -> str:
    """Lowercase a Host header value and drop its port and trailing dot."""
    hostname = host.strip().lower()
    if hostname.startswith("["):
        return hostname
    hostname = hostname.rsplit(":", 1)[0] if ":" in hostname else hostname
    return hostname.rstrip(".")


class DomainResolver:
    """Resolves custom hostnames to tenants."""

    COMPONENT = "DomainResolver"

    def __init__(
        self,
        cache: ResolutionCache,
        tenant_store: TenantStore,
        logger: Optional[AuditLogger] = None,
    ) -> None:
        self._cache = cache
        self._tenant_store = tenant_store
        self._logger = logger
        self._inflight: dict[str, asyncio.Task] = {}

    async def resolve(self, host: str) -> Optional[CachedDomainMapping]:
        """
        Return the mapping for host, or None if no published tenant serves it.

        Raises:
            Whatever the tenant store raises; nothing is cached in that case.
        """
        hostname = normalize_host(host)
        if not hostname:
            return None

        cached = await self._cache.get(hostname)
        if isinstance(cached, CacheHit):
            return cached.mapping
        if isinstance(cached, CacheNegative):
            return None

        task = self._inflight.get(hostname)
        if task is None:
            task = asyncio.ensure_future(self._lookup(hostname))
            self._inflight[hostname] = task
            task.add_done_callback(functools.partial(self._finish_lookup, hostname))
        return await asyncio.shield(task)

    def _finish_lookup(self, hostname: str, task: asyncio.Task) -> None:
        self._inflight.pop(hostname, None)
        # All callers may be gone by now; consume the exception.
        if not task.cancelled():
            task.exception()

    async def _lookup(self, hostname: str) -> Optional[CachedDomainMapping]:
        record = await self._tenant_store.get_tenant_by_hostname(hostname)
        if record is None or record.domain_state != DomainState.VERIFIED or not record.published:
            await self._cache.set_negative(hostname)
            if self._logger:
                self._logger.debug(self.COMPONENT, f"No tenant serves {hostname}", {"domain": hostname})
            return None

        mapping = CachedDomainMapping(slug=record.slug, tenant_id=record.tenant_id)
        await self._cache.set(hostname, mapping)
        if self._logger:
            self._logger.debug(self.COMPONENT, f"Resolved {hostname}", {
                "domain": hostname,
                "tenant_id": record.tenant_id,
            })
        return mapping
