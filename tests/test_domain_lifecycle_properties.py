"""
End-to-end lifecycle of an apex custom domain.

acme.com is connected, shown its DNS records, checked before and after
propagation, verified, and finally served by the public resolver.
"""

import asyncio

from custom_domains.cache_backend import MemoryCacheBackend
from custom_domains.config import SystemConfig
from custom_domains.enums import DnsRecordType, DomainState
from custom_domains.models import CachedDomainMapping, CacheHit, CacheMiss, CacheNegative
from custom_domains.resolution_cache import ResolutionCache
from custom_domains.resolver import DomainResolver
from custom_domains.service import CustomDomainService
from custom_domains.tenant_store import InMemoryTenantStore

from registrar_fakes import FakeRegistrarAPI, registrar_config, txt_challenges


def test_apex_domain_lifecycle() -> None:
    api = FakeRegistrarAPI()
    api.challenges["acme.com"] = txt_challenges("acme.com", 2)
    store = InMemoryTenantStore()
    cache = ResolutionCache(MemoryCacheBackend())
    resolver = DomainResolver(cache, store)

    async def scenario():
        async with api.client() as registrar:
            service = CustomDomainService.from_config(
                SystemConfig(registrar=registrar_config()),
                registrar=registrar,
                cache=cache,
                tenant_store=store,
            )
            await store.create_tenant("tenant-acme", "acme")

            # Not connected yet: resolves to nothing and is cached negative
            assert await resolver.resolve("acme.com") is None
            assert isinstance(await cache.get("acme.com"), CacheNegative)

            status = await service.connect_domain("tenant-acme", "acme.com")
            assert status.state == DomainState.PENDING
            assert set(api.domains) == {"acme.com", "www.acme.com"}

            record = await store.get_tenant("tenant-acme")
            instructions = service.verifier.build_dns_instructions(
                "acme.com", True, record.verification_data
            )
            assert [(r.type, r.name) for r in instructions] == [
                (DnsRecordType.TXT, "_vercel.acme.com"),
                (DnsRecordType.TXT, "_vercel1.acme.com"),
                (DnsRecordType.A, "@"),
                (DnsRecordType.CNAME, "www"),
            ]
            assert instructions == status.records

            before = await service.check_and_instructions("acme.com", True, record.verification_data)
            assert before.check.verified is False
            assert before.check.errors

            # Pending domains are not served
            assert await resolver.resolve("acme.com") is None

            api.propagated.add("acme.com")
            after = await service.verify_tenant_domain("tenant-acme")
            assert after.verified is True
            assert after.errors == []
            assert (await store.get_tenant("tenant-acme")).domain_state == DomainState.VERIFIED

            # Invalidation dropped the negative entry; the next lookup repopulates
            assert isinstance(await cache.get("acme.com"), CacheMiss)
            lookups = store.lookups
            mapping = await resolver.resolve("acme.com")
            assert mapping == CachedDomainMapping(slug="acme", tenant_id="tenant-acme")
            assert store.lookups == lookups + 1
            assert await cache.get("acme.com") == CacheHit(mapping)

            await service.disconnect_domain("tenant-acme")
            assert api.domains == {}
            assert await resolver.resolve("acme.com") is None

    asyncio.run(scenario())
