"""
Tests for the cache backends and the positive/negative resolution cache.

TTL expiry is driven by a fake clock on MemoryCacheBackend.
"""

import asyncio

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from custom_domains.cache_backend import (
    MemoryCacheBackend,
    NullCacheBackend,
    RedisCacheBackend,
    create_cache_backend,
)
from custom_domains.config import CacheConfig
from custom_domains.exceptions import ConfigurationError
from custom_domains.models import CachedDomainMapping, CacheHit, CacheMiss, CacheNegative
from custom_domains.resolution_cache import ResolutionCache


MAPPING = CachedDomainMapping(slug="acme", tenant_id="tenant-1")


class FakeClock:

    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class BrokenBackend(NullCacheBackend):
    """Every operation fails as if the server were down."""

    backend = "broken"

    async def get(self, key):
        raise ConnectionError("cache down")

    async def set(self, key, value, ttl_seconds):
        raise ConnectionError("cache down")

    async def delete(self, key):
        raise ConnectionError("cache down")


class FakeRedis:
    """Records calls made through the redis.asyncio client interface."""

    def __init__(self) -> None:
        self.data: dict[str, str] = {}
        self.calls: list[tuple] = []
        self.closed = False

    async def get(self, key):
        self.calls.append(("get", key))
        return self.data.get(key)

    async def set(self, key, value, ex=None):
        self.calls.append(("set", key, value, ex))
        self.data[key] = value

    async def delete(self, key):
        self.calls.append(("delete", key))
        self.data.pop(key, None)

    async def ping(self):
        return True

    async def aclose(self):
        self.closed = True


def memory_cache(clock: FakeClock) -> ResolutionCache:
    return ResolutionCache(MemoryCacheBackend(clock=clock))


hostname_strategy = st.builds(
    lambda sub, sld: f"{sub}.{sld}.com",
    st.text(alphabet="abcdefghijklmnopqrstuvwxyz0123456789", min_size=1, max_size=10),
    st.text(alphabet="abcdefghijklmnopqrstuvwxyz", min_size=1, max_size=10),
)


class TestPositiveEntries:

    @given(hostname=hostname_strategy, age=st.floats(min_value=0, max_value=3599))
    @settings(max_examples=50)
    def test_hit_before_ttl(self, hostname: str, age: float) -> None:
        clock = FakeClock()
        cache = memory_cache(clock)

        async def run():
            await cache.set(hostname, MAPPING)
            clock.advance(age)
            return await cache.get(hostname)

        assert asyncio.run(run()) == CacheHit(MAPPING)

    def test_miss_after_ttl(self) -> None:
        clock = FakeClock()
        cache = memory_cache(clock)

        async def run():
            await cache.set("acme.com", MAPPING)
            clock.advance(3600)
            return await cache.get("acme.com")

        assert isinstance(asyncio.run(run()), CacheMiss)

    def test_unknown_hostname_is_miss(self) -> None:
        cache = memory_cache(FakeClock())

        assert isinstance(asyncio.run(cache.get("nowhere.com")), CacheMiss)

    def test_lookup_is_case_insensitive(self) -> None:
        cache = memory_cache(FakeClock())

        async def run():
            await cache.set("Acme.COM", MAPPING)
            return await cache.get("acme.com")

        assert asyncio.run(run()) == CacheHit(MAPPING)


class TestNegativeEntries:

    def test_negative_is_distinct_from_miss(self) -> None:
        cache = memory_cache(FakeClock())

        async def run():
            await cache.set_negative("acme.com")
            return await cache.get("acme.com")

        result = asyncio.run(run())
        assert isinstance(result, CacheNegative)
        assert not isinstance(result, CacheMiss)

    def test_negative_expires_before_positive_of_same_age(self) -> None:
        clock = FakeClock()
        cache = memory_cache(clock)

        async def run():
            await cache.set("positive.com", MAPPING)
            await cache.set_negative("negative.com")
            clock.advance(60)
            return await cache.get("positive.com"), await cache.get("negative.com")

        positive, negative = asyncio.run(run())
        assert positive == CacheHit(MAPPING)
        assert isinstance(negative, CacheMiss)

    def test_negative_hit_within_ttl(self) -> None:
        clock = FakeClock()
        cache = memory_cache(clock)

        async def run():
            await cache.set_negative("acme.com")
            clock.advance(59)
            return await cache.get("acme.com")

        assert isinstance(asyncio.run(run()), CacheNegative)


class TestInvalidation:

    @given(hostname=hostname_strategy, negative=st.booleans())
    @settings(max_examples=50)
    def test_invalidate_makes_next_get_a_miss(self, hostname: str, negative: bool) -> None:
        cache = memory_cache(FakeClock())

        async def run():
            if negative:
                await cache.set_negative(hostname)
            else:
                await cache.set(hostname, MAPPING)
            await cache.invalidate(hostname)
            return await cache.get(hostname)

        assert isinstance(asyncio.run(run()), CacheMiss)

    def test_invalidate_unknown_hostname(self) -> None:
        cache = memory_cache(FakeClock())

        asyncio.run(cache.invalidate("nowhere.com"))


class TestDegradation:
    """Backend failures degrade to a miss and never raise."""

    def test_broken_backend(self) -> None:
        cache = ResolutionCache(BrokenBackend())

        async def run():
            await cache.set("acme.com", MAPPING)
            await cache.set_negative("acme.com")
            await cache.invalidate("acme.com")
            return await cache.get("acme.com")

        assert isinstance(asyncio.run(run()), CacheMiss)

    @pytest.mark.parametrize("raw", [
        "not json",
        "[1, 2]",
        '{"kind": "other"}',
        '{"kind": "hit", "slug": "acme"}',
        '"hit"',
    ])
    def test_corrupt_values_are_misses(self, raw: str) -> None:
        backend = MemoryCacheBackend()
        cache = ResolutionCache(backend)

        async def run():
            await backend.set(cache.key_for("acme.com"), raw, 60)
            return await cache.get("acme.com")

        assert isinstance(asyncio.run(run()), CacheMiss)

    def test_null_backend_never_hits(self) -> None:
        cache = ResolutionCache(NullCacheBackend())

        async def run():
            await cache.set("acme.com", MAPPING)
            return await cache.get("acme.com")

        assert isinstance(asyncio.run(run()), CacheMiss)


class TestBackends:

    def test_keys_use_prefix(self) -> None:
        backend = MemoryCacheBackend()
        cache = ResolutionCache(backend, CacheConfig(key_prefix="custom:"))

        asyncio.run(cache.set("acme.com", MAPPING))

        assert asyncio.run(backend.get("custom:acme.com")) is not None
        assert cache.key_for("acme.com") == "custom:acme.com"

    def test_redis_backend_passes_ttl(self) -> None:
        fake = FakeRedis()
        cache = ResolutionCache(RedisCacheBackend("redis://unused", client=fake))

        async def run():
            await cache.set("acme.com", MAPPING)
            await cache.set_negative("gone.com")
            hit = await cache.get("acme.com")
            await cache.invalidate("acme.com")
            await cache.backend.close()
            return hit

        assert asyncio.run(run()) == CacheHit(MAPPING)
        sets = [c for c in fake.calls if c[0] == "set"]
        assert sets[0][1] == "domain:acme.com"
        assert sets[0][3] == 3600
        assert sets[1][1] == "domain:gone.com"
        assert sets[1][3] == 60
        assert ("delete", "domain:acme.com") in fake.calls
        assert fake.closed

    def test_memory_backend_expiry_drops_entry(self) -> None:
        clock = FakeClock()
        backend = MemoryCacheBackend(clock=clock)

        async def run():
            await backend.set("k", "v", 10)
            clock.advance(10)
            return await backend.get("k")

        assert asyncio.run(run()) is None
        assert len(backend) == 0

    def test_backend_selection(self) -> None:
        assert isinstance(create_cache_backend(CacheConfig()), NullCacheBackend)
        assert isinstance(create_cache_backend(CacheConfig(redis_url="http://nope")), NullCacheBackend)
        assert isinstance(
            create_cache_backend(CacheConfig(redis_url="redis://localhost:6379/0")),
            RedisCacheBackend,
        )

    @given(
        positive=st.integers(min_value=1, max_value=10_000),
        negative=st.integers(min_value=0, max_value=10_000),
    )
    @settings(max_examples=100)
    def test_negative_ttl_must_be_shorter(self, positive: int, negative: int) -> None:
        if negative >= positive:
            with pytest.raises(ConfigurationError):
                CacheConfig(positive_ttl_seconds=positive, negative_ttl_seconds=negative)
        else:
            config = CacheConfig(positive_ttl_seconds=positive, negative_ttl_seconds=negative)
            assert config.negative_ttl_seconds < config.positive_ttl_seconds
