import asyncio

import pytest

from community_calendar.services.source_cache import SourceCache


class CountingLoader:
    def __init__(self, value, cacheable: bool = True, delay: float = 0):
        self.value = value
        self.cacheable = cacheable
        self.delay = delay
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        return self.value, self.cacheable


def test_key_format():
    assert SourceCache.key("meetup", "raleigh-hiking-club") == "meetup:raleigh-hiking-club"


@pytest.mark.asyncio
async def test_entries_are_reused_until_the_ttl_expires():
    cache = SourceCache(ttl_seconds=0.05)
    loader = CountingLoader("value")

    assert await cache.get_or_load("a:1", loader) == "value"
    assert await cache.get_or_load("a:1", loader) == "value"
    assert loader.calls == 1
    assert cache.stats() == {"entries": 1, "hits": 1, "misses": 1}

    await asyncio.sleep(0.1)
    assert len(cache) == 0
    assert await cache.get_or_load("a:1", loader) == "value"
    assert loader.calls == 2


@pytest.mark.asyncio
async def test_uncacheable_results_are_returned_but_not_stored():
    cache = SourceCache(ttl_seconds=60)
    failing = CountingLoader([], cacheable=False)

    assert await cache.get_or_load("a:1", failing) == []
    assert len(cache) == 0
    assert await cache.get_or_load("a:1", CountingLoader(["event"])) == ["event"]
    assert await cache.get_or_load("a:1", failing) == ["event"]
    assert failing.calls == 1


@pytest.mark.asyncio
async def test_concurrent_loads_of_one_key_share_a_call():
    cache = SourceCache(ttl_seconds=60)
    loader = CountingLoader("value", delay=0.02)

    results = await asyncio.gather(*(cache.get_or_load("a:1", loader) for _ in range(3)))

    assert results == ["value"] * 3
    assert loader.calls == 1


@pytest.mark.asyncio
async def test_invalidate_and_clear():
    cache = SourceCache(ttl_seconds=60)
    await cache.get_or_load("a:1", CountingLoader(1))
    await cache.get_or_load("b:2", CountingLoader(2))

    assert cache.invalidate("a:1") is True
    assert cache.invalidate("missing") is False
    assert len(cache) == 1

    cache.clear()
    assert len(cache) == 0
    reloaded = CountingLoader(3)
    assert await cache.get_or_load("b:2", reloaded) == 3
    assert reloaded.calls == 1
