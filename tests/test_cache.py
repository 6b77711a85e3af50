import asyncio

from logoforge.cache import InMemoryCache, SingleFlight, brief_fingerprint
from logoforge.models import Brief


class Clock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


def test_fingerprint_normalizes_brief():
    a = Brief(prompt="Logo for  Flour & Joy", image_descriptions=["wheat", "Bread loaf"])
    b = Brief(prompt="  logo for flour & joy ", image_descriptions=["bread   loaf", "WHEAT"])
    assert brief_fingerprint(a) == brief_fingerprint(b)
    assert brief_fingerprint(a) != brief_fingerprint(Brief(prompt="Logo for Flour and Joy"))
    assert len(brief_fingerprint(a)) == 64


async def test_entries_expire():
    clock = Clock()
    cache = InMemoryCache(ttl_seconds=10, clock=clock)
    await cache.set("k", "v")
    clock.now = 9.9
    assert await cache.get("k") == "v"
    clock.now = 10.0
    assert await cache.get("k") is None
    assert cache.stats.hits == 1
    assert cache.stats.misses == 1
    assert cache.stats.expirations == 1
    assert len(cache) == 0


async def test_per_entry_ttl_overrides_default():
    clock = Clock()
    cache = InMemoryCache(ttl_seconds=100, clock=clock)
    await cache.set("short", 1, ttl=1)
    clock.now = 2
    assert await cache.get("short") is None


async def test_least_recently_used_is_evicted():
    cache = InMemoryCache(max_items=2)
    await cache.set("a", 1)
    await cache.set("b", 2)
    await cache.get("a")
    await cache.set("c", 3)
    assert await cache.get("b") is None
    assert await cache.get("a") == 1
    assert await cache.get("c") == 3
    assert cache.stats.evictions == 1


async def test_single_flight_shares_one_call():
    flight = SingleFlight()
    gate = asyncio.Event()
    calls = 0

    async def work():
        nonlocal calls
        calls += 1
        await gate.wait()
        return object()

    first = asyncio.ensure_future(flight.do("k", work))
    second = asyncio.ensure_future(flight.do("k", work))
    await asyncio.sleep(0)
    assert flight.in_flight("k")
    gate.set()
    a, b = await asyncio.gather(first, second)
    assert a is b
    assert calls == 1
    assert not flight.in_flight("k")


async def test_single_flight_different_keys_run_separately():
    flight = SingleFlight()

    async def work():
        return object()

    a, b = await asyncio.gather(flight.do("x", work), flight.do("y", work))
    assert a is not b
