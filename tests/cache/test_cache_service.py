"""Tests for the two-tier cache orchestrator."""

import asyncio

import pytest

from core.cache import CacheService
from core.exceptions import FetchError
from core.stores import MemoryStore, TierStatus


async def _settle():
    """Let every pending task run up to its next real suspension."""
    for _ in range(5):
        await asyncio.sleep(0)


class TestLookupOrder:

    @pytest.mark.asyncio
    async def test_miss_fetches_and_populates_both_tiers(self, cache, counting_fetch):
        fetch = counting_fetch(value={"items": [1]})

        value = await cache.resolve("k", fetch)

        assert value == {"items": [1]}
        assert fetch.calls == 1
        assert cache.primary.get("k").value == {"items": [1]}
        assert (await cache.secondary.get("k")).value == {"items": [1]}

    @pytest.mark.asyncio
    async def test_primary_hit_skips_fetch(self, cache, counting_fetch):
        fetch = counting_fetch()
        await cache.resolve("k", fetch)
        await cache.resolve("k", fetch)
        assert fetch.calls == 1

    @pytest.mark.asyncio
    async def test_secondary_hit_populates_primary(self, cache, counting_fetch):
        await cache.secondary.set("k", "from-redis", 60)
        fetch = counting_fetch()

        value = await cache.resolve("k", fetch)

        assert value == "from-redis"
        assert fetch.calls == 0
        assert cache.primary.get("k").value == "from-redis"

    @pytest.mark.asyncio
    async def test_falsy_values_are_cached(self, memory_only_cache, counting_fetch):
        fetch = counting_fetch(value=[])
        await memory_only_cache.resolve("k", fetch)
        assert await memory_only_cache.resolve("k", fetch) == []
        assert fetch.calls == 1

    @pytest.mark.asyncio
    async def test_entry_refetched_after_ttl(self, memory_only_cache, clock, counting_fetch):
        fetch = counting_fetch(value=lambda n: f"v{n}")

        assert await memory_only_cache.resolve("k", fetch, ttl=10) == "v1"
        clock.advance(9)
        assert await memory_only_cache.resolve("k", fetch, ttl=10) == "v1"
        clock.advance(1)
        assert await memory_only_cache.resolve("k", fetch, ttl=10) == "v2"
        assert fetch.calls == 2

    @pytest.mark.asyncio
    async def test_default_ttl_from_settings(self, memory_only_cache, clock, counting_fetch):
        fetch = counting_fetch()
        await memory_only_cache.resolve("k", fetch)
        assert memory_only_cache.primary.get("k").entry.ttl == 60


class TestSingleFlight:

    @pytest.mark.asyncio
    async def test_concurrent_misses_share_one_fetch(self, cache, counting_fetch):
        gate = asyncio.Event()
        fetch = counting_fetch(value="shared", gate=gate)

        tasks = [asyncio.create_task(cache.resolve("k", fetch)) for _ in range(10)]
        await _settle()
        assert cache.in_flight == 1

        gate.set()
        results = await asyncio.gather(*tasks)

        assert results == ["shared"] * 10
        assert fetch.calls == 1
        assert cache.in_flight == 0
        assert cache.stats()["coalesced_waits"] == 9

    @pytest.mark.asyncio
    async def test_different_keys_fetch_independently(self, cache, counting_fetch):
        gate = asyncio.Event()
        fetch = counting_fetch(gate=gate)

        tasks = [asyncio.create_task(cache.resolve(key, fetch)) for key in ("a", "b")]
        await _settle()
        gate.set()
        await asyncio.gather(*tasks)

        assert fetch.calls == 2

    @pytest.mark.asyncio
    async def test_failure_reaches_every_waiter(self, cache, counting_fetch):
        gate = asyncio.Event()
        fetch = counting_fetch(error=FetchError("https://example.com", "boom"), gate=gate)

        tasks = [asyncio.create_task(cache.resolve("k", fetch)) for _ in range(3)]
        await _settle()
        gate.set()
        results = await asyncio.gather(*tasks, return_exceptions=True)

        assert fetch.calls == 1
        assert all(isinstance(r, FetchError) for r in results)
        assert cache.in_flight == 0

    @pytest.mark.asyncio
    async def test_cancelled_waiter_does_not_cancel_fetch(self, cache, counting_fetch):
        gate = asyncio.Event()
        fetch = counting_fetch(value="done", gate=gate)

        first = asyncio.create_task(cache.resolve("k", fetch))
        second = asyncio.create_task(cache.resolve("k", fetch))
        await _settle()

        first.cancel()
        await _settle()
        gate.set()

        assert await second == "done"
        assert first.cancelled()
        assert cache.primary.get("k").value == "done"
        assert fetch.calls == 1


class TestFailures:

    @pytest.mark.asyncio
    async def test_failure_is_not_cached(self, cache, counting_fetch):
        failing = counting_fetch(error=FetchError("https://example.com", "boom"))
        with pytest.raises(FetchError):
            await cache.resolve("k", failing)

        assert not cache.primary.get("k").is_hit
        assert not (await cache.secondary.get("k")).is_hit

        working = counting_fetch(value="recovered")
        assert await cache.resolve("k", working) == "recovered"
        assert working.calls == 1

    @pytest.mark.asyncio
    async def test_unexpected_exception_is_wrapped(self, cache, counting_fetch):
        fetch = counting_fetch(error=RuntimeError("parser exploded"))

        with pytest.raises(FetchError) as exc_info:
            await cache.resolve("k", fetch)

        assert "RuntimeError" in exc_info.value.message
        assert isinstance(exc_info.value.__cause__, RuntimeError)
        assert exc_info.value.url is None
        assert exc_info.value.cache_key == "k"

    @pytest.mark.asyncio
    async def test_upstream_error_keeps_url_and_gains_key(self, cache, counting_fetch):
        fetch = counting_fetch(error=FetchError("https://example.com/hot", "boom", status_code=502))

        with pytest.raises(FetchError) as exc_info:
            await cache.resolve("k", fetch)

        assert exc_info.value.url == "https://example.com/hot"
        assert exc_info.value.cache_key == "k"
        assert exc_info.value.status_code == 502

    @pytest.mark.asyncio
    async def test_secondary_outage_is_transparent(self, cache, fake_redis, counting_fetch):
        fake_redis.broken = True
        fetch = counting_fetch(value="fresh")

        assert await cache.resolve("k", fetch) == "fresh"
        assert await cache.resolve("k", fetch) == "fresh"
        assert fetch.calls == 1
        assert cache.secondary.stats.errors >= 1

    @pytest.mark.asyncio
    async def test_secondary_outage_then_recovery(self, cache, fake_redis, counting_fetch):
        fake_redis.broken = True
        await cache.resolve("k", counting_fetch(value="v"))
        fake_redis.broken = False

        assert (await cache.secondary.get("k")).status is TierStatus.MISS


class TestBypass:

    @pytest.mark.asyncio
    async def test_bypass_ignores_cached_value(self, cache, counting_fetch):
        fetch = counting_fetch(value=lambda n: f"v{n}")
        await cache.resolve("k", fetch)

        assert await cache.resolve("k", fetch, bypass=True) == "v2"
        assert fetch.calls == 2

    @pytest.mark.asyncio
    async def test_bypass_refreshes_both_tiers(self, cache, counting_fetch):
        fetch = counting_fetch(value=lambda n: f"v{n}")
        await cache.resolve("k", fetch)
        await cache.resolve("k", fetch, bypass=True)

        assert await cache.resolve("k", fetch) == "v2"
        assert (await cache.secondary.get("k")).value == "v2"

    @pytest.mark.asyncio
    async def test_concurrent_bypasses_are_independent(self, cache, counting_fetch):
        gate = asyncio.Event()
        fetch = counting_fetch(gate=gate)

        tasks = [asyncio.create_task(cache.resolve("k", fetch, bypass=True)) for _ in range(4)]
        await _settle()
        gate.set()
        await asyncio.gather(*tasks)

        assert fetch.calls == 4
        assert cache.stats()["coalesced_waits"] == 0

    @pytest.mark.asyncio
    async def test_bypass_does_not_join_in_flight_fetch(self, cache, counting_fetch):
        gate = asyncio.Event()
        slow = counting_fetch(value="slow", gate=gate)
        fast = counting_fetch(value="fast")

        pending = asyncio.create_task(cache.resolve("k", slow))
        await _settle()

        assert await cache.resolve("k", fast, bypass=True) == "fast"
        assert cache.in_flight == 1

        gate.set()
        assert await pending == "slow"

    @pytest.mark.asyncio
    async def test_bypass_failure_keeps_previous_entry(self, cache, counting_fetch):
        await cache.resolve("k", counting_fetch(value="old"))
        failing = counting_fetch(error=FetchError("https://example.com", "boom"))

        with pytest.raises(FetchError):
            await cache.resolve("k", failing, bypass=True)

        assert cache.primary.get("k").value == "old"


class TestInvalidateAndStats:

    @pytest.mark.asyncio
    async def test_invalidate_drops_both_tiers(self, cache, counting_fetch):
        fetch = counting_fetch()
        await cache.resolve("k", fetch)

        await cache.invalidate("k")

        assert not cache.primary.get("k").is_hit
        assert not (await cache.secondary.get("k")).is_hit
        await cache.resolve("k", fetch)
        assert fetch.calls == 2

    @pytest.mark.asyncio
    async def test_stats_shape(self, cache, counting_fetch):
        fetch = counting_fetch()
        await cache.resolve("k", fetch)
        await cache.resolve("k", fetch)

        stats = cache.stats()

        assert stats["upstream_fetches"] == 1
        assert stats["in_flight"] == 0
        assert stats["primary"]["hits"] == 1
        assert stats["primary"]["size"] == 1
        assert stats["primary"]["capacity"] == 100
        assert stats["secondary"]["enabled"] is True

    @pytest.mark.asyncio
    async def test_cold_miss_counts_one_primary_miss(self, cache, counting_fetch):
        await cache.resolve("k", counting_fetch())

        stats = cache.stats()

        assert stats["primary"]["misses"] == 1
        assert stats["primary"]["hits"] == 0
        assert stats["secondary"]["misses"] == 1


class TestCapacity:

    @pytest.mark.asyncio
    async def test_oldest_key_evicted_and_refetched(self, disabled_secondary, settings, clock,
                                                    counting_fetch):
        cache = CacheService(MemoryStore(capacity=2, clock=clock), disabled_secondary, settings)
        fetches = {key: counting_fetch(value=key) for key in ("A", "B", "C")}

        for key in ("A", "B", "C"):
            assert await cache.resolve(key, fetches[key]) == key

        assert await cache.resolve("B", fetches["B"]) == "B"
        assert await cache.resolve("C", fetches["C"]) == "C"
        assert fetches["B"].calls == 1
        assert fetches["C"].calls == 1

        assert await cache.resolve("A", fetches["A"]) == "A"
        assert fetches["A"].calls == 2
        assert cache.stats()["primary"]["evictions"] >= 1
