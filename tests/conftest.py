"""Shared test fixtures for the hot list service."""

import time
from typing import Any, Dict, Optional, Tuple

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from core.cache import CacheService
from core.config import Settings
from core.stores import MemoryStore, RedisStore


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeRedis:
    """Minimal async stand-in for the redis client calls RedisStore makes."""

    def __init__(self):
        self.data: Dict[str, Tuple[str, float]] = {}
        self.calls: list = []
        self.broken = False

    def _check(self, op: str) -> None:
        self.calls.append(op)
        if self.broken:
            raise RedisConnectionError("Connection refused")

    async def ping(self) -> bool:
        self._check("ping")
        return True

    async def get(self, key: str) -> Optional[str]:
        self._check("get")
        item = self.data.get(key)
        if item is None:
            return None
        value, expires_at = item
        if time.time() >= expires_at:
            del self.data[key]
            return None
        return value

    async def setex(self, key: str, ttl: int, value: str) -> bool:
        self._check("setex")
        self.data[key] = (value, time.time() + ttl)
        return True

    async def delete(self, key: str) -> int:
        self._check("delete")
        return 1 if self.data.pop(key, None) is not None else 0

    async def aclose(self) -> None:
        self.calls.append("aclose")


# ============================================================================
# Settings / Store Fixtures
# ============================================================================

@pytest.fixture
def settings():
    """Settings isolated from the environment, Redis not configured."""
    return Settings(
        _env_file=None,
        cache_ttl=60,
        cache_capacity=100,
        redis_url=None,
        redis_host=None,
        log_format="console",
    )


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def primary(clock):
    return MemoryStore(capacity=100, default_ttl=60, clock=clock)


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def secondary(settings, fake_redis):
    """Secondary store backed by the in-memory fake client."""
    return RedisStore(settings, client=fake_redis)


@pytest.fixture
def disabled_secondary(settings):
    """Secondary store with no Redis configured."""
    return RedisStore(settings)


@pytest.fixture
def cache(primary, secondary, settings):
    """Cache service with both tiers available."""
    return CacheService(primary, secondary, settings)


@pytest.fixture
def memory_only_cache(primary, disabled_secondary, settings):
    """Cache service without a secondary tier."""
    return CacheService(primary, disabled_secondary, settings)


class CountingFetch:
    """Fetch function recording how often it ran."""

    def __init__(self, value: Any = "value", error: Optional[Exception] = None, gate=None):
        self.value = value
        self.error = error
        self.gate = gate
        self.calls = 0

    async def __call__(self) -> Any:
        self.calls += 1
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        if callable(self.value):
            return self.value(self.calls)
        return self.value


@pytest.fixture
def counting_fetch():
    return CountingFetch
