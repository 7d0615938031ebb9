"""Cache tiers: bounded in-memory Primary store and optional Redis Secondary store.

Both tiers answer lookups with a tagged ``TierResult`` so that callers can
tell "not cached" (MISS) apart from "tier could not be asked" (UNAVAILABLE).
"""

import asyncio
import json
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

import redis.asyncio as redis
from redis.exceptions import RedisError

from core.config import Settings
from core.exceptions import SecondaryUnavailable
from core.logging import get_logger, log_cache_operation

logger = get_logger(__name__)


class TierStatus(str, Enum):
    HIT = "hit"
    MISS = "miss"
    UNAVAILABLE = "unavailable"


@dataclass
class CacheEntry:
    """A cached value with its insertion time and time-to-live (seconds)."""

    value: Any
    inserted_at: float
    ttl: float

    @property
    def expires_at(self) -> float:
        return self.inserted_at + self.ttl

    def is_expired(self, now: float) -> bool:
        """Check if the entry has expired at ``now``."""
        return now >= self.expires_at


@dataclass(frozen=True)
class TierResult:
    """Outcome of a tier lookup."""

    status: TierStatus
    entry: Optional[CacheEntry] = None

    @property
    def is_hit(self) -> bool:
        return self.status is TierStatus.HIT

    @property
    def value(self) -> Any:
        return self.entry.value if self.entry is not None else None


MISS = TierResult(TierStatus.MISS)
UNAVAILABLE = TierResult(TierStatus.UNAVAILABLE)


@dataclass
class CacheStats:
    """Statistics for cache performance monitoring."""

    hits: int = 0
    misses: int = 0
    errors: int = 0
    evictions: int = 0

    @property
    def total_requests(self) -> int:
        """Total number of cache requests."""
        return self.hits + self.misses

    @property
    def hit_rate(self) -> float:
        """Calculate cache hit rate."""
        if self.total_requests == 0:
            return 0.0
        return self.hits / self.total_requests

    def record_hit(self) -> None:
        self.hits += 1

    def record_miss(self) -> None:
        self.misses += 1

    def record_error(self) -> None:
        self.errors += 1

    def reset(self) -> None:
        """Reset all statistics."""
        self.hits = 0
        self.misses = 0
        self.errors = 0
        self.evictions = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "hits": self.hits,
            "misses": self.misses,
            "errors": self.errors,
            "evictions": self.evictions,
            "hit_rate": round(self.hit_rate, 4),
        }


# ============================================================================
# Primary Store (in-memory)
# ============================================================================

class MemoryStore:
    """Bounded, TTL-based in-memory store.

    Entries are kept in insertion order. When the store is full and a new key
    arrives, the oldest inserted entry is evicted (FIFO). Overwriting a key
    moves it to the newest position. Expired entries are purged when read.
    """

    def __init__(
        self,
        capacity: int = 100,
        default_ttl: float = 3600,
        clock: Callable[[], float] = time.monotonic,
    ):
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self.capacity = capacity
        self.default_ttl = default_ttl
        self._clock = clock
        self._entries: "OrderedDict[str, CacheEntry]" = OrderedDict()
        self._lock = threading.Lock()
        self._stats = CacheStats()

    @property
    def stats(self) -> CacheStats:
        return self._stats

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, key: str) -> TierResult:
        """Look up a key, purging it if its TTL has elapsed."""
        return self._lookup(key, record=True)

    def peek(self, key: str) -> TierResult:
        """Like ``get`` but leaves the hit/miss counters untouched."""
        return self._lookup(key, record=False)

    def _lookup(self, key: str, record: bool) -> TierResult:
        with self._lock:
            entry = self._entries.get(key)
            if entry is not None and entry.is_expired(self._clock()):
                del self._entries[key]
                self._stats.evictions += 1
                entry = None

            if record:
                if entry is None:
                    self._stats.record_miss()
                else:
                    self._stats.record_hit()

            return MISS if entry is None else TierResult(TierStatus.HIT, entry)

    def set(self, key: str, value: Any, ttl: Optional[float] = None) -> Optional[str]:
        """Insert or overwrite a key.

        Returns:
            The key evicted to make room, if any.
        """
        ttl = self.default_ttl if ttl is None else ttl
        evicted = None

        with self._lock:
            if key in self._entries:
                del self._entries[key]
            elif len(self._entries) >= self.capacity:
                evicted, _ = self._entries.popitem(last=False)
                self._stats.evictions += 1

            self._entries[key] = CacheEntry(value=value, inserted_at=self._clock(), ttl=ttl)

        if evicted is not None:
            log_cache_operation(logger, "evict", evicted, tier="primary")
        return evicted

    def invalidate(self, key: str) -> bool:
        """Remove a key. Returns True if it was present."""
        with self._lock:
            return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def keys(self) -> List[str]:
        """Keys in insertion order, oldest first (expired entries included)."""
        with self._lock:
            return list(self._entries.keys())


# ============================================================================
# Secondary Store (Redis)
# ============================================================================

class RedisStore:
    """Optional Redis-backed store.

    Redis enforces the TTL of each entry via SETEX. Connectivity problems
    never propagate: ``get`` reports UNAVAILABLE, ``set`` and ``invalidate``
    report False. When Redis is not configured (or the connection check at
    startup fails) the store is disabled and answers MISS without any I/O.
    """

    _ERRORS = (RedisError, OSError, asyncio.TimeoutError)

    def __init__(self, settings: Settings, client: Optional[redis.Redis] = None):
        self.settings = settings
        self._client: Optional[redis.Redis] = client
        self._stats = CacheStats()

    @property
    def enabled(self) -> bool:
        """Check if Redis is configured and connected."""
        return self._client is not None

    @property
    def stats(self) -> CacheStats:
        return self._stats

    def _build_client(self) -> redis.Redis:
        options = {
            "encoding": "utf-8",
            "decode_responses": True,
            "socket_timeout": self.settings.redis_socket_timeout,
            "socket_connect_timeout": self.settings.redis_socket_timeout,
        }
        if self.settings.redis_url:
            return redis.from_url(self.settings.redis_url, **options)
        return redis.Redis(
            host=self.settings.redis_host,
            port=self.settings.redis_port,
            password=self.settings.redis_password or None,
            db=self.settings.redis_db,
            **options,
        )

    async def startup(self) -> None:
        """Connect to Redis if configured."""
        if self._client is not None:
            return

        if not self.settings.redis_configured:
            logger.info("Redis not configured, secondary cache disabled")
            return

        client = self._build_client()
        try:
            await client.ping()
        except self._ERRORS as e:
            logger.warning("Redis connection failed, secondary cache disabled", error=str(e))
            await client.aclose()
            return

        self._client = client
        logger.info("Redis secondary cache initialized",
                    host=self.settings.redis_host, db=self.settings.redis_db)

    async def shutdown(self) -> None:
        """Close the Redis connection."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None
            logger.info("Redis secondary cache closed")

    async def _execute(self, operation: str, *args: Any) -> Any:
        try:
            return await getattr(self._client, operation)(*args)
        except self._ERRORS as e:
            raise SecondaryUnavailable(operation, str(e)) from e

    async def get(self, key: str) -> TierResult:
        if not self.enabled:
            return MISS

        try:
            raw = await self._execute("get", key)
        except SecondaryUnavailable as e:
            logger.warning("Secondary cache get failed", key=key, error=str(e))
            self._stats.record_error()
            return UNAVAILABLE

        if raw is None:
            self._stats.record_miss()
            return MISS

        try:
            payload = json.loads(raw)
            entry = CacheEntry(
                value=payload["value"],
                inserted_at=payload["insertedAt"],
                ttl=payload["ttl"],
            )
        except (ValueError, TypeError, KeyError) as e:
            logger.warning("Discarding undecodable secondary cache entry", key=key, error=str(e))
            self._stats.record_error()
            return MISS

        self._stats.record_hit()
        return TierResult(TierStatus.HIT, entry)

    async def set(self, key: str, value: Any, ttl: float) -> bool:
        if not self.enabled:
            return False

        payload = json.dumps(
            {"value": value, "insertedAt": time.time(), "ttl": ttl},
            default=str,
            ensure_ascii=False,
        )
        try:
            await self._execute("setex", key, max(1, int(ttl)), payload)
        except SecondaryUnavailable as e:
            logger.warning("Secondary cache set failed", key=key, error=str(e))
            self._stats.record_error()
            return False

        log_cache_operation(logger, "set", key, tier="secondary", ttl=ttl)
        return True

    async def invalidate(self, key: str) -> bool:
        if not self.enabled:
            return False

        try:
            deleted = await self._execute("delete", key)
        except SecondaryUnavailable as e:
            logger.warning("Secondary cache delete failed", key=key, error=str(e))
            self._stats.record_error()
            return False
        return bool(deleted)

    async def ping(self) -> bool:
        """Round-trip check used by the health endpoint."""
        if not self.enabled:
            return False
        try:
            return bool(await self._execute("ping"))
        except SecondaryUnavailable:
            return False
