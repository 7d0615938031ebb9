"""Two-tier request cache with single-flight upstream fetches.

Lookup order for a key:

1. Primary (in-memory) store - returned immediately on a hit.
2. Secondary (Redis) store - a hit is copied into Primary.
3. Upstream fetch - at most one per key at a time; concurrent callers
   share its outcome. Successful results are written to both tiers,
   failures are never cached.

A ``bypass`` request skips both lookups and fetches on its own, without
joining or cancelling an in-flight fetch, then refreshes both tiers.
"""

import asyncio
import time
from typing import Any, Awaitable, Callable, Dict, Optional

from core.config import Settings
from core.exceptions import FetchError
from core.logging import get_logger, log_cache_operation, log_execution_time
from core.stores import MemoryStore, RedisStore, TierStatus

logger = get_logger(__name__)

FetchFn = Callable[[], Awaitable[Any]]


def _consume_exception(task: "asyncio.Task[Any]") -> None:
    # Keeps asyncio quiet when every waiter was cancelled before the fetch failed.
    if not task.cancelled():
        task.exception()


class CacheService:
    """Cache orchestrator shared by all request handlers.

    Constructed once by the DI container with its two stores.
    """

    def __init__(self, primary: MemoryStore, secondary: RedisStore, settings: Settings):
        self.primary = primary
        self.secondary = secondary
        self.default_ttl = settings.cache_ttl
        self._in_flight: Dict[str, "asyncio.Task[Any]"] = {}
        self._upstream_fetches = 0
        self._coalesced_waits = 0

    @property
    def in_flight(self) -> int:
        """Number of keys with an outstanding upstream fetch."""
        return len(self._in_flight)

    async def resolve(
        self,
        key: str,
        fetch_fn: FetchFn,
        *,
        bypass: bool = False,
        ttl: Optional[float] = None,
    ) -> Any:
        """Return the value for ``key``, fetching it upstream when not cached.

        Args:
            key: Cache key (see ``core.keys.derive_key``).
            fetch_fn: Zero-argument coroutine function performing the upstream call.
            bypass: Skip both tiers and force a fresh fetch.
            ttl: Time-to-live in seconds for written entries.

        Raises:
            FetchError: The upstream fetch failed. Nothing was cached.
        """
        ttl = self.default_ttl if ttl is None else ttl

        if bypass:
            log_cache_operation(logger, "bypass", key)
            value = await self._fetch(key, fetch_fn)
            await self._write_through(key, value, ttl)
            return value

        primary = self.primary.get(key)
        if primary.is_hit:
            log_cache_operation(logger, "get", key, hit=True, tier="primary")
            return primary.value

        secondary = await self.secondary.get(key)
        if secondary.is_hit:
            log_cache_operation(logger, "get", key, hit=True, tier="secondary")
            self.primary.set(key, secondary.value, ttl)
            return secondary.value

        if secondary.status is TierStatus.UNAVAILABLE:
            logger.debug("Secondary cache unavailable, fetching upstream", cache_key=key)
        else:
            log_cache_operation(logger, "get", key, hit=False)

        return await self._single_flight(key, fetch_fn, ttl)

    async def _single_flight(self, key: str, fetch_fn: FetchFn, ttl: float) -> Any:
        # No await between the lookup and the registration below, so the
        # check-and-register is atomic on the event loop.
        task = self._in_flight.get(key)
        if task is None:
            # Another fetch may have completed while the secondary lookup was awaited.
            primary = self.primary.peek(key)
            if primary.is_hit:
                return primary.value

            task = asyncio.ensure_future(self._fetch_and_store(key, fetch_fn, ttl))
            task.add_done_callback(_consume_exception)
            self._in_flight[key] = task
        else:
            self._coalesced_waits += 1
            log_cache_operation(logger, "wait", key)

        # Shielded so a cancelled caller never cancels the shared fetch.
        return await asyncio.shield(task)

    async def _fetch_and_store(self, key: str, fetch_fn: FetchFn, ttl: float) -> Any:
        try:
            value = await self._fetch(key, fetch_fn)
            await self._write_through(key, value, ttl)
            return value
        finally:
            self._in_flight.pop(key, None)

    async def _fetch(self, key: str, fetch_fn: FetchFn) -> Any:
        self._upstream_fetches += 1
        start_time = time.time()
        try:
            value = await fetch_fn()
        except FetchError as e:
            if e.cache_key is None:
                e.cache_key = key
            logger.warning("Upstream fetch failed", cache_key=key, url=e.url, error=e.message)
            raise
        except Exception as e:
            logger.warning("Upstream fetch failed", cache_key=key, error=str(e))
            raise FetchError(None, f"{type(e).__name__}: {e}", cache_key=key) from e

        log_execution_time(logger, "upstream_fetch", start_time, time.time(), cache_key=key)
        return value

    async def _write_through(self, key: str, value: Any, ttl: float) -> None:
        self.primary.set(key, value, ttl)
        await self.secondary.set(key, value, ttl)

    async def invalidate(self, key: str) -> None:
        """Drop ``key`` from both tiers. In-flight fetches are left untouched."""
        self.primary.invalidate(key)
        await self.secondary.invalidate(key)
        log_cache_operation(logger, "invalidate", key)

    def stats(self) -> Dict[str, Any]:
        """Per-tier counters plus upstream fetch totals."""
        return {
            "primary": {
                **self.primary.stats.to_dict(),
                "size": len(self.primary),
                "capacity": self.primary.capacity,
            },
            "secondary": {
                **self.secondary.stats.to_dict(),
                "enabled": self.secondary.enabled,
            },
            "upstream_fetches": self._upstream_fetches,
            "coalesced_waits": self._coalesced_waits,
            "in_flight": self.in_flight,
        }
