"""Status report for the /health endpoint: uptime, process stats, cache tiers."""
import time
from typing import Dict, Any, TYPE_CHECKING

import psutil

if TYPE_CHECKING:
    from core.config import Settings
    from core.cache import CacheService
    from services.registry import RouteRegistry

_started_at: float = 0.0


def set_startup_time() -> None:
    """Mark the service as started. Called from the lifespan hook."""
    global _started_at
    _started_at = time.time()


def get_uptime() -> float:
    return time.time() - _started_at if _started_at else 0.0


def get_process_stats() -> Dict[str, Any]:
    """Resident memory and thread count of this worker process."""
    try:
        process = psutil.Process()
        with process.oneshot():
            return {
                "memory_mb": round(process.memory_info().rss / (1024 * 1024), 1),
                "threads": process.num_threads(),
            }
    except psutil.Error:
        return {"memory_mb": None, "threads": None}


async def get_health_status(
    cache: "CacheService",
    registry: "RouteRegistry",
    settings: "Settings"
) -> Dict[str, Any]:
    """Build the /health payload.

    Running without Redis is normal and reports "healthy". A configured
    Redis that does not answer PING reports "degraded"; requests are still
    served from the primary tier and upstream.
    """
    secondary_ok = await cache.secondary.ping() if cache.secondary.enabled else None
    degraded = settings.redis_configured and not secondary_ok

    return {
        "status": "degraded" if degraded else "healthy",
        "uptime_seconds": round(get_uptime(), 1),
        "process": get_process_stats(),
        "environment": "development" if settings.is_development else "production",
        "routes": len(registry.names()),
        "checks": {
            "secondary_cache": secondary_ok,
        },
        "cache": cache.stats(),
    }
