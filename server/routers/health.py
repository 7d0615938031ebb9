"""Service status routes."""

from fastapi import APIRouter, Depends

from core.cache import CacheService
from core.config import Settings
from core.container import container
from core.health import get_health_status
from services.registry import RouteRegistry

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check(
    cache: CacheService = Depends(lambda: container.cache()),
    registry: RouteRegistry = Depends(lambda: container.registry()),
    settings: Settings = Depends(lambda: container.settings()),
):
    """Uptime, memory and per-tier cache statistics."""
    return await get_health_status(cache, registry, settings)
