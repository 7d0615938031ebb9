"""Hot list routes."""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse

from core.container import container
from core.exceptions import FetchError
from core.logging import get_logger
from services.handlers import RouteOptions
from services.registry import RouteNotFound, RouteRegistry

logger = get_logger(__name__)
router = APIRouter(tags=["hot"])

# Query parameters consumed here rather than forwarded to handlers.
_RESERVED_PARAMS = {"cache", "limit"}


@router.get("/all")
async def list_routes(registry: RouteRegistry = Depends(lambda: container.registry())):
    """List every registered hot list route."""
    routes = registry.describe()
    return {"code": 200, "count": len(routes), "routes": routes}


@router.get("/{name}")
async def get_hot_list(
    name: str,
    request: Request,
    cache: bool = Query(True, description="Set to false to bypass the cache"),
    limit: Optional[int] = Query(None, ge=1, description="Maximum number of items"),
    registry: RouteRegistry = Depends(lambda: container.registry()),
):
    """Fetch one platform's hot list through the cache."""
    options = RouteOptions(
        no_cache=not cache,
        limit=limit,
        params={
            key: value for key, value in request.query_params.items()
            if key not in _RESERVED_PARAMS
        },
    )

    try:
        body = await registry.render(name, options)
    except RouteNotFound:
        return JSONResponse(
            status_code=404,
            content={"code": 404, "message": f"Route '{name}' not found, see /all"},
        )
    except FetchError as e:
        logger.error("Hot list fetch failed", route=name, url=e.url, cache_key=e.cache_key,
                     status_code=e.status_code, error=e.message)
        return JSONResponse(
            status_code=500,
            content={"code": 500, "message": f"Failed to fetch {name}: {e.message}"},
        )

    return {"code": 200, **body}
