"""
FastAPI backend aggregating platform hot lists behind a two-tier cache.

Handlers fetch upstream through a shared cache orchestrator (in-memory
primary tier, optional Redis secondary tier, single-flight fetches).
"""

# Performance: Install uvloop if available (Linux/macOS only)
try:
    import uvloop
    uvloop.install()
except ImportError:
    pass  # Windows - uvloop not available, use default asyncio

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, ORJSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from core.container import container
from core.health import set_startup_time
from core.logging import configure_logging, get_logger
from routers import health, hot

# Initialize settings and logging
settings = container.settings()
configure_logging(settings)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan management."""
    # Startup
    logger.info("Starting hot list service",
                cache_capacity=settings.cache_capacity,
                cache_ttl=settings.cache_ttl,
                redis_configured=settings.redis_configured)
    set_startup_time()

    await container.secondary_store().startup()
    await container.fetcher().startup()

    logger.info("Services started successfully",
                routes=len(container.registry().names()),
                secondary_cache=container.secondary_store().enabled)
    yield

    # Shutdown
    await container.fetcher().shutdown()
    await container.secondary_store().shutdown()
    logger.info("Services shutdown complete")


class CatchAllExceptionsMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        try:
            return await call_next(request)
        except Exception as e:
            logger.error(f"Unhandled exception: {type(e).__name__}: {str(e)}",
                         path=request.url.path, exc_info=True)
            return JSONResponse(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                content={
                    "code": 500,
                    "message": "Internal server error",
                    "error": f"{type(e).__name__}: {str(e)}",
                }
            )


def create_app() -> FastAPI:
    """Build the FastAPI application."""
    app = FastAPI(
        title="Hot List API",
        version="1.0.0",
        description="Aggregated platform hot lists with a two-tier request cache",
        lifespan=lifespan,
        default_response_class=ORJSONResponse
    )

    # Exception middleware BEFORE CORS to catch all errors
    app.add_middleware(CatchAllExceptionsMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=False,
        allow_methods=["GET"],
        allow_headers=["*"],
    )

    @app.get("/")
    async def root():
        """Service index."""
        return {
            "code": 200,
            "service": "hot-list-api",
            "version": app.version,
            "routes": "/all",
        }

    # Fixed paths first: the hot router's /{name} catches everything else
    app.include_router(health.router)
    app.include_router(hot.router)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    logger.info("Starting hot list service",
                host=settings.host, port=settings.port, debug=settings.debug)
    uvicorn.run(
        "main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        workers=1 if settings.debug else settings.workers
    )
