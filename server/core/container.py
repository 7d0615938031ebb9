"""Dependency injection container for the application."""

from dependency_injector import containers, providers

from core.config import Settings
from core.cache import CacheService
from core.stores import MemoryStore, RedisStore
from services.fetcher import HttpFetcher
from services.registry import RouteRegistry


class Container(containers.DeclarativeContainer):
    """Application dependency injection container."""

    # Settings
    settings = providers.Singleton(
        Settings,
    )

    # Primary cache tier (in-memory, bounded)
    primary_store = providers.Singleton(
        MemoryStore,
        capacity=settings.provided.cache_capacity,
        default_ttl=settings.provided.cache_ttl,
    )

    # Secondary cache tier (Redis, disabled when not configured)
    secondary_store = providers.Singleton(
        RedisStore,
        settings=settings,
    )

    # Cache orchestrator shared by every request
    cache = providers.Singleton(
        CacheService,
        primary=primary_store,
        secondary=secondary_store,
        settings=settings,
    )

    # Services
    fetcher = providers.Singleton(
        HttpFetcher,
        cache=cache,
        settings=settings,
    )

    registry = providers.Singleton(
        RouteRegistry,
        fetcher=fetcher,
    )


# Global container instance
container = Container()
