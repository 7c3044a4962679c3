"""
Wiring of settings, store, context, log and metrics into an EntityCache.
"""

from typing import Optional

from .context import CacheContext
from .engine import EntityCache
from .shared.config import EntityCacheSettings, get_settings
from .shared.logging import configure_logging, get_logger
from .shared.metrics import get_metrics_collector
from .store.base import CacheStore
from .store.memory import MemoryStore
from .store.redis_store import RedisStore

SERVICE_NAME = "entity_cache"


def create_store(settings: EntityCacheSettings) -> CacheStore:
    """Build the store adapter selected by settings.backend."""
    if settings.backend == "redis":
        return RedisStore(
            settings.redis_url,
            namespace=settings.redis_namespace,
            socket_timeout=settings.redis_socket_timeout
        )
    return MemoryStore()


def create_entity_cache(
    settings: Optional[EntityCacheSettings] = None,
    store: Optional[CacheStore] = None
) -> EntityCache:
    """Create an EntityCache from settings (the environment by default)."""
    settings = settings or get_settings()
    configure_logging(SERVICE_NAME, settings.log_level)

    metrics = get_metrics_collector(SERVICE_NAME) if settings.enable_metrics else None
    cache = EntityCache(
        store if store is not None else create_store(settings),
        context=CacheContext.from_settings(settings),
        metrics=metrics
    )

    get_logger("entity_cache.factory").info(
        "Entity cache initialized",
        env=settings.env,
        backend=cache.store.name,
        key_prefix=settings.key_prefix,
        cache_active=settings.cache_active,
        logging_active=settings.logging_active
    )
    return cache
