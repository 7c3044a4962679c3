"""
Entity cache.

Read-through/write-around cache for database entities. An entity is stored
once under its primary key; every other unique key points at that record.
"""

from .context import CacheContext
from .engine import BulkEvictionResult, EntityCache
from .entity import CachedEntity, EntityDescriptor, describe
from .factory import create_entity_cache, create_store
from .log import LogEntry, LogSummary, OperationLog, QueryDescriptor, render_query
from .timer import Timer

__all__ = [
    "BulkEvictionResult",
    "CacheContext",
    "CachedEntity",
    "EntityCache",
    "EntityDescriptor",
    "LogEntry",
    "LogSummary",
    "OperationLog",
    "QueryDescriptor",
    "Timer",
    "create_entity_cache",
    "create_store",
    "describe",
    "render_query",
]
