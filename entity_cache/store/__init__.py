"""
Cache store adapters.

Provides the async CacheStore interface, the tagged entries it stores, an
in-process MemoryStore and a Redis-backed RedisStore.
"""

from .base import (
    CacheEntry,
    CacheStore,
    PointerEntry,
    RecordEntry,
    RegistryEntry,
    decode_entry,
    encode_entry,
    record_attributes,
)
from .memory import MemoryStore
from .redis_store import RedisStore

__all__ = [
    "CacheEntry",
    "CacheStore",
    "PointerEntry",
    "RecordEntry",
    "RegistryEntry",
    "decode_entry",
    "encode_entry",
    "record_attributes",
    "MemoryStore",
    "RedisStore",
]
