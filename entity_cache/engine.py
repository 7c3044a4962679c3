"""
Indirection cache engine.

An entity is stored once, under its primary cache key. Each of its other
unique keys stores only a pointer to that primary key, so overwriting the
record is immediately visible through every alias and no key holds a stale
copy of the data.

remember/get/forget are not transactional. Between the record write and the
pointer writes (or during a forget) a concurrent reader may see a partial
state; the next remember or forget converges it.
"""

import importlib
import inspect
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Tuple, Union

from .context import CacheContext
from .entity import EntityDescriptor, EntityLike, attribute_snapshot, describe
from .keys import (
    cache_keys,
    cached_classes_key,
    class_pattern,
    global_pattern,
    lookup_cache_key,
    primary_key_pattern,
)
from .log import OperationLog, QueryDescriptor
from .shared.errors import BackendError, ConfigurationError, EnumerationNotSupportedError
from .shared.logging import get_logger
from .shared.metrics import MetricsCollector
from .store.base import CacheStore, PointerEntry, RecordEntry, RegistryEntry, record_attributes
from .timer import Timer


Attributes = Dict[str, Any]
Loader = Callable[[], Union[Any, Awaitable[Any]]]


@dataclass
class BulkEvictionResult:
    """Outcome of a best-effort bulk delete."""
    pattern: str
    supported: bool = True
    enumeration_failed: bool = False
    matched: int = 0
    deleted: int = 0
    failed: int = 0
    errors: List[str] = field(default_factory=list)

    @property
    def complete(self) -> bool:
        return self.supported and not self.enumeration_failed and self.failed == 0


def _import_entity_type(class_name: str) -> Optional[type]:
    """Resolve a dotted module.QualName to a class."""
    parts = class_name.split(".")
    for index in range(len(parts) - 1, 0, -1):
        try:
            resolved: Any = importlib.import_module(".".join(parts[:index]))
        except ImportError:
            continue
        for attribute in parts[index:]:
            resolved = getattr(resolved, attribute, None)
            if resolved is None:
                return None
        return resolved if isinstance(resolved, type) else None
    return None


class EntityCache:
    """Remember, fetch and forget entities through the indirection scheme."""

    def __init__(
        self,
        store: CacheStore,
        context: Optional[CacheContext] = None,
        log: Optional[OperationLog] = None,
        metrics: Optional[MetricsCollector] = None
    ):
        self.store = store
        self.context = context or CacheContext()
        self.metrics = metrics
        self.log = log or OperationLog(self.context, metrics)
        self.logger = get_logger("entity_cache.engine")

        # Entity types remembered by this process, by cache class name
        self._entity_types: Dict[str, EntityDescriptor] = {}

    def _attributes(self, entity: EntityLike, attributes: Optional[Mapping[str, Any]]) -> Attributes:
        return dict(attributes) if attributes is not None else attribute_snapshot(entity)

    def cache_keys(self, entity: EntityLike, attributes: Optional[Mapping[str, Any]] = None) -> Dict[str, str]:
        """All cache keys of the entity, keyed by unique key group signature."""
        return cache_keys(entity, self._attributes(entity, attributes), self.context.get_key_prefix())

    def primary_cache_key(self, entity: EntityLike, attributes: Optional[Mapping[str, Any]] = None) -> Optional[str]:
        """The key holding the entity's data, or None when its primary key is unset."""
        descriptor = describe(entity)
        return self.cache_keys(entity, attributes).get(descriptor.primary_key)

    def is_caching(self, entity: EntityLike) -> bool:
        """True when both the entity class and the global switch are on."""
        return describe(entity).cache_active and self.context.is_global_cache_active()

    async def remember(self, entity: EntityLike, attributes: Optional[Mapping[str, Any]] = None) -> bool:
        """
        Store the entity under its primary key and point every other key at it.

        Returns False, without writing, when the primary key attribute is unset.
        """
        descriptor = describe(entity)
        snapshot = self._attributes(entity, attributes)
        keys = cache_keys(descriptor, snapshot, self.context.get_key_prefix())
        primary_key = keys.get(descriptor.primary_key)

        if primary_key is None:
            self.logger.warning(
                "Cannot remember entity without primary key",
                entity=descriptor.class_name,
                primary_key=descriptor.primary_key
            )
            return False

        expiration = descriptor.expiration_minutes
        await self.store.put(primary_key, RecordEntry(attributes=record_attributes(snapshot)), expiration)

        pointer = PointerEntry(key=primary_key)
        for cache_key in keys.values():
            if cache_key != primary_key:
                await self.store.put(cache_key, pointer, expiration)

        self._entity_types[descriptor.class_name] = descriptor
        await self._register_class(descriptor.class_name)

        self.logger.debug("Remembered entity", entity=descriptor.class_name, key=primary_key, aliases=len(keys) - 1)
        return True

    async def _registry(self) -> RegistryEntry:
        entry = await self.store.get(cached_classes_key(self.context.get_key_prefix()))
        return entry if isinstance(entry, RegistryEntry) else RegistryEntry()

    async def _register_class(self, class_name: str) -> None:
        registry = await self._registry()
        if class_name in registry.classes:
            return

        await self.store.put(
            cached_classes_key(self.context.get_key_prefix()),
            RegistryEntry(classes=registry.classes + [class_name]),
            self.context.registry_expiration_minutes
        )

    async def cached_classes(self) -> List[str]:
        """Names of every entity class remembered under the current prefix."""
        return list((await self._registry()).classes)

    def _resolve_entity(self, class_name: str) -> Optional[EntityDescriptor]:
        descriptor = self._entity_types.get(class_name)
        if descriptor is not None:
            return descriptor

        # Registry names come from a shared store; a module failing at import is skipped
        try:
            entity_type = _import_entity_type(class_name)
        except Exception as e:
            self.logger.warning("Cached class import failed", entity=class_name, error=str(e))
            return None
        if entity_type is None:
            return None
        try:
            return describe(entity_type)
        except ConfigurationError:
            return None

    async def cached_classes_with_cache_count(self) -> Dict[str, int]:
        """Registry class names mapped to their number of cached records."""
        counts: Dict[str, int] = {}
        for class_name in await self.cached_classes():
            descriptor = self._resolve_entity(class_name)
            if descriptor is None:
                self.logger.warning("Cached class could not be resolved", entity=class_name)
                continue
            counts[class_name] = await self.count_cached_with_same_class(descriptor)
        return counts

    async def forget(self, entity: EntityLike, attributes: Optional[Mapping[str, Any]] = None) -> None:
        """Delete the entity's record and every pointer to it."""
        for cache_key in self.cache_keys(entity, attributes).values():
            await self.store.delete(cache_key)

    async def get(self, cache_key: str, bypass_global_switch: bool = False) -> Optional[Attributes]:
        """
        Read entity data by any of its cache keys.

        With the global switch off this returns None without touching the
        store, unless bypass_global_switch is set. A pointer is followed at
        most once.
        """
        if not bypass_global_switch and not self.context.is_global_cache_active():
            return None

        entry = await self.store.get(cache_key)

        if isinstance(entry, PointerEntry):
            target = await self.store.get(entry.key)
            if isinstance(target, PointerEntry):
                self.logger.warning("Pointer resolves to another pointer", key=cache_key, target=entry.key)
                return None
            entry = target

        if isinstance(entry, RecordEntry):
            return dict(entry.attributes)
        return None

    async def cached_data(self, entity: EntityLike, attributes: Optional[Mapping[str, Any]] = None) -> Optional[Attributes]:
        """The entity's cached record, read even when the global switch is off."""
        primary_key = self.primary_cache_key(entity, attributes)
        if primary_key is None:
            return None
        return await self.get(primary_key, bypass_global_switch=True)

    async def is_cached(self, entity: EntityLike, attributes: Optional[Mapping[str, Any]] = None) -> bool:
        return bool(await self.cached_data(entity, attributes))

    async def fetch(
        self,
        entity: EntityLike,
        lookup: Mapping[str, Any],
        loader: Loader,
        query: Optional[QueryDescriptor] = None
    ) -> Optional[Attributes]:
        """
        Read-through lookup of one entity by a unique key.

        lookup maps the columns of one unique key group to their values. On a
        miss (or a lookup matching no unique key) loader is called, sync or
        async, and a non-None result is remembered. Returns the attribute map
        in its stored form (see record_attributes), the same on a hit and a miss.
        """
        timer = Timer()
        descriptor = describe(entity)
        caching = self.is_caching(descriptor)

        if caching:
            cache_key = lookup_cache_key(descriptor, lookup, self.context.get_key_prefix())
            if cache_key is not None:
                cached = await self.get(cache_key)
                if cached is not None:
                    self.log.log_hit(query, timer, [cached], descriptor)
                    return cached

        loaded = loader()
        if inspect.isawaitable(loaded):
            loaded = await loaded

        attributes = attribute_snapshot(loaded) if loaded is not None else None
        if attributes is not None and caching:
            await self.remember(descriptor, attributes)

        self.log.log_miss(query, timer, [attributes] if attributes is not None else [], descriptor)
        return record_attributes(attributes) if attributes is not None else None

    async def _enumerate(self, pattern: str) -> Tuple[bool, List[str], Optional[str]]:
        """(supported, keys, error) for a key pattern."""
        if not self.store.supports_enumeration:
            return False, [], None

        try:
            return True, await self.store.keys_matching(pattern), None
        except EnumerationNotSupportedError:
            return False, [], None
        except BackendError as e:
            self.logger.warning("Key enumeration failed", pattern=pattern, error=e.message)
            if self.metrics is not None:
                self.metrics.record_error("enumeration")
            return True, [], e.message

    async def _evict(self, scope: str, pattern: str) -> BulkEvictionResult:
        result = BulkEvictionResult(pattern=pattern)
        result.supported, keys, error = await self._enumerate(pattern)

        if not result.supported:
            self.logger.debug("Bulk eviction skipped, store cannot enumerate keys", scope=scope, store=self.store.name)
            return result

        if error is not None:
            result.enumeration_failed = True
            result.errors.append(error)

        result.matched = len(keys)
        for key in keys:
            try:
                await self.store.delete(key)
                result.deleted += 1
            except BackendError as e:
                result.failed += 1
                result.errors.append(f"{key}: {e.message}")

        if self.metrics is not None:
            self.metrics.record_eviction(scope, result.deleted, result.failed)

        self.logger.info(
            "Bulk eviction finished",
            scope=scope,
            pattern=pattern,
            matched=result.matched,
            deleted=result.deleted,
            failed=result.failed
        )
        return result

    async def all_cached_primary_keys_with_same_class(self, entity: EntityLike) -> List[str]:
        """Primary cache keys of every cached record of the entity's class."""
        _, keys, _ = await self._enumerate(primary_key_pattern(entity, self.context.get_key_prefix()))
        return keys

    async def count_cached_with_same_class(self, entity: EntityLike) -> int:
        return len(await self.all_cached_primary_keys_with_same_class(entity))

    async def forget_all_with_same_class(self, entity: EntityLike) -> BulkEvictionResult:
        """Delete every record and pointer of the entity's class."""
        return await self._evict("class", class_pattern(entity, self.context.get_key_prefix()))

    async def flush_all(self) -> BulkEvictionResult:
        """Delete every key under the cache prefix, for all classes."""
        return await self._evict("all", global_pattern(self.context.get_key_prefix()))
