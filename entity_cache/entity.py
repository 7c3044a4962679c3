"""
Entity contract for the cache.

Models opt into caching by mixing in CachedEntity (or by exposing the same
class attributes). describe() turns a model class or instance into the
immutable EntityDescriptor the key deriver and engine work with.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Sequence, Tuple, Union

from .shared.errors import ConfigurationError
from .shared.config import MINUTES_PER_DAY


UniqueKey = Union[str, Sequence[str]]


@dataclass(frozen=True)
class EntityDescriptor:
    """What the cache needs to know about an entity class."""
    class_name: str
    short_name: str
    primary_key: str
    unique_keys: Tuple[Tuple[str, ...], ...] = ()
    cache_active: bool = True
    expiration_minutes: int = MINUTES_PER_DAY
    entity_type: Optional[type] = field(default=None, compare=False, repr=False)


class CachedEntity:
    """
    Mixin for models stored in the entity cache.

    Subclasses override the class attributes:

    - __primary_key__: primary key column name
    - __unique_keys__: extra unique keys; each item is a column name or a
      sequence of column names for a composite key
    - __cache_name__: name used in cache keys, defaults to module.QualName
    - cache_active: per-class switch
    - cache_expiration_minutes: TTL of cached records
    """

    __primary_key__: str = "id"
    __unique_keys__: Sequence[UniqueKey] = ()
    __cache_name__: Optional[str] = None
    cache_active: bool = True
    cache_expiration_minutes: int = MINUTES_PER_DAY

    def cache_attributes(self) -> Dict[str, Any]:
        """Current column -> value snapshot of this instance."""
        return {key: value for key, value in vars(self).items() if not key.startswith("_")}


EntityLike = Union[EntityDescriptor, type, Any]


def _normalize_unique_key(entity_type: type, unique_key: UniqueKey) -> Tuple[str, ...]:
    if isinstance(unique_key, str):
        columns: Tuple[str, ...] = (unique_key,)
    else:
        columns = tuple(unique_key)

    if not columns or not all(isinstance(column, str) and column for column in columns):
        raise ConfigurationError(
            "Unique keys must be non-empty column names",
            {"entity": entity_type.__qualname__, "unique_key": repr(unique_key)}
        )
    return columns


def describe(entity: EntityLike) -> EntityDescriptor:
    """Build the descriptor for a model class, a model instance or a descriptor."""
    if isinstance(entity, EntityDescriptor):
        return entity

    entity_type = entity if isinstance(entity, type) else type(entity)

    primary_key = getattr(entity_type, "__primary_key__", None)
    if not isinstance(primary_key, str) or not primary_key:
        raise ConfigurationError(
            "Cached entities must declare a primary key column",
            {"entity": entity_type.__qualname__}
        )

    expiration = getattr(entity_type, "cache_expiration_minutes", MINUTES_PER_DAY)
    if not isinstance(expiration, int) or isinstance(expiration, bool) or expiration <= 0:
        raise ConfigurationError(
            "cache_expiration_minutes must be a positive integer",
            {"entity": entity_type.__qualname__, "value": repr(expiration)}
        )

    unique_keys = tuple(
        _normalize_unique_key(entity_type, unique_key)
        for unique_key in getattr(entity_type, "__unique_keys__", ()) or ()
    )

    class_name = getattr(entity_type, "__cache_name__", None) or f"{entity_type.__module__}.{entity_type.__qualname__}"

    return EntityDescriptor(
        class_name=class_name,
        short_name=entity_type.__name__,
        primary_key=primary_key,
        unique_keys=unique_keys,
        cache_active=bool(getattr(entity_type, "cache_active", True)),
        expiration_minutes=expiration,
        entity_type=entity_type,
    )


def attribute_snapshot(entity: Any) -> Dict[str, Any]:
    """Attribute map of an entity instance (empty for classes and descriptors)."""
    if isinstance(entity, (type, EntityDescriptor)):
        return {}
    if isinstance(entity, Mapping):
        return dict(entity)
    cache_attributes = getattr(entity, "cache_attributes", None)
    if callable(cache_attributes):
        return dict(cache_attributes())
    return {key: value for key, value in vars(entity).items() if not key.startswith("_")}
