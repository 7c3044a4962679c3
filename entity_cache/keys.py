"""
Cache key derivation.

Every unique key group of an entity produces one cache key:

    {prefix}::{class name}::{serialized sorted column -> value map}

The group named after the primary key column yields the primary cache key,
which holds the record. All other keys hold a pointer to it.

The column map is serialized as a PHP-style array of strings, e.g.
a:1:{s:2:"id";s:1:"7";}, so keys written by other clients of the same
layout resolve to the same entries. String lengths are UTF-8 byte counts.
"""

from typing import Any, Dict, Mapping, Optional, Tuple

from .entity import EntityLike, describe
from .shared.logging import get_logger

logger = get_logger("entity_cache.keys")

KEY_SEPARATOR = "::"
CACHED_CLASSES_KEY = "CachedClasses"
GLOB_SPECIAL_CHARS = "*?[]\\"


def stringify(value: Any) -> str:
    """String form of an attribute value as used inside cache keys."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "1" if value else ""
    if isinstance(value, (bytes, bytearray)):
        # Binary columns (e.g. BINARY(16) ids) that are not text are keyed by their hex form
        try:
            return bytes(value).decode("utf-8")
        except UnicodeDecodeError:
            return bytes(value).hex()
    return str(value)


def _serialize_string(value: str) -> str:
    return f's:{len(value.encode("utf-8"))}:"{value}";'


def serialize_column_map(columns: Mapping[str, str]) -> str:
    """Deterministic serialization of an already sorted column -> value map."""
    body = "".join(_serialize_string(column) + _serialize_string(value) for column, value in columns.items())
    return f"a:{len(columns)}:{{{body}}}"


def key_prefix(prefix: str, class_name: Optional[str] = None) -> str:
    """Return "{prefix}::" or "{prefix}::{class_name}::"."""
    if class_name:
        return f"{prefix}{KEY_SEPARATOR}{class_name}{KEY_SEPARATOR}"
    return f"{prefix}{KEY_SEPARATOR}"


def cached_classes_key(prefix: str) -> str:
    """Key of the class registry."""
    return key_prefix(prefix) + CACHED_CLASSES_KEY


def signature(columns: Tuple[str, ...]) -> str:
    return ",".join(sorted(columns))


def unique_key_groups(entity: EntityLike) -> Dict[str, Tuple[str, ...]]:
    """
    Unique key groups of an entity, keyed by signature.

    The primary key column is always present as its own group. Groups are
    deduplicated by signature and ordered by signature.
    """
    descriptor = describe(entity)

    groups: Dict[str, Tuple[str, ...]] = {}
    for columns in descriptor.unique_keys + ((descriptor.primary_key,),):
        groups[signature(columns)] = tuple(sorted(columns))

    return dict(sorted(groups.items()))


def cache_keys(entity: EntityLike, attributes: Mapping[str, Any], prefix: str) -> Dict[str, str]:
    """
    Cache keys for an entity, keyed by unique key group signature.

    Groups with a column missing from attributes are skipped; they cannot be
    computed yet (e.g. an id that has not been assigned).
    """
    descriptor = describe(entity)
    class_prefix = key_prefix(prefix, descriptor.class_name)

    keys: Dict[str, str] = {}
    for group_signature, columns in unique_key_groups(descriptor).items():
        if any(column not in attributes for column in columns):
            continue

        keyed_by_column = {column: stringify(attributes[column]) for column in sorted(columns)}
        keys[group_signature] = class_prefix + serialize_column_map(keyed_by_column)

    return keys


def primary_cache_key(entity: EntityLike, attributes: Mapping[str, Any], prefix: str) -> Optional[str]:
    """The key holding the record data, or None when the primary key is unset."""
    descriptor = describe(entity)
    return cache_keys(descriptor, attributes, prefix).get(descriptor.primary_key)


def lookup_cache_key(entity: EntityLike, lookup: Mapping[str, Any], prefix: str) -> Optional[str]:
    """Cache key of the unique key group whose columns are exactly the lookup columns."""
    descriptor = describe(entity)
    lookup_signature = signature(tuple(lookup))
    if lookup_signature not in unique_key_groups(descriptor):
        logger.debug("Lookup matches no unique key", entity=descriptor.class_name, columns=lookup_signature)
        return None
    return cache_keys(descriptor, lookup, prefix).get(lookup_signature)


def escape_glob(text: str) -> str:
    """Escape glob special characters so text matches literally."""
    return "".join("\\" + char if char in GLOB_SPECIAL_CHARS else char for char in text)


def class_pattern(entity: EntityLike, prefix: str) -> str:
    """Glob matching every key (records and pointers) of an entity class."""
    descriptor = describe(entity)
    return escape_glob(key_prefix(prefix, descriptor.class_name)) + "*"


def primary_key_pattern(entity: EntityLike, prefix: str) -> str:
    """Glob matching the primary cache keys of an entity class."""
    descriptor = describe(entity)
    fixed = key_prefix(prefix, descriptor.class_name) + "a:1:{" + _serialize_string(descriptor.primary_key) + "s:"
    return escape_glob(fixed) + '*:"*";}'


def global_pattern(prefix: str) -> str:
    """Glob matching every key under the prefix."""
    return escape_glob(key_prefix(prefix)) + "*"
