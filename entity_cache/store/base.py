"""
Cache store adapter interface and stored entry types.
"""

from abc import ABC, abstractmethod
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from ..shared.errors import EnumerationNotSupportedError, SerializationError


class RecordEntry(BaseModel):
    """Full attribute map of an entity, stored under its primary cache key."""
    model_config = ConfigDict(ser_json_bytes="base64")

    kind: Literal["record"] = "record"
    attributes: Dict[str, Any]


class PointerEntry(BaseModel):
    """Secondary cache key entry: the primary cache key it resolves to."""
    kind: Literal["pointer"] = "pointer"
    key: str


class RegistryEntry(BaseModel):
    """Names of every entity class remembered so far."""
    kind: Literal["registry"] = "registry"
    classes: List[str] = Field(default_factory=list)


CacheEntry = Annotated[Union[RecordEntry, PointerEntry, RegistryEntry], Field(discriminator="kind")]

_entry_adapter: TypeAdapter = TypeAdapter(CacheEntry)


def record_attributes(attributes: Dict[str, Any]) -> Dict[str, Any]:
    """
    Attribute map in its stored form.

    Values are reduced to JSON types (datetimes become ISO strings, and so
    on), so a record reads back the same from every backend.
    """
    try:
        return RecordEntry(attributes=attributes).model_dump(mode="json")["attributes"]
    except (TypeError, ValueError) as e:
        raise SerializationError("Entity attributes could not be serialized", {"error": str(e)})


def encode_entry(entry: CacheEntry) -> str:
    """Serialize an entry for byte-oriented backends."""
    try:
        return entry.model_dump_json()
    except (TypeError, ValueError) as e:
        raise SerializationError("Cache entry could not be encoded", {"kind": entry.kind, "error": str(e)})


def decode_entry(raw: Union[str, bytes]) -> CacheEntry:
    """Parse an entry written by encode_entry()."""
    try:
        return _entry_adapter.validate_json(raw)
    except ValidationError as e:
        raise SerializationError("Cache entry could not be decoded", {"error": str(e)})


class CacheStore(ABC):
    """
    Thin async interface over a key/value backend.

    Key enumeration is an optional capability: stores that support it set
    supports_enumeration and implement keys_matching().
    """

    name: str = "store"
    supports_enumeration: bool = False

    @property
    def key_prefix(self) -> str:
        """Backend-level prefix applied to every key (empty when none)."""
        return ""

    @abstractmethod
    async def get(self, key: str) -> Optional[CacheEntry]:
        """Return the entry stored under key, or None."""

    @abstractmethod
    async def put(self, key: str, entry: CacheEntry, ttl_minutes: int) -> None:
        """Store entry under key for ttl_minutes."""

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove key. Missing keys are not an error."""

    async def keys_matching(self, pattern: str) -> List[str]:
        """
        Keys matching a glob pattern.

        The pattern is relative to key_prefix and so are the returned keys.
        Raises EnumerationNotSupportedError on backends without enumeration,
        which callers must treat differently from an empty result.
        """
        raise EnumerationNotSupportedError(self.name)

    async def close(self) -> None:
        """Release backend resources."""
