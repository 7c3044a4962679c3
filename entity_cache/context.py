"""
Runtime switches shared by the engine and the operation log.
"""

from typing import Optional

from .shared.config import EntityCacheSettings, MINUTES_PER_YEAR
from .shared.errors import ConfigurationError


class CacheContext:
    """
    Process-lifetime cache configuration.

    The switches are plain attributes: operations read them once, and a
    toggle racing with an in-flight operation is acceptable.
    """

    def __init__(
        self,
        key_prefix: str = "EntityCache",
        cache_active: bool = True,
        logging_active: bool = False,
        registry_expiration_minutes: int = MINUTES_PER_YEAR
    ):
        self.set_key_prefix(key_prefix)
        self.cache_active = bool(cache_active)
        self.logging_active = bool(logging_active)
        self.registry_expiration_minutes = registry_expiration_minutes

    @classmethod
    def from_settings(cls, settings: EntityCacheSettings) -> "CacheContext":
        return cls(
            key_prefix=settings.key_prefix,
            cache_active=settings.cache_active,
            logging_active=settings.logging_active,
            registry_expiration_minutes=settings.registry_expiration_minutes,
        )

    def set_global_cache_active(self, active: bool = True) -> None:
        """Master switch for cache reads."""
        self.cache_active = bool(active)

    def is_global_cache_active(self) -> bool:
        return self.cache_active

    def set_logging_active(self, active: bool = True) -> None:
        self.logging_active = bool(active)

    def is_logging_active(self) -> bool:
        return self.logging_active

    def set_key_prefix(self, key_prefix: Optional[str]) -> None:
        if not key_prefix:
            raise ConfigurationError("Cache key prefix must not be empty")
        self.key_prefix = key_prefix

    def get_key_prefix(self) -> str:
        return self.key_prefix
