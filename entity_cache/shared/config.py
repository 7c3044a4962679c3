"""
Shared configuration management for the entity cache.
"""

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


MINUTES_PER_DAY = 60 * 24
MINUTES_PER_YEAR = MINUTES_PER_DAY * 365


class EntityCacheSettings(BaseSettings):
    """Entity cache settings, read from ENTITY_CACHE_* environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="ENTITY_CACHE_",
        env_file=".env",
        case_sensitive=False,
        extra="allow"
    )

    # Environment
    env: str = Field(default="local")
    log_level: str = Field(default="info")

    # Cache switches
    key_prefix: str = Field(default="EntityCache", min_length=1)
    cache_active: bool = Field(default=True)
    logging_active: bool = Field(default=False)

    # Backend
    backend: Literal["memory", "redis"] = Field(default="memory")
    redis_url: str = Field(default="redis://localhost:6379/0")
    redis_namespace: str = Field(default="")
    redis_socket_timeout: float = Field(default=5.0, gt=0)

    # Expiration
    registry_expiration_minutes: int = Field(default=MINUTES_PER_YEAR, gt=0)

    # Observability
    enable_metrics: bool = Field(default=False)


def get_settings(**overrides) -> EntityCacheSettings:
    """Get cache settings, with keyword overrides taking precedence over the environment."""
    return EntityCacheSettings(**overrides)
