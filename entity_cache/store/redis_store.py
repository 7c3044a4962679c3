"""
Redis cache store.
"""

from typing import List, Optional

import redis.asyncio as redis
from redis.exceptions import RedisError

from .base import CacheEntry, CacheStore, decode_entry, encode_entry
from ..keys import escape_glob
from ..shared.errors import BackendError
from ..shared.logging import get_logger


class RedisStore(CacheStore):
    """Redis-backed store. Enumerates keys with KEYS."""

    name = "redis"
    supports_enumeration = True

    def __init__(
        self,
        redis_url: str,
        namespace: str = "",
        socket_timeout: float = 5.0,
        client: Optional[redis.Redis] = None
    ):
        self.redis_url = redis_url
        self.namespace = namespace
        self.socket_timeout = socket_timeout
        self.logger = get_logger("entity_cache.store.redis")
        self._redis: Optional[redis.Redis] = client

    @property
    def key_prefix(self) -> str:
        return self.namespace

    async def _get_redis(self) -> redis.Redis:
        """Get Redis connection."""
        if self._redis is None:
            self._redis = redis.from_url(
                self.redis_url,
                encoding="utf-8",
                decode_responses=True,
                socket_connect_timeout=self.socket_timeout,
                socket_timeout=self.socket_timeout,
                retry_on_timeout=True
            )
        return self._redis

    def _full_key(self, key: str) -> str:
        return f"{self.namespace}{key}"

    def _backend_error(self, operation: str, key: str, error: Exception) -> BackendError:
        self.logger.error("Redis operation failed", operation=operation, key=key, error=str(error))
        return BackendError(self.name, str(error), {"operation": operation, "key": key})

    async def get(self, key: str) -> Optional[CacheEntry]:
        try:
            redis_client = await self._get_redis()
            raw = await redis_client.get(self._full_key(key))
        except (RedisError, OSError) as e:
            raise self._backend_error("get", key, e) from e

        if raw is None:
            return None
        return decode_entry(raw)

    async def put(self, key: str, entry: CacheEntry, ttl_minutes: int) -> None:
        payload = encode_entry(entry)
        try:
            redis_client = await self._get_redis()
            await redis_client.setex(self._full_key(key), ttl_minutes * 60, payload)
        except (RedisError, OSError) as e:
            raise self._backend_error("put", key, e) from e

    async def delete(self, key: str) -> None:
        try:
            redis_client = await self._get_redis()
            await redis_client.delete(self._full_key(key))
        except (RedisError, OSError) as e:
            raise self._backend_error("delete", key, e) from e

    async def keys_matching(self, pattern: str) -> List[str]:
        search = escape_glob(self.namespace) + pattern
        try:
            redis_client = await self._get_redis()
            keys = await redis_client.keys(search)
        except (RedisError, OSError) as e:
            raise self._backend_error("keys", search, e) from e

        result = []
        for key in keys:
            if isinstance(key, bytes):
                key = key.decode("utf-8")
            result.append(key[len(self.namespace):])
        return result

    async def health_check(self) -> bool:
        """Check Redis health."""
        try:
            redis_client = await self._get_redis()
            await redis_client.ping()
            return True
        except (RedisError, OSError):
            return False

    async def close(self) -> None:
        """Close the Redis connection."""
        if self._redis is not None:
            await self._redis.aclose()
            self._redis = None
            self.logger.info("Redis store closed")
