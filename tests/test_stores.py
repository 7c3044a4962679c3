"""
Unit tests for the cache store adapters.
"""

from unittest.mock import AsyncMock, patch

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from entity_cache.shared.errors import BackendError, EnumerationNotSupportedError, SerializationError
from entity_cache.store import (
    CacheStore,
    MemoryStore,
    PointerEntry,
    RecordEntry,
    RedisStore,
    RegistryEntry,
    decode_entry,
    encode_entry,
)
from entity_cache.store.memory import glob_to_regex


class TestEntryEncoding:
    """Test cases for tagged entry serialization."""

    def test_entries_round_trip_by_kind(self):
        """Test each entry kind decodes back to its own type."""
        for entry in (
            RecordEntry(attributes={"id": 7, "email": "a@b.com"}),
            PointerEntry(key='App::User::a:1:{s:2:"id";s:1:"7";}'),
            RegistryEntry(classes=["User"]),
        ):
            assert decode_entry(encode_entry(entry)) == entry

    def test_record_holding_prefixed_string_is_not_a_pointer(self):
        """Test record data shaped like a key stays a record."""
        entry = decode_entry(encode_entry(RecordEntry(attributes={"note": "App::User::x"})))

        assert isinstance(entry, RecordEntry)

    def test_decode_garbage(self):
        """Test undecodable payloads raise SerializationError."""
        with pytest.raises(SerializationError):
            decode_entry('{"kind": "unknown"}')


class TestGlobToRegex:
    """Test cases for Redis-style glob matching."""

    @pytest.mark.parametrize("pattern,key,expected", [
        ("App::*", "App::User::x", True),
        ("App::*", "Other::User", False),
        ("a?c", "abc", True),
        ("a[bc]d", "acd", True),
        ("a[^bc]d", "abd", False),
        ("a\\*b", "a*b", True),
        ("a\\*b", "axb", False),
        ('App::User::a:1:{s:2:"id";s:*:"*";}', 'App::User::a:1:{s:2:"id";s:1:"7";}', True),
        ('App::User::a:1:{s:2:"id";s:*:"*";}', 'App::User::a:1:{s:5:"email";s:7:"a@b.com";}', False),
    ])
    def test_matching(self, pattern, key, expected):
        """Test glob semantics used by enumeration patterns."""
        assert bool(glob_to_regex(pattern).fullmatch(key)) is expected


class TestMemoryStore:
    """Test cases for MemoryStore."""

    @pytest.fixture
    def store(self):
        """Create MemoryStore instance."""
        return MemoryStore()

    @pytest.mark.asyncio
    async def test_put_get_delete(self, store):
        """Test basic storage operations."""
        entry = RecordEntry(attributes={"id": 1})

        await store.put("k", entry, 10)
        assert await store.get("k") == entry

        await store.delete("k")
        await store.delete("k")
        assert await store.get("k") is None

    @pytest.mark.asyncio
    async def test_expiry(self, store):
        """Test entries expire after their TTL."""
        with patch("entity_cache.store.memory.time.monotonic", return_value=1000.0):
            await store.put("k", PointerEntry(key="t"), 1)

        with patch("entity_cache.store.memory.time.monotonic", return_value=1059.0):
            assert await store.get("k") == PointerEntry(key="t")

        with patch("entity_cache.store.memory.time.monotonic", return_value=1060.0):
            assert await store.get("k") is None
            assert len(store) == 0

    @pytest.mark.asyncio
    async def test_enumeration_purges_expired_entries(self, store):
        """Test expired entries are removed, not only hidden, on enumeration."""
        with patch("entity_cache.store.memory.time.monotonic", return_value=1000.0):
            for index in range(100):
                await store.put(f"App::User::{index}", PointerEntry(key="x"), 1)

        with patch("entity_cache.store.memory.time.monotonic", return_value=4600.0):
            assert await store.keys_matching("*") == []
            await store.put("App::User::fresh", PointerEntry(key="x"), 1)

        assert len(store._entries) == 1

    @pytest.mark.asyncio
    async def test_writes_purge_expired_entries(self):
        """Test expired entries are swept every purge_interval writes."""
        store = MemoryStore(enumerable=False, purge_interval=10)

        with patch("entity_cache.store.memory.time.monotonic", return_value=1000.0):
            for index in range(9):
                await store.put(f"old-{index}", PointerEntry(key="x"), 1)

        with patch("entity_cache.store.memory.time.monotonic", return_value=4600.0):
            await store.put("new", PointerEntry(key="x"), 1)

        assert list(store._entries) == ["new"]

    @pytest.mark.asyncio
    async def test_keys_matching(self, store):
        """Test enumeration by pattern."""
        await store.put("App::User::1", PointerEntry(key="x"), 10)
        await store.put("App::Team::1", PointerEntry(key="x"), 10)

        assert await store.keys_matching("App::User::*") == ["App::User::1"]
        assert sorted(await store.keys_matching("App::*")) == ["App::Team::1", "App::User::1"]

    @pytest.mark.asyncio
    async def test_enumeration_can_be_disabled(self):
        """Test a non-enumerable store signals unsupported enumeration."""
        store = MemoryStore(enumerable=False)

        assert store.supports_enumeration is False
        with pytest.raises(EnumerationNotSupportedError):
            await store.keys_matching("*")

    @pytest.mark.asyncio
    async def test_default_store_has_no_enumeration(self):
        """Test the base interface declines enumeration."""

        class GetOnlyStore(CacheStore):
            async def get(self, key):
                return None

            async def put(self, key, entry, ttl_minutes):
                return None

            async def delete(self, key):
                return None

        store = GetOnlyStore()
        assert store.supports_enumeration is False
        assert store.key_prefix == ""
        with pytest.raises(EnumerationNotSupportedError):
            await store.keys_matching("*")


class TestRedisStore:
    """Test cases for RedisStore."""

    @pytest.fixture
    def mock_redis(self):
        """Mock async Redis client."""
        return AsyncMock()

    @pytest.fixture
    def store(self, mock_redis):
        """Create RedisStore instance over the mock client."""
        return RedisStore("redis://localhost:6379/0", namespace="laravel:", client=mock_redis)

    @pytest.mark.asyncio
    async def test_put_uses_setex_in_seconds(self, store, mock_redis):
        """Test entries are written with a TTL in seconds under the namespace."""
        entry = RecordEntry(attributes={"id": 7})

        await store.put("App::User::k", entry, 30)

        mock_redis.setex.assert_called_once_with("laravel:App::User::k", 1800, encode_entry(entry))

    @pytest.mark.asyncio
    async def test_get_decodes_entry(self, store, mock_redis):
        """Test stored payloads are decoded to tagged entries."""
        mock_redis.get.return_value = encode_entry(PointerEntry(key="App::User::p"))

        assert await store.get("App::User::k") == PointerEntry(key="App::User::p")
        mock_redis.get.assert_called_once_with("laravel:App::User::k")

    @pytest.mark.asyncio
    async def test_get_missing(self, store, mock_redis):
        """Test a missing key returns None."""
        mock_redis.get.return_value = None

        assert await store.get("App::User::k") is None

    @pytest.mark.asyncio
    async def test_delete(self, store, mock_redis):
        """Test delete targets the namespaced key."""
        await store.delete("App::User::k")

        mock_redis.delete.assert_called_once_with("laravel:App::User::k")

    @pytest.mark.asyncio
    async def test_keys_matching_strips_namespace(self, store, mock_redis):
        """Test enumeration applies and strips the namespace."""
        mock_redis.keys.return_value = [b"laravel:App::User::1", "laravel:App::User::2"]

        keys = await store.keys_matching("App::User::*")

        assert keys == ["App::User::1", "App::User::2"]
        mock_redis.keys.assert_called_once_with("laravel:App::User::*")
        assert store.key_prefix == "laravel:"

    @pytest.mark.asyncio
    async def test_errors_become_backend_errors(self, store, mock_redis):
        """Test Redis failures surface as BackendError."""
        mock_redis.get.side_effect = RedisConnectionError("connection refused")
        mock_redis.setex.side_effect = RedisConnectionError("connection refused")
        mock_redis.keys.side_effect = RedisConnectionError("connection refused")

        with pytest.raises(BackendError) as exc_info:
            await store.get("k")
        assert exc_info.value.code == "BACKEND_ERROR"
        assert exc_info.value.details["operation"] == "get"

        with pytest.raises(BackendError):
            await store.put("k", PointerEntry(key="t"), 1)

        with pytest.raises(BackendError):
            await store.keys_matching("*")

    @pytest.mark.asyncio
    async def test_health_check(self, store, mock_redis):
        """Test health check reflects ping."""
        assert await store.health_check() is True

        mock_redis.ping.side_effect = RedisConnectionError("down")
        assert await store.health_check() is False

    @pytest.mark.asyncio
    async def test_close(self, store, mock_redis):
        """Test close releases the client."""
        await store.close()

        mock_redis.aclose.assert_awaited_once()
