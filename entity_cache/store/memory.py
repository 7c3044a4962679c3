"""
In-process cache store.
"""

import re
import threading
import time
from typing import Dict, List, Optional, Tuple

from .base import CacheEntry, CacheStore
from ..shared.logging import get_logger


def glob_to_regex(pattern: str) -> "re.Pattern[str]":
    """Compile a Redis-style glob (*, ?, [...], backslash escapes) into a regex."""
    parts: List[str] = []
    index = 0
    while index < len(pattern):
        char = pattern[index]
        if char == "\\" and index + 1 < len(pattern):
            parts.append(re.escape(pattern[index + 1]))
            index += 2
            continue
        if char == "*":
            parts.append(".*")
        elif char == "?":
            parts.append(".")
        elif char == "[":
            end = pattern.find("]", index + 1)
            if end == -1:
                parts.append(re.escape(char))
            else:
                body = pattern[index + 1:end]
                negate = body.startswith("^")
                if negate:
                    body = body[1:]
                body = body.replace("\\", "\\\\")
                parts.append(f"[{'^' if negate else ''}{body}]")
                index = end
        else:
            parts.append(re.escape(char))
        index += 1
    return re.compile("".join(parts), re.DOTALL)


class MemoryStore(CacheStore):
    """Dictionary-backed store with per-key expiry and key enumeration."""

    name = "memory"
    supports_enumeration = True

    def __init__(self, enumerable: bool = True, purge_interval: int = 1000):
        self.logger = get_logger("entity_cache.store.memory")
        self._entries: Dict[str, Tuple[CacheEntry, float]] = {}
        self._lock = threading.Lock()
        # Instance flag so the store can stand in for backends without enumeration
        self.supports_enumeration = enumerable
        # Expired entries are swept every purge_interval writes and on enumeration
        self.purge_interval = purge_interval
        self._puts_since_purge = 0

    def _expired(self, expires_at: float) -> bool:
        return time.monotonic() >= expires_at

    def _purge_expired(self) -> int:
        """Drop every expired entry. Caller holds the lock."""
        now = time.monotonic()
        expired = [key for key, (_, expires_at) in self._entries.items() if now >= expires_at]
        for key in expired:
            del self._entries[key]
        self._puts_since_purge = 0
        if expired:
            self.logger.debug("Purged expired entries", count=len(expired))
        return len(expired)

    async def get(self, key: str) -> Optional[CacheEntry]:
        with self._lock:
            stored = self._entries.get(key)
            if stored is None:
                return None
            entry, expires_at = stored
            if self._expired(expires_at):
                del self._entries[key]
                return None
            return entry

    async def put(self, key: str, entry: CacheEntry, ttl_minutes: int) -> None:
        with self._lock:
            self._puts_since_purge += 1
            if self._puts_since_purge >= self.purge_interval:
                self._purge_expired()
            self._entries[key] = (entry, time.monotonic() + ttl_minutes * 60)

    async def delete(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    async def keys_matching(self, pattern: str) -> List[str]:
        if not self.supports_enumeration:
            return await super().keys_matching(pattern)

        regex = glob_to_regex(pattern)
        with self._lock:
            self._purge_expired()
            return [key for key in self._entries if regex.fullmatch(key)]

    def __len__(self) -> int:
        with self._lock:
            self._purge_expired()
            return len(self._entries)

    async def close(self) -> None:
        with self._lock:
            self._entries.clear()
        self.logger.debug("Memory store cleared")
