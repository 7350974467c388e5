"""Key-value cache backends and the prompt result cache.

The in-memory store is process-local: two engine instances do not see each
other's entries or counters. Multi-instance deployments use the Redis store.
"""

import asyncio
import json
import logging
import time
from abc import ABC, abstractmethod
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Callable

from storyprompts.domain.models.prompts import PromptValue
from storyprompts.infrastructure.redis import RedisClient, redis_client

logger = logging.getLogger(__name__)


class KeyValueStore(ABC):
    """Minimal async key-value contract used by the cache and rate limiter."""

    @abstractmethod
    async def get(self, key: str) -> Any | None:
        """Return the live value for ``key`` or None."""

    @abstractmethod
    async def set(self, key: str, value: Any, ttl_seconds: float) -> None:
        """Store ``value`` under ``key`` for ``ttl_seconds``."""

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove ``key`` if present."""

    @abstractmethod
    async def clear(self) -> None:
        """Remove every entry."""

    @abstractmethod
    async def incr(self, key: str, ttl_seconds: float) -> int:
        """Increment a counter; a new counter expires after ``ttl_seconds``."""


@dataclass
class CacheEntry:
    """A stored value with its absolute expiry."""

    value: Any
    expires_at: float
    inserted_at: float


class InMemoryKeyValueStore(KeyValueStore):
    """TTL store with a size cap and oldest-first eviction.

    Counters from ``incr`` live apart from cached values and only leave by
    expiry, so cache writes never push a rate-limit window out early.
    """

    def __init__(
        self,
        max_entries: int = 1000,
        purge_interval_seconds: float = 60,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._entries: OrderedDict[str, CacheEntry] = OrderedDict()
        self._counters: dict[str, CacheEntry] = {}
        self._max_entries = max_entries
        self._purge_interval = purge_interval_seconds
        self._clock = clock
        self._last_purge = clock()
        self._lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self._entries) + len(self._counters)

    @staticmethod
    def _live(table: dict[str, CacheEntry], key: str, now: float) -> CacheEntry | None:
        entry = table.get(key)
        if entry is None:
            return None
        if now >= entry.expires_at:
            del table[key]
            return None
        return entry

    def _purge_expired(self, now: float) -> None:
        if now - self._last_purge < self._purge_interval:
            return
        purged = 0
        for table in (self._entries, self._counters):
            expired = [k for k, e in table.items() if now >= e.expires_at]
            for key in expired:
                del table[key]
            purged += len(expired)
        self._last_purge = now
        if purged:
            logger.debug(f"Purged {purged} expired cache entries")

    def _evict_overflow(self) -> None:
        while len(self._entries) > self._max_entries:
            self._entries.popitem(last=False)

    async def get(self, key: str) -> Any | None:
        async with self._lock:
            now = self._clock()
            entry = self._live(self._entries, key, now) or self._live(self._counters, key, now)
            return entry.value if entry else None

    async def set(self, key: str, value: Any, ttl_seconds: float) -> None:
        async with self._lock:
            now = self._clock()
            self._purge_expired(now)
            self._counters.pop(key, None)
            # Re-inserting moves the key to the newest position
            self._entries.pop(key, None)
            self._entries[key] = CacheEntry(value=value, expires_at=now + ttl_seconds, inserted_at=now)
            self._evict_overflow()

    async def delete(self, key: str) -> None:
        async with self._lock:
            self._entries.pop(key, None)
            self._counters.pop(key, None)

    async def clear(self) -> None:
        async with self._lock:
            self._entries.clear()
            self._counters.clear()

    async def incr(self, key: str, ttl_seconds: float) -> int:
        async with self._lock:
            now = self._clock()
            entry = self._live(self._counters, key, now)
            if entry is None:
                self._purge_expired(now)
                self._entries.pop(key, None)
                entry = CacheEntry(value=0, expires_at=now + ttl_seconds, inserted_at=now)
                self._counters[key] = entry
            entry.value += 1
            return entry.value


class RedisKeyValueStore(KeyValueStore):
    """Shared store backed by Redis; values are JSON encoded."""

    def __init__(self, client: RedisClient | None = None, prefix: str = "storyprompts") -> None:
        self._client = client or redis_client
        self._prefix = prefix

    def _key(self, key: str) -> str:
        return f"{self._prefix}:{key}"

    async def get(self, key: str) -> Any | None:
        raw = await self._client.get(self._key(key))
        return json.loads(raw) if raw is not None else None

    async def set(self, key: str, value: Any, ttl_seconds: float) -> None:
        await self._client.set(self._key(key), json.dumps(value, default=str), max(1, int(ttl_seconds)))

    async def delete(self, key: str) -> None:
        await self._client.delete(self._key(key))

    async def clear(self) -> None:
        # Entries expire on their own; a prefix scan is not worth it here
        logger.info("RedisKeyValueStore.clear is a no-op; entries expire by TTL")

    async def incr(self, key: str, ttl_seconds: float) -> int:
        return await self._client.incr(self._key(key), max(1, int(ttl_seconds)))


class ResultCache:
    """Memoizes prompt values by request fingerprint."""

    def __init__(self, store: KeyValueStore, ttl_seconds: float = 3600) -> None:
        self.store = store
        self.ttl_seconds = ttl_seconds

    async def get(self, fingerprint: str) -> PromptValue | None:
        cached = await self.store.get(fingerprint)
        if cached is None:
            return None
        return PromptValue.model_validate(cached)

    async def set(self, fingerprint: str, prompt: PromptValue, ttl_seconds: float | None = None) -> None:
        await self.store.set(
            fingerprint,
            prompt.model_dump(mode="json"),
            self.ttl_seconds if ttl_seconds is None else ttl_seconds,
        )

    async def invalidate(self, fingerprint: str) -> None:
        await self.store.delete(fingerprint)


def build_key_value_store(max_entries: int = 1000, purge_interval_seconds: float = 60) -> KeyValueStore:
    """Pick the shared Redis store when it is connected, else an in-memory one."""
    if redis_client.is_available:
        return RedisKeyValueStore(redis_client)
    return InMemoryKeyValueStore(max_entries=max_entries, purge_interval_seconds=purge_interval_seconds)
