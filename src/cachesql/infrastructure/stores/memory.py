"""In-memory tagged cache store implementation."""

import logging
import threading
import time
from collections.abc import Callable, Iterable, Mapping
from datetime import timedelta
from typing import Any

from cachetools import TTLCache  # type: ignore[import-untyped]

from cachesql.core.entities.cache_config import CacheConfig
from cachesql.core.entities.cache_entry import CacheEntry
from cachesql.core.entities.tags import EPOCH

logger = logging.getLogger(__name__)


class _IndexedTTLCache(TTLCache):  # type: ignore[misc]
    """TTLCache that reports the entries it drops on its own.

    LRU evictions go through popitem and expirations through expire;
    both hand the dropped entry to a callback so the tag index can
    follow.
    """

    def __init__(
        self,
        maxsize: int,
        ttl: float,
        timer: Callable[[], float],
        on_evict: Callable[[str, CacheEntry], None],
    ) -> None:
        super().__init__(maxsize=maxsize, ttl=ttl, timer=timer)
        self._on_evict = on_evict

    def popitem(self) -> tuple[str, CacheEntry]:
        key, entry = super().popitem()
        self._on_evict(key, entry)
        return key, entry

    def expire(self, time: float | None = None) -> list[tuple[str, CacheEntry]]:
        expired = super().expire(time)
        for key, entry in expired:
            self._on_evict(key, entry)
        return expired


class InMemoryTaggedCacheStore:
    """In-memory tagged cache store using LRU with TTL support.

    Suitable for single-process deployments. Entries live in a cachetools
    TTLCache; the tag index and the generation stamps live beside it.
    Every operation runs in one critical section with the cache clock
    frozen, so the entry map and the index never disagree, including
    when the cache evicts or expires entries by itself.

    Safe to share between asyncio tasks and between threads.
    """

    def __init__(
        self,
        maxsize: int = 1000,
        default_ttl: float = 300.0,
        timer: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the in-memory store.

        Args:
            maxsize: Maximum number of entries.
            default_ttl: TTL in seconds for every entry.
            timer: Clock used for expiration.
        """
        self._maxsize = maxsize
        self._lock = threading.RLock()
        self._entries = _IndexedTTLCache(
            maxsize=maxsize,
            ttl=default_ttl,
            timer=timer,
            on_evict=self._unindex,
        )
        self._index: dict[str, set[str]] = {}
        self._generations: dict[str, int] = {}

    @classmethod
    def from_config(cls, config: CacheConfig, **kwargs: Any) -> "InMemoryTaggedCacheStore":
        """Create a store sized and timed from a CacheConfig."""
        ttl = config.default_ttl or timedelta(minutes=5)
        return cls(
            maxsize=config.max_size or 1000,
            default_ttl=ttl.total_seconds(),
            **kwargs,
        )

    async def has(self, key: str) -> bool:
        """Check if key exists in the store.

        Args:
            key: The cache key to check.

        Returns:
            True if the key exists, False otherwise.
        """
        with self._lock, self._entries.timer:
            return key in self._entries

    async def get(self, key: str) -> bytes | None:
        """Retrieve a stored value.

        Args:
            key: The cache key to retrieve.

        Returns:
            The stored bytes, or None if not found or expired.
        """
        with self._lock, self._entries.timer:
            entry = self._entries.get(key)
            return entry.value if entry is not None else None

    async def set(
        self,
        key: str,
        tags: Iterable[str],
        value: bytes,
        generations: Mapping[str, int] | None = None,
    ) -> bool:
        """Store a value and register it under every tag.

        Args:
            key: The cache key.
            tags: Invalidation tags of the entry.
            value: The serialized value.
            generations: Snapshot taken before the value was computed.

        Returns:
            True if stored, False if rejected as stale.
        """
        entry = CacheEntry.create(key=key, value=value, tags=tags)

        with self._lock, self._entries.timer:
            self._entries.expire()

            if generations is not None and self._is_stale(generations):
                logger.debug(f"Rejected stale write for {key}")
                return False

            previous = self._entries.pop(key, None)
            if previous is not None:
                self._unindex(key, previous)

            # May evict the least recently used entry through popitem
            self._entries[key] = entry
            for tag in entry.tags:
                self._index.setdefault(tag, set()).add(key)

        return True

    async def invalidate(self, tags: Iterable[str]) -> int:
        """Delete every entry carrying any of the tags.

        Args:
            tags: Tags to invalidate. May be empty.

        Returns:
            Number of entries deleted.
        """
        tags = frozenset(tags)
        removed = 0

        with self._lock, self._entries.timer:
            self._entries.expire()

            for tag in tags:
                self._generations[tag] = self._generations.get(tag, 0) + 1

                for key in self._index.pop(tag, set()):
                    entry = self._entries.pop(key, None)
                    if entry is not None:
                        self._unindex(key, entry)
                        removed += 1

        if tags:
            logger.debug(f"Invalidated {removed} entries for {len(tags)} tags")
        return removed

    async def generations(self, tags: Iterable[str]) -> dict[str, int]:
        """Snapshot the generation stamps of the tags and the store epoch.

        Args:
            tags: Tags to snapshot.

        Returns:
            Mapping from tag (and the ``*`` epoch) to generation.
        """
        with self._lock:
            snapshot = {tag: self._generations.get(tag, 0) for tag in tags}
            snapshot[EPOCH] = self._generations.get(EPOCH, 0)
            return snapshot

    async def flush(self) -> None:
        """Delete every entry and advance the store epoch."""
        with self._lock, self._entries.timer:
            self._entries.clear()
            self._index.clear()
            self._generations[EPOCH] = self._generations.get(EPOCH, 0) + 1

    def keys_for_tag(self, tag: str) -> frozenset[str]:
        """Return the keys currently indexed under a tag."""
        with self._lock, self._entries.timer:
            self._entries.expire()
            return frozenset(self._index.get(tag, ()))

    def index_snapshot(self) -> dict[str, frozenset[str]]:
        """Return a copy of the tag index."""
        with self._lock, self._entries.timer:
            self._entries.expire()
            return {tag: frozenset(keys) for tag, keys in self._index.items()}

    def entries_snapshot(self) -> dict[str, frozenset[str]]:
        """Return the tags of every live entry, by key."""
        with self._lock, self._entries.timer:
            self._entries.expire()
            return {key: entry.tags for key, entry in self._entries.items()}

    def __len__(self) -> int:
        """Return the number of live entries in the store."""
        with self._lock, self._entries.timer:
            self._entries.expire()
            return len(self._entries)

    @property
    def maxsize(self) -> int:
        """Return the maximum size of the store."""
        return self._maxsize

    def _is_stale(self, generations: Mapping[str, int]) -> bool:
        return any(
            self._generations.get(tag, 0) > captured
            for tag, captured in generations.items()
        )

    def _unindex(self, key: str, entry: CacheEntry) -> None:
        for tag in entry.tags:
            keys = self._index.get(tag)
            if keys is None:
                continue
            keys.discard(key)
            if not keys:
                del self._index[tag]
