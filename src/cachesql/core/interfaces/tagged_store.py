"""Tagged cache store interface."""

from collections.abc import Iterable, Mapping
from typing import Protocol


class ITaggedCacheStore(Protocol):
    """Contract for tag-indexed cache stores.

    A store keeps entries by key and a reverse index from tag to keys.
    For every live entry, its key is listed under each of its tags, and
    every key listed under a tag refers to a live entry carrying that
    tag. set and invalidate each update the entry map and the index
    atomically.

    Each tag also has a generation stamp that invalidate advances. A set
    carrying a snapshot taken before an invalidation of one of its tags
    is rejected, which keeps results computed from pre-write data out of
    the cache.

    Methods are async to support both in-memory and distributed stores.
    Backing-store failures raise StoreUnavailable; absence is never an
    error.
    """

    async def has(self, key: str) -> bool:
        """Check if key exists. Only a hint; get is authoritative.

        Args:
            key: The cache key to check.

        Returns:
            True if the key exists, False otherwise.
        """
        ...

    async def get(self, key: str) -> bytes | None:
        """Retrieve a stored value.

        Args:
            key: The cache key to retrieve.

        Returns:
            The stored bytes, or None on a miss.
        """
        ...

    async def set(
        self,
        key: str,
        tags: Iterable[str],
        value: bytes,
        generations: Mapping[str, int] | None = None,
    ) -> bool:
        """Store a value under a key and register it under every tag.

        Args:
            key: The cache key.
            tags: Invalidation tags of the entry.
            value: The serialized value.
            generations: Snapshot from generations(), taken before the
                value was computed. None skips the staleness check.

        Returns:
            True if stored, False if rejected as stale.
        """
        ...

    async def invalidate(self, tags: Iterable[str]) -> int:
        """Delete every entry carrying any of the tags.

        Advances each tag's generation, even when no entry carries it.

        Args:
            tags: Tags to invalidate. May be empty.

        Returns:
            Number of entries deleted.
        """
        ...

    async def generations(self, tags: Iterable[str]) -> dict[str, int]:
        """Snapshot the generation stamps of the tags and the store epoch.

        Args:
            tags: Tags to snapshot.

        Returns:
            Mapping from tag (and the ``*`` epoch) to generation.
        """
        ...

    async def flush(self) -> None:
        """Delete every entry and advance the store epoch."""
        ...
