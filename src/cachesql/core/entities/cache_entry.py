"""Cache entry entity."""

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime, timezone


@dataclass(frozen=True)
class CacheEntry:
    """A serialized query result held by the in-memory store.

    Expiry belongs to the store; the entry only remembers which tags
    it was indexed under, so the store can unindex it when it goes.
    """

    key: str
    value: bytes
    tags: frozenset[str]
    created_at: datetime

    @classmethod
    def create(cls, key: str, value: bytes, tags: Iterable[str] = ()) -> "CacheEntry":
        """Create an entry stamped with the current time."""
        return cls(
            key=key,
            value=value,
            tags=frozenset(tags),
            created_at=datetime.now(timezone.utc),
        )
