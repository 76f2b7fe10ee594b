"""Exceptions raised by cachesql."""

from collections.abc import Iterable
from typing import Any


class CacheSQLError(Exception):
    """Base class for every error raised by cachesql."""

    pass


class StoreUnavailable(CacheSQLError):
    """Raised when the backing store cannot be reached or fails.

    The read path treats this as a forced cache miss. The write path
    retries and escalates to InvalidationFailed.
    """

    def __init__(self, message: str, *, operation: str | None = None) -> None:
        super().__init__(message)
        self.operation = operation


class SerializationError(CacheSQLError):
    """Raised when serialization or deserialization fails."""

    pass


class InvalidationFailed(CacheSQLError):
    """Raised after a mutation when its tags could not be invalidated.

    The mutation itself ran; its result is attached so callers can still
    use it. The tags stay flagged for a re-invalidation sweep.
    """

    def __init__(self, tags: Iterable[str], result: Any = None) -> None:
        self.tags = frozenset(tags)
        self.result = result
        super().__init__(
            f"Failed to invalidate cache tags: {', '.join(sorted(self.tags))}"
        )


__all__ = [
    "CacheSQLError",
    "InvalidationFailed",
    "SerializationError",
    "StoreUnavailable",
]
