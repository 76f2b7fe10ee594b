"""Cache decision entity."""

from dataclasses import dataclass

REASON_DISABLED = "cache disabled"
REASON_NON_READ = "non-read operation"
REASON_EXCLUDED_TABLE = "excluded table"
REASON_NOT_INCLUDED = "table not included"
REASON_NO_TABLES = "no tables referenced"
REASON_NON_DETERMINISTIC = "non-deterministic query"


@dataclass(frozen=True)
class CacheDecision:
    """Outcome of a cacheability check.

    A not-cacheable decision is a normal outcome, never an error.
    """

    is_cacheable: bool
    reason: str | None = None

    def __bool__(self) -> bool:
        return self.is_cacheable

    @classmethod
    def cacheable(cls) -> "CacheDecision":
        """Create a decision allowing the query to be cached."""
        return cls(is_cacheable=True)

    @classmethod
    def not_cacheable(cls, reason: str) -> "CacheDecision":
        """Create a decision refusing to cache, with a reason."""
        return cls(is_cacheable=False, reason=reason)
