"""Cache configuration entity."""

from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import timedelta

from cachesql.core.entities.query_descriptor import QueryDescriptor

# Functions whose result changes between executions of the same statement
DEFAULT_NON_DETERMINISTIC_MARKERS: tuple[str, ...] = (
    "RAND(",
    "RANDOM(",
    "NOW(",
    "UUID(",
    "NEWID(",
    "SYSDATE",
    "CURRENT_TIMESTAMP",
    "CURRENT_DATE",
    "CURRENT_TIME",
    "LOCALTIMESTAMP",
)

NonDeterminismPredicate = Callable[[QueryDescriptor], bool]


@dataclass
class CacheConfig:
    """Cache configuration.

    Provides configuration options for the caching system: feature
    toggles, table filters, tagging granularity and the retry policy
    used when invalidation fails.

    Table Filters:
        exclude_tables always wins. When include_tables is non-empty,
        only queries whose every table is listed are cached.

    Row-Level Tagging:
        Off by default. When enabled, reads narrowed to specific primary
        keys are tagged per row, and point writes only invalidate those
        rows plus every table scan. Reflection collaborators must only
        report row keys for reads that cannot observe other rows.
    """

    enabled: bool = True
    default_ttl: timedelta | None = None
    max_size: int | None = 1000
    key_prefix: str = "cachesql"

    # Cacheability
    exclude_tables: frozenset[str] = frozenset()
    include_tables: frozenset[str] = frozenset()
    non_deterministic_markers: tuple[str, ...] = DEFAULT_NON_DETERMINISTIC_MARKERS
    non_deterministic_predicates: tuple[NonDeterminismPredicate, ...] = field(
        default_factory=tuple
    )

    # Tagging
    row_level_tagging: bool = False

    # Invalidation
    invalidate_after_write: bool = False
    invalidation_attempts: int = 3
    invalidation_backoff: float = 0.05  # Initial backoff in seconds
    invalidation_backoff_max: float = 1.0
    raise_on_invalidation_failure: bool = True

    def __post_init__(self) -> None:
        """Set defaults and validate values."""
        if self.default_ttl is None:
            self.default_ttl = timedelta(minutes=5)

        self.exclude_tables = _as_frozenset(self.exclude_tables)
        self.include_tables = _as_frozenset(self.include_tables)
        self.non_deterministic_markers = tuple(
            marker.upper() for marker in self.non_deterministic_markers
        )
        self.non_deterministic_predicates = tuple(self.non_deterministic_predicates)

        if self.default_ttl <= timedelta(0):
            raise ValueError("default_ttl must be positive")
        if self.max_size is not None and self.max_size <= 0:
            raise ValueError("max_size must be positive")
        if self.invalidation_attempts < 1:
            raise ValueError("invalidation_attempts must be at least 1")
        if self.invalidation_backoff < 0 or self.invalidation_backoff_max < 0:
            raise ValueError("invalidation backoff must not be negative")
        if not self.key_prefix:
            raise ValueError("key_prefix must not be empty")


def _as_frozenset(tables: Iterable[str]) -> frozenset[str]:
    # A bare string would otherwise become a set of characters
    if isinstance(tables, str):
        return frozenset({tables})
    return frozenset(tables)
