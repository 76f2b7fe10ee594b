"""Cache policy - decides which queries may be cached."""

import re

from cachesql.core.entities.cache_config import CacheConfig
from cachesql.core.entities.cache_decision import (
    REASON_DISABLED,
    REASON_EXCLUDED_TABLE,
    REASON_NO_TABLES,
    REASON_NON_DETERMINISTIC,
    REASON_NON_READ,
    REASON_NOT_INCLUDED,
    CacheDecision,
)
from cachesql.core.entities.query_descriptor import QueryDescriptor


class CachePolicy:
    """Decides whether a query's result is eligible for caching.

    Rules are evaluated in order and the first match wins:

    1. caching disabled in the configuration;
    2. the operation is not a SELECT;
    3. a table is in ``exclude_tables``;
    4. ``include_tables`` is set and a table is not in it;
    5. no table is referenced, so nothing could ever invalidate it;
    6. the query is non-deterministic: flagged by the reflection
       collaborator, containing a configured marker, or matched by a
       configured predicate.

    Non-determinism detection is best-effort. The policy is a pure
    function of the configuration and the descriptor.
    """

    def __init__(self, config: CacheConfig | None = None) -> None:
        """Initialize the policy.

        Args:
            config: Optional cache configuration. Uses defaults if not provided.
        """
        self._config = config or CacheConfig()
        self._markers = _compile_markers(self._config.non_deterministic_markers)

    def decide(self, descriptor: QueryDescriptor) -> CacheDecision:
        """Decide whether the query's result is eligible for caching.

        Args:
            descriptor: The query descriptor.

        Returns:
            A cacheable decision, or a not-cacheable one with its reason.
        """
        config = self._config

        if not config.enabled:
            return CacheDecision.not_cacheable(REASON_DISABLED)

        if not descriptor.is_read:
            return CacheDecision.not_cacheable(REASON_NON_READ)

        if any(table in config.exclude_tables for table in descriptor.tables):
            return CacheDecision.not_cacheable(REASON_EXCLUDED_TABLE)

        if config.include_tables and any(
            table not in config.include_tables for table in descriptor.tables
        ):
            return CacheDecision.not_cacheable(REASON_NOT_INCLUDED)

        if not descriptor.tables:
            return CacheDecision.not_cacheable(REASON_NO_TABLES)

        if self.is_non_deterministic(descriptor):
            return CacheDecision.not_cacheable(REASON_NON_DETERMINISTIC)

        return CacheDecision.cacheable()

    def is_non_deterministic(self, descriptor: QueryDescriptor) -> bool:
        """Check the descriptor flag, the text markers and the predicates."""
        if descriptor.non_deterministic:
            return True

        if self._markers is not None and self._markers.search(descriptor.raw_text):
            return True

        return any(
            predicate(descriptor)
            for predicate in self._config.non_deterministic_predicates
        )


def _compile_markers(markers: tuple[str, ...]) -> re.Pattern[str] | None:
    """Build one case-insensitive pattern matching any marker.

    A marker ending in ``(`` matches a function call, with optional
    whitespace before the parenthesis; any other marker matches a whole
    word.
    """
    patterns = []
    for marker in markers:
        if marker.endswith("("):
            patterns.append(rf"\b{re.escape(marker[:-1].strip())}\s*\(")
        else:
            patterns.append(rf"\b{re.escape(marker)}\b")

    if not patterns:
        return None
    return re.compile("|".join(patterns), re.IGNORECASE)
