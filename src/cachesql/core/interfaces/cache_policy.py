"""Cache policy interface."""

from typing import Protocol

from cachesql.core.entities.cache_decision import CacheDecision
from cachesql.core.entities.query_descriptor import QueryDescriptor


class ICachePolicy(Protocol):
    """Contract for deciding whether a query may be cached."""

    def decide(self, descriptor: QueryDescriptor) -> CacheDecision:
        """Decide whether the query's result is eligible for caching.

        Args:
            descriptor: The query descriptor.

        Returns:
            A cacheable or not-cacheable decision. Must not raise for a
            well-formed descriptor.
        """
        ...
