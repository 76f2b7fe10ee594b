"""Key deriver interface."""

from typing import Protocol

from cachesql.core.entities.cache_key import CacheKey
from cachesql.core.entities.query_descriptor import QueryDescriptor


class IKeyDeriver(Protocol):
    """Contract for deriving cache keys from query descriptors.

    Key derivers must be deterministic: the same raw text and bound
    parameters always give the same key, in any process.
    """

    def key(self, descriptor: QueryDescriptor) -> CacheKey:
        """Derive the cache key for a query.

        Args:
            descriptor: The query descriptor.

        Returns:
            The cache key identifying the query's result.
        """
        ...
