"""Tagged cache store implementations."""

from cachesql.infrastructure.stores.memory import InMemoryTaggedCacheStore
from cachesql.infrastructure.stores.redis import RedisTaggedCacheStore

__all__ = [
    "InMemoryTaggedCacheStore",
    "RedisTaggedCacheStore",
]
