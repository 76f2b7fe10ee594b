"""Core domain layer for cachesql."""

from cachesql.core.entities import (
    CacheConfig,
    CacheDecision,
    CacheEntry,
    CacheKey,
    Operation,
    QueryDescriptor,
)
from cachesql.core.errors import (
    CacheSQLError,
    InvalidationFailed,
    SerializationError,
    StoreUnavailable,
)
from cachesql.core.interfaces import (
    ICachePolicy,
    IKeyDeriver,
    IMeasurementSink,
    ISerializer,
    ITagDeriver,
    ITaggedCacheStore,
)
from cachesql.core.services import CacheOrchestrator, CachePolicy

__all__ = [
    # Entities
    "CacheConfig",
    "CacheDecision",
    "CacheEntry",
    "CacheKey",
    "Operation",
    "QueryDescriptor",
    # Errors
    "CacheSQLError",
    "InvalidationFailed",
    "SerializationError",
    "StoreUnavailable",
    # Interfaces
    "ICachePolicy",
    "IKeyDeriver",
    "IMeasurementSink",
    "ISerializer",
    "ITagDeriver",
    "ITaggedCacheStore",
    # Services
    "CacheOrchestrator",
    "CachePolicy",
]
