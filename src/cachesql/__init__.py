"""CacheSQL - Tag-aware result caching for SQL queries.

A Python library that caches the results of read queries and
invalidates them when a mutation touches the tables (or rows) they
read from. The orchestrator sits at the execution boundary of a
data-access layer: reads go through run_cached_select, writes through
run_invalidating_mutation.

Example with SQLAlchemy:
    from sqlalchemy import select, update
    from sqlalchemy.ext.asyncio import create_async_engine
    from cachesql import CacheConfig, create_orchestrator
    from cachesql.adapters.sqlalchemy import CachingConnection

    orchestrator = create_orchestrator(
        CacheConfig(exclude_tables={"sessions"}, row_level_tagging=True)
    )
    engine = create_async_engine("postgresql+asyncpg://...")

    async with engine.connect() as conn:
        cached = CachingConnection(conn, orchestrator)

        # Executed once, then served from the cache
        rows = await cached.fetch_all(select(users).where(users.c.id == 1))

        # Invalidates the cached reads of row 1 and table-wide reads
        await cached.mutate(update(users).where(users.c.id == 1).values(name="Bo"))
        await conn.commit()

Without an adapter:
    from cachesql import QueryDescriptor

    descriptor = QueryDescriptor.select(
        tables=["users"],
        raw_text="SELECT * FROM users WHERE id = ?",
        bound_parameters=[1],
    )
    rows = await orchestrator.run_cached_select(descriptor, fetch_user)
"""

from cachesql.core.entities import (
    CacheConfig,
    CacheDecision,
    CacheEntry,
    CacheKey,
    Measurement,
    MeasurementKind,
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
from cachesql.factory import create_orchestrator
from cachesql.infrastructure import (
    CollectingMeasurementSink,
    DefaultKeyDeriver,
    DefaultTagDeriver,
    InMemoryTaggedCacheStore,
    JsonSerializer,
    LoggingMeasurementSink,
    RedisTaggedCacheStore,
)

__version__ = "0.1.0"

__all__ = [
    # Version
    "__version__",
    # Core entities
    "CacheConfig",
    "CacheDecision",
    "CacheEntry",
    "CacheKey",
    "Measurement",
    "MeasurementKind",
    "Operation",
    "QueryDescriptor",
    # Errors
    "CacheSQLError",
    "InvalidationFailed",
    "SerializationError",
    "StoreUnavailable",
    # Core interfaces
    "ICachePolicy",
    "IKeyDeriver",
    "IMeasurementSink",
    "ISerializer",
    "ITagDeriver",
    "ITaggedCacheStore",
    # Core services
    "CacheOrchestrator",
    "CachePolicy",
    "create_orchestrator",
    # Infrastructure implementations
    "CollectingMeasurementSink",
    "DefaultKeyDeriver",
    "DefaultTagDeriver",
    "InMemoryTaggedCacheStore",
    "JsonSerializer",
    "LoggingMeasurementSink",
    "RedisTaggedCacheStore",
]
