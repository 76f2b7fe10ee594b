"""Infrastructure layer implementations for cachesql."""

from cachesql.infrastructure.key_derivers import DefaultKeyDeriver
from cachesql.infrastructure.serializers import JsonSerializer
from cachesql.infrastructure.sinks import (
    CollectingMeasurementSink,
    LoggingMeasurementSink,
)
from cachesql.infrastructure.stores import (
    InMemoryTaggedCacheStore,
    RedisTaggedCacheStore,
)
from cachesql.infrastructure.tag_derivers import DefaultTagDeriver

__all__ = [
    "CollectingMeasurementSink",
    "DefaultKeyDeriver",
    "DefaultTagDeriver",
    "InMemoryTaggedCacheStore",
    "JsonSerializer",
    "LoggingMeasurementSink",
    "RedisTaggedCacheStore",
]
