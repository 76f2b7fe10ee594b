"""Domain entities for cachesql."""

from cachesql.core.entities.cache_config import (
    DEFAULT_NON_DETERMINISTIC_MARKERS,
    CacheConfig,
    NonDeterminismPredicate,
)
from cachesql.core.entities.cache_decision import CacheDecision
from cachesql.core.entities.cache_entry import CacheEntry
from cachesql.core.entities.cache_key import CacheKey
from cachesql.core.entities.measurement import Measurement, MeasurementKind
from cachesql.core.entities.query_descriptor import Operation, QueryDescriptor
from cachesql.core.entities.tags import EPOCH, Tag, row_tag, rows_tag, table_tag

__all__ = [
    "CacheConfig",
    "CacheDecision",
    "CacheEntry",
    "CacheKey",
    "DEFAULT_NON_DETERMINISTIC_MARKERS",
    "EPOCH",
    "Measurement",
    "MeasurementKind",
    "NonDeterminismPredicate",
    "Operation",
    "QueryDescriptor",
    "Tag",
    "row_tag",
    "rows_tag",
    "table_tag",
]
