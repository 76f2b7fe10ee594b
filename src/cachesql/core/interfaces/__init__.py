"""Core interfaces (Protocol classes) for cachesql."""

from cachesql.core.interfaces.cache_policy import ICachePolicy
from cachesql.core.interfaces.key_deriver import IKeyDeriver
from cachesql.core.interfaces.measurement_sink import IMeasurementSink
from cachesql.core.interfaces.serializer import ISerializer
from cachesql.core.interfaces.tag_deriver import ITagDeriver
from cachesql.core.interfaces.tagged_store import ITaggedCacheStore

__all__ = [
    "ICachePolicy",
    "IKeyDeriver",
    "IMeasurementSink",
    "ISerializer",
    "ITagDeriver",
    "ITaggedCacheStore",
]
