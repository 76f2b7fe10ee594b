"""Wiring helpers building a ready-to-use orchestrator."""

from cachesql.core.entities.cache_config import CacheConfig
from cachesql.core.interfaces.measurement_sink import IMeasurementSink
from cachesql.core.interfaces.tagged_store import ITaggedCacheStore
from cachesql.core.services.cache_orchestrator import CacheOrchestrator
from cachesql.core.services.cache_policy import CachePolicy
from cachesql.infrastructure.key_derivers.default import DefaultKeyDeriver
from cachesql.infrastructure.serializers.json import JsonSerializer
from cachesql.infrastructure.stores.memory import InMemoryTaggedCacheStore
from cachesql.infrastructure.tag_derivers.default import DefaultTagDeriver


def create_orchestrator(
    config: CacheConfig | None = None,
    store: ITaggedCacheStore | None = None,
    measurement_sink: IMeasurementSink | None = None,
) -> CacheOrchestrator:
    """Create an orchestrator with the default components.

    Args:
        config: Cache configuration. Uses defaults if not provided.
        store: Tagged cache store. An in-memory store sized from the
            configuration is created if not provided.
        measurement_sink: Optional receiver of hit/miss events.

    Returns:
        A CacheOrchestrator wired with the default key deriver, tag
        deriver, JSON serializer and policy.

    Example:
        orchestrator = create_orchestrator(
            CacheConfig(exclude_tables={"sessions"}),
            store=RedisTaggedCacheStore(redis_url="redis://cache:6379"),
        )
    """
    config = config or CacheConfig()
    if store is None:
        store = InMemoryTaggedCacheStore.from_config(config)

    return CacheOrchestrator(
        store=store,
        key_deriver=DefaultKeyDeriver(prefix=config.key_prefix),
        tag_deriver=DefaultTagDeriver(row_level=config.row_level_tagging),
        serializer=JsonSerializer(),
        policy=CachePolicy(config),
        config=config,
        measurement_sink=measurement_sink,
    )
