"""Pytest configuration for cachesql tests."""

from collections.abc import Iterable, Mapping
from datetime import timedelta
from typing import Any

import pytest

from cachesql import (
    CacheConfig,
    CacheOrchestrator,
    CollectingMeasurementSink,
    InMemoryTaggedCacheStore,
    QueryDescriptor,
    StoreUnavailable,
    create_orchestrator,
)
from cachesql.core.entities.query_descriptor import Operation


class CountingExecutor:
    """Async callable standing in for a database round trip."""

    def __init__(self, result: Any = None) -> None:
        self.result = [{"id": 1, "name": "Ada"}] if result is None else result
        self.calls = 0

    async def __call__(self) -> Any:
        self.calls += 1
        return self.result


class FailingStore:
    """Tagged store whose every operation raises StoreUnavailable.

    ``failures`` limits how many invalidate calls fail before the store
    recovers; None means they always fail.
    """

    def __init__(self, failures: int | None = None) -> None:
        self.failures = failures
        self.invalidate_calls = 0
        self.set_calls = 0

    async def has(self, key: str) -> bool:
        raise StoreUnavailable("down", operation="has")

    async def get(self, key: str) -> bytes | None:
        raise StoreUnavailable("down", operation="get")

    async def set(
        self,
        key: str,
        tags: Iterable[str],
        value: bytes,
        generations: Mapping[str, int] | None = None,
    ) -> bool:
        self.set_calls += 1
        raise StoreUnavailable("down", operation="set")

    async def invalidate(self, tags: Iterable[str]) -> int:
        self.invalidate_calls += 1
        if self.failures is None or self.invalidate_calls <= self.failures:
            raise StoreUnavailable("down", operation="invalidate")
        return 0

    async def generations(self, tags: Iterable[str]) -> dict[str, int]:
        raise StoreUnavailable("down", operation="generations")

    async def flush(self) -> None:
        raise StoreUnavailable("down", operation="flush")


def make_select(
    *tables: str,
    sql: str | None = None,
    params: tuple[Any, ...] = (),
    row_keys: tuple[tuple[str, Any], ...] = (),
) -> QueryDescriptor:
    """Build a SELECT descriptor over the given tables."""
    return QueryDescriptor.select(
        tables=tables or ("users",),
        raw_text=sql or f"SELECT * FROM {', '.join(tables or ('users',))}",
        bound_parameters=params,
        row_keys=row_keys,
    )


def make_mutation(
    *tables: str,
    operation: Operation = Operation.UPDATE,
    row_keys: tuple[tuple[str, Any], ...] = (),
) -> QueryDescriptor:
    """Build a mutation descriptor over the given tables."""
    return QueryDescriptor.mutation(
        operation,
        tables=tables or ("users",),
        raw_text=f"{operation.value} {', '.join(tables or ('users',))}",
        row_keys=row_keys,
    )


@pytest.fixture
def config() -> CacheConfig:
    """Create a config with fast retries."""
    return CacheConfig(
        default_ttl=timedelta(minutes=5),
        invalidation_attempts=3,
        invalidation_backoff=0,
    )


@pytest.fixture
def store() -> InMemoryTaggedCacheStore:
    """Create an in-memory store for testing."""
    return InMemoryTaggedCacheStore(maxsize=100, default_ttl=300.0)


@pytest.fixture
def sink() -> CollectingMeasurementSink:
    """Create a collecting measurement sink."""
    return CollectingMeasurementSink()


@pytest.fixture
def orchestrator(
    config: CacheConfig,
    store: InMemoryTaggedCacheStore,
    sink: CollectingMeasurementSink,
) -> CacheOrchestrator:
    """Create an orchestrator backed by the in-memory store."""
    return create_orchestrator(config, store=store, measurement_sink=sink)
