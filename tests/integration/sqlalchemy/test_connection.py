"""Integration tests for CachingConnection on SQLite."""

from collections.abc import AsyncIterator

import pytest

pytest.importorskip("aiosqlite")

from sqlalchemy import (  # noqa: E402
    Column,
    Integer,
    MetaData,
    String,
    Table,
    delete,
    insert,
    select,
    text,
    update,
)
from sqlalchemy.ext.asyncio import AsyncConnection, create_async_engine  # noqa: E402

from cachesql import (  # noqa: E402
    CacheConfig,
    CacheOrchestrator,
    CollectingMeasurementSink,
    MeasurementKind,
    create_orchestrator,
)
from cachesql.adapters.sqlalchemy import CachingConnection  # noqa: E402

metadata = MetaData()

users = Table(
    "users",
    metadata,
    Column("id", Integer, primary_key=True),
    Column("name", String(50)),
)

orders = Table(
    "orders",
    metadata,
    Column("id", Integer, primary_key=True),
    Column("user_id", Integer),
    Column("total", Integer),
)


@pytest.fixture
async def connection() -> AsyncIterator[AsyncConnection]:
    """Create an in-memory SQLite database with a few rows."""
    engine = create_async_engine("sqlite+aiosqlite://")
    async with engine.connect() as conn:
        await conn.run_sync(metadata.create_all)
        await conn.execute(insert(users), [{"id": 1, "name": "Ada"}, {"id": 2, "name": "Grace"}])
        await conn.execute(insert(orders), [{"id": 1, "user_id": 1, "total": 10}])
        yield conn
    await engine.dispose()


@pytest.fixture
def sink() -> CollectingMeasurementSink:
    """Create a collecting measurement sink."""
    return CollectingMeasurementSink()


def caching(
    connection: AsyncConnection,
    sink: CollectingMeasurementSink,
    **config_kwargs,
) -> tuple[CachingConnection, CacheOrchestrator]:
    orchestrator = create_orchestrator(
        CacheConfig(invalidation_backoff=0, **config_kwargs), measurement_sink=sink
    )
    return CachingConnection(connection, orchestrator), orchestrator


def kinds(sink: CollectingMeasurementSink) -> list[str]:
    return [m.kind.value for m in sink.measurements]


class TestCachingConnection:
    """Tests for reads and writes through CachingConnection."""

    async def test_repeated_read_hits_cache(
        self, connection: AsyncConnection, sink: CollectingMeasurementSink
    ) -> None:
        """Should serve the second read from the cache."""
        cached, _ = caching(connection, sink)
        statement = select(users).where(users.c.id == 1)

        first = await cached.fetch_all(statement)
        second = await cached.fetch_all(statement)

        assert first == second == [{"id": 1, "name": "Ada"}]
        assert kinds(sink) == ["MISS", "HIT"]

    async def test_update_invalidates_read(
        self, connection: AsyncConnection, sink: CollectingMeasurementSink
    ) -> None:
        """Should return fresh rows after a write to the table."""
        cached, _ = caching(connection, sink)
        statement = select(users).order_by(users.c.id)

        await cached.fetch_all(statement)
        updated = await cached.mutate(update(users).where(users.c.id == 1).values(name="Ada L."))
        rows = await cached.fetch_all(statement)

        assert updated == 1
        assert rows[0] == {"id": 1, "name": "Ada L."}
        assert kinds(sink) == ["MISS", "MISS"]

    async def test_write_to_other_table_keeps_cache(
        self, connection: AsyncConnection, sink: CollectingMeasurementSink
    ) -> None:
        """Should keep reads of tables the write does not touch."""
        cached, _ = caching(connection, sink)
        statement = select(users)

        await cached.fetch_all(statement)
        await cached.mutate(insert(orders).values(id=2, user_id=2, total=5))
        await cached.fetch_all(statement)

        assert kinds(sink) == ["MISS", "HIT"]

    async def test_row_level_point_write(
        self, connection: AsyncConnection, sink: CollectingMeasurementSink
    ) -> None:
        """Should only invalidate the point read of the written row."""
        cached, _ = caching(connection, sink, row_level_tagging=True)
        read_ada = select(users).where(users.c.id == 1)
        read_grace = select(users).where(users.c.id == 2)

        await cached.fetch_all(read_ada)
        await cached.fetch_all(read_grace)
        await cached.mutate(update(users).where(users.c.id == 2).values(name="Grace H."))
        await cached.fetch_all(read_ada)
        rows = await cached.fetch_all(read_grace)

        assert rows == [{"id": 2, "name": "Grace H."}]
        assert kinds(sink) == ["MISS", "MISS", "HIT", "MISS"]

    async def test_row_level_delete_reaches_scans(
        self, connection: AsyncConnection, sink: CollectingMeasurementSink
    ) -> None:
        """Should invalidate table scans on a point delete."""
        cached, _ = caching(connection, sink, row_level_tagging=True)
        scan = select(users).order_by(users.c.id)

        await cached.fetch_all(scan)
        await cached.mutate(delete(users).where(users.c.id == 1))
        rows = await cached.fetch_all(scan)

        assert rows == [{"id": 2, "name": "Grace"}]

    async def test_execute_dispatches(
        self, connection: AsyncConnection, sink: CollectingMeasurementSink
    ) -> None:
        """Should choose the cached path from the statement kind."""
        cached, _ = caching(connection, sink)

        rows = await cached.execute(select(users.c.name).where(users.c.id == 2))
        count = await cached.execute(update(users).values(name="x"))
        result = await cached.execute(text("SELECT 42"))

        assert rows == [{"name": "Grace"}]
        assert count == 2
        assert result.scalar() == 42
        assert kinds(sink) == ["MISS"]

    async def test_text_mutation_with_tables(
        self, connection: AsyncConnection, sink: CollectingMeasurementSink
    ) -> None:
        """Should invalidate the tables named for a textual write."""
        cached, _ = caching(connection, sink)
        statement = select(users).where(users.c.id == 1)

        await cached.fetch_all(statement)
        await cached.mutate(text("UPDATE users SET name = 'Countess'"), invalidates=["users"])
        rows = await cached.fetch_all(statement)

        assert rows == [{"id": 1, "name": "Countess"}]

    async def test_text_mutation_needs_tables(
        self, connection: AsyncConnection, sink: CollectingMeasurementSink
    ) -> None:
        """Should refuse a textual write without tables to invalidate."""
        cached, _ = caching(connection, sink)

        with pytest.raises(ValueError):
            await cached.mutate(text("UPDATE users SET name = 'x'"))

    async def test_fetch_all_rejects_mutation(
        self, connection: AsyncConnection, sink: CollectingMeasurementSink
    ) -> None:
        """Should refuse to run a write through the read path."""
        cached, _ = caching(connection, sink)

        with pytest.raises(ValueError):
            await cached.fetch_all(delete(users))

    async def test_non_deterministic_read_is_not_cached(
        self, connection: AsyncConnection, sink: CollectingMeasurementSink
    ) -> None:
        """Should execute volatile queries every time."""
        from sqlalchemy import func

        cached, orchestrator = caching(connection, sink)
        statement = select(users).order_by(func.random())

        await cached.fetch_all(statement)
        await cached.fetch_all(statement)

        assert sink.measurements == []
        assert orchestrator.stats["bypassed"] == 2

    async def test_excluded_table_is_not_cached(
        self, connection: AsyncConnection, sink: CollectingMeasurementSink
    ) -> None:
        """Should bypass the cache for excluded tables."""
        cached, _ = caching(connection, sink, exclude_tables={"orders"})

        await cached.fetch_all(select(orders))
        await cached.fetch_all(select(users))

        assert [m.kind for m in sink.measurements] == [MeasurementKind.MISS]
