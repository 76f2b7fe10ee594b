"""Cached execution of SQLAlchemy Core statements."""

import logging
from collections.abc import Iterable
from typing import Any

from sqlalchemy.ext.asyncio import AsyncConnection
from sqlalchemy.sql import ClauseElement

from cachesql.adapters.sqlalchemy.reflector import SqlAlchemyReflector
from cachesql.core.entities.query_descriptor import Operation, QueryDescriptor
from cachesql.core.services.cache_orchestrator import CacheOrchestrator

logger = logging.getLogger(__name__)


class CachingConnection:
    """Wraps an AsyncConnection so reads go through the cache.

    SELECT statements are served by run_cached_select and return their
    rows as a list of dicts. INSERT, UPDATE and DELETE statements go
    through run_invalidating_mutation and return the affected row count.
    Anything else is executed directly.

    Transactions are the caller's business: the cache sees every read
    and write as if it were committed when it runs.

    Example:
        async with engine.connect() as conn:
            cached = CachingConnection(conn, orchestrator)
            rows = await cached.fetch_all(select(users).where(users.c.id == 1))
            await cached.mutate(update(users).where(users.c.id == 1).values(name="Bo"))
            await conn.commit()
    """

    def __init__(
        self,
        connection: AsyncConnection,
        orchestrator: CacheOrchestrator,
        reflector: SqlAlchemyReflector | None = None,
    ) -> None:
        """Initialize the connection wrapper.

        Args:
            connection: The SQLAlchemy async connection to run statements on.
            orchestrator: The cache orchestrator.
            reflector: Describes statements. Defaults to a reflector for
                the connection's dialect.
        """
        self._connection = connection
        self._orchestrator = orchestrator
        self._reflector = reflector or SqlAlchemyReflector(connection.dialect)

    @property
    def connection(self) -> AsyncConnection:
        """Get the wrapped connection."""
        return self._connection

    async def fetch_all(self, statement: ClauseElement) -> list[dict[str, Any]]:
        """Run a SELECT through the cache.

        Args:
            statement: The select statement.

        Returns:
            The rows, each as a column name to value dict.

        Raises:
            ValueError: If the statement is a mutation.
        """
        descriptor = self._reflector.describe(statement)
        if descriptor.is_mutation:
            raise ValueError(f"fetch_all() cannot run a {descriptor.operation.value}")
        return await self._fetch_all(statement, descriptor)

    async def mutate(
        self,
        statement: ClauseElement,
        invalidates: Iterable[str] | None = None,
    ) -> int:
        """Run a mutation, invalidating the cached reads it affects.

        Args:
            statement: An insert, update or delete statement, or a textual
                statement when ``invalidates`` names the tables it writes.
            invalidates: Tables written by a statement the reflector
                cannot describe, such as ``text("UPDATE ...")``.

        Returns:
            The number of affected rows.

        Raises:
            ValueError: If the statement is not a known mutation and no
                tables were given.
        """
        descriptor = self._reflector.describe(statement)

        if invalidates is not None:
            descriptor = QueryDescriptor.mutation(
                descriptor.operation if descriptor.is_mutation else Operation.UPDATE,
                tables=[*descriptor.tables, *invalidates],
                raw_text=descriptor.raw_text,
                bound_parameters=descriptor.bound_parameters,
                row_keys=descriptor.row_keys,
            )

        if not descriptor.is_mutation:
            raise ValueError(
                "mutate() needs an insert, update or delete statement, "
                "or the tables it writes through invalidates="
            )
        return await self._mutate(statement, descriptor)

    async def execute(self, statement: ClauseElement) -> Any:
        """Run any statement, choosing the cached path by its operation.

        Args:
            statement: The statement to run.

        Returns:
            Rows for a SELECT, the affected row count for a mutation,
            and the raw result for anything else.
        """
        descriptor = self._reflector.describe(statement)

        if descriptor.is_read:
            return await self._fetch_all(statement, descriptor)
        if descriptor.is_mutation:
            return await self._mutate(statement, descriptor)

        logger.debug(f"Executing uncached statement: {descriptor.raw_text}")
        return await self._connection.execute(statement)

    async def _fetch_all(
        self, statement: ClauseElement, descriptor: QueryDescriptor
    ) -> list[dict[str, Any]]:
        async def execute() -> list[dict[str, Any]]:
            result = await self._connection.execute(statement)
            return [dict(row) for row in result.mappings()]

        return await self._orchestrator.run_cached_select(descriptor, execute)

    async def _mutate(self, statement: ClauseElement, descriptor: QueryDescriptor) -> int:
        async def execute() -> int:
            result = await self._connection.execute(statement)
            return result.rowcount

        return await self._orchestrator.run_invalidating_mutation(descriptor, execute)
