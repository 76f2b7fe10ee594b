"""Query descriptor entity."""

from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum
from typing import Any


class Operation(Enum):
    """Kind of SQL statement a descriptor represents."""

    SELECT = "SELECT"
    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    OTHER = "OTHER"


MUTATIONS = frozenset({Operation.INSERT, Operation.UPDATE, Operation.DELETE})


@dataclass(frozen=True)
class QueryDescriptor:
    """Immutable description of one query or mutation.

    Produced by a reflection collaborator (for example
    SqlAlchemyReflector) from a live statement object, and consumed by
    the policy, the key deriver and the tag deriver. A descriptor whose
    operation is INSERT, UPDATE or DELETE is a mutation descriptor.

    Two descriptors with the same raw_text and bound_parameters always
    produce the same cache key, so callers must build raw_text
    deterministically. No normalization is applied.

    Attributes:
        operation: Statement kind.
        tables: Referenced tables in from/join order.
        columns: Referenced (table, column) pairs.
        raw_text: Statement text with placeholders, never literal values.
        bound_parameters: Parameter values in placeholder order.
        row_keys: (table, primary key) pairs known statically. Only used
            when row-level tagging is enabled.
        non_deterministic: True when the reflection collaborator saw a
            construct whose result varies between executions.
    """

    operation: Operation
    tables: tuple[str, ...]
    raw_text: str
    bound_parameters: tuple[Any, ...] = ()
    columns: frozenset[tuple[str, str]] = frozenset()
    row_keys: tuple[tuple[str, Any], ...] = ()
    non_deterministic: bool = False

    @property
    def is_read(self) -> bool:
        """Check if the descriptor is a SELECT."""
        return self.operation is Operation.SELECT

    @property
    def is_mutation(self) -> bool:
        """Check if the descriptor is an INSERT, UPDATE or DELETE."""
        return self.operation in MUTATIONS

    def row_keys_for(self, table: str) -> tuple[Any, ...]:
        """Return the statically known primary keys for a table."""
        return tuple(pk for name, pk in self.row_keys if name == table)

    @classmethod
    def select(
        cls,
        tables: Iterable[str],
        raw_text: str,
        bound_parameters: Iterable[Any] = (),
        columns: Iterable[tuple[str, str]] = (),
        row_keys: Iterable[tuple[str, Any]] = (),
        non_deterministic: bool = False,
    ) -> "QueryDescriptor":
        """Factory method to describe a read query.

        Args:
            tables: Referenced tables, joins included.
            raw_text: Statement text with placeholders.
            bound_parameters: Parameter values in placeholder order.
            columns: Referenced (table, column) pairs.
            row_keys: Statically known (table, primary key) pairs.
            non_deterministic: Whether the query is known to be
                non-deterministic.

        Returns:
            A new QueryDescriptor with operation SELECT.
        """
        return cls(
            operation=Operation.SELECT,
            tables=_unique(tables),
            raw_text=raw_text,
            bound_parameters=tuple(bound_parameters),
            columns=frozenset(columns),
            row_keys=tuple(row_keys),
            non_deterministic=non_deterministic,
        )

    @classmethod
    def mutation(
        cls,
        operation: Operation,
        tables: Iterable[str],
        raw_text: str,
        bound_parameters: Iterable[Any] = (),
        row_keys: Iterable[tuple[str, Any]] = (),
    ) -> "QueryDescriptor":
        """Factory method to describe an INSERT, UPDATE or DELETE.

        Raises:
            ValueError: If operation is not a mutation.
        """
        if operation not in MUTATIONS:
            raise ValueError(f"{operation.value} is not a mutation")

        return cls(
            operation=operation,
            tables=_unique(tables),
            raw_text=raw_text,
            bound_parameters=tuple(bound_parameters),
            row_keys=tuple(row_keys),
        )


def _unique(tables: Iterable[str]) -> tuple[str, ...]:
    # dict keeps first-seen order
    return tuple(dict.fromkeys(tables))
