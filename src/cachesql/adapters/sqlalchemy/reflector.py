"""Builds query descriptors from SQLAlchemy Core statements."""

from typing import Any

from sqlalchemy import Table
from sqlalchemy.engine import Compiled, Dialect
from sqlalchemy.sql import ClauseElement, operators, visitors
from sqlalchemy.sql.expression import (
    BinaryExpression,
    BindParameter,
    BooleanClauseList,
    ColumnClause,
    CompoundSelect,
    Delete,
    FunctionElement,
    Insert,
    Select,
    TableClause,
    Update,
)

from cachesql.core.entities.query_descriptor import Operation, QueryDescriptor

NON_DETERMINISTIC_FUNCTIONS = frozenset(
    {
        "clock_timestamp",
        "current_date",
        "current_time",
        "current_timestamp",
        "gen_random_uuid",
        "localtime",
        "localtimestamp",
        "newid",
        "now",
        "rand",
        "random",
        "sysdate",
        "uuid",
    }
)

_MISSING = object()


class SqlAlchemyReflector:
    """Describes SQLAlchemy Core statements for the cache.

    The statement is compiled for the target dialect; the compiled text
    becomes the raw text and the compiled parameters, in placeholder
    order, become the bound parameters. Tables, columns and functions
    are collected by walking the expression tree, never by parsing SQL.

    Row keys are only reported when they are safe to use:

    - a SELECT over a single table, without joins or subqueries, whose
      WHERE clause is an AND of conditions including an equality on the
      single-column primary key;
    - an UPDATE or DELETE with such an equality, where an UPDATE must
      not assign the primary key.
    """

    def __init__(
        self,
        dialect: Dialect,
        non_deterministic_functions: frozenset[str] = NON_DETERMINISTIC_FUNCTIONS,
    ) -> None:
        """Initialize the reflector.

        Args:
            dialect: Dialect used to compile statements, normally the
                dialect of the connection that will execute them.
            non_deterministic_functions: Lower-case SQL function names
                that make a query non-deterministic.
        """
        self._dialect = dialect
        self._non_deterministic_functions = non_deterministic_functions

    def describe(self, statement: ClauseElement) -> QueryDescriptor:
        """Build the descriptor of a statement.

        Args:
            statement: A Core statement (select, insert, update, delete,
                text, ...).

        Returns:
            The statement's QueryDescriptor. Statements other than
            SELECT, INSERT, UPDATE and DELETE get operation OTHER.
        """
        compiled = statement.compile(dialect=self._dialect)
        raw_text = str(compiled)
        bound_parameters = self._bound_parameters(compiled)
        operation = self._operation(statement)

        if operation is Operation.SELECT:
            tables = self._referenced_tables(statement)
            return QueryDescriptor.select(
                tables=tables,
                raw_text=raw_text,
                bound_parameters=bound_parameters,
                columns=self._referenced_columns(statement),
                row_keys=self._select_row_keys(statement, tables),
                non_deterministic=self._has_non_deterministic_function(statement),
            )

        if operation is not Operation.OTHER:
            target = statement.table  # type: ignore[attr-defined]
            if isinstance(target, TableClause):
                tables = [_table_name(target)]
            else:
                # UPDATE ... JOIN and similar multi-table targets
                tables = self._referenced_tables(target)
            return QueryDescriptor.mutation(
                operation,
                tables=tables,
                raw_text=raw_text,
                bound_parameters=bound_parameters,
                row_keys=self._mutation_row_keys(statement),
            )

        return QueryDescriptor(
            operation=Operation.OTHER,
            tables=tuple(self._referenced_tables(statement)),
            raw_text=raw_text,
            bound_parameters=bound_parameters,
        )

    def _operation(self, statement: ClauseElement) -> Operation:
        if isinstance(statement, (Select, CompoundSelect)):
            return Operation.SELECT
        if isinstance(statement, Insert):
            return Operation.INSERT
        if isinstance(statement, Update):
            return Operation.UPDATE
        if isinstance(statement, Delete):
            return Operation.DELETE
        return Operation.OTHER

    def _bound_parameters(self, compiled: Compiled) -> tuple[Any, ...]:
        params = compiled.params
        # Positional dialects expose the placeholder order directly
        names = getattr(compiled, "positiontup", None) or list(params)
        return tuple(params.get(name) for name in names)

    def _referenced_tables(self, statement: ClauseElement) -> list[str]:
        tables: dict[str, None] = {}
        for element in visitors.iterate(statement):
            if isinstance(element, TableClause):
                tables.setdefault(_table_name(element))
            elif isinstance(element, ColumnClause) and isinstance(
                element.table, TableClause
            ):
                tables.setdefault(_table_name(element.table))
        return list(tables)

    def _referenced_columns(self, statement: ClauseElement) -> set[tuple[str, str]]:
        return {
            (_table_name(element.table), element.name)
            for element in visitors.iterate(statement)
            if isinstance(element, ColumnClause)
            and isinstance(element.table, TableClause)
        }

    def _has_non_deterministic_function(self, statement: ClauseElement) -> bool:
        return any(
            isinstance(element, FunctionElement)
            and (getattr(element, "name", None) or "").lower()
            in self._non_deterministic_functions
            for element in visitors.iterate(statement)
        )

    def _select_row_keys(
        self, statement: ClauseElement, tables: list[str]
    ) -> tuple[tuple[str, Any], ...]:
        if len(tables) != 1 or not isinstance(statement, Select):
            return ()

        froms = statement.get_final_froms()
        if len(froms) != 1 or not isinstance(froms[0], Table):
            return ()

        # A subquery could observe other rows of the same table
        for element in visitors.iterate(statement):
            if isinstance(element, (Select, CompoundSelect)) and element is not statement:
                return ()

        return _primary_key_equality(froms[0], statement.whereclause)

    def _mutation_row_keys(self, statement: ClauseElement) -> tuple[tuple[str, Any], ...]:
        if not isinstance(statement, (Update, Delete)):
            return ()

        table = statement.table
        if not isinstance(table, Table):
            return ()

        if isinstance(statement, Update):
            assigned = _assigned_columns(statement)
            primary_key = list(table.primary_key.columns)
            if assigned is None or any(column.key in assigned for column in primary_key):
                return ()

        return _primary_key_equality(table, statement.whereclause)


def _table_name(table: Any) -> str:
    return str(getattr(table, "fullname", None) or table.name)


def _primary_key_equality(
    table: Table, whereclause: ClauseElement | None
) -> tuple[tuple[str, Any], ...]:
    """Find ``pk = value`` among the AND-ed conditions of a WHERE clause."""
    primary_key = list(table.primary_key.columns)
    if len(primary_key) != 1 or whereclause is None:
        return ()

    if isinstance(whereclause, BooleanClauseList):
        if whereclause.operator is not operators.and_:
            return ()
        conditions = list(whereclause.clauses)
    else:
        conditions = [whereclause]

    name = _table_name(table)
    for condition in conditions:
        value = _equality_value(condition, name, primary_key[0].name)
        if value is not _MISSING:
            return ((name, value),)
    return ()


def _equality_value(condition: ClauseElement, table_name: str, column_name: str) -> Any:
    if not isinstance(condition, BinaryExpression) or condition.operator is not operators.eq:
        return _MISSING

    left, right = condition.left, condition.right
    if isinstance(left, BindParameter):
        left, right = right, left

    if not isinstance(left, ColumnClause) or not isinstance(right, BindParameter):
        return _MISSING
    if left.table is None or _table_name(left.table) != table_name:
        return _MISSING
    if left.name != column_name:
        return _MISSING

    value = right.effective_value
    return _MISSING if value is None else value


def _assigned_columns(statement: Update) -> set[str] | None:
    """Return the keys of the columns an UPDATE assigns.

    None means the assignments could not be read, which callers must
    treat as "may assign anything".
    """
    # SQLAlchemy has no public accessor for UPDATE assignments. 2.0 keeps
    # ordered_values() in _ordered_values, later releases fold it into _values.
    if not hasattr(statement, "_values"):
        return None

    pairs = list(dict(statement._values or {}).items())
    pairs.extend(getattr(statement, "_ordered_values", None) or ())
    return {str(getattr(column, "key", column)) for column, _ in pairs}
