"""Default tag deriver implementation."""

from collections.abc import Iterable
from typing import Any

from cachesql.core.entities.query_descriptor import QueryDescriptor
from cachesql.core.entities.tags import row_tag, rows_tag, table_tag


class DefaultTagDeriver:
    """Derives invalidation tags from the tables a descriptor touches.

    Table-level mode (the default) tags reads and mutations with one
    table tag per table, so invalidating any table invalidates every
    cached join over it. False invalidations are accepted; stale hits
    are not.

    Row-level mode narrows the blast radius of point writes:

    - a read with row keys for a table carries the rows tag and one row
      tag per key instead of the table tag;
    - a mutation with row keys carries the table tag and the row tags,
      reaching every scan and the point reads of those rows only;
    - a mutation without row keys carries the table tag and the rows tag,
      reaching every cached read of the table.

    Row keys whose values have no canonical encoding are treated as
    unknown, which falls back to the coarser tags above.
    """

    def __init__(self, row_level: bool = False) -> None:
        """Initialize the tag deriver.

        Args:
            row_level: Whether to emit row tags for descriptors with
                statically known primary keys.
        """
        self._row_level = row_level

    @property
    def row_level(self) -> bool:
        """Whether row-level tagging is enabled."""
        return self._row_level

    def tags(self, descriptor: QueryDescriptor) -> frozenset[str]:
        """Derive the invalidation tags a query or mutation touches.

        Args:
            descriptor: The query or mutation descriptor.

        Returns:
            The set of tags.
        """
        if not self._row_level:
            return frozenset(table_tag(table) for table in descriptor.tables)

        tags: set[str] = set()
        for table in descriptor.tables:
            row_tags = _row_tags(table, descriptor.row_keys_for(table))
            if descriptor.is_mutation:
                tags.add(table_tag(table))
                tags.update(row_tags or [rows_tag(table)])
            elif row_tags:
                tags.add(rows_tag(table))
                tags.update(row_tags)
            else:
                tags.add(table_tag(table))

        return frozenset(tags)


def _row_tags(table: str, keys: Iterable[Any]) -> list[str]:
    try:
        return [row_tag(table, pk) for pk in keys]
    except TypeError:
        return []
