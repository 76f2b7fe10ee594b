"""Invalidation tag helpers.

Tags are plain strings. Three families exist:

- ``table:{table}`` covers every row of a table.
- ``rows:{table}`` is carried by reads narrowed to specific rows, so a
  mutation with unknown rows can still reach them.
- ``row:{table}:{pk}`` covers a single row.

``*`` is reserved for the store-wide generation epoch and is never
derived from a query.
"""

from typing import Any

from cachesql.utils.hashing import canonical_json

Tag = str

EPOCH = "*"


def table_tag(table: str) -> Tag:
    """Tag covering every row of a table."""
    return f"table:{table}"


def rows_tag(table: str) -> Tag:
    """Tag carried by every row-narrowed read of a table."""
    return f"rows:{table}"


def row_tag(table: str, primary_key: Any) -> Tag:
    """Tag covering one row of a table.

    The primary key is encoded as canonical JSON so ``1`` and ``"1"``
    stay distinct.
    """
    return f"row:{table}:{canonical_json(primary_key)}"
