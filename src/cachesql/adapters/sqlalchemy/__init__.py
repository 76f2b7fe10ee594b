"""SQLAlchemy adapter for cachesql.

Requires the ``sqlalchemy`` extra.
"""

from cachesql.adapters.sqlalchemy.connection import CachingConnection
from cachesql.adapters.sqlalchemy.reflector import (
    NON_DETERMINISTIC_FUNCTIONS,
    SqlAlchemyReflector,
)

__all__ = [
    "CachingConnection",
    "NON_DETERMINISTIC_FUNCTIONS",
    "SqlAlchemyReflector",
]
