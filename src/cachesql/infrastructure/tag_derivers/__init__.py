"""Tag deriver implementations."""

from cachesql.infrastructure.tag_derivers.default import DefaultTagDeriver

__all__ = ["DefaultTagDeriver"]
