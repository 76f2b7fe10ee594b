"""Key deriver implementations."""

from cachesql.infrastructure.key_derivers.default import DefaultKeyDeriver

__all__ = ["DefaultKeyDeriver"]
