"""Utility helpers for cachesql."""

from cachesql.utils.hashing import canonical_json, hash_value

__all__ = [
    "canonical_json",
    "hash_value",
]
