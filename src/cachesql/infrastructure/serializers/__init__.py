"""Serializer implementations."""

from cachesql.infrastructure.serializers.json import JsonSerializer

__all__ = ["JsonSerializer"]
