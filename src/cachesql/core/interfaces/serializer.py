"""Serializer interface."""

from typing import Any, Protocol


class ISerializer(Protocol):
    """Contract for turning query results into stored bytes.

    Stores only hold bytes. A serializer must round-trip the row sets
    returned by the execution callable, including the temporal and
    numeric column types the database driver produces.
    """

    def serialize(self, value: Any) -> bytes:
        """Serialize a query result to bytes.

        Raises:
            SerializationError: If the value cannot be serialized.
        """
        ...

    def deserialize(self, data: bytes) -> Any:
        """Rebuild a query result from stored bytes.

        Raises:
            SerializationError: If the data cannot be deserialized.
        """
        ...
