"""JSON serializer implementation."""

import base64
import json
from datetime import date, datetime, time
from decimal import Decimal
from typing import Any
from uuid import UUID

from cachesql.core.errors import SerializationError

_DECODERS = {
    "__datetime__": datetime.fromisoformat,
    "__date__": date.fromisoformat,
    "__time__": time.fromisoformat,
    "__decimal__": Decimal,
    "__uuid__": UUID,
    "__bytes__": base64.b64decode,
}


class JsonSerializer:
    """JSON serializer for cached row sets.

    Handles serialization of query results (lists of row mappings) to
    JSON bytes and back. Column values JSON cannot represent natively
    are wrapped in a single-key marker object and restored on the way
    out, so a cached hit returns the same Python types as a fresh
    execution. Tuples come back as lists.
    """

    def __init__(self, encoding: str = "utf-8") -> None:
        """Initialize the JSON serializer.

        Args:
            encoding: Character encoding to use.
        """
        self._encoding = encoding

    def serialize(self, value: Any) -> bytes:
        """Serialize value to bytes.

        Args:
            value: The Python object to serialize.

        Returns:
            The serialized value as bytes.

        Raises:
            SerializationError: If the value cannot be serialized.
        """
        try:
            json_str = json.dumps(value, default=self._default_encoder)
            return json_str.encode(self._encoding)
        except (TypeError, ValueError) as e:
            raise SerializationError(f"Failed to serialize value: {e}") from e

    def deserialize(self, data: bytes) -> Any:
        """Deserialize bytes to value.

        Args:
            data: The bytes to deserialize.

        Returns:
            The deserialized Python object.

        Raises:
            SerializationError: If the data cannot be deserialized.
        """
        try:
            json_str = data.decode(self._encoding)
            return json.loads(json_str, object_hook=self._object_hook)
        except (ValueError, TypeError, ArithmeticError) as e:
            # JSONDecodeError, UnicodeDecodeError and bad marker payloads
            raise SerializationError(f"Failed to deserialize data: {e}") from e

    def _default_encoder(self, obj: Any) -> Any:
        """Custom encoder for non-JSON-serializable types.

        Args:
            obj: The object to encode.

        Returns:
            A JSON-serializable representation of the object.

        Raises:
            TypeError: If the object cannot be encoded.
        """
        if isinstance(obj, datetime):
            return {"__datetime__": obj.isoformat()}
        if isinstance(obj, date):
            return {"__date__": obj.isoformat()}
        if isinstance(obj, time):
            return {"__time__": obj.isoformat()}
        if isinstance(obj, Decimal):
            return {"__decimal__": str(obj)}
        if isinstance(obj, UUID):
            return {"__uuid__": str(obj)}
        if isinstance(obj, (bytes, bytearray, memoryview)):
            return {"__bytes__": base64.b64encode(bytes(obj)).decode("ascii")}
        raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")

    def _object_hook(self, obj: dict[str, Any]) -> Any:
        if len(obj) == 1:
            marker, payload = next(iter(obj.items()))
            decoder = _DECODERS.get(marker)
            if decoder is not None:
                return decoder(payload)
        return obj
