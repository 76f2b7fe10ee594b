"""Hashing utilities for cache key generation."""

import hashlib
import json
from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

# 32 hex chars = 128 bits
DEFAULT_DIGEST_LENGTH = 32


def hash_value(value: Any, length: int = DEFAULT_DIGEST_LENGTH) -> str:
    """Create a deterministic hash of a value.

    The value is encoded as canonical JSON (sorted keys, compact
    separators). Values JSON cannot represent natively are encoded
    together with their type name, so ``"2024-01-01"`` and
    ``date(2024, 1, 1)`` hash differently. Values without a canonical
    encoding raise TypeError rather than hashing something like a
    default repr, which would tie the hash to a memory address.

    Args:
        value: The value to hash.
        length: Number of hex characters to keep from the SHA-256 digest.

    Returns:
        A hexadecimal hash string.

    Raises:
        TypeError: If the value contains an unsupported type.
    """
    normalized = canonical_json(value)
    return hashlib.sha256(normalized.encode()).hexdigest()[:length]


def canonical_json(value: Any) -> str:
    """Encode a value as canonical, type-tagged JSON.

    Args:
        value: The value to encode.

    Returns:
        The canonical JSON string.

    Raises:
        TypeError: If the value contains an unsupported type.
    """
    return json.dumps(
        value,
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
        default=_typed,
    )


def _typed(obj: Any) -> Any:
    if isinstance(obj, (datetime, date, time)):
        return {"__type__": type(obj).__name__, "value": obj.isoformat()}
    if isinstance(obj, Decimal):
        return {"__type__": "decimal", "value": str(obj)}
    if isinstance(obj, UUID):
        return {"__type__": "uuid", "value": str(obj)}
    if isinstance(obj, (bytes, bytearray, memoryview)):
        return {"__type__": "bytes", "value": bytes(obj).hex()}
    if isinstance(obj, (set, frozenset)):
        # set iteration order depends on hash seeds
        return {"__type__": "set", "value": sorted(canonical_json(v) for v in obj)}
    if isinstance(obj, Enum):
        enum_type = type(obj)
        name = f"{enum_type.__module__}.{enum_type.__qualname__}"
        return {"__type__": name, "value": obj.value}
    raise TypeError(f"{type(obj).__qualname__} values have no canonical encoding")
