"""Cache key value object."""

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class CacheKey:
    """Immutable cache key value object.

    A fixed-width content hash of a query's raw text and bound
    parameters, namespaced by a prefix.
    """

    prefix: str
    digest: str

    def __str__(self) -> str:
        """Return the full cache key string.

        Returns:
            The complete cache key as a string.
        """
        return f"{self.prefix}:{self.digest}"

    @classmethod
    def from_components(
        cls,
        prefix: str,
        raw_text: str,
        bound_parameters: tuple[Any, ...],
        hash_func: Callable[[Any], str] | None = None,
    ) -> "CacheKey":
        """Create a CacheKey from raw components.

        Args:
            prefix: Cache key prefix.
            raw_text: Statement text with placeholders.
            bound_parameters: Parameter values in placeholder order.
            hash_func: Optional custom hash function.

        Returns:
            A new CacheKey instance.
        """
        from cachesql.utils.hashing import hash_value

        hasher = hash_func or hash_value

        return cls(
            prefix=prefix,
            digest=hasher([raw_text, list(bound_parameters)]),
        )
