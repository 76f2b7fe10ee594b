"""Default key deriver implementation."""

from cachesql.core.entities.cache_key import CacheKey
from cachesql.core.entities.query_descriptor import QueryDescriptor
from cachesql.utils.hashing import DEFAULT_DIGEST_LENGTH, hash_value


class DefaultKeyDeriver:
    """Default key deriver using a hash of raw text and parameters.

    Creates deterministic cache keys using a 128-bit prefix of a SHA-256
    digest. Only raw_text and bound_parameters take part, so two
    descriptors differing only in tables or tags share a key.
    """

    def __init__(
        self,
        prefix: str = "cachesql",
        digest_length: int = DEFAULT_DIGEST_LENGTH,
    ) -> None:
        """Initialize the key deriver.

        Args:
            prefix: Prefix for all cache keys.
            digest_length: Number of hex characters kept from the digest.
        """
        if digest_length < DEFAULT_DIGEST_LENGTH:
            raise ValueError("digest_length must keep at least 128 bits")

        self._prefix = prefix
        self._digest_length = digest_length

    def key(self, descriptor: QueryDescriptor) -> CacheKey:
        """Derive the cache key for a query.

        Args:
            descriptor: The query descriptor.

        Returns:
            The cache key identifying the query's result.
        """
        return CacheKey.from_components(
            prefix=self._prefix,
            raw_text=descriptor.raw_text,
            bound_parameters=descriptor.bound_parameters,
            hash_func=lambda value: hash_value(value, self._digest_length),
        )
