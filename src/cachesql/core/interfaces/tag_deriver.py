"""Tag deriver interface."""

from typing import Protocol

from cachesql.core.entities.query_descriptor import QueryDescriptor


class ITagDeriver(Protocol):
    """Contract for deriving invalidation tags from descriptors.

    The same deriver is used for reads (tags stored with the entry) and
    for mutations (tags to invalidate), so both sides must agree.
    """

    def tags(self, descriptor: QueryDescriptor) -> frozenset[str]:
        """Derive the invalidation tags a query or mutation touches.

        Args:
            descriptor: The query or mutation descriptor.

        Returns:
            The set of tags.
        """
        ...
