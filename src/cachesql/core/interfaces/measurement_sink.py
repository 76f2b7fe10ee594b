"""Measurement sink interface."""

from collections.abc import Iterable
from typing import Any, Protocol

from cachesql.core.entities.measurement import MeasurementKind


class IMeasurementSink(Protocol):
    """Contract for receiving cache hit/miss events.

    Sinks are optional. Errors raised by a sink are logged and never
    reach the caller of the orchestrator.
    """

    def start_measuring(self) -> None:
        """Mark the start of a cache lookup."""
        ...

    def end_measuring(
        self,
        kind: MeasurementKind,
        key: str,
        tags: Iterable[str],
        raw_text: str,
        bound_parameters: tuple[Any, ...],
    ) -> None:
        """Record the outcome of the lookup started last in this task.

        Args:
            kind: HIT or MISS.
            key: The cache key string.
            tags: Tags of the query.
            raw_text: Statement text with placeholders.
            bound_parameters: Parameter values in placeholder order.
        """
        ...
