"""Measurement entities reported to measurement sinks."""

from dataclasses import dataclass
from enum import Enum
from typing import Any


class MeasurementKind(Enum):
    """Outcome of a cache lookup."""

    HIT = "HIT"
    MISS = "MISS"


@dataclass(frozen=True)
class Measurement:
    """One recorded cache lookup.

    Attributes:
        kind: HIT or MISS.
        key: The cache key string.
        tags: Tags of the query.
        raw_text: Statement text with placeholders.
        bound_parameters: Parameter values in placeholder order.
        elapsed: Seconds between start and end of the measurement, or
            None when start_measuring was not called in this task.
    """

    kind: MeasurementKind
    key: str
    tags: frozenset[str]
    raw_text: str
    bound_parameters: tuple[Any, ...]
    elapsed: float | None = None
