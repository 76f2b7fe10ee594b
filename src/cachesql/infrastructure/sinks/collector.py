"""Collecting measurement sink implementation."""

import threading
import time
from collections import deque
from collections.abc import Iterable
from contextvars import ContextVar
from typing import Any

from cachesql.core.entities.measurement import Measurement, MeasurementKind

_started_at: ContextVar[float | None] = ContextVar("cachesql_measure_start", default=None)


class CollectingMeasurementSink:
    """Keeps recent cache lookups in memory for debugging panels.

    Timing is tracked per asyncio task (or thread) through a context
    variable, so concurrent lookups do not overwrite each other's start
    time.
    """

    def __init__(self, max_measurements: int = 1000) -> None:
        """Initialize the collector.

        Args:
            max_measurements: Number of most recent measurements kept.
        """
        self._lock = threading.Lock()
        self._measurements: deque[Measurement] = deque(maxlen=max_measurements)
        self._hits = 0
        self._misses = 0

    def start_measuring(self) -> None:
        """Mark the start of a cache lookup in the current task."""
        _started_at.set(time.perf_counter())

    def end_measuring(
        self,
        kind: MeasurementKind,
        key: str,
        tags: Iterable[str],
        raw_text: str,
        bound_parameters: tuple[Any, ...],
    ) -> None:
        """Record the outcome of the lookup started in the current task."""
        started = _started_at.get()
        elapsed = time.perf_counter() - started if started is not None else None
        _started_at.set(None)

        measurement = Measurement(
            kind=kind,
            key=key,
            tags=frozenset(tags),
            raw_text=raw_text,
            bound_parameters=tuple(bound_parameters),
            elapsed=elapsed,
        )

        with self._lock:
            self._measurements.append(measurement)
            if kind is MeasurementKind.HIT:
                self._hits += 1
            else:
                self._misses += 1

    @property
    def measurements(self) -> list[Measurement]:
        """Return the recorded measurements, oldest first."""
        with self._lock:
            return list(self._measurements)

    @property
    def stats(self) -> dict[str, int]:
        """Get lookup counts.

        Returns:
            Dictionary with hits, misses, and total lookups.
        """
        with self._lock:
            return {
                "hits": self._hits,
                "misses": self._misses,
                "total": self._hits + self._misses,
            }

    def reset(self) -> None:
        """Forget every recorded measurement."""
        with self._lock:
            self._measurements.clear()
            self._hits = 0
            self._misses = 0
