"""Logging measurement sink implementation."""

import logging
from collections.abc import Iterable
from typing import Any

from cachesql.core.entities.measurement import MeasurementKind

logger = logging.getLogger(__name__)


class LoggingMeasurementSink:
    """Writes one log record per cache lookup."""

    def __init__(self, level: int = logging.DEBUG, log_parameters: bool = False) -> None:
        """Initialize the sink.

        Args:
            level: Log level of the records.
            log_parameters: Whether to include bound parameter values,
                which may contain personal data.
        """
        self._level = level
        self._log_parameters = log_parameters

    def start_measuring(self) -> None:
        """Nothing to do; lookups are logged when they end."""

    def end_measuring(
        self,
        kind: MeasurementKind,
        key: str,
        tags: Iterable[str],
        raw_text: str,
        bound_parameters: tuple[Any, ...],
    ) -> None:
        """Log the outcome of a lookup."""
        if not logger.isEnabledFor(self._level):
            return

        message = f"Cache {kind.value} {key} tags={sorted(tags)} sql={raw_text}"
        if self._log_parameters:
            message += f" params={list(bound_parameters)}"
        logger.log(self._level, message)
