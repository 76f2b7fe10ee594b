"""Measurement sink implementations."""

from cachesql.infrastructure.sinks.collector import CollectingMeasurementSink
from cachesql.infrastructure.sinks.logging import LoggingMeasurementSink

__all__ = [
    "CollectingMeasurementSink",
    "LoggingMeasurementSink",
]
