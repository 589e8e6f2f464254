"""Observability module for logging and metrics."""

from docwatch.observability.logging import configure_logging
from docwatch.observability.metrics import WatchMetrics


__all__ = [
    "WatchMetrics",
    "configure_logging",
]
