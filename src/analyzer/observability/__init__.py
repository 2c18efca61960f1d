"""Observability package: in-process metrics for engine runs.

Structured logging lives in ``analyzer.core.logging``.
"""

from .metrics import (
    Counter,
    Histogram,
    HistogramSnapshot,
    Labels,
    MetricsClient,
    MetricsRegistry,
    RegistryMetricsClient,
    get_metrics_registry,
)

__all__ = [
    "Counter",
    "Histogram",
    "HistogramSnapshot",
    "Labels",
    "MetricsClient",
    "MetricsRegistry",
    "RegistryMetricsClient",
    "get_metrics_registry",
]
