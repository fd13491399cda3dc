"""Metrics sink adapters implementing MetricsSinkPort."""

from hecshipper.adapters.metrics.in_memory import InMemoryMetricsRegistry
from hecshipper.adapters.metrics.prometheus import PrometheusMetricsSink

__all__ = [
    "InMemoryMetricsRegistry",
    "PrometheusMetricsSink",
]
