"""Metrics: Counter, Gauge, Histogram and the MetricsCollector registry.

Example:
    >>> from telemetry_core.metrics import MetricsCollector
    >>> collector = MetricsCollector()
    >>> collector.create_histogram("db_query_seconds", "Query latency").observe(0.03)
    >>> print(collector.to_prometheus_format())
"""

from telemetry_core.metrics.base import (
    DEFAULT_HISTOGRAM_BUCKETS,
    MetricType,
    escape_label_value,
    format_value,
)
from telemetry_core.metrics.collector import MetricsCollector
from telemetry_core.metrics.instruments import (
    Counter,
    Gauge,
    Histogram,
    HistogramSnapshot,
    Metric,
)


__all__ = [
    "DEFAULT_HISTOGRAM_BUCKETS",
    "Counter",
    "Gauge",
    "Histogram",
    "HistogramSnapshot",
    "Metric",
    "MetricType",
    "MetricsCollector",
    "escape_label_value",
    "format_value",
]
