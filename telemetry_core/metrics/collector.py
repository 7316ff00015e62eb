"""Name-keyed metric registry with aggregate Prometheus export."""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING, TypeVar

from telemetry_core.exceptions import DuplicateRegistrationError
from telemetry_core.logging import get_logger
from telemetry_core.metrics.base import DEFAULT_HISTOGRAM_BUCKETS, validate_metric_name
from telemetry_core.metrics.instruments import Counter, Gauge, Histogram, Metric


if TYPE_CHECKING:
    from collections.abc import Callable, Mapping, Sequence


_M = TypeVar("_M", Counter, Gauge, Histogram)

logger = get_logger(__name__)


class MetricsCollector:
    """Registry of named metrics.

    Metric creation is get-or-create: asking again for the same name and
    type returns the existing instance, while a different type is a wiring
    error. Export order is registration order, which stays stable across
    scrapes.

    Example:
        >>> collector = MetricsCollector()
        >>> errors = collector.create_counter("errors_total", "Errors")
        >>> errors.inc(3)
        >>> collector.to_prometheus_format()
        '# HELP errors_total Errors\\n# TYPE errors_total counter\\nerrors_total 3'
    """

    def __init__(self, default_buckets: Sequence[float] | None = None) -> None:
        """Initialize collector.

        Args:
            default_buckets: Buckets used by create_histogram when none are given.
                An empty sequence yields +Inf-only histograms.
        """
        self._metrics: dict[str, Metric] = {}
        self._default_buckets = tuple(
            DEFAULT_HISTOGRAM_BUCKETS if default_buckets is None else default_buckets
        )
        self._lock = threading.Lock()

    def _get_or_create(
        self,
        name: str,
        metric_class: type[_M],
        factory: Callable[[], _M],
    ) -> _M:
        validate_metric_name(name)
        with self._lock:
            existing = self._metrics.get(name)
            if existing is not None:
                if isinstance(existing, metric_class):
                    return existing
                raise DuplicateRegistrationError(
                    f"Metric {name} already exists with type {existing.metric_type.value}",
                    name=name,
                    kind="metric",
                    details={"requested_type": metric_class.metric_type.value},
                )
            metric = factory()
            self._metrics[name] = metric

        logger.debug("Metric registered", metric_name=name, metric_type=metric.metric_type.value)
        return metric

    def create_counter(
        self,
        name: str,
        help: str = "",
        labels: Mapping[str, str] | None = None,
    ) -> Counter:
        """Create or get a counter.

        Args:
            name: Metric name.
            help: Human-readable description.
            labels: Fixed labels for the series.

        Returns:
            Counter instance.

        Raises:
            DuplicateRegistrationError: If ``name`` exists with another type.
            ValidationError: If the name or a label name is invalid.
        """
        return self._get_or_create(name, Counter, lambda: Counter(name, help, labels))

    def create_gauge(
        self,
        name: str,
        help: str = "",
        labels: Mapping[str, str] | None = None,
    ) -> Gauge:
        """Create or get a gauge.

        Raises:
            DuplicateRegistrationError: If ``name`` exists with another type.
        """
        return self._get_or_create(name, Gauge, lambda: Gauge(name, help, labels))

    def create_histogram(
        self,
        name: str,
        help: str = "",
        buckets: Sequence[float] | None = None,
        labels: Mapping[str, str] | None = None,
    ) -> Histogram:
        """Create or get a histogram.

        Args:
            name: Metric name.
            help: Human-readable description.
            buckets: Bucket boundaries (collector default if omitted).
            labels: Fixed labels for the series.

        Returns:
            Histogram instance.

        Raises:
            DuplicateRegistrationError: If ``name`` exists with another type.
            ValidationError: If the buckets are unusable.
        """
        return self._get_or_create(
            name,
            Histogram,
            lambda: Histogram(
                name,
                help,
                self._default_buckets if buckets is None else buckets,
                labels,
            ),
        )

    def get_metric(self, name: str) -> Metric | None:
        """Get a metric by name, or None."""
        with self._lock:
            return self._metrics.get(name)

    def get_metrics(self) -> list[Metric]:
        """Get all metrics in registration order."""
        with self._lock:
            return list(self._metrics.values())

    def names(self) -> list[str]:
        """Get all metric names in registration order."""
        with self._lock:
            return list(self._metrics)

    def unregister(self, name: str) -> bool:
        """Remove a metric.

        Returns:
            True if removed, False if not found.
        """
        with self._lock:
            return self._metrics.pop(name, None) is not None

    def to_prometheus_format(self) -> str:
        """Render every metric, separated by a blank line, in registration order."""
        return "\n\n".join(metric.to_prometheus_format() for metric in self.get_metrics())

    def clear(self) -> None:
        """Drop all metrics (test/reset utility)."""
        with self._lock:
            self._metrics.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._metrics)

    def __contains__(self, name: object) -> bool:
        with self._lock:
            return name in self._metrics
