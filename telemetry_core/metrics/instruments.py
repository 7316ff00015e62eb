"""Counter, Gauge and Histogram.

Each instrument holds a single time series: labels are fixed when the
metric is created, so one instance renders one line (or one bucket set)
in the Prometheus exposition. All mutations are guarded by a per-metric
lock.

Example:
    >>> requests = Counter("http_requests_total", "Requests", labels={"method": "GET"})
    >>> requests.inc()
    >>> latency = Histogram("http_request_seconds", "Latency", buckets=(0.1, 0.5, 1))
    >>> latency.observe(0.42)
    >>> print(latency.to_prometheus_format())
"""

from __future__ import annotations

import contextlib
import math
import threading
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, TypeAlias

from telemetry_core.exceptions import ValidationError
from telemetry_core.metrics.base import (
    DEFAULT_HISTOGRAM_BUCKETS,
    MetricType,
    format_header,
    format_labels,
    format_value,
    validate_labels,
    validate_metric_name,
)


if TYPE_CHECKING:
    from collections.abc import Generator, Mapping, Sequence


class _MetricBase:
    """Identity shared by every metric variant."""

    metric_type: MetricType

    def __init__(
        self,
        name: str,
        help: str = "",
        labels: Mapping[str, str] | None = None,
    ) -> None:
        self._name = validate_metric_name(name)
        self._help = help
        self._labels = validate_labels(labels)
        self._lock = threading.Lock()

    @property
    def name(self) -> str:
        """Get metric name."""
        return self._name

    @property
    def help(self) -> str:
        """Get metric help text."""
        return self._help

    @property
    def labels(self) -> dict[str, str]:
        """Get a copy of the labels, in insertion order."""
        return dict(self._labels)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self._name!r}, labels={self._labels!r})"


# =============================================================================
# Counter
# =============================================================================


class Counter(_MetricBase):
    """A counter that can only increase.

    Example:
        >>> counter = Counter("jobs_processed_total", "Processed jobs")
        >>> counter.inc()
        >>> counter.inc(5)
        >>> counter.get_value()
        6
    """

    metric_type = MetricType.COUNTER

    def __init__(
        self,
        name: str,
        help: str = "",
        labels: Mapping[str, str] | None = None,
    ) -> None:
        """Initialize counter.

        Args:
            name: Metric name.
            help: Human-readable description.
            labels: Fixed labels for this series.
        """
        super().__init__(name, help, labels)
        self._value: float = 0

    def inc(self, delta: float = 1) -> None:
        """Increment the counter.

        Args:
            delta: Amount to add (must be non-negative).

        Raises:
            ValidationError: If delta is negative or NaN. The value is unchanged.
        """
        if delta < 0 or math.isnan(delta):
            raise ValidationError(
                "Counter increment must be non-negative",
                field="delta",
                value=delta,
            )
        with self._lock:
            self._value += delta

    def get_value(self) -> float:
        """Get current counter value."""
        with self._lock:
            return self._value

    def reset(self) -> None:
        """Reset the counter to zero (test/reset utility)."""
        with self._lock:
            self._value = 0

    def to_prometheus_format(self) -> str:
        """Render the counter in Prometheus text format."""
        lines = format_header(self._name, self._help, self.metric_type)
        lines.append(f"{self._name}{format_labels(self._labels)} {format_value(self.get_value())}")
        return "\n".join(lines)


# =============================================================================
# Gauge
# =============================================================================


class Gauge(_MetricBase):
    """A gauge that can go up or down.

    Example:
        >>> gauge = Gauge("queue_depth", "Items waiting")
        >>> gauge.set(10)
        >>> gauge.dec(3)
        >>> gauge.get_value()
        7
    """

    metric_type = MetricType.GAUGE

    def __init__(
        self,
        name: str,
        help: str = "",
        labels: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(name, help, labels)
        self._value: float = 0

    def set(self, value: float) -> None:
        """Set the gauge value."""
        with self._lock:
            self._value = value

    def inc(self, value: float = 1) -> None:
        """Increment the gauge."""
        with self._lock:
            self._value += value

    def dec(self, value: float = 1) -> None:
        """Decrement the gauge."""
        with self._lock:
            self._value -= value

    def get_value(self) -> float:
        """Get current gauge value."""
        with self._lock:
            return self._value

    @contextlib.contextmanager
    def track_inprogress(self) -> Generator[None, None, None]:
        """Increment on entry and decrement on exit."""
        self.inc()
        try:
            yield
        finally:
            self.dec()

    def reset(self) -> None:
        """Reset the gauge to zero."""
        with self._lock:
            self._value = 0

    def to_prometheus_format(self) -> str:
        """Render the gauge in Prometheus text format."""
        lines = format_header(self._name, self._help, self.metric_type)
        lines.append(f"{self._name}{format_labels(self._labels)} {format_value(self.get_value())}")
        return "\n".join(lines)


# =============================================================================
# Histogram
# =============================================================================


@dataclass(frozen=True, slots=True)
class HistogramSnapshot:
    """Point-in-time copy of a histogram's state.

    Attributes:
        buckets: Boundary to cumulative count, ascending, ending with +Inf.
        sum: Sum of all observations.
        count: Number of observations.
    """

    buckets: dict[float, int]
    sum: float
    count: int


class Histogram(_MetricBase):
    """A histogram with cumulative buckets.

    Every observation increments each bucket whose boundary is >= the
    value, plus the implicit ``+Inf`` bucket, so bucket counts never
    decrease as the boundary increases and ``+Inf`` always equals ``count``.

    Example:
        >>> histogram = Histogram("payload_bytes", "Payload size", buckets=(100, 1000))
        >>> histogram.observe(250)
        >>> histogram.get_value().buckets
        {100.0: 0, 1000.0: 1, inf: 1}
    """

    metric_type = MetricType.HISTOGRAM

    def __init__(
        self,
        name: str,
        help: str = "",
        buckets: Sequence[float] | None = None,
        labels: Mapping[str, str] | None = None,
    ) -> None:
        """Initialize histogram.

        Args:
            name: Metric name.
            help: Human-readable description.
            buckets: Bucket boundaries. Sorted and de-duplicated; an explicit
                infinite boundary is ignored since +Inf is always present.
                An empty sequence leaves +Inf as the only bucket.
            labels: Fixed labels for this series.

        Raises:
            ValidationError: If a boundary is NaN.
        """
        super().__init__(name, help, labels)
        raw = DEFAULT_HISTOGRAM_BUCKETS if buckets is None else tuple(buckets)
        if any(math.isnan(b) for b in raw):
            raise ValidationError(
                "Histogram buckets must not contain NaN",
                field="buckets",
                value=raw,
            )
        boundaries = tuple(sorted({float(b) for b in raw if not math.isinf(b)}))
        self._boundaries = boundaries
        self._bucket_counts: dict[float, int] = dict.fromkeys((*boundaries, math.inf), 0)
        self._sum: float = 0
        self._count: int = 0

    @property
    def buckets(self) -> tuple[float, ...]:
        """Get the finite bucket boundaries, ascending."""
        return self._boundaries

    def observe(self, value: float) -> None:
        """Record one observation.

        Args:
            value: Observed value (must be non-negative).

        Raises:
            ValidationError: If value is negative or NaN. State is unchanged.
        """
        if value < 0 or math.isnan(value):
            raise ValidationError(
                "Histogram observation must be non-negative",
                field="value",
                value=value,
            )
        with self._lock:
            self._count += 1
            self._sum += value
            for boundary in self._boundaries:
                if value <= boundary:
                    self._bucket_counts[boundary] += 1
            self._bucket_counts[math.inf] += 1

    @contextlib.contextmanager
    def time(self) -> Generator[None, None, None]:
        """Observe the elapsed seconds of the enclosed block."""
        start = time.perf_counter()
        try:
            yield
        finally:
            self.observe(time.perf_counter() - start)

    def get_value(self) -> HistogramSnapshot:
        """Get a consistent snapshot of buckets, sum and count."""
        with self._lock:
            return HistogramSnapshot(
                buckets=dict(self._bucket_counts),
                sum=self._sum,
                count=self._count,
            )

    def get_sample_count(self) -> int:
        """Get total observation count."""
        with self._lock:
            return self._count

    def get_sample_sum(self) -> float:
        """Get sum of all observations."""
        with self._lock:
            return self._sum

    def reset(self) -> None:
        """Reset all buckets, sum and count."""
        with self._lock:
            self._bucket_counts = dict.fromkeys(self._bucket_counts, 0)
            self._sum = 0
            self._count = 0

    def to_prometheus_format(self) -> str:
        """Render buckets, sum and count in Prometheus text format."""
        snapshot = self.get_value()
        suffix = format_labels(self._labels)
        lines = format_header(self._name, self._help, self.metric_type)
        for boundary, count in snapshot.buckets.items():
            le = format_labels(self._labels, leading={"le": format_value(boundary)})
            lines.append(f"{self._name}_bucket{le} {count}")
        lines.append(f"{self._name}_sum{suffix} {format_value(snapshot.sum)}")
        lines.append(f"{self._name}_count{suffix} {snapshot.count}")
        return "\n".join(lines)


Metric: TypeAlias = Counter | Gauge | Histogram
"""Closed union of the supported metric variants."""
