"""Observers for health check runs.

The registry reports every run to a single hook: ``on_check_start``
before the check, ``on_check_error`` if it raised or timed out, and
``on_check_complete`` with the final result in every case.
"""

from __future__ import annotations

import contextlib
import re
import threading
import zlib
from abc import abstractmethod
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from telemetry_core.health.types import HealthCheckResult, HealthStatus
from telemetry_core.logging import LogLevel, get_logger


if TYPE_CHECKING:
    from collections.abc import Sequence

    from telemetry_core.metrics.collector import MetricsCollector


__all__ = [
    "CompositeHealthCheckHook",
    "HealthCheckHook",
    "LoggingHealthCheckHook",
    "MetricsHealthCheckHook",
]

logger = get_logger(__name__)


@runtime_checkable
class HealthCheckHook(Protocol):
    """Receives the lifecycle events of each health check run."""

    @abstractmethod
    def on_check_start(self, name: str, context: dict[str, Any]) -> None:
        """A run of ``name`` is about to begin.

        ``context`` carries run settings such as ``timeout_seconds``.
        """
        ...

    @abstractmethod
    def on_check_complete(
        self,
        name: str,
        result: HealthCheckResult,
        duration_ms: float,
        context: dict[str, Any],
    ) -> None:
        """A run finished with ``result``, including DOWN results built from failures."""
        ...

    @abstractmethod
    def on_check_error(self, name: str, exception: Exception, context: dict[str, Any]) -> None:
        """A run raised ``exception`` or exceeded its time limit (TimeoutError)."""
        ...


# =============================================================================
# Logging
# =============================================================================


_LEVEL_FOR_STATUS = {
    HealthStatus.UP: LogLevel.INFO,
    HealthStatus.DEGRADED: LogLevel.WARNING,
    HealthStatus.DOWN: LogLevel.ERROR,
}


class LoggingHealthCheckHook:
    """Writes one structured log line per event.

    Completed runs log at INFO, WARNING or ERROR according to status.
    """

    def __init__(self, logger_name: str | None = None) -> None:
        self._logger = get_logger(logger_name or "telemetry_core.health")

    def on_check_start(self, name: str, context: dict[str, Any]) -> None:
        self._logger.debug("Health check starting", check_name=name, **context)

    def on_check_complete(
        self,
        name: str,
        result: HealthCheckResult,
        duration_ms: float,
        context: dict[str, Any],
    ) -> None:
        self._logger.log(
            _LEVEL_FOR_STATUS[result.status],
            "Health check completed",
            check_name=name,
            status=result.status.value,
            duration_ms=duration_ms,
            result_message=result.message,
            **context,
        )

    def on_check_error(self, name: str, exception: Exception, context: dict[str, Any]) -> None:
        self._logger.error(
            "Health check failed with exception",
            check_name=name,
            exception_type=type(exception).__name__,
            exception_message=str(exception),
            **context,
        )


# =============================================================================
# Metrics
# =============================================================================


_UNSAFE_CHARS = re.compile(r"[^a-zA-Z0-9_]")


class MetricsHealthCheckHook:
    """Records each check's outcomes as its own set of metrics.

    A collector keeps a single series per name, so the check name is part
    of the metric name. For a check called ``db`` with the default prefix:

    - ``health_check_db_runs_total``: completed runs
    - ``health_check_db_errors_total``: runs that raised or timed out
    - ``health_check_db_duration_seconds``: duration histogram
    - ``health_check_db_up``: 1 if the last result was UP, else 0
    - ``health_check_db_status``: severity of the last result (0, 1 or 2)

    Every series carries the label ``check="<name>"``. Characters outside
    ``[a-zA-Z0-9_]`` become ``_``. When two check names reduce to the same
    text (``db-1`` and ``db.1``), the first keeps it and later ones get a
    checksum of their raw name appended, with a warning logged.
    """

    def __init__(self, collector: MetricsCollector, prefix: str = "health_check") -> None:
        self._collector = collector
        self._prefix = prefix
        self._stems: dict[str, str] = {}
        self._owners: dict[str, str] = {}
        self._lock = threading.Lock()

    @property
    def collector(self) -> MetricsCollector:
        return self._collector

    def _stem(self, check_name: str) -> str:
        with self._lock:
            stem = self._stems.get(check_name)
            if stem is not None:
                return stem
            stem = _UNSAFE_CHARS.sub("_", check_name)
            owner = self._owners.get(stem)
            if owner is not None:
                stem = f"{stem}_{zlib.crc32(check_name.encode()):08x}"
                logger.warning(
                    "Health check metric names collide",
                    check_name=check_name,
                    colliding_with=owner,
                    metric_stem=stem,
                )
            self._owners.setdefault(stem, check_name)
            self._stems[check_name] = stem
            return stem

    def metric_name(self, check_name: str, suffix: str) -> str:
        """Name of the ``suffix`` metric recorded for ``check_name``.

        Example:
            >>> MetricsHealthCheckHook(MetricsCollector()).metric_name("db-primary", "up")
            'health_check_db_primary_up'
        """
        return f"{self._prefix}_{self._stem(check_name)}_{suffix}"

    def on_check_start(self, name: str, context: dict[str, Any]) -> None:
        return None

    def on_check_complete(
        self,
        name: str,
        result: HealthCheckResult,
        duration_ms: float,
        context: dict[str, Any],
    ) -> None:
        labels = {"check": name}
        collector = self._collector
        collector.create_counter(
            self.metric_name(name, "runs_total"), "Completed health check runs", labels=labels
        ).inc()
        collector.create_histogram(
            self.metric_name(name, "duration_seconds"),
            "Health check duration in seconds",
            labels=labels,
        ).observe(max(duration_ms, 0.0) / 1000)
        collector.create_gauge(
            self.metric_name(name, "up"), "1 if the last result was up", labels=labels
        ).set(int(result.is_up))
        collector.create_gauge(
            self.metric_name(name, "status"), "Severity of the last result", labels=labels
        ).set(result.status.severity)

    def on_check_error(self, name: str, exception: Exception, context: dict[str, Any]) -> None:
        self._collector.create_counter(
            self.metric_name(name, "errors_total"),
            "Health check runs that raised or timed out",
            labels={"check": name},
        ).inc()


# =============================================================================
# Fan-out
# =============================================================================


class CompositeHealthCheckHook:
    """Forwards every event to several hooks in order.

    An exception from one hook is dropped so the rest still run and the
    check result is unaffected.
    """

    def __init__(self, hooks: Sequence[HealthCheckHook]) -> None:
        self._hooks = list(hooks)

    def add_hook(self, hook: HealthCheckHook) -> None:
        self._hooks.append(hook)

    def remove_hook(self, hook: HealthCheckHook) -> None:
        if hook in self._hooks:
            self._hooks.remove(hook)

    def _each(self, event: str, *args: Any) -> None:
        for hook in list(self._hooks):
            with contextlib.suppress(Exception):
                getattr(hook, event)(*args)

    def on_check_start(self, name: str, context: dict[str, Any]) -> None:
        self._each("on_check_start", name, context)

    def on_check_complete(
        self,
        name: str,
        result: HealthCheckResult,
        duration_ms: float,
        context: dict[str, Any],
    ) -> None:
        self._each("on_check_complete", name, result, duration_ms, context)

    def on_check_error(self, name: str, exception: Exception, context: dict[str, Any]) -> None:
        self._each("on_check_error", name, exception, context)
