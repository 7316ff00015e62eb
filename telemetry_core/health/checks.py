"""Built-in process health checks.

Process and system figures come from psutil. Every check builds a fresh
result on each call.

Example:
    >>> registry = HealthCheckRegistry()
    >>> for check in get_default_health_checks():
    ...     registry.register(check)
"""

from __future__ import annotations

import asyncio
import os
import platform
import time
from datetime import UTC, datetime

import psutil

from telemetry_core.exceptions import ValidationError
from telemetry_core.health.types import HealthCheck, HealthCheckResult, HealthStatus
from telemetry_core.version import __version__


__all__ = [
    "ApplicationHealthCheck",
    "CpuHealthCheck",
    "MemoryHealthCheck",
    "UptimeHealthCheck",
    "get_default_health_checks",
]

_MB = 1024 * 1024


def _status_for(value: float, down_above: float, degraded_above: float) -> HealthStatus:
    if value > down_above:
        return HealthStatus.DOWN
    if value > degraded_above:
        return HealthStatus.DEGRADED
    return HealthStatus.UP


def _validate_thresholds(down_above: float, degraded_above: float) -> None:
    if degraded_above > down_above:
        raise ValidationError(
            f"degraded threshold ({degraded_above}) must not exceed down threshold ({down_above})",
            field="degraded_threshold",
            value=degraded_above,
        )


class MemoryHealthCheck:
    """Share of host memory held by this process.

    ``usage_percent`` is the process resident set size divided by total
    system memory. This is not a heap-used to heap-limit ratio: the
    ``heap_used_mb`` and ``heap_total_mb`` details report RSS and system
    total. A single process rarely holds 75% of its host, so with the
    default thresholds this check reports UP unless the process dominates
    the machine or its container memory. Lower the thresholds to alert on
    smaller shares.

    DOWN above ``down_threshold`` percent, DEGRADED above
    ``degraded_threshold`` percent.
    """

    def __init__(
        self,
        name: str = "memory",
        *,
        down_threshold: float = 90.0,
        degraded_threshold: float = 75.0,
    ) -> None:
        _validate_thresholds(down_threshold, degraded_threshold)
        self._name = name
        self._down_threshold = down_threshold
        self._degraded_threshold = degraded_threshold
        self._process = psutil.Process()

    @property
    def name(self) -> str:
        return self._name

    async def check(self) -> HealthCheckResult:
        memory = self._process.memory_info()
        total_mb = psutil.virtual_memory().total / _MB
        used_mb = memory.rss / _MB
        usage_percent = used_mb / total_mb * 100 if total_mb else 0.0

        return HealthCheckResult(
            status=_status_for(usage_percent, self._down_threshold, self._degraded_threshold),
            message=f"Memory usage: {usage_percent:.1f}%",
            details={
                "heap_total_mb": total_mb,
                "heap_used_mb": used_mb,
                "usage_percent": usage_percent,
                "rss_mb": memory.rss / _MB,
                "vms_mb": memory.vms / _MB,
            },
        )


class UptimeHealthCheck:
    """Process uptime. Always UP."""

    def __init__(self, name: str = "uptime") -> None:
        self._name = name
        self._process = psutil.Process()

    @property
    def name(self) -> str:
        return self._name

    async def check(self) -> HealthCheckResult:
        started_at = self._process.create_time()
        uptime_seconds = max(time.time() - started_at, 0.0)
        uptime_hours = uptime_seconds / 3600

        return HealthCheckResult.up(
            f"Uptime: {uptime_hours:.2f} hours",
            uptime_seconds=uptime_seconds,
            uptime_hours=uptime_hours,
            start_time=datetime.fromtimestamp(started_at, UTC).isoformat(),
        )


class CpuHealthCheck:
    """Process CPU usage over a short sampling window.

    CPU percent is the user plus system time consumed during the window
    divided by the wall-clock length of the window. DOWN above
    ``down_threshold``, DEGRADED above ``degraded_threshold``.
    """

    def __init__(
        self,
        name: str = "cpu",
        *,
        down_threshold: float = 80.0,
        degraded_threshold: float = 60.0,
        sample_window_seconds: float = 0.1,
    ) -> None:
        _validate_thresholds(down_threshold, degraded_threshold)
        if sample_window_seconds <= 0:
            raise ValidationError(
                "sample_window_seconds must be positive",
                field="sample_window_seconds",
                value=sample_window_seconds,
            )
        self._name = name
        self._down_threshold = down_threshold
        self._degraded_threshold = degraded_threshold
        self._sample_window_seconds = sample_window_seconds
        self._process = psutil.Process()

    @property
    def name(self) -> str:
        return self._name

    async def check(self) -> HealthCheckResult:
        start_times = self._process.cpu_times()
        start_wall = time.perf_counter()
        await asyncio.sleep(self._sample_window_seconds)
        end_times = self._process.cpu_times()
        wall = time.perf_counter() - start_wall

        user_time = end_times.user - start_times.user
        system_time = end_times.system - start_times.system
        cpu_percent = (user_time + system_time) / wall * 100 if wall > 0 else 0.0

        return HealthCheckResult(
            status=_status_for(cpu_percent, self._down_threshold, self._degraded_threshold),
            message=f"CPU usage: {cpu_percent:.2f}%",
            details={
                "cpu_percent": cpu_percent,
                "user_time": user_time,
                "system_time": system_time,
                "sample_window_seconds": wall,
            },
        )


class ApplicationHealthCheck:
    """Basic runtime identity. Always UP."""

    def __init__(self, name: str = "application", version: str = __version__) -> None:
        self._name = name
        self._version = version

    @property
    def name(self) -> str:
        return self._name

    async def check(self) -> HealthCheckResult:
        return HealthCheckResult.up(
            "Application is running",
            version=self._version,
            python_version=platform.python_version(),
            platform=platform.system().lower(),
            arch=platform.machine(),
            pid=os.getpid(),
        )


def get_default_health_checks() -> list[HealthCheck]:
    """Create the memory, uptime, cpu and application checks."""
    return [
        MemoryHealthCheck(),
        UptimeHealthCheck(),
        CpuHealthCheck(),
        ApplicationHealthCheck(),
    ]
