"""Statuses, results and the protocol every health check satisfies."""

from __future__ import annotations

import functools
from abc import abstractmethod
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from enum import Enum
from typing import TYPE_CHECKING, Any, Protocol, Self, runtime_checkable


if TYPE_CHECKING:
    from collections.abc import Awaitable, Iterable


__all__ = [
    "HealthCheck",
    "HealthCheckResult",
    "HealthStatus",
    "aggregate_status",
]


@functools.total_ordering
class HealthStatus(Enum):
    """Outcome of a health check, ordered from best to worst.

    ``UP < DEGRADED < DOWN``, so ``max()`` over statuses picks the worst.
    Only DOWN counts as not operational.
    """

    UP = "up"
    DEGRADED = "degraded"
    DOWN = "down"

    @property
    def severity(self) -> int:
        """0 for UP, 1 for DEGRADED, 2 for DOWN."""
        return list(HealthStatus).index(self)

    @property
    def is_operational(self) -> bool:
        return self is not HealthStatus.DOWN

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, HealthStatus):
            return NotImplemented
        return self.severity < other.severity


def aggregate_status(statuses: Iterable[HealthStatus]) -> HealthStatus:
    """The worst of ``statuses``, or UP when there are none.

    Example:
        >>> aggregate_status([HealthStatus.UP, HealthStatus.DEGRADED])
        <HealthStatus.DEGRADED: 'degraded'>
    """
    return max(statuses, default=HealthStatus.UP)


def _now() -> str:
    return datetime.now(UTC).isoformat()


@dataclass(frozen=True, slots=True)
class HealthCheckResult:
    """What one run of a health check reported.

    A new result is produced on every run. ``duration_ms`` is left at zero
    by checks and stamped by the registry.

    Attributes:
        status: Reported status.
        message: Short explanation for humans.
        timestamp: ISO 8601 UTC creation time.
        details: Check-specific values, e.g. ``{"usage_percent": 41.5}``.
        duration_ms: Wall time of the run.

    Example:
        >>> HealthCheckResult.degraded("Replica lag", lag_seconds=12).details
        {'lag_seconds': 12}
    """

    status: HealthStatus
    message: str = ""
    timestamp: str = field(default_factory=_now)
    details: dict[str, Any] = field(default_factory=dict)
    duration_ms: float = 0.0

    @classmethod
    def up(cls, message: str = "", **details: Any) -> HealthCheckResult:
        return cls(HealthStatus.UP, message, details=details)

    @classmethod
    def degraded(cls, message: str = "", **details: Any) -> HealthCheckResult:
        return cls(HealthStatus.DEGRADED, message, details=details)

    @classmethod
    def down(cls, message: str = "", **details: Any) -> HealthCheckResult:
        return cls(HealthStatus.DOWN, message, details=details)

    @property
    def is_up(self) -> bool:
        return self.status is HealthStatus.UP

    def with_duration(self, duration_ms: float) -> HealthCheckResult:
        return replace(self, duration_ms=duration_ms)

    def with_details(self, **kwargs: Any) -> HealthCheckResult:
        """Copy with ``kwargs`` merged over the existing details."""
        return replace(self, details={**self.details, **kwargs})

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status.value,
            "message": self.message,
            "timestamp": self.timestamp,
            "details": dict(self.details),
            "duration_ms": self.duration_ms,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Self:
        """Inverse of ``to_dict``. Only ``status`` is required."""
        return cls(
            status=HealthStatus(data["status"]),
            message=data.get("message", ""),
            timestamp=data.get("timestamp") or _now(),
            details=dict(data.get("details") or {}),
            duration_ms=float(data.get("duration_ms", 0.0)),
        )


@runtime_checkable
class HealthCheck(Protocol):
    """Anything with a ``name`` and a ``check()`` returning a result.

    ``check`` may be ``async def`` or a plain function. Plain functions are
    run in a worker thread so they cannot stall the event loop.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Registry key for this check."""
        ...

    @abstractmethod
    def check(self) -> HealthCheckResult | Awaitable[HealthCheckResult]:
        ...
