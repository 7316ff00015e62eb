"""Health check registry and executor.

The registry owns a set of named checks and runs them with a per-check
timeout. A check that raises or times out never propagates: the failure
becomes a DOWN result, so one bad check cannot hide the others.
"""

from __future__ import annotations

import asyncio
import inspect
import threading
import time
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any, Self

from telemetry_core.exceptions import DuplicateRegistrationError, NotFoundError, ValidationError
from telemetry_core.health.hooks import CompositeHealthCheckHook
from telemetry_core.health.types import HealthCheckResult, HealthStatus, aggregate_status
from telemetry_core.logging import get_logger


if TYPE_CHECKING:
    from collections.abc import Sequence

    from telemetry_core.config import TelemetryConfig
    from telemetry_core.health.hooks import HealthCheckHook
    from telemetry_core.health.types import HealthCheck


__all__ = [
    "DEFAULT_HEALTH_CHECK_REGISTRY_CONFIG",
    "HealthCheckRegistry",
    "HealthCheckRegistryConfig",
]

logger = get_logger(__name__)


# =============================================================================
# Configuration
# =============================================================================


@dataclass(frozen=True, slots=True)
class HealthCheckRegistryConfig:
    """Configuration for health check execution.

    Attributes:
        timeout_seconds: Maximum time one check may take before it is DOWN.

    Example:
        >>> config = HealthCheckRegistryConfig().with_timeout(2.0)
    """

    timeout_seconds: float = 5.0

    def __post_init__(self) -> None:
        if self.timeout_seconds <= 0:
            raise ValidationError(
                "timeout_seconds must be positive",
                field="timeout_seconds",
                value=self.timeout_seconds,
            )

    def with_timeout(self, timeout_seconds: float) -> HealthCheckRegistryConfig:
        """Create config with new timeout."""
        return HealthCheckRegistryConfig(timeout_seconds=timeout_seconds)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {"timeout_seconds": self.timeout_seconds}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Self:
        """Create HealthCheckRegistryConfig from dictionary."""
        return cls(timeout_seconds=data.get("timeout_seconds", 5.0))

    @classmethod
    def from_config(cls, config: TelemetryConfig) -> Self:
        """Build registry configuration from a TelemetryConfig."""
        return cls(timeout_seconds=config.health_check_timeout_seconds)


DEFAULT_HEALTH_CHECK_REGISTRY_CONFIG = HealthCheckRegistryConfig()


# =============================================================================
# Registry
# =============================================================================


class HealthCheckRegistry:
    """Registry of named health checks.

    Checks may implement ``check`` as a coroutine function or as a plain
    function. Plain functions run in a worker thread via
    ``asyncio.to_thread``; such a thread cannot be interrupted, so after a
    timeout it keeps running in the background while the caller already
    has its DOWN result.

    Example:
        >>> registry = HealthCheckRegistry()
        >>> registry.register(UptimeHealthCheck())
        >>> results = await registry.check_all()
        >>> await registry.get_overall_status()
        <HealthStatus.UP: 'up'>
    """

    def __init__(
        self,
        config: HealthCheckRegistryConfig | None = None,
        hooks: Sequence[HealthCheckHook] | None = None,
    ) -> None:
        """Initialize registry.

        Args:
            config: Execution configuration.
            hooks: Health check event hooks.
        """
        self._config = config or DEFAULT_HEALTH_CHECK_REGISTRY_CONFIG
        self._hook: HealthCheckHook | None = None
        if hooks:
            self._hook = CompositeHealthCheckHook(list(hooks))
        self._checks: dict[str, HealthCheck] = {}
        self._lock = threading.Lock()

    @property
    def config(self) -> HealthCheckRegistryConfig:
        return self._config

    # -------------------------------------------------------------------------
    # Registration
    # -------------------------------------------------------------------------

    def register(self, check: HealthCheck) -> None:
        """Register a health check.

        Raises:
            DuplicateRegistrationError: If a check with the same name exists.
        """
        name = check.name
        with self._lock:
            if name in self._checks:
                raise DuplicateRegistrationError(
                    f"Health check '{name}' is already registered",
                    name=name,
                    kind="health_check",
                )
            self._checks[name] = check
        logger.debug("Health check registered", check_name=name)

    def unregister(self, name: str) -> bool:
        """Remove a health check.

        Returns:
            True if removed, False if not found.
        """
        with self._lock:
            return self._checks.pop(name, None) is not None

    def get_checks(self) -> list[HealthCheck]:
        """Snapshot of registered checks in registration order."""
        with self._lock:
            return list(self._checks.values())

    def get_check_names(self) -> list[str]:
        """Snapshot of registered check names in registration order."""
        with self._lock:
            return list(self._checks)

    def clear(self) -> None:
        """Remove every registered check."""
        with self._lock:
            self._checks.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._checks)

    def __contains__(self, name: object) -> bool:
        with self._lock:
            return name in self._checks

    # -------------------------------------------------------------------------
    # Execution
    # -------------------------------------------------------------------------

    async def check(self, name: str) -> HealthCheckResult:
        """Run one health check by name.

        Args:
            name: Registered check name.

        Returns:
            The check's result; failures and timeouts become DOWN results.

        Raises:
            NotFoundError: If no check is registered under ``name``.
        """
        with self._lock:
            health_check = self._checks.get(name)
        if health_check is None:
            raise NotFoundError(
                f"Health check '{name}' not found",
                name=name,
                kind="health_check",
            )
        return await self._execute(name, health_check)

    async def check_all(self) -> dict[str, HealthCheckResult]:
        """Run every registered check concurrently.

        Returns:
            Mapping of check name to result, in registration order.
        """
        with self._lock:
            snapshot = list(self._checks.items())
        results = await asyncio.gather(
            *(self._execute(name, health_check) for name, health_check in snapshot)
        )
        return {name: result for (name, _), result in zip(snapshot, results, strict=True)}

    async def get_overall_status(self) -> HealthStatus:
        """Run every check and reduce the results to the worst status."""
        results = await self.check_all()
        return aggregate_status(result.status for result in results.values())

    async def get_report(self) -> dict[str, Any]:
        """Run every check and build a serializable summary.

        Returns:
            ``{"status": ..., "timestamp": ..., "checks": {name: result}}``.
        """
        results = await self.check_all()
        overall = aggregate_status(result.status for result in results.values())
        return {
            "status": overall.value,
            "timestamp": datetime.now(UTC).isoformat(),
            "checks": {name: result.to_dict() for name, result in results.items()},
        }

    async def _invoke(self, health_check: HealthCheck) -> HealthCheckResult:
        if inspect.iscoroutinefunction(health_check.check):
            result = await health_check.check()
        else:
            result = await asyncio.to_thread(health_check.check)
            if inspect.isawaitable(result):
                result = await result

        if not isinstance(result, HealthCheckResult):
            raise TypeError(
                f"Health check '{health_check.name}' returned "
                f"{type(result).__name__}, expected HealthCheckResult"
            )
        return result

    async def _execute(self, name: str, health_check: HealthCheck) -> HealthCheckResult:
        timeout = self._config.timeout_seconds
        context: dict[str, Any] = {"timeout_seconds": timeout}

        if self._hook:
            self._hook.on_check_start(name, context)

        start_time = time.perf_counter()
        deadline = asyncio.timeout(timeout)

        try:
            async with deadline:
                result = await self._invoke(health_check)
        except Exception as exc:
            duration_ms = (time.perf_counter() - start_time) * 1000
            if self._hook:
                self._hook.on_check_error(name, exc, context)
            # A TimeoutError raised by the check itself is an ordinary failure.
            if isinstance(exc, TimeoutError) and deadline.expired():
                logger.warning(
                    "Health check timed out",
                    check_name=name,
                    timeout_seconds=timeout,
                )
                result = HealthCheckResult.down(
                    f"Health check timed out after {timeout}s",
                    timeout_seconds=timeout,
                )
            else:
                result = HealthCheckResult.down(
                    str(exc),
                    error=str(exc),
                    exception=type(exc).__name__,
                )
            result = result.with_duration(duration_ms)
        else:
            duration_ms = (time.perf_counter() - start_time) * 1000
            result = result.with_duration(duration_ms)

        if self._hook:
            self._hook.on_check_complete(name, result, duration_ms, context)
        return result
