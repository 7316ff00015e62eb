"""Health checks: result types, the registry, hooks and built-in checks.

Example:
    >>> from telemetry_core.health import HealthCheckRegistry, get_default_health_checks
    >>> registry = HealthCheckRegistry()
    >>> for check in get_default_health_checks():
    ...     registry.register(check)
    >>> status = await registry.get_overall_status()
"""

from telemetry_core.health.checks import (
    ApplicationHealthCheck,
    CpuHealthCheck,
    MemoryHealthCheck,
    UptimeHealthCheck,
    get_default_health_checks,
)
from telemetry_core.health.hooks import (
    CompositeHealthCheckHook,
    HealthCheckHook,
    LoggingHealthCheckHook,
    MetricsHealthCheckHook,
)
from telemetry_core.health.registry import (
    DEFAULT_HEALTH_CHECK_REGISTRY_CONFIG,
    HealthCheckRegistry,
    HealthCheckRegistryConfig,
)
from telemetry_core.health.types import (
    HealthCheck,
    HealthCheckResult,
    HealthStatus,
    aggregate_status,
)


__all__ = [
    "DEFAULT_HEALTH_CHECK_REGISTRY_CONFIG",
    "ApplicationHealthCheck",
    "CompositeHealthCheckHook",
    "CpuHealthCheck",
    "HealthCheck",
    "HealthCheckHook",
    "HealthCheckRegistry",
    "HealthCheckRegistryConfig",
    "HealthCheckResult",
    "HealthStatus",
    "LoggingHealthCheckHook",
    "MemoryHealthCheck",
    "MetricsHealthCheckHook",
    "UptimeHealthCheck",
    "aggregate_status",
    "get_default_health_checks",
]
