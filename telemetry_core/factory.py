"""Construction helpers for tracers, collectors and health registries.

``ObservabilityFactory`` builds individual components with sensible
defaults. ``Observability`` is a composition root that owns one of each,
wired together from a ``TelemetryConfig``.

Example:
    >>> obs = Observability.load()
    >>> with obs.tracer.trace("startup"):
    ...     obs.metrics.create_counter("boots_total", "Process starts").inc()
    >>> status = await obs.health.get_overall_status()
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Self

from telemetry_core.config import DEFAULT_ENV_PREFIX, TelemetryConfig
from telemetry_core.health.checks import get_default_health_checks
from telemetry_core.health.hooks import LoggingHealthCheckHook, MetricsHealthCheckHook
from telemetry_core.health.registry import HealthCheckRegistry, HealthCheckRegistryConfig
from telemetry_core.logging import configure_logging, get_logger
from telemetry_core.metrics.collector import MetricsCollector
from telemetry_core.tracing.hooks import LoggingTracingHook
from telemetry_core.tracing.sampling import ProbabilitySampler
from telemetry_core.tracing.tracer import Tracer, TracerConfig


if TYPE_CHECKING:
    from collections.abc import Sequence
    from pathlib import Path

    from telemetry_core.health.hooks import HealthCheckHook
    from telemetry_core.health.types import HealthCheck
    from telemetry_core.tracing.hooks import TracingHook


__all__ = [
    "Observability",
    "ObservabilityFactory",
]

logger = get_logger(__name__)


class ObservabilityFactory:
    """Static constructors for the individual telemetry components."""

    @staticmethod
    def create_metrics_collector() -> MetricsCollector:
        """Create an empty metrics collector with default buckets."""
        return MetricsCollector()

    @staticmethod
    def create_tracer(service_name: str, sample_rate: float = 0.1) -> Tracer:
        """Create a tracer with a ProbabilitySampler.

        Args:
            service_name: Service name attached to every span.
            sample_rate: Sampling probability (0.0 to 1.0).

        Returns:
            New Tracer.

        Raises:
            ValidationError: If the rate is out of range or the name is empty.
        """
        return Tracer(TracerConfig(service_name, sampler=ProbabilitySampler(sample_rate)))

    @staticmethod
    def create_health_check_registry(
        config: HealthCheckRegistryConfig | None = None,
        include_defaults: bool = False,
    ) -> HealthCheckRegistry:
        """Create a health check registry.

        Args:
            config: Execution configuration.
            include_defaults: Register the built-in memory, uptime, cpu and
                application checks.

        Returns:
            New HealthCheckRegistry.
        """
        registry = HealthCheckRegistry(config)
        if include_defaults:
            for check in get_default_health_checks():
                registry.register(check)
        return registry


@dataclass(frozen=True, slots=True)
class Observability:
    """One tracer, one metrics collector and one health registry.

    Attributes:
        config: Configuration the components were built from.
        tracer: Tracer for the service.
        metrics: Metrics collector.
        health: Health check registry.
    """

    config: TelemetryConfig
    tracer: Tracer
    metrics: MetricsCollector
    health: HealthCheckRegistry

    @classmethod
    def from_config(
        cls,
        config: TelemetryConfig,
        *,
        include_default_checks: bool = True,
        setup_logging: bool = False,
    ) -> Self:
        """Build and wire every component from ``config``.

        The tracer gets a LoggingTracingHook when ``config.log_spans`` is
        set. The health registry always logs, and records into the metrics
        collector when ``config.record_health_metrics`` is set.

        Args:
            config: Telemetry configuration.
            include_default_checks: Register the built-in health checks.
            setup_logging: Apply ``log_level`` and ``log_format`` to the
                package-wide logging configuration.

        Returns:
            Wired Observability instance.
        """
        if setup_logging:
            configure_logging(level=config.log_level, format=config.log_format)

        metrics = MetricsCollector(default_buckets=config.histogram_buckets)

        tracing_hooks: list[TracingHook] = []
        if config.log_spans:
            tracing_hooks.append(LoggingTracingHook())
        tracer = Tracer(TracerConfig.from_config(config), hooks=tracing_hooks)

        health_hooks: list[HealthCheckHook] = [LoggingHealthCheckHook()]
        if config.record_health_metrics:
            health_hooks.append(MetricsHealthCheckHook(metrics))
        health = HealthCheckRegistry(
            HealthCheckRegistryConfig.from_config(config),
            hooks=health_hooks,
        )
        if include_default_checks:
            for check in get_default_health_checks():
                health.register(check)

        logger.info(
            "Observability initialized",
            service_name=config.service_name,
            sampler=tracer.get_config().sampler.get_description(),
            health_checks=health.get_check_names(),
        )
        return cls(config=config, tracer=tracer, metrics=metrics, health=health)

    @classmethod
    def load(
        cls,
        config_file: Path | str | None = None,
        env_prefix: str = DEFAULT_ENV_PREFIX,
        *,
        include_default_checks: bool = True,
        setup_logging: bool = True,
    ) -> Self:
        """Load configuration from file and environment, then build.

        Args:
            config_file: Explicit config file; searched for when omitted.
            env_prefix: Environment variable prefix.
            include_default_checks: Register the built-in health checks.
            setup_logging: Apply the configured logging level and format.

        Returns:
            Wired Observability instance.
        """
        config = TelemetryConfig.load(config_file, env_prefix=env_prefix)
        return cls.from_config(
            config,
            include_default_checks=include_default_checks,
            setup_logging=setup_logging,
        )

    def with_health_checks(self, checks: Sequence[HealthCheck]) -> Self:
        """Register additional health checks and return self."""
        for check in checks:
            self.health.register(check)
        return self
