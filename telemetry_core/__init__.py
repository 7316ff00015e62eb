"""telemetry-core: tracing, metrics and health checks for a single process.

The package has no global state: build a Tracer, a MetricsCollector and a
HealthCheckRegistry explicitly (or let ``Observability`` build all three
from configuration) and pass them where they are needed.

Tracing:
    >>> from telemetry_core import Tracer, TracerConfig, TraceIdRatioBasedSampler
    >>> tracer = Tracer(TracerConfig("orders", sampler=TraceIdRatioBasedSampler(0.1)))
    >>> with tracer.trace("place_order") as span:
    ...     span.set_attribute("order.items", 3)

Metrics:
    >>> from telemetry_core import MetricsCollector
    >>> metrics = MetricsCollector()
    >>> metrics.create_counter("orders_total", "Orders placed").inc()
    >>> text = metrics.to_prometheus_format()

Health:
    >>> from telemetry_core import HealthCheckRegistry, get_default_health_checks
    >>> registry = HealthCheckRegistry()
    >>> for check in get_default_health_checks():
    ...     registry.register(check)
    >>> status = await registry.get_overall_status()

Composition:
    >>> from telemetry_core import Observability
    >>> obs = Observability.load()

Public API:
    - Tracing: Tracer, TracerConfig, Span, SpanData, TraceContext, samplers
    - Metrics: Counter, Gauge, Histogram, MetricsCollector
    - Health: HealthCheckRegistry, HealthCheckResult, HealthStatus, built-in checks
    - Composition: ObservabilityFactory, Observability
    - Configuration: TelemetryConfig, EnvReader
    - Logging: get_logger, LogContext, configure_logging
    - Exceptions: TelemetryError and subclasses
"""

from telemetry_core.config import (
    DEFAULT_TELEMETRY_CONFIG,
    EnvReader,
    TelemetryConfig,
    find_config_file,
    load_config_file,
)
from telemetry_core.exceptions import (
    ConfigurationError,
    DuplicateRegistrationError,
    InvalidConfigValueError,
    NotFoundError,
    TelemetryError,
    ValidationError,
)
from telemetry_core.factory import Observability, ObservabilityFactory
from telemetry_core.health import (
    ApplicationHealthCheck,
    CompositeHealthCheckHook,
    CpuHealthCheck,
    HealthCheck,
    HealthCheckHook,
    HealthCheckRegistry,
    HealthCheckRegistryConfig,
    HealthCheckResult,
    HealthStatus,
    LoggingHealthCheckHook,
    MemoryHealthCheck,
    MetricsHealthCheckHook,
    UptimeHealthCheck,
    aggregate_status,
    get_default_health_checks,
)
from telemetry_core.logging import (
    LogContext,
    LogLevel,
    TelemetryLogger,
    configure_logging,
    get_logger,
)
from telemetry_core.metrics import (
    DEFAULT_HISTOGRAM_BUCKETS,
    Counter,
    Gauge,
    Histogram,
    HistogramSnapshot,
    Metric,
    MetricsCollector,
    MetricType,
)
from telemetry_core.tracing import (
    AlwaysOffSampler,
    AlwaysOnSampler,
    CompositeTracingHook,
    LoggingTracingHook,
    ParentBasedSampler,
    ProbabilitySampler,
    Sampler,
    SamplingContext,
    SamplingDecision,
    SamplingResult,
    Span,
    SpanData,
    SpanEvent,
    SpanKind,
    SpanStatus,
    SpanStatusCode,
    TraceContext,
    TraceIdRatioBasedSampler,
    Tracer,
    TracerConfig,
    TracingHook,
    create_sampler,
    generate_span_id,
    generate_trace_id,
)
from telemetry_core.version import __version__, __version_info__


__all__ = [
    "DEFAULT_HISTOGRAM_BUCKETS",
    "DEFAULT_TELEMETRY_CONFIG",
    "AlwaysOffSampler",
    "AlwaysOnSampler",
    "ApplicationHealthCheck",
    "CompositeHealthCheckHook",
    "CompositeTracingHook",
    "ConfigurationError",
    "Counter",
    "CpuHealthCheck",
    "DuplicateRegistrationError",
    "EnvReader",
    "Gauge",
    "HealthCheck",
    "HealthCheckHook",
    "HealthCheckRegistry",
    "HealthCheckRegistryConfig",
    "HealthCheckResult",
    "HealthStatus",
    "Histogram",
    "HistogramSnapshot",
    "InvalidConfigValueError",
    "LogContext",
    "LogLevel",
    "LoggingHealthCheckHook",
    "LoggingTracingHook",
    "MemoryHealthCheck",
    "Metric",
    "MetricType",
    "MetricsCollector",
    "MetricsHealthCheckHook",
    "NotFoundError",
    "Observability",
    "ObservabilityFactory",
    "ParentBasedSampler",
    "ProbabilitySampler",
    "Sampler",
    "SamplingContext",
    "SamplingDecision",
    "SamplingResult",
    "Span",
    "SpanData",
    "SpanEvent",
    "SpanKind",
    "SpanStatus",
    "SpanStatusCode",
    "TelemetryConfig",
    "TelemetryError",
    "TelemetryLogger",
    "TraceContext",
    "TraceIdRatioBasedSampler",
    "Tracer",
    "TracerConfig",
    "TracingHook",
    "UptimeHealthCheck",
    "ValidationError",
    "__version__",
    "__version_info__",
    "aggregate_status",
    "configure_logging",
    "create_sampler",
    "find_config_file",
    "generate_span_id",
    "generate_trace_id",
    "get_default_health_checks",
    "get_logger",
    "load_config_file",
]
