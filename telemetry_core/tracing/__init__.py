"""Tracing: ids, samplers, spans and the Tracer.

Example:
    >>> from telemetry_core.tracing import Tracer, TracerConfig, TraceIdRatioBasedSampler
    >>> tracer = Tracer(TracerConfig("orders", sampler=TraceIdRatioBasedSampler(0.1)))
    >>> with tracer.trace("place_order") as span:
    ...     child = tracer.start_span("reserve_stock", parent=span.context)
    ...     tracer.end_span(child.span_id)
"""

from telemetry_core.tracing.hooks import (
    CompositeTracingHook,
    LoggingTracingHook,
    TracingHook,
)
from telemetry_core.tracing.ids import (
    INVALID_SPAN_ID,
    INVALID_TRACE_ID,
    generate_span_id,
    generate_trace_id,
    is_valid_span_id,
    is_valid_trace_id,
)
from telemetry_core.tracing.sampling import (
    AlwaysOffSampler,
    AlwaysOnSampler,
    ParentBasedSampler,
    ProbabilitySampler,
    Sampler,
    TraceIdRatioBasedSampler,
    create_sampler,
)
from telemetry_core.tracing.span import Span, SpanData
from telemetry_core.tracing.tracer import Tracer, TracerConfig
from telemetry_core.tracing.types import (
    SamplingContext,
    SamplingDecision,
    SamplingResult,
    SpanEvent,
    SpanKind,
    SpanStatus,
    SpanStatusCode,
    TraceContext,
)


__all__ = [
    "INVALID_SPAN_ID",
    "INVALID_TRACE_ID",
    "AlwaysOffSampler",
    "AlwaysOnSampler",
    "CompositeTracingHook",
    "LoggingTracingHook",
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
    "TraceContext",
    "TraceIdRatioBasedSampler",
    "Tracer",
    "TracerConfig",
    "TracingHook",
    "create_sampler",
    "generate_span_id",
    "generate_trace_id",
    "is_valid_span_id",
    "is_valid_trace_id",
]
