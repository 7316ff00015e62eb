"""Tracer: creates spans and tracks the active ones.

There is no global tracer. Build one explicitly (or through
``ObservabilityFactory``) and pass it to the code that needs it.
"""

from __future__ import annotations

import threading
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Self

from telemetry_core.exceptions import NotFoundError, ValidationError
from telemetry_core.logging import LogContext, get_logger
from telemetry_core.tracing.hooks import CompositeTracingHook
from telemetry_core.tracing.ids import generate_span_id, generate_trace_id
from telemetry_core.tracing.sampling import ProbabilitySampler, Sampler, create_sampler
from telemetry_core.tracing.span import Span
from telemetry_core.tracing.types import (
    SamplingContext,
    SpanKind,
    SpanStatus,
    SpanStatusCode,
    TraceContext,
)


if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from telemetry_core.config import TelemetryConfig
    from telemetry_core.tracing.hooks import TracingHook


__all__ = [
    "Tracer",
    "TracerConfig",
]

logger = get_logger(__name__)


# =============================================================================
# Configuration
# =============================================================================


@dataclass(frozen=True, slots=True)
class TracerConfig:
    """Configuration for a Tracer.

    Attributes:
        service_name: Value of the ``service.name`` attribute on every span.
        sampler: Sampling strategy.
        max_spans_per_trace: Maximum spans of one trace tracked at once.
    """

    service_name: str
    sampler: Sampler = field(default_factory=lambda: ProbabilitySampler(1.0))
    max_spans_per_trace: int = 1000

    def __post_init__(self) -> None:
        if not self.service_name:
            raise ValidationError(
                "service_name must not be empty",
                field="service_name",
                value=self.service_name,
            )
        if self.max_spans_per_trace <= 0:
            raise ValidationError(
                "max_spans_per_trace must be positive",
                field="max_spans_per_trace",
                value=self.max_spans_per_trace,
            )

    def with_sampler(self, sampler: Sampler) -> Self:
        """Return a copy with a different sampler."""
        return type(self)(
            service_name=self.service_name,
            sampler=sampler,
            max_spans_per_trace=self.max_spans_per_trace,
        )

    @classmethod
    def from_config(cls, config: TelemetryConfig) -> Self:
        """Build tracer configuration from a TelemetryConfig."""
        return cls(
            service_name=config.service_name,
            sampler=create_sampler(config.sampler, config.sample_rate),
            max_spans_per_trace=config.max_spans_per_trace,
        )


# =============================================================================
# Tracer
# =============================================================================


class Tracer:
    """Creates spans, applies sampling and tracks active spans.

    The active-span table is guarded by a lock; every read returns a
    snapshot. Hooks run outside the lock.

    Example:
        >>> tracer = Tracer(TracerConfig("checkout"))
        >>> with tracer.trace("charge_card") as span:
        ...     span.set_attribute("amount", 12.5)
    """

    def __init__(
        self,
        config: TracerConfig,
        hooks: Sequence[TracingHook] | None = None,
    ) -> None:
        """Initialize tracer.

        Args:
            config: Tracer configuration.
            hooks: Span lifecycle hooks.
        """
        self._config = config
        self._hooks = CompositeTracingHook(hooks or [])
        self._spans: dict[str, Span] = {}
        self._trace_span_counts: dict[str, int] = {}
        self._lock = threading.Lock()

    def get_config(self) -> TracerConfig:
        return self._config

    # -------------------------------------------------------------------------
    # Span creation
    # -------------------------------------------------------------------------

    def start_span(
        self,
        name: str,
        *,
        kind: SpanKind = SpanKind.INTERNAL,
        parent: TraceContext | None = None,
        attributes: Mapping[str, Any] | None = None,
    ) -> Span:
        """Start a new span.

        The span joins the parent's trace when ``parent`` is given and
        starts a new trace otherwise. Spans the sampler drops are returned
        but never tracked.

        Args:
            name: Operation name.
            kind: Span kind.
            parent: Context of the parent span.
            attributes: Initial attributes.

        Returns:
            The new span.

        Raises:
            ValidationError: If the sampler rejects the trace id.
        """
        trace_id = parent.trace_id if parent is not None else generate_trace_id()
        span_id = generate_span_id()
        caller_attributes = dict(attributes or {})

        result = self._config.sampler.should_sample(
            SamplingContext(
                trace_id=trace_id,
                span_id=span_id,
                name=name,
                kind=kind,
                parent_context=parent,
                attributes=caller_attributes,
            )
        )

        merged: dict[str, Any] = {"service.name": self._config.service_name}
        merged.update(caller_attributes)
        merged.update(result.attributes)

        recording = result.decision.is_recording
        span = Span(
            name,
            trace_id,
            span_id,
            parent_span_id=parent.span_id if parent is not None else None,
            kind=kind,
            attributes=merged,
            sampled=result.decision.is_sampled,
            on_end=self._hooks.on_span_end if recording else None,
        )

        if not recording:
            logger.debug("Span dropped by sampler", span_name=name, trace_id=trace_id)
            return span

        with self._lock:
            tracked = self._trace_span_counts.get(trace_id, 0)
            limit_reached = tracked >= self._config.max_spans_per_trace
            if not limit_reached:
                self._spans[span_id] = span
                self._trace_span_counts[trace_id] = tracked + 1

        if limit_reached:
            logger.warning(
                "Span limit reached for trace; span not tracked",
                span_name=name,
                trace_id=trace_id,
                max_spans_per_trace=self._config.max_spans_per_trace,
            )

        self._hooks.on_span_start(span)
        return span

    @contextmanager
    def trace(
        self,
        name: str,
        *,
        kind: SpanKind = SpanKind.INTERNAL,
        parent: TraceContext | None = None,
        attributes: Mapping[str, Any] | None = None,
    ) -> Iterator[Span]:
        """Run a block inside a span.

        Log records emitted inside the block carry the span's trace and span
        ids. An escaping exception is recorded on the span and re-raised.

        Example:
            >>> with tracer.trace("fetch", kind=SpanKind.CLIENT) as span:
            ...     span.add_event("sent")
        """
        span = self.start_span(name, kind=kind, parent=parent, attributes=attributes)
        try:
            with LogContext(trace_id=span.trace_id, span_id=span.span_id):
                yield span
        except Exception as e:
            span.record_exception(e)
            span.set_status(SpanStatus.error(str(e)))
            raise
        else:
            if span.status.code is SpanStatusCode.UNSET:
                span.set_status(SpanStatus.ok())
        finally:
            self.end_span(span.span_id)
            span.end()

    # -------------------------------------------------------------------------
    # Active span table
    # -------------------------------------------------------------------------

    def _remove(self, span_id: str) -> Span | None:
        span = self._spans.pop(span_id, None)
        if span is not None:
            remaining = self._trace_span_counts.get(span.trace_id, 1) - 1
            if remaining > 0:
                self._trace_span_counts[span.trace_id] = remaining
            else:
                self._trace_span_counts.pop(span.trace_id, None)
        return span

    def get_span(self, span_id: str) -> Span:
        """Get an active span.

        Raises:
            NotFoundError: If no tracked span has this id.
        """
        span = self.find_span(span_id)
        if span is None:
            raise NotFoundError(f"Span '{span_id}' not found", name=span_id, kind="span")
        return span

    def find_span(self, span_id: str) -> Span | None:
        """Get an active span, or None."""
        with self._lock:
            return self._spans.get(span_id)

    def end_span(self, span_id: str) -> None:
        """End a span and stop tracking it.

        Idempotent: a span that already ended keeps its end time, and an
        unknown id is ignored.
        """
        with self._lock:
            span = self._remove(span_id)
        if span is not None:
            span.end()

    def get_active_spans(self) -> list[Span]:
        """Snapshot of all tracked spans."""
        with self._lock:
            return list(self._spans.values())

    def export_spans(self) -> list[Span]:
        """Snapshot of tracked spans that have ended but were not removed.

        Spans ended through ``end_span`` are removed immediately and never
        appear here; see ``flush_ended_spans`` for draining.
        """
        return [span for span in self.get_active_spans() if span.is_ended()]

    def flush_ended_spans(self) -> list[Span]:
        """Remove and return every tracked span that has ended."""
        with self._lock:
            ended = [span for span in self._spans.values() if span.is_ended()]
            for span in ended:
                self._remove(span.span_id)
        return ended

    def clear(self) -> None:
        """Stop tracking every span without ending them."""
        with self._lock:
            self._spans.clear()
            self._trace_span_counts.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._spans)

    def __repr__(self) -> str:
        return (
            f"Tracer(service_name={self._config.service_name!r}, "
            f"sampler={self._config.sampler.get_description()!r})"
        )
