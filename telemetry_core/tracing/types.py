"""Value types shared by the tracer, spans and samplers."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Self


# =============================================================================
# Enums
# =============================================================================


class SpanKind(Enum):
    """Kind of span in distributed tracing."""

    INTERNAL = "internal"
    """Internal operation."""

    SERVER = "server"
    """Server side of a synchronous request."""

    CLIENT = "client"
    """Client side of a synchronous request."""

    PRODUCER = "producer"
    """Producer of an asynchronous message."""

    CONSUMER = "consumer"
    """Consumer of an asynchronous message."""


class SpanStatusCode(Enum):
    """Status code of a span."""

    UNSET = "unset"
    OK = "ok"
    ERROR = "error"


class SamplingDecision(Enum):
    """Sampling decision for a span."""

    DROP = "drop"
    """Not recorded and not tracked by the tracer."""

    RECORD_ONLY = "record_only"
    """Recorded and tracked, but not marked as sampled."""

    RECORD_AND_SAMPLE = "record_and_sample"
    """Recorded, tracked and marked as sampled."""

    @property
    def is_recording(self) -> bool:
        """Check if the span is recorded."""
        return self is not SamplingDecision.DROP

    @property
    def is_sampled(self) -> bool:
        """Check if the span carries the sampled flag."""
        return self is SamplingDecision.RECORD_AND_SAMPLE


# =============================================================================
# Span Value Types
# =============================================================================


@dataclass(frozen=True, slots=True)
class SpanStatus:
    """Status of a span.

    Attributes:
        code: Status code.
        message: Optional description, typically set with ERROR.
    """

    code: SpanStatusCode = SpanStatusCode.UNSET
    message: str = ""

    @classmethod
    def unset(cls) -> SpanStatus:
        return cls(SpanStatusCode.UNSET)

    @classmethod
    def ok(cls) -> SpanStatus:
        return cls(SpanStatusCode.OK)

    @classmethod
    def error(cls, message: str = "") -> SpanStatus:
        return cls(SpanStatusCode.ERROR, message)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {"code": self.code.value, "message": self.message}


@dataclass(frozen=True, slots=True)
class SpanEvent:
    """A timestamped event within a span.

    Attributes:
        name: Event name.
        timestamp: Seconds since the epoch.
        attributes: Event attributes.
    """

    name: str
    timestamp: float = field(default_factory=time.time)
    attributes: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "name": self.name,
            "timestamp": self.timestamp,
            "attributes": dict(self.attributes),
        }


@dataclass(frozen=True, slots=True)
class TraceContext:
    """Identity of a span as seen by its children.

    Passed by value to ``Tracer.start_span(parent=...)``; never mutated.

    Attributes:
        trace_id: 32 hex char trace identifier.
        span_id: 16 hex char span identifier.
        trace_flags: 8-bit flags; bit 0 is the sampled flag.
        trace_state: Opaque vendor state.
    """

    SAMPLED_FLAG = 0x01

    trace_id: str
    span_id: str
    trace_flags: int = SAMPLED_FLAG
    trace_state: str | None = None

    @property
    def is_sampled(self) -> bool:
        """Check the sampled bit of trace_flags."""
        return bool(self.trace_flags & self.SAMPLED_FLAG)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "trace_id": self.trace_id,
            "span_id": self.span_id,
            "trace_flags": self.trace_flags,
            "trace_state": self.trace_state,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Self:
        """Create TraceContext from dictionary."""
        return cls(
            trace_id=data["trace_id"],
            span_id=data["span_id"],
            trace_flags=data.get("trace_flags", cls.SAMPLED_FLAG),
            trace_state=data.get("trace_state"),
        )


# =============================================================================
# Sampling Types
# =============================================================================


@dataclass(frozen=True, slots=True)
class SamplingContext:
    """Everything a sampler may look at when deciding.

    Attributes:
        trace_id: Trace the candidate span belongs to.
        span_id: Identifier of the candidate span.
        name: Span name.
        kind: Span kind.
        parent_context: Parent span context, if any.
        attributes: Caller-supplied span attributes.
    """

    trace_id: str
    span_id: str
    name: str = ""
    kind: SpanKind = SpanKind.INTERNAL
    parent_context: TraceContext | None = None
    attributes: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class SamplingResult:
    """Outcome of a sampling decision.

    Attributes:
        decision: The decision.
        attributes: Attributes merged into the span (sampler wins on conflict).
    """

    decision: SamplingDecision
    attributes: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def drop(cls, **attributes: Any) -> SamplingResult:
        return cls(SamplingDecision.DROP, attributes)

    @classmethod
    def record_only(cls, **attributes: Any) -> SamplingResult:
        return cls(SamplingDecision.RECORD_ONLY, attributes)

    @classmethod
    def record_and_sample(cls, **attributes: Any) -> SamplingResult:
        return cls(SamplingDecision.RECORD_AND_SAMPLE, attributes)
