"""Span: a timed, attributed unit of work.

A span moves through three states: created, active (tracked by a tracer)
and ended. Identity is fixed at creation; name, kind, attributes, events
and status may change until ``end()`` is called, after which every
mutator is a no-op.
"""

from __future__ import annotations

import threading
import time
import traceback
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Self

from telemetry_core.tracing.types import (
    SpanEvent,
    SpanKind,
    SpanStatus,
    SpanStatusCode,
    TraceContext,
)


if TYPE_CHECKING:
    from collections.abc import Callable, Mapping
    from types import TracebackType


__all__ = [
    "Span",
    "SpanData",
]


@dataclass(frozen=True, slots=True)
class SpanData:
    """Immutable snapshot of a span, suitable for export.

    Attributes:
        name: Span name at snapshot time.
        trace_id: Trace identifier.
        span_id: Span identifier.
        parent_span_id: Parent span identifier, if any.
        kind: Span kind.
        start_time: Start time in seconds since the epoch.
        end_time: End time, or None if the span was still active.
        attributes: Attribute copy.
        events: Events in insertion order.
        status: Final or current status.
        sampled: Whether the span carries the sampled flag.
    """

    name: str
    trace_id: str
    span_id: str
    parent_span_id: str | None
    kind: SpanKind
    start_time: float
    end_time: float | None
    attributes: dict[str, Any] = field(default_factory=dict)
    events: tuple[SpanEvent, ...] = ()
    status: SpanStatus = field(default_factory=SpanStatus.unset)
    sampled: bool = True

    @property
    def duration_ms(self) -> float | None:
        """Duration in milliseconds, or None if not ended."""
        if self.end_time is None:
            return None
        return (self.end_time - self.start_time) * 1000

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "name": self.name,
            "trace_id": self.trace_id,
            "span_id": self.span_id,
            "parent_span_id": self.parent_span_id,
            "kind": self.kind.value,
            "start_time": self.start_time,
            "end_time": self.end_time,
            "duration_ms": self.duration_ms,
            "attributes": dict(self.attributes),
            "events": [event.to_dict() for event in self.events],
            "status": self.status.to_dict(),
            "sampled": self.sampled,
        }


class Span:
    """A single traced operation.

    Spans are normally created by ``Tracer.start_span``. Mutators return
    the span so calls can be chained, and are silently ignored once the
    span has ended.

    Used as a context manager the span records an escaping exception (or
    sets OK) and ends itself on exit.

    Example:
        >>> with tracer.start_span("load_user") as span:
        ...     span.set_attribute("user.id", 42).add_event("cache_miss")
    """

    def __init__(
        self,
        name: str,
        trace_id: str,
        span_id: str,
        *,
        parent_span_id: str | None = None,
        kind: SpanKind = SpanKind.INTERNAL,
        attributes: Mapping[str, Any] | None = None,
        start_time: float | None = None,
        sampled: bool = True,
        on_end: Callable[[Span], None] | None = None,
    ) -> None:
        """Initialize span.

        Args:
            name: Operation name.
            trace_id: Trace identifier.
            span_id: Span identifier.
            parent_span_id: Parent span identifier.
            kind: Span kind.
            attributes: Initial attributes.
            start_time: Start time in seconds since the epoch (default: now).
            sampled: Whether the span carries the sampled flag.
            on_end: Called once, outside the lock, when the span ends.
        """
        self._name = name
        self._trace_id = trace_id
        self._span_id = span_id
        self._parent_span_id = parent_span_id
        self._kind = kind
        self._attributes: dict[str, Any] = dict(attributes or {})
        self._events: list[SpanEvent] = []
        self._status = SpanStatus.unset()
        self._start_time = time.time() if start_time is None else start_time
        self._end_time: float | None = None
        self._sampled = sampled
        self._on_end = on_end
        self._lock = threading.Lock()

    # -------------------------------------------------------------------------
    # Identity
    # -------------------------------------------------------------------------

    @property
    def trace_id(self) -> str:
        return self._trace_id

    @property
    def span_id(self) -> str:
        return self._span_id

    @property
    def parent_span_id(self) -> str | None:
        return self._parent_span_id

    @property
    def context(self) -> TraceContext:
        """Context to pass as ``parent`` when starting child spans."""
        flags = TraceContext.SAMPLED_FLAG if self._sampled else 0
        return TraceContext(self._trace_id, self._span_id, trace_flags=flags)

    @property
    def is_sampled(self) -> bool:
        return self._sampled

    # -------------------------------------------------------------------------
    # State
    # -------------------------------------------------------------------------

    @property
    def name(self) -> str:
        with self._lock:
            return self._name

    @property
    def kind(self) -> SpanKind:
        with self._lock:
            return self._kind

    @property
    def attributes(self) -> dict[str, Any]:
        """Copy of the current attributes."""
        with self._lock:
            return dict(self._attributes)

    @property
    def events(self) -> list[SpanEvent]:
        """Copy of the recorded events."""
        with self._lock:
            return list(self._events)

    @property
    def status(self) -> SpanStatus:
        with self._lock:
            return self._status

    @property
    def start_time(self) -> float:
        return self._start_time

    @property
    def end_time(self) -> float | None:
        with self._lock:
            return self._end_time

    def is_ended(self) -> bool:
        """Check if ``end()`` has been called."""
        with self._lock:
            return self._end_time is not None

    def get_duration(self) -> float:
        """Duration in milliseconds; elapsed time so far if still active."""
        with self._lock:
            end = self._end_time if self._end_time is not None else time.time()
            return (end - self._start_time) * 1000

    # -------------------------------------------------------------------------
    # Mutators
    # -------------------------------------------------------------------------

    def update_name(self, name: str) -> Self:
        with self._lock:
            if self._end_time is None:
                self._name = name
        return self

    def set_kind(self, kind: SpanKind) -> Self:
        with self._lock:
            if self._end_time is None:
                self._kind = kind
        return self

    def set_attribute(self, key: str, value: Any) -> Self:
        """Set one attribute; the last write for a key wins."""
        with self._lock:
            if self._end_time is None:
                self._attributes[key] = value
        return self

    def set_attributes(self, attributes: Mapping[str, Any]) -> Self:
        with self._lock:
            if self._end_time is None:
                self._attributes.update(attributes)
        return self

    def add_event(
        self,
        name: str,
        attributes: Mapping[str, Any] | None = None,
        timestamp: float | None = None,
    ) -> Self:
        """Append a timestamped event.

        Args:
            name: Event name.
            attributes: Event attributes.
            timestamp: Event time (default: now).
        """
        event = SpanEvent(
            name=name,
            timestamp=time.time() if timestamp is None else timestamp,
            attributes=dict(attributes or {}),
        )
        with self._lock:
            if self._end_time is None:
                self._events.append(event)
        return self

    def set_status(
        self,
        status: SpanStatus | SpanStatusCode,
        message: str = "",
    ) -> Self:
        """Set the span status.

        Args:
            status: A SpanStatus, or a bare status code.
            message: Description used when ``status`` is a code.
        """
        if isinstance(status, SpanStatusCode):
            status = SpanStatus(status, message)
        with self._lock:
            if self._end_time is None:
                self._status = status
        return self

    def record_exception(
        self,
        exception: BaseException,
        attributes: Mapping[str, Any] | None = None,
    ) -> Self:
        """Add an ``exception`` event describing ``exception``.

        Args:
            exception: The exception to record.
            attributes: Extra event attributes.
        """
        event_attributes: dict[str, Any] = {
            "exception.type": type(exception).__name__,
            "exception.message": str(exception),
            "exception.stacktrace": "".join(
                traceback.format_exception(type(exception), exception, exception.__traceback__)
            ),
        }
        if attributes:
            event_attributes.update(attributes)
        return self.add_event("exception", event_attributes)

    def end(self, end_time: float | None = None) -> None:
        """End the span. Later calls are no-ops.

        Args:
            end_time: End time in seconds since the epoch (default: now).
        """
        with self._lock:
            if self._end_time is not None:
                return
            self._end_time = time.time() if end_time is None else end_time
            on_end = self._on_end

        if on_end is not None:
            on_end(self)

    # -------------------------------------------------------------------------
    # Snapshot / context manager
    # -------------------------------------------------------------------------

    def to_span_data(self) -> SpanData:
        """Create an immutable snapshot of the span."""
        with self._lock:
            return SpanData(
                name=self._name,
                trace_id=self._trace_id,
                span_id=self._span_id,
                parent_span_id=self._parent_span_id,
                kind=self._kind,
                start_time=self._start_time,
                end_time=self._end_time,
                attributes=dict(self._attributes),
                events=tuple(self._events),
                status=self._status,
                sampled=self._sampled,
            )

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        if exc_val is not None:
            self.record_exception(exc_val)
            self.set_status(SpanStatus.error(str(exc_val)))
        elif self.status.code is SpanStatusCode.UNSET:
            self.set_status(SpanStatus.ok())
        self.end()

    def __repr__(self) -> str:
        return (
            f"Span(name={self._name!r}, trace_id={self._trace_id!r}, "
            f"span_id={self._span_id!r}, ended={self._end_time is not None})"
        )
