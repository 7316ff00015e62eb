"""Tracing lifecycle hooks."""

from __future__ import annotations

import contextlib
from abc import abstractmethod
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from telemetry_core.logging import get_logger
from telemetry_core.tracing.types import SpanStatusCode


if TYPE_CHECKING:
    from collections.abc import Sequence

    from telemetry_core.tracing.span import Span


__all__ = [
    "CompositeTracingHook",
    "LoggingTracingHook",
    "TracingHook",
]


@runtime_checkable
class TracingHook(Protocol):
    """Protocol for span lifecycle notifications.

    Hooks are invoked outside the tracer's lock.
    """

    @abstractmethod
    def on_span_start(self, span: Span) -> None:
        """Called after a span is created and the sampling decision is made.

        Args:
            span: The new span (possibly not recorded).
        """
        ...

    @abstractmethod
    def on_span_end(self, span: Span) -> None:
        """Called once when a span ends.

        Args:
            span: The ended span.
        """
        ...


class LoggingTracingHook:
    """Hook that logs span start and end through the structured logger."""

    def __init__(self, logger_name: str | None = None) -> None:
        """Initialize logging hook.

        Args:
            logger_name: Logger name (default: telemetry_core.tracing).
        """
        self._logger = get_logger(logger_name or "telemetry_core.tracing")

    def on_span_start(self, span: Span) -> None:
        self._logger.debug(
            "Span started",
            span_name=span.name,
            trace_id=span.trace_id,
            span_id=span.span_id,
            parent_span_id=span.parent_span_id,
            sampled=span.is_sampled,
        )

    def on_span_end(self, span: Span) -> None:
        status = span.status
        log_method = self._logger.info
        if status.code is SpanStatusCode.ERROR:
            log_method = self._logger.warning

        log_method(
            "Span ended",
            span_name=span.name,
            trace_id=span.trace_id,
            span_id=span.span_id,
            status=status.code.value,
            duration_ms=span.get_duration(),
        )


class CompositeTracingHook:
    """Combine multiple tracing hooks; a failing hook never affects others."""

    def __init__(self, hooks: Sequence[TracingHook]) -> None:
        self._hooks = list(hooks)

    def add_hook(self, hook: TracingHook) -> None:
        self._hooks.append(hook)

    def remove_hook(self, hook: TracingHook) -> None:
        if hook in self._hooks:
            self._hooks.remove(hook)

    def on_span_start(self, span: Span) -> None:
        for hook in self._hooks:
            with contextlib.suppress(Exception):
                hook.on_span_start(span)

    def on_span_end(self, span: Span) -> None:
        for hook in self._hooks:
            with contextlib.suppress(Exception):
                hook.on_span_end(span)
