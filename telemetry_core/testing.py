"""Test doubles for code that uses telemetry-core.

This module provides deterministic stand-ins for the extension points:
- Health checks with a fixed result, a failure, or a delay
- Samplers with a fixed decision or a call log
- Hooks that record every notification
- Factories for a tracer and registry wired to those doubles

Example:
    >>> from telemetry_core.testing import StaticHealthCheck, create_test_tracer
    >>> registry = HealthCheckRegistry()
    >>> registry.register(StaticHealthCheck("db", HealthStatus.DEGRADED))
    >>> tracer = create_test_tracer()
"""

from __future__ import annotations

import asyncio
import threading
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from telemetry_core.health.registry import HealthCheckRegistry, HealthCheckRegistryConfig
from telemetry_core.health.types import HealthCheckResult, HealthStatus
from telemetry_core.tracing.tracer import Tracer, TracerConfig
from telemetry_core.tracing.types import SamplingContext, SamplingDecision, SamplingResult


if TYPE_CHECKING:
    from collections.abc import Sequence

    from telemetry_core.health.hooks import HealthCheckHook
    from telemetry_core.health.types import HealthCheck
    from telemetry_core.tracing.hooks import TracingHook
    from telemetry_core.tracing.span import Span


# =============================================================================
# Health Checks
# =============================================================================


class StaticHealthCheck:
    """Health check that always returns the same status.

    Example:
        >>> check = StaticHealthCheck("cache", HealthStatus.DOWN, message="unreachable")
        >>> check.call_count
        0
    """

    def __init__(
        self,
        name: str,
        status: HealthStatus = HealthStatus.UP,
        *,
        message: str = "",
        details: dict[str, Any] | None = None,
    ) -> None:
        self._name = name
        self.status = status
        self.message = message
        self.details = dict(details or {})
        self.call_count = 0

    @property
    def name(self) -> str:
        return self._name

    async def check(self) -> HealthCheckResult:
        self.call_count += 1
        return HealthCheckResult(self.status, self.message, details=dict(self.details))


class SyncHealthCheck:
    """Synchronous health check, run by the registry in a worker thread."""

    def __init__(
        self,
        name: str,
        status: HealthStatus = HealthStatus.UP,
        *,
        delay_seconds: float = 0.0,
    ) -> None:
        self._name = name
        self.status = status
        self.delay_seconds = delay_seconds
        self.thread_names: list[str] = []

    @property
    def name(self) -> str:
        return self._name

    def check(self) -> HealthCheckResult:
        self.thread_names.append(threading.current_thread().name)
        if self.delay_seconds:
            time.sleep(self.delay_seconds)
        return HealthCheckResult(self.status)


class FailingHealthCheck:
    """Health check whose ``check`` raises."""

    def __init__(self, name: str, error: Exception | None = None) -> None:
        self._name = name
        self.error = error or RuntimeError(f"{name} failed")

    @property
    def name(self) -> str:
        return self._name

    async def check(self) -> HealthCheckResult:
        raise self.error


class SlowHealthCheck:
    """Health check that sleeps before answering.

    Used to exercise registry timeouts and concurrency.
    """

    def __init__(
        self,
        name: str,
        delay_seconds: float,
        status: HealthStatus = HealthStatus.UP,
    ) -> None:
        self._name = name
        self.delay_seconds = delay_seconds
        self.status = status
        self.started = 0
        self.completed = 0

    @property
    def name(self) -> str:
        return self._name

    async def check(self) -> HealthCheckResult:
        self.started += 1
        await asyncio.sleep(self.delay_seconds)
        self.completed += 1
        return HealthCheckResult(self.status)


# =============================================================================
# Samplers
# =============================================================================


class FixedDecisionSampler:
    """Sampler that returns a preset decision and attributes."""

    def __init__(
        self,
        decision: SamplingDecision = SamplingDecision.RECORD_AND_SAMPLE,
        attributes: dict[str, Any] | None = None,
    ) -> None:
        self.decision = decision
        self.attributes = dict(attributes or {})

    def should_sample(self, context: SamplingContext) -> SamplingResult:
        return SamplingResult(self.decision, dict(self.attributes))

    def get_description(self) -> str:
        return f"FixedDecisionSampler{{decision={self.decision.value}}}"


class RecordingSampler:
    """Sampler that delegates to another one and keeps every context it saw."""

    def __init__(self, delegate: FixedDecisionSampler | None = None) -> None:
        self._delegate = delegate or FixedDecisionSampler()
        self.contexts: list[SamplingContext] = []

    def should_sample(self, context: SamplingContext) -> SamplingResult:
        self.contexts.append(context)
        return self._delegate.should_sample(context)

    def get_description(self) -> str:
        return f"RecordingSampler{{delegate={self._delegate.get_description()}}}"


# =============================================================================
# Hooks
# =============================================================================


class RecordingTracingHook:
    """Tracing hook that records started and ended spans."""

    def __init__(self) -> None:
        self.started: list[Span] = []
        self.ended: list[Span] = []

    def on_span_start(self, span: Span) -> None:
        self.started.append(span)

    def on_span_end(self, span: Span) -> None:
        self.ended.append(span)


@dataclass
class HookCall:
    """One recorded health check hook notification."""

    event: str
    name: str
    result: HealthCheckResult | None = None
    exception: Exception | None = None
    context: dict[str, Any] = field(default_factory=dict)


class RecordingHealthCheckHook:
    """Health check hook that records every notification in order."""

    def __init__(self) -> None:
        self.calls: list[HookCall] = []

    def events(self, name: str | None = None) -> list[str]:
        """Event names, optionally only those for one check."""
        return [call.event for call in self.calls if name is None or call.name == name]

    def on_check_start(self, name: str, context: dict[str, Any]) -> None:
        self.calls.append(HookCall("start", name, context=dict(context)))

    def on_check_complete(
        self,
        name: str,
        result: HealthCheckResult,
        duration_ms: float,
        context: dict[str, Any],
    ) -> None:
        self.calls.append(HookCall("complete", name, result=result, context=dict(context)))

    def on_check_error(
        self,
        name: str,
        exception: Exception,
        context: dict[str, Any],
    ) -> None:
        self.calls.append(HookCall("error", name, exception=exception, context=dict(context)))


# =============================================================================
# Factories
# =============================================================================


def create_test_tracer(
    service_name: str = "test-service",
    *,
    decision: SamplingDecision = SamplingDecision.RECORD_AND_SAMPLE,
    max_spans_per_trace: int = 1000,
    hooks: Sequence[TracingHook] | None = None,
) -> Tracer:
    """Create a tracer with a fixed sampling decision."""
    return Tracer(
        TracerConfig(
            service_name,
            sampler=FixedDecisionSampler(decision),
            max_spans_per_trace=max_spans_per_trace,
        ),
        hooks=hooks,
    )


def create_test_registry(
    *checks: HealthCheck,
    timeout_seconds: float = 1.0,
    hooks: Sequence[HealthCheckHook] | None = None,
) -> HealthCheckRegistry:
    """Create a registry with a short timeout and the given checks registered."""
    registry = HealthCheckRegistry(HealthCheckRegistryConfig(timeout_seconds), hooks=hooks)
    for check in checks:
        registry.register(check)
    return registry
