"""Sampling strategies for the tracer.

A sampler decides, per span, whether the span is recorded. Samplers are an
open extension point: anything implementing the ``Sampler`` protocol can be
handed to ``TracerConfig``.

Two rate-based samplers are provided with different guarantees:

- ``ProbabilitySampler`` draws a fresh random number per span, so spans of
  the same trace may get different decisions.
- ``TraceIdRatioBasedSampler`` derives the decision from the trace id only,
  so every span of a trace (in every service using the same ratio) gets
  the same decision.
"""

from __future__ import annotations

import random
from abc import abstractmethod
from typing import Protocol, runtime_checkable

from telemetry_core.exceptions import ValidationError
from telemetry_core.tracing.types import SamplingContext, SamplingResult


__all__ = [
    "AlwaysOffSampler",
    "AlwaysOnSampler",
    "ParentBasedSampler",
    "ProbabilitySampler",
    "Sampler",
    "TraceIdRatioBasedSampler",
    "create_sampler",
]

_MAX_UINT32 = 0xFFFFFFFF


def _validate_rate(value: float, field: str) -> float:
    if not 0.0 <= value <= 1.0:
        raise ValidationError(
            f"{field.capitalize()} must be between 0.0 and 1.0, got {value}",
            field=field,
            value=value,
        )
    return float(value)


@runtime_checkable
class Sampler(Protocol):
    """Protocol for samplers.

    ``should_sample`` must not depend on state stored in the sampler beyond
    its configuration; it may read external randomness.
    """

    @abstractmethod
    def should_sample(self, context: SamplingContext) -> SamplingResult:
        """Decide whether the candidate span is recorded.

        Args:
            context: The candidate span's identity, parent and attributes.

        Returns:
            Decision plus attributes to merge into the span.
        """
        ...

    @abstractmethod
    def get_description(self) -> str:
        """Get a short human-readable description."""
        ...


class AlwaysOnSampler:
    """Sampler that records and samples every span."""

    def should_sample(self, context: SamplingContext) -> SamplingResult:
        return SamplingResult.record_and_sample()

    def get_description(self) -> str:
        return "AlwaysOnSampler"


class AlwaysOffSampler:
    """Sampler that drops every span."""

    def should_sample(self, context: SamplingContext) -> SamplingResult:
        return SamplingResult.drop()

    def get_description(self) -> str:
        return "AlwaysOffSampler"


class ProbabilitySampler:
    """Head sampler with an independent random draw per span.

    Not trace-consistent: two spans in the same trace can receive different
    decisions. Use TraceIdRatioBasedSampler when that matters.
    """

    def __init__(self, probability: float = 1.0) -> None:
        """Initialize ProbabilitySampler.

        Args:
            probability: Probability of sampling (0.0 to 1.0).

        Raises:
            ValidationError: If probability is outside [0, 1].
        """
        self._probability = _validate_rate(probability, "probability")

    @property
    def probability(self) -> float:
        """Get the sampling probability."""
        return self._probability

    def should_sample(self, context: SamplingContext) -> SamplingResult:
        if random.random() < self._probability:
            return SamplingResult.record_and_sample()
        return SamplingResult.drop()

    def get_description(self) -> str:
        return f"ProbabilitySampler{{probability={self._probability}}}"


class TraceIdRatioBasedSampler:
    """Deterministic sampler keyed on the trace id.

    The first 8 hex characters of the trace id are read as an unsigned
    32-bit integer and compared with ``floor(ratio * 0xFFFFFFFF)``.
    """

    def __init__(self, ratio: float = 1.0) -> None:
        """Initialize TraceIdRatioBasedSampler.

        Args:
            ratio: Fraction of traces to sample (0.0 to 1.0).

        Raises:
            ValidationError: If ratio is outside [0, 1].
        """
        self._ratio = _validate_rate(ratio, "ratio")
        self._bound = int(self._ratio * _MAX_UINT32)

    @property
    def ratio(self) -> float:
        """Get the sampling ratio."""
        return self._ratio

    def should_sample(self, context: SamplingContext) -> SamplingResult:
        """Sample when the trace id prefix falls below the bound.

        Raises:
            ValidationError: If the trace id prefix is not hexadecimal.
        """
        # ratio 1.0 must also accept the maximal prefix ffffffff
        if self._ratio >= 1.0:
            return SamplingResult.record_and_sample()

        prefix = context.trace_id[:8]
        try:
            value = int(prefix, 16)
        except ValueError as e:
            raise ValidationError(
                f"Trace id is not hexadecimal: {context.trace_id!r}",
                field="trace_id",
                value=context.trace_id,
            ) from e

        if value < self._bound:
            return SamplingResult.record_and_sample()
        return SamplingResult.drop()

    def get_description(self) -> str:
        return f"TraceIdRatioBasedSampler{{ratio={self._ratio}}}"


class ParentBasedSampler:
    """Follow the parent's sampled flag; delegate root spans to ``root``.

    Example:
        >>> sampler = ParentBasedSampler(TraceIdRatioBasedSampler(0.1))
    """

    def __init__(self, root: Sampler | None = None) -> None:
        """Initialize ParentBasedSampler.

        Args:
            root: Sampler for spans without a parent (default: always on).
        """
        self._root: Sampler = root or AlwaysOnSampler()

    @property
    def root(self) -> Sampler:
        """Get the sampler used for root spans."""
        return self._root

    def should_sample(self, context: SamplingContext) -> SamplingResult:
        parent = context.parent_context
        if parent is None:
            return self._root.should_sample(context)
        if parent.is_sampled:
            return SamplingResult.record_and_sample()
        return SamplingResult.drop()

    def get_description(self) -> str:
        return f"ParentBasedSampler{{root={self._root.get_description()}}}"


def create_sampler(name: str, rate: float = 1.0) -> Sampler:
    """Create a sampler from its configuration name.

    Args:
        name: One of ``always_on``, ``always_off``, ``probability``,
            ``trace_id_ratio``, ``parent_based``.
        rate: Probability or ratio for rate-based samplers. ``parent_based``
            uses a TraceIdRatioBasedSampler with this ratio for root spans.

    Returns:
        Configured sampler.

    Raises:
        ValidationError: If the name is unknown or the rate is out of range.

    Example:
        >>> create_sampler("trace_id_ratio", 0.25).get_description()
        'TraceIdRatioBasedSampler{ratio=0.25}'
    """
    if name == "always_on":
        return AlwaysOnSampler()
    if name == "always_off":
        return AlwaysOffSampler()
    if name == "probability":
        return ProbabilitySampler(rate)
    if name == "trace_id_ratio":
        return TraceIdRatioBasedSampler(rate)
    if name == "parent_based":
        return ParentBasedSampler(TraceIdRatioBasedSampler(rate))
    raise ValidationError(f"Unknown sampler: {name}", field="sampler", value=name)
