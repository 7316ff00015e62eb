"""Shared metric types and Prometheus text-format helpers."""

from __future__ import annotations

import math
import re
from enum import Enum
from typing import TYPE_CHECKING

from telemetry_core.exceptions import ValidationError


if TYPE_CHECKING:
    from collections.abc import Mapping


DEFAULT_HISTOGRAM_BUCKETS: tuple[float, ...] = (
    0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0,
)

_METRIC_NAME_RE = re.compile(r"^[a-zA-Z_:][a-zA-Z0-9_:]*$")
_LABEL_NAME_RE = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_]*$")


class MetricType(Enum):
    """The closed set of metric variants.

    The value is the Prometheus ``# TYPE`` keyword.

    Attributes:
        COUNTER: Monotonically increasing counter.
        GAUGE: Value that can go up or down.
        HISTOGRAM: Distribution of observations in cumulative buckets.
    """

    COUNTER = "counter"
    GAUGE = "gauge"
    HISTOGRAM = "histogram"


def validate_metric_name(name: str) -> str:
    """Check a metric name against the Prometheus name grammar.

    Raises:
        ValidationError: If the name is empty or contains invalid characters.
    """
    if not name or not _METRIC_NAME_RE.match(name):
        raise ValidationError(
            f"Invalid metric name: {name!r}",
            field="name",
            value=name,
        )
    return name


def validate_labels(labels: Mapping[str, str] | None) -> dict[str, str]:
    """Copy labels into an insertion-ordered dict of strings.

    ``le`` is reserved for histogram buckets and ``__`` prefixes are
    reserved by Prometheus.

    Raises:
        ValidationError: If a label name is invalid or reserved.
    """
    result: dict[str, str] = {}
    for key, value in (labels or {}).items():
        if not _LABEL_NAME_RE.match(key) or key.startswith("__") or key == "le":
            raise ValidationError(
                f"Invalid label name: {key!r}",
                field="labels",
                value=key,
            )
        result[key] = str(value)
    return result


def escape_label_value(value: str) -> str:
    """Escape a label value for the Prometheus text format."""
    value = value.replace("\\", "\\\\")
    value = value.replace("\n", "\\n")
    value = value.replace('"', '\\"')
    return value


def escape_help(text: str) -> str:
    """Escape HELP text (backslash and newline only)."""
    return text.replace("\\", "\\\\").replace("\n", "\\n")


def format_value(value: float) -> str:
    """Format a sample value.

    Integral values drop the fractional part so that ``3.0`` renders as
    ``3``; other finite values use the shortest round-tripping repr.
    """
    if math.isnan(value):
        return "NaN"
    if value == math.inf:
        return "+Inf"
    if value == -math.inf:
        return "-Inf"
    if value == int(value):
        return str(int(value))
    return repr(float(value))


def format_labels(labels: Mapping[str, str], leading: Mapping[str, str] | None = None) -> str:
    """Render a ``{k="v",...}`` suffix, or ``""`` when there are no labels.

    Args:
        labels: Labels in the order they should be rendered.
        leading: Labels rendered before ``labels`` (e.g. the bucket ``le``).

    Returns:
        The label suffix.
    """
    items = [*(leading or {}).items(), *labels.items()]
    if not items:
        return ""
    parts = [f'{key}="{escape_label_value(value)}"' for key, value in items]
    return "{" + ",".join(parts) + "}"


def format_header(name: str, help_text: str, metric_type: MetricType) -> list[str]:
    """Render the ``# HELP`` and ``# TYPE`` lines for a metric family."""
    return [
        f"# HELP {name} {escape_help(help_text)}",
        f"# TYPE {name} {metric_type.value}",
    ]
