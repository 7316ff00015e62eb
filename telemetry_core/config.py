"""Configuration for telemetry-core.

Settings come from three places, later ones winning:

    1. ``TelemetryConfig`` defaults
    2. a JSON or YAML file (``telemetry.json``, ``telemetry.yaml``, ...)
    3. ``TELEMETRY_*`` environment variables

``with_*`` builders apply explicit overrides on top of a loaded config.

Example:
    >>> config = TelemetryConfig.load()
    >>> tracer_config = TracerConfig.from_config(config.with_service_name("api"))
"""

from __future__ import annotations

import json
import math
import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import TYPE_CHECKING, Any, Self, TypeVar

from telemetry_core.exceptions import ConfigurationError, InvalidConfigValueError
from telemetry_core.metrics.base import DEFAULT_HISTOGRAM_BUCKETS


if TYPE_CHECKING:
    from collections.abc import Callable


__all__ = [
    "DEFAULT_ENV_PREFIX",
    "DEFAULT_TELEMETRY_CONFIG",
    "SAMPLER_NAMES",
    "EnvReader",
    "TelemetryConfig",
    "find_config_file",
    "load_config_file",
]

_T = TypeVar("_T")

DEFAULT_ENV_PREFIX = "TELEMETRY"
CONFIG_FILE_NAMES = ("telemetry.json", "telemetry.yaml", "telemetry.yml", ".telemetry.json")

SAMPLER_NAMES = frozenset({
    "always_on",
    "always_off",
    "probability",
    "trace_id_ratio",
    "parent_based",
})
LOG_FORMATS = frozenset({"text", "json"})
LOG_LEVELS = frozenset({"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"})

_TRUE_WORDS = frozenset({"1", "true", "yes", "on"})
_FALSE_WORDS = frozenset({"0", "false", "no", "off"})


# =============================================================================
# Environment
# =============================================================================


def _parse_bool(raw: str) -> bool:
    word = raw.strip().lower()
    if word in _TRUE_WORDS:
        return True
    if word in _FALSE_WORDS:
        return False
    raise ValueError(raw)


def _parse_float_list(raw: str) -> list[float]:
    if not raw.strip():
        return []
    return [float(item) for item in raw.split(",")]


class EnvReader:
    """Reads ``<PREFIX>_<NAME>`` environment variables with type conversion.

    Unset variables return the default. A set variable that does not
    convert raises InvalidConfigValueError naming the full variable.

    Example:
        >>> EnvReader("TELEMETRY").get_float("SAMPLE_RATE", 1.0)
        1.0
    """

    def __init__(self, prefix: str = DEFAULT_ENV_PREFIX) -> None:
        self.prefix = prefix

    def key(self, name: str) -> str:
        return f"{self.prefix}_{name}" if self.prefix else name

    def get(self, name: str, default: str | None = None) -> str | None:
        return os.environ.get(self.key(name), default)

    def _parse(
        self,
        name: str,
        convert: Callable[[str], _T],
        expected: str,
        default: _T | None,
    ) -> _T | None:
        raw = self.get(name)
        if raw is None:
            return default
        try:
            return convert(raw)
        except ValueError as e:
            raise InvalidConfigValueError(
                f"Cannot read {self.key(name)}={raw!r} as {expected}",
                config_key=self.key(name),
                value=raw,
                expected=expected,
                cause=e,
            ) from e

    def get_int(self, name: str, default: int | None = None) -> int | None:
        return self._parse(name, int, "integer", default)

    def get_float(self, name: str, default: float | None = None) -> float | None:
        return self._parse(name, float, "float", default)

    def get_bool(self, name: str, default: bool | None = None) -> bool | None:
        """Accepts 1/0, true/false, yes/no and on/off in any case."""
        return self._parse(name, _parse_bool, "boolean", default)

    def get_float_list(
        self,
        name: str,
        default: list[float] | None = None,
    ) -> list[float] | None:
        """Comma-separated floats, e.g. ``0.1,0.5,1``. Blank means empty."""
        return self._parse(name, _parse_float_list, "comma-separated floats", default)


# =============================================================================
# Files
# =============================================================================


def _read_yaml(path: Path) -> Any:
    import yaml

    try:
        with path.open() as f:
            return yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(
            f"Invalid YAML in {path}",
            details={"path": str(path)},
            cause=e,
        ) from e


def _read_json(path: Path) -> Any:
    try:
        with path.open() as f:
            return json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigurationError(
            f"Invalid JSON in {path}",
            details={"path": str(path)},
            cause=e,
        ) from e


_READERS: dict[str, Callable[[Path], Any]] = {
    ".json": _read_json,
    ".yaml": _read_yaml,
    ".yml": _read_yaml,
}


def load_config_file(path: Path) -> dict[str, Any]:
    """Read a JSON or YAML config file into a dict.

    A document whose top level is not a mapping reads as ``{}``.

    Raises:
        ConfigurationError: If the file is missing, has an unknown suffix,
            or does not parse.
    """
    suffix = path.suffix.lower()
    reader = _READERS.get(suffix)
    if reader is None:
        raise ConfigurationError(
            f"Unsupported config file type {suffix!r}",
            details={"path": str(path), "supported": sorted(_READERS)},
        )
    if not path.is_file():
        raise ConfigurationError(
            f"Config file not found: {path}",
            details={"path": str(path)},
        )
    data = reader(path)
    return data if isinstance(data, dict) else {}


def find_config_file(start_dir: Path | None = None, max_depth: int = 5) -> Path | None:
    """Look for a CONFIG_FILE_NAMES entry in ``start_dir`` and its parents.

    At most ``max_depth`` directories are searched, starting with
    ``start_dir`` (the working directory by default).
    """
    directory = start_dir or Path.cwd()
    for candidate_dir in [directory, *directory.parents][:max_depth]:
        for file_name in CONFIG_FILE_NAMES:
            candidate = candidate_dir / file_name
            if candidate.is_file():
                return candidate
    return None


# =============================================================================
# TelemetryConfig
# =============================================================================


def _as_buckets(value: Any) -> tuple[float, ...]:
    return tuple(float(b) for b in value)


def _as_bool(value: Any) -> bool:
    return _parse_bool(value) if isinstance(value, str) else bool(value)


# field name -> (environment name, EnvReader method, coercion for file values)
_SOURCES: dict[str, tuple[str, str, Callable[[Any], Any]]] = {
    "service_name": ("SERVICE_NAME", "get", str),
    "sampler": ("SAMPLER", "get", str),
    "sample_rate": ("SAMPLE_RATE", "get_float", float),
    "max_spans_per_trace": ("MAX_SPANS_PER_TRACE", "get_int", int),
    "health_check_timeout_seconds": ("HEALTH_CHECK_TIMEOUT", "get_float", float),
    "histogram_buckets": ("HISTOGRAM_BUCKETS", "get_float_list", _as_buckets),
    "log_level": ("LOG_LEVEL", "get", str),
    "log_format": ("LOG_FORMAT", "get", str),
    "log_spans": ("LOG_SPANS", "get_bool", _as_bool),
    "record_health_metrics": ("RECORD_HEALTH_METRICS", "get_bool", _as_bool),
}


@dataclass(frozen=True, slots=True)
class TelemetryConfig:
    """Settings shared by the tracer, metrics collector and health registry.

    Attributes:
        service_name: ``service.name`` attribute stamped on every span.
        sampler: One of SAMPLER_NAMES.
        sample_rate: Probability or ratio for the rate-based samplers.
        max_spans_per_trace: Active spans tracked per trace before new ones
            are left untracked.
        health_check_timeout_seconds: Time limit for one health check run.
        histogram_buckets: Boundaries for histograms created without any.
            An empty tuple leaves only the implicit +Inf bucket.
        log_level: Level name applied by ``configure_logging``.
        log_format: ``"text"`` or ``"json"``.
        log_spans: Log span start and end.
        record_health_metrics: Record health check outcomes as metrics.

    Environment variables use the ``TELEMETRY_`` prefix and upper-case
    names; the timeout is ``TELEMETRY_HEALTH_CHECK_TIMEOUT`` and buckets are
    comma-separated.
    """

    service_name: str = "telemetry-core"
    sampler: str = "probability"
    sample_rate: float = 1.0
    max_spans_per_trace: int = 1000
    health_check_timeout_seconds: float = 5.0
    histogram_buckets: tuple[float, ...] = DEFAULT_HISTOGRAM_BUCKETS
    log_level: str = "INFO"
    log_format: str = "text"
    log_spans: bool = False
    record_health_metrics: bool = True

    def __post_init__(self) -> None:
        checks: list[tuple[str, bool, str | None]] = [
            ("service_name", bool(self.service_name), "non-empty string"),
            ("sampler", self.sampler in SAMPLER_NAMES, ", ".join(sorted(SAMPLER_NAMES))),
            ("sample_rate", 0.0 <= self.sample_rate <= 1.0, "0.0 <= sample_rate <= 1.0"),
            ("max_spans_per_trace", self.max_spans_per_trace > 0, "positive integer"),
            (
                "health_check_timeout_seconds",
                self.health_check_timeout_seconds > 0,
                "positive number of seconds",
            ),
            (
                "histogram_buckets",
                not any(math.isnan(b) for b in self.histogram_buckets),
                "list of numbers, may be empty",
            ),
            ("log_level", self.log_level.upper() in LOG_LEVELS, ", ".join(sorted(LOG_LEVELS))),
            ("log_format", self.log_format in LOG_FORMATS, "text or json"),
        ]
        for key, ok, expected in checks:
            if not ok:
                raise InvalidConfigValueError(
                    f"Invalid {key}: {getattr(self, key)!r}",
                    config_key=key,
                    value=getattr(self, key),
                    expected=expected,
                )

    def with_service_name(self, service_name: str) -> TelemetryConfig:
        return replace(self, service_name=service_name)

    def with_sampler(self, sampler: str, sample_rate: float | None = None) -> TelemetryConfig:
        """Switch sampler, keeping the current rate unless one is given."""
        if sample_rate is None:
            return replace(self, sampler=sampler)
        return replace(self, sampler=sampler, sample_rate=sample_rate)

    def with_health_check_timeout(self, timeout_seconds: float) -> TelemetryConfig:
        return replace(self, health_check_timeout_seconds=timeout_seconds)

    def with_histogram_buckets(self, *buckets: float) -> TelemetryConfig:
        return replace(self, histogram_buckets=tuple(buckets))

    def to_dict(self) -> dict[str, Any]:
        data = {f.name: getattr(self, f.name) for f in fields(self)}
        data["histogram_buckets"] = list(self.histogram_buckets)
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Self:
        """Build from a mapping; unknown keys are ignored, missing keys default."""
        values = {
            key: coerce(data[key])
            for key, (_, _, coerce) in _SOURCES.items()
            if data.get(key) is not None
        }
        return cls(**values)

    @staticmethod
    def _read_env(prefix: str) -> dict[str, Any]:
        env = EnvReader(prefix)
        values = {
            key: getattr(env, method)(env_name)
            for key, (env_name, method, _) in _SOURCES.items()
        }
        return {key: value for key, value in values.items() if value is not None}

    @classmethod
    def from_env(cls, prefix: str = DEFAULT_ENV_PREFIX) -> Self:
        return cls.from_dict(cls._read_env(prefix))

    @classmethod
    def from_file(cls, path: Path | str) -> Self:
        return cls.from_dict(load_config_file(Path(path)))

    @classmethod
    def load(
        cls,
        config_file: Path | str | None = None,
        env_prefix: str = DEFAULT_ENV_PREFIX,
        search_config: bool = True,
    ) -> Self:
        """Merge defaults, a config file and the environment.

        Args:
            config_file: File to read. When omitted and ``search_config`` is
                set, the working directory and its parents are searched.
            env_prefix: Environment variable prefix.
            search_config: Search for a file when none is given.
        """
        path = Path(config_file) if config_file else None
        if path is None and search_config:
            path = find_config_file()

        data = load_config_file(path) if path is not None else {}
        data.update(cls._read_env(env_prefix))
        return cls.from_dict(data)


DEFAULT_TELEMETRY_CONFIG = TelemetryConfig()
