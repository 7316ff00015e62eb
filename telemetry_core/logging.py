"""Structured logging for telemetry-core.

Log calls take a message plus keyword fields::

    logger = get_logger(__name__)
    logger.info("Span ended", span_id=span.span_id, duration_ms=1.2)

Fields bound with ``LogContext`` are attached to every record logged
inside the block, which is how the tracer stamps ``trace_id`` and
``span_id`` onto application log lines.

Nothing is written until ``configure_logging`` installs output, or a
handler is added to a logger directly. A record is delivered to the
handlers of its own logger, of every registered dotted ancestor, and of
the root.
"""

from __future__ import annotations

import contextlib
import json
import sys
from abc import abstractmethod
from contextvars import ContextVar, Token
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import IntEnum
from types import MappingProxyType
from typing import IO, TYPE_CHECKING, Any, Protocol, Self, runtime_checkable


if TYPE_CHECKING:
    from collections.abc import Mapping


__all__ = [
    "BufferingHandler",
    "JSONFormatter",
    "LogContext",
    "LogHandler",
    "LogLevel",
    "LogRecord",
    "StreamHandler",
    "TelemetryLogger",
    "TextFormatter",
    "configure_logging",
    "current_log_context",
    "get_logger",
]


class LogLevel(IntEnum):
    """Severity, numerically compatible with the stdlib ``logging`` levels."""

    DEBUG = 10
    INFO = 20
    WARNING = 30
    ERROR = 40
    CRITICAL = 50

    @classmethod
    def parse(cls, name: str) -> LogLevel:
        """Level for a case-insensitive name such as ``"debug"``.

        Raises:
            ValueError: If the name is not a level.
        """
        try:
            return cls[name.upper()]
        except KeyError:
            raise ValueError(f"Unknown log level: {name!r}") from None


# =============================================================================
# Context
# =============================================================================


_EMPTY: Mapping[str, Any] = MappingProxyType({})
_context: ContextVar[Mapping[str, Any]] = ContextVar("telemetry_log_context", default=_EMPTY)


def current_log_context() -> Mapping[str, Any]:
    """Fields bound by the enclosing LogContext blocks (read-only)."""
    return _context.get()


class LogContext:
    """Bind fields to every record logged inside the ``with`` block.

    Blocks nest; inner values win and are dropped again on exit. ``None``
    values are ignored. Works across ``await`` since the fields live in a
    ContextVar.

    Example:
        >>> with LogContext(request_id="r-17"):
        ...     logger.info("Handling")  # record.context == {"request_id": "r-17"}
    """

    def __init__(self, **fields: Any) -> None:
        self._fields = {key: value for key, value in fields.items() if value is not None}
        self._tokens: list[Token[Mapping[str, Any]]] = []

    def __enter__(self) -> Self:
        merged = MappingProxyType({**_context.get(), **self._fields})
        self._tokens.append(_context.set(merged))
        return self

    def __exit__(self, *exc_info: object) -> None:
        _context.reset(self._tokens.pop())


# =============================================================================
# Records and output
# =============================================================================


@dataclass(slots=True)
class LogRecord:
    """One log event.

    ``context`` holds the LogContext fields active at the call and
    ``extra`` the keyword fields of the call itself.
    """

    level: LogLevel
    message: str
    logger_name: str
    context: Mapping[str, Any] = field(default_factory=dict)
    extra: dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))

    @property
    def fields(self) -> dict[str, Any]:
        """Context fields overlaid with call fields."""
        return {**self.context, **self.extra}

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp": self.timestamp.isoformat(),
            "level": self.level.name,
            "logger": self.logger_name,
            "message": self.message,
            **self.fields,
        }


class TextFormatter:
    """``<timestamp> [LEVEL] logger: message | key=value ...``"""

    def __init__(self, timestamp_format: str | None = None) -> None:
        self.timestamp_format = timestamp_format

    def format(self, record: LogRecord) -> str:
        if self.timestamp_format:
            stamp = record.timestamp.strftime(self.timestamp_format)
        else:
            stamp = record.timestamp.isoformat()
        line = f"{stamp} [{record.level.name}] {record.logger_name}: {record.message}"
        pairs = " ".join(f"{key}={value}" for key, value in record.fields.items())
        return f"{line} | {pairs}" if pairs else line


class JSONFormatter:
    """One JSON object per record; values JSON cannot encode are stringified."""

    def format(self, record: LogRecord) -> str:
        return json.dumps(record.to_dict(), default=str)


@runtime_checkable
class LogHandler(Protocol):
    """Receives records delivered to a logger."""

    @abstractmethod
    def handle(self, record: LogRecord) -> None: ...


class StreamHandler:
    """Writes formatted records, one per line, to a text stream."""

    def __init__(
        self,
        stream: IO[str] | None = None,
        formatter: TextFormatter | JSONFormatter | None = None,
    ) -> None:
        self._stream = stream
        self._formatter = formatter or TextFormatter()

    def handle(self, record: LogRecord) -> None:
        stream = self._stream or sys.stderr
        stream.write(self._formatter.format(record) + "\n")


class BufferingHandler:
    """Keeps records in memory, e.g. to assert on them in tests."""

    def __init__(self) -> None:
        self._records: list[LogRecord] = []

    @property
    def records(self) -> list[LogRecord]:
        return list(self._records)

    def handle(self, record: LogRecord) -> None:
        self._records.append(record)

    def clear(self) -> None:
        self._records.clear()


# =============================================================================
# Loggers
# =============================================================================


class TelemetryLogger:
    """Named logger with keyword-field log methods.

    Obtain instances through ``get_logger``. A logger without its own level
    follows the level given to ``configure_logging`` (INFO by default).
    Handler failures are swallowed so logging never raises into callers.
    """

    def __init__(self, name: str, level: LogLevel | None = None) -> None:
        self.name = name
        self.level = level
        self._handlers: list[LogHandler] = []

    @property
    def effective_level(self) -> LogLevel:
        return self.level if self.level is not None else _root.level

    def add_handler(self, handler: LogHandler) -> None:
        if handler not in self._handlers:
            self._handlers.append(handler)

    def remove_handler(self, handler: LogHandler) -> None:
        if handler in self._handlers:
            self._handlers.remove(handler)

    def log(self, level: LogLevel, message: str, **fields: Any) -> None:
        if level < self.effective_level:
            return
        record = LogRecord(
            level=level,
            message=message,
            logger_name=self.name,
            context=current_log_context(),
            extra=fields,
        )
        for handler in _handlers_for(self.name):
            with contextlib.suppress(Exception):
                handler.handle(record)

    def debug(self, message: str, **fields: Any) -> None:
        self.log(LogLevel.DEBUG, message, **fields)

    def info(self, message: str, **fields: Any) -> None:
        self.log(LogLevel.INFO, message, **fields)

    def warning(self, message: str, **fields: Any) -> None:
        self.log(LogLevel.WARNING, message, **fields)

    def error(self, message: str, **fields: Any) -> None:
        self.log(LogLevel.ERROR, message, **fields)


@dataclass
class _Root:
    level: LogLevel = LogLevel.INFO
    handlers: list[LogHandler] = field(default_factory=list)


_root = _Root()
_loggers: dict[str, TelemetryLogger] = {}


def _handlers_for(name: str) -> list[LogHandler]:
    handlers: list[LogHandler] = []
    parts = name.split(".")
    for depth in range(len(parts), 0, -1):
        logger = _loggers.get(".".join(parts[:depth]))
        if logger is not None:
            handlers.extend(logger._handlers)
    handlers.extend(_root.handlers)
    return handlers


def get_logger(name: str, level: LogLevel | None = None) -> TelemetryLogger:
    """Logger registered under ``name``, created on first use.

    Args:
        name: Dotted name, usually ``__name__``.
        level: Own level for this logger; replaces any earlier one.

    Example:
        >>> logger = get_logger(__name__)
        >>> logger.info("Collector created", metrics=0)
    """
    logger = _loggers.get(name)
    if logger is None:
        logger = _loggers.setdefault(name, TelemetryLogger(name))
    if level is not None:
        logger.level = level
    return logger


def configure_logging(
    level: LogLevel | str = LogLevel.INFO,
    format: str = "text",
    handlers: list[LogHandler] | None = None,
) -> None:
    """Set the default level and replace the root handlers.

    Args:
        level: Level for loggers without their own, as a LogLevel or name.
        format: ``"text"`` or ``"json"`` for the default stderr handler.
        handlers: Root handlers to install instead of the stderr handler.

    Example:
        >>> configure_logging(level="DEBUG", format="json")
    """
    if isinstance(level, str):
        level = LogLevel.parse(level)
    if handlers is None:
        formatter = JSONFormatter() if format == "json" else TextFormatter()
        handlers = [StreamHandler(formatter=formatter)]
    _root.level = level
    _root.handlers = list(handlers)
