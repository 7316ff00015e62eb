"""Errors raised by telemetry-core.

    TelemetryError
    ├── ConfigurationError
    │   └── InvalidConfigValueError
    ├── ValidationError
    ├── DuplicateRegistrationError
    └── NotFoundError

Validation and registration errors are raised at the call site and are
meant to surface while an application is being wired. Failures inside a
health check are never raised to the caller; the registry reports them as
DOWN results instead.
"""

from __future__ import annotations

from typing import Any


def _present(**fields: Any) -> dict[str, Any]:
    return {key: value for key, value in fields.items() if value is not None}


class TelemetryError(Exception):
    """Root of every telemetry-core error.

    Attributes:
        message: Error text without details.
        details: Structured context for logs and error reports.
        cause: Lower-level exception this error was raised from, if any.
    """

    def __init__(
        self,
        message: str,
        *,
        details: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.details = dict(details or {})
        self.cause = cause

    def __str__(self) -> str:
        if not self.details:
            return self.message
        return f"{self.message} | Details: {self.details}"

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.message!r}, details={self.details!r})"


# =============================================================================
# Configuration
# =============================================================================


class ConfigurationError(TelemetryError):
    """A configuration source could not be read or parsed."""

    def __init__(
        self,
        message: str,
        *,
        config_key: str | None = None,
        details: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(
            message,
            details={**(details or {}), **_present(config_key=config_key)},
            cause=cause,
        )
        self.config_key = config_key


class InvalidConfigValueError(ConfigurationError):
    """A configuration key holds a value that cannot be used.

    Attributes:
        value: The rejected value, as read.
        expected: What an acceptable value looks like.
    """

    def __init__(
        self,
        message: str,
        *,
        config_key: str,
        value: Any = None,
        expected: str | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(
            message,
            config_key=config_key,
            details={"value": value, **_present(expected=expected)},
            cause=cause,
        )
        self.value = value
        self.expected = expected


# =============================================================================
# Preconditions
# =============================================================================


class ValidationError(TelemetryError):
    """An argument broke a precondition.

    Raised for negative counter increments, negative or NaN histogram
    observations, rates outside [0, 1] and malformed trace ids.
    """

    def __init__(
        self,
        message: str,
        *,
        field: str | None = None,
        value: Any = None,
    ) -> None:
        details = {"field": field, "value": value} if field else {}
        super().__init__(message, details=details)
        self.field = field
        self.value = value


class DuplicateRegistrationError(TelemetryError):
    """A metric or health check name is already taken.

    ``kind`` is ``"metric"`` or ``"health_check"``.
    """

    def __init__(
        self,
        message: str,
        *,
        name: str | None = None,
        kind: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details={**(details or {}), **_present(name=name, kind=kind)})
        self.name = name
        self.kind = kind


class NotFoundError(TelemetryError):
    """An explicit lookup of a health check or span found nothing."""

    def __init__(
        self,
        message: str,
        *,
        name: str | None = None,
        kind: str | None = None,
    ) -> None:
        super().__init__(message, details=_present(name=name, kind=kind))
        self.name = name
        self.kind = kind
