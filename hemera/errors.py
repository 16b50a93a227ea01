"""
Errors raised while turning an attributed function into its timed version.

All of them surface at transformation time. Generated code never raises
anything of its own, so once a function is instrumented its instrumentation
cannot fail at run time.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Location:
    """Position of the offending attribute argument."""

    lineno: int | None = None
    col_offset: int | None = None
    filename: str | None = None

    @classmethod
    def of(cls, node, filename: str | None = None) -> Location:
        return cls(
            getattr(node, "lineno", None),
            getattr(node, "col_offset", None),
            filename,
        )

    def __str__(self) -> str:
        parts = [self.filename or "<unknown>"]
        if self.lineno is not None:
            parts.append(str(self.lineno))
            if self.col_offset is not None:
                parts.append(str(self.col_offset + 1))
        return ":".join(parts)


class HemeraError(Exception):
    """Base class for every error raised by hemera."""


class ConfigurationError(HemeraError, ValueError):
    """Raised when attribute arguments cannot be turned into a Config."""

    def __init__(self, message: str, location: Location | None = None):
        self.message = message
        self.location = location or Location()
        super().__init__(message)

    def with_location(self, location: Location) -> ConfigurationError:
        """Attach a location unless one is already known."""
        if self.location.lineno is None:
            self.location = location
        elif self.location.filename is None and location.filename is not None:
            self.location = Location(
                self.location.lineno, self.location.col_offset, location.filename
            )
        return self

    def __str__(self) -> str:
        if self.location.lineno is None and self.location.filename is None:
            return self.message
        return f"{self.location}: {self.message}"


class UnknownOptionError(ConfigurationError):
    """Raised for a key other than name, level or threshold."""

    def __init__(self, key: str, location: Location | None = None):
        self.key = key
        super().__init__(f"Unknown attribute: {key}", location)


class ExpectedNameValuePairError(ConfigurationError):
    """Raised when an argument is not of the form ``key="value"``."""

    def __init__(self, location: Location | None = None):
        super().__init__("Expected name-value pair", location)


class InvalidLevelValueError(ConfigurationError):
    """Raised when level is neither "debug" nor "info"."""

    def __init__(self, value: str, location: Location | None = None):
        self.value = value
        super().__init__(
            f'level must be either "debug" or "info", got {value!r}', location
        )


class InvalidThresholdGrammarError(ConfigurationError):
    """Raised when a threshold has no recognised unit suffix."""

    def __init__(self, raw: str, location: Location | None = None):
        self.raw = raw
        super().__init__(
            f"Threshold must end with 'ms', 'us', 'ns', or 's', got {raw!r}", location
        )


class InvalidThresholdValueError(ConfigurationError):
    """Raised when the magnitude of a threshold is not a non-negative integer."""

    def __init__(self, fragment: str, location: Location | None = None):
        self.fragment = fragment
        super().__init__(f"Invalid threshold value: {fragment!r}", location)


class UnsupportedFunctionError(HemeraError, TypeError):
    """Raised when a live function cannot be rebuilt from its source."""
