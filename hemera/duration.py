"""
Threshold literals: "10ms", "1s", "500us", "250ns".

A threshold is an integer magnitude plus a unit. Comparisons and equality
between durations use a common nanosecond scale, so "1s" == "1000ms".
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from hemera.errors import InvalidThresholdGrammarError, InvalidThresholdValueError


class TimeUnit(Enum):
    """Units accepted in a threshold literal, valued in nanoseconds."""

    SECONDS = 1_000_000_000
    MILLISECONDS = 1_000_000
    MICROSECONDS = 1_000
    NANOSECONDS = 1


# "ms", "us" and "ns" also end in "s": they must be tried before it.
SUFFIXES: tuple[tuple[str, TimeUnit], ...] = (
    ("ms", TimeUnit.MILLISECONDS),
    ("us", TimeUnit.MICROSECONDS),
    ("µs", TimeUnit.MICROSECONDS),
    ("ns", TimeUnit.NANOSECONDS),
    ("s", TimeUnit.SECONDS),
)

# Magnitudes are unsigned 64-bit integers.
MAX_MAGNITUDE = 2**64 - 1


class Duration(BaseModel):
    """Non-negative span of time with the unit it was written in."""

    model_config = ConfigDict(frozen=True)

    magnitude: int = Field(..., ge=0, le=MAX_MAGNITUDE)
    unit: TimeUnit

    @property
    def nanoseconds(self) -> int:
        return self.magnitude * self.unit.value

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Duration):
            return NotImplemented
        return self.nanoseconds == other.nanoseconds

    def __hash__(self) -> int:
        return hash(self.nanoseconds)

    def __lt__(self, other: Duration) -> bool:
        return self.nanoseconds < other.nanoseconds

    def __le__(self, other: Duration) -> bool:
        return self.nanoseconds <= other.nanoseconds

    def __gt__(self, other: Duration) -> bool:
        return self.nanoseconds > other.nanoseconds

    def __ge__(self, other: Duration) -> bool:
        return self.nanoseconds >= other.nanoseconds


def parse_duration(raw: str) -> Duration:
    """
    Parse a threshold literal into a Duration.

    Args:
        raw: Literal such as "10ms"; surrounding whitespace is ignored

    Returns:
        Duration with the magnitude and unit of the literal

    Raises:
        InvalidThresholdGrammarError: No unit suffix matched
        InvalidThresholdValueError: The part before the suffix is not a
            non-negative integer below 2**64
    """
    text = raw.strip()

    for suffix, unit in SUFFIXES:
        if text.endswith(suffix):
            fragment = text[: -len(suffix)]
            break
    else:
        raise InvalidThresholdGrammarError(raw)

    # int() would also accept signs, underscores and non-ASCII digits
    if not (fragment.isascii() and fragment.isdigit()):
        raise InvalidThresholdValueError(fragment)

    magnitude = int(fragment)
    if magnitude > MAX_MAGNITUDE:
        raise InvalidThresholdValueError(fragment)

    return Duration(magnitude=magnitude, unit=unit)
