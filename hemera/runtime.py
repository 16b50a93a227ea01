"""
Names called by instrumented functions.

Generated code binds this module as ``_hemera`` and only ever touches
``clock``, ``emit_info``, ``emit_debug`` and ``trace_span``. None of them
suspends.
"""

import sys
import time

from hemera.observability import trace_span

__all__ = ["clock", "emit_debug", "emit_info", "format_elapsed", "trace_span"]

# Monotonic, unaffected by wall-clock adjustments
clock = time.perf_counter_ns

# (threshold in ns, divisor, suffix), largest first
_UNITS = (
    (1_000_000_000, 1_000_000_000, "s"),
    (1_000_000, 1_000_000, "ms"),
    (1_000, 1_000, "µs"),
)


def format_elapsed(elapsed_ns: int) -> str:
    """Render nanoseconds with three decimals in the largest fitting unit."""
    for threshold, divisor, suffix in _UNITS:
        if elapsed_ns >= threshold:
            return f"{elapsed_ns / divisor:.3f}{suffix}"
    return f"{max(elapsed_ns, 0):.3f}ns"


def format_line(display_name: str, elapsed_ns: int) -> str:
    return f"⏱ Function `{display_name}` executed in {format_elapsed(elapsed_ns)}"


def _write(stream, display_name: str, elapsed_ns: int) -> None:
    stream.write(format_line(display_name, elapsed_ns) + "\n")
    stream.flush()


def emit_info(display_name: str, elapsed_ns: int) -> None:
    """Write the timing line to standard output."""
    _write(sys.stdout, display_name, elapsed_ns)


def emit_debug(display_name: str, elapsed_ns: int) -> None:
    """Write the timing line to standard error."""
    _write(sys.stderr, display_name, elapsed_ns)
