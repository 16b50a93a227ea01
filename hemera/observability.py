"""
Tracing collaborator for instrumented functions.

Generated bodies consume exactly two primitives from here: open a named
scoped span, and release it. Both are folded into the ``trace_span``
context manager, so a span is released on every exit path.

Design goals
------------
- zero external dependencies
- safe in async + threaded environments (no awaits, no shared state)
- never alters the timing line written by the instrumented function
"""

from __future__ import annotations

import logging
import time
from contextlib import contextmanager

logger = logging.getLogger("hemera.trace")


@contextmanager
def trace_span(name: str, **metadata):
    """
    Scope a span around one call of an instrumented function.

    Example log:
    [TRACE] span.end name=fetch_data duration_ms=43.21 status=ok

    Guarantees
    ----------
    - Always logs completion (even if exception occurs)
    - Never suppresses exceptions
    - Produces structured key=value logs
    """
    meta = " ".join(f"{k}={v}" for k, v in metadata.items())
    logger.debug("[TRACE] span.start name=%s %s", name, meta)

    start = time.perf_counter()
    status = "error"
    try:
        yield
        status = "ok"
    finally:
        duration_ms = (time.perf_counter() - start) * 1000
        logger.info(
            "[TRACE] span.end name=%s duration_ms=%.2f status=%s %s",
            name,
            duration_ms,
            status,
            meta,
        )
