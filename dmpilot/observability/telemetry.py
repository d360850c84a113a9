"""
In-process telemetry for the agent and assistant.

Nothing is shipped to an external backend. Events go to the log and counters
and timings live in memory so tests and the /debug endpoint can read them.
"""

from __future__ import annotations

import contextlib
import logging
import time
from collections.abc import Iterator
from typing import Any

logger = logging.getLogger("dmpilot.telemetry")

_COUNTERS: dict[str, int] = {}
_LATENCIES: dict[str, list[float]] = {}


def log_event(event_name: str, **fields: Any) -> None:
    """
    Structured log event. Callers pass ids, never message text.

    Side Effects:
        - Writes to logger (info level)
    """
    logger.info("event=%s %s", event_name, fields)


def counter(name: str, increment: int = 1) -> int:
    """Increment an in-memory counter and return its new value."""
    value = _COUNTERS.get(name, 0) + increment
    _COUNTERS[name] = value
    logger.debug("counter=%s value=%s", name, value)
    return value


def get_counter(name: str) -> int:
    return _COUNTERS.get(name, 0)


def snapshot_counters() -> dict[str, int]:
    return dict(_COUNTERS)


@contextlib.contextmanager
def time_block(metric_name: str) -> Iterator[None]:
    """
    Time the wrapped block and record the sample under ``<metric_name>_ms``.

    Side Effects:
        - Appends to _LATENCIES dict (in-memory state)
        - Writes to logger (debug level) with timing
    """
    start = time.perf_counter()
    try:
        yield
    finally:
        elapsed_ms = (time.perf_counter() - start) * 1000
        name = metric_name if metric_name.endswith("_ms") else f"{metric_name}_ms"
        logger.debug("timing=%s ms=%.2f", name, elapsed_ms)
        _LATENCIES.setdefault(name, []).append(elapsed_ms)


def get_latency_stats(metric_name: str) -> dict[str, float]:
    """Get count, min, max, avg and p95 for a timed metric."""
    name = metric_name if metric_name.endswith("_ms") else f"{metric_name}_ms"
    samples = sorted(_LATENCIES.get(name, []))
    if not samples:
        return {"count": 0, "min": 0.0, "max": 0.0, "avg": 0.0, "p95": 0.0}

    count = len(samples)
    return {
        "count": count,
        "min": samples[0],
        "max": samples[-1],
        "avg": sum(samples) / count,
        "p95": samples[min(int(count * 0.95), count - 1)],
    }


def reset() -> None:
    """
    Clear counters and latencies (useful for tests).

    Side Effects:
        - Clears _COUNTERS and _LATENCIES
    """
    _COUNTERS.clear()
    _LATENCIES.clear()
