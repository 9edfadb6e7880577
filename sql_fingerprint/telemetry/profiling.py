"""Timing instrumentation for the fingerprinting hot path.

``@profile_operation(name)`` times a synchronous call with
``time.perf_counter_ns()``, stores the sample in the thread-safe
:class:`ProfileCollector` singleton and logs it at DEBUG level::

    from sql_fingerprint.telemetry.profiling import profile_operation

    @profile_operation("sql.fingerprint_many")
    def fingerprint_many(sql_list):
        ...

The collector keeps the last ``max_results`` samples per operation and
aggregates them on demand with :meth:`ProfileCollector.get_stats`.
"""

from __future__ import annotations

import functools
import logging
import threading
import time
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, TypeVar

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])


# ---------------------------------------------------------------------------
# Profile result
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ProfileResult:
    """One timed call.  ``failed`` is set when the call raised."""

    operation: str
    duration_ms: float
    failed: bool = False


# ---------------------------------------------------------------------------
# Profile collector (thread-safe singleton)
# ---------------------------------------------------------------------------


class ProfileCollector:
    """Bounded, per-operation history of :class:`ProfileResult` samples.

    Parameters
    ----------
    max_results:
        Maximum number of samples retained per operation name.
    """

    _instance: ProfileCollector | None = None
    _lock_cls = threading.Lock()

    def __init__(self, max_results: int = 100) -> None:
        self._max_results = max_results
        self._samples: dict[str, deque[ProfileResult]] = {}
        self._lock = threading.Lock()

    @classmethod
    def get_instance(cls) -> ProfileCollector:
        """Return the process-wide collector, creating it on first use."""
        if cls._instance is None:
            with cls._lock_cls:
                if cls._instance is None:
                    cls._instance = ProfileCollector()
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        """Drop the singleton.  **For testing only.**"""
        with cls._lock_cls:
            cls._instance = None

    def record(self, result: ProfileResult) -> None:
        with self._lock:
            history = self._samples.setdefault(result.operation, deque(maxlen=self._max_results))
            history.append(result)

    def get_stats(self, operation: str) -> dict[str, Any] | None:
        """Aggregate the retained samples for *operation*.

        Returns ``None`` when nothing has been recorded, otherwise a dict
        with ``count``, ``failures`` and ``mean/p50/p95/p99/min/max`` in
        milliseconds.
        """
        with self._lock:
            samples = list(self._samples.get(operation, ()))
        if not samples:
            return None

        durations = sorted(sample.duration_ms for sample in samples)
        count = len(durations)
        return {
            "operation": operation,
            "count": count,
            "failures": sum(1 for sample in samples if sample.failed),
            "mean_ms": round(sum(durations) / count, 3),
            "p50_ms": round(_percentile(durations, 50), 3),
            "p95_ms": round(_percentile(durations, 95), 3),
            "p99_ms": round(_percentile(durations, 99), 3),
            "min_ms": round(durations[0], 3),
            "max_ms": round(durations[-1], 3),
        }

    def get_all_stats(self) -> list[dict[str, Any]]:
        """Stats for every tracked operation, sorted by name."""
        with self._lock:
            operations = sorted(self._samples)
        return [stats for stats in map(self.get_stats, operations) if stats is not None]

    def clear(self) -> None:
        with self._lock:
            self._samples.clear()


def _percentile(sorted_data: list[float], p: float) -> float:
    """Linear-interpolated p-th percentile of already sorted data."""
    if not sorted_data:
        return 0.0
    rank = (p / 100.0) * (len(sorted_data) - 1)
    lower = int(rank)
    upper = min(lower + 1, len(sorted_data) - 1)
    return sorted_data[lower] + (rank - lower) * (sorted_data[upper] - sorted_data[lower])


# ---------------------------------------------------------------------------
# Decorator
# ---------------------------------------------------------------------------


def profile_operation(name: str) -> Callable[[F], F]:
    """Time every call of the decorated function under operation *name*."""

    def decorator(func: F) -> F:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            start_ns = time.perf_counter_ns()
            failed = True
            try:
                value = func(*args, **kwargs)
                failed = False
                return value
            finally:
                duration_ms = (time.perf_counter_ns() - start_ns) / 1_000_000
                ProfileCollector.get_instance().record(
                    ProfileResult(operation=name, duration_ms=round(duration_ms, 3), failed=failed)
                )
                logger.debug("PROFILE %s: %.3f ms%s", name, duration_ms, " (failed)" if failed else "")

        return wrapper  # type: ignore[return-value]

    return decorator
