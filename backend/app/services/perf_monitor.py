"""Performance monitoring for the facility report pipeline."""
import time
import logging
import threading
import functools
from typing import Any, Callable, Dict, Optional

logger = logging.getLogger("staffing-api.perf")


def timed(func: Callable) -> Callable:
    """
    Decorator that measures and logs execution time for synchronous functions.

    Usage::

        @timed
        def aggregate(self, records):
            ...
    """
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        start = time.perf_counter()
        try:
            return func(*args, **kwargs)
        finally:
            duration_ms = round((time.perf_counter() - start) * 1000, 2)
            logger.debug(
                "function timed",
                extra={"function": func.__qualname__, "duration_ms": duration_ms},
            )
    return wrapper


class PerformanceTracker:
    """
    Thread-safe in-memory tracker for report-level metrics.

    Tracks:
    - Reports generated and cumulative report duration
    - Per-stage call count and total duration (read, metrics, budget, forecast, ranking, advisories, compose)
    - Slowest stage seen
    - Failure count broken down by stage
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._reports_generated: int = 0
        self._total_report_duration_ms: float = 0.0
        self._stage_totals: Dict[str, list] = {}      # stage -> [count, total_ms]
        self._failure_counts: Dict[str, int] = {}     # stage -> count
        self._slowest_stage: Optional[str] = None
        self._slowest_stage_ms: float = 0.0

    # ------------------------------------------------------------------
    # Public write API
    # ------------------------------------------------------------------

    def record_report_complete(self, report_duration_ms: float) -> None:
        """Call once when a full report has been composed."""
        with self._lock:
            self._reports_generated += 1
            self._total_report_duration_ms += report_duration_ms

    def record_stage_duration(self, stage: str, duration_ms: float) -> None:
        with self._lock:
            totals = self._stage_totals.setdefault(stage, [0, 0.0])
            totals[0] += 1
            totals[1] += duration_ms
            if duration_ms > self._slowest_stage_ms:
                self._slowest_stage_ms = duration_ms
                self._slowest_stage = stage

    def record_stage_failure(self, stage: str) -> None:
        with self._lock:
            self._failure_counts[stage] = self._failure_counts.get(stage, 0) + 1

    # ------------------------------------------------------------------
    # Public read API
    # ------------------------------------------------------------------

    def get_metrics(self) -> Dict[str, Any]:
        """
        Return a snapshot of all collected metrics.

        Returns
        -------
        dict with keys:
            reports_generated        : int
            avg_report_duration_ms   : float  (0 if none generated)
            slowest_stage            : str | None
            slowest_stage_ms         : float
            failure_count            : int   (total across all stages)
            failure_count_by_stage   : dict  {stage: count}
            stage_avg_durations_ms   : dict  {stage: avg_ms}
        """
        with self._lock:
            avg = (
                round(self._total_report_duration_ms / self._reports_generated, 2)
                if self._reports_generated > 0
                else 0.0
            )
            stage_avgs = {
                stage: round(total_ms / count, 2) if count else 0.0
                for stage, (count, total_ms) in self._stage_totals.items()
            }
            return {
                "reports_generated": self._reports_generated,
                "avg_report_duration_ms": avg,
                "slowest_stage": self._slowest_stage,
                "slowest_stage_ms": round(self._slowest_stage_ms, 2),
                "failure_count": sum(self._failure_counts.values()),
                "failure_count_by_stage": dict(self._failure_counts),
                "stage_avg_durations_ms": stage_avgs,
            }

    def reset(self) -> None:
        """Reset all counters (useful in tests)."""
        with self._lock:
            self._reports_generated = 0
            self._total_report_duration_ms = 0.0
            self._stage_totals.clear()
            self._failure_counts.clear()
            self._slowest_stage = None
            self._slowest_stage_ms = 0.0


# Module-level singleton — import this instance everywhere else.
tracker = PerformanceTracker()
