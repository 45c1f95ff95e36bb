"""
Processing metrics for the ocean layers engine.

Collects per-layer timings, row throughput and output sizes so slow binning
or clustering jobs show up in the logs. Metrics are observational only: no
processor reads them back.

Usage:
    from oceanlayers.metrics import metrics, timed

    @timed("heatmap")
    def generate_heatmap(rows, ...):
        ...

    with metrics.timer("stations"):
        stations = cluster_stations(rows)

    metrics.count_rows("heatmap", len(rows))
    summary = metrics.get_summary()
"""

import logging
import time
from collections import deque
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime
from functools import wraps
from threading import Lock
from typing import Callable, Dict, Optional

from oceanlayers.config import settings

logger = logging.getLogger(__name__)


@dataclass
class LayerTiming:
    """Timing statistics for one processing operation."""
    name: str
    calls: int = 0
    total_ms: float = 0.0
    min_ms: float = float('inf')
    max_ms: float = 0.0
    recent_ms: deque = field(default_factory=lambda: deque(maxlen=100))

    @property
    def avg_ms(self) -> float:
        return self.total_ms / self.calls if self.calls > 0 else 0.0

    @property
    def recent_avg_ms(self) -> float:
        if not self.recent_ms:
            return 0.0
        return sum(self.recent_ms) / len(self.recent_ms)

    def record(self, duration_ms: float):
        self.calls += 1
        self.total_ms += duration_ms
        self.min_ms = min(self.min_ms, duration_ms)
        self.max_ms = max(self.max_ms, duration_ms)
        self.recent_ms.append(duration_ms)

    def to_dict(self) -> dict:
        return {
            "calls": self.calls,
            "avg_ms": round(self.avg_ms, 3),
            "min_ms": round(self.min_ms, 3) if self.calls else 0,
            "max_ms": round(self.max_ms, 3),
            "recent_avg_ms": round(self.recent_avg_ms, 3),
        }


class ProcessingMetrics:
    """
    Thread-safe collector shared by all processors.

    Processors may run on worker threads, so every mutation goes through
    one lock. Timings above ``slow_threshold_ms`` are logged as warnings and
    a summary line is emitted every ``log_interval`` seconds.
    """

    def __init__(
        self,
        enabled: bool = True,
        slow_threshold_ms: float = 100.0,
        log_interval: float = 60.0,
    ):
        self.enabled = enabled
        self.slow_threshold_ms = slow_threshold_ms
        self._log_interval = log_interval

        self._timings: Dict[str, LayerTiming] = {}
        self._rows: Dict[str, int] = {}
        self._outputs: Dict[str, int] = {}
        self._lock = Lock()

        self._start_time = datetime.now()
        self._last_log_time = datetime.now()

    @contextmanager
    def timer(self, name: str):
        """Time a block of code under ``name``."""
        start = time.perf_counter()
        try:
            yield
        finally:
            if self.enabled:
                self._record_timing(name, (time.perf_counter() - start) * 1000)

    def _record_timing(self, name: str, elapsed_ms: float):
        with self._lock:
            if name not in self._timings:
                self._timings[name] = LayerTiming(name=name)
            self._timings[name].record(elapsed_ms)

        if elapsed_ms > self.slow_threshold_ms:
            logger.warning(
                f"Slow layer computation: {name} took {elapsed_ms:.1f}ms "
                f"(threshold: {self.slow_threshold_ms}ms)"
            )
        self._maybe_log_summary()

    def count_rows(self, name: str, rows: int):
        """Add ``rows`` input rows to the throughput counter of ``name``."""
        if not self.enabled:
            return
        with self._lock:
            self._rows[name] = self._rows.get(name, 0) + rows

    def set_output_size(self, name: str, size: int):
        """Remember how many records the last call of ``name`` produced."""
        if not self.enabled:
            return
        with self._lock:
            self._outputs[name] = size

    def get_rows(self, name: str) -> int:
        with self._lock:
            return self._rows.get(name, 0)

    def get_output_size(self, name: str) -> int:
        with self._lock:
            return self._outputs.get(name, 0)

    def get_timing(self, name: str) -> Optional[LayerTiming]:
        with self._lock:
            return self._timings.get(name)

    def get_summary(self) -> dict:
        """Snapshot of every timing, row counter and output size."""
        with self._lock:
            uptime = (datetime.now() - self._start_time).total_seconds()
            rows_per_sec = {
                f"{name}_rows_per_sec": round(count / uptime, 2)
                for name, count in self._rows.items()
            } if uptime > 0 else {}
            return {
                "uptime_seconds": round(uptime, 1),
                "timings": {
                    name: stats.to_dict()
                    for name, stats in self._timings.items()
                },
                "rows_processed": dict(self._rows),
                "last_output_size": dict(self._outputs),
                "throughput": rows_per_sec,
            }

    def _maybe_log_summary(self):
        now = datetime.now()
        if (now - self._last_log_time).total_seconds() < self._log_interval:
            return
        self._last_log_time = now

        summary = self.get_summary()
        timing_str = ", ".join(
            f"{name}: {stats['avg_ms']:.1f}ms avg ({stats['calls']} calls)"
            for name, stats in summary["timings"].items()
        )
        rows_str = ", ".join(
            f"{name}={count}" for name, count in summary["rows_processed"].items()
        )
        logger.info(
            f"Layer metrics - Uptime: {summary['uptime_seconds']:.0f}s | "
            f"Timings: [{timing_str or 'none'}] | Rows: [{rows_str or 'none'}]"
        )

    def reset(self):
        with self._lock:
            self._timings.clear()
            self._rows.clear()
            self._outputs.clear()
            self._start_time = datetime.now()


# Global metrics instance
metrics = ProcessingMetrics(
    enabled=settings.metrics_enabled,
    slow_threshold_ms=settings.metrics_slow_threshold_ms,
    log_interval=settings.metrics_log_interval,
)


def timed(name: str):
    """
    Decorator timing a processor and counting its input rows.

    The first positional argument is taken to be the row list when it has a
    length; the output size is recorded when the result has one.
    """
    def decorator(func: Callable) -> Callable:
        @wraps(func)
        def wrapper(*args, **kwargs):
            with metrics.timer(name):
                result = func(*args, **kwargs)
            if args and isinstance(args[0], (list, tuple)):
                metrics.count_rows(name, len(args[0]))
            if isinstance(result, (list, tuple)):
                metrics.set_output_size(name, len(result))
            elif isinstance(result, dict) and "features" in result:
                metrics.set_output_size(name, len(result["features"]))
            return result
        return wrapper
    return decorator


def get_metrics() -> ProcessingMetrics:
    """Get the global metrics instance."""
    return metrics
