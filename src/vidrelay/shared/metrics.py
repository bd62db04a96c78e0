"""Metrics collection for upload runs."""

import threading
import time
from contextlib import contextmanager
from typing import Dict, Any, Iterator, List
from collections import defaultdict

from vidrelay.shared.types import Clock


class MetricsCollector:
    """
    Collects timers, samples and counters for upload operations.
    Implements IMetricsCollector protocol.

    Safe to share between the cache, the rate limiter and concurrent
    uploads: every mutation happens under one lock.
    """

    def __init__(self, clock: Clock = time.monotonic):
        self._clock = clock
        self._lock = threading.Lock()
        self._start_time = clock()
        self._timers: Dict[str, float] = {}
        self._metrics: Dict[str, List[float]] = defaultdict(list)
        self._counters: Dict[str, int] = defaultdict(int)

    def start_timer(self, name: str) -> None:
        """Start a named timer."""
        with self._lock:
            self._timers[name] = self._clock()

    def stop_timer(self, name: str) -> float:
        """
        Stop a named timer and return elapsed time.

        Raises:
            KeyError: If timer was not started
        """
        with self._lock:
            if name not in self._timers:
                raise KeyError(f"Timer '{name}' was not started")
            elapsed = self._clock() - self._timers.pop(name)
            self._metrics[f"{name}_duration"].append(elapsed)
        return elapsed

    @contextmanager
    def timer(self, name: str) -> Iterator[None]:
        """Time the enclosed block, even when it raises."""
        self.start_timer(name)
        try:
            yield
        finally:
            self.stop_timer(name)

    def record_metric(self, name: str, value: float) -> None:
        with self._lock:
            self._metrics[name].append(value)

    def increment_counter(self, name: str, amount: int = 1) -> None:
        with self._lock:
            self._counters[name] += amount

    def get_counter(self, name: str) -> int:
        with self._lock:
            return self._counters.get(name, 0)

    def get_metric(self, name: str) -> list:
        with self._lock:
            return list(self._metrics.get(name, []))

    def get_summary(self) -> Dict[str, Any]:
        """
        Get summary of all metrics.

        Returns:
            Dictionary with elapsed time, counters and per-metric aggregates
        """
        with self._lock:
            counters = dict(self._counters)
            samples = {name: list(values) for name, values in self._metrics.items()}

        summary = {
            "total_elapsed": self.elapsed_time(),
            "counters": counters,
            "metrics": {}
        }

        for name, values in samples.items():
            if values:
                summary["metrics"][name] = {
                    "count": len(values),
                    "sum": sum(values),
                    "avg": sum(values) / len(values),
                    "min": min(values),
                    "max": max(values),
                }

        return summary

    def elapsed_time(self) -> float:
        """Get total elapsed time since initialization."""
        return self._clock() - self._start_time

    def reset(self) -> None:
        """Reset all metrics and timers."""
        with self._lock:
            self._start_time = self._clock()
            self._timers.clear()
            self._metrics.clear()
            self._counters.clear()

    def format_summary(self) -> str:
        """Render the summary as a short multi-line report."""
        summary = self.get_summary()
        lines = [f"Total elapsed: {summary['total_elapsed']:.2f}s"]

        for name, value in sorted(summary['counters'].items()):
            lines.append(f"  {name}: {value}")

        for name, data in sorted(summary['metrics'].items()):
            lines.append(f"  {name}: avg={data['avg']:.3f} (n={data['count']})")

        return "\n".join(lines)
