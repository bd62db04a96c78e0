"""Progress composition across pipeline phases."""

import threading
from typing import Optional

from vidrelay.shared.types import ProgressCallback


def clamp(value: float, low: float = 0.0, high: float = 100.0) -> float:
    return max(low, min(high, value))


def compose(local: float, offset: float, weight: float) -> float:
    """
    Map a phase-local percentage onto the caller's global scale.

    A phase owning the [offset, offset + weight] slice of the overall run
    reports `local` in [0, 100]; the global value is clamped to [0, 100].
    Nesting is associative: composing into a phase that is itself composed
    gives the same result as composing once with the combined slice.
    """
    return clamp(offset + local * weight / 100.0)


def _noop(percent: float, message: str) -> None:
    pass


class ProgressReporter:
    """
    Delivers progress to a caller callback in non-decreasing order.

    A value lower than the last one delivered is raised to it, so a
    fallback that restarts a sub-operation cannot move the bar backwards.
    """

    def __init__(self, callback: Optional[ProgressCallback] = None):
        self._callback = callback or _noop
        self._lock = threading.Lock()
        self._last = 0.0
        self._reported = False

    @property
    def last(self) -> float:
        return self._last

    def report(self, percent: float, message: str = "") -> None:
        with self._lock:
            value = clamp(percent)
            if self._reported and value < self._last:
                value = self._last
            self._last = value
            self._reported = True
        self._callback(value, message)

    def __call__(self, percent: float, message: str = "") -> None:
        self.report(percent, message)

    def phase(self, offset: float, weight: float) -> ProgressCallback:
        """Return a callback for a sub-operation owning [offset, offset + weight]."""

        def _phase_callback(percent: float, message: str = "") -> None:
            self.report(compose(percent, offset, weight), message)

        return _phase_callback
