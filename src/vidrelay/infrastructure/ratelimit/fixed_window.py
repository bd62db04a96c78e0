"""Fixed-window rate limiting."""

import math
import threading
import time
from typing import Dict, Optional

from vidrelay.domain.models import RateWindow
from vidrelay.shared.logging import get_logger
from vidrelay.shared.metrics import MetricsCollector
from vidrelay.shared.types import Clock

logger = get_logger(__name__)


class FixedWindowRateLimiter:
    """
    Per-client counter reset at fixed intervals.
    Implements IRateLimiter protocol.

    Rejected calls still count toward the window. Windows that have reset
    are swept from allow() once per window length, so the map only holds
    clients seen recently.
    """

    def __init__(
        self,
        limit: int = 10,
        window_seconds: float = 3600.0,
        clock: Clock = time.time,
        metrics: Optional[MetricsCollector] = None
    ):
        if limit < 1:
            raise ValueError("limit must be at least 1")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be positive")

        self.limit = limit
        self.window_seconds = window_seconds
        self._clock = clock
        self._metrics = metrics
        self._lock = threading.Lock()
        self._windows: Dict[str, RateWindow] = {}
        self._next_sweep = clock() + window_seconds

    def allow(self, client_id: str) -> bool:
        """Count one call for client_id and report whether it is admitted."""
        now = self._clock()

        with self._lock:
            if now >= self._next_sweep:
                self._drop_expired(now)
                self._next_sweep = now + self.window_seconds

            window = self._windows.get(client_id)
            if window is None:
                window = RateWindow(count=0, reset_at=now + self.window_seconds)
                self._windows[client_id] = window
            elif now > window.reset_at:
                window.count = 0
                window.reset_at = now + self.window_seconds

            window.count += 1
            count = window.count

        allowed = count <= self.limit
        if not allowed:
            logger.warning(f"Rate limit exceeded for {client_id}: {count}/{self.limit}")
            if self._metrics is not None:
                self._metrics.increment_counter('ratelimit.rejected')
        return allowed

    def count(self, client_id: str) -> int:
        """Calls counted in the client's current window (0 if it has expired)."""
        with self._lock:
            window = self._windows.get(client_id)
            if window is None or self._clock() > window.reset_at:
                return 0
            return window.count

    def retry_after(self, client_id: str) -> int:
        """Whole seconds until the client's window resets."""
        with self._lock:
            window = self._windows.get(client_id)
            if window is None:
                return 0
            return max(0, math.ceil(window.reset_at - self._clock()))

    def __len__(self) -> int:
        with self._lock:
            return len(self._windows)

    def _drop_expired(self, now: float) -> int:
        expired = [cid for cid, window in self._windows.items() if now > window.reset_at]
        for cid in expired:
            del self._windows[cid]
        if expired:
            logger.debug(f"Dropped {len(expired)} expired rate windows")
        return len(expired)
