"""Time-to-live response cache for idempotent reads."""

import threading
import time
from typing import Callable, Dict, Optional, TypeVar, Any

from vidrelay.domain.models import CacheEntry
from vidrelay.shared.logging import get_logger
from vidrelay.shared.metrics import MetricsCollector
from vidrelay.shared.types import Clock

logger = get_logger(__name__)

T = TypeVar('T')

DEFAULT_TTL = 3600.0


class ResponseCache:
    """
    Keyed TTL cache. Expired entries are treated as absent and replaced
    on the next lookup.
    Implements IResponseCache protocol.

    The map is guarded by a lock; compute() runs outside it, so two
    concurrent misses on one key may both compute and the later store wins.
    Any invalidation bumps a generation counter, and a value computed
    across an invalidation is returned to its caller but not stored.
    """

    def __init__(
        self,
        ttl: float = DEFAULT_TTL,
        clock: Clock = time.monotonic,
        metrics: Optional[MetricsCollector] = None
    ):
        if ttl <= 0:
            raise ValueError("ttl must be positive")
        self.ttl = ttl
        self._clock = clock
        self._metrics = metrics
        self._lock = threading.Lock()
        self._entries: Dict[str, CacheEntry[Any]] = {}
        self._generation = 0

    def with_cache(self, key: str, compute: Callable[[], T]) -> T:
        """
        Return the cached value for key, computing and storing it on a miss.

        Exceptions from compute propagate and nothing is stored.
        """
        now = self._clock()
        with self._lock:
            generation = self._generation
            entry = self._entries.get(key)
            if entry is not None and entry.is_fresh(now):
                hit = True
                value = entry.value
            else:
                hit = False
                if entry is not None:
                    del self._entries[key]

        if hit:
            logger.debug(f"[Cache HIT] {key}")
            self._count('cache.hit')
            return value

        logger.debug(f"[Cache MISS] {key}")
        self._count('cache.miss')
        value = compute()

        with self._lock:
            stored = generation == self._generation
            if stored:
                self._entries[key] = CacheEntry(value=value, expires_at=now + self.ttl)

        if not stored:
            logger.debug(f"[Cache] {key} was invalidated while loading; not stored")
        return value

    def invalidate(self, key: str) -> bool:
        """Remove one entry. Returns True if it existed."""
        with self._lock:
            self._generation += 1
            removed = self._entries.pop(key, None) is not None
        if removed:
            logger.debug(f"[Cache] Invalidated {key}")
        return removed

    def invalidate_matching(self, substring: str) -> int:
        """Remove every entry whose key contains substring."""
        with self._lock:
            self._generation += 1
            keys = [key for key in self._entries if substring in key]
            for key in keys:
                del self._entries[key]
        logger.debug(f"[Cache] Cleared pattern: {substring} ({len(keys)} entries)")
        return len(keys)

    def clear(self) -> None:
        with self._lock:
            self._generation += 1
            self._entries.clear()
        logger.debug("[Cache] Cleared all")

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def _count(self, name: str) -> None:
        if self._metrics is not None:
            self._metrics.increment_counter(name)
