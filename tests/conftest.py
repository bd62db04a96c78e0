import sys
import os

import pytest

# Ensure src/ is on sys.path so 'vidrelay' is importable without installing
SRC = os.path.abspath(os.path.join(os.path.dirname(__file__), '..', 'src'))
if SRC not in sys.path:
    sys.path.insert(0, SRC)


class FakeClock:
    """Manually advanced time source for TTL, window and readiness tests."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def progress_log():
    """Collects (percent, message) pairs from a progress callback."""
    events = []

    def _callback(percent, message):
        events.append((percent, message))

    _callback.events = events
    return _callback
