"""Shared utilities package."""

from vidrelay.shared.logging import setup_logger, get_logger, LoggerAdapter
from vidrelay.shared.retry import RetryStrategy
from vidrelay.shared.metrics import MetricsCollector
from vidrelay.shared.progress import compose, clamp, ProgressReporter
from vidrelay.shared.types import PathLike, ProgressCallback, Clock, Sleeper

__all__ = [
    "setup_logger",
    "get_logger",
    "LoggerAdapter",
    "RetryStrategy",
    "MetricsCollector",
    "compose",
    "clamp",
    "ProgressReporter",
    "PathLike",
    "ProgressCallback",
    "Clock",
    "Sleeper",
]
