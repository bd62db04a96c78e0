"""Rate limiting package."""

from vidrelay.infrastructure.ratelimit.fixed_window import FixedWindowRateLimiter

__all__ = ["FixedWindowRateLimiter"]
