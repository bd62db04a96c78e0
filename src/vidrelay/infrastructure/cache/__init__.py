"""Response cache package."""

from vidrelay.infrastructure.cache.response_cache import ResponseCache

__all__ = ["ResponseCache"]
