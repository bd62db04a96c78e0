"""Content host package."""

from vidrelay.infrastructure.content_host.client import ContentHostClient

__all__ = ["ContentHostClient"]
