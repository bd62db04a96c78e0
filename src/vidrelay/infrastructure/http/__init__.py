"""HTTP transport package."""

from vidrelay.infrastructure.http.transport import TransportClient

__all__ = ["TransportClient"]
