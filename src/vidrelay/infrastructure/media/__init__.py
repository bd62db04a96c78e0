"""Media access package."""

from vidrelay.infrastructure.media.ffmpeg import FFmpegWrapper
from vidrelay.infrastructure.media.reader import BinaryReader, LocalVideoFile, InMemoryVideo

__all__ = ["FFmpegWrapper", "BinaryReader", "LocalVideoFile", "InMemoryVideo"]
