"""Transcoding package."""

from vidrelay.infrastructure.transcoding.parameters import compute_parameters, fit_dimensions
from vidrelay.infrastructure.transcoding.backends import FFmpegBackend, StagedInput
from vidrelay.infrastructure.transcoding.passthrough import PassThroughCompressor
from vidrelay.infrastructure.transcoding.engine import TranscodingEngine

__all__ = [
    "compute_parameters",
    "fit_dimensions",
    "FFmpegBackend",
    "StagedInput",
    "PassThroughCompressor",
    "TranscodingEngine",
]
