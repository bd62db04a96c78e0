"""Encoder parameter derivation."""

from typing import Tuple

from vidrelay.domain.models import VideoDescriptor, CompressionLimits, CompressionParameters


def _even(value: int) -> int:
    return max(2, (int(value) // 2) * 2)


def fit_dimensions(width: int, height: int, max_width: int, max_height: int) -> Tuple[int, int]:
    """
    Scale (width, height) down to fit the box, keeping aspect ratio.

    Never upscales. Both sides come back even, since yuv420p needs it.
    """
    if width <= max_width and height <= max_height:
        return _even(width), _even(height)

    # Integer cross-multiplication picks the binding side without float drift.
    if width * max_height >= height * max_width:
        new_width = max_width
        new_height = height * max_width // width
    else:
        new_height = max_height
        new_width = width * max_height // height

    return _even(new_width), _even(new_height)


def compute_parameters(descriptor: VideoDescriptor, limits: CompressionLimits) -> CompressionParameters:
    """
    Derive encoder settings for a video under the configured limits.

    The bitrate is the smaller of what fits the output size budget over
    the video's duration and what the target resolution needs, floored
    at limits.min_bitrate.
    """
    width, height = fit_dimensions(
        descriptor.width, descriptor.height, limits.max_width, limits.max_height
    )

    if descriptor.fps > 0:
        fps = max(1, int(round(min(descriptor.fps, limits.target_fps))))
    else:
        fps = limits.target_fps

    bitrate = width * height * fps * limits.max_bits_per_pixel

    if descriptor.duration > 0:
        size_budget = limits.max_output_size * 8 / descriptor.duration - limits.audio_bitrate
        bitrate = min(bitrate, size_budget)

    return CompressionParameters(
        width=width,
        height=height,
        fps=fps,
        video_bitrate=max(limits.min_bitrate, int(bitrate)),
        audio_bitrate=limits.audio_bitrate,
        preset=limits.preset,
    )
