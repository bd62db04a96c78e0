"""Transcoder backends."""

import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from vidrelay.domain.models import VideoDescriptor, CompressionParameters
from vidrelay.domain.exceptions import CompressionError
from vidrelay.domain.protocols import ProgressCallback
from vidrelay.infrastructure.media.ffmpeg import FFmpegWrapper
from vidrelay.infrastructure.storage.temp_storage import TempStorage
from vidrelay.shared.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class StagedInput:
    """Input bytes written to a private workspace."""

    workspace: Path
    input_path: Path
    output_path: Path


class FFmpegBackend:
    """
    Encodes through the local ffmpeg/ffprobe toolchain.
    Implements ITranscoderBackend protocol.
    """

    name = 'ffmpeg'

    def __init__(
        self,
        ffmpeg: Optional[FFmpegWrapper] = None,
        storage: Optional[TempStorage] = None
    ):
        self._ffmpeg = ffmpeg or FFmpegWrapper()
        self._storage = storage or TempStorage()
        self._logger = get_logger(__name__)

    @classmethod
    def is_available(cls, ffmpeg: Optional[FFmpegWrapper] = None) -> bool:
        """Check if ffmpeg can be used in the current environment."""
        try:
            (ffmpeg or FFmpegWrapper()).locate()
            return True
        except CompressionError:
            return False

    def load(self) -> None:
        self._ffmpeg.locate()

    def stage(self, data: bytes, source_name: str) -> StagedInput:
        workspace = self._storage.create_workspace(uuid.uuid4().hex[:12])
        suffix = Path(source_name).suffix or '.bin'
        input_path = workspace / f"input{suffix}"
        try:
            input_path.write_bytes(data)
        except OSError as e:
            self._storage.cleanup_quietly(workspace)
            raise CompressionError(f"Failed to stage input: {e}") from e

        self._logger.debug(f"Staged {len(data)} bytes at {input_path}")
        return StagedInput(workspace=workspace, input_path=input_path, output_path=workspace / 'output.mp4')

    def probe(self, staged: StagedInput) -> VideoDescriptor:
        return self._ffmpeg.probe(staged.input_path)

    def encode(
        self,
        staged: StagedInput,
        parameters: CompressionParameters,
        on_progress: Optional[ProgressCallback] = None,
        descriptor: Optional[VideoDescriptor] = None
    ) -> bytes:
        duration = descriptor.duration if descriptor else 0.0

        def _encode_progress(percent: float) -> None:
            if on_progress:
                on_progress(percent, 'Compressing video...')

        self._ffmpeg.encode(
            staged.input_path,
            staged.output_path,
            parameters,
            duration=duration,
            on_progress=_encode_progress
        )

        try:
            return staged.output_path.read_bytes()
        except OSError as e:
            raise CompressionError(f"Failed to read encoded output: {e}") from e

    def release(self, staged: StagedInput) -> None:
        self._storage.cleanup(staged.workspace)

    def close(self) -> None:
        self._storage.cleanup_all()
