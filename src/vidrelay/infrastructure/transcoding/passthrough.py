"""Pass-through compressor used when no encoder can run."""

from typing import Optional

from vidrelay.domain.models import CompressionResult
from vidrelay.domain.protocols import IBinarySource, ProgressCallback
from vidrelay.infrastructure.media.reader import BinaryReader
from vidrelay.shared.logging import get_logger
from vidrelay.shared.progress import ProgressReporter

logger = get_logger(__name__)

DEFAULT_MAX_OUTPUT_SIZE = 100 * 1024 * 1024


class PassThroughCompressor:
    """
    Returns the input unchanged.
    Implements ICompressor protocol.

    Oversized inputs are passed through as well; rejecting them is the
    caller's decision.
    """

    def __init__(
        self,
        reader: Optional[BinaryReader] = None,
        max_output_size: int = DEFAULT_MAX_OUTPUT_SIZE
    ):
        self._reader = reader or BinaryReader()
        self.max_output_size = max_output_size

    def compress(
        self,
        source: IBinarySource,
        on_progress: Optional[ProgressCallback] = None,
        wait: bool = True,
        data: Optional[bytes] = None,
        reason: str = 'compressor disabled'
    ) -> CompressionResult:
        progress = on_progress if isinstance(on_progress, ProgressReporter) else ProgressReporter(on_progress)

        progress.report(50, 'Optimizing...')
        if data is None:
            data = self._reader.read(source)

        if len(data) <= self.max_output_size:
            logger.info(f"Passing {source.name} through as-is ({reason})")
            message = 'Ready'
        else:
            logger.warning(
                f"{source.name} is {len(data) / 1024 / 1024:.1f}MB, above the "
                f"{self.max_output_size / 1024 / 1024:.0f}MB output ceiling; passing through anyway"
            )
            message = 'File prepared'

        progress.report(100, message)
        return CompressionResult(
            data=data,
            mime_type=source.mime_type or 'video/mp4',
            parameters=None,
            passthrough=True,
            reason=reason,
        )
