"""Main orchestrator for the upload pipeline."""

import uuid
from typing import Optional, Callable

from vidrelay.domain.models import (
    CompressionLimits,
    CompressionResult,
    UploadMetadata,
    UploadOutcome,
)
from vidrelay.domain.protocols import (
    IBinarySource, ICompressor, IDeliveryPipeline,
    ILogger, IMetricsCollector, ProgressCallback
)
from vidrelay.domain.exceptions import (
    DomainException,
    ValidationError,
    Timeout,
    UpstreamError,
    NetworkError,
    ProtocolError,
    ConfigurationError,
)
from vidrelay.shared.logging import get_logger
from vidrelay.shared.metrics import MetricsCollector
from vidrelay.shared.progress import ProgressReporter

logger = get_logger(__name__)

DEFAULT_MAX_UPLOAD_SIZE = 5 * 1024 * 1024 * 1024
PASSTHROUGH_RESOLUTION = '720p'


def describe_failure(error: BaseException) -> str:
    """Pick the message shown to the user from the error's type."""
    if isinstance(error, ValidationError):
        return f"Invalid input: {error}"
    if isinstance(error, Timeout):
        return "The server took too long to respond. Please try again."
    if isinstance(error, UpstreamError):
        if error.is_rate_limited:
            return "Too many requests. Please wait a moment and try again."
        if error.is_auth_failure:
            return "The server refused the upload credentials."
        if error.retryable:
            return "The server is temporarily unavailable. Please try again."
        return f"The server rejected the upload: {error.message}"
    if isinstance(error, NetworkError):
        return "Network error. Check your connection and try again."
    if isinstance(error, ProtocolError):
        return "The server sent an unexpected response."
    if isinstance(error, ConfigurationError):
        return f"Configuration error: {error}"
    if isinstance(error, DomainException):
        return f"Upload failed: {error}"
    return "Upload failed due to an unexpected error."


class UploadOrchestrator:
    """Main orchestrator - validates, compresses, then delivers."""

    def __init__(
        self,
        compressor: ICompressor,
        delivery: IDeliveryPipeline,
        logger: ILogger,
        metrics: IMetricsCollector,
        limits: Optional[CompressionLimits] = None,
        compression_share: float = 50.0,
        max_upload_size: int = DEFAULT_MAX_UPLOAD_SIZE,
        id_factory: Callable[[], str] = lambda: str(uuid.uuid4())
    ):
        if not 0 < compression_share < 100:
            raise ValueError("compression_share must be between 0 and 100")

        self._compressor = compressor
        self._delivery = delivery
        self._logger = logger
        self._metrics = metrics
        self._limits = limits or CompressionLimits()
        self.compression_share = compression_share
        self.max_upload_size = max_upload_size
        self._id_factory = id_factory

    def validate(self, source: IBinarySource) -> None:
        """
        Reject sources that are not videos or exceed the upload ceiling.

        Raises:
            ValidationError: With the reason for rejection
        """
        mime_type = source.mime_type or ''
        if not mime_type.startswith('video/'):
            raise ValidationError(f"Not a video file: {mime_type or 'unknown type'}")

        if source.size <= 0:
            raise ValidationError("File is empty")

        if source.size > self.max_upload_size:
            raise ValidationError(
                f"File is {source.size / 1024 / 1024 / 1024:.2f}GB, "
                f"max is {self.max_upload_size / 1024 / 1024 / 1024:.0f}GB"
            )

    def upload(
        self,
        source: IBinarySource,
        uploader_id: str = 'anonymous',
        on_progress: Optional[ProgressCallback] = None
    ) -> UploadOutcome:
        """
        Execute one upload.

        Never raises for pipeline failures: the outcome carries the typed
        error and a message chosen from its type.
        """
        progress = ProgressReporter(on_progress)
        # Per-run timers; concurrent uploads share only the summary collector.
        run_metrics = MetricsCollector()
        run_metrics.start_timer('total_upload')

        metadata = None
        compression = None
        log = self._logger

        try:
            self.validate(source)
            self._logger.info(f"Starting upload of {source.name} for {uploader_id}")

            with run_metrics.timer('compression'):
                compression = self._compressor.compress(
                    source, on_progress=progress.phase(0, self.compression_share)
                )

            metadata = self._build_metadata(source, compression, uploader_id)
            log = log.bind(file_id=metadata.file_id)
            log.info(f"Delivering {compression.size / 1024 / 1024:.1f}MB as {metadata.content_name}")

            with run_metrics.timer('delivery'):
                result = self._delivery.upload_with_metadata(
                    compression.data,
                    metadata,
                    on_progress=progress.phase(self.compression_share, 100 - self.compression_share)
                )

            progress.report(100, 'Upload complete')
            self._finish(run_metrics)
            self._metrics.increment_counter('upload.succeeded')
            log.info(f"Upload complete: {result.asset_url}")

            return UploadOutcome(
                success=True,
                message='Upload complete',
                result=result,
                metadata=metadata,
                compression=compression,
                metrics=run_metrics.get_summary(),
            )

        except Exception as e:
            if isinstance(e, DomainException):
                log.error(f"Upload of {source.name} failed: {e}")
            else:
                log.exception(f"Upload of {source.name} failed: {e}")
            self._finish(run_metrics)
            self._metrics.increment_counter('upload.failed')

            return UploadOutcome(
                success=False,
                message=describe_failure(e),
                metadata=metadata,
                compression=compression,
                error=e,
                metrics=run_metrics.get_summary(),
            )

    def _build_metadata(
        self,
        source: IBinarySource,
        compression: CompressionResult,
        uploader_id: str
    ) -> UploadMetadata:
        params = compression.parameters
        return UploadMetadata.build(
            file_id=self._id_factory(),
            original_filename=source.name,
            original_size=source.size,
            compressed_size=compression.size,
            uploader_id=uploader_id,
            resolution=params.resolution_label if params else PASSTHROUGH_RESOLUTION,
            fps=params.fps if params else self._limits.target_fps,
        )

    def _finish(self, run_metrics: MetricsCollector) -> None:
        run_metrics.stop_timer('total_upload')
        for name, values in run_metrics.get_summary()['metrics'].items():
            self._metrics.record_metric(name, values['sum'])
