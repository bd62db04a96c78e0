"""Factories wiring configuration into components."""

from dataclasses import dataclass
from typing import Optional

import requests

from vidrelay.domain.exceptions import ConfigurationError
from vidrelay.domain.protocols import ICompressor
from vidrelay.infrastructure.cache import ResponseCache
from vidrelay.infrastructure.config import AppConfig
from vidrelay.infrastructure.content_host import ContentHostClient
from vidrelay.infrastructure.delivery import DeliveryPipeline
from vidrelay.infrastructure.http import TransportClient
from vidrelay.infrastructure.media import FFmpegWrapper, BinaryReader
from vidrelay.infrastructure.ratelimit import FixedWindowRateLimiter
from vidrelay.infrastructure.reporting import (
    DiscordWebhookNotifier,
    ReportClient,
    ReportSubmissionHandler,
)
from vidrelay.infrastructure.storage import TempStorage
from vidrelay.infrastructure.transcoding import (
    FFmpegBackend,
    PassThroughCompressor,
    TranscodingEngine,
)
from vidrelay.application.orchestrator import UploadOrchestrator
from vidrelay.shared.logging import get_logger, LoggerAdapter
from vidrelay.shared.metrics import MetricsCollector

logger = get_logger(__name__)


class CompressorFactory:
    """
    Factory for creating compressors with auto-detection.

    Modes:
    - 'auto': ffmpeg engine when ffmpeg/ffprobe are on PATH, else pass-through
    - 'ffmpeg': always the engine; it still passes through if loading fails
    - 'passthrough': never compress
    """

    def __init__(self, config: AppConfig, metrics: Optional[MetricsCollector] = None):
        self.config = config
        self._metrics = metrics or MetricsCollector()
        self._logger = get_logger(__name__)

    def create(self, prefer: Optional[str] = None) -> ICompressor:
        """
        Create a compressor.

        Args:
            prefer: Mode override ('auto', 'ffmpeg', 'passthrough')

        Returns:
            TranscodingEngine or PassThroughCompressor
        """
        mode = (prefer or self.config.compressor).lower()
        reader = BinaryReader()

        if mode == 'passthrough':
            self._logger.info("Compression disabled, files are uploaded as-is")
            return self._passthrough(reader)

        ffmpeg = FFmpegWrapper(self.config.ffmpeg_binary, self.config.ffprobe_binary)

        if mode == 'auto':
            if not FFmpegBackend.is_available(ffmpeg):
                self._logger.warning("ffmpeg not available, falling back to pass-through")
                return self._passthrough(reader)
        elif mode != 'ffmpeg':
            raise ConfigurationError(f"Unknown compressor: {mode}")

        self._logger.info("Using ffmpeg transcoder")
        engine = TranscodingEngine(
            backend=FFmpegBackend(ffmpeg=ffmpeg, storage=TempStorage(self.config.temp_dir)),
            limits=self.config.compression_limits(),
            reader=reader,
            fallback=self._passthrough(reader),
            init_retry_delay=self.config.init_retry_delay,
            max_init_attempts=self.config.max_init_attempts,
            poll_interval=self.config.poll_interval,
            ready_timeout=self.config.ready_timeout,
            metrics=self._metrics,
        )
        engine.start()
        return engine

    def _passthrough(self, reader: BinaryReader) -> PassThroughCompressor:
        return PassThroughCompressor(reader=reader, max_output_size=self.config.max_output_size)


@dataclass
class ServiceContainer:
    """Every long-lived component of one process, built from one config."""

    config: AppConfig
    metrics: MetricsCollector
    cache: ResponseCache
    transport: TransportClient
    content_host: ContentHostClient
    delivery: DeliveryPipeline
    compressor: ICompressor
    orchestrator: UploadOrchestrator
    report_client: ReportClient

    def create_report_handler(self, session: Optional[requests.Session] = None) -> ReportSubmissionHandler:
        """Server-side report handler with its own per-process rate limiter."""
        limiter = FixedWindowRateLimiter(
            limit=self.config.report_limit,
            window_seconds=self.config.report_window,
            metrics=self.metrics,
        )
        notifier = DiscordWebhookNotifier(self.config.discord_webhook_url, session=session)
        return ReportSubmissionHandler(rate_limiter=limiter, notifier=notifier)

    def close(self) -> None:
        if isinstance(self.compressor, TranscodingEngine):
            self.compressor.shutdown(timeout=1.0)
        self.transport.close()


def build_services(
    config: AppConfig,
    session: Optional[requests.Session] = None,
    compressor: Optional[ICompressor] = None
) -> ServiceContainer:
    """
    Create all components with their dependencies from config.

    Args:
        config: Loaded configuration
        session: Optional HTTP session for the function layer
        compressor: Optional compressor replacing the factory's choice

    Returns:
        ServiceContainer with the orchestrator ready to upload
    """
    metrics = MetricsCollector()
    cache = ResponseCache(ttl=config.cache_ttl, metrics=metrics)
    transport = TransportClient(config.api_base_url, timeout=config.request_timeout, session=session)
    content_host = ContentHostClient(transport, cache)
    delivery = DeliveryPipeline(content_host, cleanup_orphans=config.cleanup_orphans)

    if compressor is None:
        compressor = CompressorFactory(config, metrics=metrics).create()

    orchestrator = UploadOrchestrator(
        compressor=compressor,
        delivery=delivery,
        logger=LoggerAdapter(get_logger('orchestrator')),
        metrics=metrics,
        limits=config.compression_limits(),
        compression_share=config.compression_share,
        max_upload_size=config.max_upload_size,
    )

    return ServiceContainer(
        config=config,
        metrics=metrics,
        cache=cache,
        transport=transport,
        content_host=content_host,
        delivery=delivery,
        compressor=compressor,
        orchestrator=orchestrator,
        report_client=ReportClient(transport),
    )
