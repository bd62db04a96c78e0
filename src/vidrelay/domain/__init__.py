"""Domain layer package."""

from .models import (
    REPORT_REASONS,
    TranscoderState,
    VideoDescriptor,
    CompressionLimits,
    CompressionParameters,
    CompressionResult,
    UploadMetadata,
    ContainerHandle,
    AttachedPayload,
    DeliveryResult,
    CacheEntry,
    RateWindow,
    ReportRequest,
    ReportReceipt,
    UploadOutcome,
)
from .exceptions import (
    DomainException,
    ValidationError,
    Timeout,
    UpstreamError,
    NetworkError,
    ProtocolError,
    ConfigurationError,
    CompressionError,
)
from .protocols import (
    IBinarySource,
    ICompressor,
    ITranscoderBackend,
    ITransport,
    IContentHost,
    IDeliveryPipeline,
    IResponseCache,
    IRateLimiter,
    ITempStorage,
    ILogger,
    IMetricsCollector,
)

__all__ = [
    # Models
    "REPORT_REASONS",
    "TranscoderState",
    "VideoDescriptor",
    "CompressionLimits",
    "CompressionParameters",
    "CompressionResult",
    "UploadMetadata",
    "ContainerHandle",
    "AttachedPayload",
    "DeliveryResult",
    "CacheEntry",
    "RateWindow",
    "ReportRequest",
    "ReportReceipt",
    "UploadOutcome",
    # Exceptions
    "DomainException",
    "ValidationError",
    "Timeout",
    "UpstreamError",
    "NetworkError",
    "ProtocolError",
    "ConfigurationError",
    "CompressionError",
    # Protocols
    "IBinarySource",
    "ICompressor",
    "ITranscoderBackend",
    "ITransport",
    "IContentHost",
    "IDeliveryPipeline",
    "IResponseCache",
    "IRateLimiter",
    "ITempStorage",
    "ILogger",
    "IMetricsCollector",
]
