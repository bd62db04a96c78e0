"""Domain models for video upload and delivery."""

from dataclasses import dataclass, field, asdict
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Dict, Any, Generic, TypeVar

from .exceptions import ValidationError

T = TypeVar('T')

REPORT_REASONS: Dict[str, str] = {
    'copyright': 'Copyright infringement',
    'illegal': 'Illegal content',
    'harassment': 'Harassment or threats',
    'private': 'Privacy violation',
    'malware': 'Malware or virus',
    'other': 'Other',
}


class TranscoderState(Enum):
    """Readiness of the transcoding engine."""

    UNINITIALIZED = 'uninitialized'
    INITIALIZING = 'initializing'
    READY = 'ready'
    FAILED = 'failed'


@dataclass(frozen=True)
class VideoDescriptor:
    """Probed or declared properties of a video stream."""

    width: int
    height: int
    fps: float = 0.0
    duration: float = 0.0
    codec: Optional[str] = None

    def __post_init__(self):
        if self.width <= 0 or self.height <= 0:
            raise ValidationError("Width and height must be positive")
        if self.fps < 0:
            raise ValidationError("FPS cannot be negative")
        if self.duration < 0:
            raise ValidationError("Duration cannot be negative")


@dataclass(frozen=True)
class CompressionLimits:
    """Ceilings applied when deriving encoder parameters."""

    max_width: int = 1280
    max_height: int = 720
    target_fps: int = 30
    max_output_size: int = 100 * 1024 * 1024
    min_bitrate: int = 500_000
    max_bits_per_pixel: float = 0.1
    audio_bitrate: int = 128_000
    preset: str = 'fast'

    def __post_init__(self):
        if self.max_width < 2 or self.max_height < 2:
            raise ValidationError("Maximum dimensions must be at least 2")
        if self.target_fps <= 0:
            raise ValidationError("Target FPS must be positive")
        if self.min_bitrate <= 0:
            raise ValidationError("Minimum bitrate must be positive")


@dataclass(frozen=True)
class CompressionParameters:
    """Encoder settings computed for one video."""

    width: int
    height: int
    fps: int
    video_bitrate: int
    audio_bitrate: int = 128_000
    preset: str = 'fast'

    def __post_init__(self):
        if self.width <= 0 or self.height <= 0:
            raise ValidationError("Width and height must be positive")
        if self.width % 2 or self.height % 2:
            raise ValidationError(f"Dimensions must be even, got {self.width}x{self.height}")
        if self.fps <= 0:
            raise ValidationError("FPS must be positive")
        if self.video_bitrate <= 0:
            raise ValidationError("Bitrate must be positive")

    @property
    def resolution_label(self) -> str:
        return f"{self.height}p"


@dataclass(frozen=True)
class CompressionResult:
    """Output of a compress call; passthrough=True means the input came back as-is."""

    data: bytes = field(repr=False)
    mime_type: str = 'video/mp4'
    parameters: Optional[CompressionParameters] = None
    passthrough: bool = False
    reason: Optional[str] = None

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass(frozen=True)
class UploadMetadata:
    """Description of one upload attempt, forwarded verbatim to the content host."""

    file_id: str
    original_filename: str
    original_size: int
    compressed_size: int
    compression_ratio: float
    resolution: str
    fps: int
    upload_time: str
    uploader_id: str
    title: str

    @classmethod
    def build(
        cls,
        file_id: str,
        original_filename: str,
        original_size: int,
        compressed_size: int,
        uploader_id: str,
        resolution: str = '720p',
        fps: int = 30,
        upload_time: Optional[datetime] = None
    ) -> 'UploadMetadata':
        """Derive ratio, title and timestamp from the raw upload facts."""
        ratio = round(compressed_size / original_size, 4) if original_size else 1.0
        title = original_filename.rsplit('.', 1)[0] if '.' in original_filename else original_filename
        moment = upload_time or datetime.now(timezone.utc)
        return cls(
            file_id=file_id,
            original_filename=original_filename,
            original_size=original_size,
            compressed_size=compressed_size,
            compression_ratio=ratio,
            resolution=resolution,
            fps=fps,
            upload_time=moment.isoformat(),
            uploader_id=uploader_id,
            title=title,
        )

    @property
    def container_tag(self) -> str:
        return f"video_{self.file_id}"

    @property
    def content_name(self) -> str:
        return f"{self.file_id}.mp4"

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class ContainerHandle:
    """Phase 1 result: where phase 2 attaches the payload."""

    container_id: str
    attach_target: str
    html_url: str


@dataclass(frozen=True)
class AttachedPayload:
    """Phase 2 result as reported by the content host."""

    asset_id: str
    download_url: str
    name: str


@dataclass(frozen=True)
class DeliveryResult:
    """Final identifiers of a delivered upload."""

    release_id: str
    asset_id: str
    asset_url: str
    release_url: str
    file_name: str


@dataclass
class CacheEntry(Generic[T]):
    """Cached value with its absolute expiry instant."""

    value: T
    expires_at: float

    def is_fresh(self, now: float) -> bool:
        return now < self.expires_at


@dataclass
class RateWindow:
    """Per-client counter for one fixed window."""

    count: int
    reset_at: float


@dataclass(frozen=True)
class ReportRequest:
    """A user report against an uploaded file."""

    file_url: str
    release_id: str
    reason: str
    additional_info: str = ''

    def validate(self) -> None:
        """
        Check required fields and the reason code.

        Raises:
            ValidationError: If a field is missing or the reason is unknown
        """
        missing = [
            name for name in ('file_url', 'release_id', 'reason')
            if not str(getattr(self, name) or '').strip()
        ]
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")
        if self.reason not in REPORT_REASONS:
            raise ValidationError(f"Invalid reason: {self.reason}")

    def to_payload(self) -> Dict[str, Any]:
        return {
            'file_url': self.file_url,
            'release_id': self.release_id,
            'reason': self.reason,
            'additionalInfo': self.additional_info,
        }


@dataclass(frozen=True)
class ReportReceipt:
    """Acknowledgement for an accepted report."""

    report_id: str
    timestamp: str


@dataclass
class UploadOutcome:
    """Result of a full compress-then-deliver run."""

    success: bool
    message: str
    result: Optional[DeliveryResult] = None
    metadata: Optional[UploadMetadata] = None
    compression: Optional[CompressionResult] = None
    error: Optional[Exception] = None
    metrics: Dict[str, Any] = field(default_factory=dict)

    @property
    def retryable(self) -> bool:
        return bool(self.error is not None and getattr(self.error, 'retryable', False))
