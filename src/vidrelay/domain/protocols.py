"""Protocol definitions for dependency inversion."""

from typing import Protocol, List, Optional, Any, Dict, Callable, TypeVar
from pathlib import Path

from .models import (
    VideoDescriptor,
    CompressionParameters,
    CompressionResult,
    ContainerHandle,
    AttachedPayload,
    UploadMetadata,
    DeliveryResult,
)

T = TypeVar('T')

ProgressCallback = Callable[[float, str], None]


class IBinarySource(Protocol):
    """A local video the caller wants to upload."""

    @property
    def name(self) -> str:
        ...

    @property
    def mime_type(self) -> str:
        ...

    @property
    def size(self) -> int:
        ...

    @property
    def descriptor(self) -> Optional[VideoDescriptor]:
        """Declared stream properties, if the caller knows them."""
        ...

    def read_bytes(self) -> bytes:
        """Read the whole source into memory."""
        ...


class ICompressor(Protocol):
    """Capability shared by the transcoding engine and plain pass-through."""

    def compress(
        self,
        source: IBinarySource,
        on_progress: Optional[ProgressCallback] = None,
        wait: bool = True
    ) -> CompressionResult:
        """Produce the bytes to deliver, compressed when possible."""
        ...


class ITranscoderBackend(Protocol):
    """Optional encoder toolchain driven by the transcoding engine."""

    name: str

    def load(self) -> None:
        """Initialize the backend; raise if it cannot be used."""
        ...

    def stage(self, data: bytes, source_name: str) -> Any:
        """Copy input into transient storage and return a handle to it."""
        ...

    def probe(self, staged: Any) -> VideoDescriptor:
        """Read stream properties of staged input."""
        ...

    def encode(
        self,
        staged: Any,
        parameters: CompressionParameters,
        on_progress: Optional[ProgressCallback] = None,
        descriptor: Optional[VideoDescriptor] = None
    ) -> bytes:
        """Encode staged input and return the output bytes."""
        ...

    def release(self, staged: Any) -> None:
        """Free the transient storage behind a staged handle."""
        ...

    def close(self) -> None:
        """Release anything still held when the engine shuts down."""
        ...


class ITransport(Protocol):
    """JSON request channel to the intermediary function layer."""

    def call(
        self,
        endpoint: str,
        method: str = 'POST',
        body: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        ...


class IContentHost(Protocol):
    """Container-and-attachment storage behind the function layer."""

    def create_container(self, tag: str, metadata: UploadMetadata) -> ContainerHandle:
        ...

    def attach_payload(self, attach_target: str, payload_b64: str, name: str) -> AttachedPayload:
        ...

    def delete_container(self, container_id: str) -> bool:
        ...

    def get_container_info(self, container_id: str) -> Dict[str, Any]:
        ...

    def list_recent(self, limit: int = 10) -> List[Dict[str, Any]]:
        ...


class IDeliveryPipeline(Protocol):
    """Two-phase delivery of one compressed blob."""

    def upload_with_metadata(
        self,
        blob: bytes,
        metadata: UploadMetadata,
        on_progress: Optional[ProgressCallback] = None
    ) -> DeliveryResult:
        ...


class IResponseCache(Protocol):
    """TTL cache in front of idempotent reads."""

    def with_cache(self, key: str, compute: Callable[[], T]) -> T:
        ...

    def invalidate(self, key: str) -> bool:
        ...

    def invalidate_matching(self, substring: str) -> int:
        ...

    def clear(self) -> None:
        ...


class IRateLimiter(Protocol):
    """Per-client admission control."""

    def allow(self, client_id: str) -> bool:
        ...

    def count(self, client_id: str) -> int:
        ...

    def retry_after(self, client_id: str) -> int:
        ...


class ITempStorage(Protocol):
    """Interface for managing temporary storage."""

    def create_workspace(self, job_id: str) -> Path:
        """Create a temporary workspace for a job."""
        ...

    def cleanup(self, workspace: Path) -> None:
        """Remove a workspace directory."""
        ...


class ILogger(Protocol):
    """Interface for logging."""

    def bind(self, **context) -> "ILogger":
        """Return a logger that tags every message with context."""
        ...

    def debug(self, message: str, **kwargs) -> None:
        ...

    def info(self, message: str, **kwargs) -> None:
        ...

    def warning(self, message: str, **kwargs) -> None:
        ...

    def error(self, message: str, **kwargs) -> None:
        ...

    def exception(self, message: str, **kwargs) -> None:
        ...


class IMetricsCollector(Protocol):
    """Interface for collecting metrics."""

    def start_timer(self, name: str) -> None:
        ...

    def stop_timer(self, name: str) -> float:
        ...

    def record_metric(self, name: str, value: float) -> None:
        ...

    def increment_counter(self, name: str, amount: int = 1) -> None:
        ...

    def get_summary(self) -> dict:
        ...
