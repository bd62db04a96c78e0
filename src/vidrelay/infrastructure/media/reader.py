"""Binary sources and the reader that loads them into memory."""

import mimetypes
from pathlib import Path
from typing import Optional, Any, BinaryIO

from vidrelay.domain.models import VideoDescriptor
from vidrelay.domain.exceptions import ValidationError
from vidrelay.shared.logging import get_logger
from vidrelay.shared.types import PathLike

logger = get_logger(__name__)


class LocalVideoFile:
    """
    A video on the local filesystem.
    Implements IBinarySource protocol.
    """

    def __init__(
        self,
        path: PathLike,
        mime_type: Optional[str] = None,
        descriptor: Optional[VideoDescriptor] = None
    ):
        self.path = Path(path)
        self._mime_type = mime_type
        self._descriptor = descriptor

    @property
    def name(self) -> str:
        return self.path.name

    @property
    def mime_type(self) -> str:
        if self._mime_type:
            return self._mime_type
        guessed, _ = mimetypes.guess_type(self.path.name)
        return guessed or 'application/octet-stream'

    @property
    def size(self) -> int:
        return self.path.stat().st_size

    @property
    def descriptor(self) -> Optional[VideoDescriptor]:
        return self._descriptor

    def read_bytes(self) -> bytes:
        return self.path.read_bytes()


class InMemoryVideo:
    """
    A video already held in memory (e.g. received from a form upload).
    Implements IBinarySource protocol.
    """

    def __init__(
        self,
        data: bytes,
        name: str,
        mime_type: str = 'video/mp4',
        descriptor: Optional[VideoDescriptor] = None
    ):
        self._data = bytes(data)
        self._name = name
        self._mime_type = mime_type
        self._descriptor = descriptor

    @property
    def name(self) -> str:
        return self._name

    @property
    def mime_type(self) -> str:
        return self._mime_type

    @property
    def size(self) -> int:
        return len(self._data)

    @property
    def descriptor(self) -> Optional[VideoDescriptor]:
        return self._descriptor

    def read_bytes(self) -> bytes:
        return self._data


class BinaryReader:
    """Reads a source fully into memory as raw bytes."""

    def __init__(self, chunk_size: int = 1024 * 1024):
        self.chunk_size = chunk_size

    def read(self, source: Any) -> bytes:
        """
        Read a binary source completely.

        Accepts IBinarySource objects, paths, and binary file objects.

        Raises:
            ValidationError: If the source is not readable as bytes
        """
        if hasattr(source, 'read_bytes'):
            data = source.read_bytes()
        elif isinstance(source, (str, Path)):
            path = Path(source)
            if not path.is_file():
                raise ValidationError(f"File not found: {path}")
            data = path.read_bytes()
        elif hasattr(source, 'read'):
            data = self._read_stream(source)
        else:
            raise ValidationError(f"Unsupported binary source: {type(source).__name__}")

        if not isinstance(data, (bytes, bytearray, memoryview)):
            raise ValidationError("Source did not produce bytes")

        data = bytes(data)
        logger.debug(f"Read {len(data)} bytes from {getattr(source, 'name', source)!s}")
        return data

    def _read_stream(self, stream: BinaryIO) -> bytes:
        chunks = []
        while True:
            chunk = stream.read(self.chunk_size)
            if not chunk:
                break
            if isinstance(chunk, str):
                raise ValidationError("Stream is opened in text mode")
            chunks.append(chunk)
        return b''.join(chunks)
