"""Two-phase delivery: create a container, then attach the payload."""

import base64
from typing import Optional

from vidrelay.domain.models import UploadMetadata, DeliveryResult
from vidrelay.domain.protocols import IContentHost, ProgressCallback
from vidrelay.shared.logging import get_logger
from vidrelay.shared.progress import ProgressReporter

logger = get_logger(__name__)

# Phase 1 owns the first quarter of this pipeline's own progress.
CONTAINER_PHASE_END = 25.0


def encode_payload(blob: bytes) -> str:
    """Encode the whole payload for a JSON request body."""
    return base64.b64encode(blob).decode('ascii')


class DeliveryPipeline:
    """
    Delivers one blob to the content host.
    Implements IDeliveryPipeline protocol.

    No retries and no partial state: if phase 2 fails the container from
    phase 1 is left behind, unless cleanup_orphans asks for a best-effort
    delete before the error is re-raised.
    """

    def __init__(self, content_host: IContentHost, cleanup_orphans: bool = False):
        self._host = content_host
        self.cleanup_orphans = cleanup_orphans
        self._logger = get_logger(__name__)

    def upload_with_metadata(
        self,
        blob: bytes,
        metadata: UploadMetadata,
        on_progress: Optional[ProgressCallback] = None
    ) -> DeliveryResult:
        """
        Create the container, attach the blob, and return its identifiers.

        Raises:
            UpstreamError, Timeout, NetworkError, ProtocolError: from either phase
        """
        progress = on_progress if isinstance(on_progress, ProgressReporter) else ProgressReporter(on_progress)

        progress.report(5, 'Creating container...')
        container = self._host.create_container(metadata.container_tag, metadata)
        progress.report(CONTAINER_PHASE_END, 'Uploading file to server...')

        attach_progress = progress.phase(CONTAINER_PHASE_END, 100 - CONTAINER_PHASE_END)
        try:
            attach_progress(10, 'Encoding payload...')
            payload = encode_payload(blob)
            attach_progress(50, 'Sending to server...')
            asset = self._host.attach_payload(container.attach_target, payload, metadata.content_name)
            attach_progress(100, 'Upload complete')
        except Exception as e:
            self._logger.error(
                f"Attach failed for container {container.container_id}; container left without content: {e}"
            )
            if self.cleanup_orphans:
                self._delete_orphan(container.container_id)
            raise

        progress.report(100, 'Upload complete!')

        return DeliveryResult(
            release_id=container.container_id,
            asset_id=asset.asset_id,
            asset_url=asset.download_url,
            release_url=container.html_url,
            file_name=asset.name,
        )

    def _delete_orphan(self, container_id: str) -> None:
        try:
            self._host.delete_container(container_id)
            self._logger.info(f"Removed orphaned container {container_id}")
        except Exception as e:
            self._logger.warning(f"Could not remove orphaned container {container_id}: {e}")
