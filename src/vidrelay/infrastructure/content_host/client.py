"""Content host client over the function layer."""

from typing import Dict, Any, List, Optional

from vidrelay.domain.models import UploadMetadata, ContainerHandle, AttachedPayload
from vidrelay.domain.exceptions import UpstreamError, ProtocolError, ValidationError
from vidrelay.domain.protocols import ITransport, IResponseCache
from vidrelay.shared.logging import get_logger

logger = get_logger(__name__)

UPLOAD_ENDPOINT = 'upload'
FILE_INFO_ENDPOINT = 'file-info'
RECENT_KEY_PREFIX = 'releases:'


def file_key(container_id: str) -> str:
    return f"file:{container_id}"


def recent_key(limit: int) -> str:
    return f"{RECENT_KEY_PREFIX}latest:{limit}"


def _envelope_status(response: Dict[str, Any]) -> int:
    """HTTP status carried by a failed envelope; 502 when absent or unusable."""
    try:
        status = int(response.get('status') or 502)
    except (TypeError, ValueError):
        return 502
    return status if 400 <= status <= 599 else 502


class ContentHostClient:
    """
    Create/attach/delete/get/list operations against the content host.
    Implements IContentHost protocol.

    Reads (get_container_info, list_recent) go through the response cache;
    writes invalidate the keys they affect.
    """

    def __init__(self, transport: ITransport, cache: IResponseCache):
        self._transport = transport
        self._cache = cache
        self._logger = get_logger(__name__)

    def create_container(self, tag: str, metadata: UploadMetadata) -> ContainerHandle:
        """
        Allocate a container named `tag` carrying metadata.

        Raises:
            UpstreamError: If the host rejects creation (auth, quota, validation)
            ProtocolError: If the answer lacks the container fields
        """
        self._logger.info(f"Creating container: {tag}")
        data = self._post({
            'action': 'create-container',
            'tag': tag,
            'metadata': metadata.to_dict(),
        }, 'Failed to create container')

        handle = ContainerHandle(
            container_id=self._require(data, 'container_id'),
            attach_target=self._require(data, 'attach_target'),
            html_url=str(data.get('html_url') or ''),
        )
        self._cache.invalidate_matching(RECENT_KEY_PREFIX)

        self._logger.info(f"Container created: {handle.container_id}")
        return handle

    def attach_payload(self, attach_target: str, payload_b64: str, name: str) -> AttachedPayload:
        """
        Attach base64 content to a container.

        Raises:
            UpstreamError: If the host rejects the payload
            ProtocolError: If the answer lacks the asset fields
        """
        self._logger.info(f"Uploading asset: {name} ({len(payload_b64)} base64 chars)")
        data = self._post({
            'action': 'attach-payload',
            'attachTarget': attach_target,
            'fileBase64': payload_b64,
            'fileName': name,
        }, 'Failed to upload asset')

        payload = AttachedPayload(
            asset_id=self._require(data, 'asset_id'),
            download_url=self._require(data, 'download_url'),
            name=str(data.get('name') or name),
        )
        self._logger.info(f"Asset uploaded: {payload.asset_id}")
        return payload

    def delete_container(self, container_id: str) -> bool:
        self._logger.info(f"Deleting container: {container_id}")
        self._post({
            'action': 'delete-container',
            'containerId': container_id,
        }, 'Failed to delete container')

        self._cache.invalidate(file_key(container_id))
        self._cache.invalidate_matching(RECENT_KEY_PREFIX)
        return True

    def get_container_info(self, container_id: str) -> Dict[str, Any]:
        if not str(container_id).strip():
            raise ValidationError("container_id is required")

        def _fetch() -> Dict[str, Any]:
            self._logger.info(f"Getting file info: {container_id}")
            data = self._get({'action': 'get-container', 'containerId': container_id})
            if not isinstance(data, dict):
                raise ProtocolError("file-info returned a non-object container record")
            return data

        return self._cache.with_cache(file_key(container_id), _fetch)

    def list_recent(self, limit: int = 10) -> List[Dict[str, Any]]:
        if limit < 1:
            raise ValidationError("limit must be positive")

        def _fetch() -> List[Dict[str, Any]]:
            self._logger.info(f"Getting latest releases (limit: {limit})")
            data = self._get({'action': 'list-recent', 'limit': limit})
            if not isinstance(data, list):
                raise ProtocolError("file-info returned a non-list release listing")
            return data

        return self._cache.with_cache(recent_key(limit), _fetch)

    def _post(self, body: Dict[str, Any], failure: str) -> Dict[str, Any]:
        response = self._transport.call(UPLOAD_ENDPOINT, 'POST', body=body)
        return self._unwrap(response, failure)

    def _get(self, params: Dict[str, Any]) -> Any:
        response = self._transport.call(FILE_INFO_ENDPOINT, 'GET', params=params)
        return self._unwrap(response, 'Failed to get file info', allow_any=True)

    @staticmethod
    def _unwrap(response: Dict[str, Any], failure: str, allow_any: bool = False) -> Any:
        """Check the {success, data, error} envelope and return data."""
        if not response.get('success', False):
            raise UpstreamError(_envelope_status(response), response.get('error') or failure)

        if 'data' not in response:
            raise ProtocolError(f"{failure}: response has no data")

        data = response['data']
        if not allow_any and not isinstance(data, dict):
            raise ProtocolError(f"{failure}: data is not an object")
        return data

    @staticmethod
    def _require(data: Dict[str, Any], field_name: str) -> str:
        value = data.get(field_name)
        if value is None or value == '':
            raise ProtocolError(f"Response is missing '{field_name}'")
        return str(value)
