"""Transport client for the intermediary function layer."""

from typing import Dict, Any, Optional

import requests
from requests.exceptions import RequestException

from vidrelay.domain.exceptions import Timeout, UpstreamError, NetworkError, ProtocolError
from vidrelay.shared.logging import get_logger

logger = get_logger(__name__)

DEFAULT_TIMEOUT = 30.0


class TransportClient:
    """
    Issues JSON requests against the function layer and classifies failures.
    Implements ITransport protocol.

    Every failure is raised as a typed exception; nothing is retried here.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = DEFAULT_TIMEOUT,
        session: Optional[requests.Session] = None
    ):
        """
        Initialize transport client.

        Args:
            base_url: Base URL of the function layer, e.g. https://site/.netlify/functions
            timeout: Per-request timeout in seconds
            session: Optional preconfigured session
        """
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self._logger = get_logger(__name__)

        self.session = session or requests.Session()
        self.session.headers.update({
            'Accept': 'application/json',
            'Content-Type': 'application/json',
        })

    def url_for(self, endpoint: str) -> str:
        return f"{self.base_url}/{endpoint.lstrip('/')}"

    def call(
        self,
        endpoint: str,
        method: str = 'POST',
        body: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
        timeout: Optional[float] = None
    ) -> Dict[str, Any]:
        """
        Make a request and return the decoded JSON object.

        Args:
            endpoint: Function name relative to base_url
            method: HTTP method
            body: JSON body
            params: Query string parameters
            timeout: Override of the client timeout for this call

        Returns:
            Response JSON object

        Raises:
            Timeout: If no response arrives within the timeout
            NetworkError: On connection-level failures
            UpstreamError: On a non-2xx status
            ProtocolError: If the body is not a JSON object
        """
        url = self.url_for(endpoint)
        limit = self.timeout if timeout is None else timeout
        method = method.upper()

        self._logger.debug(f"{method} {url}")

        try:
            response = self.session.request(
                method,
                url,
                json=body,
                params=params,
                timeout=limit
            )
        except requests.exceptions.Timeout as e:
            self._logger.error(f"{method} {endpoint} timed out after {limit:.0f}s")
            raise Timeout(f"Request timeout ({limit:.0f}s)", seconds=limit) from e
        except RequestException as e:
            self._logger.error(f"{method} {endpoint} failed: {e}")
            raise NetworkError(f"Network error: {e}") from e

        data = self._decode(response, endpoint)

        if not 200 <= response.status_code < 300:
            message = None
            if isinstance(data, dict):
                message = data.get('error') or data.get('message')
            self._logger.error(f"{method} {endpoint} returned {response.status_code}: {message}")
            raise UpstreamError(response.status_code, message)

        if not isinstance(data, dict):
            raise ProtocolError(f"{endpoint} returned JSON {type(data).__name__}, expected an object")

        return data

    def _decode(self, response: requests.Response, endpoint: str) -> Any:
        try:
            return response.json()
        except ValueError as e:
            if not 200 <= response.status_code < 300:
                # An error page that is not JSON still carries a usable status.
                raise UpstreamError(response.status_code) from e
            raise ProtocolError(f"{endpoint} returned a body that is not JSON") from e

    def close(self) -> None:
        self.session.close()
