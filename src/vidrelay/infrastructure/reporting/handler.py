"""Server-side handler for report submissions."""

import json
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, Any, Optional, Callable, Mapping

from vidrelay.domain.models import ReportRequest
from vidrelay.domain.exceptions import DomainException, ValidationError, ConfigurationError
from vidrelay.domain.protocols import IRateLimiter
from vidrelay.infrastructure.reporting.notifier import DiscordWebhookNotifier
from vidrelay.shared.logging import get_logger

logger = get_logger(__name__)

JSON_HEADERS = {'Content-Type': 'application/json'}
CORS_HEADERS = {
    'Access-Control-Allow-Origin': '*',
    'Access-Control-Allow-Methods': 'POST',
    'Access-Control-Allow-Headers': 'Content-Type',
}


@dataclass(frozen=True)
class HandlerResponse:
    """HTTP-shaped answer of a function handler."""

    status_code: int
    body: Dict[str, Any] = field(default_factory=dict)
    headers: Dict[str, str] = field(default_factory=dict)

    def to_json(self) -> str:
        return json.dumps(self.body)


def client_id_from_headers(headers: Mapping[str, str]) -> str:
    """Identify the caller the way the hosting proxy reports it."""
    lowered = {k.lower(): v for k, v in headers.items()}
    forwarded = lowered.get('x-forwarded-for', '')
    return lowered.get('client-ip') or forwarded.split(',')[0].strip() or 'unknown'


class ReportSubmissionHandler:
    """
    Accepts user reports, rate-limited per client.

    Status codes: 200 accepted, 400 invalid, 405 wrong method,
    429 rate limited, 502 notification failed, 500 misconfigured.
    """

    def __init__(
        self,
        rate_limiter: IRateLimiter,
        notifier: DiscordWebhookNotifier,
        id_factory: Callable[[], str] = lambda: str(uuid.uuid4()),
        now: Callable[[], datetime] = lambda: datetime.now(timezone.utc)
    ):
        self._limiter = rate_limiter
        self._notifier = notifier
        self._id_factory = id_factory
        self._now = now
        self._logger = get_logger(__name__)

    def handle(
        self,
        method: str,
        headers: Optional[Mapping[str, str]] = None,
        body: Optional[str] = None
    ) -> HandlerResponse:
        headers = headers or {}
        method = method.upper()

        if method == 'OPTIONS':
            return HandlerResponse(200, headers=dict(CORS_HEADERS))

        if method != 'POST':
            return HandlerResponse(405, {'success': False, 'error': 'Method not allowed'}, dict(JSON_HEADERS))

        client_id = client_id_from_headers(headers)
        if not self._limiter.allow(client_id):
            self._logger.warning(
                f"[Report] Rejected {client_id}: {self._limiter.count(client_id)} reports this window"
            )
            return HandlerResponse(
                429,
                {
                    'success': False,
                    'error': f"Report rate limit exceeded. Max {getattr(self._limiter, 'limit', 10)} reports per hour per IP.",
                },
                {**JSON_HEADERS, 'Retry-After': str(self._limiter.retry_after(client_id))},
            )

        try:
            request = self._parse(body)
            request.validate()
        except ValidationError as e:
            self._logger.warning(f"[Report Error] {e}")
            return HandlerResponse(400, {'success': False, 'error': str(e)}, dict(JSON_HEADERS))

        report = {
            'report_id': self._id_factory(),
            **request.to_payload(),
            'reporter_id': client_id,
            'timestamp': self._now().isoformat(),
        }
        self._logger.info(f"[Report] {report['report_id']} - {report['reason']}")

        try:
            self._notifier.notify(report)
        except ConfigurationError as e:
            self._logger.error(f"[Report Error] {e}")
            return HandlerResponse(500, {'success': False, 'error': str(e)}, dict(JSON_HEADERS))
        except DomainException as e:
            self._logger.error(f"[Report Error] notification failed: {e}")
            return HandlerResponse(
                502, {'success': False, 'error': 'Failed to deliver report'}, dict(JSON_HEADERS)
            )

        return HandlerResponse(
            200,
            {
                'success': True,
                'report_id': report['report_id'],
                'timestamp': report['timestamp'],
                'message': 'Report submitted successfully',
            },
            dict(JSON_HEADERS),
        )

    @staticmethod
    def _parse(body: Optional[str]) -> ReportRequest:
        try:
            raw = json.loads(body or '{}')
        except ValueError as e:
            raise ValidationError(f"Request body is not valid JSON: {e}") from e

        if not isinstance(raw, dict):
            raise ValidationError("Request body must be a JSON object")

        return ReportRequest(
            file_url=str(raw.get('file_url') or ''),
            release_id=str(raw.get('release_id') or ''),
            reason=str(raw.get('reason') or ''),
            additional_info=str(raw.get('additionalInfo') or ''),
        )
