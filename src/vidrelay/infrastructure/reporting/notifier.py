"""Moderator notifications for submitted reports."""

from datetime import datetime
from typing import Dict, Any, Optional

import requests
from requests.exceptions import RequestException

from vidrelay.domain.models import REPORT_REASONS
from vidrelay.domain.exceptions import ConfigurationError, NetworkError, Timeout, UpstreamError
from vidrelay.shared.logging import get_logger

logger = get_logger(__name__)

EMBED_COLOR = 0xFF5252
FOOTER_TEXT = 'vidrelay reporting'


def build_embed(report: Dict[str, Any]) -> Dict[str, Any]:
    """Render a report as a Discord embed."""
    timestamp = datetime.fromisoformat(report['timestamp'])

    return {
        'title': 'File report received',
        'description': f"**Reason**: {REPORT_REASONS.get(report['reason'], 'Unknown')}",
        'color': EMBED_COLOR,
        'fields': [
            {'name': 'File URL', 'value': f"[Link]({report['file_url']})", 'inline': False},
            {'name': 'Release ID', 'value': f"`{report['release_id']}`", 'inline': True},
            {'name': 'Reported at', 'value': timestamp.strftime('%Y-%m-%d %H:%M:%S %Z').strip(), 'inline': True},
            {'name': 'Additional info', 'value': report.get('additionalInfo') or 'None', 'inline': False},
            {'name': 'Report ID', 'value': f"`{report['report_id']}`", 'inline': True},
            {'name': 'Reporter', 'value': f"`{report.get('reporter_id') or 'Unknown'}`", 'inline': True},
        ],
        'footer': {'text': FOOTER_TEXT},
        'timestamp': timestamp.isoformat(),
    }


def build_admin_instructions(release_id: str) -> str:
    """Deletion steps for the moderator who handles the report."""
    return (
        "Removal steps:\n"
        f"1. Inspect the container: GET file-info?action=get-container&containerId={release_id}\n"
        f"2. Delete it: POST upload {{\"action\": \"delete-container\", \"containerId\": \"{release_id}\"}}\n"
        f"   or run: vidrelay delete {release_id}\n"
        "3. Confirm on the host dashboard"
    )


class DiscordWebhookNotifier:
    """Posts report notifications to a Discord webhook."""

    def __init__(
        self,
        webhook_url: Optional[str],
        timeout: float = 10.0,
        session: Optional[requests.Session] = None,
        username: str = 'vidrelay reporter'
    ):
        self.webhook_url = webhook_url
        self.timeout = timeout
        self.username = username
        self._session = session or requests.Session()
        self._logger = get_logger(__name__)

    def build_payload(self, report: Dict[str, Any]) -> Dict[str, Any]:
        return {
            'username': self.username,
            'embeds': [build_embed(report)],
            'content': f"```\n{build_admin_instructions(report['release_id'])}\n```",
        }

    def notify(self, report: Dict[str, Any]) -> int:
        """
        Send one report.

        Returns:
            HTTP status code of the webhook response

        Raises:
            ConfigurationError: If no webhook URL is configured
            Timeout, NetworkError: On transport failures
            UpstreamError: If the webhook answers non-2xx
        """
        if not self.webhook_url:
            raise ConfigurationError("DISCORD_WEBHOOK_URL is not set")

        try:
            response = self._session.post(
                self.webhook_url,
                json=self.build_payload(report),
                timeout=self.timeout
            )
        except requests.exceptions.Timeout as e:
            raise Timeout(f"Webhook timeout ({self.timeout:.0f}s)", seconds=self.timeout) from e
        except RequestException as e:
            raise NetworkError(f"Network error: {e}") from e

        if not 200 <= response.status_code < 300:
            raise UpstreamError(
                response.status_code,
                f"Discord API returned {response.status_code}: {response.text[:200]}"
            )

        self._logger.info(f"[Report] Sent to Discord - Status: {response.status_code}")
        return response.status_code
