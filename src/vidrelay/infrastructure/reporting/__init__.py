"""Report submission package."""

from vidrelay.infrastructure.reporting.notifier import DiscordWebhookNotifier
from vidrelay.infrastructure.reporting.handler import ReportSubmissionHandler, HandlerResponse
from vidrelay.infrastructure.reporting.client import ReportClient

__all__ = ["DiscordWebhookNotifier", "ReportSubmissionHandler", "HandlerResponse", "ReportClient"]
