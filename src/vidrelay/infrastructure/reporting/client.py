"""Client-side report submission."""

from vidrelay.domain.models import ReportRequest, ReportReceipt
from vidrelay.domain.exceptions import UpstreamError, ProtocolError
from vidrelay.domain.protocols import ITransport
from vidrelay.shared.logging import get_logger

logger = get_logger(__name__)

REPORT_ENDPOINT = 'report-submit'


class ReportClient:
    """Sends user reports to the report-submit function."""

    def __init__(self, transport: ITransport):
        self._transport = transport

    def submit_report(self, request: ReportRequest) -> ReportReceipt:
        """
        Submit a report.

        Raises:
            ValidationError: If the request is incomplete or the reason is
                unknown; raised before anything is sent
            UpstreamError: On rejection, including 429 when rate limited
        """
        request.validate()

        logger.info(f"Submitting report for {request.release_id} ({request.reason})")
        response = self._transport.call(REPORT_ENDPOINT, 'POST', body=request.to_payload())

        if not response.get('success', False):
            raise UpstreamError(400, response.get('error') or 'Failed to submit report')

        try:
            receipt = ReportReceipt(report_id=str(response['report_id']), timestamp=str(response['timestamp']))
        except KeyError as e:
            raise ProtocolError(f"Report response is missing {e}") from e

        logger.info(f"Report submitted: {receipt.report_id}")
        return receipt
