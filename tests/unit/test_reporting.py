"""Tests for report submission: client, server handler and webhook notifier."""

import json
from datetime import datetime, timezone

import pytest
import requests
from unittest.mock import Mock

from vidrelay.domain.exceptions import (
    ValidationError, UpstreamError, ProtocolError, ConfigurationError, NetworkError, Timeout
)
from vidrelay.domain.models import ReportRequest
from vidrelay.infrastructure.ratelimit import FixedWindowRateLimiter
from vidrelay.infrastructure.reporting import DiscordWebhookNotifier, ReportClient, ReportSubmissionHandler
from vidrelay.infrastructure.reporting.handler import client_id_from_headers
from vidrelay.infrastructure.reporting.notifier import build_embed, build_admin_instructions

FIXED_NOW = datetime(2024, 5, 1, 12, 30, tzinfo=timezone.utc)


def report_body(**overrides):
    body = {
        'file_url': 'https://dl/c-42/abc.mp4',
        'release_id': 'c-42',
        'reason': 'copyright',
        'additionalInfo': 'My film',
    }
    body.update(overrides)
    return json.dumps(body)


class TestReportClient:
    """Test client-side submission."""

    def test_invalid_reason_fails_before_network(self):
        transport = Mock()
        client = ReportClient(transport)

        with pytest.raises(ValidationError):
            client.submit_report(ReportRequest('https://dl/x.mp4', 'c-1', 'not-a-real-reason'))

        transport.call.assert_not_called()

    def test_submits(self):
        transport = Mock()
        transport.call.return_value = {'success': True, 'report_id': 'r-1', 'timestamp': '2024-05-01T12:30:00+00:00'}

        receipt = ReportClient(transport).submit_report(ReportRequest('https://dl/x.mp4', 'c-1', 'malware', 'virus'))

        assert receipt.report_id == 'r-1'
        endpoint, method = transport.call.call_args.args
        assert (endpoint, method) == ('report-submit', 'POST')
        assert transport.call.call_args.kwargs['body']['additionalInfo'] == 'virus'

    def test_rejection(self):
        transport = Mock()
        transport.call.return_value = {'success': False, 'error': 'Invalid reason'}

        with pytest.raises(UpstreamError) as exc_info:
            ReportClient(transport).submit_report(ReportRequest('u', 'c', 'other'))
        assert exc_info.value.status_code == 400

    def test_rate_limited_propagates(self):
        transport = Mock()
        transport.call.side_effect = UpstreamError(429, 'Report rate limit exceeded.')

        with pytest.raises(UpstreamError) as exc_info:
            ReportClient(transport).submit_report(ReportRequest('u', 'c', 'other'))
        assert exc_info.value.is_rate_limited

    def test_incomplete_receipt(self):
        transport = Mock()
        transport.call.return_value = {'success': True}

        with pytest.raises(ProtocolError):
            ReportClient(transport).submit_report(ReportRequest('u', 'c', 'other'))


@pytest.fixture
def notifier():
    n = Mock(spec=DiscordWebhookNotifier)
    n.notify.return_value = 204
    return n


@pytest.fixture
def handler(clock, notifier):
    limiter = FixedWindowRateLimiter(limit=10, window_seconds=3600, clock=clock)
    ids = iter(f"report-{i}" for i in range(100))
    return ReportSubmissionHandler(limiter, notifier, id_factory=lambda: next(ids), now=lambda: FIXED_NOW)


class TestReportSubmissionHandler:
    """Test the server-side handler."""

    def test_accepts_report(self, handler, notifier):
        response = handler.handle('POST', {'x-forwarded-for': '9.9.9.9, 10.0.0.1'}, report_body())

        assert response.status_code == 200
        assert response.body['success'] is True
        assert response.body['report_id'] == 'report-0'
        assert response.body['timestamp'] == FIXED_NOW.isoformat()

        report = notifier.notify.call_args.args[0]
        assert report['reporter_id'] == '9.9.9.9'
        assert report['reason'] == 'copyright'
        assert report['additionalInfo'] == 'My film'

    def test_eleventh_report_is_rate_limited(self, handler):
        headers = {'client-ip': '1.1.1.1'}
        statuses = [handler.handle('POST', headers, report_body()).status_code for _ in range(11)]

        assert statuses == [200] * 10 + [429]

        limited = handler.handle('POST', headers, report_body())
        assert 'Max 10 reports per hour per IP' in limited.body['error']
        assert int(limited.headers['Retry-After']) > 0

    def test_other_client_unaffected(self, handler):
        for _ in range(11):
            handler.handle('POST', {'client-ip': '1.1.1.1'}, report_body())

        assert handler.handle('POST', {'client-ip': '2.2.2.2'}, report_body()).status_code == 200

    def test_window_reset(self, handler, clock):
        for _ in range(11):
            handler.handle('POST', {'client-ip': '1.1.1.1'}, report_body())
        clock.advance(3601)
        assert handler.handle('POST', {'client-ip': '1.1.1.1'}, report_body()).status_code == 200

    @pytest.mark.parametrize("body", [
        report_body(reason='spam'),
        report_body(file_url=''),
        json.dumps({'reason': 'other'}),
        'not json',
        json.dumps([1, 2]),
    ])
    def test_invalid_report(self, handler, notifier, body):
        response = handler.handle('POST', {}, body)

        assert response.status_code == 400
        assert response.body['success'] is False
        notifier.notify.assert_not_called()

    def test_method_not_allowed(self, handler):
        assert handler.handle('GET').status_code == 405

    def test_preflight(self, handler):
        response = handler.handle('OPTIONS')
        assert response.status_code == 200
        assert response.headers['Access-Control-Allow-Methods'] == 'POST'

    def test_webhook_failure_is_502(self, handler, notifier):
        notifier.notify.side_effect = UpstreamError(500, 'Discord down')
        response = handler.handle('POST', {}, report_body())
        assert response.status_code == 502

    def test_missing_webhook_is_500(self, handler, notifier):
        notifier.notify.side_effect = ConfigurationError('DISCORD_WEBHOOK_URL is not set')
        assert handler.handle('POST', {}, report_body()).status_code == 500

    def test_response_json(self, handler):
        response = handler.handle('POST', {}, report_body())
        assert json.loads(response.to_json())['report_id'] == 'report-0'


@pytest.mark.parametrize("headers, expected", [
    ({'Client-IP': '1.2.3.4'}, '1.2.3.4'),
    ({'X-Forwarded-For': '5.6.7.8, 10.0.0.1'}, '5.6.7.8'),
    ({}, 'unknown'),
])
def test_client_id_from_headers(headers, expected):
    assert client_id_from_headers(headers) == expected


class TestDiscordWebhookNotifier:
    """Test the moderator webhook."""

    @pytest.fixture
    def report(self):
        return {
            'report_id': 'r-1',
            'file_url': 'https://dl/c-42/abc.mp4',
            'release_id': 'c-42',
            'reason': 'harassment',
            'additionalInfo': '',
            'reporter_id': '9.9.9.9',
            'timestamp': FIXED_NOW.isoformat(),
        }

    def test_embed(self, report):
        embed = build_embed(report)
        fields = {f['name']: f['value'] for f in embed['fields']}

        assert 'Harassment or threats' in embed['description']
        assert fields['Release ID'] == '`c-42`'
        assert fields['Additional info'] == 'None'
        assert embed['timestamp'] == FIXED_NOW.isoformat()

    def test_admin_instructions_name_container(self):
        assert 'vidrelay delete c-42' in build_admin_instructions('c-42')

    def test_notify_posts_payload(self, report):
        session = Mock(spec=requests.Session)
        session.post.return_value = Mock(status_code=204, text='')

        status = DiscordWebhookNotifier('https://discord/hook', session=session).notify(report)

        assert status == 204
        payload = session.post.call_args.kwargs['json']
        assert payload['embeds'][0]['title'] == 'File report received'
        assert 'c-42' in payload['content']

    def test_missing_url(self, report):
        with pytest.raises(ConfigurationError):
            DiscordWebhookNotifier(None).notify(report)

    def test_http_error(self, report):
        session = Mock(spec=requests.Session)
        session.post.return_value = Mock(status_code=400, text='bad embed')

        with pytest.raises(UpstreamError) as exc_info:
            DiscordWebhookNotifier('https://discord/hook', session=session).notify(report)
        assert exc_info.value.status_code == 400

    def test_transport_errors(self, report):
        session = Mock(spec=requests.Session)
        notifier = DiscordWebhookNotifier('https://discord/hook', session=session)

        session.post.side_effect = requests.exceptions.ConnectTimeout('slow')
        with pytest.raises(Timeout):
            notifier.notify(report)

        session.post.side_effect = requests.exceptions.ConnectionError('refused')
        with pytest.raises(NetworkError):
            notifier.notify(report)
