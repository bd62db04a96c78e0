"""Tests for the transport client with a mocked requests session."""

import pytest
import requests
from unittest.mock import Mock

from vidrelay.domain.exceptions import Timeout, UpstreamError, NetworkError, ProtocolError
from vidrelay.infrastructure.http import TransportClient


def make_response(status=200, json_data=None, json_error=False):
    response = Mock(spec=requests.Response)
    response.status_code = status
    if json_error:
        response.json.side_effect = ValueError('No JSON object could be decoded')
    else:
        response.json.return_value = json_data
    return response


@pytest.fixture
def session():
    s = Mock(spec=requests.Session)
    s.headers = {}
    return s


@pytest.fixture
def client(session):
    return TransportClient('https://example.test/.netlify/functions/', timeout=12, session=session)


def test_sets_json_headers(client, session):
    assert session.headers['Content-Type'] == 'application/json'
    assert client.url_for('/upload') == 'https://example.test/.netlify/functions/upload'


def test_successful_call(client, session):
    session.request.return_value = make_response(200, {'success': True, 'data': {'x': 1}})

    data = client.call('file-info', 'get', params={'action': 'get-container'})

    assert data == {'success': True, 'data': {'x': 1}}
    session.request.assert_called_once_with(
        'GET',
        'https://example.test/.netlify/functions/file-info',
        json=None,
        params={'action': 'get-container'},
        timeout=12
    )


def test_timeout_override(client, session):
    session.request.return_value = make_response(200, {})
    client.call('upload', body={'a': 1}, timeout=3)
    assert session.request.call_args.kwargs['timeout'] == 3


def test_timeout_is_classified(client, session):
    session.request.side_effect = requests.exceptions.ReadTimeout('slow')

    with pytest.raises(Timeout) as exc_info:
        client.call('upload', body={})

    assert exc_info.value.seconds == 12
    assert exc_info.value.retryable


def test_connection_error_is_network_error(client, session):
    session.request.side_effect = requests.exceptions.ConnectionError('refused')

    with pytest.raises(NetworkError) as exc_info:
        client.call('upload', body={})
    assert exc_info.value.retryable


@pytest.mark.parametrize("status, retryable", [(400, False), (401, False), (429, True), (503, True)])
def test_non_2xx_is_upstream_error(client, session, status, retryable):
    session.request.return_value = make_response(status, {'success': False, 'error': 'Nope'})

    with pytest.raises(UpstreamError) as exc_info:
        client.call('upload', body={})

    assert exc_info.value.status_code == status
    assert exc_info.value.message == 'Nope'
    assert exc_info.value.retryable is retryable


def test_non_json_error_page_keeps_status(client, session):
    session.request.return_value = make_response(502, json_error=True)

    with pytest.raises(UpstreamError) as exc_info:
        client.call('upload', body={})
    assert exc_info.value.status_code == 502


def test_non_json_success_is_protocol_error(client, session):
    session.request.return_value = make_response(200, json_error=True)

    with pytest.raises(ProtocolError):
        client.call('upload', body={})


def test_non_object_json_is_protocol_error(client, session):
    session.request.return_value = make_response(200, [1, 2, 3])

    with pytest.raises(ProtocolError):
        client.call('upload', body={})


def test_close(client, session):
    client.close()
    session.close.assert_called_once()
