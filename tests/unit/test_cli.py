"""Tests for the command line front end."""

import json

import pytest
from unittest.mock import Mock, patch

from vidrelay.domain.exceptions import UpstreamError
from vidrelay.domain.models import DeliveryResult, ReportReceipt, UploadOutcome, CompressionResult
from vidrelay.presentation.cli import main, build_parser


@pytest.fixture(autouse=True)
def isolated_cwd(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    for var in ('VIDRELAY_API_BASE', 'VIDRELAY_COMPRESSOR'):
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def services():
    with patch('vidrelay.presentation.cli.build_services') as mock_build:
        container = Mock()
        mock_build.return_value = container
        container.mock_build = mock_build
        yield container


def test_parser_requires_command():
    with pytest.raises(SystemExit):
        build_parser().parse_args([])


def test_info(services, capsys):
    services.content_host.get_container_info.return_value = {'id': 'c-1'}

    assert main(['info', 'c-1']) == 0
    assert json.loads(capsys.readouterr().out) == {'id': 'c-1'}
    services.close.assert_called_once()


def test_recent(services, capsys):
    services.content_host.list_recent.return_value = [{'id': 'c-1'}]
    assert main(['recent', '--limit', '3']) == 0
    services.content_host.list_recent.assert_called_once_with(3)


def test_delete(services):
    assert main(['delete', 'c-9']) == 0
    services.content_host.delete_container.assert_called_once_with('c-9')


def test_report(services, capsys):
    services.report_client.submit_report.return_value = ReportReceipt('r-1', '2024-05-01T00:00:00+00:00')

    assert main(['report', '--file-url', 'https://dl/x.mp4', '--release-id', 'c-1', '--reason', 'other']) == 0

    request = services.report_client.submit_report.call_args.args[0]
    assert request.reason == 'other'
    assert json.loads(capsys.readouterr().out)['report_id'] == 'r-1'


def test_domain_error_exit_code(services):
    services.content_host.get_container_info.side_effect = UpstreamError(404, 'Container not found')
    assert main(['info', 'missing']) == 1


def test_api_base_override_reaches_config(services):
    main(['--api-base', 'https://cli.example/fn', 'delete', 'c-1'])
    config = services.mock_build.call_args.args[0]
    assert config.api_base_url == 'https://cli.example/fn'


def test_upload(services, tmp_path, capsys):
    video = tmp_path / 'clip.mp4'
    video.write_bytes(b'data')
    services.orchestrator.upload.return_value = UploadOutcome(
        success=True,
        message='Upload complete',
        result=DeliveryResult('c-1', 'a-1', 'https://dl/c-1/f.mp4', 'https://web/c-1', 'f.mp4'),
        compression=CompressionResult(data=b'data', passthrough=True, reason='compressor disabled'),
    )

    assert main(['upload', str(video), '--quiet', '--width', '1920', '--height', '1080']) == 0

    source = services.orchestrator.upload.call_args.args[0]
    assert source.descriptor.width == 1920
    assert 'https://dl/c-1/f.mp4' in capsys.readouterr().out
    # upload builds the real compressor
    assert services.mock_build.call_args.kwargs['compressor'] is None


def test_upload_failure(services, tmp_path):
    video = tmp_path / 'clip.mp4'
    video.write_bytes(b'data')
    services.orchestrator.upload.return_value = UploadOutcome(
        success=False, message='Network error.', error=UpstreamError(503)
    )
    assert main(['upload', str(video), '-q']) == 1


def test_upload_missing_file(services, tmp_path):
    assert main(['upload', str(tmp_path / 'missing.mp4')]) == 1
    services.orchestrator.upload.assert_not_called()
