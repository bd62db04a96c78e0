"""Tests for logging helpers."""

import logging
import sys

from unittest.mock import Mock

from vidrelay.shared.logging import LoggerAdapter, get_logger, setup_logger


def test_get_logger_is_namespaced():
    assert get_logger('orchestrator').name == 'vidrelay.orchestrator'
    assert get_logger('vidrelay.application.factories').name == 'vidrelay.application.factories'
    assert get_logger('vidrelay').name == 'vidrelay'


def test_setup_logger_writes_to_stderr(tmp_path):
    logger = setup_logger('vidrelay-test', level=logging.DEBUG, log_file=tmp_path / 'logs' / 'run.log')
    try:
        streams = [h.stream for h in logger.handlers if type(h) is logging.StreamHandler]
        assert streams == [sys.stderr]
        assert (tmp_path / 'logs' / 'run.log').exists()
        assert logging.getLogger('urllib3').level == logging.DEBUG
    finally:
        for handler in logger.handlers:
            handler.close()
        logger.handlers.clear()


def test_setup_logger_quiets_http_stack():
    logger = setup_logger('vidrelay-test', level=logging.INFO)
    logger.handlers.clear()
    assert logging.getLogger('urllib3').level == logging.WARNING


class TestLoggerAdapter:
    """Test context binding."""

    def test_plain_messages(self):
        base = Mock()
        LoggerAdapter(base).info('hello')
        base.info.assert_called_once_with('hello', extra={})

    def test_bind_prefixes_context(self):
        base = Mock()
        adapter = LoggerAdapter(base).bind(file_id='f1')

        adapter.warning('slow')
        adapter.bind(phase='attach').error('failed', status=502)

        base.warning.assert_called_once_with('[file_id=f1] slow', extra={})
        base.error.assert_called_once_with('[file_id=f1 phase=attach] failed', extra={'status': 502})

    def test_bind_does_not_mutate_parent(self):
        parent = LoggerAdapter(Mock())
        parent.bind(file_id='f1')
        assert parent.context == {}
