"""Tests for the transcoding engine and its pass-through fallback."""

import threading

import pytest
from unittest.mock import Mock

from vidrelay.domain.exceptions import CompressionError, Timeout
from vidrelay.domain.models import TranscoderState, VideoDescriptor, CompressionLimits
from vidrelay.infrastructure.media import InMemoryVideo
from vidrelay.infrastructure.transcoding import TranscodingEngine, PassThroughCompressor
from vidrelay.shared.metrics import MetricsCollector


class FakeBackend:
    """In-memory ITranscoderBackend with scripted failures."""

    name = 'fake'

    def __init__(self, load_failures=0, encode_error=None, output=b'compressed', probed=None):
        self.load_failures = load_failures
        self.encode_error = encode_error
        self.output = output
        self.probed = probed or VideoDescriptor(1920, 1080, fps=30)
        self.load_calls = 0
        self.encoded_with = []
        self.released = []
        self.probe_calls = 0
        self.closed = False

    def load(self):
        self.load_calls += 1
        if self.load_calls <= self.load_failures:
            raise CompressionError(f"load attempt {self.load_calls} failed")

    def stage(self, data, source_name):
        return {'data': data, 'name': source_name}

    def probe(self, staged):
        self.probe_calls += 1
        return self.probed

    def encode(self, staged, parameters, on_progress=None, descriptor=None):
        self.encoded_with.append(parameters)
        if on_progress:
            on_progress(50, 'Compressing video...')
        if self.encode_error:
            raise self.encode_error
        if on_progress:
            on_progress(100, 'Compressing video...')
        return self.output

    def release(self, staged):
        self.released.append(staged)

    def close(self):
        self.closed = True


class BlockingBackend(FakeBackend):
    """Backend whose load() waits until released."""

    def __init__(self):
        super().__init__()
        self.gate = threading.Event()

    def load(self):
        self.load_calls += 1
        self.gate.wait(5)


def make_engine(backend, **kwargs):
    kwargs.setdefault('init_retry_delay', 0)
    kwargs.setdefault('ready_timeout', 5)
    return TranscodingEngine(backend, **kwargs)


@pytest.fixture
def video():
    return InMemoryVideo(b'original-bytes' * 100, 'clip.mp4', descriptor=VideoDescriptor(1920, 1080, fps=30))


class TestStateMachine:
    """Test readiness transitions."""

    def test_starts_uninitialized(self):
        engine = make_engine(FakeBackend())
        assert engine.state is TranscoderState.UNINITIALIZED
        assert not engine.is_ready

    def test_becomes_ready(self):
        engine = make_engine(FakeBackend())
        engine.wait_until_ready(timeout=5)

        assert engine.state is TranscoderState.READY
        assert engine.attempts == 1

    def test_retries_until_ready(self):
        backend = FakeBackend(load_failures=2)
        engine = make_engine(backend)
        engine.wait_until_ready(timeout=5)

        assert engine.is_ready
        assert backend.load_calls == 3
        assert engine.attempts == 3
        assert 'load attempt 2' in str(engine.last_error)

    def test_gives_up_at_ceiling(self):
        backend = FakeBackend(load_failures=10)
        engine = make_engine(backend, max_init_attempts=2)

        with pytest.raises(CompressionError, match='failed to initialize'):
            engine.wait_until_ready(timeout=5)

        assert engine.state is TranscoderState.FAILED
        assert backend.load_calls == 2

    def test_start_is_idempotent(self):
        backend = FakeBackend()
        engine = make_engine(backend)
        engine.start()
        engine.start()
        engine.wait_until_ready(timeout=5)
        engine.start()

        assert backend.load_calls == 1

    def test_wait_times_out(self):
        backend = BlockingBackend()
        engine = make_engine(backend)
        try:
            with pytest.raises(Timeout) as exc_info:
                engine.wait_until_ready(timeout=0.2)
            assert exc_info.value.retryable
            assert engine.state is TranscoderState.INITIALIZING
        finally:
            backend.gate.set()

    def test_shutdown_stops_unbounded_retries(self):
        backend = FakeBackend(load_failures=10 ** 6)
        engine = make_engine(backend, init_retry_delay=30)
        engine.start()
        engine.shutdown(timeout=5)

        assert engine.state is TranscoderState.FAILED
        # the stop wakes the backoff and no further load is attempted
        assert backend.load_calls == 1
        assert backend.closed
        with pytest.raises(CompressionError):
            engine.wait_until_ready(timeout=1)

    def test_shutdown_logs_close_failure(self):
        backend = FakeBackend()
        backend.close = Mock(side_effect=OSError('busy'))
        engine = make_engine(backend)
        engine.wait_until_ready(timeout=5)
        engine._logger = Mock()

        engine.shutdown(timeout=5)

        backend.close.assert_called_once()
        engine._logger.warning.assert_called_once_with("Could not close fake backend: busy")

    def test_poll_interval_is_clamped(self):
        assert make_engine(FakeBackend(), poll_interval=0.01).poll_interval == 0.1
        assert make_engine(FakeBackend(), poll_interval=3).poll_interval == 0.5


class TestCompression:
    """Test the compress path end to end with a fake backend."""

    def test_compresses_when_ready(self, video, progress_log):
        backend = FakeBackend()
        metrics = MetricsCollector()
        engine = make_engine(backend, metrics=metrics)

        result = engine.compress(video, on_progress=progress_log)

        assert result.data == b'compressed'
        assert not result.passthrough
        assert (result.parameters.width, result.parameters.height, result.parameters.fps) == (1280, 720, 30)
        assert [p for p, _ in progress_log.events] == [10, 20, 30, 60, 90, 90, 100]
        assert progress_log.events[-1] == (100, 'Complete!')
        assert len(backend.released) == 1
        assert backend.probe_calls == 0
        assert metrics.get_counter('compress.encoded') == 1

    def test_probes_when_no_descriptor(self):
        backend = FakeBackend(probed=VideoDescriptor(640, 360, fps=25))
        engine = make_engine(backend)

        result = engine.compress(InMemoryVideo(b'raw', 'clip.mp4'))

        assert backend.probe_calls == 1
        assert (result.parameters.width, result.parameters.fps) == (640, 25)

    def test_encode_failure_passes_through(self, video, progress_log):
        backend = FakeBackend(encode_error=CompressionError('ffmpeg exited with 1'))
        metrics = MetricsCollector()
        engine = make_engine(backend, metrics=metrics)

        result = engine.compress(video, on_progress=progress_log)

        assert result.data == video.read_bytes()
        assert result.passthrough
        assert 'ffmpeg exited with 1' in result.reason
        assert len(backend.released) == 1
        assert metrics.get_counter('compress.fallback') == 1

        percents = [p for p, _ in progress_log.events]
        assert percents == sorted(percents)
        assert percents[-1] == 100

    def test_unexpected_backend_error_passes_through(self, video):
        engine = make_engine(FakeBackend(encode_error=MemoryError('out of memory')))
        result = engine.compress(video)
        assert result.passthrough
        assert result.data == video.read_bytes()

    def test_empty_output_passes_through(self, video):
        engine = make_engine(FakeBackend(output=b''))
        result = engine.compress(video)
        assert result.passthrough

    def test_failed_engine_passes_through(self, video, progress_log):
        backend = FakeBackend(load_failures=10)
        engine = make_engine(backend, max_init_attempts=1)

        result = engine.compress(video, on_progress=progress_log)

        assert result.passthrough
        assert result.data == video.read_bytes()
        assert backend.encoded_with == []
        assert [p for p, _ in progress_log.events] == [10, 50, 100]
        assert progress_log.events[-1] == (100, 'Ready')

    def test_not_ready_within_timeout_passes_through(self, video):
        backend = BlockingBackend()
        engine = make_engine(backend, ready_timeout=0.2)
        try:
            result = engine.compress(video)
        finally:
            backend.gate.set()

        assert result.passthrough
        assert result.reason == 'transcoder not ready'

    def test_no_wait_skips_backend_that_is_not_ready(self, video):
        backend = BlockingBackend()
        engine = make_engine(backend)
        try:
            result = engine.compress(video, wait=False)
        finally:
            backend.gate.set()

        assert result.passthrough
        assert result.reason.startswith('transcoder ')

    def test_compress_failure_keeps_engine_ready(self, video):
        engine = make_engine(FakeBackend(encode_error=CompressionError('bad input')))
        engine.compress(video)
        assert engine.is_ready

    def test_release_failure_is_logged(self, video):
        backend = FakeBackend()
        backend.release = Mock(side_effect=OSError('busy'))
        engine = make_engine(backend)

        result = engine.compress(video)

        assert result.data == b'compressed'
        backend.release.assert_called_once()

    def test_custom_limits(self, video):
        backend = FakeBackend()
        engine = make_engine(backend, limits=CompressionLimits(max_width=640, max_height=360))
        result = engine.compress(video)
        assert (result.parameters.width, result.parameters.height) == (640, 360)


class TestPassThroughCompressor:
    """Test the compressor used when no backend exists."""

    def test_returns_input_unchanged(self, video, progress_log):
        result = PassThroughCompressor().compress(video, on_progress=progress_log)

        assert result.data == video.read_bytes()
        assert result.passthrough
        assert result.parameters is None
        assert result.mime_type == 'video/mp4'
        assert progress_log.events == [(50, 'Optimizing...'), (100, 'Ready')]

    def test_oversize_input_still_passes(self, progress_log):
        big = InMemoryVideo(b'x' * 2048, 'big.mp4')
        result = PassThroughCompressor(max_output_size=1024).compress(big, on_progress=progress_log)

        assert result.size == 2048
        assert progress_log.events[-1] == (100, 'File prepared')
