"""Transcoding engine with an asynchronous readiness state machine."""

import threading
import time
from typing import Optional, Any

from vidrelay.domain.models import (
    TranscoderState,
    CompressionLimits,
    CompressionResult,
)
from vidrelay.domain.exceptions import CompressionError, Timeout
from vidrelay.domain.protocols import IBinarySource, ITranscoderBackend, ProgressCallback
from vidrelay.infrastructure.media.reader import BinaryReader
from vidrelay.infrastructure.transcoding.parameters import compute_parameters
from vidrelay.infrastructure.transcoding.passthrough import PassThroughCompressor
from vidrelay.shared.logging import get_logger
from vidrelay.shared.metrics import MetricsCollector
from vidrelay.shared.progress import ProgressReporter
from vidrelay.shared.retry import RetryStrategy
from vidrelay.shared.types import Clock, Sleeper

logger = get_logger(__name__)

MIN_POLL_INTERVAL = 0.1
MAX_POLL_INTERVAL = 0.5


class TranscodingEngine:
    """
    Compresses videos through an optional backend, passing input through
    whenever the backend is not usable.
    Implements ICompressor protocol.

    State machine:

        UNINITIALIZED -> INITIALIZING -> READY
                              ^  |
                              |  v
                             FAILED

    start() runs backend.load() on a daemon thread. A failed load moves to
    FAILED and, after init_retry_delay, back to INITIALIZING for another
    attempt. max_init_attempts=None retries forever; with a ceiling the
    engine stays FAILED once it is reached. Only the initialization
    thread changes state; a failing compress() call never revokes READY.
    """

    def __init__(
        self,
        backend: ITranscoderBackend,
        limits: Optional[CompressionLimits] = None,
        reader: Optional[BinaryReader] = None,
        fallback: Optional[PassThroughCompressor] = None,
        init_retry_delay: float = 1.0,
        max_init_attempts: Optional[int] = None,
        poll_interval: float = MIN_POLL_INTERVAL,
        ready_timeout: float = 30.0,
        metrics: Optional[MetricsCollector] = None,
        clock: Clock = time.monotonic,
        sleep: Sleeper = time.sleep
    ):
        self.limits = limits or CompressionLimits()
        self.init_retry_delay = init_retry_delay
        self.max_init_attempts = max_init_attempts
        self.poll_interval = min(MAX_POLL_INTERVAL, max(MIN_POLL_INTERVAL, poll_interval))
        self.ready_timeout = ready_timeout

        self._backend = backend
        self._reader = reader or BinaryReader()
        self._fallback = fallback or PassThroughCompressor(
            reader=self._reader, max_output_size=self.limits.max_output_size
        )
        self._metrics = metrics or MetricsCollector()
        self._clock = clock
        self._sleep = sleep
        self._logger = get_logger(__name__)

        self._lock = threading.Lock()
        self._state = TranscoderState.UNINITIALIZED
        self._attempts = 0
        self._last_error: Optional[BaseException] = None
        self._gave_up = False
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def state(self) -> TranscoderState:
        with self._lock:
            return self._state

    @property
    def is_ready(self) -> bool:
        return self.state is TranscoderState.READY

    @property
    def attempts(self) -> int:
        with self._lock:
            return self._attempts

    @property
    def last_error(self) -> Optional[BaseException]:
        with self._lock:
            return self._last_error

    @property
    def backend_name(self) -> str:
        return getattr(self._backend, 'name', type(self._backend).__name__)

    def _set_state(self, state: TranscoderState) -> None:
        with self._lock:
            previous = self._state
            self._state = state
        if previous is not state:
            self._logger.debug(f"Transcoder {self.backend_name}: {previous.value} -> {state.value}")

    def start(self) -> None:
        """Begin initialization in the background. Safe to call repeatedly."""
        with self._lock:
            if self._state is not TranscoderState.UNINITIALIZED:
                return
            self._state = TranscoderState.INITIALIZING
            self._thread = threading.Thread(
                target=self._run_initialization,
                name=f"transcoder-init-{self.backend_name}",
                daemon=True
            )
            thread = self._thread

        self._logger.info(f"Initializing {self.backend_name} transcoder in background")
        thread.start()

    def shutdown(self, timeout: Optional[float] = None) -> None:
        """Stop retrying initialization and release backend resources."""
        self._stop.set()
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)

        try:
            self._backend.close()
        except Exception as e:
            self._logger.warning(f"Could not close {self.backend_name} backend: {e}")

    def _run_initialization(self) -> None:
        strategy = RetryStrategy(
            max_attempts=self.max_init_attempts,
            backoff_seconds=self.init_retry_delay,
            backoff='fixed',
            jitter=False,
            sleep=self._stop.wait
        )

        def _attempt() -> None:
            with self._lock:
                self._attempts += 1
            self._set_state(TranscoderState.INITIALIZING)
            self._backend.load()

        def _on_retry(attempt: int, error: Exception, wait: float) -> None:
            with self._lock:
                self._last_error = error
            self._set_state(TranscoderState.FAILED)
            self._logger.warning(
                f"{self.backend_name} initialization attempt {attempt} failed: {error}; "
                f"retrying in {wait:.1f}s"
            )

        try:
            strategy.execute(_attempt, on_retry=_on_retry, should_stop=self._stop.is_set)
        except Exception as e:
            with self._lock:
                self._last_error = e
                self._gave_up = True
            self._set_state(TranscoderState.FAILED)
            self._logger.error(
                f"{self.backend_name} transcoder unavailable after {self.attempts} attempt(s): {e}"
            )
            return

        self._set_state(TranscoderState.READY)
        self._logger.info(f"{self.backend_name} transcoder ready")

    def wait_until_ready(self, timeout: Optional[float] = None) -> None:
        """
        Block until the engine is READY.

        Starts initialization if nobody has yet.

        Raises:
            Timeout: If READY is not reached within `timeout` seconds
            CompressionError: If initialization has given up for good
        """
        limit = self.ready_timeout if timeout is None else timeout
        self.start()
        deadline = self._clock() + limit

        while True:
            with self._lock:
                state = self._state
                gave_up = self._gave_up
            if state is TranscoderState.READY:
                return
            if gave_up:
                raise CompressionError(f"{self.backend_name} transcoder failed to initialize")
            if self._clock() >= deadline:
                raise Timeout(f"Transcoder not ready after {limit:.1f}s", seconds=limit)
            self._sleep(self.poll_interval)

    # ------------------------------------------------------------------
    # Compression
    # ------------------------------------------------------------------

    def compress(
        self,
        source: IBinarySource,
        on_progress: Optional[ProgressCallback] = None,
        wait: bool = True
    ) -> CompressionResult:
        """
        Compress a video, or return it unchanged when that is not possible.

        Args:
            source: Video to compress
            on_progress: Receives (percent, message), ending at 100
            wait: Block up to ready_timeout for the backend; with False a
                backend that is not READY right now is skipped

        Returns:
            CompressionResult; passthrough=True when the input came back as-is

        Raises:
            ValidationError: If the source cannot be read at all
        """
        progress = on_progress if isinstance(on_progress, ProgressReporter) else ProgressReporter(on_progress)

        self._logger.info(f"File received: {source.name} ({source.size / 1024 / 1024:.1f}MB)")
        progress.report(10, 'Preparing file...')
        data = self._reader.read(source)

        unavailable = self._check_ready(wait)
        if unavailable:
            self._metrics.increment_counter('compress.passthrough')
            return self._fallback.compress(source, progress, data=data, reason=unavailable)

        started = self._clock()
        try:
            result = self._compress_with_backend(source, data, progress)
        except Exception as e:
            self._logger.warning(f"Compression failed, using original file: {e}")
            self._logger.debug("Compression failure details", exc_info=True)
            self._metrics.increment_counter('compress.fallback')
            return self._fallback.compress(source, progress, data=data, reason=f"compression failed: {e}")

        self._metrics.record_metric('encode_duration', self._clock() - started)
        self._metrics.increment_counter('compress.encoded')
        self._logger.info(
            f"Compressed {source.name}: {len(data) / 1024 / 1024:.1f}MB -> "
            f"{result.size / 1024 / 1024:.1f}MB"
        )
        progress.report(100, 'Complete!')
        return result

    def _check_ready(self, wait: bool) -> Optional[str]:
        """Return why the backend cannot be used, or None when it can."""
        if not wait:
            self.start()
            return None if self.is_ready else f"transcoder {self.state.value}"

        try:
            self.wait_until_ready()
        except Timeout as e:
            self._logger.warning(f"{e}; continuing without compression")
            return 'transcoder not ready'
        except CompressionError as e:
            return str(e)
        return None

    def _compress_with_backend(
        self,
        source: IBinarySource,
        data: bytes,
        progress: ProgressReporter
    ) -> CompressionResult:
        progress.report(20, 'Analyzing video...')
        staged = self._backend.stage(data, source.name)

        try:
            descriptor = getattr(source, 'descriptor', None) or self._backend.probe(staged)
            params = compute_parameters(descriptor, self.limits)

            progress.report(30, 'Compressing video...')
            output = self._backend.encode(
                staged, params, on_progress=progress.phase(30, 60), descriptor=descriptor
            )
            progress.report(90, 'Finalizing...')
        finally:
            self._release(staged)

        if not output:
            raise CompressionError("Backend produced no output")

        return CompressionResult(data=bytes(output), mime_type='video/mp4', parameters=params)

    def _release(self, staged: Any) -> None:
        try:
            self._backend.release(staged)
        except Exception as e:
            self._logger.warning(f"Could not release transient storage: {e}")
