"""FFmpeg wrapper for probing and encoding."""

import json
import shutil
import subprocess
import tempfile
from pathlib import Path
from typing import Optional, Callable, List

from vidrelay.domain.models import VideoDescriptor, CompressionParameters
from vidrelay.domain.exceptions import CompressionError, ValidationError
from vidrelay.shared.logging import get_logger

logger = get_logger(__name__)


def parse_frame_rate(value: str) -> float:
    """Parse ffprobe rates such as '30000/1001' or '25'."""
    if not value:
        return 0.0
    if '/' in value:
        num, den = value.split('/', 1)
        try:
            den_f = float(den)
            return float(num) / den_f if den_f else 0.0
        except ValueError:
            return 0.0
    try:
        return float(value)
    except ValueError:
        return 0.0


class FFmpegWrapper:
    """Low-level wrapper around ffmpeg/ffprobe commands."""

    def __init__(self, ffmpeg_binary: str = 'ffmpeg', ffprobe_binary: str = 'ffprobe'):
        self.ffmpeg_binary = ffmpeg_binary
        self.ffprobe_binary = ffprobe_binary
        self._logger = get_logger(__name__)

    def locate(self) -> None:
        """
        Make sure both binaries are runnable.

        Raises:
            CompressionError: If either binary is missing or broken
        """
        for binary in (self.ffmpeg_binary, self.ffprobe_binary):
            if shutil.which(binary) is None:
                raise CompressionError(f"{binary} not found on PATH")

        try:
            result = subprocess.run(
                [self.ffmpeg_binary, '-hide_banner', '-version'],
                capture_output=True,
                text=True,
                check=True,
                timeout=15
            )
        except (subprocess.CalledProcessError, subprocess.TimeoutExpired, OSError) as e:
            raise CompressionError(f"ffmpeg is not usable: {e}") from e

        first_line = result.stdout.splitlines()[0] if result.stdout else 'unknown version'
        self._logger.info(f"Using {first_line}")

    def probe(self, video_path: Path) -> VideoDescriptor:
        """
        Get video stream properties using ffprobe.

        Raises:
            CompressionError: If ffprobe fails or finds no video stream
        """
        cmd = [
            self.ffprobe_binary,
            '-v', 'error',
            '-select_streams', 'v:0',
            '-show_entries', 'stream=width,height,r_frame_rate,codec_name',
            '-show_entries', 'format=duration',
            '-of', 'json',
            str(video_path)
        ]

        try:
            result = subprocess.run(cmd, capture_output=True, text=True, check=True, timeout=60)
            info = json.loads(result.stdout or '{}')
        except subprocess.CalledProcessError as e:
            raise CompressionError(f"ffprobe failed: {e.stderr}") from e
        except (subprocess.TimeoutExpired, ValueError) as e:
            raise CompressionError(f"ffprobe failed: {e}") from e

        streams = info.get('streams') or []
        if not streams:
            raise CompressionError(f"No video stream in {video_path.name}")

        stream = streams[0]
        try:
            duration = float((info.get('format') or {}).get('duration') or 0.0)
        except ValueError:
            duration = 0.0

        try:
            return VideoDescriptor(
                width=int(stream.get('width') or 0),
                height=int(stream.get('height') or 0),
                fps=parse_frame_rate(stream.get('r_frame_rate', '')),
                duration=duration,
                codec=stream.get('codec_name'),
            )
        except (ValueError, ValidationError) as e:
            raise CompressionError(f"Unusable probe result: {e}") from e

    def build_encode_command(
        self,
        input_path: Path,
        output_path: Path,
        params: CompressionParameters
    ) -> List[str]:
        return [
            self.ffmpeg_binary,
            '-hide_banner',
            '-loglevel', 'error',
            '-nostats',
            '-y',
            '-i', str(input_path),
            '-vf', f"scale={params.width}:{params.height}:flags=lanczos",
            '-r', str(params.fps),
            '-c:v', 'libx264',
            '-b:v', str(params.video_bitrate),
            '-preset', params.preset,
            '-pix_fmt', 'yuv420p',
            '-c:a', 'aac',
            '-b:a', str(params.audio_bitrate),
            '-movflags', '+faststart',
            '-progress', 'pipe:1',
            str(output_path)
        ]

    def encode(
        self,
        input_path: Path,
        output_path: Path,
        params: CompressionParameters,
        duration: float = 0.0,
        on_progress: Optional[Callable[[float], None]] = None
    ) -> Path:
        """
        Encode input to H.264/AAC MP4, reporting percent complete.

        Progress comes from ffmpeg's -progress key=value stream; without
        a known duration only completion is reported. stderr is spooled to
        a temporary file so a chatty encoder cannot stall on a full pipe.

        Raises:
            CompressionError: If ffmpeg exits non-zero or writes nothing
        """
        cmd = self.build_encode_command(input_path, output_path, params)
        self._logger.info(
            f"Encoding {input_path.name} -> {params.width}x{params.height}@{params.fps} "
            f"{params.video_bitrate // 1000}k ({params.preset})"
        )
        self._logger.debug(' '.join(cmd))

        with tempfile.TemporaryFile(mode='w+', encoding='utf-8', errors='replace') as stderr_log:
            try:
                proc = subprocess.Popen(
                    cmd,
                    stdout=subprocess.PIPE,
                    stderr=stderr_log,
                    text=True,
                    bufsize=1
                )
            except OSError as e:
                raise CompressionError(f"Failed to start ffmpeg: {e}") from e

            try:
                self._follow_progress(proc, duration, on_progress)
                returncode = proc.wait()
            except BaseException:
                # Never leave ffmpeg writing into a workspace that is about to be removed
                proc.kill()
                proc.wait()
                raise
            finally:
                if proc.stdout is not None:
                    proc.stdout.close()

            stderr_log.seek(0)
            stderr = stderr_log.read()

        if returncode != 0:
            raise CompressionError(f"ffmpeg exited with {returncode}: {stderr.strip()[-500:]}")

        if not output_path.exists() or output_path.stat().st_size == 0:
            raise CompressionError("Encoded output is empty or missing")

        return output_path

    @staticmethod
    def _follow_progress(
        proc: subprocess.Popen,
        duration: float,
        on_progress: Optional[Callable[[float], None]]
    ) -> None:
        """Read the -progress stream until ffmpeg closes stdout."""
        if proc.stdout is None:
            raise CompressionError("ffmpeg process had no stdout pipe")

        for line in proc.stdout:
            key, _, value = line.strip().partition('=')
            if key in ('out_time_us', 'out_time_ms') and duration > 0 and on_progress:
                try:
                    seconds = int(value) / 1_000_000
                except ValueError:
                    continue
                on_progress(min(100.0, seconds / duration * 100.0))
            elif key == 'progress' and value == 'end' and on_progress:
                on_progress(100.0)
