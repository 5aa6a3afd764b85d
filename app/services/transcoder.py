"""FFmpeg invocation for a single conversion.

The command line is composed with ffmpeg-python; the process itself runs as an
asyncio child process owned by :class:`TranscodeProcess`, which reports its
lifecycle as job events on a queue instead of through callbacks.
"""

import asyncio
import contextlib
import logging
import shlex
import signal
from pathlib import Path
from typing import Optional

import ffmpeg

from app.models.schemas import ConversionRequest
from app.services.conversion_job import (
    ProcessEnded,
    ProcessErrored,
    ProcessProgress,
    ProcessStarted,
)
from app.utils.helpers import parse_timestamp

logger = logging.getLogger(__name__)

# Container formats that need the moov atom up front for progressive download
FASTSTART_FORMATS = frozenset({"mp4"})


def build_transcode_stream(source: Path, output: Path, request: ConversionRequest):
    """
    Compose the ffmpeg output options for a conversion request.

    Each option is added only when its field is set; nothing gets a default.
    The bitrate goes to the audio encoder when ``audio_only`` is set and to the
    video encoder otherwise, regardless of ``video_only``.

    Args:
        source: Staged upload
        output: Destination path
        request: Validated conversion parameters

    Returns:
        ffmpeg-python output stream (overwrites existing output)
    """
    options: dict = {}

    if request.audio_only:
        options["vn"] = None
    if request.video_only:
        options["an"] = None
    if request.codec_video:
        options["vcodec"] = request.codec_video
    if request.codec_audio:
        options["acodec"] = request.codec_audio
    if request.bitrate:
        if request.audio_only:
            options["audio_bitrate"] = request.bitrate
        else:
            options["video_bitrate"] = request.bitrate
    if request.fps is not None:
        options["r"] = request.fps
    if request.size:
        options["s"] = request.size
    if request.target_format in FASTSTART_FORMATS:
        options["movflags"] = "+faststart"

    stream = ffmpeg.input(str(source)).output(str(output), **options)
    return stream.overwrite_output()


class TranscodeProcess:
    """
    Owned ffmpeg child process.

    ``start()`` spawns ffmpeg and publishes ``ProcessStarted``; a monitor task
    then publishes ``ProcessProgress`` for each progress block and exactly one
    of ``ProcessEnded`` / ``ProcessErrored`` when the process exits. A spawn
    failure is published as ``ProcessErrored``.
    """

    # Machine-readable progress on stdout, errors only on stderr
    PROGRESS_ARGS = ["-hide_banner", "-nostats", "-progress", "pipe:1"]
    STDERR_TAIL_BYTES = 8192
    CHUNK_SIZE = 4096

    def __init__(
        self,
        source: Path,
        output: Path,
        request: ConversionRequest,
        events: asyncio.Queue,
        duration: Optional[float] = None,
        ffmpeg_path: str = "ffmpeg"
    ):
        self.stream = build_transcode_stream(source, output, request)
        self.events = events
        self.duration = duration
        self.ffmpeg_path = ffmpeg_path
        self._process: Optional[asyncio.subprocess.Process] = None
        self._monitor_task: Optional[asyncio.Task] = None

    @property
    def command(self) -> list[str]:
        return self.stream.compile(cmd=[self.ffmpeg_path, *self.PROGRESS_ARGS])

    @property
    def returncode(self) -> Optional[int]:
        return self._process.returncode if self._process else None

    async def start(self) -> None:
        cmd = self.command
        try:
            self._process = await asyncio.create_subprocess_exec(
                *cmd,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            logger.error(f"Failed to start ffmpeg: {e}")
            self.events.put_nowait(ProcessErrored(f"Failed to start ffmpeg: {e}"))
            return

        self.events.put_nowait(ProcessStarted(shlex.join(cmd)))
        self._monitor_task = asyncio.create_task(self._monitor())

    def terminate(self, sig: int = signal.SIGKILL) -> None:
        """
        Send ``sig`` to ffmpeg.

        Raises:
            ProcessLookupError: If the process is not running
        """
        if self._process is None or self._process.returncode is not None:
            raise ProcessLookupError("ffmpeg is not running")
        self._process.send_signal(sig)

    async def aclose(self) -> None:
        if self._process is not None and self._process.returncode is None:
            with contextlib.suppress(ProcessLookupError):
                self._process.kill()
            await self._process.wait()

        if self._monitor_task is not None and not self._monitor_task.done():
            self._monitor_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._monitor_task

    async def _monitor(self) -> None:
        stderr_task = asyncio.create_task(self._read_stderr())
        try:
            await self._read_progress()
            returncode = await self._process.wait()
            diagnostic = await stderr_task
        except asyncio.CancelledError:
            stderr_task.cancel()
            raise
        except Exception as e:
            stderr_task.cancel()
            logger.exception("ffmpeg monitor failed")
            self.events.put_nowait(ProcessErrored(f"ffmpeg monitor failed: {e}"))
            return

        if returncode == 0:
            self.events.put_nowait(ProcessEnded())
        else:
            self.events.put_nowait(
                ProcessErrored(self._error_message(returncode, diagnostic), diagnostic)
            )

    async def _read_progress(self) -> None:
        async for raw in self._process.stdout:
            key, _, value = raw.decode(errors="replace").strip().partition("=")
            if key == "out_time":
                self.events.put_nowait(ProcessProgress(self._percent(value)))

    async def _read_stderr(self) -> str:
        tail = bytearray()
        while chunk := await self._process.stderr.read(self.CHUNK_SIZE):
            tail += chunk
            del tail[:-self.STDERR_TAIL_BYTES]
        return tail.decode(errors="replace")

    def _percent(self, out_time: str) -> Optional[float]:
        if not self.duration:
            return None
        try:
            seconds = parse_timestamp(out_time)
        except ValueError:
            return None
        return max(0.0, seconds / self.duration * 100)

    @staticmethod
    def _error_message(returncode: int, diagnostic: str) -> str:
        if returncode < 0:
            return f"ffmpeg was killed with signal {-returncode}"
        lines = [line for line in diagnostic.splitlines() if line.strip()]
        if lines:
            return f"ffmpeg exited with code {returncode}: {lines[-1].strip()}"
        return f"ffmpeg exited with code {returncode}"
