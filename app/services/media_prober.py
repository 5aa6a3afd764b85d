"""Stream inspection of uploads before committing to a transcode."""

import asyncio
import logging
from pathlib import Path
from typing import Optional

import ffmpeg

from app.config import settings
from app.decorators import timeit
from app.exceptions import ProbeError, TooManyStreamsError
from app.models.schemas import ProbeResult
from app.types import ProbeData

logger = logging.getLogger(__name__)


class MediaProber:
    """Runs ffprobe on staged uploads and gates them on stream count."""

    def __init__(self, ffprobe_path: str = "ffprobe", max_streams: int = 4):
        self.ffprobe_path = ffprobe_path
        self.max_streams = max_streams

    @classmethod
    def from_settings(cls) -> "MediaProber":
        return cls(ffprobe_path=settings.ffprobe_path, max_streams=settings.max_streams)

    @timeit(log_level=logging.DEBUG)
    async def probe(self, file_path: Path) -> ProbeResult:
        """
        Inspect a media file's streams.

        Args:
            file_path: Staged upload

        Returns:
            ProbeResult with the stream count and container duration

        Raises:
            ProbeError: If ffprobe cannot read the file
            TooManyStreamsError: If the stream count exceeds the ceiling
        """
        try:
            # ffprobe is blocking, keep it off the event loop
            data: ProbeData = await asyncio.to_thread(
                ffmpeg.probe, str(file_path), cmd=self.ffprobe_path
            )
        except ffmpeg.Error as e:
            error_msg = e.stderr.decode(errors="replace").strip() if e.stderr else str(e)
            logger.error(f"FFprobe error for {file_path.name}: {error_msg}")
            raise ProbeError(details=error_msg[-500:] or None)
        except OSError as e:
            logger.error(f"Could not run ffprobe: {e}")
            raise ProbeError(details=str(e))

        streams = data.get("streams") or []
        if len(streams) > self.max_streams:
            logger.warning(
                f"{file_path.name} has {len(streams)} streams, "
                f"limit is {self.max_streams}"
            )
            raise TooManyStreamsError()

        return ProbeResult(
            stream_count=len(streams),
            duration=self._parse_duration(data.get("format") or {}),
        )

    @staticmethod
    def _parse_duration(format_info: ProbeData) -> Optional[float]:
        try:
            duration = float(format_info.get("duration", 0))
        except (TypeError, ValueError):
            return None
        return duration if duration > 0 else None
