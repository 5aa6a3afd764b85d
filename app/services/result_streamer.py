"""Delivery of a finished conversion to the client."""

import asyncio
import logging
import mimetypes
import os
from pathlib import Path
from typing import BinaryIO

from starlette.responses import StreamingResponse
from starlette.types import Receive, Scope, Send

from app.config import settings
from app.exceptions import StreamDeliveryError
from app.services.conversion_job import ConversionJob
from app.services.temp_storage import CleanupScope
from app.utils.helpers import content_disposition

logger = logging.getLogger(__name__)

# Not every platform's mime.types knows these
for _type, _ext in (("audio/mp4", ".m4a"), ("video/webm", ".webm"), ("audio/wav", ".wav")):
    mimetypes.add_type(_type, _ext)

CACHE_CONTROL = "no-store, no-cache, must-revalidate, max-age=0"
FALLBACK_CONTENT_TYPE = "application/octet-stream"


class ConversionFileResponse(StreamingResponse):
    """
    Streams an output file and settles the job's cleanup when the response closes.

    The source is released as soon as streaming ends; the output after a grace
    delay. This happens on success, on stream errors and on client disconnect.
    """

    chunk_size = 64 * 1024

    def __init__(
        self,
        file: BinaryIO,
        cleanup: CleanupScope,
        source_path: Path,
        output_path: Path,
        cleanup_delay: float,
        headers: dict[str, str],
        media_type: str
    ):
        self.file = file
        self.cleanup = cleanup
        self.source_path = source_path
        self.output_path = output_path
        self.cleanup_delay = cleanup_delay
        super().__init__(self._iter_file(), headers=headers, media_type=media_type)

    async def _iter_file(self):
        while chunk := await asyncio.to_thread(self.file.read, self.chunk_size):
            yield chunk

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        try:
            await super().__call__(scope, receive, send)
        except Exception as e:
            # Headers are already out; the server drops the connection
            logger.error(f"Streaming {self.output_path.name} failed: {e!r}")
            raise
        finally:
            self.file.close()
            self.cleanup.release(self.source_path)
            self.cleanup.release_later(self.output_path, self.cleanup_delay)


class ResultStreamer:
    """Builds the download response for a succeeded job."""

    def __init__(self, cleanup_delay: float = 5.0):
        self.cleanup_delay = cleanup_delay

    @classmethod
    def from_settings(cls) -> "ResultStreamer":
        return cls(cleanup_delay=settings.output_cleanup_delay_sec)

    @staticmethod
    def download_filename(job: ConversionJob) -> str:
        return f"{job.source.stem}.{job.request.target_format}"

    @staticmethod
    def content_type(path: Path) -> str:
        content_type, _ = mimetypes.guess_type(path.name)
        return content_type or FALLBACK_CONTENT_TYPE

    def build_response(self, job: ConversionJob, cleanup: CleanupScope) -> ConversionFileResponse:
        """
        Prepare the streaming response for a finished job.

        The output is opened here, before any byte is sent, so a missing or
        unreadable file still becomes a JSON error.

        Raises:
            StreamDeliveryError: If the output cannot be opened
        """
        output_path = job.output_path
        headers = {
            "Content-Disposition": content_disposition(self.download_filename(job)),
            "Cache-Control": CACHE_CONTROL,
        }

        try:
            headers["Content-Length"] = str(os.stat(output_path).st_size)
        except OSError as e:
            logger.warning(f"Could not stat {output_path}: {e}")

        try:
            file = open(output_path, "rb")
        except OSError as e:
            logger.error(f"Could not open conversion output {output_path}: {e}")
            raise StreamDeliveryError(details=str(e))

        logger.info(f"Streaming {output_path.name} as {headers['Content-Disposition']}")
        return ConversionFileResponse(
            file=file,
            cleanup=cleanup,
            source_path=job.source.path,
            output_path=output_path,
            cleanup_delay=self.cleanup_delay,
            headers=headers,
            media_type=self.content_type(output_path),
        )
