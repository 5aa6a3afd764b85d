"""High-level workflow orchestration for conversion requests.

This module coordinates the services that make up one conversion: upload
staging, validation, probing, the supervised transcode and the download
response. Cleanup obligations are registered in a :class:`CleanupScope` as
soon as each temporary file exists, so every exit path settles them.
"""

import logging
from typing import Optional

from fastapi import UploadFile
from starlette.responses import Response

from app.exceptions import MissingInputError
from app.models.schemas import UploadedAsset
from app.services.orchestrator import ConversionOrchestrator
from app.services.result_streamer import ResultStreamer
from app.services.temp_storage import CleanupScope, TemporaryStorage
from app.types import SupportsProbe
from app.validators.upload_validator import UploadValidator

logger = logging.getLogger(__name__)


class ConversionWorkflow:
    """Orchestrates the complete conversion workflow."""

    chunk_size = 1024 * 1024  # 1MB chunks

    def __init__(
        self,
        storage: TemporaryStorage,
        prober: SupportsProbe,
        orchestrator: ConversionOrchestrator,
        streamer: ResultStreamer,
        validator: Optional[UploadValidator] = None
    ):
        self.storage = storage
        self.prober = prober
        self.orchestrator = orchestrator
        self.streamer = streamer
        self.validator = validator or UploadValidator()
        logger.info("ConversionWorkflow initialized")

    async def stage_upload(self, file: UploadFile) -> UploadedAsset:
        """
        Save an uploaded file to the working directory.

        The MIME allow-list is checked before anything is written and the size
        ceiling while writing; a rejected or failed upload leaves no file.

        Args:
            file: UploadFile object from FastAPI

        Returns:
            UploadedAsset describing the staged file

        Raises:
            UploadRejectedError: If the MIME type is not allowed
            UploadTooLargeError: If the file exceeds the size ceiling
        """
        self.validator.check_mime_type(file.content_type)

        filename = file.filename or "upload"
        upload_path = self.storage.allocate_upload_path(filename)
        total_bytes = 0

        try:
            with upload_path.open("wb") as buffer:
                while chunk := await file.read(self.chunk_size):
                    total_bytes += len(chunk)
                    self.validator.check_file_size(total_bytes)
                    buffer.write(chunk)
        except BaseException:
            self.storage.remove(upload_path)
            raise

        logger.info(f"Staged {filename} at {upload_path} ({total_bytes / 1024 / 1024:.2f}MB)")

        return UploadedAsset(
            path=upload_path,
            original_filename=filename,
            content_type=file.content_type or "",
            size=total_bytes,
        )

    async def convert(
        self,
        file: Optional[UploadFile],
        target_format: Optional[str],
        codec_video: Optional[str] = None,
        codec_audio: Optional[str] = None,
        bitrate: Optional[str] = None,
        fps: Optional[str] = None,
        size: Optional[str] = None,
        audio_only: Optional[str] = None,
        video_only: Optional[str] = None
    ) -> Response:
        """
        Run one conversion request end to end.

        Returns:
            Streaming response owning the remaining cleanup obligations

        Raises:
            MediaConverterException: For every rejected or failed request;
                all temporary files are already released when it propagates
        """
        if file is None or not file.filename:
            raise MissingInputError()

        asset = await self.stage_upload(file)
        cleanup = CleanupScope(self.storage, [asset.path])

        try:
            normalized = self.validator.validate(asset, target_format, cleanup.release)
            request = self.validator.parse_conversion_request(
                normalized,
                codec_video=codec_video,
                codec_audio=codec_audio,
                bitrate=bitrate,
                fps=fps,
                size=size,
                audio_only=audio_only,
                video_only=video_only,
            )

            probe = await self.prober.probe(asset.path)
            logger.info(f"Probed {asset.original_filename}: {probe.stream_count} stream(s)")

            output_path = cleanup.register(
                self.storage.allocate_output_path(asset.original_filename, normalized)
            )
            job = self.orchestrator.create_job(asset, request, output_path)
            await self.orchestrator.run(job, duration=probe.duration)

            return self.streamer.build_response(job, cleanup)

        except BaseException:
            cleanup.release_all()
            raise
