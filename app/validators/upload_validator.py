"""Validators for file uploads and conversion parameters.

This module provides validation logic for media uploads and the conversion
form fields, extracting business logic from route handlers.
"""

import logging
import re
from pathlib import Path
from typing import Callable, Optional

from app.config import settings
from app.exceptions import (
    InvalidParameterError,
    InvalidTargetFormatError,
    MissingInputError,
    UploadRejectedError,
    UploadTooLargeError,
)
from app.models.schemas import ConversionRequest, UploadedAsset

logger = logging.getLogger(__name__)

_FORMAT_JUNK = re.compile(r"[^a-z0-9]")


class UploadValidator:
    """Validates file uploads and conversion parameters."""

    @staticmethod
    def check_mime_type(content_type: Optional[str]) -> None:
        """
        Check a declared MIME type against the input allow-list.

        An empty allow-list accepts everything; otherwise one of the configured
        substrings must occur in the type.

        Raises:
            UploadRejectedError: If the type is not allowed
        """
        allowed = settings.allowed_input_mime
        if not allowed:
            return

        mime_type = content_type or ""
        if any(pattern in mime_type for pattern in allowed):
            return

        logger.info(f"Rejected upload with MIME type {mime_type!r}")
        raise UploadRejectedError()

    @staticmethod
    def check_file_size(file_size: int) -> None:
        """
        Enforce the upload size ceiling.

        Raises:
            UploadTooLargeError: If the file is larger than allowed
        """
        if file_size > settings.max_upload_size_bytes:
            size_mb = file_size / 1024 / 1024
            raise UploadTooLargeError(
                details=f"{size_mb:.2f}MB exceeds maximum {settings.max_file_mb}MB"
            )

    @staticmethod
    def normalize_target_format(target_format: Optional[str]) -> Optional[str]:
        """
        Normalize a requested output format.

        Args:
            target_format: Raw form value

        Returns:
            Lower-cased alphanumeric format if allow-listed, otherwise None
        """
        clean = _FORMAT_JUNK.sub("", str(target_format or "").lower())
        return clean if clean in settings.allowed_formats else None

    def validate(
        self,
        asset: Optional[UploadedAsset],
        target_format: Optional[str],
        discard: Callable[[Path], None]
    ) -> str:
        """
        Validate a staged upload and its target format.

        The staged file is handed to ``discard`` before a format error is
        raised so a rejected request never leaks its upload.

        Returns:
            str: Normalized target format

        Raises:
            MissingInputError: If no file was uploaded
            InvalidTargetFormatError: If the format is not allowed
        """
        if asset is None:
            raise MissingInputError()

        normalized = self.normalize_target_format(target_format)
        if normalized is None:
            discard(asset.path)
            logger.info(f"Rejected target format {target_format!r} for {asset.original_filename}")
            raise InvalidTargetFormatError()

        logger.debug(f"Upload validation passed: {asset.original_filename} -> {normalized}")
        return normalized

    @staticmethod
    def parse_conversion_request(
        target_format: str,
        codec_video: Optional[str] = None,
        codec_audio: Optional[str] = None,
        bitrate: Optional[str] = None,
        fps: Optional[str] = None,
        size: Optional[str] = None,
        audio_only: Optional[str] = None,
        video_only: Optional[str] = None
    ) -> ConversionRequest:
        """
        Build an immutable ConversionRequest from raw form values.

        Empty strings count as absent. Only the literal ``"true"`` enables the
        audio-only/video-only flags. ``fps`` is coerced to an integer; no other
        field is interpreted.

        Raises:
            InvalidParameterError: If fps is not an integer
        """
        fps_value = None
        if fps not in (None, ""):
            try:
                fps_value = int(str(fps).strip())
            except ValueError:
                raise InvalidParameterError(details=f"fps must be an integer, got: {fps}")

        return ConversionRequest(
            target_format=target_format,
            codec_video=codec_video or None,
            codec_audio=codec_audio or None,
            bitrate=bitrate or None,
            fps=fps_value,
            size=size or None,
            audio_only=audio_only == "true",
            video_only=video_only == "true",
        )
