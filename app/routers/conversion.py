"""Conversion API routes."""

import logging
from typing import Annotated, Optional

from fastapi import APIRouter, File, Form, UploadFile
from starlette.responses import Response

from app.dependencies import ConversionWorkflowDep
from app.exceptions import MediaConverterException
from app.models.schemas import ErrorResponse

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post(
    "/convert",
    response_class=Response,
    responses={
        200: {"description": "Converted media file", "content": {"application/octet-stream": {}}},
        400: {"model": ErrorResponse, "description": "Missing file or invalid parameters"},
        413: {"model": ErrorResponse, "description": "File too large"},
        500: {"model": ErrorResponse, "description": "Probe, conversion or internal error"}
    }
)
async def convert_media(
    workflow: ConversionWorkflowDep,
    file: Annotated[Optional[UploadFile], File(description="Media file to convert")] = None,
    target_format: Annotated[Optional[str], Form(alias="targetFormat")] = None,
    codec_video: Annotated[Optional[str], Form(alias="codecVideo")] = None,
    codec_audio: Annotated[Optional[str], Form(alias="codecAudio")] = None,
    bitrate: Annotated[Optional[str], Form(description="e.g. '128k'")] = None,
    fps: Annotated[Optional[str], Form(description="Integer frame rate")] = None,
    size: Annotated[Optional[str], Form(description="Frame size, e.g. '1280x720'")] = None,
    audio_only: Annotated[Optional[str], Form(alias="audioOnly")] = None,
    video_only: Annotated[Optional[str], Form(alias="videoOnly")] = None
) -> Response:
    """
    Upload a media file and download it converted to ``targetFormat``.

    Args:
        file: Source media
        target_format: Output format from the allow-list
        codec_video, codec_audio, bitrate, fps, size: Passed through to ffmpeg
        audio_only: "true" drops the video stream
        video_only: "true" drops the audio stream

    Returns:
        The converted file as an attachment

    Raises:
        MediaConverterException: Rendered as a JSON error by the app handler
    """
    logger.info(
        f"Received conversion request: {file.filename if file else None} -> {target_format}"
    )

    try:
        return await workflow.convert(
            file,
            target_format,
            codec_video=codec_video,
            codec_audio=codec_audio,
            bitrate=bitrate,
            fps=fps,
            size=size,
            audio_only=audio_only,
            video_only=video_only,
        )
    except MediaConverterException:
        raise
    except Exception as e:
        logger.exception(f"[convert] internal error: {e}")
        raise MediaConverterException()
