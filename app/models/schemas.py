"""Pydantic models for the conversion lifecycle and API responses."""

from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class UploadedAsset(BaseModel):
    """Uploaded file staged in the working directory."""
    model_config = ConfigDict(frozen=True)

    path: Path = Field(..., description="Staged temporary path")
    original_filename: str = Field(..., description="Filename declared by the client")
    content_type: str = Field("", description="Declared MIME type")
    size: int = Field(..., ge=0, description="Size in bytes")

    @property
    def stem(self) -> str:
        """Base name of the original upload without directories or extension."""
        return Path(self.original_filename.replace("\\", "/")).stem


class ConversionRequest(BaseModel):
    """Conversion parameters parsed from the form.

    Everything except the target format is passed through to ffmpeg as-is.
    """
    model_config = ConfigDict(frozen=True)

    target_format: str = Field(..., description="Normalized, allow-listed output format")
    codec_video: Optional[str] = None
    codec_audio: Optional[str] = None
    bitrate: Optional[str] = None
    fps: Optional[int] = None
    size: Optional[str] = Field(None, description="Frame size, e.g. '1280x720'")
    audio_only: bool = False
    video_only: bool = False


class ProbeResult(BaseModel):
    """Outcome of ffprobe on the staged upload."""
    stream_count: int = Field(..., ge=0)
    duration: Optional[float] = Field(None, description="Container duration in seconds")


class ErrorResponse(BaseModel):
    """Error response model."""
    error: str = Field(..., description="Error message")
    details: Optional[str] = Field(None, description="Underlying tool error text")


class HealthResponse(BaseModel):
    """Health check response."""
    status: str = "ok"
    upload_dir_exists: bool
    allowed_formats: list[str]
