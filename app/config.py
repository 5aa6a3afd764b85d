"""Application configuration using Pydantic Settings."""

from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # Upload limits
    max_file_mb: int = Field(1024, ge=1)
    allowed_formats: str = "mp4,mp3,wav,webm,avi,mov,m4a"
    allowed_input_mime: str = ""
    upload_dir: Path = Path("./uploads")

    # FFmpeg Configuration
    ffmpeg_path: str = "ffmpeg"
    ffprobe_path: str = "ffprobe"
    max_streams: int = Field(4, ge=1)
    ffmpeg_timeout_sec: int = Field(900, ge=1)
    output_cleanup_delay_sec: float = Field(5.0, ge=0)

    # API Configuration
    api_host: str = "0.0.0.0"
    api_port: int = Field(3000, ge=1, le=65535)
    cors_origins: str = "*"
    error_locale: Literal["en", "he"] = "en"

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"

    @field_validator("allowed_formats")
    @classmethod
    def parse_formats(cls, v: str) -> list[str]:
        """Convert comma-separated formats to a normalized list."""
        return [fmt.strip().lower() for fmt in v.split(",") if fmt.strip()]

    @field_validator("allowed_input_mime", "cors_origins")
    @classmethod
    def parse_csv(cls, v: str) -> list[str]:
        """Split comma-separated values, dropping empty entries."""
        return [item.strip() for item in v.split(",") if item.strip()]

    @property
    def max_upload_size_bytes(self) -> int:
        """Convert MB to bytes."""
        return self.max_file_mb * 1024 * 1024


# Global settings instance
settings = Settings()
