"""Data models and schemas."""

from app.models.schemas import (
    UploadedAsset,
    ConversionRequest,
    ProbeResult,
    ErrorResponse,
    HealthResponse,
)

__all__ = [
    "UploadedAsset",
    "ConversionRequest",
    "ProbeResult",
    "ErrorResponse",
    "HealthResponse",
]
