"""Utility functions."""

from app.utils.helpers import (
    parse_timestamp,
    safe_stem,
    sanitize_header_filename,
    content_disposition,
)

__all__ = [
    "parse_timestamp",
    "safe_stem",
    "sanitize_header_filename",
    "content_disposition",
]
