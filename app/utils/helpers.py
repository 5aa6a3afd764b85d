"""Utility helper functions."""

import re
from pathlib import Path
from urllib.parse import quote

_UNSAFE_FILENAME_CHARS = re.compile(r"[^\w.\-]+")
_HEADER_BREAKS = re.compile(r"[\r\n]+")


def parse_timestamp(timestamp: str) -> float:
    """
    Parse HH:MM:SS.mmm timestamp to seconds.

    Args:
        timestamp: Formatted timestamp string (ffmpeg's ``out_time``)

    Returns:
        Time in seconds

    Raises:
        ValueError: If the timestamp is malformed
    """
    parts = timestamp.strip().split(":")
    if len(parts) != 3:
        raise ValueError(f"Malformed timestamp: {timestamp!r}")
    hours = int(parts[0])
    minutes = int(parts[1])
    seconds = float(parts[2])
    sign = -1 if timestamp.strip().startswith("-") else 1
    return sign * (abs(hours) * 3600 + minutes * 60 + seconds)


def safe_stem(filename: str, fallback: str = "file") -> str:
    """
    Reduce a client-supplied filename to a base name safe for the working directory.

    Args:
        filename: Original filename, possibly containing directories
        fallback: Name used when nothing usable is left

    Returns:
        Stem without directories, extension or path-hostile characters
    """
    stem = Path(filename.replace("\\", "/")).stem
    stem = _UNSAFE_FILENAME_CHARS.sub("_", stem).strip("._")
    return stem[:100] or fallback


def sanitize_header_filename(filename: str) -> str:
    """Strip CR/LF and double quotes so the name is safe inside a header."""
    return _HEADER_BREAKS.sub("", filename).replace('"', "'")


def content_disposition(filename: str) -> str:
    """
    Build an attachment Content-Disposition value.

    Non-ASCII names get an ASCII fallback plus an RFC 5987 ``filename*``.
    """
    filename = sanitize_header_filename(filename)
    try:
        filename.encode("ascii")
    except UnicodeEncodeError:
        fallback = filename.encode("ascii", "replace").decode("ascii")
        return (
            f'attachment; filename="{fallback}"; '
            f"filename*=utf-8''{quote(filename)}"
        )
    return f'attachment; filename="{filename}"'
