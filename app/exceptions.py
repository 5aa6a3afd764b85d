"""Custom application exceptions for the media conversion service."""

from typing import Optional


class MediaConverterException(Exception):
    """Base exception for all application errors.

    Carries a message key from the error vocabulary, the HTTP status it maps
    to and optional details (usually the external tool's own error text).
    """

    message_key = "internal_error"
    status_code = 500

    def __init__(self, message: Optional[str] = None, details: Optional[str] = None):
        self.details = details
        super().__init__(message or self.message_key)


# Rejected before any external process is invoked
class InvalidRequestError(MediaConverterException):
    """Request is malformed or disallowed."""
    status_code = 400


class MissingInputError(InvalidRequestError):
    """No file was uploaded."""
    message_key = "file_required"


class InvalidParameterError(InvalidRequestError):
    """A conversion parameter is not acceptable."""
    message_key = "invalid_parameter"


class InvalidTargetFormatError(InvalidParameterError):
    """Target format missing or not in the allow-list."""
    message_key = "invalid_target_format"


class UploadRejectedError(InvalidRequestError):
    """Upload MIME type is not in the input allow-list."""
    message_key = "upload_type_not_allowed"


class UploadTooLargeError(InvalidRequestError):
    """Upload exceeds the configured size ceiling."""
    message_key = "upload_too_large"
    status_code = 413


# Source is unreadable or too expensive to transcode
class ProbeError(MediaConverterException):
    """ffprobe could not read the file."""
    message_key = "probe_failed"


class TooManyStreamsError(ProbeError):
    """File has more streams than allowed."""
    message_key = "too_many_streams"


# Transcode failures
class TranscodeError(MediaConverterException):
    """ffmpeg terminated with an error."""
    message_key = "conversion_failed"


class TranscodeTimeoutError(TranscodeError):
    """ffmpeg was killed by the watchdog."""
    message_key = "conversion_timeout"


class StreamDeliveryError(MediaConverterException):
    """Converted file could not be sent to the client."""
    message_key = "stream_failed"
