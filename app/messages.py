"""User-facing error vocabulary, one table per supported locale."""

from app.config import settings

MESSAGES: dict[str, dict[str, str]] = {
    "en": {
        "file_required": "file required",
        "invalid_target_format": "invalid target format",
        "invalid_parameter": "invalid parameter",
        "upload_type_not_allowed": "file type not allowed for upload",
        "upload_too_large": "file exceeds the maximum upload size",
        "probe_failed": "could not read the media file",
        "too_many_streams": "too many streams",
        "conversion_failed": "conversion failed",
        "conversion_timeout": "exceeded maximum time",
        "stream_failed": "failed to send the converted file",
        "internal_error": "internal error",
    },
    "he": {
        "file_required": "חסר קובץ להמרה (file).",
        "invalid_target_format": "targetFormat לא תקין או לא מותר.",
        "invalid_parameter": "פרמטר לא תקין.",
        "upload_type_not_allowed": "סוג קובץ לא מותר להעלאה",
        "upload_too_large": "הקובץ חורג מגודל ההעלאה המרבי",
        "probe_failed": "לא ניתן לקרוא את קובץ המדיה",
        "too_many_streams": "קובץ עם יותר מדי סטרימים",
        "conversion_failed": "שגיאה בהמרה",
        "conversion_timeout": "חריגה מזמן מקסימלי",
        "stream_failed": "שגיאה בשליחת הקובץ",
        "internal_error": "כשל פנימי",
    },
}


def get_message(key: str, locale: str | None = None) -> str:
    """
    Look up an error message in the configured locale.

    Unknown locales fall back to English; unknown keys are returned as-is.
    """
    table = MESSAGES.get(locale or settings.error_locale, MESSAGES["en"])
    return table.get(key, MESSAGES["en"].get(key, key))
