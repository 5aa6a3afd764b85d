"""Unit tests for utility helpers and the error vocabulary."""

import pytest
from unittest.mock import patch

from app.messages import get_message
from app.utils.helpers import (
    content_disposition,
    parse_timestamp,
    safe_stem,
    sanitize_header_filename,
)


@pytest.mark.parametrize("timestamp,expected", [
    ("00:00:00.000000", 0.0),
    ("00:01:30.500000", 90.5),
    ("01:00:00", 3600.0),
])
def test_parse_timestamp(timestamp, expected):
    assert parse_timestamp(timestamp) == pytest.approx(expected)


@pytest.mark.parametrize("timestamp", ["N/A", "", "12.5"])
def test_parse_timestamp_rejects_garbage(timestamp):
    with pytest.raises(ValueError):
        parse_timestamp(timestamp)


@pytest.mark.parametrize("filename,expected", [
    ("clip.wav", "clip"),
    ("../../etc/passwd", "passwd"),
    ("C:\\Users\\me\\video.mov", "video"),
    ("my song (live).mp3", "my_song_live"),
    ("...", "file"),
])
def test_safe_stem(filename, expected):
    assert safe_stem(filename) == expected


def test_sanitize_header_filename():
    assert sanitize_header_filename('a\r\nb\n"c".mp3') == "ab'c'.mp3"


def test_content_disposition_ascii():
    assert content_disposition("clip.mp3") == 'attachment; filename="clip.mp3"'


class TestMessages:

    def test_english_default(self):
        assert get_message("conversion_timeout", "en") == "exceeded maximum time"

    def test_hebrew_vocabulary(self):
        assert get_message("conversion_timeout", "he") == "חריגה מזמן מקסימלי"

    def test_unknown_locale_falls_back_to_english(self):
        assert get_message("file_required", "fr") == "file required"

    def test_unknown_key_is_returned(self):
        assert get_message("no_such_key", "en") == "no_such_key"

    def test_configured_locale(self):
        with patch("app.messages.settings") as mock_settings:
            mock_settings.error_locale = "he"

            assert get_message("internal_error") == "כשל פנימי"
