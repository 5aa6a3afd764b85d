"""Integration tests for ConversionWorkflow."""

import signal
from unittest.mock import patch

import pytest

from app.exceptions import (
    InvalidParameterError,
    InvalidTargetFormatError,
    MissingInputError,
    ProbeError,
    TooManyStreamsError,
    TranscodeError,
    TranscodeTimeoutError,
    UploadRejectedError,
    UploadTooLargeError,
)


def leftover_files(upload_dir) -> list:
    return sorted(p.name for p in upload_dir.iterdir())


class TestStageUpload:

    @pytest.mark.asyncio
    async def test_stage_upload_success(self, workflow, make_upload_file, upload_dir):
        workflow.chunk_size = 4
        upload = make_upload_file(b"0123456789", filename="My Clip.WAV")

        asset = await workflow.stage_upload(upload)

        assert asset.path.parent == upload_dir
        assert asset.path.name.endswith("_My_Clip.wav")
        assert asset.path.read_bytes() == b"0123456789"
        assert asset.size == 10
        assert asset.original_filename == "My Clip.WAV"
        assert asset.content_type == "audio/wav"

    @pytest.mark.asyncio
    async def test_rejected_mime_type_writes_nothing(self, workflow, make_upload_file, upload_dir):
        upload = make_upload_file(content_type="application/x-msdownload")

        with patch("app.validators.upload_validator.settings") as mock_settings:
            mock_settings.allowed_input_mime = ["audio/", "video/"]

            with pytest.raises(UploadRejectedError):
                await workflow.stage_upload(upload)

        assert leftover_files(upload_dir) == []

    @pytest.mark.asyncio
    async def test_oversized_upload_is_removed(self, workflow, make_upload_file, upload_dir):
        workflow.chunk_size = 8
        upload = make_upload_file(b"x" * 64)

        with patch("app.validators.upload_validator.settings") as mock_settings:
            mock_settings.allowed_input_mime = []
            mock_settings.max_upload_size_bytes = 16
            mock_settings.max_file_mb = 1

            with pytest.raises(UploadTooLargeError):
                await workflow.stage_upload(upload)

        assert leftover_files(upload_dir) == []


class TestConvert:
    """End-to-end runs against the fake ffmpeg process."""

    @pytest.mark.asyncio
    async def test_success_streams_and_cleans_up(
        self, workflow, make_upload_file, upload_dir, process_factory, prober, run_response
    ):
        upload = make_upload_file(filename="clip.wav")

        response = await workflow.convert(upload, " MP3 ", audio_only="true", bitrate="128k")

        process = process_factory.created[0]
        assert process.request.target_format == "mp3"
        assert process.request.audio_only is True
        assert process.request.bitrate == "128k"
        assert process.duration == 10.0
        assert prober.calls == [process.source]
        assert len(leftover_files(upload_dir)) == 2

        messages, body = await run_response(response)

        assert body == b"converted"
        headers = dict(messages[0]["headers"])
        assert headers[b"content-disposition"] == b'attachment; filename="clip.mp3"'
        assert leftover_files(upload_dir) == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("target_format", ["exe", "", None, "m p 3 x"])
    async def test_invalid_format_never_probes(
        self, workflow, make_upload_file, upload_dir, process_factory, prober, target_format
    ):
        with pytest.raises(InvalidTargetFormatError):
            await workflow.convert(make_upload_file(), target_format)

        assert prober.calls == []
        assert process_factory.created == []
        assert leftover_files(upload_dir) == []

    @pytest.mark.asyncio
    async def test_missing_file(self, workflow, make_upload_file, upload_dir):
        with pytest.raises(MissingInputError):
            await workflow.convert(None, "mp3")

        with pytest.raises(MissingInputError):
            await workflow.convert(make_upload_file(filename=""), "mp3")

        assert leftover_files(upload_dir) == []

    @pytest.mark.asyncio
    async def test_invalid_fps(self, workflow, make_upload_file, upload_dir, prober):
        with pytest.raises(InvalidParameterError) as exc_info:
            await workflow.convert(make_upload_file(), "mp4", fps="thirty")

        assert "thirty" in exc_info.value.details
        assert prober.calls == []
        assert leftover_files(upload_dir) == []

    @pytest.mark.asyncio
    async def test_too_many_streams_never_spawns(
        self, workflow, make_upload_file, upload_dir, process_factory, prober
    ):
        prober.error = TooManyStreamsError()

        with pytest.raises(TooManyStreamsError):
            await workflow.convert(make_upload_file(), "mp3")

        assert process_factory.created == []
        assert leftover_files(upload_dir) == []

    @pytest.mark.asyncio
    async def test_unreadable_media(self, workflow, make_upload_file, upload_dir, process_factory, prober):
        prober.error = ProbeError(details="Invalid data found when processing input")

        with pytest.raises(ProbeError):
            await workflow.convert(make_upload_file(), "mp3")

        assert process_factory.created == []
        assert leftover_files(upload_dir) == []

    @pytest.mark.asyncio
    async def test_failure_removes_partial_output(
        self, workflow, make_upload_file, upload_dir, process_factory
    ):
        process_factory.behavior = "fail"

        with pytest.raises(TranscodeError) as exc_info:
            await workflow.convert(make_upload_file(), "mp3")

        assert not isinstance(exc_info.value, TranscodeTimeoutError)
        assert leftover_files(upload_dir) == []

    @pytest.mark.asyncio
    async def test_timeout_kills_and_cleans_up(
        self, workflow, make_upload_file, upload_dir, process_factory
    ):
        process_factory.behavior = "hang"

        with pytest.raises(TranscodeTimeoutError):
            await workflow.convert(make_upload_file(), "mp3")

        assert process_factory.created[0].signals == [signal.SIGKILL]
        assert process_factory.created[0].closed is True
        assert leftover_files(upload_dir) == []

    @pytest.mark.asyncio
    async def test_concurrent_requests_are_isolated(
        self, workflow, make_upload_file, upload_dir, process_factory, run_response
    ):
        """Two requests with the same filename get distinct files."""
        first = await workflow.convert(make_upload_file(filename="same.wav"), "mp3")
        second = await workflow.convert(make_upload_file(filename="same.wav"), "wav")

        outputs = {p.output for p in process_factory.created}
        sources = {p.source for p in process_factory.created}
        assert len(outputs) == 2 and len(sources) == 2

        await run_response(first)
        assert len(leftover_files(upload_dir)) == 2

        await run_response(second)
        assert leftover_files(upload_dir) == []
