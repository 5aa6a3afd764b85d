"""Shared fixtures: fake ffmpeg process, fake prober, scratch working directory."""

import asyncio
import contextlib
import io
import signal
from pathlib import Path
from typing import Optional

import pytest
from fastapi import UploadFile
from starlette.datastructures import Headers

from app.models.schemas import ProbeResult
from app.services.conversion_job import (
    ProcessEnded,
    ProcessErrored,
    ProcessProgress,
    ProcessStarted,
)
from app.services.conversion_workflow import ConversionWorkflow
from app.services.orchestrator import ConversionOrchestrator
from app.services.result_streamer import ResultStreamer
from app.services.temp_storage import TemporaryStorage


class FakeTranscodeProcess:
    """
    Scripted stand-in for ffmpeg.

    Behaviours:
        succeed: writes the output and ends normally
        fail: writes a partial output and errors
        hang: writes a partial output and runs until terminated
        spawn_error: never starts
    """

    def __init__(self, source, output, request, events, duration=None, behavior="succeed"):
        self.source = Path(source)
        self.output = Path(output)
        self.request = request
        self.events = events
        self.duration = duration
        self.behavior = behavior
        self.signals: list[int] = []
        self.closed = False
        self._finished = False
        self._task: Optional[asyncio.Task] = None

    async def start(self) -> None:
        if self.behavior == "spawn_error":
            self._finished = True
            self.events.put_nowait(
                ProcessErrored("Failed to start ffmpeg: [Errno 2] No such file or directory")
            )
            return
        self.events.put_nowait(ProcessStarted(f"ffmpeg -i {self.source} {self.output}"))
        self._task = asyncio.create_task(self._run())

    async def _run(self) -> None:
        await asyncio.sleep(0)
        self.events.put_nowait(ProcessProgress(50.0))

        if self.behavior == "succeed":
            self.output.write_bytes(b"converted")
            self._finished = True
            self.events.put_nowait(ProcessEnded())
        elif self.behavior == "fail":
            self.output.write_bytes(b"partial")
            self._finished = True
            self.events.put_nowait(ProcessErrored(
                "ffmpeg exited with code 1: Unknown encoder 'bogus'",
                "Unknown encoder 'bogus'",
            ))
        else:
            self.output.write_bytes(b"partial")
            await asyncio.Event().wait()

    def terminate(self, sig: int = signal.SIGKILL) -> None:
        if self._finished:
            raise ProcessLookupError("ffmpeg is not running")
        self.signals.append(sig)
        self._finished = True
        if self._task is not None:
            self._task.cancel()
        self.events.put_nowait(ProcessErrored(f"ffmpeg was killed with signal {int(sig)}"))

    async def aclose(self) -> None:
        self.closed = True
        if self._task is not None and not self._task.done():
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task


class FakeProcessFactory:
    """Process factory recording every process it creates."""

    def __init__(self, behavior: str = "succeed"):
        self.behavior = behavior
        self.created: list[FakeTranscodeProcess] = []

    def __call__(self, source, output, request, events, duration=None):
        process = FakeTranscodeProcess(
            source, output, request, events, duration, behavior=self.behavior
        )
        self.created.append(process)
        return process


class FakeProber:
    """Prober returning a fixed result or raising a fixed error."""

    def __init__(self, result: Optional[ProbeResult] = None, error: Optional[Exception] = None):
        self.result = result or ProbeResult(stream_count=1, duration=10.0)
        self.error = error
        self.calls: list[Path] = []

    async def probe(self, file_path: Path) -> ProbeResult:
        self.calls.append(file_path)
        if self.error is not None:
            raise self.error
        return self.result


def make_upload(content: bytes = b"RIFF fake wav data", filename: str = "clip.wav",
                content_type: str = "audio/wav") -> UploadFile:
    """Build an UploadFile the way FastAPI hands it to a route."""
    return UploadFile(
        file=io.BytesIO(content),
        filename=filename,
        headers=Headers({"content-type": content_type}),
    )


async def drain_response(response) -> tuple[list[dict], bytes]:
    """Run an ASGI response against an in-memory client and collect what it sends."""
    messages: list[dict] = []

    async def receive():
        await asyncio.Event().wait()

    async def send(message):
        messages.append(message)

    scope = {"type": "http", "asgi": {"version": "3.0", "spec_version": "2.4"}, "method": "POST"}
    await response(scope, receive, send)
    body = b"".join(m.get("body", b"") for m in messages if m["type"] == "http.response.body")
    return messages, body


@pytest.fixture
def upload_dir(tmp_path) -> Path:
    path = tmp_path / "uploads"
    path.mkdir()
    return path


@pytest.fixture
def storage(upload_dir) -> TemporaryStorage:
    return TemporaryStorage(upload_dir)


@pytest.fixture
def process_factory() -> FakeProcessFactory:
    return FakeProcessFactory()


@pytest.fixture
def prober() -> FakeProber:
    return FakeProber()


@pytest.fixture
def workflow(storage, prober, process_factory) -> ConversionWorkflow:
    """Workflow wired to fakes, with a short watchdog and no output grace delay."""
    return ConversionWorkflow(
        storage=storage,
        prober=prober,
        orchestrator=ConversionOrchestrator(timeout_seconds=0.2, process_factory=process_factory),
        streamer=ResultStreamer(cleanup_delay=0),
    )


@pytest.fixture
def make_upload_file():
    return make_upload


@pytest.fixture
def run_response():
    return drain_response
