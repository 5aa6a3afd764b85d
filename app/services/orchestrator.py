"""Supervision of a single transcode: spawn, watchdog, event loop.

The orchestrator owns nothing across requests. Each call to :meth:`run`
creates a private event queue, spawns the process, arms the watchdog and then
consumes events one by one until the job reaches a terminal state.
"""

import asyncio
import functools
import logging
import signal
from pathlib import Path
from typing import Optional

from app.config import settings
from app.decorators import timeit
from app.exceptions import TranscodeError, TranscodeTimeoutError
from app.models.schemas import ConversionRequest, UploadedAsset
from app.services.conversion_job import (
    ConversionJob,
    JobEvent,
    JobState,
    ProcessErrored,
    ProcessProgress,
    ProcessStarted,
    WatchdogExpired,
)
from app.services.transcoder import TranscodeProcess
from app.types import ProcessFactory

logger = logging.getLogger(__name__)


class ConversionOrchestrator:
    """Runs conversion jobs under a timeout watchdog."""

    def __init__(
        self,
        timeout_seconds: float = 900,
        process_factory: Optional[ProcessFactory] = None
    ):
        self.timeout_seconds = timeout_seconds
        self.process_factory = process_factory or TranscodeProcess

    @classmethod
    def from_settings(cls) -> "ConversionOrchestrator":
        return cls(
            timeout_seconds=settings.ffmpeg_timeout_sec,
            process_factory=functools.partial(
                TranscodeProcess, ffmpeg_path=settings.ffmpeg_path
            ),
        )

    @staticmethod
    def create_job(
        source: UploadedAsset,
        request: ConversionRequest,
        output_path: Path
    ) -> ConversionJob:
        return ConversionJob(source=source, request=request, output_path=output_path)

    @timeit()
    async def run(self, job: ConversionJob, duration: Optional[float] = None) -> ConversionJob:
        """
        Run a job to completion.

        Args:
            job: Freshly created job
            duration: Source duration used for progress percentages

        Returns:
            The job, in state SUCCEEDED

        Raises:
            TranscodeTimeoutError: If the watchdog killed the process
            TranscodeError: If ffmpeg failed for any other reason
        """
        loop = asyncio.get_running_loop()
        events: asyncio.Queue = asyncio.Queue()

        job.process = self.process_factory(
            job.source.path, job.output_path, job.request, events, duration
        )
        await job.process.start()

        # Armed before the first event is consumed
        job.deadline = loop.time() + self.timeout_seconds
        watchdog = loop.call_at(job.deadline, events.put_nowait, WatchdogExpired())

        try:
            while not job.is_terminal:
                self._apply(job, await events.get())
        finally:
            watchdog.cancel()
            if not job.is_terminal:
                logger.warning(f"Conversion of {job.source.original_filename} abandoned, killing ffmpeg")
            await job.process.aclose()

        if job.state is JobState.TIMED_OUT:
            raise TranscodeTimeoutError(details=job.error)
        if job.state is JobState.FAILED:
            raise TranscodeError(details=job.error)
        return job

    def _apply(self, job: ConversionJob, event: JobEvent) -> None:
        state = job.transition(event)

        if isinstance(event, ProcessStarted):
            logger.info(f"[ffmpeg] start: {event.command_line}")
        elif isinstance(event, ProcessProgress):
            logger.info(f"[ffmpeg] progress: {int(event.percent or 0)}%")
        elif isinstance(event, WatchdogExpired):
            logger.warning(
                f"[ffmpeg] exceeded {self.timeout_seconds}s for "
                f"{job.source.original_filename}, terminating"
            )
            self._terminate(job)
        elif isinstance(event, ProcessErrored):
            logger.error(f"[ffmpeg] error: {event.message}\n{event.diagnostic}")

        if job.is_terminal:
            logger.info(f"Job for {job.source.original_filename} finished: {state.value}")

    @staticmethod
    def _terminate(job: ConversionJob) -> None:
        try:
            job.process.terminate(signal.SIGKILL)
        except (ProcessLookupError, OSError) as e:
            logger.debug(f"Could not signal ffmpeg: {e}")
