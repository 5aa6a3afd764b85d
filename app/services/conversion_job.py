"""Per-request conversion job and its state machine.

A job moves ``CREATED -> STARTED -> PROGRESSING* -> {SUCCEEDED | FAILED |
TIMED_OUT}``. Process and watchdog notifications arrive as tagged events and
are applied one at a time by :meth:`ConversionJob.transition`, so a watchdog
firing and a late process event can never interleave within a job.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional, Union

from app.models.schemas import ConversionRequest, UploadedAsset
from app.types import TranscodeHandle

logger = logging.getLogger(__name__)


class JobState(str, Enum):
    """Lifecycle state of a conversion job."""
    CREATED = "created"
    STARTED = "started"
    PROGRESSING = "progressing"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    TIMED_OUT = "timed_out"


TERMINAL_STATES = frozenset({JobState.SUCCEEDED, JobState.FAILED, JobState.TIMED_OUT})


# Events
@dataclass(frozen=True)
class ProcessStarted:
    command_line: str


@dataclass(frozen=True)
class ProcessProgress:
    percent: Optional[float]


@dataclass(frozen=True)
class ProcessEnded:
    pass


@dataclass(frozen=True)
class ProcessErrored:
    message: str
    diagnostic: str = ""


@dataclass(frozen=True)
class WatchdogExpired:
    pass


JobEvent = Union[ProcessStarted, ProcessProgress, ProcessEnded, ProcessErrored, WatchdogExpired]


@dataclass
class ConversionJob:
    """State of one transcode, private to the request that created it."""
    source: UploadedAsset
    request: ConversionRequest
    output_path: Path
    process: Optional[TranscodeHandle] = None
    deadline: Optional[float] = None
    killed: bool = False
    state: JobState = JobState.CREATED
    progress: Optional[float] = None
    error: Optional[str] = None
    diagnostic: Optional[str] = None

    @property
    def is_terminal(self) -> bool:
        return self.state in TERMINAL_STATES

    def transition(self, event: JobEvent) -> JobState:
        """
        Apply one event and return the resulting state.

        Events observed after a terminal state are ignored. A watchdog expiry
        only marks the job as killed; the process event that follows decides
        the terminal state, which is TIMED_OUT whenever ``killed`` is set.
        """
        if self.is_terminal:
            logger.debug(f"Ignoring {type(event).__name__} for job in state {self.state.value}")
            return self.state

        if isinstance(event, ProcessStarted):
            if self.state is JobState.CREATED:
                self.state = JobState.STARTED

        elif isinstance(event, ProcessProgress):
            if self.state in (JobState.STARTED, JobState.PROGRESSING):
                self.state = JobState.PROGRESSING
                self.progress = event.percent

        elif isinstance(event, WatchdogExpired):
            self.killed = True

        elif isinstance(event, ProcessEnded):
            if self.killed:
                self.error = "killed by watchdog"
                self.state = JobState.TIMED_OUT
            else:
                self.state = JobState.SUCCEEDED

        elif isinstance(event, ProcessErrored):
            self.error = event.message
            self.diagnostic = event.diagnostic
            self.state = JobState.TIMED_OUT if self.killed else JobState.FAILED

        else:
            raise TypeError(f"Unknown job event: {event!r}")

        return self.state
