"""Type definitions and protocols for the media conversion application.

This module provides:
- Protocol definitions for duck-typed interfaces
- Type aliases for complex types
"""

import asyncio
import signal
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Protocol, TypeAlias

from app.models.schemas import ConversionRequest, ProbeResult

ProbeData: TypeAlias = Dict[str, Any]
"""Raw ffprobe JSON output."""


class SupportsProbe(Protocol):
    """Protocol for services that inspect media files before transcoding."""

    async def probe(self, file_path: Path) -> ProbeResult:
        """Return stream information or raise a ProbeError."""
        ...


class TranscodeHandle(Protocol):
    """Owned handle on an external transcode process.

    Lifecycle notifications are delivered as job events on the queue the
    handle was created with; the handle itself is only started, signalled and
    reaped.
    """

    async def start(self) -> None:
        """Spawn the process. Spawn failures are reported as events."""
        ...

    def terminate(self, sig: int = signal.SIGKILL) -> None:
        """Send a signal; raises ProcessLookupError if already exited."""
        ...

    async def aclose(self) -> None:
        """Kill the process if still running and wait for it."""
        ...


ProcessFactory: TypeAlias = Callable[
    [Path, Path, ConversionRequest, asyncio.Queue, Optional[float]],
    TranscodeHandle,
]
"""Creates a TranscodeHandle for (source, output, request, events, duration)."""
