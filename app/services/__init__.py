"""Business logic services."""

from app.services.temp_storage import TemporaryStorage, CleanupScope
from app.services.media_prober import MediaProber
from app.services.orchestrator import ConversionOrchestrator
from app.services.result_streamer import ResultStreamer

__all__ = [
    "TemporaryStorage",
    "CleanupScope",
    "MediaProber",
    "ConversionOrchestrator",
    "ResultStreamer",
]
