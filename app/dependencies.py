"""Dependency injection for services.

This module provides factory functions for creating service instances using
FastAPI's dependency injection system. Services are cached as singletons per
worker process; none of them holds per-request state.
"""

from functools import lru_cache
from typing import Annotated

from fastapi import Depends

from app.config import settings
from app.services.conversion_workflow import ConversionWorkflow
from app.services.media_prober import MediaProber
from app.services.orchestrator import ConversionOrchestrator
from app.services.result_streamer import ResultStreamer
from app.services.temp_storage import TemporaryStorage
from app.validators.upload_validator import UploadValidator


@lru_cache()
def get_temp_storage() -> TemporaryStorage:
    """
    Get or create the working-directory manager singleton.

    The same instance is used by the lifespan handler so delayed removals can
    be flushed at shutdown.

    Returns:
        TemporaryStorage instance
    """
    return TemporaryStorage(settings.upload_dir)


@lru_cache()
def get_media_prober() -> MediaProber:
    """
    Get or create media prober singleton.

    Returns:
        MediaProber instance
    """
    return MediaProber.from_settings()


@lru_cache()
def get_conversion_orchestrator() -> ConversionOrchestrator:
    """
    Get or create conversion orchestrator singleton.

    Jobs are created per call; the orchestrator only holds configuration.

    Returns:
        ConversionOrchestrator instance
    """
    return ConversionOrchestrator.from_settings()


@lru_cache()
def get_result_streamer() -> ResultStreamer:
    return ResultStreamer.from_settings()


@lru_cache()
def get_conversion_workflow() -> ConversionWorkflow:
    """
    Get or create conversion workflow singleton.

    Returns:
        ConversionWorkflow instance
    """
    return ConversionWorkflow(
        storage=get_temp_storage(),
        prober=get_media_prober(),
        orchestrator=get_conversion_orchestrator(),
        streamer=get_result_streamer(),
        validator=UploadValidator(),
    )


# Type aliases for cleaner route signatures
ConversionWorkflowDep = Annotated[ConversionWorkflow, Depends(get_conversion_workflow)]
