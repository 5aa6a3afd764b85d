"""Main FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.config import settings
from app.dependencies import get_temp_storage
from app.exceptions import (
    InvalidParameterError,
    MediaConverterException,
    MissingInputError,
)
from app.messages import get_message
from app.models.schemas import ErrorResponse, HealthResponse
from app.routers import conversion

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown."""
    storage = get_temp_storage()

    # Startup
    logger.info("Starting Media Converter API...")
    logger.info(f"Upload directory: {settings.upload_dir}")
    logger.info(f"Max upload size: {settings.max_file_mb}MB")
    logger.info(f"Allowed formats: {', '.join(settings.allowed_formats)}")
    logger.info(f"Allowed input MIME: {', '.join(settings.allowed_input_mime) or 'any'}")
    logger.info(f"FFmpeg timeout: {settings.ffmpeg_timeout_sec}s")

    storage.ensure_directory()

    yield

    # Shutdown
    flushed = storage.flush_pending()
    logger.info(f"Shutting down Media Converter API ({flushed} pending output(s) removed)")


# Initialize FastAPI app
app = FastAPI(
    title="Media Converter API",
    description="Upload a media file and download it converted with ffmpeg",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(conversion.router, tags=["conversion"])


@app.exception_handler(MediaConverterException)
async def converter_exception_handler(request: Request, exc: MediaConverterException) -> JSONResponse:
    """Render application errors in the configured locale."""
    body = ErrorResponse(error=get_message(exc.message_key), details=exc.details)
    return JSONResponse(
        status_code=exc.status_code,
        content=body.model_dump(exclude_none=True)
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Render malformed form input as a 400 in the application's error shape."""
    errors = exc.errors()
    logger.info(f"Rejected malformed request to {request.url.path}: {errors}")

    if any(tuple(error.get("loc", ()))[:2] == ("body", "file") for error in errors):
        return await converter_exception_handler(request, MissingInputError())

    details = "; ".join(
        f"{'.'.join(str(part) for part in error.get('loc', ())[1:])}: {error.get('msg', '')}"
        for error in errors
    )
    return await converter_exception_handler(request, InvalidParameterError(details=details or None))


@app.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Health check."""
    return HealthResponse(
        status="ok",
        upload_dir_exists=settings.upload_dir.exists(),
        allowed_formats=settings.allowed_formats,
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("app.main:app", host=settings.api_host, port=settings.api_port)
