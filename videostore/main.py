"""
FastAPI application entry point.

This module creates and configures the FastAPI application.
Using an application factory pattern (create_app function) because:
- Tests can build an app around a fake storage backend
- Explicit about initialization order
- Can create multiple app instances if needed

For local development:
    uvicorn videostore.main:app --reload

For production:
    python -m videostore.main
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .api.dependencies import build_storage_config
from .api.middleware import UploadSizeLimitMiddleware
from .api.routes import health, videos
from .config.settings import Settings, get_settings
from .core.errors import VideoStoreError
from .infrastructure.storage.client import StorageBackend, create_storage_backend

# Configure logging
logging.basicConfig(
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    level=logging.INFO,
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Builds the storage backend selected by configuration unless one was
    injected through create_app, and reports missing configuration.
    """
    settings: Settings = app.state.settings

    logger.info(
        "Video Store API starting",
        extra={
            "version": settings.api_version,
            "backend": settings.storage_backend,
            "bucket": settings.bucket_name,
        }
    )

    missing_fields = settings.validate_required_fields()
    if missing_fields:
        logger.error(
            "Missing required configuration",
            extra={"missing_fields": missing_fields}
        )

    if getattr(app.state, "storage", None) is None:
        app.state.storage = create_storage_backend(
            settings.storage_backend, build_storage_config(settings)
        )

    yield

    logger.info("Video Store API shutting down")


def create_app(
    settings: Optional[Settings] = None,
    backend: Optional[StorageBackend] = None,
) -> FastAPI:
    """
    Application factory.

    Args:
        settings: Configuration. Loaded from the environment when omitted.
        backend: Storage backend to use. Built from settings at startup
            when omitted.
    """
    settings = settings or get_settings()

    logging.getLogger().setLevel(settings.log_level.upper())

    app = FastAPI(
        title=settings.api_title,
        version=settings.api_version,
        description="""
        Upload videos to an object storage bucket, list them and delete them.

        Backed by Google Cloud Storage or any S3-compatible service,
        selected with the `STORAGE_BACKEND` environment variable.
        """,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.storage = backend

    app.add_middleware(
        UploadSizeLimitMiddleware,
        max_upload_size_bytes=settings.max_upload_size_bytes,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=settings.cors_origins_list != ["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(health.router, tags=["Health"])
    app.include_router(videos.router, tags=["Videos"])

    @app.exception_handler(VideoStoreError)
    async def video_store_exception_handler(request: Request, exc: VideoStoreError):
        """Map domain errors to their status code and a client-safe message."""
        log = logger.warning if exc.status_code < 500 else logger.error
        log(
            "Request failed",
            extra={
                "path": request.url.path,
                "method": request.method,
                "status_code": exc.status_code,
                "error": exc.message,
            },
        )

        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.message},
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        """Unknown routes, wrong methods and framework errors use the same error shape."""
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": str(exc.detail)},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_exception_handler(
        request: Request, exc: RequestValidationError
    ):
        """Malformed query, path or form input is a 400 like any other bad input."""
        errors = exc.errors()
        first = errors[0] if errors else {}
        location = ".".join(str(part) for part in first.get("loc", ()) if part != "query")
        message = first.get("msg", "Invalid request.")

        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": f"{location}: {message}" if location else message},
        )

    # Global exception handler
    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """
        Catch-all exception handler.

        Prevents stack traces from leaking to clients. We log the full
        error server-side but return a generic message.
        """
        logger.error(
            "Unhandled exception",
            extra={
                "path": request.url.path,
                "method": request.method,
                "error": str(exc),
            },
            exc_info=exc,
        )

        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Internal server error."},
        )

    logger.info(
        "FastAPI application created",
        extra={
            "title": settings.api_title,
            "version": settings.api_version,
        }
    )

    return app


# Create the application instance
# This is what uvicorn imports
app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()

    uvicorn.run(
        "videostore.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )
