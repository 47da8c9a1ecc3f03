"""
FastAPI application entry point.

This module creates and configures the FastAPI application. The storage
client and facade are built once in create_app() and shared by every
request through app.state.

For local development:
    uvicorn s3_gateway.main:app --reload

For production:
    gunicorn s3_gateway.main:app -w 4 -k uvicorn.workers.UvicornWorker
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import __version__
from .api.routes import health, s3
from .config.settings import Settings, get_settings
from .core.storage.facade import StorageFacade
from .core.storage.models import (
    BucketAlreadyOwnedByYouError,
    BucketNameTakenError,
    LocalIOError,
    NotFoundError,
    StorageError,
    TransportError,
    UploadFailedError,
    ValidationError,
)
from .infrastructure.storage.client import create_storage_client

# Configure logging
logging.basicConfig(
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    level=get_settings().log_level.upper(),
)

logger = logging.getLogger(__name__)

# Most specific first; the first isinstance match wins.
ERROR_STATUS_CODES: list[tuple[type[StorageError], int]] = [
    (ValidationError, status.HTTP_400_BAD_REQUEST),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (BucketAlreadyOwnedByYouError, status.HTTP_409_CONFLICT),
    (BucketNameTakenError, status.HTTP_409_CONFLICT),
    (UploadFailedError, status.HTTP_500_INTERNAL_SERVER_ERROR),
    (LocalIOError, status.HTTP_500_INTERNAL_SERVER_ERROR),
    (TransportError, status.HTTP_502_BAD_GATEWAY),
]


def status_for_error(exc: StorageError) -> int:
    for error_type, status_code in ERROR_STATUS_CODES:
        if isinstance(exc, error_type):
            return status_code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Startup logs the configuration, reports missing settings, and makes
    sure the staging directory exists and is writable before any upload
    is served. An unusable staging directory aborts startup.
    """
    settings: Settings = app.state.settings
    facade: StorageFacade = app.state.storage_facade

    logger.info(
        "S3 Gateway starting",
        extra={
            "version": settings.api_version,
            "endpoint": settings.aws_endpoint_url,
            "region": settings.aws_region,
            "mock_mode": settings.storage_mock_mode,
        },
    )

    missing_fields = settings.validate_required_fields()
    if missing_fields:
        # boto3 may still resolve credentials from its default chain
        logger.error(
            "Missing required configuration",
            extra={"missing_fields": missing_fields},
        )

    staging_dir = facade.prepare_staging_dir()
    logger.info("Staging directory ready", extra={"staging_dir": str(staging_dir)})

    yield

    logger.info("S3 Gateway shutting down")


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Application factory.

    Tests pass their own Settings (mock mode, temporary staging dir);
    production reads them from the environment.
    """
    settings = settings or get_settings()

    app = FastAPI(
        title=settings.api_title,
        version=settings.api_version,
        description="""
        Thin HTTP facade over S3-compatible object storage.

        - Create, check and list buckets
        - Upload files through the gateway (staged locally, then stored)
        - Download objects into the gateway's staging directory
        - Mint presigned URLs for direct client-to-storage PUT/GET
        """,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    storage_client = create_storage_client(
        config=settings.storage_config(),
        mock_mode=settings.storage_mock_mode,
    )
    app.state.settings = settings
    app.state.storage_client = storage_client
    app.state.storage_facade = StorageFacade(storage_client, settings.staging_dir)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(
        health.router,
        prefix="/health",
        tags=["Health"],
    )

    app.include_router(
        s3.router,
        prefix="/s3",
        tags=["S3"],
    )

    # Root endpoint
    @app.get("/", include_in_schema=False)
    async def root():
        return {
            "message": settings.api_title,
            "version": __version__,
            "docs": "/docs",
            "health": "/health",
        }

    @app.exception_handler(StorageError)
    async def storage_exception_handler(request: Request, exc: StorageError):
        status_code = status_for_error(exc)
        log = logger.error if status_code >= 500 else logger.info
        log(
            "Storage request failed",
            extra={
                "path": request.url.path,
                "method": request.method,
                "error_type": type(exc).__name__,
                "status_code": status_code,
                "error": exc.message,
            },
        )
        return PlainTextResponse(exc.message, status_code=status_code)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        problems = "; ".join(
            f"{'.'.join(str(part) for part in err.get('loc', ()))}: {err.get('msg', '')}"
            for err in exc.errors()
        )
        return PlainTextResponse(
            f"Invalid request: {problems}",
            status_code=422,
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return PlainTextResponse(
            str(exc.detail),
            status_code=exc.status_code,
            headers=getattr(exc, "headers", None),
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
        return PlainTextResponse(
            "Internal server error",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    logger.info(
        "FastAPI application created",
        extra={
            "title": settings.api_title,
            "version": settings.api_version,
        },
    )

    return app


# Create the application instance
# This is what uvicorn/gunicorn will import
app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()

    uvicorn.run(
        "s3_gateway.main:app",
        host="0.0.0.0",
        port=8000,
        log_level=settings.log_level.lower(),
    )
