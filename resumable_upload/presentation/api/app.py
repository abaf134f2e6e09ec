"""
FastAPI application factory and configuration.

This module creates and configures the FastAPI application with
proper middleware, error handling, and route registration.
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, Optional, Type

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from ...application.container import IContainer
from ...application.startup import ApplicationStartup
from ...core.domain.exceptions import (
    AllocationError, ChunkLengthMismatch, ChunkWriteError, FinalizationError,
    IncompleteUpload, MalformedRange, MissingRange, PartialMissing,
    SessionAlreadyFinalized, SessionNotFound, SizeMismatch, UploadError
)
from ...infrastructure.config.models import ApplicationConfig
from .middleware import ErrorHandlerMiddleware, PerformanceMiddleware
from .routers import health, upload

logger = logging.getLogger(__name__)

ERROR_STATUS_CODES: Dict[Type[UploadError], int] = {
    SessionNotFound: 404,
    PartialMissing: 404,
    MissingRange: 411,
    MalformedRange: 400,
    SizeMismatch: 400,
    ChunkLengthMismatch: 400,
    IncompleteUpload: 400,
    SessionAlreadyFinalized: 409,
    AllocationError: 500,
    ChunkWriteError: 500,
    FinalizationError: 500,
}


def status_code_for(error: UploadError) -> int:
    """HTTP status for an engine error, using the most specific mapping."""
    for error_type in type(error).__mro__:
        if error_type in ERROR_STATUS_CODES:
            return ERROR_STATUS_CODES[error_type]
    return 500


def create_app(
    container: IContainer,
    config: ApplicationConfig,
    startup: Optional[ApplicationStartup] = None
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        container: Dependency injection container
        config: Application configuration
        startup: When given, components are started and stopped with the app

    Returns:
        Configured FastAPI application
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        logger.info("Application starting up...")
        if startup is not None:
            await startup.start_application()

        try:
            yield
        finally:
            if startup is not None:
                await startup.stop_application()
            logger.info("Application shutting down...")

    app = FastAPI(
        title=config.name,
        version=config.version,
        description="Resumable chunked file upload service",
        debug=config.debug,
        lifespan=lifespan
    )

    app.state.container = container
    app.state.config = config

    _configure_middleware(app, config)
    _register_exception_handlers(app)
    _register_routes(app)

    logger.info(f"FastAPI application created: {config.name} v{config.version}")
    return app


def _configure_middleware(app: FastAPI, config: ApplicationConfig) -> None:
    """Configure application middleware."""
    if config.performance.enabled:
        app.add_middleware(PerformanceMiddleware, config=config.performance)

    app.add_middleware(ErrorHandlerMiddleware)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.server.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    logger.debug("Middleware configured")


def _register_exception_handlers(app: FastAPI) -> None:
    """Map engine errors and request validation failures to JSON responses."""

    @app.exception_handler(UploadError)
    async def upload_error_handler(request: Request, exc: UploadError) -> JSONResponse:
        status_code = status_code_for(exc)
        if status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
        return JSONResponse(status_code=status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        fields = [
            ".".join(str(part) for part in error.get("loc", ()) if part != "body")
            for error in exc.errors()
        ]
        return JSONResponse(
            status_code=400,
            content={
                "error": "MISSING_REQUIRED_FIELDS",
                "message": "Missing or invalid required fields",
                "fields": fields,
            }
        )


def _register_routes(app: FastAPI) -> None:
    """Register API routes."""
    app.include_router(
        health.router,
        prefix="/health",
        tags=["health"]
    )

    app.include_router(
        upload.router,
        prefix="/upload",
        tags=["upload"]
    )

    @app.get("/", tags=["root"])
    async def root() -> Dict[str, Any]:
        """Root endpoint with basic application information."""
        return {
            "name": app.title,
            "version": app.version,
            "status": "running",
            "docs_url": "/docs",
            "health_url": "/health"
        }

    logger.debug("Routes registered")
