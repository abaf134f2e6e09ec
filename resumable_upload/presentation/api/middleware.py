"""
HTTP middleware components for request/response processing.

This module provides middleware for error handling and performance
monitoring of upload requests.
"""

import logging
import time
import uuid
from typing import Any, Awaitable, Callable, Dict

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from ...infrastructure.config.models import PerformanceConfig
from ...infrastructure.logging.setup import LoggingManager

logger = logging.getLogger(__name__)


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """Last-resort handler turning unexpected exceptions into JSON 500s."""

    async def dispatch(self, request: Request, call_next: Callable[[Request], Awaitable[Response]]) -> Response:
        try:
            return await call_next(request)

        except Exception as e:
            logger.exception(
                f"Unhandled error in {request.method} {request.url}: {e}")

            return JSONResponse(
                status_code=500,
                content={
                    "error": "INTERNAL_ERROR",
                    "message": str(e) if request.app.debug else "An unexpected error occurred",
                    "requestId": getattr(request.state, "request_id", None)
                }
            )


class PerformanceMiddleware(BaseHTTPMiddleware):
    """Middleware for request timing and slow request tracking."""

    def __init__(self, app: Any, config: PerformanceConfig) -> None:
        super().__init__(app)
        self.config = config
        self.metrics: Dict[str, Any] = {
            "request_count": 0,
            "total_time": 0.0,
            "avg_response_time": 0.0,
            "slow_requests": 0
        }

    async def dispatch(self, request: Request, call_next: Callable[[Request], Awaitable[Response]]) -> Response:
        if not self.config.enabled:
            return await call_next(request)

        start_time = time.time()

        request_id = str(uuid.uuid4())
        request.state.request_id = request_id

        response = await call_next(request)

        duration = time.time() - start_time

        self.metrics["request_count"] += 1
        self.metrics["total_time"] += duration
        self.metrics["avg_response_time"] = (
            self.metrics["total_time"] / self.metrics["request_count"]
        )

        if duration > self.config.slow_request_threshold:
            self.metrics["slow_requests"] += 1
            logger.warning(
                f"Slow request: {request.method} {request.url.path} took {duration:.3f}s")

        response.headers["X-Request-ID"] = request_id
        response.headers["X-Response-Time"] = f"{duration:.3f}s"

        container = getattr(request.app.state, "container", None)
        logging_manager = container.try_resolve(LoggingManager) if container else None
        if logging_manager:
            logging_manager.log_performance(
                f"{request.method} {request.url.path}",
                duration=duration,
                status_code=response.status_code,
                request_id=request_id
            )

        return response
