"""FastAPI middleware for request tracking, timing, and error handling.

Adds:
- X-Request-ID header (generated if not provided)
- X-Process-Time header (request duration)
- Structured logging per request
- Exception handlers that render the {success: false, error} envelope
"""

import time
from uuid import uuid4

import structlog
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware

from app.config import get_settings
from core.exceptions import PlaybookEngineError

logger = structlog.get_logger(__name__)

_QUIET_PATHS = ("/api/health", "/api/v1/health", "/health")


def error_response(request: Request, status_code: int, message: str, **extra) -> JSONResponse:
    """Render the error envelope."""
    request_id = getattr(request.state, "request_id", None)
    content = {
        "success": False,
        "error": message,
        "request_id": request_id,
        **extra,
    }
    headers = {"X-Request-ID": request_id} if request_id else None
    return JSONResponse(status_code=status_code, content=content, headers=headers)


class RequestTrackingMiddleware(BaseHTTPMiddleware):
    """Add request ID and timing to every request/response."""

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("X-Request-ID", str(uuid4()))
        request.state.request_id = request_id
        start_time = time.monotonic()

        structlog.contextvars.bind_contextvars(request_id=request_id)
        try:
            try:
                response = await call_next(request)
            except Exception as exc:
                duration_ms = (time.monotonic() - start_time) * 1000
                logger.error(
                    "Unhandled exception",
                    method=request.method,
                    path=request.url.path,
                    duration_ms=round(duration_ms, 2),
                    error=str(exc),
                    exc_info=True,
                )
                # In production, don't expose error details to client
                if get_settings().is_production:
                    message = "Internal server error"
                else:
                    message = str(exc) or "Internal server error"
                return error_response(request, 500, message)

            duration_ms = (time.monotonic() - start_time) * 1000
            response.headers["X-Request-ID"] = request_id
            response.headers["X-Process-Time"] = f"{duration_ms:.2f}ms"

            if request.url.path not in _QUIET_PATHS:
                log = logger.warning if response.status_code >= 400 else logger.info
                log(
                    "Request handled",
                    method=request.method,
                    path=request.url.path,
                    status_code=response.status_code,
                    duration_ms=round(duration_ms, 2),
                    client_ip=request.client.host if request.client else None,
                )
            return response
        finally:
            structlog.contextvars.unbind_contextvars("request_id")


def setup_exception_handlers(app: FastAPI) -> None:
    """Register global exception handlers."""

    @app.exception_handler(PlaybookEngineError)
    async def engine_error_handler(request: Request, exc: PlaybookEngineError):
        return error_response(request, exc.status_code, exc.message)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        return error_response(request, 422, "Request validation failed", details=jsonable_encoder(exc.errors()))

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return error_response(request, exc.status_code, str(exc.detail))
