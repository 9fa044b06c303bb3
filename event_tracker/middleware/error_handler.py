"""Render every error as the standard response envelope."""
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
import structlog
from ..api.schemas import envelope
from ..errors import EventTrackerError
from .correlation import get_correlation_id

log = structlog.get_logger()


async def event_tracker_error_handler(request: Request, exc: EventTrackerError):
    level = log.warning if exc.status_code < 500 else log.error
    level(
        "request.failed",
        error=exc.error,
        error_type=exc.__class__.__name__,
        status_code=exc.status_code,
        path=request.url.path,
        correlation_id=get_correlation_id(),
    )
    return envelope(exc.status_code, error=exc.error, message=exc.message, data=exc.data)


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    log.warning(
        "http.exception",
        status_code=exc.status_code,
        detail=exc.detail,
        path=request.url.path,
        correlation_id=get_correlation_id(),
    )
    return envelope(exc.status_code, error=str(exc.detail), headers=getattr(exc, "headers", None))


async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = "; ".join(
        f"{'.'.join(str(part) for part in err.get('loc', ()))}: {err.get('msg', '')}" for err in exc.errors()
    )
    log.warning("request.invalid", error=errors, path=request.url.path, correlation_id=get_correlation_id())
    return envelope(400, error=errors, message="invalid request")


async def unhandled_exception_handler(request: Request, exc: Exception):
    log.error(
        "unhandled.exception",
        error=str(exc),
        error_type=exc.__class__.__name__,
        path=request.url.path,
        correlation_id=get_correlation_id(),
        exc_info=exc,
    )
    return envelope(500, error=str(exc), message="An unexpected error occurred")


def register_error_handlers(app: FastAPI) -> None:
    """Install the envelope-rendering exception handlers on an app."""
    app.add_exception_handler(EventTrackerError, event_tracker_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
