"""Validation middleware for request payload size and structure."""
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
import structlog
import orjson
from ..api.schemas import envelope
from ..config import get_settings

log = structlog.get_logger()


class ValidationMiddleware(BaseHTTPMiddleware):
    """Rejects oversized bodies and malformed JSON before routing."""

    def __init__(self, app, max_size: int | None = None):
        super().__init__(app)
        self.max_size = max_size or get_settings().MAX_EVENT_SIZE

    def _too_large(self, request: Request, size: int):
        log.warning("payload.too_large", size=size, max_size=self.max_size, path=request.url.path)
        return envelope(
            413,
            error="PayloadTooLarge",
            message=f"Request payload exceeds maximum size of {self.max_size} bytes",
            data={"max_size": self.max_size, "received_size": size},
        )

    async def dispatch(self, request: Request, call_next):
        if request.method not in ("POST", "PUT", "PATCH"):
            return await call_next(request)

        # Check content-length header first
        content_length = request.headers.get("content-length")
        if content_length and content_length.isdigit() and int(content_length) > self.max_size:
            return self._too_large(request, int(content_length))

        body = await request.body()
        if len(body) > self.max_size:
            return self._too_large(request, len(body))

        if body and request.headers.get("content-type", "").startswith("application/json"):
            try:
                orjson.loads(body)
            except orjson.JSONDecodeError as e:
                log.warning("invalid.json", error=str(e), path=request.url.path)
                return envelope(400, error=str(e), message="Request body is not valid JSON")

        # Starlette replays the cached body to downstream handlers
        return await call_next(request)
