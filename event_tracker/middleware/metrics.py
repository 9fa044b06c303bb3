"""HTTP metrics middleware."""
import time

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from ..metrics import Metrics

log = structlog.get_logger()


def route_path(request: Request) -> str:
    """
    Path label for a request.

    Uses the matched route template so label cardinality stays bounded;
    unmatched requests share a single label.
    """
    route = request.scope.get("route")
    return getattr(route, "path", "unmatched")


class MetricsMiddleware(BaseHTTPMiddleware):
    """
    Records Prometheus request count, latency and in-flight gauge, and logs
    one ``http.request`` line per request.
    """

    def __init__(self, app, metrics: Metrics):
        super().__init__(app)
        self.metrics = metrics

    def _observe(self, request: Request, status: int, duration: float) -> None:
        path = route_path(request)
        self.metrics.http_requests_total.labels(
            service=self.metrics.service_name,
            method=request.method,
            path=path,
            status=status,
        ).inc()
        self.metrics.http_request_duration.labels(
            service=self.metrics.service_name,
            method=request.method,
            path=path,
        ).observe(duration)

    async def dispatch(self, request: Request, call_next):
        # Scrapes are not counted
        if request.url.path.startswith("/metrics"):
            return await call_next(request)

        self.metrics.http_requests_active.inc()
        start = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception as e:
            duration = time.perf_counter() - start
            self._observe(request, 500, duration)
            log.error("http.request_failed", error=str(e), error_type=type(e).__name__, duration_ms=round(duration * 1000, 2))
            raise
        finally:
            self.metrics.http_requests_active.dec()

        duration = time.perf_counter() - start
        self._observe(request, response.status_code, duration)
        log.info("http.request", http_status=response.status_code, duration_ms=round(duration * 1000, 2))
        return response
