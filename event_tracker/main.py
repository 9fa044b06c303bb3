"""
Event Tracker - records deployments, incidents, merges and pushes.

Features:
- Direct JSON API, signed GitHub webhooks, signed Slack commands/interactions
- Structured logging with correlation IDs
- Prometheus metrics
- Health checks (liveness and readiness)
"""
from fastapi import Depends, FastAPI, Response
from fastapi.responses import JSONResponse
from prometheus_client import make_asgi_app
from .config import get_settings
from .logging import setup_logging, get_logger
from .api.router import router
from .api.github_router import router as github_router
from .api.slack_router import router as slack_router
from .api.deps import get_sink, get_slack_client
from .middleware import CorrelationIdMiddleware, MetricsMiddleware, ValidationMiddleware, register_error_handlers
from .metrics import get_metrics, SERVICE_NAME, VERSION
from .health import HealthChecker
from .services.background import drain
from .sinks.base import EventSink

settings = get_settings()

setup_logging(json_output=settings.LOG_JSON, service_name=SERVICE_NAME, level=settings.LOG_LEVEL)
logger = get_logger()

metrics = get_metrics()

app = FastAPI(
    title="Event Tracker",
    version=VERSION,
    description="Records events from JSON, GitHub and Slack sources",
)

# Starlette runs the last-added middleware first: correlation ID, then metrics, then validation
app.add_middleware(ValidationMiddleware, max_size=settings.MAX_EVENT_SIZE)
app.add_middleware(MetricsMiddleware, metrics=metrics)
app.add_middleware(CorrelationIdMiddleware)

register_error_handlers(app)

app.include_router(router)
app.include_router(github_router)
app.include_router(slack_router)

# Mount Prometheus metrics endpoint
metrics_app = make_asgi_app(registry=metrics.registry)
app.mount("/metrics", metrics_app)


@app.get("/")
async def root():
    """Load balancer ping."""
    return Response(status_code=200)


@app.get("/health")
async def health(sink: EventSink = Depends(get_sink)):
    """
    Liveness check - basic health check.

    Returns 200 if service is running.
    """
    logger.debug("health_check_liveness")
    return HealthChecker(SERVICE_NAME, VERSION, sink).liveness()


@app.get("/health/ready")
async def health_ready(sink: EventSink = Depends(get_sink)):
    """
    Readiness check - comprehensive health check.

    Returns:
        200: Service is ready to handle traffic
        503: Service is not ready
    """
    logger.debug("health_check_readiness")
    metrics.update_system_metrics()
    result = await HealthChecker(SERVICE_NAME, VERSION, sink).readiness()
    status_code = 200 if result["status"] == "ready" else 503
    return JSONResponse(result, status_code=status_code)


@app.on_event("startup")
async def startup_event():
    """Create the events table (if needed) and log startup."""
    await get_sink().init()
    logger.info(
        "service_starting",
        version=VERSION,
        env=settings.ENV,
        sink=settings.SINK_BACKEND,
        dry_run=settings.DRY_RUN,
        slack_log_channel=bool(settings.SLACK_LOG_CHANNEL),
    )


@app.on_event("shutdown")
async def shutdown_event():
    """Let pending notifications finish, then release connections."""
    logger.info("service_stopping")
    await drain()
    await get_slack_client().aclose()
    await get_sink().close()
    metrics.app_up.labels(service=SERVICE_NAME, version=VERSION).set(0)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "event_tracker.main:app",
        host="0.0.0.0",
        port=settings.SERVICE_PORT,
    )
