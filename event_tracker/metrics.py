"""
Prometheus metrics for the event tracker.
"""
from functools import lru_cache
from prometheus_client import Counter, Histogram, Gauge, Info, CollectorRegistry
import psutil
import os

SERVICE_NAME = "event-tracker"
VERSION = "0.1.0"


class Metrics:
    """
    Centralized metrics for the event tracker service.
    """

    def __init__(self, service_name: str = SERVICE_NAME, version: str = VERSION, registry=None):
        self.service_name = service_name
        self.version = version
        self.registry = registry or CollectorRegistry()

        # HTTP Metrics
        self.http_requests_total = Counter(
            "http_requests_total",
            "Total HTTP requests",
            ["service", "method", "path", "status"],
            registry=self.registry,
        )

        self.http_request_duration = Histogram(
            "http_request_duration_seconds",
            "HTTP request duration in seconds",
            ["service", "method", "path"],
            registry=self.registry,
        )

        self.http_requests_active = Gauge(
            "http_requests_active",
            "Number of active HTTP requests",
            registry=self.registry,
        )

        # Application Info
        self.app_info = Info(
            "app",
            "Application information",
            registry=self.registry,
        )
        self.app_info.info({"service": service_name, "version": version})

        self.app_up = Gauge(
            "app_up",
            "Application up status (1=up, 0=down)",
            ["service", "version"],
            registry=self.registry,
        )
        self.app_up.labels(service=service_name, version=version).set(1)

        # Business Metrics
        self.events_recorded_total = Counter(
            "event_tracker_events_recorded_total",
            "Total events that passed validation and were written or traced",
            ["event_type", "source", "dry_run"],
            registry=self.registry,
        )

        self.events_rejected_total = Counter(
            "event_tracker_events_rejected_total",
            "Total candidate events rejected by validation",
            ["source"],
            registry=self.registry,
        )

        self.signature_failures_total = Counter(
            "event_tracker_signature_failures_total",
            "Total webhook requests that failed signature verification",
            ["verifier"],
            registry=self.registry,
        )

        self.notifications_total = Counter(
            "event_tracker_notifications_total",
            "Chat notifications by outcome",
            ["outcome"],
            registry=self.registry,
        )

        self.process_memory_bytes = Gauge(
            "process_resident_memory_bytes",
            "Resident memory size in bytes",
            ["service"],
            registry=self.registry,
        )
        self.update_system_metrics()

    def update_system_metrics(self):
        """Update process metrics from psutil."""
        try:
            memory_info = psutil.Process(os.getpid()).memory_info()
        except psutil.Error:
            return
        self.process_memory_bytes.labels(service=self.service_name).set(memory_info.rss)

    def record_event(self, event_type: str, source: str, dry_run: bool):
        """Record an event accepted by the pipeline."""
        self.events_recorded_total.labels(
            event_type=event_type, source=source, dry_run=str(dry_run).lower()
        ).inc()

    def record_rejection(self, source: str):
        self.events_rejected_total.labels(source=source).inc()

    def record_signature_failure(self, verifier: str):
        self.signature_failures_total.labels(verifier=verifier).inc()

    def record_notification(self, outcome: str):
        self.notifications_total.labels(outcome=outcome).inc()


@lru_cache(maxsize=1)
def get_metrics() -> Metrics:
    return Metrics()
