"""
Health check endpoints for liveness and readiness checks.
"""
from datetime import datetime, timezone
from typing import Dict, Any
import time
import psutil
from .logging import get_logger
from .sinks.base import EventSink

logger = get_logger()


class HealthChecker:
    """
    Health checker for the event tracker.

    Provides:
    - Liveness checks (is the service running?)
    - Readiness checks (can the service record events?)
    """

    def __init__(self, service_name: str, version: str, sink: EventSink):
        self.service_name = service_name
        self.version = version
        self.sink = sink

    def _timestamp(self) -> str:
        return datetime.now(timezone.utc).isoformat()

    def liveness(self) -> Dict[str, Any]:
        """
        Liveness check - basic health check.

        Returns:
            dict: Health status with service info and timestamp
        """
        return {
            "status": "ok",
            "service": self.service_name,
            "version": self.version,
            "timestamp": self._timestamp(),
        }

    async def readiness(self) -> Dict[str, Any]:
        """
        Readiness check.

        The service is not ready when the event sink is unreachable or the
        host is out of disk or memory.

        Returns:
            dict: Readiness status with detailed check results
        """
        checks = {
            "sink": await self._check_sink(),
            "disk_space": self._check_disk_space(),
            "memory": self._check_memory(),
        }
        ready = all(check["status"] != "error" for check in checks.values())

        return {
            "status": "ready" if ready else "not_ready",
            "service": self.service_name,
            "version": self.version,
            "timestamp": self._timestamp(),
            "checks": checks,
        }

    async def _check_sink(self) -> Dict[str, Any]:
        start = time.time()
        healthy = await self.sink.health_check()
        latency_ms = round((time.time() - start) * 1000, 2)
        if not healthy:
            return {"status": "error", "latency_ms": latency_ms}
        return {"status": "ok", "latency_ms": latency_ms}

    def _check_disk_space(self, threshold_gb: float = 1.0) -> Dict[str, Any]:
        """
        Check available disk space.

        Args:
            threshold_gb: Minimum available disk space in GB (default: 1.0)
        """
        try:
            disk = psutil.disk_usage("/")
        except OSError as e:
            logger.warning("disk_health_check_failed", error=str(e))
            return {"status": "error", "error": str(e)}

        available_gb = disk.free / (1024**3)
        if available_gb < threshold_gb:
            status = "error"
        elif available_gb < threshold_gb * 2:
            status = "warning"
        else:
            status = "ok"

        return {
            "status": status,
            "available_gb": round(available_gb, 2),
            "used_percent": disk.percent,
        }

    def _check_memory(self, threshold_mb: float = 50.0) -> Dict[str, Any]:
        """
        Check available memory.

        Args:
            threshold_mb: Minimum available memory in MB (default: 50.0)
        """
        memory = psutil.virtual_memory()
        available_mb = memory.available / (1024**2)

        if available_mb < threshold_mb:
            status = "error"
        elif available_mb < threshold_mb * 2:
            status = "warning"
        else:
            status = "ok"

        return {
            "status": status,
            "available_mb": round(available_mb, 2),
            "used_percent": memory.percent,
        }
