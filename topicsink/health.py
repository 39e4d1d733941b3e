"""
Liveness and readiness checks.
"""
from datetime import datetime, timezone
from typing import Dict, Any
import time
import psutil
from pymongo.errors import PyMongoError
from .lifecycle import SinkRuntime
from .logging import get_logger

logger = get_logger()


class HealthChecker:
    """
    Health checker for the topicsink service.

    An inactive sink (no store URI) is still ready: the process is meant
    to keep running without ingestion.
    """

    def __init__(self, runtime: SinkRuntime, service_name: str = "topicsink", version: str = "0.1.0"):
        self.runtime = runtime
        self.service_name = service_name
        self.version = version

    def _now(self) -> str:
        return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")

    def liveness(self) -> Dict[str, Any]:
        return {
            "status": "ok",
            "service": self.service_name,
            "version": self.version,
            "sink_active": self.runtime.active,
            "timestamp": self._now(),
        }

    def readiness(self) -> Dict[str, Any]:
        """
        Readiness check.

        Checks:
        - MongoDB round-trip (skipped while the sink is inactive)
        - Available memory

        Returns:
            dict: Readiness status with detailed check results
        """
        checks = {
            "mongodb": self._check_mongodb(),
            "memory": self._check_memory(),
        }
        overall_status = "ready"
        if any(check["status"] == "error" for check in checks.values()):
            overall_status = "not_ready"

        return {
            "status": overall_status,
            "service": self.service_name,
            "version": self.version,
            "timestamp": self._now(),
            "checks": checks,
        }

    def _check_mongodb(self) -> Dict[str, Any]:
        connection = self.runtime.connection
        if connection is None:
            return {
                "status": "skipped",
                "message": "MongoDB not configured",
            }

        start = time.time()
        try:
            connection.ping()
        except PyMongoError as e:
            logger.warning("mongodb_health_check_failed", error=str(e))
            return {
                "status": "error",
                "error": str(e),
            }
        return {
            "status": "ok",
            "latency_ms": round((time.time() - start) * 1000, 2),
        }

    def _check_memory(self, threshold_mb: float = 50.0) -> Dict[str, Any]:
        """
        Check available memory.

        Args:
            threshold_mb: Below this many MB the check fails; below twice
                this it warns
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
