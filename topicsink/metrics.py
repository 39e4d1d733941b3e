"""
Prometheus metrics for the topicsink service.
"""
from prometheus_client import Counter, Histogram, Gauge, Info, CollectorRegistry


class Metrics:
    """
    Centralized metrics for the topicsink service.
    """

    def __init__(self, service_name: str = "topicsink", version: str = "0.1.0", registry=None):
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

        self.sink_active = Gauge(
            "topicsink_sink_active",
            "Whether a store connection is configured (1=active, 0=inactive)",
            registry=self.registry,
        )

        # Ingestion
        self.messages_total = Counter(
            "topicsink_messages_total",
            "Messages handled, by inferred kind and outcome",
            ["kind", "outcome"],
            registry=self.registry,
        )

        self.insert_duration = Histogram(
            "topicsink_insert_duration_seconds",
            "Store insert round-trip duration in seconds",
            registry=self.registry,
        )

    def record_message(self, kind: str, outcome: str):
        """Record one handled message."""
        self.messages_total.labels(kind=kind, outcome=outcome).inc()

    def record_insert(self, duration: float):
        """Record the duration of one store round-trip."""
        self.insert_duration.observe(duration)
