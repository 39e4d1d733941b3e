"""
HTTP middleware: correlation ids and Prometheus request metrics.
"""
import uuid
import time
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
import structlog

UNMATCHED_ROUTE = "unmatched"


def route_template(request: Request) -> str:
    """
    Path template of the route that served the request.

    Labels use ``/v1/messages`` style templates so arbitrary client paths
    cannot grow the metric label set; unrouted requests share one label.
    """
    route = request.scope.get("route")
    return getattr(route, "path", UNMATCHED_ROUTE)


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """
    Tags each webhook request with a correlation id.

    The id comes from X-Correlation-ID or is generated. It is stored on
    ``request.state`` for the message response, bound into the structlog
    context so the sink's ``document.*`` lines carry it, and echoed back
    in the response headers.
    """

    async def dispatch(self, request: Request, call_next):
        correlation_id = request.headers.get("x-correlation-id") or str(uuid.uuid4())
        request.state.correlation_id = correlation_id

        with structlog.contextvars.bound_contextvars(
            correlation_id=correlation_id,
            transport="http",
        ):
            response = await call_next(request)

        response.headers["x-correlation-id"] = correlation_id
        return response


class MetricsMiddleware(BaseHTTPMiddleware):
    """Counts requests and observes latency per method, route template and status."""

    def __init__(self, app, metrics):
        super().__init__(app)
        self.metrics = metrics

    async def dispatch(self, request: Request, call_next):
        if request.url.path.startswith("/metrics"):
            return await call_next(request)

        start_time = time.time()
        try:
            response = await call_next(request)
            status = response.status_code
        except Exception:
            status = 500
            raise
        finally:
            duration = time.time() - start_time
            path = route_template(request)
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

        structlog.get_logger().info(
            "http_request",
            route=path,
            http_status=status,
            duration_ms=round(duration * 1000, 2),
        )
        return response
