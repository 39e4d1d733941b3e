"""
topicsink - persists published broker messages as typed MongoDB documents.

Features:
- Per-topic collections, payloads stored as string, double or int32
- HTTP webhook and Redis Streams transports
- Structured logging with correlation IDs
- Prometheus metrics
- Health checks (liveness and readiness)
"""
from fastapi import FastAPI
from fastapi.responses import JSONResponse
from prometheus_client import make_asgi_app
from .config import get_settings
from .logging import setup_logging, get_logger
from .api.router import router
from .middleware import CorrelationIdMiddleware, MetricsMiddleware
from .metrics import Metrics
from .health import HealthChecker
from .lifecycle import SinkRuntime

VERSION = "0.1.0"

settings = get_settings()

setup_logging(json_output=settings.LOG_JSON, service_name="topicsink")
logger = get_logger()

metrics = Metrics(service_name="topicsink", version=VERSION)

# Connection and ingestor are built in the startup hook
runtime = SinkRuntime(settings, metrics=metrics)

health_checker = HealthChecker(runtime, service_name="topicsink", version=VERSION)

app = FastAPI(
    title="topicsink",
    version=VERSION,
    description="Message ingestion sink writing typed documents to per-topic collections",
)
app.state.runtime = runtime

# Correlation ID first, then metrics
app.add_middleware(CorrelationIdMiddleware)
app.add_middleware(MetricsMiddleware, metrics=metrics)

app.include_router(router)

app.mount("/metrics", make_asgi_app(registry=metrics.registry))


@app.get("/health")
async def health():
    """Liveness check."""
    logger.debug("health_check_liveness")
    return health_checker.liveness()


@app.get("/health/ready")
def health_ready():
    """
    Readiness check.

    Returns:
        200: Service is ready
        503: MongoDB unreachable or memory exhausted
    """
    logger.debug("health_check_readiness")
    result = health_checker.readiness()
    status_code = 200 if result["status"] == "ready" else 503
    return JSONResponse(status_code=status_code, content=result)


@app.on_event("startup")
async def startup_event():
    logger.info(
        "service_starting",
        version=VERSION,
        env=settings.ENV,
        mongodb_configured=bool(settings.MONGODB_URI),
        redis_configured=bool(settings.REDIS_URL),
        mqtt_configured=bool(settings.MQTT_URL),
    )
    runtime.start()


@app.on_event("shutdown")
async def shutdown_event():
    logger.info("service_stopping")
    runtime.stop()
    metrics.app_up.labels(service="topicsink", version=VERSION).set(0)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "topicsink.main:app",
        host="0.0.0.0",
        port=settings.SERVICE_PORT,
    )
