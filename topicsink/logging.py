"""
Structured logging configuration using structlog.

Every entry carries the service name and call site. Context bound by the
transports rides along: ``correlation_id``/``transport`` for webhook
requests, ``source``/``thread`` for Redis and MQTT consumers, and
``topic`` while a message is being handled. A stored message looks like:

{
    "ts": "2026-10-19T08:15:00.123456Z",
    "level": "info",
    "service": "topicsink",
    "source": "MqttSource",
    "thread": "source-MqttSource",
    "topic": "sensors/temp",
    "event": "document.inserted",
    "id": "6710a9...",
    "kind": "float",
    "module": "topicsink.sink",
    "func_name": "persist",
    "lineno": 90
}
"""
import structlog
import logging
from typing import Any

CALLSITE = structlog.processors.CallsiteParameterAdder(
    {
        structlog.processors.CallsiteParameter.MODULE,
        structlog.processors.CallsiteParameter.FUNC_NAME,
        structlog.processors.CallsiteParameter.LINENO,
    }
)


def add_service_name(service_name: str):
    """Build a processor stamping every entry with the service name."""

    def processor(logger: Any, method_name: str, event_dict: dict) -> dict:
        event_dict["service"] = service_name
        return event_dict

    return processor


def setup_logging(json_output: bool = True, service_name: str = "topicsink"):
    """
    Configure structured logging.

    Args:
        json_output: If True, output JSON logs. If False, use console format.
        service_name: Value of the ``service`` field on every entry.
    """
    processors = [
        structlog.contextvars.merge_contextvars,
        add_service_name(service_name),
        structlog.processors.TimeStamper(fmt="iso", key="ts"),
        structlog.processors.add_log_level,
        CALLSITE,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]
    if json_output:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(logging.INFO),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(format="%(message)s", level=logging.INFO)

    # pymongo logs every heartbeat failure; paho is chatty on reconnects
    logging.getLogger("pymongo").setLevel(logging.WARNING)
    logging.getLogger("paho").setLevel(logging.WARNING)
    # uvicorn's own access log duplicates the http_request entries
    logging.getLogger("uvicorn.access").handlers = []


def get_logger():
    """Get a configured structlog logger."""
    return structlog.get_logger()
