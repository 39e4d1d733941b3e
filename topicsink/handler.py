"""Message handling entry point used by every transport."""
from abc import ABC, abstractmethod
from pydantic import ValidationError
import structlog
import time
from .classifier import OverflowPolicy, classify
from .errors import InvalidTopicError, PayloadOverflowError
from .metrics import Metrics
from .models import InboundMessage, PersistResult
from .sink import DocumentSink

log = structlog.get_logger()


class MessageHandler(ABC):
    """Interface a transport adapter delivers (topic, payload) events to."""

    @abstractmethod
    def handle(self, topic: str, payload: str) -> PersistResult:
        """
        Process one inbound message.

        Args:
            topic: Routing key the message was published under
            payload: Raw message body as text

        Returns:
            Outcome of the store write; never raises for per-message failures
        """
        pass


class MessageIngestor(MessageHandler):
    """Classifies each payload and persists it through a DocumentSink."""

    def __init__(
        self,
        sink: DocumentSink,
        overflow: OverflowPolicy = "saturate",
        metrics: Metrics | None = None,
    ):
        self._sink = sink
        self._overflow = overflow
        self._metrics = metrics

    def handle(self, topic: str, payload: str) -> PersistResult:
        # Every log line emitted while handling this message carries its topic
        with structlog.contextvars.bound_contextvars(topic=topic):
            return self._handle(topic, payload)

    def _handle(self, topic: str, payload: str) -> PersistResult:
        timestamp = int(time.time())
        try:
            msg = InboundMessage(topic=topic, payload=payload)
        except ValidationError as e:
            if not topic:
                error = str(InvalidTopicError(topic, "empty"))
            else:
                error = e.errors()[0]["msg"]
            log.warning("message.rejected", error=error)
            self._record("unknown", "dropped")
            return PersistResult(ok=False, topic=str(topic), error=error)

        try:
            value = classify(msg.payload, overflow=self._overflow)
        except PayloadOverflowError as e:
            log.warning("message.dropped", kind=e.kind, error=str(e))
            self._record(e.kind, "dropped")
            return PersistResult(ok=False, topic=msg.topic, error=str(e))

        result = self._sink.persist(msg.topic, value, timestamp)
        self._record(value.kind, "stored" if result.ok else "failed")
        return result

    def _record(self, kind: str, outcome: str):
        if self._metrics is not None:
            self._metrics.record_message(kind, outcome)
