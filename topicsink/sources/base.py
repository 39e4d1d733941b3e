"""Base interface for transports that feed messages to a handler."""
from abc import ABC, abstractmethod
import threading
import structlog
from ..errors import SourceUnavailableError
from ..handler import MessageHandler

log = structlog.get_logger()


class MessageSource(ABC):
    """Abstract pull-based transport delivering messages to a MessageHandler."""

    retry_delay: float = 5.0

    def __init__(self, handler: MessageHandler):
        self.handler = handler

    @abstractmethod
    def poll_once(self) -> int:
        """
        Fetch one batch from the transport and hand each message over.

        Returns:
            Number of messages delivered to the handler

        Raises:
            SourceUnavailableError: If the transport cannot be read
        """
        pass

    def deliver(self, topic: str, payload: str) -> bool:
        """
        Hand one message to the handler, skipping it if the handler fails.

        Returns:
            True if the handler returned a result
        """
        try:
            self.handler.handle(topic, payload)
        except Exception:
            log.exception("source.delivery_failed", topic=topic)
            return False
        return True

    def run(self, stop: threading.Event):
        """Poll until ``stop`` is set, backing off while the transport is down."""
        # Source threads start with an empty context; HTTP binds its own
        structlog.contextvars.bind_contextvars(
            source=type(self).__name__,
            thread=threading.current_thread().name,
        )
        log.info("source.started")
        while not stop.is_set():
            try:
                self.poll_once()
            except SourceUnavailableError as e:
                log.warning("source.unavailable", error=str(e), retry_in=self.retry_delay)
                stop.wait(self.retry_delay)
            except Exception:
                log.exception("source.poll_failed", retry_in=self.retry_delay)
                stop.wait(self.retry_delay)
        log.info("source.stopped")
        structlog.contextvars.unbind_contextvars("source", "thread")

    def close(self):
        """Release transport resources."""
