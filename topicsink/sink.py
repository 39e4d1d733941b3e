"""Per-topic document persistence."""
import time
import structlog
from bson.errors import BSONError
from pymongo.errors import PyMongoError
from .connection import StoreConnection
from .errors import InvalidTopicError
from .metrics import Metrics
from .models import PersistResult, StoredDocument, TypedValue

log = structlog.get_logger()


def validate_topic(topic: str) -> str:
    """
    Check that a topic is usable verbatim as a collection name.

    Topics are rejected rather than rewritten, so two distinct topics can
    never end up in the same collection.

    Raises:
        InvalidTopicError: If MongoDB would refuse the name
    """
    if not topic:
        raise InvalidTopicError(topic, "empty")
    if "$" in topic:
        raise InvalidTopicError(topic, "contains '$'")
    if "\x00" in topic:
        raise InvalidTopicError(topic, "contains NUL")
    if topic.startswith("system."):
        raise InvalidTopicError(topic, "reserved 'system.' prefix")
    if topic.startswith(".") or topic.endswith("."):
        raise InvalidTopicError(topic, "leading or trailing '.'")
    if ".." in topic:
        raise InvalidTopicError(topic, "empty name segment")
    return topic


class DocumentSink:
    """
    Writes one document per call into the collection named after the topic.

    Failures are logged and returned; nothing is retried or buffered.
    """

    def __init__(self, connection: StoreConnection, metrics: Metrics | None = None):
        self._connection = connection
        self._metrics = metrics

    def persist(self, topic: str, value: TypedValue, timestamp: int) -> PersistResult:
        """
        Insert a typed value into the topic's collection.

        Args:
            topic: Destination collection name
            value: Classified payload
            timestamp: Epoch seconds taken at classification

        Returns:
            PersistResult with the new document id, or the error text
        """
        try:
            validate_topic(topic)
        except InvalidTopicError as e:
            log.warning("document.topic_rejected", topic=topic, reason=e.reason)
            return PersistResult(ok=False, topic=topic, error=str(e))

        document = StoredDocument(value=value, timestamp=timestamp)

        start_time = time.time()
        try:
            # Collection handles are resolved per call and never cached
            collection = self._connection.database[topic]
            collection.insert_one(document.to_bson())
        except (PyMongoError, BSONError, UnicodeEncodeError) as e:
            self._record_insert(start_time)
            # BSONError covers InvalidDocument and DocumentTooLarge; lone
            # surrogates in text payloads fail UTF-8 encoding
            log.error(
                "document.insert_failed",
                topic=topic,
                kind=value.kind,
                error=str(e),
                error_type=type(e).__name__,
            )
            return PersistResult(ok=False, topic=topic, error=str(e))

        self._record_insert(start_time)
        log.info(
            "document.inserted",
            id=str(document.id),
            topic=topic,
            kind=value.kind,
        )
        return PersistResult(ok=True, topic=topic, document_id=str(document.id))

    def _record_insert(self, start_time: float):
        if self._metrics is not None:
            self._metrics.record_insert(time.time() - start_time)
