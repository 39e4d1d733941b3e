"""Exceptions raised inside the ingestion path.

None of these escape ``MessageIngestor.handle``; they are turned into a
failed ``PersistResult`` and a log line.
"""


class SinkError(Exception):
    """Base class for ingestion errors."""


class InvalidTopicError(SinkError):
    """Topic cannot be used as a MongoDB collection name."""

    def __init__(self, topic: str, reason: str):
        self.topic = topic
        self.reason = reason
        super().__init__(f"invalid topic {topic!r}: {reason}")


class PayloadOverflowError(SinkError, ValueError):
    """Numeric payload does not fit the target wire type."""

    def __init__(self, payload: str, kind: str):
        self.payload = payload
        self.kind = kind
        super().__init__(f"{kind} payload out of range: {payload!r}")


class SourceUnavailableError(SinkError):
    """Transport could not be read; the source retries after a delay."""
