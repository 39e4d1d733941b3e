"""Redis Streams message source."""
import structlog
import orjson
from redis import Redis
from redis.exceptions import RedisError
from .base import MessageSource
from ..errors import SourceUnavailableError
from ..handler import MessageHandler

log = structlog.get_logger()


class RedisStreamSource(MessageSource):
    """Consumes published messages from a Redis stream.

    Each stream entry carries a ``data`` field holding a JSON object
    ``{"topic": ..., "payload": ...}``. Only entries added after the
    source starts are read.
    """

    def __init__(
        self,
        handler: MessageHandler,
        redis_url: str,
        stream_key: str = "topicsink:messages",
        block_ms: int = 1000,
    ):
        """
        Initialize Redis stream source.

        Args:
            handler: Receives every decoded message
            redis_url: Redis connection URL
            stream_key: Stream to read from
            block_ms: How long one XREAD waits for new entries
        """
        super().__init__(handler)
        self.redis_url = redis_url
        self._stream_key = stream_key
        self._block_ms = block_ms
        self._client: Redis | None = None
        self._last_id = "$"

    def _get_client(self) -> Redis:
        """Get or create Redis client."""
        if self._client is None:
            self._client = Redis.from_url(
                self.redis_url,
                decode_responses=False,
                socket_connect_timeout=5,
                socket_timeout=(self._block_ms / 1000) + 5,
            )
        return self._client

    def poll_once(self) -> int:
        """
        Read the next batch of stream entries and dispatch them.

        Returns:
            Number of entries delivered to the handler

        Raises:
            SourceUnavailableError: If Redis cannot be read
        """
        try:
            client = self._get_client()
            response = client.xread({self._stream_key: self._last_id}, block=self._block_ms)
        except RedisError as e:
            log.error("redis.read_failed", error=str(e), stream=self._stream_key)
            self.close()
            raise SourceUnavailableError(str(e)) from e

        delivered = 0
        for _stream, entries in response or []:
            for entry_id, entry_data in entries:
                self._last_id = entry_id
                message = self._decode(entry_id, entry_data)
                if message is None:
                    continue
                if self.deliver(*message):
                    delivered += 1
        return delivered

    def _decode(self, entry_id, entry_data: dict) -> tuple[str, str] | None:
        try:
            data = orjson.loads(entry_data[b"data"])
            topic = data["topic"]
            payload = data.get("payload", "")
        except (KeyError, TypeError, AttributeError, orjson.JSONDecodeError) as e:
            log.warning("redis.entry_skipped", entry_id=str(entry_id), error=str(e))
            return None

        if not isinstance(topic, str) or not isinstance(payload, str):
            log.warning("redis.entry_skipped", entry_id=str(entry_id), error="topic and payload must be strings")
            return None
        return topic, payload

    def close(self):
        """Close Redis connection."""
        if self._client:
            self._client.close()
            self._client = None
