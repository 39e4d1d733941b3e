"""Startup and shutdown of the store connection and message sources."""
import threading
import structlog
from .config import Settings
from .connection import StoreConnection
from .handler import MessageIngestor
from .metrics import Metrics
from .sink import DocumentSink
from .sources.base import MessageSource
from .sources.mqtt import MqttSource
from .sources.redis_stream import RedisStreamSource

log = structlog.get_logger()


class SinkRuntime:
    """
    Owns everything that lives for the whole process.

    ``start()`` builds the store connection and the ingestor wired to it;
    ``stop()`` tears them down. Without a store URI the runtime starts with
    no ingestor and the service keeps running without ingestion.
    """

    def __init__(self, settings: Settings, metrics: Metrics | None = None):
        self.settings = settings
        self.metrics = metrics
        self.connection: StoreConnection | None = None
        self.ingestor: MessageIngestor | None = None
        self._sources: list[MessageSource] = []
        self._threads: list[threading.Thread] = []
        self._stop = threading.Event()

    @property
    def active(self) -> bool:
        return self.ingestor is not None

    def start(self):
        self._stop.clear()
        self.connection = StoreConnection.from_settings(self.settings)
        if self.metrics is not None:
            self.metrics.sink_active.set(1 if self.connection else 0)
        if self.connection is None:
            return

        self.ingestor = MessageIngestor(
            DocumentSink(self.connection, metrics=self.metrics),
            overflow=self.settings.INTEGER_OVERFLOW,
            metrics=self.metrics,
        )

        if self.settings.REDIS_URL:
            self.add_source(
                RedisStreamSource(
                    self.ingestor,
                    redis_url=self.settings.REDIS_URL,
                    stream_key=self.settings.REDIS_STREAM_KEY,
                    block_ms=self.settings.REDIS_BLOCK_MS,
                )
            )

        if self.settings.MQTT_URL:
            self.add_source(
                MqttSource(
                    self.ingestor,
                    mqtt_url=self.settings.MQTT_URL,
                    topics=[t.strip() for t in self.settings.MQTT_TOPICS.split(",") if t.strip()],
                    client_id=self.settings.MQTT_CLIENT_ID,
                    qos=self.settings.MQTT_QOS,
                )
            )

    def add_source(self, source: MessageSource):
        """Run a source on its own daemon thread until ``stop()``."""
        thread = threading.Thread(
            target=source.run,
            args=(self._stop,),
            name=f"source-{type(source).__name__}",
            daemon=True,
        )
        self._sources.append(source)
        self._threads.append(thread)
        thread.start()
        log.info("source.attached", source=type(source).__name__)

    def stop(self, timeout: float = 10.0):
        self._stop.set()
        for thread in self._threads:
            thread.join(timeout)
        for source in self._sources:
            source.close()
        self._sources.clear()
        self._threads.clear()

        self.ingestor = None
        if self.connection is not None:
            self.connection.close()
            self.connection = None
        if self.metrics is not None:
            self.metrics.sink_active.set(0)
