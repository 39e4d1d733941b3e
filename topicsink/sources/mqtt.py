"""MQTT subscriber message source."""
from urllib.parse import urlsplit
import structlog
import paho.mqtt.client as mqtt
from .base import MessageSource
from ..errors import SourceUnavailableError
from ..handler import MessageHandler

log = structlog.get_logger()


class MqttSource(MessageSource):
    """Subscribes to topic filters on an MQTT broker.

    Every PUBLISH received is handed to the handler with its topic and
    its payload decoded as UTF-8. Undecodable bytes are replaced rather
    than dropping the message.
    """

    def __init__(
        self,
        handler: MessageHandler,
        mqtt_url: str,
        topics: list[str] | None = None,
        client_id: str = "topicsink",
        qos: int = 0,
        loop_timeout: float = 1.0,
    ):
        """
        Initialize MQTT source.

        Args:
            handler: Receives every decoded message
            mqtt_url: Broker URL, ``mqtt://[user:pass@]host[:port]``;
                ``mqtts://`` enables TLS
            topics: Topic filters to subscribe to (default ``["#"]``)
            client_id: MQTT client identifier
            qos: Subscription QoS level
            loop_timeout: Seconds one network loop waits for traffic
        """
        super().__init__(handler)
        self.mqtt_url = mqtt_url
        self.topics = topics or ["#"]
        self._client_id = client_id
        self._qos = qos
        self._loop_timeout = loop_timeout
        self._client: mqtt.Client | None = None
        self._delivered = 0

    def _get_client(self) -> mqtt.Client:
        """Get or create a connected MQTT client."""
        if self._client is not None:
            return self._client

        url = urlsplit(self.mqtt_url)
        tls = url.scheme == "mqtts"
        client = mqtt.Client(
            callback_api_version=mqtt.CallbackAPIVersion.VERSION2,
            client_id=self._client_id,
        )
        if url.username:
            client.username_pw_set(url.username, url.password)
        if tls:
            client.tls_set()
        client.on_connect = self._on_connect
        client.on_message = self._on_message

        try:
            client.connect(url.hostname or "localhost", url.port or (8883 if tls else 1883))
        except OSError as e:
            log.error("mqtt.connect_failed", error=str(e), host=url.hostname)
            raise SourceUnavailableError(str(e)) from e

        self._client = client
        return client

    def _on_connect(self, client, userdata, flags, reason_code, properties):
        if reason_code.is_failure:
            log.error("mqtt.connect_refused", reason=str(reason_code))
            return
        # Subscriptions are re-issued on every (re)connect
        client.subscribe([(topic, self._qos) for topic in self.topics])
        log.info("mqtt.subscribed", topics=self.topics, qos=self._qos)

    def _on_message(self, client, userdata, msg):
        payload = msg.payload.decode("utf-8", errors="replace")
        if self.deliver(msg.topic, payload):
            self._delivered += 1

    def poll_once(self) -> int:
        """
        Run one iteration of the MQTT network loop.

        Messages arriving during the iteration are dispatched from
        ``_on_message`` on this thread.

        Returns:
            Number of messages delivered to the handler

        Raises:
            SourceUnavailableError: If the broker connection is lost
        """
        client = self._get_client()
        self._delivered = 0
        rc = client.loop(timeout=self._loop_timeout)
        if rc != mqtt.MQTT_ERR_SUCCESS:
            error = mqtt.error_string(rc)
            log.error("mqtt.loop_failed", error=error)
            self.close()
            raise SourceUnavailableError(error)
        return self._delivered

    def close(self):
        """Disconnect from the broker."""
        if self._client:
            self._client.disconnect()
            self._client = None
