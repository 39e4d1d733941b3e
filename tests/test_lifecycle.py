"""Tests for configuration and the store connection lifecycle."""
import pytest
from unittest.mock import MagicMock, patch
from prometheus_client import CollectorRegistry
from pymongo.errors import ServerSelectionTimeoutError
from topicsink.config import Settings
from topicsink.connection import StoreConnection
from topicsink.handler import MessageIngestor
from topicsink.lifecycle import SinkRuntime
from topicsink.metrics import Metrics


def make_settings(**overrides) -> Settings:
    return Settings(_env_file=None, **overrides)


def test_settings_defaults(monkeypatch):
    for name in ("MONGODB_URI", "MONGODB_DATABASE", "INTEGER_OVERFLOW", "REDIS_URL", "MQTT_URL"):
        monkeypatch.delenv(name, raising=False)
    settings = make_settings()
    assert settings.MONGODB_URI is None
    assert settings.MONGODB_DATABASE == "tcc"
    assert settings.INTEGER_OVERFLOW == "saturate"
    assert settings.REDIS_URL is None


def test_settings_read_from_environment(monkeypatch):
    monkeypatch.setenv("MONGODB_URI", "mongodb://db:27017")
    monkeypatch.setenv("MONGODB_DATABASE", "telemetry")
    monkeypatch.setenv("INTEGER_OVERFLOW", "error")

    settings = make_settings()

    assert settings.MONGODB_URI == "mongodb://db:27017"
    assert settings.MONGODB_DATABASE == "telemetry"
    assert settings.INTEGER_OVERFLOW == "error"


def test_missing_uri_leaves_sink_inactive():
    metrics = Metrics(registry=CollectorRegistry())
    runtime = SinkRuntime(make_settings(), metrics=metrics)

    with patch("topicsink.connection.MongoClient") as mock_client_class:
        runtime.start()

    mock_client_class.assert_not_called()
    assert runtime.active is False
    assert runtime.connection is None
    assert metrics.registry.get_sample_value("topicsink_sink_active") == 0

    # Stopping an inactive runtime is a no-op
    runtime.stop()


def test_start_builds_client_with_timeouts():
    settings = make_settings(
        MONGODB_URI="mongodb://db:27017",
        MONGODB_TIMEOUT_MS=1500,
        MONGODB_SERVER_SELECTION_TIMEOUT_MS=2500,
    )
    runtime = SinkRuntime(settings)

    with patch("topicsink.connection.MongoClient") as mock_client_class:
        runtime.start()

    mock_client_class.assert_called_once_with(
        "mongodb://db:27017",
        timeoutMS=1500,
        serverSelectionTimeoutMS=2500,
    )
    assert runtime.active is True
    assert isinstance(runtime.ingestor, MessageIngestor)


def test_stop_closes_client_once():
    metrics = Metrics(registry=CollectorRegistry())
    runtime = SinkRuntime(make_settings(MONGODB_URI="mongodb://db:27017"), metrics=metrics)

    with patch("topicsink.connection.MongoClient") as mock_client_class:
        runtime.start()
        assert metrics.registry.get_sample_value("topicsink_sink_active") == 1
        runtime.stop()
        runtime.stop()

    mock_client_class.return_value.close.assert_called_once()
    assert runtime.active is False
    assert metrics.registry.get_sample_value("topicsink_sink_active") == 0


def test_ingestor_writes_to_configured_database():
    settings = make_settings(MONGODB_URI="mongodb://db:27017", MONGODB_DATABASE="telemetry")
    runtime = SinkRuntime(settings)

    with patch("topicsink.connection.MongoClient") as mock_client_class:
        client = mock_client_class.return_value
        runtime.start()
        result = runtime.ingestor.handle("sensors/temp", "21")

    assert result.ok is True
    client.__getitem__.assert_called_with("telemetry")
    client.__getitem__.return_value.__getitem__.assert_called_with("sensors/temp")


def test_redis_source_started_when_configured():
    settings = make_settings(MONGODB_URI="mongodb://db:27017", REDIS_URL="redis://cache:6379")
    runtime = SinkRuntime(settings)

    with patch("topicsink.connection.MongoClient"), patch(
        "topicsink.lifecycle.RedisStreamSource"
    ) as mock_source_class:
        source = mock_source_class.return_value
        runtime.start()
        runtime.stop()

    mock_source_class.assert_called_once()
    call = mock_source_class.call_args
    assert isinstance(call.args[0], MessageIngestor)
    assert call.kwargs == {
        "redis_url": "redis://cache:6379",
        "stream_key": "topicsink:messages",
        "block_ms": 1000,
    }
    source.run.assert_called_once()
    source.close.assert_called_once()


def test_connection_ping_propagates_store_error():
    client = MagicMock()
    client.admin.command.side_effect = ServerSelectionTimeoutError("timed out")
    connection = StoreConnection(client, "tcc")

    with pytest.raises(ServerSelectionTimeoutError):
        connection.ping()


def test_mqtt_source_started_when_configured():
    settings = make_settings(
        MONGODB_URI="mongodb://db:27017",
        MQTT_URL="mqtt://broker:1883",
        MQTT_TOPICS="sensors/#, home/+",
    )
    runtime = SinkRuntime(settings)

    with patch("topicsink.connection.MongoClient"), patch(
        "topicsink.lifecycle.MqttSource"
    ) as mock_source_class:
        source = mock_source_class.return_value
        runtime.start()
        runtime.stop()

    call = mock_source_class.call_args
    assert isinstance(call.args[0], MessageIngestor)
    assert call.kwargs == {
        "mqtt_url": "mqtt://broker:1883",
        "topics": ["sensors/#", "home/+"],
        "client_id": "topicsink",
        "qos": 0,
    }
    source.run.assert_called_once()
    source.close.assert_called_once()
