"""Tests for the per-topic document sink."""
import bson
import pytest
from unittest.mock import MagicMock, patch
from bson import ObjectId
from bson.int64 import Int64
from pymongo.errors import DocumentTooLarge, OperationFailure, ServerSelectionTimeoutError
from topicsink.errors import InvalidTopicError
from topicsink.models import FloatValue, IntegerValue, StoredDocument, TextValue
from topicsink.sink import DocumentSink, validate_topic

BSON_DOUBLE = 0x01
BSON_STRING = 0x02
BSON_INT32 = 0x10
BSON_INT64 = 0x12


def wire_type(value) -> int:
    """BSON element type byte for a single-field document."""
    return bson.encode({"v": value})[4]


@pytest.fixture
def collection():
    return MagicMock()


@pytest.fixture
def connection(collection):
    conn = MagicMock()
    conn.database.__getitem__.return_value = collection
    return conn


def test_persist_inserts_one_document_into_topic_collection(connection, collection):
    sink = DocumentSink(connection)

    result = sink.persist("sensors/temp", FloatValue(value=21.5), 1700000000)

    assert result.ok is True
    assert result.topic == "sensors/temp"
    connection.database.__getitem__.assert_called_once_with("sensors/temp")
    collection.insert_one.assert_called_once()

    doc = collection.insert_one.call_args[0][0]
    assert set(doc) == {"_id", "value", "timestamp"}
    assert isinstance(doc["_id"], ObjectId)
    assert str(doc["_id"]) == result.document_id
    assert doc["value"] == 21.5
    assert doc["timestamp"] == 1700000000


@pytest.mark.parametrize(
    "value,expected_type",
    [
        (TextValue(value="on"), BSON_STRING),
        (TextValue(value=""), BSON_STRING),
        (FloatValue(value=3.0), BSON_DOUBLE),
        (IntegerValue(value=-42), BSON_INT32),
        (IntegerValue(value=2147483647), BSON_INT32),
    ],
)
def test_value_wire_type_matches_tag(connection, collection, value, expected_type):
    DocumentSink(connection).persist("t", value, 1700000000)

    doc = collection.insert_one.call_args[0][0]
    assert wire_type(doc["value"]) == expected_type


def test_timestamp_is_written_as_int64(connection, collection):
    DocumentSink(connection).persist("t", IntegerValue(value=1), 5)

    doc = collection.insert_one.call_args[0][0]
    assert isinstance(doc["timestamp"], Int64)
    assert wire_type(doc["timestamp"]) == BSON_INT64


def test_each_persist_generates_a_new_id(connection, collection):
    """Same logical message twice gives two distinct documents."""
    sink = DocumentSink(connection)
    first = sink.persist("t", TextValue(value="x"), 1)
    second = sink.persist("t", TextValue(value="x"), 1)

    assert first.document_id != second.document_id
    assert collection.insert_one.call_count == 2


def test_collection_resolved_on_every_call(connection):
    sink = DocumentSink(connection)
    sink.persist("a", TextValue(value="1"), 1)
    sink.persist("b", TextValue(value="2"), 1)

    names = [c.args[0] for c in connection.database.__getitem__.call_args_list]
    assert names == ["a", "b"]


@pytest.mark.parametrize(
    "error",
    [
        ServerSelectionTimeoutError("No servers found yet, Timeout: 5.0s"),
        OperationFailure("not authorized on tcc to execute command"),
    ],
)
def test_store_failure_is_returned_not_raised(connection, collection, error):
    collection.insert_one.side_effect = error

    with patch("topicsink.sink.log") as mock_log:
        result = DocumentSink(connection).persist("t", IntegerValue(value=1), 1)

    assert result.ok is False
    assert result.document_id is None
    assert str(error) in result.error
    mock_log.error.assert_called_once()
    assert mock_log.error.call_args.kwargs["error"] == str(error)


@pytest.mark.parametrize(
    "topic",
    ["", "price$", "a\x00b", "system.users", ".hidden", "trailing.", "a..b"],
)
def test_invalid_topic_is_rejected_without_insert(connection, collection, topic):
    result = DocumentSink(connection).persist(topic, TextValue(value="x"), 1)

    assert result.ok is False
    assert "invalid topic" in result.error
    collection.insert_one.assert_not_called()


@pytest.mark.parametrize("topic", ["sensors/temp", "home/+/status", "a.b", "dev-1", "weird topic"])
def test_valid_topics_pass_through_unchanged(topic):
    assert validate_topic(topic) == topic


def test_validate_topic_reports_reason():
    with pytest.raises(InvalidTopicError) as exc:
        validate_topic("system.profile")
    assert exc.value.reason == "reserved 'system.' prefix"


def test_stored_document_to_bson_shape():
    doc = StoredDocument(value=TextValue(value="hi"), timestamp=10).to_bson()
    assert doc["value"] == "hi"
    assert doc["timestamp"] == Int64(10)


def test_oversized_document_is_returned_not_raised(connection, collection):
    """DocumentTooLarge is a BSON error, not a PyMongoError."""
    collection.insert_one.side_effect = DocumentTooLarge("BSON document too large (17000000 bytes)")

    with patch("topicsink.sink.log") as mock_log:
        result = DocumentSink(connection).persist("t", TextValue(value="x"), 1)

    assert result.ok is False
    assert "too large" in result.error
    assert mock_log.error.call_args.args[0] == "document.insert_failed"
    assert mock_log.error.call_args.kwargs["error_type"] == "DocumentTooLarge"


def test_unencodable_text_is_returned_not_raised(connection, collection):
    """A lone surrogate passes model validation but cannot be encoded."""
    collection.insert_one.side_effect = lambda doc: bson.encode(doc)

    result = DocumentSink(connection).persist("t", TextValue(value="\ud800"), 1)

    assert result.ok is False
    assert "surrogates not allowed" in result.error
