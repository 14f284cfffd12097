from __future__ import annotations

import threading

import pytest

from wiredb_py.errors import MissingKeyDefinitionError, PartialCountError, TooManyKeysError
from wiredb_py.mocks import ANY, FakeTransport
from wiredb_py.model import AttributeDefinition, KeySchema, TableDescription
from wiredb_py.options import condition_expression, return_values
from wiredb_py.table import TableHandle
from wiredb_py.testkit import RecordingSleep

ID = AttributeDefinition("id", "S")
TS = AttributeDefinition("ts", "N")
NUM = AttributeDefinition("n", "N")


def test_hash_only_table_keys() -> None:
    table = TableHandle("users", KeySchema(ID), FakeTransport())

    assert table.name == "users"
    assert table.hash_key == ID
    assert table.range_key is None
    assert table.has_range_key() is False
    assert table.key("u1") == {"id": {"S": "u1"}}

    with pytest.raises(TooManyKeysError):
        table.key("u1", 5)


def test_range_table_requires_range_value() -> None:
    table = TableHandle("events", KeySchema(ID, TS), FakeTransport())

    assert table.has_range_key() is True
    assert table.key("u1", "7") == {"id": {"S": "u1"}, "ts": {"N": "7"}}

    with pytest.raises(MissingKeyDefinitionError):
        table.key("u1")
    with pytest.raises(MissingKeyDefinitionError):
        table.get_item("u1")


def test_numeric_hash_key_accepts_string_values() -> None:
    table = TableHandle("counters", KeySchema(NUM), FakeTransport())
    assert table.get_item("42").to_request()["Key"] == {"n": {"N": "42"}}


def test_from_description() -> None:
    description = TableDescription.from_response(
        {
            "TableName": "events",
            "TableStatus": "ACTIVE",
            "AttributeDefinitions": [
                {"AttributeName": "ts", "AttributeType": "N"},
                {"AttributeName": "id", "AttributeType": "S"},
            ],
            "KeySchema": [
                {"AttributeName": "id", "KeyType": "HASH"},
                {"AttributeName": "ts", "KeyType": "RANGE"},
            ],
        }
    )
    transport = FakeTransport()

    table = TableHandle.from_description(description, transport)

    assert table.key_schema == KeySchema(ID, TS)
    assert table.transport is transport


def test_empty_name_is_rejected() -> None:
    with pytest.raises(ValueError, match="name"):
        TableHandle("", KeySchema(ID), FakeTransport())


def test_item_builders_target_the_table() -> None:
    table = TableHandle("events", KeySchema(ID, TS), FakeTransport())

    assert table.put_item({"id": "u1", "ts": 1}, condition_expression("attribute_not_exists(id)")).to_request() == {
        "TableName": "events",
        "Item": {"id": {"S": "u1"}, "ts": {"N": "1"}},
        "ConditionExpression": "attribute_not_exists(id)",
    }
    assert table.update_item("u1", 1, "SET a = :a").to_request() == {
        "TableName": "events",
        "Key": {"id": {"S": "u1"}, "ts": {"N": "1"}},
        "UpdateExpression": "SET a = :a",
    }
    assert table.delete_item("u1", 1, return_values("ALL_OLD")).to_request() == {
        "TableName": "events",
        "Key": {"id": {"S": "u1"}, "ts": {"N": "1"}},
        "ReturnValues": "ALL_OLD",
    }


def test_get_put_delete_execute_through_the_transport() -> None:
    transport = FakeTransport()
    transport.expect("PutItem", {"TableName": "users", "Item": {"id": {"S": "u1"}, "age": {"N": "3"}}})
    transport.expect(
        "GetItem",
        {"TableName": "users", "Key": {"id": {"S": "u1"}}, "ConsistentRead": True},
        response={"Item": {"id": {"S": "u1"}, "age": {"N": "3"}}},
    )
    transport.expect("DeleteItem", {"TableName": "users", "Key": ANY})
    table = TableHandle("users", KeySchema(ID), transport)

    table.put({"id": "u1", "age": 3})
    assert table.get("u1", consistent=True).item == {"id": "u1", "age": 3}
    assert table.delete("u1").item is None
    transport.assert_no_pending()


def test_query_is_seeded_with_hash_key_eq() -> None:
    table = TableHandle("events", KeySchema(ID, TS), FakeTransport())
    req = table.query("u1").to_request()
    assert req["KeyConditions"] == {"id": {"ComparisonOperator": "EQ", "AttributeValueList": [{"S": "u1"}]}}


def test_each_builder_is_fresh() -> None:
    table = TableHandle("events", KeySchema(ID, TS), FakeTransport())
    first = table.scan().with_limit(5)
    assert table.scan().limit is None
    assert first.limit == 5


def test_count_scans_with_delay() -> None:
    transport = FakeTransport()
    transport.expect(
        "Scan",
        {"TableName": "events", "Select": "COUNT"},
        response={"Count": 2, "ScannedCount": 2, "LastEvaluatedKey": {"id": {"S": "x"}}},
    )
    transport.expect("Scan", {"Select": "COUNT"}, response={"Count": 1, "ScannedCount": 1})
    sleep = RecordingSleep()
    table = TableHandle("events", KeySchema(ID, TS), transport)

    result = table.count(0.5, sleep=sleep)

    assert result.count == 3
    assert result.requests == 2
    assert sleep.delays == [0.5]


def test_count_honours_stop_event() -> None:
    transport = FakeTransport()
    transport.expect("Scan", response={"Count": 2, "ScannedCount": 2, "LastEvaluatedKey": {"id": {"S": "x"}}})
    stop = threading.Event()
    stop.set()
    table = TableHandle("events", KeySchema(ID), transport)

    with pytest.raises(PartialCountError, match="cancelled") as exc:
        table.count(10.0, stop=stop)

    assert exc.value.result.count == 2
    transport.assert_no_pending()
