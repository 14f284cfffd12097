from __future__ import annotations

from datetime import UTC, datetime

import pytest

from wiredb_py.admin import (
    build_create_table_request,
    create_table,
    create_table_handle,
    delete_table,
    describe_table,
    get_table,
    list_tables,
    update_table,
    wait_for_table_deleted,
    wait_for_table_status,
)
from wiredb_py.errors import MissingKeyDefinitionError, NotFoundError, TooManyKeysError, ValidationError
from wiredb_py.mocks import FakeTransport
from wiredb_py.model import AttributeDefinition, KeySchema
from wiredb_py.testkit import RecordingSleep, no_sleep

ID = AttributeDefinition("id", "S")
TS = AttributeDefinition("ts", "N")


def _table(status: str = "ACTIVE", **extra: object) -> dict[str, object]:
    table: dict[str, object] = {
        "TableName": "events",
        "TableStatus": status,
        "AttributeDefinitions": [ID.to_request(), TS.to_request()],
        "KeySchema": [
            {"AttributeName": "id", "KeyType": "HASH"},
            {"AttributeName": "ts", "KeyType": "RANGE"},
        ],
    }
    table.update(extra)
    return table


def test_list_tables_follows_last_evaluated_name() -> None:
    transport = FakeTransport()
    transport.expect("ListTables", {}, response={"TableNames": ["a", "b"], "LastEvaluatedTableName": "b"})
    transport.expect("ListTables", {"ExclusiveStartTableName": "b"}, response={"TableNames": ["c"]})

    assert list_tables(transport) == ["a", "b", "c"]
    transport.assert_no_pending()


def test_describe_table_parses_description() -> None:
    transport = FakeTransport()
    transport.expect(
        "DescribeTable",
        {"TableName": "events"},
        response={
            "Table": _table(
                CreationDateTime=1_700_000_000,
                ItemCount=3,
                ProvisionedThroughput={"ReadCapacityUnits": 5, "WriteCapacityUnits": 2},
                StreamSpecification={"StreamEnabled": True, "StreamViewType": "NEW_IMAGE"},
                LatestStreamArn="arn:stream",
                LocalSecondaryIndexes=[
                    {
                        "IndexName": "by-kind",
                        "KeySchema": [{"AttributeName": "id", "KeyType": "HASH"}],
                        "Projection": {"ProjectionType": "KEYS_ONLY"},
                    }
                ],
            )
        },
    )

    description = describe_table(transport, "events")

    assert description.table_name == "events"
    assert description.table_status == "ACTIVE"
    assert description.creation_date_time == datetime.fromtimestamp(1_700_000_000, tz=UTC)
    assert description.item_count == 3
    assert description.provisioned_throughput.read_capacity_units == 5
    assert description.stream_specification is not None
    assert description.stream_specification.stream_view_type == "NEW_IMAGE"
    assert description.latest_stream_arn == "arn:stream"
    assert description.local_secondary_indexes[0].projection.projection_type == "KEYS_ONLY"
    assert description.key() == KeySchema(ID, TS)
    assert description.get_attribute("ts") == TS
    assert description.get_attribute("missing") is None


def test_describe_missing_table_raises_not_found() -> None:
    transport = FakeTransport()
    transport.expect("DescribeTable", error=NotFoundError("Requested resource not found"))

    with pytest.raises(NotFoundError):
        get_table(transport, "missing")


def test_get_table_returns_handle() -> None:
    transport = FakeTransport()
    transport.expect("DescribeTable", response={"Table": _table()})

    table = get_table(transport, "events")

    assert table.name == "events"
    assert table.has_range_key() is True
    assert table.transport is transport


def test_build_create_table_request() -> None:
    req = build_create_table_request("events", [ID, TS], ["id", "ts"], read_capacity=3, stream_view="NEW_IMAGE")
    assert req == {
        "TableName": "events",
        "AttributeDefinitions": [
            {"AttributeName": "id", "AttributeType": "S"},
            {"AttributeName": "ts", "AttributeType": "N"},
        ],
        "KeySchema": [
            {"AttributeName": "id", "KeyType": "HASH"},
            {"AttributeName": "ts", "KeyType": "RANGE"},
        ],
        "ProvisionedThroughput": {"ReadCapacityUnits": 3, "WriteCapacityUnits": 5},
        "StreamSpecification": {"StreamEnabled": True, "StreamViewType": "NEW_IMAGE"},
    }


def test_build_create_table_request_with_streams_disabled() -> None:
    req = build_create_table_request("users", [ID], ["id"], stream_view="NO")
    assert "StreamSpecification" not in req
    assert req["KeySchema"] == [{"AttributeName": "id", "KeyType": "HASH"}]


@pytest.mark.parametrize(
    ("keys", "error"),
    [
        ([], MissingKeyDefinitionError),
        (["id", "ts", "x"], TooManyKeysError),
        (["nope"], MissingKeyDefinitionError),
    ],
)
def test_build_create_table_request_key_errors(keys: list[str], error: type[Exception]) -> None:
    with pytest.raises(error):
        build_create_table_request("events", [ID, TS], keys)


def test_build_create_table_request_validation() -> None:
    with pytest.raises(ValidationError, match="S, N or B"):
        build_create_table_request("t", [AttributeDefinition("tags", "SS")], ["tags"])
    with pytest.raises(ValidationError, match="capacity"):
        build_create_table_request("t", [ID], ["id"], read_capacity=0)
    with pytest.raises(ValueError, match="name"):
        build_create_table_request("", [ID], ["id"])


def test_create_table_and_handle() -> None:
    transport = FakeTransport()
    transport.expect("CreateTable", {"TableName": "events"}, response={"TableDescription": _table("CREATING")})
    transport.expect("CreateTable", {"TableName": "events"}, response={"TableDescription": _table("CREATING")})

    assert create_table(transport, "events", [ID, TS], ["id", "ts"]).table_status == "CREATING"

    table = create_table_handle(transport, "events", [ID, TS], ["id", "ts"])
    assert table.key_schema == KeySchema(ID, TS)


def test_create_table_response_without_description_is_rejected() -> None:
    transport = FakeTransport()
    transport.expect("CreateTable", response={})

    with pytest.raises(ValidationError, match="TableDescription"):
        create_table(transport, "events", [ID], ["id"])


def test_update_table_throughput_requires_both_capacities() -> None:
    transport = FakeTransport()
    seen: list[dict] = []
    transport.expect("UpdateTable", seen.append, response={"TableDescription": _table("UPDATING")})
    transport.expect("UpdateTable", seen.append, response={"TableDescription": _table("UPDATING")})
    transport.expect("UpdateTable", seen.append, response={"TableDescription": _table("UPDATING")})

    update_table(transport, "events", read_capacity=10, write_capacity=0)
    update_table(transport, "events", read_capacity=10, write_capacity=4)
    update_table(transport, "events", stream_view="NO")

    assert seen[0] == {"TableName": "events"}
    assert seen[1] == {
        "TableName": "events",
        "ProvisionedThroughput": {"ReadCapacityUnits": 10, "WriteCapacityUnits": 4},
    }
    assert seen[2] == {"TableName": "events", "StreamSpecification": {"StreamEnabled": False}}


def test_delete_table() -> None:
    transport = FakeTransport()
    transport.expect("DeleteTable", {"TableName": "events"}, response={"TableDescription": _table("DELETING")})

    assert delete_table(transport, "events").table_status == "DELETING"


def test_wait_for_table_status_polls_until_active() -> None:
    transport = FakeTransport()
    transport.expect("DescribeTable", error=NotFoundError("not yet"))
    transport.expect("DescribeTable", response={"Table": _table("CREATING")})
    transport.expect("DescribeTable", response={"Table": _table("ACTIVE")})
    sleep = RecordingSleep()

    description = wait_for_table_status(transport, "events", poll_interval_seconds=0.5, sleep=sleep)

    assert description.table_status == "ACTIVE"
    assert sleep.delays == [0.5, 0.5]


def test_wait_for_table_status_times_out() -> None:
    transport = FakeTransport()

    with pytest.raises(ValidationError, match="timed out"):
        wait_for_table_status(transport, "events", timeout_seconds=0.0, sleep=no_sleep)
    assert transport.calls == []


def test_wait_for_table_deleted() -> None:
    transport = FakeTransport()
    transport.expect("DescribeTable", response={"Table": _table("DELETING")})
    transport.expect("DescribeTable", error=NotFoundError("gone"))

    wait_for_table_deleted(transport, "events", sleep=no_sleep)
    transport.assert_no_pending()
