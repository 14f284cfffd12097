from __future__ import annotations

import logging
import time
from collections.abc import Callable, Sequence
from typing import Any

from .codec import BINARY, NUMBER, STRING
from .errors import MissingKeyDefinitionError, NotFoundError, TooManyKeysError, ValidationError
from .model import (
    HASH_KEY_TYPE,
    RANGE_KEY_TYPE,
    TABLE_STATUS_ACTIVE,
    AttributeDefinition,
    KeySchemaElement,
    StreamSpecification,
    TableDescription,
)
from .table import TableHandle
from .transport import Transport

logger = logging.getLogger(__name__)

LIST_TABLES = "ListTables"
DESCRIBE_TABLE = "DescribeTable"
CREATE_TABLE = "CreateTable"
UPDATE_TABLE = "UpdateTable"
DELETE_TABLE = "DeleteTable"

STREAM_VIEW_DISABLED = "NO"

_TABLE_KEY_TYPES = frozenset({STRING, NUMBER, BINARY})


def _description(resp: Any, field_name: str) -> TableDescription:
    raw = resp.get(field_name)
    if not isinstance(raw, dict):
        raise ValidationError(f"response is missing {field_name}")
    return TableDescription.from_response(raw)


def list_tables(transport: Transport, *, limit: int | None = None) -> list[str]:
    names: list[str] = []
    start: str | None = None
    while True:
        req: dict[str, Any] = {}
        if limit:
            req["Limit"] = limit
        if start:
            req["ExclusiveStartTableName"] = start

        resp = transport.submit(LIST_TABLES, req)
        names.extend(str(n) for n in resp.get("TableNames") or [])
        start = resp.get("LastEvaluatedTableName") or None
        if not start:
            return names


def describe_table(transport: Transport, name: str) -> TableDescription:
    return _description(transport.submit(DESCRIBE_TABLE, {"TableName": name}), "Table")


def _key_schema(attributes: Sequence[AttributeDefinition], keys: Sequence[str]) -> list[KeySchemaElement]:
    if not keys:
        raise MissingKeyDefinitionError("hash-key required")
    if len(keys) > 2:
        raise TooManyKeysError(f"too many keys: {len(keys)} (maximum 2)")

    by_name = {a.attribute_name: a for a in attributes}
    elements: list[KeySchemaElement] = []
    for i, key in enumerate(keys):
        attr = by_name.get(key)
        if attr is None:
            raise MissingKeyDefinitionError(f"no attribute definition for key: {key}")
        if attr.attribute_type not in _TABLE_KEY_TYPES:
            raise ValidationError(f"key attribute must be S, N or B: {key} ({attr.attribute_type})")
        elements.append(KeySchemaElement(key, HASH_KEY_TYPE if i == 0 else RANGE_KEY_TYPE))
    return elements


def _stream_specification(stream_view: str | None) -> StreamSpecification | None:
    if stream_view is None:
        return None
    if stream_view == STREAM_VIEW_DISABLED:
        return StreamSpecification(stream_enabled=False)
    return StreamSpecification(stream_enabled=True, stream_view_type=stream_view)


def build_create_table_request(
    name: str,
    attributes: Sequence[AttributeDefinition],
    keys: Sequence[str],
    *,
    read_capacity: int = 5,
    write_capacity: int = 5,
    stream_view: str | None = None,
) -> dict[str, Any]:
    if not name:
        raise ValueError("name is required")
    if read_capacity <= 0 or write_capacity <= 0:
        raise ValidationError("read_capacity and write_capacity must be > 0")

    req: dict[str, Any] = {
        "TableName": name,
        "AttributeDefinitions": [a.to_request() for a in attributes],
        "KeySchema": [e.to_request() for e in _key_schema(attributes, keys)],
        "ProvisionedThroughput": {
            "ReadCapacityUnits": read_capacity,
            "WriteCapacityUnits": write_capacity,
        },
    }
    stream = _stream_specification(stream_view)
    if stream is not None and stream.stream_enabled:
        req["StreamSpecification"] = stream.to_request()
    return req


def create_table(
    transport: Transport,
    name: str,
    attributes: Sequence[AttributeDefinition],
    keys: Sequence[str],
    *,
    read_capacity: int = 5,
    write_capacity: int = 5,
    stream_view: str | None = None,
) -> TableDescription:
    req = build_create_table_request(
        name,
        attributes,
        keys,
        read_capacity=read_capacity,
        write_capacity=write_capacity,
        stream_view=stream_view,
    )
    return _description(transport.submit(CREATE_TABLE, req), "TableDescription")


def create_table_handle(
    transport: Transport,
    name: str,
    attributes: Sequence[AttributeDefinition],
    keys: Sequence[str],
    *,
    read_capacity: int = 5,
    write_capacity: int = 5,
    stream_view: str | None = None,
) -> TableHandle:
    description = create_table(
        transport,
        name,
        attributes,
        keys,
        read_capacity=read_capacity,
        write_capacity=write_capacity,
        stream_view=stream_view,
    )
    return TableHandle.from_description(description, transport)


def update_table(
    transport: Transport,
    name: str,
    *,
    read_capacity: int = 0,
    write_capacity: int = 0,
    stream_view: str | None = None,
) -> TableDescription:
    req: dict[str, Any] = {"TableName": name}
    if read_capacity > 0 and write_capacity > 0:
        req["ProvisionedThroughput"] = {
            "ReadCapacityUnits": read_capacity,
            "WriteCapacityUnits": write_capacity,
        }
    stream = _stream_specification(stream_view)
    if stream is not None:
        req["StreamSpecification"] = stream.to_request()

    return _description(transport.submit(UPDATE_TABLE, req), "TableDescription")


def delete_table(transport: Transport, name: str) -> TableDescription:
    return _description(transport.submit(DELETE_TABLE, {"TableName": name}), "TableDescription")


def get_table(transport: Transport, name: str) -> TableHandle:
    return TableHandle.from_description(describe_table(transport, name), transport)


def wait_for_table_status(
    transport: Transport,
    name: str,
    status: str = TABLE_STATUS_ACTIVE,
    *,
    timeout_seconds: float = 300.0,
    poll_interval_seconds: float = 0.25,
    sleep: Callable[[float], None] = time.sleep,
) -> TableDescription:
    deadline = time.monotonic() + timeout_seconds
    while time.monotonic() < deadline:
        try:
            description = describe_table(transport, name)
        except NotFoundError:
            description = None

        current = description.table_status if description is not None else ""
        logger.debug("table %s status %r (waiting for %s)", name, current, status)
        if description is not None and current == status:
            return description
        sleep(poll_interval_seconds)

    raise ValidationError(f"timed out waiting for table {status}: {name}")


def wait_for_table_deleted(
    transport: Transport,
    name: str,
    *,
    timeout_seconds: float = 300.0,
    poll_interval_seconds: float = 0.25,
    sleep: Callable[[float], None] = time.sleep,
) -> None:
    deadline = time.monotonic() + timeout_seconds
    while time.monotonic() < deadline:
        try:
            describe_table(transport, name)
        except NotFoundError:
            return
        logger.debug("table %s still exists", name)
        sleep(poll_interval_seconds)

    raise ValidationError(f"timed out waiting for table deletion: {name}")
