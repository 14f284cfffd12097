from __future__ import annotations

import threading
import time
from collections.abc import Callable, Mapping, Sequence
from datetime import timedelta
from typing import Any

from .codec import encode_attribute_value, encode_key
from .conditions import Condition
from .errors import MissingKeyDefinitionError, TooManyKeysError
from .items import (
    DeleteItemRequest,
    GetItemRequest,
    ItemResult,
    PutItemRequest,
    UpdateItemRequest,
    delete_item,
    get_item,
    put_item,
    update_item,
)
from .model import AttributeDefinition, KeySchema, KeyValue, TableDescription
from .options import ItemOption
from .query import CountResult, QueryRequest, ScanRequest
from .transport import Transport


class TableHandle:
    """A table name bound to its key schema and a transport.

    Handles are immutable; every request builder they return is a fresh
    object that the caller may keep mutating.
    """

    def __init__(self, name: str, key_schema: KeySchema, transport: Transport) -> None:
        if not name:
            raise ValueError("name is required")
        self._name = name
        self._key_schema = key_schema
        self._transport = transport

    @classmethod
    def from_description(cls, description: TableDescription, transport: Transport) -> TableHandle:
        return cls(description.table_name, description.key(), transport)

    def __repr__(self) -> str:
        return f"TableHandle(name={self._name!r}, key_schema={self._key_schema!r})"

    @property
    def name(self) -> str:
        return self._name

    @property
    def key_schema(self) -> KeySchema:
        return self._key_schema

    @property
    def transport(self) -> Transport:
        return self._transport

    @property
    def hash_key(self) -> AttributeDefinition:
        return self._key_schema.hash_key

    @property
    def range_key(self) -> AttributeDefinition | None:
        return self._key_schema.range_key

    def has_range_key(self) -> bool:
        return self._key_schema.has_range_key()

    def _key_values(self, hash_value: Any, range_value: Any | None) -> tuple[KeyValue, KeyValue | None]:
        range_key = self._key_schema.range_key
        if range_key is None:
            if range_value is not None:
                raise TooManyKeysError(f"table {self._name} has no range key")
            return KeyValue(self.hash_key, hash_value), None

        if range_value is None:
            raise MissingKeyDefinitionError(f"table {self._name} requires a range key value")
        return KeyValue(self.hash_key, hash_value), KeyValue(range_key, range_value)

    def key(self, hash_value: Any, range_value: Any | None = None) -> dict[str, dict[str, Any]]:
        hash_key, range_key = self._key_values(hash_value, range_value)
        return encode_key(hash_key, range_key)

    def get_item(
        self,
        hash_value: Any,
        range_value: Any | None = None,
        *,
        attributes: Sequence[str] | None = None,
        consistent: bool = False,
        consumed: bool = False,
    ) -> GetItemRequest:
        hash_key, range_key = self._key_values(hash_value, range_value)
        return get_item(
            self._name,
            hash_key,
            range_key,
            attributes=attributes,
            consistent=consistent,
            consumed=consumed,
        )

    def put_item(self, item: Mapping[str, Any], *options: ItemOption) -> PutItemRequest:
        return put_item(self._name, item, *options)

    def update_item(
        self,
        hash_value: Any,
        range_value: Any | None,
        update_expression: str,
        *options: ItemOption,
    ) -> UpdateItemRequest:
        hash_key, range_key = self._key_values(hash_value, range_value)
        return update_item(self._name, hash_key, range_key, update_expression, *options)

    def delete_item(self, hash_value: Any, range_value: Any | None = None, *options: ItemOption) -> DeleteItemRequest:
        hash_key, range_key = self._key_values(hash_value, range_value)
        return delete_item(self._name, hash_key, range_key, *options)

    def get(self, hash_value: Any, range_value: Any | None = None, *, consistent: bool = False) -> ItemResult:
        return self.get_item(hash_value, range_value, consistent=consistent).exec(self._transport)

    def put(self, item: Mapping[str, Any], *options: ItemOption) -> ItemResult:
        return self.put_item(item, *options).exec(self._transport)

    def delete(self, hash_value: Any, range_value: Any | None = None, *options: ItemOption) -> ItemResult:
        return self.delete_item(hash_value, range_value, *options).exec(self._transport)

    def query(self, hash_value: Any) -> QueryRequest:
        cond = Condition.eq(encode_attribute_value(self.hash_key, hash_value))
        return QueryRequest(table_name=self._name).with_condition(self.hash_key.attribute_name, cond)

    def scan(self) -> ScanRequest:
        return ScanRequest(table_name=self._name)

    def count(
        self,
        delay: float | timedelta = 0.0,
        *,
        sleep: Callable[[float], None] = time.sleep,
        stop: threading.Event | None = None,
    ) -> CountResult:
        return self.scan().count_with_delay(self._transport, delay, sleep=sleep, stop=stop)
