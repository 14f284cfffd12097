from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from .codec import decode_item, encode_item, encode_key
from .model import ConsumedCapacity, KeyValue, consumed_units
from .options import ItemOption, ItemOptions, ReturnConsumedCapacity, apply_options, consumed_capacity_mode
from .transport import Transport

logger = logging.getLogger(__name__)

GET_ITEM = "GetItem"
PUT_ITEM = "PutItem"
UPDATE_ITEM = "UpdateItem"
DELETE_ITEM = "DeleteItem"


@dataclass(frozen=True)
class ItemResult:
    """Outcome of a single-item operation.

    ``item`` is ``None`` when the store returned nothing: a Get that found no
    item, or a write that was not asked for a previous/new image.
    """

    item: dict[str, Any] | None
    consumed_capacity: ConsumedCapacity | None = None
    item_collection_metrics: Mapping[str, Any] | None = None

    @property
    def consumed_units(self) -> float:
        return consumed_units(self.consumed_capacity)

    @property
    def found(self) -> bool:
        return self.item is not None


def _result(resp: Mapping[str, Any], item_field: str) -> ItemResult:
    raw = resp.get(item_field)
    capacity = ConsumedCapacity.from_response(resp.get("ConsumedCapacity"))
    metrics = resp.get("ItemCollectionMetrics") or None
    return ItemResult(
        item=decode_item(raw) if raw else None,
        consumed_capacity=capacity,
        item_collection_metrics=metrics,
    )


@dataclass
class GetItemRequest:
    table_name: str
    key: dict[str, Any]
    attributes_to_get: list[str] | None = None
    consistent_read: bool = False
    return_consumed_capacity: ReturnConsumedCapacity | None = None
    projection_expression: str | None = None
    expression_attribute_names: dict[str, str] | None = None

    def to_request(self) -> dict[str, Any]:
        req: dict[str, Any] = {"TableName": self.table_name, "Key": self.key}
        if self.attributes_to_get:
            req["AttributesToGet"] = list(self.attributes_to_get)
        if self.consistent_read:
            req["ConsistentRead"] = True
        if self.return_consumed_capacity:
            req["ReturnConsumedCapacity"] = self.return_consumed_capacity
        if self.projection_expression:
            req["ProjectionExpression"] = self.projection_expression
        if self.expression_attribute_names:
            req["ExpressionAttributeNames"] = dict(self.expression_attribute_names)
        return req

    def exec(self, transport: Transport) -> ItemResult:
        resp = transport.submit(GET_ITEM, self.to_request())
        result = _result(resp, "Item")
        if result.item is None:
            logger.debug("get %s: item not found", self.table_name)
        return result


@dataclass
class PutItemRequest:
    table_name: str
    item: dict[str, Any]
    options: ItemOptions = field(default_factory=ItemOptions)

    def to_request(self) -> dict[str, Any]:
        req: dict[str, Any] = {"TableName": self.table_name, "Item": self.item}
        req.update(self.options.to_request())
        return req

    def exec(self, transport: Transport) -> ItemResult:
        return _result(transport.submit(PUT_ITEM, self.to_request()), "Attributes")


@dataclass
class UpdateItemRequest:
    table_name: str
    key: dict[str, Any]
    update_expression: str
    options: ItemOptions = field(default_factory=ItemOptions)

    def to_request(self) -> dict[str, Any]:
        req: dict[str, Any] = {"TableName": self.table_name, "Key": self.key}
        if self.update_expression:
            req["UpdateExpression"] = self.update_expression
        req.update(self.options.to_request())
        return req

    def exec(self, transport: Transport) -> ItemResult:
        return _result(transport.submit(UPDATE_ITEM, self.to_request()), "Attributes")


@dataclass
class DeleteItemRequest:
    table_name: str
    key: dict[str, Any]
    options: ItemOptions = field(default_factory=ItemOptions)

    def to_request(self) -> dict[str, Any]:
        req: dict[str, Any] = {"TableName": self.table_name, "Key": self.key}
        req.update(self.options.to_request())
        return req

    def exec(self, transport: Transport) -> ItemResult:
        return _result(transport.submit(DELETE_ITEM, self.to_request()), "Attributes")


def get_item(
    table_name: str,
    hash_key: KeyValue,
    range_key: KeyValue | None = None,
    *,
    attributes: Sequence[str] | None = None,
    consistent: bool = False,
    consumed: bool = False,
) -> GetItemRequest:
    return GetItemRequest(
        table_name=table_name,
        key=encode_key(hash_key, range_key),
        attributes_to_get=list(attributes) if attributes else None,
        consistent_read=consistent,
        return_consumed_capacity=consumed_capacity_mode(consumed) if consumed else None,
    )


def put_item(table_name: str, item: Mapping[str, Any], *options: ItemOption) -> PutItemRequest:
    return PutItemRequest(table_name=table_name, item=encode_item(item), options=apply_options(*options))


def update_item(
    table_name: str,
    hash_key: KeyValue,
    range_key: KeyValue | None,
    update_expression: str,
    *options: ItemOption,
) -> UpdateItemRequest:
    return UpdateItemRequest(
        table_name=table_name,
        key=encode_key(hash_key, range_key),
        update_expression=update_expression,
        options=apply_options(*options),
    )


def delete_item(
    table_name: str,
    hash_key: KeyValue,
    range_key: KeyValue | None = None,
    *options: ItemOption,
) -> DeleteItemRequest:
    return DeleteItemRequest(
        table_name=table_name,
        key=encode_key(hash_key, range_key),
        options=apply_options(*options),
    )
