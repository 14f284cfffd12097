from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any, Literal, TypeAlias

from .codec import encode_value

ReturnConsumedCapacity: TypeAlias = Literal["NONE", "TOTAL", "INDEXED"]
ReturnValues: TypeAlias = Literal["NONE", "ALL_OLD", "ALL_NEW", "UPDATED_OLD", "UPDATED_NEW"]
ReturnItemCollectionMetrics: TypeAlias = Literal["NONE", "SIZE"]
Select: TypeAlias = Literal["ALL_ATTRIBUTES", "ALL_PROJECTED_ATTRIBUTES", "SPECIFIC_ATTRIBUTES", "COUNT"]

SELECT_ALL: Select = "ALL_ATTRIBUTES"
SELECT_ALL_PROJECTED: Select = "ALL_PROJECTED_ATTRIBUTES"
SELECT_SPECIFIC: Select = "SPECIFIC_ATTRIBUTES"
SELECT_COUNT: Select = "COUNT"


def consumed_capacity_mode(consumed: bool) -> ReturnConsumedCapacity:
    return "TOTAL" if consumed else "NONE"


@dataclass
class ItemOptions:
    condition_expression: str | None = None
    expression_attribute_names: dict[str, str] | None = None
    expression_attribute_values: dict[str, Any] | None = None
    return_consumed_capacity: ReturnConsumedCapacity | None = None
    return_item_collection_metrics: ReturnItemCollectionMetrics | None = None
    return_values: ReturnValues | None = None

    def to_request(self) -> dict[str, Any]:
        req: dict[str, Any] = {}
        if self.condition_expression:
            req["ConditionExpression"] = self.condition_expression
        if self.expression_attribute_names:
            req["ExpressionAttributeNames"] = dict(self.expression_attribute_names)
        if self.expression_attribute_values:
            req["ExpressionAttributeValues"] = {
                k: encode_value(v) for k, v in self.expression_attribute_values.items()
            }
        if self.return_consumed_capacity:
            req["ReturnConsumedCapacity"] = self.return_consumed_capacity
        if self.return_item_collection_metrics:
            req["ReturnItemCollectionMetrics"] = self.return_item_collection_metrics
        if self.return_values:
            req["ReturnValues"] = self.return_values
        return req


ItemOption: TypeAlias = Callable[[ItemOptions], None]


def condition_expression(expression: str) -> ItemOption:
    def apply(opts: ItemOptions) -> None:
        opts.condition_expression = expression

    return apply


def expression_attribute_names(names: Mapping[str, str]) -> ItemOption:
    snapshot = dict(names)

    def apply(opts: ItemOptions) -> None:
        opts.expression_attribute_names = dict(snapshot)

    return apply


def expression_attribute_values(values: Mapping[str, Any]) -> ItemOption:
    snapshot = dict(values)

    def apply(opts: ItemOptions) -> None:
        opts.expression_attribute_values = dict(snapshot)

    return apply


def return_consumed_capacity(mode: ReturnConsumedCapacity) -> ItemOption:
    def apply(opts: ItemOptions) -> None:
        opts.return_consumed_capacity = mode

    return apply


def return_consumed(consumed: bool) -> ItemOption:
    return return_consumed_capacity(consumed_capacity_mode(consumed))


def return_item_collection_metrics(mode: ReturnItemCollectionMetrics) -> ItemOption:
    def apply(opts: ItemOptions) -> None:
        opts.return_item_collection_metrics = mode

    return apply


def return_values(mode: ReturnValues) -> ItemOption:
    def apply(opts: ItemOptions) -> None:
        opts.return_values = mode

    return apply


def apply_options(*options: ItemOption, base: ItemOptions | None = None) -> ItemOptions:
    opts = base if base is not None else ItemOptions()
    for option in options:
        option(opts)
    return opts
