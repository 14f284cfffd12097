from __future__ import annotations

import base64
import copy
import json
import logging
import threading
import time
from collections.abc import Callable, Iterator, Mapping, Sequence
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any, ClassVar, Self

from botocore.exceptions import BotoCoreError, ClientError

from .codec import attribute_value_from_json, attribute_value_to_json, decode_item, encode_value
from .conditions import EQ, AttributeCondition, Condition
from .errors import (
    InvalidConditionOperandsError,
    MissingKeyDefinitionError,
    PartialCountError,
    TooManyKeysError,
    ValidationError,
    WiredbPyError,
)
from .model import ConsumedCapacity, consumed_units
from .options import SELECT_COUNT, ReturnConsumedCapacity, Select, consumed_capacity_mode
from .transport import Transport

logger = logging.getLogger(__name__)

QUERY = "Query"
SCAN = "Scan"


@dataclass(frozen=True)
class Cursor:
    last_key: dict[str, Any]
    index: str | None = None


def encode_cursor(last_key: Any, *, index: str | None = None) -> str:
    if not last_key:
        return ""
    if not isinstance(last_key, Mapping):
        raise ValueError("last_key must be a map")

    last_key_json: dict[str, Any] = {}
    for k in sorted(last_key.keys()):
        last_key_json[str(k)] = attribute_value_to_json(last_key[k])

    parts: list[str] = []
    parts.append('"lastKey":' + json.dumps(last_key_json, separators=(",", ":"), ensure_ascii=False))
    if index is not None:
        parts.append('"index":' + json.dumps(index, separators=(",", ":"), ensure_ascii=False))

    payload = ("{" + ",".join(parts) + "}").encode("utf-8")
    return base64.urlsafe_b64encode(payload).decode("ascii")


def decode_cursor(cursor: str) -> Cursor:
    raw = str(cursor or "").strip()
    if not raw:
        raise ValueError("cursor is empty")

    padding = "=" * (-len(raw) % 4)
    data = base64.urlsafe_b64decode(raw + padding).decode("utf-8")
    parsed = json.loads(data)
    if not isinstance(parsed, dict):
        raise ValueError("cursor must decode to an object")

    last_key_raw = parsed.get("lastKey")
    if not isinstance(last_key_raw, dict) or not last_key_raw:
        raise ValueError("cursor lastKey is invalid")

    last_key: dict[str, Any] = {}
    for k in sorted(last_key_raw.keys()):
        last_key[str(k)] = attribute_value_from_json(last_key_raw[k])

    index = parsed.get("index")
    return Cursor(last_key=last_key, index=index if isinstance(index, str) else None)


@dataclass(frozen=True)
class Page:
    items: list[dict[str, Any]]
    last_evaluated_key: dict[str, Any] | None
    count: int = 0
    scanned_count: int = 0
    consumed_capacity: ConsumedCapacity | None = None
    index_name: str | None = None

    @staticmethod
    def from_response(resp: Mapping[str, Any], *, index_name: str | None = None) -> Page:
        items = [decode_item(item) for item in resp.get("Items") or []]
        last = resp.get("LastEvaluatedKey")
        return Page(
            items=items,
            last_evaluated_key=dict(last) if last else None,
            count=int(resp.get("Count", len(items)) or 0),
            scanned_count=int(resp.get("ScannedCount", 0) or 0),
            consumed_capacity=ConsumedCapacity.from_response(resp.get("ConsumedCapacity")),
            index_name=index_name,
        )

    @property
    def consumed_units(self) -> float:
        return consumed_units(self.consumed_capacity)

    @property
    def exhausted(self) -> bool:
        return not self.last_evaluated_key

    @property
    def next_token(self) -> str | None:
        if not self.last_evaluated_key:
            return None
        return encode_cursor(self.last_evaluated_key, index=self.index_name)


@dataclass(frozen=True)
class CountResult:
    count: int = 0
    scanned_count: int = 0
    consumed_units: float = 0.0
    requests: int = 0


def _conditions_request(conditions: Mapping[str, Condition]) -> dict[str, Any]:
    return {name: cond.to_request() for name, cond in conditions.items()}


@dataclass
class _PageableRequest:
    operation: ClassVar[str]

    table_name: str
    attributes_to_get: list[str] | None = None
    exclusive_start_key: dict[str, Any] | None = None
    start_token: str | None = None
    limit: int | None = None
    select: Select | None = None
    return_consumed_capacity: ReturnConsumedCapacity | None = None
    index_name: str | None = None
    projection_expression: str | None = None
    filter_expression: str | None = None
    expression_attribute_names: dict[str, str] | None = None
    expression_attribute_values: dict[str, Any] | None = None
    consistent_read: bool = False

    def with_attributes(self, attributes: Sequence[str]) -> Self:
        self.attributes_to_get = list(attributes)
        return self

    def with_start_key(self, start_key: Mapping[str, Any] | None) -> Self:
        self.exclusive_start_key = dict(start_key) if start_key else None
        self.start_token = None
        return self

    def with_start_token(self, token: str | None) -> Self:
        self.start_token = token or None
        self.exclusive_start_key = None
        return self

    def with_limit(self, limit: int) -> Self:
        self.limit = limit
        return self

    def with_select(self, select: Select) -> Self:
        self.select = select
        return self

    def with_consumed(self, consumed: bool | ReturnConsumedCapacity) -> Self:
        if isinstance(consumed, bool):
            self.return_consumed_capacity = consumed_capacity_mode(consumed)
        else:
            self.return_consumed_capacity = consumed
        return self

    def with_index(self, index_name: str) -> Self:
        self.index_name = index_name
        return self

    def with_projection(self, expression: str) -> Self:
        self.projection_expression = expression
        return self

    def with_filter_expression(self, expression: str) -> Self:
        self.filter_expression = expression
        return self

    def with_names(self, names: Mapping[str, str]) -> Self:
        self.expression_attribute_names = dict(names)
        return self

    def with_values(self, values: Mapping[str, Any]) -> Self:
        self.expression_attribute_values = dict(values)
        return self

    def with_consistent_read(self, consistent: bool = True) -> Self:
        self.consistent_read = consistent
        return self

    def clone(self) -> Self:
        return copy.deepcopy(self)

    def _conditions(self) -> list[Condition]:
        return []

    def never_matches(self) -> bool:
        return any(cond.never_matches for cond in self._conditions())

    def _start_key(self) -> dict[str, Any] | None:
        if self.exclusive_start_key:
            return self.exclusive_start_key
        if not self.start_token:
            return None

        try:
            decoded = decode_cursor(self.start_token)
        except Exception as err:
            raise ValidationError("invalid cursor") from err
        if decoded.index != self.index_name:
            raise ValidationError(f"cursor index does not match {self.operation.lower()}")
        return decoded.last_key

    def _base_request(self) -> dict[str, Any]:
        if self.limit is not None and self.limit < 0:
            raise ValidationError("limit must be >= 0")

        req: dict[str, Any] = {"TableName": self.table_name}
        if self.index_name:
            req["IndexName"] = self.index_name
        if self.attributes_to_get:
            req["AttributesToGet"] = list(self.attributes_to_get)
        start_key = self._start_key()
        if start_key:
            req["ExclusiveStartKey"] = start_key
        if self.limit:
            req["Limit"] = self.limit
        if self.select:
            req["Select"] = self.select
        if self.return_consumed_capacity:
            req["ReturnConsumedCapacity"] = self.return_consumed_capacity
        if self.projection_expression:
            req["ProjectionExpression"] = self.projection_expression
        if self.filter_expression:
            req["FilterExpression"] = self.filter_expression
        if self.expression_attribute_names:
            req["ExpressionAttributeNames"] = dict(self.expression_attribute_names)
        if self.expression_attribute_values:
            req["ExpressionAttributeValues"] = {
                k: encode_value(v) for k, v in self.expression_attribute_values.items()
            }
        if self.consistent_read:
            req["ConsistentRead"] = True
        return req

    def to_request(self) -> dict[str, Any]:
        return self._base_request()

    def exec(self, transport: Transport) -> Page:
        req = self.to_request()
        if self.never_matches():
            logger.warning("%s on %s has an empty IN condition; returning no items", self.operation, self.table_name)
            return Page(items=[], last_evaluated_key=None, index_name=self.index_name)

        resp = transport.submit(self.operation, req)
        return Page.from_response(resp, index_name=self.index_name)

    def pages(self, transport: Transport) -> Iterator[Page]:
        req = self.clone()
        while True:
            page = req.exec(transport)
            yield page
            if page.exhausted:
                return
            req.with_start_key(page.last_evaluated_key)

    def all_items(self, transport: Transport) -> list[dict[str, Any]]:
        out: list[dict[str, Any]] = []
        for page in self.pages(transport):
            out.extend(page.items)
        return out

    def count_with_delay(
        self,
        transport: Transport,
        delay: float | timedelta = 0.0,
        *,
        sleep: Callable[[float], None] = time.sleep,
        stop: threading.Event | None = None,
    ) -> CountResult:
        """Count every matching item, one page at a time.

        Totals are summed across pages.  ``delay`` seconds pass between
        consecutive requests (never before the first or after the last).  A
        failed request raises ``PartialCountError`` whose ``result`` holds the
        totals gathered before the failure.  Setting ``stop`` while waiting
        ends the count the same way.
        """
        seconds = delay.total_seconds() if isinstance(delay, timedelta) else float(delay)
        req = self.clone().with_select(SELECT_COUNT)
        # Select=COUNT cannot be combined with a projection
        req.attributes_to_get = None
        req.projection_expression = None
        if req.never_matches():
            return CountResult()

        count = 0
        scanned = 0
        units = 0.0
        requests = 0

        def partial() -> CountResult:
            return CountResult(count=count, scanned_count=scanned, consumed_units=units, requests=requests)

        while True:
            body = req.to_request()
            requests += 1
            try:
                page = Page.from_response(transport.submit(self.operation, body), index_name=req.index_name)
            except (WiredbPyError, ClientError, BotoCoreError) as err:
                raise PartialCountError(
                    message=f"{self.operation} count on {self.table_name} failed", result=partial()
                ) from err

            count += page.count
            scanned += page.scanned_count
            units += page.consumed_units
            logger.debug(
                "%s count on %s: page %d count=%d scanned=%d",
                self.operation,
                self.table_name,
                requests,
                page.count,
                page.scanned_count,
            )

            if page.exhausted:
                return partial()

            req.with_start_key(page.last_evaluated_key)
            if stop is not None:
                if stop.wait(seconds) if seconds > 0 else stop.is_set():
                    raise PartialCountError(
                        message=f"{self.operation} count on {self.table_name} cancelled", result=partial()
                    )
            elif seconds > 0:
                sleep(seconds)


@dataclass
class ScanRequest(_PageableRequest):
    operation: ClassVar[str] = SCAN

    scan_filter: dict[str, Condition] = field(default_factory=dict)
    segment: int | None = None
    total_segments: int | None = None

    def with_filter(self, attribute_name: str, condition: Condition) -> Self:
        self.scan_filter[attribute_name] = condition
        return self

    def with_attr_filter(self, cond: AttributeCondition) -> Self:
        return self.with_filter(cond.attribute_name, cond.condition)

    def with_segment(self, segment: int, total_segments: int) -> Self:
        self.segment = segment
        self.total_segments = total_segments
        return self

    def _conditions(self) -> list[Condition]:
        return list(self.scan_filter.values())

    def to_request(self) -> dict[str, Any]:
        req = self._base_request()
        if self.scan_filter:
            req["ScanFilter"] = _conditions_request(self.scan_filter)
        if self.total_segments:
            segment = self.segment or 0
            if segment < 0 or self.total_segments < 0 or segment >= self.total_segments:
                raise ValidationError("invalid segment/total_segments")
            req["Segment"] = segment
            req["TotalSegments"] = self.total_segments
        return req


@dataclass
class QueryRequest(_PageableRequest):
    operation: ClassVar[str] = QUERY

    key_conditions: dict[str, Condition] = field(default_factory=dict)
    key_condition_expression: str | None = None
    query_filter: dict[str, Condition] = field(default_factory=dict)
    scan_index_forward: bool | None = None

    def with_condition(self, attribute_name: str, condition: Condition) -> Self:
        self.key_conditions[attribute_name] = condition
        return self

    def with_attr_condition(self, cond: AttributeCondition) -> Self:
        return self.with_condition(cond.attribute_name, cond.condition)

    def with_key_condition_expression(self, expression: str) -> Self:
        self.key_condition_expression = expression
        return self

    def with_filter(self, attribute_name: str, condition: Condition) -> Self:
        self.query_filter[attribute_name] = condition
        return self

    def with_attr_filter(self, cond: AttributeCondition) -> Self:
        return self.with_filter(cond.attribute_name, cond.condition)

    def with_scan_forward(self, forward: bool) -> Self:
        self.scan_index_forward = forward
        return self

    def _conditions(self) -> list[Condition]:
        return [*self.key_conditions.values(), *self.query_filter.values()]

    def _check_key_conditions(self) -> None:
        if self.key_condition_expression:
            return
        if not self.key_conditions:
            raise MissingKeyDefinitionError("query requires a hash-key condition")
        if len(self.key_conditions) > 2:
            raise TooManyKeysError(f"query has {len(self.key_conditions)} key conditions (maximum 2)")
        if not any(c.operator == EQ for c in self.key_conditions.values()):
            raise InvalidConditionOperandsError("query requires an EQ condition on the hash key")

    def to_request(self) -> dict[str, Any]:
        self._check_key_conditions()
        req = self._base_request()
        if self.key_conditions:
            req["KeyConditions"] = _conditions_request(self.key_conditions)
        if self.key_condition_expression:
            req["KeyConditionExpression"] = self.key_condition_expression
        if self.query_filter:
            req["QueryFilter"] = _conditions_request(self.query_filter)
        if self.scan_index_forward is not None:
            req["ScanIndexForward"] = self.scan_index_forward
        return req


def query(table_name: str) -> QueryRequest:
    return QueryRequest(table_name=table_name)


def scan(table_name: str) -> ScanRequest:
    return ScanRequest(table_name=table_name)
