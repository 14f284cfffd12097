from __future__ import annotations

import json
import re
from importlib.resources import files
from typing import TYPE_CHECKING, Any

from .codec import (
    attribute_value_from_json,
    attribute_value_to_json,
    decode_item,
    decode_value,
    encode_attribute,
    encode_attribute_value,
    encode_attribute_values,
    encode_item,
    encode_key,
    encode_value,
    item_from_json,
)
from .conditions import AttributeCondition, Condition, attribute_condition
from .errors import (
    ConditionFailedError,
    InvalidConditionOperandsError,
    MalformedAttributeValueError,
    MissingKeyDefinitionError,
    NotFoundError,
    PartialCountError,
    TooManyKeysError,
    TransportError,
    UnsupportedValueKindError,
    ValidationError,
    WiredbPyError,
)
from .items import ItemResult, delete_item, get_item, put_item, update_item
from .model import AttributeDefinition, KeySchema, KeyValue, TableDescription
from .options import (
    condition_expression,
    expression_attribute_names,
    expression_attribute_values,
    return_consumed,
    return_consumed_capacity,
    return_item_collection_metrics,
    return_values,
)
from .query import CountResult, Page, QueryRequest, ScanRequest, decode_cursor, encode_cursor
from .transport import Boto3Transport, Transport

if TYPE_CHECKING:
    from .admin import (
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
    from .runtime import (
        AwsCallMetric,
        ClientConfig,
        create_boto3_config,
        create_transport,
        instrument_boto3_client,
        resolve_endpoint,
    )
    from .streams import (
        Record,
        StreamRecord,
        decode_stream_record,
        describe_stream,
        get_records,
        get_shard_iterator,
        list_streams,
    )
    from .table import TableHandle


def _read_repo_version() -> str:
    try:
        data = json.loads(files(__package__).joinpath("version.json").read_text(encoding="utf-8"))
    except Exception:
        return "0.0.0"

    version = data.get("version")
    return version if isinstance(version, str) and version else "0.0.0"


def _normalize_repo_version(repo_version: str) -> str:
    match = re.match(r"^(\d+\.\d+\.\d+)-rc\.?([0-9]+)$", repo_version)
    if match:
        return f"{match.group(1)}rc{match.group(2)}"
    return repo_version


__repo_version__ = _read_repo_version()
__version__ = _normalize_repo_version(__repo_version__)


def __getattr__(name: str) -> Any:
    if name in {
        "create_table",
        "create_table_handle",
        "delete_table",
        "describe_table",
        "get_table",
        "list_tables",
        "update_table",
        "wait_for_table_deleted",
        "wait_for_table_status",
    }:
        from . import admin

        return getattr(admin, name)
    if name == "TableHandle":
        from .table import TableHandle

        return TableHandle
    if name in {
        "Record",
        "StreamRecord",
        "decode_stream_record",
        "describe_stream",
        "get_records",
        "get_shard_iterator",
        "list_streams",
    }:
        from . import streams

        return getattr(streams, name)
    if name in {
        "AwsCallMetric",
        "ClientConfig",
        "create_boto3_config",
        "create_transport",
        "instrument_boto3_client",
        "resolve_endpoint",
    }:
        from . import runtime

        return getattr(runtime, name)
    raise AttributeError(name)


__all__ = [
    "AttributeCondition",
    "AttributeDefinition",
    "AwsCallMetric",
    "Boto3Transport",
    "ClientConfig",
    "Condition",
    "ConditionFailedError",
    "CountResult",
    "InvalidConditionOperandsError",
    "ItemResult",
    "KeySchema",
    "KeyValue",
    "MalformedAttributeValueError",
    "MissingKeyDefinitionError",
    "NotFoundError",
    "Page",
    "PartialCountError",
    "QueryRequest",
    "Record",
    "ScanRequest",
    "StreamRecord",
    "TableDescription",
    "TableHandle",
    "TooManyKeysError",
    "Transport",
    "TransportError",
    "UnsupportedValueKindError",
    "ValidationError",
    "WiredbPyError",
    "__repo_version__",
    "__version__",
    "attribute_condition",
    "attribute_value_from_json",
    "attribute_value_to_json",
    "condition_expression",
    "create_boto3_config",
    "create_table",
    "create_table_handle",
    "create_transport",
    "decode_cursor",
    "decode_item",
    "decode_stream_record",
    "decode_value",
    "delete_item",
    "delete_table",
    "describe_stream",
    "describe_table",
    "encode_attribute",
    "encode_attribute_value",
    "encode_attribute_values",
    "encode_cursor",
    "encode_item",
    "encode_key",
    "encode_value",
    "expression_attribute_names",
    "expression_attribute_values",
    "get_item",
    "get_records",
    "get_shard_iterator",
    "get_table",
    "instrument_boto3_client",
    "item_from_json",
    "list_streams",
    "list_tables",
    "put_item",
    "resolve_endpoint",
    "return_consumed",
    "return_consumed_capacity",
    "return_item_collection_metrics",
    "return_values",
    "update_item",
    "update_table",
    "wait_for_table_deleted",
    "wait_for_table_status",
]
