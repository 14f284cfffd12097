from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from .codec import decode_item, item_from_json
from .errors import ValidationError
from .model import KeySchemaElement, epoch_time
from .transport import Transport

LIST_STREAMS = "ListStreams"
DESCRIBE_STREAM = "DescribeStream"
GET_SHARD_ITERATOR = "GetShardIterator"
GET_RECORDS = "GetRecords"

NEW_IMAGE = "NEW_IMAGE"
OLD_IMAGE = "OLD_IMAGE"
NEW_AND_OLD_IMAGES = "NEW_AND_OLD_IMAGES"
KEYS_ONLY = "KEYS_ONLY"
NO = "NO"

TRIM_HORIZON = "TRIM_HORIZON"
LATEST = "LATEST"
AT_SEQUENCE_NUMBER = "AT_SEQUENCE_NUMBER"
AFTER_SEQUENCE_NUMBER = "AFTER_SEQUENCE_NUMBER"

EVENT_INSERT = "INSERT"
EVENT_MODIFY = "MODIFY"
EVENT_REMOVE = "REMOVE"

_ITERATOR_TYPES = frozenset({TRIM_HORIZON, LATEST, AT_SEQUENCE_NUMBER, AFTER_SEQUENCE_NUMBER})
_SEQUENCE_ITERATOR_TYPES = frozenset({AT_SEQUENCE_NUMBER, AFTER_SEQUENCE_NUMBER})


@dataclass(frozen=True)
class StreamSummary:
    stream_arn: str
    table_name: str
    stream_label: str

    @staticmethod
    def from_response(raw: Mapping[str, Any]) -> StreamSummary:
        return StreamSummary(
            stream_arn=str(raw.get("StreamArn", "")),
            table_name=str(raw.get("TableName", "")),
            stream_label=str(raw.get("StreamLabel", "")),
        )


@dataclass(frozen=True)
class StreamList:
    streams: list[StreamSummary]
    last_evaluated_stream_arn: str | None = None


@dataclass(frozen=True)
class SequenceNumberRange:
    starting_sequence_number: str | None = None
    ending_sequence_number: str | None = None


@dataclass(frozen=True)
class Shard:
    shard_id: str
    parent_shard_id: str | None
    sequence_number_range: SequenceNumberRange

    @property
    def closed(self) -> bool:
        return self.sequence_number_range.ending_sequence_number is not None

    @staticmethod
    def from_response(raw: Mapping[str, Any]) -> Shard:
        rng = raw.get("SequenceNumberRange") or {}
        return Shard(
            shard_id=str(raw.get("ShardId", "")),
            parent_shard_id=raw.get("ParentShardId") or None,
            sequence_number_range=SequenceNumberRange(
                starting_sequence_number=rng.get("StartingSequenceNumber") or None,
                ending_sequence_number=rng.get("EndingSequenceNumber") or None,
            ),
        )


@dataclass(frozen=True)
class StreamDescription:
    stream_arn: str
    stream_label: str
    stream_status: str
    stream_view_type: str
    table_name: str
    key_schema: tuple[KeySchemaElement, ...]
    shards: tuple[Shard, ...]
    creation_request_date_time: datetime | None = None
    last_evaluated_shard_id: str | None = None

    @staticmethod
    def from_response(raw: Mapping[str, Any]) -> StreamDescription:
        return StreamDescription(
            stream_arn=str(raw.get("StreamArn", "")),
            stream_label=str(raw.get("StreamLabel", "")),
            stream_status=str(raw.get("StreamStatus", "")),
            stream_view_type=str(raw.get("StreamViewType", "")),
            table_name=str(raw.get("TableName", "")),
            key_schema=tuple(KeySchemaElement.from_response(e) for e in raw.get("KeySchema") or ()),
            shards=tuple(Shard.from_response(s) for s in raw.get("Shards") or ()),
            creation_request_date_time=epoch_time(raw.get("CreationRequestDateTime")),
            last_evaluated_shard_id=raw.get("LastEvaluatedShardId") or None,
        )


@dataclass(frozen=True)
class StreamRecord:
    keys: dict[str, Any]
    new_image: dict[str, Any] | None = None
    old_image: dict[str, Any] | None = None
    sequence_number: str | None = None
    size_bytes: int = 0
    stream_view_type: str | None = None
    approximate_creation_date_time: datetime | None = None

    @staticmethod
    def from_response(raw: Mapping[str, Any]) -> StreamRecord:
        new_image = raw.get("NewImage")
        old_image = raw.get("OldImage")
        return StreamRecord(
            keys=decode_item(raw.get("Keys")),
            new_image=decode_item(new_image) if new_image is not None else None,
            old_image=decode_item(old_image) if old_image is not None else None,
            sequence_number=raw.get("SequenceNumber") or None,
            size_bytes=int(raw.get("SizeBytes") or 0),
            stream_view_type=raw.get("StreamViewType") or None,
            approximate_creation_date_time=epoch_time(raw.get("ApproximateCreationDateTime")),
        )


@dataclass(frozen=True)
class Record:
    event_id: str
    event_name: str
    dynamodb: StreamRecord
    event_version: str = ""
    event_source: str = ""
    aws_region: str = ""

    @staticmethod
    def from_response(raw: Mapping[str, Any]) -> Record:
        body = raw.get("dynamodb")
        if not isinstance(body, Mapping):
            raise ValidationError("record.dynamodb must be a map")
        return Record(
            event_id=str(raw.get("eventID", "")),
            event_name=str(raw.get("eventName", "")),
            dynamodb=StreamRecord.from_response(body),
            event_version=str(raw.get("eventVersion", "")),
            event_source=str(raw.get("eventSource", "")),
            aws_region=str(raw.get("awsRegion", "")),
        )


@dataclass(frozen=True)
class RecordsPage:
    records: list[Record]
    next_shard_iterator: str | None = None

    @property
    def closed(self) -> bool:
        return self.next_shard_iterator is None


def list_streams(
    transport: Transport,
    *,
    table_name: str | None = None,
    limit: int | None = None,
    exclusive_start_stream_arn: str | None = None,
) -> StreamList:
    req: dict[str, Any] = {}
    if table_name:
        req["TableName"] = table_name
    if limit:
        req["Limit"] = limit
    if exclusive_start_stream_arn:
        req["ExclusiveStartStreamArn"] = exclusive_start_stream_arn

    resp = transport.submit(LIST_STREAMS, req)
    return StreamList(
        streams=[StreamSummary.from_response(s) for s in resp.get("Streams") or []],
        last_evaluated_stream_arn=resp.get("LastEvaluatedStreamArn") or None,
    )


def describe_stream(
    transport: Transport,
    stream_arn: str,
    *,
    limit: int | None = None,
    exclusive_start_shard_id: str | None = None,
) -> StreamDescription:
    req: dict[str, Any] = {"StreamArn": stream_arn}
    if limit:
        req["Limit"] = limit
    if exclusive_start_shard_id:
        req["ExclusiveStartShardId"] = exclusive_start_shard_id

    resp = transport.submit(DESCRIBE_STREAM, req)
    raw = resp.get("StreamDescription")
    if not isinstance(raw, Mapping):
        raise ValidationError("response is missing StreamDescription")
    return StreamDescription.from_response(raw)


def get_shard_iterator(
    transport: Transport,
    stream_arn: str,
    shard_id: str,
    iterator_type: str = TRIM_HORIZON,
    *,
    sequence_number: str | None = None,
) -> str:
    if iterator_type not in _ITERATOR_TYPES:
        raise ValidationError(f"unsupported shard iterator type: {iterator_type}")
    if iterator_type in _SEQUENCE_ITERATOR_TYPES and not sequence_number:
        raise ValidationError(f"{iterator_type} requires a sequence number")

    req: dict[str, Any] = {
        "StreamArn": stream_arn,
        "ShardId": shard_id,
        "ShardIteratorType": iterator_type,
    }
    if sequence_number:
        req["SequenceNumber"] = sequence_number

    resp = transport.submit(GET_SHARD_ITERATOR, req)
    iterator = resp.get("ShardIterator")
    if not iterator:
        raise ValidationError("response is missing ShardIterator")
    return str(iterator)


def get_records(transport: Transport, shard_iterator: str, *, limit: int | None = None) -> RecordsPage:
    req: dict[str, Any] = {"ShardIterator": shard_iterator}
    if limit:
        req["Limit"] = limit

    resp = transport.submit(GET_RECORDS, req)
    return RecordsPage(
        records=[Record.from_response(r) for r in resp.get("Records") or []],
        next_shard_iterator=resp.get("NextShardIterator") or None,
    )


def _json_images(body: Mapping[str, Any]) -> dict[str, Any]:
    out = dict(body)
    for name in ("Keys", "NewImage", "OldImage"):
        if body.get(name) is not None:
            out[name] = item_from_json(body[name])
    return out


def decode_stream_record(raw: Any) -> Record:
    """Decode a record in the JSON shape delivered to event consumers.

    Binary payloads in that shape are base64 text; they come back as
    ``bytes`` like every other decoded item.
    """
    if not isinstance(raw, Mapping):
        raise ValidationError("record must be a map")
    body = raw.get("dynamodb")
    if not isinstance(body, Mapping):
        raise ValidationError("record.dynamodb must be a map")
    return Record.from_response({**raw, "dynamodb": _json_images(body)})
