from __future__ import annotations

from wiredb_py import decode_stream_record
from wiredb_py.streams import EVENT_REMOVE


def handler(event, context):  # noqa: ANN001, ARG001
    records = event.get("Records", [])
    for raw in records:
        record = decode_stream_record(raw)
        if record.event_name == EVENT_REMOVE:
            print("removed:", record.dynamodb.keys)
            continue
        print("image:", record.dynamodb.new_image)
