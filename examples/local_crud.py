from __future__ import annotations

import os
import uuid

from wiredb_py import (
    AttributeDefinition,
    ClientConfig,
    create_table_handle,
    create_transport,
    delete_table,
    wait_for_table_status,
)


def _config() -> ClientConfig:
    return ClientConfig(
        region=os.environ.get("AWS_REGION", "us-east-1"),
        endpoint_url=os.environ.get("DYNAMODB_ENDPOINT", "http://localhost:8000"),
        access_key=os.environ.get("AWS_ACCESS_KEY_ID", "dummy"),
        secret_key=os.environ.get("AWS_SECRET_ACCESS_KEY", "dummy"),
    )


def main() -> None:
    transport = create_transport(_config())
    table_name = f"wiredb_py_example_{uuid.uuid4().hex[:12]}"

    pk = AttributeDefinition("pk", "S")
    sk = AttributeDefinition("sk", "S")
    table = create_table_handle(transport, table_name, [pk, sk], ["pk", "sk"])
    wait_for_table_status(transport, table_name)

    try:
        table.put({"pk": "A", "sk": "001", "value": 1})
        table.put({"pk": "A", "sk": "010", "value": 10})
        table.put({"pk": "A", "sk": "100", "value": 100.5})

        print("get:", table.get("A", "010").item)

        page = table.query("A").with_attr_condition(sk.condition("BEGINS_WITH", "0")).exec(transport)
        print("query begins_with('0'):", page.items)

        print("count:", table.count(delay=0.1))
    finally:
        delete_table(transport, table_name)


if __name__ == "__main__":
    main()
