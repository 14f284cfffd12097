from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, Protocol

from botocore import xform_name
from botocore.exceptions import BotoCoreError, ClientError

from .aws_errors import map_botocore_error, map_client_error
from .errors import TransportError

logger = logging.getLogger(__name__)

STREAM_OPERATIONS = frozenset({"ListStreams", "DescribeStream", "GetShardIterator", "GetRecords"})


class Transport(Protocol):
    def submit(self, operation: str, request: Mapping[str, Any]) -> Mapping[str, Any]: ...


class Boto3Transport:
    """Submits operations through boto3 low-level clients.

    botocore signs, sends and retries each call; failures come back as the
    exceptions in ``wiredb_py.errors``.  Stream operations are routed to
    ``streams_client`` (a ``dynamodbstreams`` client) when one is given.
    """

    def __init__(self, client: Any, *, streams_client: Any | None = None) -> None:
        self._client = client
        self._streams_client = streams_client

    def _client_for(self, operation: str) -> Any:
        if operation in STREAM_OPERATIONS and self._streams_client is not None:
            return self._streams_client
        return self._client

    def submit(self, operation: str, request: Mapping[str, Any]) -> Mapping[str, Any]:
        method = getattr(self._client_for(operation), xform_name(operation), None)
        if method is None:
            raise TransportError(code="UnknownOperation", message=operation)

        logger.debug("submit %s", operation)
        try:
            resp = method(**request)
        except ClientError as err:
            raise map_client_error(err) from err
        except BotoCoreError as err:
            raise map_botocore_error(err) from err

        return check_response(operation, resp)


def check_response(operation: str, resp: Any) -> Mapping[str, Any]:
    if resp is None:
        return {}
    if not isinstance(resp, Mapping):
        raise TransportError(code="InvalidResponse", message=f"{operation}: response must be a map")
    return resp
