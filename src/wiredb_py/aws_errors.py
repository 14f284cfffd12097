from __future__ import annotations

from botocore.exceptions import BotoCoreError, ClientError

from .errors import (
    ConditionFailedError,
    NotFoundError,
    TransportError,
    ValidationError,
)

RESOURCE_NOT_FOUND = "ResourceNotFoundException"


def map_client_error(err: ClientError) -> Exception:
    code = str(err.response.get("Error", {}).get("Code", ""))
    message = str(err.response.get("Error", {}).get("Message", ""))

    if code == "ConditionalCheckFailedException":
        return ConditionFailedError(message)
    if code == "ValidationException":
        return ValidationError(message)
    if code == RESOURCE_NOT_FOUND:
        return NotFoundError(message or code)

    return TransportError(code=code or "UnknownError", message=message or str(err))


def map_botocore_error(err: BotoCoreError) -> Exception:
    return TransportError(code="TransportFailure", message=str(err))
