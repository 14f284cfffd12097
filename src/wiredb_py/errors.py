from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .query import CountResult


class WiredbPyError(Exception):
    pass


class MalformedAttributeValueError(WiredbPyError):
    pass


class UnsupportedValueKindError(WiredbPyError):
    def __init__(self, *, kind: str, detail: str | None = None) -> None:
        super().__init__(f"unsupported value kind: {kind}" + (f" ({detail})" if detail else ""))
        self.kind = kind


class InvalidConditionOperandsError(WiredbPyError):
    pass


class MissingKeyDefinitionError(WiredbPyError):
    pass


class TooManyKeysError(WiredbPyError):
    pass


class NotFoundError(WiredbPyError):
    pass


class ConditionFailedError(WiredbPyError):
    pass


class ValidationError(WiredbPyError):
    pass


class TransportError(WiredbPyError):
    def __init__(self, *, code: str, message: str) -> None:
        super().__init__(f"{code}: {message}")
        self.code = code
        self.message = message


class PartialCountError(WiredbPyError):
    def __init__(self, *, message: str, result: CountResult) -> None:
        super().__init__(f"{message} (count={result.count}, requests={result.requests})")
        self.result = result
