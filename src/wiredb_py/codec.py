"""Conversion between native Python values and tagged wire attribute values.

A wire attribute value is a single-entry dict ``{TAG: payload}``.  Two shapes
exist for the payload of binary tags: the boto3 shape carries ``bytes`` and the
JSON shape (stream events, cursor tokens) carries base64 text.  Everything in
this module works on the boto3 shape except the ``*_json`` helpers, which
convert between the two.

Tagging goes through boto3's ``TypeSerializer``/``TypeDeserializer``.  Values
are prepared first (``""`` becomes NULL, floats become fixed-point ``Decimal``)
and the ``Decimal``/``Binary`` results are converted back to ``int``, ``float``
and ``bytes`` afterwards.

Numbers decode by a textual rule: an ``N`` payload that is a plain integer
literal becomes an ``int``, anything with a fraction or exponent a ``float``.
A float written by another client as ``"3"`` therefore reads back as ``3``;
floats encoded here always carry a ``.``.
"""

from __future__ import annotations

import base64
import binascii
import math
from collections.abc import Iterable, Mapping
from decimal import Decimal, InvalidOperation
from typing import Any

from boto3.dynamodb.types import (
    BINARY,
    BINARY_SET,
    BOOLEAN,
    DYNAMODB_CONTEXT,
    LIST,
    MAP,
    NULL,
    NUMBER,
    NUMBER_SET,
    STRING,
    STRING_SET,
    Binary,
    TypeDeserializer,
    TypeSerializer,
)

from .errors import MalformedAttributeValueError, UnsupportedValueKindError
from .model import AttributeDefinition, KeyValue

ATTRIBUTE_TYPES = frozenset({STRING, NUMBER, BINARY, BOOLEAN, NULL, STRING_SET, NUMBER_SET, BINARY_SET, LIST, MAP})
KEY_ATTRIBUTE_TYPES = frozenset({STRING, NUMBER, BINARY, STRING_SET, NUMBER_SET, BINARY_SET})

_BINARY_TYPES = (bytes, bytearray, memoryview, Binary)


class _Serializer(TypeSerializer):
    """``TypeSerializer`` that renders numbers fixed-point and sorts set members."""

    def _serialize_n(self, value: Any) -> str:
        return format(DYNAMODB_CONTEXT.create_decimal(value), "f")

    def _serialize_ss(self, value: Any) -> list[str]:
        return sorted(value)

    def _serialize_ns(self, value: Any) -> list[str]:
        return [self._serialize_n(n) for n in sorted(value)]

    def _serialize_bs(self, value: Any) -> list[bytes]:
        return sorted(self._serialize_b(v) for v in value)


_serializer = _Serializer()
_deserializer = TypeDeserializer()


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float, Decimal)) and not isinstance(value, bool)


def _as_bytes(value: Any) -> bytes:
    if isinstance(value, Binary):
        return bytes(value.value)
    return bytes(value)


def format_number(value: int | float | Decimal) -> str:
    if isinstance(value, bool):
        raise UnsupportedValueKindError(kind="bool", detail="not a number")
    if isinstance(value, int):
        return str(value)

    if isinstance(value, float):
        if not math.isfinite(value):
            raise UnsupportedValueKindError(kind="float", detail=f"non-finite number {value!r}")
        text = format(Decimal(repr(value)), "f")
        return text if "." in text else text + ".0"

    if not value.is_finite():
        raise UnsupportedValueKindError(kind="Decimal", detail=f"non-finite number {value!r}")
    return format(value, "f")


def _number(value: Decimal) -> int | float:
    if not value.is_finite():
        raise MalformedAttributeValueError(f"invalid number: {value}")
    if value.as_tuple().exponent == 0:
        return int(value)
    return float(value)


def _prepare_set(value: set[Any] | frozenset[Any]) -> set[Any]:
    if not value:
        raise UnsupportedValueKindError(kind=type(value).__name__, detail="empty sets cannot be stored")

    if all(isinstance(v, str) for v in value):
        return set(value)
    if all(_is_number(v) for v in value):
        return {v if isinstance(v, int) else Decimal(format_number(v)) for v in value}
    if all(isinstance(v, _BINARY_TYPES) for v in value):
        return {_as_bytes(v) for v in value}

    kinds = sorted({type(v).__name__ for v in value})
    raise UnsupportedValueKindError(kind=type(value).__name__, detail=f"mixed element kinds {kinds}")


def _prepare(value: Any) -> Any:
    if value is None or (isinstance(value, str) and value == ""):
        return None
    if isinstance(value, (str, bool)):
        return value
    if _is_number(value):
        if isinstance(value, int):
            return value
        # rejects NaN and Infinity; floats keep their shortest round-trip digits
        return Decimal(format_number(value))
    if isinstance(value, _BINARY_TYPES):
        return _as_bytes(value)
    if isinstance(value, (set, frozenset)):
        return _prepare_set(value)
    if isinstance(value, (list, tuple)):
        return [_prepare(v) for v in value]
    if isinstance(value, Mapping):
        out: dict[str, Any] = {}
        for k, v in value.items():
            if not isinstance(k, str):
                raise UnsupportedValueKindError(kind=type(k).__name__, detail="map keys must be strings")
            out[k] = _prepare(v)
        return out

    raise UnsupportedValueKindError(kind=type(value).__name__)


def encode_value(value: Any) -> dict[str, Any]:
    prepared = _prepare(value)
    try:
        return _serializer.serialize(prepared)
    except (TypeError, ArithmeticError) as err:
        raise UnsupportedValueKindError(kind=type(value).__name__, detail=str(err) or type(err).__name__) from err


def attribute_type(av: Any) -> str:
    if not isinstance(av, Mapping):
        raise MalformedAttributeValueError("attribute value must be a map")
    if len(av) != 1:
        raise MalformedAttributeValueError(f"attribute value must have exactly one type tag (found {len(av)})")

    (kind,) = av.keys()
    if kind not in ATTRIBUTE_TYPES:
        raise MalformedAttributeValueError(f"unsupported attribute value type: {kind}")
    return str(kind)


def _check_payload(kind: str, value: Any) -> None:
    if kind in {STRING, NUMBER}:
        ok, expected = isinstance(value, str), "a string"
    elif kind == BINARY:
        ok, expected = isinstance(value, _BINARY_TYPES), "bytes"
    elif kind == BOOLEAN:
        ok, expected = isinstance(value, bool), "a boolean"
    elif kind == NULL:
        ok, expected = value is True, "true"
    elif kind in {STRING_SET, NUMBER_SET}:
        ok, expected = isinstance(value, list) and all(isinstance(v, str) for v in value), "a list of strings"
    elif kind == BINARY_SET:
        ok, expected = isinstance(value, list) and all(isinstance(v, _BINARY_TYPES) for v in value), "a list of bytes"
    elif kind == LIST:
        ok, expected = isinstance(value, list), "a list"
    else:
        ok, expected = isinstance(value, Mapping), "a map"

    if not ok:
        raise MalformedAttributeValueError(f"{kind} value must be {expected}")


def _validated(av: Any) -> dict[str, Any]:
    kind = attribute_type(av)
    value = av[kind]
    _check_payload(kind, value)

    if kind == BINARY:
        return {BINARY: _as_bytes(value)}
    if kind == BINARY_SET:
        return {BINARY_SET: [_as_bytes(v) for v in value]}
    if kind == LIST:
        return {LIST: [_validated(v) for v in value]}
    if kind == MAP:
        return {MAP: {str(k): _validated(v) for k, v in value.items()}}
    return {kind: value}


def _native(value: Any) -> Any:
    if isinstance(value, Decimal):
        return _number(value)
    if isinstance(value, Binary):
        return bytes(value.value)
    if isinstance(value, set):
        return {_native(v) for v in value}
    if isinstance(value, list):
        return [_native(v) for v in value]
    if isinstance(value, dict):
        return {k: _native(v) for k, v in value.items()}
    return value


def decode_value(av: Any) -> Any:
    wire = _validated(av)
    try:
        value = _deserializer.deserialize(wire)
    except ArithmeticError as err:
        # DYNAMODB_CONTEXT traps overflow, underflow and precision loss
        raise MalformedAttributeValueError(f"invalid number in {attribute_type(av)} value") from err
    return _native(value)


def _key_string(value: Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if _is_number(value):
        return format_number(value)
    raise UnsupportedValueKindError(kind=type(value).__name__, detail="cannot be encoded as S")


def _key_number(value: Any) -> str:
    if isinstance(value, str):
        try:
            number = Decimal(value.strip())
        except InvalidOperation as err:
            raise UnsupportedValueKindError(kind="str", detail=f"not a number: {value!r}") from err
        if not number.is_finite():
            raise UnsupportedValueKindError(kind="str", detail=f"not a finite number: {value!r}")
        return value.strip()
    if _is_number(value):
        return format_number(value)
    raise UnsupportedValueKindError(kind=type(value).__name__, detail="cannot be encoded as N")


def _key_binary(value: Any) -> bytes:
    if isinstance(value, str):
        return value.encode("utf-8")
    if isinstance(value, _BINARY_TYPES):
        return _as_bytes(value)
    raise UnsupportedValueKindError(kind=type(value).__name__, detail="cannot be encoded as B")


def _collection(value: Any, kind: str) -> list[Any]:
    if isinstance(value, (str, bytes, bytearray, Mapping)) or not isinstance(value, Iterable):
        raise UnsupportedValueKindError(kind=type(value).__name__, detail=f"cannot be encoded as {kind}")
    items = list(value)
    if isinstance(value, (set, frozenset)):
        items = sorted(items)
    return items


def encode_attribute_value(attr: AttributeDefinition, value: Any) -> dict[str, Any]:
    """Encode ``value`` as the type declared by ``attr`` instead of its native kind.

    ``None`` and ``""`` yield ``{TYPE: None}``: an explicit, empty payload.
    """
    kind = attr.attribute_type
    if value is None or (isinstance(value, str) and value == ""):
        return {kind: None}

    if kind == STRING:
        return {STRING: _key_string(value)}
    if kind == NUMBER:
        return {NUMBER: _key_number(value)}
    if kind == BINARY:
        return {BINARY: _key_binary(value)}
    if kind == STRING_SET:
        return {STRING_SET: [_key_string(v) for v in _collection(value, kind)]}
    if kind == NUMBER_SET:
        return {NUMBER_SET: [_key_number(v) for v in _collection(value, kind)]}
    if kind == BINARY_SET:
        return {BINARY_SET: [_key_binary(v) for v in _collection(value, kind)]}

    raise UnsupportedValueKindError(kind=type(value).__name__, detail=f"unsupported attribute type {kind}")


def encode_attribute_values(attr: AttributeDefinition, *values: Any) -> list[dict[str, Any]]:
    return [encode_attribute_value(attr, v) for v in values]


def encode_attribute(attr: AttributeDefinition, value: Any) -> dict[str, dict[str, Any]]:
    return {attr.attribute_name: encode_attribute_value(attr, value)}


def encode_key(hash_key: KeyValue, range_key: KeyValue | None = None) -> dict[str, dict[str, Any]]:
    key = encode_attribute(hash_key.key, hash_key.value)
    if range_key is not None:
        key.update(encode_attribute(range_key.key, range_key.value))
    return key


def encode_item(item: Mapping[str, Any]) -> dict[str, dict[str, Any]]:
    out: dict[str, dict[str, Any]] = {}
    for name, value in item.items():
        if value is None or (isinstance(value, str) and value == ""):
            continue
        out[name] = encode_value(value)
    return out


def decode_item(item: Mapping[str, Any] | None) -> dict[str, Any]:
    if not item:
        return {}
    if not isinstance(item, Mapping):
        raise MalformedAttributeValueError("item must be a map")
    return {str(name): decode_value(av) for name, av in item.items()}


def _b64decode(value: Any, what: str) -> bytes:
    if not isinstance(value, str):
        raise MalformedAttributeValueError(f"{what} must be a base64 string")
    try:
        return base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError) as err:
        raise MalformedAttributeValueError(f"{what} is not valid base64") from err


def attribute_value_to_json(av: Any) -> dict[str, Any]:
    kind = attribute_type(av)
    value = av[kind]
    _check_payload(kind, value)

    if kind == BINARY:
        return {BINARY: base64.b64encode(_as_bytes(value)).decode("ascii")}
    if kind == BINARY_SET:
        return {BINARY_SET: [base64.b64encode(_as_bytes(v)).decode("ascii") for v in value]}
    if kind in {STRING_SET, NUMBER_SET}:
        return {kind: list(value)}
    if kind == LIST:
        return {LIST: [attribute_value_to_json(v) for v in value]}
    if kind == MAP:
        return {MAP: {str(k): attribute_value_to_json(value[k]) for k in sorted(value.keys())}}
    return {kind: value}


def attribute_value_from_json(enc: Any) -> dict[str, Any]:
    kind = attribute_type(enc)
    value = enc[kind]

    if kind == BINARY:
        return {BINARY: _b64decode(value, "B value")}

    if kind == BINARY_SET:
        if not isinstance(value, list):
            raise MalformedAttributeValueError("BS value must be a list of base64 strings")
        return {BINARY_SET: [_b64decode(v, "BS element") for v in value]}

    if kind == LIST:
        if not isinstance(value, list):
            raise MalformedAttributeValueError("L value must be a list")
        return {LIST: [attribute_value_from_json(v) for v in value]}

    if kind == MAP:
        if not isinstance(value, Mapping):
            raise MalformedAttributeValueError("M value must be a map")
        return {MAP: {str(k): attribute_value_from_json(value[k]) for k in sorted(value.keys())}}

    # the remaining tags have the same payload in both shapes
    return attribute_value_to_json(enc)


def item_from_json(item: Any) -> dict[str, dict[str, Any]]:
    if not isinstance(item, Mapping):
        raise MalformedAttributeValueError("item must be a map")
    return {str(name): attribute_value_from_json(av) for name, av in item.items()}
