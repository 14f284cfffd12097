from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from .codec import attribute_type, encode_attribute_value
from .errors import InvalidConditionOperandsError, MalformedAttributeValueError

if TYPE_CHECKING:
    from .model import AttributeDefinition

EQ = "EQ"
NE = "NE"
LE = "LE"
LT = "LT"
GE = "GE"
GT = "GT"
BEGINS_WITH = "BEGINS_WITH"
BETWEEN = "BETWEEN"
NULL = "NULL"
NOT_NULL = "NOT_NULL"
CONTAINS = "CONTAINS"
NOT_CONTAINS = "NOT_CONTAINS"
IN = "IN"

_UNARY = frozenset({EQ, NE, LE, LT, GE, GT, BEGINS_WITH, CONTAINS, NOT_CONTAINS})
_NULLARY = frozenset({NULL, NOT_NULL})

_ALIASES = {
    "=": EQ,
    "!=": NE,
    "<>": NE,
    "<=": LE,
    "<": LT,
    ">=": GE,
    ">": GT,
}


def normalize_operator(operator: str) -> str:
    op = str(operator).strip()
    return _ALIASES.get(op, op.upper())


@dataclass(frozen=True)
class Condition:
    operator: str
    operands: tuple[dict[str, Any], ...] = ()

    def __post_init__(self) -> None:
        op = self.operator
        n = len(self.operands)

        if op in _NULLARY:
            if n != 0:
                raise InvalidConditionOperandsError(f"{op} takes no operands (got {n})")
        elif op in _UNARY:
            if n != 1:
                raise InvalidConditionOperandsError(f"{op} requires one operand (got {n})")
        elif op == BETWEEN:
            if n != 2:
                raise InvalidConditionOperandsError(f"BETWEEN requires two operands (got {n})")
        elif op != IN:
            raise InvalidConditionOperandsError(f"unsupported comparison operator: {op}")

        kinds: list[str] = []
        for i, av in enumerate(self.operands):
            try:
                kinds.append(attribute_type(av))
            except MalformedAttributeValueError as err:
                raise InvalidConditionOperandsError(f"{op} operand {i} is not an attribute value: {err}") from err

        if op == BETWEEN and kinds[0] != kinds[1]:
            raise InvalidConditionOperandsError(f"BETWEEN operands must share a type ({kinds[0]} != {kinds[1]})")

    @staticmethod
    def eq(value: dict[str, Any]) -> Condition:
        return Condition(EQ, (value,))

    @staticmethod
    def ne(value: dict[str, Any]) -> Condition:
        return Condition(NE, (value,))

    @staticmethod
    def le(value: dict[str, Any]) -> Condition:
        return Condition(LE, (value,))

    @staticmethod
    def lt(value: dict[str, Any]) -> Condition:
        return Condition(LT, (value,))

    @staticmethod
    def ge(value: dict[str, Any]) -> Condition:
        return Condition(GE, (value,))

    @staticmethod
    def gt(value: dict[str, Any]) -> Condition:
        return Condition(GT, (value,))

    @staticmethod
    def begins_with(value: dict[str, Any]) -> Condition:
        return Condition(BEGINS_WITH, (value,))

    @staticmethod
    def contains(value: dict[str, Any]) -> Condition:
        return Condition(CONTAINS, (value,))

    @staticmethod
    def not_contains(value: dict[str, Any]) -> Condition:
        return Condition(NOT_CONTAINS, (value,))

    @staticmethod
    def between(low: dict[str, Any], high: dict[str, Any]) -> Condition:
        return Condition(BETWEEN, (low, high))

    @staticmethod
    def null() -> Condition:
        return Condition(NULL)

    @staticmethod
    def not_null() -> Condition:
        return Condition(NOT_NULL)

    @staticmethod
    def in_(values: Iterable[dict[str, Any]]) -> Condition:
        return Condition(IN, tuple(values))

    @property
    def never_matches(self) -> bool:
        return self.operator == IN and not self.operands

    def to_request(self) -> dict[str, Any]:
        out: dict[str, Any] = {"ComparisonOperator": self.operator}
        if self.operands:
            out["AttributeValueList"] = [dict(av) for av in self.operands]
        return out


@dataclass(frozen=True)
class AttributeCondition:
    attribute_name: str
    condition: Condition


def attribute_condition(attr: AttributeDefinition, operator: str, *values: Any) -> AttributeCondition:
    op = normalize_operator(operator)
    if op == IN and len(values) == 1 and isinstance(values[0], (list, tuple, set, frozenset)):
        values = tuple(values[0])

    operands = tuple(encode_attribute_value(attr, v) for v in values)
    return AttributeCondition(attribute_name=attr.attribute_name, condition=Condition(op, operands))
