from __future__ import annotations

import pytest

from wiredb_py.conditions import (
    BETWEEN,
    EQ,
    GE,
    IN,
    AttributeCondition,
    Condition,
    attribute_condition,
    normalize_operator,
)
from wiredb_py.errors import InvalidConditionOperandsError, UnsupportedValueKindError
from wiredb_py.model import AttributeDefinition


def test_unary_constructors_carry_one_operand() -> None:
    for ctor, op in [
        (Condition.eq, "EQ"),
        (Condition.ne, "NE"),
        (Condition.le, "LE"),
        (Condition.lt, "LT"),
        (Condition.ge, "GE"),
        (Condition.gt, "GT"),
        (Condition.begins_with, "BEGINS_WITH"),
        (Condition.contains, "CONTAINS"),
        (Condition.not_contains, "NOT_CONTAINS"),
    ]:
        cond = ctor({"S": "a"})
        assert cond.to_request() == {"ComparisonOperator": op, "AttributeValueList": [{"S": "a"}]}


def test_null_and_not_null_take_no_operands() -> None:
    assert Condition.null().to_request() == {"ComparisonOperator": "NULL"}
    assert Condition.not_null().to_request() == {"ComparisonOperator": "NOT_NULL"}
    with pytest.raises(InvalidConditionOperandsError, match="no operands"):
        Condition("NULL", ({"S": "a"},))


def test_between_requires_matching_types() -> None:
    cond = Condition.between({"N": "1"}, {"N": "5"})
    assert cond.operator == BETWEEN
    assert cond.to_request()["AttributeValueList"] == [{"N": "1"}, {"N": "5"}]

    with pytest.raises(InvalidConditionOperandsError, match="share a type"):
        Condition.between({"N": "1"}, {"S": "5"})
    with pytest.raises(InvalidConditionOperandsError, match="two operands"):
        Condition(BETWEEN, ({"N": "1"},))


@pytest.mark.parametrize(
    ("operator", "operands"),
    [
        (EQ, ()),
        (EQ, ({"S": "a"}, {"S": "b"})),
        ("LIKE", ({"S": "a"},)),
        (GE, ("not-an-attribute-value",)),
        (GE, ({"S": "a", "N": "1"},)),
    ],
)
def test_invalid_operands_are_rejected(operator: str, operands: tuple) -> None:
    with pytest.raises(InvalidConditionOperandsError):
        Condition(operator, operands)


def test_empty_in_is_legal_and_never_matches() -> None:
    cond = Condition.in_([])
    assert cond.operator == IN
    assert cond.never_matches is True
    assert cond.to_request() == {"ComparisonOperator": "IN"}

    many = Condition.in_([{"S": "a"}, {"S": "b"}])
    assert many.never_matches is False
    assert len(many.to_request()["AttributeValueList"]) == 2


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("=", "EQ"),
        ("!=", "NE"),
        ("<>", "NE"),
        ("<=", "LE"),
        ("<", "LT"),
        (">=", "GE"),
        (">", "GT"),
        ("begins_with", "BEGINS_WITH"),
        (" between ", "BETWEEN"),
    ],
)
def test_normalize_operator(raw: str, expected: str) -> None:
    assert normalize_operator(raw) == expected


def test_attribute_condition_encodes_with_declared_type() -> None:
    ts = AttributeDefinition("ts", "N")

    cond = attribute_condition(ts, ">=", "10")
    assert cond == AttributeCondition("ts", Condition(GE, ({"N": "10"},)))

    between = ts.condition("between", 1, "5")
    assert between.condition.to_request() == {
        "ComparisonOperator": "BETWEEN",
        "AttributeValueList": [{"N": "1"}, {"N": "5"}],
    }


def test_attribute_condition_in_accepts_a_single_collection() -> None:
    name = AttributeDefinition("name", "S")
    assert attribute_condition(name, "IN", ["a", "b"]).condition.operands == ({"S": "a"}, {"S": "b"})
    assert attribute_condition(name, "IN", "a", "b").condition.operands == ({"S": "a"}, {"S": "b"})
    assert attribute_condition(name, "IN", []).condition.never_matches


def test_attribute_condition_surfaces_encoding_errors() -> None:
    with pytest.raises(UnsupportedValueKindError):
        attribute_condition(AttributeDefinition("n", "N"), "EQ", "abc")
