"""Operator enumerations for aggregation expressions.

Operators carry no wire syntax of their own; ``aggexpr.renderer.dialect``
maps each one to its ``$key`` and operand shape.
"""

from __future__ import annotations

from enum import Enum, auto


class ArithmeticOperator(Enum):
    """N-ary and binary arithmetic operators."""

    ADD = auto()
    SUBTRACT = auto()
    MULTIPLY = auto()
    DIVIDE = auto()
    MOD = auto()
    POW = auto()
    LOG = auto()

    @property
    def is_associative(self) -> bool:
        return self in (ArithmeticOperator.ADD, ArithmeticOperator.MULTIPLY)


class UnaryOperator(Enum):
    """Single-operand math operators."""

    ABS = auto()
    CEIL = auto()
    FLOOR = auto()
    SQRT = auto()
    EXP = auto()
    LN = auto()
    LOG10 = auto()
    TRUNC = auto()


class ComparisonOperator(Enum):
    """Comparison operators (always two operands)."""

    CMP = auto()
    EQ = auto()
    GT = auto()
    GTE = auto()
    LT = auto()
    LTE = auto()
    NE = auto()


class SetOperator(Enum):
    """Operators treating arrays as sets."""

    SET_EQUALS = auto()
    SET_INTERSECTION = auto()
    SET_UNION = auto()
    SET_DIFFERENCE = auto()
    SET_IS_SUBSET = auto()
    ANY_ELEMENT_TRUE = auto()
    ALL_ELEMENTS_TRUE = auto()


class StringOperator(Enum):
    """String operators."""

    CONCAT = auto()
    SUBSTR = auto()
    TO_LOWER = auto()
    TO_UPPER = auto()
    STRCASECMP = auto()


class ArrayOperator(Enum):
    """Array operators."""

    SIZE = auto()
    SLICE = auto()


class DateOperator(Enum):
    """Date fragment extraction operators."""

    HOUR = auto()
    MINUTE = auto()
    SECOND = auto()
    MILLISECOND = auto()
    YEAR = auto()
    MONTH = auto()
    WEEK = auto()
    DAY_OF_YEAR = auto()
    DAY_OF_MONTH = auto()
    DAY_OF_WEEK = auto()


type Operator = (
    ArithmeticOperator
    | UnaryOperator
    | ComparisonOperator
    | SetOperator
    | StringOperator
    | ArrayOperator
    | DateOperator
)

ALL_OPERATOR_TYPES: tuple[type[Enum], ...] = (
    ArithmeticOperator,
    UnaryOperator,
    ComparisonOperator,
    SetOperator,
    StringOperator,
    ArrayOperator,
    DateOperator,
)
