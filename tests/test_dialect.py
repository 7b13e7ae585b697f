"""Tests for the operator registry."""

from dataclasses import FrozenInstanceError
from enum import Enum

import pytest

from aggexpr.common.exceptions import TypeMismatchError
from aggexpr.expressions.operators import (
    ALL_OPERATOR_TYPES,
    ArithmeticOperator,
    ArrayOperator,
    DateOperator,
    StringOperator,
    UnaryOperator,
)
from aggexpr.renderer.dialect import (
    OPERATOR_TEMPLATES,
    OperandShape,
    operators_by_name,
    template_for,
)


class TestOperatorRegistry:
    def test_every_operator_is_registered(self) -> None:
        members = [member for enum_type in ALL_OPERATOR_TYPES for member in enum_type]
        assert set(members) == set(OPERATOR_TEMPLATES)
        assert len(members) == len(OPERATOR_TEMPLATES)

    def test_keys_are_unique_and_marked(self) -> None:
        keys = [tmpl.key for tmpl in OPERATOR_TEMPLATES.values()]
        assert len(keys) == len(set(keys))
        assert all(key.startswith("$") for key in keys)

    def test_operand_bounds_are_consistent(self) -> None:
        for tmpl in OPERATOR_TEMPLATES.values():
            assert tmpl.min_operands >= 1
            assert tmpl.max_operands is None or tmpl.min_operands <= tmpl.max_operands

    def test_unary_math_is_single(self) -> None:
        for operator in UnaryOperator:
            assert template_for(operator).shape == OperandShape.SINGLE

    def test_date_extraction_is_wrapped(self) -> None:
        for operator in DateOperator:
            assert template_for(operator).shape == OperandShape.SINGLE_IN_LIST

    def test_size_is_wrapped(self) -> None:
        assert template_for(ArrayOperator.SIZE).shape == OperandShape.SINGLE_IN_LIST

    def test_operators_by_name(self) -> None:
        by_name = operators_by_name()
        assert by_name["toLower"] == StringOperator.TO_LOWER
        assert by_name["dayOfYear"] == DateOperator.DAY_OF_YEAR
        assert len(by_name) == len(OPERATOR_TEMPLATES)

    def test_templates_are_frozen(self) -> None:
        with pytest.raises(FrozenInstanceError):
            template_for(ArithmeticOperator.ADD).key = "$plus"  # type: ignore[misc]


class TestOperatorTemplate:
    @pytest.mark.parametrize(
        "operator, count, accepted",
        [
            (ArithmeticOperator.ADD, 1, False),
            (ArithmeticOperator.ADD, 2, True),
            (ArithmeticOperator.ADD, 10, True),
            (ArithmeticOperator.SUBTRACT, 3, False),
            (ArrayOperator.SLICE, 2, True),
            (ArrayOperator.SLICE, 3, True),
            (ArrayOperator.SLICE, 4, False),
            (StringOperator.CONCAT, 1, True),
            (UnaryOperator.ABS, 2, False),
        ],
    )
    def test_accepts(self, operator, count: int, accepted: bool) -> None:
        assert template_for(operator).accepts(count) is accepted

    def test_name_drops_marker(self) -> None:
        assert template_for(DateOperator.DAY_OF_WEEK).name == "dayOfWeek"

    def test_unregistered_operator(self) -> None:
        class Unregistered(Enum):
            NOOP = 1

        with pytest.raises(TypeMismatchError, match="no wire template registered"):
            template_for(Unregistered.NOOP)  # type: ignore[arg-type]
