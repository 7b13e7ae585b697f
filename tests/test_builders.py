"""Tests for the fluent expression builders."""

import pytest

from aggexpr.common.exceptions import InvalidArgumentError
from aggexpr.expressions import builders as b
from aggexpr.expressions.ast import (
    ArithmeticExpression,
    ConditionalExpression,
    FieldRef,
    Literal,
    StringExpression,
    UnaryExpression,
)
from aggexpr.expressions.operators import ArithmeticOperator, StringOperator, UnaryOperator
from aggexpr.fields import Field
from aggexpr.renderer.expression_renderer import render


class TestOperandConversion:
    def test_string_is_field_reference(self) -> None:
        expr = b.add("price", 1)
        assert expr.operands == (FieldRef(Field("price")), Literal(1))

    def test_field_object_is_field_reference(self) -> None:
        expr = b.add(Field("price"), Field("tax"))
        assert render(expr) == {"$add": ["$price", "$tax"]}

    def test_literal_helper_keeps_strings_verbatim(self) -> None:
        assert render(b.eq("status", b.literal("open"))) == {"$eq": ["$status", "open"]}

    def test_none_operand_is_rejected(self) -> None:
        with pytest.raises(InvalidArgumentError, match="must not be None"):
            b.add("price", None)

    def test_nested_expressions_are_kept(self) -> None:
        inner = b.subtract("a", "b")
        assert b.abs_(inner).operand is inner

    def test_variable(self) -> None:
        ref = b.variable("total")
        assert ref.is_variable
        assert str(ref) == "$$total"


class TestArity:
    def test_add_needs_two_operands(self) -> None:
        with pytest.raises(InvalidArgumentError, match=r"\$add takes at least 2 operands, got 1"):
            b.add("price")

    def test_concat_accepts_one_operand(self) -> None:
        assert render(b.concat("item")) == {"$concat": ["$item"]}

    def test_set_union_needs_two_arrays(self) -> None:
        with pytest.raises(InvalidArgumentError, match=r"\$setUnion"):
            b.set_union("a")

    def test_substr_takes_exactly_three(self) -> None:
        assert isinstance(b.substr("s", 0, 2), StringExpression)


class TestZeroDivisor:
    def test_divide_by_zero_rejected(self) -> None:
        with pytest.raises(InvalidArgumentError, match="divisor must not be zero"):
            b.divide("a", 0)

    def test_mod_by_zero_rejected(self) -> None:
        with pytest.raises(InvalidArgumentError, match="modulus must not be zero"):
            b.mod("a", 0.0)

    def test_zero_dividend_allowed(self) -> None:
        assert render(b.divide(0, "a")) == {"$divide": [0, "$a"]}

    def test_false_is_not_zero(self) -> None:
        assert render(b.mod("a", False)) == {"$mod": ["$a", False]}


class TestArithmeticOperators:
    def test_add_many(self) -> None:
        expr = b.ArithmeticOperators.value_of("netPrice").add("surCharge", 5)
        assert render(expr) == {"$add": ["$netPrice", "$surCharge", 5]}

    def test_divide_rejects_zero(self) -> None:
        with pytest.raises(InvalidArgumentError):
            b.ArithmeticOperators.value_of("a").divide(0)

    @pytest.mark.parametrize(
        "method, operator",
        [
            ("abs", UnaryOperator.ABS),
            ("ceil", UnaryOperator.CEIL),
            ("floor", UnaryOperator.FLOOR),
            ("sqrt", UnaryOperator.SQRT),
            ("exp", UnaryOperator.EXP),
            ("ln", UnaryOperator.LN),
            ("log10", UnaryOperator.LOG10),
            ("trunc", UnaryOperator.TRUNC),
        ],
    )
    def test_unary_methods(self, method: str, operator: UnaryOperator) -> None:
        expr = getattr(b.ArithmeticOperators.value_of("x"), method)()
        assert isinstance(expr, UnaryExpression)
        assert expr.operator == operator

    def test_pow_and_log(self) -> None:
        factory = b.ArithmeticOperators.value_of("x")
        assert factory.pow(3).operator == ArithmeticOperator.POW
        assert render(factory.log(10)) == {"$log": ["$x", 10]}


class TestComparisonOperators:
    def test_field_against_field(self) -> None:
        expr = b.ComparisonOperators.value_of("qty").gt("minimum")
        assert render(expr) == {"$gt": ["$qty", "$minimum"]}

    def test_field_against_literal_string(self) -> None:
        expr = b.ComparisonOperators.value_of("status").eq_value("open")
        assert render(expr) == {"$eq": ["$status", "open"]}

    def test_numbers_are_literals_either_way(self) -> None:
        factory = b.ComparisonOperators.value_of("qty")
        assert render(factory.lte(250)) == render(factory.lte_value(250))


class TestSetOperators:
    def test_is_equal_to(self) -> None:
        expr = b.SetOperators.array_as_set("A").is_equal_to("B")
        assert render(expr) == {"$setEquals": ["$A", "$B"]}

    def test_intersects_many(self) -> None:
        expr = b.SetOperators.array_as_set("A").intersects("B", "C")
        assert render(expr) == {"$setIntersection": ["$A", "$B", "$C"]}

    def test_any_element_true(self) -> None:
        expr = b.SetOperators.array_as_set("flags").any_element_true()
        assert render(expr) == {"$anyElementTrue": ["$flags"]}

    def test_difference_and_subset(self) -> None:
        factory = b.SetOperators.array_as_set("A")
        assert render(factory.difference_to("B")) == {"$setDifference": ["$A", "$B"]}
        assert render(factory.is_subset_of("B")) == {"$setIsSubset": ["$A", "$B"]}


class TestStringOperators:
    def test_concat_takes_literals(self) -> None:
        expr = b.StringOperators.value_of("item").concat(" - ", Field("description"))
        assert render(expr) == {"$concat": ["$item", " - ", "$description"]}

    def test_concat_value_of_takes_fields(self) -> None:
        expr = b.StringOperators.value_of("first").concat_value_of("last")
        assert render(expr) == {"$concat": ["$first", "$last"]}

    def test_substring_default_length(self) -> None:
        expr = b.StringOperators.value_of("quarter").substring(2)
        assert render(expr) == {"$substr": ["$quarter", 2, -1]}

    def test_strcasecmp(self) -> None:
        factory = b.StringOperators.value_of("quarter")
        assert render(factory.strcasecmp("13q4")) == {"$strcasecmp": ["$quarter", "13q4"]}
        assert render(factory.strcasecmp_value_of("other")) == {
            "$strcasecmp": ["$quarter", "$other"]
        }

    def test_case_conversion(self) -> None:
        factory = b.StringOperators.value_of("name")
        assert factory.to_lower().operator == StringOperator.TO_LOWER
        assert render(factory.to_upper()) == {"$toUpper": "$name"}


class TestArrayAndDateOperators:
    def test_size(self) -> None:
        assert render(b.ArrayOperators.array_of("tags").size()) == {"$size": ["$tags"]}

    def test_slice_with_position(self) -> None:
        expr = b.ArrayOperators.array_of("tags").slice(10, 5)
        assert render(expr) == {"$slice": ["$tags", 5, 10]}

    @pytest.mark.parametrize(
        "method, key",
        [
            ("hour", "$hour"),
            ("minute", "$minute"),
            ("second", "$second"),
            ("millisecond", "$millisecond"),
            ("year", "$year"),
            ("month", "$month"),
            ("week", "$week"),
            ("day_of_year", "$dayOfYear"),
            ("day_of_month", "$dayOfMonth"),
            ("day_of_week", "$dayOfWeek"),
        ],
    )
    def test_date_fragments(self, method: str, key: str) -> None:
        expr = getattr(b.DateOperators.date_of("createdAt"), method)()
        assert render(expr) == {key: ["$createdAt"]}


class TestConditionalOperator:
    def test_then_and_otherwise_are_literals(self) -> None:
        expr = (
            b.ConditionalOperator.new_builder()
            .when(b.gte("qty", 250))
            .then("bulk")
            .otherwise("retail")
        )
        assert isinstance(expr, ConditionalExpression)
        assert render(expr) == {
            "$cond": {"if": {"$gte": ["$qty", 250]}, "then": "bulk", "else": "retail"}
        }

    def test_value_of_variants_take_fields(self) -> None:
        expr = (
            b.ConditionalOperator.new_builder()
            .when("applyDiscount")
            .then_value_of("discountPrice")
            .otherwise_value_of("price")
        )
        assert render(expr) == {
            "$cond": {"if": "$applyDiscount", "then": "$discountPrice", "else": "$price"}
        }

    def test_none_condition_rejected(self) -> None:
        with pytest.raises(InvalidArgumentError):
            b.ConditionalOperator.new_builder().when(None)

    def test_cond_function(self) -> None:
        expr = b.cond("flag", b.literal("yes"), b.literal("no"))
        assert render(expr) == {"$cond": {"if": "$flag", "then": "yes", "else": "no"}}


class TestImmutability:
    def test_factory_calls_do_not_share_state(self) -> None:
        factory = b.ArithmeticOperators.value_of("price")
        first = factory.add("tax")
        second = factory.multiply(2)
        assert isinstance(first, ArithmeticExpression)
        assert render(first) == {"$add": ["$price", "$tax"]}
        assert render(second) == {"$multiply": ["$price", 2]}

    def test_and_operand_returns_copy(self) -> None:
        expr = b.add("a", "b")
        extended = expr.and_operand(Literal(1))
        assert len(expr.operands) == 2
        assert len(extended.operands) == 3
