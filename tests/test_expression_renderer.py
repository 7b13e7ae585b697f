"""Tests for rendering expression trees to pipeline documents."""

from enum import Enum

import pytest

from aggexpr.common.exceptions import TypeMismatchError, UnresolvedReferenceError
from aggexpr.common.logging import LogLevel
from aggexpr.expressions import builders as b
from aggexpr.expressions.ast import (
    ArithmeticExpression,
    ComparisonExpression,
    ConditionalExpression,
    FieldRef,
    Literal,
    UnaryExpression,
)
from aggexpr.expressions.operators import ArithmeticOperator, UnaryOperator
from aggexpr.fields import Field
from aggexpr.renderer.expression_renderer import ExpressionRenderer, render
from aggexpr.renderer.render_context import DEFAULT_CONTEXT, TypeBasedResolutionContext


class TestLeafRendering:
    def test_literal_passes_through(self, renderer: ExpressionRenderer) -> None:
        assert renderer.render_expression(Literal(42)) == 42
        assert renderer.render_expression(Literal("$notAField")) == "$notAField"
        assert renderer.render_expression(Literal({"raw": [1, 2]})) == {"raw": [1, 2]}

    def test_field_reference(self, renderer: ExpressionRenderer) -> None:
        assert renderer.render_expression(FieldRef(Field("price"))) == "$price"

    def test_variable_reference_bypasses_context(
        self, renderer: ExpressionRenderer, sales_context: TypeBasedResolutionContext
    ) -> None:
        # "total" is not in the schema, variables never consult it
        assert renderer.render_expression(b.variable("total"), sales_context) == "$$total"

    def test_field_reference_mapped_by_schema(
        self, renderer: ExpressionRenderer, sales_context: TypeBasedResolutionContext
    ) -> None:
        assert renderer.render_expression(FieldRef(Field("id")), sales_context) == "$_id"


class TestOperatorRendering:
    """Wire shapes of operator nodes."""

    @pytest.mark.parametrize(
        "builder, key",
        [
            (b.add, "$add"),
            (b.subtract, "$subtract"),
            (b.multiply, "$multiply"),
            (b.divide, "$divide"),
            (b.mod, "$mod"),
        ],
    )
    def test_binary_arithmetic_preserves_order(self, builder, key: str) -> None:
        assert render(builder("a", "b")) == {key: ["$a", "$b"]}
        assert render(builder("b", "a")) == {key: ["$b", "$a"]}

    def test_nary_add(self) -> None:
        assert render(b.add("a", 1, "c")) == {"$add": ["$a", 1, "$c"]}

    def test_unary_math_is_not_wrapped(self) -> None:
        assert render(b.abs_("x")) == {"$abs": "$x"}
        assert render(b.trunc("x")) == {"$trunc": "$x"}

    def test_nested_unary_over_binary(self) -> None:
        expr = b.abs_(b.subtract("start", "end"))
        assert render(expr) == {"$abs": {"$subtract": ["$start", "$end"]}}

    def test_pow_and_log(self) -> None:
        assert render(b.pow_("value", 2)) == {"$pow": ["$value", 2]}
        assert render(b.log("value", 2)) == {"$log": ["$value", 2]}

    def test_comparison(self) -> None:
        assert render(b.gte("qty", 250)) == {"$gte": ["$qty", 250]}

    def test_string_operators(self) -> None:
        assert render(b.to_upper("item")) == {"$toUpper": "$item"}
        assert render(b.substr("quarter", 0, 2)) == {"$substr": ["$quarter", 0, 2]}
        assert render(b.strcasecmp("a", b.literal("x"))) == {"$strcasecmp": ["$a", "x"]}

    def test_size_is_wrapped(self) -> None:
        assert render(b.size("tags")) == {"$size": ["$tags"]}

    def test_slice(self) -> None:
        assert render(b.slice_("tags", 3)) == {"$slice": ["$tags", 3]}
        assert render(b.slice_("tags", 3, 1)) == {"$slice": ["$tags", 1, 3]}

    def test_date_extraction_is_wrapped(self) -> None:
        assert render(b.day_of_week("date")) == {"$dayOfWeek": ["$date"]}

    def test_set_operators(self) -> None:
        assert render(b.set_union("a", "b", "c")) == {"$setUnion": ["$a", "$b", "$c"]}
        assert render(b.any_element_true("flags")) == {"$anyElementTrue": ["$flags"]}

    def test_conditional(self) -> None:
        expr = ConditionalExpression(FieldRef(Field("flag")), Literal(0.9), Literal(1.0))
        assert render(expr) == {"$cond": {"if": "$flag", "then": 0.9, "else": 1.0}}


class TestRenderingContract:
    def test_raw_operand_is_type_mismatch(self) -> None:
        expr = ArithmeticExpression(ArithmeticOperator.ADD, (FieldRef(Field("a")), 5))  # type: ignore[arg-type]
        with pytest.raises(TypeMismatchError, match="int"):
            render(expr)

    def test_raw_unary_operand_is_type_mismatch(self) -> None:
        expr = UnaryExpression(UnaryOperator.ABS, "x")  # type: ignore[arg-type]
        with pytest.raises(TypeMismatchError):
            render(expr)

    def test_unregistered_operator_is_type_mismatch(self) -> None:
        class Unregistered(Enum):
            NOOP = 1

        expr = ComparisonExpression(Unregistered.NOOP, (Literal(1), Literal(2)))  # type: ignore[arg-type]
        with pytest.raises(TypeMismatchError, match="NOOP"):
            render(expr)

    def test_unresolved_reference_aborts_render(
        self, sales_context: TypeBasedResolutionContext
    ) -> None:
        with pytest.raises(UnresolvedReferenceError):
            render(b.add("price", "shipping"), sales_context)

    def test_rendering_is_deterministic(self) -> None:
        expr = b.multiply(b.add("netPrice", "surCharge"), "taxrate", 2)
        assert render(expr) == render(expr)

    def test_same_tree_different_contexts(
        self, sales_context: TypeBasedResolutionContext
    ) -> None:
        expr = b.eq("id", 1)
        assert render(expr, DEFAULT_CONTEXT) == {"$eq": ["$id", 1]}
        assert render(expr, sales_context) == {"$eq": ["$_id", 1]}


class TestScopeLogging:
    def test_scopes_are_logged_at_debug(self, recording_logger) -> None:
        renderer = ExpressionRenderer(logger=recording_logger)
        expr = b.Filter.filter("tags").as_("tag").by(b.eq("tag", "x"))
        renderer.render_expression(expr)
        messages = recording_logger.messages(LogLevel.DEBUG)
        assert messages == ["Opened $filter scope for variable 'tag'"]
