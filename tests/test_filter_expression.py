"""Tests for $filter construction and rendering."""

import pytest

from aggexpr.common.exceptions import InvalidArgumentError
from aggexpr.expressions import builders as b
from aggexpr.expressions.ast import FilterExpression, Literal
from aggexpr.renderer.expression_renderer import render
from aggexpr.renderer.render_context import TypeBasedResolutionContext


class TestFilterBuilder:
    def test_field_input(self) -> None:
        expr = b.Filter.filter("tags").as_("x").by(b.gte("x", 5))
        assert isinstance(expr, FilterExpression)
        assert render(expr) == {
            "$filter": {"input": "$tags", "as": "x", "cond": {"$gte": ["$$x", 5]}}
        }

    def test_literal_list_input(self) -> None:
        expr = b.Filter.filter([1, 2, 3, 4]).as_("num").by(b.gte("num", 3))
        assert expr.input == Literal([1, 2, 3, 4])
        assert render(expr)["$filter"]["input"] == [1, 2, 3, 4]

    def test_raw_condition_passes_through(self) -> None:
        condition = {"$gte": ["$$num", 3]}
        expr = b.Filter.filter("numbers").as_("num").by(condition)
        assert render(expr)["$filter"]["cond"] == condition

    def test_none_input_rejected(self) -> None:
        with pytest.raises(InvalidArgumentError):
            b.Filter.filter(None)

    def test_empty_variable_name_rejected(self) -> None:
        with pytest.raises(InvalidArgumentError):
            b.Filter.filter("tags").as_("")

    def test_none_condition_rejected(self) -> None:
        with pytest.raises(InvalidArgumentError):
            b.Filter.filter("tags").as_("x").by(None)


class TestFilterScoping:
    def test_outer_fields_still_resolve(
        self, sales_context: TypeBasedResolutionContext
    ) -> None:
        expr = b.Filter.filter("items").as_("item").by(b.gte("item.price", "price"))
        assert render(expr, sales_context) == {
            "$filter": {
                "input": "$items",
                "as": "item",
                "cond": {"$gte": ["$$item.price", "$price"]},
            }
        }

    def test_input_does_not_see_variable(self) -> None:
        expr = b.Filter.filter("x").as_("x").by(b.eq("x", 1))
        assert render(expr) == {
            "$filter": {"input": "$x", "as": "x", "cond": {"$eq": ["$$x", 1]}}
        }

    def test_filter_inside_let(self) -> None:
        expr = (
            b.Let.define(10)
            .as_("limit")
            .in_(b.Filter.filter("items").as_("item").by(b.gte("item.price", "limit")))
        )
        assert render(expr) == {
            "$let": {
                "vars": {"limit": 10},
                "in": {
                    "$filter": {
                        "input": "$items",
                        "as": "item",
                        "cond": {"$gte": ["$$item.price", "$$limit"]},
                    }
                },
            }
        }

    def test_size_of_filtered_array(self) -> None:
        expr = b.size(b.Filter.filter("tags").as_("t").by(b.ne("t", b.literal(""))))
        assert render(expr) == {
            "$size": [{"$filter": {"input": "$tags", "as": "t", "cond": {"$ne": ["$$t", ""]}}}]
        }
