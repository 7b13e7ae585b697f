"""aggexpr - Build and render aggregation pipeline expressions."""

from aggexpr.expressions.builders import (
    ArithmeticOperators,
    ArrayOperators,
    ComparisonOperators,
    ConditionalOperator,
    DateOperators,
    Filter,
    Let,
    SetOperators,
    StringOperators,
)
from aggexpr.expressions.ast import ExpressionVariable
from aggexpr.fields import Field, Fields, field, fields
from aggexpr.parser.expression_parser import parse_expression
from aggexpr.renderer.expression_renderer import ExpressionRenderer, render
from aggexpr.renderer.render_context import DEFAULT_CONTEXT, TypeBasedResolutionContext
from aggexpr.stages.projection import ProjectionOperation, project

__version__ = "0.1.0"
__all__ = [
    "ArithmeticOperators",
    "ArrayOperators",
    "ComparisonOperators",
    "ConditionalOperator",
    "DEFAULT_CONTEXT",
    "DateOperators",
    "ExpressionRenderer",
    "ExpressionVariable",
    "Field",
    "Fields",
    "Filter",
    "Let",
    "ProjectionOperation",
    "SetOperators",
    "StringOperators",
    "TypeBasedResolutionContext",
    "field",
    "fields",
    "parse_expression",
    "project",
    "render",
    "__version__",
]
