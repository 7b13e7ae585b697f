"""Expression renderer module."""

from aggexpr.renderer.dialect import OPERATOR_TEMPLATES, OperandShape, OperatorTemplate
from aggexpr.renderer.expression_renderer import ExpressionRenderer, render
from aggexpr.renderer.render_context import (
    DEFAULT_CONTEXT,
    ExposedFieldsResolutionContext,
    NestedDelegatingResolutionContext,
    NoOpResolutionContext,
    ResolutionContext,
    TypeBasedResolutionContext,
)

__all__ = [
    "DEFAULT_CONTEXT",
    "ExposedFieldsResolutionContext",
    "ExpressionRenderer",
    "NestedDelegatingResolutionContext",
    "NoOpResolutionContext",
    "OPERATOR_TEMPLATES",
    "OperandShape",
    "OperatorTemplate",
    "ResolutionContext",
    "TypeBasedResolutionContext",
    "render",
]
