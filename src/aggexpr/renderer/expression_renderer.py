"""Expression renderer: expression trees to pipeline documents.

Walks an ``AggregationExpression`` tree against a ``ResolutionContext`` and
produces the nested ``dict``/``list`` structure the server expects.  Wire
keys and operand shapes come from ``aggexpr.renderer.dialect``; field names
are turned into ``$name``/``$$name`` strings by the context chain.

``$let`` and ``$filter`` open a new scope: their variables are exposed as
synthetic fields over the caller's context, and everything nested inside
the scope resolves through a ``NestedDelegatingResolutionContext`` over it.
"""

from __future__ import annotations

from typing import Any

from aggexpr.common.exceptions import TypeMismatchError
from aggexpr.common.logging import ILoggable
from aggexpr.expressions.ast import (
    AggregationExpression,
    ConditionalExpression,
    DateExpression,
    FieldRef,
    FilterExpression,
    LetExpression,
    Literal,
    OperatorExpression,
    UnaryExpression,
)
from aggexpr.fields import VARIABLE_PREFIX, ExposedFields, Field
from aggexpr.renderer.dialect import (
    COND_KEY,
    FILTER_KEY,
    LET_KEY,
    OperandShape,
    OperatorTemplate,
    template_for,
)
from aggexpr.renderer.render_context import (
    DEFAULT_CONTEXT,
    NestedDelegatingResolutionContext,
    ResolutionContext,
)


class ExpressionRenderer:
    """Renders expression trees to pipeline documents.

    The renderer holds no per-render state; one instance may render any
    number of trees, against any number of contexts.
    """

    def __init__(self, logger: ILoggable | None = None) -> None:
        self._logger = logger

    def render_expression(
        self,
        expr: AggregationExpression,
        context: ResolutionContext = DEFAULT_CONTEXT,
    ) -> Any:
        """Render an expression to its document form."""
        if isinstance(expr, Literal):
            return self.render_literal(expr)
        elif isinstance(expr, FieldRef):
            return self.render_field(expr, context)
        elif isinstance(expr, OperatorExpression):
            return self._render_operator(expr, context)
        elif isinstance(expr, (UnaryExpression, DateExpression)):
            return self._render_single(expr, context)
        elif isinstance(expr, ConditionalExpression):
            return self._render_conditional(expr, context)
        elif isinstance(expr, FilterExpression):
            return self._render_filter(expr, context)
        elif isinstance(expr, LetExpression):
            return self._render_let(expr, context)
        else:
            raise TypeMismatchError(
                f"cannot render operand of type {type(expr).__name__}: {expr!r}"
            )

    def render_literal(self, expr: Literal) -> Any:
        """Literal values pass through untouched."""
        return expr.value

    def render_field(self, expr: FieldRef, context: ResolutionContext) -> str:
        """Render a field reference.

        Variable references never consult the context chain.
        """
        if expr.is_variable:
            return f"{VARIABLE_PREFIX}{expr.field.target}"
        return str(context.resolve(expr.field))

    def _render_operands(
        self, operands: tuple[AggregationExpression, ...], context: ResolutionContext
    ) -> list[Any]:
        return [self.render_expression(op, context) for op in operands]

    def _render_operator(
        self, expr: OperatorExpression, context: ResolutionContext
    ) -> dict[str, Any]:
        template = template_for(expr.operator)
        rendered = self._render_operands(expr.operands, context)
        return {template.key: self._shape(template, rendered)}

    def _render_single(
        self, expr: UnaryExpression | DateExpression, context: ResolutionContext
    ) -> dict[str, Any]:
        template = template_for(expr.operator)
        rendered = [self.render_expression(expr.operand, context)]
        return {template.key: self._shape(template, rendered)}

    def _shape(self, template: OperatorTemplate, rendered: list[Any]) -> Any:
        if template.shape == OperandShape.SINGLE:
            if len(rendered) != 1:
                raise TypeMismatchError(
                    f"{template.key} takes a single operand, got {len(rendered)}"
                )
            return rendered[0]
        return rendered

    def _render_conditional(
        self, expr: ConditionalExpression, context: ResolutionContext
    ) -> dict[str, Any]:
        return {
            COND_KEY: {
                "if": self.render_expression(expr.if_, context),
                "then": self.render_expression(expr.then, context),
                "else": self.render_expression(expr.else_, context),
            }
        }

    def _render_filter(
        self, expr: FilterExpression, context: ResolutionContext
    ) -> dict[str, Any]:
        scope = context.expose(ExposedFields.synthetic([Field(expr.variable_name)]))
        if self._logger:
            self._logger.debug("Opened $filter scope for variable '%s'", expr.variable_name)

        return {
            FILTER_KEY: {
                "input": self.render_expression(expr.input, context),
                "as": expr.variable_name,
                "cond": self.render_expression(
                    expr.condition, NestedDelegatingResolutionContext(scope)
                ),
            }
        }

    def _render_let(
        self, expr: LetExpression, context: ResolutionContext
    ) -> dict[str, Any]:
        # Bindings are evaluated in the caller's scope; they cannot see each other.
        rendered_vars = {
            var.variable_name: self.render_expression(var.expression, context)
            for var in expr.variables
        }

        scope = context.expose(
            ExposedFields.synthetic([Field(name) for name in expr.variable_names])
        )
        if self._logger:
            self._logger.debug(
                "Opened $let scope for variables %s", ", ".join(expr.variable_names)
            )

        if expr.body is None:
            raise TypeMismatchError("$let requires an 'in' expression")

        return {
            LET_KEY: {
                "vars": rendered_vars,
                "in": self.render_expression(
                    expr.body, NestedDelegatingResolutionContext(scope)
                ),
            }
        }


def render(
    expr: AggregationExpression,
    context: ResolutionContext | None = None,
    *,
    logger: ILoggable | None = None,
) -> Any:
    """Render *expr* against *context* (``DEFAULT_CONTEXT`` when omitted)."""
    return ExpressionRenderer(logger=logger).render_expression(
        expr, context if context is not None else DEFAULT_CONTEXT
    )
