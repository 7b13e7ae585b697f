"""Expression node tree for aggregation pipeline expressions.

Nodes are frozen dataclasses. Builders in ``aggexpr.expressions.builders``
produce them; ``aggexpr.renderer.expression_renderer`` walks them. Every
operand slot holds another ``AggregationExpression``: a ``Literal``, a
``FieldRef`` or a nested operator node.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
from numbers import Number
from typing import Any, Iterator

from aggexpr.common.exceptions import InvalidArgumentError
from aggexpr.common.utils import change_indentation
from aggexpr.expressions.operators import (
    ArithmeticOperator,
    ArrayOperator,
    ComparisonOperator,
    DateOperator,
    Operator,
    SetOperator,
    StringOperator,
    UnaryOperator,
)
from aggexpr.fields import Field


class TreeNode(ABC):
    """Base class for all expression tree nodes."""

    @property
    @abstractmethod
    def children(self) -> list[TreeNode]:
        """Return the children of this node."""
        ...

    def dump_tree(self, depth: int = 0) -> str:
        """
        Dump the tree in textual format for debugging.

        Args:
            depth: Current depth for indentation.

        Returns:
            String representation of the tree.
        """
        lines = [
            change_indentation(f"+{self.__class__.__name__}", depth),
            change_indentation(f"|{self}", depth),
        ]
        for child in self.children:
            lines.append(child.dump_tree(depth + 1))
        return "\n".join(lines)

    def get_children_of_type[T: TreeNode](self, node_type: type[T]) -> Iterator[T]:
        """
        Get all descendants of a specific type.

        Args:
            node_type: The type of nodes to find.

        Yields:
            Nodes of the specified type.
        """
        if isinstance(self, node_type):
            yield self
        for child in self.children:
            yield from child.get_children_of_type(node_type)


# ==============================================================================
# Leaf Nodes
# ==============================================================================


@dataclass(frozen=True)
class AggregationExpression(TreeNode, ABC):
    """Base class for all aggregation expressions."""

    @property
    def children(self) -> list[TreeNode]:
        return []


@dataclass(frozen=True)
class Literal(AggregationExpression):
    """An opaque value rendered as-is (numbers, strings, lists, raw documents)."""

    value: Any

    def __str__(self) -> str:
        if isinstance(self.value, str):
            return f"'{self.value}'"
        return repr(self.value)


@dataclass(frozen=True)
class FieldRef(AggregationExpression):
    """A reference to a document field or, when ``is_variable``, a bound variable."""

    field: Field
    is_variable: bool = False

    @property
    def name(self) -> str:
        return self.field.name

    def __str__(self) -> str:
        prefix = "$$" if self.is_variable else "$"
        return f"{prefix}{self.field.name}"


# ==============================================================================
# Operator Nodes
# ==============================================================================


@dataclass(frozen=True)
class OperatorExpression(AggregationExpression, ABC):
    """An operator applied to an ordered sequence of operands."""

    operator: Operator
    operands: tuple[AggregationExpression, ...] = ()

    def __post_init__(self) -> None:
        if not isinstance(self.operands, tuple):
            object.__setattr__(self, "operands", tuple(self.operands))

    @property
    def children(self) -> list[TreeNode]:
        return [op for op in self.operands if isinstance(op, TreeNode)]

    def and_operand(self, operand: AggregationExpression) -> OperatorExpression:
        """Return a copy with *operand* appended."""
        return replace(self, operands=(*self.operands, operand))

    def __str__(self) -> str:
        params = ", ".join(str(op) for op in self.operands)
        return f"{self.operator.name.lower()}({params})"


def _is_zero(expr: AggregationExpression) -> bool:
    if not isinstance(expr, Literal):
        return False
    value = expr.value
    return isinstance(value, Number) and not isinstance(value, bool) and value == 0


@dataclass(frozen=True)
class ArithmeticExpression(OperatorExpression):
    """``$add``, ``$subtract``, ``$multiply``, ``$divide``, ``$mod``, ``$pow``, ``$log``."""

    operator: ArithmeticOperator = ArithmeticOperator.ADD

    def __post_init__(self) -> None:
        super().__post_init__()
        if self.operator in (ArithmeticOperator.DIVIDE, ArithmeticOperator.MOD):
            if any(_is_zero(op) for op in self.operands[1:]):
                what = "divisor" if self.operator == ArithmeticOperator.DIVIDE else "modulus"
                raise InvalidArgumentError(f"{what} must not be zero")


@dataclass(frozen=True)
class ComparisonExpression(OperatorExpression):
    """``$cmp``, ``$eq``, ``$gt``, ``$gte``, ``$lt``, ``$lte``, ``$ne``."""

    operator: ComparisonOperator = ComparisonOperator.EQ


@dataclass(frozen=True)
class SetExpression(OperatorExpression):
    """Set operators over arrays."""

    operator: SetOperator = SetOperator.SET_EQUALS


@dataclass(frozen=True)
class StringExpression(OperatorExpression):
    """``$concat``, ``$substr``, ``$toLower``, ``$toUpper``, ``$strcasecmp``."""

    operator: StringOperator = StringOperator.CONCAT


@dataclass(frozen=True)
class ArrayExpression(OperatorExpression):
    """``$size`` and ``$slice``."""

    operator: ArrayOperator = ArrayOperator.SIZE


@dataclass(frozen=True)
class UnaryExpression(AggregationExpression):
    """A single-operand math operator (``$abs``, ``$ceil``, ...)."""

    operator: UnaryOperator
    operand: AggregationExpression

    @property
    def children(self) -> list[TreeNode]:
        return [self.operand] if isinstance(self.operand, TreeNode) else []

    def __str__(self) -> str:
        return f"{self.operator.name.lower()}({self.operand})"


@dataclass(frozen=True)
class DateExpression(AggregationExpression):
    """A date fragment extraction (``$hour``, ``$dayOfYear``, ...)."""

    operator: DateOperator
    operand: AggregationExpression

    @property
    def children(self) -> list[TreeNode]:
        return [self.operand] if isinstance(self.operand, TreeNode) else []

    def __str__(self) -> str:
        return f"{self.operator.name.lower()}({self.operand})"


@dataclass(frozen=True)
class ConditionalExpression(AggregationExpression):
    """``$cond`` with ``if``/``then``/``else`` branches."""

    if_: AggregationExpression
    then: AggregationExpression
    else_: AggregationExpression

    @property
    def children(self) -> list[TreeNode]:
        return [e for e in (self.if_, self.then, self.else_) if isinstance(e, TreeNode)]

    def __str__(self) -> str:
        return f"cond({self.if_} ? {self.then} : {self.else_})"


# ==============================================================================
# Scoping Nodes
# ==============================================================================


@dataclass(frozen=True)
class FilterExpression(AggregationExpression):
    """``$filter``: keep the elements of ``input`` for which ``condition`` holds.

    ``variable_name`` names the iteration variable; inside ``condition`` it
    resolves as ``$$variable_name``.
    """

    input: AggregationExpression
    variable_name: str
    condition: AggregationExpression

    @property
    def children(self) -> list[TreeNode]:
        return [e for e in (self.input, self.condition) if isinstance(e, TreeNode)]

    def __str__(self) -> str:
        return f"filter({self.input} AS {self.variable_name} BY {self.condition})"


@dataclass(frozen=True)
class ExpressionVariable:
    """A ``$let`` binding of a variable name to an expression.

    Built in two steps, ``ExpressionVariable.new_variable("total")`` then
    ``.for_expression(...)``; a variable without an expression cannot be
    bound by ``Let.vars``.
    """

    variable_name: str
    expression: AggregationExpression | None = None

    @classmethod
    def new_variable(cls, variable_name: str) -> ExpressionVariable:
        if not variable_name:
            raise InvalidArgumentError("Variable name must not be None or empty")
        return cls(variable_name)

    def for_expression(self, expression: AggregationExpression | dict) -> ExpressionVariable:
        """Return a copy bound to *expression* (a raw document is taken as-is)."""
        if expression is None:
            raise InvalidArgumentError("Expression must not be None")
        if isinstance(expression, dict):
            expression = Literal(expression)
        elif not isinstance(expression, AggregationExpression):
            raise InvalidArgumentError(
                f"Variable '{self.variable_name}' must be bound to an expression or a document, "
                f"got {type(expression).__name__}"
            )
        return replace(self, expression=expression)

    def __str__(self) -> str:
        return f"{self.variable_name} = {self.expression}"


@dataclass(frozen=True)
class LetExpression(AggregationExpression):
    """``$let``: bind variables, then evaluate ``body`` with them in scope."""

    variables: tuple[ExpressionVariable, ...] = field(default_factory=tuple)
    body: AggregationExpression | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.variables, tuple):
            object.__setattr__(self, "variables", tuple(self.variables))

    @property
    def variable_names(self) -> list[str]:
        return [var.variable_name for var in self.variables]

    @property
    def children(self) -> list[TreeNode]:
        result: list[TreeNode] = [
            var.expression for var in self.variables if isinstance(var.expression, TreeNode)
        ]
        if isinstance(self.body, TreeNode):
            result.append(self.body)
        return result

    def __str__(self) -> str:
        bindings = ", ".join(str(var) for var in self.variables)
        return f"let({bindings} IN {self.body})"
