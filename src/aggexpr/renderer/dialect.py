"""Wire syntax of the aggregation pipeline operators.

The **Operator Registry** (``OPERATOR_TEMPLATES``) maps every operator enum
member to the ``$key`` the server expects and to the shape its operands take
on the wire.  This is pure data; ``ExpressionRenderer`` consumes it so that
adding an operator is a one-line change here plus an enum member.

Shapes:

- ``LIST``: ``{"$op": [a, b, ...]}``
- ``SINGLE``: ``{"$op": a}`` (one operand, not wrapped)
- ``SINGLE_IN_LIST``: ``{"$op": [a]}`` (one operand, wrapped)
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto

from aggexpr.common.exceptions import TypeMismatchError
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


class OperandShape(Enum):
    """How an operator lays out its operands on the wire."""

    LIST = auto()
    SINGLE = auto()
    SINGLE_IN_LIST = auto()


@dataclass(frozen=True, slots=True)
class OperatorTemplate:
    """Declarative wire template for one operator.

    Attributes:
        key: Operator key including the ``$`` marker.
        shape: Operand layout.
        min_operands: Minimum operand count accepted by builders.
        max_operands: Maximum operand count (``None`` = variadic).
    """

    key: str
    shape: OperandShape = OperandShape.LIST
    min_operands: int = 2
    max_operands: int | None = 2

    @property
    def name(self) -> str:
        """Key without the ``$`` marker (used as a function name by the parser)."""
        return self.key[1:]

    def accepts(self, count: int) -> bool:
        if count < self.min_operands:
            return False
        return self.max_operands is None or count <= self.max_operands


def _single(key: str) -> OperatorTemplate:
    return OperatorTemplate(key, OperandShape.SINGLE, 1, 1)


def _wrapped(key: str) -> OperatorTemplate:
    return OperatorTemplate(key, OperandShape.SINGLE_IN_LIST, 1, 1)


OPERATOR_TEMPLATES: dict[Operator, OperatorTemplate] = {
    # -- Arithmetic --
    ArithmeticOperator.ADD:      OperatorTemplate("$add", OperandShape.LIST, 2, None),
    ArithmeticOperator.SUBTRACT: OperatorTemplate("$subtract"),
    ArithmeticOperator.MULTIPLY: OperatorTemplate("$multiply", OperandShape.LIST, 2, None),
    ArithmeticOperator.DIVIDE:   OperatorTemplate("$divide"),
    ArithmeticOperator.MOD:      OperatorTemplate("$mod"),
    ArithmeticOperator.POW:      OperatorTemplate("$pow"),
    ArithmeticOperator.LOG:      OperatorTemplate("$log"),
    # -- Math (unary) --
    UnaryOperator.ABS:   _single("$abs"),
    UnaryOperator.CEIL:  _single("$ceil"),
    UnaryOperator.FLOOR: _single("$floor"),
    UnaryOperator.SQRT:  _single("$sqrt"),
    UnaryOperator.EXP:   _single("$exp"),
    UnaryOperator.LN:    _single("$ln"),
    UnaryOperator.LOG10: _single("$log10"),
    UnaryOperator.TRUNC: _single("$trunc"),
    # -- Comparison --
    ComparisonOperator.CMP: OperatorTemplate("$cmp"),
    ComparisonOperator.EQ:  OperatorTemplate("$eq"),
    ComparisonOperator.GT:  OperatorTemplate("$gt"),
    ComparisonOperator.GTE: OperatorTemplate("$gte"),
    ComparisonOperator.LT:  OperatorTemplate("$lt"),
    ComparisonOperator.LTE: OperatorTemplate("$lte"),
    ComparisonOperator.NE:  OperatorTemplate("$ne"),
    # -- Set --
    SetOperator.SET_EQUALS:        OperatorTemplate("$setEquals", OperandShape.LIST, 2, None),
    SetOperator.SET_INTERSECTION:  OperatorTemplate("$setIntersection", OperandShape.LIST, 2, None),
    SetOperator.SET_UNION:         OperatorTemplate("$setUnion", OperandShape.LIST, 2, None),
    SetOperator.SET_DIFFERENCE:    OperatorTemplate("$setDifference"),
    SetOperator.SET_IS_SUBSET:     OperatorTemplate("$setIsSubset"),
    SetOperator.ANY_ELEMENT_TRUE:  _wrapped("$anyElementTrue"),
    SetOperator.ALL_ELEMENTS_TRUE: _wrapped("$allElementsTrue"),
    # -- String --
    StringOperator.CONCAT:     OperatorTemplate("$concat", OperandShape.LIST, 1, None),
    StringOperator.SUBSTR:     OperatorTemplate("$substr", OperandShape.LIST, 3, 3),
    StringOperator.TO_LOWER:   _single("$toLower"),
    StringOperator.TO_UPPER:   _single("$toUpper"),
    StringOperator.STRCASECMP: OperatorTemplate("$strcasecmp"),
    # -- Array --
    ArrayOperator.SIZE:  _wrapped("$size"),
    ArrayOperator.SLICE: OperatorTemplate("$slice", OperandShape.LIST, 2, 3),
    # -- Date fragment extraction --
    DateOperator.HOUR:         _wrapped("$hour"),
    DateOperator.MINUTE:       _wrapped("$minute"),
    DateOperator.SECOND:       _wrapped("$second"),
    DateOperator.MILLISECOND:  _wrapped("$millisecond"),
    DateOperator.YEAR:         _wrapped("$year"),
    DateOperator.MONTH:        _wrapped("$month"),
    DateOperator.WEEK:         _wrapped("$week"),
    DateOperator.DAY_OF_YEAR:  _wrapped("$dayOfYear"),
    DateOperator.DAY_OF_MONTH: _wrapped("$dayOfMonth"),
    DateOperator.DAY_OF_WEEK:  _wrapped("$dayOfWeek"),
}

# Keys of the structured (non-registry) constructs
COND_KEY = "$cond"
FILTER_KEY = "$filter"
LET_KEY = "$let"

# Projection values
INCLUDE = 1
EXCLUDE = 0


def template_for(operator: Operator) -> OperatorTemplate:
    """Return the registered template for *operator*.

    Raises:
        TypeMismatchError: If *operator* has no registered template.
    """
    try:
        return OPERATOR_TEMPLATES[operator]
    except KeyError:
        raise TypeMismatchError(f"no wire template registered for operator {operator!r}") from None


def operators_by_name() -> dict[str, Operator]:
    """Map bare operator names (``add``, ``toLower``, ...) to operator members."""
    return {tmpl.name: op for op, tmpl in OPERATOR_TEMPLATES.items()}
