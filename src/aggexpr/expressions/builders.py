"""Fluent front-ends producing expression trees.

Three flavours, all returning immutable nodes from ``aggexpr.expressions.ast``:

- module functions (``add("price", "tax")``, ``size("tags")``): a plain
  string operand is a field name, anything that is not an expression or a
  ``Field`` is a literal value;
- operator factories (``ArithmeticOperators.value_of("price").add("fee")``)
  that start from a subject and apply one operator to it;
- phase builders for the structured constructs (``ConditionalOperator``,
  ``Filter``, ``Let``), where each phase is its own type so a construct
  cannot be finished before its required parts are supplied.

Every builder validates eagerly and raises ``InvalidArgumentError``; no
partially built node is ever returned.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Iterable

from aggexpr.common.exceptions import InvalidArgumentError
from aggexpr.expressions.ast import (
    AggregationExpression,
    ArithmeticExpression,
    ArrayExpression,
    ComparisonExpression,
    ConditionalExpression,
    DateExpression,
    ExpressionVariable,
    FieldRef,
    FilterExpression,
    LetExpression,
    Literal,
    OperatorExpression,
    SetExpression,
    StringExpression,
    UnaryExpression,
)
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
from aggexpr.renderer.dialect import template_for

# ==============================================================================
# Operand conversion
# ==============================================================================


def _as_expression(value: Any) -> AggregationExpression:
    """Convert *value* treating strings as field names."""
    if value is None:
        raise InvalidArgumentError("Operand must not be None")
    if isinstance(value, AggregationExpression):
        return value
    if isinstance(value, Field):
        return FieldRef(value)
    if isinstance(value, str):
        return FieldRef(Field(value))
    return Literal(value)


def _as_value(value: Any) -> AggregationExpression:
    """Convert *value* treating strings as literal values."""
    if value is None:
        raise InvalidArgumentError("Operand must not be None")
    if isinstance(value, AggregationExpression):
        return value
    if isinstance(value, Field):
        return FieldRef(value)
    return Literal(value)


def _operator_node[N: OperatorExpression](
    node_type: type[N],
    operator: Operator,
    operands: Iterable[Any],
    convert: Callable[[Any], AggregationExpression] = _as_expression,
) -> N:
    converted = tuple(convert(op) for op in operands)
    template = template_for(operator)
    if not template.accepts(len(converted)):
        if template.max_operands is None:
            expected = f"at least {template.min_operands}"
        elif template.min_operands == template.max_operands:
            expected = str(template.min_operands)
        else:
            expected = f"{template.min_operands} to {template.max_operands}"
        raise InvalidArgumentError(
            f"{template.key} takes {expected} operands, got {len(converted)}"
        )
    return node_type(operator=operator, operands=converted)


# ==============================================================================
# Module functions
# ==============================================================================


def literal(value: Any) -> Literal:
    """Wrap *value* so it renders verbatim (strings included)."""
    return Literal(value)


def variable(name: str) -> FieldRef:
    """Reference a ``$let``/``$filter`` variable (renders ``$$name``)."""
    return FieldRef(Field(name), is_variable=True)


def add(*operands: Any) -> ArithmeticExpression:
    return _operator_node(ArithmeticExpression, ArithmeticOperator.ADD, operands)


def subtract(left: Any, right: Any) -> ArithmeticExpression:
    return _operator_node(ArithmeticExpression, ArithmeticOperator.SUBTRACT, (left, right))


def multiply(*operands: Any) -> ArithmeticExpression:
    return _operator_node(ArithmeticExpression, ArithmeticOperator.MULTIPLY, operands)


def divide(dividend: Any, divisor: Any) -> ArithmeticExpression:
    return _operator_node(ArithmeticExpression, ArithmeticOperator.DIVIDE, (dividend, divisor))


def mod(dividend: Any, modulus: Any) -> ArithmeticExpression:
    return _operator_node(ArithmeticExpression, ArithmeticOperator.MOD, (dividend, modulus))


def pow_(base: Any, exponent: Any) -> ArithmeticExpression:
    return _operator_node(ArithmeticExpression, ArithmeticOperator.POW, (base, exponent))


def log(number: Any, base: Any) -> ArithmeticExpression:
    return _operator_node(ArithmeticExpression, ArithmeticOperator.LOG, (number, base))


def _unary(operator: UnaryOperator, operand: Any) -> UnaryExpression:
    return UnaryExpression(operator, _as_expression(operand))


def abs_(operand: Any) -> UnaryExpression:
    return _unary(UnaryOperator.ABS, operand)


def ceil(operand: Any) -> UnaryExpression:
    return _unary(UnaryOperator.CEIL, operand)


def floor(operand: Any) -> UnaryExpression:
    return _unary(UnaryOperator.FLOOR, operand)


def sqrt(operand: Any) -> UnaryExpression:
    return _unary(UnaryOperator.SQRT, operand)


def exp(operand: Any) -> UnaryExpression:
    return _unary(UnaryOperator.EXP, operand)


def ln(operand: Any) -> UnaryExpression:
    return _unary(UnaryOperator.LN, operand)


def log10(operand: Any) -> UnaryExpression:
    return _unary(UnaryOperator.LOG10, operand)


def trunc(operand: Any) -> UnaryExpression:
    return _unary(UnaryOperator.TRUNC, operand)


def _compare(operator: ComparisonOperator, left: Any, right: Any) -> ComparisonExpression:
    return _operator_node(ComparisonExpression, operator, (left, right))


def cmp(left: Any, right: Any) -> ComparisonExpression:
    return _compare(ComparisonOperator.CMP, left, right)


def eq(left: Any, right: Any) -> ComparisonExpression:
    return _compare(ComparisonOperator.EQ, left, right)


def gt(left: Any, right: Any) -> ComparisonExpression:
    return _compare(ComparisonOperator.GT, left, right)


def gte(left: Any, right: Any) -> ComparisonExpression:
    return _compare(ComparisonOperator.GTE, left, right)


def lt(left: Any, right: Any) -> ComparisonExpression:
    return _compare(ComparisonOperator.LT, left, right)


def lte(left: Any, right: Any) -> ComparisonExpression:
    return _compare(ComparisonOperator.LTE, left, right)


def ne(left: Any, right: Any) -> ComparisonExpression:
    return _compare(ComparisonOperator.NE, left, right)


def set_equals(*arrays: Any) -> SetExpression:
    return _operator_node(SetExpression, SetOperator.SET_EQUALS, arrays)


def set_intersection(*arrays: Any) -> SetExpression:
    return _operator_node(SetExpression, SetOperator.SET_INTERSECTION, arrays)


def set_union(*arrays: Any) -> SetExpression:
    return _operator_node(SetExpression, SetOperator.SET_UNION, arrays)


def set_difference(left: Any, right: Any) -> SetExpression:
    return _operator_node(SetExpression, SetOperator.SET_DIFFERENCE, (left, right))


def set_is_subset(left: Any, right: Any) -> SetExpression:
    return _operator_node(SetExpression, SetOperator.SET_IS_SUBSET, (left, right))


def any_element_true(array: Any) -> SetExpression:
    return _operator_node(SetExpression, SetOperator.ANY_ELEMENT_TRUE, (array,))


def all_elements_true(array: Any) -> SetExpression:
    return _operator_node(SetExpression, SetOperator.ALL_ELEMENTS_TRUE, (array,))


def size(array: Any) -> ArrayExpression:
    return _operator_node(ArrayExpression, ArrayOperator.SIZE, (array,))


def slice_(array: Any, count: Any, position: Any = None) -> ArrayExpression:
    """``$slice``: ``[array, count]``, or ``[array, position, count]``."""
    operands = (array, count) if position is None else (array, position, count)
    return _operator_node(ArrayExpression, ArrayOperator.SLICE, operands)


def concat(*operands: Any) -> StringExpression:
    return _operator_node(StringExpression, StringOperator.CONCAT, operands)


def substr(string: Any, start: Any, length: Any) -> StringExpression:
    return _operator_node(StringExpression, StringOperator.SUBSTR, (string, start, length))


def to_lower(operand: Any) -> StringExpression:
    return _operator_node(StringExpression, StringOperator.TO_LOWER, (operand,))


def to_upper(operand: Any) -> StringExpression:
    return _operator_node(StringExpression, StringOperator.TO_UPPER, (operand,))


def strcasecmp(left: Any, right: Any) -> StringExpression:
    return _operator_node(StringExpression, StringOperator.STRCASECMP, (left, right))


def _date(operator: DateOperator, operand: Any) -> DateExpression:
    return DateExpression(operator, _as_expression(operand))


def hour(date: Any) -> DateExpression:
    return _date(DateOperator.HOUR, date)


def minute(date: Any) -> DateExpression:
    return _date(DateOperator.MINUTE, date)


def second(date: Any) -> DateExpression:
    return _date(DateOperator.SECOND, date)


def millisecond(date: Any) -> DateExpression:
    return _date(DateOperator.MILLISECOND, date)


def year(date: Any) -> DateExpression:
    return _date(DateOperator.YEAR, date)


def month(date: Any) -> DateExpression:
    return _date(DateOperator.MONTH, date)


def week(date: Any) -> DateExpression:
    return _date(DateOperator.WEEK, date)


def day_of_year(date: Any) -> DateExpression:
    return _date(DateOperator.DAY_OF_YEAR, date)


def day_of_month(date: Any) -> DateExpression:
    return _date(DateOperator.DAY_OF_MONTH, date)


def day_of_week(date: Any) -> DateExpression:
    return _date(DateOperator.DAY_OF_WEEK, date)


def cond(if_: Any, then: Any, else_: Any) -> ConditionalExpression:
    """``$cond`` from three operands (strings are field names)."""
    return ConditionalExpression(
        _as_expression(if_), _as_expression(then), _as_expression(else_)
    )


# ==============================================================================
# Operator factories
# ==============================================================================


class ArithmeticOperatorFactory:
    """Arithmetic and math operators applied to one subject."""

    def __init__(self, subject: Any) -> None:
        self._subject = _as_expression(subject)

    def add(self, *values: Any) -> ArithmeticExpression:
        return add(self._subject, *values)

    def subtract(self, value: Any) -> ArithmeticExpression:
        return subtract(self._subject, value)

    def multiply(self, *values: Any) -> ArithmeticExpression:
        return multiply(self._subject, *values)

    def divide(self, value: Any) -> ArithmeticExpression:
        return divide(self._subject, value)

    def mod(self, value: Any) -> ArithmeticExpression:
        return mod(self._subject, value)

    def pow(self, exponent: Any) -> ArithmeticExpression:
        return pow_(self._subject, exponent)

    def log(self, base: Any) -> ArithmeticExpression:
        return log(self._subject, base)

    def abs(self) -> UnaryExpression:
        return abs_(self._subject)

    def ceil(self) -> UnaryExpression:
        return ceil(self._subject)

    def floor(self) -> UnaryExpression:
        return floor(self._subject)

    def sqrt(self) -> UnaryExpression:
        return sqrt(self._subject)

    def exp(self) -> UnaryExpression:
        return exp(self._subject)

    def ln(self) -> UnaryExpression:
        return ln(self._subject)

    def log10(self) -> UnaryExpression:
        return log10(self._subject)

    def trunc(self) -> UnaryExpression:
        return trunc(self._subject)


class ArithmeticOperators:
    @staticmethod
    def value_of(subject: Any) -> ArithmeticOperatorFactory:
        """Start from a field name, a ``Field`` or an expression."""
        return ArithmeticOperatorFactory(subject)


class ComparisonOperatorFactory:
    """Comparisons of one subject against another operand.

    Plain methods take field names; the ``*_value`` variants compare against
    a literal value.
    """

    def __init__(self, subject: Any) -> None:
        self._subject = _as_expression(subject)

    def _against(self, operator: ComparisonOperator, other: Any, literal_value: bool) -> ComparisonExpression:
        other = _as_value(other) if literal_value else _as_expression(other)
        return _compare(operator, self._subject, other)

    def cmp(self, other: Any) -> ComparisonExpression:
        return self._against(ComparisonOperator.CMP, other, False)

    def cmp_value(self, value: Any) -> ComparisonExpression:
        return self._against(ComparisonOperator.CMP, value, True)

    def eq(self, other: Any) -> ComparisonExpression:
        return self._against(ComparisonOperator.EQ, other, False)

    def eq_value(self, value: Any) -> ComparisonExpression:
        return self._against(ComparisonOperator.EQ, value, True)

    def gt(self, other: Any) -> ComparisonExpression:
        return self._against(ComparisonOperator.GT, other, False)

    def gt_value(self, value: Any) -> ComparisonExpression:
        return self._against(ComparisonOperator.GT, value, True)

    def gte(self, other: Any) -> ComparisonExpression:
        return self._against(ComparisonOperator.GTE, other, False)

    def gte_value(self, value: Any) -> ComparisonExpression:
        return self._against(ComparisonOperator.GTE, value, True)

    def lt(self, other: Any) -> ComparisonExpression:
        return self._against(ComparisonOperator.LT, other, False)

    def lt_value(self, value: Any) -> ComparisonExpression:
        return self._against(ComparisonOperator.LT, value, True)

    def lte(self, other: Any) -> ComparisonExpression:
        return self._against(ComparisonOperator.LTE, other, False)

    def lte_value(self, value: Any) -> ComparisonExpression:
        return self._against(ComparisonOperator.LTE, value, True)

    def ne(self, other: Any) -> ComparisonExpression:
        return self._against(ComparisonOperator.NE, other, False)

    def ne_value(self, value: Any) -> ComparisonExpression:
        return self._against(ComparisonOperator.NE, value, True)


class ComparisonOperators:
    @staticmethod
    def value_of(subject: Any) -> ComparisonOperatorFactory:
        return ComparisonOperatorFactory(subject)


class SetOperatorFactory:
    """Set operators treating the subject array as a set."""

    def __init__(self, subject: Any) -> None:
        self._subject = _as_expression(subject)

    def is_equal_to(self, *arrays: Any) -> SetExpression:
        return set_equals(self._subject, *arrays)

    def intersects(self, *arrays: Any) -> SetExpression:
        return set_intersection(self._subject, *arrays)

    def union(self, *arrays: Any) -> SetExpression:
        return set_union(self._subject, *arrays)

    def difference_to(self, array: Any) -> SetExpression:
        return set_difference(self._subject, array)

    def is_subset_of(self, array: Any) -> SetExpression:
        return set_is_subset(self._subject, array)

    def any_element_true(self) -> SetExpression:
        return any_element_true(self._subject)

    def all_elements_true(self) -> SetExpression:
        return all_elements_true(self._subject)


class SetOperators:
    @staticmethod
    def array_as_set(subject: Any) -> SetOperatorFactory:
        return SetOperatorFactory(subject)


class StringOperatorFactory:
    """String operators applied to one subject.

    Arguments are literal strings; the ``*_value_of`` variants take field
    names instead.  A ``Field`` is always a field reference.
    """

    def __init__(self, subject: Any) -> None:
        self._subject = _as_expression(subject)

    def concat(self, *values: Any) -> StringExpression:
        return _operator_node(
            StringExpression,
            StringOperator.CONCAT,
            (self._subject, *values),
            convert=_as_value,
        )

    def concat_value_of(self, *field_names: Any) -> StringExpression:
        return concat(self._subject, *field_names)

    def substring(self, start: int, length: int = -1) -> StringExpression:
        return substr(self._subject, start, length)

    def to_lower(self) -> StringExpression:
        return to_lower(self._subject)

    def to_upper(self) -> StringExpression:
        return to_upper(self._subject)

    def strcasecmp(self, value: Any) -> StringExpression:
        return strcasecmp(self._subject, _as_value(value))

    def strcasecmp_value_of(self, field_name: Any) -> StringExpression:
        return strcasecmp(self._subject, field_name)


class StringOperators:
    @staticmethod
    def value_of(subject: Any) -> StringOperatorFactory:
        return StringOperatorFactory(subject)


class ArrayOperatorFactory:
    def __init__(self, subject: Any) -> None:
        self._subject = _as_expression(subject)

    def size(self) -> ArrayExpression:
        return size(self._subject)

    def slice(self, count: Any, position: Any = None) -> ArrayExpression:
        return slice_(self._subject, count, position)


class ArrayOperators:
    @staticmethod
    def array_of(subject: Any) -> ArrayOperatorFactory:
        return ArrayOperatorFactory(subject)


class DateOperatorFactory:
    def __init__(self, subject: Any) -> None:
        self._subject = _as_expression(subject)

    def hour(self) -> DateExpression:
        return hour(self._subject)

    def minute(self) -> DateExpression:
        return minute(self._subject)

    def second(self) -> DateExpression:
        return second(self._subject)

    def millisecond(self) -> DateExpression:
        return millisecond(self._subject)

    def year(self) -> DateExpression:
        return year(self._subject)

    def month(self) -> DateExpression:
        return month(self._subject)

    def week(self) -> DateExpression:
        return week(self._subject)

    def day_of_year(self) -> DateExpression:
        return day_of_year(self._subject)

    def day_of_month(self) -> DateExpression:
        return day_of_month(self._subject)

    def day_of_week(self) -> DateExpression:
        return day_of_week(self._subject)


class DateOperators:
    @staticmethod
    def date_of(subject: Any) -> DateOperatorFactory:
        return DateOperatorFactory(subject)


# ==============================================================================
# $cond
# ==============================================================================


@dataclass(frozen=True)
class OtherwiseBuilder:
    if_: AggregationExpression
    then: AggregationExpression

    def otherwise(self, value: Any) -> ConditionalExpression:
        """Finish with a literal (or expression) ``else`` branch."""
        return ConditionalExpression(self.if_, self.then, _as_value(value))

    def otherwise_value_of(self, field_name: Any) -> ConditionalExpression:
        return ConditionalExpression(self.if_, self.then, _as_expression(field_name))


@dataclass(frozen=True)
class ThenBuilder:
    if_: AggregationExpression

    def then(self, value: Any) -> OtherwiseBuilder:
        return OtherwiseBuilder(self.if_, _as_value(value))

    def then_value_of(self, field_name: Any) -> OtherwiseBuilder:
        return OtherwiseBuilder(self.if_, _as_expression(field_name))


class WhenBuilder:
    def when(self, condition: Any) -> ThenBuilder:
        """Set the condition: an expression, a boolean field name or a raw document."""
        return ThenBuilder(_as_expression(condition))


class ConditionalOperator:
    @staticmethod
    def new_builder() -> WhenBuilder:
        return WhenBuilder()


# ==============================================================================
# $filter
# ==============================================================================


@dataclass(frozen=True)
class FilterConditionBuilder:
    input: AggregationExpression
    variable_name: str

    def by(self, condition: AggregationExpression | dict | str) -> FilterExpression:
        """Set the condition.

        Raw documents and strings are passed through to the server verbatim.
        """
        if condition is None:
            raise InvalidArgumentError("Condition must not be None")
        if not isinstance(condition, AggregationExpression):
            condition = Literal(condition)
        return FilterExpression(self.input, self.variable_name, condition)


@dataclass(frozen=True)
class FilterAsBuilder:
    input: AggregationExpression

    def as_(self, variable_name: str) -> FilterConditionBuilder:
        if not variable_name:
            raise InvalidArgumentError("Variable name must not be None or empty")
        return FilterConditionBuilder(self.input, variable_name)


class Filter:
    @staticmethod
    def filter(input: str | Field | list) -> FilterAsBuilder:
        """Start a ``$filter`` over an array field or a literal list."""
        if input is None:
            raise InvalidArgumentError("Filter input must not be None")
        if isinstance(input, (list, tuple)):
            return FilterAsBuilder(Literal(list(input)))
        return FilterAsBuilder(_as_expression(input))


# ==============================================================================
# $let
# ==============================================================================


@dataclass(frozen=True)
class PendingBinding:
    """An expression waiting for its variable name."""

    expression: AggregationExpression

    def named(self, variable_name: str) -> ExpressionVariable:
        if not variable_name:
            raise InvalidArgumentError("Variable name must not be None or empty")
        return ExpressionVariable(variable_name, self.expression)


def _bind(
    variables: tuple[ExpressionVariable, ...], variable: ExpressionVariable
) -> tuple[ExpressionVariable, ...]:
    # Re-binding a name keeps its original position.
    for index, existing in enumerate(variables):
        if existing.variable_name == variable.variable_name:
            return (*variables[:index], variable, *variables[index + 1 :])
    return (*variables, variable)


def _let_operand(expression: Any) -> AggregationExpression:
    if expression is None:
        raise InvalidArgumentError("Expression must not be None")
    if isinstance(expression, dict):
        return Literal(expression)
    return _as_expression(expression)


@dataclass(frozen=True)
class LetInBuilder:
    variables: tuple[ExpressionVariable, ...] = ()

    def and_expression(self, expression: AggregationExpression | dict) -> LetAsBuilder:
        return LetAsBuilder(self.variables, PendingBinding(_let_operand(expression)))

    def in_(self, body: AggregationExpression | dict) -> LetExpression:
        return LetExpression(self.variables, _let_operand(body))


@dataclass(frozen=True)
class LetAsBuilder:
    variables: tuple[ExpressionVariable, ...]
    pending: PendingBinding

    def as_(self, variable_name: str) -> LetInBuilder:
        return LetInBuilder(_bind(self.variables, self.pending.named(variable_name)))


class Let:
    @staticmethod
    def define(expression: AggregationExpression | dict) -> LetAsBuilder:
        """Start a ``$let`` with its first (still unnamed) binding."""
        return LetInBuilder().and_expression(expression)

    @staticmethod
    def vars(variables: Iterable[ExpressionVariable]) -> LetInBuilder:
        """Start a ``$let`` from ready-made bindings."""
        if variables is None:
            raise InvalidArgumentError("Variables must not be None")
        bound: tuple[ExpressionVariable, ...] = ()
        for var in variables:
            if not isinstance(var, ExpressionVariable):
                raise InvalidArgumentError(
                    f"Expected an ExpressionVariable, got {type(var).__name__}"
                )
            if var.expression is None:
                raise InvalidArgumentError(f"Variable '{var.variable_name}' has no expression")
            if not isinstance(var.expression, AggregationExpression):
                raise InvalidArgumentError(
                    f"Variable '{var.variable_name}' is bound to a raw "
                    f"{type(var.expression).__name__}"
                )
            bound = _bind(bound, var)
        return LetInBuilder(bound)
