"""Parser for infix aggregation expressions.

Turns strings such as ``"(netPrice + surCharge) * taxrate * [0]"`` into an
expression tree.  Grammar, loosest binding first::

    comparison  := additive (("==" | "!=" | ">=" | "<=" | ">" | "<") additive)?
    additive    := multiplicative (("+" | "-") multiplicative)*
    multiplicative := unary (("*" | "/" | "%") unary)*
    unary       := "-"* atom
    atom        := "(" comparison ")" | "[" index "]" | number | string
                 | "true" | "false" | "null" | "$$" path | "$" path
                 | path | name "(" arguments ")"

Bare paths (``price``, ``item.price``) are field references; ``$$name``
references a ``$let``/``$filter`` variable; ``[n]`` is the n-th positional
parameter.  Function names are the wire operator names without ``$``
(``abs``, ``concat``, ``dayOfYear``) plus ``cond(if, then, else)``.
"""

from __future__ import annotations

import ast
from collections.abc import Callable, Generator
from numbers import Number
from typing import Any, cast

from parsy import ParseError, Parser, eof, forward_declaration, generate, regex, seq, string

from aggexpr.common.config import merge_config
from aggexpr.common.exceptions import (
    ExpressionSyntaxError,
    InvalidArgumentError,
    suggest_names,
)
from aggexpr.expressions.ast import (
    AggregationExpression,
    ArithmeticExpression,
    ArrayExpression,
    ComparisonExpression,
    ConditionalExpression,
    DateExpression,
    FieldRef,
    Literal,
    SetExpression,
    StringExpression,
    UnaryExpression,
)
from aggexpr.expressions.operators import (
    ArithmeticOperator,
    ArrayOperator,
    ComparisonOperator,
    DateOperator,
    SetOperator,
    StringOperator,
    UnaryOperator,
)
from aggexpr.fields import Field
from aggexpr.renderer.dialect import operators_by_name, template_for

ARITHMETIC_SYMBOLS: dict[str, ArithmeticOperator] = {
    "+": ArithmeticOperator.ADD,
    "-": ArithmeticOperator.SUBTRACT,
    "*": ArithmeticOperator.MULTIPLY,
    "/": ArithmeticOperator.DIVIDE,
    "%": ArithmeticOperator.MOD,
}

COMPARISON_SYMBOLS: dict[str, ComparisonOperator] = {
    "==": ComparisonOperator.EQ,
    "!=": ComparisonOperator.NE,
    ">=": ComparisonOperator.GTE,
    "<=": ComparisonOperator.LTE,
    ">": ComparisonOperator.GT,
    "<": ComparisonOperator.LT,
}

COND_FUNCTION = "cond"

_NODE_TYPES: dict[type, type[AggregationExpression]] = {
    ArithmeticOperator: ArithmeticExpression,
    UnaryOperator: UnaryExpression,
    ComparisonOperator: ComparisonExpression,
    SetOperator: SetExpression,
    StringOperator: StringExpression,
    ArrayOperator: ArrayExpression,
    DateOperator: DateExpression,
}

_PATH = r"[A-Za-z_][A-Za-z0-9_]*(?:\.[A-Za-z_][A-Za-z0-9_]*)*"


def _parse_line_and_column(line_info: str) -> tuple[int, int]:
    """Parse line and column from parsy line info string."""
    line_text, sep, column_text = line_info.partition(":")
    if sep == "" or not line_text.isdigit() or not column_text.isdigit():
        return (0, 0)
    return (int(line_text), int(column_text))


def _format_parse_error(text: str, exc: ParseError) -> str:
    """Build an error message with a caret under the failing column."""
    line_number, column_number = _parse_line_and_column(exc.line_info())
    lines = text.splitlines() or [text]
    error_line = lines[line_number] if 0 <= line_number < len(lines) else text
    pointer = " " * max(column_number, 0) + "^"
    return f"{exc}\n\n{error_line}\n{pointer}"


def _keyword(name: str) -> Parser:
    """Build a keyword parser with identifier boundary."""
    return regex(rf"{name}(?![A-Za-z0-9_.])").desc(name)


def _lexeme(parser: Parser) -> Parser:
    """Consume optional whitespace after parser."""
    return parser << regex(r"\s*")


def _symbol(value: str) -> Parser:
    """Build a symbol token parser."""
    return _lexeme(string(value))


def _number(token: str) -> Literal:
    if any(c in token for c in ".eE"):
        return Literal(float(token))
    return Literal(int(token))


def _decode_string(token: str) -> Literal:
    return Literal(ast.literal_eval(token))


def _negate(operand: AggregationExpression) -> AggregationExpression:
    if isinstance(operand, Literal) and isinstance(operand.value, Number) and not isinstance(operand.value, bool):
        return Literal(-operand.value)
    return ArithmeticExpression(ArithmeticOperator.MULTIPLY, (Literal(-1), operand))


def _parameter(params: tuple[Any, ...], index: int) -> AggregationExpression:
    if index >= len(params):
        raise ExpressionSyntaxError(
            f"parameter [{index}] is out of range, {len(params)} given"
        )
    value = params[index]
    if isinstance(value, AggregationExpression):
        return value
    if isinstance(value, Field):
        return FieldRef(value)
    return Literal(value)


def _call(name: str, args: list[AggregationExpression]) -> AggregationExpression:
    """Build the node for a function call ``name(args...)``."""
    if name == COND_FUNCTION:
        if len(args) != 3:
            raise ExpressionSyntaxError(f"cond() takes 3 arguments, got {len(args)}")
        return ConditionalExpression(*args)

    functions = operators_by_name()
    operator = functions.get(name)
    if operator is None:
        message = f"unknown function '{name}'"
        suggestions = suggest_names(name, [*functions, COND_FUNCTION])
        if suggestions:
            message += ". Did you mean " + " or ".join(f"'{s}'" for s in suggestions) + "?"
        raise ExpressionSyntaxError(message)

    template = template_for(operator)
    if not template.accepts(len(args)):
        raise ExpressionSyntaxError(
            f"{name}() does not accept {len(args)} argument(s)"
        )

    node_type = _NODE_TYPES[type(operator)]
    if node_type in (UnaryExpression, DateExpression):
        return node_type(operator, args[0])
    return node_type(operator=operator, operands=tuple(args))


def _arithmetic_builder(flatten: bool) -> Callable[[str, AggregationExpression, AggregationExpression], AggregationExpression]:
    def build(symbol: str, left: AggregationExpression, right: AggregationExpression) -> AggregationExpression:
        operator = ARITHMETIC_SYMBOLS[symbol]
        if (
            flatten
            and operator.is_associative
            and isinstance(left, ArithmeticExpression)
            and left.operator == operator
        ):
            return left.and_operand(right)
        return ArithmeticExpression(operator, (left, right))

    return build


def _chain_left(
    term: Parser,
    op: Parser,
    builder: Callable[[str, AggregationExpression, AggregationExpression], AggregationExpression],
) -> Parser:
    """Build a left-associative parser from term and operator parsers."""

    @generate
    def parser() -> Generator[Parser, object, AggregationExpression]:
        current = cast(AggregationExpression, (yield term))
        rest = cast(list[tuple[str, AggregationExpression]], (yield seq(op, term).many()))
        for operator, right in rest:
            current = builder(operator, current, right)
        return current

    return parser


def _make_parser(params: tuple[Any, ...], flatten: bool) -> Parser:
    """Create the expression parser for one set of positional parameters."""
    ws = regex(r"\s*")
    expr = forward_declaration()

    number_literal = _lexeme(regex(r"\d+(?:\.\d+)?(?:[eE][+-]?\d+)?")).map(_number)
    string_literal = _lexeme(regex(r'"(?:[^"\\]|\\.)*"|\'(?:[^\'\\]|\\.)*\'')).map(_decode_string)
    true_literal = _lexeme(_keyword("true")).result(Literal(True))
    false_literal = _lexeme(_keyword("false")).result(Literal(False))
    null_literal = _lexeme(_keyword("null")).result(Literal(None))
    variable = _lexeme(regex(rf"\$\$({_PATH})", group=1)).map(
        lambda name: FieldRef(Field(name), is_variable=True)
    )
    explicit_field = _lexeme(regex(rf"\$({_PATH})", group=1)).map(lambda name: FieldRef(Field(name)))
    parameter = (_symbol("[") >> _lexeme(regex(r"\d+")) << _symbol("]")).map(
        lambda index: _parameter(params, int(index))
    )
    grouped = _symbol("(") >> expr << _symbol(")")

    @generate
    def path_or_call() -> Generator[Parser, object, AggregationExpression]:
        name = cast(str, (yield _lexeme(regex(_PATH))))
        args = yield (_symbol("(") >> expr.sep_by(_symbol(",")) << _symbol(")")).optional()
        if args is None:
            return FieldRef(Field(name))
        return _call(name, cast(list[AggregationExpression], args))

    atom = (
        grouped
        | parameter
        | number_literal
        | string_literal
        | true_literal
        | false_literal
        | null_literal
        | variable
        | explicit_field
        | path_or_call
    ).desc("expression")

    @generate
    def unary() -> Generator[Parser, object, AggregationExpression]:
        minuses = cast(list[str], (yield _symbol("-").many()))
        current = cast(AggregationExpression, (yield atom))
        for _minus in minuses:
            current = _negate(current)
        return current

    arithmetic = _arithmetic_builder(flatten)
    multiplicative = _chain_left(unary, _lexeme(regex(r"[*/%]")), arithmetic)
    additive = _chain_left(multiplicative, _lexeme(regex(r"[+-]")), arithmetic)

    compare_op = _lexeme(
        string("==") | string("!=") | string(">=") | string("<=") | string(">") | string("<")
    )

    @generate
    def comparison() -> Generator[Parser, object, AggregationExpression]:
        left = cast(AggregationExpression, (yield additive))
        rest = yield seq(compare_op, additive).optional()
        if rest is None:
            return left
        symbol, right = cast(tuple[str, AggregationExpression], rest)
        return ComparisonExpression(COMPARISON_SYMBOLS[symbol], (left, right))

    expr.become(comparison)
    return ws >> expr << eof


def parse_expression(
    text: str,
    *params: Any,
    config: dict[str, Any] | None = None,
) -> AggregationExpression:
    """Parse *text* into an expression tree.

    Args:
        text: Infix expression.
        *params: Values for the ``[0]``, ``[1]``, ... placeholders.
        config: Overrides for ``DEFAULT_CONFIG`` (``flatten_associative``).

    Raises:
        ExpressionSyntaxError: If *text* is not a valid expression.
    """
    if text is None:
        raise InvalidArgumentError("Expression text must not be None")
    settings = merge_config(config)
    parser = _make_parser(params, bool(settings["flatten_associative"]))
    try:
        result = parser.parse(text)
    except ParseError as exc:
        raise ExpressionSyntaxError(_format_parse_error(text, exc)) from exc
    return cast(AggregationExpression, result)
