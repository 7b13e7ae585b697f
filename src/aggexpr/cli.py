"""Command-line interface for the aggregation expression renderer."""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Any

import click

from aggexpr import __version__
from aggexpr.common.exceptions import AggregationExpressionException


@click.group()
@click.version_option(version=__version__, prog_name="aggexpr")
def main() -> None:
    """aggexpr - Render infix expressions as aggregation pipeline documents."""
    pass


def _read_expression(input_file: Path | None) -> str:
    if input_file:
        text = input_file.read_text(encoding="utf-8")
    else:
        text = sys.stdin.read()

    if not text.strip():
        click.echo("Error: Empty expression", err=True)
        sys.exit(1)
    return text.strip()


def _write_result(result: str, output_file: Path | None, what: str) -> None:
    if output_file:
        output_file.write_text(result, encoding="utf-8")
        click.echo(f"{what} written to {output_file}")
    else:
        click.echo(result)


def _parse_params(raw_params: tuple[str, ...]) -> list[Any]:
    params = []
    for raw in raw_params:
        try:
            params.append(json.loads(raw))
        except json.JSONDecodeError as e:
            click.echo(f"Error parsing parameter {raw!r}: {e}", err=True)
            sys.exit(1)
    return params


@main.command()
@click.option(
    "--input", "-i",
    "input_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Input file containing the expression. If not provided, reads from stdin.",
)
@click.option(
    "--output", "-o",
    "output_file",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Output file for the rendered document. If not provided, writes to stdout.",
)
@click.option(
    "--schema", "-s",
    "schema_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="JSON file describing the input documents. Without it names render as written.",
)
@click.option(
    "--param", "-p",
    "raw_params",
    multiple=True,
    help="JSON value for the next [n] placeholder (repeatable).",
)
@click.option(
    "--pretty/--no-pretty",
    default=True,
    help="Pretty-print the output JSON.",
)
@click.option(
    "--lenient",
    is_flag=True,
    help="Pass names unknown to the schema through instead of failing.",
)
@click.option(
    "--no-flatten",
    is_flag=True,
    help="Keep a + b + c as nested binary operators.",
)
@click.option("--verbose", "-v", is_flag=True, help="Log resolution details to stderr.")
def render(
    input_file: Path | None,
    output_file: Path | None,
    schema_file: Path | None,
    raw_params: tuple[str, ...],
    pretty: bool,
    lenient: bool,
    no_flatten: bool,
    verbose: bool,
) -> None:
    """Render an infix expression to its pipeline document."""
    from aggexpr.common.logging import StandardLogger, configure_logging
    from aggexpr.parser.expression_parser import parse_expression
    from aggexpr.renderer.expression_renderer import ExpressionRenderer
    from aggexpr.renderer.render_context import DEFAULT_CONTEXT, TypeBasedResolutionContext

    configure_logging(verbose)
    logger = StandardLogger()
    config = {
        "strict_field_resolution": not lenient,
        "flatten_associative": not no_flatten,
    }

    text = _read_expression(input_file)
    params = _parse_params(raw_params)

    # Load the schema
    context = DEFAULT_CONTEXT
    if schema_file:
        try:
            schema = _load_schema(schema_file)
        except json.JSONDecodeError as e:
            click.echo(f"Error parsing schema file: {e}", err=True)
            sys.exit(1)
        except (AggregationExpressionException, KeyError) as e:
            click.echo(f"Error loading schema: {e}", err=True)
            sys.exit(1)
        context = TypeBasedResolutionContext(schema, config=config, logger=logger)

    # Render
    try:
        expression = parse_expression(text, *params, config=config)
        document = ExpressionRenderer(logger=logger).render_expression(expression, context)
    except AggregationExpressionException as e:
        click.echo(f"Error rendering expression: {e}", err=True)
        sys.exit(1)

    result = json.dumps(document, indent=2 if pretty else None, default=str)
    _write_result(result, output_file, "Document")


@main.command()
@click.option(
    "--input", "-i",
    "input_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Input file containing the expression. If not provided, reads from stdin.",
)
@click.option(
    "--param", "-p",
    "raw_params",
    multiple=True,
    help="JSON value for the next [n] placeholder (repeatable).",
)
def parse(input_file: Path | None, raw_params: tuple[str, ...]) -> None:
    """Parse an infix expression and print its node tree."""
    from aggexpr.parser.expression_parser import parse_expression

    text = _read_expression(input_file)
    params = _parse_params(raw_params)

    try:
        expression = parse_expression(text, *params)
    except AggregationExpressionException as e:
        click.echo(f"Error parsing expression: {e}", err=True)
        sys.exit(1)

    click.echo(expression.dump_tree())


@main.command()
def operators() -> None:
    """List the supported operators and their operand shapes."""
    from aggexpr.renderer.dialect import OPERATOR_TEMPLATES

    for operator, template in OPERATOR_TEMPLATES.items():
        if template.max_operands is None:
            arity = f"{template.min_operands}+"
        elif template.min_operands == template.max_operands:
            arity = str(template.min_operands)
        else:
            arity = f"{template.min_operands}-{template.max_operands}"
        click.echo(
            f"{template.key:<18} {template.shape.name.lower():<15} {arity:<5} "
            f"{type(operator).__name__}"
        )


@main.command()
@click.option(
    "--output", "-o",
    "output_file",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Output file for the schema template. If not provided, writes to stdout.",
)
def init_schema(output_file: Path | None) -> None:
    """Generate a template schema file."""
    template = {
        "name": "Sales",
        "properties": [
            {"name": "id", "target": "_id"},
            {"name": "price"},
            {"name": "tax"},
            {"name": "applyDiscount", "target": "apply_discount"},
            {"name": "tags"},
            {"name": "createdAt", "target": "created_at"},
            {
                "name": "customer",
                "properties": [
                    {"name": "name"},
                    {"name": "zipCode", "target": "zip"},
                ],
            },
        ],
    }

    result = json.dumps(template, indent=2)
    _write_result(result, output_file, "Schema template")


def _load_schema(schema_file: Path) -> "DocumentSchema":
    """Load a document schema from a JSON file."""
    from aggexpr.common.schema import DocumentSchema, schema_from_dict

    schema_data = json.loads(schema_file.read_text(encoding="utf-8"))
    schema: DocumentSchema = schema_from_dict(schema_data)
    return schema


if __name__ == "__main__":
    main()
