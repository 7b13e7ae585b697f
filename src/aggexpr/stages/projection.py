"""``$project`` stage builder.

A ``ProjectionOperation`` is an immutable, ordered list of projections.
``and_`` starts a ``ProjectionOperationBuilder`` for one more entry; the
builder applies operators to its subject and is finished either by
``as_(alias)`` or implicitly, keyed by the subject's field name, as soon as
the next projection is started or the stage is rendered.

Example:
    >>> project("name").and_("price").multiply(1.2).as_("gross").to_document()
    {'$project': {'name': 1, 'gross': {'$multiply': ['$price', 1.2]}}}
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Iterable

from aggexpr.common.exceptions import InvalidArgumentError
from aggexpr.common.logging import ILoggable
from aggexpr.expressions import builders
from aggexpr.expressions.ast import AggregationExpression, ExpressionVariable, FieldRef
from aggexpr.fields import (
    UNDERSCORE_ID,
    UNDERSCORE_ID_REFERENCE,
    ExposedFields,
    Field,
    Fields,
)
from aggexpr.parser.expression_parser import parse_expression
from aggexpr.renderer.dialect import EXCLUDE, INCLUDE
from aggexpr.renderer.expression_renderer import ExpressionRenderer
from aggexpr.renderer.render_context import DEFAULT_CONTEXT, ResolutionContext

PROJECT_KEY = "$project"


# ==============================================================================
# Projection entries
# ==============================================================================


class Projection(ABC):
    """One ``name: value`` entry of a ``$project`` document."""

    @property
    @abstractmethod
    def field(self) -> Field:
        """The field this projection exposes to the following stage."""
        ...

    @property
    def exposed(self) -> bool:
        return True

    @abstractmethod
    def render(self, context: ResolutionContext, renderer: ExpressionRenderer) -> Any:
        ...


@dataclass(frozen=True)
class FieldProjection(Projection):
    """Include (``1``), exclude (``0``) or rename (``"$target"``) a field."""

    source: Field
    value: Any = None

    @property
    def field(self) -> Field:
        return self.source

    @property
    def exposed(self) -> bool:
        return self.value != EXCLUDE

    def render(self, context: ResolutionContext, renderer: ExpressionRenderer) -> Any:
        if self.value is not None:
            return self.value
        reference = context.resolve(Field(self.source.target))
        # A plain inclusion stays 1 only while the stored key matches the output name.
        if self.source.aliased or reference.is_variable or reference.raw != self.source.name:
            return str(reference)
        return INCLUDE


@dataclass(frozen=True)
class ExpressionProjection(Projection):
    """Project the result of an expression under an output name."""

    alias: Field
    expression: AggregationExpression

    @property
    def field(self) -> Field:
        return self.alias

    def render(self, context: ResolutionContext, renderer: ExpressionRenderer) -> Any:
        return renderer.render_expression(self.expression, context)


def _to_field(value: str | Field) -> Field:
    if isinstance(value, Field):
        return value
    if isinstance(value, str):
        return Field(value)
    raise InvalidArgumentError(f"Expected a field name or Field, got {type(value).__name__}")


# ==============================================================================
# Stage
# ==============================================================================


class ProjectionOperation:
    """An immutable ``$project`` stage."""

    def __init__(self, fields: Fields | Iterable[str | Field] = ()) -> None:
        if fields is None:
            raise InvalidArgumentError("Fields must not be None")
        if not isinstance(fields, Fields):
            fields = Fields(_to_field(f) for f in fields)
        self._projections: tuple[Projection, ...] = tuple(FieldProjection(f) for f in fields)

    @classmethod
    def _of(cls, projections: tuple[Projection, ...]) -> ProjectionOperation:
        operation = cls()
        operation._projections = projections
        return operation

    @property
    def projections(self) -> tuple[Projection, ...]:
        return self._projections

    def and_projection(self, projection: Projection) -> ProjectionOperation:
        """Return a copy with *projection* appended."""
        return ProjectionOperation._of((*self._projections, projection))

    def and_(self, subject: str | Field | AggregationExpression) -> ProjectionOperationBuilder:
        """Start a projection of a field or of an expression."""
        if subject is None:
            raise InvalidArgumentError("Projection subject must not be None")
        return ProjectionOperationBuilder(self, subject)

    def and_expression(self, text: str, *params: Any) -> ProjectionOperationBuilder:
        """Start a projection of an infix expression (``"price * [0]"``)."""
        return ProjectionOperationBuilder(self, parse_expression(text, *params))

    def and_include(self, *names: str | Field) -> ProjectionOperation:
        operation = self
        for name in names:
            operation = operation.and_projection(FieldProjection(_to_field(name)))
        return operation

    def and_exclude(self, *names: str | Field) -> ProjectionOperation:
        """Exclude fields; only the identifier field may be excluded."""
        operation = self
        for name in names:
            fld = _to_field(name)
            if fld.name != UNDERSCORE_ID:
                raise InvalidArgumentError(
                    f"Exclusion of field '{fld.name}' is not supported, only '{UNDERSCORE_ID}' can be excluded"
                )
            operation = operation.and_projection(FieldProjection(fld, EXCLUDE))
        return operation

    @property
    def fields(self) -> ExposedFields:
        """Fields visible to the stage that follows this one."""
        return ExposedFields.non_synthetic(
            Field(p.field.name) for p in self._projections if p.exposed
        )

    def to_document(
        self,
        context: ResolutionContext = DEFAULT_CONTEXT,
        *,
        logger: ILoggable | None = None,
    ) -> dict[str, Any]:
        renderer = ExpressionRenderer(logger=logger)
        document: dict[str, Any] = {}
        for projection in self._projections:
            document[projection.field.name] = projection.render(context, renderer)
        return {PROJECT_KEY: document}

    def __repr__(self) -> str:
        return f"ProjectionOperation({', '.join(p.field.name for p in self._projections)})"


def project(*fields: str | Field | Fields) -> ProjectionOperation:
    """Create a ``$project`` stage including *fields*.

    Accepts field names, ``Field`` objects or a single ``Fields`` collection.
    """
    if len(fields) == 1 and isinstance(fields[0], Fields):
        return ProjectionOperation(fields[0])
    return ProjectionOperation(fields)


# ==============================================================================
# Builder
# ==============================================================================


class ProjectionOperationBuilder:
    """Builds one projection entry on top of an existing stage.

    String arguments of arithmetic, comparison and set methods are field
    names; string operators take literal strings (pass a ``Field`` to
    reference a field).
    """

    def __init__(
        self,
        operation: ProjectionOperation,
        subject: str | Field | AggregationExpression,
        value: AggregationExpression | None = None,
    ) -> None:
        self._operation = operation
        self._subject = subject
        self._value = value

    # -- finishing -------------------------------------------------------

    def as_(self, alias: str) -> ProjectionOperation:
        """Finish the projection under *alias*."""
        if not alias:
            raise InvalidArgumentError("Alias must not be None or empty")
        if self._value is None and not isinstance(self._subject, AggregationExpression):
            source = _to_field(self._subject)
            return self._operation.and_projection(FieldProjection(Field(alias, source.target)))
        return self._operation.and_projection(
            ExpressionProjection(Field(alias), self._current())
        )

    def previous_operation(self) -> ProjectionOperation:
        """Expose the previous stage's ``_id`` under the subject's name."""
        name = self._subject_name()
        return self._operation.and_projection(
            FieldProjection(Field(name, UNDERSCORE_ID), UNDERSCORE_ID_REFERENCE)
        )

    def _subject_name(self) -> str:
        if isinstance(self._subject, AggregationExpression):
            if isinstance(self._subject, FieldRef):
                return self._subject.name
            raise InvalidArgumentError(
                f"Projection of expression {self._subject} requires an alias"
            )
        return _to_field(self._subject).name

    def _finish(self) -> ProjectionOperation:
        if self._value is None and not isinstance(self._subject, AggregationExpression):
            return self._operation.and_projection(FieldProjection(_to_field(self._subject)))
        return self._operation.and_projection(
            ExpressionProjection(Field(self._subject_name()), self._current())
        )

    # -- stage delegation --------------------------------------------------

    def and_(self, subject: str | Field | AggregationExpression) -> ProjectionOperationBuilder:
        return self._finish().and_(subject)

    def and_expression(self, text: str, *params: Any) -> ProjectionOperationBuilder:
        return self._finish().and_expression(text, *params)

    def and_include(self, *names: str | Field) -> ProjectionOperation:
        return self._finish().and_include(*names)

    def and_exclude(self, *names: str | Field) -> ProjectionOperation:
        return self._finish().and_exclude(*names)

    @property
    def fields(self) -> ExposedFields:
        return self._finish().fields

    def to_document(
        self,
        context: ResolutionContext = DEFAULT_CONTEXT,
        *,
        logger: ILoggable | None = None,
    ) -> dict[str, Any]:
        return self._finish().to_document(context, logger=logger)

    # -- operators -------------------------------------------------------

    def _current(self) -> AggregationExpression:
        if self._value is not None:
            return self._value
        if isinstance(self._subject, AggregationExpression):
            return self._subject
        return FieldRef(_to_field(self._subject))

    def _apply(self, value: AggregationExpression) -> ProjectionOperationBuilder:
        return ProjectionOperationBuilder(self._operation, self._subject, value)

    def plus(self, value: Any) -> ProjectionOperationBuilder:
        return self._apply(builders.add(self._current(), value))

    def minus(self, value: Any) -> ProjectionOperationBuilder:
        return self._apply(builders.subtract(self._current(), value))

    def multiply(self, value: Any) -> ProjectionOperationBuilder:
        return self._apply(builders.multiply(self._current(), value))

    def divide(self, value: Any) -> ProjectionOperationBuilder:
        return self._apply(builders.divide(self._current(), value))

    def mod(self, value: Any) -> ProjectionOperationBuilder:
        return self._apply(builders.mod(self._current(), value))

    def size(self) -> ProjectionOperationBuilder:
        return self._apply(builders.size(self._current()))

    def slice(self, count: int, offset: int | None = None) -> ProjectionOperationBuilder:
        """``$slice`` the subject array: ``count`` elements, from ``offset`` if given."""
        return self._apply(builders.slice_(self._current(), count, offset))

    def cmp(self, value: Any) -> ProjectionOperationBuilder:
        return self._apply(builders.cmp(self._current(), value))

    def eq(self, value: Any) -> ProjectionOperationBuilder:
        return self._apply(builders.eq(self._current(), value))

    def gt(self, value: Any) -> ProjectionOperationBuilder:
        return self._apply(builders.gt(self._current(), value))

    def gte(self, value: Any) -> ProjectionOperationBuilder:
        return self._apply(builders.gte(self._current(), value))

    def lt(self, value: Any) -> ProjectionOperationBuilder:
        return self._apply(builders.lt(self._current(), value))

    def lte(self, value: Any) -> ProjectionOperationBuilder:
        return self._apply(builders.lte(self._current(), value))

    def ne(self, value: Any) -> ProjectionOperationBuilder:
        return self._apply(builders.ne(self._current(), value))

    def equals_array(self, *arrays: Any) -> ProjectionOperationBuilder:
        return self._apply(builders.set_equals(self._current(), *arrays))

    def intersects_arrays(self, *arrays: Any) -> ProjectionOperationBuilder:
        return self._apply(builders.set_intersection(self._current(), *arrays))

    def union_arrays(self, *arrays: Any) -> ProjectionOperationBuilder:
        return self._apply(builders.set_union(self._current(), *arrays))

    def difference_to_array(self, array: Any) -> ProjectionOperationBuilder:
        return self._apply(builders.set_difference(self._current(), array))

    def subset_of_array(self, array: Any) -> ProjectionOperationBuilder:
        return self._apply(builders.set_is_subset(self._current(), array))

    def any_element_in_array_true(self) -> ProjectionOperationBuilder:
        return self._apply(builders.any_element_true(self._current()))

    def all_elements_in_array_true(self) -> ProjectionOperationBuilder:
        return self._apply(builders.all_elements_true(self._current()))

    def absolute_value(self) -> ProjectionOperationBuilder:
        return self._apply(builders.abs_(self._current()))

    def ceil(self) -> ProjectionOperationBuilder:
        return self._apply(builders.ceil(self._current()))

    def floor(self) -> ProjectionOperationBuilder:
        return self._apply(builders.floor(self._current()))

    def exp(self) -> ProjectionOperationBuilder:
        return self._apply(builders.exp(self._current()))

    def ln(self) -> ProjectionOperationBuilder:
        return self._apply(builders.ln(self._current()))

    def log(self, base: Any) -> ProjectionOperationBuilder:
        return self._apply(builders.log(self._current(), base))

    def log10(self) -> ProjectionOperationBuilder:
        return self._apply(builders.log10(self._current()))

    def pow(self, exponent: Any) -> ProjectionOperationBuilder:
        return self._apply(builders.pow_(self._current(), exponent))

    def sqrt(self) -> ProjectionOperationBuilder:
        return self._apply(builders.sqrt(self._current()))

    def trunc(self) -> ProjectionOperationBuilder:
        return self._apply(builders.trunc(self._current()))

    def concat(self, *values: Any) -> ProjectionOperationBuilder:
        return self._apply(builders.StringOperators.value_of(self._current()).concat(*values))

    def substring(self, start: int, length: int = -1) -> ProjectionOperationBuilder:
        return self._apply(builders.StringOperators.value_of(self._current()).substring(start, length))

    def to_lower(self) -> ProjectionOperationBuilder:
        return self._apply(builders.to_lower(self._current()))

    def to_upper(self) -> ProjectionOperationBuilder:
        return self._apply(builders.to_upper(self._current()))

    def str_case_cmp(self, value: Any) -> ProjectionOperationBuilder:
        return self._apply(builders.StringOperators.value_of(self._current()).strcasecmp(value))

    def extract_hour(self) -> ProjectionOperationBuilder:
        return self._apply(builders.hour(self._current()))

    def extract_minute(self) -> ProjectionOperationBuilder:
        return self._apply(builders.minute(self._current()))

    def extract_second(self) -> ProjectionOperationBuilder:
        return self._apply(builders.second(self._current()))

    def extract_millisecond(self) -> ProjectionOperationBuilder:
        return self._apply(builders.millisecond(self._current()))

    def extract_year(self) -> ProjectionOperationBuilder:
        return self._apply(builders.year(self._current()))

    def extract_month(self) -> ProjectionOperationBuilder:
        return self._apply(builders.month(self._current()))

    def extract_week(self) -> ProjectionOperationBuilder:
        return self._apply(builders.week(self._current()))

    def extract_day_of_year(self) -> ProjectionOperationBuilder:
        return self._apply(builders.day_of_year(self._current()))

    def extract_day_of_month(self) -> ProjectionOperationBuilder:
        return self._apply(builders.day_of_month(self._current()))

    def extract_day_of_week(self) -> ProjectionOperationBuilder:
        return self._apply(builders.day_of_week(self._current()))

    def let(
        self, variables: Iterable[ExpressionVariable], in_: AggregationExpression
    ) -> ProjectionOperationBuilder:
        """Replace the subject's value with a ``$let`` expression."""
        return self._apply(builders.Let.vars(variables).in_(in_))
