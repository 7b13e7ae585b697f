"""Pytest configuration and fixtures."""

from typing import Any

import pytest

from aggexpr.common.logging import ILoggable, LogLevel
from aggexpr.common.schema import DocumentProperty, DocumentSchema
from aggexpr.renderer.expression_renderer import ExpressionRenderer
from aggexpr.renderer.render_context import TypeBasedResolutionContext


class RecordingLogger(ILoggable):
    """Logger collecting formatted messages for assertions."""

    def __init__(self) -> None:
        self.records: list[tuple[LogLevel, str]] = []

    def log(self, level: LogLevel, message: str, *args: Any) -> None:
        self.records.append((level, message % args if args else message))

    def messages(self, level: LogLevel | None = None) -> list[str]:
        return [msg for lvl, msg in self.records if level is None or lvl == level]


@pytest.fixture
def sales_schema() -> DocumentSchema:
    """Schema of a sales order document.

    ``id`` is stored as ``_id``, ``applyDiscount`` as ``apply_discount`` and
    the customer is an embedded document.
    """
    customer = DocumentSchema(
        name="Customer",
        properties=[
            DocumentProperty("name"),
            DocumentProperty("zipCode", target_name="zip"),
        ],
    )
    return DocumentSchema(
        name="Sales",
        properties=[
            DocumentProperty("id", target_name="_id"),
            DocumentProperty("price"),
            DocumentProperty("tax"),
            DocumentProperty("applyDiscount", target_name="apply_discount"),
            DocumentProperty("tags"),
            DocumentProperty("items"),
            DocumentProperty("customer", nested=customer),
        ],
    )


@pytest.fixture
def sales_context(sales_schema: DocumentSchema) -> TypeBasedResolutionContext:
    """Strict root context over the sales schema."""
    return TypeBasedResolutionContext(sales_schema)


@pytest.fixture
def recording_logger() -> RecordingLogger:
    return RecordingLogger()


@pytest.fixture
def renderer() -> ExpressionRenderer:
    return ExpressionRenderer()
