"""Resolution contexts: how symbolic field names become wire references.

Contexts form a singly-linked chain.  ``lookup`` answers for one context only
and returns ``None`` on a miss; ``resolve`` walks from the innermost context
outwards and raises ``UnresolvedReferenceError`` once the whole chain has
missed.  A miss is the only thing that falls through: any other exception
raised by a ``lookup`` propagates unchanged.

Scopes:

- ``NoOpResolutionContext``: root for untyped pipelines, every name resolves
  to itself (``DEFAULT_CONTEXT``).
- ``TypeBasedResolutionContext``: root backed by a ``DocumentSchema``.
- ``ExposedFieldsResolutionContext``: fields (or ``$let``/``$filter``
  variables) introduced by a scope, falling back to its parent.
- ``NestedDelegatingResolutionContext``: forwards to a delegate without
  adding a layer of its own; used for operands nested inside a scope.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from aggexpr.common.config import merge_config
from aggexpr.common.exceptions import InvalidArgumentError, UnresolvedReferenceError
from aggexpr.common.logging import ILoggable
from aggexpr.common.schema import DocumentSchema
from aggexpr.fields import ExposedField, ExposedFields, Field, FieldReference


class ResolutionContext(ABC):
    """A scope able to turn a ``Field`` into a ``FieldReference``."""

    @property
    def parent(self) -> ResolutionContext | None:
        """The enclosing context, or ``None`` for a root."""
        return None

    @abstractmethod
    def lookup(self, field: Field) -> FieldReference | None:
        """Resolve *field* in this context only; ``None`` when not found here."""
        ...

    def visible_names(self) -> list[str]:
        """Names this context knows locally (used for error suggestions)."""
        return []

    def resolve(self, field: Field | str) -> FieldReference:
        """Resolve *field* through the chain, innermost context first.

        Raises:
            UnresolvedReferenceError: If no context in the chain knows the name.
        """
        if isinstance(field, str):
            field = Field(field)

        context: ResolutionContext | None = self
        while context is not None:
            reference = context.lookup(field)
            if reference is not None:
                return reference
            context = context.parent

        raise UnresolvedReferenceError(field.name, self.chain_names())

    def chain_names(self) -> list[str]:
        """All names visible from this context, innermost first."""
        names: list[str] = []
        context: ResolutionContext | None = self
        while context is not None:
            names.extend(context.visible_names())
            context = context.parent
        return names

    def expose(self, exposed_fields: ExposedFields) -> ExposedFieldsResolutionContext:
        """Open a child scope exposing *exposed_fields* over this context."""
        return ExposedFieldsResolutionContext(exposed_fields, self)


class NoOpResolutionContext(ResolutionContext):
    """Root context that resolves every field to its own target."""

    def lookup(self, field: Field) -> FieldReference | None:
        return FieldReference(ExposedField(field, synthetic=False))

    def __repr__(self) -> str:
        return "NoOpResolutionContext()"


DEFAULT_CONTEXT = NoOpResolutionContext()


class TypeBasedResolutionContext(ResolutionContext):
    """Root context backed by the schema of the pipeline's input documents.

    Symbolic names are mapped to their stored keys (``id`` -> ``_id``,
    renamed properties, nested documents).
    """

    def __init__(
        self,
        schema: DocumentSchema,
        *,
        config: dict[str, Any] | None = None,
        logger: ILoggable | None = None,
    ) -> None:
        if schema is None:
            raise InvalidArgumentError("Schema must not be None")
        self._schema = schema
        self._config = merge_config(config)
        self._logger = logger

    @property
    def schema(self) -> DocumentSchema:
        return self._schema

    @property
    def strict(self) -> bool:
        return bool(self._config["strict_field_resolution"])

    def lookup(self, field: Field) -> FieldReference | None:
        mapped = self._schema.map_path(field.target)
        if mapped is None:
            if self.strict:
                return None
            if self._logger:
                self._logger.warning(
                    "Field '%s' is not part of schema '%s', passing it through",
                    field.name,
                    self._schema.name,
                )
            mapped = field.target
        return FieldReference(ExposedField(Field(field.name, mapped)))

    def visible_names(self) -> list[str]:
        return self._schema.property_names

    def __repr__(self) -> str:
        return f"TypeBasedResolutionContext({self._schema.name})"


class ExposedFieldsResolutionContext(ResolutionContext):
    """Context exposing a set of fields over an enclosing context.

    Local fields shadow same-named fields of the parent.  A dotted name whose
    first segment is exposed here resolves below that field
    (``item.price`` -> ``$$item.price`` for a variable ``item``).
    """

    def __init__(
        self,
        exposed_fields: ExposedFields,
        parent: ResolutionContext | None = None,
    ) -> None:
        if exposed_fields is None:
            raise InvalidArgumentError("Exposed fields must not be None")
        self._exposed_fields = exposed_fields
        self._parent = parent

    @property
    def parent(self) -> ResolutionContext | None:
        return self._parent

    @property
    def exposed_fields(self) -> ExposedFields:
        return self._exposed_fields

    def lookup(self, field: Field) -> FieldReference | None:
        exposed = self._exposed_fields.get_field(field.name)
        if exposed is not None:
            return FieldReference(exposed)
        if field.tail:
            exposed = self._exposed_fields.get_field(field.head)
            if exposed is not None:
                return FieldReference(exposed, path=field.tail)
        return None

    def visible_names(self) -> list[str]:
        return self._exposed_fields.names

    def __repr__(self) -> str:
        return f"ExposedFieldsResolutionContext({self._exposed_fields.names}, parent={self._parent!r})"


class NestedDelegatingResolutionContext(ResolutionContext):
    """Forwards resolution to *delegate* without exposing anything itself."""

    def __init__(self, delegate: ResolutionContext) -> None:
        if delegate is None:
            raise InvalidArgumentError("Delegate context must not be None")
        self._delegate = delegate

    @property
    def delegate(self) -> ResolutionContext:
        return self._delegate

    @property
    def parent(self) -> ResolutionContext | None:
        return self._delegate.parent

    def lookup(self, field: Field) -> FieldReference | None:
        return self._delegate.lookup(field)

    def visible_names(self) -> list[str]:
        return self._delegate.visible_names()

    def __repr__(self) -> str:
        return f"NestedDelegatingResolutionContext({self._delegate!r})"
