"""Field reference model.

A ``Field`` is a symbolic name plus the wire key it renders to. Scopes expose
fields through ``ExposedFields``; resolving a field against a scope yields a
``FieldReference`` that knows whether it points at a document field
(``$name``) or at a variable bound by ``$let``/``$filter`` (``$$name``).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Iterator

from aggexpr.common.exceptions import InvalidArgumentError

UNDERSCORE_ID = "_id"
UNDERSCORE_ID_REFERENCE = "$_id"

FIELD_PREFIX = "$"
VARIABLE_PREFIX = "$$"


def _clean_up(source: str) -> str:
    """Strip a leading ``$``/``$$`` marker from a name."""
    return source.lstrip(FIELD_PREFIX)


@dataclass(frozen=True, init=False)
class Field:
    """A symbolic field name and its rendering target."""

    name: str
    target: str

    def __init__(self, name: str, target: str | None = None) -> None:
        if name is None:
            raise InvalidArgumentError("Field name must not be None")
        clean_name = _clean_up(name)
        if not clean_name:
            raise InvalidArgumentError(f"Field name must not be empty, got {name!r}")
        clean_target = _clean_up(target) if target else clean_name
        if not clean_target:
            raise InvalidArgumentError(f"Field target must not be empty, got {target!r}")
        object.__setattr__(self, "name", clean_name)
        object.__setattr__(self, "target", clean_target)

    @property
    def aliased(self) -> bool:
        return self.name != self.target

    @property
    def head(self) -> str:
        """First segment of a dotted path."""
        return self.name.partition(".")[0]

    @property
    def tail(self) -> str:
        """Everything after the first segment of a dotted path."""
        return self.name.partition(".")[2]

    def __str__(self) -> str:
        if self.aliased:
            return f"{self.name} -> {self.target}"
        return self.name


class Fields:
    """Immutable, ordered collection of fields with unique names."""

    def __init__(self, fields: Iterable[Field] = ()) -> None:
        if fields is None:
            raise InvalidArgumentError("Fields must not be None")
        items: list[Field] = []
        names: set[str] = set()
        for fld in fields:
            if not isinstance(fld, Field):
                raise InvalidArgumentError(f"Expected a Field, got {type(fld).__name__}")
            if fld.name in names:
                raise InvalidArgumentError(f"Found two fields with the same name '{fld.name}'")
            names.add(fld.name)
            items.append(fld)
        self._fields: tuple[Field, ...] = tuple(items)

    @classmethod
    def from_names(cls, *names: str) -> Fields:
        return cls(Field(name) for name in names)

    @classmethod
    def from_fields(cls, *fields: Field) -> Fields:
        return cls(fields)

    def and_(self, name: str, target: str | None = None) -> Fields:
        """Return a new collection with one more field appended."""
        return Fields((*self._fields, Field(name, target)))

    def and_fields(self, other: Fields) -> Fields:
        if other is None:
            raise InvalidArgumentError("Fields must not be None")
        return Fields((*self._fields, *other))

    def get_field(self, name: str) -> Field | None:
        for fld in self._fields:
            if fld.name == name:
                return fld
        return None

    def __iter__(self) -> Iterator[Field]:
        return iter(self._fields)

    def __len__(self) -> int:
        return len(self._fields)

    def __contains__(self, name: object) -> bool:
        return any(fld.name == name for fld in self._fields)

    def __eq__(self, other: object) -> bool:
        return isinstance(other, Fields) and self._fields == other._fields

    def __hash__(self) -> int:
        return hash(self._fields)

    def __repr__(self) -> str:
        return f"Fields({', '.join(str(f) for f in self._fields)})"


@dataclass(frozen=True)
class ExposedField:
    """A field made visible by a scope.

    ``synthetic`` fields are variables (``$let`` bindings, the ``$filter``
    iteration variable) rather than fields of the document.
    """

    field: Field
    synthetic: bool = False

    @property
    def name(self) -> str:
        return self.field.name

    @property
    def target(self) -> str:
        return self.field.target


class ExposedFields:
    """Immutable, ordered set of exposed fields keyed by name."""

    def __init__(self, exposed: Iterable[ExposedField] = ()) -> None:
        by_name: dict[str, ExposedField] = {}
        for item in exposed:
            by_name[item.name] = item
        self._by_name = by_name

    @classmethod
    def synthetic(cls, fields: Fields | Iterable[Field]) -> ExposedFields:
        return cls(ExposedField(fld, synthetic=True) for fld in fields)

    @classmethod
    def non_synthetic(cls, fields: Fields | Iterable[Field]) -> ExposedFields:
        return cls(ExposedField(fld, synthetic=False) for fld in fields)

    @classmethod
    def from_(cls, exposed_field: ExposedField) -> ExposedFields:
        return cls([exposed_field])

    def and_(self, exposed_field: ExposedField) -> ExposedFields:
        return ExposedFields((*self._by_name.values(), exposed_field))

    def get_field(self, name: str) -> ExposedField | None:
        return self._by_name.get(name)

    @property
    def names(self) -> list[str]:
        return list(self._by_name)

    def __iter__(self) -> Iterator[ExposedField]:
        return iter(self._by_name.values())

    def __len__(self) -> int:
        return len(self._by_name)

    def __contains__(self, name: object) -> bool:
        return name in self._by_name

    def __repr__(self) -> str:
        return f"ExposedFields({', '.join(self._by_name)})"


@dataclass(frozen=True)
class FieldReference:
    """A resolved, renderable reference to an exposed field.

    ``path`` holds any dotted remainder below the exposed field
    (``item.price`` resolved against a variable ``item``).
    """

    exposed_field: ExposedField
    path: str = ""

    @property
    def raw(self) -> str:
        target = self.exposed_field.target
        return f"{target}.{self.path}" if self.path else target

    @property
    def is_variable(self) -> bool:
        return self.exposed_field.synthetic

    def __str__(self) -> str:
        prefix = VARIABLE_PREFIX if self.is_variable else FIELD_PREFIX
        return f"{prefix}{self.raw}"


def field(name: str, target: str | None = None) -> Field:
    """Create a field, optionally aliased to a different target."""
    return Field(name, target)


def fields(*names: str) -> Fields:
    """Create a field collection from plain names."""
    return Fields.from_names(*names)
