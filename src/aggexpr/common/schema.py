"""Document type metadata backing the root resolution context."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from aggexpr.common.exceptions import InvalidArgumentError


@dataclass
class DocumentProperty:
    """A property of a document type and the wire key it is stored under."""

    property_name: str
    target_name: str | None = None
    nested: DocumentSchema | None = None

    def __post_init__(self) -> None:
        """Validate the property after initialization."""
        if not self.property_name:
            raise InvalidArgumentError("Property name cannot be empty")
        if self.target_name is None:
            self.target_name = self.property_name

    @property
    def target(self) -> str:
        """Wire key of the property (``target_name`` or the property name)."""
        return self.target_name or self.property_name


@dataclass
class DocumentSchema:
    """Schema definition for a document type.

    Property names are the symbolic names builders use; each maps to the
    key the database stores (``id`` -> ``_id`` being the usual remapping).
    """

    name: str
    properties: list[DocumentProperty] = field(default_factory=list)

    def __post_init__(self) -> None:
        seen: set[str] = set()
        for prop in self.properties:
            if prop.property_name in seen:
                raise InvalidArgumentError(
                    f"Duplicate property '{prop.property_name}' in schema '{self.name}'"
                )
            seen.add(prop.property_name)

    def get_property(self, name: str) -> DocumentProperty | None:
        """Look up a property by symbolic name or by wire key."""
        for prop in self.properties:
            if prop.property_name == name:
                return prop
        for prop in self.properties:
            if prop.target == name:
                return prop
        return None

    def map_path(self, path: str) -> str | None:
        """Map a dotted symbolic path to its wire path.

        Returns ``None`` when the first segment is not a property. Segments
        below a property without nested metadata are kept verbatim.
        """
        head, _, rest = path.partition(".")
        prop = self.get_property(head)
        if prop is None:
            return None
        if not rest:
            return prop.target
        if prop.nested is None:
            return f"{prop.target}.{rest}"
        nested_path = prop.nested.map_path(rest)
        if nested_path is None:
            return None
        return f"{prop.target}.{nested_path}"

    @property
    def property_names(self) -> list[str]:
        return [prop.property_name for prop in self.properties]


def schema_from_dict(data: dict[str, Any]) -> DocumentSchema:
    """Build a ``DocumentSchema`` from its JSON representation.

    Expected shape::

        {"name": "Sales",
         "properties": [{"name": "id", "target": "_id"},
                        {"name": "address",
                         "properties": [{"name": "city"}]}]}
    """
    if "name" not in data:
        raise InvalidArgumentError("Schema definition requires a 'name'")

    properties = []
    for prop_data in data.get("properties", []):
        nested = None
        if prop_data.get("properties"):
            nested = schema_from_dict(
                {"name": prop_data["name"], "properties": prop_data["properties"]}
            )
        properties.append(
            DocumentProperty(
                property_name=prop_data["name"],
                target_name=prop_data.get("target"),
                nested=nested,
            )
        )
    return DocumentSchema(name=data["name"], properties=properties)
