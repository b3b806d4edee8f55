"""
Core type definitions for the sqlmoose schema system.

This module defines the document-side schema model:
- FieldType: Closed set of canonical field types
- FieldDescriptor: Canonical description of one declared field
- Schema: A user-supplied definition, normalized but not bound to a name
- EntitySchema: A schema bound to an entity name (one per Model)

Normalization is total: every definition entry produces a descriptor.
Unrecognized type markers degrade to STRUCTURED (stored as JSON) instead of
raising, since any serializable value can be stored opaquely.

Invariants:
    - The identity field `id` is never part of a declared field map
    - `nested` is populated only when sub-fields were declared explicitly
    - Normalized schemas are immutable

Example:
    >>> from datetime import datetime
    >>> schema = Schema({
    ...     "name": str,
    ...     "age": {"type": int, "default": 0},
    ...     "profile": {"email": str},
    ...     "createdAt": {"type": datetime, "default": datetime.utcnow},
    ... })
    >>> schema.fields["profile"].nested["email"].type
    <FieldType.TEXT: 'text'>
"""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional

logger = logging.getLogger(__name__)

IDENTITY_FIELD = "id"


class FieldType(Enum):
    """Canonical field types.

    These map to storage column types through the type mapper.
    """

    TEXT = "text"
    INTEGER = "integer"
    BOOLEAN = "boolean"
    TEMPORAL = "temporal"
    STRUCTURED = "structured"  # JSON column, opaque or with declared sub-fields

    @classmethod
    def from_marker(cls, marker: Any) -> FieldType:
        """Resolve a type marker to a FieldType.

        Accepts FieldType members, Python types and case-insensitive names.
        Anything unrecognized resolves to STRUCTURED.

        Args:
            marker: The type marker from a schema definition

        Returns:
            Corresponding FieldType
        """
        if isinstance(marker, FieldType):
            return marker
        if isinstance(marker, type):
            for python_type, field_type in _PYTHON_MARKERS:
                if marker is python_type:
                    return field_type
            return cls.STRUCTURED
        if isinstance(marker, str):
            return _NAMED_MARKERS.get(marker.strip().lower(), cls.STRUCTURED)
        return cls.STRUCTURED


_PYTHON_MARKERS = (
    (str, FieldType.TEXT),
    (int, FieldType.INTEGER),
    (bool, FieldType.BOOLEAN),
    (datetime, FieldType.TEMPORAL),
    (date, FieldType.TEMPORAL),
    (dict, FieldType.STRUCTURED),
    (list, FieldType.STRUCTURED),
    (object, FieldType.STRUCTURED),
)

_NAMED_MARKERS = {
    "string": FieldType.TEXT,
    "str": FieldType.TEXT,
    "text": FieldType.TEXT,
    "number": FieldType.INTEGER,
    "int": FieldType.INTEGER,
    "integer": FieldType.INTEGER,
    "boolean": FieldType.BOOLEAN,
    "bool": FieldType.BOOLEAN,
    "date": FieldType.TEMPORAL,
    "datetime": FieldType.TEMPORAL,
    "temporal": FieldType.TEMPORAL,
    "timestamp": FieldType.TEMPORAL,
    "object": FieldType.STRUCTURED,
    "mixed": FieldType.STRUCTURED,
    "json": FieldType.STRUCTURED,
    "array": FieldType.STRUCTURED,
    "structured": FieldType.STRUCTURED,
}


@dataclass(frozen=True)
class FieldDescriptor:
    """Canonical definition of a single declared field.

    Attributes:
        type: Canonical field type
        default: Default value, or a zero-argument callable producing one
        nested: Child descriptors when sub-fields were declared explicitly

    Example:
        >>> FieldDescriptor(FieldType.INTEGER, default=0)
        FieldDescriptor(type=<FieldType.INTEGER: 'integer'>, default=0, nested=None)
    """

    type: FieldType
    default: Any = None
    nested: Optional[Mapping[str, FieldDescriptor]] = None

    @property
    def has_default(self) -> bool:
        return self.default is not None

    def resolve_default(self) -> Any:
        """Produce the default value, invoking it if it is a producer.

        Literal defaults are copied, so documents never share a mutable default.
        """
        if callable(self.default):
            return self.default()
        return copy.deepcopy(self.default)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation for display."""
        result: Dict[str, Any] = {"type": self.type.value}
        if self.has_default:
            result["default"] = (
                getattr(self.default, "__name__", repr(self.default))
                if callable(self.default)
                else self.default
            )
        if self.nested is not None:
            result["nested"] = {name: d.to_dict() for name, d in self.nested.items()}
        return result


def normalize_field(definition: Any) -> FieldDescriptor:
    """Normalize one raw field definition.

    A definition is one of:
    - a bare type marker (`str`, `"Number"`, `FieldType.BOOLEAN`, ...)
    - a mapping carrying `type` and/or `default`
    - a mapping without `type`, whose entries are sub-field definitions

    Args:
        definition: Raw field definition

    Returns:
        Canonical FieldDescriptor
    """
    if not isinstance(definition, Mapping):
        return FieldDescriptor(type=FieldType.from_marker(definition))

    if "type" in definition:
        marker = definition["type"]
        if isinstance(marker, Mapping):
            return FieldDescriptor(
                type=FieldType.STRUCTURED,
                default=definition.get("default"),
                nested=normalize_definition(marker) or None,
            )
        return FieldDescriptor(
            type=FieldType.from_marker(marker),
            default=definition.get("default"),
        )

    if "default" in definition and len(definition) == 1:
        return FieldDescriptor(type=FieldType.STRUCTURED, default=definition["default"])

    if not definition:
        return FieldDescriptor(type=FieldType.STRUCTURED)

    return FieldDescriptor(
        type=FieldType.STRUCTURED,
        nested=normalize_definition(definition),
    )


def normalize_definition(definition: Mapping[str, Any]) -> Mapping[str, FieldDescriptor]:
    """Normalize a raw definition map into canonical descriptors.

    Declaration order is preserved. A declared `id` is dropped.

    Args:
        definition: Mapping of field name to raw definition

    Returns:
        Read-only mapping of field name to FieldDescriptor
    """
    fields: Dict[str, FieldDescriptor] = {}
    for name, raw in (definition or {}).items():
        if name == IDENTITY_FIELD:
            logger.debug("Ignoring declared identity field 'id'; it is implicit")
            continue
        fields[name] = normalize_field(raw)
    return MappingProxyType(fields)


class Schema:
    """A normalized, unbound document schema.

    Example:
        >>> user_schema = Schema({"name": str, "age": int})
        >>> list(user_schema.fields)
        ['name', 'age']
    """

    def __init__(self, definition: Optional[Mapping[str, Any]] = None) -> None:
        self.definition = dict(definition or {})
        self.fields = normalize_definition(self.definition)

    def bind(self, entity_name: str) -> EntitySchema:
        """Bind this schema to an entity name."""
        return EntitySchema(entity_name=entity_name, fields=self.fields)

    def to_dict(self) -> Dict[str, Any]:
        return {name: d.to_dict() for name, d in self.fields.items()}

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Schema):
            return NotImplemented
        return dict(self.fields) == dict(other.fields)

    def __repr__(self) -> str:
        return f"Schema(fields={list(self.fields)})"


@dataclass(frozen=True)
class EntitySchema:
    """A schema bound to one entity.

    Attributes:
        entity_name: Name of the entity (e.g. "User")
        fields: Ordered mapping of field name to FieldDescriptor
    """

    entity_name: str
    fields: Mapping[str, FieldDescriptor]

    @classmethod
    def from_definition(cls, entity_name: str, definition: Mapping[str, Any]) -> EntitySchema:
        return cls(entity_name=entity_name, fields=normalize_definition(definition))

    def field_type(self, name: str) -> Optional[FieldType]:
        descriptor = self.fields.get(name)
        return descriptor.type if descriptor else None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "entity_name": self.entity_name,
            "fields": {name: d.to_dict() for name, d in self.fields.items()},
        }
