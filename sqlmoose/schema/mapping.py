"""
Type mapping between canonical field types and storage columns.

Two pure functions:
- storage_type: FieldType -> storage column type string
- is_type_compatible: whether a column's reported native type already
  satisfies an expected storage type

The compatibility check works on equivalence classes. A column created with
a different but equivalent native type (e.g. BIGINT for INT, TINYINT(1) for
BOOLEAN) must not trigger a modify statement.
"""

from __future__ import annotations

import re
from typing import Dict, FrozenSet

from .types import FieldType

_BASE_TYPE = re.compile(r"^\s*([A-Za-z]+)")


def storage_type(field_type: FieldType, varchar_length: int = 255) -> str:
    """Map a canonical field type to its storage column type.

    Example:
        >>> storage_type(FieldType.TEXT)
        'VARCHAR(255)'
    """
    if field_type is FieldType.TEXT:
        return f"VARCHAR({varchar_length})"
    if field_type is FieldType.INTEGER:
        return "INT"
    if field_type is FieldType.BOOLEAN:
        return "BOOLEAN"
    if field_type is FieldType.TEMPORAL:
        return "DATETIME"
    return "JSON"


EQUIVALENCE_CLASSES: Dict[str, FrozenSet[str]] = {
    "VARCHAR": frozenset({"VARCHAR", "CHAR", "TEXT", "TINYTEXT", "MEDIUMTEXT", "LONGTEXT"}),
    "INT": frozenset({"INT", "INTEGER", "BIGINT", "SMALLINT", "MEDIUMINT", "TINYINT"}),
    "BOOLEAN": frozenset({"BOOLEAN", "BOOL", "TINYINT"}),
    "DATETIME": frozenset({"DATETIME", "TIMESTAMP"}),
    "JSON": frozenset({"JSON"}),
}


def base_type(native_type: str) -> str:
    """Upper-cased type name without length/precision parameters.

    Example:
        >>> base_type("tinyint(1) unsigned")
        'TINYINT'
    """
    match = _BASE_TYPE.match(native_type or "")
    return match.group(1).upper() if match else ""


def is_type_compatible(native_type: str, expected_type: str) -> bool:
    """Whether a reported column type belongs to the expected type's class.

    Args:
        native_type: Type string reported by the store (e.g. "bigint")
        expected_type: Storage type from storage_type() (e.g. "INT")

    Returns:
        True if no structural change is needed
    """
    compatible = EQUIVALENCE_CLASSES.get(base_type(expected_type), frozenset())
    return base_type(native_type) in compatible
