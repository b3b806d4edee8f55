"""
Schema module for sqlmoose.

This module provides the document schema and its relational mapping:
- Field types and descriptors, and the definition normalizer
- Type mapping to storage columns, with a compatibility predicate
- Table synchronization (create, add column, widen column)

Invariants:
    - The identity column `id` is implicit and never declared
    - Synchronization never drops columns
    - Normalization never fails; unknown markers become STRUCTURED
"""

from .mapping import is_type_compatible, storage_type
from .sync import (
    ChangeKind,
    StructuralChange,
    SyncReport,
    TableSynchronizer,
    plan_alter,
    plan_create,
)
from .types import (
    EntitySchema,
    FieldDescriptor,
    FieldType,
    Schema,
    normalize_definition,
    normalize_field,
)

__all__ = [
    # Types
    "FieldType",
    "FieldDescriptor",
    "Schema",
    "EntitySchema",
    "normalize_definition",
    "normalize_field",
    # Mapping
    "storage_type",
    "is_type_compatible",
    # Synchronization
    "ChangeKind",
    "StructuralChange",
    "SyncReport",
    "TableSynchronizer",
    "plan_create",
    "plan_alter",
]
