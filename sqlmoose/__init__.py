"""
sqlmoose - a document-style access layer over relational stores.

Entities are described with a flexible, document-oriented schema and used
through a mongoose-like API; operations compile to parameterized SQL and
table structure is kept in line with the declared schema.

Example:
    >>> from sqlmoose import ModelRegistry, Schema, SQLiteExecutor, SQLiteDialect
    >>>
    >>> registry = ModelRegistry(SQLiteExecutor("app.db"), SQLiteDialect())
    >>> User = registry.get_or_create("User", Schema({
    ...     "name": str,
    ...     "age": int,
    ...     "profile": {"email": str},
    ... }))
    >>> await User.create({"name": "Ann", "age": 30, "profile": {"email": "a@b.com"}})
    >>> await User.find().where("profile.email", "a@b.com").exec()

Invariants:
    - The identity column `id` is implicit, integer and auto-assigned
    - Columns are added or widened, never dropped
    - Only the executor boundary produces user-visible failures
"""

from ._version import __version__
from .config import Settings, setup_logging
from .dialect import Dialect, MySQLDialect, SQLiteDialect, get_dialect
from .errors import (
    ModelNotRegisteredError,
    MooseError,
    StatementExecutionError,
    StructuralSyncError,
)
from .executor import ColumnInfo, Executor, SQLiteExecutor, WriteOutcome
from .model import Model
from .query import CompiledStatement, Query
from .registry import ModelRegistry
from .schema import EntitySchema, FieldDescriptor, FieldType, Schema, SyncReport

__all__ = [
    # Version
    "__version__",
    # Schema
    "Schema",
    "EntitySchema",
    "FieldDescriptor",
    "FieldType",
    "SyncReport",
    # Gateway
    "Model",
    "ModelRegistry",
    "Query",
    "CompiledStatement",
    # Executors
    "Executor",
    "SQLiteExecutor",
    "ColumnInfo",
    "WriteOutcome",
    # Dialects
    "Dialect",
    "MySQLDialect",
    "SQLiteDialect",
    "get_dialect",
    # Configuration
    "Settings",
    "setup_logging",
    # Errors
    "MooseError",
    "StatementExecutionError",
    "StructuralSyncError",
    "ModelNotRegisteredError",
]
