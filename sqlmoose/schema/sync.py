"""
Table structure synchronization.

Reconciles a table's actual columns with an entity's declared schema:

    absent table   -> CREATE TABLE (identity column + one column per field)
    missing column -> ALTER TABLE .. ADD COLUMN
    incompatible   -> ALTER TABLE .. MODIFY COLUMN (widen)

Invariants:
    - Columns present in storage but absent from the schema are never dropped
    - Compatible native types never trigger a modify statement
    - A failed structural statement is logged and recorded; synchronization
      continues with the remaining fields and never raises
    - Re-running against a compatible table issues zero statements

Example:
    >>> synchronizer = TableSynchronizer(schema, "users", MySQLDialect())
    >>> report = await synchronizer.run(executor)
    >>> [str(change) for change in report.applied]
    ['TABLE_CREATED: users']
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import List, Mapping, Optional, Sequence, Tuple

from ..dialect import Dialect
from ..errors import StructuralSyncError
from ..executor.base import ColumnInfo, Executor
from .mapping import is_type_compatible, storage_type
from .types import IDENTITY_FIELD, EntitySchema, FieldDescriptor

logger = logging.getLogger(__name__)


class ChangeKind(Enum):
    """Kinds of structural change."""

    TABLE_CREATED = auto()
    COLUMN_ADDED = auto()
    COLUMN_WIDENED = auto()


@dataclass
class StructuralChange:
    """One structural change needed to reconcile a table.

    Attributes:
        kind: The type of change
        table: Table name
        column: Column name (None for table creation)
        statement: DDL text, or None when the dialect cannot express it
        old_type: Reported native type before the change
        new_type: Expected storage type
    """

    kind: ChangeKind
    table: str
    column: Optional[str] = None
    statement: Optional[str] = None
    old_type: Optional[str] = None
    new_type: Optional[str] = None

    @property
    def path(self) -> str:
        return f"{self.table}.{self.column}" if self.column else self.table

    def __str__(self) -> str:
        if self.kind is ChangeKind.COLUMN_WIDENED:
            return f"{self.kind.name}: {self.path} ({self.old_type} -> {self.new_type})"
        return f"{self.kind.name}: {self.path}"


@dataclass
class SyncReport:
    """Outcome of one synchronization run.

    Attributes:
        table: Table name
        existed: Whether the table existed before the run
        applied: Changes whose statements succeeded
        failed: Changes that could not be applied, with their errors
        error: Set when the table's structure could not be inspected
    """

    table: str
    existed: bool = False
    applied: List[StructuralChange] = field(default_factory=list)
    failed: List[Tuple[StructuralChange, StructuralSyncError]] = field(default_factory=list)
    error: Optional[StructuralSyncError] = None

    @property
    def ok(self) -> bool:
        return self.error is None and not self.failed


def column_definitions(fields: Mapping[str, FieldDescriptor], dialect: Dialect) -> List[str]:
    """Column definitions for every declared field, in declaration order."""
    return [
        f"{dialect.quote(name)} {storage_type(descriptor.type, dialect.varchar_length)}"
        for name, descriptor in fields.items()
        if name != IDENTITY_FIELD
    ]


def plan_create(table: str, fields: Mapping[str, FieldDescriptor], dialect: Dialect) -> List[StructuralChange]:
    """Changes for a table that does not exist yet."""
    return [
        StructuralChange(
            kind=ChangeKind.TABLE_CREATED,
            table=table,
            statement=dialect.create_table(table, column_definitions(fields, dialect)),
        )
    ]


def plan_alter(
    table: str,
    fields: Mapping[str, FieldDescriptor],
    columns: Sequence[ColumnInfo],
    dialect: Dialect,
) -> List[StructuralChange]:
    """Changes reconciling an existing table with the declared fields.

    Args:
        table: Table name
        fields: Declared field descriptors
        columns: Columns currently reported by the store
        dialect: Target dialect

    Returns:
        Ordered add/widen changes; empty when the table is compatible
    """
    current = {column.name.lower(): column for column in columns}
    changes: List[StructuralChange] = []

    for name, descriptor in fields.items():
        if name == IDENTITY_FIELD:
            continue
        expected = storage_type(descriptor.type, dialect.varchar_length)
        column = current.get(name.lower())

        if column is None:
            changes.append(
                StructuralChange(
                    kind=ChangeKind.COLUMN_ADDED,
                    table=table,
                    column=name,
                    statement=dialect.add_column(table, name, expected),
                    new_type=expected,
                )
            )
        elif not is_type_compatible(column.native_type, expected):
            changes.append(
                StructuralChange(
                    kind=ChangeKind.COLUMN_WIDENED,
                    table=table,
                    column=name,
                    statement=dialect.modify_column(table, name, expected),
                    old_type=column.native_type,
                    new_type=expected,
                )
            )

    return changes


class TableSynchronizer:
    """Brings one entity's table in line with its schema.

    Attributes:
        schema: The entity schema
        table: Table name
        dialect: Target dialect
    """

    def __init__(self, schema: EntitySchema, table: str, dialect: Dialect) -> None:
        self.schema = schema
        self.table = table
        self.dialect = dialect

    async def plan(self, executor: Executor) -> Tuple[bool, List[StructuralChange]]:
        """Inspect the store and compute the needed changes.

        Returns:
            Tuple of (table existed, changes)

        Raises:
            StatementExecutionError: If the store cannot be inspected
        """
        if not await executor.table_exists(self.table):
            return False, plan_create(self.table, self.schema.fields, self.dialect)
        columns = await executor.describe_columns(self.table)
        return True, plan_alter(self.table, self.schema.fields, columns, self.dialect)

    async def run(self, executor: Executor) -> SyncReport:
        """Plan and apply changes, one statement at a time.

        Never raises; failures are logged and recorded in the report.
        """
        report = SyncReport(table=self.table)

        try:
            report.existed, changes = await self.plan(executor)
        except Exception as e:
            logger.error(f"Could not inspect table {self.table}: {e}", exc_info=True)
            report.error = StructuralSyncError(str(e), table=self.table)
            return report

        if report.existed:
            logger.info(f"Checking table {self.table} structure: {len(changes)} change(s) needed")
        else:
            logger.info(f"Creating table {self.table}")

        for change in changes:
            if change.statement is None:
                error = StructuralSyncError(
                    f"Dialect '{self.dialect.name}' cannot change the type of "
                    f"{change.path} from {change.old_type} to {change.new_type}",
                    table=self.table,
                    column=change.column,
                )
                logger.warning(str(error))
                report.failed.append((change, error))
                continue

            try:
                await executor.execute(change.statement, ())
            except Exception as e:
                logger.error(f"Failed to apply {change}: {e}", exc_info=True)
                report.failed.append(
                    (
                        change,
                        StructuralSyncError(
                            str(e),
                            table=self.table,
                            column=change.column,
                            statement=change.statement,
                        ),
                    )
                )
                continue

            logger.info(f"Applied {change}")
            report.applied.append(change)

        return report
