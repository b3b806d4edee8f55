"""
Executor protocol and result types.

The executor is the only boundary sqlmoose talks to. It receives compiled
statements and returns rows or a write outcome; connection handling,
pooling, retries and timeouts all live behind it.

Invariants:
    - execute() returns a list of row mappings for statements producing rows
    - execute() returns a WriteOutcome for all other statements
    - Failures surface as StatementExecutionError

How to change safely:
    - Protocol changes require updating all implementations
    - Keep result shapes stable; the Model relies on them
"""

from __future__ import annotations

from abc import abstractmethod
from dataclasses import dataclass
from typing import (
    Any,
    Dict,
    List,
    Optional,
    Protocol,
    Sequence,
    Union,
    runtime_checkable,
)

Row = Dict[str, Any]


@dataclass(frozen=True)
class ColumnInfo:
    """A column as reported by the store.

    Attributes:
        name: Column name
        native_type: Type string reported by the store (e.g. "varchar(255)")
    """

    name: str
    native_type: str


@dataclass(frozen=True)
class WriteOutcome:
    """Result of a statement that does not produce rows.

    Attributes:
        inserted_id: Identity assigned by an INSERT, if any
        affected_count: Number of rows affected
    """

    inserted_id: Optional[int] = None
    affected_count: int = 0


ExecutionResult = Union[List[Row], WriteOutcome]


@runtime_checkable
class Executor(Protocol):
    """Protocol for statement executors.

    Example:
        >>> executor = SQLiteExecutor(":memory:")
        >>> await executor.execute("SELECT 1 AS one", ())
        [{'one': 1}]
    """

    @abstractmethod
    async def execute(self, sql: str, params: Sequence[Any] = ()) -> ExecutionResult:
        """Execute a parameterized statement.

        Args:
            sql: Statement text with `?` placeholders
            params: Parameter values in placeholder order

        Returns:
            Rows for row-producing statements, otherwise a WriteOutcome

        Raises:
            StatementExecutionError: On malformed statements or constraint violations
        """
        ...

    @abstractmethod
    async def describe_columns(self, table: str) -> List[ColumnInfo]:
        """Report the current columns of a table."""
        ...

    @abstractmethod
    async def table_exists(self, table: str) -> bool:
        """Whether a table exists."""
        ...
