"""
Shared test fixtures for sqlmoose.

RecordingExecutor stands in for a real store: it records every statement,
answers SELECTs from a scripted queue and can be told to fail.
"""

from typing import Any, Callable, Dict, List, Optional, Sequence

import pytest

from sqlmoose.errors import StatementExecutionError
from sqlmoose.executor.base import ColumnInfo, WriteOutcome
from sqlmoose.executor.sqlite import SQLiteExecutor


class RecordingExecutor:
    """In-memory Executor double that records statements."""

    def __init__(
        self,
        tables: Optional[Dict[str, List[ColumnInfo]]] = None,
        fail_when: Optional[Callable[[str], bool]] = None,
    ) -> None:
        self.tables = tables or {}
        self.fail_when = fail_when
        self.statements: List[tuple] = []
        self.results: List[List[Dict[str, Any]]] = []
        self.next_id = 1
        self.inspection_error: Optional[Exception] = None

    @property
    def texts(self) -> List[str]:
        return [text for text, _ in self.statements]

    async def execute(self, sql: str, params: Sequence[Any] = ()):
        self.statements.append((sql, tuple(params)))
        if self.fail_when is not None and self.fail_when(sql):
            raise StatementExecutionError("simulated failure", statement=sql, params=params)
        if sql.startswith("SELECT"):
            return self.results.pop(0) if self.results else []
        if sql.startswith("INSERT"):
            inserted = self.next_id
            self.next_id += 1
            return WriteOutcome(inserted_id=inserted, affected_count=1)
        return WriteOutcome(affected_count=1)

    async def describe_columns(self, table: str) -> List[ColumnInfo]:
        if self.inspection_error is not None:
            raise self.inspection_error
        return list(self.tables.get(table, []))

    async def table_exists(self, table: str) -> bool:
        if self.inspection_error is not None:
            raise self.inspection_error
        return table in self.tables


@pytest.fixture
def recorder():
    """Fresh recording executor with no tables."""
    return RecordingExecutor()


@pytest.fixture
def sqlite_executor():
    """In-memory SQLite executor."""
    executor = SQLiteExecutor(":memory:")
    yield executor
    executor.close()
