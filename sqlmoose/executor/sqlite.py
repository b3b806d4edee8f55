"""
SQLite executor for sqlmoose.

This module runs compiled statements against a SQLite database using the
standard library driver. It is the reference executor used for local
development and tests; pair it with SQLiteDialect.

Invariants:
    - One connection per executor, autocommit mode
    - Rows are returned as plain dicts
    - A REGEXP function is registered on the connection
    - Driver errors are wrapped in StatementExecutionError

How to change safely:
    - Keep the Executor protocol contract (rows vs WriteOutcome)
    - Test with both file-backed and in-memory databases
"""

from __future__ import annotations

import logging
import re
import sqlite3
from pathlib import Path
from typing import Any, List, Optional, Sequence

from ..errors import StatementExecutionError
from .base import ColumnInfo, ExecutionResult, Row, WriteOutcome

logger = logging.getLogger(__name__)


def _regexp(pattern: Optional[str], value: Any) -> bool:
    if pattern is None or value is None:
        return False
    return re.search(pattern, str(value)) is not None


class SQLiteExecutor:
    """Executor backed by a SQLite database.

    Example:
        >>> async with SQLiteExecutor("/tmp/app.db") as executor:
        ...     registry = ModelRegistry(executor, SQLiteDialect())
    """

    def __init__(self, database: str = ":memory:", busy_timeout_ms: int = 5000) -> None:
        """Initialize the executor.

        Args:
            database: SQLite file path or ":memory:"
            busy_timeout_ms: SQLite busy timeout
        """
        self.database = database
        self.busy_timeout_ms = busy_timeout_ms
        self._conn: Optional[sqlite3.Connection] = None

    @property
    def connection(self) -> sqlite3.Connection:
        """The open connection, created on first use."""
        if self._conn is None:
            if self.database != ":memory:":
                Path(self.database).parent.mkdir(parents=True, exist_ok=True)
            conn = sqlite3.connect(
                self.database,
                timeout=self.busy_timeout_ms / 1000.0,
                isolation_level=None,
            )
            conn.row_factory = sqlite3.Row
            conn.create_function("REGEXP", 2, _regexp)
            self._conn = conn
            logger.debug(f"Opened SQLite database: {self.database}")
        return self._conn

    async def execute(self, sql: str, params: Sequence[Any] = ()) -> ExecutionResult:
        logger.debug("Executing statement", extra={"statement": sql})
        try:
            cursor = self.connection.execute(sql, tuple(params))
            if cursor.description is not None:
                return [dict(row) for row in cursor.fetchall()]
            inserted_id = cursor.lastrowid if sql.lstrip().upper().startswith("INSERT") else None
            return WriteOutcome(inserted_id=inserted_id, affected_count=max(cursor.rowcount, 0))
        except sqlite3.Error as e:
            raise StatementExecutionError(str(e), statement=sql, params=params) from e

    async def describe_columns(self, table: str) -> List[ColumnInfo]:
        escaped = table.replace("'", "''")
        rows: List[Row] = await self.execute(f"PRAGMA table_info('{escaped}')")  # type: ignore[assignment]
        return [ColumnInfo(name=row["name"], native_type=row["type"]) for row in rows]

    async def table_exists(self, table: str) -> bool:
        rows = await self.execute(
            "SELECT name FROM sqlite_master WHERE type = 'table' AND name = ?",
            (table,),
        )
        return bool(rows)

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    async def __aenter__(self) -> SQLiteExecutor:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
