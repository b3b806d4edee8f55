"""
Statement executors for sqlmoose.

The Executor protocol is the single boundary between the document layer and
the relational store. SQLiteExecutor is the bundled implementation.
"""

from .base import ColumnInfo, ExecutionResult, Executor, Row, WriteOutcome
from .sqlite import SQLiteExecutor

__all__ = [
    "Executor",
    "ExecutionResult",
    "ColumnInfo",
    "Row",
    "WriteOutcome",
    "SQLiteExecutor",
]
