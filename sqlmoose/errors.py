"""
Error types for sqlmoose.

This module defines the exception taxonomy:
- MooseError: Base exception
- StatementExecutionError: The executor rejected a compiled statement
- StructuralSyncError: A structural (DDL) statement failed during sync
- ModelNotRegisteredError: Registry lookup of an unknown entity

Invariants:
    - All errors inherit from MooseError
    - Compilers never raise on malformed input shapes; only the executor
      boundary produces user-visible failures
    - StructuralSyncError is recorded, never propagated out of a sync run
"""

from __future__ import annotations

from typing import Any, Dict, Optional, Sequence


class MooseError(Exception):
    """Base exception for all sqlmoose errors.

    Attributes:
        message: Error message
        code: Error code for programmatic handling
        details: Additional error context
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or "MOOSE_ERROR"
        self.details = details or {}


class StatementExecutionError(MooseError):
    """The store rejected a statement.

    Raised when:
    - The statement is malformed for the target store
    - A constraint is violated
    - The underlying driver reports any other failure
    """

    def __init__(
        self,
        message: str,
        statement: Optional[str] = None,
        params: Optional[Sequence[Any]] = None,
    ) -> None:
        super().__init__(
            message,
            code="STATEMENT_EXECUTION_ERROR",
            details={"statement": statement, "params": list(params or ())},
        )
        self.statement = statement
        self.params = list(params or ())


class StructuralSyncError(MooseError):
    """A structural statement failed while synchronizing a table."""

    def __init__(
        self,
        message: str,
        table: str,
        column: Optional[str] = None,
        statement: Optional[str] = None,
    ) -> None:
        super().__init__(
            message,
            code="STRUCTURAL_SYNC_ERROR",
            details={"table": table, "column": column, "statement": statement},
        )
        self.table = table
        self.column = column
        self.statement = statement


class ModelNotRegisteredError(MooseError):
    """No model is registered under the requested name."""

    def __init__(self, name: str) -> None:
        super().__init__(
            f"Model '{name}' is not registered and no schema was given",
            code="MODEL_NOT_REGISTERED",
            details={"name": name},
        )
        self.name = name
