"""
Write statement compilers (INSERT, UPDATE, DELETE).

Filters use the condition compiler, so dotted paths and operator
documents work for writes as they do for reads. An empty filter targets
every row.
"""

from __future__ import annotations

from typing import Any, List, Mapping, Optional, Sequence, Tuple

from ..dialect import Dialect
from .conditions import compile_filter, conjoin
from .statement import CompiledStatement


def compile_insert(table: str, pairs: Sequence[Tuple[str, Any]], dialect: Dialect) -> CompiledStatement:
    """INSERT for encoded (column, value) pairs."""
    if not pairs:
        return CompiledStatement(dialect.insert_defaults(table))
    columns = ", ".join(dialect.quote(name) for name, _ in pairs)
    placeholders = ", ".join("?" for _ in pairs)
    return CompiledStatement(
        f"INSERT INTO {dialect.quote(table)} ({columns}) VALUES ({placeholders})",
        tuple(value for _, value in pairs),
    )


def _where(conditions: Optional[Mapping[str, Any]], dialect: Dialect) -> CompiledStatement:
    where = conjoin(compile_filter(conditions, dialect))
    return where if where is not None else CompiledStatement("")


def compile_update(
    table: str,
    pairs: Sequence[Tuple[str, Any]],
    conditions: Optional[Mapping[str, Any]],
    dialect: Dialect,
    single: bool = False,
) -> CompiledStatement:
    """UPDATE setting encoded pairs on rows matching `conditions`.

    Args:
        single: Restrict the update to at most one row
    """
    assignments = ", ".join(f"{dialect.quote(name)} = ?" for name, _ in pairs)
    where = _where(conditions, dialect)
    text = f"UPDATE {dialect.quote(table)} SET {assignments}"
    if single:
        text += dialect.single_row(table, where.text)
    elif where.text:
        text += f" WHERE {where.text}"
    params: List[Any] = [value for _, value in pairs]
    params.extend(where.params)
    return CompiledStatement(text, tuple(params))


def compile_delete(
    table: str,
    conditions: Optional[Mapping[str, Any]],
    dialect: Dialect,
    single: bool = False,
) -> CompiledStatement:
    """DELETE rows matching `conditions`."""
    where = _where(conditions, dialect)
    text = f"DELETE FROM {dialect.quote(table)}"
    if single:
        text += dialect.single_row(table, where.text)
    elif where.text:
        text += f" WHERE {where.text}"
    return CompiledStatement(text, where.params)
