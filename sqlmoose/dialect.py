"""
SQL dialects for sqlmoose.

Compilers produce statement text through a Dialect so the same document
operations can target MySQL 8 (the default) or SQLite.

Differences covered:
- Identity column declaration
- Column type modification (SQLite has none)
- Single-row UPDATE/DELETE (SQLite builds lack `LIMIT` on writes)
- OFFSET without LIMIT

How to change safely:
    - Keep statement text identical for MySQL; compiler tests pin it
    - New dialects override only what differs from MySQL
"""

from __future__ import annotations

from typing import Optional


class Dialect:
    """MySQL-flavoured base dialect.

    Attributes:
        name: Dialect name
        varchar_length: Length of bounded-length text columns
    """

    name = "mysql"
    quote_char = "`"
    json_extract_function = "JSON_EXTRACT"
    regex_operator = "REGEXP"
    unbounded_limit = "18446744073709551615"

    def __init__(self, varchar_length: int = 255) -> None:
        self.varchar_length = varchar_length

    def quote(self, identifier: str) -> str:
        """Quote an identifier, escaping embedded quote characters."""
        q = self.quote_char
        return f"{q}{identifier.replace(q, q + q)}{q}"

    def identity_column(self, name: str = "id") -> str:
        return f"{self.quote(name)} INT AUTO_INCREMENT PRIMARY KEY"

    def create_table(self, table: str, column_defs: list[str]) -> str:
        columns = [self.identity_column()] + column_defs
        return f"CREATE TABLE {self.quote(table)} ({', '.join(columns)})"

    def add_column(self, table: str, column: str, storage_type: str) -> str:
        return f"ALTER TABLE {self.quote(table)} ADD COLUMN {self.quote(column)} {storage_type}"

    def modify_column(self, table: str, column: str, storage_type: str) -> Optional[str]:
        """Statement changing a column's type, or None if unsupported."""
        return f"ALTER TABLE {self.quote(table)} MODIFY COLUMN {self.quote(column)} {storage_type}"

    def json_extract(self, column: str, json_path: str) -> str:
        escaped = json_path.replace("'", "''")
        return f"{self.json_extract_function}({self.quote(column)}, '{escaped}')"

    def insert_defaults(self, table: str) -> str:
        return f"INSERT INTO {self.quote(table)} () VALUES ()"

    def single_row(self, table: str, where: str) -> str:
        """Tail restricting an UPDATE/DELETE to at most one row."""
        clause = f" WHERE {where}" if where else ""
        return f"{clause} LIMIT 1"

    def limit_offset(self, limit: Optional[int], offset: Optional[int]) -> str:
        parts = []
        if limit is not None:
            parts.append(f"LIMIT {int(limit)}")
        if offset is not None:
            if limit is None:
                parts.append(f"LIMIT {self.unbounded_limit}")
            parts.append(f"OFFSET {int(offset)}")
        return " ".join(parts)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(varchar_length={self.varchar_length})"


class MySQLDialect(Dialect):
    """MySQL 8.0 dialect."""


class SQLiteDialect(Dialect):
    """SQLite dialect (JSON1 functions and a registered REGEXP required)."""

    name = "sqlite"
    json_extract_function = "json_extract"
    unbounded_limit = "-1"

    def identity_column(self, name: str = "id") -> str:
        return f"{self.quote(name)} INTEGER PRIMARY KEY AUTOINCREMENT"

    def modify_column(self, table: str, column: str, storage_type: str) -> Optional[str]:
        return None

    def insert_defaults(self, table: str) -> str:
        return f"INSERT INTO {self.quote(table)} DEFAULT VALUES"

    def single_row(self, table: str, where: str) -> str:
        clause = f" WHERE {where}" if where else ""
        pk = self.quote("id")
        return f" WHERE {pk} IN (SELECT {pk} FROM {self.quote(table)}{clause} LIMIT 1)"


_DIALECTS = {
    "mysql": MySQLDialect,
    "sqlite": SQLiteDialect,
}


def get_dialect(name: str, varchar_length: int = 255) -> Dialect:
    """Create a dialect by name.

    Args:
        name: "mysql" or "sqlite"
        varchar_length: Length of bounded-length text columns

    Raises:
        ValueError: If the dialect name is unknown
    """
    try:
        dialect_cls = _DIALECTS[name.lower()]
    except KeyError:
        raise ValueError(f"Unknown dialect '{name}'. Valid dialects: {sorted(_DIALECTS)}") from None
    return dialect_cls(varchar_length=varchar_length)
