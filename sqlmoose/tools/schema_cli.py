"""
Schema CLI tool for sqlmoose.

This tool inspects and applies table synchronization for schemas kept in a
JSON file (entity name -> definition, with string type markers):

    {"User": {"name": "String", "age": {"type": "Number", "default": 0},
              "profile": {"email": "String"}}}

Usage:
    sqlmoose-schema describe --file schema.json
    sqlmoose-schema plan --file schema.json --entity User --database app.db
    sqlmoose-schema sync --file schema.json --entity User --database app.db

Invariants:
    - plan never modifies the database
    - sync exits non-zero if any structural change failed
    - Output is deterministic (sorted JSON)
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from typing import Any, Dict, List, Optional

from ..config import Settings, setup_logging
from ..dialect import Dialect, get_dialect
from ..executor.base import Executor
from ..executor.sqlite import SQLiteExecutor
from ..model import table_name_for
from ..schema import EntitySchema, SyncReport, TableSynchronizer

logger = logging.getLogger(__name__)


class SchemaCLI:
    """CLI operations over a schema file.

    Example:
        >>> cli = SchemaCLI(SQLiteExecutor("app.db"), get_dialect("sqlite"))
        >>> statements = await cli.plan(schemas["User"])
    """

    def __init__(self, executor: Executor, dialect: Dialect, table_suffix: str = "s") -> None:
        self.executor = executor
        self.dialect = dialect
        self.table_suffix = table_suffix

    def _synchronizer(self, schema: EntitySchema, table: Optional[str]) -> TableSynchronizer:
        return TableSynchronizer(
            schema,
            table or table_name_for(schema.entity_name, self.table_suffix),
            self.dialect,
        )

    @staticmethod
    def describe(schemas: Dict[str, EntitySchema]) -> str:
        """Normalized schemas as JSON."""
        output = {name: schema.to_dict()["fields"] for name, schema in schemas.items()}
        return json.dumps(output, indent=2, sort_keys=True, default=str)

    async def plan(self, schema: EntitySchema, table: Optional[str] = None) -> List[str]:
        """Statements a sync would issue, without issuing them."""
        _, changes = await self._synchronizer(schema, table).plan(self.executor)
        return [
            change.statement or f"-- unsupported: {change}"
            for change in changes
        ]

    async def sync(self, schema: EntitySchema, table: Optional[str] = None) -> SyncReport:
        """Apply structural changes."""
        return await self._synchronizer(schema, table).run(self.executor)


def load_schemas(path: str) -> Dict[str, EntitySchema]:
    """Load entity schemas from a JSON file.

    Args:
        path: Path to a JSON object mapping entity names to definitions

    Returns:
        Mapping of entity name to EntitySchema
    """
    with open(path) as f:
        data: Dict[str, Any] = json.load(f)
    return {
        name: EntitySchema.from_definition(name, definition)
        for name, definition in data.items()
    }


def main(argv: Optional[List[str]] = None) -> None:
    """CLI entry point for schema tool."""
    parser = argparse.ArgumentParser(description="sqlmoose schema tool")
    subparsers = parser.add_subparsers(dest="command", required=True)

    describe_parser = subparsers.add_parser("describe", help="Print normalized schemas")
    describe_parser.add_argument("--file", "-f", required=True, help="Schema JSON file")

    for command, help_text in (
        ("plan", "Show structural statements without applying them"),
        ("sync", "Apply structural statements"),
    ):
        sub = subparsers.add_parser(command, help=help_text)
        sub.add_argument("--file", "-f", required=True, help="Schema JSON file")
        sub.add_argument("--entity", "-e", required=True, help="Entity name in the file")
        sub.add_argument("--database", "-d", help="SQLite database (default: SQLMOOSE_DATABASE)")
        sub.add_argument("--table", help="Explicit table name")

    args = parser.parse_args(argv)
    settings = Settings()
    setup_logging(settings)

    schemas = load_schemas(args.file)

    if args.command == "describe":
        print(SchemaCLI.describe(schemas))
        sys.exit(0)

    schema = schemas.get(args.entity)
    if schema is None:
        print(f"Entity '{args.entity}' not found in {args.file}", file=sys.stderr)
        sys.exit(2)

    executor = SQLiteExecutor(args.database or settings.database)
    cli = SchemaCLI(
        executor,
        get_dialect("sqlite", varchar_length=settings.varchar_length),
        table_suffix=settings.table_suffix,
    )

    try:
        if args.command == "plan":
            statements = asyncio.run(cli.plan(schema, args.table))
            if not statements:
                print("Table is up to date")
            for statement in statements:
                print(f"{statement};")
            sys.exit(0)

        report = asyncio.run(cli.sync(schema, args.table))
    finally:
        executor.close()

    for change in report.applied:
        print(f"  [OK] {change}")
    for change, error in report.failed:
        print(f"  [FAILED] {change}: {error}")
    if report.error is not None:
        print(f"Could not inspect table {report.table}: {report.error}")
    sys.exit(0 if report.ok else 1)


if __name__ == "__main__":
    main()
