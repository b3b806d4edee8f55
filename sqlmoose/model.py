"""
Entity gateway.

A Model binds one named entity to its table. It owns the entity schema,
starts table synchronization when constructed, and exposes document-style
create/find/update/delete/aggregate operations.

Every operation accepts an optional node-style `callback(error, result)`:
- without a callback it returns an awaitable
- with a callback it is scheduled immediately on the running event loop
  and the scheduled task is returned; the outcome is reported to the
  callback. Calling this form outside a running loop raises RuntimeError
Both forms run the same unit of work and report the same failure.

Invariants:
    - Table name is the lowercased entity name plus a suffix ("User" -> "users")
    - Synchronization starts once, at construction when an event loop is
      running, otherwise on first use; operations wait for it to finish
    - Synchronization failures never make the model unusable
    - Execution failures are reported through the awaitable or the callback,
      never raised synchronously

Example:
    >>> User = Model("User", Schema({"name": str, "age": int}), executor)
    >>> user = await User.create({"name": "Ann", "age": 30})
    >>> await User.find({"age": 30}).exec()
    [{'id': 1, 'name': 'Ann', 'age': 30}]
    >>> await User.update_one({"id": user["id"]}, {"age": 31})
    WriteOutcome(inserted_id=None, affected_count=1)
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Dict, List, Mapping, MutableMapping, Optional, Sequence, Union

from .callbacks import Callback, deliver
from .codec import decode_rows, encode_document, encode_value
from .dialect import Dialect, MySQLDialect
from .executor.base import ExecutionResult, Executor, WriteOutcome
from .query.aggregate import compile_pipeline
from .query.builder import Query
from .query.statement import CompiledStatement
from .query.writes import compile_delete, compile_insert, compile_update
from .schema.sync import SyncReport, TableSynchronizer
from .schema.types import IDENTITY_FIELD, EntitySchema, Schema

logger = logging.getLogger(__name__)

SchemaLike = Union[Schema, EntitySchema, Mapping[str, Any]]


def table_name_for(entity_name: str, suffix: str = "s") -> str:
    return f"{entity_name.lower()}{suffix}"


class Model:
    """Document-style gateway to one entity's table.

    Attributes:
        name: Entity name
        schema: The bound entity schema
        executor: Statement executor
        dialect: SQL dialect
        table_name: Backing table
        sync_report: Result of the last synchronization, once finished
    """

    def __init__(
        self,
        name: str,
        schema: SchemaLike,
        executor: Executor,
        dialect: Optional[Dialect] = None,
        table_name: Optional[str] = None,
        table_suffix: str = "s",
        synchronize: bool = True,
    ) -> None:
        """Create the model and start table synchronization.

        Args:
            name: Entity name
            schema: Schema, EntitySchema or raw definition mapping
            executor: Statement executor
            dialect: SQL dialect (MySQL if omitted)
            table_name: Explicit table name
            table_suffix: Suffix for the derived table name
            synchronize: Whether to reconcile the table structure
        """
        self.name = name
        if isinstance(schema, EntitySchema):
            self.schema = schema
        elif isinstance(schema, Schema):
            self.schema = schema.bind(name)
        else:
            self.schema = Schema(schema).bind(name)
        self.executor = executor
        self.dialect = dialect or MySQLDialect()
        self.table_name = table_name or table_name_for(name, table_suffix)
        self.sync_report: Optional[SyncReport] = None

        self._synchronize_enabled = synchronize
        self._synchronizer = TableSynchronizer(self.schema, self.table_name, self.dialect)
        self._sync_task: Optional[asyncio.Future] = None

        if synchronize:
            try:
                loop = asyncio.get_running_loop()
            except RuntimeError:
                logger.debug(f"No running loop; deferring sync of {self.table_name} to first use")
            else:
                self._sync_task = loop.create_task(self._synchronize())

    async def _synchronize(self) -> SyncReport:
        report = await self._synchronizer.run(self.executor)
        self.sync_report = report
        return report

    async def ready(self) -> Optional[SyncReport]:
        """Wait for table synchronization; returns its report.

        Returns None when synchronization is disabled.
        """
        if not self._synchronize_enabled:
            return None
        if self._sync_task is None:
            self._sync_task = asyncio.ensure_future(self._synchronize())
        return await self._sync_task

    async def _execute(self, statement: CompiledStatement) -> ExecutionResult:
        await self.ready()
        logger.debug(f"{self.name}: {statement.text}", extra={"params": statement.params})
        return await self.executor.execute(statement.text, statement.params)

    def query(self) -> Query:
        """A fresh query positioned at this model's table."""
        return Query(
            executor=self.executor,
            dialect=self.dialect,
            table=self.table_name,
            fields=self.schema.fields,
            prepare=self.ready,
        )

    # Create

    async def _create(self, document: MutableMapping[str, Any]) -> MutableMapping[str, Any]:
        pairs = encode_document(document, self.schema.fields)
        outcome = await self._execute(compile_insert(self.table_name, pairs, self.dialect))
        if isinstance(outcome, WriteOutcome):
            document[IDENTITY_FIELD] = outcome.inserted_id
        return document

    def create(self, document: MutableMapping[str, Any], callback: Optional[Callback] = None):
        """Insert a document and assign its id.

        Declared defaults are applied to the document in place, and the
        store-assigned identity is written back as `id`.
        """
        return deliver(self._create(document), callback)

    # Read

    def find(
        self,
        conditions: Union[Mapping[str, Any], Callback, None] = None,
        callback: Optional[Callback] = None,
    ) -> Union[Query, asyncio.Future]:
        """Find documents matching an equality map.

        The result type follows the calling convention:
        - without a callback, a Query with the filter applied, so further
          conditions and sorts can be chained before exec()
        - with a callback, the scheduled task; rows go to the callback

        A callable passed in place of the filter is taken as the callback
        with an empty filter (`find(callback)`).
        """
        if callback is None and callable(conditions):
            conditions, callback = None, conditions
        query = self.query().where(conditions or {})
        if callback is None:
            return query
        return query.exec(callback)

    def find_one(
        self,
        conditions: Union[Mapping[str, Any], Callback, None] = None,
        callback: Optional[Callback] = None,
    ) -> Union[Awaitable[Optional[Dict[str, Any]]], asyncio.Future]:
        """First matching document, or None.

        Returns an awaitable without a callback, otherwise the scheduled
        task. Accepts `find_one(callback)` like find().
        """
        if callback is None and callable(conditions):
            conditions, callback = None, conditions
        return self.query().where(conditions or {}).first(callback)

    def find_by_id(self, id: Any, callback: Optional[Callback] = None):
        return self.find_one({IDENTITY_FIELD: id}, callback)

    # Update

    def _assignments(self, changes: Mapping[str, Any]) -> List[tuple]:
        if isinstance(changes.get("$set"), Mapping):
            changes = changes["$set"]
        return [(name, encode_value(value)) for name, value in changes.items()]

    async def _update(
        self,
        conditions: Optional[Mapping[str, Any]],
        changes: Mapping[str, Any],
        single: bool,
    ) -> WriteOutcome:
        pairs = self._assignments(changes or {})
        if not pairs:
            logger.debug(f"{self.name}: update with no assignments, nothing to do")
            return WriteOutcome(affected_count=0)
        statement = compile_update(self.table_name, pairs, conditions, self.dialect, single=single)
        return await self._execute(statement)  # type: ignore[return-value]

    def update(
        self,
        conditions: Optional[Mapping[str, Any]],
        changes: Mapping[str, Any],
        callback: Optional[Callback] = None,
    ):
        """Update every matching row."""
        return deliver(self._update(conditions, changes, single=False), callback)

    def update_one(
        self,
        conditions: Optional[Mapping[str, Any]],
        changes: Mapping[str, Any],
        callback: Optional[Callback] = None,
    ):
        """Update at most one matching row."""
        return deliver(self._update(conditions, changes, single=True), callback)

    # Delete

    async def _delete(self, conditions: Optional[Mapping[str, Any]], single: bool) -> WriteOutcome:
        statement = compile_delete(self.table_name, conditions, self.dialect, single=single)
        return await self._execute(statement)  # type: ignore[return-value]

    def delete_one(self, conditions: Optional[Mapping[str, Any]] = None, callback: Optional[Callback] = None):
        """Delete at most one matching row."""
        return deliver(self._delete(conditions, single=True), callback)

    def delete_many(self, conditions: Optional[Mapping[str, Any]] = None, callback: Optional[Callback] = None):
        """Delete every matching row. An empty filter deletes all rows."""
        return deliver(self._delete(conditions, single=False), callback)

    # Aggregate

    async def _aggregate(self, pipeline: Sequence[Mapping[str, Any]]) -> List[Dict[str, Any]]:
        statement = compile_pipeline(self.table_name, pipeline, self.dialect)
        rows = await self._execute(statement)
        return decode_rows(rows)  # type: ignore[arg-type]

    def aggregate(self, pipeline: Sequence[Mapping[str, Any]], callback: Optional[Callback] = None):
        """Run an aggregation pipeline (match/project/group/sort/limit/skip)."""
        return deliver(self._aggregate(pipeline), callback)

    def __repr__(self) -> str:
        return f"Model(name={self.name!r}, table={self.table_name!r}, fields={list(self.schema.fields)})"
