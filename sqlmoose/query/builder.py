"""
Chainable query builder.

A Query accumulates filter and sort state for one source table and compiles
it on demand:

    SELECT * FROM `users` WHERE c1 AND c2 ORDER BY s1, s2 LIMIT n OFFSET m

Example:
    >>> rows = await (
    ...     User.find()
    ...     .where("profile.email", "a@b.com")
    ...     .gte("age", 18)
    ...     .sort("name", "desc")
    ...     .exec()
    ... )

Thread safety:
    A Query is owned by whoever holds it. Do not share one instance between
    concurrent logical operations.
"""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Tuple, Union

from ..callbacks import Callback, deliver
from ..codec import Fields, decode_rows
from ..dialect import Dialect, MySQLDialect
from ..executor.base import Executor
from .conditions import Operator, compile_condition, compile_filter, compile_sort, conjoin
from .statement import CompiledStatement

logger = logging.getLogger(__name__)


class Query:
    """Mutable filter/sort accumulator bound to an executor.

    Attributes:
        table: Source table name
        dialect: SQL dialect used for compilation
    """

    def __init__(
        self,
        executor: Optional[Executor] = None,
        dialect: Optional[Dialect] = None,
        table: Optional[str] = None,
        fields: Optional[Fields] = None,
        prepare: Optional[Callable[[], Awaitable[Any]]] = None,
    ) -> None:
        """Initialize an empty query.

        Args:
            executor: Executor used by exec()/first()
            dialect: SQL dialect (MySQL if omitted)
            table: Source table
            fields: Field descriptors for schema-aware decoding
            prepare: Awaited before execution (e.g. pending table sync)
        """
        self.executor = executor
        self.dialect = dialect or MySQLDialect()
        self.table = table
        self._fields = fields
        self._prepare = prepare
        self._conditions: List[CompiledStatement] = []
        self._sort_keys: List[Tuple[str, str]] = []
        self._limit: Optional[int] = None
        self._skip: Optional[int] = None

    def from_(self, table: str) -> Query:
        self.table = table
        return self

    def _add(self, path: str, operator: Operator, operand: Any) -> Query:
        clause = compile_condition(path, operator, operand, self.dialect)
        if clause is not None:
            self._conditions.append(clause)
        return self

    def where(self, field: Union[str, Mapping[str, Any]], value: Any = None) -> Query:
        """Add equality conditions from a field/value pair or a mapping."""
        if isinstance(field, Mapping):
            self._conditions.extend(compile_filter(field, self.dialect))
            return self
        return self._add(field, Operator.EQ, value)

    def equals(self, field: str, value: Any) -> Query:
        return self._add(field, Operator.EQ, value)

    def ne(self, field: str, value: Any) -> Query:
        return self._add(field, Operator.NE, value)

    def in_(self, field: str, values: Any) -> Query:
        """Membership filter. An empty collection adds no condition."""
        return self._add(field, Operator.IN, values)

    def lte(self, field: str, value: Any) -> Query:
        return self._add(field, Operator.LTE, value)

    def gte(self, field: str, value: Any) -> Query:
        return self._add(field, Operator.GTE, value)

    def regex(self, field: str, pattern: Any) -> Query:
        return self._add(field, Operator.REGEX, pattern)

    def sort(self, field: str, direction: Any = "asc") -> Query:
        """Sort by a field or dotted path; ascending unless "desc"/-1."""
        self._sort_keys.append((field, direction))
        return self

    def limit(self, count: int) -> Query:
        self._limit = count
        return self

    def skip(self, count: int) -> Query:
        self._skip = count
        return self

    def compile(self) -> CompiledStatement:
        """Compile the accumulated state into a SELECT statement."""
        text = f"SELECT * FROM {self.dialect.quote(self.table or '')}"
        params: List[Any] = []

        where = conjoin(self._conditions)
        if where is not None:
            text += f" WHERE {where.text}"
            params.extend(where.params)

        if self._sort_keys:
            order = ", ".join(compile_sort(p, d, self.dialect) for p, d in self._sort_keys)
            text += f" ORDER BY {order}"

        tail = self.dialect.limit_offset(self._limit, self._skip)
        if tail:
            text += f" {tail}"

        return CompiledStatement(text, tuple(params))

    async def _run(self) -> List[Dict[str, Any]]:
        if self.executor is None:
            raise RuntimeError("Query has no executor")
        if self._prepare is not None:
            await self._prepare()
        statement = self.compile()
        logger.debug(f"Query: {statement.text}", extra={"params": statement.params})
        rows = await self.executor.execute(statement.text, statement.params)
        return decode_rows(rows, self._fields)  # type: ignore[arg-type]

    async def _run_first(self) -> Optional[Dict[str, Any]]:
        rows = await self._run()
        return rows[0] if rows else None

    def exec(self, callback: Optional[Callback] = None):
        """Execute the query.

        Returns an awaitable of decoded rows, or schedules execution and
        reports `callback(error, rows)` when a callback is given.
        """
        return deliver(self._run(), callback)

    def first(self, callback: Optional[Callback] = None):
        """Execute and yield only the first row, or None if there is none."""
        return deliver(self._run_first(), callback)

    def __repr__(self) -> str:
        return f"Query({self.compile().text!r})"
