"""
Model registry for sqlmoose.

The registry is owned by the composing application; there is no global
instance. It hands out one Model per entity name and shares the executor
and dialect between them.

Invariants:
    - At most one Model per entity name
    - get_or_create() is idempotent: a second call returns the first model
    - Registration is thread-safe (uses internal lock)

Example:
    >>> registry = ModelRegistry(SQLiteExecutor("app.db"), SQLiteDialect())
    >>> User = registry.get_or_create("User", Schema({"name": str}))
    >>> registry.get_or_create("User") is User
    True
"""

from __future__ import annotations

import asyncio
import logging
import threading
from typing import Dict, Iterator, Optional

from .config import Settings
from .dialect import Dialect, MySQLDialect
from .errors import ModelNotRegisteredError
from .executor.base import Executor
from .executor.sqlite import SQLiteExecutor
from .model import Model, SchemaLike
from .schema.sync import SyncReport
from .schema.types import Schema

logger = logging.getLogger(__name__)


class ModelRegistry:
    """Registry of models sharing one executor.

    Attributes:
        executor: Statement executor given to every model
        dialect: SQL dialect given to every model
        table_suffix: Suffix for derived table names
    """

    def __init__(
        self,
        executor: Executor,
        dialect: Optional[Dialect] = None,
        table_suffix: str = "s",
    ) -> None:
        self.executor = executor
        self.dialect = dialect or MySQLDialect()
        self.table_suffix = table_suffix
        self._models: Dict[str, Model] = {}
        self._lock = threading.Lock()

    @classmethod
    def from_settings(cls, settings: Settings, executor: Optional[Executor] = None) -> ModelRegistry:
        """Build a registry from settings.

        Without an explicit executor, a SQLiteExecutor on `settings.database`
        is used.
        """
        return cls(
            executor=executor or SQLiteExecutor(settings.database),
            dialect=settings.dialect_impl(),
            table_suffix=settings.table_suffix,
        )

    def get_or_create(
        self,
        name: str,
        schema: Optional[SchemaLike] = None,
        table_name: Optional[str] = None,
    ) -> Model:
        """Return the model registered under `name`, creating it if absent.

        Args:
            name: Entity name
            schema: Schema used when the model does not exist yet
            table_name: Explicit table name for a new model

        Raises:
            ModelNotRegisteredError: If absent and no schema is given
        """
        with self._lock:
            existing = self._models.get(name)
            if existing is not None:
                if schema is not None and _fields_of(schema) != dict(existing.schema.fields):
                    logger.warning(
                        f"Model '{name}' already registered; ignoring the differing schema"
                    )
                return existing

            if schema is None:
                raise ModelNotRegisteredError(name)

            model = Model(
                name,
                schema,
                self.executor,
                dialect=self.dialect,
                table_name=table_name,
                table_suffix=self.table_suffix,
            )
            self._models[name] = model
            logger.debug(f"Registered model: {name} (table={model.table_name})")
            return model

    model = get_or_create

    def get(self, name: str) -> Optional[Model]:
        return self._models.get(name)

    def names(self) -> list[str]:
        return list(self._models)

    async def ready(self) -> Dict[str, Optional[SyncReport]]:
        """Wait for every model's synchronization."""
        models = list(self._models.values())
        reports = await asyncio.gather(*(m.ready() for m in models))
        return {m.name: report for m, report in zip(models, reports)}

    def __contains__(self, name: object) -> bool:
        return name in self._models

    def __iter__(self) -> Iterator[Model]:
        return iter(list(self._models.values()))

    def __len__(self) -> int:
        return len(self._models)


def _fields_of(schema: SchemaLike) -> dict:
    if isinstance(schema, Schema):
        return dict(schema.fields)
    if hasattr(schema, "fields"):
        return dict(schema.fields)  # type: ignore[union-attr]
    return dict(Schema(schema).fields)  # type: ignore[arg-type]
