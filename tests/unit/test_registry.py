"""
Unit tests for the model registry.

Tests cover:
- get_or_create idempotence
- Lookup of unknown models
- Shared executor and dialect
- Waiting for synchronization
"""

import pytest

from sqlmoose.config import Settings
from sqlmoose.dialect import SQLiteDialect
from sqlmoose.errors import ModelNotRegisteredError
from sqlmoose.registry import ModelRegistry
from sqlmoose.schema.sync import ChangeKind
from sqlmoose.schema.types import Schema
from tests.conftest import RecordingExecutor


class TestModelRegistry:
    """Tests for ModelRegistry."""

    def test_get_or_create_is_idempotent(self):
        """The same name yields the same model."""
        registry = ModelRegistry(RecordingExecutor())
        User = registry.get_or_create("User", Schema({"name": str}))

        assert registry.get_or_create("User") is User
        assert registry.get_or_create("User", {"name": str}) is User
        assert len(registry) == 1

    def test_differing_schema_is_ignored(self):
        """A second schema for a registered name does not replace the model."""
        registry = ModelRegistry(RecordingExecutor())
        User = registry.get_or_create("User", {"name": str})

        again = registry.get_or_create("User", {"name": str, "age": int})

        assert again is User
        assert list(again.schema.fields) == ["name"]

    def test_unknown_without_schema_raises(self):
        """Looking up an unregistered name without a schema fails."""
        registry = ModelRegistry(RecordingExecutor())

        with pytest.raises(ModelNotRegisteredError, match="'Ghost' is not registered"):
            registry.get_or_create("Ghost")

        assert registry.get("Ghost") is None
        assert "Ghost" not in registry

    def test_models_share_executor_and_dialect(self):
        """Every model uses the registry's executor and dialect."""
        executor = RecordingExecutor()
        dialect = SQLiteDialect()
        registry = ModelRegistry(executor, dialect)

        User = registry.get_or_create("User", {"name": str})
        Post = registry.model("Post", {"title": str})

        assert User.executor is executor and Post.executor is executor
        assert User.dialect is dialect and Post.dialect is dialect
        assert registry.names() == ["User", "Post"]
        assert [m.name for m in registry] == ["User", "Post"]

    def test_table_names(self):
        """Table names derive from entity names and the suffix."""
        registry = ModelRegistry(RecordingExecutor(), table_suffix="_rows")

        assert registry.get_or_create("User", {"name": str}).table_name == "user_rows"
        assert registry.get_or_create("Log", {"line": str}, table_name="audit").table_name == "audit"

    def test_separate_registries_are_independent(self):
        """There is no global registry state."""
        first = ModelRegistry(RecordingExecutor())
        second = ModelRegistry(RecordingExecutor())
        first.get_or_create("User", {"name": str})

        assert "User" not in second

    def test_from_settings(self):
        """Settings choose the dialect and suffix."""
        registry = ModelRegistry.from_settings(
            Settings(dialect="sqlite", table_suffix="_t"),
            executor=RecordingExecutor(),
        )

        assert isinstance(registry.dialect, SQLiteDialect)
        assert registry.get_or_create("User", {"name": str}).table_name == "user_t"

    @pytest.mark.asyncio
    async def test_ready_waits_for_every_model(self, recorder):
        """ready() reports each model's synchronization."""
        registry = ModelRegistry(recorder)
        registry.get_or_create("User", {"name": str})
        registry.get_or_create("Post", {"title": str})

        reports = await registry.ready()

        assert set(reports) == {"User", "Post"}
        assert all(r.applied[0].kind is ChangeKind.TABLE_CREATED for r in reports.values())
        assert recorder.texts == [
            "CREATE TABLE `users` (`id` INT AUTO_INCREMENT PRIMARY KEY, `name` VARCHAR(255))",
            "CREATE TABLE `posts` (`id` INT AUTO_INCREMENT PRIMARY KEY, `title` VARCHAR(255))",
        ]
