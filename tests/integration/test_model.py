"""
Integration tests for Model against SQLite.

Tests cover:
- Create/find/update/delete round trips
- Nested path queries over JSON columns
- Defaults, temporal and boolean round trips
- Callback and awaitable delivery
- Table synchronization on construction and schema evolution
"""

import asyncio
from datetime import datetime

import pytest

from sqlmoose.dialect import SQLiteDialect
from sqlmoose.errors import StatementExecutionError
from sqlmoose.executor.base import WriteOutcome
from sqlmoose.model import Model
from sqlmoose.schema.sync import ChangeKind
from sqlmoose.schema.types import Schema

USER_SCHEMA = Schema({
    "name": str,
    "age": int,
    "active": {"type": bool, "default": True},
    "joined": datetime,
    "profile": {"email": str},
})


def make_user_model(executor, schema=USER_SCHEMA):
    return Model("User", schema, executor, dialect=SQLiteDialect())


async def collect(start):
    """Run a callback-style call and return its (error, result)."""
    future = asyncio.get_running_loop().create_future()
    start(lambda err, result: future.set_result((err, result)))
    return await future


class TestCrud:
    """Tests for basic document operations."""

    @pytest.mark.asyncio
    async def test_create_and_find(self, sqlite_executor):
        """Created documents get ids and can be found by equality."""
        User = make_user_model(sqlite_executor)

        ann = await User.create({"name": "Ann", "age": 30})
        rows = await User.find({"name": "Ann"}).exec()

        assert ann["id"] == 1
        assert rows == [{
            "id": 1,
            "name": "Ann",
            "age": 30,
            "active": True,
            "joined": None,
            "profile": None,
        }]

    @pytest.mark.asyncio
    async def test_document_lifecycle(self, sqlite_executor):
        """Create, find, update by id, then delete to not-found."""
        User = Model("User", {"name": str, "age": int}, sqlite_executor, dialect=SQLiteDialect())

        ann = await User.create({"name": "Ann", "age": 30})
        assert await User.find({"age": 30}).exec() == [{"id": ann["id"], "name": "Ann", "age": 30}]

        await User.update({"id": ann["id"]}, {"age": 31})
        assert (await User.find_by_id(ann["id"]))["age"] == 31

        outcome = await User.delete_one({"id": ann["id"]})
        assert outcome.affected_count == 1
        assert await User.find_by_id(ann["id"]) is None

    @pytest.mark.asyncio
    async def test_table_created_on_construction(self, sqlite_executor):
        """Constructing a model synchronizes its table."""
        User = make_user_model(sqlite_executor)
        report = await User.ready()

        assert report.ok
        assert [c.kind for c in report.applied] == [ChangeKind.TABLE_CREATED]
        assert await sqlite_executor.table_exists("users")

    @pytest.mark.asyncio
    async def test_insertion_order_without_sort(self, sqlite_executor):
        """Unsorted results come back in insertion order."""
        User = make_user_model(sqlite_executor)
        for name in ("Cid", "Ann", "Bob"):
            await User.create({"name": name})

        rows = await User.find().exec()

        assert [r["name"] for r in rows] == ["Cid", "Ann", "Bob"]

    @pytest.mark.asyncio
    async def test_sort_and_limit(self, sqlite_executor):
        """sort/limit/skip shape the result."""
        User = make_user_model(sqlite_executor)
        for name, age in (("Ann", 30), ("Bob", 25), ("Cid", 35)):
            await User.create({"name": name, "age": age})

        rows = await User.find().sort("age", "desc").skip(1).limit(1).exec()

        assert [r["name"] for r in rows] == ["Ann"]

    @pytest.mark.asyncio
    async def test_find_one_and_find_by_id(self, sqlite_executor):
        """find_one yields one document or None."""
        User = make_user_model(sqlite_executor)
        bob = await User.create({"name": "Bob", "age": 25})

        assert (await User.find_one({"age": 25}))["name"] == "Bob"
        assert (await User.find_by_id(bob["id"]))["name"] == "Bob"
        assert await User.find_one({"name": "Nobody"}) is None

    @pytest.mark.asyncio
    async def test_operators(self, sqlite_executor):
        """Operator chains and operator documents filter rows."""
        User = make_user_model(sqlite_executor)
        for name, age in (("Ann", 30), ("Bob", 25), ("Abe", 40)):
            await User.create({"name": name, "age": age})

        adults = await User.find({"age": {"$gte": 30}}).sort("age").exec()
        a_names = await User.find().regex("name", "^A").ne("age", 40).exec()
        picked = await User.find().in_("name", ["Bob", "Abe"]).lte("age", 30).exec()

        assert [r["name"] for r in adults] == ["Ann", "Abe"]
        assert [r["name"] for r in a_names] == ["Ann"]
        assert [r["name"] for r in picked] == ["Bob"]

    @pytest.mark.asyncio
    async def test_empty_membership_does_not_filter(self, sqlite_executor):
        """in_ with an empty list leaves results unfiltered."""
        User = make_user_model(sqlite_executor)
        await User.create({"name": "Ann"})
        await User.create({"name": "Bob"})

        rows = await User.find().in_("name", []).exec()

        assert len(rows) == 2


class TestNestedDocuments:
    """Tests for JSON-backed nested fields."""

    @pytest.mark.asyncio
    async def test_nested_path_query(self, sqlite_executor):
        """Dotted paths query inside structured columns."""
        User = make_user_model(sqlite_executor)
        await User.create({"name": "Ann", "profile": {"email": "a@b.com"}})
        await User.create({"name": "Bob", "profile": {"email": "b@b.com"}})

        rows = await User.find().where("profile.email", "a@b.com").exec()

        assert [r["name"] for r in rows] == ["Ann"]
        assert rows[0]["profile"] == {"email": "a@b.com"}

    @pytest.mark.asyncio
    async def test_nested_path_update_filter(self, sqlite_executor):
        """Write filters accept dotted paths too."""
        User = make_user_model(sqlite_executor)
        await User.create({"name": "Ann", "profile": {"email": "a@b.com"}})

        outcome = await User.update({"profile.email": "a@b.com"}, {"age": 31})

        assert outcome.affected_count == 1
        assert (await User.find_one({"name": "Ann"}))["age"] == 31


class TestValueRoundTrips:
    """Tests for defaults and typed values."""

    @pytest.mark.asyncio
    async def test_defaults_applied(self, sqlite_executor):
        """Absent fields take declared defaults, callable ones too."""
        counter = iter(range(100, 200))
        Ticket = Model(
            "Ticket",
            {
                "title": str,
                "open": {"type": bool, "default": False},
                "seq": {"type": int, "default": lambda: next(counter)},
            },
            sqlite_executor,
            dialect=SQLiteDialect(),
        )

        first = await Ticket.create({"title": "a"})
        second = await Ticket.create({"title": "b", "open": True})

        assert first == {"title": "a", "open": False, "seq": 100, "id": 1}
        assert second["seq"] == 101
        assert [r["open"] for r in await Ticket.find().exec()] == [False, True]

    @pytest.mark.asyncio
    async def test_literal_defaults_not_shared(self, sqlite_executor):
        """Each document gets its own copy of a mutable default."""
        Post = Model(
            "Post",
            {"title": str, "tags": {"type": list, "default": []}},
            sqlite_executor,
            dialect=SQLiteDialect(),
        )

        first = await Post.create({"title": "a"})
        first["tags"].append("draft")
        second = await Post.create({"title": "b"})

        assert second["tags"] == []
        assert second["tags"] is not first["tags"]
        assert Post.schema.fields["tags"].default == []

    @pytest.mark.asyncio
    async def test_temporal_round_trip(self, sqlite_executor):
        """Temporal values come back as naive datetimes, seconds precision."""
        User = make_user_model(sqlite_executor)
        await User.create({"name": "Ann", "joined": datetime(2024, 5, 1, 9, 30, 15, 500)})

        ann = await User.find_one({"name": "Ann"})

        assert ann["joined"] == datetime(2024, 5, 1, 9, 30, 15)

    @pytest.mark.asyncio
    async def test_boolean_filter(self, sqlite_executor):
        """Boolean equality matches stored flags."""
        User = make_user_model(sqlite_executor)
        await User.create({"name": "Ann"})
        await User.create({"name": "Bob", "active": False})

        rows = await User.find({"active": False}).exec()

        assert [(r["name"], r["active"]) for r in rows] == [("Bob", False)]


class TestWrites:
    """Tests for update and delete variants."""

    @pytest.mark.asyncio
    async def test_update_one_vs_update(self, sqlite_executor):
        """update_one touches one row, update touches all matches."""
        User = make_user_model(sqlite_executor)
        for name in ("Ann", "Bob", "Cid"):
            await User.create({"name": name, "age": 20})

        one = await User.update_one({"age": 20}, {"age": 21})
        many = await User.update({"age": 20}, {"$set": {"age": 22}})

        assert one.affected_count == 1
        assert many.affected_count == 2
        assert sorted(r["age"] for r in await User.find().exec()) == [21, 22, 22]

    @pytest.mark.asyncio
    async def test_empty_update(self, sqlite_executor):
        """An update without assignments changes nothing."""
        User = make_user_model(sqlite_executor)
        await User.create({"name": "Ann"})

        outcome = await User.update({"name": "Ann"}, {})

        assert outcome == WriteOutcome(affected_count=0)

    @pytest.mark.asyncio
    async def test_delete_one_vs_delete_many(self, sqlite_executor):
        """delete_one removes one row, delete_many removes every match."""
        User = make_user_model(sqlite_executor)
        for name in ("Ann", "Bob", "Cid", "Dee"):
            await User.create({"name": name, "age": 20})

        one = await User.delete_one({"age": 20})
        many = await User.delete_many({"age": 20})

        assert one.affected_count == 1
        assert many.affected_count == 3
        assert await User.find().exec() == []


class TestDelivery:
    """Tests for callback and awaitable delivery."""

    @pytest.mark.asyncio
    async def test_callback_receives_result(self, sqlite_executor):
        """Callback form reports (None, result)."""
        User = make_user_model(sqlite_executor)
        await User.create({"name": "Ann"})

        err, rows = await collect(lambda cb: User.find({"name": "Ann"}, cb))

        assert err is None
        assert [r["name"] for r in rows] == ["Ann"]

    @pytest.mark.asyncio
    async def test_same_error_both_ways(self, sqlite_executor):
        """A failing statement surfaces identically through both forms."""
        User = make_user_model(sqlite_executor)

        with pytest.raises(StatementExecutionError) as awaited:
            await User.create({"name": "Ann", "nickname": "A"})
        err, result = await collect(lambda cb: User.create({"name": "Ann", "nickname": "A"}, cb))

        assert result is None
        assert isinstance(err, StatementExecutionError)
        assert str(err) == str(awaited.value)
        assert "nickname" in str(err)

    @pytest.mark.asyncio
    async def test_find_with_only_a_callback(self, sqlite_executor):
        """find(callback) runs an unfiltered find."""
        User = make_user_model(sqlite_executor)
        await User.create({"name": "Ann"})
        await User.create({"name": "Bob"})

        err, rows = await collect(lambda cb: User.find(cb))

        assert err is None
        assert [r["name"] for r in rows] == ["Ann", "Bob"]

    @pytest.mark.asyncio
    async def test_find_one_with_only_a_callback(self, sqlite_executor):
        """find_one(callback) yields the first document."""
        User = make_user_model(sqlite_executor)
        await User.create({"name": "Ann"})

        err, row = await collect(lambda cb: User.find_one(cb))

        assert err is None
        assert row["name"] == "Ann"

    @pytest.mark.asyncio
    async def test_non_string_filter_key_is_skipped(self, sqlite_executor):
        """A filter key that is not a field name filters nothing."""
        User = make_user_model(sqlite_executor)
        await User.create({"name": "Ann"})

        rows = await User.find({1: "x", "name": "Ann"}).exec()

        assert [r["name"] for r in rows] == ["Ann"]

    @pytest.mark.asyncio
    async def test_find_one_callback_with_no_match(self, sqlite_executor):
        """find_one reports None through the callback when nothing matches."""
        User = make_user_model(sqlite_executor)

        assert await collect(lambda cb: User.find_one({"name": "Nobody"}, cb)) == (None, None)


class TestSchemaEvolution:
    """Tests for synchronization against existing tables."""

    @pytest.mark.asyncio
    async def test_resync_issues_no_changes(self, sqlite_executor):
        """A second model over a compatible table changes nothing."""
        await make_user_model(sqlite_executor).ready()

        report = await make_user_model(sqlite_executor).ready()

        assert report.existed
        assert report.ok
        assert report.applied == []

    @pytest.mark.asyncio
    async def test_new_field_adds_column(self, sqlite_executor):
        """Adding a field to the schema adds a column; data survives."""
        Old = Model("User", {"name": str}, sqlite_executor, dialect=SQLiteDialect())
        await Old.create({"name": "Ann"})

        New = Model("User", {"name": str, "age": int}, sqlite_executor, dialect=SQLiteDialect())
        report = await New.ready()

        assert [str(c) for c in report.applied] == ["COLUMN_ADDED: users.age"]
        assert await New.find().exec() == [{"id": 1, "name": "Ann", "age": None}]

    @pytest.mark.asyncio
    async def test_unsupported_widen_leaves_model_usable(self, sqlite_executor):
        """A failed structural change is reported but the model still works."""
        await Model("User", {"name": int}, sqlite_executor, dialect=SQLiteDialect()).ready()

        User = Model("User", {"name": str}, sqlite_executor, dialect=SQLiteDialect())
        report = await User.ready()
        await User.create({"name": "Ann"})

        assert not report.ok
        assert report.failed[0][0].kind is ChangeKind.COLUMN_WIDENED
        assert (await User.find_one({"name": "Ann"}))["name"] == "Ann"

    @pytest.mark.asyncio
    async def test_synchronization_disabled(self, sqlite_executor):
        """With synchronization off no table is created."""
        User = Model("User", {"name": str}, sqlite_executor, dialect=SQLiteDialect(), synchronize=False)

        assert await User.ready() is None
        assert not await sqlite_executor.table_exists("users")
