"""Integration tests: build → compile → execute against an in-memory SQLite DB.

Runs schema creation, writes, reads, aggregates, date predicates, unions and
truncation through :class:`~fluentql.connection.SQLAlchemyConnection`.
"""
from __future__ import annotations

import datetime

import pytest

sqlalchemy = pytest.importorskip("sqlalchemy")

from sqlalchemy.pool import StaticPool  # noqa: E402

from fluentql.config import ConnectionConfig  # noqa: E402
from fluentql.connection import SQLAlchemyConnection  # noqa: E402
from fluentql.grammar.sqlite import SQLiteGrammar  # noqa: E402
from fluentql.schema.builder import SchemaBuilder  # noqa: E402

USERS = [
    {"email": "ann@example.com", "votes": 3, "active": True,
     "created_at": datetime.datetime(2020, 5, 1, 10, 0, 0)},
    {"email": "bob@example.com", "votes": 0, "active": False,
     "created_at": datetime.datetime(2021, 6, 2, 11, 30, 0)},
    {"email": "cid@example.com", "votes": 7, "active": True,
     "created_at": datetime.datetime(2021, 7, 3, 12, 0, 0)},
]


@pytest.fixture()
def db() -> SQLAlchemyConnection:
    engine = sqlalchemy.create_engine(
        "sqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    connection = SQLAlchemyConnection(engine)
    connection.schema().create(
        "users",
        lambda table: (
            table.increments("id"),
            table.string("email").unique(),
            table.integer("votes").default(0),
            table.boolean("active").default(True),
            table.date_time("created_at").nullable(),
        ),
    )
    connection.schema().create(
        "posts",
        lambda table: (
            table.increments("id"),
            table.integer("user_id"),
            table.string("title"),
            table.foreign("user_id").references("id").on("users").on_delete("cascade"),
        ),
    )
    connection.table("users").insert(USERS)
    connection.table("posts").insert(
        [
            {"user_id": 1, "title": "hello"},
            {"user_id": 1, "title": "again"},
            {"user_id": 3, "title": "first"},
        ]
    )
    yield connection
    engine.dispose()


def test_grammar_inferred_from_engine(db):
    assert isinstance(db.get_query_grammar(), SQLiteGrammar)
    assert db.config == ConnectionConfig(driver="sqlite")


# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------


def test_schema_introspection(db):
    schema: SchemaBuilder = db.schema()
    assert schema.has_table("users")
    assert not schema.has_table("missing")
    assert schema.get_column_listing("users") == ["id", "email", "votes", "active", "created_at"]
    assert schema.has_column("users", "EMAIL")


def test_add_column_and_drop_table(db):
    schema = db.schema()
    schema.table("users", lambda table: table.string("nick").nullable())
    assert schema.has_column("users", "nick")
    schema.drop_if_exists("posts")
    assert not schema.has_table("posts")


def test_unique_index_is_enforced(db):
    with pytest.raises(sqlalchemy.exc.IntegrityError):
        db.table("users").insert({"email": "ann@example.com"})


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------


def test_where_and_order(db):
    rows = db.table("users").where("votes", ">", 0).order_by_desc("votes").get("email")
    assert [row["email"] for row in rows] == ["cid@example.com", "ann@example.com"]


def test_boolean_values_are_bound(db):
    assert db.table("users").where("active", False).pluck("email") == ["bob@example.com"]


def test_first_find_value(db):
    assert db.table("users").find(2)["email"] == "bob@example.com"
    assert db.table("users").where("email", "like", "c%").value("votes") == 7
    assert db.table("users").where("id", 99).first() is None


def test_join_and_grouping(db):
    rows = (
        db.table("users")
        .join("posts", "users.id", "=", "posts.user_id")
        .select("users.email", db.raw("count(*) as total"))
        .group_by("users.email")
        .having_raw("count(*) > ?", [1])
        .get()
    )
    assert rows == [{"email": "ann@example.com", "total": 2}]


def test_nested_and_in_sub_query(db):
    authors = db.table("users").where_in(
        "id", lambda q: q.select("user_id").from_("posts").where("title", "!=", "again")
    )
    assert sorted(authors.pluck("email")) == ["ann@example.com", "cid@example.com"]
    grouped = db.table("users").where(lambda q: q.where("votes", 0).or_where("votes", 7))
    assert grouped.count() == 2


def test_exists(db):
    assert db.table("users").where("votes", 7).exists()
    assert db.table("users").where("votes", 100).doesnt_exist()


def test_date_predicates(db):
    users = db.table("users")
    assert users.clone().where_year("created_at", 2021).count() == 2
    assert users.clone().where_month("created_at", 6).pluck("email") == ["bob@example.com"]
    assert users.clone().where_date("created_at", datetime.date(2020, 5, 1)).count() == 1


def test_aggregates(db):
    users = db.table("users")
    assert users.count() == 3
    assert users.sum("votes") == 10
    assert users.max("votes") == 7
    assert users.min("votes") == 0
    assert db.table("users").where("votes", ">", 100).sum("votes") == 0


def test_union(db):
    rows = (
        db.table("users")
        .select("email")
        .where("votes", 0)
        .union(lambda q: q.select("email").from_("users").where("votes", 7))
        .order_by("email")
        .get()
    )
    assert [row["email"] for row in rows] == ["bob@example.com", "cid@example.com"]


def test_chunk(db):
    pages = []
    db.table("users").order_by("id").chunk(2, lambda rows, page: pages.append(len(rows)))
    assert pages == [2, 1]


# ---------------------------------------------------------------------------
# Writes
# ---------------------------------------------------------------------------


def test_update_increment_delete(db):
    assert db.table("users").where("email", "bob@example.com").update({"votes": 5}) == 1
    db.table("users").where("id", 2).increment("votes", 2)
    assert db.table("users").find(2)["votes"] == 7
    db.table("users").decrement("votes")
    assert db.table("users").sum("votes") == 14
    assert db.table("users").delete(3) == 1
    assert db.table("users").count() == 2


def test_update_or_insert(db):
    db.table("users").update_or_insert({"email": "dee@example.com"}, {"votes": 1})
    db.table("users").update_or_insert({"email": "ann@example.com"}, {"votes": 9})
    assert db.table("users").count() == 4
    assert db.table("users").where("email", "ann@example.com").value("votes") == 9


def test_truncate_resets_autoincrement(db):
    db.table("posts").truncate()
    assert db.table("posts").count() == 0
    db.table("posts").insert({"user_id": 1, "title": "fresh"})
    assert db.table("posts").value("id") == 1
