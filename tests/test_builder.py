"""Unit tests for QueryBuilder compilation (default grammar unless noted)."""

from __future__ import annotations

import datetime

import pytest

from fluentql.errors import (
    IllegalOperatorValueError,
    InvalidArgumentError,
    InvalidBindingTypeError,
    InvalidOperatorError,
)
from fluentql.grammar.base import CompiledQuery
from fluentql.grammar.mysql import MySQLGrammar
from fluentql.grammar.postgres import PostgresGrammar
from fluentql.grammar.query import QueryGrammar
from fluentql.grammar.sqlite import SQLiteGrammar
from fluentql.query.builder import QueryBuilder
from fluentql.value import raw


def _q(table: str = "users") -> QueryBuilder:
    return QueryBuilder().from_(table)


def _pg(table: str = "users") -> QueryBuilder:
    return QueryBuilder(grammar=PostgresGrammar()).from_(table)


def _my(table: str = "users") -> QueryBuilder:
    return QueryBuilder(grammar=MySQLGrammar()).from_(table)


def _sq(table: str = "users") -> QueryBuilder:
    return QueryBuilder(grammar=SQLiteGrammar()).from_(table)


# ---------------------------------------------------------------------------
# Selection
# ---------------------------------------------------------------------------


def test_select_star_by_default():
    assert _q().to_sql() == 'select * from "users"'


def test_select_columns_and_alias():
    sql = _q().select("id", "name as n").to_sql()
    assert sql == 'select "id", "name" as "n" from "users"'


def test_select_accepts_a_list():
    assert _q().select(["id", "name"]).to_sql() == 'select "id", "name" from "users"'


def test_add_select_and_distinct():
    sql = _q().select("id").add_select("email").distinct().to_sql()
    assert sql == 'select distinct "id", "email" from "users"'


def test_select_raw_binds_to_select_bucket():
    query = _q().select_raw("coalesce(nick, ?) as nick", ["anon"])
    assert query.to_sql() == 'select coalesce(nick, ?) as nick from "users"'
    assert query.get_raw_bindings()["select"] == ["anon"]


def test_select_sub_wraps_sub_query_with_alias():
    query = _q().select("id").select_sub(
        lambda q: q.select(raw("count(*)")).from_("posts").where("published", True),
        "post_count",
    )
    assert query.to_sql() == (
        'select "id", (select count(*) from "posts" where "published" = ?) as "post_count" '
        'from "users"'
    )
    assert query.get_bindings() == [True]


def test_select_sub_keeps_only_first_column():
    sub = QueryBuilder().from_("posts").select("title", "body")
    sql = _q().select_sub(sub, "t").to_sql()
    assert sql == 'select (select "title" from "posts") as "t" from "users"'
    assert sub.state.columns == ["title", "body"]


def test_table_is_alias_of_from():
    assert QueryBuilder().table("users").to_sql() == 'select * from "users"'


# ---------------------------------------------------------------------------
# WHERE
# ---------------------------------------------------------------------------


def test_basic_wheres_and_bindings():
    query = _q().where("age", ">", 18).where("active", True)
    assert query.to_sql() == 'select * from "users" where "age" > ? and "active" = ?'
    assert query.get_bindings() == [18, True]


def test_or_where():
    sql = _q().where("a", 1).or_where("b", 2).to_sql()
    assert sql == 'select * from "users" where "a" = ? or "b" = ?'


def test_none_becomes_null_check():
    query = _q().where("deleted_at", None).where("banned_at", "!=", None)
    assert query.to_sql() == (
        'select * from "users" where "deleted_at" is null and "banned_at" is not null'
    )
    assert query.get_bindings() == []


def test_falsy_values_are_bound_not_null():
    query = _q().where("a", 0).where("b", "").where("c", False)
    assert query.to_sql() == 'select * from "users" where "a" = ? and "b" = ? and "c" = ?'
    assert query.get_bindings() == [0, "", False]


def test_unknown_operator_is_rejected():
    with pytest.raises(InvalidOperatorError) as excinfo:
        _q().where("a", "===", 1)
    assert excinfo.value.to_error_response()["details"] == {"operator": "==="}


def test_operator_is_case_insensitive():
    assert _q().where("name", "LIKE", "a%").to_sql() == 'select * from "users" where "name" LIKE ?'


def test_null_with_ordering_operator_is_rejected():
    with pytest.raises(IllegalOperatorValueError):
        _q().where("a", ">", None)


def test_where_without_value_is_rejected():
    with pytest.raises(InvalidArgumentError):
        _q().where("a")


def test_dialect_operators_extend_baseline():
    assert _pg().where("tags", "@>", "x").to_sql() == 'select * from "users" where "tags" @> ?'
    assert _my().where("name", "sounds like", "x").to_sql() == (
        "select * from `users` where `name` sounds like ?"
    )
    with pytest.raises(InvalidOperatorError):
        _q().where("tags", "@>", "x")


def test_where_in_and_not_in():
    query = _q().where_in("id", [1, 2, 3]).or_where_not_in("role", ("a", "b"))
    assert query.to_sql() == (
        'select * from "users" where "id" in (?, ?, ?) or "role" not in (?, ?)'
    )
    assert query.get_bindings() == [1, 2, 3, "a", "b"]


def test_empty_in_lists_compile_to_constants():
    assert _q().where_in("id", []).to_sql() == 'select * from "users" where 0 = 1'
    assert _q().where_not_in("id", []).to_sql() == 'select * from "users" where 1 = 1'


def test_where_in_rejects_a_string():
    with pytest.raises(InvalidArgumentError):
        _q().where_in("id", "abc")


def test_where_in_sub_query():
    query = _q().where_in(
        "id", lambda q: q.select("user_id").from_("orders").where("total", ">", 100)
    )
    assert query.to_sql() == (
        'select * from "users" where "id" in '
        '(select "user_id" from "orders" where "total" > ?)'
    )
    assert query.get_bindings() == [100]


def test_where_not_in_builder():
    sub = QueryBuilder().from_("bans").select("user_id")
    sql = _q().where_not_in("id", sub).to_sql()
    assert sql == 'select * from "users" where "id" not in (select "user_id" from "bans")'


def test_nested_where_group():
    query = _q().where("a", 1).where(lambda q: q.where("b", 2).or_where("c", 3))
    sql = query.to_sql()
    assert sql == 'select * from "users" where "a" = ? and ("b" = ? or "c" = ?)'
    assert query.get_bindings() == [1, 2, 3]
    assert sql.count("(") == sql.count(")")


def test_deeply_nested_groups_are_balanced():
    query = _q().where(
        lambda q: q.where("a", 1).or_where(lambda q2: q2.where("b", 2).where("c", 3))
    )
    sql = query.to_sql()
    assert sql == 'select * from "users" where ("a" = ? or ("b" = ? and "c" = ?))'
    assert sql.count("(") == sql.count(")")


def test_empty_nested_group_is_dropped():
    assert _q().where(lambda q: None).to_sql() == 'select * from "users"'


def test_mapping_where_becomes_group():
    query = _q().where({"a": 1, "b": 2})
    assert query.to_sql() == 'select * from "users" where ("a" = ? and "b" = ?)'


def test_list_of_conditions_becomes_group():
    query = _q().where([("a", ">", 1), ("b", 2)])
    assert query.to_sql() == 'select * from "users" where ("a" > ? and "b" = ?)'
    assert query.get_bindings() == [1, 2]


def test_where_column():
    query = _q().where_column("first", "last").or_where_column("updated_at", ">", "created_at")
    assert query.to_sql() == (
        'select * from "users" where "first" = "last" or "updated_at" > "created_at"'
    )
    assert query.get_bindings() == []


def test_where_raw():
    query = _q().where_raw("lower(name) = ?", ["bob"]).or_where_raw("1 = 1")
    assert query.to_sql() == 'select * from "users" where lower(name) = ? or 1 = 1'
    assert query.get_bindings() == ["bob"]


def test_where_between():
    query = _q().where_between("age", [18, 30]).or_where_not_between("score", (1, 2))
    assert query.to_sql() == (
        'select * from "users" where "age" between ? and ? or "score" not between ? and ?'
    )
    assert query.get_bindings() == [18, 30, 1, 2]


def test_where_between_needs_two_values():
    with pytest.raises(InvalidArgumentError):
        _q().where_between("age", [1, 2, 3])


def test_where_null_variants():
    sql = _q().where_null("a").or_where_null("b").where_not_null("c").or_where_not_null("d").to_sql()
    assert sql == (
        'select * from "users" where "a" is null or "b" is null '
        'and "c" is not null or "d" is not null'
    )


def test_where_exists():
    query = _q().where_exists(
        lambda q: q.select(raw("1")).from_("orders").where_column("orders.user_id", "users.id")
    )
    assert query.to_sql() == (
        'select * from "users" where exists '
        '(select 1 from "orders" where "orders"."user_id" = "users"."id")'
    )


def test_where_not_exists():
    sub = QueryBuilder().from_("bans")
    assert _q().where_not_exists(sub).to_sql() == (
        'select * from "users" where not exists (select * from "bans")'
    )


def test_callable_value_becomes_sub_select():
    query = _q().where("id", "=", lambda q: q.select(raw("max(id)")).from_("users"))
    assert query.to_sql() == 'select * from "users" where "id" = (select max(id) from "users")'


# ---------------------------------------------------------------------------
# Date parts
# ---------------------------------------------------------------------------


def test_where_date_default_grammar():
    query = _q().where_date("created_at", "2020-01-01")
    assert query.to_sql() == 'select * from "users" where date("created_at") = ?'
    assert query.get_bindings() == ["2020-01-01"]


def test_date_objects_are_formatted_for_the_part():
    query = (
        _q()
        .where_date("created_at", datetime.date(2020, 1, 2))
        .where_time("created_at", ">", datetime.datetime(2020, 1, 2, 9, 5, 0))
        .where_year("created_at", datetime.date(2021, 6, 1))
    )
    assert query.get_bindings() == ["2020-01-02", "09:05:00", "2021"]


def test_integer_day_and_month_are_bound_unchanged():
    query = _pg().where_day("created_at", 5).where_month("created_at", 11)
    assert query.to_sql() == (
        'select * from "users" where extract(day from "created_at") = ? '
        'and extract(month from "created_at") = ?'
    )
    assert query.get_bindings() == [5, 11]


def test_sqlite_date_parts_use_strftime():
    sql = _sq().where_year("created_at", 2020).to_sql()
    assert sql == (
        "select * from \"users\" where strftime('%Y', \"created_at\") = cast(? as text)"
    )


def test_sqlite_day_and_month_compare_as_integers():
    query = _sq().where_day("created_at", 5).where_month("created_at", "06")
    assert query.to_sql() == (
        "select * from \"users\" where "
        "cast(strftime('%d', \"created_at\") as integer) = cast(? as integer) and "
        "cast(strftime('%m', \"created_at\") as integer) = cast(? as integer)"
    )
    assert query.get_bindings() == [5, "06"]


def test_postgres_date_parts():
    assert _pg().where_date("created_at", "2020-01-01").to_sql() == (
        'select * from "users" where "created_at"::date = ?'
    )
    assert _pg().where_month("created_at", 1).to_sql() == (
        'select * from "users" where extract(month from "created_at") = ?'
    )


# ---------------------------------------------------------------------------
# Joins
# ---------------------------------------------------------------------------


def test_inner_join():
    sql = _q().join("contacts", "users.id", "=", "contacts.user_id").to_sql()
    assert sql == (
        'select * from "users" inner join "contacts" on "users"."id" = "contacts"."user_id"'
    )


def test_join_two_argument_shorthand():
    sql = _q().left_join("contacts", "users.id", "contacts.user_id").to_sql()
    assert sql == (
        'select * from "users" left join "contacts" on "users"."id" = "contacts"."user_id"'
    )


def test_join_with_callback_binds_values():
    query = _q().join(
        "contacts",
        lambda j: j.on("users.id", "=", "contacts.user_id").where("contacts.active", True),
    )
    assert query.to_sql() == (
        'select * from "users" inner join "contacts" on "users"."id" = "contacts"."user_id" '
        'and "contacts"."active" = ?'
    )
    assert query.get_raw_bindings()["join"] == [True]


def test_join_nested_on_group():
    query = _q().join(
        "contacts",
        lambda j: j.on("users.id", "=", "contacts.user_id").on(
            lambda n: n.on("contacts.a", "=", "users.a").or_on("contacts.b", "=", "users.b")
        ),
    )
    assert query.to_sql() == (
        'select * from "users" inner join "contacts" on "users"."id" = "contacts"."user_id" '
        'and ("contacts"."a" = "users"."a" or "contacts"."b" = "users"."b")'
    )


def test_join_where_binds_right_hand_side():
    query = _q().right_join_where("contacts", "contacts.kind", "=", "email")
    assert query.to_sql() == (
        'select * from "users" right join "contacts" on "contacts"."kind" = ?'
    )
    assert query.get_bindings() == ["email"]


def test_cross_join():
    assert _q().cross_join("roles").to_sql() == 'select * from "users" cross join "roles"'


# ---------------------------------------------------------------------------
# Grouping, ordering, paging
# ---------------------------------------------------------------------------


def test_group_by_and_having():
    query = (
        _q()
        .select("role", raw("count(*) as total"))
        .group_by("role", "team")
        .having("total", ">", 5)
        .or_having_raw("sum(score) > ?", [100])
    )
    assert query.to_sql() == (
        'select "role", count(*) as total from "users" group by "role", "team" '
        'having "total" > ? or sum(score) > ?'
    )
    assert query.get_bindings() == [5, 100]


def test_having_between():
    query = _q().group_by("role").having_between("total", [1, 9])
    assert query.to_sql() == 'select * from "users" group by "role" having "total" between ? and ?'


def test_order_by():
    sql = _q().order_by("name").order_by_desc("age").to_sql()
    assert sql == 'select * from "users" order by "name" asc, "age" desc'


def test_latest_and_oldest():
    assert _q().latest().to_sql() == 'select * from "users" order by "created_at" desc'
    assert _q().oldest("id").to_sql() == 'select * from "users" order by "id" asc'


def test_order_by_rejects_unknown_direction():
    with pytest.raises(InvalidArgumentError):
        _q().order_by("name", "sideways")


def test_random_order_per_dialect():
    assert _q().in_random_order().to_sql() == 'select * from "users" order by RANDOM()'
    assert _my().in_random_order(7).to_sql() == "select * from `users` order by RAND(7)"
    assert _pg().in_random_order().to_sql() == 'select * from "users" order by random()'


def test_limit_and_offset():
    assert _q().limit(10).offset(5).to_sql() == 'select * from "users" limit 10 offset 5'
    assert _q().for_page(3, 15).to_sql() == 'select * from "users" limit 15 offset 30'


def test_negative_limit_ignored_and_offset_clamped():
    assert _q().limit(-1).skip(-5).to_sql() == 'select * from "users" offset 0'


# ---------------------------------------------------------------------------
# Unions
# ---------------------------------------------------------------------------


def test_union_order_and_limit_apply_to_combined_result():
    query = (
        _q()
        .where("a", 1)
        .union(QueryBuilder().from_("admins").where("b", 2))
        .order_by("name")
        .limit(5)
    )
    assert query.to_sql() == (
        'select * from "users" where "a" = ? union select * from "admins" where "b" = ? '
        'order by "name" asc limit 5'
    )
    assert query.get_bindings() == [1, 2]


def test_order_before_union_stays_in_first_select():
    query = _q().order_by("id").union_all(QueryBuilder().from_("admins"))
    assert query.to_sql() == (
        'select * from "users" order by "id" asc union all select * from "admins"'
    )


def test_mysql_unions_are_parenthesised():
    query = _my().union(lambda q: q.from_("admins")).order_by("name").limit(5)
    assert query.to_sql() == (
        "(select * from `users`) union (select * from `admins`) order by `name` asc limit 5"
    )


def test_raw_union_order_bindings_follow_union_bindings():
    query = (
        _q()
        .where("a", 1)
        .union(QueryBuilder().from_("admins").where("b", 2))
        .order_by_raw("field(id, ?)", [9])
    )
    assert query.get_bindings() == [1, 2, 9]
    assert query.to_sql().endswith("order by field(id, ?)")


# ---------------------------------------------------------------------------
# Locks
# ---------------------------------------------------------------------------


def test_lock_clauses_per_dialect():
    assert _q().lock_for_update().to_sql() == 'select * from "users" for update'
    assert _pg().shared_lock().to_sql() == 'select * from "users" for share'
    assert _my().shared_lock().to_sql() == "select * from `users` lock in share mode"
    assert _sq().lock().to_sql() == 'select * from "users"'


# ---------------------------------------------------------------------------
# JSON booleans
# ---------------------------------------------------------------------------


class TestJsonBoolean:
    def test_postgres_compares_text_literal(self):
        query = _pg().where("meta->active", True)
        assert query.to_sql() == "select * from \"users\" where \"meta\"->>'active' = 'true'"
        assert query.get_bindings() == []

    def test_mysql_compares_text_literal(self):
        query = _my().where("meta->active", False)
        assert query.to_sql() == (
            "select * from `users` where "
            "json_unquote(json_extract(`meta`, '$.\"active\"')) = 'false'"
        )

    def test_sqlite_binds_boolean(self):
        query = _sq().where("meta->active", True)
        assert query.get_bindings() == [True]

    def test_plain_column_boolean_is_bound(self):
        assert _pg().where("active", True).get_bindings() == [True]


# ---------------------------------------------------------------------------
# Bindings and state
# ---------------------------------------------------------------------------


def test_binding_order_is_independent_of_call_order():
    query = (
        _q()
        .order_by_raw("field(id, ?)", [7])
        .having("total", ">", 5)
        .where("users.age", ">", 18)
        .join(
            "contacts",
            lambda j: j.on("users.id", "=", "contacts.user_id").where("contacts.kind", "email"),
        )
        .select_raw("coalesce(nick, ?) as nick", ["anon"])
        .group_by("users.id")
    )
    sql = query.to_sql()
    assert sql == (
        'select coalesce(nick, ?) as nick from "users" '
        'inner join "contacts" on "users"."id" = "contacts"."user_id" and "contacts"."kind" = ? '
        'where "users"."age" > ? group by "users"."id" having "total" > ? order by field(id, ?)'
    )
    assert query.get_bindings() == ["anon", "email", 18, 5, 7]
    assert sql.count("?") == len(query.get_bindings())


def test_compilation_is_idempotent():
    query = _q().where("a", 1).where_in("b", [2, 3]).order_by("c")
    assert query.to_sql() == query.to_sql()
    assert query.get_bindings() == query.get_bindings()


def test_raw_values_render_inline_without_binding():
    query = _q().where("created_at", "<", raw("now()"))
    assert query.to_sql() == 'select * from "users" where "created_at" < now()'
    assert query.get_bindings() == []


def test_clone_is_independent():
    query = _q().where("a", 1)
    clone = query.clone().where("b", 2)
    assert query.to_sql() == 'select * from "users" where "a" = ?'
    assert query.get_bindings() == [1]
    assert clone.get_bindings() == [1, 2]


def test_clear_resets_state():
    query = _q().where("a", 1).order_by("b").clear().from_("posts")
    assert query.to_sql() == 'select * from "posts"'
    assert query.get_bindings() == []


def test_new_query_shares_grammar_only():
    query = _pg().where("a", 1)
    fresh = query.new_query()
    assert fresh.grammar is query.grammar
    assert fresh.state.from_ is None
    assert fresh.get_bindings() == []


def test_compile_returns_snapshot():
    compiled = _pg().where("a", 1).compile()
    assert compiled == CompiledQuery(
        sql='select * from "users" where "a" = ?', bindings=[1], dialect="postgres"
    )
    assert compiled.as_tuple() == ('select * from "users" where "a" = ?', [1])


def test_add_binding_and_merge():
    query = _q().where_raw("a = ? and b = ?").add_binding([1, 2])
    other = QueryBuilder().add_binding("x", "having")
    query.merge_bindings(other)
    assert query.get_raw_bindings()["where"] == [1, 2]
    assert query.get_bindings() == [1, 2, "x"]


def test_add_binding_rejects_unknown_bucket():
    with pytest.raises(InvalidBindingTypeError):
        _q().add_binding(1, "limit")


def test_set_bindings():
    query = _q().where("a", 1).set_bindings([5])
    assert query.get_bindings() == [5]


def test_table_prefix_through_builder():
    query = QueryBuilder(grammar=QueryGrammar("app_")).from_("users").where("users.id", 1)
    assert query.to_sql() == 'select * from "app_users" where "app_users"."id" = ?'


def test_raw_without_connection():
    assert _q().raw("now()").sql == "now()"
