"""Unit tests for identifier wrapping and placeholders."""

from __future__ import annotations

from fluentql.grammar.mysql import MySQLGrammar
from fluentql.grammar.postgres import PostgresGrammar
from fluentql.grammar.query import QueryGrammar
from fluentql.value import raw


def test_dotted_identifier_quotes_each_segment():
    assert QueryGrammar().wrap("users.name") == '"users"."name"'


def test_alias_is_quoted_separately():
    assert QueryGrammar().wrap("users.name as n") == '"users"."name" as "n"'


def test_alias_keyword_is_case_insensitive():
    assert QueryGrammar().wrap("name AS n") == '"name" as "n"'


def test_star_is_never_quoted():
    grammar = QueryGrammar()
    assert grammar.wrap("*") == "*"
    assert grammar.wrap("users.*") == '"users".*'


def test_raw_passes_through():
    assert QueryGrammar().wrap(raw("count(*)")) == "count(*)"
    assert QueryGrammar("app_").wrap_table(raw("users u")) == "users u"


def test_embedded_quote_is_doubled():
    assert QueryGrammar().wrap_value('a"b') == '"a""b"'
    assert MySQLGrammar().wrap_value("a`b") == "`a``b`"


def test_table_prefix_applies_to_tables_and_qualifiers():
    grammar = QueryGrammar("app_")
    assert grammar.wrap_table("users") == '"app_users"'
    assert grammar.wrap("users.id") == '"app_users"."id"'
    assert grammar.wrap("id") == '"id"'


def test_table_prefix_applies_to_table_alias():
    assert QueryGrammar("app_").wrap_table("users as u") == '"app_users" as "app_u"'


def test_set_table_prefix():
    grammar = QueryGrammar()
    assert grammar.set_table_prefix("x_") is grammar
    assert grammar.get_table_prefix() == "x_"


def test_mysql_backticks():
    assert MySQLGrammar().wrap("users.name as n") == "`users`.`name` as `n`"


def test_mysql_json_selector():
    assert (
        MySQLGrammar().wrap("meta->a->b")
        == "json_unquote(json_extract(`meta`, '$.\"a\".\"b\"'))"
    )


def test_postgres_json_selector():
    grammar = PostgresGrammar()
    assert grammar.wrap("meta->a") == "\"meta\"->>'a'"
    assert grammar.wrap("meta->a->b") == "\"meta\"->'a'->>'b'"


def test_columnize_and_parameterize():
    grammar = QueryGrammar()
    assert grammar.columnize(["a", "t.b"]) == '"a", "t"."b"'
    assert grammar.parameterize([1, raw("now()"), "x"]) == "?, now(), ?"
