"""MySQL query grammar."""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from fluentql.grammar.query import QueryGrammar
from fluentql.query.clauses import LockMode, UnionClause
from fluentql.value import is_raw

if TYPE_CHECKING:
    from fluentql.query.builder import QueryBuilder


class MySQLGrammar(QueryGrammar):
    """Compiles queries to MySQL-flavoured SQL.

    Identifiers are quoted with backticks (`` ` ``) rather than double-quotes,
    and ``column->path`` selectors address JSON documents through
    ``json_extract``.

    Unions are parenthesised on both sides so that each branch may carry its
    own ORDER BY / LIMIT.
    """

    identifier_quote = "`"
    dialect_name = "mysql"
    operators = ("sounds like",)

    def wrap_value(self, value: str) -> str:
        if value == "*":
            return value
        if self.is_json_selector(value):
            return self.wrap_json_selector(value)
        return f"`{self.escape(value.replace('`', '``'))}`"

    def wrap_json_selector(self, value: str) -> str:
        """``meta->a->b`` → ``json_unquote(json_extract(`meta`, '$."a"."b"'))``."""
        field, *path = value.split("->")
        json_path = ".".join(f'"{self.escape(part)}"' for part in path)
        return f"json_unquote(json_extract({self.wrap_value(field)}, '$.{json_path}'))"

    def compile_insert_defaults(self, table: str) -> str:
        return f"insert into {table} () values ()"

    def compile_random(self, seed: int | None = None) -> str:
        return f"RAND({'' if seed is None else int(seed)})"

    def compile_lock(self, query: QueryBuilder) -> str:
        lock = query.state.lock
        if lock is None:
            return ""
        return "for update" if lock == LockMode.EXCLUSIVE else "lock in share mode"

    # ------------------------------------------------------------------
    # Unions
    # ------------------------------------------------------------------

    def wrap_union(self, sql: str) -> str:
        return f"({sql})"

    def compile_union(self, union: UnionClause) -> str:
        joiner = "union all" if union.all else "union"
        return f"{joiner} ({self.compile_select(union.query)})"

    # ------------------------------------------------------------------
    # UPDATE / DELETE accept ORDER BY and LIMIT
    # ------------------------------------------------------------------

    def compile_update(self, query: QueryBuilder, values: Mapping[str, Any]) -> str:
        sql = super().compile_update(query, values)
        return self.concatenate([sql, self.compile_orders(query), self.compile_limit(query)])

    def prepare_bindings_for_update(
        self, query: QueryBuilder, values: Mapping[str, Any]
    ) -> list[Any]:
        bindings = super().prepare_bindings_for_update(query, values)
        return [*bindings, *query.bindings.get("order")]

    def compile_delete(self, query: QueryBuilder) -> str:
        table = self.wrap_table(query.state.from_)
        wheres = self.compile_wheres(query)
        if query.state.joins:
            # Multi-table deletes take neither ORDER BY nor LIMIT.
            alias = table.split(" as ")[-1]
            return self.concatenate(
                ["delete", alias, "from", table, self.compile_joins(query), wheres]
            )
        return self.concatenate(
            ["delete from", table, wheres, self.compile_orders(query), self.compile_limit(query)]
        )

    def prepare_bindings_for_delete(self, query: QueryBuilder) -> list[Any]:
        bindings = query.bindings
        if query.state.joins:
            return [*bindings.get("join"), *bindings.get("where")]
        return [*bindings.get("where"), *bindings.get("order")]

    def json_boolean(self, column: Any, value: Any) -> Any:
        if not isinstance(value, bool):
            return value
        value = super().json_boolean(column, value)
        if is_raw(value):
            # json_unquote yields text, so compare against the text form.
            return value.model_copy(update={"sql": f"'{value.sql}'"})
        return value
