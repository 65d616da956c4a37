"""PostgreSQL query grammar."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from fluentql.grammar.query import QueryGrammar
from fluentql.query.clauses import DatePart, DateWhere
from fluentql.value import RawSql

if TYPE_CHECKING:
    from fluentql.query.builder import QueryBuilder


class PostgresGrammar(QueryGrammar):
    """Compiles queries to PostgreSQL-flavoured SQL.

    ``column->path`` selectors use the ``->`` / ``->>`` operators, so the
    last path segment is always extracted as text.
    """

    dialect_name = "postgres"
    operators = (
        "@>", "<@", "?", "?|", "?&", "||", "-", "#-",
        "is distinct from", "is not distinct from",
    )

    def wrap_value(self, value: str) -> str:
        if value != "*" and self.is_json_selector(value):
            return self.wrap_json_selector(value)
        return super().wrap_value(value)

    def wrap_json_selector(self, value: str) -> str:
        """``meta->a->b`` → ``"meta"->'a'->>'b'``."""
        field, *path = value.split("->")
        wrapped = [f"'{self.escape(part)}'" for part in path]
        attribute = wrapped.pop()
        if wrapped:
            return f"{super().wrap_value(field)}->{'->'.join(wrapped)}->>{attribute}"
        return f"{super().wrap_value(field)}->>{attribute}"

    def json_boolean(self, column: Any, value: Any) -> Any:
        # ->> yields text, so the literal is compared as text.
        if isinstance(value, bool) and self.is_json_selector(column):
            return RawSql(sql="'true'" if value else "'false'")
        return value

    def where_date_based(self, where: DateWhere) -> str:
        column = self.wrap(where.column)
        value = self.parameter(where.value)
        if where.part == DatePart.DATE:
            return f"{column}::date {where.operator} {value}"
        if where.part == DatePart.TIME:
            return f"{column}::time {where.operator} {value}"
        return f"extract({where.part.value} from {column}) {where.operator} {value}"

    def compile_random(self, seed: int | None = None) -> str:
        return "random()"

    def compile_truncate(self, query: QueryBuilder) -> dict[str, list[Any]]:
        return {f"truncate {self.wrap_table(query.state.from_)} restart identity": []}
