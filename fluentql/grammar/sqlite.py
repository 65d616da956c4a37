"""SQLite query grammar."""
from __future__ import annotations

from typing import TYPE_CHECKING, Any

from fluentql.grammar.query import QueryGrammar
from fluentql.query.clauses import DatePart, DateWhere
from fluentql.value import Identifier, is_raw

if TYPE_CHECKING:
    from fluentql.query.builder import QueryBuilder

_STRFTIME_FORMATS: dict[DatePart, str] = {
    DatePart.DATE: "%Y-%m-%d",
    DatePart.DAY: "%d",
    DatePart.MONTH: "%m",
    DatePart.YEAR: "%Y",
    DatePart.TIME: "%H:%M:%S",
}


class SQLiteGrammar(QueryGrammar):
    """Compiles queries to SQLite-flavoured SQL.

    Note: SQLite has no row locks, so the lock clause compiles to nothing,
    and no JSON path selectors, so booleans are always bound.
    """

    dialect_name = "sqlite"
    operators = (
        "=", "<", ">", "<=", ">=", "<>", "!=",
        "like", "not like", "ilike",
        "&", "|", "<<", ">>",
    )

    def compile_lock(self, query: QueryBuilder) -> str:
        return ""

    def is_json_selector(self, column: Identifier) -> bool:
        return False

    def where_date_based(self, where: DateWhere) -> str:
        # strftime returns zero-padded text, so days and months compare as integers.
        fmt = _STRFTIME_FORMATS[where.part]
        extracted = f"strftime('{fmt}', {self.wrap(where.column)})"
        value = self.parameter(where.value)
        if where.part in (DatePart.DAY, DatePart.MONTH):
            return f"cast({extracted} as integer) {where.operator} cast({value} as integer)"
        return f"{extracted} {where.operator} cast({value} as text)"

    def compile_truncate(self, query: QueryBuilder) -> dict[str, list[Any]]:
        table = query.state.from_
        name = table.sql if is_raw(table) else self.table_prefix + table
        return {
            f"delete from sqlite_sequence where name = {self.placeholder}": [name],
            f"delete from {self.wrap_table(table)}": [],
        }
