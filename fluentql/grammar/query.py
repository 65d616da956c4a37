"""Default (ANSI-like) query grammar.

The Template Method pattern is used: :meth:`QueryGrammar.compile_select`
walks the clause sections in a fixed order and every section has its own
``compile_*`` step that dialects override where their syntax differs
(quoting, date extraction, random ordering, locking, unions).

Compilation reads a builder's state and never mutates it, so compiling the
same builder twice yields the same SQL.  Placeholders are emitted in the
same order as :meth:`~fluentql.query.bindings.BindingStore.flatten` returns
values for that state.
"""
from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from typing import TYPE_CHECKING, Any, ClassVar

from fluentql.errors import CompilationError
from fluentql.grammar.base import BaseGrammar
from fluentql.query.clauses import (
    Aggregate,
    BasicWhere,
    BetweenWhere,
    ColumnWhere,
    DateWhere,
    ExistsWhere,
    InSubWhere,
    InWhere,
    LockMode,
    NestedWhere,
    NullWhere,
    OrderClause,
    RawOrder,
    RawWhere,
    SubSelect,
    SubWhere,
    UnionClause,
    WhereClause,
)
from fluentql.value import Identifier, RawSql, is_raw

if TYPE_CHECKING:
    from fluentql.query.builder import QueryBuilder
    from fluentql.query.join_clause import JoinClause


class QueryGrammar(BaseGrammar):
    """Renders a :class:`~fluentql.query.builder.QueryBuilder` to SQL text."""

    #: Operators this dialect accepts on top of the builder's baseline set.
    operators: ClassVar[tuple[str, ...]] = ()

    def __init__(self, table_prefix: str = "") -> None:
        super().__init__(table_prefix)
        self._select_components: list[Callable[[QueryBuilder], str]] = [
            self.compile_aggregate,
            self.compile_columns,
            self.compile_from,
            self.compile_joins,
            self.compile_wheres,
            self.compile_groups,
            self.compile_havings,
            self.compile_orders,
            self.compile_limit,
            self.compile_offset,
            self.compile_lock,
        ]

    def get_operators(self) -> tuple[str, ...]:
        return self.operators

    # ------------------------------------------------------------------
    # SELECT
    # ------------------------------------------------------------------

    def compile_select(self, query: QueryBuilder) -> str:
        """Compile a select statement, including any trailing unions."""
        sql = self.concatenate(step(query) for step in self._select_components)
        if query.state.unions:
            sql = f"{self.wrap_union(sql)} {self.compile_unions(query)}"
        return sql

    @staticmethod
    def concatenate(segments: Any) -> str:
        """Join non-empty segments with single spaces."""
        return " ".join(segment for segment in segments if segment)

    def compile_aggregate(self, query: QueryBuilder) -> str:
        aggregate: Aggregate | None = query.state.aggregate
        if aggregate is None:
            return ""
        column = self.columnize(aggregate.columns)
        if query.state.distinct and column != "*":
            column = f"distinct {column}"
        return f"select {aggregate.function}({column}) as aggregate"

    def compile_columns(self, query: QueryBuilder) -> str:
        state = query.state
        if state.aggregate is not None:
            return ""
        select = "select distinct" if state.distinct else "select"
        columns = ", ".join(self.compile_column(column) for column in state.columns or ["*"])
        return f"{select} {columns}"

    def compile_column(self, column: Identifier | SubSelect) -> str:
        if isinstance(column, SubSelect):
            query = column.query
            sql = self.compile_raw(query) if isinstance(query, str) else self.compile_select(query)
            return f"({sql}) as {self.wrap(column.alias)}"
        return self.wrap(column)

    def compile_from(self, query: QueryBuilder) -> str:
        if query.state.from_ is None:
            return ""
        return f"from {self.wrap_table(query.state.from_)}"

    def compile_joins(self, query: QueryBuilder) -> str:
        return " ".join(self.compile_join(join) for join in query.state.joins)

    def compile_join(self, join: JoinClause) -> str:
        table = self.wrap_table(join.table)
        conditions = self.compile_conditions(join.query.state.wheres)
        if conditions:
            return f"{join.type} join {table} on {conditions}"
        return f"{join.type} join {table}"

    def compile_wheres(self, query: QueryBuilder) -> str:
        conditions = self.compile_conditions(query.state.wheres)
        return f"where {conditions}" if conditions else ""

    def compile_conditions(self, clauses: Sequence[WhereClause]) -> str:
        """Compile predicates, dropping the connector of the first one."""
        parts: list[str] = []
        for index, clause in enumerate(clauses):
            sql = self.compile_where(clause)
            parts.append(sql if index == 0 else f"{clause.boolean} {sql}")
        return " ".join(parts)

    def compile_groups(self, query: QueryBuilder) -> str:
        if not query.state.groups:
            return ""
        return f"group by {self.columnize(query.state.groups)}"

    def compile_havings(self, query: QueryBuilder) -> str:
        conditions = self.compile_conditions(query.state.havings)
        return f"having {conditions}" if conditions else ""

    def compile_orders(self, query: QueryBuilder) -> str:
        return self.compile_order_list(query.state.orders)

    def compile_order_list(self, orders: Sequence[OrderClause]) -> str:
        if not orders:
            return ""
        parts = []
        for order in orders:
            if isinstance(order, RawOrder):
                parts.append(self.compile_raw(order.sql))
            else:
                parts.append(f"{self.wrap(order.column)} {order.direction}")
        return f"order by {', '.join(parts)}"

    def compile_random(self, seed: int | None = None) -> str:
        return "RANDOM()"

    def compile_limit(self, query: QueryBuilder) -> str:
        if query.state.limit is None:
            return ""
        return f"limit {int(query.state.limit)}"

    def compile_offset(self, query: QueryBuilder) -> str:
        if query.state.offset is None:
            return ""
        return f"offset {int(query.state.offset)}"

    def compile_lock(self, query: QueryBuilder) -> str:
        lock = query.state.lock
        if lock is None:
            return ""
        return "for update" if lock == LockMode.EXCLUSIVE else "for share"

    # ------------------------------------------------------------------
    # Unions
    # ------------------------------------------------------------------

    def wrap_union(self, sql: str) -> str:
        return sql

    def compile_unions(self, query: QueryBuilder) -> str:
        state = query.state
        parts = [self.compile_union(union) for union in state.unions]
        parts.append(self.compile_order_list(state.union_orders))
        if state.union_limit is not None:
            parts.append(f"limit {int(state.union_limit)}")
        if state.union_offset is not None:
            parts.append(f"offset {int(state.union_offset)}")
        return self.concatenate(parts)

    def compile_union(self, union: UnionClause) -> str:
        joiner = "union all" if union.all else "union"
        return f"{joiner} {self.compile_select(union.query)}"

    # ------------------------------------------------------------------
    # Predicates
    # ------------------------------------------------------------------

    def compile_where(self, where: WhereClause) -> str:
        """Compile one predicate (without its leading connector)."""
        if isinstance(where, BasicWhere):
            return f"{self.wrap(where.column)} {where.operator} {self.parameter(where.value)}"
        if isinstance(where, ColumnWhere):
            return f"{self.wrap(where.first)} {where.operator} {self.wrap(where.second)}"
        if isinstance(where, RawWhere):
            return self.compile_raw(where.sql)
        if isinstance(where, InWhere):
            return self.where_in(where)
        if isinstance(where, InSubWhere):
            keyword = "not in" if where.negated else "in"
            return f"{self.wrap(where.column)} {keyword} ({self.compile_select(where.query)})"
        if isinstance(where, NullWhere):
            keyword = "is not null" if where.negated else "is null"
            return f"{self.wrap(where.column)} {keyword}"
        if isinstance(where, BetweenWhere):
            keyword = "not between" if where.negated else "between"
            return (
                f"{self.wrap(where.column)} {keyword} "
                f"{self.parameter(where.low)} and {self.parameter(where.high)}"
            )
        if isinstance(where, DateWhere):
            return self.where_date_based(where)
        if isinstance(where, ExistsWhere):
            keyword = "not exists" if where.negated else "exists"
            return f"{keyword} ({self.compile_select(where.query)})"
        if isinstance(where, NestedWhere):
            return f"({self.compile_conditions(where.query.state.wheres)})"
        if isinstance(where, SubWhere):
            return (
                f"{self.wrap(where.column)} {where.operator} "
                f"({self.compile_select(where.query)})"
            )
        raise CompilationError(
            f"Unknown predicate type: {type(where).__name__}", clause="where"
        )

    def where_in(self, where: InWhere) -> str:
        # An empty list can never match (in) or always matches (not in).
        if not where.values:
            return "1 = 1" if where.negated else "0 = 1"
        keyword = "not in" if where.negated else "in"
        return f"{self.wrap(where.column)} {keyword} ({self.parameterize(where.values)})"

    def where_date_based(self, where: DateWhere) -> str:
        return (
            f"{where.part.value}({self.wrap(where.column)}) "
            f"{where.operator} {self.parameter(where.value)}"
        )

    # ------------------------------------------------------------------
    # JSON columns
    # ------------------------------------------------------------------

    def is_json_selector(self, column: Identifier) -> bool:
        """Returns ``True`` if ``column`` addresses a path inside a JSON value."""
        return isinstance(column, str) and "->" in column

    def json_boolean(self, column: Identifier, value: Any) -> Any:
        """Rewrite a boolean compared against a JSON path column.

        JSON booleans are compared against the literal ``true``/``false``
        instead of a bound ``1``/``0``.  Dialects without JSON path support
        return ``value`` unchanged.
        """
        if isinstance(value, bool) and self.is_json_selector(column):
            return RawSql(sql="true" if value else "false")
        return value

    # ------------------------------------------------------------------
    # EXISTS / INSERT / UPDATE / DELETE / TRUNCATE
    # ------------------------------------------------------------------

    def compile_exists(self, query: QueryBuilder) -> str:
        return f"select exists({self.compile_select(query)}) as {self.wrap('exists')}"

    def compile_insert(
        self, query: QueryBuilder, values: Sequence[Mapping[str, Any]]
    ) -> str:
        """Compile a (batch) insert; every record uses the first record's keys.

        A single empty record inserts one row of column defaults.
        """
        table = self.wrap_table(query.state.from_)
        keys = list(values[0]) if values else []
        if not keys:
            return self.compile_insert_defaults(table)
        rows = ", ".join(
            f"({self.parameterize(record[key] for key in keys)})" for record in values
        )
        return f"insert into {table} ({self.columnize(keys)}) values {rows}"

    def compile_insert_defaults(self, table: str) -> str:
        return f"insert into {table} default values"

    def compile_update(self, query: QueryBuilder, values: Mapping[str, Any]) -> str:
        table = self.wrap_table(query.state.from_)
        columns = ", ".join(
            f"{self.wrap(key)} = {self.parameter(value)}" for key, value in values.items()
        )
        return self.concatenate(
            ["update", table, self.compile_joins(query), "set", columns, self.compile_wheres(query)]
        )

    def prepare_bindings_for_update(
        self, query: QueryBuilder, values: Mapping[str, Any]
    ) -> list[Any]:
        """Order bindings as ``update`` placeholders appear: joins, SET, WHERE."""
        bindings = query.bindings
        return [
            *bindings.get("join"),
            *(value for value in values.values() if not is_raw(value)),
            *bindings.get("where"),
        ]

    def compile_delete(self, query: QueryBuilder) -> str:
        table = self.wrap_table(query.state.from_)
        return self.concatenate(["delete from", table, self.compile_wheres(query)])

    def prepare_bindings_for_delete(self, query: QueryBuilder) -> list[Any]:
        return query.bindings.get("where")

    def compile_truncate(self, query: QueryBuilder) -> dict[str, list[Any]]:
        """Return ``{sql: bindings}`` for every statement a truncate needs."""
        return {f"truncate {self.wrap_table(query.state.from_)}": []}
