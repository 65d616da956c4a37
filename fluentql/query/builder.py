"""Fluent query builder.

:class:`QueryBuilder` accumulates clauses into a
:class:`~fluentql.query.clauses.QueryState` and parameter values into a
:class:`~fluentql.query.bindings.BindingStore`.  Nothing is rendered until
:meth:`QueryBuilder.to_sql` (or an execution method) hands the builder to its
grammar, so the same builder compiles to different SQL under different
dialects.

Usage::

    query = (
        QueryBuilder(grammar=PostgresGrammar())
        .from_("users")
        .where("age", ">", 18)
        .where("active", True)
    )
    query.to_sql()        # select * from "users" where "age" > ? and "active" = ?
    query.get_bindings()  # [18, True]
"""

from __future__ import annotations

import datetime
import logging
from collections.abc import Callable, Iterable, Mapping, Sequence
from decimal import Decimal
from typing import TYPE_CHECKING, Any, Union

from fluentql.errors import (
    IllegalOperatorValueError,
    InvalidArgumentError,
    InvalidOperatorError,
    MissingConnectionError,
    MissingOrderByError,
)
from fluentql.grammar.base import CompiledQuery
from fluentql.grammar.query import QueryGrammar
from fluentql.query.bindings import BindingStore
from fluentql.query.clauses import (
    Aggregate,
    BasicWhere,
    BetweenWhere,
    ColumnWhere,
    DatePart,
    DateWhere,
    ExistsWhere,
    InSubWhere,
    InWhere,
    LockMode,
    NestedWhere,
    NullWhere,
    Order,
    OrderClause,
    QueryState,
    RawOrder,
    RawWhere,
    SubSelect,
    SubWhere,
    UnionClause,
)
from fluentql.query.join_clause import JoinClause
from fluentql.value import UNSET, Identifier, RawSql, is_null, is_raw, raw

if TYPE_CHECKING:
    from fluentql.connection import ConnectionInterface

    #: A builder, or a callback that fills a fresh one.
    SubQuery = Union["QueryBuilder", Callable[["QueryBuilder"], Any]]

logger = logging.getLogger(__name__)

#: Operators every grammar accepts.  Grammars may add to this set.
OPERATORS: tuple[str, ...] = (
    "=", "<", ">", "<=", ">=", "<>", "!=", "<=>",
    "like", "like binary", "not like", "ilike", "not ilike",
    "between",
    "&", "|", "^", "<<", ">>",
    "rlike", "regexp", "not regexp",
    "~", "~*", "!~", "!~*", "~~*", "!~~*",
    "similar to", "not similar to",
)

_DATE_FORMATS: dict[DatePart, str] = {
    DatePart.DATE: "%Y-%m-%d",
    DatePart.DAY: "%d",
    DatePart.MONTH: "%m",
    DatePart.YEAR: "%Y",
    DatePart.TIME: "%H:%M:%S",
}


def _column_list(columns: Iterable[Any]) -> list[Identifier]:
    """Flatten ``select("a", ["b", "c"])`` style arguments."""
    result: list[Identifier] = []
    for column in columns:
        if isinstance(column, (list, tuple)):
            result.extend(column)
        else:
            result.append(column)
    return result


def _date_value(part: DatePart, value: Any) -> Any:
    """Format date/time objects for the extracted part being compared."""
    if isinstance(value, (datetime.date, datetime.time)):
        return value.strftime(_DATE_FORMATS[part])
    return value


def _strip_table(column: Identifier) -> str:
    """``users.name as n`` → ``n``; ``users.name`` → ``name``."""
    name = str(column)
    lowered = name.lower()
    if " as " in lowered:
        return name[lowered.rindex(" as ") + 4 :].strip()
    return name.split(".")[-1]


def _table_reference(table: Identifier | None) -> str:
    """``users as u`` → ``u``; an unaliased name is returned whole."""
    name = str(table)
    lowered = name.lower()
    if " as " in lowered:
        return name[lowered.rindex(" as ") + 4 :].strip()
    return name


class QueryBuilder:
    """Fluent, dialect-independent SELECT / INSERT / UPDATE / DELETE builder.

    Every mutator returns ``self`` so calls can be chained.  Execution methods
    (``get``, ``count``, ``insert`` ...) compile the builder and delegate to
    the connection.

    Args:
        connection: Executes compiled statements.  Optional for builders that
            are only compiled.
        grammar: Compiles the builder.  Defaults to the connection's query
            grammar, or the default :class:`QueryGrammar`.
    """

    def __init__(
        self,
        connection: ConnectionInterface | None = None,
        grammar: QueryGrammar | None = None,
    ) -> None:
        if grammar is None:
            grammar = connection.get_query_grammar() if connection is not None else QueryGrammar()
        self.connection = connection
        self.grammar = grammar
        self.state = QueryState()
        self.bindings = BindingStore()
        self.operators: tuple[str, ...] = OPERATORS
        # Raw order bindings added once unions exist; kept after the unions' own.
        self._union_order_bindings: list[Any] = []

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------

    def select(self, *columns: Any) -> QueryBuilder:
        """Replace the column list.  No arguments selects ``*``."""
        self.state.columns = _column_list(columns) or ["*"]
        return self

    def add_select(self, *columns: Any) -> QueryBuilder:
        self.state.columns.extend(_column_list(columns))
        return self

    def select_raw(self, expression: str, bindings: Sequence[Any] | None = None) -> QueryBuilder:
        """Add a verbatim column expression whose ``?`` placeholders take ``bindings``."""
        self.add_select(raw(expression))
        if bindings:
            self.bindings.extend(bindings, "select")
        return self

    def select_sub(self, query: SubQuery | str, alias: str) -> QueryBuilder:
        """Add ``(sub-select) as "alias"`` to the column list.

        Only the first column of a builder sub-query is kept.
        """
        if not isinstance(query, str):
            query = self._sub_query(query, "select_sub")
            if len(query.state.columns) > 1:
                query = query.clone()
                query.state.columns = query.state.columns[:1]
            self.bindings.extend(query.get_bindings(), "select")
        self.state.columns.append(SubSelect(query, alias))
        return self

    def distinct(self) -> QueryBuilder:
        self.state.distinct = True
        return self

    def from_(self, table: Identifier) -> QueryBuilder:
        self.state.from_ = table
        return self

    def table(self, table: Identifier) -> QueryBuilder:
        """Alias of :meth:`from_`."""
        return self.from_(table)

    # ------------------------------------------------------------------
    # Joins
    # ------------------------------------------------------------------

    def join(
        self,
        table: Identifier,
        first: Any,
        operator: Any = UNSET,
        second: Any = UNSET,
        type: str = "inner",
        where: bool = False,
    ) -> QueryBuilder:
        """Add a join.

        ``first`` is either the left-hand column of a single condition or a
        callable receiving the :class:`JoinClause` to populate.  With
        ``where=True`` the right-hand side is bound as a value instead of
        being wrapped as a column.

        Example::

            builder.join("contacts", "users.id", "=", "contacts.user_id")
            builder.join("contacts", lambda j: j.on("users.id", "contacts.user_id")
                                                .where("contacts.active", True))
        """
        join = JoinClause(self, type, table)
        if callable(first):
            first(join)
        elif where:
            join.where(first, operator, second)
        else:
            join.on(first, operator, second)
        self.state.joins.append(join)
        self.bindings.extend(join.get_bindings(), "join")
        return self

    def join_where(
        self, table: Identifier, first: Any, operator: Any, second: Any, type: str = "inner"
    ) -> QueryBuilder:
        return self.join(table, first, operator, second, type, where=True)

    def left_join(
        self, table: Identifier, first: Any, operator: Any = UNSET, second: Any = UNSET
    ) -> QueryBuilder:
        return self.join(table, first, operator, second, "left")

    def left_join_where(
        self, table: Identifier, first: Any, operator: Any, second: Any
    ) -> QueryBuilder:
        return self.join_where(table, first, operator, second, "left")

    def right_join(
        self, table: Identifier, first: Any, operator: Any = UNSET, second: Any = UNSET
    ) -> QueryBuilder:
        return self.join(table, first, operator, second, "right")

    def right_join_where(
        self, table: Identifier, first: Any, operator: Any, second: Any
    ) -> QueryBuilder:
        return self.join_where(table, first, operator, second, "right")

    def cross_join(
        self,
        table: Identifier,
        first: Any = None,
        operator: Any = UNSET,
        second: Any = UNSET,
    ) -> QueryBuilder:
        """Add a cross join, with conditions only when ``first`` is given."""
        if first is not None:
            return self.join(table, first, operator, second, "cross")
        self.state.joins.append(JoinClause(self, "cross", table))
        return self

    # ------------------------------------------------------------------
    # Operator validation
    # ------------------------------------------------------------------

    def _invalid_operator(self, operator: Any) -> bool:
        if not isinstance(operator, str):
            return True
        lowered = operator.lower()
        return lowered not in self.operators and lowered not in self.grammar.get_operators()

    def _check_operator(self, operator: Any, value: Any, method: str) -> None:
        """Reject unknown operators and null comparisons that cannot become ``is null``."""
        if self._invalid_operator(operator):
            raise InvalidOperatorError(operator, method)
        if is_null(value) and operator.lower() not in ("=", "<>", "!="):
            raise IllegalOperatorValueError(operator, value, method)

    def _prepare_value_and_operator(
        self, operator: Any, value: Any, method: str
    ) -> tuple[Any, Any]:
        """Resolve the two-argument ``(column, value)`` shorthand to ``=``."""
        if value is UNSET:
            if operator is UNSET:
                raise InvalidArgumentError(
                    f"{method}() needs a value to compare against.", method=method
                )
            return operator, "="
        self._check_operator(operator, value, method)
        return value, operator

    # ------------------------------------------------------------------
    # WHERE
    # ------------------------------------------------------------------

    def where(
        self,
        column: Any,
        operator: Any = UNSET,
        value: Any = UNSET,
        boolean: str = "and",
    ) -> QueryBuilder:
        """Add a basic ``column operator value`` predicate.

        Shorthands:

        * ``where("a", 1)`` compares with ``=``;
        * a ``None`` value becomes ``is null`` (``is not null`` for ``<>``/``!=``);
        * a mapping, or a list of ``(column, operator, value)`` tuples, becomes
          a nested group;
        * a callable ``column`` becomes a nested group built by the callable;
        * a callable or builder ``value`` becomes a sub-select comparison.

        Raises:
            InvalidOperatorError: If an explicit operator is unknown.
            IllegalOperatorValueError: If ``None`` is compared with an
                operator other than ``=``, ``<>`` or ``!=``.
        """
        if isinstance(column, (Mapping, list, tuple)):
            return self._add_array_of_wheres(column, boolean)
        if callable(column):
            return self.where_nested(column, boolean)

        value, operator = self._prepare_value_and_operator(operator, value, "where")

        if isinstance(value, QueryBuilder) or callable(value):
            return self.where_sub(column, operator, value, boolean)
        if is_null(value):
            return self.where_null(column, boolean, negated=operator != "=")

        value = self.grammar.json_boolean(column, value)
        self.state.wheres.append(BasicWhere(column, operator, value, boolean))
        self.bindings.append(value, "where")
        return self

    def or_where(self, column: Any, operator: Any = UNSET, value: Any = UNSET) -> QueryBuilder:
        return self.where(column, operator, value, "or")

    def _add_array_of_wheres(
        self, columns: Mapping[str, Any] | Sequence[Sequence[Any]], boolean: str, method: str = "where"
    ) -> QueryBuilder:
        def add(query: QueryBuilder) -> None:
            if isinstance(columns, Mapping):
                for key, value in columns.items():
                    getattr(query, method)(key, "=", value)
            else:
                for condition in columns:
                    getattr(query, method)(*condition)

        return self.where_nested(add, boolean)

    def where_column(
        self,
        first: Any,
        operator: Any = UNSET,
        second: Any = UNSET,
        boolean: str = "and",
    ) -> QueryBuilder:
        """Compare two columns; ``second`` is wrapped, never bound."""
        if isinstance(first, (list, tuple)):
            return self._add_array_of_wheres(first, boolean, "where_column")
        if second is UNSET:
            if operator is UNSET:
                raise InvalidArgumentError(
                    "where_column() needs a second column.", method="where_column"
                )
            second, operator = operator, "="
        elif self._invalid_operator(operator):
            raise InvalidOperatorError(operator, "where_column")
        self.state.wheres.append(ColumnWhere(first, operator, second, boolean))
        return self

    def or_where_column(
        self, first: Any, operator: Any = UNSET, second: Any = UNSET
    ) -> QueryBuilder:
        return self.where_column(first, operator, second, "or")

    def where_raw(
        self, sql: str, bindings: Sequence[Any] | None = None, boolean: str = "and"
    ) -> QueryBuilder:
        self.state.wheres.append(RawWhere(sql, boolean))
        if bindings:
            self.bindings.extend(bindings, "where")
        return self

    def or_where_raw(self, sql: str, bindings: Sequence[Any] | None = None) -> QueryBuilder:
        return self.where_raw(sql, bindings, "or")

    def where_in(
        self,
        column: Identifier,
        values: Iterable[Any] | SubQuery,
        boolean: str = "and",
        negated: bool = False,
    ) -> QueryBuilder:
        """Add ``column [not] in (...)``.

        ``values`` may be a list of values, or a builder / callable producing
        a sub-select.  An empty list compiles to a constant condition.
        """
        if isinstance(values, QueryBuilder) or callable(values):
            query = self._sub_query(values, "where_in")
            self.state.wheres.append(InSubWhere(column, query, boolean, negated))
            self.bindings.extend(query.get_bindings(), "where")
            return self
        if isinstance(values, (str, bytes)):
            raise InvalidArgumentError(
                "where_in() expects a collection of values, not a string.",
                method="where_in",
                details={"column": str(column), "values": values},
            )
        values = tuple(values)
        self.state.wheres.append(InWhere(column, values, boolean, negated))
        self.bindings.extend(values, "where")
        return self

    def or_where_in(self, column: Identifier, values: Any) -> QueryBuilder:
        return self.where_in(column, values, "or")

    def where_not_in(self, column: Identifier, values: Any, boolean: str = "and") -> QueryBuilder:
        return self.where_in(column, values, boolean, negated=True)

    def or_where_not_in(self, column: Identifier, values: Any) -> QueryBuilder:
        return self.where_in(column, values, "or", negated=True)

    def where_null(
        self, column: Identifier, boolean: str = "and", negated: bool = False
    ) -> QueryBuilder:
        self.state.wheres.append(NullWhere(column, boolean, negated))
        return self

    def or_where_null(self, column: Identifier) -> QueryBuilder:
        return self.where_null(column, "or")

    def where_not_null(self, column: Identifier, boolean: str = "and") -> QueryBuilder:
        return self.where_null(column, boolean, negated=True)

    def or_where_not_null(self, column: Identifier) -> QueryBuilder:
        return self.where_null(column, "or", negated=True)

    def _between(self, values: Iterable[Any], method: str) -> tuple[Any, Any]:
        values = list(values)
        if len(values) != 2:
            raise InvalidArgumentError(
                f"{method}() expects exactly two values, got {len(values)}.",
                method=method,
                details={"values": values},
            )
        return values[0], values[1]

    def where_between(
        self,
        column: Identifier,
        values: Iterable[Any],
        boolean: str = "and",
        negated: bool = False,
    ) -> QueryBuilder:
        low, high = self._between(values, "where_between")
        self.state.wheres.append(BetweenWhere(column, low, high, boolean, negated))
        self.bindings.extend((low, high), "where")
        return self

    def or_where_between(self, column: Identifier, values: Iterable[Any]) -> QueryBuilder:
        return self.where_between(column, values, "or")

    def where_not_between(
        self, column: Identifier, values: Iterable[Any], boolean: str = "and"
    ) -> QueryBuilder:
        return self.where_between(column, values, boolean, negated=True)

    def or_where_not_between(self, column: Identifier, values: Iterable[Any]) -> QueryBuilder:
        return self.where_between(column, values, "or", negated=True)

    # -- date parts -----------------------------------------------------

    def _add_date_based_where(
        self,
        part: DatePart,
        column: Identifier,
        operator: Any,
        value: Any,
        boolean: str,
    ) -> QueryBuilder:
        value, operator = self._prepare_value_and_operator(operator, value, f"where_{part.value}")
        value = _date_value(part, value)
        self.state.wheres.append(DateWhere(part, column, operator, value, boolean))
        self.bindings.append(value, "where")
        return self

    def where_date(
        self, column: Identifier, operator: Any, value: Any = UNSET, boolean: str = "and"
    ) -> QueryBuilder:
        """Compare the date part of ``column``.  ``date``/``datetime`` values are formatted."""
        return self._add_date_based_where(DatePart.DATE, column, operator, value, boolean)

    def or_where_date(self, column: Identifier, operator: Any, value: Any = UNSET) -> QueryBuilder:
        return self.where_date(column, operator, value, "or")

    def where_time(
        self, column: Identifier, operator: Any, value: Any = UNSET, boolean: str = "and"
    ) -> QueryBuilder:
        return self._add_date_based_where(DatePart.TIME, column, operator, value, boolean)

    def or_where_time(self, column: Identifier, operator: Any, value: Any = UNSET) -> QueryBuilder:
        return self.where_time(column, operator, value, "or")

    def where_day(
        self, column: Identifier, operator: Any, value: Any = UNSET, boolean: str = "and"
    ) -> QueryBuilder:
        return self._add_date_based_where(DatePart.DAY, column, operator, value, boolean)

    def where_month(
        self, column: Identifier, operator: Any, value: Any = UNSET, boolean: str = "and"
    ) -> QueryBuilder:
        return self._add_date_based_where(DatePart.MONTH, column, operator, value, boolean)

    def where_year(
        self, column: Identifier, operator: Any, value: Any = UNSET, boolean: str = "and"
    ) -> QueryBuilder:
        return self._add_date_based_where(DatePart.YEAR, column, operator, value, boolean)

    # -- nested and sub-queries ------------------------------------------

    def where_nested(self, callback: Callable[[QueryBuilder], Any], boolean: str = "and") -> QueryBuilder:
        """Add a parenthesised group of the predicates ``callback`` adds."""
        query = self.for_nested_where()
        callback(query)
        return self.add_nested_where_query(query, boolean)

    def add_nested_where_query(self, query: QueryBuilder, boolean: str = "and") -> QueryBuilder:
        """Embed ``query``'s predicates as a group.  Groups without predicates are dropped."""
        if query.state.wheres:
            self.state.wheres.append(NestedWhere(query, boolean))
            self.bindings.extend(query.bindings.get("where"), "where")
        return self

    def where_sub(
        self, column: Identifier, operator: str, query: SubQuery, boolean: str = "and"
    ) -> QueryBuilder:
        """Add ``column operator (select ...)``."""
        query = self._sub_query(query, "where_sub")
        self.state.wheres.append(SubWhere(column, operator, query, boolean))
        self.bindings.extend(query.get_bindings(), "where")
        return self

    def where_exists(
        self, query: SubQuery, boolean: str = "and", negated: bool = False
    ) -> QueryBuilder:
        query = self._sub_query(query, "where_exists")
        self.state.wheres.append(ExistsWhere(query, boolean, negated))
        self.bindings.extend(query.get_bindings(), "where")
        return self

    def or_where_exists(self, query: SubQuery, negated: bool = False) -> QueryBuilder:
        return self.where_exists(query, "or", negated)

    def where_not_exists(self, query: SubQuery, boolean: str = "and") -> QueryBuilder:
        return self.where_exists(query, boolean, negated=True)

    def or_where_not_exists(self, query: SubQuery) -> QueryBuilder:
        return self.where_exists(query, "or", negated=True)

    def _sub_query(self, query: SubQuery, method: str) -> QueryBuilder:
        if isinstance(query, QueryBuilder):
            return query
        if callable(query):
            builder = self.new_query()
            query(builder)
            return builder
        raise InvalidArgumentError(
            f"{method}() expects a QueryBuilder or a callable, got {type(query).__name__}.",
            method=method,
        )

    # ------------------------------------------------------------------
    # GROUP BY / HAVING
    # ------------------------------------------------------------------

    def group_by(self, *groups: Any) -> QueryBuilder:
        self.state.groups.extend(_column_list(groups))
        return self

    def having(
        self,
        column: Identifier,
        operator: Any = UNSET,
        value: Any = UNSET,
        boolean: str = "and",
    ) -> QueryBuilder:
        value, operator = self._prepare_value_and_operator(operator, value, "having")
        if is_null(value):
            self.state.havings.append(NullWhere(column, boolean, negated=operator != "="))
            return self
        self.state.havings.append(BasicWhere(column, operator, value, boolean))
        self.bindings.append(value, "having")
        return self

    def or_having(
        self, column: Identifier, operator: Any = UNSET, value: Any = UNSET
    ) -> QueryBuilder:
        return self.having(column, operator, value, "or")

    def having_raw(
        self, sql: str, bindings: Sequence[Any] | None = None, boolean: str = "and"
    ) -> QueryBuilder:
        self.state.havings.append(RawWhere(sql, boolean))
        if bindings:
            self.bindings.extend(bindings, "having")
        return self

    def or_having_raw(self, sql: str, bindings: Sequence[Any] | None = None) -> QueryBuilder:
        return self.having_raw(sql, bindings, "or")

    def having_between(
        self,
        column: Identifier,
        values: Iterable[Any],
        boolean: str = "and",
        negated: bool = False,
    ) -> QueryBuilder:
        low, high = self._between(values, "having_between")
        self.state.havings.append(BetweenWhere(column, low, high, boolean, negated))
        self.bindings.extend((low, high), "having")
        return self

    # ------------------------------------------------------------------
    # ORDER BY / LIMIT / OFFSET
    # ------------------------------------------------------------------

    def _order_target(self) -> list[OrderClause]:
        # Once a union exists, ordering applies to the combined result.
        return self.state.union_orders if self.state.unions else self.state.orders

    def order_by(self, column: Identifier, direction: str = "asc") -> QueryBuilder:
        """Order by ``column``.

        Raises:
            InvalidArgumentError: If ``direction`` is not ``asc`` or ``desc``.
        """
        direction = str(direction).lower()
        if direction not in ("asc", "desc"):
            raise InvalidArgumentError(
                f"Order direction must be 'asc' or 'desc', got {direction!r}.",
                method="order_by",
                details={"column": str(column), "direction": direction},
            )
        self._order_target().append(Order(column, direction))
        return self

    def order_by_desc(self, column: Identifier) -> QueryBuilder:
        return self.order_by(column, "desc")

    def latest(self, column: Identifier = "created_at") -> QueryBuilder:
        return self.order_by(column, "desc")

    def oldest(self, column: Identifier = "created_at") -> QueryBuilder:
        return self.order_by(column, "asc")

    def order_by_raw(self, sql: str, bindings: Sequence[Any] | None = None) -> QueryBuilder:
        self._order_target().append(RawOrder(sql))
        if bindings:
            if self.state.unions:
                self._union_order_bindings.extend(b for b in bindings if not is_raw(b))
                self._sync_union_bindings()
            else:
                self.bindings.extend(bindings, "order")
        return self

    def in_random_order(self, seed: int | None = None) -> QueryBuilder:
        return self.order_by_raw(self.grammar.compile_random(seed))

    def limit(self, value: int) -> QueryBuilder:
        """Set the row limit.  Negative values are ignored."""
        value = int(value)
        if value >= 0:
            if self.state.unions:
                self.state.union_limit = value
            else:
                self.state.limit = value
        return self

    def take(self, value: int) -> QueryBuilder:
        return self.limit(value)

    def offset(self, value: int) -> QueryBuilder:
        """Set the row offset.  Negative values are clamped to zero."""
        value = max(0, int(value))
        if self.state.unions:
            self.state.union_offset = value
        else:
            self.state.offset = value
        return self

    def skip(self, value: int) -> QueryBuilder:
        return self.offset(value)

    def for_page(self, page: int, per_page: int = 15) -> QueryBuilder:
        """Limit the result to page ``page`` (1-based) of ``per_page`` rows."""
        return self.skip((page - 1) * per_page).take(per_page)

    # ------------------------------------------------------------------
    # UNION / locks
    # ------------------------------------------------------------------

    def union(self, query: SubQuery, all: bool = False) -> QueryBuilder:
        query = self._sub_query(query, "union")
        self.state.unions.append(UnionClause(query, all))
        self._sync_union_bindings()
        return self

    def union_all(self, query: SubQuery) -> QueryBuilder:
        return self.union(query, all=True)

    def _sync_union_bindings(self) -> None:
        values = [v for union in self.state.unions for v in union.query.get_bindings()]
        self.bindings.set([*values, *self._union_order_bindings], "union")

    def lock(self, exclusive: bool = True) -> QueryBuilder:
        self.state.lock = LockMode.EXCLUSIVE if exclusive else LockMode.SHARED
        return self

    def lock_for_update(self) -> QueryBuilder:
        return self.lock(True)

    def shared_lock(self) -> QueryBuilder:
        return self.lock(False)

    # ------------------------------------------------------------------
    # State and bindings
    # ------------------------------------------------------------------

    def new_query(self) -> QueryBuilder:
        """Return an empty builder sharing this one's connection and grammar."""
        return QueryBuilder(self.connection, self.grammar)

    def for_nested_where(self) -> QueryBuilder:
        query = self.new_query()
        query.state.from_ = self.state.from_
        return query

    def clone(self) -> QueryBuilder:
        """Return an independent copy; mutating it leaves ``self`` unchanged."""
        query = self.new_query()
        query.state = self.state.copy()
        query.bindings = self.bindings.copy()
        query.operators = self.operators
        query._union_order_bindings = list(self._union_order_bindings)
        return query

    def clear(self) -> QueryBuilder:
        """Reset every clause and binding, keeping connection and grammar."""
        self.state = QueryState()
        self.bindings = BindingStore()
        self._union_order_bindings = []
        return self

    def get_bindings(self) -> list[Any]:
        """All bound values, in placeholder order."""
        return self.bindings.flatten()

    def get_raw_bindings(self) -> dict[str, list[Any]]:
        return self.bindings.as_dict()

    def add_binding(self, value: Any, bucket: str = "where") -> QueryBuilder:
        """Append a value (or each value of a list) to ``bucket``.

        Raises:
            InvalidBindingTypeError: If ``bucket`` is unknown.
        """
        self.bindings.add(value, bucket)
        return self

    def set_bindings(self, values: Iterable[Any], bucket: str = "where") -> QueryBuilder:
        self.bindings.set(values, bucket)
        return self

    def merge_bindings(self, query: QueryBuilder) -> QueryBuilder:
        """Append every bucket of ``query`` to the matching bucket here."""
        for bucket, values in query.get_raw_bindings().items():
            self.bindings.extend(values, bucket)
        return self

    def to_sql(self) -> str:
        return self.grammar.compile_select(self)

    def compile(self) -> CompiledQuery:
        """Compile to SQL and bindings in one snapshot."""
        return CompiledQuery(
            sql=self.to_sql(),
            bindings=self.get_bindings(),
            dialect=self.grammar.dialect_name,
        )

    def raw(self, value: Any) -> RawSql:
        if self.connection is not None:
            return self.connection.raw(value)
        return raw(value)

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def _require_connection(self, method: str) -> ConnectionInterface:
        if self.connection is None:
            raise MissingConnectionError(method)
        return self.connection

    @staticmethod
    def _log_statement(kind: str, sql: str, bindings: Sequence[Any]) -> None:
        logger.debug("Running %s: %s (%d bindings)", kind, sql, len(bindings))

    def get(self, *columns: Any) -> list[dict[str, Any]]:
        """Run the select and return every row.

        ``columns`` is used only when no columns were selected beforehand.
        """
        original = self.state.columns
        if not original:
            self.state.columns = _column_list(columns) or ["*"]
        try:
            return self._run_select()
        finally:
            self.state.columns = original

    def _run_select(self) -> list[dict[str, Any]]:
        connection = self._require_connection("get")
        sql, bindings = self.to_sql(), self.get_bindings()
        self._log_statement("select", sql, bindings)
        return list(connection.select(sql, bindings))

    def first(self, *columns: Any) -> dict[str, Any] | None:
        """Return the first row, or ``None``.  Applies ``limit 1`` to this builder."""
        rows = self.take(1).get(*columns)
        return rows[0] if rows else None

    def find(self, id: Any, *columns: Any) -> dict[str, Any] | None:
        return self.where("id", "=", id).first(*columns)

    def value(self, column: Identifier) -> Any:
        """Return ``column`` of the first row, or ``None``."""
        row = self.first(column)
        if not row:
            return None
        return next(iter(row.values()))

    def pluck(self, column: Identifier, key: Identifier | None = None) -> list[Any] | dict[Any, Any]:
        """Return one column's values, keyed by ``key`` when given."""
        rows = self.get(column) if key is None else self.get(column, key)
        name = _strip_table(column)
        if key is None:
            return [row[name] for row in rows]
        key_name = _strip_table(key)
        return {row[key_name]: row[name] for row in rows}

    def chunk(self, count: int, callback: Callable[[list[dict[str, Any]], int], Any]) -> bool:
        """Feed the result to ``callback`` ``count`` rows at a time.

        ``callback(rows, page)`` may return ``False`` to stop early.

        Raises:
            MissingOrderByError: If the query has no order by.
        """
        if not self.state.orders and not self.state.union_orders:
            raise MissingOrderByError("chunk")
        page = 1
        while True:
            rows = self.clone().for_page(page, count).get()
            if not rows:
                break
            if callback(rows, page) is False:
                return False
            if len(rows) < count:
                break
            page += 1
        return True

    def exists(self) -> bool:
        connection = self._require_connection("exists")
        sql, bindings = self.grammar.compile_exists(self), self.get_bindings()
        self._log_statement("exists", sql, bindings)
        rows = connection.select(sql, bindings)
        if not rows:
            return False
        return bool(rows[0]["exists"])

    def doesnt_exist(self) -> bool:
        return not self.exists()

    def aggregate(self, function: str, *columns: Any) -> Any:
        """Run ``function(columns)`` on a copy of the query and return the value.

        Selected columns and their bindings are dropped from the copy, and so
        is ordering unless the query is grouped.  Without a result row, ``count``
        gives ``0`` and every other function ``None``.
        """
        columns = tuple(_column_list(columns)) or ("*",)
        query = self.clone()
        query.state.columns = []
        query.bindings.clear("select")
        query.state.aggregate = Aggregate(function, columns)
        if not query.state.groups:
            query.state.orders = []
            query.bindings.clear("order")
        rows = query.get(*columns)
        if not rows:
            return 0 if function.lower() == "count" else None
        row = {str(k).lower(): v for k, v in rows[0].items()}
        return row.get("aggregate")

    def numeric_aggregate(self, function: str, *columns: Any) -> int | float | Decimal:
        """Like :meth:`aggregate`, but ``0`` for no row and numbers for numeric text."""
        result = self.aggregate(function, *columns)
        if result is None:
            return 0
        if isinstance(result, str):
            return float(result) if "." in result else int(result)
        return result

    def count(self, *columns: Any) -> int:
        return int(self.aggregate("count", *columns) or 0)

    def min(self, column: Identifier) -> Any:
        return self.aggregate("min", column)

    def max(self, column: Identifier) -> Any:
        return self.aggregate("max", column)

    def sum(self, column: Identifier) -> int | float | Decimal:
        return self.numeric_aggregate("sum", column)

    def avg(self, column: Identifier) -> Any:
        return self.aggregate("avg", column)

    def average(self, column: Identifier) -> Any:
        return self.avg(column)

    def insert(self, values: Mapping[str, Any] | Sequence[Mapping[str, Any]]) -> bool:
        """Insert one record, or several sharing the same columns.

        An empty mapping inserts a row of column defaults; an empty list
        does nothing.

        Raises:
            InvalidArgumentError: If the records do not share the same columns.
        """
        if isinstance(values, Mapping):
            records = [values]
        elif not values:
            return True
        else:
            records = list(values)
        keys = list(records[0])
        for record in records[1:]:
            if set(record) != set(keys):
                raise InvalidArgumentError(
                    "Every inserted record must have the same columns.",
                    method="insert",
                    details={"expected": keys, "got": list(record)},
                )
        connection = self._require_connection("insert")
        sql = self.grammar.compile_insert(self, records)
        bindings = [
            record[key] for record in records for key in keys if not is_raw(record[key])
        ]
        self._log_statement("insert", sql, bindings)
        return connection.insert(sql, bindings)

    def update(self, values: Mapping[str, Any]) -> int:
        """Update matching rows and return the affected row count."""
        connection = self._require_connection("update")
        sql = self.grammar.compile_update(self, values)
        bindings = self.grammar.prepare_bindings_for_update(self, values)
        self._log_statement("update", sql, bindings)
        return connection.update(sql, bindings)

    def increment(
        self, column: str, amount: int | float = 1, extra: Mapping[str, Any] | None = None
    ) -> int:
        """Add ``amount`` to ``column`` (and set ``extra`` columns) in one update.

        Raises:
            InvalidArgumentError: If ``amount`` is not a number.
        """
        return self._adjust(column, amount, extra, "+", "increment")

    def decrement(
        self, column: str, amount: int | float = 1, extra: Mapping[str, Any] | None = None
    ) -> int:
        return self._adjust(column, amount, extra, "-", "decrement")

    def _adjust(
        self,
        column: str,
        amount: Any,
        extra: Mapping[str, Any] | None,
        sign: str,
        method: str,
    ) -> int:
        if isinstance(amount, bool) or not isinstance(amount, (int, float, Decimal)):
            raise InvalidArgumentError(
                f"Non-numeric value passed to {method}().",
                method=method,
                details={"column": column, "amount": amount},
            )
        values: dict[str, Any] = {column: raw(f"{self.grammar.wrap(column)} {sign} {amount}")}
        values.update(extra or {})
        return self.update(values)

    def update_or_insert(
        self, attributes: Mapping[str, Any], values: Mapping[str, Any] | None = None
    ) -> bool:
        """Insert ``attributes + values`` unless a row matching ``attributes`` exists.

        Otherwise update one matching row with ``values``.
        """
        values = dict(values or {})
        if not self.where(dict(attributes)).exists():
            return self.insert({**attributes, **values})
        if not values:
            return True
        return bool(self.take(1).update(values))

    def delete(self, id: Any = None) -> int:
        """Delete matching rows, or only the row with primary key ``id``."""
        if id is not None:
            self.where(f"{_table_reference(self.state.from_)}.id", "=", id)
        connection = self._require_connection("delete")
        sql = self.grammar.compile_delete(self)
        bindings = self.grammar.prepare_bindings_for_delete(self)
        self._log_statement("delete", sql, bindings)
        return connection.delete(sql, bindings)

    def truncate(self) -> None:
        """Run every statement the grammar needs to empty the table."""
        connection = self._require_connection("truncate")
        for sql, bindings in self.grammar.compile_truncate(self).items():
            self._log_statement("truncate", sql, bindings)
            connection.statement(sql, bindings)
