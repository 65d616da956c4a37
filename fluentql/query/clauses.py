"""Clause models accumulated by :class:`~fluentql.query.builder.QueryBuilder`.

Every predicate kind is its own frozen dataclass; the grammar dispatches on
the concrete type.  Clauses that embed a sub-query hold the nested builder
that produced it.  Those nested builders belong to the clause and are not
mutated once embedded.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Union

from fluentql.value import Identifier

if TYPE_CHECKING:
    from fluentql.query.builder import QueryBuilder
    from fluentql.query.join_clause import JoinClause


class Boolean(str, Enum):
    """Connector joining a predicate to the one before it."""

    AND = "and"
    OR = "or"


class DatePart(str, Enum):
    """The part of a date/time column compared by a :class:`DateWhere`."""

    DATE = "date"
    DAY = "day"
    MONTH = "month"
    YEAR = "year"
    TIME = "time"


class LockMode(str, Enum):
    """Row lock requested for a SELECT."""

    SHARED = "shared"
    EXCLUSIVE = "exclusive"


# ---------------------------------------------------------------------------
# Predicates (WHERE / ON / HAVING)
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class BasicWhere:
    """``column operator value``."""

    column: Identifier
    operator: str
    value: Any
    boolean: str = Boolean.AND.value


@dataclass(frozen=True)
class ColumnWhere:
    """``first operator second`` where both sides are columns."""

    first: Identifier
    operator: str
    second: Identifier
    boolean: str = Boolean.AND.value


@dataclass(frozen=True)
class RawWhere:
    """A verbatim SQL condition."""

    sql: str
    boolean: str = Boolean.AND.value


@dataclass(frozen=True)
class InWhere:
    """``column [not] in (values...)``."""

    column: Identifier
    values: tuple[Any, ...]
    boolean: str = Boolean.AND.value
    negated: bool = False


@dataclass(frozen=True)
class InSubWhere:
    """``column [not] in (select ...)``."""

    column: Identifier
    query: QueryBuilder
    boolean: str = Boolean.AND.value
    negated: bool = False


@dataclass(frozen=True)
class NullWhere:
    """``column is [not] null``."""

    column: Identifier
    boolean: str = Boolean.AND.value
    negated: bool = False


@dataclass(frozen=True)
class BetweenWhere:
    """``column [not] between low and high``."""

    column: Identifier
    low: Any
    high: Any
    boolean: str = Boolean.AND.value
    negated: bool = False


@dataclass(frozen=True)
class DateWhere:
    """Comparison against one extracted part of a date/time column."""

    part: DatePart
    column: Identifier
    operator: str
    value: Any
    boolean: str = Boolean.AND.value


@dataclass(frozen=True)
class ExistsWhere:
    """``[not] exists (select ...)``."""

    query: QueryBuilder
    boolean: str = Boolean.AND.value
    negated: bool = False


@dataclass(frozen=True)
class NestedWhere:
    """A parenthesised group of the nested builder's own predicates."""

    query: QueryBuilder
    boolean: str = Boolean.AND.value


@dataclass(frozen=True)
class SubWhere:
    """``column operator (select ...)``."""

    column: Identifier
    operator: str
    query: QueryBuilder
    boolean: str = Boolean.AND.value


WhereClause = Union[
    BasicWhere,
    ColumnWhere,
    RawWhere,
    InWhere,
    InSubWhere,
    NullWhere,
    BetweenWhere,
    DateWhere,
    ExistsWhere,
    NestedWhere,
    SubWhere,
]

#: Predicate kinds the having mutators produce.
HavingClause = Union[BasicWhere, RawWhere, BetweenWhere, NullWhere]


# ---------------------------------------------------------------------------
# Ordering, unions, aggregates
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Order:
    """``column asc|desc``."""

    column: Identifier
    direction: str = "asc"


@dataclass(frozen=True)
class RawOrder:
    """A verbatim ORDER BY expression."""

    sql: str


OrderClause = Union[Order, RawOrder]


@dataclass(frozen=True)
class UnionClause:
    """A query combined with the owning one via ``union [all]``."""

    query: QueryBuilder
    all: bool = False


@dataclass(frozen=True)
class Aggregate:
    """Aggregate function replacing the column list, e.g. ``count(*)``."""

    function: str
    columns: tuple[Identifier, ...] = ("*",)


@dataclass(frozen=True)
class SubSelect:
    """``(select ...) as alias`` in the column list; ``query`` may be raw SQL."""

    query: QueryBuilder | str
    alias: str


# ---------------------------------------------------------------------------
# Query state
# ---------------------------------------------------------------------------


@dataclass
class QueryState:
    """Everything a :class:`QueryBuilder` has accumulated so far.

    ``union_orders``, ``union_limit`` and ``union_offset`` apply to the
    combined result once at least one union is present.
    """

    columns: list[Identifier | SubSelect] = field(default_factory=list)
    distinct: bool = False
    from_: Identifier | None = None
    joins: list[JoinClause] = field(default_factory=list)
    wheres: list[WhereClause] = field(default_factory=list)
    groups: list[Identifier] = field(default_factory=list)
    havings: list[HavingClause] = field(default_factory=list)
    orders: list[OrderClause] = field(default_factory=list)
    limit: int | None = None
    offset: int | None = None
    unions: list[UnionClause] = field(default_factory=list)
    union_orders: list[OrderClause] = field(default_factory=list)
    union_limit: int | None = None
    union_offset: int | None = None
    lock: LockMode | None = None
    aggregate: Aggregate | None = None

    def copy(self) -> QueryState:
        """Return a copy whose clause lists can be mutated independently.

        Embedded sub-builders are shared; they are never mutated after
        being embedded.
        """
        return QueryState(
            columns=list(self.columns),
            distinct=self.distinct,
            from_=self.from_,
            joins=list(self.joins),
            wheres=list(self.wheres),
            groups=list(self.groups),
            havings=list(self.havings),
            orders=list(self.orders),
            limit=self.limit,
            offset=self.offset,
            unions=list(self.unions),
            union_orders=list(self.union_orders),
            union_limit=self.union_limit,
            union_offset=self.union_offset,
            lock=self.lock,
            aggregate=self.aggregate,
        )
