"""JOIN clauses.

A :class:`JoinClause` names the joined table and holds its own nested
:class:`~fluentql.query.builder.QueryBuilder`, whose predicates compile as
the ``on`` condition.  ``on`` compares two columns; ``where`` compares a
column against a bound value.  All values bound by the join end up in the
owning builder's ``join`` bucket.
"""
from __future__ import annotations

from collections.abc import Callable, Iterable
from typing import TYPE_CHECKING, Any

from fluentql.value import UNSET, Identifier

if TYPE_CHECKING:
    from fluentql.query.builder import QueryBuilder


class JoinClause:
    """One ``{type} join {table} on ...`` clause.

    Args:
        parent: The builder the join belongs to.  Its connection and grammar
            are reused for the nested condition builder.
        type: ``inner``, ``left``, ``right`` or ``cross``.
        table: The joined table, optionally aliased (``"contacts as c"``).
    """

    def __init__(self, parent: QueryBuilder, type: str, table: Identifier) -> None:
        self.parent = parent
        self.type = type
        self.table = table
        self.query = parent.new_query()

    def on(
        self,
        first: Identifier | Callable[[JoinClause], Any],
        operator: Any = UNSET,
        second: Any = UNSET,
        boolean: str = "and",
    ) -> JoinClause:
        """Add a column-to-column condition, or a nested group when ``first`` is callable.

        Example::

            builder.join("contacts", lambda j: j.on("users.id", "=", "contacts.user_id")
                                                .or_on("users.id", "=", "contacts.owner_id"))
        """
        if callable(first):
            return self.on_nested(first, boolean)
        self.query.where_column(first, operator, second, boolean)
        return self

    def or_on(self, first: Any, operator: Any = UNSET, second: Any = UNSET) -> JoinClause:
        return self.on(first, operator, second, "or")

    def on_nested(self, callback: Callable[[JoinClause], Any], boolean: str = "and") -> JoinClause:
        """Add a parenthesised group of conditions built by ``callback``."""
        nested = JoinClause(self.parent, self.type, self.table)
        callback(nested)
        self.query.add_nested_where_query(nested.query, boolean)
        return self

    def where(
        self, column: Any, operator: Any = UNSET, value: Any = UNSET, boolean: str = "and"
    ) -> JoinClause:
        """Add a column-to-value condition; ``value`` is bound."""
        self.query.where(column, operator, value, boolean)
        return self

    def or_where(self, column: Any, operator: Any = UNSET, value: Any = UNSET) -> JoinClause:
        return self.where(column, operator, value, "or")

    def where_null(self, column: Identifier, boolean: str = "and") -> JoinClause:
        self.query.where_null(column, boolean)
        return self

    def where_not_null(self, column: Identifier, boolean: str = "and") -> JoinClause:
        self.query.where_not_null(column, boolean)
        return self

    def or_where_null(self, column: Identifier) -> JoinClause:
        return self.where_null(column, "or")

    def or_where_not_null(self, column: Identifier) -> JoinClause:
        return self.where_not_null(column, "or")

    def where_in(self, column: Identifier, values: Iterable[Any], boolean: str = "and") -> JoinClause:
        self.query.where_in(column, values, boolean)
        return self

    def where_not_in(
        self, column: Identifier, values: Iterable[Any], boolean: str = "and"
    ) -> JoinClause:
        self.query.where_not_in(column, values, boolean)
        return self

    def get_bindings(self) -> list[Any]:
        """Values bound by this join's conditions, in placeholder order."""
        return self.query.get_bindings()

    def __repr__(self) -> str:
        return f"JoinClause(type={self.type!r}, table={self.table!r})"
