"""Identifier wrapping shared by the query and schema grammars.

``BaseGrammar`` owns everything that depends only on how a dialect quotes
identifiers: splitting dotted names, handling ``x as y`` aliases, applying
the table prefix, and producing placeholders.  Dialects change the
quote character through :attr:`BaseGrammar.identifier_quote` and override
:meth:`BaseGrammar.wrap_value` for anything more involved.
"""
from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any, ClassVar

from fluentql.value import Identifier, RawSql, is_raw

_ALIAS_SPLIT = re.compile(r"\s+as\s+", re.IGNORECASE)


@dataclass
class CompiledQuery:
    """The output of compiling a builder.

    Attributes:
        sql: Statement text with the grammar's placeholders.
        bindings: Parameter values, one per placeholder, in order.
        dialect: Name of the grammar that produced ``sql``.
    """

    sql: str
    bindings: list[Any] = field(default_factory=list)
    dialect: str = "default"

    def as_tuple(self) -> tuple[str, list[Any]]:
        """Returns ``(sql, bindings)`` ready for a DB-API ``execute`` call."""
        return self.sql, list(self.bindings)


class BaseGrammar:
    """Dialect-neutral identifier and placeholder rendering.

    Args:
        table_prefix: Prepended to every non-raw table name before quoting.
    """

    #: Character used on both sides of a quoted identifier.
    identifier_quote: ClassVar[str] = '"'

    #: Placeholder emitted for every bound value; see :meth:`set_placeholder`.
    placeholder: str = "?"

    #: ``strftime`` format used when binding ``datetime`` values.
    date_format: ClassVar[str] = "%Y-%m-%d %H:%M:%S"

    dialect_name: ClassVar[str] = "default"

    def __init__(self, table_prefix: str = "") -> None:
        self.table_prefix = table_prefix

    # ------------------------------------------------------------------
    # Table prefix
    # ------------------------------------------------------------------

    def set_table_prefix(self, prefix: str) -> BaseGrammar:
        self.table_prefix = prefix
        return self

    def get_table_prefix(self) -> str:
        return self.table_prefix

    # ------------------------------------------------------------------
    # Placeholder style
    # ------------------------------------------------------------------

    def set_placeholder(self, placeholder: str) -> BaseGrammar:
        """Emit ``placeholder`` for bound values instead of ``?``.

        ``%s`` suits DB-API drivers with the ``format`` or ``pyformat``
        paramstyle.  Those drivers read every ``%`` in the statement as a
        directive, so once the placeholder contains ``%`` the grammar doubles
        each literal ``%`` it renders, and ``?`` markers inside raw fragments
        are rewritten to ``placeholder`` (see :meth:`compile_raw`).
        """
        self.placeholder = placeholder
        return self

    def escape(self, text: str) -> str:
        """Double every ``%`` in ``text`` when the placeholder style needs it."""
        if "%" in self.placeholder:
            return text.replace("%", "%%")
        return text

    def compile_raw(self, sql: str) -> str:
        """Render a hand-written fragment for this grammar's placeholder style.

        With the default ``?`` placeholder the fragment is returned as is.
        Otherwise every ``%`` is doubled and each ``?`` outside a quoted
        literal or identifier becomes the placeholder.  ``?|`` and ``?&`` are
        kept as operators; write the lone ``?`` JSON operator as
        ``jsonb_exists(...)`` inside raw fragments.
        """
        if self.placeholder == "?":
            return sql
        parts: list[str] = []
        quote = ""
        for index, char in enumerate(sql):
            if char == "%":
                parts.append(self.escape(char))
            elif quote:
                parts.append(char)
                if char == quote:
                    quote = ""
            elif char in "'\"`":
                quote = char
                parts.append(char)
            elif char == "?" and sql[index + 1 : index + 2] not in ("|", "&"):
                parts.append(self.placeholder)
            else:
                parts.append(char)
        return "".join(parts)

    # ------------------------------------------------------------------
    # Wrapping
    # ------------------------------------------------------------------

    def wrap_table(self, table: Identifier) -> str:
        """Quote a table name, prefixing it unless it is raw SQL."""
        if is_raw(table):
            return self.get_value(table)
        return self.wrap(self.table_prefix + table, prefix_alias=True)

    def wrap(self, value: Identifier, prefix_alias: bool = False) -> str:
        """Quote a (possibly dotted, possibly aliased) identifier.

        ``users.name`` becomes ``"users"."name"``, ``users.name as n``
        becomes ``"users"."name" as "n"`` and ``*`` is left alone.
        """
        if is_raw(value):
            return self.get_value(value)
        if " as " in value.lower():
            return self.wrap_aliased_value(value, prefix_alias)
        return self.wrap_segments(value.split("."))

    def wrap_aliased_value(self, value: str, prefix_alias: bool = False) -> str:
        expression, alias = _ALIAS_SPLIT.split(value, maxsplit=1)
        if prefix_alias:
            alias = self.table_prefix + alias
        return f"{self.wrap(expression)} as {self.wrap_value(alias)}"

    def wrap_segments(self, segments: list[str]) -> str:
        """Quote each dotted segment; the first of several is a table."""
        wrapped = []
        for index, segment in enumerate(segments):
            if index == 0 and len(segments) > 1:
                wrapped.append(self.wrap_table(segment))
            else:
                wrapped.append(self.wrap_value(segment))
        return ".".join(wrapped)

    def wrap_value(self, value: str) -> str:
        """Quote a single identifier segment."""
        if value == "*":
            return value
        quote = self.identifier_quote
        return f"{quote}{self.escape(value.replace(quote, quote * 2))}{quote}"

    def wrap_array(self, values: Iterable[Identifier]) -> list[str]:
        return [self.wrap(value) for value in values]

    def columnize(self, columns: Iterable[Identifier]) -> str:
        """Wrap and comma-join column names."""
        return ", ".join(self.wrap_array(columns))

    # ------------------------------------------------------------------
    # Placeholders
    # ------------------------------------------------------------------

    def parameter(self, value: Any) -> str:
        """Return the placeholder for ``value``, or its SQL if it is raw."""
        return self.get_value(value) if is_raw(value) else self.placeholder

    def parameterize(self, values: Iterable[Any]) -> str:
        return ", ".join(self.parameter(value) for value in values)

    def get_value(self, expression: RawSql) -> str:
        return self.compile_raw(expression.sql)

    def get_date_format(self) -> str:
        return self.date_format
