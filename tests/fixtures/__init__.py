"""Test fixtures: a recording connection with canned results."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from fluentql.grammar.query import QueryGrammar
from fluentql.schema.grammar import SchemaGrammar
from fluentql.schema.sqlite import SQLiteSchemaGrammar
from fluentql.value import RawSql, raw


class FakeConnection:
    """Records every statement it is handed instead of executing it.

    ``select`` answers with the next entry of :attr:`results` when one is
    queued, otherwise with :attr:`rows`.  ``update`` and ``delete`` report
    :attr:`affected` rows.
    """

    def __init__(
        self,
        grammar: QueryGrammar | None = None,
        rows: list[dict[str, Any]] | None = None,
        schema_grammar: SchemaGrammar | None = None,
    ) -> None:
        self.grammar = grammar or QueryGrammar()
        self.schema_grammar = schema_grammar or SQLiteSchemaGrammar()
        self.rows: list[dict[str, Any]] = list(rows or [])
        self.results: list[list[dict[str, Any]]] = []
        self.calls: list[tuple[str, str, list[Any]]] = []
        self.affected = 1

    @property
    def last(self) -> tuple[str, str, list[Any]]:
        return self.calls[-1]

    def queue(self, *results: list[dict[str, Any]]) -> FakeConnection:
        self.results.extend(results)
        return self

    def select(self, sql: str, bindings: Sequence[Any]) -> list[dict[str, Any]]:
        self.calls.append(("select", sql, list(bindings)))
        if self.results:
            return self.results.pop(0)
        return list(self.rows)

    def insert(self, sql: str, bindings: Sequence[Any]) -> bool:
        self.calls.append(("insert", sql, list(bindings)))
        return True

    def update(self, sql: str, bindings: Sequence[Any]) -> int:
        self.calls.append(("update", sql, list(bindings)))
        return self.affected

    def delete(self, sql: str, bindings: Sequence[Any]) -> int:
        self.calls.append(("delete", sql, list(bindings)))
        return self.affected

    def statement(self, sql: str, bindings: Sequence[Any]) -> bool:
        self.calls.append(("statement", sql, list(bindings)))
        return True

    def raw(self, value: Any) -> RawSql:
        return raw(value)

    def get_query_grammar(self) -> QueryGrammar:
        return self.grammar

    def get_schema_grammar(self) -> SchemaGrammar:
        return self.schema_grammar
