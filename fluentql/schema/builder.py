"""Schema builder: runs blueprints against a connection."""
from __future__ import annotations

import logging
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from fluentql.schema.blueprint import Blueprint

if TYPE_CHECKING:
    from fluentql.connection import ConnectionInterface

logger = logging.getLogger(__name__)


class SchemaBuilder:
    """Creates, alters and inspects tables through a connection.

    Usage::

        schema = SchemaBuilder(connection)
        schema.create("users", lambda table: (
            table.increments("id"),
            table.string("email").unique(),
        ))
        schema.has_table("users")   # True
    """

    def __init__(self, connection: ConnectionInterface) -> None:
        self.connection = connection
        self.grammar = connection.get_schema_grammar()

    def has_table(self, table: str) -> bool:
        query = self.grammar.compile_table_exists(table)
        return len(self.connection.select(query.sql, query.bindings)) > 0

    def has_column(self, table: str, column: str) -> bool:
        return column.lower() in (name.lower() for name in self.get_column_listing(table))

    def get_column_listing(self, table: str) -> list[str]:
        query = self.grammar.compile_column_listing(table)
        rows = self.connection.select(query.sql, query.bindings)
        return self.grammar.process_column_listing(rows)

    def create(self, table: str, callback: Callable[[Blueprint], Any]) -> None:
        blueprint = self.create_blueprint(table)
        blueprint.create()
        callback(blueprint)
        self.build(blueprint)

    def table(self, table: str, callback: Callable[[Blueprint], Any]) -> None:
        """Modify an existing table."""
        blueprint = self.create_blueprint(table)
        callback(blueprint)
        self.build(blueprint)

    def drop(self, table: str) -> None:
        blueprint = self.create_blueprint(table)
        blueprint.drop()
        self.build(blueprint)

    def drop_if_exists(self, table: str) -> None:
        blueprint = self.create_blueprint(table)
        blueprint.drop_if_exists()
        self.build(blueprint)

    def rename(self, source: str, to: str) -> None:
        blueprint = self.create_blueprint(source)
        blueprint.rename(to)
        self.build(blueprint)

    def enable_foreign_key_constraints(self) -> bool:
        return self.connection.statement(self.grammar.compile_enable_foreign_key_constraints(), [])

    def disable_foreign_key_constraints(self) -> bool:
        return self.connection.statement(self.grammar.compile_disable_foreign_key_constraints(), [])

    def build(self, blueprint: Blueprint) -> None:
        logger.debug("Building %r", blueprint)
        blueprint.build(self.connection, self.grammar)

    def create_blueprint(self, table: str) -> Blueprint:
        return Blueprint(table, prefix=self.grammar.get_table_prefix())
