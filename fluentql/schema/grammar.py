"""DDL grammar base.

:class:`SchemaGrammar` shares identifier wrapping and the table prefix with
the query grammars through :class:`~fluentql.grammar.base.BaseGrammar`.
Dialects provide one ``type_<name>`` method per abstract column type, one
``modify_<name>`` method per entry of :attr:`SchemaGrammar.modifiers` and
one ``compile_<command>`` method per blueprint command they support.
"""
from __future__ import annotations

from typing import TYPE_CHECKING, Any, ClassVar

from fluentql.errors import UnsupportedCommandError
from fluentql.grammar.base import BaseGrammar, CompiledQuery
from fluentql.value import is_raw

if TYPE_CHECKING:
    from fluentql.schema.blueprint import Blueprint, ColumnDefinition, Command, ForeignKeyDefinition


class SchemaGrammar(BaseGrammar):
    """Compiles :class:`~fluentql.schema.blueprint.Blueprint` commands to DDL."""

    #: Modifier names, in the order their SQL is appended to a column.
    modifiers: ClassVar[tuple[str, ...]] = ()

    #: Column types that may auto-increment.
    serials: ClassVar[tuple[str, ...]] = (
        "big_integer", "integer", "medium_integer", "small_integer", "tiny_integer",
    )

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    def compile_table_exists(self, table: str) -> CompiledQuery:
        raise UnsupportedCommandError("table_exists", self.dialect_name)

    def compile_column_listing(self, table: str) -> CompiledQuery:
        raise UnsupportedCommandError("column_listing", self.dialect_name)

    def process_column_listing(self, rows: list[dict[str, Any]]) -> list[str]:
        """Extract column names from the rows of a column listing query."""
        return [str(next(iter(row.values()))) for row in rows]

    def compile_enable_foreign_key_constraints(self) -> str:
        raise UnsupportedCommandError("enable_foreign_key_constraints", self.dialect_name)

    def compile_disable_foreign_key_constraints(self) -> str:
        raise UnsupportedCommandError("disable_foreign_key_constraints", self.dialect_name)

    # ------------------------------------------------------------------
    # Columns
    # ------------------------------------------------------------------

    def get_columns(self, blueprint: Blueprint) -> list[str]:
        """Return ``"name" type modifiers`` for every added column."""
        return [
            self.add_modifiers(
                f"{self.wrap(column.name)} {self.get_type(column)}", blueprint, column
            )
            for column in blueprint.get_added_columns()
        ]

    def get_type(self, column: ColumnDefinition) -> str:
        method = getattr(self, f"type_{column.type}", None)
        if method is None:
            raise UnsupportedCommandError(f"type {column.type}", self.dialect_name)
        return method(column)

    def add_modifiers(self, sql: str, blueprint: Blueprint, column: ColumnDefinition) -> str:
        for modifier in self.modifiers:
            sql += getattr(self, f"modify_{modifier}")(blueprint, column)
        return sql

    def modify_nullable(self, blueprint: Blueprint, column: ColumnDefinition) -> str:
        return " null" if column.allow_null else " not null"

    def modify_default(self, blueprint: Blueprint, column: ColumnDefinition) -> str:
        if column.default_value is None:
            return ""
        return f" default {self.get_default_value(column.default_value)}"

    def get_default_value(self, value: Any) -> str:
        """Render a column default: raw SQL as-is, booleans as ``'1'``/``'0'``, the rest quoted."""
        if is_raw(value):
            return self.get_value(value)
        if isinstance(value, bool):
            return "'1'" if value else "'0'"
        return self.quote_string(value)

    def quote_string(self, value: Any) -> str:
        text = self.escape(str(value).replace("'", "''"))
        return f"'{text}'"

    # ------------------------------------------------------------------
    # Commands shared by every dialect
    # ------------------------------------------------------------------

    def compile_foreign(self, blueprint: Blueprint, command: ForeignKeyDefinition) -> str:
        sql = (
            f"alter table {self.wrap_table(blueprint.table)} "
            f"add constraint {self.wrap(command.index)} "
        )
        return sql + self.foreign_key_definition(command)

    def foreign_key_definition(self, command: ForeignKeyDefinition) -> str:
        """``foreign key ("a") references "t" ("b")`` plus any referential actions."""
        sql = (
            f"foreign key ({self.columnize(command.columns)}) "
            f"references {self.wrap_table(command.referenced_table)} "
            f"({self.columnize(command.referenced_columns)})"
        )
        if command.on_delete_action:
            sql += f" on delete {command.on_delete_action}"
        if command.on_update_action:
            sql += f" on update {command.on_update_action}"
        return sql

    def compile_drop(self, blueprint: Blueprint, command: Command) -> str:
        return f"drop table {self.wrap_table(blueprint.table)}"

    def compile_drop_if_exists(self, blueprint: Blueprint, command: Command) -> str:
        return f"drop table if exists {self.wrap_table(blueprint.table)}"
