"""SQLite DDL grammar."""
from __future__ import annotations

from typing import TYPE_CHECKING, Any

from fluentql.errors import UnsupportedCommandError
from fluentql.grammar.base import CompiledQuery
from fluentql.schema.grammar import SchemaGrammar

if TYPE_CHECKING:
    from fluentql.schema.blueprint import Blueprint, ColumnDefinition, Command, ForeignKeyDefinition


class SQLiteSchemaGrammar(SchemaGrammar):
    """Compiles blueprints to SQLite DDL.

    Primary and foreign keys can only be declared while creating a table;
    they are folded into the ``create table`` statement.
    """

    dialect_name = "sqlite"
    modifiers = ("nullable", "default", "increment")

    def compile_table_exists(self, table: str) -> CompiledQuery:
        return CompiledQuery(
            sql=f"select * from sqlite_master where type = 'table' and name = {self.placeholder}",
            bindings=[self.table_prefix + table],
            dialect=self.dialect_name,
        )

    def compile_column_listing(self, table: str) -> CompiledQuery:
        name = (self.table_prefix + table).replace(".", "__")
        return CompiledQuery(sql=f"pragma table_info({self.wrap(name)})", dialect=self.dialect_name)

    def process_column_listing(self, rows: list[dict[str, Any]]) -> list[str]:
        return [row["name"] for row in rows]

    def compile_enable_foreign_key_constraints(self) -> str:
        return "PRAGMA foreign_keys = ON;"

    def compile_disable_foreign_key_constraints(self) -> str:
        return "PRAGMA foreign_keys = OFF;"

    # ------------------------------------------------------------------
    # Table commands
    # ------------------------------------------------------------------

    def compile_create(self, blueprint: Blueprint, command: Command) -> str:
        create = "create temporary table" if blueprint.temporary_table else "create table"
        columns = ", ".join(self.get_columns(blueprint))
        return (
            f"{create} {self.wrap_table(blueprint.table)} "
            f"({columns}{self.add_foreign_keys(blueprint)}{self.add_primary_keys(blueprint)})"
        )

    def add_foreign_keys(self, blueprint: Blueprint) -> str:
        return "".join(
            f", {self.foreign_key_definition(foreign)}"
            for foreign in blueprint.get_commands("foreign")
        )

    def add_primary_keys(self, blueprint: Blueprint) -> str:
        primary = blueprint.get_commands("primary")
        if not primary:
            return ""
        return f", primary key ({self.columnize(primary[0].columns)})"

    def compile_add(self, blueprint: Blueprint, command: Command) -> list[str]:
        table = self.wrap_table(blueprint.table)
        return [f"alter table {table} add column {column}" for column in self.get_columns(blueprint)]

    def compile_primary(self, blueprint: Blueprint, command: Command) -> None:
        if not blueprint.creating():
            raise UnsupportedCommandError("primary", self.dialect_name)

    def compile_foreign(self, blueprint: Blueprint, command: ForeignKeyDefinition) -> None:
        if not blueprint.creating():
            raise UnsupportedCommandError("foreign", self.dialect_name)

    def compile_unique(self, blueprint: Blueprint, command: Command) -> str:
        return (
            f"create unique index {self.wrap(command.index)} "
            f"on {self.wrap_table(blueprint.table)} ({self.columnize(command.columns)})"
        )

    def compile_index(self, blueprint: Blueprint, command: Command) -> str:
        return (
            f"create index {self.wrap(command.index)} "
            f"on {self.wrap_table(blueprint.table)} ({self.columnize(command.columns)})"
        )

    def compile_drop_column(self, blueprint: Blueprint, command: Command) -> list[str]:
        table = self.wrap_table(blueprint.table)
        return [f"alter table {table} drop column {self.wrap(column)}" for column in command.columns]

    def compile_drop_unique(self, blueprint: Blueprint, command: Command) -> str:
        return f"drop index {self.wrap(command.index)}"

    def compile_drop_index(self, blueprint: Blueprint, command: Command) -> str:
        return f"drop index {self.wrap(command.index)}"

    def compile_rename(self, blueprint: Blueprint, command: Command) -> str:
        return f"alter table {self.wrap_table(blueprint.table)} rename to {self.wrap_table(command.to)}"

    # ------------------------------------------------------------------
    # Types
    # ------------------------------------------------------------------

    def type_char(self, column: ColumnDefinition) -> str:
        return "varchar"

    def type_string(self, column: ColumnDefinition) -> str:
        return "varchar"

    def type_text(self, column: ColumnDefinition) -> str:
        return "text"

    def type_medium_text(self, column: ColumnDefinition) -> str:
        return "text"

    def type_long_text(self, column: ColumnDefinition) -> str:
        return "text"

    def type_integer(self, column: ColumnDefinition) -> str:
        return "integer"

    type_big_integer = type_integer
    type_medium_integer = type_integer
    type_small_integer = type_integer
    type_tiny_integer = type_integer

    def type_float(self, column: ColumnDefinition) -> str:
        return "float"

    def type_double(self, column: ColumnDefinition) -> str:
        return "float"

    def type_decimal(self, column: ColumnDefinition) -> str:
        return "numeric"

    def type_boolean(self, column: ColumnDefinition) -> str:
        return "tinyint(1)"

    def type_enum(self, column: ColumnDefinition) -> str:
        allowed = ", ".join(self.quote_string(value) for value in column.allowed)
        return f"varchar check ({self.wrap(column.name)} in ({allowed}))"

    def type_json(self, column: ColumnDefinition) -> str:
        return "text"

    def type_jsonb(self, column: ColumnDefinition) -> str:
        return "text"

    def type_date(self, column: ColumnDefinition) -> str:
        return "date"

    def type_date_time(self, column: ColumnDefinition) -> str:
        return "datetime"

    def type_time(self, column: ColumnDefinition) -> str:
        return "time"

    def type_timestamp(self, column: ColumnDefinition) -> str:
        return "datetime"

    def type_binary(self, column: ColumnDefinition) -> str:
        return "blob"

    def type_uuid(self, column: ColumnDefinition) -> str:
        return "varchar"

    def type_ip_address(self, column: ColumnDefinition) -> str:
        return "varchar"

    def type_mac_address(self, column: ColumnDefinition) -> str:
        return "varchar"

    # ------------------------------------------------------------------
    # Modifiers
    # ------------------------------------------------------------------

    def modify_increment(self, blueprint: Blueprint, column: ColumnDefinition) -> str:
        if column.type in self.serials and column.increments:
            return " primary key autoincrement"
        return ""
