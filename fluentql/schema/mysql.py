"""MySQL DDL grammar."""
from __future__ import annotations

from typing import TYPE_CHECKING, Any

from fluentql.grammar.base import CompiledQuery
from fluentql.schema.grammar import SchemaGrammar

if TYPE_CHECKING:
    from fluentql.schema.blueprint import Blueprint, ColumnDefinition, Command


class MySQLSchemaGrammar(SchemaGrammar):
    """Compiles blueprints to MySQL DDL.

    Generated columns (``virtual_as`` / ``stored_as``) take their nullability
    from the expression, so no ``null`` / ``not null`` is emitted for them.
    """

    identifier_quote = "`"
    dialect_name = "mysql"
    modifiers = (
        "virtual_as", "stored_as", "unsigned", "charset", "collate",
        "nullable", "default", "increment",
    )

    def compile_table_exists(self, table: str) -> CompiledQuery:
        return CompiledQuery(
            sql=(
                "select * from information_schema.tables "
                f"where table_schema = database() and table_name = {self.placeholder}"
            ),
            bindings=[self.table_prefix + table],
            dialect=self.dialect_name,
        )

    def compile_column_listing(self, table: str) -> CompiledQuery:
        return CompiledQuery(
            sql=(
                "select column_name from information_schema.columns "
                f"where table_schema = database() and table_name = {self.placeholder}"
            ),
            bindings=[self.table_prefix + table],
            dialect=self.dialect_name,
        )

    def process_column_listing(self, rows: list[dict[str, Any]]) -> list[str]:
        # information_schema column names come back upper-cased on some servers.
        return [{k.lower(): v for k, v in row.items()}["column_name"] for row in rows]

    def compile_enable_foreign_key_constraints(self) -> str:
        return "SET FOREIGN_KEY_CHECKS=1;"

    def compile_disable_foreign_key_constraints(self) -> str:
        return "SET FOREIGN_KEY_CHECKS=0;"

    # ------------------------------------------------------------------
    # Table commands
    # ------------------------------------------------------------------

    def compile_create(self, blueprint: Blueprint, command: Command) -> str:
        create = "create temporary table" if blueprint.temporary_table else "create table"
        sql = f"{create} {self.wrap_table(blueprint.table)} ({', '.join(self.get_columns(blueprint))})"
        if blueprint.charset:
            sql += f" default character set {blueprint.charset}"
        if blueprint.collation:
            sql += f" collate {self.quote_string(blueprint.collation)}"
        if blueprint.engine:
            sql += f" engine = {blueprint.engine}"
        return sql

    def compile_add(self, blueprint: Blueprint, command: Command) -> str:
        columns = ", ".join(f"add {column}" for column in self.get_columns(blueprint))
        return f"alter table {self.wrap_table(blueprint.table)} {columns}"

    def compile_primary(self, blueprint: Blueprint, command: Command) -> str:
        return (
            f"alter table {self.wrap_table(blueprint.table)} "
            f"add primary key ({self.columnize(command.columns)})"
        )

    def compile_unique(self, blueprint: Blueprint, command: Command) -> str:
        return self._compile_key(blueprint, command, "unique")

    def compile_index(self, blueprint: Blueprint, command: Command) -> str:
        return self._compile_key(blueprint, command, "index")

    def _compile_key(self, blueprint: Blueprint, command: Command, kind: str) -> str:
        return (
            f"alter table {self.wrap_table(blueprint.table)} "
            f"add {kind} {self.wrap(command.index)}({self.columnize(command.columns)})"
        )

    def compile_drop_column(self, blueprint: Blueprint, command: Command) -> str:
        columns = ", ".join(f"drop {self.wrap(column)}" for column in command.columns)
        return f"alter table {self.wrap_table(blueprint.table)} {columns}"

    def compile_drop_primary(self, blueprint: Blueprint, command: Command) -> str:
        return f"alter table {self.wrap_table(blueprint.table)} drop primary key"

    def compile_drop_unique(self, blueprint: Blueprint, command: Command) -> str:
        return f"alter table {self.wrap_table(blueprint.table)} drop index {self.wrap(command.index)}"

    def compile_drop_index(self, blueprint: Blueprint, command: Command) -> str:
        return f"alter table {self.wrap_table(blueprint.table)} drop index {self.wrap(command.index)}"

    def compile_drop_foreign(self, blueprint: Blueprint, command: Command) -> str:
        return (
            f"alter table {self.wrap_table(blueprint.table)} "
            f"drop foreign key {self.wrap(command.index)}"
        )

    def compile_rename(self, blueprint: Blueprint, command: Command) -> str:
        return f"rename table {self.wrap_table(blueprint.table)} to {self.wrap_table(command.to)}"

    # ------------------------------------------------------------------
    # Types
    # ------------------------------------------------------------------

    def type_char(self, column: ColumnDefinition) -> str:
        return f"char({column.length})"

    def type_string(self, column: ColumnDefinition) -> str:
        return f"varchar({column.length})"

    def type_text(self, column: ColumnDefinition) -> str:
        return "text"

    def type_medium_text(self, column: ColumnDefinition) -> str:
        return "mediumtext"

    def type_long_text(self, column: ColumnDefinition) -> str:
        return "longtext"

    def type_big_integer(self, column: ColumnDefinition) -> str:
        return "bigint"

    def type_integer(self, column: ColumnDefinition) -> str:
        return "int"

    def type_medium_integer(self, column: ColumnDefinition) -> str:
        return "mediumint"

    def type_small_integer(self, column: ColumnDefinition) -> str:
        return "smallint"

    def type_tiny_integer(self, column: ColumnDefinition) -> str:
        return "tinyint"

    def type_float(self, column: ColumnDefinition) -> str:
        return self.type_double(column)

    def type_double(self, column: ColumnDefinition) -> str:
        if column.total and column.places is not None:
            return f"double({column.total}, {column.places})"
        return "double"

    def type_decimal(self, column: ColumnDefinition) -> str:
        return f"decimal({column.total}, {column.places})"

    def type_boolean(self, column: ColumnDefinition) -> str:
        return "tinyint(1)"

    def type_enum(self, column: ColumnDefinition) -> str:
        return f"enum({', '.join(self.quote_string(value) for value in column.allowed)})"

    def type_json(self, column: ColumnDefinition) -> str:
        return "json"

    def type_jsonb(self, column: ColumnDefinition) -> str:
        return "json"

    def type_date(self, column: ColumnDefinition) -> str:
        return "date"

    def type_date_time(self, column: ColumnDefinition) -> str:
        return f"datetime({column.precision})" if column.precision else "datetime"

    def type_time(self, column: ColumnDefinition) -> str:
        return "time"

    def type_timestamp(self, column: ColumnDefinition) -> str:
        return f"timestamp({column.precision})" if column.precision else "timestamp"

    def type_binary(self, column: ColumnDefinition) -> str:
        return "blob"

    def type_uuid(self, column: ColumnDefinition) -> str:
        return "char(36)"

    def type_ip_address(self, column: ColumnDefinition) -> str:
        return "varchar(45)"

    def type_mac_address(self, column: ColumnDefinition) -> str:
        return "varchar(17)"

    # ------------------------------------------------------------------
    # Modifiers
    # ------------------------------------------------------------------

    def modify_virtual_as(self, blueprint: Blueprint, column: ColumnDefinition) -> str:
        if not column.virtual_expression:
            return ""
        return f" as ({self.escape(column.virtual_expression)})"

    def modify_stored_as(self, blueprint: Blueprint, column: ColumnDefinition) -> str:
        if not column.stored_expression:
            return ""
        return f" as ({self.escape(column.stored_expression)}) stored"

    def modify_unsigned(self, blueprint: Blueprint, column: ColumnDefinition) -> str:
        return " unsigned" if column.is_unsigned else ""

    def modify_charset(self, blueprint: Blueprint, column: ColumnDefinition) -> str:
        return f" character set {column.charset_name}" if column.charset_name else ""

    def modify_collate(self, blueprint: Blueprint, column: ColumnDefinition) -> str:
        if not column.collation_name:
            return ""
        return f" collate {self.quote_string(column.collation_name)}"

    def modify_nullable(self, blueprint: Blueprint, column: ColumnDefinition) -> str:
        if column.virtual_expression or column.stored_expression:
            return ""
        return super().modify_nullable(blueprint, column)

    def modify_increment(self, blueprint: Blueprint, column: ColumnDefinition) -> str:
        if column.type in self.serials and column.increments:
            return " auto_increment primary key"
        return ""
