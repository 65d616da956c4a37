"""Table blueprints for DDL.

A :class:`Blueprint` records the columns and commands (create, drop, add
index ...) for one table.  :meth:`Blueprint.to_sql` asks a
:class:`~fluentql.schema.grammar.SchemaGrammar` to turn each command into
statements::

    blueprint = Blueprint("users")
    blueprint.create()
    blueprint.increments("id")
    blueprint.string("email").unique()
    blueprint.timestamps()
    blueprint.to_sql(SQLiteSchemaGrammar())
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, Field

from fluentql.errors import UnsupportedCommandError
from fluentql.value import RawSql

if TYPE_CHECKING:
    from fluentql.connection import ConnectionInterface
    from fluentql.schema.grammar import SchemaGrammar

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Column and command definitions
# ---------------------------------------------------------------------------


class ColumnDefinition(BaseModel):
    """One column of a blueprint, refined through chained modifiers.

    Attributes:
        name: Column name.
        type: Abstract type; the grammar maps it through ``type_<type>``.
        length: Character length for ``char`` / ``string``.
        total: Total digits for ``float`` / ``double`` / ``decimal``.
        places: Decimal places for ``float`` / ``double`` / ``decimal``.
        precision: Fractional seconds for ``date_time`` / ``timestamp``.
        allowed: Permitted values for ``enum``.
        allow_null: ``null`` instead of ``not null``.
        is_unsigned: MySQL ``unsigned``.
        increments: Auto-incrementing primary key (integer types only).
        default_value: Column default; ``None`` means no default clause.
        charset_name: MySQL character set.
        collation_name: MySQL collation.
        virtual_expression: MySQL generated virtual column expression.
        stored_expression: MySQL generated stored column expression.
        primary_key: Add a primary key on this column.
        unique_index: Add a unique index (``True`` or an index name).
        plain_index: Add a plain index (``True`` or an index name).
    """

    name: str
    type: str
    length: int | None = None
    total: int | None = None
    places: int | None = None
    precision: int | None = None
    allowed: list[str] = Field(default_factory=list)
    allow_null: bool = False
    is_unsigned: bool = False
    increments: bool = False
    default_value: Any = None
    charset_name: str | None = None
    collation_name: str | None = None
    virtual_expression: str | None = None
    stored_expression: str | None = None
    primary_key: bool = False
    unique_index: bool | str = False
    plain_index: bool | str = False

    def nullable(self, value: bool = True) -> ColumnDefinition:
        self.allow_null = value
        return self

    def unsigned(self) -> ColumnDefinition:
        self.is_unsigned = True
        return self

    def default(self, value: Any) -> ColumnDefinition:
        self.default_value = value
        return self

    def use_current(self) -> ColumnDefinition:
        """Default to ``CURRENT_TIMESTAMP``."""
        return self.default(RawSql(sql="CURRENT_TIMESTAMP"))

    def auto_increment(self) -> ColumnDefinition:
        self.increments = True
        return self

    def charset(self, name: str) -> ColumnDefinition:
        self.charset_name = name
        return self

    def collation(self, name: str) -> ColumnDefinition:
        self.collation_name = name
        return self

    def virtual_as(self, expression: str) -> ColumnDefinition:
        self.virtual_expression = expression
        return self

    def stored_as(self, expression: str) -> ColumnDefinition:
        self.stored_expression = expression
        return self

    def primary(self) -> ColumnDefinition:
        self.primary_key = True
        return self

    def unique(self, name: str | None = None) -> ColumnDefinition:
        self.unique_index = name or True
        return self

    def index(self, name: str | None = None) -> ColumnDefinition:
        self.plain_index = name or True
        return self


class Command(BaseModel):
    """A DDL operation recorded on a blueprint.

    Attributes:
        name: Grammar method suffix (``create``, ``unique``, ``drop_column`` ...).
        columns: Columns the command applies to.
        index: Index or constraint name, for index commands.
        to: New table name, for ``rename``.
    """

    name: str
    columns: list[str] = Field(default_factory=list)
    index: str | None = None
    to: str | None = None


class ForeignKeyDefinition(Command):
    """A ``foreign`` command, completed through chained calls::

    blueprint.foreign("user_id").references("id").on("users").on_delete("cascade")
    """

    referenced_columns: list[str] = Field(default_factory=list)
    referenced_table: str | None = None
    on_delete_action: str | None = None
    on_update_action: str | None = None

    def references(self, *columns: str) -> ForeignKeyDefinition:
        self.referenced_columns = list(columns)
        return self

    def on(self, table: str) -> ForeignKeyDefinition:
        self.referenced_table = table
        return self

    def on_delete(self, action: str) -> ForeignKeyDefinition:
        self.on_delete_action = action
        return self

    def on_update(self, action: str) -> ForeignKeyDefinition:
        self.on_update_action = action
        return self


# ---------------------------------------------------------------------------
# Blueprint
# ---------------------------------------------------------------------------


class Blueprint:
    """Columns and commands for one table.

    Args:
        table: Unprefixed table name.
        callback: Optional callable receiving the blueprint to populate.
        prefix: Table prefix, used when naming indexes.
    """

    def __init__(
        self,
        table: str,
        callback: Callable[[Blueprint], Any] | None = None,
        prefix: str = "",
    ) -> None:
        self.table = table
        self.prefix = prefix
        self.columns: list[ColumnDefinition] = []
        self.commands: list[Command] = []
        self.engine: str | None = None
        self.charset: str | None = None
        self.collation: str | None = None
        self.temporary_table = False
        if callback is not None:
            callback(self)

    # ------------------------------------------------------------------
    # Compilation
    # ------------------------------------------------------------------

    def to_sql(self, grammar: SchemaGrammar) -> list[str]:
        """Compile every command to SQL statements, in order.

        Raises:
            UnsupportedCommandError: If ``grammar`` cannot express a command.
        """
        self._add_implied_commands()
        statements: list[str] = []
        for command in self.commands:
            method = getattr(grammar, f"compile_{command.name}", None)
            if method is None:
                raise UnsupportedCommandError(command.name, grammar.dialect_name)
            sql = method(self, command)
            if not sql:
                continue
            statements.extend([sql] if isinstance(sql, str) else sql)
        return statements

    def build(self, connection: ConnectionInterface, grammar: SchemaGrammar) -> None:
        """Compile and run every statement on ``connection``."""
        for sql in self.to_sql(grammar):
            logger.debug("Running schema statement: %s", sql)
            connection.statement(sql, [])

    def _add_implied_commands(self) -> None:
        if self.get_added_columns() and not self.creating():
            if not any(command.name == "add" for command in self.commands):
                self.commands.insert(0, Command(name="add"))
        self._add_fluent_indexes()

    def _add_fluent_indexes(self) -> None:
        # Index modifiers on a column become index commands, once.
        for column in self.columns:
            if column.primary_key:
                self.primary(column.name)
                column.primary_key = False
            for attribute, kind in (("unique_index", "unique"), ("plain_index", "index")):
                value = getattr(column, attribute)
                if value:
                    name = value if isinstance(value, str) else None
                    self._index_command(kind, [column.name], name)
                    setattr(column, attribute, False)

    def creating(self) -> bool:
        return any(command.name == "create" for command in self.commands)

    def get_added_columns(self) -> list[ColumnDefinition]:
        return list(self.columns)

    def get_commands(self, name: str) -> list[Command]:
        return [command for command in self.commands if command.name == name]

    # ------------------------------------------------------------------
    # Table commands
    # ------------------------------------------------------------------

    def create(self) -> Command:
        return self._add_command("create")

    def temporary(self) -> Blueprint:
        self.temporary_table = True
        return self

    def drop(self) -> Command:
        return self._add_command("drop")

    def drop_if_exists(self) -> Command:
        return self._add_command("drop_if_exists")

    def drop_column(self, *columns: str) -> Command:
        return self._add_command("drop_column", columns=list(columns))

    def rename(self, to: str) -> Command:
        return self._add_command("rename", to=to)

    def drop_timestamps(self) -> Command:
        return self.drop_column("created_at", "updated_at")

    # ------------------------------------------------------------------
    # Index commands
    # ------------------------------------------------------------------

    def primary(self, columns: str | Iterable[str], name: str | None = None) -> Command:
        return self._index_command("primary", columns, name)

    def unique(self, columns: str | Iterable[str], name: str | None = None) -> Command:
        return self._index_command("unique", columns, name)

    def index(self, columns: str | Iterable[str], name: str | None = None) -> Command:
        return self._index_command("index", columns, name)

    def foreign(self, columns: str | Iterable[str], name: str | None = None) -> ForeignKeyDefinition:
        columns = [columns] if isinstance(columns, str) else list(columns)
        command = ForeignKeyDefinition(
            name="foreign", columns=columns, index=name or self.create_index_name("foreign", columns)
        )
        self.commands.append(command)
        return command

    def drop_primary(self, name: str | None = None) -> Command:
        return self._add_command("drop_primary", index=name)

    def drop_unique(self, index: str) -> Command:
        return self._add_command("drop_unique", index=index)

    def drop_index(self, index: str) -> Command:
        return self._add_command("drop_index", index=index)

    def drop_foreign(self, index: str) -> Command:
        return self._add_command("drop_foreign", index=index)

    def create_index_name(self, kind: str, columns: list[str]) -> str:
        """``prefix + table_col1_col2_kind``, lowercased, with ``-`` and ``.`` as ``_``."""
        name = f"{self.prefix}{self.table}_{'_'.join(columns)}_{kind}".lower()
        return name.replace("-", "_").replace(".", "_")

    def _index_command(
        self, kind: str, columns: str | Iterable[str], name: str | None
    ) -> Command:
        columns = [columns] if isinstance(columns, str) else list(columns)
        return self._add_command(
            kind, columns=columns, index=name or self.create_index_name(kind, columns)
        )

    def _add_command(self, name: str, **parameters: Any) -> Command:
        command = Command(name=name, **parameters)
        self.commands.append(command)
        return command

    # ------------------------------------------------------------------
    # Column types
    # ------------------------------------------------------------------

    def add_column(self, type: str, name: str, **parameters: Any) -> ColumnDefinition:
        column = ColumnDefinition(name=name, type=type, **parameters)
        self.columns.append(column)
        return column

    def increments(self, name: str) -> ColumnDefinition:
        """Auto-incrementing unsigned integer primary key."""
        return self.integer(name, auto_increment=True, unsigned=True)

    def big_increments(self, name: str) -> ColumnDefinition:
        return self.big_integer(name, auto_increment=True, unsigned=True)

    def char(self, name: str, length: int = 255) -> ColumnDefinition:
        return self.add_column("char", name, length=length)

    def string(self, name: str, length: int = 255) -> ColumnDefinition:
        return self.add_column("string", name, length=length)

    def text(self, name: str) -> ColumnDefinition:
        return self.add_column("text", name)

    def medium_text(self, name: str) -> ColumnDefinition:
        return self.add_column("medium_text", name)

    def long_text(self, name: str) -> ColumnDefinition:
        return self.add_column("long_text", name)

    def _integer_column(
        self, type: str, name: str, auto_increment: bool, unsigned: bool
    ) -> ColumnDefinition:
        return self.add_column(type, name, increments=auto_increment, is_unsigned=unsigned)

    def integer(
        self, name: str, auto_increment: bool = False, unsigned: bool = False
    ) -> ColumnDefinition:
        return self._integer_column("integer", name, auto_increment, unsigned)

    def big_integer(
        self, name: str, auto_increment: bool = False, unsigned: bool = False
    ) -> ColumnDefinition:
        return self._integer_column("big_integer", name, auto_increment, unsigned)

    def medium_integer(
        self, name: str, auto_increment: bool = False, unsigned: bool = False
    ) -> ColumnDefinition:
        return self._integer_column("medium_integer", name, auto_increment, unsigned)

    def small_integer(
        self, name: str, auto_increment: bool = False, unsigned: bool = False
    ) -> ColumnDefinition:
        return self._integer_column("small_integer", name, auto_increment, unsigned)

    def tiny_integer(
        self, name: str, auto_increment: bool = False, unsigned: bool = False
    ) -> ColumnDefinition:
        return self._integer_column("tiny_integer", name, auto_increment, unsigned)

    def float(self, name: str, total: int = 8, places: int = 2) -> ColumnDefinition:
        return self.add_column("float", name, total=total, places=places)

    def double(
        self, name: str, total: int | None = None, places: int | None = None
    ) -> ColumnDefinition:
        return self.add_column("double", name, total=total, places=places)

    def decimal(self, name: str, total: int = 8, places: int = 2) -> ColumnDefinition:
        return self.add_column("decimal", name, total=total, places=places)

    def boolean(self, name: str) -> ColumnDefinition:
        return self.add_column("boolean", name)

    def enum(self, name: str, allowed: Iterable[str]) -> ColumnDefinition:
        return self.add_column("enum", name, allowed=list(allowed))

    def json(self, name: str) -> ColumnDefinition:
        return self.add_column("json", name)

    def jsonb(self, name: str) -> ColumnDefinition:
        return self.add_column("jsonb", name)

    def date(self, name: str) -> ColumnDefinition:
        return self.add_column("date", name)

    def date_time(self, name: str, precision: int = 0) -> ColumnDefinition:
        return self.add_column("date_time", name, precision=precision)

    def time(self, name: str) -> ColumnDefinition:
        return self.add_column("time", name)

    def timestamp(self, name: str, precision: int = 0) -> ColumnDefinition:
        return self.add_column("timestamp", name, precision=precision)

    def timestamps(self, precision: int = 0) -> None:
        """Add nullable ``created_at`` and ``updated_at`` timestamps."""
        self.timestamp("created_at", precision).nullable()
        self.timestamp("updated_at", precision).nullable()

    def binary(self, name: str) -> ColumnDefinition:
        return self.add_column("binary", name)

    def uuid(self, name: str) -> ColumnDefinition:
        return self.add_column("uuid", name)

    def ip_address(self, name: str) -> ColumnDefinition:
        return self.add_column("ip_address", name)

    def mac_address(self, name: str) -> ColumnDefinition:
        return self.add_column("mac_address", name)

    def __repr__(self) -> str:
        return f"Blueprint(table={self.table!r}, columns={len(self.columns)}, commands={len(self.commands)})"
