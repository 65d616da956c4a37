"""Execution collaborators.

Builders never talk to a database themselves.  They compile a statement and
its bindings and pass both to an object implementing
:class:`ConnectionInterface`.  :class:`SQLAlchemyConnection` is the bundled
implementation; it needs the optional dependency::

    pip install "fluentql[sqlalchemy]"

Example::

    from sqlalchemy import create_engine
    from fluentql.connection import SQLAlchemyConnection

    db = SQLAlchemyConnection(create_engine("sqlite:///app.db"))
    adults = db.table("users").where("age", ">=", 18).get()

Errors raised by the driver propagate unchanged.
"""

from __future__ import annotations

import datetime
import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from fluentql.config import ConnectionConfig, driver_for_scheme
from fluentql.errors import ConfigError
from fluentql.query.builder import QueryBuilder
from fluentql.value import RawSql, raw

if TYPE_CHECKING:
    from sqlalchemy import Engine

    from fluentql.grammar.query import QueryGrammar
    from fluentql.schema.builder import SchemaBuilder
    from fluentql.schema.grammar import SchemaGrammar

logger = logging.getLogger(__name__)

#: Placeholder the grammars emit for each supported DB-API paramstyle.
PLACEHOLDERS: dict[str, str] = {"qmark": "?", "format": "%s", "pyformat": "%s"}


@runtime_checkable
class ConnectionInterface(Protocol):
    """What a builder needs from the object that runs its statements."""

    def select(self, sql: str, bindings: Sequence[Any]) -> list[dict[str, Any]]:
        """Run a query and return its rows as column → value mappings."""
        ...

    def insert(self, sql: str, bindings: Sequence[Any]) -> bool:
        ...

    def update(self, sql: str, bindings: Sequence[Any]) -> int:
        """Run an update and return the affected row count."""
        ...

    def delete(self, sql: str, bindings: Sequence[Any]) -> int:
        """Run a delete and return the affected row count."""
        ...

    def statement(self, sql: str, bindings: Sequence[Any]) -> bool:
        """Run any other statement."""
        ...

    def raw(self, value: Any) -> RawSql:
        ...

    def get_query_grammar(self) -> QueryGrammar:
        ...

    def get_schema_grammar(self) -> SchemaGrammar:
        ...


class SQLAlchemyConnection:
    """Runs compiled statements on a SQLAlchemy :class:`~sqlalchemy.Engine`.

    Every call runs in its own ``engine.begin()`` block, so each statement
    commits on success and rolls back on error.
  Both grammars emit the driver's
    placeholder (``?`` for ``qmark``, ``%s`` for ``format``/``pyformat``) and
    every statement is sent with a parameter tuple, even an empty one.

    Args:
        engine: The engine to execute on.
        config: Dialect and table prefix.  Inferred from the engine's
            dialect name when omitted.

    Raises:
        ConfigError: If ``config`` is omitted and the engine's dialect has
            no matching grammar, or the driver uses a placeholder style other
            than ``qmark``, ``format`` or ``pyformat``.
    """

    def __init__(self, engine: Engine, config: ConnectionConfig | None = None) -> None:
        if config is None:
            driver = driver_for_scheme(engine.dialect.name)
            if driver is None:
                raise ConfigError(
                    f"No grammar for SQLAlchemy dialect {engine.dialect.name!r}; "
                    "pass a ConnectionConfig.",
                    field="driver",
                )
            config = ConnectionConfig(driver=driver)
        paramstyle = engine.dialect.paramstyle
        if paramstyle not in PLACEHOLDERS:
            raise ConfigError(
                f"Unsupported DB-API paramstyle {paramstyle!r}.", field="database"
            )
        self.engine = engine
        self.config = config
        self.placeholder = PLACEHOLDERS[paramstyle]
        self._query_grammar = config.query_grammar()
        self._query_grammar.set_placeholder(self.placeholder)
        self._schema_grammar: SchemaGrammar | None = None

    @classmethod
    def from_config(cls, config: ConnectionConfig) -> SQLAlchemyConnection:
        """Create an engine for ``config.database`` and wrap it.

        Raises:
            ConfigError: If ``config.database`` is not set.
        """
        if not config.database:
            raise ConfigError("A database URL is required.", field="database")
        from sqlalchemy import create_engine

        logger.debug("Creating engine for driver %r", config.driver)
        return cls(create_engine(config.database), config)

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    def table(self, table: str) -> QueryBuilder:
        """Start a query against ``table``."""
        return QueryBuilder(self).from_(table)

    def query(self) -> QueryBuilder:
        return QueryBuilder(self)

    def schema(self) -> SchemaBuilder:
        from fluentql.schema.builder import SchemaBuilder

        return SchemaBuilder(self)

    def get_query_grammar(self) -> QueryGrammar:
        return self._query_grammar

    def get_schema_grammar(self) -> SchemaGrammar:
        if self._schema_grammar is None:
            self._schema_grammar = self.config.schema_grammar()
            self._schema_grammar.set_placeholder(self.placeholder)
        return self._schema_grammar

    def raw(self, value: Any) -> RawSql:
        return raw(value)

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def select(self, sql: str, bindings: Sequence[Any]) -> list[dict[str, Any]]:
        with self.engine.begin() as conn:
            result = conn.exec_driver_sql(sql, self.prepare_bindings(bindings))
            return [dict(row) for row in result.mappings()]

    def insert(self, sql: str, bindings: Sequence[Any]) -> bool:
        return self.statement(sql, bindings)

    def update(self, sql: str, bindings: Sequence[Any]) -> int:
        return self.affecting_statement(sql, bindings)

    def delete(self, sql: str, bindings: Sequence[Any]) -> int:
        return self.affecting_statement(sql, bindings)

    def statement(self, sql: str, bindings: Sequence[Any]) -> bool:
        with self.engine.begin() as conn:
            conn.exec_driver_sql(sql, self.prepare_bindings(bindings))
        return True

    def affecting_statement(self, sql: str, bindings: Sequence[Any]) -> int:
        """Run ``sql`` and return the number of rows it changed."""
        with self.engine.begin() as conn:
            result = conn.exec_driver_sql(sql, self.prepare_bindings(bindings))
            return result.rowcount

    def prepare_bindings(self, bindings: Sequence[Any]) -> tuple[Any, ...]:
        """Format ``datetime`` values with the grammar's date format.

        Booleans and every other value are passed to the driver unchanged.
        """
        date_format = self._query_grammar.get_date_format()
        return tuple(
            value.strftime(date_format) if isinstance(value, datetime.datetime) else value
            for value in bindings
        )

