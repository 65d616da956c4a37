"""fluentql – a fluent, dialect-aware SQL query builder.

Build queries as chained method calls; compile them to parameterized SQL for
the dialect you target.

Public API
----------
``QueryBuilder``
    Accumulates select / join / where / group / having / order / union
    clauses and their bindings, and runs statements through a connection.

``QueryGrammar`` and dialects
    ``MySQLGrammar``, ``PostgresGrammar`` and ``SQLiteGrammar`` compile a
    builder to SQL text with ``?`` placeholders.

``Blueprint`` / ``SchemaBuilder``
    Table definitions and DDL.

``SQLAlchemyConnection``
    Runs compiled statements on a SQLAlchemy engine (optional extra).

Example::

    from fluentql import QueryBuilder, PostgresGrammar

    query = QueryBuilder(grammar=PostgresGrammar()).from_("users").where("age", ">", 18)
    compiled = query.compile()
    compiled.sql       # 'select * from "users" where "age" > ?'
    compiled.bindings  # [18]

Extensibility
-------------
New dialects are registered by name::

    from fluentql.grammar.registry import GrammarFactory

    @GrammarFactory.register("oracle")
    class OracleGrammar(QueryGrammar):
        ...

After registration ``ConnectionConfig(driver="oracle")`` resolves to it.
"""

from __future__ import annotations

from fluentql.config import ConnectionConfig
from fluentql.connection import ConnectionInterface, SQLAlchemyConnection
from fluentql.errors import (
    CompilationError,
    ConfigError,
    FluentQLError,
    IllegalOperatorValueError,
    InvalidArgumentError,
    InvalidBindingTypeError,
    InvalidOperatorError,
    MissingConnectionError,
    MissingOrderByError,
    UnsupportedCommandError,
    UsageError,
)
from fluentql.grammar.base import BaseGrammar, CompiledQuery
from fluentql.grammar.mysql import MySQLGrammar
from fluentql.grammar.postgres import PostgresGrammar
from fluentql.grammar.query import QueryGrammar
from fluentql.grammar.registry import GrammarFactory, SchemaGrammarFactory
from fluentql.grammar.sqlite import SQLiteGrammar
from fluentql.query.bindings import BINDING_TYPES, BindingStore
from fluentql.query.builder import OPERATORS, QueryBuilder
from fluentql.query.join_clause import JoinClause
from fluentql.schema.blueprint import Blueprint, ColumnDefinition
from fluentql.schema.builder import SchemaBuilder
from fluentql.schema.grammar import SchemaGrammar
from fluentql.schema.mysql import MySQLSchemaGrammar
from fluentql.schema.sqlite import SQLiteSchemaGrammar
from fluentql.value import RawSql, is_null, is_raw, raw

# ---------------------------------------------------------------------------
# Register built-in grammars
# ---------------------------------------------------------------------------

GrammarFactory.register_class("default", QueryGrammar)
GrammarFactory.register_class("mysql", MySQLGrammar)
GrammarFactory.register_class("postgres", PostgresGrammar)
GrammarFactory.register_class("sqlite", SQLiteGrammar)

SchemaGrammarFactory.register_class("mysql", MySQLSchemaGrammar)
SchemaGrammarFactory.register_class("sqlite", SQLiteSchemaGrammar)

__all__ = [
    # Values
    "RawSql",
    "raw",
    "is_raw",
    "is_null",
    # Building
    "QueryBuilder",
    "JoinClause",
    "BindingStore",
    "BINDING_TYPES",
    "OPERATORS",
    # Compilation
    "BaseGrammar",
    "CompiledQuery",
    "QueryGrammar",
    "MySQLGrammar",
    "PostgresGrammar",
    "SQLiteGrammar",
    "GrammarFactory",
    "SchemaGrammarFactory",
    # Schema
    "Blueprint",
    "ColumnDefinition",
    "SchemaBuilder",
    "SchemaGrammar",
    "MySQLSchemaGrammar",
    "SQLiteSchemaGrammar",
    # Execution and configuration
    "ConnectionInterface",
    "SQLAlchemyConnection",
    "ConnectionConfig",
    # Errors
    "FluentQLError",
    "UsageError",
    "InvalidOperatorError",
    "IllegalOperatorValueError",
    "InvalidBindingTypeError",
    "MissingOrderByError",
    "MissingConnectionError",
    "InvalidArgumentError",
    "CompilationError",
    "UnsupportedCommandError",
    "ConfigError",
]
