"""fluentql DDL layer: blueprints, schema grammars and the schema builder."""
from fluentql.schema.blueprint import Blueprint, ColumnDefinition, Command, ForeignKeyDefinition
from fluentql.schema.builder import SchemaBuilder
from fluentql.schema.grammar import SchemaGrammar
from fluentql.schema.mysql import MySQLSchemaGrammar
from fluentql.schema.sqlite import SQLiteSchemaGrammar

__all__ = [
    "Blueprint",
    "ColumnDefinition",
    "Command",
    "ForeignKeyDefinition",
    "SchemaBuilder",
    "SchemaGrammar",
    "MySQLSchemaGrammar",
    "SQLiteSchemaGrammar",
]
