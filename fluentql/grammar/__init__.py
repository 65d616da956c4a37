"""fluentql compilation layer: builder state → SQL text."""
from fluentql.grammar.base import BaseGrammar, CompiledQuery
from fluentql.grammar.mysql import MySQLGrammar
from fluentql.grammar.postgres import PostgresGrammar
from fluentql.grammar.query import QueryGrammar
from fluentql.grammar.registry import GrammarFactory, SchemaGrammarFactory
from fluentql.grammar.sqlite import SQLiteGrammar

__all__ = [
    "BaseGrammar",
    "CompiledQuery",
    "QueryGrammar",
    "MySQLGrammar",
    "PostgresGrammar",
    "SQLiteGrammar",
    "GrammarFactory",
    "SchemaGrammarFactory",
]
