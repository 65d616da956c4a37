"""Grammar registries.

``GrammarFactory``
    Maps a dialect name to a :class:`~fluentql.grammar.query.QueryGrammar`
    subclass.  Connections and :class:`~fluentql.config.ConnectionConfig`
    look dialects up here, so a new dialect only needs to be registered.

``SchemaGrammarFactory``
    The same for :class:`~fluentql.schema.grammar.SchemaGrammar` subclasses.

Usage::

    from fluentql.grammar.registry import GrammarFactory

    @GrammarFactory.register("oracle")
    class OracleGrammar(QueryGrammar):
        ...

    grammar = GrammarFactory.create("oracle", table_prefix="app_")
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import TYPE_CHECKING, ClassVar

from fluentql.errors import CompilationError
from fluentql.grammar.query import QueryGrammar

if TYPE_CHECKING:
    from fluentql.schema.grammar import SchemaGrammar

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Query grammars
# ---------------------------------------------------------------------------


class GrammarFactory:
    """Registry mapping dialect names to :class:`QueryGrammar` classes.

    Example::

        @GrammarFactory.register("mysql")
        class MySQLGrammar(QueryGrammar):
            ...

        grammar = GrammarFactory.create("mysql")
    """

    _grammars: ClassVar[dict[str, type[QueryGrammar]]] = {}

    @classmethod
    def register(cls, name: str) -> Callable[[type[QueryGrammar]], type[QueryGrammar]]:
        """Decorator that registers a grammar class under ``name``.

        Args:
            name: The dialect name (e.g. ``"postgres"``).

        Returns:
            A decorator that registers and returns the grammar class.
        """

        def decorator(grammar_cls: type[QueryGrammar]) -> type[QueryGrammar]:
            cls._grammars[name] = grammar_cls
            return grammar_cls

        return decorator

    @classmethod
    def register_class(cls, name: str, grammar_cls: type[QueryGrammar]) -> None:
        """Register a grammar class without using the decorator form."""
        cls._grammars[name] = grammar_cls

    @classmethod
    def create(cls, name: str, table_prefix: str = "") -> QueryGrammar:
        """Instantiate the grammar registered for ``name``.

        Args:
            name: The dialect name.
            table_prefix: Prefix applied to every table the grammar wraps.

        Returns:
            A fresh :class:`QueryGrammar` instance.

        Raises:
            CompilationError: If no grammar is registered for ``name``.
        """
        grammar_cls = cls._grammars.get(name)
        if grammar_cls is None:
            registered = sorted(cls._grammars)
            raise CompilationError(
                f"Unsupported dialect: '{name}'. Registered dialects: {registered}."
            )
        logger.debug("Creating %s for dialect %r", grammar_cls.__name__, name)
        return grammar_cls(table_prefix)

    @classmethod
    def registered_targets(cls) -> list[str]:
        """Return the sorted list of registered dialect names."""
        return sorted(cls._grammars)


# ---------------------------------------------------------------------------
# Schema grammars
# ---------------------------------------------------------------------------


class SchemaGrammarFactory:
    """Registry mapping dialect names to :class:`SchemaGrammar` classes."""

    _grammars: ClassVar[dict[str, type[SchemaGrammar]]] = {}

    @classmethod
    def register(cls, name: str) -> Callable[[type[SchemaGrammar]], type[SchemaGrammar]]:
        def decorator(grammar_cls: type[SchemaGrammar]) -> type[SchemaGrammar]:
            cls._grammars[name] = grammar_cls
            return grammar_cls

        return decorator

    @classmethod
    def register_class(cls, name: str, grammar_cls: type[SchemaGrammar]) -> None:
        cls._grammars[name] = grammar_cls

    @classmethod
    def create(cls, name: str, table_prefix: str = "") -> SchemaGrammar:
        """Instantiate the schema grammar registered for ``name``.

        Raises:
            CompilationError: If no schema grammar is registered for ``name``.
        """
        grammar_cls = cls._grammars.get(name)
        if grammar_cls is None:
            registered = sorted(cls._grammars)
            raise CompilationError(
                f"No schema grammar for dialect: '{name}'. Registered dialects: {registered}."
            )
        logger.debug("Creating %s for dialect %r", grammar_cls.__name__, name)
        return grammar_cls(table_prefix)

    @classmethod
    def registered_targets(cls) -> list[str]:
        return sorted(cls._grammars)
