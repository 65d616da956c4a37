"""Connection configuration.

:class:`ConnectionConfig` names the dialect a connection speaks and the table
prefix its grammars apply.  It is the only place a dialect name is turned
into grammar instances::

    config = ConnectionConfig(driver="mysql", table_prefix="app_")
    grammar = config.query_grammar()     # MySQLGrammar with prefix "app_"

    config = ConnectionConfig.from_url("postgresql+psycopg://localhost/app")
    config.driver                        # "postgres"
"""
from __future__ import annotations

from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, field_validator

from fluentql.errors import ConfigError
from fluentql.grammar.registry import GrammarFactory, SchemaGrammarFactory

if TYPE_CHECKING:
    from fluentql.grammar.query import QueryGrammar
    from fluentql.schema.grammar import SchemaGrammar

# URL schemes (before any "+driver" suffix) and SQLAlchemy dialect names.
_URL_SCHEMES: dict[str, str] = {
    "sqlite": "sqlite",
    "mysql": "mysql",
    "mariadb": "mysql",
    "postgres": "postgres",
    "postgresql": "postgres",
}


def driver_for_scheme(scheme: str) -> str | None:
    """Map a URL scheme or SQLAlchemy dialect name to a grammar name."""
    return _URL_SCHEMES.get(scheme.split("+", 1)[0].lower())


class ConnectionConfig(BaseModel):
    """Dialect and naming settings shared by a connection's grammars.

    Attributes:
        driver: Registered grammar name (``default``, ``mysql``,
            ``postgres`` or ``sqlite`` out of the box).
        table_prefix: Prepended to every table name the grammars wrap.
        database: Optional SQLAlchemy database URL.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    driver: str = "default"
    table_prefix: str = ""
    database: str | None = None

    @field_validator("driver")
    @classmethod
    def _known_driver(cls, value: str) -> str:
        value = value.lower()
        registered = GrammarFactory.registered_targets()
        if value not in registered:
            raise ConfigError(
                f"Unknown driver {value!r}. Registered drivers: {registered}.",
                field="driver",
            )
        return value

    @classmethod
    def from_url(cls, url: str, table_prefix: str = "") -> ConnectionConfig:
        """Build a config whose driver is taken from a database URL's scheme.

        Raises:
            ConfigError: If the scheme does not map to a known driver.
        """
        scheme = url.split(":", 1)[0]
        driver = driver_for_scheme(scheme)
        if driver is None:
            raise ConfigError(
                f"Cannot infer a driver from URL scheme {scheme!r}.", field="database"
            )
        return cls(driver=driver, table_prefix=table_prefix, database=url)

    def query_grammar(self) -> QueryGrammar:
        return GrammarFactory.create(self.driver, self.table_prefix)

    def schema_grammar(self) -> SchemaGrammar:
        """Return the DDL grammar for this driver.

        Raises:
            CompilationError: If the driver has no schema grammar.
        """
        return SchemaGrammarFactory.create(self.driver, self.table_prefix)
