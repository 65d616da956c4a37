"""Values flowing through the builder: identifiers, parameters, raw SQL.

A value is exactly one of:

* an *identifier* – a plain ``str`` naming a table or column, such as
  ``"users.name"`` or ``"users.name as n"``;
* a *parameter* – any other Python scalar (``int``, ``float``, ``bool``,
  ``str``, ``Decimal``, ``date`` ...).  Parameters always render as a ``?``
  placeholder and travel in a binding bucket;
* a :class:`RawSql` fragment – emitted verbatim and never bound.

Whether a ``str`` is an identifier or a parameter is decided by the argument
position it is passed in, never by inspecting its content.
"""
from __future__ import annotations

from typing import Any, Union

from pydantic import BaseModel, ConfigDict


class RawSql(BaseModel):
    """A SQL fragment injected into the statement as-is.

    Usage::

        builder.select(raw("count(*) as user_count"))
    """

    model_config = ConfigDict(frozen=True)

    sql: str

    def __str__(self) -> str:
        return self.sql


#: Anything accepted where a table or column name is expected.
Identifier = Union[str, RawSql]

#: Anything accepted where a bound value is expected.
Value = Any


def raw(value: Any) -> RawSql:
    """Wrap ``value`` as a raw SQL expression.

    Args:
        value: SQL text, or an existing :class:`RawSql` (returned unchanged).

    Returns:
        A :class:`RawSql` fragment.
    """
    if isinstance(value, RawSql):
        return value
    return RawSql(sql=str(value))


def is_raw(value: Any) -> bool:
    """Returns ``True`` if ``value`` is rendered inline instead of bound."""
    return isinstance(value, RawSql)


def is_null(value: Any) -> bool:
    """Returns ``True`` only for ``None``.

    ``0``, ``False`` and ``""`` are real values and are bound as parameters.
    """
    return value is None


class _Unset:
    """Marker for an argument that was not passed at all."""

    _instance: _Unset | None = None

    def __new__(cls) -> _Unset:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False


#: Distinguishes ``where("a", 1)`` from ``where("a", "=", None)``.
UNSET: Any = _Unset()
