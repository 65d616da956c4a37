"""Ordered, bucketed parameter storage.

Each SQL clause category owns one bucket.  Flattening concatenates the
buckets in :data:`BINDING_TYPES` order, which is the order in which the
grammar emits the corresponding placeholders.
"""
from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from fluentql.errors import InvalidBindingTypeError
from fluentql.value import is_raw

#: Bucket names, in placeholder order.
BINDING_TYPES: tuple[str, ...] = ("select", "join", "where", "having", "order", "union")


class BindingStore:
    """Parameter values grouped by the clause they belong to.

    Raw SQL values are never stored: they are rendered inline by the
    grammar and have no placeholder.
    """

    def __init__(self) -> None:
        self._buckets: dict[str, list[Any]] = {name: [] for name in BINDING_TYPES}

    def _bucket(self, bucket: str) -> list[Any]:
        try:
            return self._buckets[bucket]
        except KeyError:
            raise InvalidBindingTypeError(bucket, list(BINDING_TYPES)) from None

    def append(self, value: Any, bucket: str = "where") -> None:
        """Append a single value to ``bucket``.

        Raises:
            InvalidBindingTypeError: If ``bucket`` is not a known bucket.
        """
        target = self._bucket(bucket)
        if not is_raw(value):
            target.append(value)

    def extend(self, values: Iterable[Any], bucket: str = "where") -> None:
        """Append every item of ``values`` to ``bucket``."""
        target = self._bucket(bucket)
        target.extend(v for v in values if not is_raw(v))

    def add(self, value: Any, bucket: str = "where") -> None:
        """Extend with a list or tuple, append anything else."""
        if isinstance(value, (list, tuple)):
            self.extend(value, bucket)
        else:
            self.append(value, bucket)

    def set(self, values: Iterable[Any], bucket: str = "where") -> None:
        """Replace the contents of ``bucket``."""
        target = self._bucket(bucket)
        target[:] = [v for v in values if not is_raw(v)]

    def get(self, bucket: str) -> list[Any]:
        """Return a copy of one bucket."""
        return list(self._bucket(bucket))

    def clear(self, *buckets: str) -> None:
        """Empty the named buckets, or all of them when none are named."""
        for name in buckets or BINDING_TYPES:
            self._bucket(name).clear()

    def flatten(self) -> list[Any]:
        """Return every value in placeholder order."""
        return [v for name in BINDING_TYPES for v in self._buckets[name]]

    def flatten_except(self, *buckets: str) -> list[Any]:
        """Return every value in placeholder order, skipping ``buckets``."""
        for name in buckets:
            self._bucket(name)
        return [
            v for name in BINDING_TYPES if name not in buckets for v in self._buckets[name]
        ]

    def as_dict(self) -> dict[str, list[Any]]:
        """Return a ``{bucket: values}`` copy of the store."""
        return {name: list(values) for name, values in self._buckets.items()}

    def copy(self) -> BindingStore:
        clone = BindingStore()
        for name, values in self._buckets.items():
            clone._buckets[name] = list(values)
        return clone

    def __len__(self) -> int:
        return sum(len(values) for values in self._buckets.values())

    def __repr__(self) -> str:
        return f"BindingStore({self.as_dict()!r})"
