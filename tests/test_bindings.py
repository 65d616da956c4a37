"""Unit tests for BindingStore."""

from __future__ import annotations

import pytest

from fluentql.errors import InvalidBindingTypeError
from fluentql.query.bindings import BINDING_TYPES, BindingStore
from fluentql.value import raw


def test_flatten_follows_bucket_order_not_insertion_order():
    store = BindingStore()
    store.append("u", "union")
    store.append("w", "where")
    store.append("s", "select")
    store.append("o", "order")
    store.append("j", "join")
    store.append("h", "having")
    assert store.flatten() == ["s", "j", "w", "h", "o", "u"]


def test_raw_values_are_never_stored():
    store = BindingStore()
    store.extend([1, raw("now()"), 2])
    store.append(raw("x"))
    assert store.get("where") == [1, 2]


def test_add_extends_lists_and_appends_scalars():
    store = BindingStore()
    store.add([1, 2])
    store.add(3)
    assert store.get("where") == [1, 2, 3]


def test_append_keeps_a_list_value_whole():
    store = BindingStore()
    store.append([1, 2])
    assert store.get("where") == [[1, 2]]


def test_unknown_bucket_is_rejected():
    store = BindingStore()
    with pytest.raises(InvalidBindingTypeError) as excinfo:
        store.append(1, "nope")
    assert excinfo.value.details["allowed"] == list(BINDING_TYPES)


def test_set_replaces_bucket():
    store = BindingStore()
    store.extend([1, 2], "having")
    store.set([3], "having")
    assert store.get("having") == [3]


def test_clear_named_and_all():
    store = BindingStore()
    store.append(1, "select")
    store.append(2, "where")
    store.clear("select")
    assert store.flatten() == [2]
    store.clear()
    assert len(store) == 0


def test_flatten_except():
    store = BindingStore()
    store.append(1, "select")
    store.append(2, "join")
    store.append(3, "where")
    assert store.flatten_except("select") == [2, 3]


def test_copy_is_independent():
    store = BindingStore()
    store.append(1)
    clone = store.copy()
    clone.append(2)
    assert store.get("where") == [1]
    assert clone.get("where") == [1, 2]


def test_get_returns_a_copy():
    store = BindingStore()
    store.append(1)
    store.get("where").append(2)
    assert store.get("where") == [1]
