"""Shared pytest fixtures for fluentql unit and integration tests."""
from __future__ import annotations

import pytest

from fluentql.query.builder import QueryBuilder
from tests.fixtures import FakeConnection


@pytest.fixture()
def connection() -> FakeConnection:
    """Recording connection using the default grammar."""
    return FakeConnection()


@pytest.fixture()
def users(connection: FakeConnection) -> QueryBuilder:
    """Builder over ``users`` bound to the recording connection."""
    return QueryBuilder(connection).from_("users")
