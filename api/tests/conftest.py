"""Shared test fixtures."""

import os
import tempfile
from collections.abc import Iterator
from datetime import timedelta
from typing import Any
from unittest.mock import AsyncMock, Mock
from uuid import UUID, uuid4

import pytest


# Settings are cached on first use; point logs at a scratch directory first
os.environ.setdefault("ENVIRONMENT", "testing")
os.environ.setdefault("LOG_DIR", tempfile.mkdtemp(prefix="folio-logs-"))
os.environ.setdefault("LOG_LEVEL", "WARNING")

from cassandra.cluster import Session  # noqa: E402
from fastapi import FastAPI  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from folio.auth.security import create_access_token  # noqa: E402
from folio.main import create_app  # noqa: E402


@pytest.fixture
def mock_session() -> Mock:
    """Mock Cassandra session (cassandra-asyncio-driver style)."""
    session = Mock(spec=Session)
    session.prepare = Mock(side_effect=lambda query: Mock(query=query))
    session.aexecute = AsyncMock(return_value=result_of())
    return session


@pytest.fixture
def mock_redis() -> AsyncMock:
    """Mock async Redis client with an empty cache."""
    redis_mock = AsyncMock()
    redis_mock.get = AsyncMock(return_value=None)
    redis_mock.hget = AsyncMock(return_value=None)
    return redis_mock


def result_of(*rows: Any) -> Mock:
    """Mock ResultSet: iterable, with ``one()`` returning the first row."""
    result = Mock()
    result.__iter__ = Mock(side_effect=lambda: iter(rows))
    result.one = Mock(return_value=rows[0] if rows else None)
    return result


@pytest.fixture
def app() -> FastAPI:
    """Application without lifespan; tests place services on app.state."""
    return create_app()


@pytest.fixture
def client(app: FastAPI) -> Iterator[TestClient]:
    yield TestClient(app)


@pytest.fixture
def user_id() -> UUID:
    return uuid4()


def make_token(user_id: UUID, **claims: Any) -> str:
    return create_access_token(
        {"sub": str(user_id), "email": "reader@example.com", **claims},
        expires_delta=timedelta(minutes=5),
    )


@pytest.fixture
def auth_headers(user_id: UUID) -> dict[str, str]:
    return {"Authorization": f"Bearer {make_token(user_id)}"}


@pytest.fixture
def make_result():
    """Factory for mock Cassandra result sets."""
    return result_of


@pytest.fixture
def token_for():
    """Factory for bearer tokens."""
    return make_token
