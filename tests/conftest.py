"""Shared fixtures for the LearnHub test suite."""

from collections.abc import Callable
from types import SimpleNamespace
from typing import Any
from unittest.mock import AsyncMock, MagicMock
from uuid import UUID, uuid4

import pytest
from fastapi.testclient import TestClient

from learnhub.auth.permissions import Actor, UserRole
from learnhub.auth.security import create_access_token


@pytest.fixture
def client() -> TestClient:
    """Test client without running the lifespan (no database, no Redis)."""
    from learnhub.main import app

    return TestClient(app)


@pytest.fixture
def mock_session() -> MagicMock:
    """Cassandra session double: prepare() is sync, aexecute() is awaited."""
    session = MagicMock()
    session.prepare = MagicMock(side_effect=lambda cql: MagicMock(name="prepared"))
    session.aexecute = AsyncMock()
    return session


def _rows_result(rows: list[Any]) -> MagicMock:
    """Result set double supporting ``one()`` and iteration."""
    result = MagicMock()
    result.one.return_value = rows[0] if rows else None
    result.__iter__.side_effect = lambda: iter(rows)
    result.was_applied = True
    return result


def _lwt_result(applied: bool) -> SimpleNamespace:
    """Result of a conditional (IF ...) statement."""
    return SimpleNamespace(was_applied=applied)


@pytest.fixture
def token_factory() -> Callable[..., str]:
    """Build access tokens for arbitrary users."""

    def _create(
        role: UserRole = UserRole.STUDENT,
        user_id: UUID | None = None,
        email: str | None = None,
    ) -> str:
        user_id = user_id or uuid4()
        return create_access_token(
            {
                "sub": str(user_id),
                "email": email or f"{role.value}_{user_id.hex[:8]}@test.com",
                "role": role.value,
            }
        )

    return _create


@pytest.fixture
def student_id() -> UUID:
    return uuid4()


@pytest.fixture
def admin_id() -> UUID:
    return uuid4()


@pytest.fixture
def student_actor(student_id: UUID) -> Actor:
    return Actor(id=student_id, role=UserRole.STUDENT.value)


@pytest.fixture
def admin_actor(admin_id: UUID) -> Actor:
    return Actor(id=admin_id, role=UserRole.ADMIN.value)


@pytest.fixture
def student_token(token_factory, student_id: UUID) -> str:
    return token_factory(UserRole.STUDENT, student_id)


@pytest.fixture
def admin_token(token_factory, admin_id: UUID) -> str:
    return token_factory(UserRole.ADMIN, admin_id)


@pytest.fixture
def rows_result() -> Callable[[list[Any]], MagicMock]:
    return _rows_result


@pytest.fixture
def lwt_result() -> Callable[[bool], SimpleNamespace]:
    return _lwt_result
