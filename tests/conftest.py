"""Shared fixtures: a throwaway SQLite database, users, tokens and an app client."""

from __future__ import annotations

import os
import tempfile
from pathlib import Path

import pytest

TEST_DB_PATH = Path(tempfile.gettempdir()) / f"campus_notify_test_{os.getpid()}.db"
os.environ["DATABASE_URL"] = f"sqlite:///{TEST_DB_PATH}"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["APP_TIMEZONE"] = "UTC"

from fastapi.testclient import TestClient  # noqa: E402

from campus_notify.domain.entities import User  # noqa: E402
from campus_notify.infrastructure import database  # noqa: E402
from campus_notify.infrastructure.repositories import UserRepository  # noqa: E402
from campus_notify.infrastructure.security import create_access_token  # noqa: E402


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture(autouse=True)
def setup_database():
    """Prepare a fresh schema for every test."""

    database.initialize_database()
    database.Base.metadata.drop_all(bind=database.engine)
    database.Base.metadata.create_all(bind=database.engine)
    yield
    database.engine.dispose()


def pytest_sessionfinish(session, exitstatus):
    if TEST_DB_PATH.exists():
        TEST_DB_PATH.unlink()


@pytest.fixture
def db_session():
    session = database.SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def make_user(db_session):
    """Create users on demand: ``make_user("ana")``."""

    def _make_user(username: str = "ana", *, is_active: bool = True) -> User:
        return UserRepository(db_session).create(
            User(
                id=None,
                username=username,
                email=f"{username}@campus.example",
                is_active=is_active,
            )
        )

    return _make_user


@pytest.fixture
def token_for():
    def _token_for(user: User) -> str:
        return create_access_token(user.id)

    return _token_for


@pytest.fixture
def client():
    """Return a test client bound to a clean application instance."""

    from main import create_app

    app = create_app()
    with TestClient(app) as test_client:
        yield test_client
