"""Shared fixtures for the notification service test-suite."""

from __future__ import annotations

import os
import sys
from pathlib import Path

import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

TEST_DB_PATH = Path(__file__).parent / "test.db"
os.environ["DATABASE_URL"] = f"sqlite:///{TEST_DB_PATH}"
os.environ["SECRET_KEY"] = "test-secret-key"


@pytest.fixture
def anyio_backend():
    return "asyncio"


def _reset_tables() -> None:
    from app.infrastructure import database

    database.initialize_database()
    database.Base.metadata.drop_all(bind=database.engine, checkfirst=True)
    database.Base.metadata.create_all(bind=database.engine)


@pytest.fixture()
def db_session():
    """Yield a session bound to freshly created tables."""

    from app.infrastructure.database import SessionLocal

    _reset_tables()
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def make_token():
    """Return a helper issuing identity tokens for the test secret."""

    from app.domain.entities import Identity
    from app.infrastructure.security import create_access_token

    def _make(recipient_id: str, role: str = "client") -> str:
        return create_access_token(Identity(recipient_id=recipient_id, role=role))

    return _make


def pytest_sessionfinish(session, exitstatus):
    if TEST_DB_PATH.exists():
        TEST_DB_PATH.unlink()
