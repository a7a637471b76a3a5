"""Pytest configuration and shared fixtures."""

import os

# Settings are read at import time; point them at the test stack first.
os.environ["ENV"] = "test"
os.environ["DATABASE_URL"] = os.environ.get("TEST_DATABASE_URL", "sqlite+pysqlite:///:memory:")
os.environ["REDIS_ENABLED"] = "false"
os.environ["AUTH_JWT_KEY"] = "test-signing-key-0123456789abcdef0123456789abcdef"
os.environ["AUTH_JWT_ALGORITHMS"] = "HS256"

from collections.abc import Generator  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.orm import Session  # noqa: E402

from ortoqbank import models  # noqa: E402, F401
from ortoqbank.aggregates.registry import (  # noqa: E402
    AggregateRegistry,
    build_aggregate_registry,
    build_triggers,
)
from ortoqbank.db.base import Base  # noqa: E402
from ortoqbank.db.context import DataContext  # noqa: E402
from ortoqbank.db.engine import engine  # noqa: E402
from ortoqbank.db.session import get_db  # noqa: E402
from ortoqbank.main import app  # noqa: E402
from ortoqbank.models.user import User  # noqa: E402
from tests.helpers.seed import auth_headers, create_test_user  # noqa: E402


@pytest.fixture(scope="session", autouse=True)
def schema() -> Generator[None, None, None]:
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def db() -> Generator[Session, None, None]:
    """Session on an outer transaction that is rolled back after the test.

    Application code may commit freely: each commit only releases a SAVEPOINT.
    """
    connection = engine.connect()
    trans = connection.begin()
    session = Session(
        bind=connection,
        expire_on_commit=False,
        join_transaction_mode="create_savepoint",
    )
    try:
        yield session
    finally:
        session.close()
        trans.rollback()
        connection.close()


@pytest.fixture
def aggregates() -> AggregateRegistry:
    return build_aggregate_registry()


@pytest.fixture
def ctx(db, aggregates) -> DataContext:
    return DataContext(db=db, aggregates=aggregates, triggers=build_triggers(aggregates))


@pytest.fixture
def client(db) -> Generator[TestClient, None, None]:
    """FastAPI test client sharing the test session."""

    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def student(db) -> User:
    return create_test_user(db, user_id="user_student")


@pytest.fixture
def admin(db) -> User:
    return create_test_user(db, user_id="user_admin", role="admin")


@pytest.fixture
def student_headers() -> dict[str, str]:
    return auth_headers("user_student")


@pytest.fixture
def admin_headers() -> dict[str, str]:
    return auth_headers("user_admin", role="admin")
