"""
Shared pytest fixtures.

Uses a SQLite database file so no Postgres is required for tests.
DATABASE_URL is pinned before any habitcore import so the application
engine is created against SQLite as well.
"""
import os

os.environ.setdefault("DATABASE_URL", "sqlite:///./test_habitcore.db")

import uuid  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402

from habitcore.db.base import Base, get_db  # noqa: E402
from habitcore.main import app  # noqa: E402
import habitcore.models  # noqa: E402,F401

SQLITE_URL = "sqlite:///./test_habitcore.db"

engine = create_engine(SQLITE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture(scope="session", autouse=True)
def create_tables():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture()
def owner() -> str:
    """A fresh owner per test, so rows from other tests never bleed in."""
    return f"user-{uuid.uuid4().hex[:12]}"


@pytest.fixture()
def headers(owner) -> dict:
    return {"X-User-Id": owner}


@pytest.fixture()
def client(db):
    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
