"""
Pytest configuration and shared fixtures for the test suite.

Every test gets its own in-memory SQLite database; see tests/factories.py
for the catalog layout format.
"""
import os

os.environ["TESTING"] = "true"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import app.models  # noqa: F401  registers every model on Base.metadata
from app.core.database import Base, get_db
from app.core.security import create_access_token
from tests.factories import build_course, build_user


# ----- Database -----
@pytest.fixture
def engine():
    """In-memory SQLite engine shared by every session of one test."""
    test_engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(test_engine)
    yield test_engine
    test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db_session(session_factory):
    session = session_factory()
    yield session
    session.close()


# ----- Users -----
@pytest.fixture
def learner(db_session):
    return build_user(db_session, "learner")


@pytest.fixture
def other_learner(db_session):
    return build_user(db_session, "other")


@pytest.fixture
def admin_user(db_session):
    return build_user(db_session, "admin", is_admin=True)


# ----- Catalog -----
@pytest.fixture
def make_course(db_session):
    """Factory: make_course(layout, title=..., status=...)."""
    def _make(layout, **kwargs):
        return build_course(db_session, layout, **kwargs)
    return _make


@pytest.fixture
def grid_course(make_course):
    """3 sections x 2 units x 2 text chapters (12 chapters)."""
    return make_course([[["text", "text"], ["text", "text"]]] * 3, title="Grid")


@pytest.fixture
def scenario_course(make_course):
    """1 section, 1 unit: a text chapter and a two-question quiz."""
    return make_course([[["text", ["paris", "4"]]]], title="Geography")


@pytest.fixture
def no_seed(monkeypatch):
    """Enroll with an empty (sparse) progress tree."""
    from app.core.config import settings
    monkeypatch.setattr(settings, "SEED_PROGRESS_ON_ENROLL", False)


# ----- API -----
@pytest.fixture
def api_client(session_factory):
    """FastAPI TestClient with the in-memory DB override."""
    from app.main import app

    def _get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = _get_db
    with TestClient(app) as client:
        yield client
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    """Factory: bearer headers for a user."""
    def _headers(user):
        return {"Authorization": f"Bearer {create_access_token(user.username)}"}
    return _headers
