"""
Pytest configuration and fixtures

Tests run against an in-memory SQLite database. The schema is created
fresh for every test and dropped afterwards, so nothing leaks between tests.
"""
import os
import sys

# Must be set before any application module reads settings
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("SECRET_KEY", "test-secret-key-for-testing-at-least-32-chars")
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["REDIS_URL"] = ""
os.environ["OPENAI_API_KEY"] = ""
os.environ["GOOGLE_AI_API_KEY"] = ""

# Add the parent directory to the path so we can import from services
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from core.account_security import reset_all  # noqa: E402
from core.database import Base, SessionLocal, engine  # noqa: E402
from core.security import create_access_token, get_password_hash  # noqa: E402
from main import app  # noqa: E402
from models import User  # noqa: E402
from services import achievement_service, template_service  # noqa: E402

TEST_PASSWORD = "correct-horse-battery"


@pytest.fixture(autouse=True)
def _schema():
    Base.metadata.create_all(bind=engine)
    reset_all()
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db_session():
    """
    Session sharing the in-memory database with the app.

    Fixtures commit what they create; call ``expire_all()`` before reading
    state that an API call changed.
    """
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def seeded(db_session):
    """Achievement catalogue and system templates, as seeded at startup."""
    achievement_service.seed_achievements(db_session)
    template_service.seed_system_templates(db_session)
    db_session.commit()


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def make_user(db_session):
    """Factory: make_user("alice", role="admin") -> committed User."""
    counter = {"n": 0}

    def _make(username=None, email=None, role="user", password=TEST_PASSWORD, **fields):
        counter["n"] += 1
        username = username or f"user{counter['n']}"
        user = User(
            username=username,
            email=email or f"{username}@example.com",
            password_hash=get_password_hash(password),
            role=role,
            **fields,
        )
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user

    return _make


def auth_headers(user):
    token = create_access_token(data={"sub": str(user.id), "username": user.username, "role": user.role})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def auth_for():
    return auth_headers


@pytest.fixture
def user(make_user):
    return make_user("alice", timezone="UTC")


@pytest.fixture
def headers(user):
    return auth_headers(user)
