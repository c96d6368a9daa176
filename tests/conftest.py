"""
Shared fixtures: in-memory SQLite database, API client and tokens.

Environment is set before the application is imported because config
is read at import time.
"""
import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ["SUPABASE_JWT_SECRET"] = "test-jwt-secret"
os.environ["STRIPE_SECRET_KEY"] = "sk_test_dummy"
os.environ["STRIPE_WEBHOOK_SECRET"] = "whsec_test_dummy"

import uuid

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from clmp.main import app
from clmp.db.base import Base
from clmp.db.models import UserRole, Role, Profile
from clmp.core.auth_dependency import get_db
from clmp.core.security import create_access_token


# Setup in-memory SQLite database for testing
TEST_DATABASE_URL = "sqlite:///:memory:"
test_engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=test_engine)


def override_get_db():
    """Override get_db dependency for testing."""
    db = TestSessionLocal()
    try:
        yield db
    finally:
        db.close()


# Override the database dependency
app.dependency_overrides[get_db] = override_get_db


@pytest.fixture(scope="function", autouse=True)
def setup_db():
    """Create and drop tables for each test."""
    Base.metadata.create_all(bind=test_engine)
    yield
    Base.metadata.drop_all(bind=test_engine)


@pytest.fixture
def db_session():
    """Provide a database session for tests."""
    db = TestSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def new_user_id():
    """Factory for identity-provider user ids (UUID v4)."""
    return lambda: str(uuid.uuid4())


@pytest.fixture
def auth_headers():
    """Factory for bearer headers carrying a valid token for a user id."""
    def _headers(user_id: str) -> dict:
        token = create_access_token(user_id, email=f"{user_id[:8]}@example.com")
        return {"Authorization": f"Bearer {token}"}
    return _headers


@pytest.fixture
def grant_role(db_session):
    def _grant(user_id: str, role: Role) -> None:
        db_session.add(UserRole(user_id=user_id, role=role))
        db_session.commit()
    return _grant


@pytest.fixture
def create_profile(db_session):
    def _create(user_id: str, **fields) -> Profile:
        profile = Profile(user_id=user_id, email=f"{user_id[:8]}@example.com", **fields)
        db_session.add(profile)
        db_session.commit()
        return profile
    return _create
