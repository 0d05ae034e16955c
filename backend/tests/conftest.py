"""
Pytest configuration and fixtures for backend tests.
"""

import os
import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Add backend directory to path for imports
backend_dir = Path(__file__).parent.parent
sys.path.insert(0, str(backend_dir))

# Set test environment variables before importing config
os.environ["SECRET_KEY"] = "test-secret-key-for-testing-only"
os.environ["ENVIRONMENT"] = "test"
os.environ["CORS_ORIGINS"] = '["http://localhost:3000"]'
os.environ["ADMIN_EMAIL"] = "admin@test.com"
os.environ["ADMIN_PASSWORD"] = "TestAdmin123!"
os.environ["EMAIL_PROVIDER"] = "console"
os.environ["SENTRY_DSN"] = ""

from authentication.auth import create_access_token, get_password_hash  # noqa: E402
from helpers.time_utils import utc_now  # noqa: E402
from repositories.database import (  # noqa: E402
    Base,
    enable_sqlite_foreign_keys,
    get_db,
)
import repositories.db_models as db_models  # noqa: E402
from services.rate_limit_service import LoginRateLimiter  # noqa: E402

DEFAULT_PASSWORD = "TestPassword123!"

# Test database engine (in-memory SQLite)
TEST_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
enable_sqlite_foreign_keys(engine)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# One hash for every fixture user keeps the suite fast
_DEFAULT_HASH = get_password_hash(DEFAULT_PASSWORD)


@pytest.fixture(scope="function")
def db_session():
    """Create a fresh in-memory database session for each test."""
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def client(db_session):
    """Create a test client with overridden database dependency."""
    from main import app

    # Fresh limiter so attempts never leak between tests
    app.state.login_rate_limiter = LoginRateLimiter()

    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(db_session):
    """Factory fixture creating users with the default password."""

    def _make_user(
        email: str,
        name: str = "Board User",
        role: db_models.UserRole = db_models.UserRole.USER,
        verified: bool = True,
        password: str | None = DEFAULT_PASSWORD,
    ) -> db_models.User:
        if password is None:
            hashed = None
        elif password == DEFAULT_PASSWORD:
            hashed = _DEFAULT_HASH
        else:
            hashed = get_password_hash(password)
        user = db_models.User(
            email=email,
            name=name,
            hashed_password=hashed,
            role=role,
            email_verified_at=utc_now() if verified else None,
        )
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user

    return _make_user


@pytest.fixture
def test_user(make_user) -> db_models.User:
    """Create a verified test user."""
    return make_user("test@example.com", name="Test User")


@pytest.fixture
def other_user(make_user) -> db_models.User:
    """Create another test user (for permission tests)."""
    return make_user("other@example.com", name="Other User")


@pytest.fixture
def admin_user(make_user) -> db_models.User:
    """Create an admin user."""
    return make_user(
        "admin@example.com", name="Admin User", role=db_models.UserRole.ADMIN
    )


@pytest.fixture
def voters(make_user) -> list[db_models.User]:
    """Five verified users that only vote."""
    return [make_user(f"voter{i}@example.com", name=f"Voter {i}") for i in range(5)]


@pytest.fixture
def make_request(db_session):
    """Factory fixture creating feature requests directly in the database."""

    def _make_request(
        owner: db_models.User,
        title: str = "Dark mode",
        description: str = "Please add a dark theme to the dashboard.",
        status: db_models.FeatureRequestStatus = db_models.FeatureRequestStatus.PENDING,
    ) -> db_models.FeatureRequest:
        request = db_models.FeatureRequest(
            title=title,
            description=description,
            status=status,
            user_id=owner.id,
        )
        db_session.add(request)
        db_session.commit()
        db_session.refresh(request)
        return request

    return _make_request


@pytest.fixture
def add_votes(db_session):
    """Factory fixture adding one vote per given user to a request."""

    def _add_votes(
        request: db_models.FeatureRequest, users: list[db_models.User]
    ) -> list[db_models.Vote]:
        votes = [
            db_models.Vote(user_id=user.id, feature_request_id=request.id)
            for user in users
        ]
        db_session.add_all(votes)
        db_session.commit()
        return votes

    return _add_votes


@pytest.fixture
def test_request(make_request, test_user) -> db_models.FeatureRequest:
    """A pending request owned by test_user."""
    return make_request(test_user)


def _headers_for(user: db_models.User) -> dict:
    token = create_access_token(data={"sub": user.email})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def auth_headers(test_user) -> dict:
    """Get authentication headers for test user."""
    return _headers_for(test_user)


@pytest.fixture
def other_auth_headers(other_user) -> dict:
    """Get authentication headers for other user."""
    return _headers_for(other_user)


@pytest.fixture
def admin_auth_headers(admin_user) -> dict:
    """Get authentication headers for admin user."""
    return _headers_for(admin_user)
