"""Shared test fixtures for authentication tests."""

import os

# Must be set before app.config is imported
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("SENDGRID_API_KEY", "")

from collections.abc import Callable
from unittest.mock import MagicMock, patch

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from app.config import Settings
from app.constants import CookieName
from app.database import Base, get_db
from app.main import app
from app.models import User
from app.rate_limiter import limiter
from app.services.auth import AuthOrchestrator, PasswordService

DEFAULT_PASSWORD = "Secure123"


def registration_payload(email: str = "test@example.com", **overrides) -> dict:
    """Valid camelCase registration body."""
    payload = {
        "studentId": overrides.pop("student_id", "S-1001"),
        "fullName": "Test Student",
        "email": email,
        "password": DEFAULT_PASSWORD,
        "phoneNumber": "555-0100",
        "department": "Economics",
        "year": "2nd",
    }
    payload.update(overrides)
    return payload


def sent_code(outbox: MagicMock) -> str:
    """Plaintext code from the most recent delivery task."""
    _settings, _email, code = outbox.call_args[0]
    return code


def present_refresh_token(test_client: TestClient, token: str) -> None:
    """Replace the client's cookies with just the given refresh token."""
    test_client.cookies.clear()
    test_client.cookies.set(CookieName.REFRESH_TOKEN, token)


def register_and_verify_user(
    test_client: TestClient,
    outbox: MagicMock,
    email: str = "test@example.com",
    student_id: str = "S-1001",
) -> dict:
    """Register, verify with the emailed code, and return the cookies issued."""
    test_client.post("/api/auth/register", json=registration_payload(email, student_id=student_id))
    response = test_client.post(
        "/api/auth/verify-email", json={"email": email, "otp": sent_code(outbox)}
    )
    assert response.status_code == 200
    return {
        "access_token": response.cookies[CookieName.ACCESS_TOKEN],
        "refresh_token": response.cookies[CookieName.REFRESH_TOKEN],
    }


@pytest.fixture
def settings() -> Settings:
    return Settings(
        database_url="sqlite:///:memory:",
        jwt_access_secret="test-access-secret-0123456789abcdef",
        jwt_refresh_secret="test-refresh-secret-0123456789abcdef",
        otp_secret_key="test-otp-secret",
        sendgrid_api_key="",
    )


@pytest.fixture
def session_factory() -> sessionmaker:
    """In-memory SQLite shared across threads (StaticPool)."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    engine.dispose()


@pytest.fixture
def db(session_factory) -> Session:
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def outbox() -> MagicMock:
    """Captures verification-code deliveries instead of sending email."""
    with patch("app.services.auth.orchestrator.deliver_verification_otp") as mock_deliver:
        yield mock_deliver


@pytest.fixture
def orchestrator(db, settings, outbox) -> AuthOrchestrator:
    """Orchestrator whose background tasks run immediately."""

    def run_now(func: Callable, *args) -> None:
        func(*args)

    return AuthOrchestrator(db, settings, run_now, ip_address="127.0.0.1", user_agent="pytest")


@pytest.fixture
def make_user(db) -> Callable[..., User]:
    """Insert a user directly, bypassing the registration flow."""

    def _make(
        email: str = "test@example.com",
        student_id: str = "S-1001",
        password: str | None = DEFAULT_PASSWORD,
        email_verified: bool = True,
        **fields,
    ) -> User:
        user = User(
            email=email,
            student_id=student_id,
            full_name=fields.pop("full_name", "Test Student"),
            department=fields.pop("department", "Economics"),
            year=fields.pop("year", "2nd"),
            password_hash=PasswordService.hash_password(password) if password else None,
            email_verified=email_verified,
            **fields,
        )
        db.add(user)
        db.commit()
        return user

    return _make


@pytest.fixture
def auth_client(session_factory, outbox):
    """Create test client with in-memory database for auth tests.

    Yields a tuple of (TestClient, SessionMaker) for use in tests.
    """
    limiter.reset()

    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as test_client:
        yield test_client, session_factory

    app.dependency_overrides.clear()
