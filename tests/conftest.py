"""Test configuration and fixtures.

Runs the API against a throwaway file-based SQLite database and swaps the SMTP
senders for an in-memory outbox, so no Postgres or mail server is needed.
"""

import os
import tempfile
from typing import Generator

# Set env flags BEFORE importing application modules
_TMP_DIR = tempfile.mkdtemp(prefix="papad_store_tests_")
os.environ["ENVIRONMENT"] = "test"
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_TMP_DIR, 'test_db.sqlite')}"
os.environ["LOG_FILE"] = os.path.join(_TMP_DIR, "logs", "logs.txt")
os.environ["BCRYPT_SALT_ROUNDS"] = "4"
os.environ["OTP_HASH_ROUNDS"] = "4"
os.environ.setdefault("GOOGLE_CLIENT_ID", "")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from papad_store.core.config import settings
from papad_store.core.dependencies import get_db
from papad_store.db.base import Base
from papad_store.main import app  # imports routers & models
from papad_store.api.v1.endpoints import auth_endpoints
from papad_store.models.user import User, UserRole
from papad_store.services.auth_service import get_password_hash

engine = create_engine(settings.DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

API = settings.API_V1_STR
DEFAULT_PASSWORD = "Secret123"


@pytest.fixture(autouse=True)
def fresh_schema() -> Generator[None, None, None]:
    """Every test starts from empty tables."""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture()
def db_session() -> Generator:
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(autouse=True)
def override_db_dependency() -> Generator[None, None, None]:
    """Override FastAPI dependency to use the SQLite session."""
    def _get_db():
        db = TestingSessionLocal()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = _get_db
    yield
    app.dependency_overrides.pop(get_db, None)


class Outbox:
    """Collects what would have been emailed."""

    def __init__(self):
        self.otps = []
        self.welcomes = []
        self.fail_otp = False

    def send_otp_email(self, to: str, otp: str, name: str = "") -> bool:
        if self.fail_otp:
            return False
        self.otps.append((to, otp))
        return True

    def send_welcome_email(self, to: str, name: str) -> bool:
        self.welcomes.append((to, name))
        return True

    def last_otp(self, email: str) -> str:
        for to, otp in reversed(self.otps):
            if to == email:
                return otp
        raise AssertionError(f"no OTP sent to {email}")


@pytest.fixture(autouse=True)
def outbox(monkeypatch) -> Outbox:
    box = Outbox()
    monkeypatch.setattr(auth_endpoints, "send_otp_email", box.send_otp_email)
    monkeypatch.setattr(auth_endpoints, "send_welcome_email", box.send_welcome_email)
    return box


@pytest.fixture()
def client() -> Generator[TestClient, None, None]:
    # Not used as a context manager: startup would seed the admin account
    yield TestClient(app)


# ── helpers ───────────────────────────────────────────────────────────────────

def wrong_code(code: str) -> str:
    """A code of the same shape that is guaranteed not to match."""
    return "".join(str((int(c) + 1) % 10) for c in code)


@pytest.fixture()
def register(client, outbox):
    def _register(email: str = "a@x.com", name: str = "A", password: str = DEFAULT_PASSWORD):
        response = client.post(f"{API}/auth/register", json={"name": name, "email": email, "password": password})
        assert response.status_code == 201, response.text
        return outbox.last_otp(email)
    return _register


@pytest.fixture()
def verified_user(client, register):
    """Register and verify a customer; returns the verify-otp JSON body."""
    def _verified(email: str = "a@x.com", name: str = "A", password: str = DEFAULT_PASSWORD):
        code = register(email=email, name=name, password=password)
        response = client.post(f"{API}/auth/verify-otp", json={"email": email, "otp": code})
        assert response.status_code == 200, response.text
        return response.json()
    return _verified


@pytest.fixture()
def make_user(db_session):
    """Insert a user row directly, bypassing the OTP flow."""
    def _make(
        email: str = "admin@x.com",
        role: UserRole = UserRole.ADMIN,
        is_verified: bool = True,
        password: str = DEFAULT_PASSWORD,
        name: str = "Store Admin",
    ) -> User:
        user = User(
            name=name,
            email=email,
            password_hash=get_password_hash(password),
            role=role,
            is_verified=is_verified,
        )
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user
    return _make


def bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}
