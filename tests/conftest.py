import os

# Settings are read at import time; give tests their own values first
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("SECRET_KEY", "test-secret-key-for-jwt-signing")
os.environ.setdefault("REGISTRATION_SECRET", "test-registration-secret")
os.environ.setdefault("BCRYPT_ROUNDS", "4")

import pytest
from datetime import datetime, timedelta, UTC
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from jose import jwt

from app.database import get_db
from app.models.base import Base
from app.config import settings
from app.core.security import hash_password
# Import all model classes to ensure they're registered with SQLAlchemy
from app.models.user import User
from app.models.tenant import Tenant  # noqa: F401
from app.models.tenant_membership import TenantMembership  # noqa: F401
from app.models.invite_code import InviteCode  # noqa: F401
from app.models.voucher import Voucher  # noqa: F401
from app.models.reading import Reading  # noqa: F401
# Import FastAPI app AFTER model imports
from app.main import app

DEFAULT_PASSWORD = "correct-horse"

# Test database (SQLite in-memory for speed)
# Use StaticPool to ensure all connections share the same in-memory database
SQLALCHEMY_TEST_DATABASE_URL = "sqlite:///:memory:"
engine = create_engine(
    SQLALCHEMY_TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="function")
def db_session():
    """Create fresh database for each test"""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def client(db_session):
    """FastAPI test client with test database"""

    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def create_test_token(user_id: int = 1, email: str = "test@example.com", expired: bool = False) -> str:
    """
    Generate JWT token for testing.

    Args:
        user_id: User ID to embed in 'sub' claim
        email: Email claim
        expired: If True, create expired token

    Returns:
        Encoded JWT token
    """
    if expired:
        exp = datetime.now(UTC) - timedelta(minutes=5)
    else:
        exp = datetime.now(UTC) + timedelta(minutes=15)

    payload = {"sub": str(user_id), "email": email, "exp": exp, "iat": datetime.now(UTC)}

    token = jwt.encode(payload, settings.SECRET_KEY, algorithm="HS256")
    return token


def bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


def register_user(
    client,
    email: str,
    password: str = DEFAULT_PASSWORD,
    invite_code: str | None = None,
    registration_key: str | None = None,
) -> dict:
    """
    Register through the API and return the response body plus headers.

    Uses the registration key unless an invite code is given.
    """
    payload = {"email": email, "password": password}
    if invite_code is not None:
        payload["invite_code"] = invite_code
    else:
        payload["registration_key"] = registration_key or settings.REGISTRATION_SECRET

    response = client.post("/api/auth/register", json=payload)
    assert response.status_code == 201, response.text
    data = response.json()
    data["headers"] = bearer(data["token"])
    return data


def create_invite(client, headers: dict, max_uses: int = 1) -> str:
    response = client.post("/api/tenants/me/invites", headers=headers, json={"max_uses": max_uses})
    assert response.status_code == 201, response.text
    return response.json()["code"]


def add_voucher(client, headers: dict, **overrides) -> int:
    payload = {
        "token_number": "1234-5678-9012",
        "purchase_date": "2026-03-14",
        "amount": 100.0,
        "kwh_amount": 10.0,
        "vat_amount": 15.0,
    }
    payload.update(overrides)
    response = client.post("/api/vouchers", headers=headers, json=payload)
    assert response.status_code == 201, response.text
    return response.json()["id"]


def add_reading(client, headers: dict, **overrides) -> int:
    payload = {"reading_value": 1520.5, "reading_date": "2026-03-15"}
    payload.update(overrides)
    response = client.post("/api/readings", headers=headers, json=payload)
    assert response.status_code == 201, response.text
    return response.json()["id"]


@pytest.fixture
def admin_a(client):
    """User A: registered with the key, ADMIN of a new tenant"""
    return register_user(client, "alice@example.com")


@pytest.fixture
def member_b(client, admin_a):
    """User B: joined A's tenant as MEMBER through an invite"""
    code = create_invite(client, admin_a["headers"])
    return register_user(client, "bob@example.com", invite_code=code)


@pytest.fixture
def outsider_d(client):
    """User D: ADMIN of a different tenant"""
    return register_user(client, "dave@example.com")


@pytest.fixture
def super_admin(db_session):
    """Super-admin with no tenant membership"""
    user = User(
        email="root@example.com",
        password_hash=hash_password(DEFAULT_PASSWORD),
        is_super_admin=True,
    )
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)
    return {"user_id": user.id, "headers": bearer(create_test_token(user.id, user.email))}


@pytest.fixture
def tenantless_user(db_session):
    """Regular user without any membership (e.g. after leaving their tenant)"""
    user = User(email="nomad@example.com", password_hash=hash_password(DEFAULT_PASSWORD))
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)
    return {"user_id": user.id, "headers": bearer(create_test_token(user.id, user.email))}
