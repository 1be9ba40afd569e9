"""Shared fixtures: in-memory database, API client and user factories."""

import os

# Must be set before the app modules read their configuration
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SCHEDULER_ENABLED"] = "false"
os.environ["CASHFREE_APP_ID"] = ""
os.environ["CASHFREE_SECRET_KEY"] = ""
os.environ["CASHFREE_PAYOUT_CLIENT_ID"] = ""
os.environ["FCM_SERVER_KEY"] = ""
os.environ["SMS_API_URL"] = ""

import uuid

import pytest
from fastapi.testclient import TestClient

from server import app
from auth.roles import StaffPermission
from auth.utils import get_password_hash, issue_token_for
from database.config import SessionLocal, engine
from database.models import Base, User, UserRole, KycStatus
from database import marketplace_models, community_models  # noqa: F401

PASSWORD = "password123"


@pytest.fixture
def db():
    """Fresh schema per test; the session shares the app's in-memory connection."""
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db):
    """API client. Used without a context manager so startup jobs don't run."""
    return TestClient(app)


@pytest.fixture
def make_user(db):
    """Factory creating a committed user of any role."""
    def _make(role=UserRole.BRAND, **fields):
        suffix = uuid.uuid4().hex[:8]
        user = User(
            email=fields.pop("email", f"{role.value}-{suffix}@example.com"),
            name=fields.pop("name", f"Test {role.value.title()} {suffix}"),
            role=role,
            password_hash=get_password_hash(PASSWORD),
            staff_permissions=fields.pop("staff_permissions", []),
            **fields,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make


@pytest.fixture
def brand(make_user):
    return make_user(UserRole.BRAND, company_name="Acme Foods")


@pytest.fixture
def influencer(make_user):
    return make_user(UserRole.INFLUENCER)


@pytest.fixture
def verified_influencer(make_user):
    """Influencer with approved KYC, able to request payouts."""
    return make_user(UserRole.INFLUENCER, kyc_status=KycStatus.APPROVED)


@pytest.fixture
def staff(make_user):
    return make_user(UserRole.STAFF, staff_permissions=[StaffPermission.SUPER_ADMIN.value])


def auth_headers(user):
    return {"Authorization": f"Bearer {issue_token_for(user)['access_token']}"}
