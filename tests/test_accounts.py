import pytest

import server
from conftest import auth_headers, PASSWORD
from database.models import User, UserRole, KycStatus, OtpCode
from services.notification_service import NotificationService, NotificationType

API = "/api/v2"


def _register(client, email, role="influencer", **extra):
    body = {"email": email, "password": "s3cure-pass", "name": "Riya Shah", "role": role}
    body.update(extra)
    return client.post("/api/auth/register", json=body)


def _bearer(token_response):
    return {"Authorization": f"Bearer {token_response.json()['access_token']}"}


# ============================================================================
# AUTHENTICATION
# ============================================================================

def test_register_and_fetch_profile(client):
    response = _register(client, "riya@example.com", role="brand", company_name="Acme Foods")

    assert response.status_code == 200
    assert response.json()["role"] == "brand"

    me = client.get("/api/auth/me", headers=_bearer(response)).json()
    assert me["email"] == "riya@example.com"
    assert me["referral_code"].startswith("REF")
    assert me["membership"]["plan"] == "free"
    assert me["membership"]["limit_per_type"] == 1


def test_duplicate_email_is_rejected(client):
    _register(client, "dup@example.com")
    assert _register(client, "dup@example.com").status_code == 400


def test_short_password_is_rejected(client):
    response = client.post("/api/auth/register", json={"email": "a@example.com", "password": "short", "name": "Al"})
    assert response.status_code == 422


def test_login(client, brand):
    ok = client.post("/api/auth/login", json={"email": brand.email, "password": PASSWORD})
    assert ok.status_code == 200
    assert ok.json()["user_id"] == brand.id

    wrong = client.post("/api/auth/login", json={"email": brand.email, "password": "not-the-password"})
    assert wrong.status_code == 401


def test_blocked_user_cannot_login(client, make_user):
    blocked = make_user(UserRole.INFLUENCER, is_blocked=True)
    response = client.post("/api/auth/login", json={"email": blocked.email, "password": PASSWORD})
    assert response.status_code == 403


def test_referral_rewards_both_sides(client, db):
    referrer = _register(client, "referrer@example.com")
    code = client.get("/api/auth/me", headers=_bearer(referrer)).json()["referral_code"]

    referred = _register(client, "friend@example.com", referral_code=code.lower())
    assert referred.status_code == 200

    db.expire_all()
    assert db.query(User).filter(User.email == "referrer@example.com").one().coins == 50
    assert db.query(User).filter(User.email == "friend@example.com").one().coins == 20


def test_unknown_referral_code_creates_no_account(client, db):
    response = _register(client, "nobody@example.com", referral_code="REFXXXXXX")

    assert response.status_code == 404
    assert db.query(User).filter(User.email == "nobody@example.com").first() is None


def test_referral_code_applies_once(client, make_user):
    referrer = make_user(UserRole.BRAND, referral_code="REFABC123")
    user = make_user(UserRole.INFLUENCER)

    first = client.post(f"{API}/users/me/referral/apply", json={"code": "REFABC123"}, headers=auth_headers(user))
    assert first.json()["coins"] == 20

    second = client.post(f"{API}/users/me/referral/apply", json={"code": "REFABC123"}, headers=auth_headers(user))
    assert second.status_code == 400

    own = client.post(f"{API}/users/me/referral/apply", json={"code": "REFABC123"}, headers=auth_headers(referrer))
    assert own.status_code == 400


# ============================================================================
# OTP AND GOOGLE SIGN-IN
# ============================================================================

@pytest.fixture
def sent_codes(monkeypatch):
    """Capture OTPs instead of sending SMS."""
    codes = {}

    class FakeSms:
        def send_otp(self, mobile_number, code):
            codes[mobile_number] = code
            return True

    monkeypatch.setattr(server, "SmsService", FakeSms)
    return codes


def _wrong(code):
    return code[:-1] + str((int(code[-1]) + 1) % 10)


def test_otp_login(client, make_user, sent_codes):
    user = make_user(UserRole.INFLUENCER, mobile_number="9876543210")

    assert client.post("/api/auth/otp/request", json={"mobile_number": "9876543210"}).status_code == 200
    code = sent_codes["9876543210"]

    wrong = client.post("/api/auth/otp/verify", json={"mobile_number": "9876543210", "code": _wrong(code)})
    assert wrong.status_code == 401

    right = client.post("/api/auth/otp/verify", json={"mobile_number": "9876543210", "code": code})
    assert right.status_code == 200
    assert right.json()["user_id"] == user.id

    reused = client.post("/api/auth/otp/verify", json={"mobile_number": "9876543210", "code": code})
    assert reused.status_code == 401


def test_otp_locks_after_five_attempts(client, db, make_user, sent_codes):
    make_user(UserRole.INFLUENCER, mobile_number="9876500000")
    client.post("/api/auth/otp/request", json={"mobile_number": "9876500000"})
    code = sent_codes["9876500000"]

    for _ in range(5):
        client.post("/api/auth/otp/verify", json={"mobile_number": "9876500000", "code": _wrong(code)})

    locked = client.post("/api/auth/otp/verify", json={"mobile_number": "9876500000", "code": code})
    assert locked.status_code == 429
    assert db.query(OtpCode).filter(OtpCode.mobile_number == "9876500000").one().attempts == 5


def test_otp_needs_registered_number(client, sent_codes):
    assert client.post("/api/auth/otp/request", json={"mobile_number": "9000000000"}).status_code == 404


def test_google_sign_in_creates_account_once(client, db, monkeypatch):
    monkeypatch.setattr(server, "verify_google_id_token", lambda token: {
        "email": "creator@gmail.com", "name": "Creator", "email_verified": "true",
    })

    first = client.post("/api/auth/google", json={"id_token": "token", "role": "influencer"})
    second = client.post("/api/auth/google", json={"id_token": "token"})

    assert first.status_code == 200
    assert first.json()["user_id"] == second.json()["user_id"]
    assert db.query(User).filter(User.email == "creator@gmail.com").count() == 1


def test_google_sign_in_rejects_invalid_token(client, monkeypatch):
    monkeypatch.setattr(server, "verify_google_id_token", lambda token: None)
    assert client.post("/api/auth/google", json={"id_token": "bad"}).status_code == 401


# ============================================================================
# KYC AND NOTIFICATIONS
# ============================================================================

KYC_BODY = {
    "id_type": "aadhaar",
    "id_number": "1234 5678 9012",
    "address": "12 MG Road",
    "city": "Pune",
    "state": "Maharashtra",
    "pincode": "411001",
    "id_proof_url": "https://cdn.example.com/id.jpg",
    "selfie_url": "https://cdn.example.com/selfie.jpg",
}


def test_kyc_needs_documents(client, influencer):
    body = dict(KYC_BODY, selfie_url=None)
    response = client.post(f"{API}/kyc/submit", json=body, headers=auth_headers(influencer))

    assert response.status_code == 422
    assert response.json()["code"] == "validation_error"


def test_kyc_review_notifies_user(client, db, influencer, staff):
    submitted = client.post(f"{API}/kyc/submit", json=KYC_BODY, headers=auth_headers(influencer))
    assert submitted.json()["kyc_status"] == "pending"

    pending = client.get(f"{API}/kyc/admin/pending", headers=auth_headers(staff)).json()["users"]
    assert [u["user_id"] for u in pending] == [influencer.id]

    no_reason = client.put(f"{API}/kyc/admin/{influencer.id}/review", json={"status": "rejected"}, headers=auth_headers(staff))
    assert no_reason.status_code == 422

    approved = client.put(f"{API}/kyc/admin/{influencer.id}/review", json={"status": "approved"}, headers=auth_headers(staff))
    assert approved.json()["kyc_status"] == "approved"

    db.expire_all()
    assert db.query(User).filter(User.id == influencer.id).one().kyc_status == KycStatus.APPROVED

    headers = auth_headers(influencer)
    assert client.get(f"{API}/notifications/unread-count", headers=headers).json()["unread_count"] == 1
    notifications = client.get(f"{API}/notifications", headers=headers).json()["notifications"]
    assert notifications[0]["title"] == "KYC Approved"

    client.put(f"{API}/notifications/read-all", headers=headers)
    assert client.get(f"{API}/notifications/unread-count", headers=headers).json()["unread_count"] == 0


def test_kyc_review_is_staff_only(client, influencer, brand):
    response = client.put(f"{API}/kyc/admin/{influencer.id}/review", json={"status": "approved"}, headers=auth_headers(brand))
    assert response.status_code == 403


def test_notification_belongs_to_owner(client, db, influencer, brand):
    notification = NotificationService(db).create(
        user_id=influencer.id, type=NotificationType.SYSTEM, title="Welcome", body="Welcome to Collabzz",
    )
    db.commit()

    assert client.put(f"{API}/notifications/{notification.id}/read", headers=auth_headers(brand)).status_code == 404
    assert client.put(f"{API}/notifications/{notification.id}/read", headers=auth_headers(influencer)).status_code == 200
