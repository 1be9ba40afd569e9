import base64
import hashlib
import hmac
import json
from datetime import datetime, timedelta

import pytest

from conftest import auth_headers
from config import app_config
from core.cashfree_service import CashfreeConfig
from core.lifecycle import generate_collab_id
from database.models import User, UserRole, Transaction, TransactionStatus, MembershipPlan
from database.marketplace_models import (
    CollaborationRequest, CollabStatusDB, CollabPaymentStatusDB, RefundRequest, BannerAd, BannerAdBookingRequest,
)
from services.payment_processor import process_payment_success

API = "/api/v2"


class FakeCashfree:
    """Stands in for the gateway client; every fetched order is PAID."""
    created = []

    def create_order(self, order_id, amount, customer_id, customer_phone, return_url, tags=None):
        self.created.append(order_id)
        return {"order_id": order_id, "payment_session_id": f"session_{order_id}"}

    def get_order(self, order_id):
        return {"order_id": order_id, "order_status": "PAID", "order_amount": 8000}


@pytest.fixture
def gateway(monkeypatch):
    """Configure the gateway with a fake client and a known webhook secret."""
    FakeCashfree.created = []
    monkeypatch.setattr(CashfreeConfig, "is_configured", staticmethod(lambda: True))
    monkeypatch.setattr(app_config, "CASHFREE_SECRET_KEY", "webhook-secret")
    monkeypatch.setattr("routers.payments.CashfreeService", FakeCashfree)
    return FakeCashfree


@pytest.fixture
def agreed_record(db, brand, influencer):
    record = CollaborationRequest(
        collab_id=generate_collab_id(db),
        title="Product unboxing",
        message="One video",
        brand_id=brand.id,
        brand_name=brand.company_name,
        seller_id=influencer.id,
        seller_name=influencer.name,
        status=CollabStatusDB.AGREEMENT_REACHED,
        final_amount=8000.0,
    )
    db.add(record)
    db.commit()
    db.refresh(record)
    return record


def _order(client, user, **body):
    return client.post(f"{API}/payments/create-order", json=body, headers=auth_headers(user))


def _reload(db, model, record_id):
    db.expire_all()
    return db.query(model).filter(model.id == record_id).one()


def test_order_without_gateway_returns_mock_session(client, db, brand, agreed_record):
    response = _order(client, brand, purpose="direct", related_id=agreed_record.id)

    assert response.status_code == 200
    data = response.json()
    assert data["payment_session_id"] == "mock_session_id"
    assert data["amount"] == 8000
    assert data["order_id"].startswith("order_")

    tx = db.query(Transaction).filter(Transaction.order_id == data["order_id"]).one()
    assert tx.status == TransactionStatus.PENDING
    assert tx.metadata_json["collabType"] == "direct"


def test_only_the_brand_can_pay(client, influencer, agreed_record):
    assert _order(client, influencer, purpose="direct", related_id=agreed_record.id).status_code == 403


def test_payment_before_agreement_is_conflict(client, db, brand, agreed_record):
    agreed_record.status = CollabStatusDB.BRAND_OFFER
    db.commit()

    response = _order(client, brand, purpose="direct", related_id=agreed_record.id)

    assert response.status_code == 409
    assert response.json()["code"] == "invalid_transition"


def test_unknown_purpose_is_rejected(client, brand):
    response = _order(client, brand, purpose="gift_card", related_id="x")
    assert response.status_code == 422


def test_coins_cover_membership(client, db, make_user):
    creator = make_user(UserRole.INFLUENCER, coins=500)

    response = _order(client, creator, purpose="membership", related_id="basic", coins_used=500)

    assert response.status_code == 200
    assert response.json()["payment_session_id"] == "COIN-ONLY"
    assert response.json()["coins_used"] == 199

    stored = _reload(db, User, creator.id)
    assert stored.coins == 301
    assert stored.membership_plan == MembershipPlan.BASIC
    assert stored.membership_active is True


def test_more_coins_than_owned_is_rejected(client, make_user):
    creator = make_user(UserRole.INFLUENCER, coins=10)
    response = _order(client, creator, purpose="membership", related_id="basic", coins_used=50)
    assert response.status_code == 422


def test_brand_cannot_buy_creator_plan(client, brand):
    response = _order(client, brand, purpose="membership", related_id="basic")
    assert response.status_code == 422


def test_verify_order_applies_payment_once(client, db, brand, agreed_record, gateway):
    order = _order(client, brand, purpose="direct", related_id=agreed_record.id).json()
    assert order["payment_session_id"] == f"session_{order['order_id']}"
    assert order["environment"] == "sandbox"

    first = client.get(f"{API}/payments/verify-order/{order['order_id']}", headers=auth_headers(brand))
    assert first.json()["success"] is True
    assert first.json()["message"] == "Payment processed"

    record = _reload(db, CollaborationRequest, agreed_record.id)
    assert record.status == CollabStatusDB.IN_PROGRESS
    assert record.payment_status == CollabPaymentStatusDB.PAID

    second = client.get(f"{API}/payments/verify-order/{order['order_id']}", headers=auth_headers(brand))
    assert second.json()["message"] == "Already processed"


def test_process_payment_success_is_idempotent(db, brand, agreed_record):
    kwargs = dict(order_id="order_1", user_id=brand.id, purpose="direct", related_id=agreed_record.id, amount=8000)

    assert process_payment_success(db, **kwargs)["message"] == "Payment processed"
    assert process_payment_success(db, **kwargs)["message"] == "Already processed"
    assert db.query(Transaction).filter(Transaction.order_id == "order_1").count() == 1


def test_webhook_requires_gateway(client):
    assert client.post(f"{API}/payments/webhook", content=b"{}").status_code == 503


def test_webhook_rejects_bad_signature(client, gateway):
    response = client.post(
        f"{API}/payments/webhook",
        content=b'{"data": {"order": {"order_id": "order_x"}}}',
        headers={"x-webhook-timestamp": "1700000000", "x-webhook-signature": "forged"},
    )
    assert response.status_code == 401


def test_signed_webhook_processes_order(client, db, brand, agreed_record, gateway):
    order = _order(client, brand, purpose="direct", related_id=agreed_record.id).json()
    body = json.dumps({"type": "PAYMENT_SUCCESS_WEBHOOK", "data": {"order": {"order_id": order["order_id"]}}}).encode()
    timestamp = "1700000000"
    signature = base64.b64encode(
        hmac.new(b"webhook-secret", timestamp.encode() + body, hashlib.sha256).digest()
    ).decode()

    response = client.post(
        f"{API}/payments/webhook",
        content=body,
        headers={"x-webhook-timestamp": timestamp, "x-webhook-signature": signature, "Content-Type": "application/json"},
    )

    assert response.status_code == 200
    assert response.json()["status"] == "ok"
    assert _reload(db, CollaborationRequest, agreed_record.id).payment_status == CollabPaymentStatusDB.PAID


def test_history_shows_payer_and_payee(client, db, brand, influencer, agreed_record):
    process_payment_success(db, order_id="order_2", user_id=brand.id, purpose="direct", related_id=agreed_record.id, amount=8000)

    for user in (brand, influencer):
        response = client.get(f"{API}/payments/history", headers=auth_headers(user))
        assert [t["order_id"] for t in response.json()["transactions"]] == ["order_2"]


# ============================================================================
# CHECKOUT RACES
# ============================================================================

def test_second_order_for_same_collaboration_is_refused(client, brand, agreed_record):
    assert _order(client, brand, purpose="direct", related_id=agreed_record.id).status_code == 200

    response = _order(client, brand, purpose="direct", related_id=agreed_record.id)

    assert response.status_code == 409
    assert response.json()["code"] == "invalid_transition"


def test_expired_checkout_allows_a_new_order(client, db, brand, agreed_record):
    first = _order(client, brand, purpose="direct", related_id=agreed_record.id).json()
    tx = db.query(Transaction).filter(Transaction.order_id == first["order_id"]).one()
    tx.created_at = datetime.utcnow() - timedelta(minutes=app_config.CHECKOUT_ORDER_TTL_MINUTES + 5)
    db.commit()

    assert _order(client, brand, purpose="direct", related_id=agreed_record.id).status_code == 200


def test_seller_cannot_cancel_while_brand_is_paying(client, db, brand, influencer, agreed_record):
    _order(client, brand, purpose="direct", related_id=agreed_record.id)

    response = client.post(
        f"{API}/collaborations/direct/{agreed_record.id}/actions",
        json={"action": "cancel", "reason": "Schedule clash"},
        headers=auth_headers(influencer),
    )

    assert response.status_code == 409
    assert _reload(db, CollaborationRequest, agreed_record.id).status == CollabStatusDB.AGREEMENT_REACHED


def test_payment_after_cancellation_opens_refund(client, db, brand, agreed_record, gateway):
    brand_row = db.query(User).filter(User.id == brand.id).one()
    brand_row.coins = 100
    db.commit()
    order = _order(client, brand, purpose="direct", related_id=agreed_record.id, coins_used=100).json()

    # Cancelled through a path that skipped the checkout guard
    record = _reload(db, CollaborationRequest, agreed_record.id)
    record.status = CollabStatusDB.REJECTED
    db.commit()

    response = client.get(f"{API}/payments/verify-order/{order['order_id']}", headers=auth_headers(brand)).json()

    assert response["message"] == "Refund opened"
    record = _reload(db, CollaborationRequest, agreed_record.id)
    assert record.status == CollabStatusDB.REJECTED
    assert record.payment_status is None

    refund = db.query(RefundRequest).filter(RefundRequest.id == response["refund_id"]).one()
    assert refund.amount == 7900
    assert refund.order_id == order["order_id"]
    assert refund.pan_number is None

    tx = db.query(Transaction).filter(Transaction.order_id == order["order_id"]).one()
    assert tx.status == TransactionStatus.COMPLETED
    assert tx.payee_id is None
    assert _reload(db, User, brand.id).coins == 100


def test_second_payment_for_paid_collaboration_opens_refund(db, brand, agreed_record):
    process_payment_success(db, order_id="order_a", user_id=brand.id, purpose="direct", related_id=agreed_record.id, amount=8000)

    result = process_payment_success(db, order_id="order_b", user_id=brand.id, purpose="direct", related_id=agreed_record.id, amount=8000)

    assert result["message"] == "Refund opened"
    assert _reload(db, CollaborationRequest, agreed_record.id).payment_status == CollabPaymentStatusDB.PAID
    assert db.query(RefundRequest).filter(RefundRequest.order_id == "order_b").count() == 1


# ============================================================================
# EMI INSTALMENTS
# ============================================================================

def test_emi_instalments_move_booking_to_paid(client, db, brand, make_user, gateway):
    agency = make_user(UserRole.BANNER_AGENCY)
    banner = BannerAd(
        agency_id=agency.id,
        agency_name="Metro Hoardings",
        location="Ring Road",
        address="Near the flyover, Ring Road",
        size="40x20",
        fee_per_day=100.0,
        banner_type="hoarding",
    )
    db.add(banner)
    db.commit()

    booking = client.post(
        f"{API}/ad-bookings/banner-bookings",
        json={
            "banner_ad_id": banner.id,
            "title": "Quarter long hoarding",
            "start_date": "2026-01-01T00:00:00",
            "end_date": "2026-03-11T00:00:00",
            "payment_plan": "emi",
        },
        headers=auth_headers(brand),
    ).json()
    actions = f"{API}/collaborations/banner_booking/{booking['id']}/actions"
    client.post(actions, json={"action": "offer", "daily_rate": 100}, headers=auth_headers(agency))
    schedule = client.post(actions, json={"action": "accept"}, headers=auth_headers(brand)).json()["emi_schedule"]

    first = _order(client, brand, purpose="banner_booking", related_id=booking["id"]).json()
    assert first["amount"] == 3610
    assert client.get(f"{API}/payments/verify-order/{first['order_id']}", headers=auth_headers(brand)).json()["message"] == "Payment processed"

    record = _reload(db, BannerAdBookingRequest, booking["id"])
    assert record.status == CollabStatusDB.IN_PROGRESS
    assert record.payment_status == CollabPaymentStatusDB.PARTIAL_PAID
    assert record.next_payment_due_date == datetime(2026, 1, 31)

    for emi in schedule[1:]:
        order = _order(client, brand, purpose="banner_booking", related_id=booking["id"], emi_id=emi["id"]).json()
        assert order["amount"] == emi["amount"]
        client.get(f"{API}/payments/verify-order/{order['order_id']}", headers=auth_headers(brand))

    record = _reload(db, BannerAdBookingRequest, booking["id"])
    assert record.payment_status == CollabPaymentStatusDB.PAID
    assert record.next_payment_due_date is None
    assert all(emi["status"] == "paid" for emi in record.emi_schedule)


def test_paid_instalment_cannot_be_ordered_again(client, db, brand, make_user):
    agency = make_user(UserRole.BANNER_AGENCY)
    banner = BannerAd(agency_id=agency.id, location="Ring Road", address="Near the flyover, Ring Road", size="40x20", fee_per_day=100.0, banner_type="hoarding")
    db.add(banner)
    db.commit()
    booking = client.post(
        f"{API}/ad-bookings/banner-bookings",
        json={"banner_ad_id": banner.id, "title": "Quarter long hoarding", "start_date": "2026-01-01T00:00:00",
              "end_date": "2026-03-11T00:00:00", "payment_plan": "emi"},
        headers=auth_headers(brand),
    ).json()
    actions = f"{API}/collaborations/banner_booking/{booking['id']}/actions"
    client.post(actions, json={"action": "offer", "daily_rate": 100}, headers=auth_headers(agency))
    schedule = client.post(actions, json={"action": "accept"}, headers=auth_headers(brand)).json()["emi_schedule"]
    process_payment_success(
        db, order_id="order_emi_1", user_id=brand.id, purpose="banner_booking",
        related_id=booking["id"], amount=schedule[0]["amount"], emi_id=schedule[0]["id"],
    )

    response = _order(client, brand, purpose="banner_booking", related_id=booking["id"], emi_id=schedule[0]["id"])

    assert response.status_code == 422
