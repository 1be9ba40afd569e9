from datetime import datetime, timedelta

import pytest

from conftest import auth_headers
from core.lifecycle import generate_collab_id
from database.models import User, UserRole, KycStatus
from database.marketplace_models import (
    CollaborationRequest, AdSlotRequest, LiveTvChannel, PayoutRequest, RequestStatusDB,
    CollabStatusDB, CollabPaymentStatusDB,
)

API = "/api/v2"


def _reload(db, model, record_id):
    db.expire_all()
    return db.query(model).filter(model.id == record_id).one()


@pytest.fixture
def submitted_record(db, brand, verified_influencer):
    """Paid direct collaboration with work waiting for the brand's review."""
    record = CollaborationRequest(
        collab_id=generate_collab_id(db),
        title="Skincare routine video",
        message="One long-form video",
        brand_id=brand.id,
        brand_name=brand.company_name,
        seller_id=verified_influencer.id,
        seller_name=verified_influencer.name,
        status=CollabStatusDB.WORK_SUBMITTED,
        final_amount=10000.0,
        payment_status=CollabPaymentStatusDB.PAID,
    )
    db.add(record)
    db.commit()
    db.refresh(record)
    return record


def _dispute(client, brand, record, **extra):
    body = {
        "collaboration_kind": "direct",
        "collaboration_id": record.id,
        "reason": "The video does not mention the product at all",
    }
    body.update(extra)
    return client.post(f"{API}/disputes", json=body, headers=auth_headers(brand))


def _resolve(client, staff, dispute_id, in_favor_of):
    return client.post(
        f"{API}/disputes/admin/{dispute_id}/resolve",
        json={"resolution": "Reviewed the submission and chat history", "in_favor_of": in_favor_of},
        headers=auth_headers(staff),
    )


def test_brand_disputes_submitted_work(client, db, brand, submitted_record):
    response = _dispute(client, brand, submitted_record)

    assert response.status_code == 201
    assert response.json()["status"] == "open"
    assert response.json()["amount"] == 10000
    assert _reload(db, CollaborationRequest, submitted_record.id).status == CollabStatusDB.DISPUTED


def test_dispute_with_stale_version_is_rejected(client, brand, submitted_record):
    response = _dispute(client, brand, submitted_record, expected_version=submitted_record.version + 5)
    assert response.json()["code"] == "concurrent_update"


def test_seller_cannot_raise_dispute(client, verified_influencer, submitted_record):
    assert _dispute(client, verified_influencer, submitted_record).status_code == 403


def test_resolution_for_creator_completes_collaboration(client, db, brand, staff, submitted_record):
    dispute = _dispute(client, brand, submitted_record).json()

    response = _resolve(client, staff, dispute["id"], "creator")

    assert response.status_code == 200
    assert response.json()["status"] == "resolved"
    assert _reload(db, CollaborationRequest, submitted_record.id).status == CollabStatusDB.COMPLETED

    again = _resolve(client, staff, dispute["id"], "brand")
    assert again.status_code == 409


def test_resolution_for_brand_then_refund(client, db, brand, staff, submitted_record):
    dispute = _dispute(client, brand, submitted_record).json()
    _resolve(client, staff, dispute["id"], "brand")
    assert _reload(db, CollaborationRequest, submitted_record.id).status == CollabStatusDB.BRAND_DECISION_PENDING

    refund = client.post(
        f"{API}/payouts/refunds",
        json={"collaboration_kind": "direct", "collaboration_id": submitted_record.id, "pan_number": "abcde1234f"},
        headers=auth_headers(brand),
    )
    assert refund.status_code == 201
    assert refund.json()["pan_number"] == "ABCDE1234F"
    assert refund.json()["amount"] == 10000
    assert _reload(db, CollaborationRequest, submitted_record.id).status == CollabStatusDB.REFUND_PENDING_ADMIN_REVIEW

    duplicate = client.post(
        f"{API}/payouts/refunds",
        json={"collaboration_kind": "direct", "collaboration_id": submitted_record.id, "pan_number": "ABCDE1234F"},
        headers=auth_headers(brand),
    )
    assert duplicate.status_code == 400

    approved = client.put(
        f"{API}/payouts/admin/refund/{refund.json()['id']}/status",
        json={"status": "approved"},
        headers=auth_headers(staff),
    )
    assert approved.json()["status"] == "approved"
    assert _reload(db, CollaborationRequest, submitted_record.id).payment_status == CollabPaymentStatusDB.REFUNDED


def test_refund_needs_a_dispute_decision(client, brand, submitted_record):
    response = client.post(
        f"{API}/payouts/refunds",
        json={"collaboration_kind": "direct", "collaboration_id": submitted_record.id, "pan_number": "ABCDE1234F"},
        headers=auth_headers(brand),
    )
    assert response.status_code == 409


@pytest.fixture
def completed_payout(client, db, submitted_record, verified_influencer):
    """A pending final payout that deducted a 500 penalty."""
    submitted_record.status = CollabStatusDB.COMPLETED
    seller = db.query(User).filter(User.id == verified_influencer.id).one()
    seller.pending_penalty = 500.0
    db.commit()

    response = client.post(
        f"{API}/payouts/final",
        json={
            "collaboration_kind": "direct",
            "collaboration_id": submitted_record.id,
            "bank_details": {"account_holder_name": "Riya Shah", "account_number": "123456789012", "ifsc_code": "HDFC0001234"},
            "selfie_url": "https://cdn.example.com/selfie.jpg",
            "save_details": True,
        },
        headers=auth_headers(verified_influencer),
    )
    assert response.status_code == 201
    return response.json()


def test_payout_clears_penalty_and_saves_details(db, verified_influencer, completed_payout):
    assert completed_payout["penalty_deducted"] == 500
    assert completed_payout["payout_amount"] == 10000 - 1000 - 180 - 500

    seller = _reload(db, User, verified_influencer.id)
    assert seller.pending_penalty == 0
    assert seller.saved_bank_details["ifsc_code"] == "HDFC0001234"


def test_payout_needs_selfie(client, db, submitted_record, verified_influencer):
    submitted_record.status = CollabStatusDB.COMPLETED
    db.commit()

    response = client.post(
        f"{API}/payouts/final",
        json={"collaboration_kind": "direct", "collaboration_id": submitted_record.id, "upi_id": "riya@okbank"},
        headers=auth_headers(verified_influencer),
    )
    assert response.status_code == 422


def test_staff_processes_payout(client, db, staff, submitted_record, completed_payout):
    response = client.post(f"{API}/payouts/admin/final/{completed_payout['id']}/process", headers=auth_headers(staff))

    assert response.json()["message"] == "Payout processed"
    assert _reload(db, PayoutRequest, completed_payout["id"]).status == RequestStatusDB.APPROVED
    assert _reload(db, CollaborationRequest, submitted_record.id).payment_status == CollabPaymentStatusDB.PAYOUT_COMPLETE

    again = client.post(f"{API}/payouts/admin/final/{completed_payout['id']}/process", headers=auth_headers(staff))
    assert again.json()["message"] == "Already processed"


def test_rejected_payout_restores_penalty(client, db, staff, verified_influencer, submitted_record, completed_payout):
    response = client.put(
        f"{API}/payouts/admin/final/{completed_payout['id']}/status",
        json={"status": "rejected", "admin_note": "Bank name does not match KYC"},
        headers=auth_headers(staff),
    )

    assert response.json()["status"] == "rejected"
    assert _reload(db, User, verified_influencer.id).pending_penalty == 500
    assert _reload(db, CollaborationRequest, submitted_record.id).payment_status == CollabPaymentStatusDB.PAID


def test_non_financial_staff_cannot_process(client, make_user, completed_payout):
    support_agent = make_user(UserRole.STAFF, staff_permissions=["support"])
    response = client.post(f"{API}/payouts/admin/final/{completed_payout['id']}/process", headers=auth_headers(support_agent))
    assert response.status_code == 403


@pytest.fixture
def running_ad_slot(db, brand, make_user):
    owner = make_user(UserRole.LIVETV, kyc_status=KycStatus.APPROVED)
    channel = LiveTvChannel(owner_id=owner.id, name="City News 24")
    db.add(channel)
    db.flush()
    start = datetime.utcnow() - timedelta(days=1)
    record = AdSlotRequest(
        collab_id=generate_collab_id(db),
        title="Evening bulletin ticker",
        brand_id=brand.id,
        seller_id=owner.id,
        channel_id=channel.id,
        ad_type="ticker",
        start_date=start,
        end_date=start + timedelta(days=9),
        status=CollabStatusDB.IN_PROGRESS,
        final_amount=10000.0,
        payment_status=CollabPaymentStatusDB.PAID,
    )
    db.add(record)
    db.commit()
    return owner, record


def test_daily_payout_once_per_day(client, running_ad_slot):
    owner, record = running_ad_slot
    body = {"collaboration_kind": "ad_slot", "collaboration_id": record.id, "video_url": "https://cdn.example.com/live.mp4"}

    first = client.post(f"{API}/payouts/daily", json=body, headers=auth_headers(owner))
    assert first.status_code == 201
    assert first.json()["earnings"] == 1000
    assert first.json()["net_amount"] == 882

    second = client.post(f"{API}/payouts/daily", json=body, headers=auth_headers(owner))
    assert second.status_code == 400


def test_processed_payout_cannot_be_rejected(client, db, staff, verified_influencer, submitted_record, completed_payout):
    client.post(f"{API}/payouts/admin/final/{completed_payout['id']}/process", headers=auth_headers(staff))

    response = client.put(
        f"{API}/payouts/admin/final/{completed_payout['id']}/status",
        json={"status": "rejected", "admin_note": "Changed my mind"},
        headers=auth_headers(staff),
    )

    assert response.status_code == 409
    assert response.json()["code"] == "invalid_transition"
    assert _reload(db, PayoutRequest, completed_payout["id"]).status == RequestStatusDB.APPROVED
    assert _reload(db, CollaborationRequest, submitted_record.id).payment_status == CollabPaymentStatusDB.PAYOUT_COMPLETE
    assert _reload(db, User, verified_influencer.id).pending_penalty == 0

    # The collaboration is paid out; a second payout request has nothing to claim
    again = client.post(
        f"{API}/payouts/final",
        json={"collaboration_kind": "direct", "collaboration_id": submitted_record.id, "upi_id": "riya@okbank",
              "selfie_url": "https://cdn.example.com/selfie.jpg"},
        headers=auth_headers(verified_influencer),
    )
    assert again.status_code == 409


def test_rejected_payout_cannot_be_processed(client, staff, completed_payout):
    client.put(
        f"{API}/payouts/admin/final/{completed_payout['id']}/status",
        json={"status": "rejected"},
        headers=auth_headers(staff),
    )

    response = client.post(f"{API}/payouts/admin/final/{completed_payout['id']}/process", headers=auth_headers(staff))
    assert response.status_code == 409


def test_daily_earnings_are_credited_once(client, db, staff, running_ad_slot):
    owner, record = running_ad_slot
    body = {"collaboration_kind": "ad_slot", "collaboration_id": record.id, "video_url": "https://cdn.example.com/live.mp4"}
    daily = client.post(f"{API}/payouts/daily", json=body, headers=auth_headers(owner)).json()
    url = f"{API}/payouts/admin/daily/{daily['id']}/status"

    assert client.put(url, json={"status": "approved"}, headers=auth_headers(staff)).status_code == 200
    assert _reload(db, AdSlotRequest, record.id).daily_payouts_received == 1000

    back = client.put(url, json={"status": "pending"}, headers=auth_headers(staff))
    assert back.status_code == 409

    done = client.put(url, json={"status": "completed"}, headers=auth_headers(staff))
    assert done.status_code == 200
    assert done.json()["status"] == "completed"
    assert _reload(db, AdSlotRequest, record.id).daily_payouts_received == 1000
