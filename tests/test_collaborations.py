from datetime import datetime, timedelta

import pytest

from conftest import auth_headers
from database.models import User, UserRole
from database.marketplace_models import (
    CollaborationRequest, CollabPaymentStatusDB, CollabStatusDB, RefundRequest, LiveTvChannel, BannerAd,
)
from services.payment_processor import process_payment_success

API = "/api/v2"


def _create_direct(client, brand, influencer, title="Festive campaign reel"):
    return client.post(
        f"{API}/collaborations/direct",
        json={"influencer_id": influencer.id, "title": title, "message": "One reel, one story", "budget": 15000},
        headers=auth_headers(brand),
    )


def _act(client, user, record_id, kind="direct", **body):
    return client.post(f"{API}/collaborations/{kind}/{record_id}/actions", json=body, headers=auth_headers(user))


@pytest.fixture
def agreed_request(client, brand, verified_influencer):
    """Direct request negotiated to agreement_reached at 20000."""
    record = _create_direct(client, brand, verified_influencer).json()
    _act(client, verified_influencer, record["id"], action="offer", amount=20000)
    accepted = _act(client, brand, record["id"], action="accept")
    assert accepted.status_code == 200
    return accepted.json()


def _mark_paid(db, brand, record):
    db.expire_all()
    process_payment_success(
        db,
        order_id="order_test_paid",
        user_id=brand.id,
        purpose="direct",
        related_id=record["id"],
        amount=record["final_amount"],
        collab_id=record["collab_id"],
    )


def test_direct_request_starts_pending(client, brand, influencer):
    response = _create_direct(client, brand, influencer)

    assert response.status_code == 201
    data = response.json()
    assert data["status"] == "pending"
    assert data["status_label"] == "Pending"
    assert data["collab_id"].startswith("CRI")
    assert data["current_offer"] == {"amount": 15000.0, "offered_by": "buyer"}
    assert data["allowed_actions"] == ["reject"]


def test_direct_request_to_non_influencer_is_404(client, brand, make_user):
    agency = make_user(UserRole.BANNER_AGENCY)
    assert _create_direct(client, brand, agency).status_code == 404


def test_full_direct_lifecycle_through_payout(client, db, brand, verified_influencer, agreed_request):
    record_id = agreed_request["id"]
    assert agreed_request["status"] == "agreement_reached"
    assert agreed_request["final_amount"] == 20000

    _mark_paid(db, brand, agreed_request)

    submitted = _act(client, verified_influencer, record_id, action="submit_work")
    assert submitted.status_code == 200
    assert submitted.json()["status"] == "work_submitted"

    completed = _act(client, brand, record_id, action="complete")
    assert completed.json()["status"] == "completed"

    payout = client.post(
        f"{API}/payouts/final",
        json={
            "collaboration_kind": "direct",
            "collaboration_id": record_id,
            "upi_id": "creator@okbank",
            "selfie_url": "https://cdn.example.com/selfie.jpg",
        },
        headers=auth_headers(verified_influencer),
    )
    assert payout.status_code == 201
    assert payout.json()["payout_amount"] == 17640

    db.expire_all()
    stored = db.query(CollaborationRequest).filter(CollaborationRequest.id == record_id).one()
    assert stored.payment_status == CollabPaymentStatusDB.PAYOUT_REQUESTED

    again = client.post(
        f"{API}/payouts/final",
        json={"collaboration_kind": "direct", "collaboration_id": record_id, "upi_id": "creator@okbank", "selfie_url": "x"},
        headers=auth_headers(verified_influencer),
    )
    assert again.status_code == 409


def test_history_lists_every_transition(client, brand, agreed_request):
    response = client.get(f"{API}/collaborations/direct/{agreed_request['id']}/events", headers=auth_headers(brand))

    assert response.status_code == 200
    assert sorted(e["action"] for e in response.json()) == ["accept", "offer"]


def test_action_not_allowed_from_status_is_conflict(client, brand, influencer):
    record = _create_direct(client, brand, influencer).json()

    response = _act(client, brand, record["id"], action="accept")

    assert response.status_code == 409
    assert response.json()["code"] == "invalid_transition"


def test_stale_expected_version_is_rejected(client, brand, influencer):
    record = _create_direct(client, brand, influencer).json()
    offered = _act(client, influencer, record["id"], action="offer", amount=12000).json()
    assert offered["version"] == record["version"] + 1

    response = _act(client, brand, record["id"], action="accept", expected_version=record["version"])

    assert response.status_code == 409
    assert response.json()["code"] == "concurrent_update"


def test_outsider_cannot_act(client, brand, influencer, make_user):
    record = _create_direct(client, brand, influencer).json()
    other = make_user(UserRole.INFLUENCER)

    assert _act(client, other, record["id"], action="offer", amount=1000).status_code == 403


def test_free_plan_allows_one_direct_request(client, brand, influencer):
    assert _create_direct(client, brand, influencer).status_code == 201

    response = _create_direct(client, brand, influencer, title="Second request")

    assert response.status_code == 403
    assert response.json()["code"] == "collaboration_limit"


def test_free_plan_usage_resets_each_year(client, db, make_user, influencer):
    brand = make_user(
        UserRole.BRAND,
        company_name="Chai Point",
        membership_starts_at=datetime.utcnow() - timedelta(days=400),
        usage_direct_collaborations=1,
    )

    assert _create_direct(client, brand, influencer).status_code == 201

    db.expire_all()
    stored = db.query(User).filter(User.id == brand.id).one()
    assert stored.usage_direct_collaborations == 1
    assert stored.membership_starts_at > datetime.utcnow() - timedelta(days=1)
    assert _create_direct(client, brand, influencer, title="Second request").status_code == 403


def test_seller_cancellation_adds_penalty(client, db, verified_influencer, agreed_request):
    response = _act(client, verified_influencer, agreed_request["id"], action="cancel", reason="Schedule clash")

    assert response.json()["status"] == "rejected"
    db.expire_all()
    seller = db.query(User).filter(User.id == verified_influencer.id).one()
    assert seller.pending_penalty == 500


def test_cancel_after_payment_refunds_the_brand(client, db, brand, staff, verified_influencer, agreed_request):
    _mark_paid(db, brand, agreed_request)

    response = _act(client, verified_influencer, agreed_request["id"], action="cancel", reason="Fell ill")
    assert response.json()["status"] == "rejected"

    refund = db.query(RefundRequest).filter(RefundRequest.collaboration_id == agreed_request["id"]).one()
    assert refund.amount == 20000
    assert refund.order_id is None

    approved = client.put(
        f"{API}/payouts/admin/refund/{refund.id}/status",
        json={"status": "approved"},
        headers=auth_headers(staff),
    )
    assert approved.status_code == 200
    db.expire_all()
    record = db.query(CollaborationRequest).filter(CollaborationRequest.id == agreed_request["id"]).one()
    assert record.status == CollabStatusDB.REJECTED
    assert record.payment_status == CollabPaymentStatusDB.REFUNDED


def test_payout_requires_approved_kyc(client, db, brand, influencer):
    record = _create_direct(client, brand, influencer).json()

    response = client.post(
        f"{API}/payouts/final",
        json={"collaboration_kind": "direct", "collaboration_id": record["id"], "upi_id": "creator@okbank"},
        headers=auth_headers(influencer),
    )

    assert response.status_code == 403
    assert response.json()["code"] == "kyc_required"


def test_campaign_paid_application_needs_offer(client, brand, influencer):
    campaign = client.post(
        f"{API}/campaigns",
        json={"title": "Monsoon menu", "description": "Promote our monsoon specials", "category": "food"},
        headers=auth_headers(brand),
    )
    assert campaign.status_code == 201

    response = client.post(
        f"{API}/campaigns/{campaign.json()['id']}/apply",
        json={"message": "I cover food in Pune"},
        headers=auth_headers(influencer),
    )

    assert response.status_code == 422
    assert response.json()["code"] == "validation_error"


def test_barter_application_accepted_at_zero(client, brand, influencer):
    campaign = client.post(
        f"{API}/campaigns",
        json={
            "title": "Cafe tasting",
            "description": "Free tasting menu for two in exchange for a post",
            "category": "food",
            "collaboration_type": "barter",
        },
        headers=auth_headers(brand),
    ).json()

    application = client.post(
        f"{API}/campaigns/{campaign['id']}/apply",
        json={"message": "Happy to visit this weekend"},
        headers=auth_headers(influencer),
    )
    assert application.status_code == 201
    assert application.json()["status"] == "pending_brand_review"

    accepted = _act(client, brand, application.json()["id"], kind="campaign", action="accept")

    assert accepted.status_code == 200
    assert accepted.json()["status"] == "agreement_reached"
    assert accepted.json()["final_amount"] == 0

    duplicate = client.post(
        f"{API}/campaigns/{campaign['id']}/apply",
        json={"message": "Applying twice"},
        headers=auth_headers(influencer),
    )
    assert duplicate.status_code == 400


# ============================================================================
# AD BOOKINGS
# ============================================================================

@pytest.fixture
def channel(db, make_user):
    owner = make_user(UserRole.LIVETV)
    channel = LiveTvChannel(owner_id=owner.id, name="City News 24")
    db.add(channel)
    db.commit()
    return owner, channel


@pytest.fixture
def banner(db, make_user):
    agency = make_user(UserRole.BANNER_AGENCY)
    banner = BannerAd(
        agency_id=agency.id,
        agency_name="Metro Hoardings",
        location="MG Road",
        address="Opposite Central Mall, MG Road",
        size="20x10",
        fee_per_day=500.0,
        banner_type="hoarding",
    )
    db.add(banner)
    db.commit()
    return agency, banner


def test_brand_requests_ad_slot_and_channel_quotes_daily_rate(client, brand, channel):
    owner, live_channel = channel
    created = client.post(
        f"{API}/ad-bookings/ad-slots",
        json={
            "channel_id": live_channel.id,
            "title": "Evening bulletin ticker",
            "ad_type": "ticker",
            "start_date": "2026-01-01T00:00:00",
            "end_date": "2026-01-10T00:00:00",
        },
        headers=auth_headers(brand),
    )
    assert created.status_code == 201
    slot = created.json()
    assert slot["status"] == "pending_approval"
    assert slot["seller_id"] == owner.id
    assert slot["allowed_actions"] == ["reject"]

    # 10 days at 1000, plus 2% processing fee and 18% GST on both
    offered = _act(client, owner, slot["id"], kind="ad_slot", action="offer", daily_rate=1000)
    assert offered.status_code == 200
    assert offered.json()["status"] == "agency_offer"
    assert offered.json()["current_offer"] == {"amount": 12036.0, "offered_by": "seller", "daily_rate": 1000.0}

    accepted = _act(client, brand, slot["id"], kind="ad_slot", action="accept").json()
    assert accepted["status"] == "agreement_reached"
    assert accepted["final_amount"] == 12036
    assert accepted["daily_rate"] == 1000
    assert accepted["emi_schedule"] == []


def test_ad_slot_for_unknown_channel_is_404(client, brand):
    response = client.post(
        f"{API}/ad-bookings/ad-slots",
        json={"channel_id": "missing", "title": "Ticker", "ad_type": "ticker",
              "start_date": "2026-01-01T00:00:00", "end_date": "2026-01-02T00:00:00"},
        headers=auth_headers(brand),
    )
    assert response.status_code == 404


def test_banner_booking_quotes_listed_fee(client, brand, banner):
    agency, banner_ad = banner
    response = client.post(
        f"{API}/ad-bookings/banner-bookings",
        json={
            "banner_ad_id": banner_ad.id,
            "title": "Diwali sale hoarding",
            "start_date": "2026-01-01T00:00:00",
            "end_date": "2026-01-04T00:00:00",
        },
        headers=auth_headers(brand),
    )

    assert response.status_code == 201
    booking = response.json()
    assert booking["seller_id"] == agency.id
    assert booking["banner_location"] == "MG Road"
    assert booking["current_offer"] == {"amount": 2407.2, "daily_rate": 500.0, "offered_by": "buyer"}

    countered = _act(client, agency, booking["id"], kind="banner_booking", action="offer", daily_rate=600).json()
    assert countered["current_offer"]["amount"] == 2888.64
    assert countered["current_offer"]["daily_rate"] == 600


def test_influencer_cannot_book_banner(client, influencer, banner):
    _, banner_ad = banner
    response = client.post(
        f"{API}/ad-bookings/banner-bookings",
        json={"banner_ad_id": banner_ad.id, "title": "Hoarding", "start_date": "2026-01-01T00:00:00", "end_date": "2026-01-02T00:00:00"},
        headers=auth_headers(influencer),
    )
    assert response.status_code == 403


def test_accepting_emi_booking_builds_schedule(client, brand, banner):
    agency, banner_ad = banner
    booking = client.post(
        f"{API}/ad-bookings/banner-bookings",
        json={
            "banner_ad_id": banner_ad.id,
            "title": "Quarter long hoarding",
            "start_date": "2026-01-01T00:00:00",
            "end_date": "2026-03-11T00:00:00",
            "payment_plan": "emi",
        },
        headers=auth_headers(brand),
    ).json()
    _act(client, agency, booking["id"], kind="banner_booking", action="offer", daily_rate=100)

    accepted = _act(client, brand, booking["id"], kind="banner_booking", action="accept").json()

    # 70 days at 100 is 7000, plus 140 fee and 1285.20 GST
    assert accepted["final_amount"] == 8425.2
    schedule = accepted["emi_schedule"]
    assert [emi["amount"] for emi in schedule] == [3610.0, 3610.0, 1205.2]
    assert [emi["due_date"] for emi in schedule] == ["2026-01-01T00:00:00", "2026-01-31T00:00:00", "2026-03-02T00:00:00"]
    assert accepted["next_payment_due_date"] == "2026-01-01T00:00:00"
