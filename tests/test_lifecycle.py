import pytest

from core.errors import (
    InvalidTransitionError, ConcurrentUpdateError, PaymentRequiredError, ValidationFailedError,
)
from core.lifecycle import (
    CollabKind, Party, Action, STATUS_LABELS, TRANSITIONS,
    initial_status, allowed_actions, apply_transition, generate_collab_id, status_label,
)
from database.marketplace_models import (
    CollaborationRequest, CollaborationEvent, CollabStatusDB, CollabPaymentStatusDB,
)


@pytest.fixture
def direct_request(db, brand, influencer):
    record = CollaborationRequest(
        collab_id=generate_collab_id(db),
        title="Summer launch reel",
        message="Two reels and a story",
        brand_id=brand.id,
        seller_id=influencer.id,
        status=initial_status(CollabKind.DIRECT),
    )
    db.add(record)
    db.commit()
    db.refresh(record)
    return record


def test_every_status_has_a_label():
    for collab_status in CollabStatusDB:
        assert STATUS_LABELS[collab_status]
    assert status_label("work_submitted") == "Work Submitted"


def test_initial_statuses_per_kind():
    assert initial_status(CollabKind.DIRECT) == CollabStatusDB.PENDING
    assert initial_status(CollabKind.CAMPAIGN) == CollabStatusDB.PENDING_BRAND_REVIEW
    assert initial_status(CollabKind.AD_SLOT) == CollabStatusDB.PENDING_APPROVAL
    assert initial_status(CollabKind.BANNER_BOOKING) == CollabStatusDB.PENDING_APPROVAL


def test_negotiation_alternates_between_parties():
    table = TRANSITIONS[CollabKind.DIRECT]
    assert table[(CollabStatusDB.PENDING, Party.SELLER, Action.OFFER)] == CollabStatusDB.INFLUENCER_OFFER
    assert table[(CollabStatusDB.INFLUENCER_OFFER, Party.BUYER, Action.COUNTER)] == CollabStatusDB.BRAND_OFFER
    assert table[(CollabStatusDB.BRAND_OFFER, Party.SELLER, Action.ACCEPT)] == CollabStatusDB.AGREEMENT_REACHED
    # The side that made the offer cannot accept it
    assert (CollabStatusDB.INFLUENCER_OFFER, Party.SELLER, Action.ACCEPT) not in table


def test_ad_bookings_use_agency_offer():
    table = TRANSITIONS[CollabKind.AD_SLOT]
    assert table[(CollabStatusDB.PENDING_APPROVAL, Party.SELLER, Action.OFFER)] == CollabStatusDB.AGENCY_OFFER
    assert table[(CollabStatusDB.AGENCY_OFFER, Party.BUYER, Action.ACCEPT)] == CollabStatusDB.AGREEMENT_REACHED


def test_brand_can_accept_campaign_application_directly():
    assert "accept" in allowed_actions(CollabKind.CAMPAIGN, CollabStatusDB.PENDING_BRAND_REVIEW, Party.BUYER)
    assert allowed_actions(CollabKind.DIRECT, CollabStatusDB.COMPLETED, Party.BUYER) == []


def test_offer_then_accept_sets_final_amount(db, direct_request, brand, influencer):
    apply_transition(db, CollabKind.DIRECT, direct_request, Party.SELLER, Action.OFFER, actor_id=influencer.id, amount=15000)
    assert direct_request.status == CollabStatusDB.INFLUENCER_OFFER
    assert direct_request.current_offer == {"amount": 15000.0, "offered_by": "seller"}

    apply_transition(db, CollabKind.DIRECT, direct_request, Party.BUYER, Action.ACCEPT, actor_id=brand.id)
    db.commit()

    assert direct_request.status == CollabStatusDB.AGREEMENT_REACHED
    assert direct_request.final_amount == 15000.0
    events = db.query(CollaborationEvent).filter(CollaborationEvent.record_id == direct_request.id).all()
    assert sorted(e.action for e in events) == ["accept", "offer"]


def test_transition_outside_table_is_rejected(db, direct_request):
    with pytest.raises(InvalidTransitionError) as exc:
        apply_transition(db, CollabKind.DIRECT, direct_request, Party.BUYER, Action.ACCEPT)
    assert exc.value.status_code == 409
    assert direct_request.status == CollabStatusDB.PENDING


def test_offer_requires_positive_amount(db, direct_request):
    with pytest.raises(ValidationFailedError):
        apply_transition(db, CollabKind.DIRECT, direct_request, Party.SELLER, Action.OFFER, amount=0)


def test_stale_version_is_a_conflict(db, direct_request):
    with pytest.raises(ConcurrentUpdateError) as exc:
        apply_transition(
            db, CollabKind.DIRECT, direct_request, Party.SELLER, Action.OFFER,
            amount=5000, expected_version=direct_request.version + 1,
        )
    assert exc.value.code == "concurrent_update"


def test_work_actions_need_payment(db, direct_request):
    direct_request.status = CollabStatusDB.IN_PROGRESS
    with pytest.raises(PaymentRequiredError):
        apply_transition(db, CollabKind.DIRECT, direct_request, Party.SELLER, Action.SUBMIT_WORK)

    direct_request.payment_status = CollabPaymentStatusDB.PAID
    assert apply_transition(db, CollabKind.DIRECT, direct_request, Party.SELLER, Action.SUBMIT_WORK) == CollabStatusDB.WORK_SUBMITTED


def test_dispute_resolution_paths(db, direct_request):
    direct_request.status = CollabStatusDB.DISPUTED
    direct_request.payment_status = CollabPaymentStatusDB.PAID

    assert apply_transition(db, CollabKind.DIRECT, direct_request, Party.STAFF, Action.RESOLVE_FOR_BRAND) == CollabStatusDB.BRAND_DECISION_PENDING
    assert apply_transition(db, CollabKind.DIRECT, direct_request, Party.BUYER, Action.REQUEST_REFUND) == CollabStatusDB.REFUND_PENDING_ADMIN_REVIEW


def test_collab_ids_have_fixed_shape(db):
    collab_id = generate_collab_id(db)
    assert collab_id.startswith("CRI")
    assert len(collab_id) == 13
    assert collab_id[3:].isdigit()
