# Collaboration Lifecycle for Collabzz
# Single place where collaboration status changes are validated and applied.
#
# Every kind shares the post-agreement path; only the negotiation differs:
#   direct          pending              seller opens    influencer_offer <-> brand_offer
#   campaign        pending_brand_review buyer opens     influencer_counter_offer <-> brand_counter_offer
#   ad_slot/banner  pending_approval     seller opens    agency_offer <-> brand_offer

import random
from enum import Enum
from typing import Dict, Optional, Tuple

from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from database.models import User, UserRole
from database.marketplace_models import (
    CollaborationRequest, CampaignApplication, AdSlotRequest, BannerAdBookingRequest,
    CollaborationEvent, CollabStatusDB, CollabPaymentStatusDB, RequestStatusDB,
)
from core.errors import (
    InvalidTransitionError, ConcurrentUpdateError, PaymentRequiredError, ValidationFailedError,
)


class CollabKind(str, Enum):
    DIRECT = "direct"
    CAMPAIGN = "campaign"
    AD_SLOT = "ad_slot"
    BANNER_BOOKING = "banner_booking"


class Party(str, Enum):
    BUYER = "buyer"
    SELLER = "seller"
    STAFF = "staff"
    SYSTEM = "system"


class Action(str, Enum):
    OFFER = "offer"
    COUNTER = "counter"
    ACCEPT = "accept"
    REJECT = "reject"
    PAY = "pay"
    START_WORK = "start_work"
    SUBMIT_WORK = "submit_work"
    COMPLETE = "complete"
    DISPUTE = "dispute"
    RESOLVE_FOR_BRAND = "resolve_for_brand"
    RESOLVE_FOR_CREATOR = "resolve_for_creator"
    REQUEST_REFUND = "request_refund"
    CANCEL = "cancel"


MODEL_BY_KIND = {
    CollabKind.DIRECT: CollaborationRequest,
    CollabKind.CAMPAIGN: CampaignApplication,
    CollabKind.AD_SLOT: AdSlotRequest,
    CollabKind.BANNER_BOOKING: BannerAdBookingRequest,
}

AD_KINDS = (CollabKind.AD_SLOT, CollabKind.BANNER_BOOKING)

S = CollabStatusDB

STATUS_LABELS: Dict[CollabStatusDB, str] = {
    S.PENDING: "Pending",
    S.REJECTED: "Rejected",
    S.INFLUENCER_OFFER: "Offer Sent",
    S.BRAND_OFFER: "Offer Received",
    S.AGREEMENT_REACHED: "Agreement Reached",
    S.IN_PROGRESS: "In Progress",
    S.WORK_SUBMITTED: "Work Submitted",
    S.COMPLETED: "Completed",
    S.DISPUTED: "Dispute in Review",
    S.BRAND_DECISION_PENDING: "Decision Pending",
    S.REFUND_PENDING_ADMIN_REVIEW: "Refund Under Review",
    S.PENDING_BRAND_REVIEW: "Pending Review",
    S.BRAND_COUNTER_OFFER: "Brand Counter Offer",
    S.INFLUENCER_COUNTER_OFFER: "Influencer Counter Offer",
    S.PENDING_APPROVAL: "Pending Approval",
    S.AGENCY_OFFER: "Agency Offer",
}

# (initial status, party that responds first, seller offer status, buyer offer status)
NEGOTIATION = {
    CollabKind.DIRECT: (S.PENDING, Party.SELLER, S.INFLUENCER_OFFER, S.BRAND_OFFER),
    CollabKind.CAMPAIGN: (S.PENDING_BRAND_REVIEW, Party.BUYER, S.INFLUENCER_COUNTER_OFFER, S.BRAND_COUNTER_OFFER),
    CollabKind.AD_SLOT: (S.PENDING_APPROVAL, Party.SELLER, S.AGENCY_OFFER, S.BRAND_OFFER),
    CollabKind.BANNER_BOOKING: (S.PENDING_APPROVAL, Party.SELLER, S.AGENCY_OFFER, S.BRAND_OFFER),
}

# Shared by every kind once an amount is agreed
POST_AGREEMENT = {
    (S.AGREEMENT_REACHED, Party.SYSTEM, Action.PAY): S.IN_PROGRESS,
    (S.IN_PROGRESS, Party.SELLER, Action.START_WORK): S.IN_PROGRESS,
    (S.IN_PROGRESS, Party.SELLER, Action.SUBMIT_WORK): S.WORK_SUBMITTED,
    (S.WORK_SUBMITTED, Party.BUYER, Action.COMPLETE): S.COMPLETED,
    (S.WORK_SUBMITTED, Party.BUYER, Action.DISPUTE): S.DISPUTED,
    (S.DISPUTED, Party.STAFF, Action.RESOLVE_FOR_BRAND): S.BRAND_DECISION_PENDING,
    (S.DISPUTED, Party.STAFF, Action.RESOLVE_FOR_CREATOR): S.COMPLETED,
    (S.BRAND_DECISION_PENDING, Party.BUYER, Action.COMPLETE): S.COMPLETED,
    (S.BRAND_DECISION_PENDING, Party.BUYER, Action.REQUEST_REFUND): S.REFUND_PENDING_ADMIN_REVIEW,
    (S.AGREEMENT_REACHED, Party.SELLER, Action.CANCEL): S.REJECTED,
    (S.IN_PROGRESS, Party.SELLER, Action.CANCEL): S.REJECTED,
}

# Actions that only make sense once the brand has paid
PAYMENT_GATED = {Action.START_WORK, Action.SUBMIT_WORK, Action.COMPLETE, Action.DISPUTE, Action.REQUEST_REFUND}
PAID_STATES = {CollabPaymentStatusDB.PAID, CollabPaymentStatusDB.PARTIAL_PAID}

TERMINAL_STATES = {S.REJECTED, S.COMPLETED}


def _other(party: Party) -> Party:
    return Party.BUYER if party == Party.SELLER else Party.SELLER


def _offer_status(kind: CollabKind, party: Party) -> CollabStatusDB:
    _, _, seller_offer, buyer_offer = NEGOTIATION[kind]
    return seller_offer if party == Party.SELLER else buyer_offer


def build_transitions(kind: CollabKind) -> Dict[Tuple[CollabStatusDB, Party, Action], CollabStatusDB]:
    initial, opener, seller_offer, buyer_offer = NEGOTIATION[kind]
    table = {
        (initial, opener, Action.OFFER): _offer_status(kind, opener),
    }
    if opener == Party.BUYER:
        # A brand reviewing an application can take it at the listed price
        table[(initial, opener, Action.ACCEPT)] = S.AGREEMENT_REACHED

    for offered_by, offer_status in ((Party.SELLER, seller_offer), (Party.BUYER, buyer_offer)):
        responder = _other(offered_by)
        table[(offer_status, responder, Action.COUNTER)] = _offer_status(kind, responder)
        table[(offer_status, responder, Action.ACCEPT)] = S.AGREEMENT_REACHED

    for status in (initial, seller_offer, buyer_offer):
        for party in (Party.BUYER, Party.SELLER):
            table[(status, party, Action.REJECT)] = S.REJECTED

    table.update(POST_AGREEMENT)
    return table


TRANSITIONS = {kind: build_transitions(kind) for kind in CollabKind}


def initial_status(kind: CollabKind) -> CollabStatusDB:
    return NEGOTIATION[kind][0]


def status_label(status) -> str:
    return STATUS_LABELS[CollabStatusDB(status)]


def allowed_actions(kind: CollabKind, status, party: Party):
    """Actions the given party may take from the current status."""
    current = CollabStatusDB(status)
    return sorted({action.value for (frm, who, action) in TRANSITIONS[kind] if frm == current and who == party})


def party_for(record, user: User) -> Optional[Party]:
    if user.id == record.brand_id:
        return Party.BUYER
    if user.id == record.seller_id:
        return Party.SELLER
    if user.role == UserRole.STAFF:
        return Party.STAFF
    return None


def generate_collab_id(db: Session) -> str:
    """Human readable id, unique across all collaboration kinds."""
    while True:
        candidate = "CRI" + "".join(random.choices("0123456789", k=10))
        taken = any(
            db.query(model.id).filter(model.collab_id == candidate).first()
            for model in MODEL_BY_KIND.values()
        )
        if not taken:
            return candidate


def apply_transition(
    db: Session,
    kind: CollabKind,
    record,
    party: Party,
    action: Action,
    actor_id: Optional[str] = None,
    amount: Optional[float] = None,
    daily_rate: Optional[float] = None,
    reason: Optional[str] = None,
    expected_version: Optional[int] = None,
) -> CollabStatusDB:
    """
    Validate and apply one lifecycle step to a collaboration record.

    Raises ConcurrentUpdateError when expected_version is stale,
    InvalidTransitionError for moves outside the table and
    PaymentRequiredError for post-payment actions on unpaid records.
    The caller commits (see commit_or_conflict).
    """
    if expected_version is not None and record.version != expected_version:
        raise ConcurrentUpdateError(
            f"Collaboration was modified (version {record.version}, expected {expected_version}). Reload and retry."
        )

    current = CollabStatusDB(record.status)
    target = TRANSITIONS[kind].get((current, party, action))
    if target is None:
        raise InvalidTransitionError(
            f"Cannot {action.value} as {party.value} while collaboration is '{current.value}'"
        )

    if action in PAYMENT_GATED and record.payment_status not in PAID_STATES:
        raise PaymentRequiredError("Payment must be confirmed before this step")

    if action in (Action.OFFER, Action.COUNTER):
        if amount is None or amount <= 0:
            raise ValidationFailedError("An offer amount greater than zero is required")
        offer = {"amount": float(amount), "offered_by": party.value}
        if daily_rate is not None:
            offer["daily_rate"] = float(daily_rate)
        record.current_offer = offer

    elif action == Action.ACCEPT:
        offer = record.current_offer or {}
        agreed = offer.get("amount", amount)
        if agreed is None or agreed < 0:
            raise ValidationFailedError("There is no offer amount to accept")
        record.final_amount = float(agreed)
        if kind in AD_KINDS and offer.get("daily_rate") is not None:
            record.daily_rate = float(offer["daily_rate"])
        amount = agreed

    elif action in (Action.REJECT, Action.CANCEL):
        record.rejection_reason = reason

    elif action == Action.START_WORK:
        record.work_status = "started"

    record.status = target
    db.add(CollaborationEvent(
        kind=kind.value,
        record_id=record.id,
        actor_id=actor_id,
        action=action.value,
        from_status=current.value,
        to_status=target.value,
        amount=amount,
        note=reason,
    ))
    return target


def commit_or_conflict(db: Session) -> None:
    """Commit, mapping a version_id_col mismatch to a 409."""
    try:
        db.commit()
    except StaleDataError:
        db.rollback()
        raise ConcurrentUpdateError("Collaboration was modified by another request. Reload and retry.")


# Payout, daily payout and refund requests. Approved requests may only be
# confirmed as completed; completed and rejected are final.
R = RequestStatusDB

REQUEST_TRANSITIONS = {
    R.PENDING: {R.PROCESSING, R.ON_HOLD, R.APPROVED, R.REJECTED},
    R.PROCESSING: {R.ON_HOLD, R.APPROVED, R.REJECTED},
    R.ON_HOLD: {R.PENDING, R.PROCESSING, R.APPROVED, R.REJECTED},
    R.APPROVED: {R.COMPLETED},
    R.COMPLETED: set(),
    R.REJECTED: set(),
}

SETTLED_REQUEST_STATES = {R.APPROVED, R.COMPLETED}


def check_request_transition(current, target) -> None:
    current, target = RequestStatusDB(current), RequestStatusDB(target)
    if target not in REQUEST_TRANSITIONS[current]:
        raise InvalidTransitionError(f"Cannot move a request from '{current.value}' to '{target.value}'")
