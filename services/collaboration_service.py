# Collaboration Service for Collabzz
# Loads collaboration records of any kind and runs party actions on them.

from datetime import datetime
from typing import Optional

from fastapi import HTTPException, status as http_status
from sqlalchemy.orm import Session

from core import pricing
from core.errors import ValidationFailedError, InvalidTransitionError
from core.lifecycle import (
    CollabKind, Party, Action, MODEL_BY_KIND, AD_KINDS,
    apply_transition, commit_or_conflict, party_for, allowed_actions, status_label,
)
from database.models import User
from database.marketplace_models import Campaign, CampaignTypeDB, CollabStatusDB, PaymentPlanDB
from services.notification_service import NotificationService, NotificationType
from services.payment_processor import open_checkout, amount_paid, open_refund
from services.settings_service import get_settings

VIEW_BY_KIND = {
    CollabKind.DIRECT: "my_collaborations",
    CollabKind.CAMPAIGN: "my_applications",
    CollabKind.AD_SLOT: "ad_bookings",
    CollabKind.BANNER_BOOKING: "ad_bookings",
}

# Actions exposed through the generic action endpoint; the others have
# dedicated endpoints because they create related rows.
PARTY_ACTIONS = {
    Action.OFFER, Action.COUNTER, Action.ACCEPT, Action.REJECT,
    Action.START_WORK, Action.SUBMIT_WORK, Action.COMPLETE, Action.CANCEL,
}


def get_record_or_404(db: Session, kind: CollabKind, record_id: str):
    model = MODEL_BY_KIND[kind]
    record = db.query(model).filter(model.id == record_id).first()
    if not record:
        raise HTTPException(status_code=http_status.HTTP_404_NOT_FOUND, detail="Collaboration not found")
    return record


def require_party(record, user: User) -> Party:
    party = party_for(record, user)
    if party is None:
        raise HTTPException(status_code=http_status.HTTP_403_FORBIDDEN, detail="Access denied")
    return party


def record_to_dict(kind: CollabKind, record, viewer: Optional[User] = None) -> dict:
    """Serialize any collaboration kind to one response shape."""
    data = {
        "id": record.id,
        "kind": kind.value,
        "collab_id": record.collab_id,
        "title": record.title,
        "brand_id": record.brand_id,
        "brand_name": record.brand_name,
        "brand_avatar": record.brand_avatar,
        "seller_id": record.seller_id,
        "seller_name": record.seller_name,
        "seller_avatar": record.seller_avatar,
        "status": record.status.value,
        "status_label": status_label(record.status),
        "current_offer": record.current_offer,
        "final_amount": record.final_amount,
        "payment_status": record.payment_status.value if record.payment_status else None,
        "work_status": record.work_status,
        "rejection_reason": record.rejection_reason,
        "daily_payouts_received": record.daily_payouts_received or 0,
        "version": record.version,
        "created_at": record.created_at,
        "updated_at": record.updated_at,
    }
    if kind in (CollabKind.DIRECT, CollabKind.CAMPAIGN):
        data["message"] = record.message
    if kind == CollabKind.CAMPAIGN:
        data["campaign_id"] = record.campaign_id
    if kind in AD_KINDS:
        data.update({
            "start_date": record.start_date,
            "end_date": record.end_date,
            "daily_rate": record.daily_rate,
            "payment_plan": record.payment_plan.value if record.payment_plan else None,
            "emi_schedule": record.emi_schedule or [],
            "next_payment_due_date": record.next_payment_due_date,
        })
        if kind == CollabKind.AD_SLOT:
            data.update({"channel_id": record.channel_id, "ad_type": record.ad_type})
        else:
            data.update({"banner_ad_id": record.banner_ad_id, "banner_location": record.banner_location})

    if viewer is not None:
        party = party_for(record, viewer)
        data["allowed_actions"] = allowed_actions(kind, record.status, party) if party else []
    return data


def _offer_amount_for_ad(record, amount: Optional[float], daily_rate: Optional[float], settings: dict) -> Optional[float]:
    """Ad offers may be quoted as a daily rate; the total is derived from the booking dates."""
    if amount is None and daily_rate is not None:
        return pricing.ad_price_breakdown(daily_rate, record.start_date, record.end_date, settings)["final_amount"]
    return amount


def perform_action(
    db: Session,
    kind: CollabKind,
    record,
    user: User,
    action: Action,
    amount: Optional[float] = None,
    daily_rate: Optional[float] = None,
    reason: Optional[str] = None,
    expected_version: Optional[int] = None,
):
    """Run one party action, apply side effects, notify the counterparty and commit."""
    if action not in PARTY_ACTIONS:
        raise ValidationFailedError(f"Action '{action.value}' is not available here")

    party = require_party(record, user)
    settings = get_settings(db)

    if kind in AD_KINDS and action in (Action.OFFER, Action.COUNTER):
        amount = _offer_amount_for_ad(record, amount, daily_rate, settings)

    if kind == CollabKind.CAMPAIGN and action == Action.ACCEPT and not record.current_offer:
        campaign = db.query(Campaign).filter(Campaign.id == record.campaign_id).first()
        if campaign is not None:
            # Barter campaigns settle at zero
            amount = campaign.payment_offer if campaign.payment_offer is not None else (0.0 if campaign.collaboration_type == CampaignTypeDB.BARTER else None)

    refundable = 0.0
    if action == Action.CANCEL:
        if record.status == CollabStatusDB.AGREEMENT_REACHED and open_checkout(db, kind.value, record.id) is not None:
            raise InvalidTransitionError("The brand is completing payment for this collaboration; try again later")
        refundable = amount_paid(record)

    new_status = apply_transition(
        db, kind, record, party, action,
        actor_id=user.id,
        amount=amount,
        daily_rate=daily_rate,
        reason=reason,
        expected_version=expected_version,
    )

    if action == Action.ACCEPT and kind in AD_KINDS and record.payment_plan == PaymentPlanDB.EMI:
        record.emi_schedule = pricing.build_emi_schedule(record.final_amount, record.start_date, record.end_date)
        record.next_payment_due_date = datetime.fromisoformat(record.emi_schedule[0]["due_date"])

    if action == Action.CANCEL:
        penalty = float(settings.get("cancellation_penalty_amount", 0) or 0)
        seller = db.query(User).filter(User.id == record.seller_id).first()
        if seller and penalty > 0:
            seller.pending_penalty = (seller.pending_penalty or 0) + penalty
        if refundable > 0:
            open_refund(db, kind, record, refundable, "The seller cancelled after payment.")

    counterparty = record.seller_id if party == Party.BUYER else record.brand_id
    notification_type = NotificationType.APPLICATION_UPDATE if kind == CollabKind.CAMPAIGN else NotificationType.COLLAB_UPDATE
    if new_status == CollabStatusDB.WORK_SUBMITTED:
        notification_type = NotificationType.WORK_SUBMITTED
    elif new_status == CollabStatusDB.COMPLETED:
        notification_type = NotificationType.COLLAB_COMPLETED

    NotificationService(db).notify_status_change(
        counterparty, record.title, status_label(new_status), record.id, VIEW_BY_KIND[kind], type=notification_type,
    )

    commit_or_conflict(db)
    db.refresh(record)
    return record
