# Payment success processing
# Applies the effect of a confirmed gateway (or coin-only) payment exactly once per order id.

import logging
from datetime import datetime, timedelta
from typing import Optional, Tuple

from sqlalchemy.orm import Session

from config import app_config
from core.errors import ValidationFailedError
from core.lifecycle import CollabKind, Party, Action, MODEL_BY_KIND, apply_transition, commit_or_conflict
from database.models import User, Transaction, TransactionStatus, TransactionType, MembershipPlan
from database.marketplace_models import (
    CollabStatusDB, CollabPaymentStatusDB, BoostTypeDB, RefundRequest, RequestStatusDB,
)
from services.membership_service import activate_membership, activate_boost
from services.notification_service import NotificationService, NotificationType

logger = logging.getLogger(__name__)

COLLAB_PURPOSES = {kind.value for kind in CollabKind}
BOOST_PURPOSES = {f"boost_{t.value}": t for t in BoostTypeDB}
MEMBERSHIP_PURPOSE = "membership"
PENALTY_PURPOSE = "penalty_payment"

ALL_PURPOSES = COLLAB_PURPOSES | set(BOOST_PURPOSES) | {MEMBERSHIP_PURPOSE, PENALTY_PURPOSE}


def open_checkout(db: Session, purpose: str, related_id: str, emi_id: Optional[str] = None) -> Optional[Transaction]:
    """A pending order for the same item that the gateway may still complete."""
    cutoff = datetime.utcnow() - timedelta(minutes=app_config.CHECKOUT_ORDER_TTL_MINUTES)
    query = db.query(Transaction).filter(
        Transaction.purpose == purpose,
        Transaction.related_id == related_id,
        Transaction.status == TransactionStatus.PENDING,
        Transaction.created_at >= cutoff,
    )
    if emi_id:
        query = query.filter(Transaction.emi_id == emi_id)
    return query.first()


def is_payable(record, emi_id: Optional[str] = None) -> bool:
    """Whether a payment may move this collaboration forward."""
    if emi_id:
        emi = next((e for e in record.emi_schedule or [] if e["id"] == emi_id), None)
        if emi is None or emi["status"] == "paid":
            return False
        return record.status == CollabStatusDB.AGREEMENT_REACHED or (
            record.status == CollabStatusDB.IN_PROGRESS and record.payment_status == CollabPaymentStatusDB.PARTIAL_PAID
        )
    return record.status == CollabStatusDB.AGREEMENT_REACHED and record.payment_status is None


def amount_paid(record) -> float:
    if record.payment_status == CollabPaymentStatusDB.PARTIAL_PAID:
        return round(sum(float(e["amount"]) for e in record.emi_schedule or [] if e["status"] == "paid"), 2)
    if record.payment_status == CollabPaymentStatusDB.PAID:
        return float(record.final_amount or 0)
    return 0.0


def open_refund(db: Session, kind: CollabKind, record, amount: float, description: str, order_id: Optional[str] = None) -> RefundRequest:
    """
    Queue money for return to the brand without a brand request.

    order_id is set when a single stray gateway order is being returned; such
    refunds leave the collaboration's own payment status alone on approval.
    """
    refund = RefundRequest(
        brand_id=record.brand_id,
        brand_name=record.brand_name,
        collaboration_kind=kind.value,
        collaboration_id=record.id,
        collab_id=record.collab_id,
        amount=round(amount, 2),
        description=description,
        order_id=order_id,
        status=RequestStatusDB.PENDING,
    )
    db.add(refund)
    db.flush()
    NotificationService(db).create(
        user_id=record.brand_id,
        type=NotificationType.PAYMENT,
        title="Refund Initiated",
        body=f"₹{amount:,.2f} for '{record.title}' will be returned to you. {description}",
        view="payment_history",
        related_id=refund.id,
    )
    logger.info(f"Refund {refund.id} opened for {record.collab_id}: {amount}")
    return refund


def _mark_emi_paid(record, emi_id: str, order_id: str) -> None:
    schedule = [dict(emi) for emi in (record.emi_schedule or [])]
    for emi in schedule:
        if emi["id"] == emi_id:
            emi["status"] = "paid"
            emi["paid_at"] = datetime.utcnow().isoformat()
            emi["order_id"] = order_id

    # Reassign so the JSON column is flagged dirty
    record.emi_schedule = schedule
    unpaid = [emi for emi in schedule if emi["status"] != "paid"]
    if unpaid:
        record.payment_status = CollabPaymentStatusDB.PARTIAL_PAID
        record.next_payment_due_date = datetime.fromisoformat(min(emi["due_date"] for emi in unpaid))
    else:
        record.payment_status = CollabPaymentStatusDB.PAID
        record.next_payment_due_date = None


def _apply_collaboration_payment(db: Session, kind: CollabKind, related_id: str, emi_id: Optional[str], order_id: str) -> Tuple[object, bool]:
    """Returns the record and whether the payment was applied to it."""
    model = MODEL_BY_KIND[kind]
    record = db.query(model).filter(model.id == related_id).first()
    if record is None:
        raise ValidationFailedError("Collaboration for this payment was not found")
    if emi_id and not any(e["id"] == emi_id for e in record.emi_schedule or []):
        raise ValidationFailedError("EMI instalment not found on this booking")

    if not is_payable(record, emi_id):
        return record, False

    if record.status == CollabStatusDB.AGREEMENT_REACHED:
        apply_transition(db, kind, record, Party.SYSTEM, Action.PAY, amount=record.final_amount)

    if emi_id:
        _mark_emi_paid(record, emi_id, order_id)
    else:
        record.payment_status = CollabPaymentStatusDB.PAID
    return record, True


def process_payment_success(
    db: Session,
    order_id: str,
    user_id: str,
    purpose: str,
    related_id: Optional[str] = None,
    amount: float = 0.0,
    description: Optional[str] = None,
    collab_id: Optional[str] = None,
    coins_used: int = 0,
    emi_id: Optional[str] = None,
    gateway_payload: Optional[dict] = None,
) -> dict:
    """
    Record a successful payment and apply its effect.

    Idempotent on order_id: a completed transaction for the order means the
    payment was already processed. Everything commits together.
    """
    tx = db.query(Transaction).filter(Transaction.order_id == order_id).first()
    if tx is not None and tx.status == TransactionStatus.COMPLETED:
        return {"success": True, "message": "Already processed", "order_id": order_id}

    if purpose not in ALL_PURPOSES:
        raise ValidationFailedError(f"Unknown payment purpose '{purpose}'")

    payer = db.query(User).filter(User.id == user_id).first()
    if payer is None:
        raise ValidationFailedError("Paying user not found")

    if tx is None:
        tx = Transaction(order_id=order_id, user_id=user_id, purpose=purpose)
        db.add(tx)

    tx.type = TransactionType.PAYMENT
    tx.status = TransactionStatus.COMPLETED
    tx.purpose = purpose
    tx.related_id = related_id
    tx.collab_id = collab_id
    tx.emi_id = emi_id
    tx.amount = amount
    tx.coins_used = coins_used
    tx.description = description or "Payment"
    tx.completed_at = datetime.utcnow()
    if gateway_payload is not None:
        tx.metadata_json = gateway_payload

    payee_id = None
    if purpose in COLLAB_PURPOSES:
        kind = CollabKind(purpose)
        record, applied = _apply_collaboration_payment(db, kind, related_id, emi_id, order_id)
        if not applied:
            # Money arrived for a record that can no longer take it; keep the
            # coins with the payer and return the gateway amount.
            refund_id = None
            if amount > 0:
                refund = open_refund(
                    db, kind, record, amount,
                    f"Payment {order_id} arrived after the collaboration moved to '{record.status.value}'.",
                    order_id=order_id,
                )
                refund_id = refund.id
            commit_or_conflict(db)
            logger.warning(f"Payment {order_id} could not be applied to {record.collab_id}; refund {refund_id}")
            return {"success": True, "message": "Refund opened", "order_id": order_id, "refund_id": refund_id}
        payee_id = record.seller_id
    elif purpose == MEMBERSHIP_PURPOSE:
        activate_membership(payer, MembershipPlan(related_id))
    elif purpose in BOOST_PURPOSES:
        activate_boost(db, payer.id, BOOST_PURPOSES[purpose], related_id)
    elif purpose == PENALTY_PURPOSE:
        payer.pending_penalty = 0.0

    if coins_used:
        payer.coins = max(0, (payer.coins or 0) - int(coins_used))
    tx.payee_id = payee_id

    notifications = NotificationService(db)
    notifications.notify_payment_success(payer.id, amount, tx.description, related_id)
    if payee_id:
        notifications.notify_new_order(payee_id, tx.description, related_id)

    commit_or_conflict(db)
    logger.info(f"Payment {order_id} processed for {purpose} ({related_id})")
    return {"success": True, "message": "Payment processed", "order_id": order_id}
