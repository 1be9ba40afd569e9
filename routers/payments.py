# Payments Router for Collabzz
# Hosted checkout orders, verification polling, gateway webhook and history

import logging
import uuid
from datetime import datetime

from fastapi import APIRouter, HTTPException, Depends, Query, Request, status
from sqlalchemy.orm import Session
from sqlalchemy import or_
from typing import Optional, Tuple

from config import app_config
from database.config import get_db
from database.models import User, Transaction, TransactionStatus, TransactionType, MembershipPlan
from database.marketplace_models import CollabStatusDB, CollabPaymentStatusDB, PaymentPlanDB
from schemas.marketplace import CreateOrderRequest
from auth.roles import StaffPermission
from auth.decorators import require_staff
from auth.dependencies import get_current_user
from core import pricing
from core.cashfree_service import CashfreeConfig, CashfreeService, CashfreeWebhookHandler
from core.errors import ValidationFailedError, InvalidTransitionError
from core.lifecycle import CollabKind, MODEL_BY_KIND, AD_KINDS
from services.membership_service import plan_matches_role, resolve_boost_target
from services.payment_processor import (
    COLLAB_PURPOSES, BOOST_PURPOSES, MEMBERSHIP_PURPOSE, PENALTY_PURPOSE, ALL_PURPOSES,
    open_checkout, process_payment_success,
)
from services.settings_service import get_settings

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/payments", tags=["Payments"])

BOOST_FLAGS = {
    "boost_profile": "is_profile_boosting_enabled",
    "boost_campaign": "is_campaign_boosting_enabled",
    "boost_banner": "is_banner_ads_enabled",
}


# ============================================================================
# AMOUNT RESOLUTION
# ============================================================================

def _refuse_second_checkout(db: Session, purpose: str, record) -> None:
    if open_checkout(db, purpose, record.id) is not None:
        raise InvalidTransitionError("A payment for this collaboration is already in progress")


def _collaboration_amount(db: Session, user: User, purpose: str, related_id: str, emi_id: Optional[str]) -> Tuple[float, str, str, Optional[str]]:
    kind = CollabKind(purpose)
    model = MODEL_BY_KIND[kind]
    record = db.query(model).filter(model.id == related_id).first()
    if not record:
        raise HTTPException(status_code=404, detail="Collaboration not found")
    if record.brand_id != user.id:
        raise HTTPException(status_code=403, detail="Only the brand can pay for this collaboration")

    is_emi = kind in AD_KINDS and record.payment_plan == PaymentPlanDB.EMI and record.emi_schedule
    if is_emi:
        payable = record.status == CollabStatusDB.AGREEMENT_REACHED or (
            record.status == CollabStatusDB.IN_PROGRESS and record.payment_status == CollabPaymentStatusDB.PARTIAL_PAID
        )
        if not payable:
            raise InvalidTransitionError("This booking has no instalment due")
        _refuse_second_checkout(db, purpose, record)

        unpaid = [emi for emi in record.emi_schedule if emi["status"] != "paid"]
        emi = next((e for e in unpaid if e["id"] == emi_id), None) if emi_id else (min(unpaid, key=lambda e: e["due_date"]) if unpaid else None)
        if emi is None:
            raise ValidationFailedError("EMI instalment not found or already paid")
        return float(emi["amount"]), f"{emi['description']} for {record.title}", record.collab_id, emi["id"]

    if record.status != CollabStatusDB.AGREEMENT_REACHED:
        raise InvalidTransitionError(f"Payment is only possible once an agreement is reached (status is '{record.status.value}')")
    _refuse_second_checkout(db, purpose, record)
    return float(record.final_amount or 0), f"Payment for {record.title}", record.collab_id, None


def _resolve_order(db: Session, user: User, order: CreateOrderRequest) -> Tuple[float, str, Optional[str], Optional[str]]:
    """
    Work out what the user owes for a purpose. The amount is always computed
    here; clients never send it.

    Returns (amount, description, collab_id, emi_id).
    """
    settings = get_settings(db)
    purpose = order.purpose

    if purpose not in ALL_PURPOSES:
        raise ValidationFailedError(f"Unknown payment purpose '{purpose}'")

    if purpose in COLLAB_PURPOSES:
        if not order.related_id:
            raise ValidationFailedError("related_id is required for collaboration payments")
        return _collaboration_amount(db, user, purpose, order.related_id, order.emi_id)

    if purpose == MEMBERSHIP_PURPOSE:
        try:
            plan = MembershipPlan(order.related_id)
        except ValueError:
            raise ValidationFailedError(f"Unknown membership plan '{order.related_id}'")
        if plan == MembershipPlan.FREE or not plan_matches_role(plan, user.role):
            raise ValidationFailedError(f"Plan '{plan.value}' cannot be purchased by this account")
        if not settings.get("is_pro_membership_enabled"):
            raise HTTPException(status_code=403, detail="Memberships are currently disabled")
        return pricing.membership_price(plan, settings), f"{plan.value} membership", None, None

    if purpose in BOOST_PURPOSES:
        if not settings.get(BOOST_FLAGS[purpose]):
            raise HTTPException(status_code=403, detail="Boosting is currently disabled")
        target = resolve_boost_target(db, BOOST_PURPOSES[purpose], order.related_id) if order.related_id else None
        if target is None:
            raise HTTPException(status_code=404, detail="Boost target not found")
        owner_id = getattr(target, "user_id", None) or getattr(target, "brand_id", None) or getattr(target, "agency_id", None)
        if owner_id != user.id:
            raise HTTPException(status_code=403, detail="You can only boost your own listings")
        boost_type = BOOST_PURPOSES[purpose].value
        return pricing.boost_price(boost_type, settings), f"{boost_type} boost", None, None

    # PENALTY_PURPOSE
    if not user.pending_penalty or user.pending_penalty <= 0:
        raise ValidationFailedError("There is no pending penalty to pay")
    return float(user.pending_penalty), "Cancellation penalty", None, None


def _finalize_if_paid(db: Session, tx: Transaction, gateway_order: dict) -> dict:
    """Run success processing when the gateway reports the order as PAID."""
    order_status = gateway_order.get("order_status")
    if order_status != "PAID":
        return {"success": False, "order_id": tx.order_id, "order_status": order_status}

    return process_payment_success(
        db,
        order_id=tx.order_id,
        user_id=tx.user_id,
        purpose=tx.purpose,
        related_id=tx.related_id,
        amount=tx.amount,
        description=tx.description,
        collab_id=tx.collab_id,
        coins_used=tx.coins_used or 0,
        emi_id=tx.emi_id,
        gateway_payload=gateway_order,
    )


# ============================================================================
# CHECKOUT
# ============================================================================

@router.post("/create-order")
async def create_order(
    order: CreateOrderRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """
    Create a hosted checkout order.

    Coins are applied first; when they cover the whole amount the payment
    completes immediately without touching the gateway.
    """
    amount, description, collab_id, emi_id = _resolve_order(db, current_user, order)

    if order.coins_used > (current_user.coins or 0):
        raise ValidationFailedError("You don't have enough coins")
    coins_used = min(order.coins_used, int(amount))
    amount_due = round(max(0.0, amount - coins_used), 2)
    timestamp = int(datetime.utcnow().timestamp() * 1000)
    suffix = uuid.uuid4().hex[:6]

    if amount_due == 0:
        order_id = f"COIN_{timestamp}_{suffix}"
        process_payment_success(
            db,
            order_id=order_id,
            user_id=current_user.id,
            purpose=order.purpose,
            related_id=order.related_id,
            amount=0.0,
            description=description,
            collab_id=collab_id,
            coins_used=coins_used,
            emi_id=emi_id,
        )
        return {
            "order_id": order_id,
            "payment_session_id": "COIN-ONLY",
            "order_status": "PAID",
            "amount": 0.0,
            "coins_used": coins_used,
        }

    order_id = f"order_{timestamp}_{suffix}"
    tags = {
        "collabType": order.purpose,
        "relatedId": order.related_id or "",
        "userId": current_user.id,
        "description": description,
        "collabId": collab_id or "",
        "coinsUsed": coins_used,
        "emiId": emi_id or "",
    }

    if CashfreeConfig.is_configured():
        return_url = order.return_url or app_config.PAYMENT_RETURN_URL.format(order_id=order_id)
        gateway_order = CashfreeService().create_order(
            order_id=order_id,
            amount=amount_due,
            customer_id=current_user.id,
            customer_phone=order.phone or current_user.mobile_number or "9999999999",
            return_url=return_url,
            tags=tags,
        )
        payment_session_id = gateway_order.get("payment_session_id")
    else:
        logger.warning("Cashfree credentials missing, returning a mock payment session")
        payment_session_id = "mock_session_id"

    db.add(Transaction(
        order_id=order_id,
        user_id=current_user.id,
        type=TransactionType.PAYMENT,
        status=TransactionStatus.PENDING,
        purpose=order.purpose,
        related_id=order.related_id,
        collab_id=collab_id,
        emi_id=emi_id,
        description=description,
        amount=amount_due,
        coins_used=coins_used,
        currency=app_config.CURRENCY,
        payment_session_id=payment_session_id,
        metadata_json=tags,
    ))
    db.commit()

    return {
        "order_id": order_id,
        "payment_session_id": payment_session_id,
        "order_status": "ACTIVE",
        "amount": amount_due,
        "coins_used": coins_used,
        "environment": CashfreeConfig.environment(),
    }


@router.get("/verify-order/{order_id}")
async def verify_order(
    order_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Polled by the client after checkout returns."""
    tx = db.query(Transaction).filter(Transaction.order_id == order_id).first()
    if not tx:
        raise HTTPException(status_code=404, detail="Order not found")
    if tx.user_id != current_user.id and not current_user.is_staff:
        raise HTTPException(status_code=403, detail="Access denied")

    if tx.status == TransactionStatus.COMPLETED:
        return {"success": True, "message": "Already processed", "order_id": order_id, "order_status": "PAID"}
    if not CashfreeConfig.is_configured():
        return {"success": False, "order_id": order_id, "order_status": "ACTIVE"}

    result = _finalize_if_paid(db, tx, CashfreeService().get_order(order_id))
    result.setdefault("order_status", "PAID")
    return result


@router.post("/webhook")
async def payment_webhook(request: Request, db: Session = Depends(get_db)):
    """
    Gateway webhook. The payload is only used to find the order id; the
    order is re-fetched from the gateway before anything is applied.
    """
    payload = await request.body()
    timestamp = request.headers.get("x-webhook-timestamp", "")
    signature = request.headers.get("x-webhook-signature", "")

    if not CashfreeConfig.is_configured():
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Payment gateway not configured")
    if not CashfreeWebhookHandler.verify_webhook(payload, timestamp, signature, app_config.CASHFREE_SECRET_KEY):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid signature")

    event = await request.json()
    order_id = CashfreeWebhookHandler.extract_order_id(event)
    if not order_id:
        return {"status": "ignored"}

    tx = db.query(Transaction).filter(Transaction.order_id == order_id).first()
    if not tx:
        logger.warning(f"Webhook for unknown order {order_id}")
        return {"status": "ignored"}

    result = _finalize_if_paid(db, tx, CashfreeService().get_order(order_id))
    return {"status": "ok", "result": result}


# ============================================================================
# HISTORY
# ============================================================================

def _transaction_to_response(tx: Transaction) -> dict:
    return {
        "id": tx.id,
        "order_id": tx.order_id,
        "user_id": tx.user_id,
        "payee_id": tx.payee_id,
        "type": tx.type.value if tx.type else None,
        "status": tx.status.value if tx.status else None,
        "purpose": tx.purpose,
        "related_id": tx.related_id,
        "collab_id": tx.collab_id,
        "description": tx.description,
        "amount": tx.amount,
        "coins_used": tx.coins_used or 0,
        "currency": tx.currency,
        "created_at": tx.created_at,
        "completed_at": tx.completed_at,
    }


@router.get("/history", response_model=dict)
async def payment_history(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
):
    """Payments made or received by the current user."""
    query = db.query(Transaction).filter(
        or_(Transaction.user_id == current_user.id, Transaction.payee_id == current_user.id)
    )
    total = query.count()
    transactions = query.order_by(Transaction.created_at.desc()).offset((page - 1) * limit).limit(limit).all()

    return {
        "transactions": [_transaction_to_response(t) for t in transactions],
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "total_pages": (total + limit - 1) // limit
        }
    }


@router.get("/admin/all", response_model=dict)
async def list_all_transactions(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff(StaffPermission.FINANCIAL)),
    status_filter: Optional[TransactionStatus] = Query(None, alias="status"),
    purpose: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=200),
):
    query = db.query(Transaction)
    if status_filter:
        query = query.filter(Transaction.status == status_filter)
    if purpose:
        query = query.filter(Transaction.purpose == purpose)

    total = query.count()
    transactions = query.order_by(Transaction.created_at.desc()).offset((page - 1) * limit).limit(limit).all()

    return {
        "transactions": [_transaction_to_response(t) for t in transactions],
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "total_pages": (total + limit - 1) // limit
        }
    }
