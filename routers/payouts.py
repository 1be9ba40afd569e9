# Payouts Router for Collabzz
# Final payouts to sellers, daily payouts on running ad bookings and brand refunds

import logging
from datetime import datetime

import httpx
from fastapi import APIRouter, HTTPException, Depends, Query, status
from sqlalchemy.orm import Session
from typing import Optional

from config import app_config
from database.config import get_db
from database.models import User, KycStatus
from database.marketplace_models import (
    PayoutRequest, DailyPayoutRequest, RefundRequest,
    CollabStatusDB, CollabPaymentStatusDB, RequestStatusDB,
)
from schemas.marketplace import (
    PayoutRequestCreate, DailyPayoutCreate, RefundRequestCreate, RequestStatusUpdate, RequestStatus,
)
from auth.roles import StaffPermission, UserType as UserTypeRole, SELLER_TYPES
from auth.decorators import require_user_type, require_staff
from core import pricing
from core.cashfree_service import CashfreeConfig
from core.errors import (
    InvalidTransitionError, KycRequiredError, ValidationFailedError, PaymentGatewayError,
)
from core.lifecycle import (
    CollabKind, Party, Action, AD_KINDS, PAID_STATES, SETTLED_REQUEST_STATES,
    apply_transition, check_request_transition, commit_or_conflict,
)
from services.collaboration_service import get_record_or_404
from services.notification_service import NotificationService, NotificationType
from services.settings_service import get_settings

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/payouts", tags=["Payouts"])


def _payout_to_response(p: PayoutRequest) -> dict:
    return {
        "id": p.id,
        "type": "final",
        "user_id": p.user_id,
        "user_name": p.user_name,
        "collaboration_kind": p.collaboration_kind,
        "collaboration_id": p.collaboration_id,
        "collab_id": p.collab_id,
        "collaboration_title": p.collaboration_title,
        "final_amount": p.final_amount,
        "commission": p.commission,
        "gst_on_commission": p.gst_on_commission,
        "daily_payouts_deducted": p.daily_payouts_deducted,
        "penalty_deducted": p.penalty_deducted,
        "payout_amount": p.payout_amount,
        "bank_details": p.bank_details,
        "upi_id": p.upi_id,
        "selfie_url": p.selfie_url,
        "status": p.status.value if p.status else None,
        "admin_note": p.admin_note,
        "transfer_reference": p.transfer_reference,
        "processed_at": p.processed_at,
        "created_at": p.created_at,
    }


def _daily_to_response(d: DailyPayoutRequest) -> dict:
    return {
        "id": d.id,
        "type": "daily",
        "user_id": d.user_id,
        "user_name": d.user_name,
        "collaboration_kind": d.collaboration_kind,
        "collaboration_id": d.collaboration_id,
        "collab_id": d.collab_id,
        "earnings": d.earnings,
        "fee": d.fee,
        "gst": d.gst,
        "net_amount": d.net_amount,
        "video_url": d.video_url,
        "status": d.status.value if d.status else None,
        "admin_note": d.admin_note,
        "processed_at": d.processed_at,
        "created_at": d.created_at,
    }


def _refund_to_response(r: RefundRequest) -> dict:
    return {
        "id": r.id,
        "type": "refund",
        "brand_id": r.brand_id,
        "brand_name": r.brand_name,
        "collaboration_kind": r.collaboration_kind,
        "collaboration_id": r.collaboration_id,
        "collab_id": r.collab_id,
        "amount": r.amount,
        "pan_number": r.pan_number,
        "order_id": r.order_id,
        "bank_details": r.bank_details,
        "description": r.description,
        "status": r.status.value if r.status else None,
        "admin_note": r.admin_note,
        "processed_at": r.processed_at,
        "created_at": r.created_at,
    }


REQUEST_TYPES = {
    "final": (PayoutRequest, _payout_to_response),
    "daily": (DailyPayoutRequest, _daily_to_response),
    "refund": (RefundRequest, _refund_to_response),
}


# ============================================================================
# SELLER PAYOUTS
# ============================================================================

@router.post("/final", status_code=status.HTTP_201_CREATED)
async def request_final_payout(
    payout_data: PayoutRequestCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_user_type(*SELLER_TYPES))
):
    """
    Request the payout for a completed, paid collaboration.

    The pending penalty is deducted and cleared, and the collaboration moves
    to payout_requested, all in one commit.
    """
    if current_user.kyc_status != KycStatus.APPROVED:
        raise KycRequiredError("Complete KYC verification before requesting a payout")

    kind = payout_data.collaboration_kind
    record = get_record_or_404(db, kind, payout_data.collaboration_id)
    if record.seller_id != current_user.id:
        raise HTTPException(status_code=403, detail="Access denied")

    if record.status != CollabStatusDB.COMPLETED:
        raise InvalidTransitionError("Payouts can only be requested for completed collaborations")
    if record.payment_status == CollabPaymentStatusDB.PAYOUT_REQUESTED:
        raise InvalidTransitionError("A payout has already been requested for this collaboration")
    if record.payment_status != CollabPaymentStatusDB.PAID:
        raise InvalidTransitionError("This collaboration is not eligible for a payout")

    bank_details = payout_data.bank_details.model_dump() if payout_data.bank_details else current_user.saved_bank_details
    upi_id = payout_data.upi_id or current_user.saved_upi_id
    if not bank_details and not upi_id:
        raise ValidationFailedError("Bank details or a UPI id are required")

    settings = get_settings(db)
    if settings.get("payout_settings", {}).get("require_selfie_for_payout") and not payout_data.selfie_url:
        raise ValidationFailedError("A selfie is required to request a payout")

    breakdown = pricing.payout_breakdown(
        record.final_amount or 0, record.daily_payouts_received or 0, current_user.pending_penalty or 0, settings,
    )

    payout = PayoutRequest(
        user_id=current_user.id,
        user_name=current_user.name,
        collaboration_kind=kind.value,
        collaboration_id=record.id,
        collab_id=record.collab_id,
        collaboration_title=record.title,
        bank_details=bank_details,
        upi_id=upi_id,
        selfie_url=payout_data.selfie_url,
        status=RequestStatusDB.PENDING,
        **breakdown,
    )
    db.add(payout)

    current_user.pending_penalty = 0.0
    record.payment_status = CollabPaymentStatusDB.PAYOUT_REQUESTED
    if payout_data.save_details:
        if payout_data.bank_details:
            current_user.saved_bank_details = bank_details
        if payout_data.upi_id:
            current_user.saved_upi_id = payout_data.upi_id

    commit_or_conflict(db)
    db.refresh(payout)
    logger.info(f"Payout requested by {current_user.id} for {record.collab_id}: {payout.payout_amount}")
    return _payout_to_response(payout)


@router.post("/daily", status_code=status.HTTP_201_CREATED)
async def request_daily_payout(
    payout_data: DailyPayoutCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_user_type(UserTypeRole.LIVETV, UserTypeRole.BANNER_AGENCY))
):
    """Claim one day's earnings on a running ad booking."""
    kind = payout_data.collaboration_kind
    if kind not in AD_KINDS:
        raise ValidationFailedError("Daily payouts are only available for ad bookings")

    record = get_record_or_404(db, kind, payout_data.collaboration_id)
    if record.seller_id != current_user.id:
        raise HTTPException(status_code=403, detail="Access denied")
    if record.status != CollabStatusDB.IN_PROGRESS or record.payment_status not in PAID_STATES:
        raise InvalidTransitionError("Daily payouts are only available while a paid booking is running")

    settings = get_settings(db)
    if settings.get("payout_settings", {}).get("require_live_video_for_daily_payout") and not payout_data.video_url:
        raise ValidationFailedError("A live video proof is required for daily payouts")

    start_of_day = datetime.utcnow().replace(hour=0, minute=0, second=0, microsecond=0)
    already_today = db.query(DailyPayoutRequest).filter(
        DailyPayoutRequest.collaboration_id == record.id,
        DailyPayoutRequest.created_at >= start_of_day,
    ).first()
    if already_today:
        raise HTTPException(status_code=400, detail="A daily payout was already requested today for this booking")

    days = pricing.duration_days(record.start_date, record.end_date)
    breakdown = pricing.daily_payout_breakdown(record.final_amount or 0, days, settings)
    if (record.daily_payouts_received or 0) + breakdown["earnings"] > (record.final_amount or 0) + 0.01:
        raise ValidationFailedError("All earnings for this booking have already been paid out")

    daily = DailyPayoutRequest(
        user_id=current_user.id,
        user_name=current_user.name,
        collaboration_kind=kind.value,
        collaboration_id=record.id,
        collab_id=record.collab_id,
        video_url=payout_data.video_url,
        status=RequestStatusDB.PENDING,
        **breakdown,
    )
    db.add(daily)
    db.commit()
    db.refresh(daily)
    return _daily_to_response(daily)


@router.get("/mine")
async def list_my_payouts(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_user_type(*SELLER_TYPES))
):
    finals = db.query(PayoutRequest).filter(PayoutRequest.user_id == current_user.id).all()
    dailies = db.query(DailyPayoutRequest).filter(DailyPayoutRequest.user_id == current_user.id).all()
    items = [_payout_to_response(p) for p in finals] + [_daily_to_response(d) for d in dailies]
    items.sort(key=lambda i: i["created_at"] or datetime.min, reverse=True)
    return {"payouts": items}


# ============================================================================
# BRAND REFUNDS
# ============================================================================

@router.post("/refunds", status_code=status.HTTP_201_CREATED)
async def request_refund(
    refund_data: RefundRequestCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_user_type(UserTypeRole.BRAND))
):
    """
    Ask for a refund after a dispute was resolved in the brand's favour.
    Moves the collaboration to refund_pending_admin_review.
    """
    kind = refund_data.collaboration_kind
    record = get_record_or_404(db, kind, refund_data.collaboration_id)
    if record.brand_id != current_user.id:
        raise HTTPException(status_code=403, detail="Access denied")

    pending = db.query(RefundRequest).filter(
        RefundRequest.collaboration_id == record.id,
        RefundRequest.status.in_([RequestStatusDB.PENDING, RequestStatusDB.PROCESSING, RequestStatusDB.ON_HOLD]),
    ).first()
    if pending:
        raise HTTPException(status_code=400, detail="A refund request is already pending for this collaboration")

    if record.status == CollabStatusDB.BRAND_DECISION_PENDING:
        apply_transition(db, kind, record, Party.BUYER, Action.REQUEST_REFUND, actor_id=current_user.id)
    elif record.status != CollabStatusDB.REFUND_PENDING_ADMIN_REVIEW:
        raise InvalidTransitionError("Refunds can only be requested after a dispute decision")

    refund = RefundRequest(
        brand_id=current_user.id,
        brand_name=current_user.company_name or current_user.name,
        collaboration_kind=kind.value,
        collaboration_id=record.id,
        collab_id=record.collab_id,
        amount=record.final_amount or 0,
        pan_number=refund_data.pan_number.upper(),
        bank_details=refund_data.bank_details.model_dump() if refund_data.bank_details else None,
        description=refund_data.description,
        status=RequestStatusDB.PENDING,
    )
    db.add(refund)
    commit_or_conflict(db)
    db.refresh(refund)
    return _refund_to_response(refund)


@router.get("/refunds/mine")
async def list_my_refunds(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_user_type(UserTypeRole.BRAND))
):
    refunds = db.query(RefundRequest).filter(
        RefundRequest.brand_id == current_user.id
    ).order_by(RefundRequest.created_at.desc()).all()
    return {"refunds": [_refund_to_response(r) for r in refunds]}


# ============================================================================
# STAFF ENDPOINTS
# ============================================================================

@router.get("/admin/requests", response_model=dict)
async def list_payout_requests(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff(StaffPermission.FINANCIAL)),
    type: str = Query("final", pattern="^(final|daily|refund)$"),
    status_filter: Optional[RequestStatus] = Query(None, alias="status"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
):
    model, to_response = REQUEST_TYPES[type]
    query = db.query(model)
    if status_filter:
        query = query.filter(model.status == RequestStatusDB(status_filter.value))

    total = query.count()
    items = query.order_by(model.created_at.desc()).offset((page - 1) * limit).limit(limit).all()

    return {
        "requests": [to_response(i) for i in items],
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "total_pages": (total + limit - 1) // limit
        }
    }


async def _initiate_transfer(payout: PayoutRequest) -> Optional[str]:
    """Send the money through the gateway payout API. Returns its reference."""
    if not app_config.CASHFREE_PAYOUT_CLIENT_ID:
        return None

    bank = payout.bank_details or {}
    beneficiary = {"beneficiary_id": payout.user_id, "beneficiary_name": bank.get("account_holder_name") or payout.user_name}
    if payout.upi_id:
        beneficiary["beneficiary_instrument_details"] = {"vpa": payout.upi_id}
    else:
        beneficiary["beneficiary_instrument_details"] = {
            "bank_account_number": bank.get("account_number"),
            "bank_ifsc": bank.get("ifsc_code"),
        }

    try:
        async with httpx.AsyncClient() as client:
            response = await client.post(
                f"{CashfreeConfig.payout_base_url()}/transfers",
                headers={
                    "x-client-id": app_config.CASHFREE_PAYOUT_CLIENT_ID,
                    "x-client-secret": app_config.CASHFREE_PAYOUT_SECRET,
                    "x-api-version": app_config.CASHFREE_API_VERSION,
                    "Content-Type": "application/json"
                },
                json={
                    "transfer_id": f"payout_{payout.id}",
                    "transfer_amount": payout.payout_amount,
                    "transfer_currency": app_config.CURRENCY,
                    "beneficiary_details": beneficiary,
                },
                timeout=30.0
            )
            response.raise_for_status()
            data = response.json()
    except httpx.HTTPError as e:
        logger.error(f"Payout transfer failed for {payout.id}: {e}")
        raise PaymentGatewayError(f"Payout transfer failed: {str(e)}")

    return data.get("cf_transfer_id") or data.get("transfer_id")


@router.post("/admin/final/{payout_id}/process")
async def process_final_payout(
    payout_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff(StaffPermission.FINANCIAL))
):
    """Transfer the payout and close out the collaboration's money flow."""
    payout = db.query(PayoutRequest).filter(PayoutRequest.id == payout_id).first()
    if not payout:
        raise HTTPException(status_code=404, detail="Payout request not found")
    if payout.status in SETTLED_REQUEST_STATES:
        return {"success": True, "message": "Already processed", "payout": _payout_to_response(payout)}
    check_request_transition(payout.status, RequestStatusDB.APPROVED)

    reference = await _initiate_transfer(payout)

    payout.status = RequestStatusDB.APPROVED
    payout.transfer_reference = reference
    payout.processed_by = current_user.id
    payout.processed_at = datetime.utcnow()

    record = get_record_or_404(db, CollabKind(payout.collaboration_kind), payout.collaboration_id)
    record.payment_status = CollabPaymentStatusDB.PAYOUT_COMPLETE

    NotificationService(db).notify_payout_approved(payout.user_id, payout.payout_amount, payout.id)
    commit_or_conflict(db)
    db.refresh(payout)
    return {"success": True, "message": "Payout processed", "payout": _payout_to_response(payout)}


@router.post("/admin/daily/{payout_id}/process")
async def process_daily_payout(
    payout_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff(StaffPermission.FINANCIAL))
):
    daily = db.query(DailyPayoutRequest).filter(DailyPayoutRequest.id == payout_id).first()
    if not daily:
        raise HTTPException(status_code=404, detail="Daily payout request not found")
    if daily.status in SETTLED_REQUEST_STATES:
        return {"success": True, "message": "Already processed", "payout": _daily_to_response(daily)}
    check_request_transition(daily.status, RequestStatusDB.APPROVED)

    record = get_record_or_404(db, CollabKind(daily.collaboration_kind), daily.collaboration_id)
    record.daily_payouts_received = round((record.daily_payouts_received or 0) + daily.earnings, 2)

    daily.status = RequestStatusDB.APPROVED
    daily.processed_by = current_user.id
    daily.processed_at = datetime.utcnow()

    NotificationService(db).notify_payout_approved(daily.user_id, daily.net_amount, daily.id)
    commit_or_conflict(db)
    db.refresh(daily)
    return {"success": True, "message": "Payout processed", "payout": _daily_to_response(daily)}


@router.put("/admin/{request_type}/{request_id}/status")
async def update_request_status(
    request_type: str,
    request_id: str,
    update: RequestStatusUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff(StaffPermission.FINANCIAL))
):
    """
    Move a payout, daily payout or refund request along its status graph.

    Money moves only on the first step into approved/completed: a refund
    marks the collaboration refunded, a final payout closes it and a daily
    payout is credited to the booking. Rejecting a pending final payout
    reopens it and restores the deducted penalty.
    """
    if request_type not in REQUEST_TYPES:
        raise HTTPException(status_code=404, detail="Unknown request type")
    model, to_response = REQUEST_TYPES[request_type]
    item = db.query(model).filter(model.id == request_id).first()
    if not item:
        raise HTTPException(status_code=404, detail="Request not found")

    new_status = RequestStatusDB(update.status.value)
    previous = RequestStatusDB(item.status)
    check_request_transition(previous, new_status)

    item.status = new_status
    item.admin_note = update.admin_note
    item.processed_by = current_user.id
    item.processed_at = datetime.utcnow()

    record = get_record_or_404(db, CollabKind(item.collaboration_kind), item.collaboration_id)
    notifications = NotificationService(db)
    settling = new_status in SETTLED_REQUEST_STATES and previous not in SETTLED_REQUEST_STATES

    if request_type == "refund" and settling:
        # A stray order refund returns only that order, not the collaboration payment
        if item.order_id is None:
            record.payment_status = CollabPaymentStatusDB.REFUNDED
        notifications.create(
            user_id=item.brand_id,
            type=NotificationType.PAYMENT,
            title="Refund Approved",
            body=f"Your refund of ₹{item.amount:,.2f} has been approved.",
            view="payment_history",
            related_id=item.id,
        )

    elif request_type == "final" and new_status == RequestStatusDB.REJECTED:
        record.payment_status = CollabPaymentStatusDB.PAID
        seller = db.query(User).filter(User.id == item.user_id).first()
        if seller and item.penalty_deducted:
            seller.pending_penalty = round((seller.pending_penalty or 0) + item.penalty_deducted, 2)
        notifications.create(
            user_id=item.user_id,
            type=NotificationType.PAYOUT,
            title="Payout Rejected",
            body=update.admin_note or "Your payout request was rejected. Please review your details and try again.",
            view="payment_history",
            related_id=item.id,
        )

    elif request_type == "final" and settling:
        record.payment_status = CollabPaymentStatusDB.PAYOUT_COMPLETE
        notifications.notify_payout_approved(item.user_id, item.payout_amount, item.id)

    elif request_type == "daily" and settling:
        record.daily_payouts_received = round((record.daily_payouts_received or 0) + item.earnings, 2)
        notifications.notify_payout_approved(item.user_id, item.net_amount, item.id)

    commit_or_conflict(db)
    db.refresh(item)
    return to_response(item)
