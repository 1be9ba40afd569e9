# KYC Router for Collabzz
# Identity verification, creator verification badge and instant account checks

import logging
from datetime import datetime

from fastapi import APIRouter, HTTPException, Depends, Query
from sqlalchemy.orm import Session

from database.config import get_db
from database.models import User, KycStatus
from schemas.marketplace import (
    KycSubmit, KycReview, KycDecision, CreatorVerificationSubmit,
    PanVerifyRequest, BankVerifyRequest, UpiVerifyRequest,
)
from auth.roles import StaffPermission, SELLER_TYPES
from auth.decorators import require_user_type, require_staff
from auth.dependencies import get_current_user
from core import identity_service
from core.errors import ValidationFailedError
from services.notification_service import NotificationService, NotificationType
from services.settings_service import get_settings

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/kyc", tags=["KYC"])


def _kyc_to_response(user: User) -> dict:
    return {
        "user_id": user.id,
        "name": user.name,
        "email": user.email,
        "role": user.role.value,
        "kyc_status": user.kyc_status.value if user.kyc_status else KycStatus.NOT_SUBMITTED.value,
        "kyc_details": user.kyc_details,
        "creator_verification_status": (
            user.creator_verification_status.value if user.creator_verification_status else KycStatus.NOT_SUBMITTED.value
        ),
        "creator_verification_details": user.creator_verification_details,
        "is_verified": bool(user.is_verified),
    }


def _get_user_or_404(db: Session, user_id: str) -> User:
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user


# ============================================================================
# KYC
# ============================================================================

@router.get("/status")
async def get_kyc_status(current_user: User = Depends(get_current_user)):
    return _kyc_to_response(current_user)


@router.post("/submit")
async def submit_kyc(
    kyc_data: KycSubmit,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Submit KYC details. Document URLs come from the uploads endpoint."""
    if current_user.kyc_status == KycStatus.APPROVED:
        raise HTTPException(status_code=400, detail="KYC is already approved")

    settings = get_settings(db)
    if settings.get("is_kyc_id_proof_required") and not kyc_data.id_proof_url:
        raise ValidationFailedError("An ID proof document is required")
    if settings.get("is_kyc_selfie_required") and not kyc_data.selfie_url:
        raise ValidationFailedError("A selfie is required")

    details = kyc_data.model_dump()
    details["submitted_at"] = datetime.utcnow().isoformat()
    current_user.kyc_details = details
    current_user.kyc_status = KycStatus.PENDING
    db.commit()
    db.refresh(current_user)
    return _kyc_to_response(current_user)


@router.post("/digilocker")
async def verify_with_digilocker(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Sandbox DigiLocker flow: approves immediately with mock details."""
    if not get_settings(db).get("is_digilocker_kyc_enabled"):
        raise HTTPException(status_code=403, detail="DigiLocker verification is currently disabled")

    details = identity_service.mock_digilocker_details("approved")
    details["verified_at"] = datetime.utcnow().isoformat()
    current_user.kyc_details = details
    current_user.kyc_status = KycStatus.APPROVED
    db.commit()
    db.refresh(current_user)
    logger.info(f"KYC approved via DigiLocker for {current_user.id}")
    return _kyc_to_response(current_user)


@router.get("/admin/pending")
async def list_pending_kyc(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff(StaffPermission.KYC)),
    verification: str = Query("kyc", pattern="^(kyc|creator)$"),
):
    """Users waiting for a KYC or creator verification decision."""
    column = User.kyc_status if verification == "kyc" else User.creator_verification_status
    users = db.query(User).filter(column == KycStatus.PENDING).order_by(User.updated_at.asc()).all()
    return {"users": [_kyc_to_response(u) for u in users]}


@router.put("/admin/{user_id}/review")
async def review_kyc(
    user_id: str,
    review: KycReview,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff(StaffPermission.KYC))
):
    user = _get_user_or_404(db, user_id)
    if user.kyc_status != KycStatus.PENDING:
        raise HTTPException(status_code=400, detail="No KYC submission is waiting for review")
    if review.status == KycDecision.REJECTED and not review.reason:
        raise ValidationFailedError("A reason is required when rejecting KYC")

    user.kyc_status = KycStatus(review.status.value)
    details = dict(user.kyc_details or {})
    details.update({
        "reviewed_by": current_user.id,
        "reviewed_at": datetime.utcnow().isoformat(),
        "rejection_reason": review.reason if review.status == KycDecision.REJECTED else None,
    })
    user.kyc_details = details

    approved = review.status == KycDecision.APPROVED
    NotificationService(db).create(
        user_id=user.id,
        type=NotificationType.KYC,
        title="KYC Approved" if approved else "KYC Rejected",
        body="Your KYC verification is complete." if approved else f"Your KYC was rejected: {review.reason}",
        view="kyc",
    )

    db.commit()
    db.refresh(user)
    return _kyc_to_response(user)


# ============================================================================
# CREATOR VERIFICATION
# ============================================================================

@router.post("/creator-verification")
async def submit_creator_verification(
    verification_data: CreatorVerificationSubmit,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_user_type(*SELLER_TYPES))
):
    """Apply for the verified badge with social links or business documents."""
    if current_user.is_verified:
        raise HTTPException(status_code=400, detail="You are already verified")
    if not verification_data.social_media_links and not verification_data.registration_doc_url:
        raise ValidationFailedError("Provide social media links or a business registration document")

    details = verification_data.model_dump()
    details["submitted_at"] = datetime.utcnow().isoformat()
    current_user.creator_verification_details = details
    current_user.creator_verification_status = KycStatus.PENDING
    db.commit()
    db.refresh(current_user)
    return _kyc_to_response(current_user)


@router.put("/admin/{user_id}/creator-verification")
async def review_creator_verification(
    user_id: str,
    review: KycReview,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff(StaffPermission.KYC))
):
    user = _get_user_or_404(db, user_id)
    if user.creator_verification_status != KycStatus.PENDING:
        raise HTTPException(status_code=400, detail="No verification request is waiting for review")

    approved = review.status == KycDecision.APPROVED
    user.creator_verification_status = KycStatus(review.status.value)
    user.is_verified = approved
    details = dict(user.creator_verification_details or {})
    details.update({"reviewed_by": current_user.id, "rejection_reason": None if approved else review.reason})
    user.creator_verification_details = details

    NotificationService(db).create(
        user_id=user.id,
        type=NotificationType.KYC,
        title="Verification Approved" if approved else "Verification Rejected",
        body="You now have the verified badge." if approved else f"Your verification was rejected: {review.reason or 'no reason given'}",
        view="profile",
    )

    db.commit()
    db.refresh(user)
    return _kyc_to_response(user)


# ============================================================================
# INSTANT VERIFICATION (mock)
# ============================================================================

def _require_flag(db: Session, flag: str) -> None:
    if not get_settings(db).get(flag):
        raise HTTPException(status_code=403, detail="Instant verification is currently disabled")


@router.post("/verify/pan")
async def verify_pan(
    request: PanVerifyRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    _require_flag(db, "is_instant_kyc_enabled")
    return identity_service.verify_pan(request.pan_number, current_user.name)


@router.post("/verify/bank")
async def verify_bank_account(
    request: BankVerifyRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    _require_flag(db, "is_payout_instant_verification_enabled")
    return identity_service.verify_bank_account(request.account_number, request.ifsc_code, request.account_holder_name)


@router.post("/verify/upi")
async def verify_upi(
    request: UpiVerifyRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    _require_flag(db, "is_payout_instant_verification_enabled")
    return identity_service.verify_upi(request.upi_id, current_user.name)
