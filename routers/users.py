# Users Router for Collabzz
# Profiles, follows, referrals, payout details and staff user management

from fastapi import APIRouter, HTTPException, Depends, Query, UploadFile, File, status
from sqlalchemy.orm import Session
from sqlalchemy import or_
from typing import Optional

from database.config import get_db
from database.models import User, UserRole
from database.community_models import Follow
from database.marketplace_models import InfluencerProfile
from schemas.community import (
    ProfileUpdate, FcmTokenUpdate, NotificationPreferencesUpdate, PayoutDetailsUpdate,
    ReferralApply, UserBlockUpdate, StaffPermissionsUpdate, MembershipUpdate, PenaltyUpdate,
)
from auth.roles import StaffPermission, UserType as UserTypeRole
from auth.decorators import require_staff
from auth.dependencies import get_current_user
from core import minio_service
from services.membership_service import activate_membership, usage_summary, plan_matches_role
from services.referral_service import generate_referral_code, apply_referral

router = APIRouter(prefix="/users", tags=["Users"])


def user_to_response(user: User, private: bool = False) -> dict:
    data = {
        "id": user.id,
        "name": user.name,
        "role": user.role.value,
        "company_name": user.company_name,
        "avatar_url": user.avatar_url,
        "location": user.location,
        "bio": user.bio,
        "is_verified": bool(user.is_verified),
        "created_at": user.created_at,
    }
    if private:
        data.update({
            "email": user.email,
            "mobile_number": user.mobile_number,
            "is_blocked": bool(user.is_blocked),
            "staff_permissions": user.staff_permissions or [],
            "membership": usage_summary(user),
            "kyc_status": user.kyc_status.value if user.kyc_status else None,
            "creator_verification_status": user.creator_verification_status.value if user.creator_verification_status else None,
            "coins": user.coins or 0,
            "pending_penalty": user.pending_penalty or 0.0,
            "referral_code": user.referral_code,
            "saved_bank_details": user.saved_bank_details,
            "saved_upi_id": user.saved_upi_id,
            "notification_preferences": user.notification_preferences or {},
        })
    return data


def _get_user_or_404(db: Session, user_id: str) -> User:
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user


# ============================================================================
# OWN PROFILE
# ============================================================================

@router.get("/me")
async def get_my_profile(current_user: User = Depends(get_current_user)):
    return user_to_response(current_user, private=True)


@router.put("/me")
async def update_my_profile(
    profile_data: ProfileUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Update profile fields. The mobile number must stay unique."""
    update_data = profile_data.model_dump(exclude_unset=True)

    mobile = update_data.get("mobile_number")
    if mobile and mobile != current_user.mobile_number:
        taken = db.query(User).filter(User.mobile_number == mobile, User.id != current_user.id).first()
        if taken:
            raise HTTPException(status_code=400, detail="Mobile number already registered")

    for field, value in update_data.items():
        setattr(current_user, field, value)

    # Keep the discovery card in sync
    profile = db.query(InfluencerProfile).filter(InfluencerProfile.user_id == current_user.id).first()
    if profile:
        if "name" in update_data:
            profile.name = current_user.name
        if "avatar_url" in update_data:
            profile.avatar_url = current_user.avatar_url

    db.commit()
    db.refresh(current_user)
    return user_to_response(current_user, private=True)


@router.post("/me/avatar")
async def upload_avatar(
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    content_type = file.content_type or "application/octet-stream"
    if not content_type.startswith("image/"):
        raise HTTPException(status_code=400, detail="Avatar must be an image")

    file_bytes = await file.read()
    if len(file_bytes) > minio_service.MAX_UPLOAD_BYTES:
        raise HTTPException(status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE, detail="File is too large")

    result = minio_service.upload_file(
        file_bytes=file_bytes,
        original_filename=file.filename or "avatar",
        content_type=content_type,
        folder="avatars",
        owner_id=current_user.id,
    )
    current_user.avatar_url = result["url"]
    profile = db.query(InfluencerProfile).filter(InfluencerProfile.user_id == current_user.id).first()
    if profile:
        profile.avatar_url = result["url"]
    db.commit()
    return {"avatar_url": result["url"]}


@router.put("/me/fcm-token")
async def save_fcm_token(
    token_data: FcmTokenUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    current_user.fcm_token = token_data.token
    db.commit()
    return {"message": "Push token saved"}


@router.put("/me/notification-preferences")
async def update_notification_preferences(
    preferences: NotificationPreferencesUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    current_user.notification_preferences = preferences.model_dump()
    db.commit()
    return current_user.notification_preferences


@router.put("/me/payout-details")
async def save_payout_details(
    details: PayoutDetailsUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    if details.bank_details is None and not details.upi_id:
        raise HTTPException(status_code=400, detail="Provide bank details or a UPI id")
    if details.bank_details is not None:
        current_user.saved_bank_details = details.bank_details.model_dump()
    if details.upi_id:
        current_user.saved_upi_id = details.upi_id
    db.commit()
    return {
        "saved_bank_details": current_user.saved_bank_details,
        "saved_upi_id": current_user.saved_upi_id,
    }


# ============================================================================
# REFERRALS
# ============================================================================

@router.post("/me/referral-code")
async def get_referral_code(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    code = generate_referral_code(db, current_user)
    db.commit()
    return {"referral_code": code}


@router.post("/me/referral/apply")
async def redeem_referral_code(
    payload: ReferralApply,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    referral = apply_referral(db, current_user, payload.code)
    db.commit()
    return {
        "message": "Referral applied",
        "coins_earned": referral.referred_coins,
        "coins": current_user.coins,
    }


# ============================================================================
# STAFF USER MANAGEMENT
# ============================================================================

@router.get("/admin/all", response_model=dict)
async def list_users(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff(StaffPermission.USER_MANAGEMENT)),
    search: Optional[str] = Query(None, description="Name, email or mobile"),
    role: Optional[UserTypeRole] = Query(None),
    is_blocked: Optional[bool] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
):
    query = db.query(User)
    if search:
        pattern = f"%{search}%"
        query = query.filter(or_(User.name.ilike(pattern), User.email.ilike(pattern), User.mobile_number.ilike(pattern)))
    if role:
        query = query.filter(User.role == UserRole(role.value))
    if is_blocked is not None:
        query = query.filter(User.is_blocked == is_blocked)

    total = query.count()
    users = query.order_by(User.created_at.desc()).offset((page - 1) * limit).limit(limit).all()

    return {
        "users": [user_to_response(u, private=True) for u in users],
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "total_pages": (total + limit - 1) // limit
        }
    }


@router.put("/admin/{user_id}/block")
async def set_user_blocked(
    user_id: str,
    payload: UserBlockUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff(StaffPermission.USER_MANAGEMENT)),
):
    user = _get_user_or_404(db, user_id)
    if user.id == current_user.id:
        raise HTTPException(status_code=400, detail="You cannot block your own account")
    user.is_blocked = payload.is_blocked
    db.commit()
    return {"id": user.id, "is_blocked": user.is_blocked}


@router.put("/admin/{user_id}/permissions")
async def update_staff_permissions(
    user_id: str,
    payload: StaffPermissionsUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff(StaffPermission.SUPER_ADMIN)),
):
    user = _get_user_or_404(db, user_id)
    if user.role != UserRole.STAFF:
        raise HTTPException(status_code=400, detail="Permissions can only be granted to staff accounts")
    user.staff_permissions = sorted({p.value for p in payload.permissions})
    db.commit()
    return {"id": user.id, "staff_permissions": user.staff_permissions}


@router.put("/admin/{user_id}/membership")
async def update_user_membership(
    user_id: str,
    payload: MembershipUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff(StaffPermission.USER_MANAGEMENT)),
):
    user = _get_user_or_404(db, user_id)
    if not plan_matches_role(payload.plan, user.role):
        raise HTTPException(status_code=400, detail=f"Plan '{payload.plan.value}' is not available for {user.role.value} accounts")

    if payload.active:
        activate_membership(user, payload.plan)
    else:
        user.membership_active = False
    db.commit()
    db.refresh(user)
    return usage_summary(user)


@router.put("/admin/{user_id}/penalty")
async def update_pending_penalty(
    user_id: str,
    payload: PenaltyUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff(StaffPermission.FINANCIAL)),
):
    user = _get_user_or_404(db, user_id)
    user.pending_penalty = round(payload.pending_penalty, 2)
    db.commit()
    return {"id": user.id, "pending_penalty": user.pending_penalty}


# ============================================================================
# PUBLIC PROFILES & FOLLOWS
# ============================================================================

@router.get("/{user_id}")
async def get_public_profile(
    user_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    user = _get_user_or_404(db, user_id)
    data = user_to_response(user)
    data["followers_count"] = db.query(Follow).filter(Follow.following_id == user.id).count()
    data["following_count"] = db.query(Follow).filter(Follow.follower_id == user.id).count()
    data["is_following"] = db.query(Follow).filter(
        Follow.follower_id == current_user.id, Follow.following_id == user.id
    ).first() is not None
    return data


@router.post("/{user_id}/follow")
async def follow_user(
    user_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    if user_id == current_user.id:
        raise HTTPException(status_code=400, detail="You cannot follow yourself")
    _get_user_or_404(db, user_id)

    existing = db.query(Follow).filter(Follow.follower_id == current_user.id, Follow.following_id == user_id).first()
    if not existing:
        db.add(Follow(follower_id=current_user.id, following_id=user_id))
        db.commit()
    return {"following": True}


@router.delete("/{user_id}/follow")
async def unfollow_user(
    user_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    db.query(Follow).filter(Follow.follower_id == current_user.id, Follow.following_id == user_id).delete()
    db.commit()
    return {"following": False}


@router.get("/{user_id}/followers")
async def list_followers(
    user_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    users = db.query(User).join(Follow, Follow.follower_id == User.id).filter(Follow.following_id == user_id).all()
    return [user_to_response(u) for u in users]


@router.get("/{user_id}/following")
async def list_following(
    user_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    users = db.query(User).join(Follow, Follow.following_id == User.id).filter(Follow.follower_id == user_id).all()
    return [user_to_response(u) for u in users]
