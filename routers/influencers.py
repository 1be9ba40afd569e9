# Influencer Router for Collabzz
# Handles influencer profile management and discovery

from fastapi import APIRouter, HTTPException, Depends, Query, status
from sqlalchemy.orm import Session
from sqlalchemy import or_
from typing import Optional

from database.config import get_db
from database.models import User
from database.marketplace_models import InfluencerProfile
from schemas.marketplace import (
    InfluencerProfileCreate,
    InfluencerProfileUpdate,
    InfluencerProfileResponse,
)
from auth.roles import UserType as UserTypeRole
from auth.decorators import require_user_type
from auth.dependencies import get_optional_current_user
from services.settings_service import get_settings

router = APIRouter(prefix="/influencers", tags=["Influencers"])


# ============================================================================
# PRIVATE ENDPOINTS (Authenticated)
# ============================================================================

@router.post("", response_model=InfluencerProfileResponse, status_code=status.HTTP_201_CREATED)
async def create_influencer_profile(
    profile_data: InfluencerProfileCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_user_type(UserTypeRole.INFLUENCER))
):
    """Create the discovery profile for the current influencer."""
    existing_profile = db.query(InfluencerProfile).filter(
        InfluencerProfile.user_id == current_user.id
    ).first()

    if existing_profile:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="You already have an influencer profile"
        )

    profile = InfluencerProfile(
        user_id=current_user.id,
        name=current_user.name,
        avatar_url=current_user.avatar_url,
        handle=profile_data.handle,
        bio=profile_data.bio,
        followers=profile_data.followers,
        niche=profile_data.niche,
        engagement_rate=profile_data.engagement_rate,
        location=profile_data.location or current_user.location,
        social_media_links=[link.model_dump() for link in profile_data.social_media_links],
    )

    db.add(profile)
    db.commit()
    db.refresh(profile)

    return _profile_to_response(profile)


@router.get("/me", response_model=InfluencerProfileResponse)
async def get_my_influencer_profile(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_user_type(UserTypeRole.INFLUENCER))
):
    """Get the current user's influencer profile."""
    profile = db.query(InfluencerProfile).filter(
        InfluencerProfile.user_id == current_user.id
    ).first()

    if not profile:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Influencer profile not found. Please complete your profile first."
        )

    return _profile_to_response(profile)


@router.put("/me", response_model=InfluencerProfileResponse)
async def update_my_influencer_profile(
    profile_data: InfluencerProfileUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_user_type(UserTypeRole.INFLUENCER))
):
    """Update the current user's influencer profile."""
    profile = db.query(InfluencerProfile).filter(
        InfluencerProfile.user_id == current_user.id
    ).first()

    if not profile:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Influencer profile not found"
        )

    update_data = profile_data.model_dump(exclude_unset=True)
    if "social_media_links" in update_data:
        update_data["social_media_links"] = [dict(link) for link in update_data["social_media_links"] or []]
    for field, value in update_data.items():
        setattr(profile, field, value)

    db.commit()
    db.refresh(profile)

    return _profile_to_response(profile)


# ============================================================================
# PUBLIC ENDPOINTS (Discovery)
# ============================================================================

@router.get("", response_model=dict)
async def discover_influencers(
    db: Session = Depends(get_db),
    current_user: Optional[User] = Depends(get_optional_current_user),
    niche: Optional[str] = Query(None),
    location: Optional[str] = Query(None),
    search: Optional[str] = Query(None, description="Name or handle"),
    min_followers: Optional[int] = Query(None, ge=0),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
):
    """
    List influencers for discovery, boosted profiles first.

    When creator membership is switched on, only creators with an active
    membership are listed.
    """
    settings = get_settings(db)
    if not settings.get("are_influencer_profiles_public") and current_user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Sign in to browse influencers")

    query = db.query(InfluencerProfile).join(User, User.id == InfluencerProfile.user_id).filter(User.is_blocked == False)

    if settings.get("is_creator_membership_enabled"):
        query = query.filter(User.membership_active == True)
    if niche:
        query = query.filter(InfluencerProfile.niche.ilike(f"%{niche}%"))
    if location:
        query = query.filter(InfluencerProfile.location.ilike(f"%{location}%"))
    if search:
        query = query.filter(or_(
            InfluencerProfile.name.ilike(f"%{search}%"),
            InfluencerProfile.handle.ilike(f"%{search}%"),
        ))
    if min_followers is not None:
        query = query.filter(InfluencerProfile.followers >= min_followers)

    total = query.count()
    profiles = query.order_by(
        InfluencerProfile.is_boosted.desc(),
        InfluencerProfile.followers.desc(),
    ).offset((page - 1) * limit).limit(limit).all()

    return {
        "influencers": [_profile_to_response(p).model_dump() for p in profiles],
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "total_pages": (total + limit - 1) // limit
        }
    }


@router.get("/{profile_id}", response_model=InfluencerProfileResponse)
async def get_influencer_profile(
    profile_id: str,
    db: Session = Depends(get_db),
):
    profile = db.query(InfluencerProfile).filter(InfluencerProfile.id == profile_id).first()
    if not profile:
        raise HTTPException(status_code=404, detail="Influencer not found")
    return _profile_to_response(profile)


# ============================================================================
# HELPER FUNCTIONS
# ============================================================================

def _profile_to_response(profile: InfluencerProfile) -> InfluencerProfileResponse:
    """Convert InfluencerProfile model to response schema."""
    return InfluencerProfileResponse(
        id=profile.id,
        user_id=profile.user_id,
        name=profile.name,
        handle=profile.handle,
        bio=profile.bio,
        avatar_url=profile.avatar_url,
        followers=profile.followers or 0,
        niche=profile.niche,
        engagement_rate=profile.engagement_rate or 0.0,
        location=profile.location,
        social_media_links=profile.social_media_links or [],
        is_boosted=bool(profile.is_boosted),
        is_verified=bool(profile.user.is_verified) if profile.user else False,
        created_at=profile.created_at,
    )
