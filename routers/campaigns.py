# Campaigns Router for Collabzz
# Brand campaigns and influencer applications to them

from fastapi import APIRouter, HTTPException, Depends, Query, status
from sqlalchemy.orm import Session
from typing import List, Optional

from database.config import get_db
from database.models import User
from database.marketplace_models import (
    Campaign, CampaignApplication, InfluencerProfile,
    CampaignStatusDB, CampaignTypeDB,
)
from schemas.marketplace import CampaignCreate, CampaignResponse, CampaignApplicationCreate
from auth.roles import UserType as UserTypeRole
from auth.decorators import require_user_type
from auth.dependencies import get_current_user
from core.errors import ValidationFailedError
from core.lifecycle import CollabKind, Party, initial_status, generate_collab_id
from services.collaboration_service import record_to_dict
from services.membership_service import consume_collaboration_slot, UsageType
from services.notification_service import NotificationService

router = APIRouter(prefix="/campaigns", tags=["Campaigns"])


def _get_campaign_or_404(db: Session, campaign_id: str) -> Campaign:
    campaign = db.query(Campaign).filter(Campaign.id == campaign_id).first()
    if not campaign:
        raise HTTPException(status_code=404, detail="Campaign not found")
    return campaign


def _require_owner(campaign: Campaign, user: User) -> None:
    if campaign.brand_id != user.id and not user.is_staff:
        raise HTTPException(status_code=403, detail="Not your campaign")


# ============================================================================
# BRAND ENDPOINTS
# ============================================================================

@router.post("", response_model=CampaignResponse, status_code=status.HTTP_201_CREATED)
async def create_campaign(
    campaign_data: CampaignCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_user_type(UserTypeRole.BRAND))
):
    """Create a campaign. Counts against the brand's campaign allowance."""
    consume_collaboration_slot(db, current_user, UsageType.CAMPAIGNS)

    campaign = Campaign(
        brand_id=current_user.id,
        brand_name=current_user.company_name or current_user.name,
        brand_avatar=current_user.avatar_url,
        title=campaign_data.title,
        description=campaign_data.description,
        category=campaign_data.category,
        collaboration_type=CampaignTypeDB(campaign_data.collaboration_type.value),
        influencer_count=campaign_data.influencer_count,
        payment_offer=campaign_data.payment_offer,
        location=campaign_data.location,
        status=CampaignStatusDB.OPEN,
        applicant_ids=[],
    )
    db.add(campaign)
    db.commit()
    db.refresh(campaign)
    return campaign


@router.get("/mine", response_model=List[CampaignResponse])
async def list_my_campaigns(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_user_type(UserTypeRole.BRAND))
):
    return db.query(Campaign).filter(Campaign.brand_id == current_user.id).order_by(Campaign.created_at.desc()).all()


@router.put("/{campaign_id}/close", response_model=CampaignResponse)
async def close_campaign(
    campaign_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_user_type(UserTypeRole.BRAND))
):
    campaign = _get_campaign_or_404(db, campaign_id)
    _require_owner(campaign, current_user)
    campaign.status = CampaignStatusDB.CLOSED
    db.commit()
    db.refresh(campaign)
    return campaign


@router.get("/{campaign_id}/applications")
async def list_campaign_applications(
    campaign_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_user_type(UserTypeRole.BRAND))
):
    campaign = _get_campaign_or_404(db, campaign_id)
    _require_owner(campaign, current_user)
    applications = db.query(CampaignApplication).filter(
        CampaignApplication.campaign_id == campaign.id
    ).order_by(CampaignApplication.created_at.desc()).all()
    return [record_to_dict(CollabKind.CAMPAIGN, a, viewer=current_user) for a in applications]


# ============================================================================
# DISCOVERY
# ============================================================================

@router.get("", response_model=dict)
async def list_open_campaigns(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    location: Optional[str] = Query(None),
    category: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
):
    """Open campaigns, boosted first."""
    query = db.query(Campaign).filter(Campaign.status == CampaignStatusDB.OPEN)
    if location:
        query = query.filter(Campaign.location.ilike(f"%{location}%"))
    if category:
        query = query.filter(Campaign.category == category)

    total = query.count()
    campaigns = query.order_by(
        Campaign.is_boosted.desc(),
        Campaign.created_at.desc(),
    ).offset((page - 1) * limit).limit(limit).all()

    return {
        "campaigns": [CampaignResponse.model_validate(c).model_dump() for c in campaigns],
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "total_pages": (total + limit - 1) // limit
        }
    }


@router.get("/{campaign_id}", response_model=CampaignResponse)
async def get_campaign(
    campaign_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return _get_campaign_or_404(db, campaign_id)


# ============================================================================
# INFLUENCER ENDPOINTS
# ============================================================================

@router.post("/{campaign_id}/apply", status_code=status.HTTP_201_CREATED)
async def apply_to_campaign(
    campaign_id: str,
    application_data: CampaignApplicationCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_user_type(UserTypeRole.INFLUENCER))
):
    """
    Apply to an open campaign. A paid campaign needs an amount: either the
    campaign's own offer or one quoted by the applicant.
    """
    campaign = _get_campaign_or_404(db, campaign_id)

    if campaign.status != CampaignStatusDB.OPEN:
        raise HTTPException(status_code=400, detail="This campaign is no longer accepting applications")
    if campaign.brand_id == current_user.id:
        raise HTTPException(status_code=400, detail="You cannot apply to your own campaign")

    already_applied = current_user.id in (campaign.applicant_ids or []) or db.query(CampaignApplication).filter(
        CampaignApplication.campaign_id == campaign.id,
        CampaignApplication.seller_id == current_user.id,
    ).first() is not None
    if already_applied:
        raise HTTPException(status_code=400, detail="You have already applied to this campaign")

    if campaign.collaboration_type == CampaignTypeDB.PAID and application_data.offer_amount is None and not campaign.payment_offer:
        raise ValidationFailedError("A payment offer is required to apply to a paid campaign")

    profile = db.query(InfluencerProfile).filter(InfluencerProfile.user_id == current_user.id).first()

    application = CampaignApplication(
        collab_id=generate_collab_id(db),
        campaign_id=campaign.id,
        title=campaign.title,
        brand_id=campaign.brand_id,
        brand_name=campaign.brand_name,
        brand_avatar=campaign.brand_avatar,
        seller_id=current_user.id,
        seller_name=profile.name if profile else current_user.name,
        seller_avatar=current_user.avatar_url,
        status=initial_status(CollabKind.CAMPAIGN),
        message=application_data.message,
    )
    if application_data.offer_amount is not None:
        application.current_offer = {"amount": application_data.offer_amount, "offered_by": Party.SELLER.value}

    db.add(application)
    # Reassign so the JSON column is flagged dirty
    campaign.applicant_ids = (campaign.applicant_ids or []) + [current_user.id]
    db.flush()

    NotificationService(db).notify_new_applicant(campaign.brand_id, application.seller_name, campaign.title, application.id)

    db.commit()
    db.refresh(application)
    return record_to_dict(CollabKind.CAMPAIGN, application, viewer=current_user)
