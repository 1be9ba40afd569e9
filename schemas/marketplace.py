# Pydantic Schemas for the Collabzz Marketplace
# Listings, collaborations, payments, payouts, disputes and KYC

from pydantic import BaseModel, Field, validator
from typing import Optional, List, Dict, Any
from datetime import datetime
from enum import Enum

from core.lifecycle import CollabKind, Action


# ============================================================================
# ENUMS
# ============================================================================

class CampaignType(str, Enum):
    PAID = "paid"
    BARTER = "barter"


class PaymentPlan(str, Enum):
    FULL = "full"
    EMI = "emi"


class RequestStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    PROCESSING = "processing"
    COMPLETED = "completed"
    ON_HOLD = "on_hold"


class DisputeParty(str, Enum):
    BRAND = "brand"
    CREATOR = "creator"


class KycDecision(str, Enum):
    APPROVED = "approved"
    REJECTED = "rejected"


# ============================================================================
# INFLUENCER PROFILE
# ============================================================================

class SocialLink(BaseModel):
    platform: str
    url: str


class InfluencerProfileCreate(BaseModel):
    """Schema for creating an influencer profile."""
    handle: str = Field(..., min_length=2, max_length=100)
    bio: Optional[str] = Field(None, max_length=2000)
    followers: int = Field(0, ge=0)
    niche: str = Field(..., min_length=2, max_length=100)
    engagement_rate: float = Field(0.0, ge=0, le=100)
    location: Optional[str] = None
    social_media_links: List[SocialLink] = []


class InfluencerProfileUpdate(BaseModel):
    handle: Optional[str] = Field(None, min_length=2, max_length=100)
    bio: Optional[str] = Field(None, max_length=2000)
    followers: Optional[int] = Field(None, ge=0)
    niche: Optional[str] = None
    engagement_rate: Optional[float] = Field(None, ge=0, le=100)
    location: Optional[str] = None
    social_media_links: Optional[List[SocialLink]] = None


class InfluencerProfileResponse(BaseModel):
    id: str
    user_id: str
    name: str
    handle: str
    bio: Optional[str] = None
    avatar_url: Optional[str] = None
    followers: int
    niche: str
    engagement_rate: float
    location: Optional[str] = None
    social_media_links: List[Dict[str, Any]] = []
    is_boosted: bool = False
    is_verified: bool = False
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


# ============================================================================
# LIVE TV & BANNER ADS
# ============================================================================

class LiveTvChannelCreate(BaseModel):
    name: str = Field(..., min_length=2, max_length=255)
    description: Optional[str] = None
    audience_size: int = Field(0, ge=0)
    niche: Optional[str] = None
    logo_url: Optional[str] = None


class LiveTvChannelUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=2, max_length=255)
    description: Optional[str] = None
    audience_size: Optional[int] = Field(None, ge=0)
    niche: Optional[str] = None
    logo_url: Optional[str] = None


class LiveTvChannelResponse(BaseModel):
    id: str
    owner_id: str
    name: str
    logo_url: Optional[str] = None
    description: Optional[str] = None
    audience_size: int = 0
    niche: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class BannerAdCreate(BaseModel):
    location: str = Field(..., min_length=2)
    address: str = Field(..., min_length=5)
    photo_url: Optional[str] = None
    size: str
    fee_per_day: float = Field(..., gt=0)
    banner_type: str


class BannerAdUpdate(BaseModel):
    location: Optional[str] = None
    address: Optional[str] = None
    photo_url: Optional[str] = None
    size: Optional[str] = None
    fee_per_day: Optional[float] = Field(None, gt=0)
    banner_type: Optional[str] = None


class BannerAdResponse(BaseModel):
    id: str
    agency_id: str
    agency_name: Optional[str] = None
    location: str
    address: str
    photo_url: Optional[str] = None
    size: str
    fee_per_day: float
    banner_type: str
    is_boosted: bool = False
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


# ============================================================================
# CAMPAIGNS
# ============================================================================

class CampaignCreate(BaseModel):
    """Schema for creating a campaign."""
    title: str = Field(..., min_length=3, max_length=255)
    description: str = Field(..., min_length=10)
    category: str
    collaboration_type: CampaignType = CampaignType.PAID
    influencer_count: int = Field(1, ge=1)
    payment_offer: Optional[float] = Field(None, gt=0)  # per influencer, optional
    location: Optional[str] = None


class CampaignResponse(BaseModel):
    id: str
    brand_id: str
    brand_name: Optional[str] = None
    brand_avatar: Optional[str] = None
    title: str
    description: str
    category: str
    collaboration_type: CampaignType
    influencer_count: int
    payment_offer: Optional[float] = None
    location: Optional[str] = None
    status: str
    applicant_ids: List[str] = []
    is_boosted: bool = False
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class CampaignApplicationCreate(BaseModel):
    message: str = Field(..., min_length=1, max_length=2000)
    offer_amount: Optional[float] = Field(None, gt=0)


# ============================================================================
# COLLABORATIONS
# ============================================================================

class CollaborationRequestCreate(BaseModel):
    """Direct request from a brand to an influencer."""
    influencer_id: str  # user id of the influencer
    title: str = Field(..., min_length=3, max_length=255)
    message: str = Field(..., min_length=1)
    budget: Optional[float] = Field(None, gt=0)


class AdSlotRequestCreate(BaseModel):
    channel_id: str
    title: str = Field(..., min_length=3, max_length=255)
    ad_type: str
    start_date: datetime
    end_date: datetime
    daily_rate: Optional[float] = Field(None, gt=0)
    payment_plan: PaymentPlan = PaymentPlan.FULL

    @validator('end_date')
    def end_after_start(cls, v, values):
        start = values.get('start_date')
        if start and v < start:
            raise ValueError('end_date must be on or after start_date')
        return v


class BannerBookingCreate(BaseModel):
    banner_ad_id: str
    title: str = Field(..., min_length=3, max_length=255)
    start_date: datetime
    end_date: datetime
    payment_plan: PaymentPlan = PaymentPlan.FULL

    @validator('end_date')
    def end_after_start(cls, v, values):
        start = values.get('start_date')
        if start and v < start:
            raise ValueError('end_date must be on or after start_date')
        return v


class CollaborationAction(BaseModel):
    """A party action on any collaboration record."""
    action: Action
    amount: Optional[float] = Field(None, gt=0)
    daily_rate: Optional[float] = Field(None, gt=0)
    reason: Optional[str] = Field(None, max_length=1000)
    expected_version: Optional[int] = None


# ============================================================================
# PAYMENTS
# ============================================================================

class CreateOrderRequest(BaseModel):
    """
    purpose is one of: direct, campaign, ad_slot, banner_booking, membership,
    boost_profile, boost_campaign, boost_banner, penalty_payment.
    related_id is the collaboration id, plan name or boost target id.
    """
    purpose: str
    related_id: Optional[str] = None
    emi_id: Optional[str] = None
    coins_used: int = Field(0, ge=0)
    phone: Optional[str] = None
    return_url: Optional[str] = None


# ============================================================================
# PAYOUTS & REFUNDS
# ============================================================================

class BankDetails(BaseModel):
    account_holder_name: str
    account_number: str
    ifsc_code: str
    bank_name: Optional[str] = None


class PayoutRequestCreate(BaseModel):
    collaboration_kind: CollabKind
    collaboration_id: str
    bank_details: Optional[BankDetails] = None
    upi_id: Optional[str] = None
    selfie_url: Optional[str] = None
    save_details: bool = False


class DailyPayoutCreate(BaseModel):
    collaboration_kind: CollabKind
    collaboration_id: str
    video_url: Optional[str] = None


class RefundRequestCreate(BaseModel):
    collaboration_kind: CollabKind
    collaboration_id: str
    pan_number: str = Field(..., min_length=10, max_length=10)
    bank_details: Optional[BankDetails] = None
    description: Optional[str] = Field(None, max_length=2000)


class RequestStatusUpdate(BaseModel):
    status: RequestStatus
    admin_note: Optional[str] = None


# ============================================================================
# DISPUTES
# ============================================================================

class DisputeCreate(BaseModel):
    """Schema for creating a dispute."""
    collaboration_kind: CollabKind
    collaboration_id: str
    reason: str = Field(..., min_length=10, max_length=2000)
    contact: Optional[str] = None
    expected_version: Optional[int] = None


class DisputeResolve(BaseModel):
    resolution: str = Field(..., min_length=5, max_length=2000)
    in_favor_of: DisputeParty


# ============================================================================
# KYC & VERIFICATION
# ============================================================================

class KycSubmit(BaseModel):
    id_type: str
    id_number: str
    address: str
    city: str
    state: str
    pincode: str = Field(..., min_length=6, max_length=6)
    id_proof_url: Optional[str] = None
    selfie_url: Optional[str] = None
    pan_number: Optional[str] = None


class KycReview(BaseModel):
    status: KycDecision
    reason: Optional[str] = None


class CreatorVerificationSubmit(BaseModel):
    social_media_links: List[SocialLink] = []
    business_pan: Optional[str] = None
    registration_doc_url: Optional[str] = None
    office_photo_url: Optional[str] = None
    notes: Optional[str] = None


class PanVerifyRequest(BaseModel):
    pan_number: str


class BankVerifyRequest(BaseModel):
    account_number: str
    ifsc_code: str
    account_holder_name: str


class UpiVerifyRequest(BaseModel):
    upi_id: str


class AdQuoteRequest(BaseModel):
    daily_rate: float = Field(..., gt=0)
    start_date: datetime
    end_date: datetime
    payment_plan: PaymentPlan = PaymentPlan.FULL

    @validator('end_date')
    def end_after_start(cls, v, values):
        start = values.get('start_date')
        if start and v < start:
            raise ValueError('end_date must be on or after start_date')
        return v
