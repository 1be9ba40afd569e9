# Schemas module for Collabzz
# Organizes all Pydantic schemas in a modular structure

from schemas.marketplace import (
    # Enums
    CampaignType,
    PaymentPlan,
    RequestStatus,
    DisputeParty,
    KycDecision,

    # Listing schemas
    InfluencerProfileCreate,
    InfluencerProfileUpdate,
    InfluencerProfileResponse,
    LiveTvChannelCreate,
    LiveTvChannelResponse,
    BannerAdCreate,
    BannerAdResponse,

    # Campaign and collaboration schemas
    CampaignCreate,
    CampaignResponse,
    CampaignApplicationCreate,
    CollaborationRequestCreate,
    AdSlotRequestCreate,
    BannerBookingCreate,
    CollaborationAction,

    # Payment, payout and dispute schemas
    CreateOrderRequest,
    PayoutRequestCreate,
    RefundRequestCreate,
    DisputeCreate,
    DisputeResolve,

    # KYC schemas
    KycSubmit,
    KycReview,
)

from schemas.community import (
    ProfileUpdate,
    MessageCreate,
    PostCreate,
    TicketCreate,
    NotificationResponse,
)

__all__ = [
    # Enums
    "CampaignType",
    "PaymentPlan",
    "RequestStatus",
    "DisputeParty",
    "KycDecision",

    # Listing schemas
    "InfluencerProfileCreate",
    "InfluencerProfileUpdate",
    "InfluencerProfileResponse",
    "LiveTvChannelCreate",
    "LiveTvChannelResponse",
    "BannerAdCreate",
    "BannerAdResponse",

    # Campaign and collaboration schemas
    "CampaignCreate",
    "CampaignResponse",
    "CampaignApplicationCreate",
    "CollaborationRequestCreate",
    "AdSlotRequestCreate",
    "BannerBookingCreate",
    "CollaborationAction",

    # Payment, payout and dispute schemas
    "CreateOrderRequest",
    "PayoutRequestCreate",
    "RefundRequestCreate",
    "DisputeCreate",
    "DisputeResolve",

    # KYC schemas
    "KycSubmit",
    "KycReview",

    # Account and community schemas
    "ProfileUpdate",
    "MessageCreate",
    "PostCreate",
    "TicketCreate",
    "NotificationResponse",
]
