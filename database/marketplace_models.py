# Marketplace Database Models for Collabzz
# Listings (influencer profiles, live TV channels, banner ads, campaigns),
# the four collaboration record kinds, and the money flows around them.

from sqlalchemy import Column, String, Integer, DateTime, ForeignKey, Text, JSON, Enum, Boolean, Float
from sqlalchemy.orm import relationship, declared_attr
from sqlalchemy.sql import func
import enum

# Use the same Base from existing models
from database.models import Base, generate_uuid


# ============================================================================
# ENUMS
# ============================================================================

class CollabStatusDB(str, enum.Enum):
    PENDING = "pending"
    REJECTED = "rejected"
    INFLUENCER_OFFER = "influencer_offer"
    BRAND_OFFER = "brand_offer"
    AGREEMENT_REACHED = "agreement_reached"
    IN_PROGRESS = "in_progress"
    WORK_SUBMITTED = "work_submitted"
    COMPLETED = "completed"
    DISPUTED = "disputed"
    BRAND_DECISION_PENDING = "brand_decision_pending"
    REFUND_PENDING_ADMIN_REVIEW = "refund_pending_admin_review"
    # Campaign applications
    PENDING_BRAND_REVIEW = "pending_brand_review"
    BRAND_COUNTER_OFFER = "brand_counter_offer"
    INFLUENCER_COUNTER_OFFER = "influencer_counter_offer"
    # Ad bookings
    PENDING_APPROVAL = "pending_approval"
    AGENCY_OFFER = "agency_offer"


class CollabPaymentStatusDB(str, enum.Enum):
    PAID = "paid"
    PARTIAL_PAID = "partial_paid"
    PAYOUT_REQUESTED = "payout_requested"
    PAYOUT_COMPLETE = "payout_complete"
    REFUNDED = "refunded"


class CampaignStatusDB(str, enum.Enum):
    OPEN = "open"
    CLOSED = "closed"


class CampaignTypeDB(str, enum.Enum):
    PAID = "paid"
    BARTER = "barter"


class PaymentPlanDB(str, enum.Enum):
    FULL = "full"
    EMI = "emi"


class RequestStatusDB(str, enum.Enum):
    """Shared by payout, daily payout and refund requests."""
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    PROCESSING = "processing"
    COMPLETED = "completed"
    ON_HOLD = "on_hold"


class DisputeStatusDB(str, enum.Enum):
    OPEN = "open"
    RESOLVED = "resolved"


class BoostTypeDB(str, enum.Enum):
    PROFILE = "profile"
    CAMPAIGN = "campaign"
    BANNER = "banner"


def _enum(enum_cls, name):
    return Enum(enum_cls, values_callable=lambda x: [e.value for e in x], name=name)


# ============================================================================
# LISTINGS
# ============================================================================

class InfluencerProfile(Base):
    """Public creator profile shown in discovery."""
    __tablename__ = "influencer_profiles"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False)

    name = Column(String(255), nullable=False)
    handle = Column(String(100), nullable=False)
    bio = Column(Text)
    avatar_url = Column(String(500))
    followers = Column(Integer, default=0)
    niche = Column(String(100), nullable=False)
    engagement_rate = Column(Float, default=0.0)
    location = Column(String(255))
    social_media_links = Column(JSON, default=list)

    is_boosted = Column(Boolean, default=False)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    user = relationship("User", backref="influencer_profile")


class LiveTvChannel(Base):
    __tablename__ = "live_tv_channels"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    owner_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    name = Column(String(255), nullable=False)
    logo_url = Column(String(500))
    description = Column(Text)
    audience_size = Column(Integer, default=0)
    niche = Column(String(100))

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    owner = relationship("User", backref="live_tv_channels")


class BannerAd(Base):
    """Physical banner space listed by an agency."""
    __tablename__ = "banner_ads"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    agency_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    agency_name = Column(String(255))

    location = Column(String(255), nullable=False, index=True)
    address = Column(String(500), nullable=False)
    photo_url = Column(String(500))
    size = Column(String(50), nullable=False)
    fee_per_day = Column(Float, nullable=False)
    banner_type = Column(String(50), nullable=False)

    is_boosted = Column(Boolean, default=False)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())


class Campaign(Base):
    """Brand campaign that influencers apply to."""
    __tablename__ = "campaigns"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    brand_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    brand_name = Column(String(255))
    brand_avatar = Column(String(500))

    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=False)
    category = Column(String(100), nullable=False)
    collaboration_type = Column(_enum(CampaignTypeDB, "campaigntypedb"), default=CampaignTypeDB.PAID)
    influencer_count = Column(Integer, default=1)
    payment_offer = Column(Float)
    location = Column(String(255))

    status = Column(_enum(CampaignStatusDB, "campaignstatusdb"), default=CampaignStatusDB.OPEN)
    applicant_ids = Column(JSON, default=list)
    is_boosted = Column(Boolean, default=False)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    applications = relationship("CampaignApplication", back_populates="campaign", cascade="all, delete-orphan")


# ============================================================================
# COLLABORATION RECORDS
# ============================================================================

class CollaborationMixin:
    """
    Columns shared by every collaboration kind.

    The brand is always the buying side; the seller is the influencer,
    live TV owner or banner agency. Each concrete class declares its own
    `version` column and maps it as the optimistic-locking version_id_col.
    """
    id = Column(String(36), primary_key=True, default=generate_uuid)
    collab_id = Column(String(20), unique=True, index=True)
    title = Column(String(255), nullable=False)

    @declared_attr
    def brand_id(cls):
        return Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    brand_name = Column(String(255))
    brand_avatar = Column(String(500))

    @declared_attr
    def seller_id(cls):
        return Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    seller_name = Column(String(255))
    seller_avatar = Column(String(500))

    status = Column(_enum(CollabStatusDB, "collabstatusdb"), nullable=False)
    current_offer = Column(JSON)  # {"amount": float, "offered_by": "brand"|"seller", "daily_rate": float}
    final_amount = Column(Float)
    payment_status = Column(_enum(CollabPaymentStatusDB, "collabpaymentstatusdb"), nullable=True)
    work_status = Column(String(20))
    rejection_reason = Column(Text)
    daily_payouts_received = Column(Float, default=0.0, nullable=False)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())


class AdBookingMixin:
    """Dated bookings priced per day, optionally paid in EMIs."""
    start_date = Column(DateTime, nullable=False)
    end_date = Column(DateTime, nullable=False)
    daily_rate = Column(Float)
    payment_plan = Column(_enum(PaymentPlanDB, "paymentplandb"), default=PaymentPlanDB.FULL)
    # [{"id", "amount", "due_date", "status", "description", "paid_at", "order_id"}]
    emi_schedule = Column(JSON)
    next_payment_due_date = Column(DateTime)


class CollaborationRequest(CollaborationMixin, Base):
    """Direct brand to influencer request."""
    __tablename__ = "collaboration_requests"

    message = Column(Text)
    version = Column(Integer, nullable=False, default=1)

    __mapper_args__ = {"version_id_col": version}


class CampaignApplication(CollaborationMixin, Base):
    """Influencer application to a brand campaign."""
    __tablename__ = "campaign_applications"

    campaign_id = Column(String(36), ForeignKey("campaigns.id", ondelete="CASCADE"), nullable=False, index=True)
    message = Column(Text)
    version = Column(Integer, nullable=False, default=1)

    campaign = relationship("Campaign", back_populates="applications")

    __mapper_args__ = {"version_id_col": version}


class AdSlotRequest(CollaborationMixin, AdBookingMixin, Base):
    """Brand booking of ad time on a live TV channel."""
    __tablename__ = "ad_slot_requests"

    channel_id = Column(String(36), ForeignKey("live_tv_channels.id", ondelete="CASCADE"), nullable=False, index=True)
    ad_type = Column(String(100))
    version = Column(Integer, nullable=False, default=1)

    __mapper_args__ = {"version_id_col": version}


class BannerAdBookingRequest(CollaborationMixin, AdBookingMixin, Base):
    """Brand booking of a physical banner."""
    __tablename__ = "banner_ad_booking_requests"

    banner_ad_id = Column(String(36), ForeignKey("banner_ads.id", ondelete="CASCADE"), nullable=False, index=True)
    banner_location = Column(String(255))
    version = Column(Integer, nullable=False, default=1)

    __mapper_args__ = {"version_id_col": version}


class CollaborationEvent(Base):
    """Append-only audit log of lifecycle transitions."""
    __tablename__ = "collaboration_events"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    kind = Column(String(20), nullable=False)
    record_id = Column(String(36), nullable=False, index=True)
    actor_id = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    action = Column(String(30), nullable=False)
    from_status = Column(String(40))
    to_status = Column(String(40))
    amount = Column(Float)
    note = Column(Text)
    created_at = Column(DateTime, server_default=func.now())


# ============================================================================
# PAYOUTS, REFUNDS, DISPUTES
# ============================================================================

class PayoutRequest(Base):
    """Final payout of a completed collaboration to its seller."""
    __tablename__ = "payout_requests"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    user_name = Column(String(255))
    collaboration_kind = Column(String(20), nullable=False)
    collaboration_id = Column(String(36), nullable=False, index=True)
    collab_id = Column(String(20))
    collaboration_title = Column(String(255))

    final_amount = Column(Float, nullable=False)
    commission = Column(Float, default=0.0)
    gst_on_commission = Column(Float, default=0.0)
    daily_payouts_deducted = Column(Float, default=0.0)
    penalty_deducted = Column(Float, default=0.0)
    payout_amount = Column(Float, nullable=False)

    bank_details = Column(JSON)
    upi_id = Column(String(100))
    selfie_url = Column(String(500))

    status = Column(_enum(RequestStatusDB, "requeststatusdb"), default=RequestStatusDB.PENDING)
    admin_note = Column(Text)
    transfer_reference = Column(String(100))
    processed_by = Column(String(36), ForeignKey("users.id"), nullable=True)
    processed_at = Column(DateTime)

    created_at = Column(DateTime, server_default=func.now())


class DailyPayoutRequest(Base):
    """Per-day earning claim for an in-progress ad booking."""
    __tablename__ = "daily_payout_requests"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    user_name = Column(String(255))
    collaboration_kind = Column(String(20), nullable=False)
    collaboration_id = Column(String(36), nullable=False, index=True)
    collab_id = Column(String(20))

    earnings = Column(Float, nullable=False)
    fee = Column(Float, default=0.0)
    gst = Column(Float, default=0.0)
    net_amount = Column(Float, nullable=False)
    video_url = Column(String(500))

    status = Column(_enum(RequestStatusDB, "requeststatusdb"), default=RequestStatusDB.PENDING)
    admin_note = Column(Text)
    processed_by = Column(String(36), ForeignKey("users.id"), nullable=True)
    processed_at = Column(DateTime)

    created_at = Column(DateTime, server_default=func.now())


class RefundRequest(Base):
    __tablename__ = "refund_requests"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    brand_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    brand_name = Column(String(255))
    collaboration_kind = Column(String(20), nullable=False)
    collaboration_id = Column(String(36), nullable=False, index=True)
    collab_id = Column(String(20))

    amount = Column(Float, nullable=False)
    pan_number = Column(String(10), nullable=True)
    # Set when a single stray gateway order is being returned
    order_id = Column(String(100), nullable=True)
    bank_details = Column(JSON)
    description = Column(Text)

    status = Column(_enum(RequestStatusDB, "requeststatusdb"), default=RequestStatusDB.PENDING)
    admin_note = Column(Text)
    processed_by = Column(String(36), ForeignKey("users.id"), nullable=True)
    processed_at = Column(DateTime)

    created_at = Column(DateTime, server_default=func.now())


class Dispute(Base):
    """Dispute raised by a brand on submitted work."""
    __tablename__ = "disputes"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    collaboration_kind = Column(String(20), nullable=False)
    collaboration_id = Column(String(36), nullable=False, index=True)
    collab_id = Column(String(20))
    collaboration_title = Column(String(255))

    disputed_by_id = Column(String(36), ForeignKey("users.id"), nullable=False)
    disputed_by_name = Column(String(255))
    disputed_against_id = Column(String(36), ForeignKey("users.id"), nullable=False)
    disputed_against_name = Column(String(255))

    reason = Column(Text, nullable=False)
    contact = Column(String(100))
    amount = Column(Float)

    status = Column(_enum(DisputeStatusDB, "disputestatusdb"), default=DisputeStatusDB.OPEN)
    resolution = Column(Text)
    in_favor_of = Column(String(20))  # brand | creator
    resolved_by = Column(String(36), ForeignKey("users.id"), nullable=True)
    resolved_at = Column(DateTime)

    created_at = Column(DateTime, server_default=func.now())


# ============================================================================
# BOOSTS & NOTIFICATIONS
# ============================================================================

class Boost(Base):
    __tablename__ = "boosts"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    boost_type = Column(_enum(BoostTypeDB, "boosttypedb"), nullable=False)
    target_id = Column(String(36), nullable=False)
    is_active = Column(Boolean, default=True)
    expires_at = Column(DateTime, nullable=False)
    created_at = Column(DateTime, server_default=func.now())


class Notification(Base):
    """In-app user notifications."""
    __tablename__ = "notifications"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    type = Column(String(50), nullable=False)
    title = Column(String(200), nullable=False)
    body = Column(Text)
    view = Column(String(50))  # client screen to open
    related_id = Column(String(36))

    is_read = Column(Boolean, default=False)
    read_at = Column(DateTime)

    created_at = Column(DateTime, server_default=func.now())

    user = relationship("User", backref="notifications")
