# Database Models for Collabzz Marketplace
# Core account tables: users, payment transactions, settings, OTP codes, referrals

from sqlalchemy import Column, String, Integer, DateTime, ForeignKey, Text, JSON, Enum, Boolean, Float
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func
import uuid
import enum

Base = declarative_base()


def generate_uuid():
    return str(uuid.uuid4())


# Enums
class UserRole(str, enum.Enum):
    BRAND = "brand"
    INFLUENCER = "influencer"
    LIVETV = "livetv"
    BANNER_AGENCY = "banneragency"
    STAFF = "staff"


class MembershipPlan(str, enum.Enum):
    # Brand plans
    FREE = "free"
    PRO_10 = "pro_10"
    PRO_20 = "pro_20"
    PRO_UNLIMITED = "pro_unlimited"
    # Creator plans
    BASIC = "basic"
    PRO = "pro"
    PREMIUM = "premium"


class KycStatus(str, enum.Enum):
    NOT_SUBMITTED = "not_submitted"
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class TransactionType(str, enum.Enum):
    PAYMENT = "payment"
    PAYOUT = "payout"
    DAILY_PAYOUT = "daily_payout"
    REFUND = "refund"


class TransactionStatus(str, enum.Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


# Models
class User(Base):
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(255))  # empty for Google-only accounts
    name = Column(String(255), nullable=False)
    role = Column(Enum(UserRole, values_callable=lambda x: [e.value for e in x], name="userrole"), nullable=False)
    company_name = Column(String(255))
    mobile_number = Column(String(20), unique=True, index=True)
    avatar_url = Column(String(500))
    location = Column(String(255))
    bio = Column(Text)

    is_blocked = Column(Boolean, default=False)
    staff_permissions = Column(JSON, default=list)

    # Membership
    membership_plan = Column(Enum(MembershipPlan, values_callable=lambda x: [e.value for e in x], name="membershipplan"), default=MembershipPlan.FREE)
    membership_active = Column(Boolean, default=False)
    membership_starts_at = Column(DateTime)
    membership_expires_at = Column(DateTime)
    usage_direct_collaborations = Column(Integer, default=0, nullable=False)
    usage_campaigns = Column(Integer, default=0, nullable=False)
    usage_live_tv_bookings = Column(Integer, default=0, nullable=False)
    usage_banner_ad_bookings = Column(Integer, default=0, nullable=False)

    # KYC and verification
    kyc_status = Column(Enum(KycStatus, values_callable=lambda x: [e.value for e in x], name="kycstatus"), default=KycStatus.NOT_SUBMITTED)
    kyc_details = Column(JSON)
    creator_verification_status = Column(Enum(KycStatus, values_callable=lambda x: [e.value for e in x], name="kycstatus"), default=KycStatus.NOT_SUBMITTED)
    creator_verification_details = Column(JSON)
    is_verified = Column(Boolean, default=False)

    # Wallet-ish balances
    coins = Column(Integer, default=0, nullable=False)
    pending_penalty = Column(Float, default=0.0, nullable=False)
    referral_code = Column(String(20), unique=True)
    referred_by = Column(String(36), ForeignKey("users.id"), nullable=True)

    # Payout details
    saved_bank_details = Column(JSON)
    saved_upi_id = Column(String(100))

    # Push
    fcm_token = Column(String(500))
    notification_preferences = Column(JSON, default=dict)

    last_activity_at = Column(DateTime)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    # Relationships
    transactions = relationship("Transaction", back_populates="user", foreign_keys="Transaction.user_id", cascade="all, delete-orphan")

    @property
    def is_staff(self) -> bool:
        return self.role == UserRole.STAFF


class Transaction(Base):
    """Gateway payments and payouts, keyed by gateway order id."""
    __tablename__ = "transactions"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    payee_id = Column(String(36), ForeignKey("users.id"), nullable=True)

    type = Column(Enum(TransactionType, values_callable=lambda x: [e.value for e in x], name="transactiontype"), default=TransactionType.PAYMENT)
    status = Column(Enum(TransactionStatus, values_callable=lambda x: [e.value for e in x], name="transactionstatus"), default=TransactionStatus.PENDING)

    # What was paid for: direct, campaign, ad_slot, banner_booking, membership, boost_*, penalty_payment
    purpose = Column(String(50), nullable=False)
    related_id = Column(String(36))
    collab_id = Column(String(20))
    emi_id = Column(String(36))
    description = Column(String(500))

    amount = Column(Float, nullable=False, default=0.0)
    coins_used = Column(Integer, default=0)
    currency = Column(String(3), default="INR")

    order_id = Column(String(100), unique=True, index=True)
    payment_session_id = Column(String(255))
    provider = Column(String(50), default="cashfree")
    metadata_json = Column(JSON)

    created_at = Column(DateTime, server_default=func.now())
    completed_at = Column(DateTime)

    user = relationship("User", back_populates="transactions", foreign_keys=[user_id])


class PlatformSettings(Base):
    """Single row holding the admin-editable settings document."""
    __tablename__ = "platform_settings"

    id = Column(Integer, primary_key=True, default=1)
    data = Column(JSON, nullable=False, default=dict)
    updated_by = Column(String(36), ForeignKey("users.id"), nullable=True)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())


class OtpCode(Base):
    __tablename__ = "otp_codes"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    mobile_number = Column(String(20), nullable=False, index=True)
    code_hash = Column(String(255), nullable=False)
    attempts = Column(Integer, default=0)
    consumed = Column(Boolean, default=False)
    expires_at = Column(DateTime, nullable=False)
    created_at = Column(DateTime, server_default=func.now())


class Referral(Base):
    """Audit row written when a referral code is redeemed."""
    __tablename__ = "referrals"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    referrer_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    referred_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False)
    code = Column(String(20), nullable=False)
    referrer_coins = Column(Integer, default=0)
    referred_coins = Column(Integer, default=0)
    created_at = Column(DateTime, server_default=func.now())
