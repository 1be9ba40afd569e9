# Pydantic Schemas for Collabzz accounts, messaging, community, support and platform content

from pydantic import BaseModel, Field, validator
from typing import Optional, List, Dict, Any
from enum import Enum
from datetime import datetime

from auth.roles import UserType, StaffPermission
from database.models import MembershipPlan
from schemas.marketplace import BankDetails


# ============================================================================
# ENUMS
# ============================================================================

class TicketStatus(str, Enum):
    OPEN = "open"
    IN_PROGRESS = "in_progress"
    CLOSED = "closed"


class TicketPriority(str, Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"


class LiveHelpStatus(str, Enum):
    UNASSIGNED = "unassigned"
    OPEN = "open"
    CLOSED = "closed"


class PostVisibility(str, Enum):
    PUBLIC = "public"
    PRIVATE = "private"


class LeaderboardType(str, Enum):
    EARNINGS = "earnings"
    COLLABS = "collabs"


# ============================================================================
# USERS
# ============================================================================

class ProfileUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=2, max_length=255)
    company_name: Optional[str] = None
    mobile_number: Optional[str] = Field(None, min_length=10, max_length=15)
    location: Optional[str] = None
    bio: Optional[str] = Field(None, max_length=2000)
    avatar_url: Optional[str] = None


class FcmTokenUpdate(BaseModel):
    token: str = Field(..., min_length=10)


class NotificationPreferencesUpdate(BaseModel):
    push_enabled: bool = True
    email_enabled: bool = True
    collaboration_updates: bool = True
    messages: bool = True
    marketing: bool = False


class PayoutDetailsUpdate(BaseModel):
    bank_details: Optional[BankDetails] = None
    upi_id: Optional[str] = None


class ReferralApply(BaseModel):
    code: str = Field(..., min_length=4, max_length=20)


class UserBlockUpdate(BaseModel):
    is_blocked: bool


class StaffPermissionsUpdate(BaseModel):
    permissions: List[StaffPermission]


class MembershipUpdate(BaseModel):
    plan: MembershipPlan
    active: bool = True


class PenaltyUpdate(BaseModel):
    """Staff correction of a seller's outstanding cancellation penalty."""
    pending_penalty: float = Field(..., ge=0)


# ============================================================================
# MESSAGING
# ============================================================================

class Attachment(BaseModel):
    url: str
    type: str
    name: Optional[str] = None


class MessageCreate(BaseModel):
    receiver_id: str
    text: str = Field("", max_length=5000)
    attachments: List[Attachment] = []

    @validator('attachments', always=True)
    def text_or_attachment(cls, v, values):
        if not v and not (values.get('text') or "").strip():
            raise ValueError('A message needs text or at least one attachment')
        return v


# ============================================================================
# COMMUNITY
# ============================================================================

class PostCreate(BaseModel):
    text: str = Field(..., min_length=1, max_length=5000)
    image_url: Optional[str] = None
    visibility: PostVisibility = PostVisibility.PUBLIC


class PostUpdate(BaseModel):
    text: Optional[str] = Field(None, min_length=1, max_length=5000)
    image_url: Optional[str] = None
    visibility: Optional[PostVisibility] = None


class CommentCreate(BaseModel):
    text: str = Field(..., min_length=1, max_length=2000)


class PostBlockUpdate(BaseModel):
    is_blocked: bool


# ============================================================================
# SUPPORT & LIVE HELP
# ============================================================================

class TicketCreate(BaseModel):
    subject: str = Field(..., min_length=3, max_length=255)
    message: str = Field(..., min_length=1)
    priority: TicketPriority = TicketPriority.MEDIUM
    attachments: List[Attachment] = []


class TicketReplyCreate(BaseModel):
    text: str = Field(..., min_length=1)
    attachments: List[Attachment] = []


class TicketUpdate(BaseModel):
    status: Optional[TicketStatus] = None
    priority: Optional[TicketPriority] = None


class LiveHelpMessageCreate(BaseModel):
    text: str = Field(..., min_length=1, max_length=2000)


class LiveHelpStatusUpdate(BaseModel):
    status: LiveHelpStatus


class QuickReplyCreate(BaseModel):
    text: str = Field(..., min_length=1, max_length=1000)


# ============================================================================
# PLATFORM CONTENT
# ============================================================================

class BannerCreate(BaseModel):
    title: str = Field(..., min_length=2, max_length=255)
    image_url: str
    target_url: Optional[str] = None
    is_active: bool = True


class BannerUpdate(BaseModel):
    title: Optional[str] = None
    image_url: Optional[str] = None
    target_url: Optional[str] = None
    is_active: Optional[bool] = None


class PartnerCreate(BaseModel):
    name: str = Field(..., min_length=2, max_length=255)
    logo_url: str


class LeaderboardEntry(BaseModel):
    user_id: Optional[str] = None
    user_name: str
    user_avatar: Optional[str] = None
    score: float = 0
    rank: int = Field(..., ge=1)


class LeaderboardCreate(BaseModel):
    title: str = Field(..., min_length=2, max_length=255)
    leaderboard_type: LeaderboardType
    year: int = Field(..., ge=2000, le=2100)
    is_active: bool = True
    entries: List[LeaderboardEntry] = []


class LeaderboardUpdate(BaseModel):
    title: Optional[str] = None
    is_active: Optional[bool] = None
    entries: Optional[List[LeaderboardEntry]] = None


class BroadcastRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    body: str = Field(..., min_length=1, max_length=1000)
    roles: List[UserType] = []  # empty means everyone


class SettingsUpdate(BaseModel):
    settings: Dict[str, Any]


# ============================================================================
# NOTIFICATIONS
# ============================================================================

class NotificationResponse(BaseModel):
    id: str
    type: str
    title: str
    body: Optional[str] = None
    view: Optional[str] = None
    related_id: Optional[str] = None
    is_read: bool = False
    read_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
