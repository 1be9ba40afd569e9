# Community and Support Models for Collabzz
# Follows, messaging, community posts, support tickets, live help,
# and admin-managed content (banners, partners, leaderboards)

from sqlalchemy import Column, String, Integer, DateTime, ForeignKey, Text, JSON, Enum, Boolean, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import enum

from database.models import Base, generate_uuid


# ============================================================================
# ENUMS
# ============================================================================

class TicketStatusDB(str, enum.Enum):
    OPEN = "open"
    IN_PROGRESS = "in_progress"
    CLOSED = "closed"


class TicketPriorityDB(str, enum.Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"


class LiveHelpStatusDB(str, enum.Enum):
    UNASSIGNED = "unassigned"
    OPEN = "open"
    CLOSED = "closed"


class PostVisibilityDB(str, enum.Enum):
    PUBLIC = "public"
    PRIVATE = "private"


def _enum(enum_cls, name):
    return Enum(enum_cls, values_callable=lambda x: [e.value for e in x], name=name)


# ============================================================================
# FOLLOWS
# ============================================================================

class Follow(Base):
    __tablename__ = "follows"
    __table_args__ = (UniqueConstraint("follower_id", "following_id", name="uq_follow_pair"),)

    id = Column(String(36), primary_key=True, default=generate_uuid)
    follower_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    following_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime, server_default=func.now())


# ============================================================================
# MESSAGING
# ============================================================================

class Conversation(Base):
    """One-to-one thread. participant ids are stored sorted so a pair maps to one row."""
    __tablename__ = "conversations"
    __table_args__ = (UniqueConstraint("participant_a", "participant_b", name="uq_conversation_pair"),)

    id = Column(String(36), primary_key=True, default=generate_uuid)
    participant_a = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    participant_b = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    last_message = Column(Text)
    last_message_at = Column(DateTime)
    created_at = Column(DateTime, server_default=func.now())

    messages = relationship("Message", back_populates="conversation", cascade="all, delete-orphan")


class Message(Base):
    __tablename__ = "messages"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    conversation_id = Column(String(36), ForeignKey("conversations.id", ondelete="CASCADE"), nullable=False, index=True)
    sender_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    receiver_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    text = Column(Text, default="")
    attachments = Column(JSON, default=list)  # [{"url", "type", "name"}]
    is_read = Column(Boolean, default=False)
    created_at = Column(DateTime, server_default=func.now())

    conversation = relationship("Conversation", back_populates="messages")


# ============================================================================
# COMMUNITY FEED
# ============================================================================

class Post(Base):
    __tablename__ = "posts"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    user_name = Column(String(255))
    user_avatar = Column(String(500))
    user_role = Column(String(20))

    text = Column(Text, nullable=False)
    image_url = Column(String(500))
    visibility = Column(_enum(PostVisibilityDB, "postvisibilitydb"), default=PostVisibilityDB.PUBLIC)
    is_blocked = Column(Boolean, default=False)
    like_count = Column(Integer, default=0, nullable=False)
    comment_count = Column(Integer, default=0, nullable=False)

    created_at = Column(DateTime, server_default=func.now())

    likes = relationship("PostLike", cascade="all, delete-orphan")
    comments = relationship("Comment", back_populates="post", cascade="all, delete-orphan")


class PostLike(Base):
    __tablename__ = "post_likes"
    __table_args__ = (UniqueConstraint("post_id", "user_id", name="uq_post_like"),)

    id = Column(String(36), primary_key=True, default=generate_uuid)
    post_id = Column(String(36), ForeignKey("posts.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    created_at = Column(DateTime, server_default=func.now())


class Comment(Base):
    __tablename__ = "comments"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    post_id = Column(String(36), ForeignKey("posts.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    user_name = Column(String(255))
    user_avatar = Column(String(500))
    text = Column(Text, nullable=False)
    created_at = Column(DateTime, server_default=func.now())

    post = relationship("Post", back_populates="comments")


# ============================================================================
# SUPPORT
# ============================================================================

class SupportTicket(Base):
    __tablename__ = "support_tickets"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    user_name = Column(String(255))
    subject = Column(String(255), nullable=False)
    status = Column(_enum(TicketStatusDB, "ticketstatusdb"), default=TicketStatusDB.OPEN)
    priority = Column(_enum(TicketPriorityDB, "ticketprioritydb"), default=TicketPriorityDB.MEDIUM)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    replies = relationship("TicketReply", back_populates="ticket", cascade="all, delete-orphan", order_by="TicketReply.created_at")


class TicketReply(Base):
    __tablename__ = "ticket_replies"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    ticket_id = Column(String(36), ForeignKey("support_tickets.id", ondelete="CASCADE"), nullable=False, index=True)
    sender_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    sender_name = Column(String(255))
    sender_role = Column(String(20))
    text = Column(Text, nullable=False)
    attachments = Column(JSON, default=list)
    created_at = Column(DateTime, server_default=func.now())

    ticket = relationship("SupportTicket", back_populates="replies")


class LiveHelpSession(Base):
    __tablename__ = "live_help_sessions"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    user_name = Column(String(255))
    user_avatar = Column(String(500))
    status = Column(_enum(LiveHelpStatusDB, "livehelpstatusdb"), default=LiveHelpStatusDB.UNASSIGNED)
    assigned_staff_id = Column(String(36), ForeignKey("users.id"), nullable=True)
    assigned_staff_name = Column(String(255))
    last_message = Column(Text)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    messages = relationship("LiveHelpMessage", back_populates="session", cascade="all, delete-orphan", order_by="LiveHelpMessage.created_at")


class LiveHelpMessage(Base):
    __tablename__ = "live_help_messages"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    session_id = Column(String(36), ForeignKey("live_help_sessions.id", ondelete="CASCADE"), nullable=False, index=True)
    sender_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    sender_name = Column(String(255))
    text = Column(Text, nullable=False)
    created_at = Column(DateTime, server_default=func.now())

    session = relationship("LiveHelpSession", back_populates="messages")


class QuickReply(Base):
    __tablename__ = "quick_replies"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    text = Column(Text, nullable=False)
    created_at = Column(DateTime, server_default=func.now())


# ============================================================================
# ADMIN CONTENT
# ============================================================================

class PlatformBanner(Base):
    __tablename__ = "platform_banners"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    title = Column(String(255), nullable=False)
    image_url = Column(String(500), nullable=False)
    target_url = Column(String(500))
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, server_default=func.now())


class Partner(Base):
    __tablename__ = "partners"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    name = Column(String(255), nullable=False)
    logo_url = Column(String(500), nullable=False)
    created_at = Column(DateTime, server_default=func.now())


class Leaderboard(Base):
    __tablename__ = "leaderboards"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    title = Column(String(255), nullable=False)
    leaderboard_type = Column(String(20), nullable=False)  # earnings | collabs
    year = Column(Integer, nullable=False)
    is_active = Column(Boolean, default=True)
    # [{"user_id", "user_name", "user_avatar", "score", "rank"}]
    entries = Column(JSON, default=list)
    created_at = Column(DateTime, server_default=func.now())
