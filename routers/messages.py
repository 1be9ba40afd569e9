# Messages Router for Collabzz
# One-to-one conversations between users

from datetime import datetime

from fastapi import APIRouter, HTTPException, Depends, Query, status
from sqlalchemy import or_, and_
from sqlalchemy.orm import Session

from database.config import get_db
from database.models import User
from database.community_models import Conversation, Message
from schemas.community import MessageCreate
from auth.dependencies import get_current_user
from services.notification_service import NotificationService, NotificationType
from services.settings_service import get_settings

router = APIRouter(prefix="/messages", tags=["Messages"])


def _require_messaging_enabled(db: Session) -> None:
    if not get_settings(db).get("is_messaging_enabled"):
        raise HTTPException(status_code=403, detail="Messaging is currently disabled")


def _participants(user_id: str, other_id: str):
    return tuple(sorted((user_id, other_id)))


def _find_conversation(db: Session, user_id: str, other_id: str):
    a, b = _participants(user_id, other_id)
    return db.query(Conversation).filter(Conversation.participant_a == a, Conversation.participant_b == b).first()


def _message_to_response(m: Message) -> dict:
    return {
        "id": m.id,
        "conversation_id": m.conversation_id,
        "sender_id": m.sender_id,
        "receiver_id": m.receiver_id,
        "text": m.text,
        "attachments": m.attachments or [],
        "is_read": m.is_read,
        "created_at": m.created_at,
    }


@router.post("", status_code=status.HTTP_201_CREATED)
async def send_message(
    message_data: MessageCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    _require_messaging_enabled(db)
    if message_data.receiver_id == current_user.id:
        raise HTTPException(status_code=400, detail="You cannot message yourself")

    receiver = db.query(User).filter(User.id == message_data.receiver_id).first()
    if not receiver or receiver.is_blocked:
        raise HTTPException(status_code=404, detail="Recipient not found")

    conversation = _find_conversation(db, current_user.id, receiver.id)
    if conversation is None:
        a, b = _participants(current_user.id, receiver.id)
        conversation = Conversation(participant_a=a, participant_b=b)
        db.add(conversation)
        db.flush()

    message = Message(
        conversation_id=conversation.id,
        sender_id=current_user.id,
        receiver_id=receiver.id,
        text=message_data.text,
        attachments=[a.model_dump() for a in message_data.attachments],
    )
    db.add(message)

    conversation.last_message = message_data.text or (message_data.attachments[0].name or "Attachment")
    conversation.last_message_at = datetime.utcnow()

    NotificationService(db).create(
        user_id=receiver.id,
        type=NotificationType.NEW_MESSAGE,
        title=f"New message from {current_user.name}",
        body=conversation.last_message[:200],
        view="messages",
        related_id=conversation.id,
    )

    db.commit()
    db.refresh(message)
    return _message_to_response(message)


@router.get("/conversations")
async def list_conversations(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Conversations with the other participant, last message and unread count."""
    _require_messaging_enabled(db)
    conversations = db.query(Conversation).filter(
        or_(Conversation.participant_a == current_user.id, Conversation.participant_b == current_user.id)
    ).order_by(Conversation.last_message_at.desc()).all()

    result = []
    for c in conversations:
        other_id = c.participant_b if c.participant_a == current_user.id else c.participant_a
        other = db.query(User).filter(User.id == other_id).first()
        unread = db.query(Message).filter(
            Message.conversation_id == c.id,
            Message.receiver_id == current_user.id,
            Message.is_read == False
        ).count()
        result.append({
            "id": c.id,
            "other_user": {
                "id": other_id,
                "name": other.name if other else None,
                "avatar_url": other.avatar_url if other else None,
                "role": other.role.value if other else None,
            },
            "last_message": c.last_message,
            "last_message_at": c.last_message_at,
            "unread_count": unread,
        })
    return {"conversations": result}


@router.get("/with/{user_id}")
async def get_messages_with(
    user_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    limit: int = Query(100, ge=1, le=500),
):
    """Messages between the current user and another user, oldest first. Marks incoming ones read."""
    _require_messaging_enabled(db)
    messages = db.query(Message).filter(
        or_(
            and_(Message.sender_id == current_user.id, Message.receiver_id == user_id),
            and_(Message.sender_id == user_id, Message.receiver_id == current_user.id),
        )
    ).order_by(Message.created_at.desc()).limit(limit).all()

    for m in messages:
        if m.receiver_id == current_user.id and not m.is_read:
            m.is_read = True
    db.commit()

    return {"messages": [_message_to_response(m) for m in reversed(messages)]}
