# Notifications Router for Collabzz
# The signed-in user's in-app inbox

from typing import Optional

from fastapi import APIRouter, HTTPException, Depends, Query, status
from sqlalchemy.orm import Session

from database.config import get_db
from database.models import User
from database.marketplace_models import Notification
from schemas.community import NotificationResponse
from auth.dependencies import get_current_user
from services.notification_service import NotificationService, NotificationType

router = APIRouter(prefix="/notifications", tags=["Notifications"])


@router.get("", response_model=dict)
async def list_notifications(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    unread_only: bool = Query(False),
    type: Optional[NotificationType] = Query(None, description="Only this notification type"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
):
    """Newest first. The unread total is returned alongside so the badge stays in sync."""
    inbox = NotificationService(db)
    query = db.query(Notification).filter(Notification.user_id == current_user.id)
    if unread_only:
        query = query.filter(Notification.is_read == False)
    if type is not None:
        query = query.filter(Notification.type == type.value)

    total = query.count()
    page_items = query.order_by(Notification.created_at.desc()).offset((page - 1) * limit).limit(limit).all()

    return {
        "notifications": [NotificationResponse.model_validate(n).model_dump() for n in page_items],
        "unread_count": inbox.get_unread_count(current_user.id),
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "total_pages": (total + limit - 1) // limit
        }
    }


@router.get("/unread-count")
async def get_unread_count(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return {"unread_count": NotificationService(db).get_unread_count(current_user.id)}


@router.put("/read-all")
async def mark_all_read(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    updated = NotificationService(db).mark_all_read(current_user.id)
    db.commit()
    return {"updated": updated, "unread_count": 0}


@router.put("/{notification_id}/read")
async def mark_read(
    notification_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    inbox = NotificationService(db)
    if not inbox.mark_read(notification_id, current_user.id):
        raise HTTPException(status_code=404, detail="Notification not found")
    db.commit()
    return {"id": notification_id, "is_read": True, "unread_count": inbox.get_unread_count(current_user.id)}


@router.delete("/{notification_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_notification(
    notification_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    # Scoped to the owner so another user's id reads as missing
    deleted = db.query(Notification).filter(
        Notification.id == notification_id,
        Notification.user_id == current_user.id,
    ).delete(synchronize_session=False)
    if not deleted:
        raise HTTPException(status_code=404, detail="Notification not found")
    db.commit()
