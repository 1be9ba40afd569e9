# Notification Service for Collabzz
# Centralized in-app notification creation with push fan-out

import logging
from datetime import datetime
from enum import Enum
from typing import Optional, List

from sqlalchemy.orm import Session

from database.models import User
from database.marketplace_models import Notification
from core.push_service import PushService

logger = logging.getLogger(__name__)


class NotificationType(str, Enum):
    NEW_COLLAB_REQUEST = "new_collab_request"
    COLLAB_UPDATE = "collab_update"
    WORK_SUBMITTED = "work_submitted"
    COLLAB_COMPLETED = "collab_completed"
    NEW_CAMPAIGN_APPLICANT = "new_campaign_applicant"
    APPLICATION_UPDATE = "application_update"
    NEW_MESSAGE = "new_message"
    PAYMENT = "payment"
    PAYOUT = "payout"
    DISPUTE = "dispute"
    KYC = "kyc"
    SUPPORT = "support"
    SYSTEM = "system"


class NotificationService:
    """
    Service for creating and managing user notifications.
    Use this service from any router to send notifications.
    """

    def __init__(self, db: Session, push: Optional[PushService] = None):
        self.db = db
        self.push = push or PushService()

    def create(
        self,
        user_id: str,
        type: NotificationType | str,
        title: str,
        body: str,
        view: Optional[str] = None,
        related_id: Optional[str] = None,
        send_push: bool = True,
    ) -> Notification:
        """
        Create a new notification for a user and push it to their device.

        Args:
            user_id: The user to notify
            type: Notification type (use NotificationType enum)
            title: Short notification title
            body: Full notification message
            view: Client screen the notification opens
            related_id: Id of the record the notification is about

        Returns:
            The created Notification object
        """
        type_value = type.value if isinstance(type, NotificationType) else str(type)
        notification = Notification(
            user_id=user_id,
            type=type_value,
            title=title,
            body=body,
            view=view,
            related_id=related_id,
        )
        self.db.add(notification)
        self.db.flush()  # Get the ID without committing

        if send_push:
            self._push(user_id, notification)
        return notification

    def _push(self, user_id: str, notification: Notification) -> None:
        if not self.push.enabled:
            return
        user = self.db.query(User).filter(User.id == user_id).first()
        if not user or not user.fcm_token:
            return
        prefs = user.notification_preferences or {}
        if prefs.get("push_enabled", True) is False:
            return
        self.push.send_to_token(
            user.fcm_token,
            notification.title,
            notification.body or "",
            data={"type": notification.type, "view": notification.view or "", "related_id": notification.related_id or ""},
        )

    def create_batch(
        self,
        user_ids: List[str],
        type: NotificationType | str,
        title: str,
        body: str,
        view: Optional[str] = None,
        related_id: Optional[str] = None,
        send_push: bool = True,
    ) -> List[Notification]:
        """Create notifications for multiple users."""
        return [
            self.create(user_id=user_id, type=type, title=title, body=body, view=view, related_id=related_id, send_push=send_push)
            for user_id in user_ids
        ]

    def mark_read(self, notification_id: str, user_id: str) -> bool:
        """
        Mark a notification as read.

        Returns:
            True if notification was marked read, False if not found
        """
        notification = self.db.query(Notification).filter(
            Notification.id == notification_id,
            Notification.user_id == user_id
        ).first()

        if notification:
            notification.is_read = True
            notification.read_at = datetime.utcnow()
            return True
        return False

    def mark_all_read(self, user_id: str) -> int:
        """
        Mark all notifications as read for a user.

        Returns:
            Number of notifications marked as read
        """
        return self.db.query(Notification).filter(
            Notification.user_id == user_id,
            Notification.is_read == False
        ).update({
            "is_read": True,
            "read_at": datetime.utcnow()
        }, synchronize_session=False)

    def get_unread_count(self, user_id: str) -> int:
        """Get unread notification count for a user."""
        return self.db.query(Notification).filter(
            Notification.user_id == user_id,
            Notification.is_read == False
        ).count()

    # =========================================================================
    # COLLABORATION HELPERS
    # =========================================================================

    def notify_new_request(self, seller_id: str, brand_name: str, title: str, record_id: str, view: str):
        return self.create(
            user_id=seller_id,
            type=NotificationType.NEW_COLLAB_REQUEST,
            title="New Collaboration Request",
            body=f"{brand_name} sent you a request: {title}",
            view=view,
            related_id=record_id,
        )

    def notify_new_applicant(self, brand_id: str, influencer_name: str, campaign_title: str, record_id: str):
        return self.create(
            user_id=brand_id,
            type=NotificationType.NEW_CAMPAIGN_APPLICANT,
            title="New Campaign Applicant",
            body=f"{influencer_name} applied to {campaign_title}",
            view="campaigns",
            related_id=record_id,
        )

    def notify_status_change(self, user_id: str, title: str, status_label: str, record_id: str, view: str, type: NotificationType = NotificationType.COLLAB_UPDATE):
        return self.create(
            user_id=user_id,
            type=type,
            title="Collaboration Update",
            body=f"'{title}' is now {status_label}",
            view=view,
            related_id=record_id,
        )

    # =========================================================================
    # PAYMENT HELPERS
    # =========================================================================

    def notify_payment_success(self, payer_id: str, amount: float, description: str, related_id: Optional[str]):
        return self.create(
            user_id=payer_id,
            type=NotificationType.PAYMENT,
            title="Payment Successful",
            body=f"Your payment of ₹{amount:,.2f} for {description} was successful.",
            view="payment_history",
            related_id=related_id,
        )

    def notify_new_order(self, payee_id: str, description: str, related_id: Optional[str]):
        return self.create(
            user_id=payee_id,
            type=NotificationType.PAYMENT,
            title="New Order Received",
            body=f"Payment received for {description}. You can start the work now.",
            view="my_collaborations",
            related_id=related_id,
        )

    def notify_payout_approved(self, user_id: str, amount: float, request_id: str):
        return self.create(
            user_id=user_id,
            type=NotificationType.PAYOUT,
            title="Payout Approved",
            body=f"Your payout of ₹{amount:,.2f} has been approved.",
            view="payment_history",
            related_id=request_id,
        )
