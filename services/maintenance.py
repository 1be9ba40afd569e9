# Periodic maintenance jobs
# Shared by the in-process APScheduler job and the standalone worker (main.py).

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from core.lifecycle import MODEL_BY_KIND, AD_KINDS
from database.models import User, MembershipPlan
from database.marketplace_models import Boost
from services.membership_service import resolve_boost_target, reset_usage

logger = logging.getLogger(__name__)


def expire_boosts(db: Session, now: Optional[datetime] = None) -> int:
    now = now or datetime.utcnow()
    expired = db.query(Boost).filter(Boost.is_active == True, Boost.expires_at <= now).all()
    for boost in expired:
        boost.is_active = False
        still_boosted = db.query(Boost).filter(
            Boost.target_id == boost.target_id,
            Boost.is_active == True,
            Boost.expires_at > now,
            Boost.id != boost.id,
        ).first()
        if not still_boosted:
            target = resolve_boost_target(db, boost.boost_type, boost.target_id)
            if target is not None:
                target.is_boosted = False
    return len(expired)


def expire_memberships(db: Session, now: Optional[datetime] = None) -> int:
    now = now or datetime.utcnow()
    expired = db.query(User).filter(
        User.membership_active == True,
        User.membership_expires_at != None,
        User.membership_expires_at <= now,
    ).all()
    for user in expired:
        user.membership_active = False
        user.membership_plan = MembershipPlan.FREE
        # Back on free, counted from today
        user.membership_starts_at = now
        reset_usage(user)
    return len(expired)


def mark_overdue_emis(db: Session, now: Optional[datetime] = None) -> int:
    """Flag unpaid instalments past their due date and refresh next due dates."""
    now = now or datetime.utcnow()
    marked = 0
    for kind in AD_KINDS:
        model = MODEL_BY_KIND[kind]
        bookings = db.query(model).filter(model.emi_schedule != None).all()
        for booking in bookings:
            schedule = [dict(emi) for emi in (booking.emi_schedule or [])]
            changed = False
            for emi in schedule:
                if emi["status"] == "pending" and datetime.fromisoformat(emi["due_date"]) < now:
                    emi["status"] = "overdue"
                    changed = True
                    marked += 1
            if changed:
                booking.emi_schedule = schedule
            unpaid = [emi["due_date"] for emi in schedule if emi["status"] != "paid"]
            booking.next_payment_due_date = datetime.fromisoformat(min(unpaid)) if unpaid else None
    return marked


def run_maintenance(db: Session) -> dict:
    result = {
        "boosts_expired": expire_boosts(db),
        "memberships_expired": expire_memberships(db),
        "emis_overdue": mark_overdue_emis(db),
    }
    db.commit()
    logger.info(f"Maintenance cycle complete: {result}")
    return result
