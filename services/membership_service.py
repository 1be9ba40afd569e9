# Membership plans, usage limits and boosts

from datetime import datetime, timedelta
from enum import Enum
from typing import Optional

from sqlalchemy.orm import Session

from config import app_config
from core.errors import CollaborationLimitError
from core.pricing import PLAN_LIMITS, PLAN_DURATION_DAYS, BRAND_PLANS, FREE_USAGE_PERIOD_DAYS
from database.models import User, UserRole, MembershipPlan
from database.marketplace_models import Boost, BoostTypeDB, InfluencerProfile, Campaign, BannerAd


class UsageType(str, Enum):
    DIRECT_COLLABORATIONS = "direct_collaborations"
    CAMPAIGNS = "campaigns"
    LIVE_TV_BOOKINGS = "live_tv_bookings"
    BANNER_AD_BOOKINGS = "banner_ad_bookings"


USAGE_COLUMNS = {
    UsageType.DIRECT_COLLABORATIONS: User.usage_direct_collaborations,
    UsageType.CAMPAIGNS: User.usage_campaigns,
    UsageType.LIVE_TV_BOOKINGS: User.usage_live_tv_bookings,
    UsageType.BANNER_AD_BOOKINGS: User.usage_banner_ad_bookings,
}

USAGE_LABELS = {
    UsageType.DIRECT_COLLABORATIONS: "direct collaboration",
    UsageType.CAMPAIGNS: "campaign",
    UsageType.LIVE_TV_BOOKINGS: "live TV booking",
    UsageType.BANNER_AD_BOOKINGS: "banner ad booking",
}


def is_membership_current(user: User, now: Optional[datetime] = None) -> bool:
    now = now or datetime.utcnow()
    if not user.membership_active:
        return False
    return user.membership_expires_at is None or user.membership_expires_at > now


def effective_plan(user: User) -> MembershipPlan:
    """Paid plans only count while active; everyone else is on free."""
    plan = MembershipPlan(user.membership_plan or MembershipPlan.FREE)
    if plan != MembershipPlan.FREE and not is_membership_current(user):
        return MembershipPlan.FREE
    return plan


def plan_limit(user: User) -> Optional[int]:
    return PLAN_LIMITS[effective_plan(user)]


def usage_summary(user: User) -> dict:
    limit = plan_limit(user)
    return {
        "plan": effective_plan(user).value,
        "is_active": is_membership_current(user),
        "expires_at": user.membership_expires_at,
        "limit_per_type": limit,
        "usage": {
            usage_type.value: getattr(user, column.key) or 0
            for usage_type, column in USAGE_COLUMNS.items()
        },
    }


def reset_usage(user: User) -> None:
    for column in USAGE_COLUMNS.values():
        setattr(user, column.key, 0)


def roll_usage_period(user: User, now: Optional[datetime] = None) -> bool:
    """Start a fresh yearly usage period for a free user whose period has lapsed."""
    now = now or datetime.utcnow()
    if effective_plan(user) != MembershipPlan.FREE:
        return False
    started = user.membership_starts_at
    if started is not None and now < started + timedelta(days=FREE_USAGE_PERIOD_DAYS):
        return False
    user.membership_starts_at = now
    reset_usage(user)
    return True


def consume_collaboration_slot(db: Session, user: User, usage_type: UsageType) -> None:
    """
    Count one new collaboration against the brand's plan.

    The check and the increment are one conditional UPDATE, so two
    concurrent requests cannot both take the last slot.
    """
    if user.role != UserRole.BRAND:
        return

    if roll_usage_period(user):
        db.flush()

    column = USAGE_COLUMNS[usage_type]
    limit = plan_limit(user)
    query = db.query(User).filter(User.id == user.id)
    if limit is not None:
        query = query.filter(column < limit)

    updated = query.update({column: column + 1}, synchronize_session=False)
    if not updated:
        raise CollaborationLimitError(
            f"You have reached your collaboration limit of {limit} {USAGE_LABELS[usage_type]}(s) "
            f"on the {effective_plan(user).value} plan. Upgrade your membership to continue."
        )
    db.refresh(user)


def activate_membership(user: User, plan: MembershipPlan, now: Optional[datetime] = None) -> None:
    """Start a plan period and reset usage counters."""
    now = now or datetime.utcnow()
    user.membership_plan = plan
    user.membership_active = plan != MembershipPlan.FREE
    user.membership_starts_at = now
    user.membership_expires_at = now + timedelta(days=PLAN_DURATION_DAYS.get(plan, 365)) if plan != MembershipPlan.FREE else None
    reset_usage(user)


def plan_matches_role(plan: MembershipPlan, role: UserRole) -> bool:
    if plan == MembershipPlan.FREE:
        return True
    if role == UserRole.BRAND:
        return plan in BRAND_PLANS
    return plan not in BRAND_PLANS


BOOST_TARGETS = {
    BoostTypeDB.PROFILE: InfluencerProfile,
    BoostTypeDB.CAMPAIGN: Campaign,
    BoostTypeDB.BANNER: BannerAd,
}


def resolve_boost_target(db: Session, boost_type: BoostTypeDB, target_id: str):
    model = BOOST_TARGETS[boost_type]
    return db.query(model).filter(model.id == target_id).first()


def activate_boost(db: Session, user_id: str, boost_type: BoostTypeDB, target_id: str, now: Optional[datetime] = None) -> Boost:
    now = now or datetime.utcnow()
    boost = Boost(
        user_id=user_id,
        boost_type=boost_type,
        target_id=target_id,
        expires_at=now + timedelta(days=app_config.BOOST_DURATION_DAYS),
    )
    db.add(boost)
    target = resolve_boost_target(db, boost_type, target_id)
    if target is not None:
        target.is_boosted = True
    return boost
