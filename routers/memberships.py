# Memberships Router for Collabzz
# Plan catalogue, current usage and boost prices. Purchases go through /payments.

from datetime import datetime

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from database.config import get_db
from database.models import User, UserRole
from database.marketplace_models import Boost
from auth.dependencies import get_current_user
from core import pricing
from services.membership_service import usage_summary, plan_matches_role
from services.settings_service import get_settings

router = APIRouter(prefix="/memberships", tags=["Memberships"])


@router.get("/plans")
async def list_plans(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Plans the current user can buy, with discounted prices applied."""
    settings = get_settings(db)
    plans = pricing.BRAND_PLANS if current_user.role == UserRole.BRAND else pricing.CREATOR_PLANS
    enabled_flag = "is_pro_membership_enabled" if current_user.role == UserRole.BRAND else "is_creator_membership_enabled"

    result = []
    for plan in sorted(plans, key=lambda p: settings.get("membership_prices", {}).get(p.value, 0)):
        if not plan_matches_role(plan, current_user.role):
            continue
        result.append({
            "plan": plan.value,
            "list_price": settings.get("membership_prices", {}).get(plan.value, 0),
            "price": pricing.membership_price(plan, settings),
            "duration_days": pricing.PLAN_DURATION_DAYS[plan],
            "limit_per_type": pricing.PLAN_LIMITS[plan],
        })
    return {"enabled": bool(settings.get(enabled_flag)), "plans": result}


@router.get("/me")
async def get_my_membership(current_user: User = Depends(get_current_user)):
    return usage_summary(current_user)


@router.get("/boosts/prices")
async def get_boost_prices(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    settings = get_settings(db)
    return {
        boost_type: pricing.boost_price(boost_type, settings)
        for boost_type in pricing.BOOST_DISCOUNT_KEYS
    }


@router.get("/boosts/mine")
async def list_my_boosts(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    now = datetime.utcnow()
    boosts = db.query(Boost).filter(Boost.user_id == current_user.id).order_by(Boost.created_at.desc()).all()
    return [
        {
            "id": b.id,
            "boost_type": b.boost_type.value,
            "target_id": b.target_id,
            "is_active": bool(b.is_active and b.expires_at > now),
            "expires_at": b.expires_at,
            "created_at": b.created_at,
        }
        for b in boosts
    ]
