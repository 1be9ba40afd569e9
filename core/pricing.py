# Pricing rules for Collabzz
# Ad booking totals, EMI schedules, payout breakdowns, discounts, plan limits.
# All amounts are in rupees; settings percentages are whole numbers (18 == 18%).

import math
from datetime import datetime, timedelta
from typing import Dict, List, Optional

from database.models import MembershipPlan, generate_uuid

EMI_PERIOD_DAYS = 30

# Collaborations allowed per type per membership year; None means unlimited
PLAN_LIMITS: Dict[MembershipPlan, Optional[int]] = {
    MembershipPlan.FREE: 1,
    MembershipPlan.PRO_10: 10,
    MembershipPlan.PRO_20: 20,
    MembershipPlan.PRO_UNLIMITED: None,
    MembershipPlan.BASIC: None,
    MembershipPlan.PRO: None,
    MembershipPlan.PREMIUM: None,
}

BRAND_PLANS = {MembershipPlan.PRO_10, MembershipPlan.PRO_20, MembershipPlan.PRO_UNLIMITED}
CREATOR_PLANS = {MembershipPlan.BASIC, MembershipPlan.PRO, MembershipPlan.PREMIUM}

PLAN_DURATION_DAYS = {
    MembershipPlan.PRO_10: 365,
    MembershipPlan.PRO_20: 365,
    MembershipPlan.PRO_UNLIMITED: 365,
    MembershipPlan.BASIC: 30,
    MembershipPlan.PRO: 182,
    MembershipPlan.PREMIUM: 365,
}

# Free plan usage counts per yearly period from membership_starts_at
FREE_USAGE_PERIOD_DAYS = 365


def _money(value: float) -> float:
    return round(value, 2)


def duration_days(start: datetime, end: datetime) -> int:
    """Inclusive day count of a booking; a same-day booking is one day."""
    seconds = abs((end - start).total_seconds())
    return math.ceil(seconds / 86400) + 1


def ad_price_breakdown(daily_rate: float, start: datetime, end: datetime, settings: dict) -> dict:
    """Brand-facing total for a dated booking."""
    days = duration_days(start, end)
    base = daily_rate * days

    processing_fee = 0.0
    if settings.get("is_brand_platform_fee_enabled"):
        processing_fee = base * settings.get("payment_processing_charge_rate", 0) / 100

    gst = 0.0
    if settings.get("is_brand_gst_enabled"):
        gst = (base + processing_fee) * settings.get("gst_rate", 0) / 100

    return {
        "duration_days": days,
        "daily_rate": _money(daily_rate),
        "base_amount": _money(base),
        "processing_fee": _money(processing_fee),
        "gst": _money(gst),
        "final_amount": _money(base + processing_fee + gst),
    }


def ordinal(n: int) -> str:
    if 10 <= n % 100 <= 20:
        suffix = "th"
    else:
        suffix = {1: "st", 2: "nd", 3: "rd"}.get(n % 10, "th")
    return f"{n}{suffix}"


def build_emi_schedule(total: float, start: datetime, end: datetime) -> List[dict]:
    """
    Split a booking total into 30-day instalments.

    Each instalment is proportional to the days it covers (floored to whole
    rupees); the last one absorbs the rounding remainder so the schedule
    always sums to the total.
    """
    days = duration_days(start, end)
    count = math.ceil(days / EMI_PERIOD_DAYS)
    schedule = []
    allocated = 0.0

    for i in range(count):
        first_day = i * EMI_PERIOD_DAYS + 1
        last_day = min((i + 1) * EMI_PERIOD_DAYS, days)
        days_in_emi = last_day - first_day + 1

        if i == count - 1:
            amount = _money(total - allocated)
        else:
            amount = float(math.floor(total * days_in_emi / days))
            allocated += amount

        schedule.append({
            "id": generate_uuid(),
            "amount": amount,
            "due_date": (start + timedelta(days=i * EMI_PERIOD_DAYS)).isoformat(),
            "status": "pending",
            "description": f"{ordinal(i + 1)} EMI (Day {first_day} - {last_day})",
        })

    return schedule


def payout_breakdown(final_amount: float, daily_payouts_received: float, pending_penalty: float, settings: dict) -> dict:
    """Seller payout for a completed collaboration, floored at zero."""
    commission = 0.0
    if settings.get("is_platform_commission_enabled"):
        commission = final_amount * settings.get("platform_commission_rate", 0) / 100

    gst_on_commission = 0.0
    if settings.get("is_creator_gst_enabled"):
        gst_on_commission = commission * settings.get("gst_rate", 0) / 100

    deductions = commission + gst_on_commission + (daily_payouts_received or 0) + (pending_penalty or 0)
    return {
        "final_amount": _money(final_amount),
        "commission": _money(commission),
        "gst_on_commission": _money(gst_on_commission),
        "daily_payouts_deducted": _money(daily_payouts_received or 0),
        "penalty_deducted": _money(pending_penalty or 0),
        "payout_amount": _money(max(0.0, final_amount - deductions)),
    }


def daily_payout_breakdown(final_amount: float, days: int, settings: dict) -> dict:
    """One day of earnings on an ad booking, net of commission and GST on it."""
    days = max(days, 1)
    earnings = final_amount / days
    fee = earnings * settings.get("platform_commission_rate", 10) / 100
    gst = fee * settings.get("gst_rate", 18) / 100
    return {
        "earnings": _money(earnings),
        "fee": _money(fee),
        "gst": _money(gst),
        "net_amount": _money(max(0.0, earnings - fee - gst)),
    }


def discounted_price(price: float, discount: Optional[dict]) -> float:
    """Discounted prices round down to whole rupees."""
    if discount and discount.get("is_enabled") and discount.get("percentage"):
        return float(math.floor(price * (100 - discount["percentage"]) / 100))
    return _money(price)


def membership_price(plan: MembershipPlan, settings: dict) -> float:
    price = settings.get("membership_prices", {}).get(plan.value, 0)
    key = "brand_membership" if plan in BRAND_PLANS else "creator_membership"
    return discounted_price(price, settings.get("discount_settings", {}).get(key))


BOOST_DISCOUNT_KEYS = {
    "profile": "creator_profile_boost",
    "campaign": "brand_campaign_boost",
    "banner": "brand_banner_boost",
}


def boost_price(boost_type: str, settings: dict) -> float:
    price = settings.get("boost_prices", {}).get(boost_type, 0)
    discount = settings.get("discount_settings", {}).get(BOOST_DISCOUNT_KEYS[boost_type])
    return discounted_price(price, discount)
