from datetime import datetime

from config.platform_defaults import PLATFORM_DEFAULTS
from core import pricing
from database.models import MembershipPlan

START = datetime(2026, 1, 1)


def test_same_day_booking_counts_one_day():
    assert pricing.duration_days(START, START) == 1
    assert pricing.duration_days(START, datetime(2026, 1, 10)) == 10


def test_ad_price_adds_fee_and_gst():
    breakdown = pricing.ad_price_breakdown(1000, START, datetime(2026, 1, 10), PLATFORM_DEFAULTS)

    assert breakdown["duration_days"] == 10
    assert breakdown["base_amount"] == 10000
    assert breakdown["processing_fee"] == 200
    assert breakdown["gst"] == 1836
    assert breakdown["final_amount"] == 12036


def test_ad_price_without_fees():
    settings = dict(PLATFORM_DEFAULTS, is_brand_platform_fee_enabled=False, is_brand_gst_enabled=False)
    breakdown = pricing.ad_price_breakdown(500, START, datetime(2026, 1, 4), settings)
    assert breakdown["final_amount"] == 2000


def test_emi_schedule_sums_to_total():
    end = datetime(2026, 3, 11)  # 70 days inclusive
    schedule = pricing.build_emi_schedule(10000.0, START, end)

    assert len(schedule) == 3
    assert [emi["amount"] for emi in schedule[:2]] == [4285.0, 4285.0]
    assert round(sum(emi["amount"] for emi in schedule), 2) == 10000.0
    assert schedule[0]["due_date"] == START.isoformat()
    assert schedule[1]["description"] == "2nd EMI (Day 31 - 60)"
    assert all(emi["status"] == "pending" for emi in schedule)


def test_short_booking_is_a_single_emi():
    schedule = pricing.build_emi_schedule(3000.0, START, datetime(2026, 1, 5))
    assert len(schedule) == 1
    assert schedule[0]["amount"] == 3000.0


def test_payout_deducts_commission_gst_and_penalty():
    breakdown = pricing.payout_breakdown(10000, 1000, 500, PLATFORM_DEFAULTS)

    assert breakdown["commission"] == 1000
    assert breakdown["gst_on_commission"] == 180
    assert breakdown["payout_amount"] == 7320


def test_payout_never_goes_negative():
    breakdown = pricing.payout_breakdown(1000, 900, 500, PLATFORM_DEFAULTS)
    assert breakdown["payout_amount"] == 0


def test_daily_payout_is_one_day_of_earnings():
    breakdown = pricing.daily_payout_breakdown(10000, 10, PLATFORM_DEFAULTS)
    assert breakdown == {"earnings": 1000, "fee": 100, "gst": 18, "net_amount": 882}


def test_discounts_apply_only_when_enabled():
    assert pricing.discounted_price(1000, {"is_enabled": True, "percentage": 20}) == 800
    assert pricing.discounted_price(1000, {"is_enabled": False, "percentage": 20}) == 1000
    assert pricing.discounted_price(1000, None) == 1000


def test_membership_price_uses_discount_settings():
    settings = dict(PLATFORM_DEFAULTS)
    settings["discount_settings"] = dict(settings["discount_settings"], brand_membership={"is_enabled": True, "percentage": 10})

    full = PLATFORM_DEFAULTS["membership_prices"]["pro_unlimited"]
    assert full == 2500
    assert pricing.membership_price(MembershipPlan.PRO_UNLIMITED, settings) == 2250


def test_discounts_round_down_to_whole_rupees():
    assert pricing.discounted_price(999, {"is_enabled": True, "percentage": 15}) == 849

    settings = dict(PLATFORM_DEFAULTS)
    settings["discount_settings"] = dict(settings["discount_settings"], creator_profile_boost={"is_enabled": True, "percentage": 10})
    assert pricing.boost_price("profile", settings) == 44


def test_free_plan_allows_one_collaboration():
    assert pricing.PLAN_LIMITS[MembershipPlan.FREE] == 1
    assert pricing.PLAN_LIMITS[MembershipPlan.PRO_UNLIMITED] is None
