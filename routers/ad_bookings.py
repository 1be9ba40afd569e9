# Ad Bookings Router for Collabzz
# Live TV ad slot requests, banner ad bookings and their price quotes

from fastapi import APIRouter, HTTPException, Depends, status
from sqlalchemy.orm import Session

from database.config import get_db
from database.models import User
from database.marketplace_models import (
    LiveTvChannel, BannerAd, AdSlotRequest, BannerAdBookingRequest, PaymentPlanDB,
)
from schemas.marketplace import AdSlotRequestCreate, BannerBookingCreate, AdQuoteRequest, PaymentPlan
from auth.roles import UserType as UserTypeRole
from auth.decorators import require_user_type
from auth.dependencies import get_current_user
from core import pricing
from core.lifecycle import CollabKind, Party, initial_status, generate_collab_id
from services.collaboration_service import VIEW_BY_KIND, record_to_dict
from services.membership_service import consume_collaboration_slot, UsageType
from services.notification_service import NotificationService
from services.settings_service import get_settings

router = APIRouter(prefix="/ad-bookings", tags=["Ad Bookings"])


@router.post("/quote")
async def quote_ad_booking(
    quote_data: AdQuoteRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Price breakdown for a dated booking, with the EMI split when requested."""
    settings = get_settings(db)
    breakdown = pricing.ad_price_breakdown(quote_data.daily_rate, quote_data.start_date, quote_data.end_date, settings)
    if quote_data.payment_plan == PaymentPlan.EMI:
        breakdown["emi_schedule"] = pricing.build_emi_schedule(
            breakdown["final_amount"], quote_data.start_date, quote_data.end_date,
        )
    return breakdown


@router.post("/ad-slots", status_code=status.HTTP_201_CREATED)
async def request_ad_slot(
    request_data: AdSlotRequestCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_user_type(UserTypeRole.BRAND))
):
    """Ask a live TV channel for ad time. The channel answers with an offer."""
    channel = db.query(LiveTvChannel).filter(LiveTvChannel.id == request_data.channel_id).first()
    if not channel:
        raise HTTPException(status_code=404, detail="Channel not found")

    consume_collaboration_slot(db, current_user, UsageType.LIVE_TV_BOOKINGS)

    record = AdSlotRequest(
        collab_id=generate_collab_id(db),
        title=request_data.title,
        channel_id=channel.id,
        ad_type=request_data.ad_type,
        brand_id=current_user.id,
        brand_name=current_user.company_name or current_user.name,
        brand_avatar=current_user.avatar_url,
        seller_id=channel.owner_id,
        seller_name=channel.name,
        seller_avatar=channel.logo_url,
        status=initial_status(CollabKind.AD_SLOT),
        start_date=request_data.start_date,
        end_date=request_data.end_date,
        daily_rate=request_data.daily_rate,
        payment_plan=PaymentPlanDB(request_data.payment_plan.value),
    )
    db.add(record)
    db.flush()

    NotificationService(db).notify_new_request(
        channel.owner_id, record.brand_name, record.title, record.id, VIEW_BY_KIND[CollabKind.AD_SLOT],
    )

    db.commit()
    db.refresh(record)
    return record_to_dict(CollabKind.AD_SLOT, record, viewer=current_user)


@router.post("/banner-bookings", status_code=status.HTTP_201_CREATED)
async def book_banner_ad(
    booking_data: BannerBookingCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_user_type(UserTypeRole.BRAND))
):
    """
    Book a banner for a date range at its listed fee per day. The agency
    answers with an offer (or rejects) before anything is agreed.
    """
    banner = db.query(BannerAd).filter(BannerAd.id == booking_data.banner_ad_id).first()
    if not banner:
        raise HTTPException(status_code=404, detail="Banner ad not found")

    consume_collaboration_slot(db, current_user, UsageType.BANNER_AD_BOOKINGS)

    quote = pricing.ad_price_breakdown(banner.fee_per_day, booking_data.start_date, booking_data.end_date, get_settings(db))
    record = BannerAdBookingRequest(
        collab_id=generate_collab_id(db),
        title=booking_data.title,
        banner_ad_id=banner.id,
        banner_location=banner.location,
        brand_id=current_user.id,
        brand_name=current_user.company_name or current_user.name,
        brand_avatar=current_user.avatar_url,
        seller_id=banner.agency_id,
        seller_name=banner.agency_name,
        seller_avatar=banner.photo_url,
        status=initial_status(CollabKind.BANNER_BOOKING),
        start_date=booking_data.start_date,
        end_date=booking_data.end_date,
        daily_rate=banner.fee_per_day,
        payment_plan=PaymentPlanDB(booking_data.payment_plan.value),
        current_offer={
            "amount": quote["final_amount"],
            "daily_rate": banner.fee_per_day,
            "offered_by": Party.BUYER.value,
        },
    )
    db.add(record)
    db.flush()

    NotificationService(db).notify_new_request(
        banner.agency_id, record.brand_name, record.title, record.id, VIEW_BY_KIND[CollabKind.BANNER_BOOKING],
    )

    db.commit()
    db.refresh(record)
    return record_to_dict(CollabKind.BANNER_BOOKING, record, viewer=current_user)
