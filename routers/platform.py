# Platform Router for Collabzz
# Runtime settings, home-screen content, push broadcasts and dashboard stats

import logging

from fastapi import APIRouter, HTTPException, Depends, status
from sqlalchemy import func
from sqlalchemy.orm import Session

from database.config import get_db
from database.models import User, UserRole, Transaction, TransactionStatus, TransactionType, KycStatus
from database.marketplace_models import (
    PayoutRequest, DailyPayoutRequest, RefundRequest, Dispute, RequestStatusDB, DisputeStatusDB,
)
from database.community_models import PlatformBanner, Partner, Leaderboard
from schemas.community import (
    SettingsUpdate, BannerCreate, BannerUpdate, PartnerCreate,
    LeaderboardCreate, LeaderboardUpdate, BroadcastRequest,
)
from auth.roles import StaffPermission
from auth.decorators import require_staff
from core.lifecycle import MODEL_BY_KIND
from core.push_service import PushService
from services.settings_service import get_settings, get_public_settings, update_settings
from services.notification_service import NotificationService, NotificationType

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/platform", tags=["Platform"])


def _banner_to_response(b: PlatformBanner) -> dict:
    return {"id": b.id, "title": b.title, "image_url": b.image_url, "target_url": b.target_url, "is_active": b.is_active, "created_at": b.created_at}


def _leaderboard_to_response(lb: Leaderboard) -> dict:
    return {
        "id": lb.id,
        "title": lb.title,
        "leaderboard_type": lb.leaderboard_type,
        "year": lb.year,
        "is_active": lb.is_active,
        "entries": sorted(lb.entries or [], key=lambda e: e.get("rank", 0)),
        "created_at": lb.created_at,
    }


# ============================================================================
# SETTINGS
# ============================================================================

@router.get("/settings/public")
async def get_public_platform_settings(db: Session = Depends(get_db)):
    """Feature flags and prices the apps read before sign-in."""
    return get_public_settings(db)


@router.get("/settings")
async def get_platform_settings(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff(StaffPermission.SUPER_ADMIN))
):
    return get_settings(db)


@router.put("/settings")
async def update_platform_settings(
    update: SettingsUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff(StaffPermission.SUPER_ADMIN))
):
    logger.info(f"Settings updated by {current_user.id}: {sorted(update.settings)}")
    return update_settings(db, update.settings, updated_by=current_user.id)


# ============================================================================
# BANNERS & PARTNERS
# ============================================================================

@router.get("/banners")
async def list_banners(db: Session = Depends(get_db)):
    banners = db.query(PlatformBanner).filter(PlatformBanner.is_active == True).order_by(PlatformBanner.created_at.desc()).all()
    return [_banner_to_response(b) for b in banners]


@router.post("/admin/banners", status_code=status.HTTP_201_CREATED)
async def create_banner(
    banner_data: BannerCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff(StaffPermission.MARKETING))
):
    banner = PlatformBanner(**banner_data.model_dump())
    db.add(banner)
    db.commit()
    db.refresh(banner)
    return _banner_to_response(banner)


@router.put("/admin/banners/{banner_id}")
async def update_banner(
    banner_id: str,
    banner_data: BannerUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff(StaffPermission.MARKETING))
):
    banner = db.query(PlatformBanner).filter(PlatformBanner.id == banner_id).first()
    if not banner:
        raise HTTPException(status_code=404, detail="Banner not found")
    for field, value in banner_data.model_dump(exclude_unset=True).items():
        setattr(banner, field, value)
    db.commit()
    db.refresh(banner)
    return _banner_to_response(banner)


@router.delete("/admin/banners/{banner_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_banner(
    banner_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff(StaffPermission.MARKETING))
):
    banner = db.query(PlatformBanner).filter(PlatformBanner.id == banner_id).first()
    if not banner:
        raise HTTPException(status_code=404, detail="Banner not found")
    db.delete(banner)
    db.commit()


@router.get("/partners")
async def list_partners(db: Session = Depends(get_db)):
    partners = db.query(Partner).order_by(Partner.created_at.asc()).all()
    return [{"id": p.id, "name": p.name, "logo_url": p.logo_url} for p in partners]


@router.post("/admin/partners", status_code=status.HTTP_201_CREATED)
async def create_partner(
    partner_data: PartnerCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff(StaffPermission.MARKETING))
):
    partner = Partner(**partner_data.model_dump())
    db.add(partner)
    db.commit()
    db.refresh(partner)
    return {"id": partner.id, "name": partner.name, "logo_url": partner.logo_url}


@router.delete("/admin/partners/{partner_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_partner(
    partner_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff(StaffPermission.MARKETING))
):
    partner = db.query(Partner).filter(Partner.id == partner_id).first()
    if not partner:
        raise HTTPException(status_code=404, detail="Partner not found")
    db.delete(partner)
    db.commit()


# ============================================================================
# LEADERBOARDS
# ============================================================================

@router.get("/leaderboards")
async def list_leaderboards(db: Session = Depends(get_db)):
    boards = db.query(Leaderboard).filter(Leaderboard.is_active == True).order_by(Leaderboard.year.desc()).all()
    return [_leaderboard_to_response(lb) for lb in boards]


@router.post("/admin/leaderboards", status_code=status.HTTP_201_CREATED)
async def create_leaderboard(
    leaderboard_data: LeaderboardCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff(StaffPermission.MARKETING))
):
    board = Leaderboard(
        title=leaderboard_data.title,
        leaderboard_type=leaderboard_data.leaderboard_type.value,
        year=leaderboard_data.year,
        is_active=leaderboard_data.is_active,
        entries=[e.model_dump() for e in leaderboard_data.entries],
    )
    db.add(board)
    db.commit()
    db.refresh(board)
    return _leaderboard_to_response(board)


@router.put("/admin/leaderboards/{leaderboard_id}")
async def update_leaderboard(
    leaderboard_id: str,
    leaderboard_data: LeaderboardUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff(StaffPermission.MARKETING))
):
    board = db.query(Leaderboard).filter(Leaderboard.id == leaderboard_id).first()
    if not board:
        raise HTTPException(status_code=404, detail="Leaderboard not found")

    if leaderboard_data.title is not None:
        board.title = leaderboard_data.title
    if leaderboard_data.is_active is not None:
        board.is_active = leaderboard_data.is_active
    if leaderboard_data.entries is not None:
        board.entries = [e.model_dump() for e in leaderboard_data.entries]

    db.commit()
    db.refresh(board)
    return _leaderboard_to_response(board)


@router.delete("/admin/leaderboards/{leaderboard_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_leaderboard(
    leaderboard_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff(StaffPermission.MARKETING))
):
    board = db.query(Leaderboard).filter(Leaderboard.id == leaderboard_id).first()
    if not board:
        raise HTTPException(status_code=404, detail="Leaderboard not found")
    db.delete(board)
    db.commit()


# ============================================================================
# BROADCAST & STATS
# ============================================================================

@router.post("/admin/broadcast")
async def broadcast_push(
    broadcast: BroadcastRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff(StaffPermission.MARKETING))
):
    """
    Announce to every user of the selected roles (all roles when none given).

    Each recipient gets an in-app notification; devices are reached with one
    multicast push instead of a push per notification.
    """
    query = db.query(User.id, User.fcm_token).filter(User.is_blocked == False)
    if broadcast.roles:
        query = query.filter(User.role.in_([UserRole(r.value) for r in broadcast.roles]))
    recipients = query.all()

    NotificationService(db).create_batch(
        [row.id for row in recipients], NotificationType.SYSTEM, broadcast.title, broadcast.body, send_push=False,
    )
    db.commit()

    tokens = [row.fcm_token for row in recipients if row.fcm_token]
    delivered = PushService().send_to_tokens(tokens, broadcast.title, broadcast.body, data={"type": "broadcast"})
    logger.info(f"Broadcast '{broadcast.title}' to {len(recipients)} users by {current_user.id}")
    return {"notified": len(recipients), "targeted": len(tokens), "delivered": delivered}


@router.get("/admin/stats")
async def get_dashboard_stats(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff(StaffPermission.ANALYTICS))
):
    users_by_role = {role.value: 0 for role in UserRole}
    for role, count in db.query(User.role, func.count(User.id)).group_by(User.role).all():
        users_by_role[role.value] = count

    revenue = db.query(func.coalesce(func.sum(Transaction.amount), 0.0)).filter(
        Transaction.type == TransactionType.PAYMENT,
        Transaction.status == TransactionStatus.COMPLETED,
    ).scalar()

    pending_payouts = sum(
        db.query(model).filter(model.status == RequestStatusDB.PENDING).count()
        for model in (PayoutRequest, DailyPayoutRequest, RefundRequest)
    )

    return {
        "users_by_role": users_by_role,
        "total_users": sum(users_by_role.values()),
        "revenue": round(float(revenue or 0), 2),
        "collaborations": sum(db.query(model).count() for model in MODEL_BY_KIND.values()),
        "pending_kyc": db.query(User).filter(User.kyc_status == KycStatus.PENDING).count(),
        "open_disputes": db.query(Dispute).filter(Dispute.status == DisputeStatusDB.OPEN).count(),
        "pending_payouts": pending_payouts,
    }
