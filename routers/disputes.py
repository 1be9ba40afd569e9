# Disputes Router for Collabzz
# Brands dispute submitted work; staff resolve in favour of one party

from fastapi import APIRouter, HTTPException, Depends, Query, status
from sqlalchemy import or_
from sqlalchemy.orm import Session
from typing import Optional
from datetime import datetime

from database.config import get_db
from database.models import User
from database.marketplace_models import Dispute, DisputeStatusDB
from schemas.marketplace import DisputeCreate, DisputeResolve, DisputeParty
from auth.roles import StaffPermission, UserType as UserTypeRole
from auth.decorators import require_user_type, require_staff
from auth.dependencies import get_current_user
from core.errors import InvalidTransitionError
from core.lifecycle import CollabKind, Party, Action, apply_transition, commit_or_conflict, status_label
from services.collaboration_service import VIEW_BY_KIND, get_record_or_404
from services.notification_service import NotificationService, NotificationType

router = APIRouter(prefix="/disputes", tags=["Disputes"])


def _dispute_to_response(d: Dispute) -> dict:
    return {
        "id": d.id,
        "collaboration_kind": d.collaboration_kind,
        "collaboration_id": d.collaboration_id,
        "collab_id": d.collab_id,
        "collaboration_title": d.collaboration_title,
        "disputed_by_id": d.disputed_by_id,
        "disputed_by_name": d.disputed_by_name,
        "disputed_against_id": d.disputed_against_id,
        "disputed_against_name": d.disputed_against_name,
        "reason": d.reason,
        "contact": d.contact,
        "amount": d.amount,
        "status": d.status.value if d.status else None,
        "resolution": d.resolution,
        "in_favor_of": d.in_favor_of,
        "resolved_at": d.resolved_at,
        "created_at": d.created_at,
    }


# ============================================================================
# USER ENDPOINTS
# ============================================================================

@router.post("", status_code=status.HTTP_201_CREATED)
async def raise_dispute(
    dispute_data: DisputeCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_user_type(UserTypeRole.BRAND))
):
    """
    Dispute submitted work. The dispute record and the collaboration's move
    to disputed are committed together.
    """
    kind = dispute_data.collaboration_kind
    record = get_record_or_404(db, kind, dispute_data.collaboration_id)
    if record.brand_id != current_user.id:
        raise HTTPException(status_code=403, detail="Access denied")

    apply_transition(
        db, kind, record, Party.BUYER, Action.DISPUTE,
        actor_id=current_user.id,
        reason=dispute_data.reason,
        expected_version=dispute_data.expected_version,
    )

    dispute = Dispute(
        collaboration_kind=kind.value,
        collaboration_id=record.id,
        collab_id=record.collab_id,
        collaboration_title=record.title,
        disputed_by_id=current_user.id,
        disputed_by_name=record.brand_name,
        disputed_against_id=record.seller_id,
        disputed_against_name=record.seller_name,
        reason=dispute_data.reason,
        contact=dispute_data.contact,
        amount=record.final_amount,
        status=DisputeStatusDB.OPEN,
    )
    db.add(dispute)

    NotificationService(db).notify_status_change(
        record.seller_id, record.title, status_label(record.status), record.id, VIEW_BY_KIND[kind],
        type=NotificationType.DISPUTE,
    )

    commit_or_conflict(db)
    db.refresh(dispute)
    return _dispute_to_response(dispute)


@router.get("/mine")
async def get_my_disputes(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Disputes raised by or against the current user."""
    disputes = db.query(Dispute).filter(
        or_(Dispute.disputed_by_id == current_user.id, Dispute.disputed_against_id == current_user.id)
    ).order_by(Dispute.created_at.desc()).all()
    return {"disputes": [_dispute_to_response(d) for d in disputes]}


# ============================================================================
# ADMIN ENDPOINTS
# ============================================================================

@router.get("/admin/all", response_model=dict)
async def get_all_disputes(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff(StaffPermission.COLLABORATIONS)),
    in_favor_of: Optional[DisputeParty] = Query(None),
    open_only: bool = Query(False),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
):
    query = db.query(Dispute)
    if open_only:
        query = query.filter(Dispute.status == DisputeStatusDB.OPEN)
    if in_favor_of:
        query = query.filter(Dispute.in_favor_of == in_favor_of.value)

    total = query.count()
    disputes = query.order_by(Dispute.created_at.desc()).offset((page - 1) * limit).limit(limit).all()

    return {
        "disputes": [_dispute_to_response(d) for d in disputes],
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "total_pages": (total + limit - 1) // limit
        }
    }


@router.post("/admin/{dispute_id}/resolve")
async def resolve_dispute(
    dispute_id: str,
    resolution: DisputeResolve,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff(StaffPermission.COLLABORATIONS))
):
    """
    Resolve an open dispute.

    In the creator's favour the collaboration completes and becomes payout
    eligible. In the brand's favour the brand decides between completing it
    anyway and asking for a refund.
    """
    dispute = db.query(Dispute).filter(Dispute.id == dispute_id).first()
    if not dispute:
        raise HTTPException(status_code=404, detail="Dispute not found")
    if dispute.status != DisputeStatusDB.OPEN:
        raise InvalidTransitionError("This dispute has already been resolved")

    kind = CollabKind(dispute.collaboration_kind)
    record = get_record_or_404(db, kind, dispute.collaboration_id)
    action = Action.RESOLVE_FOR_BRAND if resolution.in_favor_of == DisputeParty.BRAND else Action.RESOLVE_FOR_CREATOR
    apply_transition(db, kind, record, Party.STAFF, action, actor_id=current_user.id, reason=resolution.resolution)

    dispute.status = DisputeStatusDB.RESOLVED
    dispute.resolution = resolution.resolution
    dispute.in_favor_of = resolution.in_favor_of.value
    dispute.resolved_by = current_user.id
    dispute.resolved_at = datetime.utcnow()

    notifications = NotificationService(db)
    for user_id in (record.brand_id, record.seller_id):
        notifications.create(
            user_id=user_id,
            type=NotificationType.DISPUTE,
            title="Dispute Resolved",
            body=f"The dispute on '{record.title}' was resolved in favour of the {resolution.in_favor_of.value}.",
            view=VIEW_BY_KIND[kind],
            related_id=record.id,
        )

    commit_or_conflict(db)
    db.refresh(dispute)
    return _dispute_to_response(dispute)


@router.get("/{dispute_id}")
async def get_dispute(
    dispute_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    dispute = db.query(Dispute).filter(Dispute.id == dispute_id).first()
    if not dispute:
        raise HTTPException(status_code=404, detail="Dispute not found")

    if current_user.id not in (dispute.disputed_by_id, dispute.disputed_against_id) and not current_user.is_staff:
        raise HTTPException(status_code=403, detail="Access denied")

    return _dispute_to_response(dispute)
