# Collaborations Router for Collabzz
# Direct requests plus the generic action, detail and history endpoints shared by all four kinds

from fastapi import APIRouter, HTTPException, Depends, Query, status
from sqlalchemy.orm import Session
from typing import Optional

from database.config import get_db
from database.models import User, UserRole
from database.marketplace_models import (
    InfluencerProfile, CollaborationRequest, CollaborationEvent, CollabStatusDB, CollabPaymentStatusDB,
)
from schemas.marketplace import CollaborationRequestCreate, CollaborationAction
from auth.roles import StaffPermission, UserType as UserTypeRole
from auth.decorators import require_user_type, require_staff
from auth.dependencies import get_current_user
from core.errors import InvalidTransitionError
from core.lifecycle import (
    CollabKind, Party, MODEL_BY_KIND, TERMINAL_STATES,
    initial_status, generate_collab_id,
)
from services.collaboration_service import (
    VIEW_BY_KIND, get_record_or_404, require_party, record_to_dict, perform_action,
)
from services.membership_service import consume_collaboration_slot, UsageType
from services.notification_service import NotificationService

router = APIRouter(prefix="/collaborations", tags=["Collaborations"])

# Payment states in which a finished record may still be removed from history
DELETABLE_PAYMENT_STATES = (None, CollabPaymentStatusDB.PAYOUT_COMPLETE, CollabPaymentStatusDB.REFUNDED)


def _list_records(db: Session, kinds, brand_id=None, seller_id=None, status_filter=None):
    records = []
    for kind in kinds:
        model = MODEL_BY_KIND[kind]
        query = db.query(model)
        if brand_id:
            query = query.filter(model.brand_id == brand_id)
        if seller_id:
            query = query.filter(model.seller_id == seller_id)
        if status_filter:
            query = query.filter(model.status == status_filter)
        records.extend((kind, r) for r in query.all())
    records.sort(key=lambda item: item[1].created_at, reverse=True)
    return records


# ============================================================================
# DIRECT REQUESTS
# ============================================================================

@router.post("/direct", status_code=status.HTTP_201_CREATED)
async def create_direct_request(
    request_data: CollaborationRequestCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_user_type(UserTypeRole.BRAND))
):
    """Send a collaboration request to an influencer."""
    influencer = db.query(User).filter(
        User.id == request_data.influencer_id,
        User.role == UserRole.INFLUENCER,
    ).first()
    if not influencer:
        raise HTTPException(status_code=404, detail="Influencer not found")

    consume_collaboration_slot(db, current_user, UsageType.DIRECT_COLLABORATIONS)

    profile = db.query(InfluencerProfile).filter(InfluencerProfile.user_id == influencer.id).first()
    record = CollaborationRequest(
        collab_id=generate_collab_id(db),
        title=request_data.title,
        message=request_data.message,
        brand_id=current_user.id,
        brand_name=current_user.company_name or current_user.name,
        brand_avatar=current_user.avatar_url,
        seller_id=influencer.id,
        seller_name=profile.name if profile else influencer.name,
        seller_avatar=influencer.avatar_url,
        status=initial_status(CollabKind.DIRECT),
    )
    if request_data.budget is not None:
        # Proposed budget shown to the influencer; nothing is agreed yet
        record.current_offer = {"amount": request_data.budget, "offered_by": Party.BUYER.value}

    db.add(record)
    db.flush()

    NotificationService(db).notify_new_request(
        influencer.id, record.brand_name, record.title, record.id, VIEW_BY_KIND[CollabKind.DIRECT],
    )

    db.commit()
    db.refresh(record)
    return record_to_dict(CollabKind.DIRECT, record, viewer=current_user)


# ============================================================================
# LISTS
# ============================================================================

@router.get("", response_model=dict)
async def list_my_collaborations(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    kind: Optional[CollabKind] = Query(None),
    status_filter: Optional[CollabStatusDB] = Query(None, alias="status"),
):
    """Every collaboration the user is a party to, newest first."""
    kinds = [kind] if kind else list(CollabKind)
    if current_user.role == UserRole.BRAND:
        records = _list_records(db, kinds, brand_id=current_user.id, status_filter=status_filter)
    else:
        records = _list_records(db, kinds, seller_id=current_user.id, status_filter=status_filter)

    return {"collaborations": [record_to_dict(k, r, viewer=current_user) for k, r in records]}


@router.get("/admin/all", response_model=dict)
async def list_all_collaborations(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff(StaffPermission.COLLABORATIONS)),
    kind: Optional[CollabKind] = Query(None),
    status_filter: Optional[CollabStatusDB] = Query(None, alias="status"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
):
    """Combined view of all collaboration kinds (staff)."""
    kinds = [kind] if kind else list(CollabKind)
    records = _list_records(db, kinds, status_filter=status_filter)
    total = len(records)
    offset = (page - 1) * limit

    return {
        "collaborations": [record_to_dict(k, r) for k, r in records[offset:offset + limit]],
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "total_pages": (total + limit - 1) // limit
        }
    }


# ============================================================================
# SINGLE RECORD
# ============================================================================

@router.get("/{kind}/{record_id}")
async def get_collaboration(
    kind: CollabKind,
    record_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    record = get_record_or_404(db, kind, record_id)
    require_party(record, current_user)
    return record_to_dict(kind, record, viewer=current_user)


@router.get("/{kind}/{record_id}/events")
async def get_collaboration_events(
    kind: CollabKind,
    record_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Audit trail of status changes."""
    record = get_record_or_404(db, kind, record_id)
    require_party(record, current_user)
    events = db.query(CollaborationEvent).filter(
        CollaborationEvent.kind == kind.value,
        CollaborationEvent.record_id == record.id,
    ).order_by(CollaborationEvent.created_at.asc()).all()
    return [
        {
            "id": e.id,
            "action": e.action,
            "actor_id": e.actor_id,
            "from_status": e.from_status,
            "to_status": e.to_status,
            "amount": e.amount,
            "note": e.note,
            "created_at": e.created_at,
        }
        for e in events
    ]


@router.post("/{kind}/{record_id}/actions")
async def act_on_collaboration(
    kind: CollabKind,
    record_id: str,
    action_data: CollaborationAction,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """
    Offer, counter, accept, reject, start work, submit work, complete or cancel.

    Fails with 409 when the action is not allowed from the current status
    or when expected_version no longer matches.
    """
    record = get_record_or_404(db, kind, record_id)
    record = perform_action(
        db, kind, record, current_user, action_data.action,
        amount=action_data.amount,
        daily_rate=action_data.daily_rate,
        reason=action_data.reason,
        expected_version=action_data.expected_version,
    )
    return record_to_dict(kind, record, viewer=current_user)


@router.delete("/{kind}/{record_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_collaboration_history(
    kind: CollabKind,
    record_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Remove a finished collaboration from history."""
    record = get_record_or_404(db, kind, record_id)
    require_party(record, current_user)

    if record.status not in TERMINAL_STATES or record.payment_status not in DELETABLE_PAYMENT_STATES:
        raise InvalidTransitionError("Only finished collaborations with settled payments can be deleted")

    db.delete(record)
    db.commit()
