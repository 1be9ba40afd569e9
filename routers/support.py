# Support Router for Collabzz
# Support tickets, live help chat and staff quick replies

from fastapi import APIRouter, HTTPException, Depends, Query, status
from sqlalchemy.orm import Session
from typing import Optional

from database.config import get_db
from database.models import User
from database.community_models import (
    SupportTicket, TicketReply, LiveHelpSession, LiveHelpMessage, QuickReply,
    TicketStatusDB, TicketPriorityDB, LiveHelpStatusDB,
)
from schemas.community import (
    TicketCreate, TicketReplyCreate, TicketUpdate, TicketStatus,
    LiveHelpMessageCreate, LiveHelpStatusUpdate, LiveHelpStatus, QuickReplyCreate,
)
from auth.roles import StaffPermission
from auth.decorators import require_staff
from auth.dependencies import get_current_user
from services.notification_service import NotificationService, NotificationType
from services.settings_service import get_settings

router = APIRouter(prefix="/support", tags=["Support"])


def _ticket_to_response(t: SupportTicket, with_replies: bool = False) -> dict:
    data = {
        "id": t.id,
        "user_id": t.user_id,
        "user_name": t.user_name,
        "subject": t.subject,
        "status": t.status.value,
        "priority": t.priority.value,
        "reply_count": len(t.replies),
        "created_at": t.created_at,
        "updated_at": t.updated_at,
    }
    if with_replies:
        data["replies"] = [
            {
                "id": r.id,
                "sender_id": r.sender_id,
                "sender_name": r.sender_name,
                "sender_role": r.sender_role,
                "text": r.text,
                "attachments": r.attachments or [],
                "created_at": r.created_at,
            }
            for r in t.replies
        ]
    return data


def _session_to_response(s: LiveHelpSession, with_messages: bool = False) -> dict:
    data = {
        "id": s.id,
        "user_id": s.user_id,
        "user_name": s.user_name,
        "user_avatar": s.user_avatar,
        "status": s.status.value,
        "assigned_staff_id": s.assigned_staff_id,
        "assigned_staff_name": s.assigned_staff_name,
        "last_message": s.last_message,
        "created_at": s.created_at,
        "updated_at": s.updated_at,
    }
    if with_messages:
        data["messages"] = [
            {"id": m.id, "sender_id": m.sender_id, "sender_name": m.sender_name, "text": m.text, "created_at": m.created_at}
            for m in s.messages
        ]
    return data


def _get_ticket_for(db: Session, ticket_id: str, user: User) -> SupportTicket:
    ticket = db.query(SupportTicket).filter(SupportTicket.id == ticket_id).first()
    if not ticket:
        raise HTTPException(status_code=404, detail="Ticket not found")
    if ticket.user_id != user.id and not user.is_staff:
        raise HTTPException(status_code=403, detail="Access denied")
    return ticket


# ============================================================================
# TICKETS
# ============================================================================

@router.post("/tickets", status_code=status.HTTP_201_CREATED)
async def create_ticket(
    ticket_data: TicketCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    ticket = SupportTicket(
        user_id=current_user.id,
        user_name=current_user.name,
        subject=ticket_data.subject,
        priority=TicketPriorityDB(ticket_data.priority.value),
        status=TicketStatusDB.OPEN,
    )
    ticket.replies.append(TicketReply(
        sender_id=current_user.id,
        sender_name=current_user.name,
        sender_role=current_user.role.value,
        text=ticket_data.message,
        attachments=[a.model_dump() for a in ticket_data.attachments],
    ))
    db.add(ticket)
    db.commit()
    db.refresh(ticket)
    return _ticket_to_response(ticket, with_replies=True)


@router.get("/tickets/mine")
async def list_my_tickets(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    tickets = db.query(SupportTicket).filter(
        SupportTicket.user_id == current_user.id
    ).order_by(SupportTicket.updated_at.desc()).all()
    return {"tickets": [_ticket_to_response(t) for t in tickets]}


@router.get("/tickets/{ticket_id}")
async def get_ticket(
    ticket_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return _ticket_to_response(_get_ticket_for(db, ticket_id, current_user), with_replies=True)


@router.post("/tickets/{ticket_id}/replies", status_code=status.HTTP_201_CREATED)
async def reply_to_ticket(
    ticket_id: str,
    reply_data: TicketReplyCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Add a reply. A staff reply moves an open ticket to in_progress and notifies the owner."""
    ticket = _get_ticket_for(db, ticket_id, current_user)
    if ticket.status == TicketStatusDB.CLOSED and not current_user.is_staff:
        raise HTTPException(status_code=400, detail="This ticket is closed")

    ticket.replies.append(TicketReply(
        sender_id=current_user.id,
        sender_name=current_user.name,
        sender_role=current_user.role.value,
        text=reply_data.text,
        attachments=[a.model_dump() for a in reply_data.attachments],
    ))

    if current_user.is_staff and current_user.id != ticket.user_id:
        if ticket.status == TicketStatusDB.OPEN:
            ticket.status = TicketStatusDB.IN_PROGRESS
        NotificationService(db).create(
            user_id=ticket.user_id,
            type=NotificationType.SUPPORT,
            title="Support replied",
            body=f"New reply on '{ticket.subject}'",
            view="support",
            related_id=ticket.id,
        )

    db.commit()
    db.refresh(ticket)
    return _ticket_to_response(ticket, with_replies=True)


@router.get("/admin/tickets", response_model=dict)
async def list_all_tickets(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff(StaffPermission.SUPPORT)),
    status_filter: Optional[TicketStatus] = Query(None, alias="status"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
):
    query = db.query(SupportTicket)
    if status_filter:
        query = query.filter(SupportTicket.status == TicketStatusDB(status_filter.value))

    total = query.count()
    tickets = query.order_by(SupportTicket.updated_at.desc()).offset((page - 1) * limit).limit(limit).all()

    return {
        "tickets": [_ticket_to_response(t) for t in tickets],
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "total_pages": (total + limit - 1) // limit
        }
    }


@router.put("/admin/tickets/{ticket_id}")
async def update_ticket(
    ticket_id: str,
    update: TicketUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff(StaffPermission.SUPPORT))
):
    ticket = _get_ticket_for(db, ticket_id, current_user)
    if update.status:
        ticket.status = TicketStatusDB(update.status.value)
    if update.priority:
        ticket.priority = TicketPriorityDB(update.priority.value)
    db.commit()
    db.refresh(ticket)
    return _ticket_to_response(ticket)


# ============================================================================
# LIVE HELP
# ============================================================================

def _require_live_help_enabled(db: Session) -> None:
    if not get_settings(db).get("is_live_help_enabled"):
        raise HTTPException(status_code=403, detail="Live help is currently disabled")


def _get_session_for(db: Session, session_id: str, user: User) -> LiveHelpSession:
    session = db.query(LiveHelpSession).filter(LiveHelpSession.id == session_id).first()
    if not session:
        raise HTTPException(status_code=404, detail="Live help session not found")
    if session.user_id != user.id and not user.is_staff:
        raise HTTPException(status_code=403, detail="Access denied")
    return session


@router.post("/live-help")
async def start_live_help(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Return the user's session that is not closed, creating one if needed."""
    _require_live_help_enabled(db)
    session = db.query(LiveHelpSession).filter(
        LiveHelpSession.user_id == current_user.id,
        LiveHelpSession.status != LiveHelpStatusDB.CLOSED,
    ).first()
    if session is None:
        session = LiveHelpSession(
            user_id=current_user.id,
            user_name=current_user.name,
            user_avatar=current_user.avatar_url,
            status=LiveHelpStatusDB.UNASSIGNED,
        )
        db.add(session)
        db.commit()
        db.refresh(session)
    return _session_to_response(session, with_messages=True)


@router.get("/live-help/mine")
async def list_my_live_help(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    sessions = db.query(LiveHelpSession).filter(
        LiveHelpSession.user_id == current_user.id
    ).order_by(LiveHelpSession.updated_at.desc()).all()
    return {"sessions": [_session_to_response(s) for s in sessions]}


@router.get("/live-help/{session_id}")
async def get_live_help(
    session_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return _session_to_response(_get_session_for(db, session_id, current_user), with_messages=True)


@router.post("/live-help/{session_id}/messages", status_code=status.HTTP_201_CREATED)
async def send_live_help_message(
    session_id: str,
    message_data: LiveHelpMessageCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    _require_live_help_enabled(db)
    session = _get_session_for(db, session_id, current_user)
    if session.status == LiveHelpStatusDB.CLOSED:
        raise HTTPException(status_code=400, detail="This session is closed")

    session.messages.append(LiveHelpMessage(
        sender_id=current_user.id,
        sender_name=current_user.name,
        text=message_data.text,
    ))
    session.last_message = message_data.text

    if current_user.is_staff and current_user.id != session.user_id:
        NotificationService(db).create(
            user_id=session.user_id,
            type=NotificationType.SUPPORT,
            title="Live help",
            body=message_data.text[:200],
            view="live_help",
            related_id=session.id,
        )

    db.commit()
    db.refresh(session)
    return _session_to_response(session, with_messages=True)


@router.get("/admin/live-help", response_model=dict)
async def list_live_help_sessions(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff(StaffPermission.LIVE_HELP)),
    status_filter: Optional[LiveHelpStatus] = Query(None, alias="status"),
):
    query = db.query(LiveHelpSession)
    if status_filter:
        query = query.filter(LiveHelpSession.status == LiveHelpStatusDB(status_filter.value))
    sessions = query.order_by(LiveHelpSession.updated_at.desc()).all()
    return {"sessions": [_session_to_response(s) for s in sessions]}


@router.put("/admin/live-help/{session_id}/assign")
async def assign_live_help(
    session_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff(StaffPermission.LIVE_HELP))
):
    """Assign the session to the calling staff member and open it."""
    session = _get_session_for(db, session_id, current_user)
    session.assigned_staff_id = current_user.id
    session.assigned_staff_name = current_user.name
    session.status = LiveHelpStatusDB.OPEN
    db.commit()
    db.refresh(session)
    return _session_to_response(session)


@router.put("/admin/live-help/{session_id}/status")
async def update_live_help_status(
    session_id: str,
    update: LiveHelpStatusUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff(StaffPermission.LIVE_HELP))
):
    """Close or reopen a session."""
    session = _get_session_for(db, session_id, current_user)
    session.status = LiveHelpStatusDB(update.status.value)
    db.commit()
    db.refresh(session)
    return _session_to_response(session)


# ============================================================================
# QUICK REPLIES
# ============================================================================

@router.get("/admin/quick-replies")
async def list_quick_replies(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff(StaffPermission.SUPPORT, StaffPermission.LIVE_HELP))
):
    replies = db.query(QuickReply).order_by(QuickReply.created_at.asc()).all()
    return [{"id": r.id, "text": r.text, "created_at": r.created_at} for r in replies]


@router.post("/admin/quick-replies", status_code=status.HTTP_201_CREATED)
async def create_quick_reply(
    reply_data: QuickReplyCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff(StaffPermission.SUPPORT, StaffPermission.LIVE_HELP))
):
    reply = QuickReply(text=reply_data.text)
    db.add(reply)
    db.commit()
    db.refresh(reply)
    return {"id": reply.id, "text": reply.text, "created_at": reply.created_at}


@router.delete("/admin/quick-replies/{reply_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_quick_reply(
    reply_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff(StaffPermission.SUPPORT, StaffPermission.LIVE_HELP))
):
    reply = db.query(QuickReply).filter(QuickReply.id == reply_id).first()
    if not reply:
        raise HTTPException(status_code=404, detail="Quick reply not found")
    db.delete(reply)
    db.commit()
