# Live TV Channels Router for Collabzz
# Channel listings owned by live TV accounts

from fastapi import APIRouter, HTTPException, Depends, Query, UploadFile, File, status
from sqlalchemy.orm import Session
from typing import List, Optional

from database.config import get_db
from database.models import User
from database.marketplace_models import LiveTvChannel
from schemas.marketplace import LiveTvChannelCreate, LiveTvChannelUpdate, LiveTvChannelResponse
from auth.roles import UserType as UserTypeRole
from auth.decorators import require_user_type
from auth.dependencies import get_current_user
from core import minio_service

router = APIRouter(prefix="/channels", tags=["Live TV"])


def _get_own_channel(db: Session, channel_id: str, user: User) -> LiveTvChannel:
    channel = db.query(LiveTvChannel).filter(LiveTvChannel.id == channel_id).first()
    if not channel:
        raise HTTPException(status_code=404, detail="Channel not found")
    if channel.owner_id != user.id and not user.is_staff:
        raise HTTPException(status_code=403, detail="Not your channel")
    return channel


@router.post("", response_model=LiveTvChannelResponse, status_code=status.HTTP_201_CREATED)
async def create_channel(
    channel_data: LiveTvChannelCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_user_type(UserTypeRole.LIVETV))
):
    channel = LiveTvChannel(owner_id=current_user.id, **channel_data.model_dump())
    db.add(channel)
    db.commit()
    db.refresh(channel)
    return channel


@router.get("", response_model=List[LiveTvChannelResponse])
async def list_channels(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    niche: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
):
    query = db.query(LiveTvChannel)
    if niche:
        query = query.filter(LiveTvChannel.niche.ilike(f"%{niche}%"))
    if search:
        query = query.filter(LiveTvChannel.name.ilike(f"%{search}%"))
    return query.order_by(LiveTvChannel.audience_size.desc()).all()


@router.get("/mine", response_model=List[LiveTvChannelResponse])
async def list_my_channels(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_user_type(UserTypeRole.LIVETV))
):
    return db.query(LiveTvChannel).filter(LiveTvChannel.owner_id == current_user.id).all()


@router.get("/{channel_id}", response_model=LiveTvChannelResponse)
async def get_channel(
    channel_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    channel = db.query(LiveTvChannel).filter(LiveTvChannel.id == channel_id).first()
    if not channel:
        raise HTTPException(status_code=404, detail="Channel not found")
    return channel


@router.put("/{channel_id}", response_model=LiveTvChannelResponse)
async def update_channel(
    channel_id: str,
    channel_data: LiveTvChannelUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_user_type(UserTypeRole.LIVETV))
):
    channel = _get_own_channel(db, channel_id, current_user)
    for field, value in channel_data.model_dump(exclude_unset=True).items():
        setattr(channel, field, value)
    db.commit()
    db.refresh(channel)
    return channel


@router.post("/{channel_id}/logo", response_model=LiveTvChannelResponse)
async def upload_channel_logo(
    channel_id: str,
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_user_type(UserTypeRole.LIVETV))
):
    channel = _get_own_channel(db, channel_id, current_user)

    content_type = file.content_type or "application/octet-stream"
    if not content_type.startswith("image/"):
        raise HTTPException(status_code=400, detail="Logo must be an image")

    file_bytes = await file.read()
    if len(file_bytes) > minio_service.MAX_UPLOAD_BYTES:
        raise HTTPException(status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE, detail="File is too large")

    result = minio_service.upload_file(
        file_bytes=file_bytes,
        original_filename=file.filename or "logo",
        content_type=content_type,
        folder="logos",
        owner_id=current_user.id,
    )
    channel.logo_url = result["url"]
    db.commit()
    db.refresh(channel)
    return channel


@router.delete("/{channel_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_channel(
    channel_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_user_type(UserTypeRole.LIVETV))
):
    channel = _get_own_channel(db, channel_id, current_user)
    db.delete(channel)
    db.commit()
