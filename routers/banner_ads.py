# Banner Ads Router for Collabzz
# Physical banner spaces listed by agencies

from fastapi import APIRouter, HTTPException, Depends, Query, status
from sqlalchemy.orm import Session
from typing import List, Optional

from database.config import get_db
from database.models import User
from database.marketplace_models import BannerAd
from schemas.marketplace import BannerAdCreate, BannerAdUpdate, BannerAdResponse
from auth.roles import UserType as UserTypeRole
from auth.decorators import require_user_type
from auth.dependencies import get_current_user
from services.settings_service import get_settings

router = APIRouter(prefix="/banner-ads", tags=["Banner Ads"])


def _require_banner_ads_enabled(db: Session) -> None:
    if not get_settings(db).get("is_banner_ads_enabled"):
        raise HTTPException(status_code=403, detail="Banner ads are currently disabled")


def _get_own_banner(db: Session, banner_id: str, user: User) -> BannerAd:
    banner = db.query(BannerAd).filter(BannerAd.id == banner_id).first()
    if not banner:
        raise HTTPException(status_code=404, detail="Banner ad not found")
    if banner.agency_id != user.id and not user.is_staff:
        raise HTTPException(status_code=403, detail="Not your banner ad")
    return banner


@router.post("", response_model=BannerAdResponse, status_code=status.HTTP_201_CREATED)
async def create_banner_ad(
    banner_data: BannerAdCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_user_type(UserTypeRole.BANNER_AGENCY))
):
    _require_banner_ads_enabled(db)
    banner = BannerAd(
        agency_id=current_user.id,
        agency_name=current_user.company_name or current_user.name,
        **banner_data.model_dump(),
    )
    db.add(banner)
    db.commit()
    db.refresh(banner)
    return banner


@router.get("", response_model=List[BannerAdResponse])
async def search_banner_ads(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    location: Optional[str] = Query(None, description="Substring of the banner location"),
    banner_type: Optional[str] = Query(None),
    max_fee: Optional[float] = Query(None, gt=0),
):
    """Search banners, boosted first then cheapest."""
    _require_banner_ads_enabled(db)
    query = db.query(BannerAd)
    if location:
        query = query.filter(BannerAd.location.ilike(f"%{location}%"))
    if banner_type:
        query = query.filter(BannerAd.banner_type == banner_type)
    if max_fee is not None:
        query = query.filter(BannerAd.fee_per_day <= max_fee)
    return query.order_by(BannerAd.is_boosted.desc(), BannerAd.fee_per_day.asc()).all()


@router.get("/mine", response_model=List[BannerAdResponse])
async def list_my_banner_ads(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_user_type(UserTypeRole.BANNER_AGENCY))
):
    return db.query(BannerAd).filter(BannerAd.agency_id == current_user.id).order_by(BannerAd.created_at.desc()).all()


@router.get("/{banner_id}", response_model=BannerAdResponse)
async def get_banner_ad(
    banner_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    banner = db.query(BannerAd).filter(BannerAd.id == banner_id).first()
    if not banner:
        raise HTTPException(status_code=404, detail="Banner ad not found")
    return banner


@router.put("/{banner_id}", response_model=BannerAdResponse)
async def update_banner_ad(
    banner_id: str,
    banner_data: BannerAdUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_user_type(UserTypeRole.BANNER_AGENCY))
):
    banner = _get_own_banner(db, banner_id, current_user)
    for field, value in banner_data.model_dump(exclude_unset=True).items():
        setattr(banner, field, value)
    db.commit()
    db.refresh(banner)
    return banner


@router.delete("/{banner_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_banner_ad(
    banner_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_user_type(UserTypeRole.BANNER_AGENCY))
):
    banner = _get_own_banner(db, banner_id, current_user)
    db.delete(banner)
    db.commit()
