# FastAPI Server for Collabzz
# Authentication endpoints, startup tasks and router mounting

import logging
import os
import random
from datetime import datetime, timedelta
from typing import Optional

from fastapi import FastAPI, HTTPException, Depends, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, EmailStr, Field, validator
from sqlalchemy.orm import Session
from dotenv import load_dotenv

from config import app_config
from database.config import get_db, init_db, SessionLocal
from database.models import User, UserRole, OtpCode
from auth.roles import UserType, StaffPermission
from auth.utils import verify_password, get_password_hash, issue_token_for, Token
from auth.dependencies import get_current_user
from core.errors import MarketplaceError
from core.identity_service import verify_google_id_token
from core.sms_service import SmsService
from services.maintenance import run_maintenance
from services.referral_service import apply_referral, generate_referral_code
from services.settings_service import get_settings

from routers.users import router as users_router, user_to_response
from routers.uploads import router as uploads_router
from routers.influencers import router as influencers_router
from routers.channels import router as channels_router
from routers.banner_ads import router as banner_ads_router
from routers.campaigns import router as campaigns_router
from routers.collaborations import router as collaborations_router
from routers.ad_bookings import router as ad_bookings_router
from routers.payments import router as payments_router
from routers.payouts import router as payouts_router
from routers.disputes import router as disputes_router
from routers.kyc import router as kyc_router
from routers.messages import router as messages_router
from routers.support import router as support_router
from routers.community import router as community_router
from routers.notifications import router as notifications_router
from routers.memberships import router as memberships_router
from routers.platform import router as platform_router

load_dotenv()

logger = logging.getLogger(__name__)

MAX_OTP_ATTEMPTS = 5

app = FastAPI(
    title="Collabzz API",
    description="Influencer marketing marketplace API",
    version="2.0.0"
)


@app.on_event("startup")
def startup_event():
    init_db()

    # Seed the first staff account
    db = SessionLocal()
    try:
        admin_email = os.getenv("ADMIN_USER", "admin@collabzz.com")
        admin_pass = os.getenv("ADMIN_PASS", "changeme")

        admin = db.query(User).filter(User.email == admin_email).first()
        if not admin:
            logger.info(f"Seeding staff account: {admin_email}")
            db.add(User(
                email=admin_email,
                password_hash=get_password_hash(admin_pass),
                name="Collabzz Admin",
                role=UserRole.STAFF,
                staff_permissions=[StaffPermission.SUPER_ADMIN.value],
            ))
            db.commit()
    except Exception:
        logger.exception("Seeding the staff account failed")
        db.rollback()
    finally:
        db.close()

    if not app_config.SCHEDULER_ENABLED:
        return

    from apscheduler.schedulers.background import BackgroundScheduler

    def scheduled_maintenance():
        db = SessionLocal()
        try:
            run_maintenance(db)
        except Exception:
            logger.exception("Scheduled maintenance failed")
            db.rollback()
        finally:
            db.close()

    scheduler = BackgroundScheduler()
    scheduler.add_job(scheduled_maintenance, 'interval', minutes=app_config.MAINTENANCE_INTERVAL_MINUTES)
    scheduler.start()
    logger.info(f"Scheduler started: maintenance runs every {app_config.MAINTENANCE_INTERVAL_MINUTES} minutes")


# CORS Setup - Allow all origins
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,  # Required when using "*"
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["*"],
)


@app.exception_handler(MarketplaceError)
async def marketplace_error_handler(request: Request, exc: MarketplaceError):
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail, "code": exc.code})


# ============================================================================
# MARKETPLACE ROUTERS (v2 API)
# ============================================================================
for router in (
    users_router,
    uploads_router,
    influencers_router,
    channels_router,
    banner_ads_router,
    campaigns_router,
    collaborations_router,
    ad_bookings_router,
    payments_router,
    payouts_router,
    disputes_router,
    kyc_router,
    messages_router,
    support_router,
    community_router,
    notifications_router,
    memberships_router,
    platform_router,
):
    app.include_router(router, prefix="/api/v2")


# Pydantic Models
class UserRegister(BaseModel):
    email: EmailStr
    password: str
    name: str = Field(..., min_length=2, max_length=255)
    role: UserType = UserType.INFLUENCER
    company_name: Optional[str] = None
    mobile_number: Optional[str] = Field(None, min_length=10, max_length=15)
    referral_code: Optional[str] = None

    @validator('password')
    def password_strength(cls, v):
        if len(v) < 8:
            raise ValueError('Password must be at least 8 characters long')
        return v


class UserLogin(BaseModel):
    email: EmailStr
    password: str


class OtpRequest(BaseModel):
    mobile_number: str = Field(..., min_length=10, max_length=15)


class OtpVerify(BaseModel):
    mobile_number: str = Field(..., min_length=10, max_length=15)
    code: str = Field(..., min_length=6, max_length=6)


class GoogleLogin(BaseModel):
    id_token: str
    role: UserType = UserType.INFLUENCER


def _check_not_blocked(user: User) -> None:
    if user.is_blocked:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="This account has been blocked")


# Health Check
@app.get("/")
def root():
    return {
        "message": "Collabzz API",
        "version": "2.0.0",
        "status": "running"
    }


@app.get("/health")
def health_check():
    return {"status": "healthy"}


# ============================================================================
# AUTHENTICATION ENDPOINTS
# ============================================================================

@app.post("/api/auth/register", response_model=Token)
def register(user_data: UserRegister, db: Session = Depends(get_db)):
    """
    Register a new user.
    Returns JWT token on success.
    """
    if user_data.role == UserType.STAFF and not get_settings(db).get("is_staff_registration_enabled"):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Staff registration is disabled")

    if db.query(User).filter(User.email == user_data.email).first():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Email already registered"
        )
    if user_data.mobile_number and db.query(User).filter(User.mobile_number == user_data.mobile_number).first():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Mobile number already registered"
        )

    new_user = User(
        email=user_data.email,
        password_hash=get_password_hash(user_data.password),
        name=user_data.name,
        role=UserRole(user_data.role.value),
        company_name=user_data.company_name,
        mobile_number=user_data.mobile_number,
        staff_permissions=[],
    )
    db.add(new_user)
    db.flush()

    generate_referral_code(db, new_user)
    if user_data.referral_code:
        apply_referral(db, new_user, user_data.referral_code)

    db.commit()
    db.refresh(new_user)
    logger.info(f"Registered {new_user.role.value} account {new_user.id}")

    return issue_token_for(new_user)


@app.post("/api/auth/login", response_model=Token)
def login(credentials: UserLogin, db: Session = Depends(get_db)):
    """
    Login with email and password.
    Returns JWT token on success.
    """
    user = db.query(User).filter(User.email == credentials.email).first()

    if not user or not verify_password(credentials.password, user.password_hash):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect email or password"
        )
    _check_not_blocked(user)

    user.last_activity_at = datetime.utcnow()
    db.commit()
    return issue_token_for(user)


@app.post("/api/auth/otp/request")
def request_otp(otp_request: OtpRequest, db: Session = Depends(get_db)):
    """Send a six digit login code to a registered mobile number."""
    if not get_settings(db).get("is_otp_login_enabled"):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="OTP login is disabled")

    user = db.query(User).filter(User.mobile_number == otp_request.mobile_number).first()
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No account is registered with this mobile number")

    code = f"{random.randint(0, 999999):06d}"
    db.query(OtpCode).filter(
        OtpCode.mobile_number == otp_request.mobile_number,
        OtpCode.consumed == False
    ).update({"consumed": True}, synchronize_session=False)
    db.add(OtpCode(
        mobile_number=otp_request.mobile_number,
        code_hash=get_password_hash(code),
        expires_at=datetime.utcnow() + timedelta(minutes=app_config.OTP_EXPIRY_MINUTES),
    ))
    db.commit()

    if not SmsService().send_otp(otp_request.mobile_number, code):
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="Could not send the verification code")

    return {"message": "Verification code sent", "expires_in_minutes": app_config.OTP_EXPIRY_MINUTES}


@app.post("/api/auth/otp/verify", response_model=Token)
def verify_otp(otp_data: OtpVerify, db: Session = Depends(get_db)):
    otp = db.query(OtpCode).filter(
        OtpCode.mobile_number == otp_data.mobile_number,
        OtpCode.consumed == False
    ).order_by(OtpCode.created_at.desc()).first()

    if not otp or otp.expires_at < datetime.utcnow():
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Code expired or not requested")
    if otp.attempts >= MAX_OTP_ATTEMPTS:
        raise HTTPException(status_code=status.HTTP_429_TOO_MANY_REQUESTS, detail="Too many attempts, request a new code")

    if not verify_password(otp_data.code, otp.code_hash):
        otp.attempts = (otp.attempts or 0) + 1
        db.commit()
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Incorrect code")

    otp.consumed = True
    user = db.query(User).filter(User.mobile_number == otp_data.mobile_number).first()
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    _check_not_blocked(user)

    user.last_activity_at = datetime.utcnow()
    db.commit()
    return issue_token_for(user)


@app.post("/api/auth/google", response_model=Token)
def google_login(google_data: GoogleLogin, db: Session = Depends(get_db)):
    """Sign in with a Google ID token, creating the account on first use."""
    if not get_settings(db).get("is_google_login_enabled"):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Google sign-in is disabled")
    if google_data.role == UserType.STAFF:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Staff accounts cannot use Google sign-in")

    claims = verify_google_id_token(google_data.id_token)
    if not claims:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid Google token")

    user = db.query(User).filter(User.email == claims["email"]).first()
    if user is None:
        user = User(
            email=claims["email"],
            name=claims.get("name") or claims["email"].split("@")[0],
            avatar_url=claims.get("picture"),
            role=UserRole(google_data.role.value),
            staff_permissions=[],
        )
        db.add(user)
        db.flush()
        generate_referral_code(db, user)
        logger.info(f"Created account {user.id} from Google sign-in")
    _check_not_blocked(user)

    user.last_activity_at = datetime.utcnow()
    db.commit()
    db.refresh(user)
    return issue_token_for(user)


@app.get("/api/auth/me")
def get_current_user_info(current_user: User = Depends(get_current_user)):
    """
    Get current user information with membership usage.
    """
    return user_to_response(current_user, private=True)
