# Referral codes and coin rewards

import logging
import random
import string

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from config import app_config
from database.models import User, Referral
from services.notification_service import NotificationService, NotificationType

logger = logging.getLogger(__name__)

CODE_ALPHABET = string.ascii_uppercase + string.digits


def generate_referral_code(db: Session, user: User) -> str:
    """Give the user a unique REF + 6 character code, keeping an existing one."""
    if user.referral_code:
        return user.referral_code
    while True:
        candidate = "REF" + "".join(random.choices(CODE_ALPHABET, k=6))
        if not db.query(User.id).filter(User.referral_code == candidate).first():
            user.referral_code = candidate
            return candidate


def apply_referral(db: Session, user: User, code: str) -> Referral:
    """
    Redeem a referral code for a user. Rewards both sides and writes the
    audit row; the caller commits.
    """
    code = code.strip().upper()
    if user.referred_by or db.query(Referral).filter(Referral.referred_id == user.id).first():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="A referral code has already been applied")

    referrer = db.query(User).filter(User.referral_code == code).first()
    if not referrer:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Invalid referral code")
    if referrer.id == user.id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="You cannot use your own referral code")

    referrer.coins = (referrer.coins or 0) + app_config.REFERRER_REWARD_COINS
    user.coins = (user.coins or 0) + app_config.REFERRED_REWARD_COINS
    user.referred_by = referrer.id

    referral = Referral(
        referrer_id=referrer.id,
        referred_id=user.id,
        code=code,
        referrer_coins=app_config.REFERRER_REWARD_COINS,
        referred_coins=app_config.REFERRED_REWARD_COINS,
    )
    db.add(referral)

    NotificationService(db).create(
        user_id=referrer.id,
        type=NotificationType.SYSTEM,
        title="Referral Reward",
        body=f"{user.name} joined with your code. You earned {app_config.REFERRER_REWARD_COINS} coins!",
        view="referrals",
        related_id=user.id,
    )
    logger.info(f"Referral {code} applied by {user.id}")
    return referral
