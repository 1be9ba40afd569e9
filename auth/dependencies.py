# Authentication Dependencies for Collabzz
# Resolve the signed-in user from the bearer token

from datetime import datetime
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from database.config import get_db
from database.models import User
from auth.utils import TokenData, decode_access_token


security = HTTPBearer()
security_optional = HTTPBearer(auto_error=False)


def _lookup_user(db: Session, token_data: TokenData) -> Optional[User]:
    # Tokens carry both claims; user_id survives an email change
    if token_data.user_id:
        user = db.query(User).filter(User.id == token_data.user_id).first()
        if user is not None:
            return user
    return db.query(User).filter(User.email == token_data.email).first()


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db)
) -> User:
    """
    Authenticated user for the request.

    401 for a bad token or unknown user, 403 for a blocked account.
    Touches last_activity_at so staff can see who is active.
    """
    token_data = decode_access_token(credentials.credentials)
    user = _lookup_user(db, token_data) if token_data else None

    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    if user.is_blocked:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Your account has been blocked")

    user.last_activity_at = datetime.utcnow()
    db.flush()
    return user


async def get_optional_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security_optional),
    db: Session = Depends(get_db)
) -> Optional[User]:
    """Signed-in user for public endpoints; anonymous or blocked callers get None."""
    if not credentials:
        return None

    token_data = decode_access_token(credentials.credentials)
    if token_data is None:
        return None

    user = _lookup_user(db, token_data)
    if user is None or user.is_blocked:
        return None
    return user
