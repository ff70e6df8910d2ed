import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import jwt
from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPBearer
from sqlmodel import Session

from app.constants.messages import MessageConstants
from app.core.config import settings
from app.db import get_db
from app.models.user import User

logger = logging.getLogger(__name__)

ACCESS_TOKEN_TYPE = "access"


def create_access_token(user_id: int, expires_delta: Optional[timedelta] = None) -> str:
    """Mint an access token; login lives upstream, this serves tests and tooling"""
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    claims = {"sub": str(user_id), "exp": expire, "type": ACCESS_TOKEN_TYPE}
    return jwt.encode(claims, settings.SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def decode_token(token: str) -> Optional[Dict[str, Any]]:
    try:
        return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        logger.info("Rejected expired token")
        return None
    except jwt.InvalidTokenError as e:
        logger.info("Rejected invalid token: %s", e)
        return None


def user_id_from_token(token: str) -> Optional[int]:
    """Subject of a valid access token as a user id, else None"""
    payload = decode_token(token)
    if not payload or payload.get("type") != ACCESS_TOKEN_TYPE:
        return None
    try:
        return int(payload.get("sub"))
    except (TypeError, ValueError):
        return None


class JWTBearer(HTTPBearer):
    def __init__(self):
        # auto_error off so a missing header maps to 401 instead of 403
        super().__init__(auto_error=False, scheme_name="BearerAuth")

    async def __call__(self, request: Request) -> str:
        credentials = await super().__call__(request)
        if not credentials:
            raise HTTPException(status_code=401, detail=MessageConstants.AUTHENTICATION_REQUIRED)
        if credentials.scheme.lower() != "bearer":
            raise HTTPException(status_code=401, detail=MessageConstants.INVALID_AUTH_SCHEME)
        return credentials.credentials


jwt_bearer = JWTBearer()


def get_current_user(token: str = Depends(jwt_bearer), db: Session = Depends(get_db)) -> User:
    """
    Resolve the bearer token to a stored user.

    Tokens for users that no longer exist are treated like invalid tokens.
    """
    user_id = user_id_from_token(token)
    if user_id is None:
        raise HTTPException(status_code=401, detail=MessageConstants.INVALID_TOKEN)

    user = db.get(User, user_id)
    if not user:
        logger.warning("Token subject %s has no user record", user_id)
        raise HTTPException(status_code=401, detail=MessageConstants.USER_NOT_FOUND)
    return user
