"""
FastAPI dependencies for authentication.
get_current_user verifies a Firebase bearer token and returns the local User,
creating it on first sign-in.
"""
import logging

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from reelforge.config import settings
from reelforge.database import get_db
from reelforge.models.user import User
from reelforge.auth.firebase import verify_firebase_token

logger = logging.getLogger(__name__)

security = HTTPBearer()


async def _get_user_by_uid(db: AsyncSession, firebase_uid: str):
    result = await db.execute(
        select(User).where(User.firebase_uid == firebase_uid)
    )
    return result.scalar_one_or_none()


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: AsyncSession = Depends(get_db)
) -> User:
    """
    Resolve the authenticated user.

    Raises:
        HTTPException 401: If the token is missing, invalid or expired
    """
    token = credentials.credentials
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing authentication token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        decoded_token = verify_firebase_token(token)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Invalid token: {str(e)}",
            headers={"WWW-Authenticate": "Bearer"},
        )

    firebase_uid = decoded_token.get("uid")
    if not firebase_uid:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token: missing uid"
        )

    user = await _get_user_by_uid(db, firebase_uid)
    if user:
        return user

    user = User(
        firebase_uid=firebase_uid,
        email=decoded_token.get("email"),
        credits=settings.signup_credits,
    )
    db.add(user)
    try:
        await db.commit()
    except IntegrityError:
        # First requests of a new user raced; the other one created the row
        await db.rollback()
        user = await _get_user_by_uid(db, firebase_uid)
        if not user:
            raise
        return user

    await db.refresh(user)
    logger.info(
        f"Created user {user.id} for firebase uid {firebase_uid}",
        extra={"event": "user_created", "user_id": user.id},
    )
    return user
