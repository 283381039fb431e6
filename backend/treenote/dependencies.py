import logging

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from treenote.database import get_db
from treenote.models import User
from treenote.services.auth import decode_token

logger = logging.getLogger(__name__)

security = HTTPBearer()


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Resolve the owner of every node operation from the bearer token."""
    try:
        token_data = decode_token(credentials.credentials)
    except (JWTError, ValueError) as e:
        logger.warning("Invalid token", extra={"error": str(e)})
        raise _unauthorized("Invalid or expired token")
    if token_data.user_id is None:
        raise _unauthorized("Invalid token")
    result = await db.execute(select(User).where(User.id == token_data.user_id))
    user = result.scalar_one_or_none()
    if user is None:
        raise _unauthorized("User not found")
    # A token outlives renames and database resets; the name claim pins it to one account
    if token_data.username is not None and token_data.username != user.username:
        logger.warning("Token username mismatch", extra={"user_id": user.id})
        raise _unauthorized("Invalid token")
    return user
