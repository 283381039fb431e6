import logging
from datetime import UTC, datetime, timedelta

import bcrypt
from jose import JWTError, jwt
from sqlalchemy import func, select, text
from sqlalchemy.ext.asyncio import AsyncSession

from treenote.config import settings
from treenote.errors import ConstraintViolation, RegistrationClosed
from treenote.models import User
from treenote.schemas.auth import TokenData
from treenote.services.node_store import transaction

logger = logging.getLogger(__name__)


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode(), bcrypt.gensalt()).decode()


def verify_password(plain: str, hashed: str) -> bool:
    return bcrypt.checkpw(plain.encode(), hashed.encode())


def create_access_token(user_id: int, username: str) -> str:
    expire = datetime.now(UTC) + timedelta(minutes=settings.access_token_expire_minutes)
    payload = {"sub": str(user_id), "username": username, "exp": expire}
    return jwt.encode(payload, settings.secret_key, algorithm="HS256")


def decode_token(token: str) -> TokenData:
    payload = jwt.decode(token, settings.secret_key, algorithms=["HS256"])
    user_id_str: str | None = payload.get("sub")
    if user_id_str is None:
        raise JWTError("missing sub")
    return TokenData(user_id=int(user_id_str), username=payload.get("username"))


async def register_user(db: AsyncSession, username: str, password: str) -> User:
    """Admit a new account if the registration policy allows it.

    The policy check and the insert share one transaction. On PostgreSQL the
    users table is locked for the check so two concurrent first
    registrations cannot both be admitted.
    """
    if not settings.allow_registration:
        raise RegistrationClosed("Registration is disabled")
    async with transaction(db):
        if db.get_bind().dialect.name == "postgresql":
            await db.execute(text("LOCK TABLE users IN SHARE ROW EXCLUSIVE MODE"))
        if settings.single_user:
            existing = await db.execute(select(func.count(User.id)))
            if existing.scalar_one() > 0:
                raise RegistrationClosed("Registration is disabled")
        taken = await db.execute(select(User.id).where(User.username == username))
        if taken.scalar_one_or_none() is not None:
            raise ConstraintViolation("Username already taken")
        user = User(username=username, hashed_password=hash_password(password))
        db.add(user)
    logger.info("Registered user", extra={"user_id": user.id})
    return user


async def authenticate(db: AsyncSession, username: str, password: str) -> User | None:
    result = await db.execute(select(User).where(User.username == username))
    user = result.scalar_one_or_none()
    if user is None or not verify_password(password, user.hashed_password):
        return None
    return user
