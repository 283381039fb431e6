from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

from treenote.config import settings
from treenote.database import get_db
from treenote.dependencies import get_current_user
from treenote.middleware.rate_limit import auth_limiter
from treenote.models import User
from treenote.schemas.auth import AuthConfig, Token, UserCreate, UserLogin, UserResponse
from treenote.services.auth import authenticate, create_access_token, register_user

router = APIRouter(prefix="/auth", tags=["auth"])


@router.get("/config", response_model=AuthConfig)
async def auth_config() -> AuthConfig:
    return AuthConfig(allow_registration=settings.allow_registration, single_user=settings.single_user)


@router.post("/register", response_model=Token, status_code=201)
@auth_limiter
async def register(request: Request, data: UserCreate, db: AsyncSession = Depends(get_db)) -> Token:
    user = await register_user(db, data.username, data.password)
    return Token(access_token=create_access_token(user.id, user.username), username=user.username)


@router.post("/login", response_model=Token)
@auth_limiter
async def login(request: Request, data: UserLogin, db: AsyncSession = Depends(get_db)) -> Token:
    user = await authenticate(db, data.username, data.password)
    if user is None:
        raise HTTPException(status_code=401, detail="Invalid username or password")
    return Token(access_token=create_access_token(user.id, user.username), username=user.username)


@router.get("/me", response_model=UserResponse)
async def me(user: User = Depends(get_current_user)) -> User:
    return user
