"""Authentication routes: register, login, refresh, OAuth, email verification."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from estateflow.domain.models import User
from estateflow.domain.schemas import (
    LoginRequest,
    OAuthRequest,
    OAuthResponse,
    RefreshTokenRequest,
    RegisterRequest,
    StatusMessage,
    TokenPair,
)
from estateflow.infra.database import get_db
from estateflow.services import auth_service, oauth_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])


async def _user_from_header(request: Request, db: AsyncSession) -> tuple[User | None, str]:
    """Resolve the Bearer token. Returns (user, reason); reason explains a None user."""
    auth_header = request.headers.get("Authorization", "")
    if not auth_header.startswith("Bearer "):
        return None, "Missing or invalid token"
    payload = auth_service.decode_token(auth_header.removeprefix("Bearer "))
    if not payload or "sub" not in payload:
        return None, "Invalid or expired token"
    result = await db.execute(select(User).where(User.id == payload["sub"]))
    user = result.scalar_one_or_none()
    if not user:
        return None, "User not found"
    return user, ""


async def get_current_user_dep(
    request: Request, db: AsyncSession = Depends(get_db)
) -> User:
    """Dependency: extract current user from Bearer token."""
    user, reason = await _user_from_header(request, db)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=reason,
        )
    return user


async def get_optional_user_dep(
    request: Request, db: AsyncSession = Depends(get_db)
) -> User | None:
    """Dependency: current user for a valid Bearer token, else None.

    An expired or unknown token is treated as an anonymous request.
    """
    user, reason = await _user_from_header(request, db)
    if user is None and "Authorization" in request.headers:
        logger.debug("Ignoring bearer token on optional-auth route: %s", reason)
    return user


def require_role(*roles: str):
    """Factory: dependency that checks user has one of the required roles."""

    async def checker(user: User = Depends(get_current_user_dep)):
        if user.role not in roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permissions",
            )
        return user

    return checker


@router.post("/register", response_model=StatusMessage, status_code=201)
async def register(data: RegisterRequest, db: AsyncSession = Depends(get_db)):
    await auth_service.register(db, data.username, data.email, data.password, data.role)
    return StatusMessage(message="User registered. Please check your email to verify your account.")


@router.post("/login", response_model=TokenPair)
async def login(data: LoginRequest, db: AsyncSession = Depends(get_db)):
    tokens = await auth_service.login(db, data.email, data.password)
    return TokenPair(**tokens)


@router.post("/refresh-token", response_model=TokenPair)
async def refresh_token(data: RefreshTokenRequest, db: AsyncSession = Depends(get_db)):
    tokens = await auth_service.refresh_tokens(db, data.refresh_token)
    return TokenPair(**tokens)


@router.get("/verify-email/{token}", response_model=StatusMessage)
async def verify_email(token: str, db: AsyncSession = Depends(get_db)):
    await auth_service.verify_email(db, token)
    return StatusMessage(message="Email verified successfully")


@router.post("/google", response_model=OAuthResponse)
async def google(data: OAuthRequest, db: AsyncSession = Depends(get_db)):
    result = await oauth_service.google_auth(db, data.code, data.role)
    return OAuthResponse(
        access_token=result.access_token,
        refresh_token=result.refresh_token,
        is_new_user=result.is_new_user,
        message="User registered via Google" if result.is_new_user else "Logged in via Google",
    )


@router.post("/facebook", response_model=OAuthResponse)
async def facebook(data: OAuthRequest, db: AsyncSession = Depends(get_db)):
    result = await oauth_service.facebook_auth(db, data.code, data.role)
    return OAuthResponse(
        access_token=result.access_token,
        refresh_token=result.refresh_token,
        is_new_user=result.is_new_user,
        message="User registered via Facebook" if result.is_new_user else "Logged in via Facebook",
    )
