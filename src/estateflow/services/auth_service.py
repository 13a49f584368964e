"""Authentication service: password hashing, JWT issuance and account sign-up."""

import hashlib
import logging
import secrets
from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from estateflow.app.config import get_settings
from estateflow.domain.enums import UserRole
from estateflow.domain.errors import (
    ConflictError,
    ForbiddenError,
    InvalidOrExpiredTokenError,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
)
from estateflow.domain.models import EmailVerificationToken, RefreshToken, User, as_utc
from estateflow.services import email_service

logger = logging.getLogger(__name__)

settings = get_settings()
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

# Listing limits granted at sign-up; -1 means unlimited.
LISTING_LIMITS: dict[UserRole, int] = {
    UserRole.RENTER_BUYER: 5,
    UserRole.AGENCY: 1000,
}
UNLIMITED_LISTINGS = -1


def listing_limit_for(role: UserRole | str) -> int:
    return LISTING_LIMITS.get(UserRole(role), UNLIMITED_LISTINGS)


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain: str, hashed: str | None) -> bool:
    if not hashed:
        return False
    return pwd_context.verify(plain, hashed)


def create_access_token(user_id: str, email: str, role: str) -> str:
    expire = datetime.now(timezone.utc) + timedelta(minutes=settings.jwt_expiration_minutes)
    payload = {"sub": user_id, "email": email, "role": role, "type": "access", "exp": expire}
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> dict | None:
    try:
        payload = jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError:
        return None
    if payload.get("type") != "access":
        return None
    return payload


def _digest(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


async def issue_refresh_token(db: AsyncSession, user_id: str) -> str:
    """Sign a refresh JWT and persist its digest. Caller commits."""
    expires_at = datetime.now(timezone.utc) + timedelta(days=settings.refresh_token_expiration_days)
    token = jwt.encode(
        {"sub": user_id, "type": "refresh", "jti": secrets.token_hex(16), "exp": expires_at},
        settings.jwt_refresh_secret_key,
        algorithm=settings.jwt_algorithm,
    )
    db.add(RefreshToken(user_id=user_id, token_hash=_digest(token), expires_at=expires_at))
    await db.flush()
    return token


async def issue_token_pair(db: AsyncSession, user: User) -> dict:
    access_token = create_access_token(user.id, user.email, user.role)
    refresh_token = await issue_refresh_token(db, user.id)
    return {"access_token": access_token, "refresh_token": refresh_token}


async def get_user_by_email(db: AsyncSession, email: str) -> User | None:
    result = await db.execute(select(User).where(User.email == email))
    return result.scalar_one_or_none()


async def get_user_by_id(db: AsyncSession, user_id: str) -> User | None:
    result = await db.execute(select(User).where(User.id == user_id))
    return result.scalar_one_or_none()


async def require_user(db: AsyncSession, user_id: str) -> User:
    user = await get_user_by_id(db, user_id)
    if user is None:
        raise NotFoundError("User not found")
    return user


# ---------------------------------------------------------------------------
# Registration / email verification
# ---------------------------------------------------------------------------


async def register(
    db: AsyncSession,
    username: str,
    email: str,
    password: str,
    role: UserRole,
) -> User:
    """Create an unverified account and mail a verification link."""
    try:
        role = UserRole(role)
    except ValueError:
        raise ValidationError(f"Unknown role: {role}")
    if await get_user_by_email(db, email):
        raise ConflictError("User with this email already exists")
    taken = await db.execute(select(User.id).where(User.username == username))
    if taken.first():
        raise ConflictError("Username is already taken")

    user = User(
        username=username,
        email=email,
        password_hash=hash_password(password),
        role=role.value,
        listing_limit=listing_limit_for(role),
    )
    db.add(user)
    await db.flush()

    token = secrets.token_urlsafe(32)
    db.add(
        EmailVerificationToken(
            user_id=user.id,
            token=token,
            expires_at=datetime.now(timezone.utc) + timedelta(hours=settings.email_verification_ttl_hours),
        )
    )
    await db.commit()
    await db.refresh(user)

    logger.info("Registered user %s (%s)", user.id, user.role)
    await email_service.send_verification_email(email, token)
    return user


async def verify_email(db: AsyncSession, token: str) -> None:
    """Mark the token's owner verified and consume the token."""
    result = await db.execute(
        select(EmailVerificationToken).where(EmailVerificationToken.token == token)
    )
    record = result.scalar_one_or_none()
    if record is None:
        raise InvalidOrExpiredTokenError()

    user = await get_user_by_id(db, record.user_id)
    if as_utc(record.expires_at) <= datetime.now(timezone.utc):
        if user is not None and user.is_email_verified:
            logger.info("Email already verified for token %s...", token[:8])
            return
        raise InvalidOrExpiredTokenError()

    if user is None:
        raise InvalidOrExpiredTokenError()

    user.is_email_verified = True
    await db.delete(record)
    await db.commit()
    logger.info("Email verified for user %s", user.id)


# ---------------------------------------------------------------------------
# Login / refresh
# ---------------------------------------------------------------------------


async def login(db: AsyncSession, email: str, password: str) -> dict:
    user = await get_user_by_email(db, email)
    if user is None:
        raise NotFoundError("User with this email does not exist")
    if not user.is_email_verified:
        raise ForbiddenError("Please verify your email")
    if not verify_password(password, user.password_hash):
        raise UnauthorizedError("Incorrect password")

    tokens = await issue_token_pair(db, user)
    await db.commit()
    return tokens


async def refresh_tokens(db: AsyncSession, refresh_token: str) -> dict:
    """Rotate a refresh token: revoke the presented one and issue a new pair."""
    try:
        payload = jwt.decode(
            refresh_token, settings.jwt_refresh_secret_key, algorithms=[settings.jwt_algorithm]
        )
    except JWTError:
        raise UnauthorizedError("Invalid or expired refresh token")
    if payload.get("type") != "refresh":
        raise UnauthorizedError("Invalid or expired refresh token")

    now = datetime.now(timezone.utc)
    revoked = await db.execute(
        update(RefreshToken)
        .where(
            RefreshToken.token_hash == _digest(refresh_token),
            RefreshToken.revoked.is_(False),
            RefreshToken.expires_at > now,
        )
        .values(revoked=True)
    )
    if revoked.rowcount != 1:
        raise UnauthorizedError("Invalid or expired refresh token")

    user = await get_user_by_id(db, payload["sub"])
    if user is None:
        raise NotFoundError("User not found")

    tokens = await issue_token_pair(db, user)
    await db.commit()
    return tokens
