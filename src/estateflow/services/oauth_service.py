"""Google and Facebook sign-in.

Exchanges the authorization code for a provider access token, reads the
provider profile, then creates or links the local account and upserts
the stored provider credentials.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import httpx
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from estateflow.app.config import get_settings
from estateflow.domain.enums import UserRole
from estateflow.domain.errors import ExternalServiceError, ValidationError
from estateflow.domain.models import FacebookOAuthCredential, GoogleOAuthCredential, User
from estateflow.services.auth_service import issue_token_pair, listing_limit_for

logger = logging.getLogger(__name__)

GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
GOOGLE_USERINFO_URL = "https://www.googleapis.com/oauth2/v2/userinfo"
FACEBOOK_TOKEN_URL = "https://graph.facebook.com/v20.0/oauth/access_token"
FACEBOOK_PROFILE_URL = "https://graph.facebook.com/me"


@dataclass(frozen=True)
class OAuthProfile:
    provider_id: str
    email: str
    access_token: str
    refresh_token: str | None = None
    expires_in: int | None = None


@dataclass(frozen=True)
class OAuthResult:
    user: User
    access_token: str
    refresh_token: str
    is_new_user: bool


# ---------------------------------------------------------------------------
# Provider calls
# ---------------------------------------------------------------------------


async def fetch_google_profile(code: str) -> OAuthProfile:
    settings = get_settings()
    try:
        async with httpx.AsyncClient(timeout=10.0) as client:
            token_resp = await client.post(
                GOOGLE_TOKEN_URL,
                data={
                    "code": code,
                    "client_id": settings.google_client_id,
                    "client_secret": settings.google_client_secret,
                    "redirect_uri": settings.google_redirect_uri,
                    "grant_type": "authorization_code",
                },
            )
            token_resp.raise_for_status()
            tokens = token_resp.json()

            info_resp = await client.get(
                GOOGLE_USERINFO_URL,
                headers={"Authorization": f"Bearer {tokens['access_token']}"},
            )
            info_resp.raise_for_status()
            info = info_resp.json()
    except (httpx.HTTPError, KeyError) as exc:
        logger.warning("Google OAuth exchange failed: %s", exc)
        raise ExternalServiceError("Google authentication failed") from exc

    return OAuthProfile(
        provider_id=str(info["id"]),
        email=info["email"],
        access_token=tokens["access_token"],
        refresh_token=tokens.get("refresh_token"),
        expires_in=tokens.get("expires_in"),
    )


async def fetch_facebook_profile(code: str) -> OAuthProfile:
    settings = get_settings()
    try:
        async with httpx.AsyncClient(timeout=10.0) as client:
            token_resp = await client.post(
                FACEBOOK_TOKEN_URL,
                data={
                    "code": code,
                    "client_id": settings.facebook_client_id,
                    "client_secret": settings.facebook_client_secret,
                    "redirect_uri": settings.facebook_redirect_uri,
                    "grant_type": "authorization_code",
                },
            )
            token_resp.raise_for_status()
            tokens = token_resp.json()

            info_resp = await client.get(
                FACEBOOK_PROFILE_URL,
                params={"fields": "id,email", "access_token": tokens["access_token"]},
            )
            info_resp.raise_for_status()
            info = info_resp.json()
    except (httpx.HTTPError, KeyError) as exc:
        logger.warning("Facebook OAuth exchange failed: %s", exc)
        raise ExternalServiceError("Facebook authentication failed") from exc

    if not info.get("email"):
        raise ValidationError("Facebook account has no email address")

    return OAuthProfile(
        provider_id=str(info["id"]),
        email=info["email"],
        access_token=tokens["access_token"],
        expires_in=tokens.get("expires_in"),
    )


# ---------------------------------------------------------------------------
# Account linking
# ---------------------------------------------------------------------------


async def _resolve_user(
    db: AsyncSession,
    profile: OAuthProfile,
    role: UserRole | None,
    linked_user_id: str | None,
    provider_label: str,
) -> tuple[User, bool]:
    result = await db.execute(select(User).where(User.email == profile.email))
    user = result.scalar_one_or_none()

    if user is None:
        if role is None:
            raise ValidationError("Role is required for new user registration")
        user = User(
            email=profile.email,
            username=await _unique_username(db, profile.email.split("@")[0]),
            role=UserRole(role).value,
            is_email_verified=True,
            listing_limit=listing_limit_for(role),
        )
        db.add(user)
        await db.flush()
        return user, True

    if linked_user_id is not None and linked_user_id != user.id:
        raise ValidationError(f"This {provider_label} account is already linked to another user")
    if role is not None and user.role != UserRole(role).value:
        raise ValidationError(f"Account already exists with a different role: {user.role}")

    user.is_email_verified = True
    return user, False


async def _unique_username(db: AsyncSession, base: str) -> str:
    candidate = base or "user"
    suffix = 1
    while True:
        taken = await db.execute(select(User.id).where(User.username == candidate))
        if taken.first() is None:
            return candidate
        suffix += 1
        candidate = f"{base}{suffix}"


def _expiry(expires_in: int | None) -> datetime | None:
    if not expires_in:
        return None
    return datetime.now(timezone.utc) + timedelta(seconds=int(expires_in))


async def google_auth(db: AsyncSession, code: str, role: UserRole | None = None) -> OAuthResult:
    """Sign in (or sign up) with a Google authorization code."""
    profile = await fetch_google_profile(code)

    linked = await db.execute(
        select(GoogleOAuthCredential).where(GoogleOAuthCredential.google_id == profile.provider_id)
    )
    linked_cred = linked.scalars().first()
    user, is_new = await _resolve_user(
        db, profile, role, linked_cred.user_id if linked_cred else None, "Google"
    )

    existing = await db.execute(
        select(GoogleOAuthCredential).where(GoogleOAuthCredential.user_id == user.id)
    )
    cred = existing.scalar_one_or_none()
    if cred is None:
        cred = GoogleOAuthCredential(user_id=user.id, google_id=profile.provider_id, access_token="")
        db.add(cred)
    cred.google_id = profile.provider_id
    cred.access_token = profile.access_token
    if profile.refresh_token:
        cred.refresh_token = profile.refresh_token
    cred.token_expiry = _expiry(profile.expires_in)

    tokens = await issue_token_pair(db, user)
    await db.commit()
    logger.info("Google sign-in for user %s (new=%s)", user.id, is_new)
    return OAuthResult(user=user, is_new_user=is_new, **tokens)


async def facebook_auth(db: AsyncSession, code: str, role: UserRole | None = None) -> OAuthResult:
    """Sign in (or sign up) with a Facebook authorization code."""
    if not code:
        raise ValidationError("Authorization code is missing")
    profile = await fetch_facebook_profile(code)

    linked = await db.execute(
        select(FacebookOAuthCredential).where(FacebookOAuthCredential.facebook_id == profile.provider_id)
    )
    linked_cred = linked.scalars().first()
    user, is_new = await _resolve_user(
        db, profile, role, linked_cred.user_id if linked_cred else None, "Facebook"
    )

    existing = await db.execute(
        select(FacebookOAuthCredential).where(FacebookOAuthCredential.user_id == user.id)
    )
    cred = existing.scalar_one_or_none()
    if cred is None:
        cred = FacebookOAuthCredential(user_id=user.id, facebook_id=profile.provider_id, access_token="")
        db.add(cred)
    cred.facebook_id = profile.provider_id
    cred.access_token = profile.access_token
    cred.token_expiry = _expiry(profile.expires_in)

    tokens = await issue_token_pair(db, user)
    await db.commit()
    logger.info("Facebook sign-in for user %s (new=%s)", user.id, is_new)
    return OAuthResult(user=user, is_new_user=is_new, **tokens)
