"""User account service: profiles and admin user management."""

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from estateflow.domain.errors import ConflictError, NotFoundError, ValidationError
from estateflow.domain.models import (
    DEFAULT_AVATAR_URL,
    DEFAULT_BIO,
    Property,
    Subscription,
    User,
    utcnow,
)
from estateflow.domain.schemas import (
    AdminUserCreate,
    AdminUserUpdate,
    PropertySummary,
    PublicProfile,
    SubscriptionSummary,
    UserUpdate,
)
from estateflow.services.auth_service import hash_password, listing_limit_for, require_user

logger = logging.getLogger(__name__)


async def get_user(db: AsyncSession, user_id: str) -> User:
    return await require_user(db, user_id)


async def get_public_profile(db: AsyncSession, user_id: str) -> PublicProfile:
    """Public view of a user: verified listings and the current subscription."""
    user = await require_user(db, user_id)

    props = await db.execute(
        select(Property)
        .where(Property.owner_id == user.id, Property.is_verified.is_(True))
        .options(selectinload(Property.images))
        .order_by(Property.created_at.desc())
    )
    sub = await db.execute(
        select(Subscription)
        .where(Subscription.user_id == user.id, Subscription.end_date >= utcnow())
        .options(selectinload(Subscription.plan))
    )
    subscription = sub.scalar_one_or_none()

    summary = None
    if subscription is not None:
        plan = subscription.plan
        summary = SubscriptionSummary(
            status=subscription.status,
            start_date=subscription.start_date,
            end_date=subscription.end_date,
            plan_name=plan.name if plan else None,
            plan_price=plan.price if plan else None,
            plan_currency=plan.currency if plan else None,
        )

    return PublicProfile(
        id=user.id,
        email=user.email,
        username=user.username,
        role=user.role,
        avatar_url=user.avatar_url,
        bio=user.bio,
        created_at=user.created_at,
        updated_at=user.updated_at,
        properties=[PropertySummary.model_validate(p) for p in props.scalars().all()],
        subscription=summary,
    )


async def list_users(db: AsyncSession, exclude_user_id: str) -> list[User]:
    result = await db.execute(
        select(User).where(User.id != exclude_user_id).order_by(User.created_at)
    )
    return list(result.scalars().all())


async def _ensure_username_free(db: AsyncSession, username: str, user_id: str | None) -> None:
    stmt = select(User.id).where(User.username == username)
    if user_id:
        stmt = stmt.where(User.id != user_id)
    if (await db.execute(stmt)).first() is not None:
        raise ConflictError("Username is already taken")


async def update_own_profile(db: AsyncSession, user_id: str, data: UserUpdate) -> User:
    changes = data.model_dump(exclude_unset=True)
    if not changes:
        raise ValidationError("No valid fields to update")

    user = await require_user(db, user_id)
    if "username" in changes and changes["username"]:
        await _ensure_username_free(db, changes["username"], user_id)
    for field, value in changes.items():
        setattr(user, field, value)
    user.updated_at = utcnow()
    await db.commit()
    return user


async def admin_update_user(db: AsyncSession, user_id: str, data: AdminUserUpdate) -> User:
    """Admin edit of any account. Empty values are ignored."""
    changes = {
        k: v for k, v in data.model_dump(exclude_unset=True).items()
        if v is not None and v != ""
    }
    if not changes:
        raise ValidationError("No valid fields to update")

    user = await require_user(db, user_id)
    if "email" in changes:
        taken = await db.execute(
            select(User.id).where(User.email == changes["email"], User.id != user_id)
        )
        if taken.first() is not None:
            raise ConflictError("User with this email already exists")
    if "username" in changes:
        await _ensure_username_free(db, changes["username"], user_id)

    for field, value in changes.items():
        setattr(user, field, getattr(value, "value", value))
    user.updated_at = utcnow()
    await db.commit()
    logger.info("Admin updated user %s: %s", user_id, sorted(changes))
    return user


async def admin_create_user(db: AsyncSession, data: AdminUserCreate) -> User:
    """Create a pre-verified account."""
    taken = await db.execute(select(User.id).where(User.email == data.email))
    if taken.first() is not None:
        raise ConflictError("User with this email already exists")
    await _ensure_username_free(db, data.username, None)

    user = User(
        username=data.username,
        email=data.email,
        password_hash=hash_password(data.password),
        role=data.role.value,
        avatar_url=data.avatar_url or DEFAULT_AVATAR_URL,
        bio=data.bio or DEFAULT_BIO,
        is_email_verified=True,
        listing_limit=listing_limit_for(data.role),
    )
    db.add(user)
    await db.commit()
    logger.info("Admin created user %s (%s)", user.id, user.role)
    return user


async def delete_user(db: AsyncSession, user_id: str) -> None:
    user = await require_user(db, user_id)
    await db.delete(user)
    await db.commit()
    logger.info("Deleted user %s", user_id)
